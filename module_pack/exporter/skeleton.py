"""Exclusion-based skeleton copy and parallel module copy.

Two pattern lists are kept apart: *skip_dirs* names directories only
(``dist``, ``build``, ``node_modules`` ...), while *exclude_names* is matched
against both files and directories (``.env``, ``*.log``).
"""

from __future__ import annotations

import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from module_pack.errors import BuildError
from module_pack.scanner.base import matches_any

logger = logging.getLogger(__name__)


def _ignored(is_dir: bool, name: str, skip_dirs: list[str], exclude_names: list[str]) -> bool:
    if matches_any(name, exclude_names):
        return True
    return is_dir and matches_any(name, skip_dirs)


def copy_dir_excluding(
    src: Path,
    dst: Path,
    skip_dirs: list[str],
    exclude_names: list[str],
    exclude_paths: list[str] | None = None,
) -> int:
    """Copy *src* into *dst*, leaving out ignored entries and the relative
    paths listed in *exclude_paths*.

    Returns the number of files copied.
    """
    src, dst = Path(src), Path(dst)
    excluded_paths = {p.strip("/") for p in (exclude_paths or [])}
    copied = 0

    for dirpath, dirnames, filenames in os.walk(src):
        rel_dir = Path(dirpath).relative_to(src).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir

        def relative(name: str) -> str:
            return f"{rel_dir}/{name}" if rel_dir else name

        dirnames[:] = sorted(
            d for d in dirnames
            if not _ignored(True, d, skip_dirs, exclude_names) and relative(d) not in excluded_paths
        )
        target_dir = dst / rel_dir if rel_dir else dst
        target_dir.mkdir(parents=True, exist_ok=True)

        for filename in sorted(filenames):
            if _ignored(False, filename, skip_dirs, exclude_names) or relative(filename) in excluded_paths:
                continue
            shutil.copy2(Path(dirpath) / filename, target_dir / filename)
            copied += 1

    return copied


def copytree_ignore(skip_dirs: list[str], exclude_names: list[str]):
    """``shutil.copytree`` ignore hook applying *skip_dirs* to directories only."""

    def ignore(directory: str, names: list[str]) -> set[str]:
        return {
            name for name in names
            if _ignored(os.path.isdir(os.path.join(directory, name)), name, skip_dirs, exclude_names)
        }

    return ignore


def _copy_module(src: Path, dst: Path, skip_dirs: list[str], exclude_names: list[str]) -> None:
    shutil.copytree(src, dst, ignore=copytree_ignore(skip_dirs, exclude_names), dirs_exist_ok=True)


def copy_modules(
    src_root: Path,
    dst_root: Path,
    modules: list[str],
    skip_dirs: list[str],
    exclude_names: list[str],
    max_workers: int = 4,
) -> tuple[list[str], list[str]]:
    """Copy each module directory from *src_root* to *dst_root* in parallel.

    Returns ``(copied, missing)``, both in the order of *modules*.
    """
    src_root, dst_root = Path(src_root), Path(dst_root)
    present = [m for m in modules if (src_root / m).is_dir()]
    missing = [m for m in modules if m not in present]
    for name in missing:
        logger.warning("Module directory not found, skipping: %s", src_root / name)

    dst_root.mkdir(parents=True, exist_ok=True)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            name: pool.submit(_copy_module, src_root / name, dst_root / name, skip_dirs, exclude_names)
            for name in present
        }
        for name, future in futures.items():
            try:
                future.result()
            except (OSError, shutil.Error) as e:
                raise BuildError(f"Failed to copy module {name}: {e}") from e

    return present, missing


def copy_root_files(src_root: Path, dst_root: Path, exclude_names: list[str]) -> int:
    """Copy plain files sitting directly in the modules directory (e.g. ``__init__.py``)."""
    src_root, dst_root = Path(src_root), Path(dst_root)
    copied = 0
    for path in sorted(src_root.iterdir()):
        if path.is_file() and not matches_any(path.name, exclude_names):
            dst_root.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, dst_root / path.name)
            copied += 1
    return copied
