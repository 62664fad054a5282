"""Project file indexer: relative paths plus content hashes."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

from module_pack.errors import ScanError
from module_pack.models import NOISE_DIRS, NOISE_FILES, FileEntry
from module_pack.scanner.base import matches_any

logger = logging.getLogger(__name__)

_CHUNK = 64 * 1024


def hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def scan_project_files(
    root: Path,
    skip_dirs: list[str] | None = None,
) -> list[FileEntry]:
    """Walk *root* and return every file outside noise directories, sorted by relative path.

    *skip_dirs* only prunes directories; file names are checked against
    :data:`NOISE_FILES` alone.
    """
    root = Path(root)
    if not root.is_dir():
        raise ScanError(f"Project directory not found: {root}")

    patterns = NOISE_DIRS if skip_dirs is None else skip_dirs
    entries: list[FileEntry] = []

    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in place so os.walk never descends into noise
        dirnames[:] = sorted(d for d in dirnames if not matches_any(d, patterns))
        for filename in filenames:
            if matches_any(filename, NOISE_FILES):
                continue
            path = Path(dirpath) / filename
            relative = path.relative_to(root).as_posix()
            try:
                digest = hash_file(path)
            except OSError as e:
                logger.warning("Skipping unreadable file %s: %s", relative, e)
                continue
            entries.append(FileEntry(relative_path=relative, file_hash=digest))

    entries.sort(key=lambda e: e.relative_path)
    return entries
