"""Zip archiving of a finished build workspace."""

from __future__ import annotations

import logging
import os
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)


def create_archive(source_dir: Path, archive_path: Path) -> Path:
    """Zip *source_dir* into *archive_path*.

    Entries are relative to *source_dir*, use forward slashes, include
    directory entries, and are written in sorted path order. The archive is
    written to a ``.part`` file first and renamed into place, so a failure
    never leaves a half-written archive behind.
    """
    source_dir, archive_path = Path(source_dir), Path(archive_path)
    part = archive_path.with_name(archive_path.name + ".part")

    entries = sorted(source_dir.rglob("*"), key=lambda p: p.relative_to(source_dir).as_posix())
    try:
        with zipfile.ZipFile(part, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in entries:
                arcname = path.relative_to(source_dir).as_posix()
                # ZipFile.write streams file contents and adds "/" to directory entries
                zf.write(path, arcname)
        os.replace(part, archive_path)
    except Exception:
        part.unlink(missing_ok=True)
        raise

    logger.info("Wrote archive %s (%d entries)", archive_path, len(entries))
    return archive_path
