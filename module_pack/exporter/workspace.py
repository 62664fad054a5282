"""Scoped build workspace: a uniquely named directory removed exactly once on exit."""

from __future__ import annotations

import logging
import re
import shutil
import threading
from datetime import datetime
from pathlib import Path

from module_pack.errors import BuildError

logger = logging.getLogger(__name__)


def safe_label(label: str) -> str:
    """Label reduced to characters safe in a file name."""
    cleaned = re.sub(r"[^A-Za-z0-9_-]+", "_", label.strip()).strip("_")
    return cleaned or "build"


class BuildWorkspace:
    """Owns ``dist_<label>_<timestamp>/`` under *parent* for one build.

    Use as a context manager; the directory is removed on every exit path.
    The sibling archive path is reserved alongside it but never touched by
    :meth:`release`.
    """

    def __init__(self, parent: Path, label: str, timestamp: str | None = None):
        self.parent = Path(parent)
        self.label = label
        stamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        base = f"dist_{safe_label(label)}_{stamp}"
        stem = base
        counter = 1
        while (self.parent / stem).exists() or (self.parent / f"{stem}.zip").exists():
            counter += 1
            stem = f"{base}_{counter}"
        self.stem = stem
        self.path = self.parent / stem
        self._acquired = False
        self._released = False
        self._lock = threading.Lock()

    @property
    def archive_path(self) -> Path:
        return self.parent / f"{self.stem}.zip"

    def acquire(self) -> Path:
        try:
            self.parent.mkdir(parents=True, exist_ok=True)
            self.path.mkdir()
        except OSError as e:
            raise BuildError(f"Cannot create build workspace {self.path}: {e}") from e
        self._acquired = True
        logger.debug("Acquired workspace %s", self.path)
        return self.path

    def release(self) -> None:
        with self._lock:
            if self._released or not self._acquired:
                return
            self._released = True
        if not self.path.exists():
            return
        try:
            shutil.rmtree(self.path)
            logger.debug("Removed workspace %s", self.path)
        except OSError as e:
            logger.warning("Failed to remove workspace %s: %s", self.path, e)

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> BuildWorkspace:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False
