"""Shared directory-skip logic for the project walkers."""

from __future__ import annotations

import fnmatch
from pathlib import PurePosixPath

from module_pack.models import NOISE_DIRS


def matches_any(name: str, patterns: list[str]) -> bool:
    for pattern in patterns:
        if fnmatch.fnmatch(name, pattern):
            return True
    return False


def should_skip(relative_path: str, skip_dirs: list[str] | None = None) -> bool:
    """True if any directory segment of a forward-slash relative file path is noise."""
    patterns = NOISE_DIRS if skip_dirs is None else skip_dirs
    for part in PurePosixPath(relative_path).parts[:-1]:
        if matches_any(part, patterns):
            return True
    return False
