"""Exporter layer: workspace, file copy, archive."""

from module_pack.exporter.archive import create_archive
from module_pack.exporter.skeleton import copy_dir_excluding, copy_modules, copy_root_files
from module_pack.exporter.workspace import BuildWorkspace, safe_label

__all__ = [
    "BuildWorkspace",
    "copy_dir_excluding",
    "copy_modules",
    "copy_root_files",
    "create_archive",
    "safe_label",
]
