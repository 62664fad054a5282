"""Project and module scanners."""

from module_pack.scanner.base import should_skip
from module_pack.scanner.file_index import hash_file, scan_project_files
from module_pack.scanner.modules import list_module_names, scan_modules_dir

__all__ = [
    "hash_file",
    "list_module_names",
    "scan_modules_dir",
    "scan_project_files",
    "should_skip",
]
