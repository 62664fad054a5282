"""Data models for the module-pack build pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


# Directory names never walked, copied or archived. fnmatch patterns, matched
# against directories only.
NOISE_DIRS: list[str] = [
    ".git", "node_modules", "__pycache__", ".venv", "venv",
    ".idea", ".vscode", "target", "dist", "build", ".next", ".nuxt",
    "dist_*",
]

# File names never indexed or copied: OS litter and earlier build archives.
NOISE_FILES: list[str] = [".DS_Store", "dist_*.zip", "dist_*.zip.part"]


@dataclass(frozen=True)
class FileEntry:
    """One project file, as seen by the indexer."""
    relative_path: str  # forward slashes, relative to the project root
    file_hash: str  # sha256 hex digest


@dataclass
class ModuleInfo:
    name: str
    path: Path


@dataclass
class TechTemplate:
    """User-configured technology: a modules dir plus a line pattern for the entry file."""
    name: str
    modules_dir: str
    entry_file: str = ""
    import_pattern: str = ""
    exclude_dirs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "modules_dir": self.modules_dir,
            "entry_file": self.entry_file,
            "import_pattern": self.import_pattern,
            "exclude_dirs": list(self.exclude_dirs),
        }

    @classmethod
    def from_dict(cls, data: dict) -> TechTemplate:
        return cls(
            name=data["name"],
            modules_dir=data.get("modules_dir", ""),
            entry_file=data.get("entry_file", ""),
            import_pattern=data.get("import_pattern", ""),
            exclude_dirs=list(data.get("exclude_dirs", [])),
        )


@dataclass
class BuildRequest:
    """Configuration for one build run."""
    project_dir: Path
    label: str
    selected_modules: list[str] = field(default_factory=list)
    tech_stack: str = "fastapi"
    modules_dir: str | None = None  # None -> the technology's default
    output_dir: Path | None = None  # None -> the project root
    skip_dirs: list[str] = field(default_factory=lambda: list(NOISE_DIRS))


@dataclass
class BuildResult:
    """What a successful build actually shipped."""
    archive_path: Path
    label: str
    module_count: int = 0
    modules: list[str] = field(default_factory=list)  # selected + auto-added, minus missing
    selected: list[str] = field(default_factory=list)
    auto_added: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    unreadable_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "archive_path": str(self.archive_path),
            "label": self.label,
            "module_count": self.module_count,
            "modules": list(self.modules),
            "selected": list(self.selected),
            "auto_added": list(self.auto_added),
            "missing": list(self.missing),
            "unreadable_files": list(self.unreadable_files),
        }
