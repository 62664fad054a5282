"""Exception types raised by the build pipeline."""

from __future__ import annotations


class ModulePackError(Exception):
    """Base class for every error module-pack raises on purpose."""


class BuildValidationError(ModulePackError, ValueError):
    """Bad caller input, detected before anything touches the filesystem."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class ScanError(ModulePackError):
    """A project or modules directory could not be read."""


class BuildError(ModulePackError):
    """A build stage failed after the workspace was created."""


class BuildCancelledError(BuildError):
    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Build cancelled before stage: {stage}")


class MissingModulesError(BuildError):
    """The rewritten entry file still references modules that were not shipped."""

    def __init__(self, modules_dir: str, missing: list[str]):
        self.missing = list(missing)
        paths = ", ".join(f"{modules_dir}/{name}" for name in self.missing)
        super().__init__(
            f"Entry file references modules missing from the build: {paths}"
        )


class UnsupportedConfigurationError(ModulePackError):
    """No strategy (built-in or template) exists for the requested technology."""
