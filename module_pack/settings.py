"""Persisted user settings: technology templates for the generic rewriter."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from module_pack.errors import BuildValidationError
from module_pack.models import TechTemplate

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "MODULE_PACK_CONFIG_DIR"
_TEMPLATES_FILE = "templates.json"


def default_config_dir() -> Path:
    override = os.getenv(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".module-pack"


class TemplateStore:
    """JSON-file store of :class:`TechTemplate` keyed by lower-cased name."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.path = self.config_dir / _TEMPLATES_FILE

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable templates file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed templates file %s", self.path)
            return {}
        return data

    def _save(self, data: dict) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def list_templates(self) -> list[TechTemplate]:
        return [TechTemplate.from_dict(v) for _, v in sorted(self._load().items())]

    def get(self, name: str) -> TechTemplate | None:
        entry = self._load().get(name.strip().lower())
        return TechTemplate.from_dict(entry) if entry else None

    def save(self, template: TechTemplate) -> None:
        problems = []
        if not template.name.strip():
            problems.append("Template name must not be empty")
        if not template.modules_dir.strip():
            problems.append("Template modules_dir must not be empty")
        if problems:
            raise BuildValidationError(problems)

        # Fails here, not at build time, on a broken pattern
        from module_pack.rewriter import get_generic_rewriter
        get_generic_rewriter(template.entry_file, template.import_pattern)

        data = self._load()
        data[template.name.strip().lower()] = template.to_dict()
        self._save(data)
        logger.info("Saved template %s", template.name)

    def delete(self, name: str) -> bool:
        data = self._load()
        if data.pop(name.strip().lower(), None) is None:
            return False
        self._save(data)
        return True
