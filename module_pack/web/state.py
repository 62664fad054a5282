"""In-memory state for the HTTP API: no database required."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from module_pack.models import BuildResult


@dataclass
class BuildSession:
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    project_dir: str = ""
    label: str = ""
    tech_stack: str = ""
    status: str = "running"  # running -> done | failed
    result: BuildResult | None = None
    error: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        data = {
            "build_id": self.id,
            "project_dir": self.project_dir,
            "label": self.label,
            "tech_stack": self.tech_stack,
            "status": self.status,
            "error": self.error,
            "timestamp": self.timestamp,
        }
        if self.result is not None:
            data.update(self.result.to_dict())
        return data


class AppState:
    """Singleton in-memory state shared by all API routes."""

    def __init__(self):
        self.builds: dict[str, BuildSession] = {}
        # one build per project directory at a time
        self._project_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def add_build(self, session: BuildSession) -> None:
        self.builds[session.id] = session

    def get_build(self, build_id: str) -> BuildSession | None:
        return self.builds.get(build_id)

    def list_builds(self) -> list[BuildSession]:
        return sorted(self.builds.values(), key=lambda s: s.timestamp, reverse=True)

    def project_lock(self, project_dir: str) -> threading.Lock:
        with self._guard:
            return self._project_locks.setdefault(project_dir, threading.Lock())

    def clear(self) -> None:
        self.builds.clear()


state = AppState()
