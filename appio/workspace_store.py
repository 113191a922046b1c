from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from pydantic import ValidationError

from .schemas import Project

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class WorkspaceStoreError(RuntimeError):
    pass


class WorkspaceStore:
    """
    Durable home of the full project collection: one JSON file, rewritten
    whole on every save. Single writer assumed (last write wins).
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> List[Project]:
        if not self.path.exists():
            return []

        # Unreadable data raises; never fall back to an empty collection.
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            raw_projects = data.get("projects", []) if isinstance(data, dict) else data
            projects = [Project.model_validate(raw) for raw in raw_projects]
        except (json.JSONDecodeError, ValidationError, TypeError) as exc:
            raise WorkspaceStoreError(f"Could not read workspace file {self.path}: {exc}") from exc
        logger.info("Loaded %d projects from %s", len(projects), self.path)
        return projects

    def save(self, projects: List[Project]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": STORE_VERSION,
            "projects": [project.to_wire() for project in projects],
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("Saved %d projects to %s", len(projects), self.path)
