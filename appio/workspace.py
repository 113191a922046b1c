"""
Client-side project workspace.

Holds the authoritative list of projects, writes the whole collection to the
store after every mutation and talks to the service only through AppioClient.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple

from .api_client import AppioClient
from .config import get_settings
from .exporter import build_project_archive, project_file_paths
from .schemas import ConnectBackendResponse, Page, Project, build_page, build_project
from .workspace_store import WorkspaceStore

logger = logging.getLogger(__name__)


class WorkspaceError(ValueError):
    """Rejected user input or a reference to an unknown project/page."""


class OperationInProgressError(RuntimeError):
    """The same operation is already running (double submission)."""


class Workspace:
    def __init__(self, store: WorkspaceStore, client: AppioClient) -> None:
        self.store = store
        self.client = client
        self._projects: List[Project] = store.load()
        self._busy: Set[str] = set()

    # -- state ------------------------------------------------------------

    def _save(self) -> None:
        self.store.save(self._projects)

    def list_projects(self) -> List[Project]:
        return list(self._projects)

    def get_project(self, project_id: str) -> Project:
        for project in self._projects:
            if project.id == project_id:
                return project
        raise WorkspaceError(f"Unknown project: {project_id}")

    def get_page(self, project_id: str, page_id: str) -> Page:
        for page in self.get_project(project_id).pages:
            if page.id == page_id:
                return page
        raise WorkspaceError(f"Unknown page: {page_id}")

    def is_busy(self, operation: str) -> bool:
        return operation in self._busy

    @contextmanager
    def _busy_guard(self, operation: str) -> Iterator[None]:
        if operation in self._busy:
            raise OperationInProgressError(f"{operation} is already in progress")
        self._busy.add(operation)
        try:
            yield
        finally:
            self._busy.discard(operation)

    # -- operations -------------------------------------------------------

    def create_project(self, name: str, description: str = "") -> Project:
        if not name or not name.strip():
            raise WorkspaceError("Project name is required")

        with self._busy_guard("create_project"):
            project = build_project(name, description)
            self._projects.append(project)
            self._save()
        logger.info("Project created id=%s name=%s", project.id, project.name)
        return project

    async def generate_page(self, project_id: str, prompt: str) -> Page:
        if not prompt or not prompt.strip():
            raise WorkspaceError("Page prompt is required")
        project = self.get_project(project_id)

        with self._busy_guard("generate_page"):
            result = await self.client.generate_page(prompt, project.name)
            page = build_page(result, prompt=prompt)
            # Re-resolve: the collection may have changed while the call was pending.
            project = self.get_project(project_id)
            project.pages.append(page)
            self._save()

        logger.info("Page generated project=%s page=%s name=%s", project.id, page.id, page.name)
        return page

    async def regenerate_page(self, project_id: str, page_id: str) -> Page:
        """Generate a new page from an existing page's prompt; the old page stays."""
        original = self.get_page(project_id, page_id)
        return await self.generate_page(project_id, original.prompt)

    def delete_page(self, project_id: str, page_id: str) -> None:
        project = self.get_project(project_id)
        remaining = [page for page in project.pages if page.id != page_id]
        if len(remaining) == len(project.pages):
            raise WorkspaceError(f"Unknown page: {page_id}")
        project.pages = remaining
        self._save()
        logger.info("Page deleted project=%s page=%s", project_id, page_id)

    async def connect_backend(self, project_id: str) -> ConnectBackendResponse:
        project = self.get_project(project_id)
        if not project.pages:
            raise WorkspaceError("Generate at least one page before connecting a backend")

        with self._busy_guard("connect_backend"):
            response = await self.client.connect_backend(project.id, project.pages)
            project = self.get_project(project_id)
            # Only ever set, never cleared.
            project.backend_connected = True
            self._save()

        logger.info("Backend connected project=%s services=%s", project_id, response.services)
        return response

    def export_project(self, project_id: str) -> Tuple[str, bytes]:
        return build_project_archive(self.get_project(project_id))

    def project_files(self, project_id: str) -> List[str]:
        return project_file_paths(self.get_project(project_id))

    def preview_url(self, project_id: str) -> str:
        return self.client.preview_url(self.get_project(project_id).id)


def open_workspace(
    path: Optional[str] = None,
    *,
    base_url: Optional[str] = None,
) -> Workspace:
    settings = get_settings()
    store = WorkspaceStore(Path(path) if path else settings.workspace_path)
    return Workspace(store, AppioClient(base_url))
