import asyncio
import io
import zipfile

import pytest

from appio.api_client import ApiError
from appio.schemas import ConnectBackendResponse, GeneratedPage, Page
from appio.workspace import OperationInProgressError, Workspace, WorkspaceError
from appio.workspace_store import WorkspaceStore
from conftest import FakeModel, make_settings, run


@pytest.fixture
def workspace(install_services, workspace_factory):
    install_services(make_settings())
    return workspace_factory()


def test_create_project_requires_name(workspace):
    with pytest.raises(WorkspaceError):
        workspace.create_project("   ")
    assert workspace.list_projects() == []


def test_create_project_persists(workspace, workspace_factory):
    project = workspace.create_project("Shop", "Storefront")

    reloaded = workspace_factory()
    assert reloaded.get_project(project.id) == project
    assert project.backend_connected is False
    assert project.pages == []


def test_generate_page_appends_and_persists(workspace, workspace_factory):
    project = workspace.create_project("Shop")

    page = run(workspace.generate_page(project.id, "Login page with email field"))

    assert page.name == "LoginpagePage"
    assert page.prompt == "Login page with email field"
    assert page.widgets
    assert workspace.get_project(project.id).pages == [page]
    assert workspace_factory().get_project(project.id).pages == [page]


def test_generate_page_rejects_blank_prompt(workspace):
    project = workspace.create_project("Shop")
    with pytest.raises(WorkspaceError):
        run(workspace.generate_page(project.id, "  "))


def test_unknown_project_is_rejected(workspace):
    with pytest.raises(WorkspaceError):
        run(workspace.generate_page("missing", "Login page"))


def test_regenerate_adds_new_page_from_same_prompt(workspace):
    project = workspace.create_project("Shop")
    first = run(workspace.generate_page(project.id, "Profile page with avatar"))

    second = run(workspace.regenerate_page(project.id, first.id))

    pages = workspace.get_project(project.id).pages
    assert [p.id for p in pages] == [first.id, second.id]
    assert second.id != first.id
    assert second.prompt == first.prompt


def test_delete_page(workspace, workspace_factory):
    project = workspace.create_project("Shop")
    keep = run(workspace.generate_page(project.id, "Home page"))
    drop = run(workspace.generate_page(project.id, "Settings page"))

    workspace.delete_page(project.id, drop.id)

    assert workspace.get_project(project.id).pages == [keep]
    assert workspace_factory().get_project(project.id).pages == [keep]
    with pytest.raises(WorkspaceError):
        workspace.delete_page(project.id, drop.id)


def test_connect_backend_needs_a_page(workspace):
    project = workspace.create_project("Shop")
    with pytest.raises(WorkspaceError):
        run(workspace.connect_backend(project.id))


def test_connect_backend_sets_flag_once_and_keeps_it(install_services, workspace_factory):
    install_services(make_settings(gemini_api_key="test-key"), FakeModel("Needs Firestore."))
    workspace = workspace_factory()
    project = workspace.create_project("Shop")
    run(workspace.generate_page(project.id, "Login page"))

    first = run(workspace.connect_backend(project.id))
    second = run(workspace.connect_backend(project.id))

    assert first.services == ["Firebase Auth", "Cloud Firestore", "Firebase Storage"]
    assert second.success
    assert workspace.get_project(project.id).backend_connected is True
    assert workspace_factory().get_project(project.id).backend_connected is True


def test_failed_connect_leaves_flag_unset(workspace):
    project = workspace.create_project("Shop")
    run(workspace.generate_page(project.id, "Login page"))

    with pytest.raises(ApiError) as excinfo:
        run(workspace.connect_backend(project.id))

    assert excinfo.value.status_code == 500
    assert str(excinfo.value) == "Failed to connect backend"
    assert workspace.get_project(project.id).backend_connected is False


def test_export_project(workspace):
    project = workspace.create_project("Weather Buddy")
    run(workspace.generate_page(project.id, "Forecast page"))
    run(workspace.generate_page(project.id, "Radar map"))

    filename, content = workspace.export_project(project.id)

    assert filename == "weather_buddy.zip"
    with zipfile.ZipFile(io.BytesIO(content)) as zf:
        assert len(zf.namelist()) == 4
    assert workspace.project_files(project.id) == [
        "lib/main.dart",
        "lib/pages/forecastpagepage_page.dart",
        "lib/pages/radarmappage_page.dart",
    ]


def test_preview_url(workspace):
    project = workspace.create_project("Shop")
    assert workspace.preview_url(project.id) == f"http://testserver/api/web-preview/{project.id}"


class GatedClient:
    """Client whose calls block until released, to observe in-flight operations."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()

    async def generate_page(self, prompt, project_name):
        await self.gate.wait()
        return GeneratedPage(page_name="GatedPage", dart_code="class GatedPage {}")

    async def connect_backend(self, project_id, pages):
        await self.gate.wait()
        return ConnectBackendResponse(services=["Firebase Auth"], analysis="ok")

    def preview_url(self, project_id):
        return project_id


def test_same_operation_cannot_run_twice_concurrently(tmp_path):
    workspace = Workspace(WorkspaceStore(tmp_path / "projects.json"), GatedClient())
    project = workspace.create_project("Shop")

    async def scenario():
        first = asyncio.create_task(workspace.generate_page(project.id, "Slow page"))
        await asyncio.sleep(0)
        assert workspace.is_busy("generate_page")

        with pytest.raises(OperationInProgressError):
            await workspace.generate_page(project.id, "Another page")

        workspace.client.gate.set()
        await first

    run(scenario())

    assert not workspace.is_busy("generate_page")
    assert len(workspace.get_project(project.id).pages) == 1


def test_different_operations_may_overlap(tmp_path):
    client = GatedClient()
    workspace = Workspace(WorkspaceStore(tmp_path / "projects.json"), client)
    project = workspace.create_project("Shop")
    project.pages.append(Page(name="Seed", prompt="seed", dart_code="//"))

    async def scenario():
        connecting = asyncio.create_task(workspace.connect_backend(project.id))
        generating = asyncio.create_task(workspace.generate_page(project.id, "Second page"))
        await asyncio.sleep(0)
        assert workspace.is_busy("connect_backend")
        assert workspace.is_busy("generate_page")
        client.gate.set()
        await asyncio.gather(connecting, generating)

    run(scenario())

    stored = workspace.get_project(project.id)
    assert stored.backend_connected is True
    assert len(stored.pages) == 2
