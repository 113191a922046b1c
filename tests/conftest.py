import asyncio
from pathlib import Path
from typing import List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from appio import main as main_module
from appio.api_client import AppioClient
from appio.backend_connector import BackendConnector
from appio.config import Settings
from appio.page_generator import PageGenerator
from appio.workspace import Workspace
from appio.workspace_store import WorkspaceStore


class FakeModel:
    """Stands in for the Gemini model: canned reply or raised error, records prompts."""

    name = "fake-model"

    def __init__(self, reply: str = "", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def make_settings(tmp_path: Optional[Path] = None, **overrides) -> Settings:
    values = {
        "gemini_api_key": None,
        "connect_delay_seconds": 0,
    }
    if tmp_path is not None:
        values["workspace_path"] = tmp_path / "projects.json"
    values.update(overrides)
    return Settings(**values)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def no_real_credentials(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("APPIO_GEMINI_API_KEY", raising=False)


@pytest.fixture
def install_services(monkeypatch):
    """Swap the app's generator/connector for ones built on the given settings and model."""

    def _install(settings: Settings, model: Optional[FakeModel] = None):
        factory = (lambda _settings: model) if model is not None else None
        monkeypatch.setattr(main_module, "page_generator", PageGenerator(settings, model_factory=factory))
        monkeypatch.setattr(main_module, "backend_connector", BackendConnector(settings, model_factory=factory))

    return _install


@pytest.fixture
def api(install_services):
    install_services(make_settings())
    return TestClient(main_module.app)


@pytest.fixture
def workspace_factory(tmp_path):
    """Workspace wired to the in-process FastAPI app through httpx's ASGI transport."""

    def _make(path: Optional[Path] = None) -> Workspace:
        client = AppioClient(
            "http://testserver",
            transport=httpx.ASGITransport(app=main_module.app),
        )
        return Workspace(WorkspaceStore(path or tmp_path / "projects.json"), client)

    return _make
