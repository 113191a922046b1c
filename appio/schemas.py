from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id(created: Optional[datetime] = None) -> str:
    """
    Opaque identifier derived from the creation instant.

    Millisecond timestamp plus a short random suffix so two objects created in
    the same millisecond still get distinct ids.
    """
    created = created or datetime.now(timezone.utc)
    return f"{int(created.timestamp() * 1000)}{uuid4().hex[:6]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Wire and storage shapes use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Page generation
# ---------------------------------------------------------------------------


class GeneratedPage(CamelModel):
    """Structured output of one page generation, model-backed or fallback."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
    )

    page_name: str = Field(..., min_length=1, description="Class-safe page name")
    dart_code: str = Field(..., min_length=1, description="Complete Flutter page source")
    ui_description: str = Field(default="", description="Description of the UI and behaviour")
    widgets: List[str] = Field(default_factory=list, description="Flutter widgets used")
    models: List[str] = Field(default_factory=list, description="Data models referenced")


class GeneratePageRequest(CamelModel):
    prompt: str
    project_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Backend connector
# ---------------------------------------------------------------------------


class PageBrief(CamelModel):
    """The slice of a page the backend connector looks at."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: str = ""
    prompt: str = ""
    widgets: List[str] = Field(default_factory=list)


class ConnectBackendRequest(CamelModel):
    project_id: Optional[str] = None
    pages: Optional[List[PageBrief]] = None


class ConnectBackendResponse(CamelModel):
    success: bool = True
    message: str = "Backend connected successfully"
    services: List[str] = Field(default_factory=list)
    analysis: str = ""


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Workspace state
# ---------------------------------------------------------------------------


class Page(CamelModel):
    """A generated screen stored in a project."""

    id: str = Field(default_factory=new_id)
    name: str
    prompt: str
    dart_code: str
    ui_description: str = ""
    widgets: List[str] = Field(default_factory=list)
    models: List[str] = Field(default_factory=list)
    preview: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Project(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    pages: List[Page] = Field(default_factory=list)
    backend_connected: bool = False


def build_page(result: GeneratedPage, *, prompt: str, preview: Optional[str] = None) -> Page:
    created = _utcnow()
    return Page(
        id=new_id(created),
        name=result.page_name,
        prompt=prompt,
        dart_code=result.dart_code,
        ui_description=result.ui_description,
        widgets=list(result.widgets),
        models=list(result.models),
        preview=preview,
        created_at=created,
    )


def build_project(name: str, description: str = "") -> Project:
    created = _utcnow()
    return Project(
        id=new_id(created),
        name=name,
        description=description,
        created_at=created,
    )
