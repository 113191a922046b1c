import io
import logging
from typing import Any
from urllib.parse import quote

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from .backend_connector import BackendConnectionError, backend_connector
from .config import get_settings
from .exporter import build_project_archive
from .page_generator import build_fallback_page, page_generator
from .rendering import TEMPLATES_DIR
from .schemas import ConnectBackendRequest, Project

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("appio")

app = FastAPI(title="Genius APPio", version="0.1.0")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request %s %s: %s", request.method, request.url.path, exc.errors())
    return _error("Invalid request body", status.HTTP_400_BAD_REQUEST)


@app.post("/api/generate-page")
async def generate_page(request: Request) -> JSONResponse:
    """
    Generate one Flutter page from a prompt.

    Always answers 200 with a page, degrading to the fallback page when the
    model is unavailable or misbehaves; only a missing prompt is a 400.
    """
    try:
        body: Any = await request.json()
    except ValueError as exc:
        logger.warning("Unreadable generate-page body, serving error page: %s", exc)
        return JSONResponse(content=build_fallback_page("Error Page").to_wire())

    if not isinstance(body, dict):
        body = {}
    prompt = body.get("prompt")
    project_name = body.get("projectName")

    if not isinstance(prompt, str) or not prompt:
        return _error("Prompt is required", status.HTTP_400_BAD_REQUEST)

    logger.info("Page generation requested project=%s", project_name)
    outcome = await page_generator.generate(
        prompt,
        project_name if isinstance(project_name, str) else None,
    )
    return JSONResponse(content=outcome.page.to_wire())


@app.post("/api/connect-backend")
async def connect_backend(payload: ConnectBackendRequest) -> JSONResponse:
    if not payload.project_id or payload.pages is None:
        return _error("Project ID and pages are required", status.HTTP_400_BAD_REQUEST)

    logger.info("Backend connection requested project=%s pages=%d", payload.project_id, len(payload.pages))
    try:
        result = await backend_connector.connect(payload.project_id, payload.pages)
    except BackendConnectionError:
        logger.exception("Error connecting backend project=%s", payload.project_id)
        return _error("Failed to connect backend", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(content=result.to_wire())


@app.get("/api/web-preview/{project_id}", response_class=HTMLResponse)
async def web_preview(request: Request, project_id: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "web_preview.html",
        {"project_id": project_id},
    )


@app.post("/api/export")
async def export_project(request: Request) -> StreamingResponse:
    """Package a posted project (workspace JSON shape) as a zip download."""
    try:
        project = Project.model_validate(await request.json())
    except ValueError as exc:
        logger.info("Rejected export body: %s", exc)
        return _error("A valid project is required", status.HTTP_400_BAD_REQUEST)

    filename, content = build_project_archive(project)
    return StreamingResponse(
        io.BytesIO(content),
        media_type="application/zip",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
        },
    )


@app.get("/health")
async def health() -> dict:
    """
    Basic health check. Reports whether pages can come from the model or only
    from the fallback generator; no call is made to the model.
    """
    outcome = {
        "status": "ok",
        "generator": "configured" if page_generator.settings.gemini_api_key else "fallback-only",
    }
    logger.info("Health check result: %s", outcome)
    return outcome
