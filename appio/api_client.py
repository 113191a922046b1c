import logging
from typing import Any, Dict, Optional, Sequence

import httpx
from pydantic import ValidationError

from .config import get_settings
from .schemas import ConnectBackendResponse, GeneratedPage, GeneratePageRequest, Page

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """A call to the APPio service failed or returned a non-success status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AppioClient:
    """
    Minimal HTTP client the workspace uses to reach the generator endpoints.

    This client:
      - posts JSON bodies to /api/generate-page and /api/connect-backend
      - turns non-2xx responses into ApiError carrying the service's `error` text
      - performs no retries
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("POST %s%s", self.base_url, path)
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as exc:
            raise ApiError(f"Request to {path} failed: {exc}") from exc

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("error") if isinstance(body, dict) else None
            raise ApiError(
                detail or f"{path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{path} returned a body that is not JSON", status_code=response.status_code) from exc

    async def generate_page(self, prompt: str, project_name: str) -> GeneratedPage:
        body = GeneratePageRequest(prompt=prompt, project_name=project_name).to_wire()
        data = await self._post_json("/api/generate-page", body)
        try:
            return GeneratedPage.model_validate(data)
        except ValidationError as exc:
            raise ApiError(f"Unexpected page from /api/generate-page: {exc}") from exc

    async def connect_backend(self, project_id: str, pages: Sequence[Page]) -> ConnectBackendResponse:
        body: Dict[str, Any] = {
            "projectId": project_id,
            "pages": [page.to_wire() for page in pages],
        }
        data = await self._post_json("/api/connect-backend", body)
        try:
            return ConnectBackendResponse.model_validate(data)
        except ValidationError as exc:
            raise ApiError(f"Unexpected response from /api/connect-backend: {exc}") from exc

    def preview_url(self, project_id: str) -> str:
        return f"{self.base_url}/api/web-preview/{project_id}"
