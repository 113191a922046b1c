import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from .config import Settings, get_settings
from .genai_client import ModelUnavailableError, TextModel, get_model
from .rendering import render_source
from .schemas import ConnectBackendResponse, PageBrief

logger = logging.getLogger(__name__)

CONNECTED_SERVICES: List[str] = ["Firebase Auth", "Cloud Firestore", "Firebase Storage"]


class BackendConnectionError(RuntimeError):
    """Analysis could not be produced. Unlike page generation there is no fallback."""


def describe_pages(pages: Sequence[PageBrief]) -> str:
    return "\n\n".join(
        f"Page: {page.name}\nPrompt: {page.prompt}\nWidgets: {', '.join(page.widgets)}"
        for page in pages
    )


class BackendConnector:
    """
    Asks the model which Firebase integration a set of pages implies.

    Nothing is provisioned or verified: the returned service list is fixed and
    the delay only imitates provisioning latency.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        model_factory: Optional[Callable[[Settings], TextModel]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._model_factory = model_factory or get_model

    async def connect(self, project_id: str, pages: Sequence[PageBrief]) -> ConnectBackendResponse:
        if not self.settings.gemini_api_key:
            raise BackendConnectionError("Gemini API key not available")

        try:
            model = self._model_factory(self.settings)
            prompt = render_source(
                "connect_backend_prompt.txt.j2",
                pages_description=describe_pages(pages),
            )
            analysis = await model.generate(prompt)
        except ModelUnavailableError as exc:
            raise BackendConnectionError(str(exc)) from exc
        except Exception as exc:
            raise BackendConnectionError(f"analysis request failed: {exc}") from exc

        if self.settings.connect_delay_seconds:
            await asyncio.sleep(self.settings.connect_delay_seconds)

        logger.info(
            "Backend connected project=%s pages=%d analysis_chars=%d",
            project_id,
            len(pages),
            len(analysis),
        )
        return ConnectBackendResponse(
            success=True,
            message="Backend connected successfully",
            services=list(CONNECTED_SERVICES),
            analysis=analysis,
        )


backend_connector = BackendConnector()
