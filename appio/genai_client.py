import logging
from typing import Optional, Protocol

from google import genai

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class ModelUnavailableError(RuntimeError):
    """Raised when no usable model handle can be obtained."""


class TextModel(Protocol):
    name: str

    async def generate(self, prompt: str) -> str:
        ...


class GeminiModel:
    """
    Gemini Developer API via Google Gen AI SDK (google-genai).

    One instance wraps one model name; `generate` issues a single request and
    returns the response text. No retries.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash") -> None:
        if not api_key:
            raise ModelUnavailableError("Gemini API key not configured")

        # This client uses the Gemini Developer API when given an API key.
        self.client = genai.Client(api_key=api_key)
        self.name = model

    async def generate(self, prompt: str) -> str:
        logger.debug("Gemini request model=%s prompt_chars=%d", self.name, len(prompt))
        resp = await self.client.aio.models.generate_content(
            model=self.name,
            contents=prompt,
        )
        return resp.text or ""


def get_model(settings: Optional[Settings] = None) -> TextModel:
    """Default model factory used by the generator and the connector."""
    settings = settings or get_settings()
    if not settings.gemini_api_key:
        raise ModelUnavailableError("Gemini API key not configured")
    return GeminiModel(api_key=settings.gemini_api_key, model=settings.gemini_model)
