"""
Page generation: natural-language prompt in, structured Flutter page out.

Every upstream problem (no key, no model handle, failed call, unparseable or
incomplete output) degrades to a deterministic fallback page. Callers always
get a valid `GeneratedPage`; `GenerationOutcome.source` tells them which path
produced it.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from pydantic import ValidationError

from .config import Settings, get_settings
from .genai_client import TextModel, get_model
from .rendering import render_source
from .schemas import GeneratedPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_NAME = "GeneratedPage"
FALLBACK_SUFFIX = "Page"
FALLBACK_WIDGETS = ["Scaffold", "AppBar", "Center", "Padding", "Column", "Icon", "Text", "SizedBox"]

FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
BRACED_SPAN_RE = re.compile(r"\{[\s\S]*\}")
ALPHA_WORD_RE = re.compile(r"^[A-Za-z]+$")
NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


class ModelOutputError(ValueError):
    """Model text could not be turned into a valid page."""


@dataclass
class GenerationOutcome:
    page: GeneratedPage
    source: Literal["model", "fallback"]
    reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


def sanitize_page_name(name: str) -> str:
    cleaned = NON_ALNUM_RE.sub("", name)
    return cleaned or DEFAULT_PAGE_NAME


def fallback_page_name(prompt: str) -> str:
    words = [word for word in prompt.split() if ALPHA_WORD_RE.match(word)][:2]
    if not words:
        return DEFAULT_PAGE_NAME
    return "".join(words) + FALLBACK_SUFFIX


def build_fallback_page(prompt: str) -> GeneratedPage:
    page_name = fallback_page_name(prompt)
    return GeneratedPage(
        page_name=page_name,
        dart_code=render_source("fallback_page.dart.j2", page_name=page_name, prompt=prompt),
        ui_description=(
            f"A {page_name.lower()} with Flutter logo, title, and description "
            f"based on the prompt: {prompt}"
        ),
        widgets=list(FALLBACK_WIDGETS),
        models=[],
    )


def build_generation_prompt(prompt: str, project_name: Optional[str]) -> str:
    return render_source(
        "generate_page_prompt.txt.j2",
        prompt=prompt,
        project_name=project_name or "",
    )


def extract_json_text(text: str) -> str:
    """Fenced ```json block first, then the widest {...} span, else the raw text."""
    fenced = FENCED_JSON_RE.search(text)
    if fenced:
        return fenced.group(1)
    braced = BRACED_SPAN_RE.search(text)
    if braced:
        return braced.group(0)
    return text


def parse_model_output(text: str) -> GeneratedPage:
    try:
        data = json.loads(extract_json_text(text))
    except json.JSONDecodeError as exc:
        raise ModelOutputError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ModelOutputError("expected a JSON object")
    if not data.get("pageName") or not data.get("dartCode"):
        raise ModelOutputError("missing required fields")

    try:
        page = GeneratedPage.model_validate(data)
    except ValidationError as exc:
        raise ModelOutputError(f"schema mismatch: {exc.error_count()} error(s)") from exc

    return page.model_copy(update={"page_name": sanitize_page_name(page.page_name)})


class PageGenerator:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        model_factory: Optional[Callable[[Settings], TextModel]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._model_factory = model_factory or get_model

    def _fallback(self, prompt: str, reason: str) -> GenerationOutcome:
        logger.warning("Using fallback page generation: %s", reason)
        return GenerationOutcome(page=build_fallback_page(prompt), source="fallback", reason=reason)

    async def generate(self, prompt: str, project_name: Optional[str] = None) -> GenerationOutcome:
        try:
            return await self._generate(prompt, project_name)
        except Exception as exc:
            logger.exception("Unexpected error generating page")
            return self._fallback(prompt, f"unexpected error: {exc}")

    async def _generate(self, prompt: str, project_name: Optional[str]) -> GenerationOutcome:
        if not self.settings.gemini_api_key:
            return self._fallback(prompt, "Gemini API key not available")

        try:
            model = self._model_factory(self.settings)
        except Exception as exc:
            return self._fallback(prompt, f"failed to initialize model: {exc}")

        try:
            text = await model.generate(build_generation_prompt(prompt, project_name))
        except Exception as exc:
            return self._fallback(prompt, f"model call failed: {exc}")

        try:
            page = parse_model_output(text)
        except ModelOutputError as exc:
            return self._fallback(prompt, f"could not parse model output: {exc}")

        logger.info(
            "Generated page name=%s widgets=%d project=%s",
            page.page_name,
            len(page.widgets),
            project_name,
        )
        return GenerationOutcome(page=page, source="model")


page_generator = PageGenerator()
