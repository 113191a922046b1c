from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def dart_string(value: Any) -> str:
    """Escape text for use inside a single-quoted Dart string literal."""
    text = str(value)
    return (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("$", "\\$")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


# Generated sources and prompts are plain text, so no autoescaping here;
# the HTML preview goes through FastAPI's Jinja2Templates instead.
source_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)
source_env.filters["dart_string"] = dart_string


def render_source(template_name: str, **context: Any) -> str:
    return source_env.get_template(template_name).render(**context)
