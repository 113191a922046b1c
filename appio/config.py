from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Central configuration for the service and the local workspace.

    Values are read from environment variables prefixed with APPIO_, e.g.:
      APPIO_GEMINI_MODEL, APPIO_CONNECT_DELAY_SECONDS, APPIO_WORKSPACE_PATH

    The Gemini key is also picked up from a plain GEMINI_API_KEY.
    """

    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("APPIO_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="Gemini Developer API key; without it every page is a fallback page",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model name")

    # Simulated provisioning latency for the backend connector
    connect_delay_seconds: float = Field(default=2.0, ge=0)

    log_level: str = Field(default="INFO")

    # Workspace side (CLI / API client)
    api_base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL of the running APPio service",
    )
    http_timeout_seconds: float | None = Field(
        default=None,
        description="Timeout for workspace HTTP calls; None waits indefinitely",
    )
    workspace_path: Path = Field(
        default=Path(".appio") / "projects.json",
        description="JSON file holding the full project collection",
    )

    class Config:
        env_prefix = "APPIO_"
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
