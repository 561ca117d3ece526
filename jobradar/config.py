"""Runtime settings read from environment variables.

Entry points call ``load_dotenv()`` first, so a local ``.env`` file works
the same way as exported variables.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"


class SourceTimeouts(BaseModel):
    """Per-adapter wall-clock budget in seconds."""

    adzuna: float = Field(default=60.0, gt=0)
    indeed: float = Field(default=90.0, gt=0)
    ats: float = Field(default=120.0, gt=0)
    serpapi: float = Field(default=60.0, gt=0)


class Settings(BaseModel):
    """Credentials and tunables for one pipeline process."""

    adzuna_app_id: str = ""
    adzuna_app_key: str = ""
    adzuna_country: str = "fr"
    apify_token: str = ""
    apify_ats_actor_id: str = ""
    serpapi_key: str = ""
    google_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL

    timeouts: SourceTimeouts = Field(default_factory=SourceTimeouts)
    rerank_timeout: float = Field(default=45.0, gt=0)
    roles_per_source: int = Field(default=3, ge=3, le=5)
    max_ranked: int = Field(default=75, ge=1)
    rerank_top_n: int = Field(default=10, ge=1)


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def load_settings() -> Settings:
    """Build :class:`Settings` from the process environment.

    Raises:
        pydantic.ValidationError: If a numeric override is malformed or out of range.
    """
    overrides: dict[str, object] = {}
    timeouts: dict[str, str] = {}
    for source in ("adzuna", "indeed", "ats", "serpapi"):
        if value := _env(f"JOBRADAR_{source.upper()}_TIMEOUT"):
            timeouts[source] = value
    if timeouts:
        overrides["timeouts"] = timeouts
    if value := _env("JOBRADAR_RERANK_TIMEOUT"):
        overrides["rerank_timeout"] = value
    if value := _env("JOBRADAR_ROLES_PER_SOURCE"):
        overrides["roles_per_source"] = value

    return Settings.model_validate(
        {
            "adzuna_app_id": _env("ADZUNA_APP_ID"),
            "adzuna_app_key": _env("ADZUNA_APP_KEY"),
            "adzuna_country": _env("ADZUNA_COUNTRY", "fr") or "fr",
            "apify_token": _env("APIFY_API_KEY"),
            "apify_ats_actor_id": _env("APIFY_ATS_ACTOR_ID"),
            "serpapi_key": _env("SERPAPI_KEY"),
            "google_api_key": _env("GOOGLE_API_KEY"),
            "gemini_model": _env("GEMINI_MODEL", DEFAULT_GEMINI_MODEL) or DEFAULT_GEMINI_MODEL,
            **overrides,
        }
    )
