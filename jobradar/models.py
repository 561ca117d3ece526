"""Pydantic models for JobRadar data structures."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .normalize import (
    AGGREGATOR_IDENTITIES,
    DIRECT_LISTING_LABEL,
    normalize_contract_type,
    normalize_remote_mode,
)

ContractType = Literal["permanent", "fixed-term", "internship", "freelance"]
RemoteMode = Literal["on-site", "hybrid", "full-remote"]

OLDER_THAN_30 = "older_than_30"
OLDER_THAN_90 = "older_than_90"

# "Older than" sentinel -> (days to fetch from the source, minimum age to keep)
_OLDER_THAN_WINDOWS: dict[str, tuple[int, int]] = {
    OLDER_THAN_30: (120, 30),
    OLDER_THAN_90: (180, 90),
}


class CandidateProfile(BaseModel):
    """Structured search intent of a job seeker. Immutable for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    target_roles: list[str] = Field(description="Target job titles in priority order, first = primary")
    skills: list[str] = Field(default_factory=list, description="Hard skills, tools and frameworks")
    location: str = Field(default="", description="Requested location, e.g. 'Paris'")
    seniority: str = Field(default="", description="Seniority label, e.g. 'Senior'")
    contract_types: list[ContractType] = Field(default_factory=list, description="Requested contract types")
    remote_modes: list[RemoteMode] = Field(default_factory=list, description="Requested work modes")
    recency_days: int | Literal["older_than_30", "older_than_90"] | None = Field(
        default=None, description="Only postings from the last N days, or one of the 'older than' sentinels"
    )
    exclude_agencies: bool = Field(default=True, description="Drop postings from recruitment agencies")

    @field_validator("target_roles")
    @classmethod
    def roles_not_empty(cls, v: list[str]) -> list[str]:
        roles = [role.strip() for role in v if role and role.strip()]
        if not roles:
            raise ValueError("target_roles must contain at least one non-empty role")
        return roles

    @field_validator("skills")
    @classmethod
    def strip_skills(cls, v: list[str]) -> list[str]:
        return [skill.strip() for skill in v if skill and skill.strip()]

    @field_validator("contract_types", mode="before")
    @classmethod
    def canonical_contract_types(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        # Unknown labels are passed through so validation reports them.
        return list(dict.fromkeys(normalize_contract_type(item) or item for item in v))

    @field_validator("remote_modes", mode="before")
    @classmethod
    def canonical_remote_modes(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        return list(dict.fromkeys(normalize_remote_mode(item) or item for item in v))

    @field_validator("recency_days")
    @classmethod
    def positive_recency(cls, v: int | str | None) -> int | str | None:
        if isinstance(v, int) and v <= 0:
            raise ValueError("recency_days must be a positive number of days")
        return v


class RecencyWindow(BaseModel):
    """Posting-age range requested from every source.

    ``fetch_days`` is what sources are asked for ("posted within N days");
    ``min_age_days`` is the lower bound, which sources cannot filter by.
    Both bounds are also enforced locally, since some sources only offer
    coarser date filters than the one requested.
    """

    model_config = ConfigDict(frozen=True)

    fetch_days: int | None = None
    min_age_days: int = 0

    @classmethod
    def from_profile(cls, profile: CandidateProfile) -> RecencyWindow:
        value = profile.recency_days
        if value is None:
            return cls()
        if isinstance(value, str):
            fetch_days, min_age_days = _OLDER_THAN_WINDOWS[value]
            return cls(fetch_days=fetch_days, min_age_days=min_age_days)
        return cls(fetch_days=value)

    def keeps(self, posted: date | None, today: date | None = None) -> bool:
        """Return False only for postings whose known date falls outside the window."""
        if posted is None:
            return True
        today = today or date.today()
        if self.fetch_days is not None and posted < today - timedelta(days=self.fetch_days):
            return False
        return self.min_age_days <= 0 or posted <= today - timedelta(days=self.min_age_days)

    def discard_outside(self, jobs: list[JobRecord], today: date | None = None) -> list[JobRecord]:
        if self.fetch_days is None and self.min_age_days <= 0:
            return jobs
        return [job for job in jobs if self.keeps(job.posted_date, today)]


class MatchingDetails(BaseModel):
    """Facets used by the compliance filter and the scorer.

    ``contract_type`` and ``remote_type`` keep the source's raw vocabulary.
    ``None`` means the source did not expose the facet, which is not the
    same as a non-matching value.
    """

    contract_type: str | None = None
    remote_type: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    extras: dict[str, Any] = Field(default_factory=dict)


class JobRecord(BaseModel):
    """One job posting in the common schema every source adapter produces."""

    source_engine: str = Field(description="Adapter that fetched the record, e.g. 'adzuna' (internal only)")
    source: str = Field(description="User-facing original job board label")
    external_id: str = Field(description="Unique id scoped to the adapter")
    title: str
    company_name: str = "Unknown"
    location: str = ""
    description: str = ""
    posted_date: date | None = None
    job_url: str = ""
    matching_details: MatchingDetails = Field(default_factory=MatchingDetails)
    contract_label: str | None = Field(default=None, description="Contract type as displayed to the user")
    heuristic_score: int | None = Field(default=None, ge=0, le=100)
    rank: int | None = Field(default=None, ge=1)
    semantic_score: int | None = Field(default=None, ge=0, le=100)
    justification: str | None = None

    @model_validator(mode="after")
    def hide_aggregator_identity(self) -> JobRecord:
        if not self.source.strip() or self.source.strip().lower() in AGGREGATOR_IDENTITIES:
            self.source = DIRECT_LISTING_LABEL
        return self

    @property
    def display_score(self) -> int:
        """Semantic score when available, heuristic score otherwise."""
        if self.semantic_score is not None:
            return self.semantic_score
        return self.heuristic_score or 0


class SemanticScore(BaseModel):
    """Re-ranker verdict for one submitted record."""

    score: int = Field(ge=0, le=100, description="Match score from 0-100")
    justification: str = Field(min_length=1, description="Short natural-language explanation")


class SearchOutcome(BaseModel):
    """Terminal result of one pipeline run."""

    status: Literal["completed", "error"]
    jobs: list[JobRecord] = Field(default_factory=list)
    error_message: str | None = None
    raw_count: int = 0
    filtered_count: int = 0
    reranked_count: int = 0
