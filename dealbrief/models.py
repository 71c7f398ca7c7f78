"""Pydantic data models for the OSINT research pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class SectionCategory(str, Enum):
    """Report sections. Declaration order is the fixed report order."""
    CORPORATE = "Corporate"
    LEGAL = "Legal"
    CYBER = "Cyber"
    REPUTATION = "Reputation"
    LEADERSHIP = "Leadership"
    FINANCIALS = "Financials"
    MISC = "Misc"

    @property
    def order(self) -> int:
        return list(SectionCategory).index(self)


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return {
            Severity.CRITICAL: 4,
            Severity.HIGH: 3,
            Severity.MEDIUM: 2,
            Severity.LOW: 1,
            Severity.INFO: 0,
        }[self]


class FindingOrigin(str, Enum):
    LLM_INSIGHT = "llm_insight"
    HEURISTIC_SNIPPET = "heuristic_snippet"
    ENRICHMENT_PROFILE = "enrichment_profile"


class LLMCallKind(str, Enum):
    EXTRACTION = "extraction"
    SUMMARIZATION = "summarization"
    FILE_PREDICTION = "file_prediction"


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

OwnerName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ResearchRequest(BaseModel):
    """Raw research input as accepted at the pipeline boundary."""
    model_config = ConfigDict(str_strip_whitespace=True)

    company_name: str = Field(min_length=1)
    domain: str = Field(min_length=3)
    owner_names: list[OwnerName] | None = None

    @field_validator("domain")
    @classmethod
    def domain_has_dot(cls, v: str) -> str:
        if "." not in v:
            raise ValueError("domain must contain a dot")
        return v


class CanonicalIdentity(BaseModel):
    """Normalized identity used for every relevance check in a run."""
    model_config = ConfigDict(frozen=True)

    raw_company_name: str
    canonical_name: str
    domain: str
    owner_names: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Search models
# ---------------------------------------------------------------------------

class Dork(BaseModel):
    """A search query bound to the section it is meant to feed."""
    model_config = ConfigDict(frozen=True)

    query: str
    category: SectionCategory
    priority: int


class Hit(BaseModel):
    """A kept search result. One per canonical URL per run."""
    url: str
    title: str = ""
    snippet: str = ""
    source_category: SectionCategory = SectionCategory.MISC
    composite_score: float = 0.0
    discovery_index: int = 0
    enriched: Literal["company", "person"] | None = None


class ScrapeTarget(BaseModel):
    """A hit chosen for scraping, with its scraping priority and rank."""
    model_config = ConfigDict(frozen=True)

    hit: Hit
    priority: float
    rank: int


# ---------------------------------------------------------------------------
# Enrichment models
# ---------------------------------------------------------------------------

class CompanyProfile(BaseModel):
    name: str | None = None
    industry: str | None = None
    founded_year: int | None = None
    description: str | None = None


class PersonProfile(BaseModel):
    full_name: str | None = None
    headline: str | None = None
    summary: str | None = None


# ---------------------------------------------------------------------------
# Scraping models
# ---------------------------------------------------------------------------

class ScrapeSuccess(BaseModel):
    kind: Literal["success"] = "success"
    text: str
    reason: str | None = None


class ScrapeUnsupported(BaseModel):
    """The scraper cannot read this page, permanently.

    site_wide marks signals that condemn the whole host for the rest of a run.
    """
    kind: Literal["unsupported"] = "unsupported"
    site_wide: bool = False
    reason: str | None = None


class ScrapeEmpty(BaseModel):
    kind: Literal["empty"] = "empty"
    reason: str | None = None


class ScrapeTransientFailure(BaseModel):
    kind: Literal["transient"] = "transient"
    reason: str | None = None


ScrapeOutcome = Annotated[
    Union[ScrapeSuccess, ScrapeUnsupported, ScrapeEmpty, ScrapeTransientFailure],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# LLM models
# ---------------------------------------------------------------------------

class Completion(BaseModel):
    text: str
    output_tokens: int | None = None


class Finding(BaseModel):
    """A single due-diligence fact, before it is bound to a citation."""
    model_config = ConfigDict(frozen=True)

    statement: str
    supporting_quote: str | None = None
    category: SectionCategory = SectionCategory.MISC
    severity: Severity = Severity.INFO
    source_url: str
    origin: FindingOrigin = FindingOrigin.LLM_INSIGHT


# ---------------------------------------------------------------------------
# Output models (camelCase on the wire)
# ---------------------------------------------------------------------------

class _OutputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Citation(_OutputModel):
    marker: int
    url: str
    title: str
    snippet: str


class ReportBullet(_OutputModel):
    text: str
    quote: str | None = None
    source_url: str
    citation_marker: int
    severity: Severity
    origin: FindingOrigin
    category: SectionCategory | None = None


class Section(_OutputModel):
    name: SectionCategory
    summary: str
    bullets: list[ReportBullet] = Field(default_factory=list)


class FileForManualReview(_OutputModel):
    url: str
    title: str
    serp_snippet: str
    predicted_interest: str
    citation_marker: int


class CostBreakdown(_OutputModel):
    search: float = 0.0
    scrape: float = 0.0
    enrichment: float = 0.0
    llm: float = 0.0
    total: float = 0.0


class RunStats(_OutputModel):
    query_count: int = 0
    results_collected: int = 0
    scrape_attempts: int = 0
    scrape_successes: int = 0
    pages_analyzed: int = 0
    extraction_calls: int = 0
    summarization_calls: int = 0
    file_prediction_calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    enrichment_calls: int = 0
    wall_time_seconds: float = 0.0


class Payload(_OutputModel):
    """Complete result of one research run."""
    company: str
    domain: str
    generated: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )
    summary: str
    sections: list[Section]
    citations: list[Citation] = Field(default_factory=list)
    files_for_manual_review: list[FileForManualReview] = Field(default_factory=list)
    cost: CostBreakdown = Field(default_factory=CostBreakdown)
    stats: RunStats = Field(default_factory=RunStats)
