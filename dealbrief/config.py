"""Configuration management via environment variables and .env file."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from dealbrief.errors import MissingCredentialsError
from dealbrief.models import SectionCategory

logger = logging.getLogger(__name__)


class Limits(BaseModel):
    """Budgets, caps and timeouts for one pipeline run."""

    # Wall clock
    run_budget_seconds: float = 600.0
    search_time_fraction: float = 0.6      # Frontier stops after this share of the run budget
    scrape_time_fraction: float = 0.9      # Scraping never starts a batch past this share
    scrape_budget_seconds: float = 360.0

    # Search
    max_search_queries: int = 150
    search_page_size: int = 10
    search_concurrency: int = 5
    search_timeout_seconds: float = 20.0
    max_host_expansions: int = 1           # Extra site: queries per discovered host
    snippet_similarity_threshold: float | None = 0.9

    # Enrichment
    max_enrichment_calls: int = 10
    max_owner_profiles: int = 3
    enrichment_timeout_seconds: float = 20.0

    # Scraping
    max_scrape_targets: int = 40
    max_scrape_attempts: int = 80
    scrape_concurrency: int = 10
    scrape_timeout_short: float = 25.0
    scrape_timeout_long: float = 40.0
    content_max_chars: int = 24500         # ~7000 tokens of page text sent to the LLM

    # Extraction
    min_page_chars: int = 150
    min_snippet_chars: int = 70
    max_findings_per_page: int = 5
    extraction_max_tokens: int = 1000
    file_prediction_max_tokens: int = 150

    # Aggregation
    bullet_cap: int = 50
    host_cap: int = 6
    bullet_max_chars: int = 500
    citation_snippet_chars: int = 250
    similarity_threshold: float = 0.8

    # Summaries
    section_summary_max_tokens: int = 160
    section_summary_bullets: int = 20
    section_summary_bullet_chars: int = 300
    exec_summary_max_tokens: int = 300
    exec_top_findings: int = 10

    # LLM
    llm_timeout_seconds: float = 120.0
    llm_usd_cap: float = 2.0


def _default_dork_priority() -> dict[SectionCategory, int]:
    return {
        SectionCategory.LEGAL: 10,
        SectionCategory.CYBER: 10,
        SectionCategory.REPUTATION: 9,
        SectionCategory.LEADERSHIP: 9,
        SectionCategory.FINANCIALS: 8,
        SectionCategory.CORPORATE: 7,
        SectionCategory.MISC: 5,
    }


def _default_category_bonus() -> dict[SectionCategory, float]:
    return {
        SectionCategory.LEGAL: 3.0,
        SectionCategory.CYBER: 3.0,
        SectionCategory.FINANCIALS: 3.0,
    }


class ScoringWeights(BaseModel):
    """Weights for search-time composite scores and scrape-target priority."""

    dork_priority: dict[SectionCategory, int] = Field(default_factory=_default_dork_priority)

    # Composite score (0-1), computed when a hit is kept
    base: float = 0.1
    domain_match: float = 0.2
    targeted_keyword: float = 0.3
    risk_vocabulary: float = 0.25
    file_extension: float = 0.1
    authoritative_domain: float = 0.2
    news_domain: float = 0.15
    enrichment_boost: float = 0.3

    # Scrape-target priority, layered on top of the composite score
    target_base: float = 1.0
    target_risk: float = 5.0
    target_category_bonus: dict[SectionCategory, float] = Field(
        default_factory=_default_category_bonus,
    )
    target_authoritative: float = 4.0
    target_file: float = 2.0
    target_news: float = 3.0
    target_own_domain_penalty: float = 2.0
    composite_multiplier: float = 5.0


class Pricing(BaseModel):
    """Unit prices (USD) used by the cost ledger."""

    search_per_call: float = 0.001
    scrape_per_attempt: float = 0.002
    enrichment_per_call: float = 0.01
    llm_input_per_million: float = 0.15
    llm_output_per_million: float = 0.60


class Config(BaseModel):
    """Application configuration loaded from environment."""

    # API keys (proxycurl is optional; enrichment is skipped without it)
    serper_key: str = ""
    firecrawl_key: str = ""
    proxycurl_key: str = ""
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # LLM models
    anthropic_model: str = "claude-3-5-haiku-latest"
    openai_model: str = "gpt-4o-mini"

    limits: Limits = Field(default_factory=Limits)
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    pricing: Pricing = Field(default_factory=Pricing)

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8000


def load_config() -> Config:
    """Load configuration from .env file and environment variables.

    Environment variables override .env values.
    Raises MissingCredentialsError if required keys are missing.
    """
    load_dotenv()

    serper_key = os.getenv("SERPER_KEY", "")
    firecrawl_key = os.getenv("FIRECRAWL_KEY", "")
    proxycurl_key = os.getenv("PROXYCURL_KEY", "")
    anthropic_key = os.getenv("ANTHROPIC_API_KEY", "")
    openai_key = os.getenv("OPENAI_API_KEY", "")

    missing = []
    if not serper_key:
        missing.append("SERPER_KEY")
    if not firecrawl_key:
        missing.append("FIRECRAWL_KEY")
    # At least one LLM key required
    if not anthropic_key and not openai_key:
        missing.append("ANTHROPIC_API_KEY or OPENAI_API_KEY")
    if missing:
        raise MissingCredentialsError(missing)

    if not proxycurl_key:
        logger.warning("PROXYCURL_KEY not set — profile enrichment disabled")

    defaults = Limits()
    limits = Limits(
        run_budget_seconds=float(os.getenv("RUN_BUDGET_SECONDS", defaults.run_budget_seconds)),
        scrape_budget_seconds=float(os.getenv("SCRAPE_BUDGET_SECONDS", defaults.scrape_budget_seconds)),
        max_search_queries=int(os.getenv("MAX_SEARCH_QUERIES", defaults.max_search_queries)),
        max_scrape_targets=int(os.getenv("MAX_SCRAPE_TARGETS", defaults.max_scrape_targets)),
        max_scrape_attempts=int(os.getenv("MAX_SCRAPE_ATTEMPTS", defaults.max_scrape_attempts)),
        search_concurrency=int(os.getenv("SEARCH_CONCURRENCY", defaults.search_concurrency)),
        scrape_concurrency=int(os.getenv("SCRAPE_CONCURRENCY", defaults.scrape_concurrency)),
        llm_usd_cap=float(os.getenv("LLM_USD_CAP", defaults.llm_usd_cap)),
    )

    return Config(
        serper_key=serper_key,
        firecrawl_key=firecrawl_key,
        proxycurl_key=proxycurl_key,
        anthropic_api_key=anthropic_key,
        openai_api_key=openai_key,
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        limits=limits,
        web_host=os.getenv("WEB_HOST", "0.0.0.0"),
        web_port=int(os.getenv("WEB_PORT", "8000")),
    )
