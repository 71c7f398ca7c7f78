"""Per-run pipeline state: counters, cost ledger, citations and collected hits.

A RunContext is created at the start of each pipeline invocation and
discarded once the Payload is built. Nothing here is process-wide.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field

from dealbrief.analysis.aggregator import SectionAggregator
from dealbrief.config import Config
from dealbrief.models import (
    CanonicalIdentity,
    Citation,
    CostBreakdown,
    FileForManualReview,
    Hit,
    LLMCallKind,
    RunStats,
    ScrapeTarget,
)


def estimate_tokens(text: str) -> int:
    """Rough token estimate: 3.5 characters per token."""
    return math.ceil(len(text or "") / 3.5)


def truncate_text(text: str, limit: int) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"


@dataclass
class CostLedger:
    """Call counts and token totals for one run."""

    search_calls: int = 0
    results_collected: int = 0
    scrape_attempts: int = 0
    scrape_successes: int = 0
    pages_analyzed: int = 0
    enrichment_calls: int = 0
    extraction_calls: int = 0
    summarization_calls: int = 0
    file_prediction_calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def record_llm_call(self, kind: LLMCallKind) -> None:
        if kind is LLMCallKind.EXTRACTION:
            self.extraction_calls += 1
        elif kind is LLMCallKind.SUMMARIZATION:
            self.summarization_calls += 1
        else:
            self.file_prediction_calls += 1

    def llm_cost(self, config: Config, extra_input: int = 0, extra_output: int = 0) -> float:
        pricing = config.pricing
        return (
            (self.input_tokens + extra_input) / 1e6 * pricing.llm_input_per_million
            + (self.output_tokens + extra_output) / 1e6 * pricing.llm_output_per_million
        )

    def cost(self, config: Config) -> CostBreakdown:
        pricing = config.pricing
        search = round(self.search_calls * pricing.search_per_call, 6)
        scrape = round(self.scrape_attempts * pricing.scrape_per_attempt, 6)
        enrichment = round(self.enrichment_calls * pricing.enrichment_per_call, 6)
        llm = round(self.llm_cost(config), 6)
        return CostBreakdown(
            search=search,
            scrape=scrape,
            enrichment=enrichment,
            llm=llm,
            total=round(search + scrape + enrichment + llm, 6),
        )

    def stats(self, wall_time_seconds: float) -> RunStats:
        return RunStats(
            query_count=self.search_calls,
            results_collected=self.results_collected,
            scrape_attempts=self.scrape_attempts,
            scrape_successes=self.scrape_successes,
            pages_analyzed=self.pages_analyzed,
            extraction_calls=self.extraction_calls,
            summarization_calls=self.summarization_calls,
            file_prediction_calls=self.file_prediction_calls,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            enrichment_calls=self.enrichment_calls,
            wall_time_seconds=round(wall_time_seconds, 1),
        )


@dataclass
class RunContext:
    """Mutable state threaded through every pipeline phase."""

    config: Config
    identity: CanonicalIdentity
    started_at: float = field(default_factory=time.monotonic)
    ledger: CostLedger = field(default_factory=CostLedger)

    hits: list[Hit] = field(default_factory=list)
    seen_urls: set[str] = field(default_factory=set)
    targets: list[ScrapeTarget] = field(default_factory=list)
    dynamic_blacklist: set[str] = field(default_factory=set)

    citations: list[Citation] = field(default_factory=list)
    files_for_manual_review: list[FileForManualReview] = field(default_factory=list)
    sections: SectionAggregator | None = None

    def __post_init__(self) -> None:
        if self.sections is None:
            self.sections = SectionAggregator(self.identity, self.config.limits)

    @property
    def limits(self):
        return self.config.limits

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def run_budget_exhausted(self, fraction: float = 1.0) -> bool:
        """True once elapsed time reaches the given share of the run budget."""
        return self.elapsed() >= self.limits.run_budget_seconds * fraction

    def add_citation(self, target: ScrapeTarget) -> Citation:
        """Create the next citation. Markers are 1..N in creation order."""
        hit = target.hit
        citation = Citation(
            marker=len(self.citations) + 1,
            url=hit.url,
            title=hit.title or "Untitled",
            snippet=truncate_text(hit.snippet or hit.title or "", self.limits.citation_snippet_chars),
        )
        self.citations.append(citation)
        return citation
