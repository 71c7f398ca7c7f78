"""Async research pipeline: search, enrich, scrape, extract, aggregate, summarize."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from rich.console import Console

from dealbrief.analysis.extraction import (
    extract_findings,
    heuristic_finding,
    predict_file_interest,
    UNCLEAR_INTEREST,
)
from dealbrief.analysis.llm_client import LLMClient
from dealbrief.analysis.summarizer import summarize_executive, summarize_sections
from dealbrief.config import Config, Limits, load_config
from dealbrief.context import RunContext
from dealbrief.enrich.enrichment import enrich_hits
from dealbrief.enrich.proxycurl_client import ProxycurlClient
from dealbrief.input.normalizer import normalize_input
from dealbrief.models import (
    Citation,
    FileForManualReview,
    Finding,
    Hit,
    Payload,
    ScrapeOutcome,
    ScrapeTarget,
)
from dealbrief.scrape.executor import ScrapeExecutor
from dealbrief.scrape.firecrawl_client import FirecrawlScraper
from dealbrief.search.frontier import SearchFrontier
from dealbrief.search.provider import WebSearch
from dealbrief.search.strategy import generate_dorks
from dealbrief.search.url_ranker import is_file_url, select_targets

logger = logging.getLogger(__name__)
console = Console(force_terminal=True, stderr=True)


def _snippet_usable(hit: Hit, limits: Limits) -> bool:
    """A snippet long enough to stand alone, or an enriched profile."""
    return len(hit.snippet) >= limits.min_snippet_chars or hit.enriched is not None


class ResearchPipeline:
    """Run one due-diligence research job per call to run().

    External capabilities are injected; any left as None are built from the
    config. All per-run state lives in a RunContext created inside run().
    """

    def __init__(
        self,
        config: Config,
        search=None,
        scraper=None,
        enricher=None,
        llm=None,
    ):
        self.config = config
        self.search = search or WebSearch(
            config.serper_key, timeout=config.limits.search_timeout_seconds,
        )
        self.scraper = scraper or FirecrawlScraper(config.firecrawl_key)
        if enricher is None and config.proxycurl_key:
            enricher = ProxycurlClient(
                config.proxycurl_key, timeout=config.limits.enrichment_timeout_seconds,
            )
        self.enricher = enricher
        self.llm = llm or LLMClient.from_config(config)

    async def close(self) -> None:
        for client in (self.scraper, self.enricher, self.llm):
            close = getattr(client, "close", None)
            if close is not None:
                await close()

    async def run(self, raw: Mapping[str, Any]) -> Payload:
        """Research one company. Raises InputValidationError on bad input."""
        identity = normalize_input(raw)
        ctx = RunContext(config=self.config, identity=identity)
        limits = self.config.limits
        weights = self.config.weights

        console.print(f"[bold]Researching {identity.raw_company_name} ({identity.domain})[/bold]")

        # Phase 1-2: plan and search
        dorks = generate_dorks(identity, weights)
        frontier = SearchFrontier(self.search)
        await frontier.run(ctx, dorks)
        console.print(
            f"  Search: {ctx.ledger.search_calls} queries, {len(ctx.hits)} results kept"
        )

        # Phase 3: enrichment
        if not ctx.run_budget_exhausted(limits.search_time_fraction):
            enriched = await enrich_hits(ctx, frontier, self.enricher)
            if enriched:
                console.print(f"  Enrichment: {enriched} profiles")

        # Phase 4-5: select and scrape
        ctx.targets = select_targets(ctx.hits, identity, weights, limits.max_scrape_targets)
        outcomes = await ScrapeExecutor(self.scraper).run(ctx, ctx.targets)
        console.print(
            f"  Scrape: {len(ctx.targets)} targets, {ctx.ledger.scrape_attempts} attempts, "
            f"{ctx.ledger.scrape_successes} pages"
        )

        # Phase 6-7: extract and aggregate
        await self._analyze(ctx, outcomes)
        console.print(
            f"  Analysis: {ctx.ledger.pages_analyzed} pages, {ctx.sections.total()} bullets, "
            f"{len(ctx.files_for_manual_review)} files for review"
        )

        # Phase 8-9: summaries
        sections = await summarize_sections(ctx, self.llm)
        summary = await summarize_executive(ctx, self.llm, sections)

        payload = Payload(
            company=identity.raw_company_name,
            domain=identity.domain,
            summary=summary,
            sections=sections,
            citations=list(ctx.citations),
            files_for_manual_review=list(ctx.files_for_manual_review),
            cost=ctx.ledger.cost(self.config),
            stats=ctx.ledger.stats(ctx.elapsed()),
        )
        console.print(
            f"[green]Done in {payload.stats.wall_time_seconds}s — "
            f"est. cost ${payload.cost.total:.4f}[/green]"
        )
        return payload

    async def _analyze(self, ctx: RunContext, outcomes: dict[str, ScrapeOutcome]) -> None:
        """Bind every target to a citation, in ranked order, then gather findings."""
        limits = ctx.limits
        pages: list[tuple[ScrapeTarget, Citation, str]] = []
        files: list[tuple[ScrapeTarget, Citation]] = []
        findings: dict[int, list[Finding]] = {}

        for target in ctx.targets:
            citation = ctx.add_citation(target)
            hit = target.hit
            if is_file_url(hit.url):
                files.append((target, citation))
                continue
            outcome = outcomes.get(hit.url)
            if outcome is None:
                # abandoned by the scrape budget: citation only
                continue
            if outcome.kind == "success" and len(outcome.text) >= limits.min_page_chars:
                pages.append((target, citation, outcome.text))
            elif _snippet_usable(hit, limits):
                findings[citation.marker] = [heuristic_finding(hit)]

        batch_size = max(1, limits.scrape_concurrency)
        for start in range(0, len(pages), batch_size):
            batch = pages[start:start + batch_size]
            if ctx.run_budget_exhausted():
                logger.info("Run budget exhausted, %d pages fall back to snippets", len(pages) - start)
                for target, citation, _ in pages[start:]:
                    if _snippet_usable(target.hit, limits):
                        findings[citation.marker] = [heuristic_finding(target.hit)]
                break
            ctx.ledger.pages_analyzed += len(batch)
            results = await asyncio.gather(*(
                extract_findings(ctx, self.llm, target.hit.url, text) for target, _, text in batch
            ))
            for (_, citation, _), page_findings in zip(batch, results):
                findings[citation.marker] = page_findings

        for start in range(0, len(files), batch_size):
            batch = files[start:start + batch_size]
            if ctx.run_budget_exhausted():
                interests = [UNCLEAR_INTEREST] * len(batch)
            else:
                interests = await asyncio.gather(*(
                    predict_file_interest(ctx, self.llm, target.hit) for target, _ in batch
                ))
            for (target, citation), interest in zip(batch, interests):
                ctx.files_for_manual_review.append(FileForManualReview(
                    url=target.hit.url,
                    title=target.hit.title or "Untitled",
                    serp_snippet=target.hit.snippet,
                    predicted_interest=interest,
                    citation_marker=citation.marker,
                ))

        for citation in ctx.citations:
            for finding in findings.get(citation.marker, []):
                ctx.sections.add(finding, citation.marker)


async def run_research(raw: Mapping[str, Any], config: Config | None = None) -> Payload:
    """Convenience wrapper: load config, run one job, close clients."""
    pipeline = ResearchPipeline(config or load_config())
    try:
        return await pipeline.run(raw)
    finally:
        await pipeline.close()
