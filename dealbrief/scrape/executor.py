"""Budget- and failure-aware scraping of the selected targets.

Targets are processed in ranked batches. Inside a batch, targets on the same
host run one after another so a host blacklisted by an earlier target is
skipped by the later ones; different hosts run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

from dealbrief.context import RunContext
from dealbrief.models import (
    ScrapeOutcome,
    ScrapeTarget,
    ScrapeTransientFailure,
    ScrapeUnsupported,
)
from dealbrief.search.url_ranker import extract_host, is_file_url

logger = logging.getLogger(__name__)

# Hosts the scrape API cannot read (login walls, paywalls, blocked sites)
STATIC_BLACKLIST = frozenset({
    "linkedin.com",
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "x.com",
    "tiktok.com",
    "reddit.com",
    "googleusercontent.com",
    "wsj.com",
    "ft.com",
    "patreon.com",
    "news.ycombinator.com",
    "apps.dos.ny.gov",
    "yelp.com",
    "nextdoor.com",
})


class Scraper(Protocol):
    async def scrape(self, url: str, timeout: float) -> ScrapeOutcome: ...


def _host_matches(host: str, blocked: set[str] | frozenset[str]) -> bool:
    return any(host == b or host.endswith("." + b) for b in blocked)


class ScrapeExecutor:
    """Run the scrape phase for one pipeline run."""

    def __init__(self, scraper: Scraper, static_blacklist: frozenset[str] = STATIC_BLACKLIST):
        self.scraper = scraper
        self.static_blacklist = static_blacklist

    def is_blacklisted(self, ctx: RunContext, url: str) -> bool:
        host = extract_host(url)
        if not host:
            return False
        return _host_matches(host, self.static_blacklist) or _host_matches(host, ctx.dynamic_blacklist)

    def _deadline(self, ctx: RunContext, phase_start: float) -> float:
        """Monotonic time after which no new scrape attempt may start."""
        limits = ctx.limits
        run_ceiling = ctx.started_at + limits.run_budget_seconds * limits.scrape_time_fraction
        return min(run_ceiling, phase_start + limits.scrape_budget_seconds)

    async def run(self, ctx: RunContext, targets: list[ScrapeTarget]) -> dict[str, ScrapeOutcome]:
        """Scrape targets in ranked batches.

        Returns outcomes keyed by target URL. Targets missing from the result
        were abandoned (budget) or are files, which are never scraped.
        """
        limits = ctx.limits
        outcomes: dict[str, ScrapeOutcome] = {}
        pending = [t for t in targets if not is_file_url(t.hit.url)]
        deadline = self._deadline(ctx, time.monotonic())
        batch_size = max(1, limits.scrape_concurrency)

        for start in range(0, len(pending), batch_size):
            if time.monotonic() >= deadline:
                logger.info("Scrape time budget reached, abandoning %d scrape targets", len(pending) - start)
                break
            if ctx.ledger.scrape_attempts >= limits.max_scrape_attempts:
                logger.info("Scrape attempt cap reached, abandoning %d scrape targets", len(pending) - start)
                break

            batch = pending[start:start + batch_size]
            chains: dict[str, list[ScrapeTarget]] = {}
            for target in batch:
                chains.setdefault(extract_host(target.hit.url), []).append(target)

            results = await asyncio.gather(*(
                self._run_chain(ctx, chain, deadline) for chain in chains.values()
            ))
            for chain_outcomes in results:
                outcomes.update(chain_outcomes)

        return outcomes

    async def _run_chain(
        self, ctx: RunContext, chain: list[ScrapeTarget], deadline: float,
    ) -> dict[str, ScrapeOutcome]:
        outcomes: dict[str, ScrapeOutcome] = {}
        for i, target in enumerate(chain):
            if time.monotonic() >= deadline:
                # the rest of the chain stays citation-only
                logger.info("Scrape time budget reached, abandoning %d targets on %s",
                            len(chain) - i, extract_host(target.hit.url))
                break
            outcome = await self.scrape_target(ctx, target, deadline)
            if outcome is not None:
                outcomes[target.hit.url] = outcome
        return outcomes

    def _reserve_attempt(self, ctx: RunContext) -> bool:
        if ctx.ledger.scrape_attempts >= ctx.limits.max_scrape_attempts:
            return False
        ctx.ledger.scrape_attempts += 1
        return True

    async def scrape_target(
        self, ctx: RunContext, target: ScrapeTarget, deadline: float | None = None,
    ) -> ScrapeOutcome | None:
        """Scrape one target with the short/long timeout ladder.

        The long retry is skipped when it could run past the deadline.
        Returns None when no attempt could be reserved.
        """
        url = target.hit.url
        if self.is_blacklisted(ctx, url):
            logger.debug("Skipping blacklisted host: %s", url[:100])
            return ScrapeUnsupported(site_wide=True, reason="blacklisted")

        limits = ctx.limits
        outcome: ScrapeOutcome | None = None
        for attempt, timeout in enumerate((limits.scrape_timeout_short, limits.scrape_timeout_long)):
            if attempt and deadline is not None and time.monotonic() + timeout > deadline:
                logger.debug("No time left for a long retry: %s", url[:100])
                break
            if not self._reserve_attempt(ctx):
                break
            try:
                outcome = await asyncio.wait_for(self.scraper.scrape(url, timeout), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Scrape timed out after %.0fs: %s", timeout, url[:100])
                outcome = ScrapeTransientFailure(reason="timeout")
            except Exception as e:
                logger.warning("Scrape failed for %s: %s", url[:100], e)
                outcome = ScrapeTransientFailure(reason=str(e)[:200])

            if outcome.kind == "success":
                ctx.ledger.scrape_successes += 1
                return outcome
            if outcome.kind == "unsupported" and outcome.site_wide:
                host = extract_host(url)
                if host and host not in ctx.dynamic_blacklist:
                    ctx.dynamic_blacklist.add(host)
                    logger.info("Blacklisting %s for this run (%s)", host, outcome.reason)
            if outcome.kind != "transient":
                return outcome
        return outcome
