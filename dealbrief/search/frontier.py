"""Search frontier: run dorks in bounded batches and collect deduplicated hits."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter, deque
from typing import Protocol

from dealbrief.analysis.aggregator import jaccard
from dealbrief.context import RunContext
from dealbrief.input.normalizer import mentions_entity
from dealbrief.models import Dork, Hit
from dealbrief.search.strategy import host_expansion_dork
from dealbrief.search.url_ranker import (
    canonicalize_url,
    composite_score,
    extract_host,
    is_own_domain,
)

logger = logging.getLogger(__name__)


class SearchCapability(Protocol):
    async def search(self, query: str, num_results: int = 10) -> dict: ...


class SearchFrontier:
    """FIFO query queue for a single run.

    Stops when the query budget is spent or the search share of the run
    budget has elapsed. A failed call is logged and still counts.
    """

    def __init__(self, search: SearchCapability):
        self.search = search
        self._issued: set[str] = set()
        self._expansions: Counter[str] = Counter()
        self._kept_texts: list[str] = []

    def _budget_left(self, ctx: RunContext) -> int:
        return max(0, ctx.limits.max_search_queries - ctx.ledger.search_calls)

    def _time_up(self, ctx: RunContext) -> bool:
        return ctx.run_budget_exhausted(ctx.limits.search_time_fraction)

    async def run(self, ctx: RunContext, dorks: list[Dork]) -> list[Hit]:
        """Drain the queue. Returns every hit kept during this call."""
        queue: deque[Dork] = deque(dorks)
        kept: list[Hit] = []
        batch_size = max(1, ctx.limits.search_concurrency)

        while queue:
            if self._budget_left(ctx) == 0:
                logger.info("Search query budget reached (%d), %d dorks left", ctx.ledger.search_calls, len(queue))
                break
            if self._time_up(ctx):
                logger.info("Search time budget reached, %d dorks left", len(queue))
                break

            batch: list[Dork] = []
            limit = min(batch_size, self._budget_left(ctx))
            while queue and len(batch) < limit:
                dork = queue.popleft()
                if dork.query in self._issued:
                    continue
                self._issued.add(dork.query)
                batch.append(dork)
            if not batch:
                break

            ctx.ledger.search_calls += len(batch)
            responses = await asyncio.gather(*(self._search(ctx, d.query) for d in batch))

            for dork, response in zip(batch, responses):
                new_hits = self.absorb(ctx, dork, response)
                kept.extend(new_hits)
                for hit in new_hits:
                    expansion = self._expansion_for(ctx, hit)
                    if expansion is not None:
                        queue.append(expansion)

        return kept

    async def search_one(self, ctx: RunContext, dork: Dork) -> list[Hit]:
        """Issue a single query outside the main queue (no host expansion)."""
        if self._budget_left(ctx) == 0 or self._time_up(ctx) or dork.query in self._issued:
            return []
        self._issued.add(dork.query)
        ctx.ledger.search_calls += 1
        response = await self._search(ctx, dork.query)
        return self.absorb(ctx, dork, response)

    async def _search(self, ctx: RunContext, query: str) -> dict:
        limits = ctx.limits
        try:
            return await asyncio.wait_for(
                self.search.search(query, num_results=limits.search_page_size),
                timeout=limits.search_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Search timed out for query: %s", query[:80])
            return {"error": "timeout"}
        except Exception as e:
            logger.warning("Search failed for query '%s': %s", query[:80], e)
            return {"error": str(e)}

    def absorb(self, ctx: RunContext, dork: Dork, response: dict) -> list[Hit]:
        """Apply URL dedup, the relevance gate and snippet dedup to one response."""
        if response.get("error"):
            logger.warning("Search error for '%s': %s", dork.query[:80], response["error"])
            return []

        threshold = ctx.limits.snippet_similarity_threshold
        new_hits: list[Hit] = []
        for item in response.get("organic_results") or []:
            url = (item.get("link") or "").strip()
            if not url:
                continue
            key = canonicalize_url(url)
            if key in ctx.seen_urls:
                continue

            title = item.get("title") or ""
            snippet = item.get("snippet") or ""
            text = f"{title} {snippet}"
            if not mentions_entity(text, ctx.identity):
                continue
            if threshold is not None and any(jaccard(text, prev) >= threshold for prev in self._kept_texts):
                logger.debug("Near-duplicate snippet skipped: %s", url[:100])
                continue

            ctx.seen_urls.add(key)
            self._kept_texts.append(text)
            hit = Hit(
                url=url,
                title=title,
                snippet=snippet,
                source_category=dork.category,
                composite_score=composite_score(
                    url, title, snippet, dork.category, ctx.identity, ctx.config.weights,
                ),
                discovery_index=len(ctx.hits),
            )
            ctx.hits.append(hit)
            new_hits.append(hit)

        ctx.ledger.results_collected = len(ctx.hits)
        return new_hits

    def _expansion_for(self, ctx: RunContext, hit: Hit) -> Dork | None:
        host = extract_host(hit.url)
        if not host or is_own_domain(hit.url, ctx.identity.domain):
            return None
        if self._expansions[host] >= ctx.limits.max_host_expansions:
            return None
        self._expansions[host] += 1
        return host_expansion_dork(ctx.identity, host, hit.source_category)
