"""Best-effort profile enrichment of the top company and owner hits."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from dealbrief.context import RunContext, truncate_text
from dealbrief.models import CompanyProfile, Dork, Hit, PersonProfile, SectionCategory
from dealbrief.search.frontier import SearchFrontier
from dealbrief.search.strategy import owner_profile_query

logger = logging.getLogger(__name__)

COMPANY_PROFILE_MARKER = "linkedin.com/company/"
PERSON_PROFILE_MARKER = "linkedin.com/in/"


class Enricher(Protocol):
    async def enrich_company(self, url: str) -> CompanyProfile | None: ...
    async def enrich_person(self, url: str) -> PersonProfile | None: ...


def company_snippet(profile: CompanyProfile) -> str:
    year = profile.founded_year if profile.founded_year else "N/A"
    return (
        f"{profile.industry or 'Industry N/A'}; Founded {year}. "
        f"{truncate_text(profile.description or '', 120)}"
    ).strip()


def person_snippet(profile: PersonProfile, owner: str) -> str:
    return (
        f"{profile.full_name or owner} – {profile.headline or 'Headline N/A'}. "
        f"{truncate_text(profile.summary or '', 100)}"
    ).strip()


def _best(hits: list[Hit]) -> Hit | None:
    if not hits:
        return None
    return sorted(hits, key=lambda h: (-h.composite_score, h.discovery_index))[0]


def _owner_hits(hits: list[Hit], owner: str) -> list[Hit]:
    name = owner.lower()
    return [h for h in hits if PERSON_PROFILE_MARKER in h.url.lower() and name in h.title.lower()]


def _replace_hit(ctx: RunContext, hit: Hit, snippet: str, kind: str) -> None:
    updated = hit.model_copy(update={
        "snippet": snippet,
        "composite_score": min(1.0, hit.composite_score + ctx.config.weights.enrichment_boost),
        "enriched": kind,
    })
    ctx.hits[hit.discovery_index] = updated


def _time_up(ctx: RunContext) -> bool:
    return ctx.run_budget_exhausted(ctx.limits.search_time_fraction)


async def _call(ctx: RunContext, coro, url: str):
    """Run one enrichment call under the per-call timeout. None on failure."""
    ctx.ledger.enrichment_calls += 1
    try:
        return await asyncio.wait_for(coro, timeout=ctx.limits.enrichment_timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("Enrichment timed out for %s", url[:100])
    except Exception as e:
        logger.warning("Enrichment failed for %s: %s", url[:100], e)
    return None


async def enrich_hits(ctx: RunContext, frontier: SearchFrontier, enricher: Enricher | None) -> int:
    """Enrich the top company-profile hit and up to a few owner profiles.

    Returns the number of hits enriched. Never raises for a single failure.
    """
    if enricher is None or not getattr(enricher, "is_configured", True):
        logger.info("No enrichment credential configured, skipping enrichment")
        return 0

    limits = ctx.limits
    enriched = 0

    company_hit = _best([h for h in ctx.hits if COMPANY_PROFILE_MARKER in h.url.lower()])
    if (
        company_hit is not None
        and ctx.ledger.enrichment_calls < limits.max_enrichment_calls
        and not _time_up(ctx)
    ):
        profile = await _call(ctx, enricher.enrich_company(company_hit.url), company_hit.url)
        if profile is not None:
            _replace_hit(ctx, company_hit, company_snippet(profile), "company")
            enriched += 1

    for owner in ctx.identity.owner_names[: limits.max_owner_profiles]:
        if ctx.ledger.enrichment_calls >= limits.max_enrichment_calls:
            logger.info("Enrichment call budget reached")
            break
        if _time_up(ctx):
            logger.info("Search time budget reached, skipping remaining owner profiles")
            break

        candidates = _owner_hits(ctx.hits, owner)
        if not candidates:
            dork = Dork(
                query=owner_profile_query(ctx.identity, owner),
                category=SectionCategory.LEADERSHIP,
                priority=ctx.config.weights.dork_priority.get(SectionCategory.LEADERSHIP, 0),
            )
            candidates = _owner_hits(await frontier.search_one(ctx, dork), owner)
        person_hit = _best(candidates)
        if person_hit is None:
            logger.debug("No profile hit found for owner %s", owner)
            continue
        if _time_up(ctx):
            break

        profile = await _call(ctx, enricher.enrich_person(person_hit.url), person_hit.url)
        if profile is not None:
            _replace_hit(ctx, person_hit, person_snippet(profile, owner), "person")
            enriched += 1

    return enriched
