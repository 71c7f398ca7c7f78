"""Section and executive summaries, grounded only in collected bullets."""

from __future__ import annotations

import logging

from dealbrief.analysis.llm_client import metered_complete
from dealbrief.analysis.prompts import (
    EXEC_SUMMARY_SYSTEM,
    SECTION_SUMMARY_SYSTEM,
    build_exec_summary_prompt,
    build_section_summary_prompt,
)
from dealbrief.context import RunContext
from dealbrief.models import LLMCallKind, Section, SectionCategory

logger = logging.getLogger(__name__)

NO_FINDINGS_SUMMARY = "No specific findings."
SUMMARY_UNAVAILABLE = "Summary unavailable."
SUMMARY_SKIPPED = "Summary skipped: run time budget exhausted."
GENERIC_EXEC_SUMMARY = (
    "No material due-diligence findings were identified in open sources for this company."
)
EXEC_SUMMARY_UNAVAILABLE = "Executive summary unavailable."
EXEC_SUMMARY_SKIPPED = "Executive summary skipped: run time budget exhausted."


async def summarize_sections(ctx: RunContext, llm) -> list[Section]:
    """One Section per category, in fixed order."""
    limits = ctx.limits
    sections: list[Section] = []
    for category in SectionCategory:
        bullets = ctx.sections.buckets[category]
        if not bullets:
            sections.append(Section(name=category, summary=NO_FINDINGS_SUMMARY, bullets=[]))
            continue
        if ctx.run_budget_exhausted():
            logger.info("Run budget exhausted, skipping %s summary", category.value)
            sections.append(Section(name=category, summary=SUMMARY_SKIPPED, bullets=list(bullets)))
            continue

        prompt = build_section_summary_prompt(
            ctx.identity,
            category,
            bullets,
            limits.section_summary_bullets,
            limits.section_summary_bullet_chars,
        )
        completion = await metered_complete(
            ctx, llm, LLMCallKind.SUMMARIZATION, SECTION_SUMMARY_SYSTEM, prompt,
            limits.section_summary_max_tokens,
        )
        summary = completion.text.strip() if completion is not None else ""
        sections.append(Section(
            name=category,
            summary=summary or SUMMARY_UNAVAILABLE,
            bullets=list(bullets),
        ))
    return sections


async def summarize_executive(ctx: RunContext, llm, sections: list[Section]) -> str:
    """Executive summary from non-empty section summaries plus top findings."""
    non_empty = [(s.name, s.summary) for s in sections if s.bullets]
    if not non_empty:
        return GENERIC_EXEC_SUMMARY
    if ctx.run_budget_exhausted():
        logger.info("Run budget exhausted, skipping executive summary")
        return EXEC_SUMMARY_SKIPPED

    prompt = build_exec_summary_prompt(
        ctx.identity,
        non_empty,
        ctx.sections.top_findings(ctx.limits.exec_top_findings),
    )
    completion = await metered_complete(
        ctx, llm, LLMCallKind.SUMMARIZATION, EXEC_SUMMARY_SYSTEM, prompt,
        ctx.limits.exec_summary_max_tokens,
    )
    if completion is None or not completion.text.strip():
        return EXEC_SUMMARY_UNAVAILABLE
    return completion.text.strip()
