"""Insight extraction from scraped pages, file triage and snippet fallbacks."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from dealbrief.analysis.llm_client import metered_complete
from dealbrief.analysis.prompts import (
    EXTRACTION_SYSTEM,
    FILE_PREDICTION_SYSTEM,
    build_extraction_prompt,
    build_file_prediction_prompt,
)
from dealbrief.context import RunContext
from dealbrief.models import (
    Finding,
    FindingOrigin,
    Hit,
    LLMCallKind,
    SectionCategory,
    Severity,
)
from dealbrief.scrape.extractor import truncate_content
from dealbrief.search.url_ranker import has_risk_vocabulary

logger = logging.getLogger(__name__)

UNCLEAR_INTEREST = "Unclear"

_NO_FINDINGS = re.compile(r"^\W*(no|zero)\s+(relevant\s+)?findings?\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Lenient schema for model output
# ---------------------------------------------------------------------------

class _RawFinding(BaseModel):
    """One item of the model's JSON array, before it is bound to a source."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    statement: str = Field(
        min_length=1,
        validation_alias=AliasChoices("statement", "insightStatement", "insight_statement"),
    )
    supporting_quote: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supportingQuote", "supporting_quote", "quote"),
    )
    category: SectionCategory = Field(
        default=SectionCategory.MISC,
        validation_alias=AliasChoices("category", "categorySuggestion", "category_suggestion"),
    )
    severity: Severity = Field(
        default=Severity.INFO,
        validation_alias=AliasChoices("severity", "severitySuggestion", "severity_suggestion"),
    )

    @field_validator("supporting_quote", mode="before")
    @classmethod
    def _quote(cls, v: Any) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> SectionCategory:
        if isinstance(v, str):
            for category in SectionCategory:
                if category.value.lower() == v.strip().lower():
                    return category
        return SectionCategory.MISC

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v: Any) -> Severity:
        if isinstance(v, str):
            try:
                return Severity(v.strip().upper())
            except ValueError:
                pass
        return Severity.INFO


def _extract_json(text: str) -> str:
    """Strip code fences and return the first JSON array or object in the text."""
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
    cleaned = re.sub(r"\s*```\s*$", "", cleaned)
    cleaned = cleaned.strip()

    try:
        json.loads(cleaned)
        return cleaned
    except json.JSONDecodeError:
        pass

    starts = [i for i in (cleaned.find("["), cleaned.find("{")) if i != -1]
    if not starts:
        return cleaned
    start = min(starts)
    opener = cleaned[start]
    closer = "]" if opener == "[" else "}"

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(cleaned)):
        c = cleaned[i]
        if escape:
            escape = False
            continue
        if c == "\\":
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return cleaned[start:i + 1]
    return cleaned


def parse_findings(raw: str, source_url: str, max_findings: int = 5) -> list[Finding]:
    """Parse model output into findings.

    Accepts a fenced block, a bare array, or a single object. Empty arrays
    and "no findings" answers give zero findings. Anything else that is not
    a JSON array is discarded with a warning.
    """
    if not raw or not raw.strip():
        return []
    if _NO_FINDINGS.match(raw.strip()):
        return []

    try:
        data = json.loads(_extract_json(raw))
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse findings JSON for %s: %s", source_url[:80], e)
        logger.debug("Raw response: %s", raw[:500])
        return []

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        logger.warning("Findings for %s are not a JSON array (got %s)", source_url[:80], type(data).__name__)
        return []

    findings: list[Finding] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        try:
            parsed = _RawFinding.model_validate(item)
        except ValidationError:
            logger.debug("Dropping finding without a statement: %s", str(item)[:120])
            continue
        findings.append(Finding(
            statement=parsed.statement,
            supporting_quote=parsed.supporting_quote,
            category=parsed.category,
            severity=parsed.severity,
            source_url=source_url,
            origin=FindingOrigin.LLM_INSIGHT,
        ))
        if len(findings) >= max_findings:
            break
    return findings


# ---------------------------------------------------------------------------
# LLM-backed steps
# ---------------------------------------------------------------------------

async def extract_findings(ctx: RunContext, llm, url: str, text: str) -> list[Finding]:
    """One extraction call for one scraped page."""
    limits = ctx.limits
    prompt = build_extraction_prompt(
        ctx.identity,
        url,
        truncate_content(text, limits.content_max_chars),
        limits.max_findings_per_page,
    )
    completion = await metered_complete(
        ctx, llm, LLMCallKind.EXTRACTION, EXTRACTION_SYSTEM, prompt, limits.extraction_max_tokens,
    )
    if completion is None:
        return []
    return parse_findings(completion.text, url, limits.max_findings_per_page)


async def predict_file_interest(ctx: RunContext, llm, hit: Hit) -> str:
    """Short guess at why a document might matter. "Unclear" on failure."""
    prompt = build_file_prediction_prompt(ctx.identity, hit.url, hit.title, hit.snippet)
    completion = await metered_complete(
        ctx, llm, LLMCallKind.FILE_PREDICTION, FILE_PREDICTION_SYSTEM, prompt,
        ctx.limits.file_prediction_max_tokens,
    )
    if completion is None or not completion.text.strip():
        return UNCLEAR_INTEREST
    return completion.text.strip()


# ---------------------------------------------------------------------------
# Snippet fallback
# ---------------------------------------------------------------------------

def heuristic_finding(hit: Hit) -> Finding:
    """An unverified finding built from the search snippet alone."""
    statement = f"{hit.title}: {hit.snippet}" if hit.title else hit.snippet
    if hit.enriched is not None:
        return Finding(
            statement=statement,
            category=SectionCategory.LEADERSHIP if hit.enriched == "person" else SectionCategory.CORPORATE,
            severity=Severity.INFO,
            source_url=hit.url,
            origin=FindingOrigin.ENRICHMENT_PROFILE,
        )
    return Finding(
        statement=statement,
        category=SectionCategory.MISC,
        severity=Severity.MEDIUM if has_risk_vocabulary(hit.snippet) else Severity.LOW,
        source_url=hit.url,
        origin=FindingOrigin.HEURISTIC_SNIPPET,
    )
