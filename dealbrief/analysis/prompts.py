"""LLM prompt templates for insight extraction, file triage and summaries."""

from __future__ import annotations

from dealbrief.models import CanonicalIdentity, ReportBullet, SectionCategory, Severity

_SECTION_NAMES = ", ".join(c.value for c in SectionCategory)
_SEVERITY_NAMES = ", ".join(s.value for s in Severity)


# ---------------------------------------------------------------------------
# PROMPT 1: Insight extraction (one call per scraped page)
# ---------------------------------------------------------------------------

EXTRACTION_SYSTEM = "You are an OSINT analyst performing due diligence on a company."

EXTRACTION_PROMPT = """CONTEXT: Web page text from {url}.
Company analysed: "{company_name}" (domain {domain}). Owners/key personnel: {owners}.

**CRITICAL RULES:**
1. Report ONLY facts explicitly stated in the text below
2. Every finding must be about "{company_name}", its domain or the people listed above
3. Name the company (or the person) in every statement
4. If there is nothing relevant, respond with []

TEXT:
{text}

TASK:
Extract up to {max_findings} actionable due-diligence findings.

Respond with ONLY a JSON array (no markdown, no explanations). Each item:
{{
  "statement": "one-sentence finding",
  "supportingQuote": "short verbatim quote from the text, or null",
  "category": one of {sections},
  "severity": one of {severities}
}}"""


def build_extraction_prompt(
    identity: CanonicalIdentity,
    url: str,
    text: str,
    max_findings: int,
) -> str:
    return EXTRACTION_PROMPT.format(
        url=url,
        company_name=identity.canonical_name,
        domain=identity.domain,
        owners=", ".join(identity.owner_names) or "N/A",
        text=text,
        max_findings=max_findings,
        sections=_SECTION_NAMES,
        severities=_SEVERITY_NAMES,
    )


# ---------------------------------------------------------------------------
# PROMPT 2: File triage (documents are never scraped)
# ---------------------------------------------------------------------------

FILE_PREDICTION_SYSTEM = "You are an analyst triaging documents for manual review."

FILE_PREDICTION_PROMPT = """File URL: {url}
Title: {title}
Snippet: {snippet}

In one short sentence, describe the potential due-diligence interest of this file for "{company_name}"."""


def build_file_prediction_prompt(
    identity: CanonicalIdentity, url: str, title: str, snippet: str,
) -> str:
    return FILE_PREDICTION_PROMPT.format(
        url=url,
        title=title or "N/A",
        snippet=snippet or "N/A",
        company_name=identity.canonical_name,
    )


# ---------------------------------------------------------------------------
# PROMPT 3: Section summary
# ---------------------------------------------------------------------------

SECTION_SUMMARY_SYSTEM = (
    "You are a due-diligence analyst. Summarise ONLY the findings you are given. "
    "Do not add facts, speculation or recommendations."
)

SECTION_SUMMARY_PROMPT = """Summarise the following {section} findings for "{company_name}" in 2-4 sentences:
{bullets}"""


def build_section_summary_prompt(
    identity: CanonicalIdentity,
    section: SectionCategory,
    bullets: list[ReportBullet],
    max_bullets: int,
    max_chars: int,
) -> str:
    lines = "\n".join(f"- {b.text[:max_chars]}" for b in bullets[:max_bullets])
    return SECTION_SUMMARY_PROMPT.format(
        section=section.value,
        company_name=identity.canonical_name,
        bullets=lines,
    )


# ---------------------------------------------------------------------------
# PROMPT 4: Executive summary
# ---------------------------------------------------------------------------

EXEC_SUMMARY_SYSTEM = (
    "You are a principal OSINT investigator. Base the summary strictly on the "
    "section summaries and findings provided."
)

EXEC_SUMMARY_PROMPT = """Prepare a concise executive summary of the most critical findings for "{company_name}".

SECTION SUMMARIES:
{section_summaries}

HIGH-SEVERITY FINDINGS:
{top_findings}"""


def build_exec_summary_prompt(
    identity: CanonicalIdentity,
    section_summaries: list[tuple[SectionCategory, str]],
    top_findings: list[ReportBullet],
) -> str:
    summaries = "\n".join(f"{name.value}: {summary}" for name, summary in section_summaries)
    findings = "\n".join(f"- [{b.severity.value}] {b.text}" for b in top_findings)
    return EXEC_SUMMARY_PROMPT.format(
        company_name=identity.canonical_name,
        section_summaries=summaries,
        top_findings=findings or "No high-severity findings.",
    )
