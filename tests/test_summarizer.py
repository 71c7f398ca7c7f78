import pytest

from dealbrief.analysis.summarizer import (
    EXEC_SUMMARY_SKIPPED,
    EXEC_SUMMARY_UNAVAILABLE,
    GENERIC_EXEC_SUMMARY,
    NO_FINDINGS_SUMMARY,
    SUMMARY_SKIPPED,
    SUMMARY_UNAVAILABLE,
    summarize_executive,
    summarize_sections,
)
from dealbrief.context import RunContext
from dealbrief.models import Finding, SectionCategory, Severity
from tests.fakes import FakeLLM, make_config


def _add(ctx, statement, category, severity=Severity.MEDIUM, marker=1):
    ctx.sections.add(Finding(statement=statement, category=category, severity=severity,
                             source_url=f"https://h{marker}.example/x"), marker)


class TestSectionSummaries:
    @pytest.mark.asyncio
    async def test_empty_sections_get_fixed_text_without_llm(self, ctx):
        llm = FakeLLM("should not be used")
        sections = await summarize_sections(ctx, llm)
        assert [s.name for s in sections] == list(SectionCategory)
        assert all(s.summary == NO_FINDINGS_SUMMARY for s in sections)
        assert llm.calls == []
        assert ctx.ledger.summarization_calls == 0

    @pytest.mark.asyncio
    async def test_one_call_per_non_empty_section(self, ctx):
        _add(ctx, "Acme Widgets sued by regulator", SectionCategory.LEGAL, marker=1)
        _add(ctx, "Acme Widgets suffered data breach", SectionCategory.CYBER, marker=2)
        llm = FakeLLM("Two-sentence summary.")
        sections = await summarize_sections(ctx, llm)

        by_name = {s.name: s for s in sections}
        assert by_name[SectionCategory.LEGAL].summary == "Two-sentence summary."
        assert by_name[SectionCategory.CORPORATE].summary == NO_FINDINGS_SUMMARY
        assert len(llm.calls) == 2
        assert ctx.ledger.summarization_calls == 2
        _, user, max_tokens = llm.calls[0]
        assert "- Acme Widgets sued by regulator" in user
        assert max_tokens == ctx.limits.section_summary_max_tokens

    @pytest.mark.asyncio
    async def test_failure_gives_unavailable(self, ctx):
        _add(ctx, "Acme Widgets sued", SectionCategory.LEGAL)
        sections = await summarize_sections(ctx, FakeLLM(fail=True))
        legal = next(s for s in sections if s.name == SectionCategory.LEGAL)
        assert legal.summary == SUMMARY_UNAVAILABLE
        assert len(legal.bullets) == 1

    @pytest.mark.asyncio
    async def test_skipped_when_run_budget_exhausted(self, identity):
        ctx = RunContext(config=make_config(run_budget_seconds=0.0), identity=identity)
        _add(ctx, "Acme Widgets sued", SectionCategory.LEGAL)
        llm = FakeLLM("x")
        sections = await summarize_sections(ctx, llm)
        assert sections[SectionCategory.LEGAL.order].summary == SUMMARY_SKIPPED
        assert await summarize_executive(ctx, llm, sections) == EXEC_SUMMARY_SKIPPED
        assert llm.calls == []


class TestExecutiveSummary:
    @pytest.mark.asyncio
    async def test_generic_when_nothing_found(self, ctx):
        llm = FakeLLM("x")
        sections = await summarize_sections(ctx, llm)
        assert await summarize_executive(ctx, llm, sections) == GENERIC_EXEC_SUMMARY
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_prompt_uses_summaries_and_top_findings(self, ctx):
        _add(ctx, "Acme Widgets breach exposed records", SectionCategory.CYBER, Severity.CRITICAL, 1)
        _add(ctx, "Acme Widgets opened office", SectionCategory.CORPORATE, Severity.INFO, 2)
        llm = FakeLLM("Summary text.")
        sections = await summarize_sections(ctx, llm)
        summary = await summarize_executive(ctx, llm, sections)

        assert summary == "Summary text."
        _, user, max_tokens = llm.calls[-1]
        assert "[CRITICAL] Acme Widgets breach exposed records" in user
        assert "opened office" not in user.split("HIGH-SEVERITY FINDINGS:")[1]
        assert max_tokens == ctx.limits.exec_summary_max_tokens
        assert ctx.ledger.summarization_calls == 3

    @pytest.mark.asyncio
    async def test_failure_gives_unavailable(self, ctx):
        _add(ctx, "Acme Widgets sued", SectionCategory.LEGAL)
        llm = FakeLLM(fail=True)
        sections = await summarize_sections(ctx, llm)
        assert await summarize_executive(ctx, llm, sections) == EXEC_SUMMARY_UNAVAILABLE
