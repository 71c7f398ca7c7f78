import asyncio

import pytest

from dealbrief.analysis.llm_client import metered_complete
from dealbrief.context import CostLedger, RunContext, estimate_tokens
from dealbrief.models import Completion, Hit, LLMCallKind, ScrapeTarget
from tests.fakes import FakeLLM, make_config


class TestCostLedger:
    def test_total_is_sum_of_components(self, config):
        ledger = CostLedger(search_calls=7, scrape_attempts=13, enrichment_calls=3,
                            input_tokens=12_345, output_tokens=6_789)
        cost = ledger.cost(config)
        assert cost.search == pytest.approx(0.007)
        assert cost.scrape == pytest.approx(0.026)
        assert cost.enrichment == pytest.approx(0.03)
        assert cost.total == pytest.approx(cost.search + cost.scrape + cost.enrichment + cost.llm)

    def test_llm_cost_uses_pricing(self, config):
        ledger = CostLedger(input_tokens=1_000_000, output_tokens=1_000_000)
        assert ledger.cost(config).llm == pytest.approx(0.75)

    def test_stats_are_camel_case(self):
        stats = CostLedger(search_calls=2, extraction_calls=1).stats(12.34)
        data = stats.model_dump(by_alias=True)
        assert data["queryCount"] == 2
        assert data["extractionCalls"] == 1
        assert data["wallTimeSeconds"] == 12.3

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcdefg") == 2
        assert estimate_tokens("abcdefgh") == 3


class TestCitations:
    def test_markers_are_contiguous(self, ctx):
        for i in range(3):
            ctx.add_citation(ScrapeTarget(hit=Hit(url=f"https://h{i}.example", title=""), priority=1, rank=i + 1))
        assert [c.marker for c in ctx.citations] == [1, 2, 3]
        assert ctx.citations[0].title == "Untitled"


class TestMeteredComplete:
    @pytest.mark.asyncio
    async def test_counts_tokens_and_calls(self, ctx):
        completion = await metered_complete(ctx, FakeLLM("ok", output_tokens=42),
                                            LLMCallKind.SUMMARIZATION, "sys", "user", 100)
        assert completion.text == "ok"
        assert ctx.ledger.summarization_calls == 1
        assert ctx.ledger.input_tokens == estimate_tokens("sys") + estimate_tokens("user")
        assert ctx.ledger.output_tokens == 42

    @pytest.mark.asyncio
    async def test_estimates_output_when_usage_missing(self, ctx):
        await metered_complete(ctx, FakeLLM("x" * 35, output_tokens=None),
                               LLMCallKind.EXTRACTION, "s", "u", 100)
        assert ctx.ledger.output_tokens == 10

    @pytest.mark.asyncio
    async def test_spend_cap_refuses_call(self, identity):
        ctx = RunContext(config=make_config(llm_usd_cap=0.0), identity=identity)
        llm = FakeLLM("ok")
        assert await metered_complete(ctx, llm, LLMCallKind.EXTRACTION, "s", "u", 100) is None
        assert llm.calls == []
        assert ctx.ledger.extraction_calls == 0

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self, identity):
        class SlowLLM:
            async def complete(self, system, user, max_tokens, temperature=0.2):
                await asyncio.sleep(5)
                return Completion(text="late")

        ctx = RunContext(config=make_config(llm_timeout_seconds=0.01), identity=identity)
        assert await metered_complete(ctx, SlowLLM(), LLMCallKind.FILE_PREDICTION, "s", "u", 10) is None
        assert ctx.ledger.file_prediction_calls == 1
