"""Unified LLM client — routes to Anthropic (primary) or OpenAI (fallback)."""

from __future__ import annotations

import asyncio
import logging

import anthropic
from openai import AsyncOpenAI

from dealbrief.config import Config
from dealbrief.context import RunContext, estimate_tokens
from dealbrief.models import Completion, LLMCallKind

logger = logging.getLogger(__name__)


class _AnthropicBillingError(Exception):
    """Raised when Anthropic returns a billing/credit error."""


class LLMClient:
    """Complete a system + user prompt pair.

    Tries Anthropic first. If Anthropic returns a billing/auth error
    (400/401/402), falls back to OpenAI for this call AND all later calls
    made through this instance.
    """

    def __init__(
        self,
        anthropic_api_key: str = "",
        openai_api_key: str = "",
        anthropic_model: str = "claude-3-5-haiku-latest",
        openai_model: str = "gpt-4o-mini",
        timeout: float = 120,
    ):
        self.anthropic_api_key = anthropic_api_key
        self.openai_api_key = openai_api_key
        self.anthropic_model = anthropic_model
        self.openai_model = openai_model
        self.timeout = timeout
        self.active_provider: str | None = None
        self._anthropic_failed = False
        self._anthropic: anthropic.AsyncAnthropic | None = None
        self._openai: AsyncOpenAI | None = None

    @classmethod
    def from_config(cls, config: Config) -> LLMClient:
        return cls(
            anthropic_api_key=config.anthropic_api_key,
            openai_api_key=config.openai_api_key,
            anthropic_model=config.anthropic_model,
            openai_model=config.openai_model,
            timeout=config.limits.llm_timeout_seconds,
        )

    async def close(self) -> None:
        """Close whichever SDK clients were created."""
        if self._anthropic is not None:
            await self._anthropic.close()
            self._anthropic = None
        if self._openai is not None:
            await self._openai.close()
            self._openai = None

    async def complete(
        self,
        system: str,
        user: str,
        max_tokens: int,
        temperature: float = 0.2,
    ) -> Completion:
        if not self._anthropic_failed and self.anthropic_api_key:
            try:
                return await asyncio.wait_for(
                    self._call_anthropic(system, user, max_tokens, temperature),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Anthropic call timed out after %.0fs", self.timeout)
                if not self.openai_api_key:
                    raise RuntimeError(f"Anthropic LLM call timed out after {self.timeout:.0f}s")
                logger.info("Falling back to OpenAI for this call")
            except _AnthropicBillingError:
                logger.warning("Anthropic billing error — switching to OpenAI for all future calls")
                self._anthropic_failed = True
            except Exception as e:
                logger.error("Anthropic error: %s", e)
                if not self.openai_api_key:
                    raise
                logger.info("Falling back to OpenAI for this call")

        if self.openai_api_key:
            if self.active_provider != "openai":
                self.active_provider = "openai"
                logger.info("Using OpenAI (%s) for LLM calls", self.openai_model)
            return await asyncio.wait_for(
                self._call_openai(system, user, max_tokens, temperature),
                timeout=self.timeout,
            )

        raise RuntimeError(
            "No LLM provider available. Anthropic is unavailable and "
            "no OPENAI_API_KEY is set."
        )

    async def _call_anthropic(
        self, system: str, user: str, max_tokens: int, temperature: float,
    ) -> Completion:
        if self._anthropic is None:
            self._anthropic = anthropic.AsyncAnthropic(api_key=self.anthropic_api_key)
        try:
            response = await self._anthropic.messages.create(
                model=self.anthropic_model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except anthropic.APIStatusError as e:
            if e.status_code in (400, 401, 402):
                msg = str(e).lower()
                if "credit" in msg or "balance" in msg or "billing" in msg:
                    raise _AnthropicBillingError(str(e)) from e
            raise
        self.active_provider = "anthropic"
        text = "".join(getattr(block, "text", "") for block in response.content)
        usage = getattr(response, "usage", None)
        return Completion(text=text, output_tokens=getattr(usage, "output_tokens", None))

    async def _call_openai(
        self, system: str, user: str, max_tokens: int, temperature: float,
    ) -> Completion:
        if self._openai is None:
            self._openai = AsyncOpenAI(api_key=self.openai_api_key)
        response = await self._openai.chat.completions.create(
            model=self.openai_model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        usage = getattr(response, "usage", None)
        return Completion(
            text=response.choices[0].message.content or "",
            output_tokens=getattr(usage, "completion_tokens", None),
        )


async def metered_complete(
    ctx: RunContext,
    llm,
    kind: LLMCallKind,
    system: str,
    user: str,
    max_tokens: int,
) -> Completion | None:
    """Issue one LLM call through the run's ledger.

    Returns None when the call is refused by the spend cap or fails. Refused
    calls are not counted; failed calls are.
    """
    input_tokens = estimate_tokens(system) + estimate_tokens(user)
    projected = ctx.ledger.llm_cost(ctx.config, extra_input=input_tokens, extra_output=max_tokens)
    if projected > ctx.limits.llm_usd_cap:
        logger.warning(
            "LLM spend cap ($%.2f) reached — skipping %s call", ctx.limits.llm_usd_cap, kind.value,
        )
        return None

    ctx.ledger.record_llm_call(kind)
    ctx.ledger.input_tokens += input_tokens
    try:
        completion = await asyncio.wait_for(
            llm.complete(system, user, max_tokens),
            timeout=ctx.limits.llm_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("LLM %s call timed out after %.0fs", kind.value, ctx.limits.llm_timeout_seconds)
        return None
    except Exception as e:
        logger.warning("LLM %s call failed: %s", kind.value, e)
        return None

    if completion.output_tokens is not None:
        ctx.ledger.output_tokens += completion.output_tokens
    else:
        ctx.ledger.output_tokens += estimate_tokens(completion.text)
    return completion
