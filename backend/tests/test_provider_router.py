"""
Tests for ProviderRouter failover: primary, then secondary, then the local apology.
"""

import asyncio

import pytest

from askdora.conversation_store import Role
from askdora.errors import ProviderError
from askdora.provider_router import (
	LOCAL_APOLOGY,
	AnswerSource,
	ProviderRouter,
	build_framing,
	condense_context,
)
from askdora.providers import AnswerHints
from helpers import ScriptedProvider, make_turn


class TestFailover:
	@pytest.mark.asyncio
	async def test_primary_answers(self) -> None:
		primary = ScriptedProvider("gemini", reply="The sky scatters blue light! 💙")
		secondary = ScriptedProvider("openrouter", reply="unused")
		router = ProviderRouter(primary, secondary)

		result = await router.answer([], "why is the sky blue?")

		assert result.source == AnswerSource.PRIMARY
		assert result.text == "The sky scatters blue light! 💙"
		assert secondary.calls == []

	@pytest.mark.asyncio
	async def test_primary_error_falls_to_secondary(self) -> None:
		primary = ScriptedProvider("gemini", error=ProviderError("gemini", "HTTP 500"))
		secondary = ScriptedProvider("openrouter", reply="Backup answer 🌟")
		router = ProviderRouter(primary, secondary)

		result = await router.answer([], "why?")

		assert result.source == AnswerSource.SECONDARY
		assert result.text == "Backup answer 🌟"
		assert len(primary.calls) == 1
		assert len(secondary.calls) == 1

	@pytest.mark.asyncio
	async def test_primary_timeout_falls_to_secondary(self) -> None:
		primary = ScriptedProvider("gemini", reply="too late", delay=1.0)
		secondary = ScriptedProvider("openrouter", reply="on time")
		router = ProviderRouter(primary, secondary, primary_timeout=0.05, secondary_timeout=1.0)

		result = await router.answer([], "why?")

		assert result.source == AnswerSource.SECONDARY
		assert result.text == "on time"

	@pytest.mark.asyncio
	async def test_empty_primary_answer_falls_through(self) -> None:
		primary = ScriptedProvider("gemini", reply="")
		secondary = ScriptedProvider("openrouter", reply="something")
		result = await ProviderRouter(primary, secondary).answer([], "why?")
		assert result.source == AnswerSource.SECONDARY

	@pytest.mark.asyncio
	async def test_unexpected_exception_is_absorbed(self) -> None:
		primary = ScriptedProvider("gemini", error=KeyError("boom"))
		secondary = ScriptedProvider("openrouter", reply="fine")
		result = await ProviderRouter(primary, secondary).answer([], "why?")
		assert result.source == AnswerSource.SECONDARY

	@pytest.mark.asyncio
	async def test_both_fail_returns_apology(self) -> None:
		primary = ScriptedProvider("gemini", error=ProviderError("gemini", "down"))
		secondary = ScriptedProvider("openrouter", reply="late", delay=1.0)
		router = ProviderRouter(primary, secondary, secondary_timeout=0.05)

		result = await router.answer([], "why?")

		assert result.source == AnswerSource.LOCAL_FALLBACK
		assert result.text == LOCAL_APOLOGY

	@pytest.mark.asyncio
	async def test_no_providers_configured(self) -> None:
		result = await ProviderRouter().answer([], "why?")
		assert result.source == AnswerSource.LOCAL_FALLBACK
		assert result.text == LOCAL_APOLOGY

	@pytest.mark.asyncio
	async def test_missing_primary_goes_straight_to_secondary(self) -> None:
		secondary = ScriptedProvider("openrouter", reply="hi")
		result = await ProviderRouter(None, secondary).answer([], "why?")
		assert result.source == AnswerSource.SECONDARY

	@pytest.mark.asyncio
	async def test_providers_are_never_called_concurrently(self) -> None:
		active = 0
		peak = 0

		class Tracking(ScriptedProvider):
			async def answer(self, framing, history, question, hints):
				nonlocal active, peak
				active += 1
				peak = max(peak, active)
				try:
					await asyncio.sleep(0.01)
					return await super().answer(framing, history, question, hints)
				finally:
					active -= 1

		primary = Tracking("gemini", error=ProviderError("gemini", "down"))
		secondary = Tracking("openrouter", reply="ok")
		await ProviderRouter(primary, secondary).answer([], "why?")
		assert peak == 1

	@pytest.mark.asyncio
	async def test_aclose_closes_both(self) -> None:
		primary = ScriptedProvider("gemini", reply="a")
		secondary = ScriptedProvider("openrouter", reply="b")
		await ProviderRouter(primary, secondary).aclose()
		assert primary.closed and secondary.closed


class TestRequestConstruction:
	@pytest.mark.asyncio
	async def test_context_capped_to_k_turns(self) -> None:
		context = [make_turn(Role.CHILD if i % 2 == 0 else Role.ASSISTANT, f"m{i}", i) for i in range(10)]
		primary = ScriptedProvider("gemini", reply="ok")
		await ProviderRouter(primary, context_turns=4).answer(context, "new question")

		sent = primary.calls[0]["history"]
		assert [t.text for t in sent] == ["m6", "m7", "m8", "m9"]
		assert primary.calls[0]["question"] == "new question"

	def test_trailing_question_turn_not_duplicated(self) -> None:
		context = [
			make_turn(Role.CHILD, "hi", 0),
			make_turn(Role.ASSISTANT, "hello!", 1),
			make_turn(Role.CHILD, "why is grass green?", 2),
		]
		condensed = condense_context(context, "why is grass green?", 6)
		assert [t.text for t in condensed] == ["hi", "hello!"]

	def test_unrelated_trailing_turn_kept(self) -> None:
		context = [make_turn(Role.CHILD, "something else", 0)]
		assert len(condense_context(context, "why?", 6)) == 1

	def test_framing_includes_hints(self) -> None:
		framing = build_framing(AnswerHints(child_name="Mia", age=5))
		assert "You are Dora" in framing
		assert "Mia" in framing
		assert "5 years old" in framing

	def test_framing_without_hints(self) -> None:
		framing = build_framing(AnswerHints())
		assert "years old" not in framing
