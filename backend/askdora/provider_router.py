"""Primary/secondary answer routing with a canned local fallback.

Providers are tried one after the other, never concurrently, each under its own
timeout. Whatever happens, `answer` returns text.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel

from .conversation_store import Role, Turn
from .errors import ProviderError
from .providers import AnswerHints, AnswerProvider

logger = logging.getLogger("askdora.provider_router")


class AnswerSource(str, Enum):
	PRIMARY = "primary"
	SECONDARY = "secondary"
	LOCAL_FALLBACK = "local-fallback"


class RoutedAnswer(BaseModel):
	text: str
	source: AnswerSource


LOCAL_APOLOGY = "Oops! 🌈 I got a little confused. Can you ask me again, friend? 💫"

SYSTEM_FRAMING = """You are Dora, a friendly and enthusiastic AI teacher for young children (ages 3-8).

Rules:
- Use simple words a 5-year-old understands
- Keep responses short (2-4 sentences max)
- Be warm, encouraging, and patient
- Use lots of emojis! 🌟⭐💫
- Always be positive and supportive
- If you don't know something, say "Let's find out together!"
- Never discuss anything inappropriate for children
- Redirect scary/violent topics to something fun"""


def build_framing(hints: AnswerHints) -> str:
	lines = [SYSTEM_FRAMING]
	if hints.child_name:
		lines.append(f"You are talking with {hints.child_name}. Use their name now and then.")
	if hints.age is not None:
		lines.append(f"The child is {hints.age} years old; pitch your words for that age.")
	return "\n\n".join(lines)


def condense_context(context: Sequence[Turn], question: str, max_turns: int) -> List[Turn]:
	turns = list(context)
	# The pipeline stores the question before asking, so it may already be the last turn
	if turns and turns[-1].role == Role.CHILD and turns[-1].text.strip() == question.strip():
		turns = turns[:-1]
	if max_turns <= 0:
		return []
	return turns[-max_turns:]


class ProviderRouter:
	def __init__(
		self,
		primary: Optional[AnswerProvider] = None,
		secondary: Optional[AnswerProvider] = None,
		*,
		primary_timeout: float = 5.0,
		secondary_timeout: float = 8.0,
		context_turns: int = 6,
	) -> None:
		self.primary = primary
		self.secondary = secondary
		self.primary_timeout = primary_timeout
		self.secondary_timeout = secondary_timeout
		self.context_turns = context_turns

	async def _try(self, provider: AnswerProvider, timeout: float, framing: str, history: List[Turn], question: str, hints: AnswerHints) -> Optional[str]:
		try:
			return await asyncio.wait_for(provider.answer(framing, history, question, hints), timeout=timeout)
		except asyncio.TimeoutError:
			logger.warning("provider %s timed out after %.1fs", provider.name, timeout)
		except ProviderError as e:
			logger.warning("provider %s failed: %s", provider.name, e)
		except Exception:
			logger.exception("provider %s raised unexpectedly", provider.name)
		return None

	async def answer(self, context: Sequence[Turn], question: str, hints: Optional[AnswerHints] = None) -> RoutedAnswer:
		hints = hints or AnswerHints()
		framing = build_framing(hints)
		history = condense_context(context, question, self.context_turns)
		slots = (
			(self.primary, self.primary_timeout, AnswerSource.PRIMARY),
			(self.secondary, self.secondary_timeout, AnswerSource.SECONDARY),
		)
		for provider, timeout, source in slots:
			if provider is None:
				continue
			text = await self._try(provider, timeout, framing, history, question, hints)
			if text:
				return RoutedAnswer(text=text, source=source)
		logger.warning("no provider answered, using local apology")
		return RoutedAnswer(text=LOCAL_APOLOGY, source=AnswerSource.LOCAL_FALLBACK)

	async def aclose(self) -> None:
		for provider in (self.primary, self.secondary):
			if provider is not None:
				await provider.aclose()
