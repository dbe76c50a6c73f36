"""
Test doubles shared by the Ask Dora tests.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from askdora.conversation_store import Role, Turn
from askdora.errors import ProviderError
from askdora.providers import AnswerHints, AnswerProvider


class FakeClock:
	"""Manually advanced monotonic clock."""

	def __init__(self, start: float = 1000.0) -> None:
		self.now = start

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


class ScriptedProvider(AnswerProvider):
	"""Provider returning a fixed answer or raising, recording every call."""

	def __init__(self, name: str, reply: Optional[str] = None, error: Optional[Exception] = None, delay: float = 0.0) -> None:
		self.name = name
		self.reply = reply
		self.error = error
		self.delay = delay
		self.calls: List[dict] = []
		self.closed = False

	async def answer(self, framing: str, history: Sequence[Turn], question: str, hints: AnswerHints) -> str:
		self.calls.append({"framing": framing, "history": list(history), "question": question, "hints": hints})
		if self.delay:
			await asyncio.sleep(self.delay)
		if self.error is not None:
			raise self.error
		if not self.reply:
			raise ProviderError(self.name, "empty answer")
		return self.reply

	async def aclose(self) -> None:
		self.closed = True


def make_turn(role: Role, text: str, idx: int = 0, conversation_id: str = "c1") -> Turn:
	return Turn(
		id=f"t{idx}",
		conversation_id=conversation_id,
		role=role,
		text=text,
		created_at=datetime(2024, 1, 1, 12, 0, idx, tzinfo=timezone.utc),
	)
