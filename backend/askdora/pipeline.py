"""The "ask the assistant" pipeline.

Step order matters: the child's turn is stored before any provider is called and the
reply is stored before any audio is made, so the text transcript survives provider
and voice failures. Text-path errors propagate; audio failure only drops `audio_ref`.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from .audio_cache import AudioCache
from .conversation_store import ConversationStore, Role
from .errors import InvalidInput, NotFoundError, RateLimited, SynthesisUnavailable
from .provider_router import AnswerSource, ProviderRouter
from .providers import AnswerHints
from .rate_limiter import RateLimiter

logger = logging.getLogger("askdora.pipeline")

MAX_QUESTION_CHARS = 2000


class PipelineReply(BaseModel):
	reply_text: str
	audio_ref: Optional[str] = None
	source: AnswerSource
	rate_limit_remaining: int


class MessagePipeline:
	def __init__(
		self,
		rate_limiter: RateLimiter,
		store: ConversationStore,
		router: ProviderRouter,
		audio_cache: AudioCache,
		*,
		history_turns: int = 6,
	) -> None:
		self.rate_limiter = rate_limiter
		self.store = store
		self.router = router
		self.audio_cache = audio_cache
		self.history_turns = history_turns

	async def handle(
		self,
		profile_id: str,
		conversation_id: str,
		question_text: str,
		hints: Optional[AnswerHints] = None,
		*,
		owner_id: Optional[str] = None,
	) -> PipelineReply:
		"""Answer one question. With `owner_id`, the conversation must belong to that owner and profile."""
		question = (question_text or "").strip()
		if not question:
			raise InvalidInput("question text is required")
		if len(question) > MAX_QUESTION_CHARS:
			raise InvalidInput(f"question is longer than {MAX_QUESTION_CHARS} characters")

		admission = self.rate_limiter.admit(profile_id)
		if not admission.allowed:
			raise RateLimited(admission.retry_after)

		if owner_id is not None:
			conversation = await run_in_threadpool(self.store.get, conversation_id)
			if conversation.owner_id != owner_id or conversation.profile_id != profile_id:
				raise NotFoundError(f"conversation {conversation_id} not found")

		await run_in_threadpool(self.store.append, conversation_id, Role.CHILD, question)
		# One extra row: the newest turn is the question just stored, which the router drops
		history = await run_in_threadpool(self.store.recent_history, conversation_id, self.history_turns + 1)

		answer = await self.router.answer(history, question, hints)

		await run_in_threadpool(self.store.append, conversation_id, Role.ASSISTANT, answer.text)

		audio_ref: Optional[str] = None
		try:
			audio_ref = (await self.audio_cache.synthesize(answer.text)).asset_ref
		except SynthesisUnavailable as e:
			logger.info("replying without audio for conversation %s: %s", conversation_id, e)

		return PipelineReply(
			reply_text=answer.text,
			audio_ref=audio_ref,
			source=answer.source,
			rate_limit_remaining=admission.remaining,
		)
