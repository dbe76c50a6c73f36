from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from .audio_cache import AudioCache
from .conversation_store import ConversationStore
from .db import SessionLocal
from .pipeline import MessagePipeline
from .provider_router import ProviderRouter
from .providers import AnswerProvider, GeminiProvider, OpenRouterProvider
from .rate_limiter import RateLimiter
from .settings import Settings, settings
from .speech import AudioBlobStore, GoogleSpeechSynthesizer, SpeechSynthesizer

logger = logging.getLogger("askdora.services")

# Fixed greeting phrases; pre-warmed at startup so a new conversation starts with ready audio
GREETINGS = {
	"greeting_explorer": "Hi there, little explorer! 🌟 I'm Dora, your learning buddy! What would you like to know today?",
	"greeting_curious": "Hello, curious friend! 🦊 I'm Dora! Ask me anything and we'll find out together!",
	"greeting_adventure": "Yay, you're here! 🎉 I'm Dora! What shall we discover today?",
}


@dataclass
class Services:
	rate_limiter: RateLimiter
	store: ConversationStore
	router: ProviderRouter
	audio_cache: AudioCache
	pipeline: MessagePipeline
	audio_url_prefix: str = "/ask-dora/audio"

	def audio_url(self, asset_ref: Optional[str]) -> Optional[str]:
		if not asset_ref:
			return None
		return f"{self.audio_url_prefix.rstrip('/')}/{asset_ref}"

	async def aclose(self) -> None:
		await self.router.aclose()
		if self.audio_cache.synthesizer is not None:
			await self.audio_cache.synthesizer.aclose()


def build_services(
	cfg: Optional[Settings] = None,
	*,
	session_factory: Callable[[], Session] = SessionLocal,
	primary: Optional[AnswerProvider] = None,
	secondary: Optional[AnswerProvider] = None,
	synthesizer: Optional[SpeechSynthesizer] = None,
) -> Services:
	cfg = cfg or settings
	if primary is None and cfg.gemini_api_key:
		primary = GeminiProvider(
			cfg.gemini_api_key,
			model=cfg.gemini_model,
			provider=cfg.gemini_provider,
			vertex_region=cfg.vertex_region,
			vertex_project=cfg.vertex_project,
			timeout=cfg.primary_timeout_seconds,
		)
	if secondary is None and cfg.openrouter_api_key:
		secondary = OpenRouterProvider(
			cfg.openrouter_api_key,
			base_url=cfg.openrouter_base_url,
			model=cfg.openrouter_model,
			referer=cfg.openrouter_referer,
			title=cfg.openrouter_title,
			timeout=cfg.secondary_timeout_seconds,
		)
	if synthesizer is None and cfg.tts_api_key:
		synthesizer = GoogleSpeechSynthesizer(
			cfg.tts_api_key,
			base_url=cfg.tts_base_url,
			voice=cfg.tts_voice,
			language=cfg.tts_language,
			speaking_rate=cfg.tts_speaking_rate,
			timeout=cfg.tts_timeout_seconds,
		)
	if primary is None and secondary is None:
		logger.warning("no answer provider configured; every reply will be the local apology")

	rate_limiter = RateLimiter(cfg.rate_limit_requests, cfg.rate_limit_window_seconds)
	store = ConversationStore(session_factory)
	router = ProviderRouter(
		primary,
		secondary,
		primary_timeout=cfg.primary_timeout_seconds,
		secondary_timeout=cfg.secondary_timeout_seconds,
		context_turns=cfg.context_turns,
	)
	audio_cache = AudioCache(AudioBlobStore(cfg.audio_dir), synthesizer, timeout=cfg.tts_timeout_seconds)
	pipeline = MessagePipeline(rate_limiter, store, router, audio_cache, history_turns=cfg.history_turns)
	return Services(
		rate_limiter=rate_limiter,
		store=store,
		router=router,
		audio_cache=audio_cache,
		pipeline=pipeline,
		audio_url_prefix=cfg.audio_url_prefix,
	)


def get_services(request: Request) -> Services:
	return request.app.state.services
