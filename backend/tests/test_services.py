"""
Tests for build_services: an injected Settings configures every component.
"""

import pytest

from askdora.providers import GeminiProvider, OpenRouterProvider
from askdora.services import build_services
from askdora.settings import Settings
from askdora.speech import GoogleSpeechSynthesizer


@pytest.fixture
def cfg(tmp_path) -> Settings:
	return Settings(
		GEMINI_API_KEY="g-key",
		GEMINI_PROVIDER="vertex",
		GEMINI_MODEL="gemini-test",
		GEMINI_VERTEX_REGION="europe-west4",
		GEMINI_VERTEX_PROJECT="dora-project",
		OPENROUTER_API_KEY="o-key",
		OPENROUTER_BASE_URL="https://router.example/v1/chat",
		OPENROUTER_HTTP_REFERER="https://dora.example",
		OPENROUTER_TITLE="Dora Test",
		TTS_API_KEY="t-key",
		TTS_BASE_URL="https://tts.example/v1/text:synthesize",
		TTS_VOICE="en-GB-Test",
		TTS_LANGUAGE="en-GB",
		TTS_SPEAKING_RATE=1.1,
		AUDIO_DIR=str(tmp_path / "audio"),
		AUDIO_URL_PREFIX="/static/dora-audio/",
		HISTORY_TURNS=4,
	)


class TestBuildServices:
	@pytest.mark.asyncio
	async def test_primary_uses_injected_vertex_settings(self, cfg, session_factory) -> None:
		services = build_services(cfg, session_factory=session_factory)
		primary = services.router.primary
		try:
			assert isinstance(primary, GeminiProvider)
			assert primary.provider == "vertex"
			assert primary.base_url.startswith("https://europe-west4-aiplatform.googleapis.com/")
			assert "/projects/dora-project/locations/europe-west4/" in primary.base_url
			assert primary.base_url.endswith("/models/gemini-test:generateContent")
		finally:
			await services.aclose()

	@pytest.mark.asyncio
	async def test_secondary_uses_injected_headers(self, cfg, session_factory) -> None:
		services = build_services(cfg, session_factory=session_factory)
		secondary = services.router.secondary
		try:
			assert isinstance(secondary, OpenRouterProvider)
			assert secondary.base_url == "https://router.example/v1/chat"
			assert secondary._headers["HTTP-Referer"] == "https://dora.example"
			assert secondary._headers["X-Title"] == "Dora Test"
		finally:
			await services.aclose()

	@pytest.mark.asyncio
	async def test_speech_uses_injected_voice(self, cfg, session_factory) -> None:
		services = build_services(cfg, session_factory=session_factory)
		synth = services.audio_cache.synthesizer
		try:
			assert isinstance(synth, GoogleSpeechSynthesizer)
			assert synth.base_url == "https://tts.example/v1/text:synthesize"
			assert synth.build_payload("hi")["voice"] == {"languageCode": "en-GB", "name": "en-GB-Test"}
			assert synth.speaking_rate == 1.1
		finally:
			await services.aclose()

	@pytest.mark.asyncio
	async def test_audio_urls_and_history_follow_injected_settings(self, cfg, session_factory) -> None:
		services = build_services(cfg, session_factory=session_factory)
		try:
			assert services.audio_url("abc") == "/static/dora-audio/abc"
			assert services.audio_url(None) is None
			assert services.pipeline.history_turns == 4
		finally:
			await services.aclose()
