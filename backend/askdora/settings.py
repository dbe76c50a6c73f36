from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Primary answer provider (Gemini). Leave the key unset to skip the primary slot.
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	primary_timeout_seconds: float = Field(default=5.0, validation_alias="PRIMARY_TIMEOUT_SECONDS")

	# Secondary answer provider (OpenRouter)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Ask Dora", validation_alias="OPENROUTER_TITLE")
	secondary_timeout_seconds: float = Field(default=8.0, validation_alias="SECONDARY_TIMEOUT_SECONDS")

	# Dialogue context: turns sent to a provider / turns loaded from the transcript
	context_turns: int = Field(default=6, validation_alias="CONTEXT_TURNS")
	history_turns: int = Field(default=6, validation_alias="HISTORY_TURNS")

	# Per-profile fixed-window quota
	rate_limit_requests: int = Field(default=20, validation_alias="RATE_LIMIT_REQUESTS")
	rate_limit_window_seconds: float = Field(default=3600.0, validation_alias="RATE_LIMIT_WINDOW_SECONDS")

	# Speech synthesis (Google Cloud Text-to-Speech REST)
	tts_api_key: str | None = Field(default=None, validation_alias="TTS_API_KEY")
	tts_base_url: str = Field(default="https://texttospeech.googleapis.com/v1/text:synthesize", validation_alias="TTS_BASE_URL")
	tts_voice: str = Field(default="en-US-Neural2-F", validation_alias="TTS_VOICE")
	tts_language: str = Field(default="en-US", validation_alias="TTS_LANGUAGE")
	tts_speaking_rate: float = Field(default=0.95, validation_alias="TTS_SPEAKING_RATE")
	tts_timeout_seconds: float = Field(default=15.0, validation_alias="TTS_TIMEOUT_SECONDS")
	audio_dir: str = Field(default="./data/audio", validation_alias="AUDIO_DIR")
	audio_url_prefix: str = Field(default="/ask-dora/audio", validation_alias="AUDIO_URL_PREFIX")
	# Synthesize the greeting phrases in the background at startup
	warm_greetings: bool = Field(default=True, validation_alias="WARM_GREETINGS")

	# Identity: tokens are issued elsewhere, we only verify them
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
