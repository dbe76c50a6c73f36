from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel

from .conversation_store import Role, Turn
from .errors import ProviderError
from .settings import settings


class AnswerHints(BaseModel):
	child_name: Optional[str] = None
	age: Optional[int] = None


class AnswerProvider:
	"""One answer-generation backend.

	`answer` returns non-empty text or raises ProviderError. Timeouts are enforced by
	the caller; the client timeout here only bounds a single HTTP exchange.
	"""

	name: str = "provider"

	async def answer(self, framing: str, history: Sequence[Turn], question: str, hints: AnswerHints) -> str:
		raise NotImplementedError

	async def aclose(self) -> None:
		return None


def _require_text(provider: str, text: Any) -> str:
	if not isinstance(text, str) or not text.strip():
		raise ProviderError(provider, "empty answer")
	return text.strip()


class GeminiProvider(AnswerProvider):
	name = "gemini"

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		provider: Optional[str] = None,
		vertex_region: Optional[str] = None,
		vertex_project: Optional[str] = None,
		client: Optional[httpx.AsyncClient] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = provider or settings.gemini_provider
		if self.provider == "vertex":
			region = vertex_region or settings.vertex_region
			project = vertex_project or settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = client or httpx.AsyncClient(timeout=timeout or settings.primary_timeout_seconds)

	def build_payload(self, framing: str, history: Sequence[Turn], question: str) -> Dict[str, Any]:
		contents: List[Dict[str, Any]] = []
		for turn in history:
			role = "model" if turn.role == Role.ASSISTANT else "user"
			contents.append({"role": role, "parts": [{"text": turn.text}]})
		contents.append({"role": "user", "parts": [{"text": question}]})
		return {
			"systemInstruction": {"parts": [{"text": framing}]},
			"contents": contents,
		}

	async def answer(self, framing: str, history: Sequence[Turn], question: str, hints: AnswerHints) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		payload = self.build_payload(framing, history, question)
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise ProviderError(self.name, f"HTTP {http_err.response.status_code}") from http_err
		except httpx.RequestError as net_err:
			raise ProviderError(self.name, f"transport error: {net_err!r}") from net_err
		try:
			data = r.json()
			parts = data["candidates"][0]["content"]["parts"]
			text = "".join(p.get("text", "") for p in parts)
		except Exception as e:
			raise ProviderError(self.name, f"unexpected response: {r.text[:200]}") from e
		return _require_text(self.name, text)

	async def aclose(self) -> None:
		await self._client.aclose()


class OpenRouterProvider(AnswerProvider):
	name = "openrouter"

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		referer: Optional[str] = None,
		title: Optional[str] = None,
		client: Optional[httpx.AsyncClient] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.api_key = api_key or settings.openrouter_api_key
		if not self.api_key:
			raise ValueError("OPENROUTER_API_KEY is not configured")
		self.model = model or settings.openrouter_model
		self.base_url = base_url or settings.openrouter_base_url
		self._headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": referer if referer is not None else settings.openrouter_referer,
			"X-Title": title if title is not None else settings.openrouter_title,
		}
		self._client = client or httpx.AsyncClient(timeout=timeout or settings.secondary_timeout_seconds)

	def build_payload(self, framing: str, history: Sequence[Turn], question: str) -> Dict[str, Any]:
		messages: List[Dict[str, str]] = [{"role": "system", "content": framing}]
		for turn in history:
			role = "assistant" if turn.role == Role.ASSISTANT else "user"
			messages.append({"role": role, "content": turn.text})
		messages.append({"role": "user", "content": question})
		return {"model": self.model, "messages": messages}

	async def answer(self, framing: str, history: Sequence[Turn], question: str, hints: AnswerHints) -> str:
		headers = {k: v for k, v in self._headers.items() if v}
		payload = self.build_payload(framing, history, question)
		try:
			r = await self._client.post(self.base_url, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise ProviderError(self.name, f"HTTP {http_err.response.status_code}") from http_err
		except httpx.RequestError as net_err:
			raise ProviderError(self.name, f"transport error: {net_err!r}") from net_err
		try:
			data = r.json()
			text = data["choices"][0]["message"]["content"]
		except Exception as e:
			raise ProviderError(self.name, f"unexpected response: {r.text[:200]}") from e
		return _require_text(self.name, text)

	async def aclose(self) -> None:
		await self._client.aclose()
