from __future__ import annotations
import base64
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from .settings import settings

logger = logging.getLogger("askdora.speech")

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


class SpeechSynthesizer:
	"""Turns text into encoded audio bytes; raises on any failure."""

	async def synthesize(self, text: str) -> bytes:
		raise NotImplementedError

	async def aclose(self) -> None:
		return None


class GoogleSpeechSynthesizer(SpeechSynthesizer):
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		voice: Optional[str] = None,
		language: Optional[str] = None,
		speaking_rate: Optional[float] = None,
		client: Optional[httpx.AsyncClient] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.api_key = api_key or settings.tts_api_key
		if not self.api_key:
			raise ValueError("TTS_API_KEY is not configured")
		self.base_url = base_url or settings.tts_base_url
		self.voice = voice or settings.tts_voice
		self.language = language or settings.tts_language
		self.speaking_rate = speaking_rate if speaking_rate is not None else settings.tts_speaking_rate
		self._client = client or httpx.AsyncClient(timeout=timeout or settings.tts_timeout_seconds)

	def build_payload(self, text: str) -> Dict[str, Any]:
		return {
			"input": {"text": text},
			"voice": {"languageCode": self.language, "name": self.voice},
			"audioConfig": {"audioEncoding": "MP3", "speakingRate": self.speaking_rate},
		}

	async def synthesize(self, text: str) -> bytes:
		r = await self._client.post(self.base_url, params={"key": self.api_key}, json=self.build_payload(text))
		r.raise_for_status()
		content = r.json().get("audioContent")
		if not content:
			raise RuntimeError("speech response carried no audioContent")
		audio = base64.b64decode(content)
		if not audio:
			raise RuntimeError("speech response decoded to empty audio")
		return audio

	async def aclose(self) -> None:
		await self._client.aclose()


class AudioBlobStore:
	"""Write-once directory of `<digest>.mp3` files."""

	suffix = ".mp3"

	def __init__(self, root: str | os.PathLike) -> None:
		self.root = Path(root)
		self.root.mkdir(parents=True, exist_ok=True)

	def path_for(self, digest: str) -> Path:
		if not _DIGEST_RE.match(digest):
			raise ValueError(f"not a digest: {digest!r}")
		return self.root / f"{digest}{self.suffix}"

	def exists(self, digest: str) -> bool:
		try:
			return self.path_for(digest).is_file()
		except ValueError:
			return False

	def put(self, digest: str, data: bytes) -> str:
		target = self.path_for(digest)
		if target.exists():
			return digest
		fd, tmp = tempfile.mkstemp(dir=self.root, suffix=".part")
		try:
			with os.fdopen(fd, "wb") as f:
				f.write(data)
			os.replace(tmp, target)
		except BaseException:
			try:
				os.unlink(tmp)
			except OSError:
				pass
			raise
		logger.debug("stored audio asset %s (%d bytes)", digest, len(data))
		return digest

	def read(self, digest: str) -> Optional[bytes]:
		try:
			path = self.path_for(digest)
		except ValueError:
			return None
		if not path.is_file():
			return None
		return path.read_bytes()
