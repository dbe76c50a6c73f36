"""Content-addressed cache of synthesized speech.

The digest of the normalized text is the cache key and the asset reference. Entries
are never evicted. Two concurrent misses on the same new text may both synthesize;
the blob store keeps the first file and both callers get the same reference.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from fastapi.concurrency import run_in_threadpool

from .errors import SynthesisUnavailable
from .speech import AudioBlobStore, SpeechSynthesizer

logger = logging.getLogger("askdora.audio_cache")


def normalize_text(text: str) -> str:
	return " ".join((text or "").split())


def text_digest(text: str) -> str:
	return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AudioCacheEntry:
	digest: str
	asset_ref: str
	created_at: datetime


@dataclass(frozen=True)
class SynthesisResult:
	asset_ref: str
	from_cache: bool


class AudioCache:
	def __init__(
		self,
		blob_store: AudioBlobStore,
		synthesizer: Optional[SpeechSynthesizer] = None,
		*,
		timeout: float = 15.0,
	) -> None:
		self.blob_store = blob_store
		self.synthesizer = synthesizer
		self.timeout = timeout
		self._entries: Dict[str, AudioCacheEntry] = {}

	def lookup(self, text: str) -> Optional[AudioCacheEntry]:
		"""In-memory entries only; never touches the disk."""
		return self._entries.get(text_digest(text))

	async def _find(self, digest: str) -> Optional[AudioCacheEntry]:
		entry = self._entries.get(digest)
		if entry is None and await run_in_threadpool(self.blob_store.exists, digest):
			# Asset written by an earlier process
			entry = self._remember(digest)
		return entry

	def _remember(self, digest: str) -> AudioCacheEntry:
		entry = AudioCacheEntry(digest=digest, asset_ref=digest, created_at=datetime.now(timezone.utc))
		self._entries[digest] = entry
		return entry

	async def synthesize(self, text: str) -> SynthesisResult:
		normalized = normalize_text(text)
		if not normalized:
			raise SynthesisUnavailable("nothing to synthesize")
		digest = text_digest(normalized)
		entry = await self._find(digest)
		if entry is not None:
			logger.debug("audio cache hit %s", entry.digest[:12])
			return SynthesisResult(asset_ref=entry.asset_ref, from_cache=True)
		if self.synthesizer is None:
			raise SynthesisUnavailable("no speech backend configured")
		try:
			audio = await asyncio.wait_for(self.synthesizer.synthesize(normalized), timeout=self.timeout)
		except asyncio.TimeoutError as e:
			logger.warning("speech synthesis timed out after %.1fs", self.timeout)
			raise SynthesisUnavailable("speech synthesis timed out") from e
		except Exception as e:
			logger.warning("speech synthesis failed: %s", e)
			raise SynthesisUnavailable(f"speech synthesis failed: {e}") from e
		try:
			await run_in_threadpool(self.blob_store.put, digest, audio)
		except OSError as e:
			logger.warning("could not store audio asset %s: %s", digest[:12], e)
			raise SynthesisUnavailable(f"could not store audio: {e}") from e
		entry = self._remember(digest)
		return SynthesisResult(asset_ref=entry.asset_ref, from_cache=False)

	async def warm_all(self, entries: Mapping[str, str]) -> Dict[str, Optional[str]]:
		"""Synthesize known phrases ahead of traffic; returns key -> asset ref (None on failure)."""
		results: Dict[str, Optional[str]] = {}
		for key, text in entries.items():
			try:
				result = await self.synthesize(text)
			except SynthesisUnavailable as e:
				logger.warning("warm-up %s failed: %s", key, e)
				results[key] = None
				continue
			logger.info("warm-up %s ready (%s)", key, "cached" if result.from_cache else "synthesized")
			results[key] = result.asset_ref
		return results

	def warm_all_detached(self, entries: Mapping[str, str]) -> "asyncio.Task[Dict[str, Optional[str]]]":
		return asyncio.create_task(self.warm_all(entries), name="audio-cache-warmup")
