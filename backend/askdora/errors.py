"""Error taxonomy for the answer pipeline.

Text-path errors (InvalidInput, RateLimited, NotFoundError, StorageError) stop a
call and reach the caller. SynthesisUnavailable and ProviderError are absorbed
inside the pipeline and only change the shape of the reply.
"""
from __future__ import annotations


class DoraError(Exception):
	pass


class InvalidInput(DoraError):
	pass


class RateLimited(DoraError):
	def __init__(self, retry_after: float) -> None:
		super().__init__(f"rate limit reached, retry in {retry_after:.0f}s")
		self.retry_after = retry_after


class NotFoundError(DoraError):
	pass


class StorageError(DoraError):
	pass


class SynthesisUnavailable(DoraError):
	pass


class ProviderError(DoraError):
	def __init__(self, provider: str, message: str) -> None:
		super().__init__(f"{provider}: {message}")
		self.provider = provider
