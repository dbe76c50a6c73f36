"""HTTP surface of the Ask Dora assistant.

Endpoints:
- POST /ask-dora/new            start a conversation, returns a greeting (+ audio)
- POST /ask-dora/message        ask a question in an existing conversation
- GET  /ask-dora/conversations/{conversation_id}   ordered transcript
- GET  /ask-dora/audio/{digest} synthesized reply audio
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from ..errors import DoraError, InvalidInput, NotFoundError, RateLimited, StorageError, SynthesisUnavailable
from ..providers import AnswerHints
from ..services import GREETINGS, Services, get_services
from .identity import Owner, get_current_owner

logger = logging.getLogger("askdora.routers.ask")

router = APIRouter(prefix="/ask-dora", tags=["ask-dora"])


class _CamelModel(BaseModel):
	model_config = ConfigDict(populate_by_name=True)


class NewConversationRequest(_CamelModel):
	profile_id: str = Field(alias="profileId", min_length=1)


class MessageRequest(_CamelModel):
	conversation_id: str = Field(alias="conversationId", min_length=1)
	profile_id: str = Field(alias="profileId", min_length=1)
	message: str = ""
	child_name: Optional[str] = Field(default=None, alias="childName")
	age: Optional[int] = Field(default=None, ge=1, le=18)


def _log_detached_failure(task: "asyncio.Task[Any]") -> None:
	# Runs for every pipeline task; after a disconnect nobody else reads the exception
	if task.cancelled():
		return
	err = task.exception()
	if isinstance(err, DoraError):
		logger.info("message pipeline ended with %s: %s", type(err).__name__, err)
	elif err is not None:
		logger.error("message pipeline failed", exc_info=err)


def _http_error(err: Exception) -> HTTPException:
	if isinstance(err, InvalidInput):
		return HTTPException(status_code=400, detail=str(err))
	if isinstance(err, RateLimited):
		retry_after = max(1, int(round(err.retry_after)))
		return HTTPException(status_code=429, detail={"error": "rate limited", "retryAfter": retry_after}, headers={"Retry-After": str(retry_after)})
	if isinstance(err, NotFoundError):
		return HTTPException(status_code=404, detail="conversation not found")
	if isinstance(err, StorageError):
		return HTTPException(status_code=503, detail="storage unavailable")
	return HTTPException(status_code=500, detail="internal error")


@router.post("/new", status_code=201)
async def new_conversation(
	req: NewConversationRequest,
	owner: Owner = Depends(get_current_owner),
	services: Services = Depends(get_services),
):
	try:
		conversation_id = await run_in_threadpool(services.store.create, req.profile_id, owner.owner_id)
	except StorageError as e:
		raise _http_error(e)
	greeting = random.choice(list(GREETINGS.values()))
	audio_ref: Optional[str] = None
	try:
		audio_ref = (await services.audio_cache.synthesize(greeting)).asset_ref
	except SynthesisUnavailable:
		pass
	return {"conversationId": conversation_id, "greeting": greeting, "audioUrl": services.audio_url(audio_ref)}


@router.post("/message")
async def send_message(
	req: MessageRequest,
	owner: Owner = Depends(get_current_owner),
	services: Services = Depends(get_services),
):
	hints = AnswerHints(child_name=req.child_name, age=req.age)
	# A client disconnect cancels this handler, not the pipeline: committed turns stay committed
	task = asyncio.ensure_future(
		services.pipeline.handle(req.profile_id, req.conversation_id, req.message, hints, owner_id=owner.owner_id)
	)
	task.add_done_callback(_log_detached_failure)
	try:
		reply = await asyncio.shield(task)
	except (InvalidInput, RateLimited, NotFoundError, StorageError) as e:
		raise _http_error(e)
	return {
		"response": reply.reply_text,
		"audioUrl": services.audio_url(reply.audio_ref),
		"source": reply.source.value,
		"remaining": reply.rate_limit_remaining,
	}


@router.get("/conversations/{conversation_id}")
async def get_transcript(
	conversation_id: str,
	owner: Owner = Depends(get_current_owner),
	services: Services = Depends(get_services),
):
	try:
		conversation = await run_in_threadpool(services.store.get, conversation_id)
		if conversation.owner_id != owner.owner_id:
			raise NotFoundError(conversation_id)
		turns = await run_in_threadpool(services.store.transcript, conversation_id)
	except (NotFoundError, StorageError) as e:
		raise _http_error(e)
	messages: List[Dict[str, Any]] = [
		{"id": t.id, "role": t.role.value, "content": t.text, "createdAt": t.created_at.isoformat()}
		for t in turns
	]
	return {
		"conversationId": conversation.id,
		"profileId": conversation.profile_id,
		"updatedAt": conversation.updated_at.isoformat(),
		"messages": messages,
	}


@router.get("/audio/{digest}")
async def get_audio(digest: str, services: Services = Depends(get_services)):
	data = await run_in_threadpool(services.audio_cache.blob_store.read, digest)
	if data is None:
		raise HTTPException(status_code=404, detail="audio not found")
	return Response(content=data, media_type="audio/mpeg", headers={"Cache-Control": "public, max-age=31536000, immutable"})
