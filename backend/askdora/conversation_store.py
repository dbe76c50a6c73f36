from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, List

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotFoundError, StorageError
from .models import Conversation, Message, utcnow


class Role(str, Enum):
	CHILD = "child"
	ASSISTANT = "assistant"


class Turn(BaseModel):
	id: str
	conversation_id: str
	role: Role
	text: str
	created_at: datetime


class ConversationInfo(BaseModel):
	id: str
	profile_id: str
	owner_id: str
	created_at: datetime
	updated_at: datetime


def _to_turn(row: Message) -> Turn:
	return Turn(
		id=row.id,
		conversation_id=row.conversation_id,
		role=Role(row.role),
		text=row.content,
		created_at=row.created_at,
	)


class ConversationStore:
	"""Append-only transcripts on top of the relational store.

	Methods are synchronous and open one session per call; async callers run them
	in a worker thread.
	"""

	def __init__(self, session_factory: Callable[[], Session]) -> None:
		self._session_factory = session_factory

	def create(self, profile_id: str, owner_id: str) -> str:
		conversation_id = uuid.uuid4().hex
		now = utcnow()
		try:
			with self._session_factory() as db:
				db.add(Conversation(id=conversation_id, profile_id=profile_id, owner_id=owner_id, created_at=now, updated_at=now))
				db.commit()
		except SQLAlchemyError as e:
			raise StorageError(f"could not create conversation: {e}") from e
		return conversation_id

	def get(self, conversation_id: str) -> ConversationInfo:
		try:
			with self._session_factory() as db:
				row = db.get(Conversation, conversation_id)
				if row is None:
					raise NotFoundError(f"conversation {conversation_id} not found")
				return ConversationInfo(
					id=row.id,
					profile_id=row.profile_id,
					owner_id=row.owner_id,
					created_at=row.created_at,
					updated_at=row.updated_at,
				)
		except SQLAlchemyError as e:
			raise StorageError(f"could not load conversation: {e}") from e

	def append(self, conversation_id: str, role: Role, text: str) -> str:
		turn_id = uuid.uuid4().hex
		try:
			with self._session_factory() as db:
				conversation = db.get(Conversation, conversation_id)
				if conversation is None:
					raise NotFoundError(f"conversation {conversation_id} not found")
				now = utcnow()
				db.add(Message(id=turn_id, conversation_id=conversation_id, role=Role(role).value, content=text, created_at=now))
				conversation.updated_at = now
				db.commit()
		except SQLAlchemyError as e:
			raise StorageError(f"could not append turn: {e}") from e
		return turn_id

	def recent_history(self, conversation_id: str, max_turns: int) -> List[Turn]:
		"""Return the last `max_turns` turns, oldest first."""
		if max_turns <= 0:
			return []
		try:
			with self._session_factory() as db:
				rows = db.execute(
					select(Message)
					.where(Message.conversation_id == conversation_id)
					.order_by(Message.seq.desc())
					.limit(max_turns)
				).scalars().all()
				return [_to_turn(r) for r in reversed(rows)]
		except SQLAlchemyError as e:
			raise StorageError(f"could not read history: {e}") from e

	def transcript(self, conversation_id: str) -> List[Turn]:
		try:
			with self._session_factory() as db:
				rows = db.execute(
					select(Message)
					.where(Message.conversation_id == conversation_id)
					.order_by(Message.seq.asc())
				).scalars().all()
				return [_to_turn(r) for r in rows]
		except SQLAlchemyError as e:
			raise StorageError(f"could not read transcript: {e}") from e
