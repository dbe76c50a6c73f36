from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey
from .db import Base


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


class Conversation(Base):
	__tablename__ = "dora_conversations"
	id = Column(String(32), primary_key=True, index=True)
	profile_id = Column(String(128), nullable=False, index=True)
	owner_id = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
	# Bumped explicitly on every appended turn
	updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Message(Base):
	__tablename__ = "dora_messages"
	# Insertion sequence; the only ordering used for history reads
	seq = Column(Integer, primary_key=True, autoincrement=True)
	id = Column(String(32), unique=True, index=True, nullable=False)
	conversation_id = Column(String(32), ForeignKey("dora_conversations.id"), nullable=False, index=True)
	role = Column(String(16), nullable=False)
	content = Column(Text, nullable=False)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
