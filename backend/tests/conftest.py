"""
Pytest configuration and shared fixtures for the Ask Dora tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from askdora.conversation_store import ConversationStore
from askdora.db import Base
from helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
	return FakeClock()


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def store(session_factory) -> ConversationStore:
	return ConversationStore(session_factory)
