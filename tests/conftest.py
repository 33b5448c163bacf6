import os
import time

os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import enable_sqlite_foreign_keys
from errors import UpstreamError
from models import Base
from services.auth import SECRET_KEY, ALGORITHM
from services.credentials import CredentialService
from services.relay import ModelRelay
from services.conversation import ConversationOrchestrator, ConversationSession, SendGuard

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def api_key(db):
    CredentialService.set_api_key(db, USER_ID, "sk-or-test-key-1234")
    return "sk-or-test-key-1234"


class UpstreamRecorder:
    """MockTransport handler that records requests and replays a canned response."""

    def __init__(self, status_code=200, json_body=None, text_body=None, exc=None):
        self.status_code = status_code
        self.json_body = json_body
        self.text_body = text_body
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text_body is not None:
            return httpx.Response(self.status_code, text=self.text_body)
        return httpx.Response(self.status_code, json=self.json_body)


def completion_body(content, model="openai/gpt-4-turbo"):
    return {
        "id": "gen-1",
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


@pytest.fixture
def upstream():
    return UpstreamRecorder(json_body=completion_body("Hi there!"))


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


class FakeRelay:
    """Stands in for ModelRelay in orchestrator tests."""

    def __init__(self, reply="Sure, I can help.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, history, model_id):
        self.calls.append((list(history), model_id))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_relay():
    return FakeRelay()


@pytest.fixture
def failing_relay():
    return FakeRelay(error=UpstreamError(500, "Provider returned error"))


@pytest.fixture
def session():
    return ConversationSession(user_id=USER_ID, selected_model="openai/gpt-3.5-turbo")


@pytest.fixture
def guard():
    return SendGuard()


@pytest.fixture
def orchestrator(session, db, fake_relay, guard):
    return ConversationOrchestrator(session, db, fake_relay, guard)


@pytest.fixture
def make_token():
    def _make(user_id=USER_ID, expires_in=3600):
        payload = {"sub": user_id, "exp": int(time.time()) + expires_in, "email": f"{user_id}@example.com"}
        return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)
    return _make


@pytest.fixture
def relay(db, http_client):
    return ModelRelay(db, USER_ID, http_client, api_url="https://openrouter.test/api/v1/chat/completions")
