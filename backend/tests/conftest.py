from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Settings are read at import time; keep tests off disk and off the scheduler.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEFINITION_SCHEDULE_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lexicon.config import settings
from lexicon.core.auth import generate_token, hash_password
from lexicon.core.database import Base, get_db
from lexicon.integrations.dictionary_api import DefinitionProvider
from lexicon.main import app
from lexicon.models import Entry

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

ADMIN_PASSWORD = "correct-horse-battery"


class FakeProvider(DefinitionProvider):
    """Scripted provider: maps term -> definition, None, or an exception to raise."""

    name = "fake"

    def __init__(self, responses=None, default="A definition."):
        self.responses = responses or {}
        self.default = default
        self.calls: list[str] = []

    async def get_definition(self, term):
        self.calls.append(term)
        outcome = self.responses.get(term, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "admin_username", "admin")
    monkeypatch.setattr(settings, "admin_password_hash", hash_password(ADMIN_PASSWORD, rounds=4))
    return settings


@pytest.fixture
def auth_headers():
    token, _ = generate_token({"user_id": "admin", "username": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_entry(db):
    """Insert an Entry row directly, bypassing the API."""
    counter = {"n": 0}

    def _make(**kwargs) -> Entry:
        counter["n"] += 1
        n = counter["n"]
        kwargs.setdefault("type", "word")
        if kwargs["type"] == "word":
            kwargs.setdefault("name", f"word{n}")
        else:
            kwargs.setdefault("body", f"body {n}")
        kwargs.setdefault("slug", f"entry-{n}")
        created = datetime(2024, 1, 1) + timedelta(minutes=n)
        kwargs.setdefault("created_at", created)
        kwargs.setdefault("updated_at", created)
        entry = Entry(**kwargs)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _make
