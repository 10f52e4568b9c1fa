"""Shared fixtures: a seeded SQLite database and scripted collaborators."""
from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from callsift.db.base import Base, build_engine, make_session_factory
from callsift.db.seed import seed_vocabularies

INTERNAL_DOMAIN = "sherlock.xyz"


class FakeLanguageModel:
    """Returns scripted responses in order and records every prompt."""

    def __init__(self, responses: list[str | Exception] | None = None) -> None:
        self.responses = list(responses or [])
        self.prompts: list[str] = []
        self.max_tokens: list[int] = []

    async def complete(self, prompt: str, max_tokens: int) -> str:
        self.prompts.append(prompt)
        self.max_tokens.append(max_tokens)
        if not self.responses:
            raise AssertionError("unexpected language model call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def internal_domain() -> str:
    return INTERNAL_DOMAIN


@pytest.fixture
def make_llm() -> Callable[..., FakeLanguageModel]:
    def _make(*responses: str | Exception) -> FakeLanguageModel:
        return FakeLanguageModel(list(responses))

    return _make


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    from callsift.db import models  # noqa: F401

    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'callsift.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    factory = make_session_factory(engine)
    async with factory() as s:
        await seed_vocabularies(s)
        await s.commit()
        yield s


def fireflies_meeting(**overrides: Any) -> dict[str, Any]:
    """A provider transcript with one internal and one external participant."""
    data: dict[str, Any] = {
        "title": "Weekly check",
        "participants": ["alice@sherlock.xyz", "bob@acme.io"],
        "meeting_attendees": [
            {"displayName": "Alice Smith", "email": "alice@sherlock.xyz"},
            {"displayName": "Bob Jones", "email": "bob@acme.io"},
        ],
        "host_email": "alice@sherlock.xyz",
        "transcript_text": "",
        "summary": {},
    }
    data.update(overrides)
    return data


@pytest.fixture
def meeting_factory() -> Callable[..., dict[str, Any]]:
    return fireflies_meeting
