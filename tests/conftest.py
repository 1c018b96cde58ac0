"""Shared fixtures: a scripted fetcher and an app wired to fresh state."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from pilot_chat.api.app import app, get_fetcher, get_repository
from pilot_chat.domain.models import FetchOutcome, FetchSucceeded
from pilot_chat.repositories.memory import InMemoryRepository
from pilot_chat.services.fetcher import ResponseFetcher


class ScriptedFetcher(ResponseFetcher):
    """Fetcher returning queued outcomes, optionally held until released."""

    name = "scripted"

    def __init__(self) -> None:
        self.outcomes: List[FetchOutcome] = []
        self.default: FetchOutcome = FetchSucceeded(text="Hello!")
        self.requests: List[List[Dict[str, Any]]] = []
        self.started: Optional[asyncio.Event] = None
        self.gate: Optional[asyncio.Event] = None

    def hold(self) -> None:
        """Block the next exchanges until ``release`` is called."""
        self.started = asyncio.Event()
        self.gate = asyncio.Event()

    def release(self) -> None:
        self.gate.set()

    async def _generate(self, contents: List[Dict[str, Any]]) -> FetchOutcome:
        self.requests.append(contents)
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.outcomes:
            return self.outcomes.pop(0)
        return self.default


@pytest.fixture
def fetcher() -> ScriptedFetcher:
    return ScriptedFetcher()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def chat_app(fetcher, repository):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    yield app
    app.dependency_overrides.clear()
