"""Test suite for the google-generativeai backed fetcher."""

import pytest
from google.api_core import exceptions

from pilot_chat.domain.models import (
    FetchSucceeded,
    MalformedResponse,
    Message,
    Sender,
    TransportFailure,
)
from pilot_chat.services.gemini_sdk import SdkResponseFetcher

HISTORY = [
    Message(text="Hello Solver!", sender=Sender.BOT),
    Message(text="Hi", sender=Sender.USER),
]


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def to_dict(self):
        return self.payload


class FakeModel:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.contents = None

    async def generate_content_async(self, contents):
        self.contents = contents
        if self.error is not None:
            raise self.error
        return FakeResponse(self.payload)


def make_fetcher(model):
    return SdkResponseFetcher(api_key="secret", model_name="gemini-2.0-flash", model=model)


@pytest.mark.asyncio
async def test_sdk_fetcher_success():
    model = FakeModel({"candidates": [{"content": {"parts": [{"text": "Hello!"}]}}]})

    outcome = await make_fetcher(model).fetch(HISTORY)

    assert outcome == FetchSucceeded(text="Hello!")
    assert model.contents[-1] == {"role": "user", "parts": [{"text": "Hi"}]}


@pytest.mark.asyncio
async def test_sdk_fetcher_api_error_keeps_status():
    model = FakeModel(error=exceptions.InternalServerError("backend exploded"))

    outcome = await make_fetcher(model).fetch(HISTORY)

    assert isinstance(outcome, TransportFailure)
    assert outcome.status_code == 500


@pytest.mark.asyncio
async def test_sdk_fetcher_empty_candidates():
    outcome = await make_fetcher(FakeModel({"candidates": []})).fetch(HISTORY)
    assert isinstance(outcome, MalformedResponse)


@pytest.mark.asyncio
async def test_sdk_fetcher_unexpected_error_is_transport_failure():
    outcome = await make_fetcher(FakeModel(error=RuntimeError("socket closed"))).fetch(HISTORY)
    assert isinstance(outcome, TransportFailure)
    assert "RuntimeError" in outcome.reason
