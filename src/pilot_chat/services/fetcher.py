"""Response fetchers that turn conversation history into a bot utterance.

Every fetcher returns a :data:`FetchOutcome`; transport and decoding errors
are logged here and never reach the conversation store as exceptions.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..domain.models import (
    FetchOutcome,
    FetchSucceeded,
    MalformedResponse,
    Message,
    Sender,
    TransportFailure,
)

logger = structlog.get_logger()

SYSTEM_FRAMING = "You are a helpful and friendly expert on Google Workspace..."
ACKNOWLEDGEMENT = "Okay, I understand. I'm ready to help."

ROLE_BY_SENDER = {Sender.USER: "user", Sender.BOT: "model"}


class Part(BaseModel):
    text: Optional[str] = None


class Content(BaseModel):
    role: Optional[str] = None
    parts: List[Part] = []


class Candidate(BaseModel):
    content: Optional[Content] = None


class GenerateContentResponse(BaseModel):
    """The subset of the ``generateContent`` response body we consume."""

    candidates: List[Candidate] = []


def build_contents(history: Sequence[Message]) -> List[Dict[str, Any]]:
    """Map the conversation log onto role-tagged turns behind the persona framing."""
    turns = [
        Content(role="user", parts=[Part(text=SYSTEM_FRAMING)]),
        Content(role="model", parts=[Part(text=ACKNOWLEDGEMENT)]),
    ]
    for message in history:
        if message.is_pending:
            continue
        turns.append(
            Content(role=ROLE_BY_SENDER[message.sender], parts=[Part(text=message.text)])
        )
    return [turn.model_dump() for turn in turns]


def decode_response(payload: Any) -> FetchOutcome:
    """Decode a response body, accepting only a non-empty first text part."""
    try:
        response = GenerateContentResponse.model_validate(payload)
    except ValidationError as e:
        return MalformedResponse(reason=f"invalid response body ({e.error_count()} errors)")

    if not response.candidates:
        return MalformedResponse(reason="response has no candidates")
    content = response.candidates[0].content
    if content is None or not content.parts:
        return MalformedResponse(reason="first candidate has no content parts")
    text = content.parts[0].text
    if not text:
        return MalformedResponse(reason="first content part has no text")
    return FetchSucceeded(text=text)


class ResponseFetcher(ABC):
    """Base class for fetchers; subclasses implement :meth:`_generate`."""

    name = "base"

    async def fetch(self, history: Sequence[Message]) -> FetchOutcome:
        """Request a completion for ``history`` and normalize the result."""
        contents = build_contents(history)
        try:
            outcome = await self._generate(contents)
        except Exception as e:
            outcome = TransportFailure(reason=f"{type(e).__name__}: {e}")

        if isinstance(outcome, FetchSucceeded):
            logger.info(
                "bot_response_fetched",
                backend=self.name,
                turns=len(contents),
                response_length=len(outcome.text),
            )
        else:
            logger.error(
                "bot_response_fetch_failed",
                backend=self.name,
                outcome=type(outcome).__name__,
                reason=outcome.reason,
                status_code=getattr(outcome, "status_code", None),
            )
        return outcome

    @abstractmethod
    async def _generate(self, contents: List[Dict[str, Any]]) -> FetchOutcome:
        """Send ``contents`` to the API and decode the answer."""

    async def aclose(self) -> None:
        """Release transport resources."""


class RestResponseFetcher(ResponseFetcher):
    """Fetcher posting to the Gemini REST ``generateContent`` endpoint."""

    name = "rest"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        api_base: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = f"{api_base}/models/{model}:generateContent"
        self._api_key = api_key
        if client is None:
            client = httpx.AsyncClient(timeout=timeout) if timeout is not None else httpx.AsyncClient()
        self._client = client
        if not api_key:
            logger.warning("gemini_api_key_missing", backend=self.name)
        logger.info("response_fetcher_init", backend=self.name, model=model)

    async def _generate(self, contents: List[Dict[str, Any]]) -> FetchOutcome:
        params = {"key": self._api_key} if self._api_key else None
        try:
            response = await self._client.post(
                self.url,
                params=params,
                json={"contents": contents},
            )
        except httpx.HTTPError as e:
            return TransportFailure(reason=f"{type(e).__name__}: {e}")

        if not response.is_success:
            return TransportFailure(
                reason=f"API request failed: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError:
            return MalformedResponse(reason="response body is not JSON")
        return decode_response(payload)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_fetcher(settings: Settings) -> ResponseFetcher:
    """Create the fetcher selected by ``settings.fetcher_backend``."""
    if settings.fetcher_backend == "sdk":
        from .gemini_sdk import SdkResponseFetcher

        return SdkResponseFetcher(api_key=settings.api_key, model_name=settings.model)
    if settings.fetcher_backend != "rest":
        raise ValueError(f"Unknown fetcher backend: {settings.fetcher_backend}")
    return RestResponseFetcher(
        api_key=settings.api_key,
        model=settings.model,
        api_base=settings.api_base,
        timeout=settings.http_timeout,
    )
