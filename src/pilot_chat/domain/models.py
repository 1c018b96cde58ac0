"""Domain models for the chat application."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Sender(str, Enum):
    """Author of a message."""

    USER = "user"
    BOT = "bot"


class Message(BaseModel):
    """Message model.

    ``text`` is ``None`` only for the pending placeholder shown while a bot
    reply is outstanding; such messages never enter the conversation log.
    ``fallback`` marks bot messages substituted for a failed reply.
    """

    text: Optional[str]
    sender: Sender
    fallback: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_pending(self) -> bool:
        return self.text is None


class Conversation(BaseModel):
    """Conversation model."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    messages: List[Message] = []
    busy: bool = False


@dataclass(frozen=True)
class FetchSucceeded:
    """The API produced a usable answer."""

    text: str


@dataclass(frozen=True)
class MalformedResponse:
    """The API answered but the body held no usable candidate."""

    reason: str


@dataclass(frozen=True)
class TransportFailure:
    """The request failed before a body could be read, or with a non-2xx status."""

    reason: str
    status_code: Optional[int] = None


FetchOutcome = Union[FetchSucceeded, MalformedResponse, TransportFailure]
