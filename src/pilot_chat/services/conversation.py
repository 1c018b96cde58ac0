"""Conversation store: the message log, the busy flag and the exchange protocol."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

import structlog

from ..domain.exceptions import ConversationBusyError
from ..domain.models import Conversation, FetchSucceeded, Message, Sender
from .fetcher import ResponseFetcher

logger = structlog.get_logger()

FALLBACK_MESSAGE = "Sorry, I'm having trouble connecting. Please try again."


class ConversationStore:
    """Single source of truth for one conversation.

    At most one bot exchange is outstanding at a time: ``submit_user_text``
    is rejected with :class:`ConversationBusyError` while ``busy`` is set.
    All mutation happens on the event loop, between awaits, so no lock is
    taken here.
    """

    def __init__(self, fetcher: ResponseFetcher, greeting: str):
        self._fetcher = fetcher
        self._conversation = Conversation(
            messages=[Message(text=greeting, sender=Sender.BOT)]
        )
        self._exchange: Optional[asyncio.Task] = None

    @property
    def id(self) -> UUID:
        return self._conversation.id

    @property
    def busy(self) -> bool:
        return self._conversation.busy

    @property
    def messages(self) -> List[Message]:
        return list(self._conversation.messages)

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    def display_messages(self) -> List[Message]:
        """The log, followed by a pending placeholder while a reply is outstanding."""
        messages = self.messages
        if self.busy:
            messages.append(Message(text=None, sender=Sender.BOT))
        return messages

    async def submit_user_text(self, raw: str) -> Optional[Message]:
        """Append a user message and wait for the bot reply.

        Blank input is ignored and returns ``None``. The returned message is
        the appended bot reply, which is the fallback text on failure.
        """
        text = raw.strip()
        if not text:
            logger.debug("blank_submission_ignored", conversation_id=str(self.id))
            return None
        if self.busy:
            logger.warning("submission_rejected_busy", conversation_id=str(self.id))
            raise ConversationBusyError(self.id)

        self._conversation.busy = True
        self._append(Message(text=text, sender=Sender.USER))
        logger.info(
            "user_message_added",
            conversation_id=str(self.id),
            message_length=len(text),
        )

        # The exchange owns the busy flag; a caller that goes away while
        # waiting only drops the reply.
        self._exchange = asyncio.create_task(self._run_exchange(self.messages))
        return await asyncio.shield(self._exchange)

    async def _run_exchange(self, history: List[Message]) -> Message:
        try:
            outcome = await self._fetcher.fetch(history)
            if isinstance(outcome, FetchSucceeded):
                return self.on_fetch_succeeded(outcome.text)
            return self.on_fetch_failed()
        except Exception as e:
            logger.error(
                "bot_exchange_error",
                conversation_id=str(self.id),
                error=str(e),
            )
            return self.on_fetch_failed()
        finally:
            # cancelled before an outcome arrived
            if self.busy:
                logger.warning("bot_exchange_cancelled", conversation_id=str(self.id))
                self.on_fetch_failed()

    def on_fetch_succeeded(self, bot_text: str) -> Message:
        message = self._append(Message(text=bot_text, sender=Sender.BOT))
        self._conversation.busy = False
        logger.info(
            "bot_message_added",
            conversation_id=str(self.id),
            response_length=len(bot_text),
        )
        return message

    def on_fetch_failed(self) -> Message:
        message = self._append(Message(text=FALLBACK_MESSAGE, sender=Sender.BOT, fallback=True))
        self._conversation.busy = False
        logger.warning("bot_fallback_added", conversation_id=str(self.id))
        return message

    async def wait_idle(self) -> None:
        """Wait for the outstanding exchange, if any, to settle."""
        if self._exchange is not None and not self._exchange.done():
            await asyncio.shield(self._exchange)

    def _append(self, message: Message) -> Message:
        self._conversation.messages.append(message)
        self._conversation.updated_at = datetime.now(timezone.utc)
        return message
