"""Speech input: a capability-scoped wrapper around an external recognizer.

The recognizer itself (a browser or OS service) is a collaborator; this
module only tracks its sessions and funnels each transcript through the
same entry point as typed text, so spoken input obeys the busy rule too.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

import structlog

from ..domain.exceptions import ConversationBusyError
from ..domain.models import Message
from .conversation import ConversationStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class RecognizerOptions:
    """Session options requested from the recognizer."""

    continuous: bool = False
    interim_results: bool = False
    lang: str = "en-US"


class SpeechRecognizer(Protocol):
    """External recognition service controlled by start/stop."""

    options: RecognizerOptions

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


async def route_transcript(store: ConversationStore, transcript: str) -> Optional[Message]:
    """Submit a recognized transcript as user text."""
    return await store.submit_user_text(transcript.strip())


class SpeechInput:
    """Tracks one recognition session at a time for a conversation.

    A result is submitted to the store as soon as it arrives, however the
    session was started. Each session also resolves a one-shot future with
    its transcript, or with ``None`` when it ends without a result. Without
    a recognizer every control is a no-op.
    """

    def __init__(self, store: ConversationStore, recognizer: Optional[SpeechRecognizer] = None):
        self._store = store
        self._recognizer = recognizer
        self._session: Optional[asyncio.Future] = None
        self._submission: Optional[asyncio.Task] = None
        self.listening = False
        if recognizer is None:
            logger.info("speech_recognition_unavailable", conversation_id=str(store.id))

    @property
    def available(self) -> bool:
        return self._recognizer is not None

    @property
    def session_active(self) -> bool:
        return self._session is not None and not self._session.done()

    def toggle(self) -> Optional[asyncio.Future]:
        """Start a session, or stop the active one.

        Returns the session future, or ``None`` when recognition is
        unavailable.
        """
        if self._recognizer is None:
            return None
        if self.listening:
            self._recognizer.stop()
            return self._session
        return self._start()

    def _start(self) -> asyncio.Future:
        if self.session_active:
            return self._session
        self._session = asyncio.get_running_loop().create_future()
        self._recognizer.start()
        return self._session

    def handle_started(self) -> None:
        self.listening = True
        logger.debug("speech_recognition_started", conversation_id=str(self._store.id))

    def handle_ended(self) -> None:
        self.listening = False
        self._resolve(None)
        logger.debug("speech_recognition_ended", conversation_id=str(self._store.id))

    def handle_error(self, reason: str) -> None:
        logger.error(
            "speech_recognition_error",
            conversation_id=str(self._store.id),
            reason=reason,
        )
        self._resolve(None)

    def handle_result(self, transcript: str) -> None:
        """Submit the transcript and settle the session with it."""
        transcript = transcript.strip()
        if transcript and self.session_active:
            self._submission = asyncio.get_running_loop().create_task(self._submit(transcript))
        self._resolve(transcript)

    async def _submit(self, transcript: str) -> Optional[Message]:
        try:
            return await route_transcript(self._store, transcript)
        except ConversationBusyError:
            logger.warning(
                "speech_transcript_rejected_busy",
                conversation_id=str(self._store.id),
            )
            return None

    async def wait_submitted(self) -> Optional[Message]:
        """Wait for the latest routed transcript and return the bot reply."""
        if self._submission is None:
            return None
        return await self._submission

    def _resolve(self, transcript: Optional[str]) -> None:
        if self.session_active:
            self._session.set_result(transcript)

    async def listen(self) -> Optional[Message]:
        """Run one session and submit its transcript.

        Returns the bot reply, or ``None`` when nothing was recognized,
        recognition is unavailable, or another session is already running.
        """
        if self._recognizer is None or self.session_active:
            return None
        transcript = await self._start()
        if not transcript:
            return None
        return await self.wait_submitted()
