"""In-memory repository implementation."""

import asyncio
from typing import Dict, List, Optional
from uuid import UUID

import structlog

from ..config import DEFAULT_GREETING
from ..services.conversation import ConversationStore
from ..services.fetcher import ResponseFetcher
from .base import Repository

logger = structlog.get_logger()


class InMemoryRepository(Repository):
    """Keeps conversation stores for the lifetime of the process."""

    def __init__(self, greeting: str = DEFAULT_GREETING) -> None:
        self.greeting = greeting
        self._conversations: Dict[UUID, ConversationStore] = {}
        self._lock = asyncio.Lock()
        logger.info("repository_initialized")

    async def get_conversation(self, conversation_id: UUID) -> Optional[ConversationStore]:
        """Retrieve a conversation store by ID."""
        async with self._lock:
            store = self._conversations.get(conversation_id)
            if store is None:
                logger.warning("conversation_not_found", conversation_id=str(conversation_id))
            return store

    async def list_conversations(self, limit: int = 100, offset: int = 0) -> List[ConversationStore]:
        """List conversation stores, most recently updated first."""
        async with self._lock:
            stores = sorted(
                self._conversations.values(),
                key=lambda s: s.conversation.updated_at,
                reverse=True
            )
            return stores[offset : offset + limit]

    async def create_conversation(self, fetcher: ResponseFetcher) -> ConversationStore:
        """Create a conversation seeded with the greeting."""
        store = ConversationStore(fetcher=fetcher, greeting=self.greeting)
        async with self._lock:
            self._conversations[store.id] = store
        logger.info("conversation_created", conversation_id=str(store.id))
        return store
