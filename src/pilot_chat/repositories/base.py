"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..services.conversation import ConversationStore
from ..services.fetcher import ResponseFetcher


class Repository(ABC):
    """Abstract base class for session repositories."""

    @abstractmethod
    async def get_conversation(self, conversation_id: UUID) -> Optional[ConversationStore]:
        """Retrieve a conversation store by ID."""
        pass

    @abstractmethod
    async def list_conversations(self, limit: int = 100, offset: int = 0) -> List[ConversationStore]:
        """List conversation stores, most recently updated first."""
        pass

    @abstractmethod
    async def create_conversation(self, fetcher: ResponseFetcher) -> ConversationStore:
        """Create a conversation seeded with the greeting."""
        pass
