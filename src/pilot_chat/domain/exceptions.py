"""Domain errors raised across module boundaries.

The API layer maps each of these onto an HTTP status.
"""

from uuid import UUID


class ChatError(Exception):
    """Base class for chat domain errors."""

    http_status = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConversationNotFoundError(ChatError):
    """No conversation is registered under the requested id."""

    http_status = 404

    def __init__(self, conversation_id: UUID):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class ConversationBusyError(ChatError):
    """A bot reply is still outstanding for this conversation."""

    http_status = 409

    def __init__(self, conversation_id: UUID):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} is waiting for a reply")
