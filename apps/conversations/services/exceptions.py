"""
Domain-specific exceptions for conversations app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""

from config.errors import DomainError, ErrorCode


class ConversationsServiceError(DomainError):
    """Base exception for all conversations service errors."""
    code = ErrorCode.CONVERSATION_ERROR


class ConversationNotFoundError(ConversationsServiceError):
    """Raised when a Split has no conversation record."""
    code = ErrorCode.NOT_FOUND


class NotParticipantError(ConversationsServiceError):
    """Raised when changing the role of a user who is not a participant."""
    pass
