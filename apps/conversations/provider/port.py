"""Messaging provider port (abstract interface).

The provider hosts the actual discussion threads. The core never talks to
it inside a database transaction; calls are dispatched after commit by
the conversation services.
"""

from abc import ABC, abstractmethod

from config.errors import DomainError, ErrorCode


class ConversationProviderError(DomainError):
    """Raised by messaging provider adapters when a remote call fails."""
    code = ErrorCode.CONVERSATION_ERROR


class ConversationProvider(ABC):
    """Abstract messaging provider interface."""

    @abstractmethod
    def create_thread(self, thread_id: str, title: str) -> None:
        """Create a thread addressed by ``thread_id``."""
        ...

    @abstractmethod
    def add_participant(self, thread_id: str, user_id: str, role: str) -> None:
        ...

    @abstractmethod
    def update_participant(self, thread_id: str, user_id: str, role: str) -> None:
        ...

    @abstractmethod
    def remove_participant(self, thread_id: str, user_id: str) -> None:
        ...

    @abstractmethod
    def send_message(self, thread_id: str, text: str, event_tag: str) -> None:
        """Post a system message with its event tag as message attributes."""
        ...

    @abstractmethod
    def make_readonly(self, thread_id: str) -> None:
        """Demote every participant of the thread to read-only."""
        ...
