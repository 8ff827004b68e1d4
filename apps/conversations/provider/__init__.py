"""Messaging provider factory.

Provides get_provider() / set_provider() to swap implementations. The
default adapter is chosen by ``settings.CONVERSATION_PROVIDER_BACKEND``.
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from apps.conversations.provider.fake_adapter import FakeConversationProvider
from apps.conversations.provider.port import ConversationProvider, ConversationProviderError

_current_provider: ConversationProvider | None = None


def _build_default_provider() -> ConversationProvider:
    backend = settings.CONVERSATION_PROVIDER_BACKEND
    if backend == "fake":
        return FakeConversationProvider()
    raise ImproperlyConfigured(f"Unknown CONVERSATION_PROVIDER_BACKEND: {backend!r}")


def get_provider() -> ConversationProvider:
    """Return the current messaging provider."""
    global _current_provider
    if _current_provider is None:
        _current_provider = _build_default_provider()
    return _current_provider


def set_provider(provider: ConversationProvider) -> None:
    """Override the active messaging provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_provider() -> None:
    """Reset to default provider."""
    global _current_provider
    _current_provider = None


__all__ = [
    "ConversationProvider",
    "ConversationProviderError",
    "FakeConversationProvider",
    "get_provider",
    "set_provider",
    "reset_provider",
]
