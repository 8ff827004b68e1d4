"""
Conversations app services layer.

Local records change inside the caller's transaction; messaging provider
calls run after commit.
"""

from .exceptions import (
    ConversationsServiceError,
    ConversationNotFoundError,
    NotParticipantError,
)

from .conversation_management import (
    create_for_split,
    join,
    set_role,
    remove_participant,
    post_system_message,
    freeze,
    is_member,
    get_conversation_for_split,
)


__all__ = [
    # Exceptions
    'ConversationsServiceError',
    'ConversationNotFoundError',
    'NotParticipantError',

    # Conversation management
    'create_for_split',
    'join',
    'set_role',
    'remove_participant',
    'post_system_message',
    'freeze',
    'is_member',
    'get_conversation_for_split',
]
