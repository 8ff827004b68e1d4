"""
Conversation service.

Keeps the local participant/message records in step with the Split and
Order state. Records change inside the caller's transaction; the matching
provider call is queued with ``transaction.on_commit`` so nothing reaches
the messaging provider for a transaction that rolls back.
"""

from uuid import UUID

import structlog
from django.db import transaction

from apps.accounts.models import User
from apps.conversations.models import (
    Conversation,
    ConversationMessage,
    ConversationParticipant,
    ParticipantRole,
)
from apps.conversations.provider import get_provider

from .exceptions import ConversationNotFoundError, NotParticipantError

logger = structlog.get_logger(__name__)


def _dispatch_after_commit(conversation: Conversation, operation: str, **params) -> None:
    """Queue a provider call; failures after commit are logged as drift."""
    thread_id = conversation.external_thread_id

    def dispatch():
        try:
            getattr(get_provider(), operation)(thread_id=thread_id, **params)
        except Exception:
            logger.error(
                "conversation_drift_detected",
                operation=operation,
                conversation_id=str(conversation.id),
                thread_id=thread_id,
                params={key: str(value) for key, value in params.items()},
                exc_info=True,
            )

    transaction.on_commit(dispatch)


def get_conversation_for_split(*, split_id: UUID) -> Conversation:
    try:
        return Conversation.objects.get(split_id=split_id)
    except Conversation.DoesNotExist:
        raise ConversationNotFoundError(f"Split {split_id} has no conversation")


@transaction.atomic
def create_for_split(*, split, title: str) -> Conversation:
    """
    Create the conversation record for a freshly created Split.

    Args:
        split: Split instance (already saved)
        title: Thread title, normally the Split title

    Returns:
        Created Conversation instance
    """
    conversation = Conversation.objects.create(
        split=split,
        title=title[:200],
        external_thread_id=f"split_{split.id.hex}",
    )
    _dispatch_after_commit(conversation, 'create_thread', title=conversation.title)

    logger.info("conversation_created", conversation_id=str(conversation.id), split_id=str(split.id))
    return conversation


@transaction.atomic
def join(*, conversation_id: UUID, user: User, role: str) -> ConversationParticipant:
    """
    Add a user to the conversation, or update the role of an existing participant.

    Args:
        conversation_id: UUID of the conversation
        user: User joining
        role: ParticipantRole value

    Returns:
        ConversationParticipant instance
    """
    conversation = Conversation.objects.get(id=conversation_id)

    participant, created = ConversationParticipant.objects.get_or_create(
        conversation=conversation,
        user=user,
        defaults={'role': role},
    )
    if created:
        _dispatch_after_commit(conversation, 'add_participant', user_id=str(user.id), role=role)
    elif participant.role != role:
        participant.role = role
        participant.save(update_fields=['role', 'updated_at'])
        _dispatch_after_commit(conversation, 'update_participant', user_id=str(user.id), role=role)

    return participant


@transaction.atomic
def set_role(*, conversation_id: UUID, user: User, role: str) -> ConversationParticipant:
    """
    Change a participant's role.

    Raises:
        NotParticipantError: If the user is not a participant
    """
    try:
        participant = (
            ConversationParticipant.objects
            .select_related('conversation')
            .get(conversation_id=conversation_id, user=user)
        )
    except ConversationParticipant.DoesNotExist:
        raise NotParticipantError(f"User {user.id} is not a participant of conversation {conversation_id}")

    if participant.role != role:
        participant.role = role
        participant.save(update_fields=['role', 'updated_at'])
        _dispatch_after_commit(participant.conversation, 'update_participant', user_id=str(user.id), role=role)

    return participant


@transaction.atomic
def remove_participant(*, conversation_id: UUID, user: User) -> bool:
    """
    Remove a user from the conversation.

    Returns:
        True if a participant was removed, False if the user was not one
    """
    conversation = Conversation.objects.get(id=conversation_id)
    deleted, _ = ConversationParticipant.objects.filter(conversation=conversation, user=user).delete()

    if not deleted:
        logger.warning(
            "conversation_participant_missing",
            conversation_id=str(conversation_id),
            user_id=str(user.id),
        )
        return False

    _dispatch_after_commit(conversation, 'remove_participant', user_id=str(user.id))
    return True


@transaction.atomic
def post_system_message(*, conversation_id: UUID, text: str, event_tag: str) -> ConversationMessage:
    """Record a system message and deliver it to the thread after commit."""
    conversation = Conversation.objects.get(id=conversation_id)
    message = ConversationMessage.objects.create(
        conversation=conversation,
        text=text,
        event_tag=event_tag,
    )
    _dispatch_after_commit(conversation, 'send_message', text=text, event_tag=event_tag)

    logger.info(
        "system_message_posted",
        conversation_id=str(conversation_id),
        event_tag=event_tag,
    )
    return message


@transaction.atomic
def freeze(*, split_id: UUID) -> Conversation:
    """
    Make the Split's conversation read-only for everyone.

    Raises:
        ConversationNotFoundError: If the Split has no conversation
    """
    try:
        conversation = Conversation.objects.select_for_update().get(split_id=split_id)
    except Conversation.DoesNotExist:
        raise ConversationNotFoundError(f"Split {split_id} has no conversation")

    conversation.is_readonly = True
    conversation.save(update_fields=['is_readonly', 'updated_at'])
    conversation.participants.update(role=ParticipantRole.READONLY)
    _dispatch_after_commit(conversation, 'make_readonly')

    logger.info("conversation_frozen", conversation_id=str(conversation.id), split_id=str(split_id))
    return conversation


def is_member(*, conversation_id: UUID, user: User) -> bool:
    return ConversationParticipant.objects.filter(conversation_id=conversation_id, user=user).exists()
