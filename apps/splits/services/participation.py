"""
Split participation.

Joining and leaving a Split always moves seats and conversation membership
together: the seat change goes through the reservation engine, the
membership through the conversation service, inside one transaction.
"""

from uuid import UUID

import structlog
from django.db import transaction

from apps.accounts.models import User
from apps.conversations.models import SplitRoomMessageType
from apps.conversations.services.conversation_management import (
    get_conversation_for_split,
    is_member,
    join,
    post_system_message,
    remove_participant,
)
from apps.conversations.services.exceptions import NotParticipantError
from apps.splits.models import Split

from .exceptions import AlreadyParticipantError
from .messages import client_joined_message
from .seat_reservation import reserve

logger = structlog.get_logger(__name__)


@transaction.atomic
def join_split(*, split_id: UUID, client: User, num_seats: int, role: str) -> Split:
    """
    Reserve seats for a client and add them to the Split conversation.

    Args:
        split_id: UUID of the Split
        client: User joining the Split
        num_seats: Seats to reserve
        role: Conversation role (full once paid, readonly before)

    Returns:
        Split with updated counters

    Raises:
        AlreadyParticipantError: If the client is already in the conversation
        CapacityExceededError: If not enough places are left
    """
    # Seats first: the conditional update takes the write lock for the Split
    split = reserve(split_id=split_id, delta=num_seats)

    conversation = get_conversation_for_split(split_id=split_id)
    if is_member(conversation_id=conversation.id, user=client):
        raise AlreadyParticipantError("The client is already a member of this Split")

    post_system_message(
        conversation_id=conversation.id,
        text=client_joined_message(client.get_display_name(), num_seats),
        event_tag=SplitRoomMessageType.CLIENT_JOINED,
    )
    join(conversation_id=conversation.id, user=client, role=role)

    logger.info(
        "client_joined_split",
        split_id=str(split_id),
        client_id=str(client.id),
        num_seats=num_seats,
        role=role,
    )
    return split


@transaction.atomic
def exit_split(*, split_id: UUID, client: User, num_seats: int, message: str) -> Split:
    """
    Release a client's seats and remove them from the Split conversation.

    Args:
        split_id: UUID of the Split
        client: User leaving the Split
        num_seats: Seats the client's Order holds
        message: System message announcing the exit

    Returns:
        Split with updated counters

    Raises:
        NotParticipantError: If the client is not in the conversation
        SeatAccountingError: If fewer seats are taken than released
    """
    split = reserve(split_id=split_id, delta=-num_seats)

    conversation = get_conversation_for_split(split_id=split_id)
    if not remove_participant(conversation_id=conversation.id, user=client):
        raise NotParticipantError("The client is not a member of this Split")

    post_system_message(
        conversation_id=conversation.id,
        text=message,
        event_tag=SplitRoomMessageType.CLIENT_EXITED,
    )

    logger.info(
        "client_exited_split",
        split_id=str(split_id),
        client_id=str(client.id),
        num_seats=num_seats,
    )
    return split
