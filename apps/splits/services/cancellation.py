"""
Split cancellation.

Stops a Split for good: every Order is refunded and cancelled in bulk, the
Split is frozen in its last seat state, the conversation turns read-only and
exactly one system message explains why.
"""

from typing import Optional
from uuid import UUID

import structlog
from django.db import transaction

from apps.accounts.models import User
from apps.conversations.models import SplitRoomMessageType
from apps.conversations.services.conversation_management import freeze, post_system_message
from apps.splits.models import FROZEN_STATUSES, TERMINAL_STATUSES, Split, SplitStatus

from .exceptions import (
    SplitAlreadyTerminalError,
    SplitNotFoundError,
    SplitPermissionError,
    SplitValidationError,
)
from .messages import split_cancel_message

logger = structlog.get_logger(__name__)


@transaction.atomic
def cancel_split(
    *,
    split_id: UUID,
    reason: str = '',
    status: str = SplitStatus.CANCELLED,
    actor: Optional[User] = None,
) -> Split:
    """
    Cancel or expire a Split.

    Args:
        split_id: UUID of the Split
        reason: Optional reason shown to participants
        status: CANCELLED (owner/admin action) or EXPIRED (sweep)
        actor: User requesting the cancellation; None for system jobs

    Returns:
        The frozen Split

    Raises:
        SplitNotFoundError: If the Split doesn't exist
        SplitAlreadyTerminalError: If the Split is already complete, cancelled or expired
        SplitPermissionError: If actor is neither the owner nor an admin
    """
    if status not in FROZEN_STATUSES:
        raise SplitValidationError(f"Can't cancel a Split into status {status}")

    try:
        split = Split.objects.select_for_update().select_related('owner').get(id=split_id)
    except Split.DoesNotExist:
        raise SplitNotFoundError(f"Split with ID {split_id} not found")

    if split.status in TERMINAL_STATUSES:
        raise SplitAlreadyTerminalError("Split is already completed, cancelled or expired")

    if actor is not None and not split.is_managed_by(actor):
        raise SplitPermissionError("Only Split Owner can cancel a Split")

    from apps.orders.models import OrderStatus
    from apps.orders.services.cancellation import bulk_cancel

    # Seat counters stay as they are: the Split is frozen in its last state
    order_status = OrderStatus.SYSTEM_CANCELED if status == SplitStatus.EXPIRED else OrderStatus.OWNER_CANCELED
    cancelled_orders = bulk_cancel(split_id=split.id, status=order_status)

    split.status = status
    split.cancel_reason = reason or ''
    split.save(update_fields=['status', 'cancel_reason', 'updated_at'])

    conversation = freeze(split_id=split.id)
    post_system_message(
        conversation_id=conversation.id,
        text=split_cancel_message(status, reason),
        event_tag=SplitRoomMessageType.SPLIT_CANCELLED,
    )

    logger.info(
        "split_cancelled",
        split_id=str(split.id),
        status=status,
        orders_cancelled=cancelled_orders,
        actor_id=str(actor.id) if actor else None,
    )
    return split
