"""
Order cancellation.

``bulk_cancel`` is the Split-level path used by Split cancellation and
expiry: it refunds and cancels every open Order of a Split without posting
per-Order messages. ``cancel_by_owner`` and ``cancel_by_client`` cancel a
single paid Order, release its seats and refund it.
"""

from typing import Optional
from uuid import UUID

import structlog
from django.db import transaction

from apps.accounts.models import User
from apps.orders.models import CANCELLED_STATUSES, Order, OrderStatus
from apps.payments.exceptions import AlreadyReversedError, AuthorizationNotSettledError
from apps.payments.gateway import get_gateway
from apps.splits.services.participation import exit_split

from .exceptions import (
    InvalidStageTransitionError,
    OrderNotFoundError,
    OrderPermissionError,
)
from .results import returns_result

logger = structlog.get_logger(__name__)


def bulk_cancel(*, split_id: UUID, status: str = OrderStatus.SYSTEM_CANCELED) -> int:
    """
    Refund and cancel every open Order of a Split.

    Settled payments are refunded together with the platform fee;
    authorizations that never settled are cancelled instead. Refunds that
    were already made are skipped, so a retried Split cancellation goes
    through. Must run inside the caller's transaction.

    Returns:
        Number of Orders cancelled
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("bulk_cancel() must run inside transaction.atomic()")

    orders = list(
        Order.objects
        .select_for_update()
        .filter(split_id=split_id)
        .exclude(status__in=CANCELLED_STATUSES + (OrderStatus.REFUNDED,))
    )
    if not orders:
        return 0

    gateway = get_gateway()
    refunded_ids = []
    for order in orders:
        try:
            gateway.refund(order.payment_intent, reverse_fee=True)
            refunded_ids.append(order.id)
        except AlreadyReversedError:
            logger.info("order_already_refunded", order_id=str(order.id), payment_intent=order.payment_intent)
            refunded_ids.append(order.id)
        except AuthorizationNotSettledError:
            gateway.cancel_authorization(order.payment_intent)

    # One update for the whole Split, no per-Order messages
    count = Order.objects.filter(id__in=[order.id for order in orders]).update(status=status)
    if refunded_ids:
        Order.objects.filter(id__in=refunded_ids).update(refunded=True)

    logger.info(
        "orders_bulk_cancelled",
        split_id=str(split_id),
        status=status,
        count=count,
        refunded=len(refunded_ids),
    )
    return count


def _open_order(*, split_id: UUID, client_id: UUID) -> Optional[Order]:
    return (
        Order.objects
        .select_for_update()
        .select_related('client', 'split')
        .filter(split_id=split_id, client_id=client_id)
        .exclude(status__in=CANCELLED_STATUSES)
        .first()
    )


@returns_result('order')
@transaction.atomic
def cancel_by_owner(*, split_id: UUID, client_id: UUID, owner: User) -> Order:
    """
    Cancel a client's paid Order as the Split owner.

    The client gets everything back, platform fee included.

    Raises:
        OrderNotFoundError: If the client has no open Order on the Split
        OrderPermissionError: If ``owner`` doesn't own the Order
        InvalidStageTransitionError: If the Order is not PAID
    """
    order = _open_order(split_id=split_id, client_id=client_id)
    if order is None:
        raise OrderNotFoundError("Can't find Order with provided id")
    if order.owner_id != owner.id:
        raise OrderPermissionError("Only the Split Owner can cancel Order as Owner")
    if order.status != OrderStatus.PAID:
        raise InvalidStageTransitionError("Can't cancel Order at this stage")

    order.status = OrderStatus.OWNER_CANCELED
    order.save(update_fields=['status', 'updated_at'])

    exit_split(
        split_id=split_id,
        client=order.client,
        num_seats=order.num_seats,
        message=f"{order.owner_name} has cancelled {order.client_name}'s order",
    )

    # Last: a failed refund rolls the exit back
    refund = get_gateway().refund(order.payment_intent, reverse_fee=True)
    order.refunded = True
    order.save(update_fields=['refunded', 'updated_at'])

    logger.info(
        "order_cancelled",
        order_id=str(order.id),
        split_id=str(split_id),
        status=order.status,
        refund_id=refund.id,
    )
    return order


@returns_result('order')
@transaction.atomic
def cancel_by_client(*, split_id: UUID, client: User) -> Order:
    """
    Cancel the caller's own paid Order.

    The seat price is refunded; the platform keeps its fee.

    Raises:
        OrderNotFoundError: If the client has no open Order on the Split
        InvalidStageTransitionError: If the Order is not PAID
    """
    order = _open_order(split_id=split_id, client_id=client.id)
    if order is None:
        raise OrderNotFoundError("Can't find your Order for this Split")
    if order.status != OrderStatus.PAID:
        raise InvalidStageTransitionError(f"Can't cancel Order at this stage: {order.status}")

    order.status = OrderStatus.CLIENT_CANCELED
    order.save(update_fields=['status', 'updated_at'])

    exit_split(
        split_id=split_id,
        client=order.client,
        num_seats=order.num_seats,
        message=f"{order.client_name} has cancelled his or her order",
    )

    refund = get_gateway().refund(order.payment_intent, reverse_fee=False)
    order.refunded = True
    order.save(update_fields=['refunded', 'updated_at'])

    logger.info(
        "order_cancelled",
        order_id=str(order.id),
        split_id=str(split_id),
        status=order.status,
        refund_id=refund.id,
    )
    return order
