"""
Order lifecycle.

Creates Orders against a payment authorization, follows the payment
provider's events, and moves paid Orders through shipping and refunds.
Each state change runs in one transaction; the seat and conversation side
of a join or exit goes through the splits participation helpers.
"""

from typing import Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet

from apps.accounts.models import User
from apps.conversations.models import ParticipantRole
from apps.conversations.services.conversation_management import set_role
from apps.orders.models import (
    AWAITING_PAYMENT_STATUSES,
    CANCELLED_STATUSES,
    DEMOTABLE_GATEWAY_STATUSES,
    EXITABLE_GATEWAY_STATUSES,
    GATEWAY_STATUS_MAP,
    PROMOTABLE_GATEWAY_STATUSES,
    Order,
    OrderStatus,
)
from apps.payments.exceptions import AuthorizationNotFoundError, PaymentGatewayError
from apps.payments.gateway import Authorization, AuthorizationStatus, get_gateway
from apps.splits.models import Split, SplitType
from apps.splits.services.exceptions import CapacityExceededError, SplitNotFoundError
from apps.splits.services.participation import exit_split, join_split
from config.errors import DomainError

from .exceptions import (
    DuplicateReservationError,
    InvalidStageTransitionError,
    OrderNotFoundError,
    OrderPermissionError,
    OrderValidationError,
    PayoutAccountMissingError,
)
from .pricing import calculate_amounts
from .results import MutationResult, returns_result

logger = structlog.get_logger(__name__)

# Gateway event types that drive Order transitions
HANDLED_EVENT_TYPES = (
    'payment_intent.succeeded',
    'payment_intent.payment_failed',
    'payment_intent.canceled',
    'payment_intent.processing',
)


def _get_split(split_id: UUID) -> Split:
    try:
        split = Split.objects.select_related('owner').get(id=split_id)
    except Split.DoesNotExist:
        raise SplitNotFoundError(f"Split with ID {split_id} not found")
    if split.type != SplitType.APP:
        raise OrderValidationError("Only APP splits can be ordered")
    return split


def _check_seats(split: Split, num_seats: int) -> None:
    if not num_seats or num_seats <= 0:
        raise OrderValidationError("Invalid input for `numSeats`, must be a positive non-zero number")
    if split.places_left < num_seats:
        raise CapacityExceededError("Can't order this many seats")


# =============================================================================
# Quote and creation
# =============================================================================

def get_payment_quote(*, client: User, split_id: UUID, num_seats: int) -> dict:
    """
    Price a reservation and open a payment authorization for it.

    The client pays the authorization on their device, then calls
    ``create_order`` with its id.

    Returns:
        dict with payment_intent_id, amount, fee_amount, client_secret,
        publishable_key

    Raises:
        OrderValidationError: If num_seats is not positive
        CapacityExceededError: If not enough places are left
        PayoutAccountMissingError: If the owner can't receive payments
    """
    split = _get_split(split_id)
    _check_seats(split, num_seats)

    if not split.owner.stripe_account_id:
        raise PayoutAccountMissingError("Stripe account is not set up or charges are disabled")

    amounts = calculate_amounts(price=split.price, num_places=split.num_places, num_seats=num_seats)
    authorization = get_gateway().create_authorization(
        amount=amounts.amount,
        fee_amount=amounts.fee_amount,
        currency=settings.SPLIT_CURRENCY,
        customer=client.stripe_customer_id,
        destination=split.owner.stripe_account_id,
    )

    logger.info(
        "payment_quote_created",
        split_id=str(split_id),
        client_id=str(client.id),
        payment_intent=authorization.id,
        amount=amounts.amount,
    )
    return {
        'payment_intent_id': authorization.id,
        'amount': amounts.amount,
        'fee_amount': amounts.fee_amount,
        'client_secret': authorization.client_secret,
        'publishable_key': settings.STRIPE_PUBLISHABLE_KEY,
    }


def _is_duplicate(*, client: User, split_id: UUID, payment_intent: str) -> bool:
    return Order.objects.filter(
        Q(payment_intent=payment_intent)
        | (Q(split_id=split_id, client=client) & ~Q(status__in=CANCELLED_STATUSES))
    ).exists()


def _compensate(authorization: Authorization) -> None:
    """Give the money back for an authorization no Order ended up holding."""
    # A concurrent submission of the same handle may have committed first
    if Order.objects.filter(payment_intent=authorization.id).exists():
        logger.warning("order_compensation_skipped", payment_intent=authorization.id,
                       reason="bound_to_other_order")
        return

    gateway = get_gateway()
    try:
        if authorization.status == AuthorizationStatus.SUCCEEDED:
            gateway.refund(authorization.id, reverse_fee=True)
            action = 'refunded'
        elif authorization.status != AuthorizationStatus.CANCELED:
            gateway.cancel_authorization(authorization.id)
            action = 'cancelled'
        else:
            return
    except PaymentGatewayError as e:
        logger.error(
            "order_compensation_failed",
            payment_intent=authorization.id,
            error=str(e),
            exc_info=True,
        )
        return
    logger.info("order_compensated", payment_intent=authorization.id, action=action)


def create_order(
    *,
    client: User,
    split_id: UUID,
    payment_intent: str,
    num_seats: int,
    shipping_address: str = '',
) -> MutationResult:
    """
    Create an Order for an authorization and join the client to the Split.

    The Order starts in the status the authorization maps to (PAID if it is
    already settled, PAYMENT_PENDING otherwise) and the client joins the
    conversation as a full or read-only participant accordingly. Any
    failure after the authorization was looked up refunds or cancels it.

    Returns:
        MutationResult with ``order`` and ``conversation`` on success, and
        ``payment_intent`` (the compensated handle) on failure
    """
    # Duplicates are rejected before touching the authorization: it may
    # belong to someone else's Order.
    if _is_duplicate(client=client, split_id=split_id, payment_intent=payment_intent):
        return MutationResult.failure(DuplicateReservationError(
            "This User already ordered this Split or paymentIntent already used"
        ))

    try:
        authorization = get_gateway().get_authorization(payment_intent)
    except PaymentGatewayError as e:
        return MutationResult.failure(e)
    if authorization is None:
        return MutationResult.failure(AuthorizationNotFoundError(
            "Can't find a paymentIntent with specified ID"
        ))

    try:
        order = _create_order(
            client=client,
            split_id=split_id,
            authorization=authorization,
            num_seats=num_seats,
            shipping_address=shipping_address,
        )
    except DomainError as e:
        logger.info(
            "order_rejected",
            split_id=str(split_id),
            client_id=str(client.id),
            payment_intent=payment_intent,
            code=str(e.code),
            reason=str(e),
        )
        _compensate(authorization)
        return MutationResult.failure(e, payment_intent=payment_intent)
    except Exception:
        logger.exception(
            "order_creation_failed",
            split_id=str(split_id),
            client_id=str(client.id),
            payment_intent=payment_intent,
        )
        _compensate(authorization)
        return MutationResult.internal_error(payment_intent=payment_intent)

    return MutationResult.ok(order=order, conversation=order.split.conversation)


@transaction.atomic
def _create_order(
    *,
    client: User,
    split_id: UUID,
    authorization: Authorization,
    num_seats: int,
    shipping_address: str,
) -> Order:
    if authorization.status in EXITABLE_GATEWAY_STATUSES:
        raise OrderValidationError("This payment has been cancelled")

    split = _get_split(split_id)
    _check_seats(split, num_seats)

    role = (
        ParticipantRole.FULL
        if authorization.status in PROMOTABLE_GATEWAY_STATUSES
        else ParticipantRole.READONLY
    )
    # Re-checks capacity under the write lock and takes the seats
    join_split(split_id=split.id, client=client, num_seats=num_seats, role=role)

    amounts = calculate_amounts(price=split.price, num_places=split.num_places, num_seats=num_seats)
    try:
        order = Order.objects.create(
            client=client,
            owner=split.owner,
            split=split,
            num_seats=num_seats,
            status=GATEWAY_STATUS_MAP.get(authorization.status, OrderStatus.PAYMENT_PENDING),
            payment_intent=authorization.id,
            payment_method=authorization.payment_method or 'pending',
            shipping_address=shipping_address,
            client_name=client.get_display_name(),
            owner_name=split.owner.get_display_name(),
            split_title=split.title,
            split_description=split.description,
            split_picture=split.picture,
            amount=amounts.amount,
            fee_amount=amounts.fee_amount,
        )
    except IntegrityError:
        raise DuplicateReservationError(
            "This User already ordered this Split or paymentIntent already used"
        )

    logger.info(
        "order_created",
        order_id=str(order.id),
        split_id=str(split.id),
        client_id=str(client.id),
        num_seats=num_seats,
        status=order.status,
        amount=order.amount,
    )
    return order


@returns_result('order')
@transaction.atomic
def update_order(*, order_id: UUID, client: User, shipping_address: str) -> Order:
    """Change the shipping address, the only field a client may edit."""
    try:
        order = Order.objects.select_for_update().get(id=order_id, client=client)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Can't find Order with provided id")

    order.shipping_address = shipping_address
    order.save(update_fields=['shipping_address', 'updated_at'])
    return order


# =============================================================================
# Payment provider events
# =============================================================================

@transaction.atomic
def update_from_gateway_event(*, payment_intent: str, gateway_status: str) -> Order:
    """
    Apply a gateway-reported authorization state to its Order.

    ``canceled`` cancels the Order and releases the client's seats and
    membership; ``succeeded`` and ``payment_failed`` only change the client's
    conversation role. Orders that already left the payment stage are not
    moved by late events.

    Raises:
        OrderNotFoundError: If no Order holds the authorization
    """
    try:
        order = (
            Order.objects
            .select_for_update()
            .select_related('client', 'split')
            .get(payment_intent=payment_intent)
        )
    except Order.DoesNotExist:
        raise OrderNotFoundError("No order exists for the paymentIntent provided")

    new_status = GATEWAY_STATUS_MAP.get(gateway_status)
    if new_status is None or new_status == order.status:
        return order

    if order.status not in AWAITING_PAYMENT_STATUSES:
        logger.warning(
            "gateway_event_ignored",
            order_id=str(order.id),
            order_status=order.status,
            gateway_status=gateway_status,
        )
        return order

    previous = order.status
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])

    if gateway_status in EXITABLE_GATEWAY_STATUSES:
        exit_split(
            split_id=order.split_id,
            client=order.client,
            num_seats=order.num_seats,
            message=f"{order.client_name}'s order was cancelled",
        )
    elif gateway_status in PROMOTABLE_GATEWAY_STATUSES:
        set_role(conversation_id=order.split.conversation.id, user=order.client, role=ParticipantRole.FULL)
    elif gateway_status in DEMOTABLE_GATEWAY_STATUSES:
        set_role(conversation_id=order.split.conversation.id, user=order.client, role=ParticipantRole.READONLY)

    logger.info(
        "order_status_from_gateway",
        order_id=str(order.id),
        previous_status=previous,
        status=new_status,
        gateway_status=gateway_status,
    )
    return order


def handle_gateway_event(*, payload, signature: str) -> Optional[Order]:
    """
    Verify a webhook delivery and apply it.

    Returns:
        The updated Order, or None for event types that don't drive Orders

    Raises:
        InvalidSignatureError: If verification fails
        OrderNotFoundError: If no Order holds the event's authorization
    """
    event = get_gateway().verify_event(payload, signature)

    if event.type not in HANDLED_EVENT_TYPES:
        logger.info("gateway_event_skipped", event_id=event.id, event_type=event.type)
        return None

    logger.info(
        "gateway_event_received",
        event_id=event.id,
        event_type=event.type,
        payment_intent=event.object_id,
        gateway_status=event.object_status,
    )
    return update_from_gateway_event(payment_intent=event.object_id, gateway_status=event.object_status)


# =============================================================================
# Shipping and refunds
# =============================================================================

def _lock_order(order_id: UUID) -> Order:
    try:
        return Order.objects.select_for_update().get(id=order_id)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Can't find Order with provided id")


def _move(order: Order, *, expected, new_status: str, message: str) -> Order:
    if order.status not in expected:
        raise InvalidStageTransitionError(message)
    previous = order.status
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])
    logger.info("order_status_changed", order_id=str(order.id), previous_status=previous, status=new_status)
    return order


@returns_result('order')
@transaction.atomic
def mark_shipped(*, order_id: UUID, owner: User) -> Order:
    """PAID -> SHIPPED, by the Split owner."""
    order = _lock_order(order_id)
    if order.owner_id != owner.id:
        raise OrderPermissionError("Only the Order's Owner can mark an Order as Shipped")
    return _move(
        order,
        expected=(OrderStatus.PAID,),
        new_status=OrderStatus.SHIPPED,
        message="Can't mark order as Shipped at this stage",
    )


@returns_result('order')
@transaction.atomic
def mark_received(*, order_id: UUID, client: User) -> Order:
    """SHIPPED -> RECEIVED, by the client."""
    order = _lock_order(order_id)
    if order.client_id != client.id:
        raise OrderPermissionError("Only the Order's Client can mark an Order as Received")
    return _move(
        order,
        expected=(OrderStatus.SHIPPED,),
        new_status=OrderStatus.RECEIVED,
        message="Can't mark order as Received at this stage",
    )


@returns_result('order')
@transaction.atomic
def request_refund(*, order_id: UUID, client: User) -> Order:
    """RECEIVED or COMPLETE -> REFUND_REQUESTED, by the client."""
    order = _lock_order(order_id)
    if order.client_id != client.id:
        raise OrderPermissionError("Only the Order's client can request a refund for an Order")
    return _move(
        order,
        expected=(OrderStatus.RECEIVED, OrderStatus.COMPLETE),
        new_status=OrderStatus.REFUND_REQUESTED,
        message="Can't request Order refund at this stage",
    )


@returns_result('order')
@transaction.atomic
def confirm_refund(*, order_id: UUID, owner: User) -> Order:
    """
    REFUND_REQUESTED -> REFUNDED, by the Split owner.

    The client gets the seat price back; the platform fee is kept. The
    status change is rolled back if the refund fails.
    """
    order = _lock_order(order_id)
    if order.owner_id != owner.id:
        raise OrderPermissionError("Only the Order's Owner can grant a refund for an Order")

    _move(
        order,
        expected=(OrderStatus.REFUND_REQUESTED,),
        new_status=OrderStatus.REFUNDED,
        message='No refund request was made by the client',
    )
    get_gateway().refund(order.payment_intent, reverse_fee=False)
    order.refunded = True
    order.save(update_fields=['refunded', 'updated_at'])

    logger.info("order_refunded", order_id=str(order.id), payment_intent=order.payment_intent)
    return order


# =============================================================================
# Reads
# =============================================================================

def get_order(*, order_id: UUID, user: User) -> Order:
    """
    Get an Order visible to the user (its client, its owner or an admin).

    Raises:
        OrderNotFoundError: If missing or not visible
    """
    queryset = Order.objects.select_related('split', 'client', 'owner')
    if not (user.is_staff or user.is_superuser):
        queryset = queryset.filter(Q(client=user) | Q(owner=user))
    try:
        return queryset.get(id=order_id)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Can't find Order with provided id")


def list_orders(*, user: User, split_id: Optional[UUID] = None,
                status: Optional[str] = None) -> QuerySet[Order]:
    """Orders the user placed or received; administrators see all."""
    queryset = Order.objects.select_related('split', 'client', 'owner')
    if not (user.is_staff or user.is_superuser):
        queryset = queryset.filter(Q(client=user) | Q(owner=user))
    if split_id:
        queryset = queryset.filter(split_id=split_id)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at')
