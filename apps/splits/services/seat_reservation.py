"""
Seat reservation engine.

The only code allowed to change a Split's seat counters. Every change is a
single conditional UPDATE (compare-and-update) executed inside the caller's
transaction, so two reservations on the same Split serialize on the row
(PostgreSQL) or the database write lock (SQLite) and the second one sees the
first one's result. ACTIVE/COMPLETE is re-derived from the new counters.
"""

from uuid import UUID

import structlog
from django.conf import settings
from django.db import OperationalError, transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.conversations.models import SplitRoomMessageType
from apps.conversations.services.conversation_management import (
    get_conversation_for_split,
    post_system_message,
)
from apps.splits.models import FROZEN_STATUSES, Split, SplitStatus, SplitType

from .exceptions import (
    CapacityExceededError,
    ConcurrencyConflictError,
    SeatAccountingError,
    SplitFrozenError,
    SplitNotFoundError,
    SplitValidationError,
)
from .messages import SPLIT_COMPLETED_MESSAGE, SPLIT_RESET_MESSAGE

logger = structlog.get_logger(__name__)


def _require_transaction(operation):
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError(f"{operation}() must run inside transaction.atomic()")


def _with_conflict_retry(operation, split_id, apply):
    """Run ``apply`` in a savepoint, retrying on store-level write conflicts."""
    attempts = max(1, settings.SEAT_RESERVATION_ATTEMPTS)
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                return apply()
        except OperationalError as e:
            last_error = e
            logger.warning(
                "seat_update_conflict",
                operation=operation,
                split_id=str(split_id),
                attempt=attempt,
                error=str(e),
            )

    raise ConcurrencyConflictError(
        f"Split {split_id} is being updated concurrently, try again"
    ) from last_error


def _explain_rejection(split_id, delta=None, num_places=None):
    """Work out why a conditional update matched no row and raise accordingly."""
    row = (
        Split.objects
        .filter(pk=split_id)
        .values('type', 'status', 'places_left', 'num_seats')
        .first()
    )
    if row is None:
        raise SplitNotFoundError(f"Split with ID {split_id} not found")
    if row['type'] != SplitType.APP:
        raise SplitValidationError("Only APP splits take reservations")
    if row['status'] in FROZEN_STATUSES:
        raise SplitFrozenError(f"Split is {row['status'].lower()}, seats can no longer change")

    if num_places is not None:
        raise SplitValidationError(
            f"Can't reduce places to {num_places}, {row['num_seats']} seats are already taken"
        )
    if delta > 0:
        raise CapacityExceededError(
            f"Can't order {delta} seats, only {row['places_left']} left"
        )
    raise SeatAccountingError(
        f"Can't release {-delta} seats, only {row['num_seats']} are taken"
    )


def _derive_status(split: Split) -> Split:
    """Move ACTIVE <-> COMPLETE after a counter change and announce it."""
    if split.status == SplitStatus.ACTIVE and split.places_left <= 0:
        new_status, text, tag = SplitStatus.COMPLETE, SPLIT_COMPLETED_MESSAGE, SplitRoomMessageType.SPLIT_COMPLETED
    elif split.status == SplitStatus.COMPLETE and split.places_left > 0:
        new_status, text, tag = SplitStatus.ACTIVE, SPLIT_RESET_MESSAGE, SplitRoomMessageType.SPLIT_RESET
    else:
        return split

    split.status = new_status
    split.save(update_fields=['status', 'updated_at'])

    conversation = get_conversation_for_split(split_id=split.id)
    post_system_message(conversation_id=conversation.id, text=text, event_tag=tag)

    logger.info("split_status_derived", split_id=str(split.id), status=new_status)
    return split


def reserve(*, split_id: UUID, delta: int) -> Split:
    """
    Apply ``num_seats += delta`` and ``places_left -= delta`` atomically.

    A positive delta takes seats and fails when fewer than ``delta`` places
    are left; a negative delta releases seats and fails when fewer than
    ``-delta`` seats are taken. Must be called inside ``transaction.atomic()``.

    Args:
        split_id: UUID of an APP Split
        delta: Seats to take (positive) or release (negative)

    Returns:
        The Split with fresh counters and derived status

    Raises:
        SplitNotFoundError: If the Split does not exist
        SplitFrozenError: If the Split is cancelled or expired
        CapacityExceededError: If not enough places are left
        SeatAccountingError: If the release would go below zero
        ConcurrencyConflictError: If write conflicts persist after retrying
    """
    _require_transaction('reserve')
    if not delta:
        raise SplitValidationError("Seat delta must be non-zero")

    def apply():
        guard = Q(pk=split_id, type=SplitType.APP) & ~Q(status__in=FROZEN_STATUSES)
        if delta > 0:
            guard &= Q(places_left__gte=delta)
        else:
            guard &= Q(num_seats__gte=-delta)

        updated = Split.objects.filter(guard).update(
            num_seats=F('num_seats') + delta,
            places_left=F('places_left') - delta,
            updated_at=timezone.now(),
        )
        if not updated:
            _explain_rejection(split_id, delta=delta)

        split = Split.objects.select_for_update().get(pk=split_id)
        logger.info(
            "seats_reserved" if delta > 0 else "seats_released",
            split_id=str(split_id),
            delta=delta,
            num_seats=split.num_seats,
            places_left=split.places_left,
        )
        return _derive_status(split)

    return _with_conflict_retry('reserve', split_id, apply)


def resize(*, split_id: UUID, num_places: int) -> Split:
    """
    Change the number of places of an APP Split, keeping taken seats.

    Raises:
        SplitValidationError: If fewer places than taken seats are requested
        SplitFrozenError: If the Split is cancelled or expired
    """
    _require_transaction('resize')
    if num_places < 1:
        raise SplitValidationError("A Split needs at least one place")

    def apply():
        guard = (
            Q(pk=split_id, type=SplitType.APP, num_seats__lte=num_places)
            & ~Q(status__in=FROZEN_STATUSES)
        )
        updated = Split.objects.filter(guard).update(
            num_places=num_places,
            places_left=num_places - F('num_seats'),
            updated_at=timezone.now(),
        )
        if not updated:
            _explain_rejection(split_id, num_places=num_places)

        split = Split.objects.select_for_update().get(pk=split_id)
        logger.info(
            "split_resized",
            split_id=str(split_id),
            num_places=num_places,
            places_left=split.places_left,
        )
        return _derive_status(split)

    return _with_conflict_retry('resize', split_id, apply)
