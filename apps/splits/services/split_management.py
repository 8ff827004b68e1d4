"""
Split management service.

Handles Split creation, updates and listing.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.conversations.models import ParticipantRole, SplitRoomMessageType
from apps.conversations.services.conversation_management import (
    create_for_split,
    join,
    post_system_message,
)
from apps.payments.gateway import get_gateway
from apps.splits.models import ShippingType, Split, SplitStatus, SplitType

from .exceptions import (
    OwnerNotEligibleError,
    SplitFrozenError,
    SplitNotFoundError,
    SplitPermissionError,
    SplitValidationError,
)
from .messages import expiration_changed_message, split_created_message
from .seat_reservation import resize

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = (
    'title',
    'description',
    'tags',
    'category_ids',
    'category_names',
    'picture',
    'price',
    'regular_price',
    'sale_price',
    'split_prices',
    'shipping_type',
    'shipping_details',
    'expiration_date',
)


@transaction.atomic
def create_split(
    *,
    owner: User,
    title: str,
    num_places: int,
    price: Decimal,
    num_seats: int = 0,
    description: str = '',
    tags: Optional[list] = None,
    category_ids: Optional[list] = None,
    category_names: Optional[list] = None,
    picture: str = '',
    regular_price: Optional[Decimal] = None,
    sale_price: Optional[Decimal] = None,
    split_prices: Optional[list] = None,
    shipping_type: str = ShippingType.INPERSON,
    shipping_details: str = '',
    expiration_date=None,
) -> Split:
    """
    Create an APP Split together with its conversation.

    The owner pre-claims ``num_seats`` seats; at least one place must stay
    open for clients.

    Args:
        owner: User creating the Split (needs a payout account)
        title: Split title
        num_places: Total seats offered
        price: Price of the whole Split
        num_seats: Seats the owner keeps for themselves

    Returns:
        Created Split instance

    Raises:
        SplitValidationError: If num_seats >= num_places
        OwnerNotEligibleError: If the owner's payout account cannot take charges
    """
    if num_places < 1:
        raise SplitValidationError("A Split needs at least one place")
    if num_seats < 0:
        raise SplitValidationError("Seats can't be negative")
    if num_seats >= num_places:
        raise SplitValidationError("NumSeats can't be bigger than numPlaces")

    if not get_gateway().charges_enabled(owner.stripe_account_id):
        raise OwnerNotEligibleError(
            "This user is not eligible for payments yet. "
            "Use the onboarding link to enable this functionality"
        )

    split = Split(
        type=SplitType.APP,
        owner=owner,
        title=title,
        description=description,
        tags=tags or [],
        category_ids=category_ids or [],
        category_names=category_names or [],
        picture=picture,
        num_places=num_places,
        num_seats=num_seats,
        owner_seats=num_seats,
        places_left=num_places - num_seats,
        price=price,
        regular_price=regular_price,
        sale_price=sale_price,
        split_prices=split_prices or [],
        status=SplitStatus.ACTIVE,
        shipping_type=shipping_type,
        shipping_details=shipping_details,
        expiration_date=expiration_date,
    )
    try:
        split.clean()
    except ValidationError as e:
        raise SplitValidationError(str(e))
    split.save()

    conversation = create_for_split(split=split, title=split.title)
    join(conversation_id=conversation.id, user=owner, role=ParticipantRole.FULL)
    post_system_message(
        conversation_id=conversation.id,
        text=split_created_message(owner.get_display_name()),
        event_tag=SplitRoomMessageType.SPLIT_CREATED,
    )

    logger.info(
        "split_created",
        split_id=str(split.id),
        owner_id=str(owner.id),
        num_places=num_places,
        owner_seats=num_seats,
    )
    return split


def get_split(*, split_id: UUID) -> Split:
    """
    Get a Split with its owner loaded.

    Raises:
        SplitNotFoundError: If the Split doesn't exist
    """
    try:
        return Split.objects.select_related('owner').get(id=split_id)
    except Split.DoesNotExist:
        raise SplitNotFoundError(f"Split with ID {split_id} not found")


@transaction.atomic
def update_split(
    *,
    split_id: UUID,
    user: User,
    num_places: Optional[int] = None,
    **fields,
) -> Split:
    """
    Update a Split (owner or administrator only).

    Descriptive fields are written directly; a new ``num_places`` goes
    through the reservation engine so the counters stay consistent. A new
    expiration date is announced in the conversation.

    Raises:
        SplitNotFoundError: If the Split doesn't exist
        SplitPermissionError: If the user is not the owner or an admin
        SplitFrozenError: If the Split is cancelled or expired
        SplitValidationError: If an unknown field is passed
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise SplitValidationError(f"Can't update fields: {', '.join(sorted(unknown))}")

    try:
        split = Split.objects.select_for_update().select_related('owner').get(id=split_id)
    except Split.DoesNotExist:
        raise SplitNotFoundError(f"Split with ID {split_id} not found")

    if not split.is_managed_by(user):
        raise SplitPermissionError("Forbidden. Only Split's owner or admin can update splits")

    if split.is_frozen:
        raise SplitFrozenError(f"Split is {split.status.lower()} and can no longer be updated")

    expiration_changed = (
        'expiration_date' in fields
        and fields['expiration_date'] is not None
        and fields['expiration_date'] != split.expiration_date
    )

    for name, value in fields.items():
        setattr(split, name, value)

    if fields:
        try:
            split.clean()
        except ValidationError as e:
            raise SplitValidationError(str(e))
        split.save(update_fields=[*fields.keys(), 'updated_at'])

    if num_places is not None and num_places != split.num_places:
        split = resize(split_id=split.id, num_places=num_places)

    if expiration_changed:
        post_system_message(
            conversation_id=split.conversation.id,
            text=expiration_changed_message(fields['expiration_date']),
            event_tag=SplitRoomMessageType.SPLIT_EXTENDED,
        )

    logger.info(
        "split_updated",
        split_id=str(split.id),
        user_id=str(user.id),
        fields=sorted([*fields.keys(), *(['num_places'] if num_places is not None else [])]),
    )
    return split


def list_splits(
    *,
    user: User,
    owner_id: Optional[UUID] = None,
    split_type: Optional[str] = None,
    shipping_type: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> QuerySet[Split]:
    """
    List Splits visible to a user.

    Without an explicit status, APP Splits that are full, stopped or past
    their expiration date are hidden unless the user is listing their own.
    """
    queryset = Split.objects.select_related('owner')

    if owner_id:
        queryset = queryset.filter(owner_id=owner_id)
    if split_type:
        queryset = queryset.filter(type=split_type)
    if shipping_type:
        queryset = queryset.filter(shipping_type=shipping_type)
    if search:
        queryset = queryset.filter(Q(title__icontains=search) | Q(description__icontains=search))

    if status:
        queryset = queryset.filter(status=status)
    elif str(owner_id) != str(user.id):
        now = timezone.now()
        queryset = queryset.filter(
            Q(type=SplitType.LEGACY)
            | (
                Q(status=SplitStatus.ACTIVE, places_left__gt=0)
                & (Q(expiration_date__isnull=True) | Q(expiration_date__gte=now))
            )
        )

    return queryset.order_by('-created_at')
