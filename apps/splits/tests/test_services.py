"""
Service layer tests for splits app.

Tests cover:
- Split creation, updates and listing
- Split cancellation (refunds, freeze, single system message)
"""

import pytest
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from django.utils import timezone

from apps.conversations.models import (
    ConversationMessage,
    ConversationParticipant,
    ParticipantRole,
    SplitRoomMessageType,
)
from apps.orders.models import OrderStatus
from apps.payments.exceptions import PaymentGatewayError
from apps.splits.models import Split, SplitStatus
from apps.splits.services import (
    cancel_split,
    create_split,
    get_split,
    list_splits,
    reserve,
    update_split,
)
from apps.splits.services.exceptions import (
    OwnerNotEligibleError,
    SplitAlreadyTerminalError,
    SplitFrozenError,
    SplitNotFoundError,
    SplitPermissionError,
    SplitValidationError,
)
from apps.splits.services.messages import REFUND_NOTE


# =============================================================================
# Split Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestSplitCreation:
    """Tests for create_split()."""

    def test_create_split_success(self, split_owner):
        split = create_split(
            owner=split_owner,
            title='Kenya AA, 5kg',
            num_places=5,
            num_seats=1,
            price=Decimal('150.00'),
        )

        assert split.status == SplitStatus.ACTIVE
        assert split.num_seats == 1
        assert split.owner_seats == 1
        assert split.places_left == 4

    def test_create_split_opens_conversation(self, split_owner):
        split = create_split(owner=split_owner, title='Kenya AA', num_places=3, price=Decimal('90'))

        conversation = split.conversation
        assert conversation.external_thread_id == f'split_{split.id.hex}'
        assert conversation.get_user_role(split_owner) == ParticipantRole.FULL
        assert list(conversation.messages.values_list('text', flat=True)) == [
            'Split Owner created this Split'
        ]

    def test_create_split_dispatches_after_commit(self, split_owner, fake_provider,
                                                  django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            split = create_split(owner=split_owner, title='Kenya AA', num_places=3, price=Decimal('90'))

        thread_id = split.conversation.external_thread_id
        assert [call['method'] for call in fake_provider.calls] == [
            'create_thread',
            'add_participant',
            'send_message',
        ]
        assert fake_provider.threads[thread_id]['participants'] == {str(split_owner.id): 'full'}

    def test_owner_must_leave_a_place_open(self, split_owner):
        with pytest.raises(SplitValidationError):
            create_split(owner=split_owner, title='Full', num_places=2, num_seats=2, price=Decimal('10'))

    def test_owner_without_payout_account(self, client_user):
        with pytest.raises(OwnerNotEligibleError):
            create_split(owner=client_user, title='Nope', num_places=2, price=Decimal('10'))

        assert Split.objects.count() == 0

    def test_owner_with_disabled_charges(self, split_owner, fake_gateway):
        fake_gateway.disabled_accounts.add('acct_owner')

        with pytest.raises(OwnerNotEligibleError):
            create_split(owner=split_owner, title='Nope', num_places=2, price=Decimal('10'))

    def test_get_split_not_found(self):
        from uuid import uuid4

        with pytest.raises(SplitNotFoundError):
            get_split(split_id=uuid4())


@pytest.mark.django_db
class TestSplitUpdate:
    """Tests for update_split()."""

    def test_update_descriptive_fields(self, app_split, split_owner):
        split = update_split(split_id=app_split.id, user=split_owner, title='Renamed', description='New')

        assert split.title == 'Renamed'
        assert split.description == 'New'

    def test_update_num_places_goes_through_engine(self, app_split, split_owner):
        reserve(split_id=app_split.id, delta=2)

        split = update_split(split_id=app_split.id, user=split_owner, num_places=3)

        assert split.num_places == 3
        assert split.places_left == 1

    def test_update_num_places_below_seats_rejected(self, app_split, split_owner):
        reserve(split_id=app_split.id, delta=3)

        with pytest.raises(SplitValidationError):
            update_split(split_id=app_split.id, user=split_owner, num_places=2)

    def test_new_expiration_date_is_announced(self, app_split, split_owner):
        new_date = datetime(2030, 3, 9, tzinfo=dt_timezone.utc)

        update_split(split_id=app_split.id, user=split_owner, expiration_date=new_date)

        messages = ConversationMessage.objects.filter(
            conversation__split=app_split,
            event_tag=SplitRoomMessageType.SPLIT_EXTENDED,
        )
        assert [m.text for m in messages] == ['Split expiration date was changed to 2030 Mar 09']

    def test_admin_can_update(self, app_split, admin_user):
        split = update_split(split_id=app_split.id, user=admin_user, title='By admin')
        assert split.title == 'By admin'

    def test_other_user_forbidden(self, app_split, client_user):
        with pytest.raises(SplitPermissionError):
            update_split(split_id=app_split.id, user=client_user, title='Hijack')

    def test_frozen_split_rejected(self, app_split, split_owner):
        cancel_split(split_id=app_split.id, actor=split_owner)

        with pytest.raises(SplitFrozenError):
            update_split(split_id=app_split.id, user=split_owner, title='Too late')

    def test_unknown_field_rejected(self, app_split, split_owner):
        with pytest.raises(SplitValidationError):
            update_split(split_id=app_split.id, user=split_owner, places_left=100)


@pytest.mark.django_db
class TestSplitListing:
    """Tests for list_splits()."""

    def test_hides_full_stopped_and_overdue_splits(self, make_split, split_owner, client_user):
        open_split = make_split(title='Open')
        full = make_split(title='Full', num_places=2)
        reserve(split_id=full.id, delta=2)
        cancelled = make_split(title='Cancelled')
        cancel_split(split_id=cancelled.id, actor=split_owner)
        make_split(title='Overdue', expiration_date=timezone.now() - timedelta(hours=1))

        titles = [split.title for split in list_splits(user=client_user)]

        assert titles == [open_split.title]

    def test_owner_sees_all_own_splits(self, make_split, split_owner):
        make_split(title='Open')
        cancelled = make_split(title='Cancelled')
        cancel_split(split_id=cancelled.id, actor=split_owner)

        splits = list_splits(user=split_owner, owner_id=split_owner.id)

        assert {split.title for split in splits} == {'Open', 'Cancelled'}

    def test_status_filter(self, make_split, split_owner, client_user):
        cancelled = make_split(title='Cancelled')
        cancel_split(split_id=cancelled.id, actor=split_owner)
        make_split(title='Open')

        splits = list_splits(user=client_user, status=SplitStatus.CANCELLED)

        assert [split.id for split in splits] == [cancelled.id]

    def test_search(self, make_split, client_user):
        make_split(title='Colombian Huila')
        make_split(title='Brazil Santos')

        splits = list_splits(user=client_user, search='huila')

        assert [split.title for split in splits] == ['Colombian Huila']


# =============================================================================
# Split Cancellation Service Tests
# =============================================================================

@pytest.mark.django_db
class TestSplitCancellation:
    """Tests for cancel_split()."""

    def test_cancel_refunds_and_cancels_every_order(self, app_split, split_owner, client_user,
                                                    second_client, make_order, fake_gateway):
        first = make_order(app_split, client_user, num_seats=1)
        second = make_order(app_split, second_client, num_seats=2)

        cancel_split(split_id=app_split.id, reason='Roaster closed', actor=split_owner)

        for order in (first, second):
            order.refresh_from_db()
            assert order.status == OrderStatus.OWNER_CANCELED
            assert order.refunded is True
        refunds = fake_gateway.calls_to('refund')
        assert {call['ref'] for call in refunds} == {first.payment_intent, second.payment_intent}
        assert all(call['reverse_fee'] for call in refunds)

    def test_cancel_freezes_split_and_conversation(self, app_split, split_owner, client_user, make_order):
        make_order(app_split, client_user, num_seats=3)

        split = cancel_split(split_id=app_split.id, reason='Roaster closed', actor=split_owner)

        split.refresh_from_db()
        assert split.status == SplitStatus.CANCELLED
        assert split.cancel_reason == 'Roaster closed'
        # Counters keep their last values
        assert split.num_seats == 3
        assert split.places_left == 1

        conversation = split.conversation
        conversation.refresh_from_db()
        assert conversation.is_readonly is True
        roles = set(ConversationParticipant.objects.filter(conversation=conversation).values_list('role', flat=True))
        assert roles == {ParticipantRole.READONLY}

    def test_cancel_posts_exactly_one_message(self, app_split, split_owner, client_user, second_client, make_order):
        make_order(app_split, client_user)
        make_order(app_split, second_client)

        cancel_split(split_id=app_split.id, reason='Roaster closed', actor=split_owner)

        messages = ConversationMessage.objects.filter(
            conversation__split=app_split,
            event_tag=SplitRoomMessageType.SPLIT_CANCELLED,
        )
        assert messages.count() == 1
        text = messages.get().text
        assert 'stating the reason: "Roaster closed"' in text
        assert text.endswith(REFUND_NOTE)
        assert not ConversationMessage.objects.filter(
            conversation__split=app_split,
            event_tag=SplitRoomMessageType.CLIENT_EXITED,
        ).exists()

    def test_cancel_without_reason(self, app_split, split_owner):
        split = cancel_split(split_id=app_split.id, actor=split_owner)

        text = split.conversation.messages.get(event_tag=SplitRoomMessageType.SPLIT_CANCELLED).text
        assert "We hope there's a good reason." in text

    def test_unsettled_authorization_is_cancelled_not_refunded(self, app_split, split_owner, client_user,
                                                               make_order, pending_authorization, fake_gateway):
        authorization = pending_authorization()
        order = make_order(app_split, client_user, authorization=authorization)

        cancel_split(split_id=app_split.id, actor=split_owner)

        order.refresh_from_db()
        assert order.status == OrderStatus.OWNER_CANCELED
        assert order.refunded is False
        assert fake_gateway.calls_to('cancel_authorization') == [
            {'method': 'cancel_authorization', 'ref': authorization.id}
        ]

    def test_already_refunded_payment_is_tolerated(self, app_split, split_owner, client_user,
                                                   make_order, fake_gateway):
        order = make_order(app_split, client_user)
        fake_gateway.refunded.add(order.payment_intent)

        cancel_split(split_id=app_split.id, actor=split_owner)

        order.refresh_from_db()
        assert order.status == OrderStatus.OWNER_CANCELED

    def test_refund_failure_rolls_everything_back(self, app_split, split_owner, client_user,
                                                  make_order, fake_gateway):
        order = make_order(app_split, client_user)
        fake_gateway.configure(should_succeed=False)

        with pytest.raises(PaymentGatewayError):
            cancel_split(split_id=app_split.id, actor=split_owner)

        order.refresh_from_db()
        app_split.refresh_from_db()
        assert order.status == OrderStatus.PAID
        assert app_split.status == SplitStatus.ACTIVE

    def test_already_cancelled(self, app_split, split_owner):
        cancel_split(split_id=app_split.id, actor=split_owner)

        with pytest.raises(SplitAlreadyTerminalError):
            cancel_split(split_id=app_split.id, actor=split_owner)

    def test_complete_split_is_terminal(self, app_split, split_owner):
        reserve(split_id=app_split.id, delta=4)

        with pytest.raises(SplitAlreadyTerminalError):
            cancel_split(split_id=app_split.id, actor=split_owner)

    def test_other_user_forbidden(self, app_split, client_user):
        with pytest.raises(SplitPermissionError):
            cancel_split(split_id=app_split.id, actor=client_user)

        app_split.refresh_from_db()
        assert app_split.status == SplitStatus.ACTIVE

    def test_admin_can_cancel(self, app_split, admin_user):
        split = cancel_split(split_id=app_split.id, actor=admin_user)
        assert split.status == SplitStatus.CANCELLED

    def test_only_stopped_statuses_accepted(self, app_split, split_owner):
        with pytest.raises(SplitValidationError):
            cancel_split(split_id=app_split.id, status=SplitStatus.COMPLETE, actor=split_owner)

    def test_frozen_split_takes_no_more_seats(self, app_split, split_owner):
        cancel_split(split_id=app_split.id, actor=split_owner)

        with pytest.raises(SplitFrozenError):
            reserve(split_id=app_split.id, delta=1)

    def test_provider_is_frozen_after_commit(self, app_split, split_owner, fake_provider,
                                             django_capture_on_commit_callbacks):
        fake_provider.calls.clear()

        with django_capture_on_commit_callbacks(execute=True):
            cancel_split(split_id=app_split.id, actor=split_owner)

        methods = [call['method'] for call in fake_provider.calls]
        assert methods == ['make_readonly', 'send_message']
