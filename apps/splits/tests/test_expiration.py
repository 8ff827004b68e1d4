"""
Expiration sweep tests.

Tests cover:
- Notice windows (5-day and final)
- Expiry of overdue Splits and their Orders
- Idempotent re-runs and isolated per-Split failures
- The run_expiration_sweep management command
"""

import pytest
from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest.mock import patch
from django.core.management import call_command

from apps.conversations.models import ConversationMessage, SplitRoomMessageType
from apps.conversations.services.conversation_management import post_system_message
from apps.orders.models import OrderStatus
from apps.splits.models import SplitStatus
from apps.splits.services import (
    cancel_split,
    expire_splits,
    reserve,
    run_expiration_sweep,
    send_expiration_notices,
)
from apps.splits.services.messages import FINAL_EXPIRATION_NOTICE, FIVE_DAY_EXPIRATION_NOTICE

NOW = datetime(2026, 5, 1, 0, 0, tzinfo=dt_timezone.utc)


def _notices(split):
    return list(
        ConversationMessage.objects
        .filter(conversation__split=split, event_tag=SplitRoomMessageType.EXPIRATION_NOTICE)
        .values_list('text', flat=True)
    )


@pytest.fixture
def expiring_splits(make_split):
    """One Split per sweep bucket."""
    return {
        'five_day': make_split(title='In 4.5 days', expiration_date=NOW + timedelta(days=4, hours=12)),
        'final': make_split(title='In 12 hours', expiration_date=NOW + timedelta(hours=12)),
        'overdue': make_split(title='Overdue', expiration_date=NOW - timedelta(hours=1)),
        'later': make_split(title='In 10 days', expiration_date=NOW + timedelta(days=10)),
    }


# =============================================================================
# Notices
# =============================================================================

@pytest.mark.django_db
class TestExpirationNotices:
    """Tests for send_expiration_notices()."""

    def test_notices_follow_windows(self, expiring_splits):
        report = send_expiration_notices(now=NOW)

        assert report.five_day_notices == [expiring_splits['five_day'].id]
        assert report.final_notices == [expiring_splits['final'].id]
        assert _notices(expiring_splits['five_day']) == [FIVE_DAY_EXPIRATION_NOTICE]
        assert _notices(expiring_splits['final']) == [FINAL_EXPIRATION_NOTICE]
        assert _notices(expiring_splits['overdue']) == []
        assert _notices(expiring_splits['later']) == []

    def test_rerun_posts_nothing_new(self, expiring_splits):
        send_expiration_notices(now=NOW)
        report = send_expiration_notices(now=NOW + timedelta(hours=1))

        assert report.five_day_notices == []
        assert report.final_notices == []
        assert _notices(expiring_splits['five_day']) == [FIVE_DAY_EXPIRATION_NOTICE]

    def test_terminal_splits_get_no_notice(self, expiring_splits, split_owner):
        reserve(split_id=expiring_splits['final'].id, delta=4)
        cancel_split(split_id=expiring_splits['five_day'].id, actor=split_owner)

        report = send_expiration_notices(now=NOW)

        assert report.five_day_notices == []
        assert report.final_notices == []

    def test_dry_run_posts_nothing(self, expiring_splits):
        report = send_expiration_notices(now=NOW, dry_run=True)

        assert len(report.five_day_notices) == 1
        assert _notices(expiring_splits['five_day']) == []

    def test_failure_is_collected_and_batch_continues(self, make_split):
        first = make_split(title='A', expiration_date=NOW + timedelta(days=4, hours=6))
        second = make_split(title='B', expiration_date=NOW + timedelta(days=4, hours=18))
        real_post = post_system_message

        def flaky_post(*, conversation_id, **kwargs):
            if conversation_id == first.conversation.id:
                raise RuntimeError('provider down')
            return real_post(conversation_id=conversation_id, **kwargs)

        with patch('apps.splits.services.expiration.post_system_message', side_effect=flaky_post):
            report = send_expiration_notices(now=NOW)

        assert report.five_day_notices == [second.id]
        assert [failure['split_id'] for failure in report.failures] == [first.id]
        assert not report.ok


# =============================================================================
# Expiry
# =============================================================================

@pytest.mark.django_db
class TestExpireSplits:
    """Tests for expire_splits()."""

    def test_overdue_split_expires(self, expiring_splits):
        report = expire_splits(now=NOW)

        overdue = expiring_splits['overdue']
        overdue.refresh_from_db()
        assert report.expired == [overdue.id]
        assert overdue.status == SplitStatus.EXPIRED
        assert overdue.conversation.is_readonly is True
        text = overdue.conversation.messages.get(event_tag=SplitRoomMessageType.SPLIT_CANCELLED).text
        assert "The Split's time has ended" in text

    def test_orders_are_refunded_with_fee(self, make_split, client_user, make_order, fake_gateway):
        split = make_split(expiration_date=NOW - timedelta(minutes=5))
        order = make_order(split, client_user, num_seats=2)

        expire_splits(now=NOW)

        order.refresh_from_db()
        assert order.status == OrderStatus.SYSTEM_CANCELED
        assert fake_gateway.calls_to('refund') == [
            {'method': 'refund', 'ref': order.payment_intent, 'reverse_fee': True}
        ]

    def test_rerun_is_noop(self, expiring_splits):
        overdue = expiring_splits['overdue']
        expire_splits(now=NOW)
        report = expire_splits(now=NOW + timedelta(hours=1))

        overdue.refresh_from_db()
        assert report.expired == []
        assert report.skipped == []
        assert report.failures == []
        assert overdue.status == SplitStatus.EXPIRED
        messages = overdue.conversation.messages.filter(
            event_tag=SplitRoomMessageType.SPLIT_CANCELLED,
        )
        assert messages.count() == 1
        expiring_splits['final'].refresh_from_db()
        assert expiring_splits['final'].status == SplitStatus.ACTIVE

    def test_complete_split_is_not_expired(self, make_split):
        split = make_split(num_places=1, expiration_date=NOW - timedelta(hours=1))
        reserve(split_id=split.id, delta=1)

        report = expire_splits(now=NOW)

        split.refresh_from_db()
        assert report.expired == []
        assert split.status == SplitStatus.COMPLETE

    def test_one_failure_does_not_block_others(self, make_split, client_user, make_order, fake_gateway):
        broken = make_split(title='Broken', expiration_date=NOW - timedelta(hours=2))
        healthy = make_split(title='Healthy', expiration_date=NOW - timedelta(hours=1))
        order = make_order(broken, client_user)
        # The gateway no longer knows this authorization, so its refund fails
        del fake_gateway.authorizations[order.payment_intent]

        report = expire_splits(now=NOW)

        broken.refresh_from_db()
        healthy.refresh_from_db()
        assert report.expired == [healthy.id]
        assert [failure['split_id'] for failure in report.failures] == [broken.id]
        assert broken.status == SplitStatus.ACTIVE
        assert healthy.status == SplitStatus.EXPIRED

    def test_dry_run_changes_nothing(self, expiring_splits):
        report = expire_splits(now=NOW, dry_run=True)

        overdue = expiring_splits['overdue']
        overdue.refresh_from_db()
        assert report.expired == [overdue.id]
        assert overdue.status == SplitStatus.ACTIVE


@pytest.mark.django_db
class TestRunExpirationSweep:
    """Tests for the combined sweep and its command."""

    def test_full_sweep(self, expiring_splits):
        report = run_expiration_sweep(now=NOW)

        assert report.ok
        assert report.as_dict() == {
            'now': NOW.isoformat(),
            'dry_run': False,
            'five_day_notices': 1,
            'final_notices': 1,
            'expired': 1,
            'skipped': 0,
            'failures': 0,
        }

    def test_notices_only(self, expiring_splits):
        report = run_expiration_sweep(now=NOW, expire=False)

        expiring_splits['overdue'].refresh_from_db()
        assert report.expired == []
        assert expiring_splits['overdue'].status == SplitStatus.ACTIVE

    def test_command_runs_sweep(self, make_split):
        make_split(title='Overdue')
        out = StringIO()

        call_command('run_expiration_sweep', stdout=out)

        assert 'Expiration sweep finished.' in out.getvalue()

    def test_command_dry_run(self, make_split):
        from django.utils import timezone

        split = make_split(title='Overdue', expiration_date=timezone.now() - timedelta(hours=1))
        out = StringIO()

        call_command('run_expiration_sweep', '--dry-run', stdout=out)

        split.refresh_from_db()
        assert split.status == SplitStatus.ACTIVE
        assert 'expired: 1' in out.getvalue()
        assert '--dry-run mode' in out.getvalue()

    def test_command_expire_only(self, make_split):
        from django.utils import timezone

        split = make_split(title='Tomorrow', expiration_date=timezone.now() + timedelta(hours=6))
        out = StringIO()

        call_command('run_expiration_sweep', '--expire-only', stdout=out)

        assert _notices(split) == []
        assert 'final notices: 0' in out.getvalue()
