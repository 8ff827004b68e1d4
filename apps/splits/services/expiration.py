"""
Expiration sweep.

Run once a day (00:00 UTC) by the external scheduler through the
``run_expiration_sweep`` management command. Two notice passes post
reminders to Splits about to expire; the expiry pass cancels every Split
whose expiration date has passed. Each Split is handled on its own: a
failure is recorded in the report and the batch moves on.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.conversations.models import ConversationMessage, SplitRoomMessageType
from apps.conversations.services.conversation_management import post_system_message
from apps.splits.models import TERMINAL_STATUSES, Split, SplitStatus, SplitType

from .cancellation import cancel_split
from .exceptions import SplitAlreadyTerminalError
from .messages import FINAL_EXPIRATION_NOTICE, FIVE_DAY_EXPIRATION_NOTICE

logger = structlog.get_logger(__name__)


@dataclass
class SweepReport:
    """Outcome of one sweep run."""

    now: datetime
    dry_run: bool = False
    five_day_notices: list = field(default_factory=list)
    final_notices: list = field(default_factory=list)
    expired: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def as_dict(self) -> dict:
        return {
            'now': self.now.isoformat(),
            'dry_run': self.dry_run,
            'five_day_notices': len(self.five_day_notices),
            'final_notices': len(self.final_notices),
            'expired': len(self.expired),
            'skipped': len(self.skipped),
            'failures': len(self.failures),
        }


def _live_app_splits() -> QuerySet[Split]:
    return Split.objects.filter(type=SplitType.APP).exclude(status__in=TERMINAL_STATUSES)


def splits_in_window(*, start: datetime, end: datetime) -> QuerySet[Split]:
    """Non-terminal APP Splits expiring in (start, end]."""
    return _live_app_splits().filter(
        expiration_date__gt=start,
        expiration_date__lte=end,
    ).select_related('conversation')


def splits_past_expiration(*, now: datetime) -> QuerySet[Split]:
    return _live_app_splits().filter(
        Q(expiration_date__lte=now)
    ).order_by('expiration_date')


def _send_notice(split: Split, text: str, sent: list, report: SweepReport) -> None:
    conversation = split.conversation
    already_sent = ConversationMessage.objects.filter(
        conversation=conversation,
        event_tag=SplitRoomMessageType.EXPIRATION_NOTICE,
        text=text,
    ).exists()
    if already_sent:
        report.skipped.append(split.id)
        return

    if not report.dry_run:
        with transaction.atomic():
            post_system_message(
                conversation_id=conversation.id,
                text=text,
                event_tag=SplitRoomMessageType.EXPIRATION_NOTICE,
            )
    sent.append(split.id)


def _notify_each(splits, text: str, sent: list, report: SweepReport, notice: str) -> None:
    for split in splits:
        try:
            _send_notice(split, text, sent, report)
        except Exception as e:
            logger.warning(
                "expiration_notice_failed",
                split_id=str(split.id),
                notice=notice,
                error=str(e),
                exc_info=True,
            )
            report.failures.append({'split_id': split.id, 'step': notice, 'error': str(e)})


def send_expiration_notices(*, now: Optional[datetime] = None, dry_run: bool = False,
                            report: Optional[SweepReport] = None) -> SweepReport:
    """
    Post the 5-day and the final expiration notices.

    A notice already posted to a Split is not posted again, so the pass can
    be re-run safely.
    """
    now = now or timezone.now()
    report = report or SweepReport(now=now, dry_run=dry_run)

    window_start, window_end = settings.EXPIRATION_NOTICE_WINDOW_DAYS
    five_day = splits_in_window(
        start=now + timedelta(days=window_start),
        end=now + timedelta(days=window_end),
    )
    final = splits_in_window(
        start=now,
        end=now + timedelta(days=settings.EXPIRATION_FINAL_NOTICE_DAYS),
    )

    _notify_each(five_day, FIVE_DAY_EXPIRATION_NOTICE, report.five_day_notices, report, 'five_day_notice')
    _notify_each(final, FINAL_EXPIRATION_NOTICE, report.final_notices, report, 'final_notice')
    return report


def expire_splits(*, now: Optional[datetime] = None, dry_run: bool = False,
                  report: Optional[SweepReport] = None) -> SweepReport:
    """
    Move every Split past its expiration date to EXPIRED.

    Each Split is cancelled in its own transaction; one failure does not
    stop the others.
    """
    now = now or timezone.now()
    report = report or SweepReport(now=now, dry_run=dry_run)

    for split_id in list(splits_past_expiration(now=now).values_list('id', flat=True)):
        if dry_run:
            report.expired.append(split_id)
            continue
        try:
            cancel_split(split_id=split_id, status=SplitStatus.EXPIRED)
        except SplitAlreadyTerminalError:
            # Completed or cancelled by a concurrent request since the query ran
            report.skipped.append(split_id)
        except Exception as e:
            logger.error(
                "split_expiration_failed",
                split_id=str(split_id),
                error=str(e),
                exc_info=True,
            )
            report.failures.append({'split_id': split_id, 'step': 'expire', 'error': str(e)})
        else:
            report.expired.append(split_id)

    return report


def run_expiration_sweep(*, now: Optional[datetime] = None, dry_run: bool = False,
                         notices: bool = True, expire: bool = True) -> SweepReport:
    """Run the notice passes and the expiry pass, returning a combined report."""
    now = now or timezone.now()
    report = SweepReport(now=now, dry_run=dry_run)

    logger.info("expiration_sweep_started", now=now.isoformat(), dry_run=dry_run)
    if notices:
        send_expiration_notices(now=now, dry_run=dry_run, report=report)
    if expire:
        expire_splits(now=now, dry_run=dry_run, report=report)

    log = logger.info if report.ok else logger.warning
    log("expiration_sweep_finished", **report.as_dict())
    return report
