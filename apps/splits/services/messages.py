"""System message texts posted to Split conversations."""

from apps.splits.models import SplitStatus

SPLIT_COMPLETED_MESSAGE = (
    'Congratulations! All the Seats are taken. Split Creator will process '
    'all of your orders soon. Stay tuned for updates.'
)
SPLIT_RESET_MESSAGE = 'Oh no! Someone has cancelled his order and now Split is no longer complete'

FIVE_DAY_EXPIRATION_NOTICE = 'This Split will expire in 5 days if not filled'
FINAL_EXPIRATION_NOTICE = 'This Split will expire tomorrow in UTC time if not filled'

REFUND_NOTE = 'All funds will be refunded within 7 days. Good luck in next Splits!'


def split_created_message(owner_name):
    return f'{owner_name} created this Split'


def client_joined_message(client_name, num_seats):
    return f'{client_name} reserved {num_seats} seats'


def expiration_changed_message(expiration_date):
    return f'Split expiration date was changed to {expiration_date:%Y %b %d}'


def split_cancel_message(status, reason=''):
    if status == SplitStatus.EXPIRED:
        return f"Oh no! The Split's time has ended and you don't have all the seats filled. {REFUND_NOTE}"
    if status == SplitStatus.CANCELLED:
        if reason:
            stated = f', stating the reason: "{reason}". We hope this is a good reason.'
        else:
            stated = ". We hope there's a good reason."
        return f"Something went wrong! The Split's Creator cancelled this split{stated} {REFUND_NOTE}"
    return f'Something went wrong! This Split is now cancelled. {REFUND_NOTE}'
