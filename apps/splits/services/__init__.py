"""
Splits app services layer.

Services contain business logic and orchestrate operations across models.
All seat changes go through the reservation engine inside a transaction.
"""

from .exceptions import (
    SplitsServiceError,
    SplitValidationError,
    SplitNotFoundError,
    SplitPermissionError,
    OwnerNotEligibleError,
    SplitAlreadyTerminalError,
    SplitFrozenError,
    CapacityExceededError,
    SeatAccountingError,
    AlreadyParticipantError,
    ConcurrencyConflictError,
)

from .seat_reservation import (
    reserve,
    resize,
)

from .participation import (
    join_split,
    exit_split,
)

from .split_management import (
    create_split,
    update_split,
    get_split,
    list_splits,
)

from .cancellation import (
    cancel_split,
)

from .expiration import (
    SweepReport,
    send_expiration_notices,
    expire_splits,
    run_expiration_sweep,
)


__all__ = [
    # Exceptions
    'SplitsServiceError',
    'SplitValidationError',
    'SplitNotFoundError',
    'SplitPermissionError',
    'OwnerNotEligibleError',
    'SplitAlreadyTerminalError',
    'SplitFrozenError',
    'CapacityExceededError',
    'SeatAccountingError',
    'AlreadyParticipantError',
    'ConcurrencyConflictError',

    # Seat reservation engine
    'reserve',
    'resize',

    # Participation
    'join_split',
    'exit_split',

    # Split management
    'create_split',
    'update_split',
    'get_split',
    'list_splits',

    # Cancellation
    'cancel_split',

    # Expiration sweep
    'SweepReport',
    'send_expiration_notices',
    'expire_splits',
    'run_expiration_sweep',
]
