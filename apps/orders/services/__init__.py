"""
Orders app services layer.

Mutations that API callers reach return a MutationResult envelope instead
of raising; internal helpers used by other services raise domain errors.
"""

from .exceptions import (
    OrdersServiceError,
    OrderValidationError,
    OrderNotFoundError,
    DuplicateReservationError,
    InvalidStageTransitionError,
    OrderPermissionError,
    PayoutAccountMissingError,
)

from .results import (
    MutationResult,
    returns_result,
)

from .pricing import (
    OrderAmounts,
    calculate_amounts,
)

from .cancellation import (
    bulk_cancel,
    cancel_by_owner,
    cancel_by_client,
)

from .order_lifecycle import (
    get_payment_quote,
    create_order,
    update_order,
    update_from_gateway_event,
    handle_gateway_event,
    mark_shipped,
    mark_received,
    request_refund,
    confirm_refund,
    get_order,
    list_orders,
)


__all__ = [
    # Exceptions
    'OrdersServiceError',
    'OrderValidationError',
    'OrderNotFoundError',
    'DuplicateReservationError',
    'InvalidStageTransitionError',
    'OrderPermissionError',
    'PayoutAccountMissingError',

    # Result envelope
    'MutationResult',
    'returns_result',

    # Pricing
    'OrderAmounts',
    'calculate_amounts',

    # Cancellation
    'bulk_cancel',
    'cancel_by_owner',
    'cancel_by_client',

    # Lifecycle
    'get_payment_quote',
    'create_order',
    'update_order',
    'update_from_gateway_event',
    'handle_gateway_event',
    'mark_shipped',
    'mark_received',
    'request_refund',
    'confirm_refund',
    'get_order',
    'list_orders',
]
