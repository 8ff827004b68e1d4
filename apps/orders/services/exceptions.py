"""
Domain-specific exceptions for orders app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""

from config.errors import DomainError, ErrorCode


class OrdersServiceError(DomainError):
    """Base exception for all orders service errors."""
    code = ErrorCode.VALIDATION_ERROR


class OrderValidationError(OrdersServiceError):
    """Raised when order input breaks a business rule."""
    pass


class OrderNotFoundError(OrdersServiceError):
    """Raised when an Order does not exist or is not visible to the caller."""
    code = ErrorCode.ORDER_NOT_FOUND


class DuplicateReservationError(OrdersServiceError):
    """Raised when a client already holds an open Order or the authorization is taken."""
    code = ErrorCode.DUPLICATE_RESERVATION


class InvalidStageTransitionError(OrdersServiceError):
    """Raised when an Order is not in the state the transition starts from."""
    code = ErrorCode.INVALID_STAGE_TRANSITION


class OrderPermissionError(OrdersServiceError):
    """Raised when the caller is not the Order's client or owner as required."""
    code = ErrorCode.FORBIDDEN


class PayoutAccountMissingError(OrdersServiceError):
    """Raised when the Split owner has no payout account to receive payments."""
    pass
