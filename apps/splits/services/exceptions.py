"""
Domain-specific exceptions for splits app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""

from config.errors import DomainError, ErrorCode


class SplitsServiceError(DomainError):
    """Base exception for all splits service errors."""
    code = ErrorCode.VALIDATION_ERROR


class SplitValidationError(SplitsServiceError):
    """Raised when Split input breaks a business rule (e.g. seats >= places)."""
    pass


class SplitNotFoundError(SplitsServiceError):
    """Raised when a Split does not exist."""
    code = ErrorCode.SPLIT_NOT_FOUND


class SplitPermissionError(SplitsServiceError):
    """Raised when the caller is neither the Split owner nor an administrator."""
    code = ErrorCode.FORBIDDEN


class OwnerNotEligibleError(SplitsServiceError):
    """Raised when the owner's payout account cannot take charges yet."""
    code = ErrorCode.FORBIDDEN


class SplitAlreadyTerminalError(SplitsServiceError):
    """Raised when cancelling a Split that is already complete, cancelled or expired."""
    code = ErrorCode.ALREADY_TERMINAL


class SplitFrozenError(SplitsServiceError):
    """Raised when mutating seats or details of a cancelled or expired Split."""
    code = ErrorCode.SPLIT_FROZEN


class CapacityExceededError(SplitsServiceError):
    """Raised when a reservation asks for more seats than are left."""
    code = ErrorCode.CAPACITY_EXCEEDED


class SeatAccountingError(SplitsServiceError):
    """Raised when a release would take the seat counters below zero."""
    code = ErrorCode.SEAT_ACCOUNTING


class AlreadyParticipantError(SplitsServiceError):
    """Raised when a user joins a Split conversation they are already in."""
    code = ErrorCode.DUPLICATE_RESERVATION


class ConcurrencyConflictError(SplitsServiceError):
    """Raised when a seat update keeps hitting write conflicts."""
    code = ErrorCode.CONCURRENCY_CONFLICT
