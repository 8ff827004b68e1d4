"""Stable error codes shared by every app's service exceptions.

Codes travel to API callers inside the result envelope, so their string
values must not change.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    SPLIT_NOT_FOUND = "SPLIT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    AUTHORIZATION_NOT_FOUND = "AUTHORIZATION_NOT_FOUND"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    DUPLICATE_RESERVATION = "DUPLICATE_RESERVATION"
    ALREADY_TERMINAL = "ALREADY_TERMINAL"
    SPLIT_FROZEN = "SPLIT_FROZEN"
    INVALID_STAGE_TRANSITION = "INVALID_STAGE_TRANSITION"
    FORBIDDEN = "FORBIDDEN"
    SEAT_ACCOUNTING = "SEAT_ACCOUNTING"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    ALREADY_REVERSED = "ALREADY_REVERSED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    CONVERSATION_ERROR = "CONVERSATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class DomainError(Exception):
    """Root of every service exception; carries a stable error code."""

    code = ErrorCode.INTERNAL_ERROR
