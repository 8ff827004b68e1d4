"""
Domain exceptions for the payments app.

Raised by payment gateway adapters. Callers in the orders and splits apps
decide which of them are tolerated (an already reversed refund) and which
abort the enclosing transaction.
"""

from config.errors import DomainError, ErrorCode


class PaymentGatewayError(DomainError):
    """Base exception for payment gateway failures."""
    code = ErrorCode.GATEWAY_ERROR


class AuthorizationNotFoundError(PaymentGatewayError):
    """Raised when the gateway does not know an authorization handle."""
    code = ErrorCode.AUTHORIZATION_NOT_FOUND


class AuthorizationNotSettledError(PaymentGatewayError):
    """Raised when refunding an authorization that was never charged."""
    pass


class AlreadyReversedError(PaymentGatewayError):
    """Raised when a refund is requested for a fully reversed charge."""
    code = ErrorCode.ALREADY_REVERSED


class InvalidSignatureError(PaymentGatewayError):
    """Raised when an inbound event fails signature verification."""
    code = ErrorCode.INVALID_SIGNATURE
