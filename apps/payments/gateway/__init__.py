"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- StripeGateway for production

The default adapter is chosen by ``settings.PAYMENT_GATEWAY_BACKEND``.
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from apps.payments.gateway.fake_adapter import FakeGateway
from apps.payments.gateway.port import (
    Authorization,
    AuthorizationStatus,
    GatewayEvent,
    PaymentGateway,
    Refund,
)

_current_gateway: PaymentGateway | None = None


def _build_default_gateway() -> PaymentGateway:
    backend = settings.PAYMENT_GATEWAY_BACKEND
    if backend == "fake":
        return FakeGateway()
    if backend == "stripe":
        from apps.payments.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        )
    raise ImproperlyConfigured(f"Unknown PAYMENT_GATEWAY_BACKEND: {backend!r}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_default_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None


__all__ = [
    "Authorization",
    "AuthorizationStatus",
    "FakeGateway",
    "GatewayEvent",
    "PaymentGateway",
    "Refund",
    "get_gateway",
    "set_gateway",
    "reset_gateway",
]
