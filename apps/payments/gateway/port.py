"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any order or split code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class AuthorizationStatus:
    """Gateway-reported authorization states."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    PAYMENT_FAILED = "payment_failed"
    CANCELED = "canceled"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class Authorization:
    """A payment authorization (Stripe PaymentIntent) as seen by the core."""

    id: str
    status: str
    amount: int = 0
    fee_amount: int = 0
    payment_method: str = ""
    client_secret: str = ""

    @property
    def is_settled(self) -> bool:
        return self.status == AuthorizationStatus.SUCCEEDED


@dataclass(frozen=True)
class Refund:
    """Result of a refund."""

    id: str
    status: str
    amount: int = 0


@dataclass(frozen=True)
class GatewayEvent:
    """A verified inbound event from the gateway."""

    id: str
    type: str
    object_id: str
    object_status: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_authorization(
        self,
        amount: int,
        fee_amount: int,
        currency: str,
        customer: str,
        destination: str,
    ) -> Authorization:
        """Create an authorization paying ``destination`` minus the platform fee."""
        ...

    @abstractmethod
    def get_authorization(self, ref: str) -> Authorization | None:
        """Return the authorization, or None when the gateway does not know it."""
        ...

    @abstractmethod
    def cancel_authorization(self, ref: str) -> Authorization:
        """Cancel an authorization that has not been charged."""
        ...

    @abstractmethod
    def refund(self, ref: str, reverse_fee: bool = False) -> Refund:
        """Refund a settled authorization.

        Raises AlreadyReversedError when the charge is already fully refunded.
        """
        ...

    @abstractmethod
    def verify_event(self, payload: bytes | str, signature: str) -> GatewayEvent:
        """Verify and parse a webhook payload. Fails closed."""
        ...

    @abstractmethod
    def charges_enabled(self, account_id: str) -> bool:
        """Whether a connected payout account can receive charges."""
        ...
