"""Configurable fake payment gateway for development and testing.

This adapter simulates the payment gateway without any external calls.
Authorizations live in memory; tests move them between states with
``settle()``/``set_status()`` and inspect ``calls`` afterwards.
"""

import json
from uuid import uuid4

from apps.payments.exceptions import (
    AlreadyReversedError,
    AuthorizationNotFoundError,
    AuthorizationNotSettledError,
    InvalidSignatureError,
    PaymentGatewayError,
)
from apps.payments.gateway.port import (
    Authorization,
    AuthorizationStatus,
    GatewayEvent,
    PaymentGateway,
    Refund,
)

VALID_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.authorizations: dict[str, Authorization] = {}
        self.refunded: set[str] = set()
        self.disabled_accounts: set[str] = set()

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    # Test helpers

    def add_authorization(
        self,
        status: str = AuthorizationStatus.REQUIRES_PAYMENT_METHOD,
        amount: int = 0,
        fee_amount: int = 0,
        payment_method: str = "pm_card_visa",
    ) -> Authorization:
        """Register an authorization as if the client had created it earlier."""
        ref = f"pi_fake_{uuid4().hex[:16]}"
        authorization = Authorization(
            id=ref,
            status=status,
            amount=amount,
            fee_amount=fee_amount,
            payment_method=payment_method,
            client_secret=f"{ref}_secret",
        )
        self.authorizations[ref] = authorization
        return authorization

    def set_status(self, ref: str, status: str) -> Authorization:
        current = self.authorizations[ref]
        updated = Authorization(
            id=current.id,
            status=status,
            amount=current.amount,
            fee_amount=current.fee_amount,
            payment_method=current.payment_method,
            client_secret=current.client_secret,
        )
        self.authorizations[ref] = updated
        return updated

    def settle(self, ref: str) -> Authorization:
        return self.set_status(ref, AuthorizationStatus.SUCCEEDED)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    # PaymentGateway

    def _check_available(self) -> None:
        if not self.should_succeed:
            raise PaymentGatewayError(self.failure_reason)

    def create_authorization(
        self,
        amount: int,
        fee_amount: int,
        currency: str,
        customer: str,
        destination: str,
    ) -> Authorization:
        self.calls.append({
            "method": "create_authorization",
            "amount": amount,
            "fee_amount": fee_amount,
            "currency": currency,
            "customer": customer,
            "destination": destination,
        })
        self._check_available()
        return self.add_authorization(amount=amount, fee_amount=fee_amount, payment_method="")

    def get_authorization(self, ref: str) -> Authorization | None:
        self.calls.append({"method": "get_authorization", "ref": ref})
        self._check_available()
        return self.authorizations.get(ref)

    def cancel_authorization(self, ref: str) -> Authorization:
        self.calls.append({"method": "cancel_authorization", "ref": ref})
        self._check_available()
        if ref not in self.authorizations:
            raise AuthorizationNotFoundError(f"No such authorization: {ref}")
        return self.set_status(ref, AuthorizationStatus.CANCELED)

    def refund(self, ref: str, reverse_fee: bool = False) -> Refund:
        self.calls.append({"method": "refund", "ref": ref, "reverse_fee": reverse_fee})
        self._check_available()
        authorization = self.authorizations.get(ref)
        if authorization is None:
            raise AuthorizationNotFoundError(f"No such authorization: {ref}")
        if ref in self.refunded:
            raise AlreadyReversedError(f"Charge for {ref} has already been refunded")
        if not authorization.is_settled:
            raise AuthorizationNotSettledError(f"Authorization {ref} is not successful")

        self.refunded.add(ref)
        return Refund(
            id=f"re_fake_{uuid4().hex[:12]}",
            status="succeeded",
            amount=authorization.amount,
        )

    def verify_event(self, payload: bytes | str, signature: str) -> GatewayEvent:
        if signature != VALID_SIGNATURE:
            raise InvalidSignatureError("Invalid signature")
        try:
            event = json.loads(payload)
            obj = event["data"]["object"]
            return GatewayEvent(
                id=event.get("id", ""),
                type=event["type"],
                object_id=obj.get("id", ""),
                object_status=obj.get("status", ""),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidSignatureError("Invalid payload") from e

    def charges_enabled(self, account_id: str) -> bool:
        self.calls.append({"method": "charges_enabled", "account_id": account_id})
        return bool(account_id) and account_id not in self.disabled_accounts
