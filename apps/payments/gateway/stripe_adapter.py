"""Stripe payment gateway adapter.

Uses Stripe Connect destination charges: the client's PaymentIntent pays
the Split owner's Express account, the platform keeps
``application_fee_amount``. Refunds pull the money back from the owner's
account with ``reverse_transfer`` and optionally return the platform fee.
"""

import stripe
import structlog

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

logger = structlog.get_logger(__name__)

ALREADY_REFUNDED_CODE = "charge_already_refunded"


def _to_authorization(intent) -> Authorization:
    return Authorization(
        id=intent.id,
        status=intent.status,
        amount=intent.amount or 0,
        fee_amount=getattr(intent, "application_fee_amount", None) or 0,
        payment_method=getattr(intent, "payment_method", None) or "",
        client_secret=getattr(intent, "client_secret", None) or "",
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.api_key = api_key

    def create_authorization(
        self,
        amount: int,
        fee_amount: int,
        currency: str,
        customer: str,
        destination: str,
    ) -> Authorization:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                customer=customer or None,
                transfer_data={"destination": destination},
                payment_method_types=["card"],
                application_fee_amount=fee_amount,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return _to_authorization(intent)

    def get_authorization(self, ref: str) -> Authorization | None:
        try:
            intent = stripe.PaymentIntent.retrieve(ref)
        except stripe.InvalidRequestError:
            logger.info("authorization_not_found", payment_intent=ref)
            return None
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return _to_authorization(intent)

    def cancel_authorization(self, ref: str) -> Authorization:
        try:
            intent = stripe.PaymentIntent.cancel(ref)
        except stripe.InvalidRequestError as e:
            raise AuthorizationNotFoundError(str(e)) from e
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return _to_authorization(intent)

    def refund(self, ref: str, reverse_fee: bool = False) -> Refund:
        authorization = self.get_authorization(ref)
        if authorization is None:
            raise AuthorizationNotFoundError(f"No such payment intent: {ref}")
        if authorization.status != AuthorizationStatus.SUCCEEDED:
            raise AuthorizationNotSettledError(f"Payment intent {ref} is not successful")

        try:
            refund = stripe.Refund.create(
                payment_intent=ref,
                reverse_transfer=True,
                refund_application_fee=reverse_fee,
            )
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == ALREADY_REFUNDED_CODE:
                raise AlreadyReversedError(str(e)) from e
            raise PaymentGatewayError(str(e)) from e
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e

        return Refund(id=refund.id, status=refund.status, amount=refund.amount or 0)

    def verify_event(self, payload: bytes | str, signature: str) -> GatewayEvent:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise InvalidSignatureError("Invalid payload") from e
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError("Invalid signature") from e

        obj = event.data.object
        return GatewayEvent(
            id=event.id,
            type=event.type,
            object_id=getattr(obj, "id", None) or "",
            object_status=getattr(obj, "status", None) or "",
        )

    def charges_enabled(self, account_id: str) -> bool:
        if not account_id:
            return False
        try:
            account = stripe.Account.retrieve(account_id)
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return bool(account.charges_enabled)
