"""
Payment gateway adapter tests.

Tests cover:
- FakeGateway state handling used by the rest of the suite
- StripeGateway translation of Stripe objects and errors (Stripe mocked)
- Gateway factory
"""

import json
import pytest
import stripe
from types import SimpleNamespace
from unittest.mock import patch

from apps.payments.exceptions import (
    AlreadyReversedError,
    AuthorizationNotFoundError,
    AuthorizationNotSettledError,
    InvalidSignatureError,
    PaymentGatewayError,
)
from apps.payments.gateway import (
    AuthorizationStatus,
    FakeGateway,
    get_gateway,
    reset_gateway,
)
from apps.payments.gateway.fake_adapter import VALID_SIGNATURE
from apps.payments.gateway.stripe_adapter import ALREADY_REFUNDED_CODE, StripeGateway


def _intent(**overrides):
    values = {
        'id': 'pi_123',
        'status': AuthorizationStatus.SUCCEEDED,
        'amount': 2750,
        'application_fee_amount': 250,
        'payment_method': 'pm_123',
        'client_secret': 'pi_123_secret',
    }
    values.update(overrides)
    return SimpleNamespace(**values)


# =============================================================================
# FakeGateway Tests
# =============================================================================

class TestFakeGateway:
    """Tests for the in-memory gateway."""

    def test_refund_settled_authorization(self):
        gateway = FakeGateway()
        authorization = gateway.add_authorization(status=AuthorizationStatus.SUCCEEDED, amount=1000)

        refund = gateway.refund(authorization.id, reverse_fee=True)

        assert refund.amount == 1000
        assert authorization.id in gateway.refunded

    def test_second_refund_already_reversed(self):
        gateway = FakeGateway()
        authorization = gateway.add_authorization(status=AuthorizationStatus.SUCCEEDED)
        gateway.refund(authorization.id)

        with pytest.raises(AlreadyReversedError):
            gateway.refund(authorization.id)

    def test_refund_unsettled_authorization(self):
        gateway = FakeGateway()
        authorization = gateway.add_authorization(status=AuthorizationStatus.PROCESSING)

        with pytest.raises(AuthorizationNotSettledError):
            gateway.refund(authorization.id)

    def test_cancel_authorization(self):
        gateway = FakeGateway()
        authorization = gateway.add_authorization()

        assert gateway.cancel_authorization(authorization.id).status == AuthorizationStatus.CANCELED

        with pytest.raises(AuthorizationNotFoundError):
            gateway.cancel_authorization('pi_missing')

    def test_unavailable(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason='Down for maintenance')

        with pytest.raises(PaymentGatewayError, match='Down for maintenance'):
            gateway.get_authorization('pi_any')

    def test_verify_event(self):
        gateway = FakeGateway()
        payload = json.dumps({
            'id': 'evt_1',
            'type': 'payment_intent.succeeded',
            'data': {'object': {'id': 'pi_1', 'status': 'succeeded'}},
        })

        event = gateway.verify_event(payload, VALID_SIGNATURE)

        assert event.type == 'payment_intent.succeeded'
        assert event.object_id == 'pi_1'

        with pytest.raises(InvalidSignatureError):
            gateway.verify_event(payload, 'forged')
        with pytest.raises(InvalidSignatureError):
            gateway.verify_event('not json', VALID_SIGNATURE)


# =============================================================================
# StripeGateway Tests
# =============================================================================

class TestStripeGateway:
    """Tests for the Stripe adapter with the Stripe client mocked."""

    @pytest.fixture
    def gateway(self):
        return StripeGateway(api_key='sk_test_123', webhook_secret='whsec_123')

    def test_create_authorization_uses_destination_charge(self, gateway):
        with patch('stripe.PaymentIntent.create', return_value=_intent(status='requires_payment_method')) as create:
            authorization = gateway.create_authorization(
                amount=2750, fee_amount=250, currency='usd', customer='cus_1', destination='acct_1',
            )

        assert authorization.id == 'pi_123'
        assert authorization.fee_amount == 250
        kwargs = create.call_args.kwargs
        assert kwargs['transfer_data'] == {'destination': 'acct_1'}
        assert kwargs['application_fee_amount'] == 250

    def test_get_unknown_authorization(self, gateway):
        error = stripe.InvalidRequestError('No such payment_intent', 'intent')

        with patch('stripe.PaymentIntent.retrieve', side_effect=error):
            assert gateway.get_authorization('pi_missing') is None

    def test_get_authorization_api_error(self, gateway):
        with patch('stripe.PaymentIntent.retrieve', side_effect=stripe.APIConnectionError('offline')):
            with pytest.raises(PaymentGatewayError):
                gateway.get_authorization('pi_123')

    def test_refund_reverses_transfer(self, gateway):
        refund = SimpleNamespace(id='re_1', status='succeeded', amount=2750)

        with patch('stripe.PaymentIntent.retrieve', return_value=_intent()), \
                patch('stripe.Refund.create', return_value=refund) as create:
            result = gateway.refund('pi_123', reverse_fee=True)

        assert result.id == 're_1'
        create.assert_called_once_with(
            payment_intent='pi_123',
            reverse_transfer=True,
            refund_application_fee=True,
        )

    def test_refund_unsettled(self, gateway):
        with patch('stripe.PaymentIntent.retrieve', return_value=_intent(status='processing')), \
                patch('stripe.Refund.create') as create:
            with pytest.raises(AuthorizationNotSettledError):
                gateway.refund('pi_123')

        create.assert_not_called()

    def test_refund_already_refunded(self, gateway):
        error = stripe.InvalidRequestError('Charge has already been refunded', None, code=ALREADY_REFUNDED_CODE)

        with patch('stripe.PaymentIntent.retrieve', return_value=_intent()), \
                patch('stripe.Refund.create', side_effect=error):
            with pytest.raises(AlreadyReversedError):
                gateway.refund('pi_123')

    def test_verify_event_bad_signature(self, gateway):
        error = stripe.SignatureVerificationError('No signatures found', 'sig_header')

        with patch('stripe.Webhook.construct_event', side_effect=error):
            with pytest.raises(InvalidSignatureError):
                gateway.verify_event(b'{}', 'bad')

    def test_verify_event(self, gateway):
        event = SimpleNamespace(
            id='evt_1',
            type='payment_intent.canceled',
            data=SimpleNamespace(object=SimpleNamespace(id='pi_123', status='canceled')),
        )

        with patch('stripe.Webhook.construct_event', return_value=event):
            result = gateway.verify_event(b'{}', 't=1,v1=abc')

        assert result.object_id == 'pi_123'
        assert result.object_status == 'canceled'

    def test_charges_enabled(self, gateway):
        assert gateway.charges_enabled('') is False

        with patch('stripe.Account.retrieve', return_value=SimpleNamespace(charges_enabled=True)):
            assert gateway.charges_enabled('acct_1') is True


# =============================================================================
# Factory Tests
# =============================================================================

class TestGatewayFactory:
    """Tests for get_gateway() backend selection."""

    def test_fake_backend(self, settings):
        settings.PAYMENT_GATEWAY_BACKEND = 'fake'
        reset_gateway()

        assert isinstance(get_gateway(), FakeGateway)

    def test_stripe_backend(self, settings):
        settings.PAYMENT_GATEWAY_BACKEND = 'stripe'
        settings.STRIPE_SECRET_KEY = 'sk_test_123'
        reset_gateway()

        assert isinstance(get_gateway(), StripeGateway)
