import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User
from apps.conversations.provider import FakeConversationProvider, reset_provider, set_provider
from apps.payments.gateway import AuthorizationStatus, FakeGateway, reset_gateway, set_gateway


@pytest.fixture(autouse=True)
def fake_gateway():
    """Swap in an in-memory payment gateway for every test."""
    gateway = FakeGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture(autouse=True)
def fake_provider():
    """Swap in an in-memory messaging provider for every test."""
    provider = FakeConversationProvider()
    set_provider(provider)
    yield provider
    reset_provider()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


def _authenticate(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def split_owner(db):
    """Create and return a user who can receive payments."""
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        display_name='Split Owner',
        stripe_account_id='acct_owner',
    )


@pytest.fixture
def client_user(db):
    """Create and return a buyer."""
    return User.objects.create_user(
        email='client@example.com',
        password='TestPass123!',
        display_name='Client One',
        stripe_customer_id='cus_client_one',
    )


@pytest.fixture
def second_client(db):
    """Create and return another buyer."""
    return User.objects.create_user(
        email='client2@example.com',
        password='TestPass123!',
        display_name='Client Two',
        stripe_customer_id='cus_client_two',
    )


@pytest.fixture
def admin_user(db):
    """Create and return a marketplace administrator."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Admin',
        is_staff=True,
    )


@pytest.fixture
def owner_api(split_owner):
    """Return API client authenticated as the Split owner."""
    return _authenticate(split_owner)


@pytest.fixture
def client_api(client_user):
    """Return API client authenticated as the first client."""
    return _authenticate(client_user)


@pytest.fixture
def admin_api(admin_user):
    """Return API client authenticated as an administrator."""
    return _authenticate(admin_user)


@pytest.fixture
def make_split(split_owner):
    """Factory creating APP Splits through the service layer."""
    from apps.splits.services import create_split

    def _make(**overrides):
        params = {
            'owner': split_owner,
            'title': 'Bulk Ethiopian Yirgacheffe',
            'num_places': 4,
            'price': Decimal('100.00'),
        }
        params.update(overrides)
        return create_split(**params)

    return _make


@pytest.fixture
def app_split(make_split):
    """A fresh 4-place APP Split with no seats taken."""
    return make_split()


@pytest.fixture
def settled_authorization(fake_gateway):
    """Factory for authorizations the client has already paid."""
    def _make():
        return fake_gateway.add_authorization(status=AuthorizationStatus.SUCCEEDED, amount=2750, fee_amount=250)
    return _make


@pytest.fixture
def pending_authorization(fake_gateway):
    """Factory for authorizations still awaiting payment."""
    def _make():
        return fake_gateway.add_authorization(status=AuthorizationStatus.PROCESSING)
    return _make


@pytest.fixture
def make_order(settled_authorization):
    """Factory placing an Order through the service layer; asserts it succeeded."""
    from apps.orders.services import create_order

    def _make(split, client, num_seats=1, authorization=None):
        authorization = authorization or settled_authorization()
        result = create_order(
            client=client,
            split_id=split.id,
            payment_intent=authorization.id,
            num_seats=num_seats,
        )
        assert result.success, result.message
        return result.order

    return _make
