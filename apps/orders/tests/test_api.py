import pytest
from uuid import uuid4
from rest_framework import status

from apps.orders.models import Order, OrderStatus


@pytest.mark.django_db
class TestOrderAPI:
    """Tests for /api/orders/ endpoints."""

    def test_quote(self, client_api, app_split):
        response = client_api.post('/api/orders/quote/', {
            'split_id': str(app_split.id),
            'num_seats': 1,
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['amount'] == 2750
        assert response.data['fee_amount'] == 250
        assert response.data['payment_intent_id'].startswith('pi_fake_')

    def test_quote_unknown_split(self, client_api):
        response = client_api.post('/api/orders/quote/', {
            'split_id': str(uuid4()),
            'num_seats': 1,
        }, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_quote_too_many_seats(self, client_api, app_split):
        response = client_api.post('/api/orders/quote/', {
            'split_id': str(app_split.id),
            'num_seats': 9,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_quote_gateway_down(self, client_api, app_split, fake_gateway):
        fake_gateway.configure(should_succeed=False)

        response = client_api.post('/api/orders/quote/', {
            'split_id': str(app_split.id),
            'num_seats': 1,
        }, format='json')

        assert response.status_code == status.HTTP_502_BAD_GATEWAY

    def test_create_order(self, client_api, app_split, settled_authorization):
        authorization = settled_authorization()

        response = client_api.post('/api/orders/', {
            'split_id': str(app_split.id),
            'payment_intent': authorization.id,
            'num_seats': 1,
            'shipping_address': '1 Roastery Lane',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['success'] is True
        assert response.data['order']['status'] == OrderStatus.PAID
        assert response.data['order']['shipping_address'] == '1 Roastery Lane'

    def test_create_order_capacity_exceeded(self, client_api, app_split, settled_authorization):
        authorization = settled_authorization()

        response = client_api.post('/api/orders/', {
            'split_id': str(app_split.id),
            'payment_intent': authorization.id,
            'num_seats': 5,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'CAPACITY_EXCEEDED'
        assert response.data['order'] is None
        assert response.data['payment_intent'] == authorization.id

    def test_create_order_invalid_input(self, client_api, app_split):
        response = client_api.post('/api/orders/', {
            'split_id': str(app_split.id),
            'num_seats': 0,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Order.objects.count() == 0

    def test_requires_authentication(self, api_client):
        response = api_client.get('/api/orders/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_orders(self, client_api, app_split, client_user, second_client, make_order):
        make_order(app_split, client_user)
        make_order(app_split, second_client)

        response = client_api.get('/api/orders/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['client_name'] == 'Client One'

    def test_retrieve_hidden_order(self, app_split, second_client, make_order, client_api):
        order = make_order(app_split, second_client)

        response = client_api.get(f'/api/orders/{order.id}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_shipping_address(self, client_api, app_split, client_user, make_order):
        order = make_order(app_split, client_user)

        response = client_api.patch(f'/api/orders/{order.id}/', {'shipping_address': '2 Bean St'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['shipping_address'] == '2 Bean St'

    def test_shipping_flow(self, owner_api, client_api, app_split, client_user, make_order):
        order = make_order(app_split, client_user)

        assert owner_api.post(f'/api/orders/{order.id}/ship/').data['order']['status'] == OrderStatus.SHIPPED
        assert client_api.post(f'/api/orders/{order.id}/receive/').data['order']['status'] == OrderStatus.RECEIVED
        response = client_api.post(f'/api/orders/{order.id}/request_refund/')
        assert response.data['order']['status'] == OrderStatus.REFUND_REQUESTED

        response = owner_api.post(f'/api/orders/{order.id}/confirm_refund/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == OrderStatus.REFUNDED
        assert response.data['order']['refunded'] is True

    def test_client_cannot_ship(self, client_api, app_split, client_user, make_order):
        order = make_order(app_split, client_user)

        response = client_api.post(f'/api/orders/{order.id}/ship/')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'FORBIDDEN'

    def test_ship_unknown_order(self, owner_api):
        response = owner_api.post(f'/api/orders/{uuid4()}/ship/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_owner_cancel(self, owner_api, app_split, client_user, make_order):
        make_order(app_split, client_user)

        response = owner_api.post('/api/orders/cancel_owner/', {
            'split_id': str(app_split.id),
            'client_id': str(client_user.id),
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == OrderStatus.OWNER_CANCELED

    def test_client_cancel(self, client_api, app_split, client_user, make_order):
        make_order(app_split, client_user)

        response = client_api.post('/api/orders/cancel_client/', {'split_id': str(app_split.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == OrderStatus.CLIENT_CANCELED

    def test_cancel_refund_failure(self, client_api, app_split, client_user, make_order, fake_gateway):
        make_order(app_split, client_user)
        fake_gateway.configure(should_succeed=False)

        response = client_api.post('/api/orders/cancel_client/', {'split_id': str(app_split.id)}, format='json')

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data['code'] == 'GATEWAY_ERROR'
