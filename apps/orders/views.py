from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from config.views import envelope_response

from .serializers import (
    OrderSerializer,
    OrderListSerializer,
    OrderFilterSerializer,
    PaymentQuoteInputSerializer,
    PaymentQuoteSerializer,
    OrderCreateSerializer,
    OrderUpdateSerializer,
    OwnerCancelSerializer,
    ClientCancelSerializer,
    OrderEnvelopeSerializer,
)

from apps.orders.services import (
    get_payment_quote,
    create_order,
    update_order,
    cancel_by_owner,
    cancel_by_client,
    mark_shipped,
    mark_received,
    request_refund,
    confirm_refund,
    get_order,
    list_orders,
    # Exceptions
    OrderNotFoundError,
    OrderValidationError,
    PayoutAccountMissingError,
)
from apps.payments.exceptions import PaymentGatewayError
from apps.splits.services.exceptions import CapacityExceededError, SplitNotFoundError


class OrderPagination(PageNumberPagination):
    """Custom pagination for orders."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class OrderViewSet(viewsets.GenericViewSet):
    """
    ViewSet for Orders.

    All business logic is handled by services; mutations answer with the
    ``{code, success, message, order}`` envelope.

    list: Orders the user placed or received
    retrieve: One Order (client, owner or admin)
    create: Create an Order for a paid or pending payment authorization
    partial_update: Change the shipping address (client only)
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = OrderPagination

    def _envelope(self, result, success_status=status.HTTP_200_OK):
        return envelope_response(result, 'order', OrderSerializer, self.request, success_status)

    def list(self, request):
        """List orders, optionally filtered by split and status."""
        filter_serializer = OrderFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        queryset = list_orders(
            user=request.user,
            split_id=params.get('split'),
            status=params.get('status'),
        )
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = OrderListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(OrderListSerializer(queryset, many=True).data)

    def retrieve(self, request, pk=None):
        try:
            order = get_order(order_id=pk, user=request.user)
        except OrderNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)

    @extend_schema(request=OrderCreateSerializer, responses={201: OrderEnvelopeSerializer})
    def create(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_order(
            client=request.user,
            split_id=serializer.validated_data['split_id'],
            payment_intent=serializer.validated_data['payment_intent'],
            num_seats=serializer.validated_data['num_seats'],
            shipping_address=serializer.validated_data['shipping_address'],
        )
        return self._envelope(result, success_status=status.HTTP_201_CREATED)

    @extend_schema(request=OrderUpdateSerializer, responses={200: OrderEnvelopeSerializer})
    def partial_update(self, request, pk=None):
        serializer = OrderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = update_order(
            order_id=pk,
            client=request.user,
            shipping_address=serializer.validated_data['shipping_address'],
        )
        return self._envelope(result)

    @extend_schema(request=PaymentQuoteInputSerializer, responses={200: PaymentQuoteSerializer})
    @action(detail=False, methods=['post'])
    def quote(self, request):
        """Price a reservation and open a payment authorization for it."""
        serializer = PaymentQuoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            quote = get_payment_quote(
                client=request.user,
                split_id=serializer.validated_data['split_id'],
                num_seats=serializer.validated_data['num_seats'],
            )
        except SplitNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (OrderValidationError, CapacityExceededError, PayoutAccountMissingError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentGatewayError as e:
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response(PaymentQuoteSerializer(quote).data)

    @extend_schema(request=OwnerCancelSerializer, responses={200: OrderEnvelopeSerializer})
    @action(detail=False, methods=['post'])
    def cancel_owner(self, request):
        """Cancel a client's paid Order as the Split owner (fee refunded)."""
        serializer = OwnerCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cancel_by_owner(
            split_id=serializer.validated_data['split_id'],
            client_id=serializer.validated_data['client_id'],
            owner=request.user,
        )
        return self._envelope(result)

    @extend_schema(request=ClientCancelSerializer, responses={200: OrderEnvelopeSerializer})
    @action(detail=False, methods=['post'])
    def cancel_client(self, request):
        """Cancel your own paid Order (fee kept)."""
        serializer = ClientCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cancel_by_client(
            split_id=serializer.validated_data['split_id'],
            client=request.user,
        )
        return self._envelope(result)

    @extend_schema(request=None, responses={200: OrderEnvelopeSerializer})
    @action(detail=True, methods=['post'])
    def ship(self, request, pk=None):
        """Mark the Order as shipped (owner)."""
        return self._envelope(mark_shipped(order_id=pk, owner=request.user))

    @extend_schema(request=None, responses={200: OrderEnvelopeSerializer})
    @action(detail=True, methods=['post'])
    def receive(self, request, pk=None):
        """Mark the Order as received (client)."""
        return self._envelope(mark_received(order_id=pk, client=request.user))

    @extend_schema(request=None, responses={200: OrderEnvelopeSerializer})
    @action(detail=True, methods=['post'])
    def request_refund(self, request, pk=None):
        """Ask the owner for a refund (client)."""
        return self._envelope(request_refund(order_id=pk, client=request.user))

    @extend_schema(request=None, responses={200: OrderEnvelopeSerializer})
    @action(detail=True, methods=['post'])
    def confirm_refund(self, request, pk=None):
        """Grant a requested refund (owner)."""
        return self._envelope(confirm_refund(order_id=pk, owner=request.user))
