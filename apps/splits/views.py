from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from config.views import envelope_response

from .models import Split
from .serializers import (
    SplitSerializer,
    SplitListSerializer,
    SplitCreateSerializer,
    SplitUpdateSerializer,
    SplitFilterSerializer,
    SplitCancelSerializer,
    SplitEnvelopeSerializer,
)
from .permissions import IsSplitOwnerOrAdmin

from apps.orders.services.results import returns_result
from apps.splits.services import (
    create_split,
    update_split,
    list_splits,
    cancel_split,
    # Exceptions
    SplitsServiceError,
    SplitPermissionError,
    OwnerNotEligibleError,
    ConcurrencyConflictError,
)

# Cancellation answers with the result envelope
cancel_split_result = returns_result('split')(cancel_split)


class SplitPagination(PageNumberPagination):
    """Custom pagination for splits."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class SplitViewSet(viewsets.GenericViewSet):
    """
    ViewSet for Splits.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Browse open Splits (or your own)
    retrieve: Get a specific Split
    create: Create an APP Split with its conversation
    partial_update: Update a Split (owner or admin)
    """

    queryset = Split.objects.select_related('owner', 'conversation')
    serializer_class = SplitSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = SplitPagination

    def get_permissions(self):
        """Set permissions based on action."""
        if self.action in ['partial_update', 'cancel']:
            return [IsAuthenticated(), IsSplitOwnerOrAdmin()]
        return [IsAuthenticated()]

    @extend_schema(parameters=[SplitFilterSerializer], responses={200: SplitListSerializer(many=True)})
    def list(self, request):
        filter_serializer = SplitFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        queryset = list_splits(
            user=request.user,
            owner_id=params.get('owner'),
            split_type=params.get('type'),
            shipping_type=params.get('shipping_type'),
            status=params.get('status'),
            search=params.get('search'),
        )
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = SplitListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(SplitListSerializer(queryset, many=True).data)

    def retrieve(self, request, pk=None):
        split = self.get_object()
        return Response(SplitSerializer(split).data)

    @extend_schema(request=SplitCreateSerializer, responses={201: SplitSerializer})
    def create(self, request):
        serializer = SplitCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            split = create_split(owner=request.user, **serializer.validated_data)
        except OwnerNotEligibleError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except SplitsServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(SplitSerializer(split).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=SplitUpdateSerializer, responses={200: SplitSerializer})
    def partial_update(self, request, pk=None):
        split = self.get_object()
        serializer = SplitUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            split = update_split(split_id=split.id, user=request.user, **serializer.validated_data)
        except SplitPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except ConcurrencyConflictError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
        except SplitsServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(SplitSerializer(split).data)

    @extend_schema(request=SplitCancelSerializer, responses={200: SplitEnvelopeSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel the Split: refund every order and freeze the conversation."""
        split = self.get_object()
        serializer = SplitCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cancel_split_result(
            split_id=split.id,
            reason=serializer.validated_data['reason'],
            actor=request.user,
        )
        return envelope_response(result, 'split', SplitSerializer, request)
