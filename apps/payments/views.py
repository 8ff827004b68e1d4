import structlog
from django.views.decorators.csrf import csrf_exempt
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.orders.services import OrderNotFoundError, handle_gateway_event
from apps.payments.exceptions import InvalidSignatureError

logger = structlog.get_logger(__name__)


@extend_schema(request=None, responses={200: None})
@csrf_exempt
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    """
    Payment provider webhook.

    Authenticated by the provider signature, not by a user. Anything but a
    2xx makes the provider redeliver the event.
    """
    signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')

    try:
        order = handle_gateway_event(payload=request.body, signature=signature)
    except InvalidSignatureError as e:
        logger.warning("webhook_rejected", reason=str(e))
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except OrderNotFoundError as e:
        # Authorizations opened by a quote that never became an Order
        logger.info("webhook_without_order", reason=str(e))
        return Response({'success': True})
    except Exception:
        logger.exception("webhook_failed")
        return Response({'error': 'Webhook processing failed'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'success': True,
        'order': str(order.id) if order else None,
    })
