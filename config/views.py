from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response
import structlog

logger = structlog.get_logger(__name__)


def health_check(request):
    """Liveness probe that also checks the database connection."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception:
        logger.exception('health_check_failed')
        return JsonResponse({'status': 'unavailable'}, status=503)
    return JsonResponse({'status': 'ok'})


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)


# Result envelope -> HTTP status
ENVELOPE_HTTP_STATUS = {
    'OK': 200,
    'FORBIDDEN': 403,
    'NOT_FOUND': 404,
    'SPLIT_NOT_FOUND': 404,
    'ORDER_NOT_FOUND': 404,
    'AUTHORIZATION_NOT_FOUND': 404,
    'CONCURRENCY_CONFLICT': 409,
    'GATEWAY_ERROR': 502,
    'INTERNAL_ERROR': 500,
}


def envelope_response(result, entity_name, serializer_class, request, success_status=200):
    """
    Render a MutationResult as ``{code, success, message, <entity>}``.

    Domain codes without their own HTTP status map to 400.
    """
    entity = result.get(entity_name)
    body = {
        'code': result.code,
        'success': result.success,
        'message': result.message,
        entity_name: (
            serializer_class(entity, context={'request': request}).data
            if entity is not None and result.success
            else None
        ),
    }
    for name, value in result.entities.items():
        if name != entity_name and isinstance(value, (str, int)):
            body[name] = value

    if result.success:
        return Response(body, status=success_status)
    return Response(body, status=ENVELOPE_HTTP_STATUS.get(result.code, 400))
