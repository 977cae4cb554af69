"""
Core Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.core.cache import cache
from django.db import connection
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny

from apps.realtime.brokers import get_broker
from .responses import success_response, error_response

logger = logging.getLogger(__name__)


def check_database():
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
    return 'connected'


def check_cache():
    cache.set('health_check', 'ok', 10)
    return 'connected' if cache.get('health_check') == 'ok' else 'disconnected'


def check_realtime():
    return 'connected' if get_broker().ping() else 'disconnected'


@extend_schema(
    tags=['Health'],
    summary='Health check',
    description='Database, cache and realtime broker connectivity'
)
@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    try:
        components = {
            'database': check_database(),
            'cache': check_cache(),
            'realtime': check_realtime(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return error_response(
            message="Health check failed",
            code='UNHEALTHY',
            details={'error': str(e)},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    return success_response({'status': 'healthy', **components})
