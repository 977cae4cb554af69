"""
Response Envelopes

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.

Every JSON endpoint answers with ``{"success": ..., "data"|"error": ...,
"meta": {"timestamp": ...}}``. The exception handler in
``apps.core.exceptions`` builds the same error shape.
"""
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response


def response_meta(extra=None):
    return {'timestamp': timezone.now().isoformat(), **(extra or {})}


def success_response(data=None, message=None, status_code=status.HTTP_200_OK, meta=None):
    payload = {
        'success': True,
        'data': data,
        'meta': response_meta(meta),
    }
    if message:
        payload['message'] = message
    return Response(payload, status=status_code)


def error_response(message, code=None, details=None, status_code=status.HTTP_400_BAD_REQUEST):
    """
    Error envelope. ``code`` is a stable machine-readable string such as
    ``UNAUTHORIZED`` or ``UPLOAD_FAILED``; ``details`` carries field errors
    or per-item failures.
    """
    return Response({
        'success': False,
        'error': {
            'code': code or 'ERROR',
            'message': message,
            'details': details or {},
        },
        'meta': response_meta(),
    }, status=status_code)
