"""
Custom Exception Handlers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.db import DatabaseError
import logging

from .responses import response_meta

logger = logging.getLogger(__name__)


# Store error fragments rewritten into actionable messages
DATABASE_ERROR_HINTS = (
    ('does not exist', 'Database schema is out of date, please run migrations'),
    ('no such table', 'Database schema is out of date, please run migrations'),
    ('no such column', 'Database schema is out of date, please run migrations'),
    ('violates foreign key constraint', 'Referenced record no longer exists'),
    ('foreign key constraint failed', 'Referenced record no longer exists'),
    ('duplicate key', 'A record with these values already exists'),
    ('unique constraint failed', 'A record with these values already exists'),
)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that returns consistent error responses.
    """
    if isinstance(exc, FieldPilotException):
        logger.warning(f"Application error [{exc.code}]: {exc.message}")
        return Response(
            build_error_payload(exc.code, exc.message, exc.details, context),
            status=exc.status_code
        )

    if isinstance(exc, DatabaseError):
        logger.error(f"Database error: {exc}", exc_info=True)
        return Response(
            build_error_payload('DATABASE_ERROR', friendly_database_message(exc), {}, context),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        # Log the exception
        logger.error(f"API Exception: {exc}", exc_info=True)

        response.data = build_error_payload(
            get_error_code(response.status_code),
            get_error_message(exc, response),
            response.data if isinstance(response.data, dict) else {'detail': response.data},
            context
        )

    return response


def build_error_payload(code, message, details, context):
    request = context.get('request') if context else None
    return {
        'success': False,
        'error': {
            'code': code,
            'message': message,
            'details': details or {}
        },
        'meta': response_meta({'path': request.path if request is not None else None})
    }


def friendly_database_message(exc):
    """Map a raw store error onto a message an operator can act on."""
    text = str(exc).lower()
    for fragment, message in DATABASE_ERROR_HINTS:
        if fragment in text:
            return message
    return str(exc) or 'Database error'


def get_error_code(status_code):
    """Get error code based on HTTP status code."""
    error_codes = {
        400: 'VALIDATION_ERROR',
        401: 'UNAUTHORIZED',
        403: 'PERMISSION_DENIED',
        404: 'NOT_FOUND',
        405: 'METHOD_NOT_ALLOWED',
        409: 'CONFLICT',
        429: 'RATE_LIMIT_EXCEEDED',
        500: 'INTERNAL_SERVER_ERROR',
    }
    return error_codes.get(status_code, 'UNKNOWN_ERROR')


def get_error_message(exc, response):
    """Get user-friendly error message."""
    if hasattr(exc, 'detail'):
        if isinstance(exc.detail, dict):
            # Return first error message from validation errors
            for field, errors in exc.detail.items():
                if isinstance(errors, list) and errors:
                    return f"{field}: {errors[0]}"
                return str(errors)
        return str(exc.detail)

    return str(exc)


class FieldPilotException(Exception):
    """Base exception for FieldPilot application."""
    default_message = "An error occurred"
    default_code = "FIELDPILOT_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class NotAssigneeError(FieldPilotException):
    """Raised when the acting user is not assigned to the task."""
    default_message = "You are not assigned to this task"
    default_code = "UNAUTHORIZED"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransitionError(FieldPilotException):
    """Raised when a task status change is not allowed from the current status."""
    default_message = "Status change not allowed"
    default_code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT


class BusinessValidationError(FieldPilotException):
    """Raised when a request breaks a business rule."""
    default_message = "Invalid request"
    default_code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class ProofUploadError(FieldPilotException):
    """Raised when the proof image could not be stored."""
    default_message = "Failed to upload proof image"
    default_code = "PROOF_UPLOAD_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY


class ProofRecordError(FieldPilotException):
    """Raised when the proof image was stored but the proof record could not be created."""
    default_message = "Proof image uploaded but the proof record could not be saved"
    default_code = "PROOF_RECORD_FAILED"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class LoginPinError(FieldPilotException):
    """Raised when a login PIN can no longer be used."""
    default_message = "Login PIN is not valid"
    default_code = "LOGIN_PIN_INVALID"
    status_code = status.HTTP_400_BAD_REQUEST
