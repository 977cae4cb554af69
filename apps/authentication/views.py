"""
Authentication Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import os
import uuid
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView as BaseTokenRefreshView
from django.conf import settings
from django.core.files.storage import default_storage
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiParameter

from apps.core.exceptions import LoginPinError
from apps.core.pagination import CustomPageNumberPagination
from apps.core.permissions import IsAdminUser
from apps.core.responses import success_response, error_response
from .models import User, DeletedUser, LoginPin
from .serializers import (
    LoginSerializer, PinStatusSerializer, UserSerializer, CreateEmployeeSerializer,
    UpdateEmployeeSerializer, UpdateProfileSerializer, ChangePasswordSerializer,
    DeleteUserSerializer, DeletedUserSerializer, LoginPinSerializer
)
from .services import LoginPinService, UserArchiveService

logger = logging.getLogger(__name__)


class TokenRefreshView(BaseTokenRefreshView):
    """
    Custom Token Refresh View with proper Swagger documentation.
    """
    @extend_schema(
        tags=['Authentication'],
        summary='Refresh access token',
        description='Get a new access token using a valid refresh token',
        examples=[
            OpenApiExample(
                'Token Refresh',
                value={'refresh': 'eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9...'},
                request_only=True
            )
        ]
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


def get_tokens_for_user(user):
    """Generate JWT tokens for user."""
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


def session_payload(user):
    """Tokens plus the user, stamping the login time."""
    user.last_login_at = timezone.now()
    user.save(update_fields=['last_login_at'])

    return {
        'user': UserSerializer(user).data,
        'tokens': get_tokens_for_user(user),
        'token_type': 'Bearer',
        'expires_in': int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
    }


def pin_payload(pin):
    return {
        'id': str(pin.id),
        'code': pin.code,
        'status': pin.status,
        'expires_at': pin.expires_at.isoformat(),
        'seconds_remaining': pin.seconds_remaining() if pin.status == 'pending' else 0,
    }


@extend_schema(
    tags=['Authentication'],
    summary='User login',
    description='Authenticate with email and password. Administrators and approved employees '
                'receive JWT tokens immediately; other employees receive a login PIN that '
                'an administrator must approve within its lifetime.',
    request=LoginSerializer,
    responses={
        200: {'description': 'Login successful', 'type': 'object'},
        202: {'description': 'Login PIN issued, waiting for admin approval', 'type': 'object'},
        401: {'description': 'Invalid credentials'},
    },
    examples=[
        OpenApiExample(
            'User Login',
            value={
                'email': 'user@example.com',
                'password': 'SecurePass123!',
            },
            request_only=True
        )
    ]
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    User login with JWT token generation, gated by a login PIN for new employees.
    """
    serializer = LoginSerializer(data=request.data, context={'request': request})

    if not serializer.is_valid():
        return error_response(
            message="Invalid login credentials",
            details=serializer.errors,
            status_code=status.HTTP_401_UNAUTHORIZED
        )

    user = serializer.validated_data['user']

    if user.requires_login_pin:
        pin = LoginPinService.create_pin(user)
        logger.info(f"Login for {user.email} waiting on PIN approval")
        return success_response(
            data={'status': 'pending_approval', 'pin': pin_payload(pin)},
            message="Waiting for admin approval",
            status_code=status.HTTP_202_ACCEPTED
        )

    logger.info(f"User logged in: {user.email}")
    return success_response(
        data=session_payload(user),
        message="Login successful"
    )


@extend_schema(
    tags=['Authentication'],
    summary='Login PIN status',
    description='Check a login PIN issued by the login endpoint. With `wait=true` the call '
                'blocks until an administrator decides or the PIN expires. Approved PINs '
                'return JWT tokens once, shortly after approval.',
    request=PinStatusSerializer,
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login_pin_status(request):
    """
    Poll (or wait on) a login PIN and collect tokens once approved.
    """
    serializer = PinStatusSerializer(data=request.data)

    if not serializer.is_valid():
        return error_response(
            message="Invalid login PIN",
            details=serializer.errors,
            status_code=status.HTTP_404_NOT_FOUND
        )

    pin = serializer.validated_data['pin']

    if serializer.validated_data['wait'] and pin.status == 'pending':
        LoginPinService.wait_for_decision(pin)
    elif pin.status == 'pending' and pin.is_expired():
        LoginPinService.expire_old_pins()
        pin.refresh_from_db()

    if pin.status == 'approved':
        try:
            LoginPinService.redeem(pin)
        except LoginPinError as e:
            return error_response(
                message=e.message,
                code=e.code,
                status_code=status.HTTP_410_GONE
            )
        logger.info(f"User logged in after PIN approval: {pin.user.email}")
        return success_response(
            data={'status': pin.status, **session_payload(pin.user)},
            message="Login approved"
        )

    return success_response(
        data={'status': pin.status, 'pin': pin_payload(pin)},
        message="Login not approved" if pin.status in ('rejected', 'expired') else "Waiting for admin approval"
    )


@extend_schema(
    tags=['Authentication'],
    summary='User logout',
    description='Blacklist the given refresh token',
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """
    User logout (blacklist refresh token).
    """
    refresh_token = request.data.get('refresh_token') or request.data.get('refresh')

    if refresh_token:
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as token_error:
            logger.warning(f"Token blacklist error: {str(token_error)}")

    logger.info(f"User logged out: {request.user.email}")

    return success_response(
        message="Logout successful"
    )


@extend_schema(
    tags=['Authentication'],
    summary='Get current user info',
    description='Retrieve information about the currently authenticated user',
    responses={200: UserSerializer}
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    """
    Get current user information.
    """
    return success_response(
        data=UserSerializer(request.user).data,
        message="User information retrieved successfully"
    )


@extend_schema(
    tags=['Authentication'],
    summary='Update own profile',
    request=UpdateProfileSerializer,
    responses={200: UserSerializer}
)
@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def update_profile(request):
    """
    Update the current user's profile.
    """
    serializer = UpdateProfileSerializer(request.user, data=request.data, partial=True)

    if not serializer.is_valid():
        return error_response(
            message="Invalid profile data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    user = serializer.save()
    logger.info(f"Profile updated: {user.email}")

    return success_response(
        data=UserSerializer(user).data,
        message="Profile updated successfully"
    )


@extend_schema(
    tags=['Authentication'],
    summary='Change password',
    request=ChangePasswordSerializer,
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    """
    Change password for authenticated user.
    """
    serializer = ChangePasswordSerializer(data=request.data, context={'request': request})

    if not serializer.is_valid():
        return error_response(
            message="Invalid password data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    user = request.user
    user.set_password(serializer.validated_data['new_password'])
    user.save()

    logger.info(f"Password changed: {user.email}")

    return success_response(
        message="Password changed successfully"
    )


@extend_schema(
    tags=['Authentication'],
    summary='Upload user avatar',
    request={
        'multipart/form-data': {
            'type': 'object',
            'properties': {
                'avatar': {
                    'type': 'string',
                    'format': 'binary'
                }
            }
        }
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def upload_avatar(request):
    """
    Upload user avatar image.
    """
    if 'avatar' not in request.FILES:
        return error_response(
            message="No avatar file provided",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    avatar_file = request.FILES['avatar']

    # Validate file size (max 5MB)
    if avatar_file.size > 5 * 1024 * 1024:
        return error_response(
            message="File size too large. Maximum size is 5MB",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    allowed_types = ['image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp']
    if avatar_file.content_type not in allowed_types:
        return error_response(
            message="Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    file_extension = os.path.splitext(avatar_file.name)[1]
    file_path = os.path.join('avatars', f"{request.user.id}_{uuid.uuid4().hex}{file_extension}")
    saved_path = default_storage.save(file_path, avatar_file)
    avatar_url = request.build_absolute_uri(default_storage.url(saved_path))

    request.user.avatar_url = avatar_url
    request.user.save(update_fields=['avatar_url', 'updated_at'])

    logger.info(f"Avatar uploaded for user: {request.user.email}")

    return success_response(
        data={'avatar_url': avatar_url},
        message="Avatar uploaded successfully"
    )


# ---------------------------------------------------------------------------
# Employee management (admin)
# ---------------------------------------------------------------------------

@extend_schema(
    tags=['Employees'],
    summary='List or create users',
    parameters=[
        OpenApiParameter('role', str, description='admin or employee'),
        OpenApiParameter('search', str, description='Match name or email'),
    ],
    request=CreateEmployeeSerializer,
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def employee_list_create(request):
    """
    List users or create a new employee account.
    """
    if request.method == 'POST':
        serializer = CreateEmployeeSerializer(data=request.data)

        if not serializer.is_valid():
            return error_response(
                message="Invalid employee data",
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        user = serializer.save()
        logger.info(f"User {user.email} created by {request.user.email}")

        return success_response(
            data=UserSerializer(user).data,
            message="Employee created successfully",
            status_code=status.HTTP_201_CREATED
        )

    queryset = User.objects.all().order_by('full_name')

    role = request.query_params.get('role')
    if role:
        queryset = queryset.filter(role=role)

    search = request.query_params.get('search')
    if search:
        queryset = queryset.filter(Q(full_name__icontains=search) | Q(email__icontains=search))

    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = UserSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


@extend_schema(
    tags=['Employees'],
    summary='Retrieve, update or delete a user',
    description='DELETE requires a `deletion_reason`; the user is moved to the archive.',
    request=UpdateEmployeeSerializer,
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def employee_detail(request, user_id):
    """
    Retrieve, update or archive a user.
    """
    user = get_object_or_404(User, pk=user_id)

    if request.method == 'GET':
        return success_response(data=UserSerializer(user).data)

    if request.method == 'DELETE':
        serializer = DeleteUserSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                message="A deletion reason is required",
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        archived = UserArchiveService.archive(
            user,
            deleted_by=request.user,
            reason=serializer.validated_data['deletion_reason']
        )
        return success_response(
            data=DeletedUserSerializer(archived).data,
            message="User deleted successfully"
        )

    serializer = UpdateEmployeeSerializer(user, data=request.data, partial=request.method == 'PATCH')

    if not serializer.is_valid():
        return error_response(
            message="Invalid employee data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    user = serializer.save()
    logger.info(f"User {user.email} updated by {request.user.email}")

    return success_response(
        data=UserSerializer(user).data,
        message="Employee updated successfully"
    )


@extend_schema(
    tags=['Employees'],
    summary='List archived users',
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def archived_users(request):
    """
    List users removed from the system, newest first.
    """
    queryset = DeletedUser.objects.select_related('deleted_by').all()

    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = DeletedUserSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


# ---------------------------------------------------------------------------
# Login PIN approval (admin)
# ---------------------------------------------------------------------------

@extend_schema(
    tags=['Authentication'],
    summary='List login PINs',
    parameters=[
        OpenApiParameter('status', str, description='pending, approved, rejected or expired'),
    ],
    responses={200: LoginPinSerializer(many=True)}
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def login_pin_list(request):
    """
    List login PINs; pending ones past expiry are expired first.
    """
    LoginPinService.expire_old_pins()

    queryset = LoginPin.objects.select_related('user', 'approved_by').all()
    pin_status = request.query_params.get('status')
    if pin_status:
        queryset = queryset.filter(status=pin_status)

    return success_response(data=LoginPinSerializer(queryset[:100], many=True).data)


@extend_schema(
    tags=['Authentication'],
    summary='Latest login PIN for a user',
    responses={200: LoginPinSerializer}
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def latest_login_pin(request, user_id):
    """
    Return the most recent login PIN issued to a user.
    """
    user = get_object_or_404(User, pk=user_id)
    pin = LoginPinService.get_latest_for_user(user)

    if pin is None:
        return error_response(
            message="No login PIN found for this user",
            code='NOT_FOUND',
            status_code=status.HTTP_404_NOT_FOUND
        )

    return success_response(data=LoginPinSerializer(pin).data)


@extend_schema(
    tags=['Authentication'],
    summary='Approve or reject a login PIN',
    responses={200: LoginPinSerializer}
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def decide_login_pin(request, pin_id, decision):
    """
    Approve or reject a pending login PIN.
    """
    pin = get_object_or_404(LoginPin.objects.select_related('user'), pk=pin_id)

    try:
        if decision == 'approve':
            pin = LoginPinService.approve(pin, request.user)
        else:
            pin = LoginPinService.reject(pin, request.user)
    except LoginPinError as e:
        return error_response(
            message=e.message,
            code=e.code,
            status_code=status.HTTP_409_CONFLICT
        )

    return success_response(
        data=LoginPinSerializer(pin).data,
        message=f"Login {pin.status}"
    )
