"""
Locations Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from apps.core.pagination import CustomPageNumberPagination
from apps.core.permissions import IsAdminOrReadOnly
from apps.core.responses import success_response, error_response
from apps.tasks.assignments import AssignmentResolver
from apps.tasks.models import Task
from .models import Geofence
from .serializers import (
    GeofenceSerializer, TaskLocationSerializer, TaskLocationEventSerializer, PositionSerializer
)
from .services import LocationService, haversine_distance

logger = logging.getLogger(__name__)


def can_view_task(user, task):
    return user.role == 'admin' or AssignmentResolver.is_assignee(task, user)


@extend_schema(
    tags=['Locations'],
    summary='List and create geofences',
    parameters=[
        OpenApiParameter('active', bool, description='Only active geofences'),
        OpenApiParameter('search', str, description='Search by name'),
    ],
    request=GeofenceSerializer,
    responses={200: GeofenceSerializer(many=True), 201: GeofenceSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def geofence_list_create(request):
    if request.method == 'POST':
        serializer = GeofenceSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                message="Invalid geofence data",
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        geofence = serializer.save(created_by=request.user)
        logger.info(f"Geofence '{geofence.name}' created by {request.user.email}")
        return success_response(
            data=GeofenceSerializer(geofence).data,
            message="Geofence created successfully",
            status_code=status.HTTP_201_CREATED
        )

    queryset = Geofence.objects.select_related('created_by')
    if request.query_params.get('active', '').lower() in ('1', 'true', 'yes'):
        queryset = queryset.filter(is_active=True)
    search = request.query_params.get('search')
    if search:
        queryset = queryset.filter(name__icontains=search)

    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    return paginator.get_paginated_response(GeofenceSerializer(page, many=True).data)


@extend_schema(tags=['Locations'], summary='Retrieve, update or delete a geofence', request=GeofenceSerializer)
@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def geofence_detail(request, geofence_id):
    geofence = get_object_or_404(Geofence, pk=geofence_id)

    if request.method == 'GET':
        return success_response(data=GeofenceSerializer(geofence).data)

    if request.method == 'DELETE':
        geofence.delete()
        logger.info(f"Geofence {geofence_id} deleted by {request.user.email}")
        return success_response(message="Geofence deleted successfully")

    serializer = GeofenceSerializer(geofence, data=request.data, partial=True)
    if not serializer.is_valid():
        return error_response(
            message="Invalid geofence data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )
    geofence = serializer.save()
    return success_response(data=GeofenceSerializer(geofence).data, message="Geofence updated successfully")


@extend_schema(
    tags=['Locations'],
    summary='Check whether a position is inside a geofence',
    parameters=[
        OpenApiParameter('latitude', float, required=True),
        OpenApiParameter('longitude', float, required=True),
    ],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def geofence_check(request, geofence_id):
    geofence = get_object_or_404(Geofence, pk=geofence_id)
    serializer = PositionSerializer(data=request.query_params)
    if not serializer.is_valid():
        return error_response(
            message="Invalid position",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    distance = haversine_distance(
        serializer.validated_data['latitude'],
        serializer.validated_data['longitude'],
        float(geofence.center_latitude),
        float(geofence.center_longitude)
    )
    return success_response(data={
        'within': distance <= geofence.radius_meters,
        'distance_meters': round(distance, 2),
        'radius_meters': geofence.radius_meters,
    })


@extend_schema(tags=['Locations'], summary='List or add task locations', request=TaskLocationSerializer)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_locations(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    if not can_view_task(request.user, task):
        return error_response(
            message="You are not assigned to this task",
            code='UNAUTHORIZED',
            status_code=status.HTTP_403_FORBIDDEN
        )

    if request.method == 'GET':
        serializer = TaskLocationSerializer(task.locations.select_related('geofence'), many=True)
        return success_response(data=serializer.data)

    if request.user.role != 'admin':
        return error_response(
            message="Only administrators can change task locations",
            code='PERMISSION_DENIED',
            status_code=status.HTTP_403_FORBIDDEN
        )

    serializer = TaskLocationSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid task location",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )
    location = serializer.save(task=task)
    return success_response(
        data=TaskLocationSerializer(location).data,
        message="Task location added",
        status_code=status.HTTP_201_CREATED
    )


@extend_schema(
    tags=['Locations'],
    summary='Check in to a task',
    description='Records a check-in. Location-based tasks refuse positions outside the task area; '
                'tasks with auto check-in are started.',
    request=PositionSerializer,
    responses={201: TaskLocationEventSerializer},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def task_check_in(request, task_id):
    return _record_position(request, task_id, LocationService.check_in, "Checked in")


@extend_schema(
    tags=['Locations'],
    summary='Check out of a task',
    description='Records a check-out; tasks with auto check-out are paused.',
    request=PositionSerializer,
    responses={201: TaskLocationEventSerializer},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def task_check_out(request, task_id):
    return _record_position(request, task_id, LocationService.check_out, "Checked out")


def _record_position(request, task_id, action, message):
    task = get_object_or_404(Task, pk=task_id)
    serializer = PositionSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid position",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    event = action(
        task,
        request.user,
        serializer.validated_data['latitude'],
        serializer.validated_data['longitude'],
        notes=serializer.validated_data['notes']
    )
    return success_response(
        data={
            'event': TaskLocationEventSerializer(event).data,
            'task_status': task.status,
        },
        message=message,
        status_code=status.HTTP_201_CREATED
    )


@extend_schema(tags=['Locations'], summary='Location events of a task', responses={200: TaskLocationEventSerializer(many=True)})
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_location_events(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    if not can_view_task(request.user, task):
        return error_response(
            message="You are not assigned to this task",
            code='UNAUTHORIZED',
            status_code=status.HTTP_403_FORBIDDEN
        )

    events = task.location_events.select_related('user')
    event_type = request.query_params.get('event_type')
    if event_type:
        events = events.filter(event_type=event_type)

    return success_response(data=TaskLocationEventSerializer(events, many=True).data)
