"""
Jobs Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from apps.core.pagination import CustomPageNumberPagination
from apps.core.permissions import IsAdminOrReadOnly
from apps.core.responses import success_response, error_response
from .models import Job, JobMaterial
from .serializers import (
    JobSerializer, JobListSerializer, JobWriteSerializer, JobMaterialSerializer
)

logger = logging.getLogger(__name__)


def filter_jobs(queryset, params):
    """Apply the job list query filters."""
    job_status = params.get('status')
    if job_status:
        queryset = queryset.filter(status=job_status)

    customer = params.get('customer_name')
    if customer:
        queryset = queryset.filter(customer_name__icontains=customer)

    sales_person = params.get('sales_person')
    if sales_person:
        queryset = queryset.filter(sales_person__icontains=sales_person)

    date_from = parse_date(params.get('date_from') or '')
    if date_from:
        queryset = queryset.filter(start_date__gte=date_from)

    date_to = parse_date(params.get('date_to') or '')
    if date_to:
        queryset = queryset.filter(start_date__lte=date_to)

    return queryset


@extend_schema(
    tags=['Jobs'],
    summary='List and create jobs',
    parameters=[
        OpenApiParameter('status', str, description='Filter by status'),
        OpenApiParameter('customer_name', str, description='Customer name contains'),
        OpenApiParameter('sales_person', str, description='Sales person contains'),
        OpenApiParameter('date_from', str, description='Start date on or after (YYYY-MM-DD)'),
        OpenApiParameter('date_to', str, description='Start date on or before (YYYY-MM-DD)'),
    ],
    request=JobWriteSerializer,
    responses={200: JobListSerializer(many=True), 201: JobSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def job_list_create(request):
    """
    List jobs or create a new job.
    """
    if request.method == 'POST':
        serializer = JobWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                message="Invalid job data",
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        job = serializer.save(created_by=request.user, updated_by=request.user)
        logger.info(f"Job {job.job_number} created by {request.user.email}")

        return success_response(
            data=JobSerializer(job).data,
            message="Job created successfully",
            status_code=status.HTTP_201_CREATED
        )

    queryset = filter_jobs(Job.objects.all(), request.query_params)

    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = JobListSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


@extend_schema(
    tags=['Jobs'],
    summary='Retrieve, update or delete a job',
    request=JobWriteSerializer,
    responses={200: JobSerializer},
)
@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def job_detail(request, job_id):
    job = get_object_or_404(Job.objects.prefetch_related('materials'), pk=job_id)

    if request.method == 'GET':
        return success_response(data=JobSerializer(job).data)

    if request.method == 'DELETE':
        job_number = job.job_number
        job.delete()
        logger.info(f"Job {job_number} deleted by {request.user.email}")
        return success_response(message="Job deleted successfully")

    serializer = JobWriteSerializer(job, data=request.data, partial=True)
    if not serializer.is_valid():
        return error_response(
            message="Invalid job data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    job = serializer.save(updated_by=request.user)
    logger.info(f"Job {job.job_number} updated by {request.user.email}")

    return success_response(
        data=JobSerializer(job).data,
        message="Job updated successfully"
    )


@extend_schema(
    tags=['Jobs'],
    summary='List or add materials issued for a job',
    request=JobMaterialSerializer,
    responses={200: JobMaterialSerializer(many=True), 201: JobMaterialSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def job_materials(request, job_id):
    job = get_object_or_404(Job, pk=job_id)

    if request.method == 'GET':
        serializer = JobMaterialSerializer(job.materials.all(), many=True)
        return success_response(
            data=serializer.data,
            meta={'total': str(job.materials_total)}
        )

    serializer = JobMaterialSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid material data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    material = serializer.save(job=job)
    logger.info(f"Material '{material.name}' added to job {job.job_number}")

    return success_response(
        data=JobMaterialSerializer(material).data,
        message="Material added successfully",
        status_code=status.HTTP_201_CREATED
    )


@extend_schema(
    tags=['Jobs'],
    summary='Update or remove an issued material',
    request=JobMaterialSerializer,
    responses={200: JobMaterialSerializer},
)
@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def job_material_detail(request, job_id, material_id):
    material = get_object_or_404(JobMaterial, pk=material_id, job_id=job_id)

    if request.method == 'DELETE':
        material.delete()
        return success_response(message="Material removed successfully")

    serializer = JobMaterialSerializer(material, data=request.data, partial=True)
    if not serializer.is_valid():
        return error_response(
            message="Invalid material data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    material = serializer.save()
    return success_response(
        data=JobMaterialSerializer(material).data,
        message="Material updated successfully"
    )
