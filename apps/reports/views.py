"""
Reports Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from apps.core.permissions import IsAdminUser
from apps.core.responses import success_response, error_response
from .registry import catalog
from .serializers import ReportRequestSerializer, ReportTypeSerializer

logger = logging.getLogger(__name__)


@extend_schema(
    tags=['Reports'],
    summary='List report types',
    responses={200: ReportTypeSerializer(many=True)}
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def report_types_list(request):
    return success_response(data=catalog.describe())


@extend_schema(
    tags=['Reports'],
    summary='Generate a report',
    description='Returns the report as JSON, or as a CSV/PDF download when `export` is set.',
    parameters=[
        OpenApiParameter('export', str, description='json (default), csv or pdf'),
        OpenApiParameter('date', str, description='Day for daily_earnings (YYYY-MM-DD)'),
        OpenApiParameter('month', str, description='Month for monthly_earnings (YYYY-MM)'),
        OpenApiParameter('start_date', str, description='Attendance range start (YYYY-MM-DD)'),
        OpenApiParameter('end_date', str, description='Attendance range end (YYYY-MM-DD)'),
        OpenApiParameter('employee', str, description='Employee id'),
    ]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def report_generate(request, report_type):
    if report_type not in catalog:
        return error_response(
            message=f'Unknown report type: {report_type}',
            code='NOT_FOUND',
            status_code=status.HTTP_404_NOT_FOUND
        )

    serializer = ReportRequestSerializer(data=request.query_params)
    if not serializer.is_valid():
        return error_response(
            message='Invalid report parameters',
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    export_format = serializer.validated_data['export']
    if not catalog.supports(report_type, export_format):
        return error_response(
            message=f'{report_type} reports cannot be exported as {export_format}',
            code='UNSUPPORTED_FORMAT',
            status_code=status.HTTP_400_BAD_REQUEST
        )

    try:
        generator = catalog.generator_for(report_type, request.user, serializer.get_filters())
        report_data = generator.generate()
    except ValueError as e:
        return error_response(
            message='Invalid filter values',
            details={'filters': str(e)},
            status_code=status.HTTP_400_BAD_REQUEST
        )

    try:
        return catalog.render(generator, report_data, export_format)
    except Exception as e:
        logger.error(f"Error exporting {report_type} as {export_format}: {str(e)}", exc_info=True)
        return error_response(
            message=f'Failed to export {export_format.upper()}',
            code='EXPORT_FAILED',
            details={'detail': str(e)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
