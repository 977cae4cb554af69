"""
Reports Serializers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework import serializers

from .registry import EXPORT_FORMATS


class ReportRequestSerializer(serializers.Serializer):
    """
    Query parameters accepted by every report. Each generator reads the
    filters it understands and ignores the rest.
    """
    export = serializers.ChoiceField(choices=EXPORT_FORMATS, default='json')
    date = serializers.DateField(required=False)
    month = serializers.RegexField(r'^\d{4}-(0[1-9]|1[0-2])$', required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    employee = serializers.UUIDField(required=False)

    def get_filters(self):
        return {
            key: value for key, value in self.validated_data.items()
            if key != 'export' and value not in (None, '')
        }


class ReportTypeSerializer(serializers.Serializer):
    report_type = serializers.CharField()
    report_name = serializers.CharField()
    description = serializers.CharField()
    available_filters = serializers.ListField(child=serializers.CharField())
    formats = serializers.ListField(child=serializers.CharField())
