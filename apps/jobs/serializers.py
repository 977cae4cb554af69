"""
Jobs Serializers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from apps.authentication.serializers import UserSummarySerializer
from .models import Job, JobMaterial, JOB_CATEGORIES, compose_job_number


class JobMaterialSerializer(serializers.ModelSerializer):
    """
    Serializer for materials issued against a job.
    """

    class Meta:
        model = JobMaterial
        fields = [
            'id', 'job', 'name', 'date', 'description', 'quantity', 'rate',
            'amount', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'job', 'amount', 'created_at', 'updated_at']


class JobSerializer(serializers.ModelSerializer):
    """
    Full job representation with its materials.
    """
    materials = JobMaterialSerializer(many=True, read_only=True)
    materials_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = Job
        fields = [
            'id', 'job_number', 'category', 'customer_name', 'contact_number',
            'sales_person', 'start_date', 'completion_date', 'contractor_name',
            'description', 'status', 'materials', 'materials_total',
            'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class JobListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Job
        fields = [
            'id', 'job_number', 'category', 'customer_name', 'sales_person',
            'start_date', 'completion_date', 'status', 'created_at'
        ]
        read_only_fields = fields


class JobWriteSerializer(serializers.ModelSerializer):
    """
    Create or update a job.

    The job number is taken from, in order: an explicit ``job_number``,
    ``category`` plus ``manual_id`` (e.g. ``TB`` and ``12`` give ``TB-012``),
    or the next free ``JOB-NNN`` number.
    """
    manual_id = serializers.CharField(write_only=True, required=False, allow_blank=True)
    job_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=JOB_CATEGORIES, required=False, allow_blank=True)

    class Meta:
        model = Job
        fields = [
            'job_number', 'category', 'manual_id', 'customer_name',
            'contact_number', 'sales_person', 'start_date', 'completion_date',
            'contractor_name', 'description', 'status'
        ]

    def validate(self, attrs):
        manual_id = attrs.pop('manual_id', '')
        category = attrs.get('category', getattr(self.instance, 'category', ''))

        if manual_id:
            if not category:
                raise serializers.ValidationError({'category': 'A category is required with a manual job id.'})
            try:
                attrs['job_number'] = compose_job_number(category, manual_id)
            except DjangoValidationError as e:
                raise serializers.ValidationError(e.message_dict)

        job_number = attrs.get('job_number')
        if job_number:
            clash = Job.objects.filter(job_number=job_number)
            if self.instance is not None:
                clash = clash.exclude(pk=self.instance.pk)
            if clash.exists():
                raise serializers.ValidationError({'job_number': f"Job number {job_number} is already in use."})
        elif 'job_number' in attrs:
            attrs.pop('job_number')

        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('completion_date', getattr(self.instance, 'completion_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'completion_date': 'Completion date cannot be before start date.'})

        return attrs
