"""
Tasks Serializers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework import serializers
from django.db import transaction
from django.utils import timezone

from apps.authentication.models import User
from apps.authentication.serializers import UserSummarySerializer
from apps.jobs.models import Job
from apps.locations.models import Geofence, TaskLocation
from apps.locations.serializers import TaskLocationSerializer
from .assignments import AssignmentResolver
from .durations import format_duration, parse_time_string, validate_time_input, from_total_minutes
from .lifecycle import effective_elapsed
from .models import Task, TaskAttachment, TaskHistory, TaskProof, TaskStatus

CREATABLE_STATUSES = [
    (TaskStatus.PLANNED, 'Planned'),
    (TaskStatus.NOT_STARTED, 'Not Started'),
]


class ElapsedMixin(serializers.Serializer):
    """
    Adds the server-computed worked time to a task payload.
    """
    elapsed_seconds = serializers.SerializerMethodField()
    elapsed_display = serializers.SerializerMethodField()

    def get_elapsed_seconds(self, obj):
        return int(effective_elapsed(obj, self.context.get('now')).total_seconds())

    def get_elapsed_display(self, obj):
        return format_duration(effective_elapsed(obj, self.context.get('now')))


class TaskListSerializer(ElapsedMixin, serializers.ModelSerializer):
    """
    Lightweight serializer for task list views.
    """
    assignee_ids = serializers.SerializerMethodField()
    job_number = serializers.CharField(source='job.job_number', read_only=True, default=None)
    is_overdue = serializers.ReadOnlyField()

    class Meta:
        model = Task
        fields = [
            'id', 'title', 'status', 'priority', 'due_date', 'start_date', 'end_date',
            'progress_percentage', 'assigned_to', 'assignee_ids', 'job', 'job_number',
            'location_based', 'completion_type', 'time_assigning', 'price',
            'elapsed_seconds', 'elapsed_display', 'is_overdue', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_assignee_ids(self, obj):
        return [str(user_id) for user_id in AssignmentResolver.assignee_ids(obj)]


class TaskProofSerializer(serializers.ModelSerializer):
    submitted_by = UserSummarySerializer(read_only=True)
    reviewed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = TaskProof
        fields = [
            'id', 'task', 'image_url', 'description', 'status', 'submitted_by',
            'reviewed_by', 'reviewed_at', 'rejection_reason', 'created_at'
        ]
        read_only_fields = fields


class TaskAttachmentSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)
    is_image = serializers.ReadOnlyField()

    class Meta:
        model = TaskAttachment
        fields = [
            'id', 'task', 'file_name', 'file_size', 'mime_type', 'file_url',
            'is_image', 'uploaded_by', 'created_at'
        ]
        read_only_fields = fields


class TaskHistorySerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.full_name', read_only=True, default='System')

    class Meta:
        model = TaskHistory
        fields = [
            'id', 'action', 'user', 'user_name', 'field_name', 'old_value',
            'new_value', 'details', 'created_at'
        ]
        read_only_fields = fields


class TaskSerializer(ElapsedMixin, serializers.ModelSerializer):
    """
    Full task serializer with assignees, proofs and locations.
    """
    assignees = serializers.SerializerMethodField()
    created_by = UserSummarySerializer(read_only=True)
    proofs = TaskProofSerializer(many=True, read_only=True)
    locations = TaskLocationSerializer(many=True, read_only=True)
    job_number = serializers.CharField(source='job.job_number', read_only=True, default=None)
    attachments_count = serializers.SerializerMethodField()
    is_overdue = serializers.ReadOnlyField()

    class Meta:
        model = Task
        fields = [
            'id', 'title', 'description', 'priority', 'status', 'completion_type',
            'due_date', 'start_date', 'end_date', 'estimated_time', 'time_assigning',
            'assigned_to', 'assignees', 'progress_percentage',
            'started_at', 'last_pause_at', 'total_pause_duration', 'completed_at', 'actual_time',
            'elapsed_seconds', 'elapsed_display',
            'location_based', 'required_latitude', 'required_longitude',
            'required_radius_meters', 'auto_check_in', 'auto_check_out', 'locations',
            'proof_photo_url', 'completion_notes', 'proofs', 'attachments_count',
            'original_due_date', 'forwarded_at', 'job', 'job_number', 'price',
            'is_overdue', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_assignees(self, obj):
        return UserSummarySerializer(AssignmentResolver.assignees_for(obj), many=True).data

    def get_attachments_count(self, obj):
        return obj.attachments.count()


class TaskLocationInputSerializer(serializers.Serializer):
    geofence_id = serializers.UUIDField(required=False, allow_null=True)
    required_latitude = serializers.DecimalField(max_digits=10, decimal_places=8, required=False, allow_null=True)
    required_longitude = serializers.DecimalField(max_digits=11, decimal_places=8, required=False, allow_null=True)
    required_radius_meters = serializers.IntegerField(min_value=1, default=100)
    arrival_required = serializers.BooleanField(default=True)
    departure_required = serializers.BooleanField(default=False)
    location_name = serializers.CharField(required=False, allow_blank=True, default='')
    location_address = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_geofence_id(self, value):
        if value is not None and not Geofence.objects.filter(pk=value).exists():
            raise serializers.ValidationError("Geofence not found.")
        return value

    def validate(self, attrs):
        has_point = attrs.get('required_latitude') is not None and attrs.get('required_longitude') is not None
        if not attrs.get('geofence_id') and not has_point:
            raise serializers.ValidationError('A task location needs a geofence or coordinates.')
        return attrs


class TaskWriteMixin:
    """
    Validation shared by task creation and update.
    """

    def validate_time_assigning_text(self, value):
        if not value:
            return None
        parsed = parse_time_string(value)
        error = validate_time_input(parsed.hours, parsed.minutes)
        if error:
            raise serializers.ValidationError(error)
        return parsed.total_minutes

    def validate_time_assigning(self, value):
        if value is None:
            return value
        parsed = from_total_minutes(value)
        error = validate_time_input(parsed.hours, parsed.minutes)
        if error:
            raise serializers.ValidationError(error)
        return value

    def validate_job_id(self, value):
        if value is None:
            return None
        try:
            return Job.objects.get(pk=value)
        except Job.DoesNotExist:
            raise serializers.ValidationError("Job not found.")

    def validate_assignee_ids(self, value):
        unique_ids = list(dict.fromkeys(value))
        users = {user.id: user for user in User.objects.filter(pk__in=unique_ids, is_active=True)}
        missing = [str(user_id) for user_id in unique_ids if user_id not in users]
        if missing:
            raise serializers.ValidationError(f"Users not found: {', '.join(missing)}")
        return [users[user_id] for user_id in unique_ids]

    def check_dates_and_location(self, attrs, instance=None):
        start = attrs.get('start_date', getattr(instance, 'start_date', None))
        end = attrs.get('end_date', getattr(instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date cannot be before start date.'})

        lat = attrs.get('required_latitude', getattr(instance, 'required_latitude', None))
        lng = attrs.get('required_longitude', getattr(instance, 'required_longitude', None))
        if (lat is None) != (lng is None):
            raise serializers.ValidationError({'required_latitude': 'Latitude and longitude must be given together.'})

        location_based = attrs.get('location_based', getattr(instance, 'location_based', False))
        has_locations = bool(attrs.get('locations')) or (instance is not None and instance.locations.exists())
        if location_based and lat is None and not has_locations:
            raise serializers.ValidationError({
                'location_based': 'A location-based task needs coordinates or at least one location.'
            })


class CreateTaskSerializer(TaskWriteMixin, serializers.Serializer):
    """
    Serializer for creating a new task.
    """
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    priority = serializers.ChoiceField(choices=Task.PRIORITY_CHOICES, default='Medium')
    status = serializers.ChoiceField(choices=CREATABLE_STATUSES, default=TaskStatus.NOT_STARTED)

    # Scheduling
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    end_date = serializers.DateTimeField(required=False, allow_null=True)
    estimated_time = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    time_assigning = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    time_assigning_text = serializers.CharField(required=False, allow_blank=True, write_only=True)

    # Assignment and pricing
    assignee_ids = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=True, default=list)
    job_id = serializers.UUIDField(required=False, allow_null=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=0)

    # Location
    location_based = serializers.BooleanField(default=False)
    required_latitude = serializers.DecimalField(max_digits=10, decimal_places=8, required=False, allow_null=True)
    required_longitude = serializers.DecimalField(max_digits=11, decimal_places=8, required=False, allow_null=True)
    required_radius_meters = serializers.IntegerField(min_value=1, default=100)
    auto_check_in = serializers.BooleanField(default=False)
    auto_check_out = serializers.BooleanField(default=False)
    locations = TaskLocationInputSerializer(many=True, required=False)

    def validate(self, attrs):
        text_minutes = attrs.pop('time_assigning_text', None)
        if text_minutes is not None:
            attrs['time_assigning'] = text_minutes

        self.check_dates_and_location(attrs)
        return attrs

    def create(self, validated_data):
        created_by = validated_data.pop('created_by', None)
        assignees = validated_data.pop('assignee_ids', [])
        job = validated_data.pop('job_id', None)
        locations = validated_data.pop('locations', [])

        with transaction.atomic():
            task = Task.objects.create(
                job=job,
                created_by=created_by,
                updated_by=created_by,
                **validated_data
            )
            for location in locations:
                geofence_id = location.pop('geofence_id', None)
                TaskLocation.objects.create(task=task, geofence_id=geofence_id, **location)

            if assignees:
                AssignmentResolver.set_assignees(task, assignees, assigned_by=created_by)

            TaskHistory.log_action(task, 'created', user=created_by)

        return task


class UpdateTaskSerializer(TaskWriteMixin, serializers.ModelSerializer):
    """
    Serializer for updating task details. Status changes go through the
    transition endpoint.
    """
    job_id = serializers.UUIDField(required=False, allow_null=True)
    time_assigning_text = serializers.CharField(required=False, allow_blank=True, write_only=True)

    class Meta:
        model = Task
        fields = [
            'title', 'description', 'priority', 'due_date', 'start_date', 'end_date',
            'estimated_time', 'time_assigning', 'time_assigning_text', 'job_id', 'price',
            'location_based', 'required_latitude', 'required_longitude',
            'required_radius_meters', 'auto_check_in', 'auto_check_out'
        ]

    def validate(self, attrs):
        text_minutes = attrs.pop('time_assigning_text', None)
        if text_minutes is not None:
            attrs['time_assigning'] = text_minutes

        if 'job_id' in attrs:
            attrs['job'] = attrs.pop('job_id')

        self.check_dates_and_location(attrs, self.instance)
        return attrs


class AssignTaskSerializer(serializers.Serializer):
    assignee_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)

    validate_assignee_ids = TaskWriteMixin.validate_assignee_ids


class TransitionSerializer(serializers.Serializer):
    """
    Requested status change, validated before the transition handler runs.
    """
    status = serializers.ChoiceField(choices=TaskStatus.CHOICES)


class ProgressSerializer(serializers.Serializer):
    progress_percentage = serializers.IntegerField()


class SubmitProofSerializer(serializers.Serializer):
    image = serializers.FileField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_image(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise serializers.ValidationError("Proof must be an image.")
        return value


class ReviewProofSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[('Approved', 'Approved'), ('Rejected', 'Rejected')])
    rejection_reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['decision'] == 'Rejected' and not attrs['rejection_reason'].strip():
            raise serializers.ValidationError({'rejection_reason': 'A reason is required when rejecting a proof.'})
        return attrs


class ReassignSerializer(serializers.Serializer):
    assignee_ids = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=False)

    validate_assignee_ids = TaskWriteMixin.validate_assignee_ids


class UploadAttachmentSerializer(serializers.Serializer):
    files = serializers.ListField(child=serializers.FileField(), allow_empty=False)


def serializer_context(request=None, now=None):
    return {'request': request, 'now': now or timezone.now()}
