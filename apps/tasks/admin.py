"""
Tasks Admin Configuration

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.contrib import admin
from .models import Task, TaskAssignee, TaskAttachment, TaskHistory, TaskProof


class TaskAssigneeInline(admin.TabularInline):
    model = TaskAssignee
    fk_name = 'task'
    extra = 0
    raw_id_fields = ['user', 'assigned_by']
    readonly_fields = ['assigned_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'status', 'priority', 'assigned_to', 'due_date', 'job', 'created_at']
    list_filter = ['status', 'priority', 'location_based', 'completion_type', 'created_at']
    search_fields = ['title', 'description', 'job__job_number']
    readonly_fields = [
        'started_at', 'last_pause_at', 'total_pause_duration', 'completed_at', 'actual_time',
        'original_due_date', 'forwarded_at', 'created_at', 'updated_at'
    ]
    raw_id_fields = ['assigned_to', 'job']
    inlines = [TaskAssigneeInline]
    date_hierarchy = 'created_at'


@admin.register(TaskProof)
class TaskProofAdmin(admin.ModelAdmin):
    list_display = ['task', 'submitted_by', 'status', 'reviewed_by', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['task__title', 'submitted_by__email']
    readonly_fields = ['created_at', 'reviewed_at']
    raw_id_fields = ['task']


@admin.register(TaskAttachment)
class TaskAttachmentAdmin(admin.ModelAdmin):
    list_display = ['task', 'file_name', 'mime_type', 'file_size', 'uploaded_by', 'created_at']
    list_filter = ['created_at']
    search_fields = ['task__title', 'file_name']
    readonly_fields = ['created_at']
    raw_id_fields = ['task']


@admin.register(TaskHistory)
class TaskHistoryAdmin(admin.ModelAdmin):
    list_display = ['task', 'action', 'user', 'field_name', 'created_at']
    list_filter = ['action', 'created_at']
    search_fields = ['task__title', 'user__email', 'field_name']
    readonly_fields = ['created_at']
