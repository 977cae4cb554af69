"""
Tasks Models

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.core.models import AuditMixin, UUIDPrimaryKeyMixin


class TaskStatus:
    PLANNED = 'Planned'
    NOT_STARTED = 'Not Started'
    IN_PROGRESS = 'In Progress'
    PAUSED = 'Paused'
    COMPLETED = 'Completed'
    PENDING = 'Pending'

    CHOICES = [
        (PLANNED, 'Planned'),
        (NOT_STARTED, 'Not Started'),
        (IN_PROGRESS, 'In Progress'),
        (PAUSED, 'Paused'),
        (COMPLETED, 'Completed'),
        (PENDING, 'Pending'),
    ]


class Task(UUIDPrimaryKeyMixin, AuditMixin):
    """
    A unit of field work created by an admin and carried out by one or
    more employees.

    Status changes go through ``apps.tasks.lifecycle.StatusTransitionHandler``
    which also maintains the time accounting fields.
    """

    PRIORITY_CHOICES = [
        ('High', 'High'),
        ('Medium', 'Medium'),
        ('Low', 'Low'),
    ]

    COMPLETION_TYPE_CHOICES = [
        ('with_proof', 'With Proof'),
        ('without_proof', 'Without Proof'),
    ]

    # Basic Information
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium', db_index=True)
    status = models.CharField(
        max_length=20,
        choices=TaskStatus.CHOICES,
        default=TaskStatus.NOT_STARTED,
        db_index=True
    )
    completion_type = models.CharField(max_length=20, choices=COMPLETION_TYPE_CHOICES, blank=True)
    job = models.ForeignKey(
        'jobs.Job',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks'
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        help_text="Earnings value of the task"
    )

    # Scheduling
    due_date = models.DateTimeField(null=True, blank=True, db_index=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    estimated_time = models.PositiveIntegerField(null=True, blank=True, help_text="Estimated minutes")
    time_assigning = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Minutes allotted; the task auto-completes once this much work time has elapsed"
    )

    # Assignment
    assigned_to = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='primary_tasks',
        help_text="First assignee, kept in step with the assignee set"
    )
    assignees = models.ManyToManyField(
        'authentication.User',
        through='TaskAssignee',
        through_fields=('task', 'user'),
        related_name='assigned_tasks',
        blank=True
    )

    # Progress and time accounting
    progress_percentage = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    started_at = models.DateTimeField(null=True, blank=True)
    last_pause_at = models.DateTimeField(null=True, blank=True)
    total_pause_duration = models.DurationField(default=timedelta(0))
    completed_at = models.DateTimeField(null=True, blank=True)
    actual_time = models.PositiveIntegerField(null=True, blank=True, help_text="Worked minutes at completion")

    # Location requirements
    location_based = models.BooleanField(default=False)
    required_latitude = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    required_longitude = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    required_radius_meters = models.PositiveIntegerField(default=100)
    auto_check_in = models.BooleanField(default=False)
    auto_check_out = models.BooleanField(default=False)

    # Completion
    proof_photo_url = models.CharField(max_length=500, blank=True)
    completion_notes = models.TextField(blank=True)

    # Forwarding
    original_due_date = models.DateTimeField(null=True, blank=True)
    forwarded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'tasks'
        verbose_name = 'Task'
        verbose_name_plural = 'Tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['assigned_to'], name='idx_tasks_assigned_to'),
            models.Index(fields=['status', 'due_date'], name='idx_tasks_status_due_date'),
            models.Index(fields=['job'], name='idx_tasks_job_id'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        super().clean()

        if self.progress_percentage is not None and self.status != TaskStatus.IN_PROGRESS:
            raise ValidationError({
                'progress_percentage': 'Progress is only tracked while the task is in progress.'
            })

        if self.last_pause_at is not None and self.status != TaskStatus.PAUSED:
            raise ValidationError({'last_pause_at': 'Only a paused task has an open pause.'})

        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date cannot be before start date.'})

        if self.location_based and (self.required_latitude is None) != (self.required_longitude is None):
            raise ValidationError({
                'required_latitude': 'Latitude and longitude must be given together.'
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_paused(self):
        return self.status == TaskStatus.PAUSED and self.last_pause_at is not None

    @property
    def is_overdue(self):
        if not self.due_date or self.status == TaskStatus.COMPLETED:
            return False
        return timezone.localdate(self.due_date) < timezone.localdate()


class TaskAssignee(UUIDPrimaryKeyMixin):
    """
    Join row between a task and one of its assignees.
    """
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='assignee_links')
    user = models.ForeignKey('authentication.User', on_delete=models.CASCADE, related_name='task_links')
    assigned_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assignments_made'
    )
    assigned_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'task_assignees'
        verbose_name = 'Task Assignee'
        verbose_name_plural = 'Task Assignees'
        ordering = ['assigned_at']
        constraints = [
            models.UniqueConstraint(fields=['task', 'user'], name='uniq_task_assignee'),
        ]
        indexes = [
            models.Index(fields=['user'], name='idx_task_assignees_user_id'),
        ]

    def __str__(self):
        return f"{self.task.title} → {self.user.full_name}"


class TaskProof(UUIDPrimaryKeyMixin):
    """
    Photo evidence submitted when completing a task, reviewed by an admin.
    """
    STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
    ]

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='proofs')
    image_url = models.CharField(max_length=500)
    description = models.TextField(blank=True)
    submitted_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='submitted_proofs'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='Pending', db_index=True)
    reviewed_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_proofs'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'task_proofs'
        verbose_name = 'Task Proof'
        verbose_name_plural = 'Task Proofs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['task', 'created_at'], name='idx_task_proofs_task_created'),
        ]

    def __str__(self):
        return f"Proof for {self.task.title} ({self.status})"

    def clean(self):
        super().clean()
        if self.status == 'Rejected' and not self.rejection_reason.strip():
            raise ValidationError({'rejection_reason': 'A rejected proof needs a reason.'})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class TaskAttachment(UUIDPrimaryKeyMixin):
    """
    File attached to a task by an admin or assignee.
    """
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='attachments')
    uploaded_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='task_attachments'
    )
    file_name = models.CharField(max_length=255)
    file_size = models.PositiveBigIntegerField()
    mime_type = models.CharField(max_length=100, blank=True)
    file_url = models.CharField(max_length=500)
    storage_path = models.CharField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'task_attachments'
        verbose_name = 'Task Attachment'
        verbose_name_plural = 'Task Attachments'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.file_name} - {self.task.title}"

    @property
    def is_image(self):
        return self.mime_type.startswith('image/')


class TaskHistory(UUIDPrimaryKeyMixin):
    """
    Audit trail of task changes and actions.
    """
    ACTION_CHOICES = [
        ('created', 'Created'),
        ('updated', 'Updated'),
        ('status_changed', 'Status Changed'),
        ('progress_updated', 'Progress Updated'),
        ('assigned', 'Assigned'),
        ('proof_submitted', 'Proof Submitted'),
        ('proof_reviewed', 'Proof Reviewed'),
        ('reassigned', 'Reassigned'),
        ('forwarded', 'Forwarded'),
        ('file_uploaded', 'File Uploaded'),
        ('checked_in', 'Checked In'),
        ('checked_out', 'Checked Out'),
    ]

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='task_history'
    )
    action = models.CharField(max_length=50, choices=ACTION_CHOICES, db_index=True)
    field_name = models.CharField(max_length=100, blank=True)
    old_value = models.TextField(blank=True)
    new_value = models.TextField(blank=True)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'task_history'
        verbose_name = 'Task History'
        verbose_name_plural = 'Task History'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['task', 'created_at'], name='idx_task_history_task_created'),
        ]

    def __str__(self):
        user_name = self.user.full_name if self.user else "System"
        return f"{self.task.title} - {self.action} by {user_name}"

    @classmethod
    def log_action(cls, task, action, user=None, field_name='', old_value='', new_value='', details=None):
        """
        Create a history entry for an action.

        Args:
            task: Task instance
            action: Action type (from ACTION_CHOICES)
            user: User who performed the action (optional)
            field_name: Name of field that changed (optional)
            old_value: Previous value (optional)
            new_value: New value (optional)
            details: Additional context dict (optional)
        """
        return cls.objects.create(
            task=task,
            user=user,
            action=action,
            field_name=field_name,
            old_value=str(old_value) if old_value else '',
            new_value=str(new_value) if new_value else '',
            details=details or {}
        )
