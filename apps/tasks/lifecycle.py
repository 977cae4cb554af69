"""
Task Status Lifecycle

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.

Not Started → In Progress ⇄ Paused → Completed. Planned and Pending sit
outside the main flow: Planned → Not Started when the start date arrives,
Pending → In Progress when a forwarded task is picked up again.
"""
import logging
from datetime import timedelta

from django.db.models import Q
from django.utils import timezone

from apps.core.exceptions import (
    BusinessValidationError, InvalidTransitionError, NotAssigneeError
)
from apps.realtime.events import UPDATE
from .assignments import AssignmentResolver
from .models import Task, TaskHistory, TaskStatus
from .notifications import NotificationService
from .signals import publish_task_event

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    TaskStatus.NOT_STARTED: {TaskStatus.IN_PROGRESS},
    TaskStatus.IN_PROGRESS: {TaskStatus.PAUSED, TaskStatus.COMPLETED},
    TaskStatus.PAUSED: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED},
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS},
    TaskStatus.PLANNED: {TaskStatus.NOT_STARTED},
    TaskStatus.COMPLETED: set(),
}


def effective_elapsed(task, now=None):
    """
    Worked time of a task as a ``timedelta``, never negative.

    Runs until ``completed_at`` (or ``now`` while open) minus accumulated
    pauses and, for a paused task, the pause still in progress.
    """
    if task.started_at is None:
        return timedelta(0)

    end = task.completed_at or now or timezone.now()
    elapsed = end - task.started_at - (task.total_pause_duration or timedelta(0))
    if task.status == TaskStatus.PAUSED and task.last_pause_at:
        elapsed -= open_pause(task, end)

    return max(elapsed, timedelta(0))


def open_pause(task, now):
    """Length of the pause still running at ``now``, floored at zero."""
    if task.last_pause_at is None:
        return timedelta(0)
    return max(now - task.last_pause_at, timedelta(0))


def elapsed_minutes(task, now=None):
    return int(effective_elapsed(task, now).total_seconds() // 60)


def clamp_progress(value):
    return max(0, min(100, int(value)))


class StatusTransitionHandler:
    """
    Validates and applies task status changes.

    Every change is written with a single conditional UPDATE; the in-memory
    task is only touched once that UPDATE matched a row.
    """

    @staticmethod
    def can_transition(current, new_status):
        return new_status in ALLOWED_TRANSITIONS.get(current, set())

    @classmethod
    def validate(cls, task, new_status):
        if new_status not in dict(TaskStatus.CHOICES):
            raise BusinessValidationError(f"Unknown status '{new_status}'")
        if not cls.can_transition(task.status, new_status):
            raise InvalidTransitionError(
                f"Cannot change status from {task.status} to {new_status}",
                details={'current_status': task.status, 'requested_status': new_status}
            )

    @staticmethod
    def planned_changes(task, new_status, now):
        """Field values written by a transition, computed without touching the task."""
        changes = {'status': new_status, 'updated_at': now}

        if new_status == TaskStatus.IN_PROGRESS:
            if task.started_at is None:
                changes['started_at'] = now
            if task.last_pause_at is not None:
                changes['total_pause_duration'] = task.total_pause_duration + open_pause(task, now)
                changes['last_pause_at'] = None
            changes['progress_percentage'] = task.progress_percentage if task.progress_percentage is not None else 0

        elif new_status == TaskStatus.PAUSED:
            changes['last_pause_at'] = now
            changes['progress_percentage'] = None

        elif new_status == TaskStatus.COMPLETED:
            total_pause = task.total_pause_duration
            if task.last_pause_at is not None:
                total_pause += open_pause(task, now)
            started_at = task.started_at or now
            worked = max(now - started_at - total_pause, timedelta(0))

            changes.update({
                'started_at': started_at,
                'total_pause_duration': total_pause,
                'last_pause_at': None,
                'completed_at': now,
                'actual_time': int(worked.total_seconds() // 60),
                'progress_percentage': None,
            })
            if not task.completion_type:
                changes['completion_type'] = 'without_proof'

        return changes

    @classmethod
    def transition(cls, task, new_status, acting_user, now=None, extra=None):
        """
        Move a task to ``new_status`` on behalf of one of its assignees.

        Raises:
            NotAssigneeError: acting user is not assigned, checked before any write
            InvalidTransitionError: the move is not in the transition table
        """
        now = now or timezone.now()

        if not AssignmentResolver.is_assignee(task, acting_user):
            raise NotAssigneeError()
        cls.validate(task, new_status)

        changes = cls.planned_changes(task, new_status, now)
        changes.update(extra or {})

        matched = Task.objects.filter(
            Q(pk=task.pk) & AssignmentResolver.assignee_filter(acting_user)
        ).update(**changes)
        if not matched:
            raise NotAssigneeError()

        return cls._applied(task, changes, acting_user)

    @classmethod
    def system_transition(cls, task, new_status, now=None, extra=None, reason=''):
        """
        Status change made by the scheduler rather than a person.

        Guarded on the status the task was read with, so a concurrent change
        wins and this call returns ``False``.
        """
        now = now or timezone.now()
        cls.validate(task, new_status)

        changes = cls.planned_changes(task, new_status, now)
        changes.update(extra or {})

        matched = Task.objects.filter(pk=task.pk, status=task.status).update(**changes)
        if not matched:
            logger.info(f"Task {task.pk} changed concurrently; skipped {task.status} → {new_status}")
            return False

        cls._applied(task, changes, None, reason=reason)
        return True

    @staticmethod
    def _applied(task, changes, acting_user, reason=''):
        old_status = task.status
        for field, value in changes.items():
            setattr(task, field, value)

        details = {'reason': reason} if reason else None
        TaskHistory.log_action(
            task, 'status_changed', user=acting_user,
            field_name='status', old_value=old_status, new_value=task.status,
            details=details
        )
        NotificationService.notify_status_changed(task, old_status, task.status, acting_user)
        publish_task_event(task, UPDATE, old={'status': old_status})

        logger.info(f"Task {task.pk} status {old_status} → {task.status}")
        return task

    @staticmethod
    def update_progress(task, value, acting_user, now=None):
        """Record progress (clamped to 0..100) on an in-progress task."""
        now = now or timezone.now()

        if task.status != TaskStatus.IN_PROGRESS:
            raise InvalidTransitionError("Progress can only be updated while the task is in progress")
        if not AssignmentResolver.is_assignee(task, acting_user):
            raise NotAssigneeError()

        progress = clamp_progress(value)
        matched = Task.objects.filter(
            Q(pk=task.pk) & AssignmentResolver.assignee_filter(acting_user),
            status=TaskStatus.IN_PROGRESS
        ).update(progress_percentage=progress, updated_at=now)
        if not matched:
            raise NotAssigneeError()

        old_progress = task.progress_percentage
        task.progress_percentage = progress
        task.updated_at = now

        TaskHistory.log_action(
            task, 'progress_updated', user=acting_user,
            field_name='progress_percentage', old_value=old_progress, new_value=progress
        )
        publish_task_event(task, UPDATE, old={'progress_percentage': old_progress})
        return task
