"""
Auto-forwarding of overdue planned tasks

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta

from django.db import DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone

from apps.core.exceptions import InvalidTransitionError
from apps.realtime.events import UPDATE
from .models import Task, TaskHistory, TaskStatus
from .notifications import NotificationService
from .signals import publish_task_event

logger = logging.getLogger(__name__)


@dataclass
class ForwardingResult:
    forwarded_count: int = 0
    errors: list = field(default_factory=list)

    @property
    def success(self):
        return not self.errors

    def as_dict(self):
        return {
            'success': self.success,
            'forwarded_count': self.forwarded_count,
            'errors': self.errors,
        }


def start_of_next_day(now):
    """Midnight at the start of tomorrow, in the current time zone."""
    tomorrow = timezone.localdate(now) + timedelta(days=1)
    return timezone.make_aware(datetime.combine(tomorrow, time.min))


class TaskForwardingService:
    """
    Moves Planned tasks whose due day has passed to Pending, due tomorrow.
    """

    @staticmethod
    def overdue_planned_tasks(now=None):
        now = now or timezone.now()
        today_start = timezone.make_aware(datetime.combine(timezone.localdate(now), time.min))
        return Task.objects.filter(
            status=TaskStatus.PLANNED,
            due_date__isnull=False,
            due_date__lt=today_start
        ).order_by('due_date')

    @classmethod
    def forward_overdue_tasks(cls, now=None):
        """
        Forward every overdue Planned task. A failing row is reported in
        ``errors`` and the rest of the batch carries on.
        """
        now = now or timezone.now()
        next_due = start_of_next_day(now)
        result = ForwardingResult()

        for task in cls.overdue_planned_tasks(now):
            try:
                forwarded = cls.forward_task(task, next_due, now)
            except DatabaseError as e:
                logger.error(f"Failed to forward task {task.pk}: {str(e)}", exc_info=True)
                result.errors.append({'task_id': str(task.pk), 'title': task.title, 'error': str(e)})
                continue
            if forwarded:
                result.forwarded_count += 1

        NotificationService.notify_tasks_forwarded(result.forwarded_count)
        logger.info(f"Forwarded {result.forwarded_count} task(s) with {len(result.errors)} error(s)")
        return result

    @staticmethod
    def forward_task(task, next_due, now):
        original_due = task.original_due_date or task.due_date
        changes = {
            'status': TaskStatus.PENDING,
            'original_due_date': original_due,
            'due_date': next_due,
            'forwarded_at': now,
            'updated_at': now,
        }

        with transaction.atomic():
            matched = Task.objects.filter(pk=task.pk, status=TaskStatus.PLANNED).update(**changes)
            if not matched:
                return False

            old_due = task.due_date
            for name, value in changes.items():
                setattr(task, name, value)

            TaskHistory.log_action(
                task, 'forwarded',
                field_name='due_date', old_value=old_due.isoformat() if old_due else '',
                new_value=next_due.isoformat(),
                details={'original_due_date': original_due.isoformat() if original_due else None}
            )
            publish_task_event(task, UPDATE, old={'status': TaskStatus.PLANNED})
        return True

    @staticmethod
    def move_pending_to_planned(task, acting_user=None, now=None):
        """
        Undo a forward: restore the original due date and clear the
        forwarding fields.
        """
        now = now or timezone.now()
        if task.status != TaskStatus.PENDING:
            raise InvalidTransitionError(f"Only pending tasks can be moved back to planned, not {task.status}")

        changes = {
            'status': TaskStatus.PLANNED,
            'due_date': task.original_due_date or task.due_date,
            'original_due_date': None,
            'forwarded_at': None,
            'updated_at': now,
        }

        with transaction.atomic():
            matched = Task.objects.filter(pk=task.pk, status=TaskStatus.PENDING).update(**changes)
            if not matched:
                raise InvalidTransitionError("Task is no longer pending")

            for name, value in changes.items():
                setattr(task, name, value)

            TaskHistory.log_action(
                task, 'status_changed', user=acting_user,
                field_name='status', old_value=TaskStatus.PENDING, new_value=TaskStatus.PLANNED
            )
            publish_task_event(task, UPDATE, old={'status': TaskStatus.PENDING})
        return task

    @staticmethod
    def forwarding_stats(now=None):
        """Counts shown on the admin forwarding panel."""
        now = now or timezone.now()
        return {
            'planned': Task.objects.filter(status=TaskStatus.PLANNED).count(),
            'pending': Task.objects.filter(status=TaskStatus.PENDING).count(),
            'overdue_planned': TaskForwardingService.overdue_planned_tasks(now).count(),
            'forwarded_total': Task.objects.filter(forwarded_at__isnull=False).count(),
        }

    @staticmethod
    def status_summary():
        """Number of tasks per status, including statuses with none."""
        summary = {value: 0 for value, _ in TaskStatus.CHOICES}
        for row in Task.objects.order_by().values('status').annotate(total=Count('id')):
            summary[row['status']] = row['total']
        return summary
