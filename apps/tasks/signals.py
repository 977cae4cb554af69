"""
Task change publication

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from apps.realtime.events import DELETE, INSERT, UPDATE, publish_row_change
from .assignments import AssignmentResolver
from .models import Task

logger = logging.getLogger(__name__)

TASK_TABLE = 'tasks'

SNAPSHOT_FIELDS = (
    'title', 'status', 'priority', 'progress_percentage', 'completion_type',
    'location_based', 'proof_photo_url'
)

DATETIME_FIELDS = (
    'due_date', 'start_date', 'end_date', 'started_at', 'last_pause_at',
    'completed_at', 'original_due_date', 'forwarded_at', 'updated_at'
)


def task_snapshot(task, assignee_ids=None):
    """JSON-friendly task row as carried by realtime events."""
    if assignee_ids is None:
        assignee_ids = AssignmentResolver.assignee_ids(task)

    row = {'id': str(task.pk)}
    for field in SNAPSHOT_FIELDS:
        row[field] = getattr(task, field)
    for field in DATETIME_FIELDS:
        value = getattr(task, field)
        row[field] = value.isoformat() if value else None
    row['assigned_to'] = str(task.assigned_to_id) if task.assigned_to_id else None
    row['assignee_ids'] = [str(user_id) for user_id in assignee_ids]
    return row


def publish_task_event(task, event_type, old=None, assignee_ids=None):
    """
    Publish a task row event once the surrounding transaction commits.
    """
    snapshot = task_snapshot(task, assignee_ids=assignee_ids)
    row_id = task.pk
    updated_at = task.updated_at

    if event_type == DELETE:
        new, old = {}, snapshot
    else:
        new = snapshot
        if old is not None:
            old = {'id': snapshot['id'], 'assignee_ids': snapshot['assignee_ids'], **old}

    transaction.on_commit(
        lambda: publish_row_change(TASK_TABLE, event_type, row_id, updated_at, new=new, old=old)
    )


@receiver(post_save, sender=Task)
def task_saved(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    publish_task_event(instance, INSERT if created else UPDATE)


@receiver(pre_delete, sender=Task)
def task_deleting(sender, instance, **kwargs):
    instance._assignee_ids = AssignmentResolver.assignee_ids(instance)


@receiver(post_delete, sender=Task)
def task_deleted(sender, instance, **kwargs):
    publish_task_event(instance, DELETE, assignee_ids=getattr(instance, '_assignee_ids', []))
