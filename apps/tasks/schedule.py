"""
Date-window status sync

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.db.models import Q
from django.utils import timezone

from .lifecycle import StatusTransitionHandler, elapsed_minutes
from .models import Task, TaskStatus

logger = logging.getLogger(__name__)


def activate_planned_tasks(now=None):
    """
    Planned → Not Started for tasks whose start date has arrived and whose
    due day is not over. Returns the number of tasks activated.
    """
    now = now or timezone.now()
    today = timezone.localdate(now)

    candidates = Task.objects.filter(
        status=TaskStatus.PLANNED,
        start_date__isnull=False,
        start_date__lte=now
    ).filter(Q(due_date__isnull=True) | Q(due_date__date__gte=today))

    activated = 0
    for task in candidates:
        if StatusTransitionHandler.system_transition(
            task, TaskStatus.NOT_STARTED, now=now, reason='start date reached'
        ):
            activated += 1

    if activated:
        logger.info(f"Activated {activated} planned task(s)")
    return activated


def auto_complete_timed_tasks(now=None):
    """
    Complete in-progress tasks whose worked time reached their allotted
    ``time_assigning`` minutes. Returns the number of tasks completed.
    """
    now = now or timezone.now()

    candidates = Task.objects.filter(
        status=TaskStatus.IN_PROGRESS,
        started_at__isnull=False,
        time_assigning__isnull=False
    )

    completed = 0
    for task in candidates:
        if elapsed_minutes(task, now) < task.time_assigning:
            continue
        if StatusTransitionHandler.system_transition(
            task, TaskStatus.COMPLETED, now=now, reason='allotted time used'
        ):
            completed += 1

    if completed:
        logger.info(f"Auto-completed {completed} timed task(s)")
    return completed
