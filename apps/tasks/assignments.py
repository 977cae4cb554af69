"""
Task Assignment Resolution

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.

A task can be assigned through the ``task_assignees`` join table and through
the legacy single ``assigned_to`` column. Every read treats the union of both
as the assignee set; every write keeps the legacy column equal to the first
assignee.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.authentication.models import User
from apps.core.exceptions import BusinessValidationError
from .models import TaskAssignee

logger = logging.getLogger(__name__)


class AssignmentResolver:
    """
    Single source of truth for "who is assigned to this task".
    """

    @staticmethod
    def assignee_filter(user):
        """Q predicate on Task matching tasks the user is assigned to."""
        return Q(assigned_to=user) | Q(assignee_links__user=user)

    @staticmethod
    def assignee_ids(task):
        """Ordered, de-duplicated assignee ids (legacy assignee first)."""
        ids = []
        if task.assigned_to_id:
            ids.append(task.assigned_to_id)
        linked = TaskAssignee.objects.filter(task=task).order_by('assigned_at').values_list('user_id', flat=True)
        for user_id in linked:
            if user_id not in ids:
                ids.append(user_id)
        return ids

    @classmethod
    def assignees_for(cls, task):
        ids = cls.assignee_ids(task)
        users = {user.id: user for user in User.objects.filter(id__in=ids)}
        return [users[user_id] for user_id in ids if user_id in users]

    @staticmethod
    def is_assignee(task, user):
        if user is None or not getattr(user, 'is_authenticated', False):
            return False
        if task.assigned_to_id == user.id:
            return True
        return TaskAssignee.objects.filter(task=task, user=user).exists()

    @classmethod
    def set_assignees(cls, task, users, assigned_by=None):
        """
        Replace the assignee set. The legacy column becomes the first user.
        An assigned task cannot be left without assignees.
        """
        ordered = []
        for user in users:
            if user not in ordered:
                ordered.append(user)
        if not ordered:
            if cls.assignee_ids(task):
                raise BusinessValidationError("An assigned task needs at least one assignee")
            return ordered

        with transaction.atomic():
            TaskAssignee.objects.filter(task=task).exclude(user__in=ordered).delete()
            existing = set(TaskAssignee.objects.filter(task=task).values_list('user_id', flat=True))
            now = timezone.now()
            TaskAssignee.objects.bulk_create([
                TaskAssignee(
                    task=task,
                    user=user,
                    assigned_by=assigned_by,
                    assigned_at=now + timedelta(microseconds=position)
                )
                for position, user in enumerate(ordered) if user.id not in existing
            ])

            primary = ordered[0]
            type(task).objects.filter(pk=task.pk).update(assigned_to=primary)
            task.assigned_to = primary

        logger.info(f"Task {task.id} assigned to {[str(u.id) for u in ordered]}")
        return ordered
