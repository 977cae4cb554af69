"""
Tasks Notification Service

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from apps.authentication.models import User

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for sending task-related notifications.
    Notifications are log lines; clients learn about changes through the
    realtime task feed.
    """

    @staticmethod
    def notify_task_assigned(task, assignees):
        """
        Send notifications when task is assigned.

        Args:
            task: Task instance
            assignees: List of User instances
        """
        try:
            for recipient in assignees:
                logger.info(f"Notification: Task '{task.title}' assigned to {recipient.email}")

                if task.priority == 'High':
                    logger.info(f"HIGH PRIORITY: Immediate notification sent to {recipient.email}")
        except Exception as e:
            logger.error(f"Failed to send assignment notifications: {str(e)}", exc_info=True)

    @staticmethod
    def notify_status_changed(task, old_status, new_status, acting_user=None):
        """
        Send notifications when task status changes.

        Recipients are the task creator and the admins; the acting user is skipped.
        """
        try:
            recipients = set(User.objects.admins())
            if task.created_by:
                recipients.add(task.created_by)
            recipients.discard(acting_user)

            actor = acting_user.full_name if acting_user else 'System'
            for recipient in recipients:
                logger.info(
                    f"Notification: Task '{task.title}' moved {old_status} → {new_status} "
                    f"by {actor} (to {recipient.email})"
                )
        except Exception as e:
            logger.error(f"Failed to send status change notifications: {str(e)}", exc_info=True)

    @staticmethod
    def notify_proof_submitted(proof):
        try:
            for admin in User.objects.admins():
                logger.info(f"Notification: Proof submitted for task '{proof.task.title}' (to {admin.email})")
        except Exception as e:
            logger.error(f"Failed to send proof notifications: {str(e)}", exc_info=True)

    @staticmethod
    def notify_proof_reviewed(proof):
        try:
            if proof.submitted_by:
                message = f"Notification: Your proof for '{proof.task.title}' was {proof.status.lower()}"
                if proof.rejection_reason:
                    message += f": {proof.rejection_reason}"
                logger.info(f"{message} (to {proof.submitted_by.email})")
        except Exception as e:
            logger.error(f"Failed to send proof review notification: {str(e)}", exc_info=True)

    @staticmethod
    def notify_tasks_forwarded(count):
        if count:
            logger.info(f"Notification: {count} overdue task(s) forwarded to the next day")
