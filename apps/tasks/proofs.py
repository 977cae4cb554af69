"""
Completion proof submission and review

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging
import os
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.exceptions import (
    BusinessValidationError, NotAssigneeError, ProofRecordError, ProofUploadError
)
from apps.realtime.events import UPDATE
from .assignments import AssignmentResolver
from .lifecycle import StatusTransitionHandler
from .models import TaskHistory, TaskProof, TaskStatus
from .notifications import NotificationService
from .signals import publish_task_event

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = ('Approved', 'Rejected')


def proof_storage_path(task, filename, now):
    """``task_proofs/<task id>/<epoch millis>.<ext>``"""
    ext = os.path.splitext(filename or '')[1].lstrip('.').lower() or 'jpg'
    stamp = int(now.timestamp() * 1000)
    upload_dir = getattr(settings, 'TASK_PROOF_UPLOAD_DIR', 'task_proofs')
    return f"{upload_dir}/{task.pk}/{stamp}.{ext}"


class ProofService:
    """
    Photo-proof completion of tasks and admin review of the proofs.
    """

    @staticmethod
    def submit_proof(task, image, notes, submitting_user, now=None, storage=None):
        """
        Store the proof image, record the proof and complete the task.

        Raises:
            NotAssigneeError / InvalidTransitionError: before anything is written
            ProofUploadError: the image could not be stored; nothing was written
            ProofRecordError: the image was stored but the proof row failed
        """
        now = now or timezone.now()
        storage = storage or default_storage

        if not AssignmentResolver.is_assignee(task, submitting_user):
            raise NotAssigneeError()
        StatusTransitionHandler.validate(task, TaskStatus.COMPLETED)

        path = proof_storage_path(task, getattr(image, 'name', ''), now)
        try:
            saved_path = storage.save(path, image)
            image_url = storage.url(saved_path)
        except Exception as e:
            logger.error(f"Proof upload for task {task.pk} failed: {str(e)}", exc_info=True)
            raise ProofUploadError(details={'error': str(e)})

        with transaction.atomic():
            try:
                proof = TaskProof.objects.create(
                    task=task,
                    image_url=image_url,
                    description=notes or '',
                    submitted_by=submitting_user,
                    created_at=now
                )
            except (DatabaseError, ValidationError) as e:
                # The stored image is left in place
                logger.error(f"Proof record for task {task.pk} failed after upload to {saved_path}: {str(e)}", exc_info=True)
                raise ProofRecordError(details={'image_url': image_url})

            # A failed completion rolls the proof row back with it
            StatusTransitionHandler.transition(
                task, TaskStatus.COMPLETED, submitting_user, now=now,
                extra={
                    'completion_type': 'with_proof',
                    'proof_photo_url': image_url,
                    'completion_notes': notes or '',
                }
            )

            TaskHistory.log_action(
                task, 'proof_submitted', user=submitting_user,
                details={'proof_id': str(proof.pk), 'image_url': image_url}
            )

        NotificationService.notify_proof_submitted(proof)
        logger.info(f"Proof {proof.pk} submitted for task {task.pk} by {submitting_user.email}")
        return proof

    @staticmethod
    def review_proof(proof, decision, reviewer, rejection_reason=None, now=None):
        """
        Approve or reject a proof. The task's status is left as it is.
        """
        now = now or timezone.now()
        reason = (rejection_reason or '').strip()

        if decision not in REVIEW_DECISIONS:
            raise BusinessValidationError(f"Decision must be one of {', '.join(REVIEW_DECISIONS)}")
        if decision == 'Rejected' and not reason:
            raise BusinessValidationError(
                "A rejection reason is required",
                details={'rejection_reason': ['This field is required when rejecting.']}
            )

        proof.status = decision
        proof.reviewed_by = reviewer
        proof.reviewed_at = now
        proof.rejection_reason = reason if decision == 'Rejected' else ''
        proof.save()

        TaskHistory.log_action(
            proof.task, 'proof_reviewed', user=reviewer,
            new_value=decision, details={'proof_id': str(proof.pk), 'rejection_reason': proof.rejection_reason}
        )
        NotificationService.notify_proof_reviewed(proof)
        logger.info(f"Proof {proof.pk} {decision.lower()} by {reviewer.email}")
        return proof

    @staticmethod
    def request_reassignment(task, admin, assignees=None, now=None):
        """
        Send a task back to Not Started, clearing time accounting and
        completion data. ``assignees`` replaces the assignee set when given.
        """
        now = now or timezone.now()
        old_status = task.status

        reset = {
            'status': TaskStatus.NOT_STARTED,
            'progress_percentage': None,
            'started_at': None,
            'last_pause_at': None,
            'total_pause_duration': timedelta(0),
            'completed_at': None,
            'actual_time': None,
            'completion_type': '',
            'proof_photo_url': '',
            'completion_notes': '',
            'updated_at': now,
        }

        with transaction.atomic():
            type(task).objects.filter(pk=task.pk).update(**reset)
            for field, value in reset.items():
                setattr(task, field, value)

            if assignees is not None:
                AssignmentResolver.set_assignees(task, assignees, assigned_by=admin)

            TaskHistory.log_action(
                task, 'reassigned', user=admin,
                field_name='status', old_value=old_status, new_value=task.status,
                details={'assignee_ids': [str(u.pk) for u in assignees]} if assignees is not None else None
            )
            publish_task_event(task, UPDATE, old={'status': old_status})

        if assignees:
            NotificationService.notify_task_assigned(task, assignees)
        logger.info(f"Task {task.pk} sent back for rework by {admin.email}")
        return task
