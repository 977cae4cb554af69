"""
Task attachment uploads

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import DatabaseError

from .models import TaskAttachment, TaskHistory

logger = logging.getLogger(__name__)


class AttachmentService:
    """
    Stores files attached to a task. Each file succeeds or fails on its own.
    """

    @staticmethod
    def storage_path(task, filename):
        ext = os.path.splitext(filename)[1].lower()
        return f"task_attachments/{task.pk}/{uuid.uuid4().hex}{ext}"

    @classmethod
    def upload_many(cls, task, files, uploaded_by, storage=None):
        """
        Returns ``(attachments, errors)`` where ``errors`` holds one entry
        per file that could not be stored or recorded.
        """
        storage = storage or default_storage
        max_size = getattr(settings, 'TASK_ATTACHMENT_MAX_SIZE', 10 * 1024 * 1024)
        attachments, errors = [], []

        for upload in files:
            name = os.path.basename(upload.name or 'file')

            if upload.size > max_size:
                errors.append({
                    'file_name': name,
                    'error': f'File size must not exceed {max_size // (1024 * 1024)}MB.'
                })
                continue

            try:
                path = storage.save(cls.storage_path(task, name), upload)
                url = storage.url(path)
            except Exception as e:
                logger.error(f"Attachment upload '{name}' for task {task.pk} failed: {str(e)}", exc_info=True)
                errors.append({'file_name': name, 'error': 'Upload failed'})
                continue

            try:
                attachment = TaskAttachment.objects.create(
                    task=task,
                    uploaded_by=uploaded_by,
                    file_name=name,
                    file_size=upload.size,
                    mime_type=getattr(upload, 'content_type', '') or '',
                    file_url=url,
                    storage_path=path
                )
            except DatabaseError as e:
                logger.error(f"Attachment record '{name}' for task {task.pk} failed: {str(e)}", exc_info=True)
                errors.append({'file_name': name, 'error': 'Uploaded but could not be recorded'})
                continue

            attachments.append(attachment)
            TaskHistory.log_action(
                task, 'file_uploaded', user=uploaded_by,
                new_value=name, details={'attachment_id': str(attachment.pk)}
            )

        logger.info(f"{len(attachments)} attachment(s) stored for task {task.pk}, {len(errors)} failed")
        return attachments, errors

    @staticmethod
    def delete(attachment, storage=None):
        storage = storage or default_storage
        try:
            storage.delete(attachment.storage_path)
        except Exception as e:
            logger.warning(f"Could not remove stored file {attachment.storage_path}: {str(e)}")
        attachment.delete()
