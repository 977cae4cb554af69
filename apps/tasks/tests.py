"""
Tasks Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.authentication.models import User
from apps.core.exceptions import (
    BusinessValidationError, InvalidTransitionError, NotAssigneeError,
    ProofRecordError, ProofUploadError
)
from apps.realtime.events import DELETE, UPDATE
from .assignments import AssignmentResolver
from .attachments import AttachmentService
from .durations import (
    format_duration, format_duration_hms, parse_duration, parse_time_string, validate_time_input
)
from .forwarding import TaskForwardingService
from .lifecycle import StatusTransitionHandler, effective_elapsed
from .models import Task, TaskAssignee, TaskHistory, TaskProof, TaskStatus
from .proofs import ProofService
from .schedule import activate_planned_tasks, auto_complete_timed_tasks
from . import tasks as celery_tasks


T0 = datetime(2025, 3, 10, 12, 0, tzinfo=dt_timezone.utc)


def make_user(email, role='employee', name='Field Employee'):
    return User.objects.create_user(email=email, password='test12345', full_name=name, role=role)


def image_upload(name='proof.jpg'):
    return SimpleUploadedFile(name, b'\xff\xd8\xff\xe0fake-jpeg', content_type='image/jpeg')


def mock_storage(url='/media/task_proofs/proof.jpg'):
    storage = mock.Mock()
    storage.save.side_effect = lambda path, content: path
    storage.url.return_value = url
    return storage


class TaskTestMixin:
    """Users and an assigned task shared by the service tests."""

    def setUp(self):
        self.admin = make_user('admin@test.com', role='admin', name='Admin User')
        self.employee = make_user('emp@test.com')
        self.other = make_user('other@test.com', name='Other Employee')
        self.task = Task.objects.create(title='Replace valve', created_by=self.admin)
        AssignmentResolver.set_assignees(self.task, [self.employee], assigned_by=self.admin)


class StatusTransitionTest(TaskTestMixin, TestCase):
    """Test the task status lifecycle."""

    def test_start_sets_started_at_and_zero_progress(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.IN_PROGRESS)
        self.assertEqual(self.task.started_at, T0)
        self.assertEqual(self.task.progress_percentage, 0)

    def test_non_assignee_cannot_change_status(self):
        with self.assertRaises(NotAssigneeError):
            StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.other, now=T0)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.NOT_STARTED)
        self.assertIsNone(self.task.started_at)
        self.assertFalse(TaskHistory.objects.filter(task=self.task, action='status_changed').exists())

    def test_disallowed_transition_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            StatusTransitionHandler.transition(self.task, TaskStatus.COMPLETED, self.employee, now=T0)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.NOT_STARTED)

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(BusinessValidationError):
            StatusTransitionHandler.transition(self.task, 'Archived', self.employee, now=T0)

    def test_completed_is_terminal(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)
        StatusTransitionHandler.transition(self.task, TaskStatus.COMPLETED, self.employee, now=T0 + timedelta(minutes=5))

        for target in (TaskStatus.IN_PROGRESS, TaskStatus.PAUSED, TaskStatus.NOT_STARTED):
            with self.assertRaises(InvalidTransitionError):
                StatusTransitionHandler.transition(self.task, target, self.employee, now=T0 + timedelta(minutes=6))

    def test_pause_and_resume_accumulate_pause_time(self):
        handler = StatusTransitionHandler
        handler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)
        handler.transition(self.task, TaskStatus.PAUSED, self.employee, now=T0 + timedelta(minutes=10))

        self.task.refresh_from_db()
        self.assertEqual(self.task.last_pause_at, T0 + timedelta(minutes=10))
        self.assertIsNone(self.task.progress_percentage)

        handler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0 + timedelta(minutes=15))
        self.task.refresh_from_db()
        self.assertIsNone(self.task.last_pause_at)
        self.assertEqual(self.task.total_pause_duration, timedelta(minutes=5))
        self.assertEqual(self.task.started_at, T0)
        self.assertEqual(self.task.progress_percentage, 0)

        handler.transition(self.task, TaskStatus.COMPLETED, self.employee, now=T0 + timedelta(minutes=30))
        self.task.refresh_from_db()
        self.assertEqual(self.task.completed_at, T0 + timedelta(minutes=30))
        self.assertEqual(self.task.actual_time, 25)
        self.assertEqual(self.task.completion_type, 'without_proof')
        self.assertIsNone(self.task.progress_percentage)

    def test_completing_a_paused_task_closes_the_pause(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)
        StatusTransitionHandler.transition(self.task, TaskStatus.PAUSED, self.employee, now=T0 + timedelta(minutes=10))
        StatusTransitionHandler.transition(self.task, TaskStatus.COMPLETED, self.employee, now=T0 + timedelta(minutes=20))

        self.task.refresh_from_db()
        self.assertIsNone(self.task.last_pause_at)
        self.assertEqual(self.task.total_pause_duration, timedelta(minutes=10))
        self.assertEqual(self.task.actual_time, 10)

    def test_resume_with_skewed_clock_keeps_pause_total(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)
        StatusTransitionHandler.transition(self.task, TaskStatus.PAUSED, self.employee, now=T0 + timedelta(minutes=10))
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0 + timedelta(minutes=15))
        StatusTransitionHandler.transition(self.task, TaskStatus.PAUSED, self.employee, now=T0 + timedelta(minutes=30))

        # resumed by a worker whose clock runs behind the pausing one
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0 + timedelta(minutes=28))

        self.task.refresh_from_db()
        self.assertEqual(self.task.total_pause_duration, timedelta(minutes=5))
        self.assertIsNone(self.task.last_pause_at)

    def test_elapsed_time_is_frozen_while_paused(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)
        StatusTransitionHandler.transition(self.task, TaskStatus.PAUSED, self.employee, now=T0 + timedelta(minutes=10))

        self.assertEqual(effective_elapsed(self.task, T0 + timedelta(minutes=10)), timedelta(minutes=10))
        self.assertEqual(effective_elapsed(self.task, T0 + timedelta(hours=3)), timedelta(minutes=10))

    def test_elapsed_time_never_negative(self):
        self.task.started_at = T0
        self.assertEqual(effective_elapsed(self.task, T0 - timedelta(minutes=5)), timedelta(0))

    def test_second_assignee_can_change_status(self):
        AssignmentResolver.set_assignees(self.task, [self.employee, self.other])

        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.other, now=T0)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.IN_PROGRESS)

    def test_transition_is_recorded_in_history(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)

        entry = TaskHistory.objects.get(task=self.task, action='status_changed')
        self.assertEqual(entry.user, self.employee)
        self.assertEqual(entry.old_value, TaskStatus.NOT_STARTED)
        self.assertEqual(entry.new_value, TaskStatus.IN_PROGRESS)

    def test_progress_is_clamped(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)

        StatusTransitionHandler.update_progress(self.task, 150, self.employee, now=T0)
        self.task.refresh_from_db()
        self.assertEqual(self.task.progress_percentage, 100)

        StatusTransitionHandler.update_progress(self.task, -20, self.employee, now=T0)
        self.task.refresh_from_db()
        self.assertEqual(self.task.progress_percentage, 0)

    def test_progress_requires_in_progress(self):
        with self.assertRaises(InvalidTransitionError):
            StatusTransitionHandler.update_progress(self.task, 50, self.employee, now=T0)

    def test_model_rejects_progress_outside_in_progress(self):
        self.task.progress_percentage = 40
        with self.assertRaises(ValidationError):
            self.task.save()

    def test_transition_publishes_update_with_assignees(self):
        with mock.patch('apps.tasks.signals.publish_row_change') as publish:
            with self.captureOnCommitCallbacks(execute=True):
                StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)

        args, kwargs = publish.call_args
        self.assertEqual(args[0], 'tasks')
        self.assertEqual(args[1], UPDATE)
        self.assertEqual(kwargs['new']['status'], TaskStatus.IN_PROGRESS)
        self.assertEqual(kwargs['new']['assignee_ids'], [str(self.employee.id)])
        self.assertEqual(kwargs['old']['status'], TaskStatus.NOT_STARTED)

    def test_delete_publishes_previous_assignees(self):
        with mock.patch('apps.tasks.signals.publish_row_change') as publish:
            with self.captureOnCommitCallbacks(execute=True):
                self.task.delete()

        args, kwargs = publish.call_args
        self.assertEqual(args[1], DELETE)
        self.assertEqual(kwargs['new'], {})
        self.assertEqual(kwargs['old']['assignee_ids'], [str(self.employee.id)])


class AssignmentResolverTest(TaskTestMixin, TestCase):
    """Test the union of link-table and legacy assignments."""

    def test_set_assignees_keeps_legacy_column_in_step(self):
        AssignmentResolver.set_assignees(self.task, [self.other, self.employee])

        self.task.refresh_from_db()
        self.assertEqual(self.task.assigned_to, self.other)
        self.assertEqual(
            set(TaskAssignee.objects.filter(task=self.task).values_list('user_id', flat=True)),
            {self.other.id, self.employee.id}
        )

    def test_replacing_assignees_removes_old_links(self):
        AssignmentResolver.set_assignees(self.task, [self.other])

        self.assertFalse(AssignmentResolver.is_assignee(self.task, self.employee))
        self.assertEqual(AssignmentResolver.assignee_ids(self.task), [self.other.id])

    def test_assigned_task_cannot_be_emptied(self):
        with self.assertRaises(BusinessValidationError):
            AssignmentResolver.set_assignees(self.task, [])

        self.task.refresh_from_db()
        self.assertEqual(self.task.assigned_to, self.employee)
        self.assertEqual(AssignmentResolver.assignee_ids(self.task), [self.employee.id])

    def test_empty_assignment_of_unassigned_task_is_a_no_op(self):
        task = Task.objects.create(title='Unassigned survey')

        self.assertEqual(AssignmentResolver.set_assignees(task, []), [])
        self.assertIsNone(task.assigned_to)

    def test_assignee_ids_are_deduplicated(self):
        AssignmentResolver.set_assignees(self.task, [self.employee, self.other, self.employee])

        self.assertEqual(AssignmentResolver.assignee_ids(self.task), [self.employee.id, self.other.id])

    def test_legacy_only_assignment_is_visible(self):
        legacy = Task.objects.create(title='Old style task', assigned_to=self.other)

        self.assertTrue(AssignmentResolver.is_assignee(legacy, self.other))
        visible = Task.objects.filter(AssignmentResolver.assignee_filter(self.other)).distinct()
        self.assertIn(legacy, visible)
        self.assertNotIn(self.task, visible)


class DurationTest(SimpleTestCase):
    """Test duration parsing and formatting."""

    def test_parse_duration_formats(self):
        self.assertEqual(parse_duration(None), timedelta(0))
        self.assertEqual(parse_duration(timedelta(minutes=2)), timedelta(minutes=2))
        self.assertEqual(parse_duration(1500), timedelta(seconds=1.5))
        self.assertEqual(parse_duration('90 seconds'), timedelta(seconds=90))
        self.assertEqual(parse_duration('01:02:03'), timedelta(hours=1, minutes=2, seconds=3))
        self.assertEqual(parse_duration('1 day 02:03:04'), timedelta(days=1, hours=2, minutes=3, seconds=4))
        self.assertEqual(parse_duration('3000'), timedelta(seconds=3))

    def test_parse_duration_rejects_garbage(self):
        with self.assertRaises(ValueError):
            parse_duration('soon')

    def test_format_duration(self):
        self.assertEqual(format_duration(timedelta(hours=2, minutes=5, seconds=9)), '2h 5m')
        self.assertEqual(format_duration(timedelta(minutes=5, seconds=3)), '5m 3s')
        self.assertEqual(format_duration(timedelta(seconds=3)), '3s')
        self.assertEqual(format_duration_hms(timedelta(hours=1, seconds=7)), '01:00:07')

    def test_parse_time_string(self):
        self.assertEqual(parse_time_string('2h 30m').total_minutes, 150)
        self.assertEqual(parse_time_string('2h').total_minutes, 120)
        self.assertEqual(parse_time_string('1.5h').total_minutes, 90)
        self.assertEqual(parse_time_string('90m').total_minutes, 90)
        self.assertEqual(parse_time_string('90').total_minutes, 90)
        self.assertEqual(parse_time_string('whenever').total_minutes, 0)

    def test_validate_time_input(self):
        self.assertIsNone(validate_time_input(2, 30))
        self.assertEqual(validate_time_input(0, 0), 'Time must be greater than 0')
        self.assertEqual(validate_time_input(1, 60), 'Minutes must be less than 60')
        self.assertEqual(validate_time_input(-1, 0), 'Time values cannot be negative')
        self.assertEqual(validate_time_input(25, 0), 'Time cannot exceed 24 hours')


class ScheduleTest(TestCase):
    """Test date-window activation and timed auto-completion."""

    def test_planned_tasks_activate_on_start_date(self):
        due_today = Task.objects.create(
            title='Due today', status=TaskStatus.PLANNED,
            start_date=T0 - timedelta(hours=4), due_date=T0 + timedelta(hours=6)
        )
        open_ended = Task.objects.create(
            title='No due date', status=TaskStatus.PLANNED, start_date=T0 - timedelta(days=1)
        )
        future = Task.objects.create(
            title='Starts tomorrow', status=TaskStatus.PLANNED, start_date=T0 + timedelta(days=1)
        )
        missed = Task.objects.create(
            title='Due day over', status=TaskStatus.PLANNED,
            start_date=T0 - timedelta(days=5), due_date=T0 - timedelta(days=2)
        )

        self.assertEqual(activate_planned_tasks(now=T0), 2)

        for task in (due_today, open_ended, future, missed):
            task.refresh_from_db()
        self.assertEqual(due_today.status, TaskStatus.NOT_STARTED)
        self.assertEqual(open_ended.status, TaskStatus.NOT_STARTED)
        self.assertEqual(future.status, TaskStatus.PLANNED)
        self.assertEqual(missed.status, TaskStatus.PLANNED)

    def test_timed_tasks_complete_when_time_is_used(self):
        overdue = Task.objects.create(
            title='Thirty minutes', status=TaskStatus.IN_PROGRESS, progress_percentage=20,
            started_at=T0 - timedelta(minutes=40), time_assigning=30
        )
        running = Task.objects.create(
            title='One hour', status=TaskStatus.IN_PROGRESS, progress_percentage=20,
            started_at=T0 - timedelta(minutes=40), time_assigning=60
        )

        self.assertEqual(auto_complete_timed_tasks(now=T0), 1)

        overdue.refresh_from_db()
        running.refresh_from_db()
        self.assertEqual(overdue.status, TaskStatus.COMPLETED)
        self.assertEqual(overdue.actual_time, 40)
        self.assertIsNone(overdue.progress_percentage)
        self.assertEqual(running.status, TaskStatus.IN_PROGRESS)

    def test_pause_time_does_not_count_towards_allotted_time(self):
        task = Task.objects.create(
            title='Paused a while', status=TaskStatus.IN_PROGRESS, progress_percentage=0,
            started_at=T0 - timedelta(minutes=40), total_pause_duration=timedelta(minutes=15),
            time_assigning=30
        )

        self.assertEqual(auto_complete_timed_tasks(now=T0), 0)
        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.IN_PROGRESS)

    def test_system_transition_loses_to_concurrent_change(self):
        task = Task.objects.create(title='Raced', status=TaskStatus.PLANNED, start_date=T0)
        Task.objects.filter(pk=task.pk).update(status=TaskStatus.PENDING)

        self.assertFalse(StatusTransitionHandler.system_transition(task, TaskStatus.NOT_STARTED, now=T0))
        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.PENDING)

    def test_celery_tasks_report_counts(self):
        self.assertEqual(celery_tasks.activate_planned_tasks(), {'activated': 0})
        self.assertEqual(celery_tasks.auto_complete_timed_tasks(), {'completed': 0})


class ForwardingTest(TestCase):
    """Test forwarding of overdue planned tasks."""

    def setUp(self):
        self.overdue = Task.objects.create(
            title='Overdue', status=TaskStatus.PLANNED, due_date=datetime(2025, 3, 8, 9, 0, tzinfo=dt_timezone.utc)
        )
        self.due_today = Task.objects.create(
            title='Due today', status=TaskStatus.PLANNED, due_date=datetime(2025, 3, 10, 9, 0, tzinfo=dt_timezone.utc)
        )
        self.started = Task.objects.create(
            title='Not planned', status=TaskStatus.NOT_STARTED, due_date=datetime(2025, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
        )

    def test_overdue_planned_task_becomes_pending_due_tomorrow(self):
        result = TaskForwardingService.forward_overdue_tasks(now=T0)

        self.assertTrue(result.success)
        self.assertEqual(result.forwarded_count, 1)

        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.status, TaskStatus.PENDING)
        self.assertEqual(self.overdue.due_date, datetime(2025, 3, 11, 0, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(self.overdue.original_due_date, datetime(2025, 3, 8, 9, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(self.overdue.forwarded_at, T0)

        self.due_today.refresh_from_db()
        self.started.refresh_from_db()
        self.assertEqual(self.due_today.status, TaskStatus.PLANNED)
        self.assertEqual(self.started.status, TaskStatus.NOT_STARTED)

    def test_original_due_date_survives_repeat_forwarding(self):
        first_due = datetime(2025, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
        Task.objects.filter(pk=self.overdue.pk).update(original_due_date=first_due)

        TaskForwardingService.forward_overdue_tasks(now=T0)

        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.original_due_date, first_due)

    def test_failing_row_does_not_stop_the_batch(self):
        second = Task.objects.create(
            title='Also overdue', status=TaskStatus.PLANNED, due_date=datetime(2025, 3, 9, 9, 0, tzinfo=dt_timezone.utc)
        )
        real_forward = TaskForwardingService.forward_task

        def flaky(task, next_due, now):
            if task.pk == self.overdue.pk:
                raise DatabaseError('row locked')
            return real_forward(task, next_due, now)

        with mock.patch.object(TaskForwardingService, 'forward_task', side_effect=flaky):
            result = TaskForwardingService.forward_overdue_tasks(now=T0)

        self.assertFalse(result.success)
        self.assertEqual(result.forwarded_count, 1)
        self.assertEqual(result.errors[0]['task_id'], str(self.overdue.pk))
        second.refresh_from_db()
        self.assertEqual(second.status, TaskStatus.PENDING)

    def test_move_back_to_planned_restores_due_date(self):
        TaskForwardingService.forward_overdue_tasks(now=T0)
        self.overdue.refresh_from_db()

        TaskForwardingService.move_pending_to_planned(self.overdue, now=T0)

        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.status, TaskStatus.PLANNED)
        self.assertEqual(self.overdue.due_date, datetime(2025, 3, 8, 9, 0, tzinfo=dt_timezone.utc))
        self.assertIsNone(self.overdue.original_due_date)
        self.assertIsNone(self.overdue.forwarded_at)

    def test_only_pending_tasks_move_back(self):
        with self.assertRaises(InvalidTransitionError):
            TaskForwardingService.move_pending_to_planned(self.due_today, now=T0)

    def test_stats_and_summary(self):
        stats = TaskForwardingService.forwarding_stats(now=T0)
        self.assertEqual(stats['planned'], 2)
        self.assertEqual(stats['overdue_planned'], 1)
        self.assertEqual(stats['forwarded_total'], 0)

        summary = TaskForwardingService.status_summary()
        self.assertEqual(summary[TaskStatus.PLANNED], 2)
        self.assertEqual(summary[TaskStatus.NOT_STARTED], 1)
        self.assertEqual(summary[TaskStatus.COMPLETED], 0)

    def test_management_command(self):
        out = StringIO()
        call_command('forward_overdue_tasks', stdout=out)

        self.assertIn('Successfully forwarded', out.getvalue())
        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.status, TaskStatus.PENDING)


class ProofServiceTest(TaskTestMixin, TestCase):
    """Test proof submission, review and reassignment."""

    def setUp(self):
        super().setUp()
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee, now=T0)

    def test_submit_proof_completes_task(self):
        storage = mock_storage()

        proof = ProofService.submit_proof(
            self.task, image_upload(), 'All done', self.employee,
            now=T0 + timedelta(minutes=45), storage=storage
        )

        saved_path = storage.save.call_args[0][0]
        self.assertTrue(saved_path.startswith(f'task_proofs/{self.task.pk}/'))
        self.assertTrue(saved_path.endswith('.jpg'))

        self.assertEqual(proof.status, 'Pending')
        self.assertEqual(proof.submitted_by, self.employee)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.COMPLETED)
        self.assertEqual(self.task.completion_type, 'with_proof')
        self.assertEqual(self.task.proof_photo_url, '/media/task_proofs/proof.jpg')
        self.assertEqual(self.task.completion_notes, 'All done')
        self.assertEqual(self.task.actual_time, 45)

    def test_non_assignee_cannot_submit(self):
        storage = mock_storage()

        with self.assertRaises(NotAssigneeError):
            ProofService.submit_proof(self.task, image_upload(), '', self.other, storage=storage)

        storage.save.assert_not_called()
        self.assertFalse(TaskProof.objects.exists())

    def test_not_started_task_cannot_take_proof(self):
        task = Task.objects.create(title='Untouched')
        AssignmentResolver.set_assignees(task, [self.employee])
        storage = mock_storage()

        with self.assertRaises(InvalidTransitionError):
            ProofService.submit_proof(task, image_upload(), '', self.employee, storage=storage)

        storage.save.assert_not_called()

    def test_upload_failure_writes_nothing(self):
        storage = mock.Mock()
        storage.save.side_effect = OSError('bucket unavailable')

        with self.assertRaises(ProofUploadError):
            ProofService.submit_proof(self.task, image_upload(), '', self.employee, storage=storage)

        self.assertFalse(TaskProof.objects.exists())
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.IN_PROGRESS)

    def test_record_failure_keeps_task_open(self):
        storage = mock_storage()

        with mock.patch.object(TaskProof.objects, 'create', side_effect=DatabaseError('insert failed')):
            with self.assertRaises(ProofRecordError) as ctx:
                ProofService.submit_proof(self.task, image_upload(), '', self.employee, storage=storage)

        storage.save.assert_called_once()
        self.assertEqual(ctx.exception.details['image_url'], '/media/task_proofs/proof.jpg')
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.IN_PROGRESS)

    def test_failed_completion_discards_proof_record(self):
        storage = mock_storage()

        def reassign_during_upload(path, content):
            AssignmentResolver.set_assignees(Task.objects.get(pk=self.task.pk), [self.other])
            return path
        storage.save.side_effect = reassign_during_upload

        with self.assertRaises(NotAssigneeError):
            ProofService.submit_proof(self.task, image_upload(), 'Done', self.employee, storage=storage)

        storage.save.assert_called_once()
        self.assertFalse(TaskProof.objects.filter(task=self.task).exists())
        self.assertFalse(TaskHistory.objects.filter(task=self.task, action='proof_submitted').exists())
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.IN_PROGRESS)
        self.assertIsNone(self.task.completed_at)

    def test_rejection_requires_reason(self):
        proof = ProofService.submit_proof(self.task, image_upload(), '', self.employee, storage=mock_storage())

        with self.assertRaises(BusinessValidationError):
            ProofService.review_proof(proof, 'Rejected', self.admin, rejection_reason='  ')

    def test_review_leaves_task_status(self):
        proof = ProofService.submit_proof(self.task, image_upload(), '', self.employee, storage=mock_storage())

        ProofService.review_proof(proof, 'Rejected', self.admin, rejection_reason='Photo is blurry', now=T0)

        proof.refresh_from_db()
        self.assertEqual(proof.status, 'Rejected')
        self.assertEqual(proof.reviewed_by, self.admin)
        self.assertEqual(proof.rejection_reason, 'Photo is blurry')
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.COMPLETED)

    def test_reassignment_resets_the_task(self):
        ProofService.submit_proof(self.task, image_upload(), '', self.employee, storage=mock_storage())

        ProofService.request_reassignment(self.task, self.admin, assignees=[self.other], now=T0)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.NOT_STARTED)
        self.assertIsNone(self.task.started_at)
        self.assertIsNone(self.task.completed_at)
        self.assertIsNone(self.task.actual_time)
        self.assertEqual(self.task.total_pause_duration, timedelta(0))
        self.assertEqual(self.task.completion_type, '')
        self.assertEqual(self.task.assigned_to, self.other)
        self.assertFalse(AssignmentResolver.is_assignee(self.task, self.employee))


class AttachmentServiceTest(TaskTestMixin, TestCase):
    """Test per-file attachment uploads."""

    @override_settings(TASK_ATTACHMENT_MAX_SIZE=1024)
    def test_oversized_file_fails_alone(self):
        storage = mock_storage(url='/media/task_attachments/notes.txt')
        small = SimpleUploadedFile('notes.txt', b'meter reading 42', content_type='text/plain')
        large = SimpleUploadedFile('scan.pdf', b'x' * 4096, content_type='application/pdf')

        attachments, errors = AttachmentService.upload_many(self.task, [small, large], self.employee, storage=storage)

        self.assertEqual(len(attachments), 1)
        self.assertEqual(attachments[0].file_name, 'notes.txt')
        self.assertEqual(attachments[0].mime_type, 'text/plain')
        self.assertEqual(errors[0]['file_name'], 'scan.pdf')
        self.assertTrue(TaskHistory.objects.filter(task=self.task, action='file_uploaded').exists())

    def test_storage_failure_is_reported_per_file(self):
        storage = mock.Mock()
        storage.save.side_effect = OSError('disk full')
        upload = SimpleUploadedFile('photo.png', b'png', content_type='image/png')

        attachments, errors = AttachmentService.upload_many(self.task, [upload], self.employee, storage=storage)

        self.assertEqual(attachments, [])
        self.assertEqual(errors, [{'file_name': 'photo.png', 'error': 'Upload failed'}])


class TaskAPITest(APITestCase):
    """Test task API endpoints."""

    def setUp(self):
        self.admin = make_user('admin@test.com', role='admin', name='Admin User')
        self.employee = make_user('emp@test.com')
        self.other = make_user('other@test.com', name='Other Employee')
        self.task = Task.objects.create(title='Inspect boiler', created_by=self.admin)
        AssignmentResolver.set_assignees(self.task, [self.employee])

    def test_admin_creates_task_with_assignees(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('tasks:task-list-create'), {
            'title': 'Fix pump',
            'priority': 'High',
            'assignee_ids': [str(self.employee.id), str(self.other.id)],
            'time_assigning_text': '2h 30m',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['time_assigning'], 150)
        self.assertEqual(data['status'], TaskStatus.NOT_STARTED)
        self.assertEqual([a['id'] for a in data['assignees']], [str(self.employee.id), str(self.other.id)])

        task = Task.objects.get(pk=data['id'])
        self.assertEqual(task.assigned_to, self.employee)
        self.assertEqual(task.created_by, self.admin)

    def test_create_rejects_invalid_allotted_time(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('tasks:task-list-create'), {
            'title': 'Too long',
            'time_assigning_text': '30h',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_employee_cannot_create(self):
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(reverse('tasks:task-list-create'), {'title': 'Mine'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_employee_sees_only_assigned_tasks(self):
        Task.objects.create(title='Legacy assignment', assigned_to=self.employee)
        Task.objects.create(title='Someone else', assigned_to=self.other)
        self.client.force_authenticate(user=self.employee)

        response = self.client.get(reverse('tasks:task-list-create'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = {row['title'] for row in response.data['results']}
        self.assertEqual(titles, {'Inspect boiler', 'Legacy assignment'})

    def test_employee_cannot_view_unassigned_task(self):
        self.client.force_authenticate(user=self.other)

        response = self.client.get(reverse('tasks:task-detail', kwargs={'task_id': self.task.id}))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_transition_endpoint(self):
        url = reverse('tasks:task-transition', kwargs={'task_id': self.task.id})

        self.client.force_authenticate(user=self.other)
        response = self.client.post(url, {'status': TaskStatus.IN_PROGRESS}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')

        self.client.force_authenticate(user=self.employee)
        response = self.client.post(url, {'status': TaskStatus.COMPLETED}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post(url, {'status': TaskStatus.IN_PROGRESS}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], TaskStatus.IN_PROGRESS)
        self.assertEqual(response.data['data']['progress_percentage'], 0)

    def test_submit_proof_endpoint(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee)
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(
            reverse('tasks:task-proofs', kwargs={'task_id': self.task.id}),
            {'image': image_upload(), 'notes': 'Replaced gasket'},
            format='multipart'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['task']['status'], TaskStatus.COMPLETED)
        self.assertEqual(response.data['data']['proof']['status'], 'Pending')

    def test_proof_must_be_an_image(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee)
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(
            reverse('tasks:task-proofs', kwargs={'task_id': self.task.id}),
            {'image': SimpleUploadedFile('notes.txt', b'text', content_type='text/plain')},
            format='multipart'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_review_rejection_needs_reason(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee)
        proof = ProofService.submit_proof(self.task, image_upload(), '', self.employee, storage=mock_storage())
        self.client.force_authenticate(user=self.admin)

        url = reverse('tasks:proof-review', kwargs={'proof_id': proof.id})
        response = self.client.post(url, {'decision': 'Rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {'decision': 'Approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'Approved')

    def test_assign_endpoint_replaces_assignees(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse('tasks:task-assign', kwargs={'task_id': self.task.id}),
            {'assignee_ids': [str(self.other.id)]},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.task.refresh_from_db()
        self.assertEqual(self.task.assigned_to, self.other)
        self.assertFalse(AssignmentResolver.is_assignee(self.task, self.employee))

    def test_assign_endpoint_rejects_empty_list(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse('tasks:task-assign', kwargs={'task_id': self.task.id}),
            {'assignee_ids': []},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(AssignmentResolver.assignee_ids(self.task), [self.employee.id])

    def test_reassign_endpoint_rejects_empty_list(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse('tasks:task-reassign', kwargs={'task_id': self.task.id}),
            {'assignee_ids': []},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(AssignmentResolver.assignee_ids(self.task), [self.employee.id])

    def test_forward_overdue_is_admin_only(self):
        Task.objects.create(
            title='Old plan', status=TaskStatus.PLANNED,
            due_date=datetime(2020, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
        )
        url = reverse('tasks:forward-overdue')

        self.client.force_authenticate(user=self.employee)
        self.assertEqual(self.client.post(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['forwarded_count'], 1)
        self.assertTrue(response.data['data']['success'])

    def test_attachment_upload_endpoint(self):
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(
            reverse('tasks:task-attachments', kwargs={'task_id': self.task.id}),
            {'files': [SimpleUploadedFile('reading.txt', b'42 psi', content_type='text/plain')]},
            format='multipart'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['data']['attachments']), 1)
        self.assertEqual(response.data['data']['errors'], [])

    def test_history_endpoint(self):
        StatusTransitionHandler.transition(self.task, TaskStatus.IN_PROGRESS, self.employee)
        self.client.force_authenticate(user=self.employee)

        response = self.client.get(reverse('tasks:task-history', kwargs={'task_id': self.task.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][0]['action'], 'status_changed')
