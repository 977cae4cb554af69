"""
Core Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from types import SimpleNamespace
from unittest import mock

from django.db import DatabaseError, IntegrityError
from django.test import RequestFactory, SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from .exceptions import (
    InvalidTransitionError, NotAssigneeError, custom_exception_handler, friendly_database_message
)
from .permissions import has_role


class ExceptionHandlerTest(SimpleTestCase):
    """Test the API error envelope."""

    def setUp(self):
        self.context = {'request': RequestFactory().get('/api/v1/tasks/transition/')}

    def test_application_error_keeps_its_status_and_code(self):
        response = custom_exception_handler(NotAssigneeError(), self.context)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')
        self.assertEqual(response.data['meta']['path'], '/api/v1/tasks/transition/')

    def test_transition_conflict(self):
        response = custom_exception_handler(
            InvalidTransitionError(details={'from': 'Completed', 'to': 'Paused'}), self.context
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['details'], {'from': 'Completed', 'to': 'Paused'})

    def test_missing_table_suggests_migrations(self):
        response = custom_exception_handler(DatabaseError('relation "tasks" does not exist'), self.context)

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error']['code'], 'DATABASE_ERROR')
        self.assertIn('run migrations', response.data['error']['message'])

    def test_validation_error_uses_first_field_message(self):
        response = custom_exception_handler(
            ValidationError({'title': ['This field is required.']}), self.context
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')
        self.assertEqual(response.data['error']['message'], 'title: This field is required.')

    def test_unhandled_errors_fall_through(self):
        self.assertIsNone(custom_exception_handler(ValueError('boom'), self.context))


class DatabaseMessageTest(SimpleTestCase):

    def test_known_fragments(self):
        self.assertEqual(
            friendly_database_message(IntegrityError('UNIQUE constraint failed: jobs.job_number')),
            'A record with these values already exists'
        )
        self.assertEqual(
            friendly_database_message(DatabaseError('no such table: task_proofs')),
            'Database schema is out of date, please run migrations'
        )

    def test_unknown_message_passes_through(self):
        self.assertEqual(friendly_database_message(DatabaseError('disk full')), 'disk full')
        self.assertEqual(friendly_database_message(DatabaseError()), 'Database error')


class RoleTest(SimpleTestCase):

    def test_roles(self):
        admin = SimpleNamespace(is_authenticated=True, role='admin')
        employee = SimpleNamespace(is_authenticated=True, role='employee')
        anonymous = SimpleNamespace(is_authenticated=False, role=None)

        self.assertTrue(has_role(admin, 'admin'))
        self.assertFalse(has_role(employee, 'admin'))
        self.assertTrue(has_role(employee, 'admin', 'employee'))
        self.assertFalse(has_role(anonymous, 'admin', 'employee'))
        self.assertFalse(has_role(None, 'admin'))


class HealthCheckTest(APITestCase):

    def test_healthy(self):
        response = self.client.get(reverse('core:health_check'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['database'], 'connected')
        self.assertEqual(response.data['data']['realtime'], 'connected')

    def test_unreachable_broker(self):
        with mock.patch('apps.core.views.check_realtime', side_effect=ConnectionError('redis down')):
            response = self.client.get(reverse('core:health_check'))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error']['code'], 'UNHEALTHY')
