"""
Locations Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.authentication.models import User
from apps.core.exceptions import BusinessValidationError, NotAssigneeError
from apps.tasks.assignments import AssignmentResolver
from apps.tasks.models import Task, TaskHistory, TaskStatus
from .models import Geofence, TaskLocation, TaskLocationEvent
from .services import LocationService, haversine_distance, is_within_radius


T0 = datetime(2025, 3, 10, 8, 0, tzinfo=dt_timezone.utc)

SITE = (40.0, -74.0)
NEARBY = (40.0005, -74.0)      # about 55 m north
FAR_AWAY = (40.01, -74.0)      # about 1.1 km north


class HaversineTest(SimpleTestCase):
    """Test great-circle distance helpers."""

    def test_one_degree_of_longitude_at_equator(self):
        self.assertAlmostEqual(haversine_distance(0, 0, 0, 1), 111195, delta=1)

    def test_same_point_is_zero(self):
        self.assertEqual(haversine_distance(*SITE, *SITE), 0)

    def test_within_radius(self):
        self.assertTrue(is_within_radius(*NEARBY, *SITE, 100))
        self.assertFalse(is_within_radius(*NEARBY, *SITE, 40))
        self.assertFalse(is_within_radius(*FAR_AWAY, *SITE, 100))


class LocationServiceTest(TestCase):
    """Test check-in and check-out against task locations."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@test.com', password='test12345', full_name='Admin User', role='admin'
        )
        self.employee = User.objects.create_user(
            email='emp@test.com', password='test12345', full_name='Field Employee', role='employee'
        )
        self.outsider = User.objects.create_user(
            email='out@test.com', password='test12345', full_name='Not Assigned', role='employee'
        )
        self.geofence = Geofence.objects.create(
            name='Pump Station 4',
            center_latitude=Decimal('40.0'),
            center_longitude=Decimal('-74.0'),
            radius_meters=100,
            created_by=self.admin
        )
        self.task = Task.objects.create(title='Service pump', location_based=True, created_by=self.admin)
        TaskLocation.objects.create(task=self.task, geofence=self.geofence)
        AssignmentResolver.set_assignees(self.task, [self.employee])

    def test_task_location_needs_geofence_or_point(self):
        with self.assertRaises(ValidationError):
            TaskLocation.objects.create(task=self.task)

    def test_check_in_inside_geofence(self):
        event = LocationService.check_in(self.task, self.employee, *NEARBY, now=T0)

        self.assertEqual(event.event_type, 'check_in')
        self.assertEqual(event.geofence, self.geofence)
        self.assertLess(event.distance_meters, 100)
        self.assertTrue(TaskHistory.objects.filter(task=self.task, action='checked_in').exists())

    def test_check_in_outside_geofence_is_refused_and_recorded(self):
        with self.assertRaises(BusinessValidationError) as ctx:
            LocationService.check_in(self.task, self.employee, *FAR_AWAY, now=T0)

        self.assertEqual(ctx.exception.code, 'OUTSIDE_GEOFENCE')
        self.assertEqual(ctx.exception.details['radius_meters'], 100)
        events = TaskLocationEvent.objects.filter(task=self.task)
        self.assertEqual([e.event_type for e in events], ['boundary_violation'])

    def test_non_location_task_accepts_any_position(self):
        task = Task.objects.create(title='Office paperwork')
        AssignmentResolver.set_assignees(task, [self.employee])

        event = LocationService.check_in(task, self.employee, *FAR_AWAY, now=T0)

        self.assertEqual(event.event_type, 'check_in')
        self.assertIsNone(event.distance_meters)

    def test_task_level_point_is_a_target(self):
        task = Task.objects.create(
            title='Meter reading',
            location_based=True,
            required_latitude=Decimal('40.01'),
            required_longitude=Decimal('-74.0'),
            required_radius_meters=50
        )
        AssignmentResolver.set_assignees(task, [self.employee])

        event = LocationService.check_in(task, self.employee, *FAR_AWAY, now=T0)
        self.assertEqual(event.event_type, 'check_in')

    def test_outsider_cannot_check_in(self):
        with self.assertRaises(NotAssigneeError):
            LocationService.check_in(self.task, self.outsider, *NEARBY, now=T0)
        self.assertFalse(TaskLocationEvent.objects.exists())

    def test_auto_check_in_starts_the_task(self):
        Task.objects.filter(pk=self.task.pk).update(auto_check_in=True, auto_check_out=True)
        self.task.refresh_from_db()

        LocationService.check_in(self.task, self.employee, *NEARBY, now=T0)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.IN_PROGRESS)
        self.assertEqual(self.task.started_at, T0)

        LocationService.check_out(self.task, self.employee, *NEARBY, now=T0 + timedelta(hours=1))
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.PAUSED)

    def test_departure_check_only_when_required(self):
        LocationService.check_out(self.task, self.employee, *FAR_AWAY, now=T0)

        TaskLocation.objects.filter(task=self.task).update(departure_required=True)
        with self.assertRaises(BusinessValidationError):
            LocationService.check_out(self.task, self.employee, *FAR_AWAY, now=T0)

    def test_attendance_uses_first_check_in_and_last_check_out(self):
        LocationService.check_in(self.task, self.employee, *NEARBY, now=T0)
        LocationService.check_in(self.task, self.employee, *NEARBY, now=T0 + timedelta(hours=2))
        LocationService.check_out(self.task, self.employee, *NEARBY, now=T0 + timedelta(hours=1))
        LocationService.check_out(self.task, self.employee, *NEARBY, now=T0 + timedelta(hours=3))

        check_in, check_out = LocationService.attendance_for(self.task, self.employee)

        self.assertEqual(check_in.timestamp, T0)
        self.assertEqual(check_out.timestamp, T0 + timedelta(hours=3))


class LocationAPITest(APITestCase):
    """Test geofence and check-in endpoints."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@test.com', password='test12345', full_name='Admin User', role='admin'
        )
        self.employee = User.objects.create_user(
            email='emp@test.com', password='test12345', full_name='Field Employee', role='employee'
        )
        self.task = Task.objects.create(
            title='Check transformer',
            location_based=True,
            required_latitude=Decimal('40.0'),
            required_longitude=Decimal('-74.0'),
            required_radius_meters=100
        )
        AssignmentResolver.set_assignees(self.task, [self.employee])

    def test_admin_creates_geofence(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('locations:geofence_list_create'), {
            'name': 'Depot',
            'center_latitude': '40.00000000',
            'center_longitude': '-74.00000000',
            'radius_meters': 150,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Geofence.objects.get().created_by, self.admin)

    def test_employee_cannot_create_geofence(self):
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(reverse('locations:geofence_list_create'), {
            'name': 'Depot', 'center_latitude': '40.0', 'center_longitude': '-74.0',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_geofence_check(self):
        geofence = Geofence.objects.create(
            name='Depot', center_latitude=Decimal('40.0'), center_longitude=Decimal('-74.0'), radius_meters=100
        )
        self.client.force_authenticate(user=self.employee)

        url = reverse('locations:geofence_check', kwargs={'geofence_id': geofence.id})
        response = self.client.get(url, {'latitude': NEARBY[0], 'longitude': NEARBY[1]})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['within'])

    def test_check_in_endpoint(self):
        self.client.force_authenticate(user=self.employee)
        url = reverse('locations:task_check_in', kwargs={'task_id': self.task.id})

        response = self.client.post(url, {'latitude': FAR_AWAY[0], 'longitude': FAR_AWAY[1]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'OUTSIDE_GEOFENCE')

        response = self.client.post(url, {'latitude': NEARBY[0], 'longitude': NEARBY[1]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['event']['event_type'], 'check_in')

    def test_events_endpoint(self):
        LocationService.check_in(self.task, self.employee, *NEARBY, now=T0)
        self.client.force_authenticate(user=self.employee)

        response = self.client.get(reverse('locations:task_location_events', kwargs={'task_id': self.task.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
