"""
Authentication Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.core.exceptions import LoginPinError, BusinessValidationError
from apps.realtime.brokers import InProcessBroker
from .models import User, DeletedUser, LoginPin
from .services import LoginPinService, UserArchiveService, login_pin_channel


class DecidingSubscription:
    """Subscription stub whose first read records an admin decision."""

    def __init__(self, pin, admin):
        self.pin = pin
        self.admin = admin

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def get(self, timeout=None):
        LoginPinService.approve(self.pin, self.admin)
        return {'id': str(self.pin.id), 'status': 'approved'}


class DecidingBroker:
    def __init__(self, pin, admin):
        self.subscription = DecidingSubscription(pin, admin)

    def subscribe(self, channel):
        return self.subscription


class LoginPinServiceTest(TestCase):
    """Test login PIN issuance and decisions."""

    def setUp(self):
        """Set up test data."""
        self.admin = User.objects.create_user(
            email='admin@test.com',
            password='test12345',
            full_name='Admin User',
            role='admin'
        )
        self.employee = User.objects.create_user(
            email='emp@test.com',
            password='test12345',
            full_name='Field Employee',
            role='employee'
        )
        self.now = timezone.now()

    def test_code_is_six_digits(self):
        for _ in range(50):
            code = LoginPinService.generate_code()
            self.assertEqual(len(code), 6)
            self.assertTrue(code.isdigit())
            self.assertNotEqual(code[0], '0')

    def test_create_pin_sets_thirty_second_lifetime(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)

        self.assertEqual(pin.status, 'pending')
        self.assertEqual(pin.expires_at - pin.created_at, timedelta(seconds=30))

    def test_create_pin_expires_stale_pending_pins(self):
        old = LoginPinService.create_pin(self.employee, now=self.now - timedelta(minutes=5))

        LoginPinService.create_pin(self.employee, now=self.now)

        old.refresh_from_db()
        self.assertEqual(old.status, 'expired')

    def test_approve_marks_user_verified(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)

        LoginPinService.approve(pin, self.admin, now=self.now + timedelta(seconds=5))

        pin.refresh_from_db()
        self.employee.refresh_from_db()
        self.assertEqual(pin.status, 'approved')
        self.assertEqual(pin.approved_by, self.admin)
        self.assertIsNotNone(pin.approved_at)
        self.assertTrue(self.employee.is_login_verified)
        self.assertFalse(self.employee.requires_login_pin)

    def test_reject_records_decision(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)

        LoginPinService.reject(pin, self.admin, now=self.now + timedelta(seconds=5))

        pin.refresh_from_db()
        self.employee.refresh_from_db()
        self.assertEqual(pin.status, 'rejected')
        self.assertEqual(pin.approved_by, self.admin)
        self.assertFalse(self.employee.is_login_verified)

    def test_decision_after_expiry_is_refused(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)

        with self.assertRaises(LoginPinError):
            LoginPinService.approve(pin, self.admin, now=self.now + timedelta(seconds=31))

        pin.refresh_from_db()
        self.assertEqual(pin.status, 'expired')

    def test_second_decision_is_refused(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)
        LoginPinService.reject(pin, self.admin, now=self.now)

        with self.assertRaises(LoginPinError):
            LoginPinService.approve(pin, self.admin, now=self.now)

    def test_approved_pin_is_redeemed_once(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)
        LoginPinService.approve(pin, self.admin, now=self.now + timedelta(seconds=5))

        LoginPinService.redeem(pin, now=self.now + timedelta(seconds=10))
        self.assertEqual(pin.redeemed_at, self.now + timedelta(seconds=10))

        with self.assertRaises(LoginPinError) as raised:
            LoginPinService.redeem(pin, now=self.now + timedelta(seconds=20))
        self.assertEqual(raised.exception.code, 'LOGIN_PIN_USED')

    def test_redeem_after_window_is_refused(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)
        LoginPinService.approve(pin, self.admin, now=self.now)

        with self.assertRaises(LoginPinError) as raised:
            LoginPinService.redeem(pin, now=self.now + timedelta(days=7))

        self.assertEqual(raised.exception.code, 'LOGIN_PIN_LAPSED')
        pin.refresh_from_db()
        self.assertIsNone(pin.redeemed_at)

    def test_unapproved_pin_cannot_be_redeemed(self):
        pin = LoginPinService.create_pin(self.employee, now=self.now)

        with self.assertRaises(LoginPinError):
            LoginPinService.redeem(pin, now=self.now)

    def test_latest_pin_for_user(self):
        LoginPinService.create_pin(self.employee, now=self.now - timedelta(seconds=10))
        newest = LoginPinService.create_pin(self.employee, now=self.now)

        self.assertEqual(LoginPinService.get_latest_for_user(self.employee), newest)
        self.assertIsNone(LoginPinService.get_latest_for_user(self.admin))

    def test_wait_times_out_and_expires_pin(self):
        pin = LoginPinService.create_pin(self.employee)

        result = LoginPinService.wait_for_decision(pin, timeout=0, broker=InProcessBroker())

        self.assertEqual(result, 'expired')
        pin.refresh_from_db()
        self.assertEqual(pin.status, 'expired')

    def test_wait_returns_when_admin_approves(self):
        pin = LoginPinService.create_pin(self.employee)

        result = LoginPinService.wait_for_decision(pin, timeout=5, broker=DecidingBroker(pin, self.admin))

        self.assertEqual(result, 'approved')

    def test_wait_returns_existing_decision(self):
        pin = LoginPinService.create_pin(self.employee)
        LoginPinService.reject(pin, self.admin)

        result = LoginPinService.wait_for_decision(pin, timeout=5, broker=InProcessBroker())

        self.assertEqual(result, 'rejected')

    def test_channel_name(self):
        pin = LoginPinService.create_pin(self.employee)
        self.assertEqual(login_pin_channel(pin.id), f"login_pin:{pin.id}")


class UserArchiveServiceTest(TestCase):
    """Test moving users into the archive."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@test.com',
            password='test12345',
            full_name='Admin User',
            role='admin'
        )
        self.employee = User.objects.create_user(
            email='emp@test.com',
            password='test12345',
            full_name='Field Employee',
            skills=['wiring', 'plumbing']
        )

    def test_archive_moves_user(self):
        user_id = self.employee.id

        archived = UserArchiveService.archive(self.employee, self.admin, 'Left the company')

        self.assertFalse(User.objects.filter(pk=user_id).exists())
        self.assertEqual(archived.id, user_id)
        self.assertEqual(archived.email, 'emp@test.com')
        self.assertEqual(archived.skills, ['wiring', 'plumbing'])
        self.assertEqual(archived.deletion_reason, 'Left the company')
        self.assertEqual(archived.deleted_by, self.admin)

    def test_archive_requires_reason(self):
        with self.assertRaises(BusinessValidationError):
            UserArchiveService.archive(self.employee, self.admin, '   ')

        self.assertTrue(User.objects.filter(pk=self.employee.pk).exists())
        self.assertFalse(DeletedUser.objects.exists())

    def test_cannot_archive_self(self):
        with self.assertRaises(BusinessValidationError):
            UserArchiveService.archive(self.admin, self.admin, 'Oops')


class AuthenticationAPITest(APITestCase):
    """Test the login and employee endpoints."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@test.com',
            password='test12345',
            full_name='Admin User',
            role='admin'
        )
        self.employee = User.objects.create_user(
            email='emp@test.com',
            password='test12345',
            full_name='Field Employee'
        )

    def test_admin_login_returns_tokens(self):
        response = self.client.post(reverse('login'), {
            'email': 'admin@test.com',
            'password': 'test12345'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['data']['tokens'])

    def test_invalid_password_rejected(self):
        response = self.client.post(reverse('login'), {
            'email': 'admin@test.com',
            'password': 'wrong-password'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_unverified_employee_receives_pin(self):
        response = self.client.post(reverse('login'), {
            'email': 'emp@test.com',
            'password': 'test12345'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data['data']['status'], 'pending_approval')
        self.assertNotIn('tokens', response.data['data'])
        self.assertEqual(LoginPin.objects.filter(user=self.employee, status='pending').count(), 1)

    def test_pin_flow_issues_tokens_after_approval(self):
        response = self.client.post(reverse('login'), {
            'email': 'emp@test.com',
            'password': 'test12345'
        }, format='json')
        pin_data = response.data['data']['pin']

        self.client.force_authenticate(user=self.admin)
        approve = self.client.post(reverse('approve_login_pin', kwargs={'pin_id': pin_data['id']}))
        self.assertEqual(approve.status_code, status.HTTP_200_OK)
        self.client.force_authenticate(user=None)

        poll = self.client.post(reverse('login_pin_status'), {
            'pin_id': pin_data['id'],
            'code': pin_data['code']
        }, format='json')

        self.assertEqual(poll.status_code, status.HTTP_200_OK)
        self.assertEqual(poll.data['data']['status'], 'approved')
        self.assertIn('refresh', poll.data['data']['tokens'])

        again = self.client.post(reverse('login_pin_status'), {
            'pin_id': pin_data['id'],
            'code': pin_data['code']
        }, format='json')

        self.assertEqual(again.status_code, status.HTTP_410_GONE)
        self.assertEqual(again.data['error']['code'], 'LOGIN_PIN_USED')
        self.assertNotIn('data', again.data)

    def test_pin_status_with_wrong_code(self):
        pin = LoginPinService.create_pin(self.employee)
        wrong = '000000' if pin.code != '000000' else '111111'

        response = self.client.post(reverse('login_pin_status'), {
            'pin_id': str(pin.id),
            'code': wrong
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_employee_cannot_approve_pins(self):
        pin = LoginPinService.create_pin(self.employee)
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(reverse('approve_login_pin', kwargs={'pin_id': pin.id}))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_employee(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('employee_list_create'), {
            'email': 'New.Hire@Test.com',
            'password': 'Sup3rSecret!pw',
            'full_name': 'New Hire',
            'skills': 'hvac, electrical, hvac'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='new.hire@test.com')
        self.assertEqual(user.role, 'employee')
        self.assertEqual(user.skills, ['hvac', 'electrical'])

    def test_delete_requires_reason(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(
            reverse('employee_detail', kwargs={'user_id': self.employee.id}),
            {},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(User.objects.filter(pk=self.employee.pk).exists())

    def test_delete_archives_user(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(
            reverse('employee_detail', kwargs={'user_id': self.employee.id}),
            {'deletion_reason': 'Contract ended'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.employee.pk).exists())

        archived = self.client.get(reverse('archived_users'))
        self.assertEqual(archived.data['count'], 1)
        self.assertEqual(archived.data['results'][0]['deletion_reason'], 'Contract ended')
