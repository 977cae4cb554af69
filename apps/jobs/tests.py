"""
Jobs Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.authentication.models import User
from .models import Job, JobMaterial, compose_job_number


def make_job(**kwargs):
    defaults = {
        'customer_name': 'Acme Builders',
        'start_date': date(2025, 3, 1),
        'completion_date': date(2025, 3, 20),
    }
    defaults.update(kwargs)
    return Job.objects.create(**defaults)


class JobNumberTest(TestCase):
    """Test job number allocation."""

    def test_first_number(self):
        self.assertEqual(Job.generate_next_number(), 'JOB-001')

    def test_auto_number_follows_highest_suffix(self):
        make_job(job_number='JOB-007')
        make_job(job_number='DA-050')

        job = make_job()

        self.assertEqual(job.job_number, 'JOB-008')

    def test_compose_pads_digits(self):
        self.assertEqual(compose_job_number('DA', '7'), 'DA-007')
        self.assertEqual(compose_job_number('TB', 'no. 0012'), 'TB-012')
        self.assertEqual(compose_job_number('AL', '1234'), 'AL-1234')

    def test_compose_requires_digits(self):
        with self.assertRaises(ValidationError):
            compose_job_number('AL', 'abc')

    def test_compose_rejects_unknown_category(self):
        with self.assertRaises(ValidationError):
            compose_job_number('XX', '5')

    def test_completion_before_start_rejected(self):
        with self.assertRaises(ValidationError):
            make_job(start_date=date(2025, 3, 10), completion_date=date(2025, 3, 1))


class JobMaterialTest(TestCase):
    def test_amount_is_quantity_times_rate(self):
        job = make_job()
        material = JobMaterial.objects.create(
            job=job,
            name='Copper cable',
            date=date(2025, 3, 2),
            quantity=Decimal('2.50'),
            rate=Decimal('40.00')
        )

        self.assertEqual(material.amount, Decimal('100.00'))

        material.quantity = Decimal('3')
        material.save()
        self.assertEqual(material.amount, Decimal('120.00'))
        self.assertEqual(job.materials_total, Decimal('120.00'))


class JobAPITest(APITestCase):
    """Test job endpoints."""

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
        self.client.force_authenticate(user=self.admin)

    def test_create_with_category_and_manual_id(self):
        response = self.client.post(reverse('jobs:job_list_create'), {
            'customer_name': 'Harbor Hotel',
            'category': 'TB',
            'manual_id': '42',
            'start_date': '2025-04-01',
            'completion_date': '2025-04-15'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['job_number'], 'TB-042')
        self.assertEqual(response.data['data']['created_by']['id'], str(self.admin.id))

    def test_create_without_number_gets_auto_number(self):
        response = self.client.post(reverse('jobs:job_list_create'), {
            'customer_name': 'Harbor Hotel',
            'start_date': '2025-04-01',
            'completion_date': '2025-04-15'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['job_number'], 'JOB-001')

    def test_duplicate_number_rejected(self):
        make_job(job_number='DA-001')

        response = self.client.post(reverse('jobs:job_list_create'), {
            'customer_name': 'Harbor Hotel',
            'category': 'DA',
            'manual_id': '1',
            'start_date': '2025-04-01',
            'completion_date': '2025-04-15'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        make_job(customer_name='Acme Builders', status='active', start_date=date(2025, 1, 5), completion_date=date(2025, 1, 9))
        make_job(customer_name='Blue Lagoon', status='on_hold', start_date=date(2025, 2, 5), completion_date=date(2025, 2, 9))
        make_job(customer_name='Acme Retail', status='completed', start_date=date(2025, 3, 5), completion_date=date(2025, 3, 9))

        response = self.client.get(reverse('jobs:job_list_create'), {'customer_name': 'acme'})
        self.assertEqual(response.data['count'], 2)

        response = self.client.get(reverse('jobs:job_list_create'), {'status': 'on_hold'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(reverse('jobs:job_list_create'), {
            'date_from': '2025-02-01',
            'date_to': '2025-02-28'
        })
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['customer_name'], 'Blue Lagoon')

    def test_employee_can_read_but_not_write(self):
        job = make_job()
        self.client.force_authenticate(user=self.employee)

        response = self.client.get(reverse('jobs:job_detail', kwargs={'job_id': job.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.patch(
            reverse('jobs:job_detail', kwargs={'job_id': job.id}),
            {'status': 'completed'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_material(self):
        job = make_job()

        response = self.client.post(reverse('jobs:job_materials', kwargs={'job_id': job.id}), {
            'name': 'PVC pipe',
            'date': '2025-03-03',
            'quantity': '4',
            'rate': '12.25'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['amount'], '49.00')
