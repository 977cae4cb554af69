"""
Reports Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.authentication.models import User
from apps.locations.models import TaskLocationEvent
from apps.tasks.assignments import AssignmentResolver
from apps.tasks.models import Task, TaskStatus
from .exporters.csv_exporter import CSVExporter
from .exporters.pdf_exporter import PDFExporter
from .generators.attendance_reports import AttendanceReportGenerator
from .generators.base import BaseReportGenerator
from .generators.earnings_reports import DailyEarningsGenerator, MonthlyEarningsGenerator
from .registry import ReportCatalog, catalog


def at(day, hour, minute=0):
    return datetime(2025, 3, day, hour, minute, tzinfo=dt_timezone.utc)


def make_user(email, role='employee', name='Field Employee'):
    return User.objects.create_user(email=email, password='test12345', full_name=name, role=role)


class EarningsFixtureMixin:
    """
    Two employees on 2025-03-10: Alice finishes a 2h task alone and shares
    a 30m task with Bob; Bob also has a task paused after 1h. Alice
    finishes a 1h task on 2025-03-11.
    """

    def setUp(self):
        self.admin = make_user('admin@test.com', role='admin', name='Admin User')
        self.alice = make_user('alice@test.com', name='Alice Field')
        self.bob = make_user('bob@test.com', name='Bob Field')

        self.boiler = self.make_task(
            'Boiler service', [self.alice], TaskStatus.COMPLETED, at(10, 9), at(10, 11), '100.00'
        )
        self.meter = self.make_task(
            'Meter swap', [self.alice, self.bob], TaskStatus.COMPLETED, at(10, 10), at(10, 10, 30), '50.00'
        )
        self.pump = self.make_task(
            'Pump check', [self.bob], TaskStatus.PAUSED, at(10, 13), None, '80.00', last_pause_at=at(10, 14)
        )
        self.valve = self.make_task(
            'Valve repair', [self.alice], TaskStatus.COMPLETED, at(11, 9), at(11, 10), '999.00'
        )

    def make_task(self, title, assignees, task_status, started_at, completed_at, price, **extra):
        task = Task.objects.create(
            title=title,
            status=task_status,
            started_at=started_at,
            completed_at=completed_at,
            price=Decimal(price),
            created_by=self.admin,
            **extra
        )
        AssignmentResolver.set_assignees(task, assignees, assigned_by=self.admin)
        return task


class DailyEarningsReportTest(EarningsFixtureMixin, TestCase):
    """Test the daily earnings report."""

    def generate(self, **filters):
        return DailyEarningsGenerator(self.admin, {'date': '2025-03-10', **filters}).generate()

    def test_summary_counts_each_task_once(self):
        summary = self.generate()['data']['summary']

        self.assertEqual(summary['tasks'], 3)
        self.assertEqual(summary['tasks_completed'], 2)
        self.assertEqual(summary['total_earnings'], 150.0)
        self.assertEqual(summary['total_working_hours'], 3.5)
        self.assertEqual(summary['top_performer'], 'Alice Field')

    def test_breakdown_per_employee(self):
        employees = {entry['name']: entry for entry in self.generate()['data']['employees']}

        self.assertEqual(employees['Alice Field']['tasks_completed'], 2)
        self.assertEqual(employees['Alice Field']['hours_worked'], 2.5)
        self.assertEqual(employees['Alice Field']['earnings'], 150.0)
        self.assertEqual(employees['Bob Field']['tasks'], 2)
        self.assertEqual(employees['Bob Field']['tasks_completed'], 1)
        self.assertEqual(employees['Bob Field']['hours_worked'], 1.5)
        self.assertEqual(employees['Bob Field']['earnings'], 50.0)

    def test_rows_carry_date_status_duration_and_earnings(self):
        rows = self.generate()['data']['rows']

        self.assertEqual(len(rows), 4)
        first = rows[0]
        self.assertEqual(first['date'], '2025-03-10')
        self.assertEqual(first['employee'], 'Alice Field')
        self.assertEqual(first['task_title'], 'Boiler service')
        self.assertEqual(first['status'], TaskStatus.COMPLETED)
        self.assertEqual(first['duration'], '2h 0m')
        self.assertEqual(first['earnings'], 100.0)

        paused = [row for row in rows if row['task_title'] == 'Pump check'][0]
        self.assertEqual(paused['earnings'], 0.0)
        self.assertEqual(paused['hours'], 1.0)

    def test_employee_filter(self):
        data = self.generate(employee=str(self.bob.id))['data']

        self.assertEqual({row['employee'] for row in data['rows']}, {'Bob Field'})
        self.assertEqual(len(data['rows']), 2)
        self.assertEqual(data['summary']['total_earnings'], 50.0)

    def test_unknown_employee_is_rejected(self):
        generator = DailyEarningsGenerator(self.admin, {'employee': '00000000-0000-0000-0000-000000000000'})

        with self.assertRaises(ValueError):
            generator.generate()

    def test_bad_date_is_rejected(self):
        with self.assertRaises(ValueError):
            DailyEarningsGenerator(self.admin, {'date': '10/03/2025'})

    def test_defaults_to_today(self):
        generator = DailyEarningsGenerator(self.admin)
        self.assertEqual(generator.filters['date'], timezone.localdate())


class MonthlyEarningsReportTest(EarningsFixtureMixin, TestCase):
    """Test the monthly earnings report."""

    def test_only_completed_tasks_in_month(self):
        data = MonthlyEarningsGenerator(self.admin, {'month': '2025-03'}).generate()['data']

        self.assertEqual(data['period'], 'March 2025')
        self.assertEqual(data['summary']['tasks_completed'], 3)
        self.assertEqual(data['summary']['total_earnings'], 1149.0)
        self.assertNotIn('Pump check', [row['task_title'] for row in data['rows']])

    def test_average_completion_time(self):
        data = MonthlyEarningsGenerator(self.admin, {'month': '2025-03'}).generate()['data']
        alice = [entry for entry in data['employees'] if entry['name'] == 'Alice Field'][0]

        self.assertEqual(alice['tasks_completed'], 3)
        self.assertEqual(alice['earnings'], 1149.0)
        self.assertEqual(alice['average_completion_hours'], 1.17)

    def test_other_month_is_empty(self):
        data = MonthlyEarningsGenerator(self.admin, {'month': '2025-04'}).generate()['data']

        self.assertEqual(data['rows'], [])
        self.assertEqual(data['summary']['total_earnings'], 0.0)
        self.assertIsNone(data['summary']['top_performer'])

    def test_bad_month_is_rejected(self):
        with self.assertRaises(ValueError):
            MonthlyEarningsGenerator(self.admin, {'month': 'March'})


class AttendanceReportTest(TestCase):
    """Test the attendance report."""

    def setUp(self):
        self.admin = make_user('admin@test.com', role='admin', name='Admin User')
        self.employee = make_user('emp@test.com', name='Field Employee')
        self.other = make_user('other@test.com', name='Other Employee')
        now = timezone.now()

        self.site_task = Task.objects.create(
            title='Site visit',
            location_based=True,
            required_latitude=Decimal('40.0'),
            required_longitude=Decimal('-74.0'),
        )
        AssignmentResolver.set_assignees(self.site_task, [self.employee])
        self.first_in = self.event('check_in', now - timedelta(hours=3), '40.0', '-74.0')
        self.event('check_in', now - timedelta(hours=2), '40.0001', '-74.0')
        self.event('check_out', now - timedelta(hours=1, minutes=30), '40.0003', '-74.0')
        self.last_out = self.event('check_out', now - timedelta(hours=1), '40.0005', '-74.0')

        self.desk_task = Task.objects.create(title='Timesheets')
        AssignmentResolver.set_assignees(self.desk_task, [self.employee])

        foreign = Task.objects.create(title='Not mine')
        AssignmentResolver.set_assignees(foreign, [self.other])

    def event(self, event_type, timestamp, latitude, longitude):
        return TaskLocationEvent.objects.create(
            task=self.site_task,
            user=self.employee,
            event_type=event_type,
            latitude=Decimal(latitude),
            longitude=Decimal(longitude),
            timestamp=timestamp,
        )

    def rows_by_title(self, **filters):
        report = AttendanceReportGenerator(self.admin, {'employee': self.employee.id, **filters}).generate()
        return {row['task_title']: row for row in report['data']['rows']}

    def test_first_check_in_and_last_check_out(self):
        row = self.rows_by_title()['Site visit']

        self.assertEqual(row['location_required'], 'yes')
        self.assertEqual(row['check_in_lat'], 40.0)
        self.assertEqual(row['check_in_lng'], -74.0)
        self.assertEqual(row['check_out_lat'], 40.0005)
        self.assertEqual(
            row['check_in_time'],
            timezone.localtime(self.first_in.timestamp).strftime('%Y-%m-%d %H:%M')
        )
        self.assertEqual(
            row['check_out_time'],
            timezone.localtime(self.last_out.timestamp).strftime('%Y-%m-%d %H:%M')
        )

    def test_tasks_without_events_have_blank_columns(self):
        rows = self.rows_by_title()

        self.assertEqual(set(rows), {'Site visit', 'Timesheets'})
        self.assertEqual(rows['Timesheets']['location_required'], 'no')
        self.assertEqual(rows['Timesheets']['check_in_time'], '')
        self.assertEqual(rows['Timesheets']['check_out_lat'], '')

    def test_range_filters_by_creation_date(self):
        rows = self.rows_by_title(start_date='2020-01-01', end_date='2020-01-31')
        self.assertEqual(rows, {})

    def test_employee_is_required(self):
        with self.assertRaises(ValueError):
            AttendanceReportGenerator(self.admin, {})

    def test_export_filename_uses_employee_name(self):
        generator = AttendanceReportGenerator(self.admin, {
            'employee': self.employee.id, 'start_date': '2025-03-01', 'end_date': '2025-03-31'
        })
        generator.generate()

        self.assertEqual(
            generator.export_filename('csv'),
            'Field_Employee_location_attendance_2025-03-01_to_2025-03-31.csv'
        )


class ReportCatalogTest(SimpleTestCase):
    """Test the report catalog."""

    def test_builtin_reports_are_registered(self):
        entries = {entry['report_type']: entry for entry in catalog.describe()}

        self.assertEqual(set(entries), {'daily_earnings', 'monthly_earnings', 'attendance'})
        self.assertEqual(entries['attendance']['formats'], ['json', 'csv', 'pdf'])
        self.assertEqual(entries['daily_earnings']['available_filters'], ['date', 'employee'])

    def test_only_generators_can_register(self):
        with self.assertRaises(ValueError):
            ReportCatalog().add(dict)

    def test_unknown_export_format_is_refused(self):
        class SpreadsheetOnly(DailyEarningsGenerator):
            export_formats = ('json', 'xlsx')

        with self.assertRaises(ValueError):
            ReportCatalog().add(SpreadsheetOnly)

    def test_unknown_type(self):
        self.assertNotIn('missing', catalog)
        with self.assertRaises(KeyError):
            ReportCatalog().generator_class('missing')

    def test_supported_formats_follow_the_generator(self):
        class CsvOnly(DailyEarningsGenerator):
            report_type = 'daily_earnings_csv'
            export_formats = ('csv',)

        local = ReportCatalog()
        local.add(CsvOnly)

        self.assertTrue(local.supports('daily_earnings_csv', 'csv'))
        self.assertFalse(local.supports('daily_earnings_csv', 'pdf'))

    def test_generator_needs_metadata(self):
        class Nameless(BaseReportGenerator):
            def get_queryset(self):
                return []

            def calculate_metrics(self, queryset):
                return {}

        with self.assertRaises(NotImplementedError):
            Nameless(user=None)


class ExporterTest(SimpleTestCase):
    """Test CSV and PDF rendering."""

    def test_csv_has_header_and_blank_missing_values(self):
        response = CSVExporter(['task_title', 'check_in_lat'], [
            {'task_title': 'Site visit', 'check_in_lat': 40.0, 'extra': 'ignored'},
            {'task_title': 'Timesheets'},
        ]).to_response('attendance.csv')

        lines = response.content.decode().splitlines()
        self.assertEqual(lines, ['task_title,check_in_lat', 'Site visit,40.0', 'Timesheets,'])
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="attendance.csv"')

    def test_pdf_template_renders_rows(self):
        html = PDFExporter('reports/table_report.html', {
            'report': {'report_name': 'Location & Attendance Report', 'generated_by': {'name': 'Admin'}},
            'data': {'period': '2025-03-01 to 2025-03-31', 'summary': {'tasks': 1}},
            'columns': ['task_title', 'status'],
            'table': [['Site visit', 'Completed']],
        }).render_html()

        self.assertIn('<td>Site visit</td>', html)
        self.assertIn('2025-03-01 to 2025-03-31', html)
        self.assertIn('@page', html)


class ReportAPITest(EarningsFixtureMixin, APITestCase):
    """Test report endpoints."""

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.admin)
        self.url = reverse('reports:report-generate', kwargs={'report_type': 'daily_earnings'})

    def test_employee_cannot_view_reports(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.get(reverse('reports:report-types'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_report_types(self):
        response = self.client.get(reverse('reports:report-types'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attendance', [entry['report_type'] for entry in response.data['data']])

    def test_unknown_report_type(self):
        response = self.client.get(reverse('reports:report-generate', kwargs={'report_type': 'payroll'}))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_json_report(self):
        response = self.client.get(self.url, {'date': '2025-03-10'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['data']['summary']['total_earnings'], 150.0)
        self.assertEqual(response.data['data']['generated_by']['email'], 'admin@test.com')

    def test_invalid_parameters(self):
        response = self.client.get(self.url, {'date': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_attendance_without_employee(self):
        response = self.client.get(reverse('reports:report-generate', kwargs={'report_type': 'attendance'}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_csv_export(self):
        response = self.client.get(self.url, {'date': '2025-03-10', 'export': 'csv'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('text/csv'))
        self.assertIn('daily_earnings_2025-03-10.csv', response['Content-Disposition'])
        lines = response.content.decode().splitlines()
        self.assertEqual(lines[0], 'date,employee,task_title,status,duration,hours,earnings')
        self.assertEqual(lines[1], '2025-03-10,Alice Field,Boiler service,Completed,2h 0m,2.0,100.0')
        self.assertEqual(len(lines), 5)

    def test_pdf_export(self):
        with mock.patch.object(PDFExporter, 'generate', return_value=b'%PDF-1.7 report') as generate:
            response = self.client.get(self.url, {'date': '2025-03-10', 'export': 'pdf'})

        generate.assert_called_once()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertEqual(response.content, b'%PDF-1.7 report')

    def test_format_not_offered_by_report(self):
        with mock.patch.object(DailyEarningsGenerator, 'export_formats', ('json', 'csv')):
            response = self.client.get(self.url, {'date': '2025-03-10', 'export': 'pdf'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'UNSUPPORTED_FORMAT')

    def test_pdf_failure_returns_error_envelope(self):
        with mock.patch.object(PDFExporter, 'generate', side_effect=OSError('cairo missing')):
            response = self.client.get(self.url, {'date': '2025-03-10', 'export': 'pdf'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error']['code'], 'EXPORT_FAILED')
