"""
Attendance Report Generator

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.utils import timezone

from apps.locations.services import LocationService
from apps.tasks.assignments import AssignmentResolver
from apps.tasks.models import Task
from apps.reports.generators.base import BaseReportGenerator
from apps.reports.registry import register_report


def local_timestamp(value):
    if value is None:
        return ''
    return timezone.localtime(value).strftime('%Y-%m-%d %H:%M')


def coordinate(event, field):
    if event is None or getattr(event, field) is None:
        return ''
    return float(getattr(event, field))


@register_report
class AttendanceReportGenerator(BaseReportGenerator):
    """
    One employee's tasks in a date range with the first check-in and the
    last check-out recorded on each.
    """

    report_type = 'attendance'
    report_name = 'Location & Attendance Report'
    available_filters = ['employee', 'start_date', 'end_date']
    export_columns = [
        'task_title', 'status', 'due_date', 'location_required',
        'check_in_time', 'check_out_time',
        'check_in_lat', 'check_in_lng', 'check_out_lat', 'check_out_lng',
    ]

    def validate_filters(self):
        super().validate_filters()

        if not self.filters.get('employee'):
            raise ValueError("employee is required for the attendance report")

        today = timezone.localdate()
        if not self.filters.get('end_date'):
            self.filters['end_date'] = today
        if not self.filters.get('start_date'):
            self.filters['start_date'] = self.filters['end_date'].replace(day=1)
        if self.filters['start_date'] > self.filters['end_date']:
            raise ValueError("start_date must be before end_date")

    def get_queryset(self):
        self.employee = self.get_employee()
        start, end = self.date_window(self.filters['start_date'], self.filters['end_date'])

        return Task.objects.filter(
            AssignmentResolver.assignee_filter(self.employee),
            created_at__gte=start,
            created_at__lt=end,
        ).distinct().order_by('created_at')

    def calculate_metrics(self, queryset):
        rows = []
        checked_in = 0

        for task in queryset:
            check_in, check_out = LocationService.attendance_for(task, self.employee)
            if check_in is not None:
                checked_in += 1

            rows.append({
                'task_title': task.title,
                'status': task.status,
                'due_date': local_timestamp(task.due_date),
                'location_required': 'yes' if task.location_based else 'no',
                'check_in_time': local_timestamp(check_in.timestamp if check_in else None),
                'check_out_time': local_timestamp(check_out.timestamp if check_out else None),
                'check_in_lat': coordinate(check_in, 'latitude'),
                'check_in_lng': coordinate(check_in, 'longitude'),
                'check_out_lat': coordinate(check_out, 'latitude'),
                'check_out_lng': coordinate(check_out, 'longitude'),
            })

        return {
            'period': f"{self.filters['start_date']:%Y-%m-%d} to {self.filters['end_date']:%Y-%m-%d}",
            'employee': {
                'id': str(self.employee.id),
                'name': self.employee.full_name,
                'email': self.employee.email,
            },
            'summary': {
                'tasks': len(rows),
                'tasks_checked_in': checked_in,
                'location_tasks': sum(1 for row in rows if row['location_required'] == 'yes'),
            },
            'rows': rows,
        }

    def export_filename(self, extension):
        name = '_'.join(self.employee.full_name.split()) if getattr(self, 'employee', None) else 'employee'
        return (
            f"{name}_location_attendance_"
            f"{self.filters['start_date']:%Y-%m-%d}_to_{self.filters['end_date']:%Y-%m-%d}.{extension}"
        )
