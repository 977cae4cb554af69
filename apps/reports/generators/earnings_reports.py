"""
Earnings Report Generators

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.utils import timezone

from apps.tasks.assignments import AssignmentResolver
from apps.tasks.durations import format_duration
from apps.tasks.lifecycle import effective_elapsed
from apps.tasks.models import Task, TaskStatus
from apps.reports.generators.base import BaseReportGenerator
from apps.reports.registry import register_report

UNASSIGNED = 'Unassigned'


def hours(delta):
    return round(delta.total_seconds() / 3600, 2)


class EarningsReportGenerator(BaseReportGenerator):
    """
    Shared logic for earnings reports.

    A completed task earns its ``price`` for each of its assignees; other
    tasks contribute worked time but no earnings. Totals count each task
    once however many assignees it has.
    """

    template_name = 'reports/earnings_report.html'
    date_field = None
    completed_only = False
    export_columns = ['date', 'employee', 'task_title', 'status', 'duration', 'hours', 'earnings']

    def window(self):
        raise NotImplementedError

    def period_label(self):
        raise NotImplementedError

    def get_queryset(self):
        start, end = self.window()
        queryset = Task.objects.select_related('assigned_to').filter(**{
            f'{self.date_field}__gte': start,
            f'{self.date_field}__lt': end,
        })
        if self.completed_only:
            queryset = queryset.filter(status=TaskStatus.COMPLETED)

        employee = self.get_employee()
        if employee is not None:
            queryset = queryset.filter(AssignmentResolver.assignee_filter(employee)).distinct()

        return queryset.order_by(self.date_field, 'title')

    def earners(self, task):
        assignees = AssignmentResolver.assignees_for(task)
        employee_id = self.get_filter_value('employee')
        if employee_id:
            return [user for user in assignees if user.id == employee_id]
        return assignees or [None]

    def calculate_metrics(self, queryset):
        employees = {}
        rows = []
        total_earnings = Decimal('0')
        total_worked = timedelta(0)
        tasks_completed = 0
        now = timezone.now()

        for task in queryset:
            completed = task.status == TaskStatus.COMPLETED
            earnings = (task.price or Decimal('0')) if completed else Decimal('0')
            worked = effective_elapsed(task, now)

            total_worked += worked
            if completed:
                tasks_completed += 1
                total_earnings += earnings

            for user in self.earners(task):
                key = str(user.id) if user else UNASSIGNED
                stats = employees.setdefault(key, {
                    'id': str(user.id) if user else None,
                    'name': user.full_name if user else UNASSIGNED,
                    'email': user.email if user else '',
                    'tasks': 0,
                    'tasks_completed': 0,
                    'worked': timedelta(0),
                    'completion_time': timedelta(0),
                    'earnings': Decimal('0'),
                })
                stats['tasks'] += 1
                stats['worked'] += worked
                stats['earnings'] += earnings
                if completed:
                    stats['tasks_completed'] += 1
                    stats['completion_time'] += worked

                rows.append({
                    'date': timezone.localdate(getattr(task, self.date_field)),
                    'employee': stats['name'],
                    'task_id': str(task.id),
                    'task_title': task.title,
                    'status': task.status,
                    'duration': format_duration(worked),
                    'hours': hours(worked),
                    'earnings': earnings,
                })

        breakdown = []
        for stats in sorted(employees.values(), key=lambda s: s['name']):
            completed_count = stats['tasks_completed']
            breakdown.append({
                'id': stats['id'],
                'name': stats['name'],
                'email': stats['email'],
                'tasks': stats['tasks'],
                'tasks_completed': completed_count,
                'hours_worked': hours(stats['worked']),
                'average_completion_hours': (
                    hours(stats['completion_time'] / completed_count) if completed_count else 0
                ),
                'earnings': stats['earnings'],
            })

        return {
            'period': self.period_label(),
            'summary': {
                'tasks': queryset.count(),
                'tasks_completed': tasks_completed,
                'total_working_hours': hours(total_worked),
                'total_earnings': total_earnings,
                'top_performer': self.top_performer(breakdown),
            },
            'employees': breakdown,
            'rows': rows,
        }

    @staticmethod
    def top_performer(breakdown):
        ranked = [entry for entry in breakdown if entry['tasks_completed']]
        if not ranked:
            return None
        best = max(ranked, key=lambda entry: (entry['tasks_completed'], entry['earnings']))
        return best['name']


@register_report
class DailyEarningsGenerator(EarningsReportGenerator):
    """
    Tasks started on one day with worked time and earnings per employee.
    """

    report_type = 'daily_earnings'
    report_name = 'Daily Earnings Report'
    date_field = 'started_at'
    available_filters = ['date', 'employee']

    def validate_filters(self):
        super().validate_filters()
        if not self.filters.get('date'):
            self.filters['date'] = timezone.localdate()

    def window(self):
        day = self.filters['date']
        return self.date_window(day, day)

    def period_label(self):
        return self.filters['date'].strftime('%B %d, %Y')

    def export_filename(self, extension):
        return f"daily_earnings_{self.filters['date'].isoformat()}.{extension}"


@register_report
class MonthlyEarningsGenerator(EarningsReportGenerator):
    """
    Tasks completed during a calendar month with earnings per employee.
    """

    report_type = 'monthly_earnings'
    report_name = 'Monthly Earnings Report'
    date_field = 'completed_at'
    completed_only = True
    available_filters = ['month', 'employee']

    def validate_filters(self):
        super().validate_filters()
        month = self.filters.get('month')
        if not month:
            today = timezone.localdate()
            self.filters['month'] = date(today.year, today.month, 1)
        elif isinstance(month, str):
            try:
                self.filters['month'] = datetime.strptime(month, '%Y-%m').date()
            except ValueError:
                raise ValueError(f"Invalid month format: {month}. Use YYYY-MM")

    def window(self):
        first = self.filters['month'].replace(day=1)
        following = (first + timedelta(days=32)).replace(day=1)
        return self.day_start(first), self.day_start(following)

    def period_label(self):
        return self.filters['month'].strftime('%B %Y')

    def export_filename(self, extension):
        return f"monthly_earnings_{self.filters['month'].strftime('%Y-%m')}.{extension}"
