"""
Base Report Generator

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.utils import timezone

from apps.authentication.models import User

logger = logging.getLogger(__name__)


class BaseReportGenerator(ABC):
    """
    Abstract base class for all report generators.

    Subclasses set ``report_type``/``report_name``, fetch their rows in
    ``get_queryset`` and shape them in ``calculate_metrics``. Tabular
    exports (CSV and PDF) read ``export_columns`` from the rows returned
    by ``export_rows``.
    """

    report_type: str = None
    report_name: str = None
    template_name: str = 'reports/table_report.html'
    available_filters = []
    export_columns = []
    export_formats = ('json', 'csv', 'pdf')

    def __init__(self, user, filters=None):
        if not self.report_type or not self.report_name:
            raise NotImplementedError("Subclasses must define report_type and report_name")

        self.user = user
        self.filters = dict(filters or {})
        self.validate_filters()

    def validate_filters(self):
        """
        Parse date filters in place. Override to add report-specific rules.

        Raises:
            ValueError: For malformed values or an inverted date range
        """
        for key in ('date', 'start_date', 'end_date'):
            if self.filters.get(key):
                self.filters[key] = self._parse_date(self.filters[key])

        start, end = self.filters.get('start_date'), self.filters.get('end_date')
        if start and end and start > end:
            raise ValueError("start_date must be before end_date")

        if self.filters.get('employee'):
            self.filters['employee'] = self._parse_uuid(self.filters['employee'], 'employee')

    def _parse_date(self, date_value):
        if isinstance(date_value, datetime):
            return date_value.date()
        if isinstance(date_value, date):
            return date_value
        if isinstance(date_value, str):
            try:
                return datetime.strptime(date_value, '%Y-%m-%d').date()
            except ValueError:
                raise ValueError(f"Invalid date format: {date_value}. Use YYYY-MM-DD")
        raise ValueError(f"Invalid date type: {type(date_value)}")

    @staticmethod
    def _parse_uuid(value, field_name):
        try:
            return uuid.UUID(str(value))
        except ValueError:
            raise ValueError(f"Invalid {field_name} id: {value}")

    @staticmethod
    def day_start(day):
        """Aware datetime at local midnight of ``day``."""
        return timezone.make_aware(datetime.combine(day, time.min))

    def date_window(self, start_day, end_day):
        """Half-open ``[start, end)`` datetimes covering whole local days."""
        return self.day_start(start_day), self.day_start(end_day + timedelta(days=1))

    def get_employee(self):
        """
        The employee named by the ``employee`` filter, or None.

        Raises:
            ValueError: If no such user exists
        """
        employee_id = self.filters.get('employee')
        if not employee_id:
            return None
        try:
            return User.objects.get(pk=employee_id)
        except User.DoesNotExist:
            raise ValueError(f"Employee not found: {employee_id}")

    def get_filter_value(self, key, default=None):
        return self.filters.get(key, default)

    @abstractmethod
    def get_queryset(self):
        raise NotImplementedError("Subclasses must implement get_queryset()")

    @abstractmethod
    def calculate_metrics(self, queryset):
        raise NotImplementedError("Subclasses must implement calculate_metrics()")

    def export_rows(self, report_data):
        """Flat rows for tabular export. Defaults to ``data['rows']``."""
        return report_data['data'].get('rows', [])

    def export_filename(self, extension):
        return f"{self.report_type}_{timezone.localdate().isoformat()}.{extension}"

    def _serialize_data(self, data):
        if isinstance(data, dict):
            return {key: self._serialize_data(value) for key, value in data.items()}
        if isinstance(data, (list, tuple)):
            return [self._serialize_data(item) for item in data]
        if isinstance(data, (datetime, date)):
            return data.isoformat()
        if isinstance(data, Decimal):
            return float(data)
        if isinstance(data, uuid.UUID):
            return str(data)
        return data

    def generate(self):
        """
        Build the report.

        Returns:
            Dictionary with report metadata and the ``data`` payload
        """
        logger.info(f"Generating report {self.report_type} with filters: {self.filters}")

        try:
            metrics = self.calculate_metrics(self.get_queryset())
        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Error generating report {self.report_type}: {str(e)}", exc_info=True)
            raise

        return {
            'report_type': self.report_type,
            'report_name': self.report_name,
            'generated_at': timezone.now().isoformat(),
            'generated_by': {
                'id': str(self.user.id),
                'name': self.user.full_name,
                'email': self.user.email,
            },
            'filters': self._serialize_data(self.filters),
            'data': self._serialize_data(metrics),
        }
