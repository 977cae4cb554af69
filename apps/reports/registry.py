"""
Report Catalog

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.

Report types known to the API, the export formats each one offers and the
renderer that turns generated report data into a response for a format.
"""
import logging

from apps.core.responses import success_response
from .exporters.csv_exporter import generate_csv_report
from .exporters.pdf_exporter import generate_pdf_report

logger = logging.getLogger(__name__)


def render_json(generator, report_data):
    return success_response(data=report_data)


RENDERERS = {
    'json': render_json,
    'csv': generate_csv_report,
    'pdf': generate_pdf_report,
}
EXPORT_FORMATS = tuple(RENDERERS)


class ReportCatalog:

    def __init__(self):
        self._generators = {}

    def add(self, generator_class):
        from apps.reports.generators.base import BaseReportGenerator

        if not (isinstance(generator_class, type) and issubclass(generator_class, BaseReportGenerator)):
            raise ValueError(f"{generator_class!r} is not a report generator")

        unknown = [fmt for fmt in generator_class.export_formats if fmt not in RENDERERS]
        if unknown:
            raise ValueError(f"{generator_class.__name__} declares unknown export formats: {', '.join(unknown)}")

        report_type = generator_class.report_type
        if report_type in self._generators:
            logger.warning(f"Report type {report_type} re-registered by {generator_class.__name__}")
        self._generators[report_type] = generator_class
        return generator_class

    def __contains__(self, report_type):
        return report_type in self._generators

    def generator_class(self, report_type):
        try:
            return self._generators[report_type]
        except KeyError:
            raise KeyError(f"Unknown report type: {report_type}")

    def generator_for(self, report_type, user, filters=None):
        return self.generator_class(report_type)(user, filters)

    def supports(self, report_type, export_format):
        return export_format in self.generator_class(report_type).export_formats

    def render(self, generator, report_data, export_format):
        """
        Response for already generated report data in ``export_format``.

        Raises:
            ValueError: the report does not offer that format
        """
        if export_format not in generator.export_formats:
            raise ValueError(f"{generator.report_name} cannot be exported as {export_format}")
        return RENDERERS[export_format](generator, report_data)

    def describe(self):
        """Report types as listed by the API, ordered by name."""
        entries = [
            {
                'report_type': report_type,
                'report_name': generator_class.report_name,
                'description': (generator_class.__doc__ or '').strip(),
                'available_filters': list(generator_class.available_filters),
                'formats': list(generator_class.export_formats),
            }
            for report_type, generator_class in self._generators.items()
        ]
        return sorted(entries, key=lambda entry: entry['report_name'])


catalog = ReportCatalog()


def register_report(generator_class):
    """Class decorator adding a generator to the catalog under its ``report_type``."""
    return catalog.add(generator_class)
