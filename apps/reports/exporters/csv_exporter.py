"""
CSV Report Exporter

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import csv
import logging

from django.http import HttpResponse

logger = logging.getLogger(__name__)


class CSVExporter:
    """
    Write report rows as CSV with a fixed header.
    """

    def __init__(self, columns, rows):
        self.columns = list(columns)
        self.rows = rows

    def write(self, stream):
        writer = csv.DictWriter(stream, fieldnames=self.columns, extrasaction='ignore', restval='')
        writer.writeheader()
        for row in self.rows:
            writer.writerow(row)

    def to_response(self, filename):
        response = HttpResponse(content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        self.write(response)
        logger.info(f"CSV export {filename} with {len(self.rows)} rows")
        return response


def generate_csv_report(generator, report_data):
    rows = generator.export_rows(report_data)
    return CSVExporter(generator.export_columns, rows).to_response(generator.export_filename('csv'))
