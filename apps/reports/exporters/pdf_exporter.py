"""
PDF Report Exporter

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.conf import settings
from django.http import HttpResponse
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


class PDFExporter:
    """
    Render a Django template to PDF with WeasyPrint.
    """

    def __init__(self, template_name, context):
        self.template_name = template_name
        self.context = {'css': self.get_default_css(), **context}

    def render_html(self):
        return render_to_string(self.template_name, self.context)

    def generate(self):
        """
        Returns:
            bytes: PDF file content
        """
        from weasyprint import HTML
        from weasyprint.text.fonts import FontConfiguration

        try:
            html = HTML(string=self.render_html(), base_url=settings.STATIC_URL)
            pdf_bytes = html.write_pdf(font_config=FontConfiguration())
        except Exception as e:
            logger.error(f"Error generating PDF from {self.template_name}: {str(e)}", exc_info=True)
            raise

        logger.info(f"PDF generated successfully from template: {self.template_name}")
        return pdf_bytes

    def to_response(self, filename):
        response = HttpResponse(self.generate(), content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response

    @staticmethod
    def get_default_css():
        return """
        @page {
            size: A4 landscape;
            margin: 1.5cm;
            @bottom-center {
                content: "Page " counter(page) " of " counter(pages);
                font-size: 8pt;
            }
        }
        body { font-family: Helvetica, Arial, sans-serif; font-size: 9pt; line-height: 1.4; color: #1F2937; }
        h1 { font-size: 18pt; text-align: center; margin-bottom: 6pt; }
        h2 { font-size: 12pt; color: #374151; margin-top: 14pt; margin-bottom: 6pt; }
        table { width: 100%; border-collapse: collapse; margin: 8pt 0; }
        th { background-color: #2980B9; color: #fff; padding: 5pt; text-align: left; }
        td { padding: 4pt 5pt; border-bottom: 1pt solid #E5E7EB; }
        tr:nth-child(even) td { background-color: #F5F5F5; }
        .meta { text-align: center; color: #6B7280; }
        .summary-box { background-color: #F9FAFB; padding: 8pt; border-left: 3pt solid #2980B9; }
        .footer { margin-top: 16pt; font-size: 7pt; color: #6B7280; }
        """


def generate_pdf_report(generator, report_data):
    """
    PDF response for a generated report, rendered with the generator's template.
    """
    columns = generator.export_columns
    rows = generator.export_rows(report_data)
    exporter = PDFExporter(generator.template_name, {
        'report': report_data,
        'data': report_data['data'],
        'columns': columns,
        'table': [[row.get(column, '') for column in columns] for row in rows],
    })
    return exporter.to_response(generator.export_filename('pdf'))
