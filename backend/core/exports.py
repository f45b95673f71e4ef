"""
CSV and Excel download helpers shared by the list exports.
"""
import csv
import io
import logging

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from rest_framework.exceptions import ValidationError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('csv', 'xlsx')
XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
EXTRA_FIELDS_KEY = '_extra_fields'


def _cell(value):
    if value is None:
        return ''
    return value


def build_csv(rows, headers):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue()


def build_workbook(rows, headers, sheet_title='Export'):
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title[:31]
    sheet.append(list(headers))
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    widths = [len(str(header)) for header in headers]
    for row in rows:
        values = [_cell(value) for value in row]
        sheet.append(values)
        for index, value in enumerate(values):
            widths[index] = max(widths[index], len(str(value)))

    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = min(width + 2, 60)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_rows(rows, headers, filename, file_format='csv', sheet_title='Export'):
    """
    Return an attachment response with rows rendered as CSV or XLSX.

    rows is an iterable of sequences in the same order as headers.
    """
    file_format = (file_format or 'csv').lower()
    if file_format not in EXPORT_FORMATS:
        raise ValidationError({'format': f"Unsupported export format '{file_format}'. Use csv or xlsx."})

    rows = list(rows)
    if file_format == 'csv':
        response = HttpResponse(build_csv(rows, headers), content_type='text/csv; charset=utf-8')
    else:
        response = HttpResponse(build_workbook(rows, headers, sheet_title), content_type=XLSX_CONTENT_TYPE)

    response['Content-Disposition'] = f'attachment; filename="{filename}.{file_format}"'
    logger.info(f"Exported {len(rows)} rows to {filename}.{file_format}")
    return response


def read_csv_upload(uploaded_file):
    """
    Decode an uploaded CSV file into a list of dicts keyed by header.

    Values beyond the header columns are kept as a list under EXTRA_FIELDS_KEY.
    Raises csv.Error on malformed input.
    """
    content = uploaded_file.read()
    if isinstance(content, bytes):
        content = content.decode('utf-8-sig')
    reader = csv.DictReader(io.StringIO(content), restkey=EXTRA_FIELDS_KEY, restval='')
    rows = []
    for row in reader:
        cleaned = {}
        for key, value in row.items():
            if key == EXTRA_FIELDS_KEY:
                cleaned[key] = [extra.strip() for extra in value]
            else:
                cleaned[(key or '').strip()] = (value or '').strip()
        rows.append(cleaned)
    return rows
