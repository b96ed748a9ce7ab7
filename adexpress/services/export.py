"""
Downloadable artifacts: the bulk error report, the bulk upload template and the ads export.
"""

import csv
import io
from datetime import date
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from adexpress.schemas.advertisement import Ad
from adexpress.utils.const import BulkImportConfig, CITIES, VALID_CATEGORIES, VALID_DURATIONS
from adexpress.utils.enums import ApprovalStatus
from adexpress.utils.exceptions import FieldError

ERROR_REPORT_HEADER = ('Row', 'Field', 'Error Message')

TEMPLATE_ROWS = 1000

TEMPLATE_SAMPLES = (
    {
        'title': 'Software Engineer at TechCorp',
        'subject': 'Hiring Full Stack Developer',
        'description': 'We are looking for experienced developers. Requirements: 3+ years experience, React, Node.js',
        'phone_number': '9876543210',
        'category': 'jobs',
        'city': 'Bangalore',
        'location': 'Koramangala',
        'duration_days': 30,
        'is_featured': 'no',
        'sub_description': 'Great opportunity for growth',
    },
    {
        'title': '2BHK for Rent',
        'subject': 'Fully Furnished Apartment',
        'description': 'Spacious 2BHK with modern amenities. Near metro station. Immediate availability.',
        'phone_number': '8765432109',
        'category': 'rentals',
        'city': 'Mumbai',
        'location': 'Andheri West',
        'duration_days': 60,
        'is_featured': 'yes',
        'sub_description': '',
    },
)

TEMPLATE_WIDTHS = (30, 30, 50, 15, 15, 20, 20, 15, 12, 30)

INSTRUCTIONS = (
    'Bulk Ad Upload Template - Instructions',
    '',
    'DROPDOWN FIELDS (click a cell to see the options):',
    f"  - category: {', '.join(VALID_CATEGORIES)}",
    '  - city: any city from the "Valid Values" sheet',
    f"  - duration_days: {', '.join(str(d) for d in VALID_DURATIONS)} days",
    '  - is_featured: yes or no',
    '',
    'Required fields:',
    '  - title: main ad title (5 to 100 characters)',
    '  - subject: ad headline (up to 150 characters)',
    '  - description: detailed description (20 to 2000 characters)',
    '  - phone_number: 10-digit Indian mobile number starting with 6-9',
    '  - category, city',
    '',
    'Optional fields:',
    '  - location: specific locality, e.g. Koramangala',
    f"  - duration_days: default {BulkImportConfig.DEFAULT_DURATION_DAYS}",
    '  - is_featured: default no',
    '  - sub_description: additional details',
    '',
    'Notes:',
    '  - All ads are approved automatically on upload',
    '  - Rows matching an existing ad (same title and phone) are skipped',
    '  - Delete the sample rows before adding your data',
)

EXPORT_COLUMNS = (
    ('title', 30), ('subject', 30), ('description', 50), ('phone_number', 15), ('category', 12),
    ('city', 15), ('location', 20), ('created_at', 12), ('expires_at', 12), ('status', 10),
    ('is_featured', 10), ('views', 8), ('calls', 8),
)


def build_error_report(errors: Iterable[FieldError]) -> str:
    """
    Render row errors as CSV, one line per error.

    :param errors: Row errors of a bulk upload.
    :return: CSV text, header unquoted and every data cell quoted.
    """
    buffer = io.StringIO()
    buffer.write(','.join(ERROR_REPORT_HEADER) + '\n')
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    for error in errors:
        writer.writerow(['' if error.row is None else str(error.row), error.field, error.message])
    return buffer.getvalue()


def error_report_filename(day: date) -> str:
    return f"bulk_upload_errors_{day.isoformat()}.csv"


def export_filename(day: date) -> str:
    return f"ads_export_{day.isoformat()}.xlsx"


def _save(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _list_validation(formula: str, allow_blank: bool, title: str, message: str, cells: str) -> DataValidation:
    validation = DataValidation(
        type='list',
        formula1=formula,
        allow_blank=allow_blank,
        showErrorMessage=True,
        errorTitle=title,
        error=message
    )
    validation.add(cells)
    return validation


def generate_template() -> bytes:
    """
    Build the bulk upload workbook: an "Ads" sheet with two sample rows and dropdowns,
    a "Valid Values" reference sheet and an "Instructions" sheet.

    :return: XLSX bytes.
    """
    workbook = Workbook()
    ads_sheet = workbook.active
    ads_sheet.title = 'Ads'
    ads_sheet.append(BulkImportConfig.FIELDS)
    for cell in ads_sheet[1]:
        cell.font = Font(bold=True)
    for sample in TEMPLATE_SAMPLES:
        ads_sheet.append([sample[field] for field in BulkImportConfig.FIELDS])
    for index, width in enumerate(TEMPLATE_WIDTHS, start=1):
        ads_sheet.column_dimensions[get_column_letter(index)].width = width

    values_sheet = workbook.create_sheet('Valid Values')
    values_sheet.append(('Valid Categories', 'Valid Cities', 'Valid Durations (days)', 'Featured Options'))
    featured = ('yes', 'no')
    for index in range(max(len(VALID_CATEGORIES), len(CITIES), len(VALID_DURATIONS))):
        values_sheet.append((
            VALID_CATEGORIES[index] if index < len(VALID_CATEGORIES) else None,
            CITIES[index] if index < len(CITIES) else None,
            VALID_DURATIONS[index] if index < len(VALID_DURATIONS) else None,
            featured[index] if index < len(featured) else None,
        ))
    for column, width in zip('ABCD', (20, 25, 20, 15)):
        values_sheet.column_dimensions[column].width = width

    def column_of(field: str) -> str:
        return get_column_letter(BulkImportConfig.FIELDS.index(field) + 1)

    def data_range(field: str) -> str:
        column = column_of(field)
        return f"{column}2:{column}{TEMPLATE_ROWS + 1}"

    # The city list is longer than an inline list formula allows, so it points at the reference sheet.
    validations = (
        _list_validation(
            f'"{",".join(VALID_CATEGORIES)}"', False,
            'Invalid Category', 'Please select a valid category from the dropdown', data_range('category')
        ),
        _list_validation(
            f"'Valid Values'!$B$2:$B${len(CITIES) + 1}", False,
            'Invalid City', 'Please select a valid city from the dropdown', data_range('city')
        ),
        _list_validation(
            f'"{",".join(str(d) for d in VALID_DURATIONS)}"', True,
            'Invalid Duration', 'Please select a valid duration from the dropdown', data_range('duration_days')
        ),
        _list_validation(
            '"yes,no"', True,
            'Invalid Featured Value', 'Please select "yes" or "no" from the dropdown', data_range('is_featured')
        ),
    )
    for validation in validations:
        ads_sheet.add_data_validation(validation)

    instructions_sheet = workbook.create_sheet('Instructions')
    for line in INSTRUCTIONS:
        instructions_sheet.append((line,))
    instructions_sheet['A1'].font = Font(bold=True)
    instructions_sheet.column_dimensions['A'].width = 90

    return _save(workbook)


def export_ads(ads: Iterable[Ad]) -> bytes:
    """
    Export ads to a single "Ads Export" sheet.

    :param ads: Ads to export, in the order given.
    :return: XLSX bytes.
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = 'Ads Export'
    sheet.append([name for name, _ in EXPORT_COLUMNS])

    for ad in ads:
        sheet.append((
            ad.title,
            ad.subject,
            ad.description,
            ad.phone_number,
            ad.category.value,
            ad.city,
            ad.location or '',
            ad.created_at.strftime('%d/%m/%Y'),
            ad.expires_at.strftime('%d/%m/%Y'),
            (ad.approval_status or ApprovalStatus.APPROVED).value,
            'Yes' if ad.is_featured else 'No',
            ad.views_count,
            ad.calls_count,
        ))

    for index, (_, width) in enumerate(EXPORT_COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    return _save(workbook)
