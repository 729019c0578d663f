"""
Bulk asset registration from CSV or Excel uploads.

An upload is read into rows of strings, every row is checked, the result is
shown as a preview, and only then are the assets created, all in one
transaction. Row numbers in errors are 1-based data rows (the header is not
counted).
"""
import csv
import io
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from zipfile import BadZipFile

from django.db import DatabaseError, transaction
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException

from core.audit_utils import log_create, log_custom
from core.utils import result
from users.models import Location
from .models import Asset, AssetCategory
from .services import record_history

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = 10 * 1024 * 1024

COLUMNS = [
    'name', 'description', 'category', 'asset_tag', 'serial_number', 'brand', 'model',
    'purchase_date', 'purchase_price', 'warranty_end_date', 'location', 'notes', 'quantity',
    'useful_life_years', 'useful_life_months', 'salvage_value',
    'depreciation_method', 'depreciation_rate', 'total_expected_units',
]

SAMPLE_ROW = [
    'MacBook Pro 16-inch', 'Developer laptop', 'LAPTOP', '', 'MBP001', 'Apple', 'A2485',
    '2024-01-15', '120000', '2027-01-15', 'HQ', '', '1',
    '5', '', '10000',
    'STRAIGHT_LINE', '', '',
]

DEFAULT_OPTIONS = {
    'auto_generate_item_codes': True,
    'generate_serial_numbers': False,
    'serial_prefix': '',
    'serial_start': 1,
    'serial_padding': 3,
}

TEXT_FIELDS = ('serial_number', 'brand', 'model', 'notes')


# --------------------------------------------------------------------------
# Reading uploads
# --------------------------------------------------------------------------

def _header(value):
    return str(value or '').strip().lower().replace(' ', '_').replace('-', '_')


def _cell(value):
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _table_rows(table):
    if not table:
        return []
    headers = [_header(value) for value in table[0]]
    rows = []
    for record in table[1:]:
        values = [_cell(value) for value in record]
        if not any(values):
            continue
        rows.append({header: value for header, value in zip(headers, values) if header})
    return rows


def read_asset_file(upload):
    """
    Rows of an uploaded ``.csv`` or ``.xlsx`` file as dictionaries keyed by
    normalised header. Returns a result with ``rows`` on success.
    """
    filename = (upload.name or '').lower()
    if upload.size > MAX_UPLOAD_SIZE:
        return result(False, 'File size must be less than 10MB')

    if filename.endswith('.csv'):
        try:
            text = upload.read().decode('utf-8-sig')
            table = list(csv.reader(io.StringIO(text)))
        except UnicodeDecodeError:
            return result(False, 'The CSV file must be UTF-8 encoded')
        except csv.Error:
            logger.warning("Unreadable CSV upload %s", upload.name)
            return result(False, 'Could not read the CSV file')
    elif filename.endswith('.xlsx'):
        try:
            workbook = load_workbook(upload, read_only=True, data_only=True)
        except (BadZipFile, InvalidFileException, KeyError):
            logger.warning("Unreadable Excel upload %s", upload.name)
            return result(False, 'Could not read the Excel file')
        table = [list(values) for values in workbook.worksheets[0].iter_rows(values_only=True)]
        workbook.close()
    else:
        return result(False, 'Please upload a CSV or Excel (.xlsx) file')

    rows = _table_rows(table)
    if not rows:
        return result(False, 'The file has no data rows')
    return result(True, f'{len(rows)} rows read', rows=rows)


def build_import_template():
    """Workbook with the import headers and one sample row"""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = 'Assets'
    sheet.append(COLUMNS)
    sheet.append(SAMPLE_ROW)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    return workbook


# --------------------------------------------------------------------------
# Row validation
# --------------------------------------------------------------------------

class RowChecker:
    """Parses one row's strings into asset values, collecting errors"""

    def __init__(self, number, row):
        self.number = number
        self.row = row
        self.errors = []

    def error(self, field, message, value=None):
        self.errors.append({
            'row': self.number,
            'field': field,
            'message': message,
            'value': self.row.get(field, '') if value is None else value,
        })

    def text(self, field):
        return self.row.get(field, '').strip()

    def decimal(self, field):
        raw = self.text(field).replace(',', '')
        if not raw:
            return None
        try:
            value = Decimal(raw)
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite():
            self.error(field, 'Must be a number')
            return None
        return value

    def integer(self, field):
        raw = self.text(field)
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            self.error(field, 'Must be a whole number')
            return None

    def date(self, field):
        raw = self.text(field)
        if not raw:
            return None
        try:
            return datetime.strptime(raw, '%Y-%m-%d').date()
        except ValueError:
            self.error(field, 'Use the YYYY-MM-DD date format')
            return None


def _lookups(company):
    categories = {}
    for category in AssetCategory.objects.filter(company=company, is_deleted=False, is_active=True):
        categories[category.code.lower()] = category
        categories.setdefault(category.name.lower(), category)
    locations = {
        location.code.upper(): location
        for location in Location.objects.filter(company=company, is_deleted=False, is_active=True)
    }
    used_tags = set(Asset.objects.filter(company=company, is_deleted=False).values_list('asset_tag', flat=True))
    return categories, locations, used_tags


def _check_row(checker, options, categories, locations):
    data = {}

    name = checker.text('name') or checker.text('description')
    if not name:
        checker.error('name', 'Name is required')
    data['name'] = name
    if checker.text('name') and checker.text('description'):
        data['description'] = checker.text('description')

    category_key = checker.text('category')
    data['category'] = categories.get(category_key.lower())
    if not category_key:
        checker.error('category', 'Category is required')
    elif data['category'] is None:
        checker.error('category', 'Unknown category')

    quantity = checker.integer('quantity') if checker.text('quantity') else 1
    if quantity is not None and quantity < 1:
        checker.error('quantity', 'Quantity must be at least 1')
    data['quantity'] = quantity or 1

    for field in TEXT_FIELDS:
        data[field] = checker.text(field) or None

    data['purchase_date'] = checker.date('purchase_date')
    data['warranty_end_date'] = checker.date('warranty_end_date')

    data['purchase_price'] = checker.decimal('purchase_price')
    if data['purchase_price'] is not None and data['purchase_price'] < 0:
        checker.error('purchase_price', 'Purchase price cannot be negative')
    data['salvage_value'] = checker.decimal('salvage_value')
    if data['salvage_value'] is not None and data['salvage_value'] < 0:
        checker.error('salvage_value', 'Salvage value cannot be negative')

    data['useful_life_years'] = checker.integer('useful_life_years')
    if data['useful_life_years'] is not None and data['useful_life_years'] <= 0:
        checker.error('useful_life_years', 'Useful life must be greater than 0')
    data['useful_life_months'] = checker.integer('useful_life_months')
    if data['useful_life_months'] is not None and data['useful_life_months'] <= 0:
        checker.error('useful_life_months', 'Useful life in months must be greater than 0')

    method = checker.text('depreciation_method').upper().replace(' ', '_') or Asset.STRAIGHT_LINE
    if method not in dict(Asset.DEPRECIATION_METHOD_CHOICES):
        checker.error('depreciation_method', 'Unknown depreciation method')
    data['depreciation_method'] = method

    data['depreciation_rate'] = checker.decimal('depreciation_rate')
    rate = data['depreciation_rate']
    if method == Asset.DECLINING_BALANCE and (rate is None or rate <= 0 or rate > 100):
        checker.error('depreciation_rate',
                      'Depreciation rate must be between 0 and 100 for declining balance method')

    data['total_expected_units'] = checker.integer('total_expected_units')
    units = data['total_expected_units']
    if method == Asset.UNITS_OF_PRODUCTION and (units is None or units <= 0):
        checker.error('total_expected_units',
                      'Total expected units is required for units of production method')

    location_code = checker.text('location')
    data['location'] = locations.get(location_code.upper()) if location_code else None
    if location_code and data['location'] is None:
        checker.error('location', 'Unknown location')

    if data['quantity'] > 1 and data['serial_number'] and not options['generate_serial_numbers']:
        checker.error('serial_number', 'A serial number cannot be shared by several assets')

    return data


def _next_item_number(company, prefix):
    """Highest number already used after ``prefix``, deleted assets included"""
    tags = Asset.objects.filter(company=company, asset_tag__startswith=prefix).values_list('asset_tag', flat=True)
    numbers = [int(tag[len(prefix):]) for tag in tags if tag[len(prefix):].isdigit()]
    return max(numbers, default=0)


def _plan(company, rows, options):
    """
    Validate every row and lay out the assets the upload would create.

    Returns ``(errors, planned)`` where ``planned`` is a list of
    ``(row_number, asset_values)`` for the rows that passed.
    """
    categories, locations, used_tags = _lookups(company)
    errors = []
    checked = []
    file_tags = set()

    for number, row in enumerate(rows, start=1):
        checker = RowChecker(number, row)
        data = _check_row(checker, options, categories, locations)

        if not options['auto_generate_item_codes']:
            tag = checker.text('asset_tag')
            if not tag:
                checker.error('asset_tag', 'Item code is required when codes are not generated')
            elif tag in used_tags:
                checker.error('asset_tag', 'Asset with this item code already exists')
            elif tag in file_tags:
                checker.error('asset_tag', 'Item code repeats an earlier row')
            elif data['quantity'] > 1:
                checker.error('quantity', 'Generate item codes to register several assets from one row')
            file_tags.add(tag)
            data['asset_tag'] = tag

        errors.extend(checker.errors)
        if not checker.errors:
            checked.append((number, data))

    planned = []
    counters = {}
    serial_index = 0
    for number, data in checked:
        quantity = data.pop('quantity')
        for _ in range(quantity):
            values = dict(data)
            if options['auto_generate_item_codes']:
                prefix = f"{company.code}-{values['category'].code}-"
                if prefix not in counters:
                    counters[prefix] = _next_item_number(company, prefix)
                counters[prefix] += 1
                values['asset_tag'] = f"{prefix}{counters[prefix]:03d}"
            if options['generate_serial_numbers']:
                serial = options['serial_start'] + serial_index
                values['serial_number'] = f"{options['serial_prefix']}{str(serial).zfill(options['serial_padding'])}"
                serial_index += 1
            planned.append((number, values))

    return errors, planned


def _options(options):
    merged = dict(DEFAULT_OPTIONS)
    merged.update({key: value for key, value in (options or {}).items() if value is not None})
    merged['serial_start'] = int(merged['serial_start'] or 1)
    merged['serial_padding'] = int(merged['serial_padding'] or 3)
    merged['serial_prefix'] = merged['serial_prefix'] or ''
    return merged


# --------------------------------------------------------------------------
# Preview and creation
# --------------------------------------------------------------------------

def preview_bulk_assets(company, rows, options=None):
    """What an upload would create, and what is wrong with it"""
    errors, planned = _plan(company, rows, _options(options))
    invalid_rows = {error['row'] for error in errors}
    return {
        'is_valid': not errors,
        'total_rows': len(rows),
        'valid_rows': len(rows) - len(invalid_rows),
        'asset_count': len(planned),
        'errors': errors,
        'preview': [
            {
                'row': number,
                'name': values['name'],
                'asset_tag': values.get('asset_tag'),
                'serial_number': values.get('serial_number'),
                'purchase_price': values.get('purchase_price'),
                'category_name': values['category'].name,
            }
            for number, values in planned
        ],
    }


def create_bulk_assets(company, rows, options=None, user=None, request=None):
    """
    Create every asset of an upload, or none of them.

    Any row error fails the whole batch before anything is written.
    """
    errors, planned = _plan(company, rows, _options(options))
    if errors:
        logger.warning("Bulk import for %s rejected with %d errors", company.code, len(errors))
        return result(False, f'Validation failed: {len(errors)} errors found', errors=errors, created_count=0)

    actor = user if user is not None and user.is_authenticated else None
    created = []
    try:
        with transaction.atomic():
            for number, values in planned:
                asset = Asset(company=company, created_by=actor)
                for field, value in values.items():
                    if value is not None:
                        setattr(asset, field, value)
                asset.save()

                record_history(
                    asset, 'CREATED', user=user,
                    new_status=asset.status,
                    new_book_value=asset.current_book_value,
                    remarks=f'Asset created via bulk import - Row {number}',
                    metadata={'bulk_import': True, 'row_number': number},
                )
                log_create(request, asset, user=user, company=company,
                           metadata={'bulk_import': True, 'row_number': number})
                created.append(asset)

            log_custom(
                request, 'IMPORT', f'Imported {len(created)} assets from {len(rows)} rows',
                model_name='Asset', user=user, company=company,
                metadata={'rows': len(rows), 'asset_tags': [asset.asset_tag for asset in created]},
            )
    except DatabaseError:
        logger.exception("Bulk asset import failed for %s", company.code)
        return result(False, 'Failed to create bulk assets', errors=[], created_count=0)

    logger.info("Bulk import created %d assets in %s", len(created), company.code)
    return result(
        True, f'Successfully created {len(created)} assets',
        created_count=len(created),
        asset_ids=[asset.pk for asset in created],
    )
