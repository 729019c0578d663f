"""
Excel reports for a business unit.

Each report lists one kind of record; exports are written to the audit
trail as EXPORT entries.
"""
import logging
from datetime import datetime

import openpyxl
from django.db.models import Count, Q, Sum
from django.http import HttpResponse
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from core.audit_utils import log_export
from .depreciation import depreciation_report_rows
from .models import Asset, AssetDepreciation, AssetDeployment, AssetDisposal, AssetTransfer

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _name(obj):
    if obj is None:
        return ''
    if hasattr(obj, 'full_name'):
        return obj.full_name
    if hasattr(obj, 'get_full_name'):
        return obj.get_full_name() or obj.get_username()
    return str(obj)


def _date(value, fmt='%Y-%m-%d'):
    return value.strftime(fmt) if value else ''


def _amount(value):
    return float(value) if value is not None else 0


class ReportGenerator:
    """Base class for generating reports"""

    model = None
    title = 'Report'
    filename = 'report'
    headers = []

    def __init__(self, company, start_date=None, end_date=None):
        self.company = company
        self.start_date = start_date
        self.end_date = end_date

    def get_queryset(self):
        raise NotImplementedError

    def row(self, obj):
        raise NotImplementedError

    def create_excel_workbook(self):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = self.title[:31]  # Excel sheet name limit
        return wb, ws

    def style_header(self, ws, row=1, cols=None):
        header_fill = PatternFill(start_color="C17845", end_color="C17845", fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF", size=11)
        alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)

        for col in range(1, (cols or 0) + 1):
            cell = ws.cell(row=row, column=col)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = alignment

    def auto_adjust_columns(self, ws):
        for column in ws.columns:
            values = [len(str(cell.value)) for cell in column if cell.value is not None]
            width = min(max(values, default=0) + 2, 50)
            ws.column_dimensions[get_column_letter(column[0].column)].width = width

    def export_to_excel(self, request=None):
        wb, ws = self.create_excel_workbook()

        for col, header in enumerate(self.headers, 1):
            ws.cell(row=1, column=col, value=header)
        self.style_header(ws, row=1, cols=len(self.headers))

        count = 0
        for row, obj in enumerate(self.get_queryset(), 2):
            for col, value in enumerate(self.row(obj), 1):
                ws.cell(row=row, column=col, value=value)
            count += 1

        self.auto_adjust_columns(ws)

        metadata = {'report': self.filename, 'company': self.company.code}
        if self.start_date:
            metadata['start_date'] = str(self.start_date)
        if self.end_date:
            metadata['end_date'] = str(self.end_date)
        log_export(request, self.model, count, 'Excel', metadata=metadata)
        logger.info("Exported %s %s rows for %s", count, self.filename, self.company.code)

        response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = (
            f'attachment; filename={self.filename}_{self.company.code}_{datetime.now().strftime("%Y%m%d")}.xlsx'
        )
        wb.save(response)
        return response


class AssetInventoryReport(ReportGenerator):
    """Every non-deleted asset of the business unit"""

    model = Asset
    title = 'Asset Inventory'
    filename = 'asset_inventory'
    headers = [
        'Item Code', 'Name', 'Category', 'Status', 'Condition', 'Brand', 'Model',
        'Serial Number', 'Location', 'Department', 'Assigned To',
        'Purchase Date', 'Purchase Price', 'Book Value', 'Accumulated Depreciation',
        'Warranty End',
    ]

    def get_queryset(self):
        return Asset.objects.filter(company=self.company, is_deleted=False).select_related(
            'category', 'location', 'department', 'assigned_to'
        ).order_by('asset_tag')

    def row(self, asset):
        return [
            asset.asset_tag,
            asset.name,
            asset.category.name if asset.category else '',
            asset.get_status_display(),
            asset.get_condition_display() if asset.condition else '',
            asset.brand or '',
            asset.model or '',
            asset.serial_number or '',
            asset.location.name if asset.location else '',
            asset.department.name if asset.department else '',
            _name(asset.assigned_to),
            _date(asset.purchase_date),
            _amount(asset.purchase_price),
            _amount(asset.book_value),
            _amount(asset.accumulated_depreciation),
            _date(asset.warranty_end_date),
        ]

    def generate(self):
        assets = self.get_queryset()
        totals = assets.aggregate(total_value=Sum('purchase_price'), total_depreciation=Sum('accumulated_depreciation'))
        return {
            'total_assets': assets.count(),
            'by_status': assets.values('status').annotate(count=Count('id')).order_by('-count'),
            'by_category': assets.values('category__name').annotate(count=Count('id')).order_by('-count'),
            'total_value': totals['total_value'] or 0,
            'total_depreciation': totals['total_depreciation'] or 0,
        }


class DeploymentReport(ReportGenerator):
    model = AssetDeployment
    title = 'Deployments'
    filename = 'deployment_report'
    headers = [
        'Transmittal Number', 'Item Code', 'Asset Name', 'Employee', 'Status',
        'Requested By', 'Requested Date', 'Approved By', 'Deployed Date',
        'Expected Return', 'Returned Date', 'Return Condition',
    ]

    def get_queryset(self):
        deployments = AssetDeployment.objects.filter(company=self.company, is_deleted=False)
        if self.start_date:
            deployments = deployments.filter(created_at__date__gte=self.start_date)
        if self.end_date:
            deployments = deployments.filter(created_at__date__lte=self.end_date)
        return deployments.select_related(
            'asset', 'employee', 'requested_by', 'approved_by'
        ).order_by('-created_at')

    def row(self, deployment):
        return [
            deployment.transmittal_number,
            deployment.asset.asset_tag,
            deployment.asset.name,
            _name(deployment.employee),
            deployment.get_status_display(),
            _name(deployment.requested_by),
            _date(deployment.created_at, '%Y-%m-%d %H:%M'),
            _name(deployment.approved_by),
            _date(deployment.deployed_date, '%Y-%m-%d %H:%M'),
            _date(deployment.expected_return_date),
            _date(deployment.returned_date, '%Y-%m-%d %H:%M'),
            deployment.get_return_condition_display() if deployment.return_condition else '',
        ]


class DepreciationReport(ReportGenerator):
    model = AssetDepreciation
    title = 'Depreciation'
    filename = 'depreciation_report'
    headers = [
        'Item Code', 'Asset Name', 'Depreciation Date', 'Period Start', 'Period End',
        'Method', 'Book Value Start', 'Depreciation', 'Book Value End',
        'Accumulated Depreciation', 'Units In Period', 'Calculated By',
    ]

    def get_queryset(self):
        return depreciation_report_rows(self.company, self.start_date, self.end_date)

    def row(self, record):
        return [
            record.asset.asset_tag,
            record.asset.name,
            _date(record.depreciation_date),
            _date(record.period_start_date),
            _date(record.period_end_date),
            record.get_method_display(),
            _amount(record.book_value_start),
            _amount(record.depreciation_amount),
            _amount(record.book_value_end),
            _amount(record.accumulated_depreciation),
            record.units_in_period or '',
            _name(record.calculated_by),
        ]


class TransferReport(ReportGenerator):
    """Transfers going out of or coming into the business unit"""

    model = AssetTransfer
    title = 'Transfers'
    filename = 'transfer_report'
    headers = [
        'Transfer Number', 'Item Code', 'Asset Name', 'Status', 'From', 'To',
        'To Location', 'Transfer Date', 'Requested By', 'Approved By',
        'Completed At', 'Transfer Cost', 'Reason',
    ]

    def get_queryset(self):
        transfers = AssetTransfer.objects.filter(
            Q(from_company=self.company) | Q(to_company=self.company), is_deleted=False
        )
        if self.start_date:
            transfers = transfers.filter(transfer_date__gte=self.start_date)
        if self.end_date:
            transfers = transfers.filter(transfer_date__lte=self.end_date)
        return transfers.select_related(
            'asset', 'from_company', 'to_company', 'to_location', 'requested_by', 'approved_by'
        ).order_by('-transfer_date', '-created_at')

    def row(self, transfer):
        return [
            transfer.transfer_number,
            transfer.asset.asset_tag,
            transfer.asset.name,
            transfer.get_status_display(),
            transfer.from_company.name,
            transfer.to_company.name,
            transfer.to_location.name if transfer.to_location else '',
            _date(transfer.transfer_date),
            _name(transfer.requested_by),
            _name(transfer.approved_by),
            _date(transfer.completed_at, '%Y-%m-%d %H:%M'),
            _amount(transfer.transfer_cost),
            transfer.reason,
        ]


class DisposalReport(ReportGenerator):
    model = AssetDisposal
    title = 'Disposals'
    filename = 'disposal_report'
    headers = [
        'Disposal Number', 'Item Code', 'Asset Name', 'Disposal Date', 'Reason', 'Method',
        'Book Value', 'Disposal Value', 'Disposal Cost', 'Net Value', 'Gain/Loss',
        'Recipient', 'Approved By', 'Approval Date',
    ]

    def get_queryset(self):
        disposals = AssetDisposal.objects.filter(company=self.company, is_deleted=False)
        if self.start_date:
            disposals = disposals.filter(disposal_date__gte=self.start_date)
        if self.end_date:
            disposals = disposals.filter(disposal_date__lte=self.end_date)
        return disposals.select_related('asset', 'approved_by').order_by('-disposal_date')

    def row(self, disposal):
        return [
            disposal.disposal_number,
            disposal.asset.asset_tag,
            disposal.asset.name,
            _date(disposal.disposal_date),
            disposal.get_reason_display(),
            disposal.get_disposal_method_display() if disposal.disposal_method else '',
            _amount(disposal.book_value_at_disposal),
            _amount(disposal.disposal_value),
            _amount(disposal.disposal_cost),
            _amount(disposal.net_disposal_value),
            _amount(disposal.gain_loss),
            disposal.recipient_name,
            _name(disposal.approved_by),
            _date(disposal.approved_at, '%Y-%m-%d %H:%M'),
        ]


REPORTS = {
    'inventory': AssetInventoryReport,
    'deployments': DeploymentReport,
    'depreciation': DepreciationReport,
    'transfers': TransferReport,
    'disposals': DisposalReport,
}
