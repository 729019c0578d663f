import json
import logging
from datetime import timedelta

from django.shortcuts import render, redirect, get_object_or_404
from django.contrib.auth.decorators import login_required, user_passes_test
from django.contrib import messages
from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.http import FileResponse, Http404, HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_POST

from core.audit_utils import to_json_value
from core.models import Company
from core.utils import page_size, parse_date
from core.views import is_admin
from maintenance.services import get_maintenance_schedule
from .analytics import (
    IDLE_THRESHOLD_DAYS, get_assets_by_category, get_dashboard_stats, get_deployment_trends,
    get_recent_deployments, get_system_alerts, get_top_assets, get_utilization_summary,
)
from .bulk_operations import bulk_delete_assets, bulk_return_assets, bulk_update_assets
from .deployments import (
    approve_deployment, bulk_approve_deployments, can_approve_deployments, cancel_deployment,
    create_bulk_deployments, create_deployment, get_deployed_assets, get_deployments, get_pending_approvals,
    reject_deployment, return_asset,
)
from .depreciation import (
    batch_calculate_depreciation, calculate_asset_depreciation, get_asset_depreciation_history,
    get_assets_due_for_depreciation, get_depreciation_alerts, get_depreciation_schedule,
    get_depreciation_summary, update_asset_units,
)
from .disposals import (
    approve_asset_disposal, create_asset_disposal, create_bulk_disposals,
    get_asset_disposals, get_disposal_summary,
)
from .forms import (
    AssetCategoryForm, AssetDisposalForm, AssetFilterForm, AssetForm, AssetImportForm, AssetRetirementForm,
    AssetReturnForm, AssetTransferForm, AssetUnitsForm, BulkDeploymentForm, BulkDisposalForm,
    BulkTransferForm, BulkUpdateForm, DeploymentApprovalForm, DeploymentForm, DeploymentRejectForm,
    InventoryVerificationForm, ReportFilterForm, ScanForm, TransferCompleteForm, TransferDecisionForm,
    TransferShipForm, UtilizationFilterForm, VerificationItemForm,
)
from .imports import build_import_template, create_bulk_assets, preview_bulk_assets, read_asset_file
from .models import (
    Asset, AssetCategory, AssetDeployment, AssetDisposal, AssetHistory, AssetRetirement, AssetScanLog,
    AssetTransfer, InventoryVerification, VerificationItem,
)
from .reports import REPORTS, XLSX_CONTENT_TYPE, AssetInventoryReport
from .retirements import (
    approve_asset_retirement, create_asset_retirement, generate_end_of_life_notifications,
    get_asset_retirements, get_assets_eligible_for_retirement,
)
from .services import (
    create_asset, create_category, delete_asset, delete_category, get_assets, get_categories,
    update_asset, update_category,
)
from .transfers import (
    approve_asset_transfer, complete_asset_transfer, create_asset_transfer, create_bulk_transfers,
    get_asset_transfers, reject_asset_transfer, ship_asset_transfer,
)
from .utils import get_assets_warranty_expiring
from .verification import (
    asset_summary, cancel_inventory_verification, complete_inventory_verification, create_inventory_verification,
    find_asset_by_code, get_inventory_verifications, quick_asset_lookup, record_verification_scan, scan_asset,
    update_verification_item,
)

logger = logging.getLogger(__name__)

WARRANTY_WINDOW_DAYS = 30


def _require_company(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        messages.error(request, 'Please select a business unit first.')
    return company


def _get_asset(company, pk):
    return get_object_or_404(
        Asset.objects.select_related('category', 'location', 'department', 'assigned_to'),
        pk=pk, company=company, is_deleted=False,
    )


def _flash(request, outcome):
    if outcome['success']:
        messages.success(request, outcome['message'])
    else:
        messages.error(request, outcome['message'])
    for error in outcome.get('errors') or []:
        messages.warning(request, f"{error.get('asset_tag') or error.get('asset_id')}: {error['message']}")


def _json(outcome):
    return JsonResponse(to_json_value(outcome), status=200 if outcome['success'] else 400)


def _posted_ids(request, key):
    """Ids from a form post (repeated ``key``) or a JSON body (``{key: [...]}``)"""
    if request.content_type == 'application/json':
        try:
            values = json.loads(request.body or b'{}').get(key, [])
        except (ValueError, AttributeError):
            return None
    else:
        values = request.POST.getlist(key)
    try:
        return [int(value) for value in values]
    except (TypeError, ValueError):
        return None


def _page(request, queryset):
    return Paginator(queryset, page_size()).get_page(request.GET.get('page'))


# ============================================
# Dashboard
# ============================================

@login_required
def dashboard(request):
    """Dashboard with asset statistics for the current business unit"""
    company = getattr(request, 'current_company', None)
    today = timezone.localdate()

    if company is None:
        context = {'is_super_admin_dashboard': request.is_super_admin}
        if request.is_super_admin:
            context.update({
                'total_companies': Company.objects.filter(is_deleted=False).count(),
                'active_companies': Company.objects.filter(is_deleted=False, is_active=True).count(),
                'expiring_soon': Company.objects.filter(
                    is_deleted=False,
                    is_active=True,
                    subscription_end_date__gte=today,
                    subscription_end_date__lte=today + timedelta(days=30),
                ).count(),
                'total_assets_all': Asset.objects.filter(is_deleted=False).count(),
                'companies_with_stats': Company.objects.filter(is_deleted=False).annotate(
                    asset_count=Count('assets', filter=Q(assets__is_deleted=False)),
                    employee_count=Count('employees', filter=Q(employees__is_deleted=False)),
                ).order_by('name')[:10],
            })
        return render(request, 'assets/dashboard.html', context)

    assets = Asset.objects.filter(company=company, is_deleted=False)
    status_counts = {row['status']: row['count'] for row in assets.values('status').annotate(count=Count('id'))}

    context = {
        'company': company,
        'total_assets': sum(status_counts.values()),
        'available_assets': status_counts.get(Asset.AVAILABLE, 0),
        'deployed_assets': get_deployed_assets(company).count(),
        'in_maintenance': status_counts.get(Asset.IN_MAINTENANCE, 0),
        'status_counts': status_counts,
        'pending_approvals': get_pending_approvals(company).count(),
        'depreciation_summary': get_depreciation_summary(company),
        'assets_by_category': get_assets_by_category(company)[:5],
        'stats': get_dashboard_stats(company),
        'alerts': get_system_alerts(company),
        'deployment_trends': get_deployment_trends(company),
        'top_assets': get_top_assets(company, limit=5),
        'recent_deployments': get_recent_deployments(company),
        'recent_history': AssetHistory.objects.filter(company=company).select_related(
            'asset', 'performed_by'
        ).order_by('-action_date')[:10],
        'warranty_expiring': get_assets_warranty_expiring(company, days_ahead=WARRANTY_WINDOW_DAYS)[:10],
        'upcoming_maintenance': get_maintenance_schedule(company)[:5],
    }
    return render(request, 'assets/dashboard.html', context)


# ============================================
# Assets
# ============================================

@login_required
def asset_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    filter_form = AssetFilterForm(request.GET or None, company=company)
    assets = get_assets(company, **filter_form.filters())

    return render(request, 'assets/asset_list.html', {
        'page_obj': _page(request, assets),
        'filter_form': filter_form,
    })


@login_required
def asset_detail(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)
    context = {
        'asset': asset,
        'history': asset.history.select_related('performed_by', 'employee').order_by('-action_date')[:20],
        'deployments': asset.deployments.filter(is_deleted=False).select_related('employee').order_by('-created_at'),
        'depreciation_records': get_asset_depreciation_history(asset)[:12],
        'maintenance_records': asset.maintenance_records.order_by('-created_at')[:10],
        'transfers': asset.transfers.filter(is_deleted=False).select_related('from_company', 'to_company').order_by('-created_at'),
        'retirements': asset.retirements.filter(is_deleted=False).order_by('-retirement_date'),
        'disposal': AssetDisposal.objects.filter(asset=asset, is_deleted=False).first(),
        'units_form': AssetUnitsForm() if asset.depreciation_method == Asset.UNITS_OF_PRODUCTION else None,
    }
    return render(request, 'assets/asset_detail.html', context)


@login_required
def asset_detail_by_qr(request, qr_code):
    """Landing page of a scanned asset label"""
    asset = get_object_or_404(Asset, qr_code=qr_code, is_deleted=False)
    company = getattr(request, 'current_company', None)

    if company is None or asset.company_id != company.pk:
        if not request.is_super_admin:
            raise Http404('Asset not found')
        request.session['selected_company_id'] = asset.company_id
        messages.info(request, f'Switched to business unit: {asset.company.name}')

    return redirect('assets:asset_detail', pk=asset.pk)


@login_required
def asset_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = AssetForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_asset(company, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, f"Asset {outcome['asset'].asset_tag} created successfully!")
                return redirect('assets:asset_detail', pk=outcome['asset'].pk)
            form.add_error('asset_tag', outcome['message'])
    else:
        form = AssetForm(company=company)

    return render(request, 'assets/asset_form.html', {'form': form, 'title': 'Create New Asset'})


@login_required
def asset_update(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)

    if request.method == 'POST':
        form = AssetForm(request.POST, instance=_get_asset(company, pk), company=company)
        if form.is_valid():
            outcome = update_asset(asset, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, f'Asset {asset.asset_tag} updated successfully!')
                return redirect('assets:asset_detail', pk=asset.pk)
            form.add_error('asset_tag', outcome['message'])
    else:
        form = AssetForm(instance=asset, company=company)

    return render(request, 'assets/asset_form.html', {
        'form': form,
        'asset': asset,
        'title': f'Update Asset: {asset.asset_tag}',
    })


@login_required
@user_passes_test(is_admin)
def asset_delete(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)

    if request.method == 'POST':
        outcome = delete_asset(asset, user=request.user, request=request)
        _flash(request, outcome)
        if outcome['success']:
            return redirect('assets:asset_list')
        return redirect('assets:asset_detail', pk=asset.pk)

    return render(request, 'assets/asset_confirm_delete.html', {'asset': asset})


@login_required
def asset_qr_code(request, pk):
    """View/download asset QR code"""
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)
    if not asset.qr_code_image:
        messages.error(request, 'QR code not available for this asset.')
        return redirect('assets:asset_detail', pk=asset.pk)

    return FileResponse(asset.qr_code_image.open(), content_type='image/png')


@login_required
def asset_lookup_api(request):
    """Find an asset of the current business unit by QR UUID or item code"""
    company = getattr(request, 'current_company', None)
    code = request.GET.get('code', '').strip()
    if company is None:
        return JsonResponse({'success': False, 'message': 'No business unit selected'}, status=400)
    if not code:
        return JsonResponse({'success': False, 'message': 'No code provided'}, status=400)

    asset = find_asset_by_code(company, code)
    if asset is None:
        return JsonResponse({'success': False, 'message': 'Asset not found'}, status=404)

    return JsonResponse({'success': True, 'message': 'Asset found', 'asset': asset_summary(asset)})


# ============================================
# Categories
# ============================================

@login_required
def category_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    categories = get_categories(company, search=search).annotate(
        asset_count=Count('assets', filter=Q(assets__is_deleted=False))
    )
    return render(request, 'assets/category_list.html', {
        'page_obj': _page(request, categories),
        'search': search,
    })


@login_required
@user_passes_test(is_admin)
def category_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = AssetCategoryForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_category(company, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('assets:category_list')
            form.add_error('code', outcome['message'])
    else:
        form = AssetCategoryForm(company=company)

    return render(request, 'assets/category_form.html', {'form': form, 'title': 'Create Category'})


@login_required
@user_passes_test(is_admin)
def category_update(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    category = get_object_or_404(AssetCategory, pk=pk, company=company, is_deleted=False)

    if request.method == 'POST':
        form = AssetCategoryForm(
            request.POST,
            instance=AssetCategory.objects.get(pk=category.pk),
            company=company,
        )
        if form.is_valid():
            outcome = update_category(category, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('assets:category_list')
            form.add_error('code', outcome['message'])
    else:
        form = AssetCategoryForm(instance=category, company=company)

    return render(request, 'assets/category_form.html', {
        'form': form, 'category': category, 'title': f'Update Category: {category.name}',
    })


@login_required
@user_passes_test(is_admin)
def category_delete(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    category = get_object_or_404(AssetCategory, pk=pk, company=company, is_deleted=False)

    if request.method == 'POST':
        _flash(request, delete_category(category, user=request.user, request=request))
        return redirect('assets:category_list')

    return render(request, 'assets/category_confirm_delete.html', {'category': category})


# ============================================
# Depreciation
# ============================================

@login_required
def asset_depreciation(request, pk):
    """Depreciation schedule and posted records of one asset"""
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)
    schedule = get_depreciation_schedule(asset)
    if not schedule['success']:
        messages.warning(request, schedule['message'])

    return render(request, 'assets/asset_depreciation.html', {
        'asset': asset,
        'schedule': schedule.get('schedule', []),
        'history': get_asset_depreciation_history(asset),
        'units_form': AssetUnitsForm() if asset.depreciation_method == Asset.UNITS_OF_PRODUCTION else None,
    })


@login_required
@require_POST
def asset_calculate_depreciation(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)
    outcome = calculate_asset_depreciation(asset, user=request.user)
    if outcome['success']:
        messages.success(
            request,
            f"Depreciation of {outcome['calculation']['depreciation_amount']} posted for {asset.asset_tag}",
        )
    else:
        messages.error(request, outcome['message'])
    return redirect('assets:asset_depreciation', pk=asset.pk)


@login_required
@require_POST
def asset_update_units(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    asset = _get_asset(company, pk)
    form = AssetUnitsForm(request.POST)
    if form.is_valid():
        _flash(request, update_asset_units(asset, form.cleaned_data['units'], user=request.user))
    else:
        messages.error(request, 'Units must be greater than zero')
    return redirect('assets:asset_depreciation', pk=asset.pk)


@login_required
def depreciation_dashboard(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    return render(request, 'assets/depreciation_dashboard.html', {
        'summary': get_depreciation_summary(company),
        'alerts': get_depreciation_alerts(company),
        'due_assets': get_assets_due_for_depreciation(company)[:50],
    })


@login_required
@user_passes_test(is_admin)
@require_POST
def depreciation_batch(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    outcome = batch_calculate_depreciation(company, user=request.user, request=request)
    if request.content_type == 'application/json':
        return _json(outcome)

    _flash(request, outcome)
    if outcome['skipped_assets']:
        messages.info(request, f"{outcome['skipped_assets']} units-of-production assets need usage figures")
    return redirect('assets:depreciation_dashboard')


# ============================================
# Deployments
# ============================================

def _get_deployment(company, pk):
    return get_object_or_404(
        AssetDeployment.objects.select_related('asset', 'employee', 'requested_by', 'approved_by'),
        pk=pk, company=company, is_deleted=False,
    )


@login_required
def deployment_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    status = request.GET.get('status', '')
    deployments = get_deployments(company, search=search, status=status or None)

    return render(request, 'assets/deployment_list.html', {
        'page_obj': _page(request, deployments),
        'search': search,
        'status': status,
        'status_choices': AssetDeployment.STATUS_CHOICES,
        'can_approve': can_approve_deployments(request.user),
    })


@login_required
def deployment_detail(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    deployment = _get_deployment(company, pk)
    return render(request, 'assets/deployment_detail.html', {
        'deployment': deployment,
        'can_approve': can_approve_deployments(request.user),
        'approval_form': DeploymentApprovalForm(),
        'reject_form': DeploymentRejectForm(),
        'return_form': AssetReturnForm(),
    })


@login_required
def deployment_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    initial = {}
    if request.GET.get('asset'):
        initial['asset'] = request.GET['asset']

    if request.method == 'POST':
        form = DeploymentForm(request.POST, company=company)
        if form.is_valid():
            data = form.cleaned_data
            outcome = create_deployment(data['asset'], data['employee'], data, user=request.user, request=request)
            if outcome['success']:
                messages.success(
                    request,
                    f"Deployment {outcome['deployment'].transmittal_number} created and awaiting accounting approval",
                )
                return redirect('assets:deployment_detail', pk=outcome['deployment'].pk)
            messages.error(request, outcome['message'])
    else:
        form = DeploymentForm(company=company, initial=initial)

    return render(request, 'assets/deployment_form.html', {'form': form, 'title': 'Deploy Asset'})


@login_required
def deployment_bulk_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = BulkDeploymentForm(request.POST, company=company)
        if form.is_valid():
            data = form.cleaned_data
            outcome = create_bulk_deployments(
                company, data['employee'], data['assets'], data, user=request.user, request=request
            )
            _flash(request, outcome)
            if outcome['success']:
                return redirect('assets:deployment_list')
    else:
        form = BulkDeploymentForm(company=company)

    return render(request, 'assets/deployment_form.html', {'form': form, 'title': 'Bulk Deploy Assets'})


@login_required
@require_POST
def deployment_approve(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    deployment = _get_deployment(company, pk)
    form = DeploymentApprovalForm(request.POST)
    notes = form.cleaned_data['accounting_notes'] if form.is_valid() else ''
    _flash(request, approve_deployment(deployment, request.user, accounting_notes=notes, request=request))
    return redirect('assets:deployment_detail', pk=deployment.pk)


@login_required
@require_POST
def deployment_reject(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    deployment = _get_deployment(company, pk)
    form = DeploymentRejectForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'A rejection reason is required')
        return redirect('assets:deployment_detail', pk=deployment.pk)

    _flash(request, reject_deployment(deployment, request.user, form.cleaned_data['reason'], request=request))
    return redirect('assets:deployment_detail', pk=deployment.pk)


@login_required
@require_POST
def deployment_bulk_approve(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        return JsonResponse({'success': False, 'message': 'No business unit selected'}, status=400)

    deployment_ids = _posted_ids(request, 'deployment_ids')
    if not deployment_ids:
        return JsonResponse({'success': False, 'message': 'No deployments provided'}, status=400)

    notes = request.POST.get('accounting_notes', '')
    return _json(bulk_approve_deployments(company, deployment_ids, request.user, accounting_notes=notes, request=request))


@login_required
def deployment_return(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    deployment = _get_deployment(company, pk)

    if request.method == 'POST':
        form = AssetReturnForm(request.POST)
        if form.is_valid():
            data = {
                'return_condition': form.cleaned_data['return_condition'] or None,
                'return_notes': form.cleaned_data['return_notes'],
            }
            outcome = return_asset(deployment, data, user=request.user, request=request)
            _flash(request, outcome)
            if outcome['success']:
                return redirect('assets:deployment_detail', pk=deployment.pk)
    else:
        form = AssetReturnForm(initial={'return_condition': deployment.asset.condition})

    return render(request, 'assets/deployment_return.html', {'form': form, 'deployment': deployment})


@login_required
@require_POST
def deployment_cancel(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    deployment = _get_deployment(company, pk)
    reason = request.POST.get('reason', '')
    _flash(request, cancel_deployment(deployment, reason=reason, user=request.user, request=request))
    return redirect('assets:deployment_detail', pk=deployment.pk)


@login_required
def pending_approvals(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    return render(request, 'assets/pending_approvals.html', {
        'deployments': get_pending_approvals(company),
        'can_approve': can_approve_deployments(request.user),
        'approval_form': DeploymentApprovalForm(),
    })


# ============================================
# Transfers
# ============================================

def _get_transfer(company, pk):
    return get_object_or_404(
        AssetTransfer.objects.filter(Q(from_company=company) | Q(to_company=company)).select_related(
            'asset', 'from_company', 'to_company', 'from_location', 'to_location',
            'requested_by', 'approved_by', 'rejected_by', 'completed_by',
        ),
        pk=pk, is_deleted=False,
    )


@login_required
def transfer_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    status = request.GET.get('status', '')
    transfers = get_asset_transfers(company, search=search, status=status or None)

    return render(request, 'assets/transfer_list.html', {
        'page_obj': _page(request, transfers),
        'search': search,
        'status': status,
        'status_choices': AssetTransfer.STATUS_CHOICES,
    })


@login_required
def transfer_detail(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    transfer = _get_transfer(company, pk)
    return render(request, 'assets/transfer_detail.html', {
        'transfer': transfer,
        'is_source': transfer.from_company_id == company.pk,
        'is_destination': transfer.to_company_id == company.pk,
        'decision_form': TransferDecisionForm(),
        'ship_form': TransferShipForm(initial={'tracking_number': transfer.tracking_number}),
        'complete_form': TransferCompleteForm(),
    })


@login_required
def transfer_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    initial = {}
    if request.GET.get('asset'):
        initial['asset'] = request.GET['asset']

    if request.method == 'POST':
        form = AssetTransferForm(request.POST, company=company)
        if form.is_valid():
            data = form.cleaned_data
            outcome = create_asset_transfer(
                data['asset'], company, data['to_company'], data, user=request.user, request=request
            )
            if outcome['success']:
                messages.success(request, f"Transfer {outcome['transfer'].transfer_number} requested")
                return redirect('assets:transfer_detail', pk=outcome['transfer'].pk)
            messages.error(request, outcome['message'])
    else:
        form = AssetTransferForm(company=company, initial=initial)

    return render(request, 'assets/transfer_form.html', {'form': form, 'title': 'Transfer Asset'})


@login_required
def transfer_bulk_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = BulkTransferForm(request.POST, company=company)
        if form.is_valid():
            data = form.cleaned_data
            outcome = create_bulk_transfers(
                data['assets'], company, data['to_company'], data, user=request.user, request=request
            )
            _flash(request, outcome)
            if outcome['processed_count']:
                return redirect('assets:transfer_list')
    else:
        form = BulkTransferForm(company=company)

    return render(request, 'assets/transfer_form.html', {'form': form, 'title': 'Bulk Transfer Assets'})


@login_required
@user_passes_test(is_admin)
@require_POST
def transfer_approve(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    transfer = _get_transfer(company, pk)
    form = TransferDecisionForm(request.POST)
    notes = form.cleaned_data['notes'] if form.is_valid() else ''
    _flash(request, approve_asset_transfer(transfer, request.user, notes=notes, request=request))
    return redirect('assets:transfer_detail', pk=transfer.pk)


@login_required
@user_passes_test(is_admin)
@require_POST
def transfer_reject(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    transfer = _get_transfer(company, pk)
    form = TransferDecisionForm(request.POST)
    reason = form.cleaned_data['notes'] if form.is_valid() else ''
    if not reason:
        messages.error(request, 'A rejection reason is required')
        return redirect('assets:transfer_detail', pk=transfer.pk)

    _flash(request, reject_asset_transfer(transfer, request.user, reason, request=request))
    return redirect('assets:transfer_detail', pk=transfer.pk)


@login_required
@require_POST
def transfer_ship(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    transfer = _get_transfer(company, pk)
    if transfer.from_company_id != company.pk:
        messages.error(request, 'Only the sending business unit can ship this transfer')
        return redirect('assets:transfer_detail', pk=transfer.pk)

    form = TransferShipForm(request.POST)
    tracking_number = form.cleaned_data['tracking_number'] if form.is_valid() else ''
    _flash(request, ship_asset_transfer(transfer, request.user, tracking_number=tracking_number, request=request))
    return redirect('assets:transfer_detail', pk=transfer.pk)


@login_required
@require_POST
def transfer_complete(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    transfer = _get_transfer(company, pk)
    if transfer.to_company_id != company.pk:
        messages.error(request, 'Only the receiving business unit can complete this transfer')
        return redirect('assets:transfer_detail', pk=transfer.pk)

    form = TransferCompleteForm(request.POST)
    condition_after = received_notes = None
    if form.is_valid():
        condition_after = form.cleaned_data['condition_after'] or None
        received_notes = form.cleaned_data['received_notes']

    outcome = complete_asset_transfer(
        transfer, request.user, condition_after=condition_after,
        received_notes=received_notes or '', request=request,
    )
    _flash(request, outcome)
    return redirect('assets:transfer_detail', pk=transfer.pk)


# ============================================
# Retirements
# ============================================

@login_required
def retirement_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    reason = request.GET.get('reason', '')
    approved = {'yes': True, 'no': False}.get(request.GET.get('approved', ''))
    retirements = get_asset_retirements(company, search=search, reason=reason or None, approved=approved)

    return render(request, 'assets/retirement_list.html', {
        'page_obj': _page(request, retirements),
        'search': search,
        'reason': reason,
        'reason_choices': AssetRetirement.REASON_CHOICES,
    })


@login_required
def retirement_eligible(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    rows = get_assets_eligible_for_retirement(company)
    action = request.GET.get('action', '')
    if action:
        rows = [row for row in rows if row['recommended_action'] == action]

    return render(request, 'assets/retirement_eligible.html', {'rows': rows, 'action': action})


@login_required
def retirement_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    initial = {}
    if request.GET.get('asset'):
        initial['asset'] = request.GET['asset']

    if request.method == 'POST':
        form = AssetRetirementForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_asset_retirement(
                form.cleaned_data['asset'], company, form.cleaned_data, user=request.user, request=request
            )
            if outcome['success']:
                messages.success(request, f"Retirement {outcome['retirement'].retirement_number} recorded")
                return redirect('assets:retirement_list')
            messages.error(request, outcome['message'])
    else:
        form = AssetRetirementForm(company=company, initial=initial)

    return render(request, 'assets/retirement_form.html', {'form': form, 'title': 'Retire Asset'})


@login_required
@user_passes_test(is_admin)
@require_POST
def retirement_approve(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    retirement = get_object_or_404(AssetRetirement, pk=pk, company=company, is_deleted=False)
    _flash(request, approve_asset_retirement(
        retirement, request.user, notes=request.POST.get('notes', ''), request=request
    ))
    return redirect('assets:retirement_list')


@login_required
@user_passes_test(is_admin)
@require_POST
def end_of_life_notifications(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    outcome = generate_end_of_life_notifications(company)
    if request.content_type == 'application/json':
        return _json(outcome)
    _flash(request, outcome)
    return redirect('assets:retirement_eligible')


# ============================================
# Disposals
# ============================================

@login_required
def disposal_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    reason = request.GET.get('reason', '')
    approved = {'yes': True, 'no': False}.get(request.GET.get('approved', ''))
    disposals = get_asset_disposals(company, search=search, reason=reason or None, approved=approved)

    return render(request, 'assets/disposal_list.html', {
        'page_obj': _page(request, disposals),
        'search': search,
        'reason': reason,
        'reason_choices': AssetDisposal.REASON_CHOICES,
        'summary': get_disposal_summary(company),
    })


@login_required
def disposal_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    initial = {}
    if request.GET.get('asset'):
        initial['asset'] = request.GET['asset']

    if request.method == 'POST':
        form = AssetDisposalForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_asset_disposal(
                form.cleaned_data['asset'], company, form.cleaned_data, user=request.user, request=request
            )
            if outcome['success']:
                disposal = outcome['disposal']
                messages.success(
                    request,
                    f'Disposal {disposal.disposal_number} recorded with gain/loss of {disposal.gain_loss}',
                )
                return redirect('assets:disposal_list')
            messages.error(request, outcome['message'])
    else:
        form = AssetDisposalForm(company=company, initial=initial)

    return render(request, 'assets/disposal_form.html', {'form': form, 'title': 'Dispose Asset'})


@login_required
@user_passes_test(is_admin)
def disposal_bulk_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = BulkDisposalForm(request.POST, company=company)
        if form.is_valid():
            data = {key: value for key, value in form.cleaned_data.items() if key != 'assets' and value not in (None, '')}
            outcome = create_bulk_disposals(
                company, [asset.pk for asset in form.cleaned_data['assets']], data,
                user=request.user, request=request,
            )
            _flash(request, outcome)
            if outcome['processed_count']:
                return redirect('assets:disposal_list')
    else:
        form = BulkDisposalForm(company=company)

    return render(request, 'assets/disposal_form.html', {'form': form, 'title': 'Bulk Dispose Assets'})


@login_required
@user_passes_test(is_admin)
@require_POST
def disposal_approve(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    disposal = get_object_or_404(AssetDisposal, pk=pk, company=company, is_deleted=False)
    _flash(request, approve_asset_disposal(
        disposal, request.user, notes=request.POST.get('notes', ''), request=request
    ))
    return redirect('assets:disposal_list')


@login_required
def disposal_summary(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        return JsonResponse({'success': False, 'message': 'No business unit selected'}, status=400)
    return JsonResponse(to_json_value({'success': True, 'message': 'Disposal summary', **get_disposal_summary(company)}))


# ============================================
# Bulk Operations
# ============================================

@login_required
@user_passes_test(is_admin)
def bulk_update(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = BulkUpdateForm(request.POST, company=company)
        if form.is_valid():
            outcome = bulk_update_assets(
                company, [asset.pk for asset in form.cleaned_data['assets']], form.updates(),
                user=request.user, request=request,
            )
            _flash(request, outcome)
            if outcome['processed_count']:
                return redirect('assets:asset_list')
    else:
        form = BulkUpdateForm(company=company, initial={'assets': request.GET.getlist('asset')})

    return render(request, 'assets/bulk_update.html', {'form': form})


@login_required
@require_POST
def bulk_return(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        return JsonResponse({'success': False, 'message': 'No business unit selected'}, status=400)

    deployment_ids = _posted_ids(request, 'deployment_ids')
    if not deployment_ids:
        return JsonResponse({'success': False, 'message': 'No deployments provided'}, status=400)

    data = {
        'return_condition': request.POST.get('return_condition') or None,
        'return_notes': request.POST.get('return_notes', ''),
    }
    return _json(bulk_return_assets(company, deployment_ids, data, user=request.user, request=request))


@login_required
@user_passes_test(is_admin)
@require_POST
def bulk_delete(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        return JsonResponse({'success': False, 'message': 'No business unit selected'}, status=400)

    asset_ids = _posted_ids(request, 'asset_ids')
    if not asset_ids:
        return JsonResponse({'success': False, 'message': 'No assets provided'}, status=400)

    return _json(bulk_delete_assets(company, asset_ids, user=request.user, request=request))


# ============================================
# Reports
# ============================================

@login_required
def reports_dashboard(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    reports = [
        {'key': 'inventory', 'title': 'Asset Inventory', 'description': 'Every asset with its status and value'},
        {'key': 'deployments', 'title': 'Deployments', 'description': 'Transmittals and returns'},
        {'key': 'depreciation', 'title': 'Depreciation', 'description': 'Posted monthly depreciation'},
        {'key': 'transfers', 'title': 'Transfers', 'description': 'Transfers in and out of this business unit'},
        {'key': 'disposals', 'title': 'Disposals', 'description': 'Disposals with gain or loss'},
    ]
    return render(request, 'assets/reports_dashboard.html', {
        'reports': reports,
        'filter_form': ReportFilterForm(request.GET or None),
        'inventory': AssetInventoryReport(company).generate(),
    })


@login_required
def report_export(request, report_type):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    report_class = REPORTS.get(report_type)
    if report_class is None:
        raise Http404('Unknown report')

    report = report_class(
        company,
        start_date=parse_date(request.GET.get('date_from')),
        end_date=parse_date(request.GET.get('date_to')),
    )
    return report.export_to_excel(request)


# ============================================
# Bulk import
# ============================================

IMPORT_SESSION_KEY = 'asset_import'


@login_required
def asset_import(request):
    """Upload a sheet of new assets; nothing is created before the preview is confirmed"""
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = AssetImportForm(request.POST, request.FILES)
        if form.is_valid():
            upload = form.cleaned_data['file']
            outcome = read_asset_file(upload)
            if outcome['success']:
                request.session[IMPORT_SESSION_KEY] = {
                    'company_id': company.pk,
                    'filename': upload.name,
                    'rows': outcome['rows'],
                    'options': form.options(),
                }
                return redirect('assets:asset_import_preview')
            form.add_error('file', outcome['message'])
    else:
        form = AssetImportForm()

    return render(request, 'assets/asset_import.html', {'form': form})


@login_required
def asset_import_preview(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    pending = request.session.get(IMPORT_SESSION_KEY)
    if not pending or pending.get('company_id') != company.pk:
        messages.error(request, 'Upload a file to import first.')
        return redirect('assets:asset_import')

    if request.method == 'POST':
        outcome = create_bulk_assets(
            company, pending['rows'], pending['options'], user=request.user, request=request
        )
        if outcome['success']:
            del request.session[IMPORT_SESSION_KEY]
            messages.success(request, outcome['message'])
            return redirect('assets:asset_list')
        messages.error(request, outcome['message'])

    return render(request, 'assets/asset_import_preview.html', {
        'filename': pending['filename'],
        'options': pending['options'],
        'preview': preview_bulk_assets(company, pending['rows'], pending['options']),
    })


@login_required
def asset_import_template(request):
    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = 'attachment; filename=asset_import_template.xlsx'
    build_import_template().save(response)
    return response


# ============================================
# Scanning and inventory verification
# ============================================

@login_required
def asset_scan(request):
    """Scan page: label scanner input plus a quick search"""
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    query = request.GET.get('q', '').strip()
    return render(request, 'assets/asset_scan.html', {
        'form': ScanForm(company=company),
        'query': query,
        'matches': quick_asset_lookup(company, query) if query else [],
        'recent_scans': AssetScanLog.objects.filter(company=company).select_related(
            'asset', 'scanned_by'
        )[:10],
    })


@login_required
@require_POST
def asset_scan_api(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        return JsonResponse({'success': False, 'message': 'No business unit selected'}, status=400)
    return _json(scan_asset(company, request.POST.get('code', ''), user=request.user))


def _get_verification(company, pk):
    return get_object_or_404(InventoryVerification, pk=pk, company=company, is_deleted=False)


@login_required
def verification_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    status = request.GET.get('status', '')
    return render(request, 'assets/verification_list.html', {
        'page_obj': _page(request, get_inventory_verifications(company, status=status)),
        'status': status,
        'status_choices': InventoryVerification.STATUS_CHOICES,
    })


@login_required
def verification_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = InventoryVerificationForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_inventory_verification(company, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('assets:verification_detail', pk=outcome['verification'].pk)
            form.add_error(None, outcome['message'])
    else:
        form = InventoryVerificationForm(company=company, initial={'start_date': timezone.localdate()})

    return render(request, 'assets/verification_form.html', {'form': form, 'title': 'New Inventory Verification'})


@login_required
def verification_detail(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    verification = _get_verification(company, pk)
    items = verification.items.select_related(
        'asset', 'expected_location', 'actual_location', 'expected_assignee', 'actual_assignee', 'scanned_by'
    )
    status = request.GET.get('status', '')
    if status:
        items = items.filter(status=status)

    return render(request, 'assets/verification_detail.html', {
        'verification': verification,
        'page_obj': _page(request, items),
        'status': status,
        'status_choices': VerificationItem.STATUS_CHOICES,
        'scan_form': ScanForm(company=company),
        'item_form': VerificationItemForm(company=company),
    })


@login_required
@require_POST
def verification_scan(request, pk):
    """Scan a label against a verification; answers JSON to scanner clients"""
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    verification = _get_verification(company, pk)
    form = ScanForm(request.POST, company=company)
    if form.is_valid():
        outcome = record_verification_scan(
            verification, form.cleaned_data['code'], user=request.user,
            location=form.cleaned_data['location'], request=request,
        )
    else:
        outcome = {'success': False, 'message': 'No code provided'}

    if request.headers.get('Accept') == 'application/json':
        outcome.pop('item', None)
        return _json(outcome)
    _flash(request, outcome)
    return redirect('assets:verification_detail', pk=verification.pk)


@login_required
@require_POST
def verification_item_update(request, pk, item_pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    verification = _get_verification(company, pk)
    item = get_object_or_404(verification.items.select_related('asset'), pk=item_pk)
    form = VerificationItemForm(request.POST, company=company)
    if form.is_valid():
        _flash(request, update_verification_item(item, form.cleaned_data, user=request.user, request=request))
    else:
        messages.error(request, 'Choose a valid verification status.')
    return redirect('assets:verification_detail', pk=verification.pk)


@login_required
@user_passes_test(is_admin)
@require_POST
def verification_complete(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    verification = _get_verification(company, pk)
    _flash(request, complete_inventory_verification(verification, user=request.user, request=request))
    return redirect('assets:verification_detail', pk=verification.pk)


@login_required
@user_passes_test(is_admin)
@require_POST
def verification_cancel(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    verification = _get_verification(company, pk)
    _flash(request, cancel_inventory_verification(verification, user=request.user, request=request))
    return redirect('assets:verification_detail', pk=verification.pk)


# ============================================
# Utilization
# ============================================

@login_required
def utilization(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    filter_form = UtilizationFilterForm(request.GET or None, company=company)
    category = None
    threshold = IDLE_THRESHOLD_DAYS
    if filter_form.is_valid():
        category = filter_form.cleaned_data['category']
        threshold = filter_form.cleaned_data['threshold_days'] or IDLE_THRESHOLD_DAYS

    return render(request, 'assets/utilization.html', {
        'filter_form': filter_form,
        'summary': get_utilization_summary(company, category=category, threshold_days=threshold),
    })
