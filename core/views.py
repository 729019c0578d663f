import logging

from django.shortcuts import render, redirect, get_object_or_404
from django.contrib.auth.decorators import login_required, user_passes_test
from django.contrib import messages
from django.core.exceptions import ObjectDoesNotExist
from django.core.paginator import Paginator
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.http import HttpResponse
from django.urls import reverse
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment

from .audit_utils import (
    get_audit_log_stats, get_audit_logs, get_model_fields,
    log_create, log_delete, log_export, log_update,
)
from .forms import AuditLogFilterForm, CompanyForm, SystemSettingForm
from .models import AuditLog, Company
from .services import (
    create_system_setting, delete_system_setting, get_setting_categories,
    get_system_setting, get_system_settings, update_system_setting,
)
from .utils import page_size

logger = logging.getLogger(__name__)

EXPORT_LIMIT = 5000


def is_admin(user):
    """Super admin, or an employee flagged as business unit admin"""
    if user.is_superuser:
        return True
    try:
        return user.employee.is_admin
    except ObjectDoesNotExist:
        return False


def _super_admin_only(request, message):
    if getattr(request, 'is_super_admin', False):
        return None
    messages.error(request, message)
    return redirect('assets:dashboard')


@login_required
def company_list(request):
    """List all business units (Super Admin only)"""
    denied = _super_admin_only(request, 'Only super admin can access business unit management')
    if denied:
        return denied

    companies = Company.objects.filter(is_deleted=False).order_by('name')
    search = request.GET.get('search', '')
    if search:
        companies = companies.filter(Q(name__icontains=search) | Q(code__icontains=search))

    paginator = Paginator(companies, page_size())
    page_obj = paginator.get_page(request.GET.get('page'))

    return render(request, 'core/company_list.html', {'page_obj': page_obj, 'search': search})


@login_required
def company_create(request):
    denied = _super_admin_only(request, 'Only super admin can create business units')
    if denied:
        return denied

    if request.method == 'POST':
        form = CompanyForm(request.POST)
        if form.is_valid():
            try:
                with transaction.atomic():
                    company = form.save()
                    log_create(request, company, company=company)
            except DatabaseError:
                logger.exception("Failed to create business unit %s", form.cleaned_data.get('code'))
                messages.error(request, 'Failed to create business unit')
            else:
                logger.info("Business unit %s created by %s", company.code, request.user.username)
                messages.success(request, f'Business unit "{company.name}" created successfully!')
                return redirect('core:company_list')
    else:
        form = CompanyForm()

    return render(request, 'core/company_form.html', {'form': form, 'action': 'Create'})


@login_required
def company_detail(request, pk):
    denied = _super_admin_only(request, 'Only super admin can view business unit details')
    if denied:
        return denied

    company = get_object_or_404(Company, pk=pk, is_deleted=False)

    from assets.models import Asset
    from users.models import Employee

    assets = Asset.objects.filter(company=company, is_deleted=False)
    stats = {
        'total_assets': assets.count(),
        'deployed_assets': assets.filter(status=Asset.DEPLOYED).count(),
        'total_employees': Employee.objects.filter(company=company, is_active=True, is_deleted=False).count(),
    }

    return render(request, 'core/company_detail.html', {'company': company, 'stats': stats})


@login_required
def company_update(request, pk):
    denied = _super_admin_only(request, 'Only super admin can update business units')
    if denied:
        return denied

    company = get_object_or_404(Company, pk=pk, is_deleted=False)
    old_values = get_model_fields(company)

    if request.method == 'POST':
        form = CompanyForm(request.POST, instance=company)
        if form.is_valid():
            try:
                with transaction.atomic():
                    company = form.save()
                    log_update(request, company, old_values=old_values, company=company)
            except DatabaseError:
                logger.exception("Failed to update business unit %s", company.pk)
                messages.error(request, 'Failed to update business unit')
            else:
                messages.success(request, f'Business unit "{company.name}" updated successfully!')
                return redirect('core:company_detail', pk=company.pk)
    else:
        form = CompanyForm(instance=company)

    return render(request, 'core/company_form.html', {'form': form, 'company': company, 'action': 'Update'})


@login_required
def company_delete(request, pk):
    denied = _super_admin_only(request, 'Only super admin can delete business units')
    if denied:
        return denied

    company = get_object_or_404(Company, pk=pk, is_deleted=False)

    if request.method == 'POST':
        try:
            with transaction.atomic():
                log_delete(request, company, company=company)
                company.is_active = False
                company.soft_delete()
        except DatabaseError:
            logger.exception("Failed to delete business unit %s", company.pk)
            messages.error(request, 'Failed to delete business unit')
            return redirect('core:company_detail', pk=company.pk)

        if request.session.get('selected_company_id') == company.pk:
            request.session.pop('selected_company_id', None)
        logger.info("Business unit %s deleted by %s", company.code, request.user.username)
        messages.success(request, f'Business unit "{company.name}" deleted successfully!')
        return redirect('core:company_list')

    return render(request, 'core/company_confirm_delete.html', {'company': company})


@login_required
def set_company_context(request, company_id=None):
    """Pick the business unit a super admin is working in, or clear it"""
    denied = _super_admin_only(request, 'Only super admin can switch business unit')
    if denied:
        return denied

    if company_id:
        company = get_object_or_404(Company, pk=company_id, is_deleted=False, is_active=True)
        request.session['selected_company_id'] = company.id
        messages.success(request, f'Now viewing data for: {company.name}')
    else:
        request.session.pop('selected_company_id', None)
        messages.success(request, 'Now viewing data for all business units')

    next_url = request.GET.get('next')
    if not next_url or not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        next_url = reverse('assets:dashboard')
    return redirect(next_url)


def _audit_scope(request):
    """Business unit whose logs the user may see; None means all (super admin only)"""
    return getattr(request, 'current_company', None)


@login_required
@user_passes_test(is_admin)
def audit_log_list(request):
    company = _audit_scope(request)
    form = AuditLogFilterForm(request.GET or None, company=company)
    logs = get_audit_logs(company=company, **form.filters())

    paginator = Paginator(logs, 50)
    page_obj = paginator.get_page(request.GET.get('page'))

    context = {
        'page_obj': page_obj,
        'form': form,
        'company': company,
        'is_super_admin': getattr(request, 'is_super_admin', False),
        'query_string': request.GET.urlencode(),
    }
    return render(request, 'core/audit_log_list.html', context)


@login_required
@user_passes_test(is_admin)
def audit_log_detail(request, pk):
    log = get_object_or_404(AuditLog, pk=pk)
    company = _audit_scope(request)

    if company is not None and log.company_id != company.pk:
        messages.error(request, 'You do not have permission to view this audit log.')
        return redirect('core:audit_log_list')

    return render(request, 'core/audit_log_detail.html', {'log': log, 'company': company})


@login_required
@user_passes_test(is_admin)
def audit_log_export(request):
    """Export the filtered audit logs to Excel"""
    company = _audit_scope(request)
    form = AuditLogFilterForm(request.GET or None, company=company)
    logs = list(get_audit_logs(company=company, **form.filters())[:EXPORT_LIMIT])

    wb = Workbook()
    ws = wb.active
    ws.title = "Audit Logs"

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="C17845", end_color="C17845", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    headers = ['Timestamp', 'User', 'Action', 'Table', 'Object', 'Description',
               'Changed Fields', 'IP Address', 'Business Unit']
    widths = [20, 15, 12, 18, 30, 50, 30, 15, 20]

    for col_num, (header, width) in enumerate(zip(headers, widths), 1):
        cell = ws.cell(row=1, column=col_num, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        ws.column_dimensions[cell.column_letter].width = width

    for row_num, log in enumerate(logs, 2):
        ws.cell(row=row_num, column=1, value=timezone.localtime(log.timestamp).strftime('%Y-%m-%d %H:%M:%S'))
        ws.cell(row=row_num, column=2, value=log.username)
        ws.cell(row=row_num, column=3, value=log.get_action_display())
        ws.cell(row=row_num, column=4, value=log.table_name)
        ws.cell(row=row_num, column=5, value=log.object_repr)
        ws.cell(row=row_num, column=6, value=log.description)
        ws.cell(row=row_num, column=7, value=', '.join(log.changed_fields) if log.changed_fields else '-')
        ws.cell(row=row_num, column=8, value=log.ip_address or '-')
        ws.cell(row=row_num, column=9, value=log.company.name if log.company else '-')

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename=audit_logs_{timezone.now().strftime("%Y%m%d_%H%M%S")}.xlsx'
    wb.save(response)

    log_export(request, AuditLog, len(logs), 'Excel')
    return response


@login_required
@user_passes_test(is_admin)
def audit_log_stats(request):
    company = _audit_scope(request)
    context = {
        'stats': get_audit_log_stats(company=company),
        'company': company,
    }
    return render(request, 'core/audit_log_stats.html', context)


@login_required
@user_passes_test(is_admin)
def system_setting_list(request):
    search = request.GET.get('search', '')
    category = request.GET.get('category', '')

    settings = get_system_settings(search=search, category=category)
    paginator = Paginator(settings, page_size())
    page_obj = paginator.get_page(request.GET.get('page'))

    context = {
        'page_obj': page_obj,
        'search': search,
        'category': category,
        'categories': get_setting_categories(),
    }
    return render(request, 'core/system_setting_list.html', context)


@login_required
def system_setting_create(request):
    denied = _super_admin_only(request, 'Only super admin can change system settings')
    if denied:
        return denied

    if request.method == 'POST':
        form = SystemSettingForm(request.POST)
        if form.is_valid():
            outcome = create_system_setting(form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('core:system_setting_list')
            form.add_error('key', outcome['message'])
    else:
        form = SystemSettingForm()

    return render(request, 'core/system_setting_form.html', {'form': form, 'action': 'Create'})


@login_required
def system_setting_update(request, pk):
    denied = _super_admin_only(request, 'Only super admin can change system settings')
    if denied:
        return denied

    setting = get_system_setting(pk)
    if setting is None:
        messages.error(request, 'System setting not found')
        return redirect('core:system_setting_list')

    if request.method == 'POST':
        # Bind to a copy so a rejected key does not leak into the instance
        form = SystemSettingForm(request.POST, instance=get_system_setting(pk))
        if form.is_valid():
            outcome = update_system_setting(setting, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('core:system_setting_list')
            form.add_error('key', outcome['message'])
    else:
        form = SystemSettingForm(instance=setting)

    return render(request, 'core/system_setting_form.html', {'form': form, 'setting': setting, 'action': 'Update'})


@login_required
def system_setting_delete(request, pk):
    denied = _super_admin_only(request, 'Only super admin can change system settings')
    if denied:
        return denied

    setting = get_system_setting(pk)
    if setting is None:
        messages.error(request, 'System setting not found')
        return redirect('core:system_setting_list')

    if request.method == 'POST':
        outcome = delete_system_setting(setting, user=request.user, request=request)
        if outcome['success']:
            messages.success(request, outcome['message'])
        else:
            messages.error(request, outcome['message'])
        return redirect('core:system_setting_list')

    return render(request, 'core/system_setting_confirm_delete.html', {'setting': setting})
