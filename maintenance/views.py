from django.shortcuts import render, redirect, get_object_or_404
from django.contrib.auth.decorators import login_required
from django.contrib import messages
from django.core.paginator import Paginator

from core.utils import page_size, parse_date
from .forms import AssetMaintenanceForm, MaintenanceFilterForm
from .models import AssetMaintenance
from .services import (
    create_maintenance_record, delete_maintenance_record,
    get_maintenance_records, get_maintenance_schedule, update_maintenance_record,
)


def _company_or_redirect(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        messages.error(request, 'Please select a business unit first.')
    return company


def _get_record(company, pk):
    return get_object_or_404(
        AssetMaintenance.objects.select_related('asset'),
        pk=pk, asset__company=company, asset__is_deleted=False,
    )


@login_required
def maintenance_list(request):
    company = _company_or_redirect(request)
    if company is None:
        return redirect('assets:dashboard')

    filter_form = MaintenanceFilterForm(request.GET or None)
    records = get_maintenance_records(company, **filter_form.filters())

    paginator = Paginator(records, page_size())
    page_obj = paginator.get_page(request.GET.get('page'))

    return render(request, 'maintenance/maintenance_list.html', {
        'page_obj': page_obj,
        'filter_form': filter_form,
    })


@login_required
def maintenance_create(request):
    company = _company_or_redirect(request)
    if company is None:
        return redirect('assets:dashboard')

    initial = {}
    if request.GET.get('asset'):
        initial['asset'] = request.GET['asset']

    if request.method == 'POST':
        form = AssetMaintenanceForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_maintenance_record(
                form.cleaned_data['asset'], form.cleaned_data, user=request.user, request=request
            )
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('maintenance:maintenance_detail', pk=outcome['maintenance'].pk)
            messages.error(request, outcome['message'])
    else:
        form = AssetMaintenanceForm(company=company, initial=initial)

    return render(request, 'maintenance/maintenance_form.html', {'form': form, 'title': 'Record Maintenance'})


@login_required
def maintenance_detail(request, pk):
    company = _company_or_redirect(request)
    if company is None:
        return redirect('assets:dashboard')

    maintenance = _get_record(company, pk)
    return render(request, 'maintenance/maintenance_detail.html', {'maintenance': maintenance})


@login_required
def maintenance_update(request, pk):
    company = _company_or_redirect(request)
    if company is None:
        return redirect('assets:dashboard')

    maintenance = _get_record(company, pk)

    if request.method == 'POST':
        form = AssetMaintenanceForm(request.POST, instance=_get_record(company, pk), company=company)
        if form.is_valid():
            outcome = update_maintenance_record(maintenance, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('maintenance:maintenance_detail', pk=maintenance.pk)
            messages.error(request, outcome['message'])
    else:
        form = AssetMaintenanceForm(instance=maintenance, company=company)

    return render(request, 'maintenance/maintenance_form.html', {
        'form': form, 'maintenance': maintenance, 'title': 'Update Maintenance',
    })


@login_required
def maintenance_delete(request, pk):
    company = _company_or_redirect(request)
    if company is None:
        return redirect('assets:dashboard')

    maintenance = _get_record(company, pk)

    if request.method == 'POST':
        outcome = delete_maintenance_record(maintenance, user=request.user, request=request)
        if outcome['success']:
            messages.success(request, outcome['message'])
            return redirect('maintenance:maintenance_list')
        messages.error(request, outcome['message'])
        return redirect('maintenance:maintenance_detail', pk=pk)

    return render(request, 'maintenance/maintenance_confirm_delete.html', {'maintenance': maintenance})


@login_required
def maintenance_schedule(request):
    company = _company_or_redirect(request)
    if company is None:
        return redirect('assets:dashboard')

    date_from = parse_date(request.GET.get('date_from'))
    date_to = parse_date(request.GET.get('date_to'))
    schedule = get_maintenance_schedule(company, date_from=date_from, date_to=date_to)

    return render(request, 'maintenance/maintenance_schedule.html', {
        'schedule': schedule,
        'overdue_count': sum(1 for item in schedule if item['is_overdue']),
        'date_from': date_from,
        'date_to': date_to,
    })
