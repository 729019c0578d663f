import logging

from django.shortcuts import render, redirect, get_object_or_404
from django.urls import reverse_lazy
from django.contrib.auth import views as auth_views
from django.contrib.auth.decorators import login_required, user_passes_test
from django.contrib import messages
from django.core.paginator import Paginator
from django.db import DatabaseError, transaction
from django.db.models import Count, Q
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from core.audit_utils import log_create
from core.utils import page_size
from core.views import is_admin
from .forms import DepartmentForm, EmployeeForm, EmployeeRoleForm, LocationForm, ProfileForm, RoleForm, RolePermissionsForm
from .models import Department, Employee, Location, Notification, Role
from .permissions import (
    assign_role, can_manage_permissions, can_manage_roles, get_employee_permissions,
    get_employees_with_permissions, update_role_permissions,
)
from .profile import get_assigned_assets, get_profile_stats, update_profile
from .services import (
    create_department, create_employee, create_role,
    delete_department, delete_employee, delete_role,
    get_employees, get_roles, mark_all_notifications_read, unread_notification_count,
    update_department, update_employee, update_role,
)

logger = logging.getLogger(__name__)


def _require_company(request):
    company = getattr(request, 'current_company', None)
    if company is None:
        messages.error(request, 'Please select a business unit first.')
    return company


def _unbound_copy(instance):
    """Separate instance for a ModelForm so validation does not touch the original"""
    return type(instance).objects.get(pk=instance.pk)


def _flash(request, outcome):
    if outcome['success']:
        messages.success(request, outcome['message'])
    else:
        messages.error(request, outcome['message'])


# --------------------------------------------------------------------------
# Employees
# --------------------------------------------------------------------------

@login_required
@user_passes_test(is_admin)
def employee_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    department = request.GET.get('department', '')
    role = request.GET.get('role', '')
    status = request.GET.get('status', 'active')

    employees = get_employees(
        company, search=search, department=department or None, role=role or None,
        is_active=status != 'inactive',
    )

    paginator = Paginator(employees, page_size())
    page_obj = paginator.get_page(request.GET.get('page'))

    context = {
        'page_obj': page_obj,
        'search': search,
        'department': department,
        'role': role,
        'status': status,
        'departments': Department.objects.filter(company=company, is_deleted=False, is_active=True),
        'roles': get_roles(),
        'company': company,
    }
    return render(request, 'users/employee_list.html', context)


@login_required
@user_passes_test(is_admin)
def employee_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = EmployeeForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_employee(company, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:employee_detail', pk=outcome['employee'].pk)
            messages.error(request, outcome['message'])
    else:
        form = EmployeeForm(company=company)

    return render(request, 'users/employee_form.html', {'form': form, 'title': 'Create Employee'})


@login_required
@user_passes_test(is_admin)
def employee_detail(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    employee = get_object_or_404(Employee, pk=pk, company=company, is_deleted=False)
    deployments = employee.deployments.filter(is_deleted=False).select_related('asset').order_by('-created_at')[:20]

    context = {
        'employee': employee,
        'assigned_assets': employee.assigned_assets.filter(is_deleted=False),
        'deployments': deployments,
    }
    return render(request, 'users/employee_detail.html', context)


@login_required
@user_passes_test(is_admin)
def employee_update(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    employee = get_object_or_404(Employee, pk=pk, company=company, is_deleted=False)

    if request.method == 'POST':
        form = EmployeeForm(request.POST, instance=_unbound_copy(employee), company=company)
        if form.is_valid():
            outcome = update_employee(employee, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:employee_detail', pk=employee.pk)
            messages.error(request, outcome['message'])
    else:
        form = EmployeeForm(instance=employee, company=company)

    return render(request, 'users/employee_form.html', {
        'form': form, 'employee': employee, 'title': 'Update Employee',
    })


@login_required
@user_passes_test(is_admin)
def employee_delete(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    employee = get_object_or_404(Employee, pk=pk, company=company, is_deleted=False)

    if employee.user_id == request.user.pk:
        messages.error(request, 'You cannot delete your own employee record.')
        return redirect('users:employee_list')

    if request.method == 'POST':
        outcome = delete_employee(employee, user=request.user, request=request)
        _flash(request, outcome)
        if outcome['success']:
            return redirect('users:employee_list')
        return redirect('users:employee_detail', pk=employee.pk)

    return render(request, 'users/employee_confirm_delete.html', {'employee': employee})


# --------------------------------------------------------------------------
# Roles
# --------------------------------------------------------------------------

@login_required
@user_passes_test(is_admin)
def role_list(request):
    search = request.GET.get('search', '')
    roles = get_roles(search=search).annotate(
        employee_count=Count('employees', filter=Q(employees__is_active=True, employees__is_deleted=False))
    )
    return render(request, 'users/role_list.html', {'roles': roles, 'search': search})


@login_required
@user_passes_test(is_admin)
def role_create(request):
    if request.method == 'POST':
        form = RoleForm(request.POST)
        if form.is_valid():
            outcome = create_role(form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:role_list')
            form.add_error('code', outcome['message'])
    else:
        form = RoleForm()

    return render(request, 'users/role_form.html', {'form': form, 'title': 'Create Role'})


@login_required
@user_passes_test(is_admin)
def role_update(request, pk):
    role = get_object_or_404(Role, pk=pk, is_deleted=False, is_active=True)

    if request.method == 'POST':
        form = RoleForm(request.POST, instance=_unbound_copy(role))
        if form.is_valid():
            outcome = update_role(role, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:role_list')
            form.add_error('code', outcome['message'])
    else:
        form = RoleForm(instance=role)

    return render(request, 'users/role_form.html', {'form': form, 'role': role, 'title': 'Update Role'})


@login_required
@user_passes_test(is_admin)
def role_delete(request, pk):
    role = get_object_or_404(Role, pk=pk, is_deleted=False, is_active=True)

    if request.method == 'POST':
        _flash(request, delete_role(role, user=request.user, request=request))
        return redirect('users:role_list')

    return render(request, 'users/role_confirm_delete.html', {'role': role})


# --------------------------------------------------------------------------
# Departments & Locations
# --------------------------------------------------------------------------

@login_required
@user_passes_test(is_admin)
def department_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    departments = Department.objects.filter(company=company, is_deleted=False, is_active=True).annotate(
        employee_count=Count('employees', filter=Q(employees__is_active=True, employees__is_deleted=False))
    ).select_related('head', 'parent_department').order_by('name')

    return render(request, 'users/department_list.html', {'departments': departments, 'company': company})


@login_required
@user_passes_test(is_admin)
def department_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = DepartmentForm(request.POST, company=company)
        if form.is_valid():
            outcome = create_department(company, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:department_list')
            form.add_error('code', outcome['message'])
    else:
        form = DepartmentForm(company=company)

    return render(request, 'users/department_form.html', {'form': form, 'title': 'Create Department'})


@login_required
@user_passes_test(is_admin)
def department_update(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    department = get_object_or_404(Department, pk=pk, company=company, is_deleted=False, is_active=True)

    if request.method == 'POST':
        form = DepartmentForm(request.POST, instance=_unbound_copy(department), company=company)
        if form.is_valid():
            outcome = update_department(department, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:department_list')
            form.add_error('code', outcome['message'])
    else:
        form = DepartmentForm(instance=department, company=company)

    return render(request, 'users/department_form.html', {
        'form': form, 'department': department, 'title': 'Update Department',
    })


@login_required
@user_passes_test(is_admin)
def department_delete(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    department = get_object_or_404(Department, pk=pk, company=company, is_deleted=False, is_active=True)

    if request.method == 'POST':
        _flash(request, delete_department(department, user=request.user, request=request))
        return redirect('users:department_list')

    return render(request, 'users/department_confirm_delete.html', {'department': department})


@login_required
@user_passes_test(is_admin)
def location_list(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    locations = Location.objects.filter(company=company, is_deleted=False, is_active=True).annotate(
        asset_count=Count('assets', filter=Q(assets__is_deleted=False))
    ).order_by('name')

    return render(request, 'users/location_list.html', {'locations': locations, 'company': company})


@login_required
@user_passes_test(is_admin)
def location_create(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = LocationForm(request.POST, company=company)
        if form.is_valid():
            try:
                with transaction.atomic():
                    location = form.save(commit=False)
                    location.company = company
                    location.save()
                    log_create(request, location, company=company)
            except DatabaseError:
                logger.exception("Failed to create location %s", form.cleaned_data.get('code'))
                messages.error(request, 'Failed to create location')
            else:
                messages.success(request, f'Location "{location.name}" has been created successfully.')
                return redirect('users:location_list')
    else:
        form = LocationForm(company=company)

    return render(request, 'users/location_form.html', {'form': form, 'title': 'Create Location'})


# --------------------------------------------------------------------------
# Notifications
# --------------------------------------------------------------------------

@login_required
def notification_list(request):
    employee = getattr(request, 'current_employee', None)
    if employee is None:
        messages.error(request, 'Notifications are only available to employees.')
        return redirect('assets:dashboard')

    notifications = employee.notifications.all()
    if request.GET.get('unread'):
        notifications = notifications.filter(is_read=False)

    paginator = Paginator(notifications, page_size())
    page_obj = paginator.get_page(request.GET.get('page'))

    return render(request, 'users/notification_list.html', {
        'page_obj': page_obj,
        'unread_count': unread_notification_count(employee),
    })


@login_required
@require_POST
def notification_mark_read(request, pk):
    employee = getattr(request, 'current_employee', None)
    notification = get_object_or_404(Notification, pk=pk, recipient=employee)
    notification.mark_read()
    if notification.link:
        return redirect(notification.link)
    return redirect('users:notification_list')


@login_required
@require_POST
def notification_mark_all_read(request):
    employee = getattr(request, 'current_employee', None)
    if employee is None:
        return JsonResponse({'success': False, 'message': 'Employee record not found'}, status=400)

    count = mark_all_notifications_read(employee)
    return JsonResponse({'success': True, 'message': f'Marked {count} notifications as read', 'count': count})


@login_required
def notification_count(request):
    employee = getattr(request, 'current_employee', None)
    count = unread_notification_count(employee) if employee else 0
    return JsonResponse({'unread_count': count})


# --------------------------------------------------------------------------
# Profile
# --------------------------------------------------------------------------

def _own_employee(request):
    employee = getattr(request, 'current_employee', None)
    if employee is None:
        messages.error(request, 'Your account is not linked to an employee record.')
    return employee


@login_required
def profile(request):
    employee = _own_employee(request)
    if employee is None:
        return redirect('assets:dashboard')

    return render(request, 'users/profile.html', {
        'employee': employee,
        'stats': get_profile_stats(employee),
        'assigned': get_assigned_assets(employee)[:20],
    })


@login_required
def profile_update(request):
    employee = _own_employee(request)
    if employee is None:
        return redirect('assets:dashboard')

    if request.method == 'POST':
        form = ProfileForm(request.POST, instance=_unbound_copy(employee))
        if form.is_valid():
            outcome = update_profile(employee, form.cleaned_data, user=request.user, request=request)
            if outcome['success']:
                messages.success(request, outcome['message'])
                return redirect('users:profile')
            form.add_error('email', outcome['message'])
    else:
        form = ProfileForm(instance=employee)

    return render(request, 'users/profile_form.html', {'form': form, 'title': 'Update Profile'})


class ProfilePasswordChangeView(auth_views.PasswordChangeView):
    template_name = 'users/password_change.html'
    success_url = reverse_lazy('users:profile')

    def form_valid(self, form):
        response = super().form_valid(form)
        messages.success(self.request, 'Password changed successfully')
        return response


# --------------------------------------------------------------------------
# Permissions
# --------------------------------------------------------------------------

@login_required
@user_passes_test(can_manage_permissions)
def permission_overview(request):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    search = request.GET.get('search', '')
    employees = get_employees_with_permissions(company, search=search)
    return render(request, 'users/permission_overview.html', {
        'page_obj': Paginator(employees, page_size()).get_page(request.GET.get('page')),
        'search': search,
        'roles': get_roles().annotate(
            employee_count=Count('employees', filter=Q(employees__is_active=True, employees__is_deleted=False))
        ),
        'can_manage_roles': can_manage_roles(request.user),
    })


@login_required
@user_passes_test(can_manage_permissions)
def employee_permissions(request, pk):
    company = _require_company(request)
    if company is None:
        return redirect('assets:dashboard')

    employee = get_object_or_404(Employee.objects.select_related('role'), pk=pk, company=company, is_deleted=False)

    if request.method == 'POST':
        form = EmployeeRoleForm(request.POST)
        if form.is_valid():
            outcome = assign_role(employee.pk, form.cleaned_data['role'].pk, company,
                                  user=request.user, request=request)
            _flash(request, outcome)
            if outcome['success']:
                return redirect('users:employee_permissions', pk=employee.pk)
    else:
        form = EmployeeRoleForm(initial={'role': employee.role_id})

    return render(request, 'users/employee_permissions.html', {
        'form': form,
        'summary': get_employee_permissions(employee),
    })


@login_required
@user_passes_test(can_manage_roles)
def role_permissions(request, pk):
    role = get_object_or_404(Role, pk=pk, is_deleted=False, is_active=True)

    if request.method == 'POST':
        form = RolePermissionsForm(request.POST, role=role)
        if form.is_valid():
            outcome = update_role_permissions(role, form.permissions(), user=request.user, request=request)
            _flash(request, outcome)
            if outcome['success']:
                return redirect('users:permission_overview')
    else:
        form = RolePermissionsForm(role=role)

    return render(request, 'users/role_permissions.html', {'form': form, 'role': role})
