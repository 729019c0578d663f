"""
Employee, role, department and notification operations.

Each write returns ``{'success', 'message', ...}`` and records an audit entry.
Guard failures never raise; database errors are logged and reported as a
failed result.
"""
import logging

from django.contrib.auth.models import User
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from core.audit_utils import get_model_fields, log_create, log_delete, log_update, REDACTED
from core.utils import result
from .models import Department, Employee, Notification, Role

logger = logging.getLogger(__name__)

EMPLOYEE_FIELDS = [
    'employee_id', 'first_name', 'last_name', 'email', 'position', 'phone',
    'department', 'location', 'role', 'reporting_manager', 'hire_date',
    'is_company_admin',
]


def active_deployments_for(employee):
    from assets.models import AssetDeployment
    return AssetDeployment.objects.filter(
        employee=employee,
        status=AssetDeployment.DEPLOYED,
        returned_date__isnull=True,
    )


# --------------------------------------------------------------------------
# Employees
# --------------------------------------------------------------------------

def get_employees(company, search=None, department=None, role=None, is_active=True):
    employees = Employee.objects.filter(
        company=company, is_deleted=False, is_active=is_active
    ).select_related('department', 'role', 'company', 'location')

    if department:
        employees = employees.filter(department=department)
    if role:
        employees = employees.filter(role=role)
    if search:
        employees = employees.filter(
            Q(employee_id__icontains=search) |
            Q(first_name__icontains=search) |
            Q(last_name__icontains=search) |
            Q(email__icontains=search) |
            Q(position__icontains=search)
        )
    return employees.order_by('-created_at')


def _employee_conflict(data, exclude_pk=None):
    others = Employee.objects.filter(is_active=True, is_deleted=False)
    if exclude_pk:
        others = others.exclude(pk=exclude_pk)

    if data.get('employee_id') and others.filter(employee_id=data['employee_id']).exists():
        return 'Employee with this ID already exists'
    if data.get('email') and others.filter(email__iexact=data['email']).exists():
        return 'Employee with this email already exists'
    return None


def _redacted(values, password):
    values = dict(values)
    if password:
        values['password'] = REDACTED
    return values


def create_employee(company, data, user=None, request=None):
    """
    Create an employee. When ``username`` and ``password`` are supplied a
    login user is created and linked as well.
    """
    conflict = _employee_conflict(data)
    if conflict:
        logger.warning("Employee create rejected for %s: %s", data.get('employee_id'), conflict)
        return result(False, conflict)

    password = data.get('password')
    username = data.get('username')
    if username and User.objects.filter(username=username).exists():
        return result(False, 'A login with this username already exists')

    try:
        with transaction.atomic():
            employee = Employee(company=company)
            for field in EMPLOYEE_FIELDS:
                if field in data:
                    setattr(employee, field, data[field])

            if username and password:
                login = User(username=username, email=data.get('email') or '',
                             first_name=data.get('first_name', ''), last_name=data.get('last_name', ''))
                login.set_password(password)
                login.save()
                employee.user = login

            employee.save()
            log_create(request, employee, user=user, company=company,
                       metadata=_redacted({'login': bool(employee.user_id)}, password))
    except DatabaseError:
        logger.exception("Failed to create employee %s", data.get('employee_id'))
        return result(False, 'Failed to create employee')

    logger.info("Employee %s created in %s", employee.employee_id, company.code)
    return result(True, 'Employee created successfully', employee=employee)


def update_employee(employee, data, user=None, request=None):
    if employee.is_deleted or not employee.is_active:
        return result(False, 'Employee not found')

    conflict = _employee_conflict(
        {key: data.get(key) for key in ('employee_id', 'email')
         if data.get(key) and data.get(key) != getattr(employee, key)},
        exclude_pk=employee.pk,
    )
    if conflict:
        logger.warning("Employee update rejected for %s: %s", employee.employee_id, conflict)
        return result(False, conflict)

    password = data.get('password')
    old_values = get_model_fields(employee)

    try:
        with transaction.atomic():
            for field in EMPLOYEE_FIELDS:
                if field in data:
                    setattr(employee, field, data[field])
            employee.save()

            if password and employee.user_id:
                employee.user.set_password(password)
                employee.user.save(update_fields=['password'])

            log_update(request, employee, old_values=old_values, user=user,
                       metadata=_redacted({}, password))
    except DatabaseError:
        logger.exception("Failed to update employee %s", employee.pk)
        return result(False, 'Failed to update employee')

    return result(True, 'Employee updated successfully', employee=employee)


def delete_employee(employee, user=None, request=None):
    """Deactivate an employee who holds no deployed assets"""
    if active_deployments_for(employee).exists():
        logger.warning("Refusing to delete employee %s with deployed assets", employee.employee_id)
        return result(False, 'Cannot delete employee with active asset deployments')

    try:
        with transaction.atomic():
            employee.is_active = False
            employee.soft_delete()
            if employee.user_id:
                employee.user.is_active = False
                employee.user.save(update_fields=['is_active'])
            log_delete(request, employee, user=user)
    except DatabaseError:
        logger.exception("Failed to delete employee %s", employee.pk)
        return result(False, 'Failed to delete employee')

    return result(True, 'Employee deleted successfully')


# --------------------------------------------------------------------------
# Roles
# --------------------------------------------------------------------------

def get_roles(search=None):
    roles = Role.objects.filter(is_active=True, is_deleted=False)
    if search:
        roles = roles.filter(Q(name__icontains=search) | Q(code__icontains=search) | Q(description__icontains=search))
    return roles.order_by('name')


def _role_code_taken(code, exclude_pk=None):
    roles = Role.objects.filter(code=code, is_active=True, is_deleted=False)
    if exclude_pk:
        roles = roles.exclude(pk=exclude_pk)
    return roles.exists()


def create_role(data, user=None, request=None):
    if _role_code_taken(data['code']):
        return result(False, 'Role with this code already exists')

    try:
        with transaction.atomic():
            role = Role.objects.create(
                name=data['name'],
                code=data['code'],
                description=data.get('description'),
                permissions=data.get('permissions') or [],
            )
            log_create(request, role, user=user)
    except DatabaseError:
        logger.exception("Failed to create role %s", data.get('code'))
        return result(False, 'Failed to create role')

    return result(True, 'Role created successfully', role=role)


def update_role(role, data, user=None, request=None):
    if role.is_deleted or not role.is_active:
        return result(False, 'Role not found')

    code = data.get('code')
    if code and code != role.code and _role_code_taken(code, exclude_pk=role.pk):
        return result(False, 'Role with this code already exists')

    old_values = get_model_fields(role)
    try:
        with transaction.atomic():
            for field in ('name', 'code', 'description', 'permissions'):
                if field in data:
                    setattr(role, field, data[field])
            role.save()
            log_update(request, role, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to update role %s", role.pk)
        return result(False, 'Failed to update role')

    return result(True, 'Role updated successfully', role=role)


def delete_role(role, user=None, request=None):
    if role.employees.filter(is_active=True, is_deleted=False).exists():
        return result(False, 'Cannot delete role with active employees')

    try:
        with transaction.atomic():
            role.is_active = False
            role.soft_delete()
            log_delete(request, role, user=user)
    except DatabaseError:
        logger.exception("Failed to delete role %s", role.pk)
        return result(False, 'Failed to delete role')

    return result(True, 'Role deleted successfully')


# --------------------------------------------------------------------------
# Departments
# --------------------------------------------------------------------------

def _department_code_taken(company, code, exclude_pk=None):
    departments = Department.objects.filter(company=company, code=code, is_active=True, is_deleted=False)
    if exclude_pk:
        departments = departments.exclude(pk=exclude_pk)
    return departments.exists()


def create_department(company, data, user=None, request=None):
    if _department_code_taken(company, data['code']):
        return result(False, 'Department with this code already exists in this business unit')

    try:
        with transaction.atomic():
            department = Department.objects.create(
                company=company,
                name=data['name'],
                code=data['code'],
                description=data.get('description'),
                head=data.get('head'),
                parent_department=data.get('parent_department'),
            )
            log_create(request, department, user=user, company=company)
    except DatabaseError:
        logger.exception("Failed to create department %s", data.get('code'))
        return result(False, 'Failed to create department')

    return result(True, 'Department created successfully', department=department)


def update_department(department, data, user=None, request=None):
    if department.is_deleted or not department.is_active:
        return result(False, 'Department not found')

    code = data.get('code')
    if code and code != department.code and _department_code_taken(department.company, code, exclude_pk=department.pk):
        return result(False, 'Department with this code already exists in this business unit')

    old_values = get_model_fields(department)
    try:
        with transaction.atomic():
            for field in ('name', 'code', 'description', 'head', 'parent_department'):
                if field in data:
                    setattr(department, field, data[field])
            department.save()
            log_update(request, department, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to update department %s", department.pk)
        return result(False, 'Failed to update department')

    return result(True, 'Department updated successfully', department=department)


def delete_department(department, user=None, request=None):
    if department.employees.filter(is_active=True, is_deleted=False).exists():
        return result(False, 'Cannot delete department with active employees')

    try:
        with transaction.atomic():
            department.is_active = False
            department.soft_delete()
            log_delete(request, department, user=user)
    except DatabaseError:
        logger.exception("Failed to delete department %s", department.pk)
        return result(False, 'Failed to delete department')

    return result(True, 'Department deleted successfully')


# --------------------------------------------------------------------------
# Notifications
# --------------------------------------------------------------------------

def create_notification(recipient, title, message, notification_type='GENERAL', priority='MEDIUM',
                        link='', metadata=None):
    return Notification.objects.create(
        recipient=recipient,
        company=recipient.company,
        title=title,
        message=message,
        notification_type=notification_type,
        priority=priority,
        link=link,
        metadata=metadata,
    )


def unread_notification_count(employee):
    return employee.notifications.filter(is_read=False).count()


def mark_all_notifications_read(employee):
    return employee.notifications.filter(is_read=False).update(is_read=True, read_at=timezone.now())
