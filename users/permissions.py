"""
Permission catalogue plus role and employee permission management.

Permissions are ``area:action`` strings stored on roles; an employee holds
the permissions of their role.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import Q

from core.audit_utils import get_model_fields, log_update
from core.utils import result
from .models import Employee, Role

logger = logging.getLogger(__name__)

PERMISSION_MODULES = [
    {
        'key': 'assets',
        'label': 'Asset Management',
        'permissions': [
            ('assets:create', 'Create assets'),
            ('assets:read', 'View assets'),
            ('assets:update', 'Edit assets'),
            ('assets:delete', 'Delete assets'),
            ('assets:deploy', 'Deploy assets'),
            ('assets:return', 'Return assets'),
            ('assets:approve', 'Approve asset requests'),
            ('assets:maintenance', 'Manage maintenance'),
        ],
    },
    {
        'key': 'employees',
        'label': 'Employee Management',
        'permissions': [
            ('employees:create', 'Create employees'),
            ('employees:read', 'View employees'),
            ('employees:update', 'Edit employees'),
            ('employees:delete', 'Delete employees'),
            ('employees:permissions', 'Manage employee permissions'),
        ],
    },
    {
        'key': 'departments',
        'label': 'Department Management',
        'permissions': [
            ('departments:create', 'Create departments'),
            ('departments:read', 'View departments'),
            ('departments:update', 'Edit departments'),
            ('departments:delete', 'Delete departments'),
        ],
    },
    {
        'key': 'roles',
        'label': 'Role Management',
        'permissions': [
            ('roles:create', 'Create roles'),
            ('roles:read', 'View roles'),
            ('roles:update', 'Edit roles'),
            ('roles:delete', 'Delete roles'),
        ],
    },
    {
        'key': 'deployments',
        'label': 'Deployment Management',
        'permissions': [
            ('deployments:create', 'Create deployments'),
            ('deployments:read', 'View deployments'),
            ('deployments:update', 'Edit deployments'),
            ('deployments:delete', 'Delete deployments'),
            ('deployments:approve', 'Approve deployments'),
            ('deployments:bulk_approve', 'Bulk approve deployments'),
        ],
    },
    {
        'key': 'reports',
        'label': 'Reports and Analytics',
        'permissions': [
            ('reports:create', 'Create reports'),
            ('reports:read', 'View reports'),
            ('reports:export', 'Export reports'),
            ('reports:delete', 'Delete reports'),
            ('analytics:view', 'View analytics'),
        ],
    },
    {
        'key': 'business_units',
        'label': 'Business Unit Management',
        'permissions': [
            ('business_units:create', 'Create business units'),
            ('business_units:read', 'View business units'),
            ('business_units:update', 'Edit business units'),
            ('business_units:delete', 'Delete business units'),
        ],
    },
    {
        'key': 'system',
        'label': 'System Administration',
        'permissions': [
            ('system:settings', 'Manage system settings'),
            ('system:audit_logs', 'View audit logs'),
            ('system:backup', 'Manage backups'),
            (Role.FULL_ACCESS, 'Full administrative access'),
        ],
    },
]

ALL_PERMISSIONS = [code for module in PERMISSION_MODULES for code, _ in module['permissions']]

PERMISSION_MANAGER_ROLES = ('SUPER_ADMIN', 'ADMIN', 'HR')
ROLE_MANAGER_ROLES = ('SUPER_ADMIN', 'ADMIN')


def _employee_of(user):
    if user is None or not user.is_authenticated:
        return None
    return Employee.objects.filter(user=user, is_deleted=False, is_active=True).select_related('role').first()


def can_manage_permissions(user):
    if user is not None and user.is_authenticated and user.is_superuser:
        return True
    employee = _employee_of(user)
    if employee is None:
        return False
    return employee.has_permission('employees:permissions') or employee.role_code in PERMISSION_MANAGER_ROLES


def can_manage_roles(user):
    if user is not None and user.is_authenticated and user.is_superuser:
        return True
    employee = _employee_of(user)
    if employee is None:
        return False
    return employee.has_permission('roles:update') or employee.role_code in ROLE_MANAGER_ROLES


def get_employee_permissions(employee):
    """Catalogue modules marked with what the employee's role grants"""
    granted = set(employee.role.permissions or []) if employee.role_id and employee.role.is_active else set()
    full_access = Role.FULL_ACCESS in granted
    modules = []
    for module in PERMISSION_MODULES:
        modules.append({
            'key': module['key'],
            'label': module['label'],
            'permissions': [
                {'code': code, 'label': label, 'granted': full_access or code in granted}
                for code, label in module['permissions']
            ],
        })
    return {
        'employee': employee,
        'role': employee.role,
        'full_access': full_access,
        'permissions': sorted(granted),
        'modules': modules,
    }


def get_employees_with_permissions(company, search=None):
    employees = Employee.objects.filter(
        company=company, is_deleted=False, is_active=True
    ).select_related('role', 'department').order_by('last_name', 'first_name')
    if search:
        employees = employees.filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(employee_id__icontains=search)
        )
    return employees


def update_role_permissions(role, permissions, user=None, request=None):
    """Replace the permissions of ``role`` with catalogue entries"""
    if not can_manage_roles(user):
        return result(False, 'You do not have permission to manage role permissions')
    if role.is_deleted or not role.is_active:
        return result(False, 'Role not found')

    cleaned = []
    for permission in permissions:
        if permission not in ALL_PERMISSIONS:
            return result(False, f'Unknown permission: {permission}')
        if permission not in cleaned:
            cleaned.append(permission)

    old_values = get_model_fields(role)
    try:
        with transaction.atomic():
            role.permissions = cleaned
            role.save(update_fields=['permissions', 'updated_at'])
            log_update(request, role, old_values=old_values, user=user,
                       metadata={'permission_count': len(cleaned)})
    except DatabaseError:
        logger.exception("Failed to update permissions of role %s", role.pk)
        return result(False, 'Failed to update role permissions')

    logger.info("Role %s now has %d permissions", role.code, len(cleaned))
    return result(True, 'Role permissions updated successfully', role=role)


def assign_role(employee_id, role_id, company, user=None, request=None):
    if not can_manage_permissions(user):
        return result(False, 'You do not have permission to assign roles')

    employee = Employee.objects.filter(pk=employee_id, company=company, is_deleted=False, is_active=True).first()
    if employee is None:
        return result(False, 'Employee not found')
    role = Role.objects.filter(pk=role_id, is_deleted=False, is_active=True).first()
    if role is None:
        return result(False, 'Role not found')

    old_values = get_model_fields(employee)
    try:
        with transaction.atomic():
            employee.role = role
            employee.save(update_fields=['role', 'updated_at'])
            log_update(request, employee, old_values=old_values, user=user,
                       metadata={'role_code': role.code})
    except DatabaseError:
        logger.exception("Failed to assign role %s to employee %s", role.pk, employee.pk)
        return result(False, 'Failed to assign role')

    return result(True, f'{employee.full_name} is now {role.name}', employee=employee)
