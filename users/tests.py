"""
Tests for users app (Employee, Role, Department, Location, Notification)
"""
from django.test import TestCase, Client
from django.contrib.auth.models import User
from django.urls import reverse
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal

from .models import Department, Employee, Location, Notification, Role
from .permissions import (
    assign_role, can_manage_permissions, can_manage_roles, get_employee_permissions,
    get_employees_with_permissions, update_role_permissions,
)
from .profile import get_profile_stats, update_profile
from .services import (
    create_department, create_employee, create_notification, create_role,
    delete_department, delete_employee, delete_role, get_employees,
    mark_all_notifications_read, unread_notification_count, update_employee, update_role,
)
from assets.deployments import approve_deployment, create_deployment
from assets.models import Asset, AssetCategory
from core.models import AuditLog, Company


class BaseTestCase(TestCase):
    """Base test case with common setup"""

    def setUp(self):
        """Set up test data"""
        self.company = Company.objects.create(
            name="Test Company",
            code="TEST-001",
            email="test@example.com"
        )

        self.admin_role = Role.objects.create(
            name="Administrator", code="ADMIN", permissions=['admin:full_access']
        )
        self.staff_role = Role.objects.create(
            name="Staff", code="STAFF", permissions=['assets:view']
        )

        self.department = Department.objects.create(
            company=self.company,
            name="IT Department",
            code="IT-001"
        )

        self.admin_user = User.objects.create_user(username='admin', password='admin123')
        self.admin_employee = Employee.objects.create(
            user=self.admin_user,
            company=self.company,
            employee_id='EMP-001',
            first_name='Ada',
            last_name='Admin',
            email='ada@example.com',
            role=self.admin_role,
            department=self.department
        )

        self.client = Client()


class DepartmentModelTest(BaseTestCase):
    """Test Department model"""

    def test_parent_department(self):
        """Test parent-child department relationship"""
        child = Department.objects.create(
            company=self.company,
            name="Service Desk",
            code="IT-SD",
            parent_department=self.department
        )

        self.assertEqual(child.parent_department, self.department)
        self.assertIn(child, self.department.sub_departments.all())

    def test_department_str_representation(self):
        """Test string representation"""
        self.assertEqual(str(self.department), "IT-001 - IT Department")


class LocationModelTest(BaseTestCase):
    """Test Location model"""

    def test_location_str_includes_company(self):
        location = Location.objects.create(company=self.company, name="Main Office", code="HQ")
        self.assertEqual(str(location), "TEST-001 - HQ - Main Office")
        self.assertEqual(location.location_type, 'OFFICE')


class RoleModelTest(BaseTestCase):
    """Test Role permissions"""

    def test_has_permission(self):
        self.assertTrue(self.staff_role.has_permission('assets:view'))
        self.assertFalse(self.staff_role.has_permission('deployments:approve'))

    def test_full_access_grants_everything(self):
        self.assertTrue(self.admin_role.has_permission('deployments:approve'))


class EmployeeModelTest(BaseTestCase):
    """Test Employee model"""

    def test_employee_str_and_full_name(self):
        self.assertEqual(self.admin_employee.full_name, "Ada Admin")
        self.assertEqual(str(self.admin_employee), "Ada Admin (EMP-001)")

    def test_admin_role_makes_admin(self):
        self.assertTrue(self.admin_employee.is_admin)

    def test_company_admin_flag_makes_admin(self):
        employee = Employee.objects.create(
            company=self.company, employee_id='EMP-009', first_name='Flag', last_name='Admin',
            is_company_admin=True
        )
        self.assertTrue(employee.is_admin)

    def test_staff_is_not_admin(self):
        employee = Employee.objects.create(
            company=self.company, employee_id='EMP-010', first_name='Sam', last_name='Staff',
            role=self.staff_role
        )
        self.assertFalse(employee.is_admin)
        self.assertTrue(employee.has_permission('assets:view'))
        self.assertFalse(employee.has_permission('deployments:approve'))

    def test_inactive_role_grants_nothing(self):
        self.staff_role.is_active = False
        self.staff_role.save()
        employee = Employee.objects.create(
            company=self.company, employee_id='EMP-011', first_name='Sam', last_name='Staff',
            role=self.staff_role
        )
        self.assertFalse(employee.has_permission('assets:view'))

    def test_superuser_has_every_permission(self):
        superuser = User.objects.create_user(username='root', password='root123', is_superuser=True)
        employee = Employee.objects.create(
            user=superuser, company=self.company, employee_id='EMP-012', first_name='Root', last_name='User'
        )
        self.assertTrue(employee.has_permission('anything:at_all'))


class EmployeeServiceTest(BaseTestCase):
    """Test employee operations"""

    def test_create_employee_with_login(self):
        """Test creating an employee with a login user"""
        outcome = create_employee(self.company, {
            'employee_id': 'EMP-100',
            'first_name': 'New',
            'last_name': 'Hire',
            'email': 'new@example.com',
            'department': self.department,
            'username': 'newhire',
            'password': 's3cret-pass',
        }, user=self.admin_user)

        self.assertTrue(outcome['success'])
        employee = outcome['employee']
        self.assertEqual(employee.company, self.company)
        self.assertEqual(employee.user.username, 'newhire')
        self.assertTrue(employee.user.check_password('s3cret-pass'))

        log = AuditLog.objects.get(action='CREATE', object_id=str(employee.pk))
        self.assertEqual(log.metadata['password'], '[REDACTED]')
        self.assertNotIn('s3cret-pass', str(log.new_values))

    def test_duplicate_employee_id_rejected(self):
        outcome = create_employee(self.company, {'employee_id': 'EMP-001', 'first_name': 'X', 'last_name': 'Y'})

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Employee with this ID already exists')

    def test_duplicate_email_rejected_case_insensitively(self):
        outcome = create_employee(self.company, {
            'employee_id': 'EMP-101', 'first_name': 'X', 'last_name': 'Y', 'email': 'ADA@example.com',
        })
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Employee with this email already exists')

    def test_taken_username_rejected(self):
        outcome = create_employee(self.company, {
            'employee_id': 'EMP-102', 'first_name': 'X', 'last_name': 'Y',
            'username': 'admin', 'password': 'whatever123',
        })
        self.assertFalse(outcome['success'])
        self.assertFalse(Employee.objects.filter(employee_id='EMP-102').exists())

    def test_update_employee(self):
        outcome = update_employee(self.admin_employee, {'position': 'IT Lead', 'employee_id': 'EMP-001'},
                                  user=self.admin_user)

        self.assertTrue(outcome['success'])
        self.admin_employee.refresh_from_db()
        self.assertEqual(self.admin_employee.position, 'IT Lead')

        log = AuditLog.objects.filter(action='UPDATE').latest('timestamp')
        self.assertEqual(log.changed_fields, ['position'])

    def test_update_to_taken_id_rejected(self):
        other = Employee.objects.create(company=self.company, employee_id='EMP-002', first_name='B', last_name='C')
        outcome = update_employee(other, {'employee_id': 'EMP-001'})
        self.assertFalse(outcome['success'])

    def test_update_password(self):
        update_employee(self.admin_employee, {'password': 'changed-pass-1'})
        self.admin_user.refresh_from_db()
        self.assertTrue(self.admin_user.check_password('changed-pass-1'))

    def test_delete_employee_deactivates_login(self):
        outcome = delete_employee(self.admin_employee, user=self.admin_user)

        self.assertTrue(outcome['success'])
        self.admin_employee.refresh_from_db()
        self.admin_user.refresh_from_db()
        self.assertTrue(self.admin_employee.is_deleted)
        self.assertFalse(self.admin_employee.is_active)
        self.assertFalse(self.admin_user.is_active)

    def test_delete_employee_with_deployed_asset_rejected(self):
        """Employees holding deployed assets cannot be removed"""
        from assets.models import Asset, AssetCategory, AssetDeployment

        category = AssetCategory.objects.create(company=self.company, name="Laptops", code="LAP")
        asset = Asset.objects.create(
            company=self.company, asset_tag="LAP-001", name="Laptop", category=category,
            status=Asset.DEPLOYED, assigned_to=self.admin_employee
        )
        AssetDeployment.objects.create(
            asset=asset, employee=self.admin_employee, company=self.company, status=AssetDeployment.DEPLOYED
        )

        outcome = delete_employee(self.admin_employee)
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Cannot delete employee with active asset deployments')

    def test_get_employees_search_and_filters(self):
        Employee.objects.create(company=self.company, employee_id='EMP-200', first_name='Grace',
                                last_name='Hopper', role=self.staff_role)
        other_company = Company.objects.create(name="Other", code="OTHER")
        Employee.objects.create(company=other_company, employee_id='EMP-300', first_name='Grace', last_name='Other')

        self.assertEqual(get_employees(self.company, search='grace').count(), 1)
        self.assertEqual(get_employees(self.company, role=self.staff_role).count(), 1)
        self.assertEqual(get_employees(self.company, department=self.department).count(), 1)
        self.assertEqual(get_employees(self.company, is_active=False).count(), 0)


class RoleAndDepartmentServiceTest(BaseTestCase):
    """Test role and department operations"""

    def test_create_role_duplicate_code(self):
        self.assertFalse(create_role({'name': 'Another Admin', 'code': 'ADMIN'})['success'])

        outcome = create_role({'name': 'Accounting', 'code': 'ACCOUNTING', 'permissions': ['deployments:approve']})
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['role'].permissions, ['deployments:approve'])

    def test_update_role_code_clash(self):
        outcome = update_role(self.staff_role, {'code': 'ADMIN'})
        self.assertFalse(outcome['success'])

        outcome = update_role(self.staff_role, {'name': 'Staff Member'})
        self.assertTrue(outcome['success'])

    def test_delete_role_in_use_rejected(self):
        self.assertFalse(delete_role(self.admin_role)['success'])
        self.assertTrue(delete_role(self.staff_role)['success'])

        self.staff_role.refresh_from_db()
        self.assertTrue(self.staff_role.is_deleted)

    def test_department_code_unique_per_company(self):
        self.assertFalse(create_department(self.company, {'name': 'IT again', 'code': 'IT-001'})['success'])

        other_company = Company.objects.create(name="Other", code="OTHER")
        self.assertTrue(create_department(other_company, {'name': 'IT', 'code': 'IT-001'})['success'])

    def test_delete_department_with_employees_rejected(self):
        self.assertFalse(delete_department(self.department)['success'])

        empty = Department.objects.create(company=self.company, name="Empty", code="EMPTY")
        self.assertTrue(delete_department(empty)['success'])


class NotificationTest(BaseTestCase):
    """Test in-app notifications"""

    def test_create_and_mark_read(self):
        notification = create_notification(self.admin_employee, "Heads up", "Asset LAP-001 is due")

        self.assertEqual(notification.company, self.company)
        self.assertEqual(unread_notification_count(self.admin_employee), 1)

        notification.mark_read()
        self.assertIsNotNone(notification.read_at)
        self.assertEqual(unread_notification_count(self.admin_employee), 0)

    def test_mark_all_read(self):
        create_notification(self.admin_employee, "One", "first")
        create_notification(self.admin_employee, "Two", "second")

        self.assertEqual(mark_all_notifications_read(self.admin_employee), 2)
        self.assertFalse(Notification.objects.filter(is_read=False).exists())

    def test_count_endpoint(self):
        create_notification(self.admin_employee, "One", "first")
        self.client.force_login(self.admin_user)

        response = self.client.get(reverse('users:notification_count'))
        self.assertEqual(response.json(), {'unread_count': 1})

    def test_mark_read_follows_link(self):
        notification = create_notification(self.admin_employee, "One", "first", link='/app/assets/')
        self.client.force_login(self.admin_user)

        response = self.client.post(reverse('users:notification_mark_read', args=[notification.pk]))
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, '/app/assets/')


class EmployeeViewTest(BaseTestCase):
    """Test employee management views"""

    def test_regular_employee_denied(self):
        user = User.objects.create_user(username='staff', password='staff123')
        Employee.objects.create(user=user, company=self.company, employee_id='EMP-050',
                                first_name='Sam', last_name='Staff', role=self.staff_role)
        self.client.force_login(user)

        response = self.client.get(reverse('users:employee_list'))
        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse('login'), response.url)

    def test_employee_list(self):
        self.client.force_login(self.admin_user)
        response = self.client.get(reverse('users:employee_list'))

        self.assertEqual(response.status_code, 200)
        self.assertIn(self.admin_employee, response.context['page_obj'])

    def test_create_employee_through_form(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('users:employee_create'), {
            'employee_id': 'EMP-060',
            'first_name': 'Form',
            'last_name': 'Made',
            'department': self.department.pk,
        })

        employee = Employee.objects.get(employee_id='EMP-060')
        self.assertRedirects(response, reverse('users:employee_detail', args=[employee.pk]))
        self.assertIsNone(employee.user)

    def test_username_requires_password(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('users:employee_create'), {
            'employee_id': 'EMP-061',
            'first_name': 'No',
            'last_name': 'Password',
            'username': 'nopass',
        })

        self.assertEqual(response.status_code, 200)
        self.assertIn('password', response.context['form'].errors)

    def test_cannot_delete_self(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('users:employee_delete', args=[self.admin_employee.pk]))

        self.assertRedirects(response, reverse('users:employee_list'))
        self.admin_employee.refresh_from_db()
        self.assertFalse(self.admin_employee.is_deleted)

    def test_role_form_parses_permissions(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('users:role_create'), {
            'name': 'Accounting',
            'code': 'accounting',
            'permissions': 'deployments:approve\nreports:view, deployments:approve',
        })

        self.assertRedirects(response, reverse('users:role_list'))
        role = Role.objects.get(code='ACCOUNTING')
        self.assertEqual(role.permissions, ['deployments:approve', 'reports:view'])

    def test_location_code_unique_per_company(self):
        Location.objects.create(company=self.company, name="HQ", code="HQ")
        self.client.force_login(self.admin_user)

        response = self.client.post(reverse('users:location_create'), {
            'name': 'Another HQ', 'code': 'hq', 'country': 'Philippines', 'location_type': 'OFFICE',
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('code', response.context['form'].errors)


class ProfileTest(BaseTestCase):
    """Test the signed-in employee's own profile"""

    def setUp(self):
        super().setUp()
        self.category = AssetCategory.objects.create(company=self.company, name="Laptops", code="LAP")

    def hand_over(self, asset_tag, price, approve=True):
        asset = Asset.objects.create(
            company=self.company, asset_tag=asset_tag, name=f"Laptop {asset_tag}", category=self.category,
            purchase_price=Decimal(price), purchase_date=timezone.localdate() - timedelta(days=100),
        )
        deployment = create_deployment(asset, self.admin_employee)['deployment']
        if approve:
            approve_deployment(deployment, self.admin_user)
        return asset

    def test_profile_stats(self):
        self.hand_over("LAP-1", '1000.00')
        self.hand_over("LAP-2", '500.00', approve=False)

        stats = get_profile_stats(self.admin_employee)
        self.assertEqual(stats['assigned_assets'], 2)
        self.assertEqual(stats['active_deployments'], 1)
        self.assertEqual(stats['total_asset_value'], Decimal('1500.00'))
        self.assertEqual(stats['average_asset_age_days'], 100)

    def test_update_profile_syncs_login_email(self):
        outcome = update_profile(self.admin_employee, {'email': 'ada@corp.example', 'phone': '555-0100'},
                                 user=self.admin_user)

        self.assertTrue(outcome['success'])
        self.admin_employee.refresh_from_db()
        self.admin_user.refresh_from_db()
        self.assertEqual(self.admin_employee.phone, '555-0100')
        self.assertEqual(self.admin_user.email, 'ada@corp.example')
        log = AuditLog.objects.get(action='UPDATE', object_id=str(self.admin_employee.pk))
        self.assertEqual(log.metadata, {'profile_update': True})

    def test_update_profile_duplicate_email(self):
        Employee.objects.create(company=self.company, employee_id='EMP-002', first_name='Bo',
                                last_name='Other', email='bo@example.com')
        outcome = update_profile(self.admin_employee, {'email': 'BO@example.com'})
        self.assertEqual(outcome['message'], 'Email already exists')

    def test_profile_pages(self):
        self.client.force_login(self.admin_user)
        response = self.client.get(reverse('users:profile'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['employee'], self.admin_employee)

        response = self.client.post(reverse('users:profile_update'), {
            'email': 'ada@example.com', 'position': 'IT Lead', 'phone': '',
        })
        self.assertRedirects(response, reverse('users:profile'), fetch_redirect_response=False)
        self.admin_employee.refresh_from_db()
        self.assertEqual(self.admin_employee.position, 'IT Lead')

    def test_password_change(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('users:password_change'), {
            'old_password': 'admin123', 'new_password1': 'Sturdy-pass-2024', 'new_password2': 'Sturdy-pass-2024',
        })

        self.assertRedirects(response, reverse('users:profile'), fetch_redirect_response=False)
        self.admin_user.refresh_from_db()
        self.assertTrue(self.admin_user.check_password('Sturdy-pass-2024'))


class PermissionManagementTest(BaseTestCase):
    """Test role permissions and role assignment"""

    def setUp(self):
        super().setUp()
        self.staff_user = User.objects.create_user(username='staff', password='staff123')
        self.staff_employee = Employee.objects.create(
            user=self.staff_user, company=self.company, employee_id='EMP-050',
            first_name='Sam', last_name='Staff', role=self.staff_role
        )

    def test_who_may_manage(self):
        self.assertTrue(can_manage_permissions(self.admin_user))
        self.assertTrue(can_manage_roles(self.admin_user))
        self.assertFalse(can_manage_permissions(self.staff_user))

        self.staff_role.code = 'HR'
        self.staff_role.save()
        self.assertTrue(can_manage_permissions(self.staff_user))
        self.assertFalse(can_manage_roles(self.staff_user))

        self.staff_role.code = 'STAFF'
        self.staff_role.permissions = ['employees:permissions']
        self.staff_role.save()
        self.assertTrue(can_manage_permissions(self.staff_user))

    def test_employee_permission_summary(self):
        summary = get_employee_permissions(self.admin_employee)
        self.assertTrue(summary['full_access'])
        self.assertTrue(all(p['granted'] for module in summary['modules'] for p in module['permissions']))

        summary = get_employee_permissions(self.staff_employee)
        self.assertFalse(summary['full_access'])
        self.assertEqual(summary['permissions'], ['assets:view'])

    def test_search_employees(self):
        self.assertEqual(list(get_employees_with_permissions(self.company, search='sam')), [self.staff_employee])

    def test_update_role_permissions(self):
        outcome = update_role_permissions(
            self.staff_role, ['assets:read', 'reports:export', 'assets:read'], user=self.admin_user
        )

        self.assertTrue(outcome['success'])
        self.staff_role.refresh_from_db()
        self.assertEqual(self.staff_role.permissions, ['assets:read', 'reports:export'])
        self.assertTrue(AuditLog.objects.filter(action='UPDATE', object_id=str(self.staff_role.pk)).exists())

    def test_update_role_permissions_rejected(self):
        self.assertEqual(update_role_permissions(self.staff_role, ['assets:fly'], user=self.admin_user)['message'],
                         'Unknown permission: assets:fly')
        self.assertEqual(update_role_permissions(self.staff_role, ['assets:read'], user=self.staff_user)['message'],
                         'You do not have permission to manage role permissions')
        self.staff_role.refresh_from_db()
        self.assertEqual(self.staff_role.permissions, ['assets:view'])

    def test_assign_role(self):
        outcome = assign_role(self.staff_employee.pk, self.admin_role.pk, self.company, user=self.admin_user)

        self.assertEqual(outcome['message'], 'Sam Staff is now Administrator')
        self.staff_employee.refresh_from_db()
        self.assertEqual(self.staff_employee.role, self.admin_role)

        other = Company.objects.create(name="Other", code="OTHER-001")
        stranger = Employee.objects.create(company=other, employee_id='EMP-900', first_name='Out', last_name='Sider')
        self.assertEqual(assign_role(stranger.pk, self.admin_role.pk, self.company, user=self.admin_user)['message'],
                         'Employee not found')

    def test_assign_role_needs_rights(self):
        outcome = assign_role(self.admin_employee.pk, self.staff_role.pk, self.company, user=self.staff_user)
        self.assertFalse(outcome['success'])
        self.admin_employee.refresh_from_db()
        self.assertEqual(self.admin_employee.role, self.admin_role)

    def test_screens_require_rights(self):
        self.client.force_login(self.staff_user)
        response = self.client.get(reverse('users:permission_overview'))
        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse('login'), response.url)

        self.client.force_login(self.admin_user)
        response = self.client.get(reverse('users:permission_overview'))
        self.assertEqual(response.status_code, 200)
        self.assertIn(self.staff_employee, response.context['page_obj'])

    def test_role_and_employee_screens(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('users:role_permissions', args=[self.staff_role.pk]), {
            'assets': ['assets:read', 'assets:deploy'], 'reports': ['reports:read'],
        })
        self.assertRedirects(response, reverse('users:permission_overview'), fetch_redirect_response=False)
        self.staff_role.refresh_from_db()
        self.assertEqual(self.staff_role.permissions, ['assets:read', 'assets:deploy', 'reports:read'])

        response = self.client.post(reverse('users:employee_permissions', args=[self.staff_employee.pk]),
                                    {'role': self.admin_role.pk})
        self.assertRedirects(response, reverse('users:employee_permissions', args=[self.staff_employee.pk]),
                             fetch_redirect_response=False)
        self.staff_employee.refresh_from_db()
        self.assertEqual(self.staff_employee.role, self.admin_role)
