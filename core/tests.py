"""
Tests for core app (business units, audit trail, settings and utilities)
"""
from datetime import date, timedelta
from decimal import Decimal
import uuid

from django.test import TestCase, Client, RequestFactory, override_settings
from django.contrib.auth.models import User
from django.urls import reverse
from django.utils import timezone

from .audit_utils import (
    diff_fields, get_audit_log_stats, get_audit_logs, get_model_fields, log_create, log_custom,
    log_update, to_json_value,
)
from .models import AuditLog, Company, SystemSetting
from .services import (
    create_system_setting, delete_system_setting, get_setting_categories,
    get_system_setting_by_key, get_system_settings, update_system_setting,
)
from .utils import build_asset_qr_url, generate_qr_code_with_label, parse_date, result
from users.models import Employee, Role


class BaseTestCase(TestCase):
    """Base test case with two business units and an admin of the first"""

    def setUp(self):
        self.company = Company.objects.create(
            name="Test Company",
            code="TEST-001",
            email="test@example.com",
            is_active=True
        )
        self.other_company = Company.objects.create(
            name="Other Company",
            code="OTHER-001",
            is_active=True
        )

        self.superuser = User.objects.create_user(
            username='super',
            password='super123',
            is_superuser=True,
            is_staff=True
        )

        self.admin_role = Role.objects.create(name="Administrator", code="ADMIN")
        self.admin_user = User.objects.create_user(username='admin', password='admin123')
        self.admin_employee = Employee.objects.create(
            user=self.admin_user,
            company=self.company,
            employee_id='EMP-001',
            first_name='Ada',
            last_name='Admin',
            role=self.admin_role
        )

        self.regular_user = User.objects.create_user(username='user', password='user123')
        self.regular_employee = Employee.objects.create(
            user=self.regular_user,
            company=self.company,
            employee_id='EMP-002',
            first_name='Reg',
            last_name='User'
        )

        self.client = Client()


class CompanyModelTest(BaseTestCase):
    """Test Company model"""

    def test_company_str_representation(self):
        """Test string representation"""
        self.assertEqual(str(self.company), "TEST-001 - Test Company")

    def test_subscription_active_without_end_date(self):
        """No end date means the subscription never lapses"""
        self.assertTrue(self.company.is_subscription_active)

    def test_subscription_expired(self):
        """Test is_subscription_active property"""
        self.company.subscription_end_date = date.today() + timedelta(days=30)
        self.assertTrue(self.company.is_subscription_active)

        self.company.subscription_end_date = date.today() - timedelta(days=1)
        self.assertFalse(self.company.is_subscription_active)

    def test_company_soft_delete(self):
        """Test soft delete functionality"""
        self.company.soft_delete()
        self.company.refresh_from_db()

        self.assertTrue(self.company.is_deleted)
        self.assertIsNotNone(self.company.deleted_at)

        self.company.restore()
        self.company.refresh_from_db()
        self.assertFalse(self.company.is_deleted)
        self.assertIsNone(self.company.deleted_at)


class UtilityTest(TestCase):
    """Test shared helpers"""

    def test_result_dictionary(self):
        outcome = result(False, 'Nope', errors=[{'message': 'bad'}])
        self.assertEqual(outcome, {'success': False, 'message': 'Nope', 'errors': [{'message': 'bad'}]})

    def test_parse_date(self):
        self.assertEqual(parse_date('2025-03-01'), date(2025, 3, 1))
        self.assertIsNone(parse_date(''))
        self.assertIsNone(parse_date('03/01/2025'))
        self.assertEqual(parse_date('garbage', default=date(2020, 1, 1)), date(2020, 1, 1))

    def test_generate_qr_code_with_label(self):
        """Test QR code generation with label"""
        qr_file = generate_qr_code_with_label(str(uuid.uuid4()), "ASSET-001", filename_hint="ASSET-001")

        self.assertEqual(qr_file.name, "qr_ASSET-001.png")
        qr_file.seek(0)
        self.assertTrue(qr_file.read().startswith(b'\x89PNG'))

    @override_settings(SITE_DOMAIN='assets.example.com', USE_HTTPS=True)
    def test_qr_url_without_request(self):
        code = uuid.uuid4()
        url = build_asset_qr_url(code)
        self.assertEqual(url, f"https://assets.example.com/app/assets/qr/{code}/")

    def test_qr_url_uses_request_host(self):
        code = uuid.uuid4()
        request = RequestFactory().get('/', HTTP_HOST='testserver')
        self.assertTrue(build_asset_qr_url(code, request).startswith('http://testserver/app/assets/qr/'))


class AuditUtilsTest(BaseTestCase):
    """Test audit trail writers and queries"""

    def test_to_json_value(self):
        code = uuid.uuid4()
        value = to_json_value({'amount': Decimal('10.50'), 'when': date(2025, 1, 2), 'code': code, 'items': (1, 2)})
        self.assertEqual(value, {'amount': '10.50', 'when': '2025-01-02', 'code': str(code), 'items': [1, 2]})

    def test_get_model_fields_stores_foreign_keys_as_text_and_id(self):
        data = get_model_fields(self.admin_employee)
        self.assertEqual(data['company_id'], self.company.pk)
        self.assertEqual(data['company'], str(self.company))
        self.assertNotIn('created_at', data)

    def test_log_create_uses_instance_company(self):
        log = log_create(None, self.regular_employee, user=self.admin_user)

        self.assertEqual(log.action, 'CREATE')
        self.assertEqual(log.company, self.company)
        self.assertEqual(log.username, 'admin')
        self.assertEqual(log.new_values['employee_id'], 'EMP-002')

    def test_log_without_user_is_system(self):
        log = log_custom(None, 'UPDATE', 'Nightly job', model_name='Asset', company=self.company)
        self.assertEqual(log.username, 'System')
        self.assertEqual(log.object_repr, 'Asset')

    def test_log_update_detects_changed_fields(self):
        old_values = get_model_fields(self.regular_employee)
        self.regular_employee.position = 'Technician'
        self.regular_employee.save()

        log = log_update(None, self.regular_employee, old_values=old_values, user=self.admin_user)
        self.assertEqual(log.changed_fields, ['position'])
        self.assertEqual(log.changes_summary, f"Updated position on {self.regular_employee}")

    def test_log_update_detects_cleared_values(self):
        self.admin_employee.position = 'Lead'
        self.admin_employee.save()
        old_values = get_model_fields(self.admin_employee)

        self.admin_employee.position = None
        self.admin_employee.role = None
        self.admin_employee.save()

        log = log_update(None, self.admin_employee, old_values=old_values, user=self.admin_user)
        self.assertEqual(sorted(log.changed_fields), ['position', 'role'])
        self.assertIsNone(log.new_values['role_id'])

    def test_diff_fields_covers_keys_missing_on_one_side(self):
        self.assertEqual(diff_fields({'a': 1}, {'a': 1, 'b': 2}), ['b'])
        self.assertEqual(diff_fields({'a': 1, 'b': 2}, {'a': 1}), ['b'])
        self.assertEqual(diff_fields({'dept': 'IT', 'dept_id': 1}, {'dept': None, 'dept_id': None}), ['dept'])

    def test_get_audit_logs_is_scoped_to_company(self):
        log_custom(None, 'EXPORT', 'ours', company=self.company)
        log_custom(None, 'EXPORT', 'theirs', company=self.other_company)

        descriptions = list(get_audit_logs(company=self.company).values_list('description', flat=True))
        self.assertEqual(descriptions, ['ours'])
        self.assertEqual(get_audit_logs().count(), 2)

    def test_get_audit_logs_filters(self):
        log_custom(None, 'EXPORT', 'Exported assets', company=self.company)
        log_create(None, self.regular_employee, user=self.admin_user)

        self.assertEqual(get_audit_logs(company=self.company, action='CREATE').count(), 1)
        self.assertEqual(get_audit_logs(company=self.company, table_name='Employee').count(), 1)
        self.assertEqual(get_audit_logs(company=self.company, search='exported').count(), 1)
        self.assertEqual(get_audit_logs(company=self.company, date_from=timezone.localdate()).count(), 2)
        self.assertEqual(get_audit_logs(company=self.company, date_to=timezone.localdate() - timedelta(days=1)).count(), 0)

    def test_audit_log_stats(self):
        log_custom(None, 'EXPORT', 'one', company=self.company)
        log_custom(None, 'EXPORT', 'two', company=self.company)
        log_create(None, self.regular_employee, user=self.admin_user)

        stats = get_audit_log_stats(company=self.company)
        self.assertEqual(stats['total_logs'], 3)
        self.assertEqual(stats['today_logs'], 3)
        self.assertEqual(stats['action_stats'][0], {'action': 'EXPORT', 'count': 2})

    def test_login_is_audited(self):
        self.client.login(username='user', password='user123')
        self.assertTrue(AuditLog.objects.filter(action='LOGIN', user=self.regular_user).exists())


class SystemSettingServiceTest(BaseTestCase):
    """Test system setting services"""

    def test_create_and_read_setting(self):
        outcome = create_system_setting({'key': 'asset_tag_prefix', 'value': 'IT', 'category': 'general'},
                                        user=self.superuser)
        self.assertTrue(outcome['success'])
        self.assertEqual(SystemSetting.get_value('asset_tag_prefix'), 'IT')
        self.assertEqual(SystemSetting.get_value('missing', default='x'), 'x')
        self.assertEqual(get_system_setting_by_key('asset_tag_prefix').category, 'general')
        self.assertEqual(get_setting_categories(), ['general'])
        self.assertTrue(AuditLog.objects.filter(action='CREATE', object_repr='asset_tag_prefix').exists())

    def test_duplicate_key_rejected(self):
        create_system_setting({'key': 'currency', 'value': 'PHP'})
        outcome = create_system_setting({'key': 'currency', 'value': 'USD'})

        self.assertFalse(outcome['success'])
        self.assertEqual(SystemSetting.objects.filter(key='currency').count(), 1)

    def test_update_setting(self):
        setting = create_system_setting({'key': 'currency', 'value': 'PHP'})['setting']
        create_system_setting({'key': 'timezone', 'value': 'Asia/Manila'})

        self.assertFalse(update_system_setting(setting, {'key': 'timezone'})['success'])

        outcome = update_system_setting(setting, {'value': 'USD'}, user=self.superuser)
        self.assertTrue(outcome['success'])
        setting.refresh_from_db()
        self.assertEqual(setting.value, 'USD')

    def test_delete_setting_is_soft(self):
        setting = create_system_setting({'key': 'currency', 'value': 'PHP'})['setting']

        self.assertTrue(delete_system_setting(setting)['success'])
        setting.refresh_from_db()
        self.assertTrue(setting.is_deleted)
        self.assertFalse(get_system_settings().exists())
        self.assertFalse(update_system_setting(setting, {'value': 'USD'})['success'])

        # A deleted key can be used again
        self.assertTrue(create_system_setting({'key': 'currency', 'value': 'USD'})['success'])

    def test_search_settings(self):
        create_system_setting({'key': 'currency', 'value': 'PHP', 'category': 'finance'})
        create_system_setting({'key': 'timezone', 'value': 'Asia/Manila', 'category': 'general'})

        self.assertEqual(get_system_settings(search='manila').count(), 1)
        self.assertEqual(get_system_settings(category='finance').count(), 1)


class CompanyMiddlewareTest(BaseTestCase):
    """Test business unit resolution per request"""

    def test_employee_gets_own_company(self):
        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('assets:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.wsgi_request.current_company, self.company)
        self.assertFalse(response.wsgi_request.is_company_admin)

    def test_admin_role_marks_company_admin(self):
        self.client.force_login(self.admin_user)
        response = self.client.get(reverse('assets:dashboard'))
        self.assertTrue(response.wsgi_request.is_company_admin)

    def test_super_admin_without_selection_sees_all(self):
        self.client.force_login(self.superuser)
        response = self.client.get(reverse('assets:dashboard'))

        self.assertIsNone(response.wsgi_request.current_company)
        self.assertTrue(response.context['is_super_admin_dashboard'])
        self.assertEqual(response.context['total_companies'], 2)

    def test_user_without_employee_is_redirected(self):
        User.objects.create_user(username='orphan', password='orphan123')
        self.client.login(username='orphan', password='orphan123')

        response = self.client.get(reverse('assets:asset_list'))
        self.assertRedirects(response, reverse('assets:dashboard'))


class CompanyViewTest(BaseTestCase):
    """Test business unit management views"""

    def test_only_super_admin_can_list(self):
        self.client.force_login(self.admin_user)
        response = self.client.get(reverse('core:company_list'))
        self.assertRedirects(response, reverse('assets:dashboard'))

    def test_super_admin_creates_company(self):
        self.client.force_login(self.superuser)
        response = self.client.post(reverse('core:company_create'), {
            'name': 'New Unit',
            'code': 'new-01',
            'country': 'Philippines',
            'max_users': 10,
            'max_assets': 100,
            'is_active': 'on',
        })

        self.assertRedirects(response, reverse('core:company_list'))
        company = Company.objects.get(name='New Unit')
        self.assertEqual(company.code, 'NEW-01')
        self.assertTrue(AuditLog.objects.filter(action='CREATE', company=company).exists())

    def test_subscription_dates_validated(self):
        self.client.force_login(self.superuser)
        response = self.client.post(reverse('core:company_create'), {
            'name': 'Bad Dates',
            'code': 'BAD',
            'country': 'Philippines',
            'max_users': 10,
            'max_assets': 100,
            'subscription_start_date': '2025-02-01',
            'subscription_end_date': '2025-01-01',
        })
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Company.objects.filter(code='BAD').exists())

    def test_set_and_clear_company_context(self):
        self.client.force_login(self.superuser)

        response = self.client.get(reverse('core:set_company_context', args=[self.other_company.pk]))
        self.assertRedirects(response, reverse('assets:dashboard'))
        self.assertEqual(self.client.session['selected_company_id'], self.other_company.pk)

        response = self.client.get(reverse('assets:dashboard'))
        self.assertEqual(response.context['company'], self.other_company)

        self.client.get(reverse('core:clear_company_context'))
        self.assertNotIn('selected_company_id', self.client.session)

    def test_delete_company_clears_selection(self):
        self.client.force_login(self.superuser)
        self.client.get(reverse('core:set_company_context', args=[self.other_company.pk]))

        response = self.client.post(reverse('core:company_delete', args=[self.other_company.pk]))
        self.assertRedirects(response, reverse('core:company_list'))

        self.other_company.refresh_from_db()
        self.assertTrue(self.other_company.is_deleted)
        self.assertFalse(self.other_company.is_active)
        self.assertNotIn('selected_company_id', self.client.session)


class AuditLogViewTest(BaseTestCase):
    """Test audit log screens"""

    def test_regular_user_cannot_view_logs(self):
        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('core:audit_log_list'))
        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse('login'), response.url)

    def test_admin_sees_only_own_company(self):
        own = log_custom(None, 'EXPORT', 'ours', company=self.company)
        foreign = log_custom(None, 'EXPORT', 'theirs', company=self.other_company)
        self.client.force_login(self.admin_user)

        response = self.client.get(reverse('core:audit_log_list'))
        self.assertEqual(response.status_code, 200)
        shown = [log.pk for log in response.context['page_obj']]
        self.assertIn(own.pk, shown)
        self.assertNotIn(foreign.pk, shown)

        response = self.client.get(reverse('core:audit_log_detail', args=[foreign.pk]))
        self.assertRedirects(response, reverse('core:audit_log_list'))

    def test_export_returns_workbook_and_is_logged(self):
        log_custom(None, 'EXPORT', 'ours', company=self.company)
        self.client.force_login(self.admin_user)

        response = self.client.get(reverse('core:audit_log_export'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response['Content-Type'],
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        self.assertTrue(AuditLog.objects.filter(action='EXPORT', object_repr='AuditLog Export').exists())


class SystemSettingViewTest(BaseTestCase):
    """Setting changes are reserved for the super admin"""

    def test_company_admin_cannot_create(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('core:system_setting_create'), {'key': 'x', 'value': 'y'})

        self.assertRedirects(response, reverse('assets:dashboard'))
        self.assertFalse(SystemSetting.objects.exists())

    def test_super_admin_duplicate_key_shows_form_error(self):
        create_system_setting({'key': 'currency', 'value': 'PHP'})
        self.client.force_login(self.superuser)

        response = self.client.post(reverse('core:system_setting_create'), {'key': 'currency', 'value': 'USD'})
        self.assertEqual(response.status_code, 200)
        self.assertIn('key', response.context['form'].errors)
