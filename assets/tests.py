"""
Comprehensive tests for the assets app
"""
from django.test import TestCase, Client
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.contrib.auth.models import User
from django.urls import reverse
from django.utils import timezone
from dateutil.relativedelta import relativedelta
from decimal import Decimal
from datetime import datetime, timedelta
from io import BytesIO, StringIO
from unittest import mock
import json

from django.core.files.uploadedfile import SimpleUploadedFile
from openpyxl import Workbook, load_workbook

from .analytics import (
    get_asset_roi, get_cost_centre_allocations, get_dashboard_stats, get_deployment_rate_analysis,
    get_deployment_trends, get_idle_asset_analysis, get_system_alerts, get_top_assets, get_utilization_summary,
)
from .bulk_operations import bulk_delete_assets, bulk_return_assets, bulk_update_assets
from .deployments import (
    approve_deployment, bulk_approve_deployments, can_approve_deployments, cancel_deployment,
    create_bulk_deployments, create_deployment, get_available_assets, get_deployed_assets,
    reject_deployment, return_asset,
)
from .depreciation import (
    batch_calculate_depreciation, calculate_asset_depreciation, get_assets_due_for_depreciation,
    get_depreciation_alerts, get_depreciation_schedule, get_depreciation_summary, update_asset_units,
)
from .disposals import (
    approve_asset_disposal, calculate_gain_loss, create_asset_disposal, create_bulk_disposals, get_disposal_summary,
)
from .imports import build_import_template, create_bulk_assets, preview_bulk_assets, read_asset_file
from .models import (
    Asset, AssetCategory, AssetDepreciation, AssetDeployment, AssetDisposal, AssetHistory, AssetScanLog,
    AssetTransfer, InventoryVerification, VerificationItem, next_document_number,
)
from .retirements import (
    approve_asset_retirement, create_asset_retirement, generate_end_of_life_notifications,
    get_assets_eligible_for_retirement, recommended_action,
)
from .services import create_asset, create_category, delete_asset, delete_category, update_asset
from .transfers import (
    approve_asset_transfer, complete_asset_transfer, create_asset_transfer, create_bulk_transfers,
    reject_asset_transfer, ship_asset_transfer,
)
from .utils import (
    apply_depreciation, declining_balance_amount, get_assets_warranty_expiring, straight_line_amount,
    sum_of_years_digits_amount, units_of_production_amount,
)
from .verification import (
    cancel_inventory_verification, complete_inventory_verification, create_inventory_verification,
    quick_asset_lookup, record_verification_scan, scan_asset, update_verification_item,
)
from core.models import AuditLog, Company
from core.utils import build_asset_qr_url
from users.models import Department, Employee, Location, Notification, Role


class BaseTestCase(TestCase):
    """Base test case with common setup"""

    def setUp(self):
        """Set up test data"""
        self.company = Company.objects.create(
            name="Test Company",
            code="TEST-001",
            email="test@example.com",
            is_active=True
        )
        self.other_company = Company.objects.create(
            name="Branch Company",
            code="BRANCH-001",
            is_active=True
        )

        self.admin_role = Role.objects.create(name="Administrator", code="ADMIN")
        self.staff_role = Role.objects.create(name="Staff", code="STAFF")

        self.admin_user = User.objects.create_user(
            username='admin',
            password='admin123',
            email='admin@test.com'
        )
        self.admin_employee = Employee.objects.create(
            user=self.admin_user,
            company=self.company,
            employee_id='EMP-001',
            first_name='Ada',
            last_name='Admin',
            role=self.admin_role
        )

        self.regular_user = User.objects.create_user(
            username='user',
            password='user123',
            email='user@test.com'
        )
        self.employee = Employee.objects.create(
            user=self.regular_user,
            company=self.company,
            employee_id='EMP-002',
            first_name='Reg',
            last_name='User',
            role=self.staff_role
        )

        self.department = Department.objects.create(
            company=self.company,
            name="IT Department",
            code="IT-001"
        )
        self.location = Location.objects.create(
            company=self.company,
            name="Main Office",
            code="LOC-001",
            location_type="OFFICE"
        )
        self.branch_location = Location.objects.create(
            company=self.other_company,
            name="Branch Office",
            code="LOC-900"
        )

        self.category = AssetCategory.objects.create(
            company=self.company,
            name="Electronics",
            code="ELEC-001"
        )

        self.asset = self.make_asset("LAPTOP-001", purchase_price=Decimal('1200.00'))

        self.client = Client()

    def make_asset(self, asset_tag, **kwargs):
        values = {
            'company': self.company,
            'name': f"Asset {asset_tag}",
            'category': self.category,
            'location': self.location,
            'department': self.department,
            'condition': 'GOOD',
            'purchase_date': timezone.localdate() - timedelta(days=60),
            'useful_life_years': 1,
        }
        values.update(kwargs)
        return Asset.objects.create(asset_tag=asset_tag, **values)


class AssetModelTest(BaseTestCase):
    """Test Asset model"""

    def test_asset_creation_seeds_depreciation(self):
        """Test creating an asset"""
        self.assertEqual(self.asset.status, Asset.AVAILABLE)
        self.assertEqual(self.asset.useful_life_months, 12)
        self.assertEqual(self.asset.current_book_value, Decimal('1200.00'))
        self.assertEqual(
            self.asset.next_depreciation_date,
            self.asset.purchase_date + relativedelta(months=1)
        )

    def test_asset_str_representation(self):
        """Test string representation"""
        self.assertEqual(str(self.asset), "LAPTOP-001 - Asset LAPTOP-001")

    def test_qr_code_generated_on_creation(self):
        """Test that a QR label is written for new assets"""
        self.assertIsNotNone(self.asset.qr_code)
        self.assertTrue(self.asset.qr_code_image)
        self.assertIn('LAPTOP-001', self.asset.qr_code_image.name)

    def test_depreciation_percentage(self):
        self.asset.current_book_value = Decimal('900.00')
        self.assertEqual(self.asset.depreciation_percentage, Decimal('25.0'))

    def test_book_value_falls_back_to_price(self):
        asset = Asset(purchase_price=Decimal('50.00'))
        self.assertEqual(asset.book_value, Decimal('50.00'))

    def test_document_numbers_are_sequential(self):
        first = AssetDeployment.objects.create(asset=self.asset, employee=self.employee, company=self.company)
        second = AssetDeployment.objects.create(asset=self.asset, employee=self.employee, company=self.company)

        year = timezone.now().strftime('%Y')
        self.assertEqual(first.transmittal_number, f'TN-{year}-0001')
        self.assertEqual(second.transmittal_number, f'TN-{year}-0002')

    def test_document_numbers_continue_past_four_digits(self):
        year = timezone.now().strftime('%Y')
        for number in ('9999', '10000'):
            AssetDeployment.objects.create(
                asset=self.asset, employee=self.employee, company=self.company,
                transmittal_number=f'TN-{year}-{number}',
            )

        self.assertEqual(next_document_number(AssetDeployment, 'transmittal_number', 'TN'), f'TN-{year}-10001')
        following = AssetDeployment.objects.create(asset=self.asset, employee=self.employee, company=self.company)
        self.assertEqual(following.transmittal_number, f'TN-{year}-10001')


class AssetServiceTest(BaseTestCase):
    """Test asset and category record operations"""

    def test_create_asset_records_history_and_audit(self):
        outcome = create_asset(self.company, {
            'asset_tag': 'MON-001',
            'name': 'Monitor',
            'category': self.category,
            'purchase_price': Decimal('300.00'),
        }, user=self.admin_user)

        self.assertTrue(outcome['success'])
        asset = outcome['asset']
        self.assertEqual(asset.created_by, self.admin_user)
        self.assertTrue(AssetHistory.objects.filter(asset=asset, action_type='CREATED').exists())
        self.assertTrue(AuditLog.objects.filter(action='CREATE', object_id=str(asset.pk)).exists())

    def test_item_code_unique_per_company(self):
        outcome = create_asset(self.company, {'asset_tag': 'LAPTOP-001', 'name': 'Dup', 'category': self.category})
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Asset with this item code already exists')

        other_category = AssetCategory.objects.create(company=self.other_company, name="IT", code="IT")
        outcome = create_asset(self.other_company, {'asset_tag': 'LAPTOP-001', 'name': 'Ok', 'category': other_category})
        self.assertTrue(outcome['success'])

    def test_price_added_later_seeds_depreciation(self):
        asset = create_asset(self.company, {
            'asset_tag': 'MON-002', 'name': 'Monitor', 'category': self.category,
        })['asset']
        self.assertIsNone(asset.current_book_value)
        self.assertIsNone(asset.next_depreciation_date)

        purchase_date = timezone.localdate() - timedelta(days=60)
        outcome = update_asset(asset, {
            'purchase_price': Decimal('600.00'), 'useful_life_years': 1, 'purchase_date': purchase_date,
        })

        self.assertTrue(outcome['success'])
        asset.refresh_from_db()
        self.assertEqual(asset.current_book_value, Decimal('600.00'))
        self.assertEqual(asset.next_depreciation_date, purchase_date + relativedelta(months=1))
        self.assertIn(asset, get_assets_due_for_depreciation(self.company))

    def test_update_asset_status_change_is_recorded(self):
        outcome = update_asset(self.asset, {'status': Asset.IN_MAINTENANCE}, user=self.admin_user)

        self.assertTrue(outcome['success'])
        history = AssetHistory.objects.get(asset=self.asset, action_type='STATUS_CHANGED')
        self.assertEqual(history.previous_status, Asset.AVAILABLE)
        self.assertEqual(history.new_status, Asset.IN_MAINTENANCE)

    def test_delete_deployed_asset_rejected(self):
        AssetDeployment.objects.create(
            asset=self.asset, employee=self.employee, company=self.company, status=AssetDeployment.DEPLOYED
        )
        self.assertFalse(delete_asset(self.asset)['success'])

    def test_delete_asset_is_soft(self):
        self.assertTrue(delete_asset(self.asset, user=self.admin_user)['success'])
        self.asset.refresh_from_db()
        self.assertTrue(self.asset.is_deleted)

    def test_category_rules(self):
        self.assertFalse(create_category(self.company, {'name': 'Again', 'code': 'ELEC-001'})['success'])
        self.assertFalse(delete_category(self.category)['success'])

        empty = create_category(self.company, {'name': 'Furniture', 'code': 'FURN'})['category']
        self.assertTrue(delete_category(empty)['success'])


class DepreciationFormulaTest(TestCase):
    """Test the depreciation formulas"""

    def test_straight_line(self):
        self.assertEqual(straight_line_amount(Decimal('1200'), Decimal('0'), 12), Decimal('100.00'))
        self.assertEqual(straight_line_amount(Decimal('1000'), Decimal('100'), 36), Decimal('25.00'))
        self.assertEqual(straight_line_amount(Decimal('1000'), Decimal('0'), None), Decimal('0.00'))

    def test_declining_balance(self):
        self.assertEqual(declining_balance_amount(Decimal('12000'), Decimal('20')), Decimal('200.00'))
        self.assertEqual(declining_balance_amount(Decimal('12000'), None), Decimal('0.00'))

    def test_units_of_production(self):
        self.assertEqual(units_of_production_amount(Decimal('10000'), Decimal('1000'), 9000, 900), Decimal('900.00'))
        self.assertEqual(units_of_production_amount(Decimal('10000'), Decimal('1000'), 9000, 0), Decimal('0.00'))

    def test_sum_of_years_digits_uses_remaining_years(self):
        self.assertEqual(sum_of_years_digits_amount(Decimal('7800'), Decimal('600'), 36, 0), Decimal('300.00'))
        self.assertEqual(sum_of_years_digits_amount(Decimal('7800'), Decimal('600'), 36, 12), Decimal('200.00'))
        self.assertEqual(sum_of_years_digits_amount(Decimal('7800'), Decimal('600'), 36, 24), Decimal('100.00'))

    def test_book_value_never_below_salvage(self):
        self.assertEqual(apply_depreciation(Decimal('150'), Decimal('100'), Decimal('80')),
                         (Decimal('80.00'), Decimal('70.00')))


class DepreciationEngineTest(BaseTestCase):
    """Test posting depreciation to assets"""

    def test_calculate_straight_line(self):
        outcome = calculate_asset_depreciation(self.asset, user=self.admin_user)

        self.assertTrue(outcome['success'])
        calculation = outcome['calculation']
        self.assertEqual(calculation['depreciation_amount'], Decimal('100.00'))
        self.assertEqual(calculation['new_book_value'], Decimal('1100.00'))

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.current_book_value, Decimal('1100.00'))
        self.assertEqual(self.asset.accumulated_depreciation, Decimal('100.00'))
        self.assertEqual(self.asset.next_depreciation_date, timezone.localdate() + relativedelta(months=1))

        record = AssetDepreciation.objects.get(asset=self.asset)
        self.assertEqual(record.book_value_start, Decimal('1200.00'))
        self.assertEqual(record.calculated_by, self.admin_user)
        self.assertTrue(AssetHistory.objects.filter(asset=self.asset, action_type='DEPRECIATION_CALCULATED').exists())

    def test_reaching_salvage_marks_fully_depreciated(self):
        asset = self.make_asset("OLD-001", purchase_price=Decimal('200.00'), salvage_value=Decimal('100.00'),
                                current_book_value=Decimal('105.00'))

        outcome = calculate_asset_depreciation(asset)
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['calculation']['depreciation_amount'], Decimal('5.00'))

        asset.refresh_from_db()
        self.assertTrue(asset.is_fully_depreciated)
        self.assertEqual(asset.status, Asset.FULLY_DEPRECIATED)
        self.assertIsNone(asset.next_depreciation_date)

        outcome = calculate_asset_depreciation(asset)
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Asset is already fully depreciated')

    def test_book_value_at_salvage_is_written_off(self):
        asset = self.make_asset("FLOOR-001", purchase_price=Decimal('200.00'), salvage_value=Decimal('100.00'),
                                current_book_value=Decimal('100.00'))

        outcome = calculate_asset_depreciation(asset)

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Asset has reached its salvage value')
        asset.refresh_from_db()
        self.assertTrue(asset.is_fully_depreciated)
        self.assertEqual(asset.status, Asset.FULLY_DEPRECIATED)
        self.assertIsNone(asset.next_depreciation_date)
        self.assertFalse(AssetDepreciation.objects.filter(asset=asset).exists())

    def test_disposed_asset_is_not_depreciated(self):
        self.asset.status = Asset.DISPOSED
        self.asset.save()

        outcome = calculate_asset_depreciation(self.asset)

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Cannot depreciate a disposed asset')
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.current_book_value, Decimal('1200.00'))
        self.assertEqual(self.asset.status, Asset.DISPOSED)
        self.assertFalse(AssetDepreciation.objects.exists())

    def test_retired_asset_is_not_depreciated(self):
        retired = self.make_asset("OLD-002", purchase_price=Decimal('500.00'), status=Asset.RETIRED,
                                  next_depreciation_date=timezone.localdate() - timedelta(days=1))

        outcome = calculate_asset_depreciation(retired)
        self.assertEqual(outcome['message'], 'Cannot depreciate a retired asset')

        self.assertNotIn(retired, get_assets_due_for_depreciation(self.company))
        self.assertEqual(batch_calculate_depreciation(self.company)['processed_assets'], 1)

    def test_alerts_are_ordered_by_severity(self):
        today = timezone.localdate()
        self.make_asset("NEAR-001", purchase_price=Decimal('1000.00'), purchase_date=today,
                        accumulated_depreciation=Decimal('850.00'), current_book_value=Decimal('150.00'))
        self.make_asset("DONE-001", purchase_price=Decimal('100.00'), is_fully_depreciated=True,
                        accumulated_depreciation=Decimal('100.00'), current_book_value=Decimal('0.00'),
                        last_depreciation_date=today - timedelta(days=5))
        self.make_asset("GONE-001", purchase_price=Decimal('500.00'), status=Asset.DISPOSED,
                        next_depreciation_date=today - timedelta(days=1))

        alerts = get_depreciation_alerts(self.company)

        self.assertEqual(
            [(alert['type'], alert['asset'].asset_tag) for alert in alerts],
            [('DUE_FOR_CALCULATION', 'LAPTOP-001'), ('FULLY_DEPRECIATED', 'DONE-001'), ('HIGH_DEPRECIATION', 'NEAR-001')],
        )
        self.assertEqual(alerts[2]['message'], 'Asset NEAR-001 is 85.0% depreciated')

    def test_declining_balance_schedule(self):
        asset = self.make_asset("DB-001", purchase_price=Decimal('1200.00'), useful_life_years=2,
                                depreciation_method=Asset.DECLINING_BALANCE, depreciation_rate=Decimal('24.00'))

        schedule = get_depreciation_schedule(asset)['schedule']

        self.assertEqual(len(schedule), 24)
        self.assertEqual(schedule[0]['depreciation_amount'], Decimal('24.00'))
        self.assertEqual(schedule[1]['depreciation_amount'], Decimal('23.52'))
        self.assertEqual(schedule[1]['book_value_end'], Decimal('1152.48'))
        self.assertGreater(schedule[-1]['book_value_end'], Decimal('0.00'))

    def test_sum_of_years_digits_schedule(self):
        asset = self.make_asset("SYD-001", purchase_price=Decimal('1500.00'), useful_life_years=2,
                                depreciation_method=Asset.SUM_OF_YEARS_DIGITS)

        schedule = get_depreciation_schedule(asset)['schedule']

        self.assertEqual(len(schedule), 24)
        self.assertEqual(schedule[11]['depreciation_amount'], Decimal('83.33'))
        self.assertEqual(schedule[12]['depreciation_amount'], Decimal('41.67'))
        self.assertEqual(schedule[-1]['book_value_end'], Decimal('0.00'))
        self.assertEqual(schedule[-1]['accumulated_depreciation'], Decimal('1500.00'))

    def test_units_of_production_schedule_assumes_even_usage(self):
        asset = self.make_asset(
            "UOP-001", purchase_price=Decimal('10000.00'), salvage_value=Decimal('1000.00'),
            depreciation_method=Asset.UNITS_OF_PRODUCTION, total_expected_units=9000
        )

        schedule = get_depreciation_schedule(asset)['schedule']

        self.assertEqual(len(schedule), 12)
        self.assertTrue(all(row['depreciation_amount'] == Decimal('750.00') for row in schedule))
        self.assertEqual(schedule[-1]['book_value_end'], Decimal('1000.00'))

    def test_units_counted_when_nothing_left_to_depreciate(self):
        asset = self.make_asset(
            "PRN-003", purchase_price=Decimal('10000.00'), salvage_value=Decimal('1000.00'),
            current_book_value=Decimal('1000.00'),
            depreciation_method=Asset.UNITS_OF_PRODUCTION, total_expected_units=9000
        )

        outcome = update_asset_units(asset, 50)

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['message'], 'Asset units updated. Asset has reached its salvage value')
        asset.refresh_from_db()
        self.assertEqual(asset.current_units, 50)
        self.assertTrue(asset.is_fully_depreciated)
        self.assertTrue(AssetHistory.objects.filter(asset=asset, action_type='UNITS_UPDATED').exists())

    def test_units_update_rolled_back_when_posting_fails(self):
        asset = self.make_asset(
            "PRN-004", purchase_price=Decimal('10000.00'),
            depreciation_method=Asset.UNITS_OF_PRODUCTION, total_expected_units=9000
        )

        with mock.patch.object(AssetDepreciation.objects, 'create', side_effect=DatabaseError('disk full')):
            outcome = update_asset_units(asset, 100)

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Failed to update asset units')
        asset.refresh_from_db()
        self.assertEqual(asset.current_units, 0)
        self.assertFalse(AssetHistory.objects.filter(asset=asset, action_type='UNITS_UPDATED').exists())

    def test_missing_depreciation_data(self):
        asset = self.make_asset("NOPRICE-001")
        self.assertFalse(calculate_asset_depreciation(asset)['success'])

    def test_schedule_ends_at_salvage(self):
        outcome = get_depreciation_schedule(self.asset)

        schedule = outcome['schedule']
        self.assertEqual(len(schedule), 12)
        self.assertEqual(schedule[0]['depreciation_amount'], Decimal('100.00'))
        self.assertEqual(schedule[-1]['book_value_end'], Decimal('0.00'))
        self.assertEqual(schedule[-1]['accumulated_depreciation'], Decimal('1200.00'))

    def test_units_of_production_update(self):
        asset = self.make_asset(
            "PRN-001", purchase_price=Decimal('10000.00'), salvage_value=Decimal('1000.00'),
            depreciation_method=Asset.UNITS_OF_PRODUCTION, total_expected_units=9000
        )

        self.assertFalse(update_asset_units(asset, 0)['success'])
        self.assertFalse(update_asset_units(self.asset, 10)['success'])

        outcome = update_asset_units(asset, 900, user=self.admin_user)
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['calculation']['depreciation_amount'], Decimal('900.00'))

        asset.refresh_from_db()
        self.assertEqual(asset.current_units, 900)
        self.assertEqual(asset.current_book_value, Decimal('9100.00'))
        self.assertEqual(AssetDepreciation.objects.get(asset=asset).units_in_period, 900)

    def test_batch_skips_units_of_production(self):
        self.make_asset(
            "PRN-002", purchase_price=Decimal('10000.00'),
            depreciation_method=Asset.UNITS_OF_PRODUCTION, total_expected_units=9000
        )
        self.make_asset("FUTURE-001", purchase_price=Decimal('600.00'), purchase_date=timezone.localdate())

        outcome = batch_calculate_depreciation(self.company, user=self.admin_user)

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['processed_assets'], 1)
        self.assertEqual(outcome['skipped_assets'], 1)
        self.assertEqual(outcome['total_depreciation'], Decimal('100.00'))
        self.assertTrue(AuditLog.objects.filter(object_repr='AssetDepreciation', company=self.company).exists())

    def test_summary(self):
        calculate_asset_depreciation(self.asset)
        summary = get_depreciation_summary(self.company)

        self.assertEqual(summary['total_assets'], 1)
        self.assertEqual(summary['total_original_value'], Decimal('1200.00'))
        self.assertEqual(summary['total_current_value'], Decimal('1100.00'))
        self.assertEqual(summary['total_depreciation'], Decimal('100.00'))
        self.assertEqual(summary['assets_due_for_depreciation'], 0)


class DeploymentWorkflowTest(BaseTestCase):
    """Test deployment requests, approval and returns"""

    def test_approver_rules(self):
        self.assertTrue(can_approve_deployments(self.admin_user))
        self.assertFalse(can_approve_deployments(self.regular_user))

        accounting = Role.objects.create(name="Accounting", code="ACCOUNTING")
        self.employee.role = accounting
        self.employee.save()
        self.assertTrue(can_approve_deployments(User.objects.get(pk=self.regular_user.pk)))

    def test_permission_grants_approval(self):
        self.staff_role.permissions = ['deployments:approve']
        self.staff_role.save()
        self.assertTrue(can_approve_deployments(User.objects.get(pk=self.regular_user.pk)))

    def test_full_deployment_cycle(self):
        outcome = create_deployment(self.asset, self.employee, {'deployment_notes': 'New hire'}, user=self.regular_user)
        self.assertTrue(outcome['success'])
        deployment = outcome['deployment']
        self.assertEqual(deployment.status, AssetDeployment.PENDING_ACCOUNTING_APPROVAL)
        self.assertEqual(deployment.deployment_condition, 'GOOD')

        self.assertFalse(approve_deployment(deployment, self.regular_user)['success'])

        outcome = approve_deployment(deployment, self.admin_user, accounting_notes='OK')
        self.assertTrue(outcome['success'])
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.DEPLOYED)
        self.assertEqual(self.asset.assigned_to, self.employee)
        self.assertTrue(AuditLog.objects.filter(action='APPROVE', object_id=str(deployment.pk)).exists())

        outcome = return_asset(deployment, {'return_condition': 'FAIR', 'return_notes': 'Scratched'},
                               user=self.admin_user)
        self.assertTrue(outcome['success'])
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.AVAILABLE)
        self.assertIsNone(self.asset.assigned_to)
        self.assertEqual(self.asset.condition, 'FAIR')

        self.assertFalse(return_asset(deployment)['success'])

    def test_unavailable_asset_cannot_be_deployed(self):
        self.asset.status = Asset.IN_MAINTENANCE
        self.asset.save()

        outcome = create_deployment(self.asset, self.employee)
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Asset is not available for deployment')

    def test_inactive_employee_rejected(self):
        self.employee.is_active = False
        self.employee.save()
        self.assertFalse(create_deployment(self.asset, self.employee)['success'])

    def test_reject_and_cancel(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']

        outcome = reject_deployment(deployment, self.admin_user, 'Budget')
        self.assertTrue(outcome['success'])
        self.assertEqual(deployment.status, AssetDeployment.CANCELLED)
        self.assertEqual(deployment.accounting_notes, 'REJECTED: Budget')

        self.assertFalse(cancel_deployment(deployment)['success'])

        pending = create_deployment(self.asset, self.employee)['deployment']
        self.assertTrue(cancel_deployment(pending, reason='Not needed')['success'])

    def test_cannot_cancel_deployed(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)

        outcome = cancel_deployment(deployment)
        self.assertEqual(outcome['message'], 'Cannot cancel deployed asset. Use return instead.')

    def test_bulk_deployment_is_all_or_nothing(self):
        second = self.make_asset("LAPTOP-002")
        second.status = Asset.DEPLOYED
        second.save()

        outcome = create_bulk_deployments(self.company, self.employee, [self.asset, second])
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['failed_count'], 1)
        self.assertEqual(outcome['errors'][0]['asset_tag'], 'LAPTOP-002')
        self.assertFalse(AssetDeployment.objects.exists())

        second.status = Asset.AVAILABLE
        second.save()
        outcome = create_bulk_deployments(self.company, self.employee, [self.asset, second])
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['processed_count'], 2)

    def test_bulk_deployment_requests_each_asset_once(self):
        outcome = create_bulk_deployments(self.company, self.employee, [self.asset, self.asset])

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['processed_asset_ids'], [self.asset.pk])
        self.assertEqual(AssetDeployment.objects.filter(asset=self.asset).count(), 1)

    def test_bulk_approve_commits_each_deployment(self):
        first = create_deployment(self.asset, self.employee)['deployment']
        duplicate = create_deployment(self.asset, self.admin_employee)['deployment']
        other = create_deployment(self.make_asset("LAPTOP-003"), self.employee)['deployment']

        outcome = bulk_approve_deployments(self.company, [first.pk, duplicate.pk, other.pk], self.admin_user)

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['processed_count'], 2)
        self.assertEqual(outcome['failed_count'], 1)
        self.assertEqual(outcome['errors'][0]['message'], 'Asset is no longer available for deployment')
        self.assertEqual(
            AssetDeployment.objects.filter(status=AssetDeployment.DEPLOYED).count(), 2
        )

    def test_bulk_approve_requires_permission(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']
        outcome = bulk_approve_deployments(self.company, [deployment.pk], self.regular_user)
        self.assertFalse(outcome['success'])

    def test_available_and_deployed_queries(self):
        second = self.make_asset("LAPTOP-002")
        deployment = create_deployment(second, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)

        self.assertEqual(list(get_available_assets(self.company)), [self.asset])
        self.assertEqual(list(get_deployed_assets(self.company)), [deployment])

        return_asset(deployment)
        self.assertFalse(get_deployed_assets(self.company).exists())

    def test_warranty_expiring_window(self):
        today = timezone.localdate()
        self.make_asset("W-SOON", warranty_end_date=today + timedelta(days=10))
        self.make_asset("W-LATER", warranty_end_date=today + timedelta(days=45))
        self.make_asset("W-PAST", warranty_end_date=today - timedelta(days=1))

        tags = [asset.asset_tag for asset in get_assets_warranty_expiring(self.company)]
        self.assertEqual(tags, ['W-SOON'])


class TransferWorkflowTest(BaseTestCase):
    """Test transfers between business units"""

    def test_full_transfer_cycle(self):
        outcome = create_asset_transfer(
            self.asset, self.company, self.other_company,
            {'reason': 'Branch opening', 'to_location': self.branch_location},
            user=self.admin_user,
        )
        self.assertTrue(outcome['success'])
        transfer = outcome['transfer']
        self.assertEqual(transfer.from_location, self.location)
        self.assertTrue(transfer.transfer_number.startswith('TR-'))

        self.assertFalse(complete_asset_transfer(transfer, self.admin_user)['success'])
        self.assertFalse(ship_asset_transfer(transfer, self.admin_user)['success'])

        self.assertTrue(approve_asset_transfer(transfer, self.admin_user, notes='Go')['success'])
        self.assertIn('Approval Notes: Go', transfer.transfer_notes)
        self.assertTrue(ship_asset_transfer(transfer, self.admin_user, tracking_number='TRK-1')['success'])
        self.assertEqual(transfer.status, AssetTransfer.IN_TRANSIT)

        outcome = complete_asset_transfer(transfer, self.admin_user, condition_after='FAIR')
        self.assertTrue(outcome['success'])

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.company, self.other_company)
        self.assertEqual(self.asset.location, self.branch_location)
        self.assertEqual(self.asset.category.company, self.other_company)
        self.assertEqual(self.asset.category.code, self.category.code)
        self.assertIsNone(self.asset.department)
        self.assertEqual(self.asset.condition, 'FAIR')

    def test_transfer_guards(self):
        same = create_asset_transfer(self.asset, self.company, self.company, {'reason': 'x'})
        self.assertEqual(same['message'], 'Cannot transfer asset to the same business unit')

        self.assertTrue(create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})['success'])
        again = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})
        self.assertEqual(again['message'], 'Asset already has a pending or active transfer')

        foreign = create_asset_transfer(self.asset, self.other_company, self.company, {'reason': 'x'})
        self.assertEqual(foreign['message'], 'Asset not found or not accessible')

    def test_stage_guards(self):
        transfer = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})['transfer']

        self.assertEqual(ship_asset_transfer(transfer, self.admin_user)['message'], 'Transfer is not approved')
        self.assertEqual(complete_asset_transfer(transfer, self.admin_user)['message'], 'Transfer is not in transit')

        approve_asset_transfer(transfer, self.admin_user)
        self.assertEqual(complete_asset_transfer(transfer, self.admin_user)['message'], 'Transfer is not in transit')

    def test_deployed_asset_cannot_move(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)

        outcome = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Return the asset before transferring it')

    def test_completion_refused_while_deployed(self):
        transfer = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})['transfer']
        approve_asset_transfer(transfer, self.admin_user)
        ship_asset_transfer(transfer, self.admin_user)
        AssetDeployment.objects.create(
            asset=self.asset, employee=self.employee, company=self.company, status=AssetDeployment.DEPLOYED
        )

        outcome = complete_asset_transfer(transfer, self.admin_user)

        self.assertEqual(outcome['message'], 'Return the asset before completing the transfer')
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.company, self.company)

    def test_destination_category_with_same_code_is_used(self):
        branch_category = AssetCategory.objects.create(company=self.other_company, name="Branch IT", code="ELEC-001")
        transfer = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})['transfer']
        approve_asset_transfer(transfer, self.admin_user)
        ship_asset_transfer(transfer, self.admin_user)

        self.assertTrue(complete_asset_transfer(transfer, self.admin_user)['success'])

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.category, branch_category)
        self.assertEqual(AssetCategory.objects.filter(company=self.other_company).count(), 1)

    def test_disposed_asset_cannot_move(self):
        self.asset.status = Asset.DISPOSED
        self.asset.save()
        outcome = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})
        self.assertEqual(outcome['message'], 'Cannot transfer disposed asset')

    def test_reject_only_pending(self):
        transfer = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})['transfer']

        self.assertTrue(reject_asset_transfer(transfer, self.admin_user, 'No budget')['success'])
        self.assertEqual(transfer.rejection_reason, 'No budget')
        self.assertFalse(approve_asset_transfer(transfer, self.admin_user)['success'])

        # A rejected transfer no longer blocks a new request
        self.assertTrue(create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'y'})['success'])

    def test_bulk_transfers_report_failures(self):
        disposed = self.make_asset("LAPTOP-002", status=Asset.DISPOSED)

        outcome = create_bulk_transfers([self.asset, disposed], self.company, self.other_company, {'reason': 'Move'})

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['processed_asset_ids'], [self.asset.pk])
        self.assertEqual(outcome['errors'][0]['message'], 'Cannot transfer disposed asset')
        self.assertEqual(AssetTransfer.objects.count(), 1)


class RetirementWorkflowTest(BaseTestCase):
    """Test retirement and end-of-life review"""

    def test_recommended_action(self):
        self.assertEqual(recommended_action(self.asset, 1, 10.0), 'MONITOR')
        self.assertEqual(recommended_action(self.asset, 7.5, 10.0), 'MAINTAIN')
        self.assertEqual(recommended_action(self.asset, 1, 85.0), 'MAINTAIN')
        self.assertEqual(recommended_action(self.asset, 10, 0.0), 'RETIRE')
        self.assertEqual(recommended_action(self.asset, 1, 96.0), 'RETIRE')

        self.asset.status = Asset.DAMAGED
        self.assertEqual(recommended_action(self.asset, 0, 0.0), 'RETIRE')

    def test_eligible_assets(self):
        self.make_asset("OLD-001", purchase_date=timezone.localdate() - timedelta(days=365 * 11))
        self.make_asset("GONE-001", status=Asset.RETIRED)

        rows = {row['asset'].asset_tag: row for row in get_assets_eligible_for_retirement(self.company)}
        self.assertEqual(set(rows), {'LAPTOP-001', 'OLD-001'})
        self.assertEqual(rows['OLD-001']['recommended_action'], 'RETIRE')
        self.assertEqual(rows['LAPTOP-001']['recommended_action'], 'MONITOR')

    def test_retire_and_approve(self):
        outcome = create_asset_retirement(self.asset, self.company, {'reason': 'OBSOLETE'}, user=self.admin_user)
        self.assertTrue(outcome['success'])
        retirement = outcome['retirement']
        self.assertEqual(retirement.condition, 'GOOD')

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.RETIRED)
        self.assertIsNone(self.asset.next_depreciation_date)

        again = create_asset_retirement(self.asset, self.company, {'reason': 'OBSOLETE'})
        self.assertEqual(again['message'], 'Asset is already retired')

        self.assertTrue(approve_asset_retirement(retirement, self.admin_user, notes='Fine')['success'])
        self.assertTrue(retirement.is_approved)
        self.assertFalse(approve_asset_retirement(retirement, self.admin_user)['success'])

    def test_deployed_asset_cannot_retire(self):
        AssetDeployment.objects.create(
            asset=self.asset, employee=self.employee, company=self.company, status=AssetDeployment.DEPLOYED
        )
        outcome = create_asset_retirement(self.asset, self.company, {'reason': 'OBSOLETE'})
        self.assertEqual(outcome['message'], 'Cannot retire asset with active deployments')

    def test_end_of_life_notifications(self):
        self.make_asset("OLD-001", purchase_date=timezone.localdate() - timedelta(days=365 * 11))

        outcome = generate_end_of_life_notifications(self.company)

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['notifications_created'], 1)
        notification = Notification.objects.get()
        self.assertEqual(notification.recipient, self.admin_employee)
        self.assertEqual(notification.priority, 'HIGH')
        self.assertEqual(notification.metadata['asset_tag'], 'OLD-001')


class DisposalWorkflowTest(BaseTestCase):
    """Test disposals and gain/loss"""

    def test_gain_loss(self):
        self.assertEqual(calculate_gain_loss(Decimal('500'), Decimal('50'), Decimal('400')), Decimal('50.00'))
        self.assertEqual(calculate_gain_loss(Decimal('0'), Decimal('0'), Decimal('250')), Decimal('-250.00'))

    def test_create_disposal(self):
        outcome = create_asset_disposal(self.asset, self.company, {
            'reason': 'SOLD',
            'disposal_method': 'SELL',
            'disposal_value': Decimal('300.00'),
            'disposal_cost': Decimal('20.00'),
        }, user=self.admin_user)

        self.assertTrue(outcome['success'])
        disposal = outcome['disposal']
        self.assertEqual(disposal.book_value_at_disposal, Decimal('1200.00'))
        self.assertEqual(disposal.net_disposal_value, Decimal('280.00'))
        self.assertEqual(disposal.gain_loss, Decimal('-920.00'))

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.DISPOSED)

        again = create_asset_disposal(self.asset, self.company, {'reason': 'SOLD'})
        self.assertEqual(again['message'], 'Asset has already been disposed')

    def test_disposal_approved_once(self):
        disposal = create_asset_disposal(self.asset, self.company, {'reason': 'SCRAPPED'})['disposal']

        self.assertTrue(approve_asset_disposal(disposal, self.admin_user, notes='Checked')['success'])
        self.assertEqual(disposal.approved_by, self.admin_user)

        again = approve_asset_disposal(disposal, self.admin_user)
        self.assertFalse(again['success'])
        self.assertEqual(again['message'], 'Disposal already approved')

    def test_bulk_disposal_ignores_repeated_ids(self):
        outcome = create_bulk_disposals(self.company, [self.asset.pk, self.asset.pk], {'reason': 'SCRAPPED'})

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['processed_count'], 1)
        self.assertEqual(outcome['failed_count'], 0)
        self.assertEqual(AssetDisposal.objects.count(), 1)

    def test_deployed_asset_cannot_be_disposed(self):
        AssetDeployment.objects.create(
            asset=self.asset, employee=self.employee, company=self.company, status=AssetDeployment.DEPLOYED
        )
        outcome = create_asset_disposal(self.asset, self.company, {'reason': 'SCRAPPED'})
        self.assertEqual(outcome['message'], 'Cannot dispose asset with active deployments')

    def test_bulk_disposal_refused_when_any_deployed(self):
        deployed = self.make_asset("LAPTOP-002")
        AssetDeployment.objects.create(
            asset=deployed, employee=self.employee, company=self.company, status=AssetDeployment.DEPLOYED
        )

        outcome = create_bulk_disposals(self.company, [self.asset.pk, deployed.pk], {'reason': 'SCRAPPED'})

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['processed_count'], 0)
        self.assertFalse(AssetDisposal.objects.exists())

    def test_bulk_disposal_and_summary(self):
        second = self.make_asset("LAPTOP-002", purchase_price=Decimal('800.00'))

        outcome = create_bulk_disposals(
            self.company, [self.asset.pk, second.pk],
            {'reason': 'SCRAPPED', 'disposal_value': Decimal('100.00')},
            user=self.admin_user,
        )
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['processed_count'], 2)

        summary = get_disposal_summary(self.company)
        self.assertEqual(summary['total_disposals'], 2)
        self.assertEqual(summary['total_disposal_value'], Decimal('200.00'))
        self.assertEqual(summary['total_gain_loss'], Decimal('-1800.00'))
        self.assertEqual(summary['pending_approvals'], 2)


class BulkOperationsTest(BaseTestCase):
    """Test operations over a selection of assets"""

    def test_bulk_update_reports_missing_assets(self):
        outcome = bulk_update_assets(self.company, [self.asset.pk, 999999],
                                     {'condition': 'FAIR', 'useful_life_years': 3, 'notes': ''})

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['processed_asset_ids'], [self.asset.pk])
        self.assertEqual(outcome['failed_count'], 1)

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.condition, 'FAIR')
        self.assertEqual(self.asset.useful_life_months, 36)

    def test_bulk_update_without_changes(self):
        outcome = bulk_update_assets(self.company, [self.asset.pk], {'status': ''})
        self.assertEqual(outcome['message'], 'No changes provided')

    def test_bulk_delete_skips_deployed(self):
        deployed = self.make_asset("LAPTOP-002")
        AssetDeployment.objects.create(
            asset=deployed, employee=self.employee, company=self.company, status=AssetDeployment.DEPLOYED
        )

        outcome = bulk_delete_assets(self.company, [self.asset.pk, deployed.pk])

        self.assertEqual(outcome['processed_asset_ids'], [self.asset.pk])
        self.assertEqual(outcome['errors'][0]['message'], 'Cannot delete asset with active deployments')

    def test_bulk_return(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)

        self.assertFalse(bulk_return_assets(self.company, [deployment.pk, 424242])['success'])

        outcome = bulk_return_assets(self.company, [deployment.pk, deployment.pk])
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['failed_count'], 0)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.AVAILABLE)


class AssetViewsTest(BaseTestCase):
    """Test asset screens and endpoints"""

    def test_asset_list_requires_login(self):
        """Test that asset list requires login"""
        response = self.client.get(reverse('assets:asset_list'))
        self.assertEqual(response.status_code, 302)

    def test_dashboard_counts(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)
        self.make_asset("LAPTOP-002")

        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('assets:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_assets'], 2)
        self.assertEqual(response.context['deployed_assets'], 1)
        self.assertEqual(response.context['available_assets'], 1)

    def test_asset_list_shows_company_assets(self):
        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('assets:asset_list'))

        self.assertEqual(response.status_code, 200)
        self.assertIn(self.asset, response.context['page_obj'])

    def test_asset_create_view(self):
        """Test creating asset via view"""
        self.client.force_login(self.regular_user)
        response = self.client.post(reverse('assets:asset_create'), {
            'asset_tag': 'NEW-001',
            'name': 'New Asset',
            'category': self.category.pk,
            'status': Asset.AVAILABLE,
            'condition': 'GOOD',
            'purchase_price': '500.00',
            'useful_life_years': 2,
            'salvage_value': '0.00',
            'depreciation_method': Asset.STRAIGHT_LINE,
        })

        asset = Asset.objects.get(asset_tag='NEW-001')
        self.assertRedirects(response, reverse('assets:asset_detail', args=[asset.pk]), fetch_redirect_response=False)
        self.assertEqual(asset.useful_life_months, 24)

    def test_duplicate_item_code_shows_form_error(self):
        self.client.force_login(self.regular_user)
        response = self.client.post(reverse('assets:asset_create'), {
            'asset_tag': 'LAPTOP-001',
            'name': 'Dup',
            'category': self.category.pk,
            'status': Asset.AVAILABLE,
            'salvage_value': '0.00',
            'depreciation_method': Asset.STRAIGHT_LINE,
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('asset_tag', response.context['form'].errors)

    def test_regular_user_cannot_delete(self):
        self.client.force_login(self.regular_user)
        self.client.post(reverse('assets:asset_delete', args=[self.asset.pk]))

        self.asset.refresh_from_db()
        self.assertFalse(self.asset.is_deleted)

    def test_lookup_api(self):
        self.client.force_login(self.regular_user)

        response = self.client.get(reverse('assets:asset_lookup_api'), {'code': 'LAPTOP-001'})
        self.assertEqual(response.json()['asset']['id'], self.asset.pk)

        response = self.client.get(reverse('assets:asset_lookup_api'), {'code': str(self.asset.qr_code)})
        self.assertEqual(response.json()['asset']['asset_tag'], 'LAPTOP-001')

        response = self.client.get(reverse('assets:asset_lookup_api'), {'code': 'missing'})
        self.assertEqual(response.status_code, 404)

    def test_qr_scan_of_foreign_asset(self):
        other_category = AssetCategory.objects.create(company=self.other_company, name="IT", code="IT")
        foreign = Asset.objects.create(company=self.other_company, asset_tag="BR-001", name="Branch PC",
                                       category=other_category)
        url = reverse('assets:asset_detail_by_qr', args=[foreign.qr_code])

        self.client.force_login(self.regular_user)
        self.assertEqual(self.client.get(url).status_code, 404)

        superuser = User.objects.create_user(username='root', password='root123', is_superuser=True)
        self.client.force_login(superuser)
        response = self.client.get(url)
        self.assertRedirects(response, reverse('assets:asset_detail', args=[foreign.pk]), fetch_redirect_response=False)
        self.assertEqual(self.client.session['selected_company_id'], self.other_company.pk)

    def test_ship_only_by_sending_company(self):
        transfer = create_asset_transfer(self.asset, self.company, self.other_company, {'reason': 'x'})['transfer']
        approve_asset_transfer(transfer, self.admin_user)

        branch_user = User.objects.create_user(username='branch', password='branch123')
        Employee.objects.create(user=branch_user, company=self.other_company, employee_id='BR-1',
                                first_name='Bea', last_name='Branch')
        self.client.force_login(branch_user)

        self.client.post(reverse('assets:transfer_ship', args=[transfer.pk]))
        transfer.refresh_from_db()
        self.assertEqual(transfer.status, AssetTransfer.APPROVED)

        self.client.force_login(self.regular_user)
        self.client.post(reverse('assets:transfer_ship', args=[transfer.pk]))
        transfer.refresh_from_db()
        self.assertEqual(transfer.status, AssetTransfer.IN_TRANSIT)

    def test_bulk_delete_json(self):
        self.client.force_login(self.admin_user)
        response = self.client.post(
            reverse('assets:bulk_delete'),
            data=json.dumps({'asset_ids': [self.asset.pk]}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['processed_asset_ids'], [self.asset.pk])

    def test_bulk_approve_endpoint(self):
        deployment = create_deployment(self.asset, self.employee)['deployment']
        self.client.force_login(self.admin_user)

        response = self.client.post(reverse('assets:deployment_bulk_approve'), {'deployment_ids': [deployment.pk]})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])


class ReportTest(BaseTestCase):
    """Test Excel report exports"""

    def test_inventory_export(self):
        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('assets:report_export', args=['inventory']))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response['Content-Type'],
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        self.assertIn('asset_inventory_TEST-001', response['Content-Disposition'])
        log = AuditLog.objects.get(action='EXPORT')
        self.assertEqual(log.metadata['record_count'], 1)

    def test_date_filtered_export(self):
        calculate_asset_depreciation(self.asset)
        self.client.force_login(self.regular_user)

        yesterday = (timezone.localdate() - timedelta(days=1)).isoformat()
        self.client.get(reverse('assets:report_export', args=['depreciation']), {'date_to': yesterday})
        self.assertEqual(AuditLog.objects.get(action='EXPORT').metadata['record_count'], 0)

    def test_unknown_report(self):
        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('assets:report_export', args=['payroll']))
        self.assertEqual(response.status_code, 404)


class CalculateDepreciationCommandTest(BaseTestCase):
    """Test the calculate_depreciation management command"""

    def test_posts_due_depreciation(self):
        out = StringIO()
        call_command('calculate_depreciation', '--company', 'test-001', stdout=out)

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.current_book_value, Decimal('1100.00'))
        self.assertIn('TEST-001: Processed 1 assets for depreciation', out.getvalue())

    def test_unknown_company(self):
        with self.assertRaises(CommandError):
            call_command('calculate_depreciation', '--company', 'NOPE', stdout=StringIO())


def csv_upload(text, name='assets.csv'):
    return SimpleUploadedFile(name, text.encode('utf-8'), content_type='text/csv')


def xlsx_upload(rows, name='assets.xlsx'):
    workbook = Workbook()
    for row in rows:
        workbook.active.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return SimpleUploadedFile(name, buffer.getvalue())


class AssetImportTest(BaseTestCase):
    """Test bulk asset registration from uploaded sheets"""

    def row(self, **values):
        data = {'name': 'Monitor', 'category': 'ELEC-001', 'purchase_price': '300',
                'useful_life_years': '3', 'location': 'LOC-001'}
        data.update(values)
        return data

    def test_read_csv(self):
        outcome = read_asset_file(csv_upload(
            "Name,Category,Purchase Price,Purchase-Date\nMonitor,ELEC-001,300,2024-01-15\n,,,\n"
        ))

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['rows'], [
            {'name': 'Monitor', 'category': 'ELEC-001', 'purchase_price': '300', 'purchase_date': '2024-01-15'}
        ])

    def test_read_xlsx_converts_cells(self):
        outcome = read_asset_file(xlsx_upload([
            ['name', 'category', 'quantity', 'purchase_date'],
            ['Dock', 'ELEC-001', 2.0, datetime(2024, 3, 1)],
        ]))

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['rows'][0]['quantity'], '2')
        self.assertEqual(outcome['rows'][0]['purchase_date'], '2024-03-01')

    def test_rejected_uploads(self):
        self.assertEqual(read_asset_file(csv_upload("x", name='assets.txt'))['message'],
                         'Please upload a CSV or Excel (.xlsx) file')
        self.assertEqual(read_asset_file(csv_upload("name,category\n"))['message'], 'The file has no data rows')
        self.assertEqual(read_asset_file(csv_upload("junk", name='assets.xlsx'))['message'],
                         'Could not read the Excel file')

        big = csv_upload("name\n" + "x" * 10)
        big.size = 11 * 1024 * 1024
        self.assertEqual(read_asset_file(big)['message'], 'File size must be less than 10MB')

    def test_preview_reports_every_problem(self):
        rows = [
            self.row(),
            self.row(name='', category='NOPE'),
            self.row(purchase_date='15/01/2024', location='NOWHERE'),
            self.row(depreciation_method='DECLINING_BALANCE'),
            self.row(quantity='0', purchase_price='-5'),
        ]
        preview = preview_bulk_assets(self.company, rows)

        self.assertFalse(preview['is_valid'])
        self.assertEqual(preview['total_rows'], 5)
        self.assertEqual(preview['valid_rows'], 1)
        messages_by_row = {(e['row'], e['message']) for e in preview['errors']}
        self.assertIn((2, 'Name is required'), messages_by_row)
        self.assertIn((2, 'Unknown category'), messages_by_row)
        self.assertIn((3, 'Use the YYYY-MM-DD date format'), messages_by_row)
        self.assertIn((3, 'Unknown location'), messages_by_row)
        self.assertIn((4, 'Depreciation rate must be between 0 and 100 for declining balance method'), messages_by_row)
        self.assertIn((5, 'Quantity must be at least 1'), messages_by_row)
        self.assertIn((5, 'Purchase price cannot be negative'), messages_by_row)
        self.assertEqual(len(preview['preview']), 1)
        self.assertEqual(Asset.objects.count(), 1)

    def test_invalid_batch_creates_nothing(self):
        outcome = create_bulk_assets(self.company, [self.row(), self.row(category='')], user=self.admin_user)

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Validation failed: 1 errors found')
        self.assertEqual(Asset.objects.filter(company=self.company).count(), 1)

    def test_generated_codes_continue_numbering(self):
        self.make_asset("TEST-001-ELEC-001-004")
        self.make_asset("TEST-001-ELEC-001-OLD")

        outcome = create_bulk_assets(
            self.company, [self.row(quantity='2'), self.row(name='Keyboard', category='electronics')],
            user=self.admin_user,
        )

        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['created_count'], 3)
        tags = list(Asset.objects.filter(pk__in=outcome['asset_ids']).order_by('asset_tag').values_list('asset_tag', flat=True))
        self.assertEqual(tags, ['TEST-001-ELEC-001-005', 'TEST-001-ELEC-001-006', 'TEST-001-ELEC-001-007'])

    def test_created_assets_are_recorded(self):
        outcome = create_bulk_assets(
            self.company, [self.row(), self.row(name='Dock')],
            options={'generate_serial_numbers': True, 'serial_prefix': 'SN-', 'serial_start': 9, 'serial_padding': 4},
            user=self.admin_user,
        )

        assets = Asset.objects.filter(pk__in=outcome['asset_ids']).order_by('serial_number')
        self.assertEqual([a.serial_number for a in assets], ['SN-0009', 'SN-0010'])
        monitor = assets[0]
        self.assertEqual(monitor.location, self.location)
        self.assertEqual(monitor.useful_life_months, 36)
        self.assertEqual(monitor.current_book_value, Decimal('300.00'))
        self.assertEqual(monitor.created_by, self.admin_user)

        history = monitor.history.get(action_type='CREATED')
        self.assertEqual(history.metadata, {'bulk_import': True, 'row_number': 1})
        self.assertEqual(AuditLog.objects.filter(action='CREATE', object_id__in=[str(pk) for pk in outcome['asset_ids']]).count(), 2)
        self.assertEqual(AuditLog.objects.get(action='IMPORT').metadata['rows'], 2)

    def test_supplied_codes_must_be_new_and_distinct(self):
        options = {'auto_generate_item_codes': False}
        rows = [
            self.row(asset_tag='LAPTOP-001'),
            self.row(asset_tag='MON-1'),
            self.row(asset_tag='MON-1'),
            self.row(),
            self.row(asset_tag='MON-2', quantity='2'),
        ]
        errors = preview_bulk_assets(self.company, rows, options)['errors']

        self.assertEqual({e['row'] for e in errors}, {1, 3, 4, 5})
        self.assertEqual(errors[0]['message'], 'Asset with this item code already exists')

        outcome = create_bulk_assets(self.company, [self.row(asset_tag='MON-9')], options)
        self.assertTrue(outcome['success'])
        self.assertTrue(Asset.objects.filter(asset_tag='MON-9').exists())

    def test_shared_serial_number_rejected(self):
        errors = preview_bulk_assets(self.company, [self.row(quantity='3', serial_number='SN-1')])['errors']
        self.assertEqual(errors[0]['message'], 'A serial number cannot be shared by several assets')

    def test_upload_preview_confirm(self):
        self.client.force_login(self.regular_user)
        response = self.client.post(reverse('assets:asset_import'), {
            'file': csv_upload("name,category,purchase_price\nMonitor,ELEC-001,300\n"),
            'auto_generate_item_codes': 'on',
        })
        self.assertRedirects(response, reverse('assets:asset_import_preview'), fetch_redirect_response=False)

        response = self.client.get(reverse('assets:asset_import_preview'))
        self.assertTrue(response.context['preview']['is_valid'])
        self.assertEqual(Asset.objects.count(), 1)

        response = self.client.post(reverse('assets:asset_import_preview'))
        self.assertRedirects(response, reverse('assets:asset_list'), fetch_redirect_response=False)
        self.assertTrue(Asset.objects.filter(asset_tag='TEST-001-ELEC-001-001').exists())
        self.assertNotIn('asset_import', self.client.session)

    def test_template_download(self):
        self.client.force_login(self.regular_user)
        response = self.client.get(reverse('assets:asset_import_template'))

        self.assertEqual(response.status_code, 200)
        sheet = load_workbook(BytesIO(response.content)).active
        self.assertEqual(sheet.cell(row=1, column=1).value, 'name')
        self.assertEqual(build_import_template().active.max_row, 2)


class ScanAndVerificationTest(BaseTestCase):
    """Test label scanning and inventory verification"""

    def setUp(self):
        super().setUp()
        self.storage = Location.objects.create(company=self.company, name="Storage", code="LOC-002")
        self.stored = self.make_asset("LAPTOP-002", location=self.storage)

    def verification(self, **data):
        values = {'name': 'Q3 count'}
        values.update(data)
        return create_inventory_verification(self.company, values, user=self.admin_user)

    def test_scan_by_tag_uuid_and_label_url(self):
        self.assertEqual(scan_asset(self.company, 'LAPTOP-001')['asset_id'], self.asset.pk)
        self.assertEqual(scan_asset(self.company, str(self.asset.qr_code).upper())['asset_id'], self.asset.pk)
        self.assertEqual(scan_asset(self.company, build_asset_qr_url(self.asset.qr_code))['asset_id'], self.asset.pk)

        outcome = scan_asset(self.company, 'NOT-A-TAG', user=self.regular_user)
        self.assertEqual(outcome['message'], 'Asset not found')
        miss = AssetScanLog.objects.first()
        self.assertFalse(miss.found)
        self.assertEqual(miss.scanned_by, self.regular_user)
        self.assertEqual(AssetScanLog.objects.count(), 4)

    def test_scan_stays_in_business_unit(self):
        other_category = AssetCategory.objects.create(company=self.other_company, name="IT", code="IT")
        foreign = Asset.objects.create(company=self.other_company, asset_tag="BR-001", name="Branch PC",
                                       category=other_category)
        self.assertFalse(scan_asset(self.company, str(foreign.qr_code))['success'])

    def test_quick_lookup(self):
        self.make_asset("PRN-001", name="Office printer", serial_number="XPRINT")
        self.assertEqual([a.asset_tag for a in quick_asset_lookup(self.company, 'print')], ['PRN-001'])
        self.assertEqual(len(quick_asset_lookup(self.company, 'laptop')), 2)
        self.assertEqual([a.asset_tag for a in quick_asset_lookup(self.company, 'laptop', location=self.storage)],
                         ['LAPTOP-002'])
        self.assertEqual(len(quick_asset_lookup(self.company, 'laptop', status=Asset.DEPLOYED)), 0)
        self.assertEqual(len(quick_asset_lookup(self.company, '')), 0)

    def test_create_snapshots_scope(self):
        self.make_asset("GONE-001", status=Asset.DISPOSED)
        deployment = create_deployment(self.asset, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)

        outcome = self.verification(locations=[self.location])
        self.assertTrue(outcome['success'])
        verification = outcome['verification']
        self.assertEqual(verification.status, InventoryVerification.IN_PROGRESS)
        self.assertEqual(verification.total_assets, 1)
        item = verification.items.get()
        self.assertEqual(item.asset, self.asset)
        self.assertEqual(item.expected_location, self.location)
        self.assertEqual(item.expected_assignee, self.employee)
        self.assertTrue(AuditLog.objects.filter(action='CREATE', object_id=str(verification.pk)).exists())

    def test_empty_scope_and_future_start(self):
        other = AssetCategory.objects.create(company=self.company, name="Furniture", code="FURN")
        self.assertEqual(self.verification(categories=[other])['message'],
                         'No assets match the selected locations and categories')

        verification = self.verification(start_date=timezone.localdate() + timedelta(days=3))['verification']
        self.assertEqual(verification.status, InventoryVerification.PLANNED)
        self.assertEqual(verification.total_assets, 2)

    def test_scans_verify_or_flag(self):
        verification = self.verification()['verification']

        outcome = record_verification_scan(verification, 'LAPTOP-001', user=self.regular_user)
        self.assertTrue(outcome['success'])
        outcome = record_verification_scan(verification, str(self.stored.qr_code), location=self.location)
        self.assertTrue(outcome['success'])

        found = verification.items.get(asset=self.asset)
        self.assertEqual(found.status, VerificationItem.VERIFIED)
        self.assertEqual(found.scanned_by, self.regular_user)
        moved = verification.items.get(asset=self.stored)
        self.assertEqual(moved.status, VerificationItem.DISCREPANCY)
        self.assertEqual(moved.actual_location, self.location)
        self.assertEqual(moved.notes, 'Found at Main Office, expected Storage')

        verification.refresh_from_db()
        self.assertEqual((verification.scanned_assets, verification.verified_assets, verification.discrepancies), (2, 1, 1))
        self.assertEqual(verification.progress, 100)
        self.assertEqual(AssetScanLog.objects.filter(verification=verification).count(), 2)

    def test_scan_outside_verification(self):
        verification = self.verification(locations=[self.storage])['verification']
        outcome = record_verification_scan(verification, 'LAPTOP-001')
        self.assertEqual(outcome['message'], 'Asset is not part of this verification')

    def test_manual_update_starts_planned_verification(self):
        verification = self.verification(start_date=timezone.localdate() + timedelta(days=3))['verification']
        item = verification.items.get(asset=self.asset)

        self.assertFalse(update_verification_item(item, {'status': VerificationItem.PENDING})['success'])
        outcome = update_verification_item(item, {'status': VerificationItem.MISSING, 'notes': 'Not on desk'},
                                           user=self.admin_user)
        self.assertTrue(outcome['success'])
        verification.refresh_from_db()
        self.assertEqual(verification.status, InventoryVerification.IN_PROGRESS)

    def test_complete_marks_unscanned_missing(self):
        verification = self.verification()['verification']
        record_verification_scan(verification, 'LAPTOP-001')

        outcome = complete_inventory_verification(verification, user=self.admin_user)
        self.assertTrue(outcome['success'])
        self.assertEqual(outcome['missing'], 1)
        self.assertEqual(verification.items.get(asset=self.stored).status, VerificationItem.MISSING)
        verification.refresh_from_db()
        self.assertEqual(verification.status, InventoryVerification.COMPLETED)
        self.assertEqual(verification.end_date, timezone.localdate())

        self.assertEqual(record_verification_scan(verification, 'LAPTOP-002')['message'], 'Verification is already closed')
        self.assertFalse(cancel_inventory_verification(verification)['success'])

    def test_cancel(self):
        verification = self.verification()['verification']
        self.assertTrue(cancel_inventory_verification(verification, user=self.admin_user)['success'])
        self.assertEqual(verification.status, InventoryVerification.CANCELLED)
        self.assertFalse(complete_inventory_verification(verification)['success'])

    def test_scan_endpoint(self):
        self.client.force_login(self.regular_user)
        response = self.client.post(reverse('assets:asset_scan_api'), {'code': 'LAPTOP-002'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['asset']['location'], 'Storage')

        response = self.client.post(reverse('assets:asset_scan_api'), {'code': 'nothing'})
        self.assertEqual(response.status_code, 400)

    def test_verification_screens(self):
        self.client.force_login(self.regular_user)
        response = self.client.post(reverse('assets:verification_create'), {
            'name': 'Storage count', 'locations': [self.storage.pk],
        })
        verification = InventoryVerification.objects.get(name='Storage count')
        self.assertRedirects(response, reverse('assets:verification_detail', args=[verification.pk]),
                             fetch_redirect_response=False)

        response = self.client.post(reverse('assets:verification_scan', args=[verification.pk]),
                                    {'code': 'LAPTOP-002'}, HTTP_ACCEPT='application/json')
        self.assertTrue(response.json()['success'])

        response = self.client.get(reverse('assets:verification_detail', args=[verification.pk]))
        self.assertEqual(response.status_code, 200)

        self.client.post(reverse('assets:verification_complete', args=[verification.pk]))
        verification.refresh_from_db()
        self.assertEqual(verification.status, InventoryVerification.IN_PROGRESS)

        self.client.force_login(self.admin_user)
        self.client.post(reverse('assets:verification_complete', args=[verification.pk]))
        verification.refresh_from_db()
        self.assertEqual(verification.status, InventoryVerification.COMPLETED)


class AnalyticsTest(BaseTestCase):
    """Test utilization analytics and dashboard aggregates"""

    def deploy(self, asset, days_ago=0):
        deployment = create_deployment(asset, self.employee)['deployment']
        approve_deployment(deployment, self.admin_user)
        if days_ago:
            AssetDeployment.objects.filter(pk=deployment.pk).update(
                deployed_date=timezone.now() - timedelta(days=days_ago)
            )
            deployment.refresh_from_db()
        return deployment

    def age(self, asset, days):
        Asset.objects.filter(pk=asset.pk).update(created_at=timezone.now() - timedelta(days=days))

    def test_deployment_rate(self):
        self.deploy(self.asset)
        self.make_asset("LAPTOP-002")
        self.make_asset("GONE-001", status=Asset.DISPOSED)

        analysis = get_deployment_rate_analysis(self.company)
        self.assertEqual(analysis['total_assets'], 2)
        self.assertEqual(analysis['deployed_assets'], 1)
        self.assertEqual(analysis['deployment_rate'], 50.0)
        self.assertEqual(len(analysis['trends']), 6)
        self.assertEqual(analysis['trends'][-1]['deployments'], 1)
        self.assertEqual(analysis['by_category'][0]['deployment_rate'], 50.0)

    def test_average_deployment_duration(self):
        deployment = self.deploy(self.asset, days_ago=10)
        return_asset(deployment, user=self.admin_user)
        self.assertEqual(get_deployment_rate_analysis(self.company)['average_deployment_days'], 10.0)

    def test_idle_reasons(self):
        self.age(self.asset, 40)
        old = self.make_asset("OLD-001")
        self.age(old, 400)
        fresh = self.make_asset("NEW-001")

        returned = self.make_asset("RET-001")
        deployment = self.deploy(returned, days_ago=200)
        return_asset(deployment, user=self.admin_user)
        AssetDeployment.objects.filter(pk=deployment.pk).update(returned_date=timezone.now() - timedelta(days=100))

        damaged = self.make_asset("DMG-001")
        deployment = self.deploy(damaged, days_ago=60)
        return_asset(deployment, user=self.admin_user)
        AssetDeployment.objects.filter(pk=deployment.pk).update(returned_date=timezone.now() - timedelta(days=45))
        Asset.objects.filter(pk=damaged.pk).update(status=Asset.DAMAGED)

        analysis = get_idle_asset_analysis(self.company)
        reasons = {e['asset'].asset_tag: (e['idle_reason'], e['recommended_action']) for e in analysis['idle_assets']}

        self.assertEqual(reasons['LAPTOP-001'], ('NEVER_DEPLOYED', 'REDEPLOY'))
        self.assertEqual(reasons['OLD-001'], ('NEVER_DEPLOYED', 'RETIRE'))
        self.assertEqual(reasons['RET-001'], ('MAINTENANCE_OVERDUE', 'MAINTENANCE'))
        self.assertEqual(reasons['DMG-001'], ('DAMAGED', 'MAINTENANCE'))
        self.assertNotIn(fresh.asset_tag, reasons)
        self.assertEqual(analysis['total_idle_assets'], 4)
        self.assertEqual(analysis['by_category'][0]['share'], 100.0)

    def test_roi(self):
        Asset.objects.filter(pk=self.asset.pk).update(purchase_date=timezone.localdate() - timedelta(days=100))
        self.asset.refresh_from_db()
        self.deploy(self.asset, days_ago=50)

        row = get_asset_roi(self.company)[0]
        self.assertEqual(row['deployment_count'], 1)
        self.assertEqual(row['utilization_rate'], 50.0)
        self.assertEqual(row['value_utilized'], Decimal('600.00'))
        self.assertEqual(row['roi'], -40.0)
        self.assertEqual(row['rating'], 'POOR')
        self.assertIn('Consider retirement or disposal to reduce carrying costs', row['recommendations'])

    def test_cost_centres(self):
        self.employee.department = self.department
        self.employee.save()
        self.deploy(self.asset)

        centre = get_cost_centre_allocations(self.company)[0]
        self.assertEqual(centre['department'], self.department)
        self.assertEqual(centre['asset_count'], 1)
        self.assertEqual(centre['total_book_value'], Decimal('1200.00'))
        self.assertEqual(centre['monthly_depreciation'], Decimal('100.00'))
        self.assertEqual(centre['allocated_costs']['maintenance'], Decimal('24.00'))
        self.assertEqual(centre['allocated_costs']['total'], Decimal('174.00'))

    def test_utilization_summary(self):
        summary = get_utilization_summary(self.company)
        categories = [rec['category'] for rec in summary['recommendations']]
        self.assertIn('DEPLOYMENT', categories)
        self.assertIn('RETIREMENT', categories)
        self.assertEqual(summary['overall']['total_asset_value'], Decimal('1200.00'))

    def test_dashboard_stats(self):
        stats = get_dashboard_stats(self.company)
        self.assertEqual(stats['total_assets'], 1)
        self.assertEqual(stats['total_assets_change'], 100)
        self.assertEqual(stats['active_employees'], 2)

        self.age(self.asset, 400)
        self.make_asset("LAPTOP-002")
        self.make_asset("LAPTOP-003")
        self.assertEqual(get_dashboard_stats(self.company)['total_assets_change'], 200)

    def test_system_alerts(self):
        create_deployment(self.asset, self.employee)
        self.make_asset("MNT-001", status=Asset.IN_MAINTENANCE)
        self.make_asset("WAR-001", warranty_end_date=timezone.localdate() + timedelta(days=10))

        alerts = get_system_alerts(self.company)
        self.assertEqual({a['type']: a['severity'] for a in alerts},
                         {'APPROVAL': 'HIGH', 'MAINTENANCE': 'MEDIUM', 'WARRANTY': 'LOW'})
        self.assertEqual(alerts, sorted(alerts, key=lambda a: a['created_at'], reverse=True))

    def test_trends_and_top_assets(self):
        deployment = self.deploy(self.asset)
        return_asset(deployment, user=self.admin_user)
        self.deploy(self.asset)

        trends = get_deployment_trends(self.company, months=3)
        self.assertEqual(len(trends), 3)
        self.assertEqual((trends[-1]['deployments'], trends[-1]['returns']), (2, 1))
        self.assertEqual(list(get_top_assets(self.company))[0].deployment_count, 2)

    def test_screens(self):
        self.client.force_login(self.regular_user)
        self.assertEqual(self.client.get(reverse('assets:utilization')).status_code, 200)
        response = self.client.get(reverse('assets:dashboard'))
        self.assertIn('alerts', response.context)
        self.assertEqual(response.context['assets_by_category'][0]['percentage'], 100.0)
