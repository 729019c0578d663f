"""
Tests for maintenance records and the maintenance schedule
"""
from django.test import TestCase, Client
from django.contrib.auth.models import User
from django.urls import reverse
from django.utils import timezone
from decimal import Decimal
from datetime import timedelta

from assets.models import Asset, AssetCategory, AssetHistory
from core.models import AuditLog, Company
from users.models import Employee, Role
from .models import AssetMaintenance
from .services import (
    create_maintenance_record, delete_maintenance_record,
    get_maintenance_records, get_maintenance_schedule, update_maintenance_record,
)


class BaseTestCase(TestCase):
    """Base test case with common setup"""

    def setUp(self):
        self.company = Company.objects.create(name="Test Company", code="TEST-001")
        self.other_company = Company.objects.create(name="Other Company", code="OTHER-001")

        role = Role.objects.create(name="Staff", code="STAFF")
        self.user = User.objects.create_user(username='tech', password='tech123')
        self.employee = Employee.objects.create(
            user=self.user,
            company=self.company,
            employee_id='EMP-001',
            first_name='Tess',
            last_name='Tech',
            role=role
        )

        self.category = AssetCategory.objects.create(company=self.company, name="Printers", code="PRN")
        self.asset = Asset.objects.create(
            company=self.company,
            asset_tag="PRN-001",
            name="Office Printer",
            category=self.category,
            purchase_price=Decimal('400.00'),
        )

        self.client = Client()


class AssetMaintenanceModelTest(BaseTestCase):
    """Test the derived maintenance status"""

    def test_status_follows_dates(self):
        maintenance = AssetMaintenance(asset=self.asset, maintenance_type='INSPECTION', description='Check')
        self.assertEqual(maintenance.status, AssetMaintenance.PENDING)

        maintenance.start_date = timezone.localdate()
        self.assertEqual(maintenance.status, AssetMaintenance.IN_PROGRESS)
        self.assertEqual(maintenance.get_status_display(), 'In Progress')

        maintenance.is_completed = True
        self.assertEqual(maintenance.status, AssetMaintenance.COMPLETED)

    def test_str(self):
        maintenance = AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='PREVENTIVE', description='Clean rollers'
        )
        self.assertEqual(str(maintenance), "PRN-001 - Preventive")


class MaintenanceServiceTest(BaseTestCase):
    """Test maintenance record operations"""

    def test_scheduled_record_leaves_asset_available(self):
        outcome = create_maintenance_record(self.asset, {
            'maintenance_type': 'PREVENTIVE',
            'description': 'Quarterly service',
            'scheduled_date': timezone.localdate() + timedelta(days=7),
        }, user=self.user)

        self.assertTrue(outcome['success'])
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.AVAILABLE)
        self.assertTrue(AuditLog.objects.filter(action='CREATE', company=self.company).exists())

    def test_started_work_puts_asset_in_maintenance(self):
        outcome = create_maintenance_record(self.asset, {
            'maintenance_type': 'CORRECTIVE',
            'description': 'Paper jam',
            'start_date': timezone.localdate(),
            'performed_by': 'PrintFix Inc.',
        }, user=self.user)

        self.assertTrue(outcome['success'])
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.IN_MAINTENANCE)

        history = AssetHistory.objects.get(asset=self.asset, action_type='MAINTENANCE_START')
        self.assertEqual(history.previous_status, Asset.AVAILABLE)
        self.assertEqual(history.metadata['performed_by'], 'PrintFix Inc.')

    def test_completing_returns_asset_to_stock(self):
        """Test that completion without a date uses today"""
        maintenance = create_maintenance_record(self.asset, {
            'maintenance_type': 'CORRECTIVE',
            'description': 'Paper jam',
            'start_date': timezone.localdate() - timedelta(days=2),
        })['maintenance']

        outcome = update_maintenance_record(maintenance, {'is_completed': True, 'cost': Decimal('75.50')},
                                            user=self.user)

        self.assertTrue(outcome['success'])
        self.assertEqual(maintenance.completed_date, timezone.localdate())
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.AVAILABLE)

        history = AssetHistory.objects.get(asset=self.asset, action_type='MAINTENANCE_END')
        self.assertEqual(history.metadata['cost'], '75.50')

    def test_update_of_completed_record_keeps_status(self):
        maintenance = AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='INSPECTION', description='Done', is_completed=True,
            completed_date=timezone.localdate(),
        )
        self.asset.status = Asset.DEPLOYED
        self.asset.save()

        update_maintenance_record(maintenance, {'notes': 'Signed off'})

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.DEPLOYED)
        self.assertFalse(AssetHistory.objects.filter(action_type='MAINTENANCE_END').exists())

    def test_disposed_asset_rejected(self):
        self.asset.status = Asset.DISPOSED
        self.asset.save()

        outcome = create_maintenance_record(self.asset, {'maintenance_type': 'INSPECTION', 'description': 'x'})
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Cannot schedule maintenance for a disposed asset')

    def test_deployed_asset_cannot_start_work(self):
        self.asset.status = Asset.DEPLOYED
        self.asset.save()

        outcome = create_maintenance_record(self.asset, {
            'maintenance_type': 'CORRECTIVE', 'description': 'Paper jam', 'start_date': timezone.localdate(),
        })

        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Return the asset before starting maintenance')
        self.assertFalse(AssetMaintenance.objects.exists())
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.DEPLOYED)

    def test_deployed_asset_can_be_scheduled_but_not_started(self):
        self.asset.status = Asset.DEPLOYED
        self.asset.save()
        maintenance = create_maintenance_record(self.asset, {
            'maintenance_type': 'PREVENTIVE', 'description': 'Service',
            'scheduled_date': timezone.localdate() + timedelta(days=3),
        })['maintenance']

        outcome = update_maintenance_record(maintenance, {'start_date': timezone.localdate()})

        self.assertFalse(outcome['success'])
        maintenance.refresh_from_db()
        self.assertIsNone(maintenance.start_date)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.DEPLOYED)

    def test_retired_asset_cannot_start_work(self):
        self.asset.status = Asset.RETIRED
        self.asset.save()

        outcome = create_maintenance_record(self.asset, {
            'maintenance_type': 'INSPECTION', 'description': 'Check', 'start_date': timezone.localdate(),
        })
        self.assertFalse(outcome['success'])
        self.assertEqual(outcome['message'], 'Cannot start maintenance on a retired asset')

    def test_starting_a_scheduled_job_puts_asset_in_maintenance(self):
        maintenance = create_maintenance_record(self.asset, {
            'maintenance_type': 'PREVENTIVE', 'description': 'Service',
        })['maintenance']

        self.assertTrue(update_maintenance_record(maintenance, {'start_date': timezone.localdate()})['success'])
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.IN_MAINTENANCE)

    def test_completion_restores_previous_status(self):
        self.asset.status = Asset.FULLY_DEPRECIATED
        self.asset.save()
        maintenance = create_maintenance_record(self.asset, {
            'maintenance_type': 'CORRECTIVE', 'description': 'Fuser', 'start_date': timezone.localdate(),
        })['maintenance']

        update_maintenance_record(maintenance, {'is_completed': True})

        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.FULLY_DEPRECIATED)
        history = AssetHistory.objects.get(asset=self.asset, action_type='MAINTENANCE_END')
        self.assertEqual(history.new_status, Asset.FULLY_DEPRECIATED)

    def test_asset_stays_in_maintenance_until_last_job_done(self):
        first = create_maintenance_record(self.asset, {
            'maintenance_type': 'CORRECTIVE', 'description': 'Fuser', 'start_date': timezone.localdate(),
        })['maintenance']
        second = create_maintenance_record(self.asset, {
            'maintenance_type': 'UPGRADE', 'description': 'Network card', 'start_date': timezone.localdate(),
        })['maintenance']

        update_maintenance_record(first, {'is_completed': True})
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.IN_MAINTENANCE)

        update_maintenance_record(second, {'is_completed': True})
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.AVAILABLE)
        self.assertEqual(AssetHistory.objects.filter(action_type='MAINTENANCE_START').count(), 1)

    def test_delete_removes_record(self):
        maintenance = AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='UPGRADE', description='RAM'
        )
        pk = maintenance.pk

        self.assertTrue(delete_maintenance_record(maintenance, user=self.user)['success'])
        self.assertFalse(AssetMaintenance.objects.filter(pk=pk).exists())
        self.assertTrue(AuditLog.objects.filter(action='DELETE', object_id=str(pk)).exists())

    def test_records_filtered_by_status_and_company(self):
        AssetMaintenance.objects.create(asset=self.asset, maintenance_type='INSPECTION', description='Pending one')
        AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='CORRECTIVE', description='Running one',
            start_date=timezone.localdate()
        )
        AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='CORRECTIVE', description='Finished one', is_completed=True
        )

        other_category = AssetCategory.objects.create(company=self.other_company, name="IT", code="IT")
        other_asset = Asset.objects.create(company=self.other_company, asset_tag="X-1", name="X", category=other_category)
        AssetMaintenance.objects.create(asset=other_asset, maintenance_type='INSPECTION', description='Elsewhere')

        self.assertEqual(get_maintenance_records(self.company).count(), 3)
        self.assertEqual(
            get_maintenance_records(self.company, status=AssetMaintenance.IN_PROGRESS).get().description,
            'Running one'
        )
        self.assertEqual(
            get_maintenance_records(self.company, status=AssetMaintenance.PENDING).get().description,
            'Pending one'
        )
        self.assertEqual(get_maintenance_records(self.company, search='finished').count(), 1)


class MaintenanceScheduleTest(BaseTestCase):
    """Test the upcoming maintenance schedule"""

    def test_default_window(self):
        today = timezone.localdate()
        for days, description in ((5, 'Soon'), (60, 'Later'), (120, 'Too far'), (-3, 'Past')):
            AssetMaintenance.objects.create(
                asset=self.asset, maintenance_type='PREVENTIVE', description=description,
                scheduled_date=today + timedelta(days=days),
            )
        AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='PREVENTIVE', description='Closed',
            scheduled_date=today + timedelta(days=1), is_completed=True,
        )

        schedule = get_maintenance_schedule(self.company)

        self.assertEqual([item['description'] for item in schedule], ['Soon', 'Later'])
        self.assertEqual(schedule[0]['days_until_due'], 5)
        self.assertFalse(schedule[0]['is_overdue'])

    def test_overdue_with_explicit_range(self):
        today = timezone.localdate()
        AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='PREVENTIVE', description='Missed',
            scheduled_date=today - timedelta(days=3),
        )

        schedule = get_maintenance_schedule(self.company, date_from=today - timedelta(days=30))

        self.assertEqual(len(schedule), 1)
        self.assertTrue(schedule[0]['is_overdue'])
        self.assertEqual(schedule[0]['asset_tag'], 'PRN-001')


class MaintenanceViewTest(BaseTestCase):
    """Test maintenance views"""

    def test_list_requires_login(self):
        response = self.client.get(reverse('maintenance:maintenance_list'))
        self.assertEqual(response.status_code, 302)

    def test_create_via_form(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse('maintenance:maintenance_create'), {
            'asset': self.asset.pk,
            'maintenance_type': 'CORRECTIVE',
            'description': 'Replace drum',
            'start_date': timezone.localdate().isoformat(),
        })

        maintenance = AssetMaintenance.objects.get(description='Replace drum')
        self.assertRedirects(
            response, reverse('maintenance:maintenance_detail', args=[maintenance.pk]),
            fetch_redirect_response=False
        )
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, Asset.IN_MAINTENANCE)

    def test_completed_date_before_start_is_invalid(self):
        self.client.force_login(self.user)
        today = timezone.localdate()
        response = self.client.post(reverse('maintenance:maintenance_create'), {
            'asset': self.asset.pk,
            'maintenance_type': 'CORRECTIVE',
            'description': 'Backwards',
            'start_date': today.isoformat(),
            'completed_date': (today - timedelta(days=1)).isoformat(),
        })

        self.assertEqual(response.status_code, 200)
        self.assertIn('completed_date', response.context['form'].errors)
        self.assertFalse(AssetMaintenance.objects.exists())

    def test_other_company_record_not_found(self):
        other_category = AssetCategory.objects.create(company=self.other_company, name="IT", code="IT")
        other_asset = Asset.objects.create(company=self.other_company, asset_tag="X-1", name="X", category=other_category)
        maintenance = AssetMaintenance.objects.create(
            asset=other_asset, maintenance_type='INSPECTION', description='Elsewhere'
        )

        self.client.force_login(self.user)
        response = self.client.get(reverse('maintenance:maintenance_detail', args=[maintenance.pk]))
        self.assertEqual(response.status_code, 404)

    def test_delete_via_post(self):
        maintenance = AssetMaintenance.objects.create(
            asset=self.asset, maintenance_type='UPGRADE', description='SSD'
        )
        self.client.force_login(self.user)

        response = self.client.post(reverse('maintenance:maintenance_delete', args=[maintenance.pk]))

        self.assertRedirects(response, reverse('maintenance:maintenance_list'), fetch_redirect_response=False)
        self.assertFalse(AssetMaintenance.objects.exists())
