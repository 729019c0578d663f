# Generated migration

from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


CONDITION_CHOICES = [('EXCELLENT', 'Excellent'), ('GOOD', 'Good'), ('FAIR', 'Fair'), ('POOR', 'Poor'), ('NOT_WORKING', 'Not Working')]
METHOD_CHOICES = [('STRAIGHT_LINE', 'Straight Line'), ('DECLINING_BALANCE', 'Declining Balance'), ('UNITS_OF_PRODUCTION', 'Units of Production'), ('SUM_OF_YEARS_DIGITS', "Sum of Years' Digits")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('core', '0001_initial'),
        ('users', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='AssetCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('name', models.CharField(max_length=200)),
                ('code', models.CharField(max_length=50)),
                ('description', models.TextField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='asset_categories', to='core.company')),
                ('parent_category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sub_categories', to='assets.assetcategory')),
            ],
            options={
                'verbose_name': 'Asset Category',
                'verbose_name_plural': 'Asset Categories',
                'db_table': 'asset_categories',
                'ordering': ['company', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Asset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('asset_tag', models.CharField(db_index=True, help_text='Item code, unique per business unit', max_length=100)),
                ('qr_code', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('qr_code_image', models.ImageField(blank=True, null=True, upload_to='qr_codes/')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, null=True)),
                ('brand', models.CharField(blank=True, max_length=100, null=True)),
                ('model', models.CharField(blank=True, max_length=100, null=True)),
                ('serial_number', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('status', models.CharField(choices=[('AVAILABLE', 'Available'), ('DEPLOYED', 'Deployed'), ('IN_MAINTENANCE', 'In Maintenance'), ('RETIRED', 'Retired'), ('DISPOSED', 'Disposed'), ('LOST', 'Lost'), ('DAMAGED', 'Damaged'), ('FULLY_DEPRECIATED', 'Fully Depreciated')], default='AVAILABLE', max_length=20)),
                ('condition', models.CharField(blank=True, choices=CONDITION_CHOICES, default='GOOD', max_length=20, null=True)),
                ('purchase_date', models.DateField(blank=True, null=True)),
                ('purchase_price', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('warranty_end_date', models.DateField(blank=True, null=True)),
                ('depreciation_method', models.CharField(choices=METHOD_CHOICES, default='STRAIGHT_LINE', max_length=30)),
                ('useful_life_years', models.PositiveIntegerField(blank=True, null=True)),
                ('useful_life_months', models.PositiveIntegerField(blank=True, null=True)),
                ('salvage_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('depreciation_rate', models.DecimalField(blank=True, decimal_places=2, help_text='Annual depreciation rate (%)', max_digits=5, null=True)),
                ('total_expected_units', models.PositiveIntegerField(blank=True, help_text='Lifetime units for units-of-production', null=True)),
                ('current_units', models.PositiveIntegerField(default=0)),
                ('depreciation_start_date', models.DateField(blank=True, null=True)),
                ('current_book_value', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('accumulated_depreciation', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('last_depreciation_date', models.DateField(blank=True, null=True)),
                ('next_depreciation_date', models.DateField(blank=True, db_index=True, null=True)),
                ('is_fully_depreciated', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True, null=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_assets', to='users.employee')),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assets', to='assets.assetcategory')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assets', to='core.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_assets', to=settings.AUTH_USER_MODEL)),
                ('department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets', to='users.department')),
                ('location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets', to='users.location')),
            ],
            options={
                'verbose_name': 'Asset',
                'verbose_name_plural': 'Assets',
                'db_table': 'assets',
                'ordering': ['company', '-created_at'],
                'indexes': [
                    models.Index(fields=['company', 'asset_tag'], name='assets_company_tag_idx'),
                    models.Index(fields=['company', 'status'], name='assets_company_status_idx'),
                    models.Index(fields=['company', 'next_depreciation_date'], name='assets_company_nextdep_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssetHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action_type', models.CharField(choices=[('CREATED', 'Created'), ('UPDATED', 'Updated'), ('STATUS_CHANGED', 'Status Changed'), ('DEPLOYED', 'Deployed'), ('RETURNED', 'Returned'), ('TRANSFERRED', 'Transferred'), ('RETIRED', 'Retired'), ('DISPOSED', 'Disposed'), ('MAINTENANCE_START', 'Maintenance Started'), ('MAINTENANCE_END', 'Maintenance Completed'), ('DEPRECIATION_CALCULATED', 'Depreciation Calculated'), ('UNITS_UPDATED', 'Units Updated')], max_length=30)),
                ('action_date', models.DateTimeField(auto_now_add=True)),
                ('previous_status', models.CharField(blank=True, max_length=20, null=True)),
                ('new_status', models.CharField(blank=True, max_length=20, null=True)),
                ('previous_book_value', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('new_book_value', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('depreciation_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, null=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='assets.asset')),
                ('company', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_history', to='core.company')),
                ('employee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_history', to='users.employee')),
                ('from_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets_from', to='users.location')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_actions', to=settings.AUTH_USER_MODEL)),
                ('to_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets_to', to='users.location')),
            ],
            options={
                'verbose_name': 'Asset History',
                'verbose_name_plural': 'Asset History',
                'db_table': 'asset_history',
                'ordering': ['-action_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='AssetDepreciation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('depreciation_date', models.DateField()),
                ('period_start_date', models.DateField()),
                ('period_end_date', models.DateField()),
                ('book_value_start', models.DecimalField(decimal_places=2, max_digits=15)),
                ('depreciation_amount', models.DecimalField(decimal_places=2, max_digits=15)),
                ('book_value_end', models.DecimalField(decimal_places=2, max_digits=15)),
                ('accumulated_depreciation', models.DecimalField(decimal_places=2, max_digits=15)),
                ('method', models.CharField(choices=METHOD_CHOICES, max_length=30)),
                ('calculation_basis', models.JSONField(default=dict)),
                ('units_start', models.PositiveIntegerField(blank=True, null=True)),
                ('units_end', models.PositiveIntegerField(blank=True, null=True)),
                ('units_in_period', models.PositiveIntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='depreciation_records', to='assets.asset')),
                ('calculated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='depreciation_calculations', to=settings.AUTH_USER_MODEL)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='depreciation_records', to='core.company')),
            ],
            options={
                'verbose_name': 'Asset Depreciation',
                'verbose_name_plural': 'Asset Depreciation',
                'db_table': 'asset_depreciation',
                'ordering': ['-depreciation_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='AssetDeployment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('transmittal_number', models.CharField(max_length=50, unique=True)),
                ('status', models.CharField(choices=[('PENDING_ACCOUNTING_APPROVAL', 'Pending Accounting Approval'), ('DEPLOYED', 'Deployed'), ('RETURNED', 'Returned'), ('CANCELLED', 'Cancelled')], default='PENDING_ACCOUNTING_APPROVAL', max_length=30)),
                ('expected_return_date', models.DateField(blank=True, null=True)),
                ('deployment_condition', models.CharField(blank=True, choices=CONDITION_CHOICES, max_length=20, null=True)),
                ('deployment_notes', models.TextField(blank=True, default='')),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('accounting_notes', models.TextField(blank=True, default='')),
                ('deployed_date', models.DateTimeField(blank=True, null=True)),
                ('returned_date', models.DateTimeField(blank=True, null=True)),
                ('return_condition', models.CharField(blank=True, choices=CONDITION_CHOICES, max_length=20, null=True)),
                ('return_notes', models.TextField(blank=True, default='')),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deployment_approvals', to=settings.AUTH_USER_MODEL)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deployments', to='assets.asset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deployments', to='core.company')),
                ('employee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='deployments', to='users.employee')),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deployment_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Asset Deployment',
                'verbose_name_plural': 'Asset Deployments',
                'db_table': 'asset_deployments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['company', 'status'], name='deployments_company_status_idx'),
                    models.Index(fields=['asset', 'status'], name='deployments_asset_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssetTransfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('transfer_number', models.CharField(max_length=50, unique=True)),
                ('transfer_date', models.DateField(default=django.utils.timezone.localdate)),
                ('reason', models.TextField()),
                ('transfer_method', models.CharField(blank=True, default='', max_length=100)),
                ('tracking_number', models.CharField(blank=True, default='', max_length=100)),
                ('estimated_arrival', models.DateField(blank=True, null=True)),
                ('transfer_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('insurance_value', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('condition_before', models.CharField(blank=True, choices=CONDITION_CHOICES, max_length=20, null=True)),
                ('condition_after', models.CharField(blank=True, choices=CONDITION_CHOICES, max_length=20, null=True)),
                ('transfer_notes', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('PENDING_APPROVAL', 'Pending Approval'), ('APPROVED', 'Approved'), ('IN_TRANSIT', 'In Transit'), ('COMPLETED', 'Completed'), ('REJECTED', 'Rejected')], default='PENDING_APPROVAL', max_length=20)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfer_approvals', to=settings.AUTH_USER_MODEL)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transfers', to='assets.asset')),
                ('completed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfer_completions', to=settings.AUTH_USER_MODEL)),
                ('from_company', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_out', to='core.company')),
                ('from_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfers_from', to='users.location')),
                ('rejected_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfer_rejections', to=settings.AUTH_USER_MODEL)),
                ('requested_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfer_requests', to=settings.AUTH_USER_MODEL)),
                ('to_company', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_in', to='core.company')),
                ('to_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfers_to', to='users.location')),
            ],
            options={
                'verbose_name': 'Asset Transfer',
                'verbose_name_plural': 'Asset Transfers',
                'db_table': 'asset_transfers',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='transfers_status_created_idx'),
                    models.Index(fields=['asset', 'status'], name='transfers_asset_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssetRetirement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('retirement_number', models.CharField(max_length=50, unique=True)),
                ('retirement_date', models.DateField(default=django.utils.timezone.localdate)),
                ('reason', models.CharField(choices=[('END_OF_USEFUL_LIFE', 'End of Useful Life'), ('FULLY_DEPRECIATED', 'Fully Depreciated'), ('OBSOLETE', 'Obsolete'), ('DAMAGED_BEYOND_REPAIR', 'Damaged Beyond Repair'), ('POLICY_CHANGE', 'Policy Change'), ('UPGRADE_REPLACEMENT', 'Upgrade / Replacement')], max_length=30)),
                ('retirement_method', models.CharField(blank=True, default='', max_length=100)),
                ('condition', models.CharField(blank=True, choices=CONDITION_CHOICES, max_length=20, null=True)),
                ('disposal_planned', models.BooleanField(default=False)),
                ('planned_disposal_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='retirement_approvals', to=settings.AUTH_USER_MODEL)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='retirements', to='assets.asset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='retirements', to='core.company')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='retirements_created', to=settings.AUTH_USER_MODEL)),
                ('replacement_asset', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='replaces', to='assets.asset')),
            ],
            options={
                'verbose_name': 'Asset Retirement',
                'verbose_name_plural': 'Asset Retirements',
                'db_table': 'asset_retirements',
                'ordering': ['-retirement_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AssetDisposal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('disposal_number', models.CharField(max_length=50, unique=True)),
                ('disposal_date', models.DateField(default=django.utils.timezone.localdate)),
                ('reason', models.CharField(choices=[('SOLD', 'Sold'), ('DONATED', 'Donated'), ('SCRAPPED', 'Scrapped'), ('LOST', 'Lost'), ('STOLEN', 'Stolen'), ('END_OF_LIFE', 'End of Life'), ('DAMAGED_BEYOND_REPAIR', 'Damaged Beyond Repair'), ('OBSOLETE', 'Obsolete')], max_length=30)),
                ('disposal_method', models.CharField(blank=True, choices=[('SELL', 'Sell'), ('SCRAP', 'Scrap'), ('DONATE', 'Donate'), ('DESTROY', 'Destroy'), ('RETURN_TO_VENDOR', 'Return to Vendor')], max_length=20, null=True)),
                ('disposal_location', models.CharField(blank=True, default='', max_length=255)),
                ('disposal_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('disposal_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('net_disposal_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('book_value_at_disposal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('gain_loss', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('recipient_name', models.CharField(blank=True, default='', max_length=200)),
                ('recipient_contact', models.CharField(blank=True, default='', max_length=200)),
                ('recipient_address', models.TextField(blank=True, default='')),
                ('environmental_compliance', models.BooleanField(default=False)),
                ('data_wiped', models.BooleanField(default=False)),
                ('certificate_number', models.CharField(blank=True, default='', max_length=100)),
                ('condition', models.CharField(blank=True, choices=CONDITION_CHOICES, max_length=20, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='disposal_approvals', to=settings.AUTH_USER_MODEL)),
                ('asset', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='disposal', to='assets.asset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='disposals', to='core.company')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='disposals_created', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Asset Disposal',
                'verbose_name_plural': 'Asset Disposals',
                'db_table': 'asset_disposals',
                'ordering': ['-disposal_date', '-created_at'],
                'indexes': [models.Index(fields=['company', 'reason'], name='disposals_company_reason_idx')],
            },
        ),
    ]
