# Generated migration

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('core', '0001_initial'),
        ('users', '0001_initial'),
        ('assets', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryVerification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('start_date', models.DateField(default=django.utils.timezone.localdate)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('PLANNED', 'Planned'), ('IN_PROGRESS', 'In Progress'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], default='PLANNED', max_length=20)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('total_assets', models.PositiveIntegerField(default=0)),
                ('scanned_assets', models.PositiveIntegerField(default=0)),
                ('verified_assets', models.PositiveIntegerField(default=0)),
                ('discrepancies', models.PositiveIntegerField(default=0)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_verifications', to='users.employee')),
                ('categories', models.ManyToManyField(blank=True, related_name='inventory_verifications', to='assets.assetcategory')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inventory_verifications', to='core.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verifications_created', to=settings.AUTH_USER_MODEL)),
                ('locations', models.ManyToManyField(blank=True, related_name='inventory_verifications', to='users.location')),
            ],
            options={
                'verbose_name': 'Inventory Verification',
                'verbose_name_plural': 'Inventory Verifications',
                'db_table': 'inventory_verifications',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='VerificationItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('VERIFIED', 'Verified'), ('DISCREPANCY', 'Discrepancy'), ('MISSING', 'Missing')], default='PENDING', max_length=20)),
                ('scanned_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('actual_assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='users.employee')),
                ('actual_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='users.location')),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='verification_items', to='assets.asset')),
                ('expected_assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='users.employee')),
                ('expected_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='users.location')),
                ('scanned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verification_scans', to=settings.AUTH_USER_MODEL)),
                ('verification', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='assets.inventoryverification')),
            ],
            options={
                'verbose_name': 'Verification Item',
                'verbose_name_plural': 'Verification Items',
                'db_table': 'verification_items',
                'ordering': ['asset__asset_tag'],
                'unique_together': {('verification', 'asset')},
            },
        ),
        migrations.CreateModel(
            name='AssetScanLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scanned_value', models.CharField(max_length=500)),
                ('found', models.BooleanField(default=False)),
                ('scanned_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('asset', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='scan_logs', to='assets.asset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scan_logs', to='core.company')),
                ('scanned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_scans', to=settings.AUTH_USER_MODEL)),
                ('verification', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='scan_logs', to='assets.inventoryverification')),
            ],
            options={
                'verbose_name': 'Asset Scan Log',
                'verbose_name_plural': 'Asset Scan Logs',
                'db_table': 'asset_scan_logs',
                'ordering': ['-scanned_at', '-id'],
            },
        ),
    ]
