from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
from core.models import TimeStampedModel
from assets.models import Asset


class AssetMaintenance(TimeStampedModel):
    """Maintenance work done, or planned, on an asset"""
    PREVENTIVE = 'PREVENTIVE'
    CORRECTIVE = 'CORRECTIVE'
    INSPECTION = 'INSPECTION'
    UPGRADE = 'UPGRADE'
    CALIBRATION = 'CALIBRATION'

    TYPE_CHOICES = [
        (PREVENTIVE, 'Preventive'),
        (CORRECTIVE, 'Corrective'),
        (INSPECTION, 'Inspection'),
        (UPGRADE, 'Upgrade'),
        (CALIBRATION, 'Calibration'),
    ]

    # Derived from the dates and is_completed, used for filtering
    PENDING = 'PENDING'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
    ]

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='maintenance_records')
    maintenance_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    description = models.TextField()

    scheduled_date = models.DateField(blank=True, null=True)
    start_date = models.DateField(blank=True, null=True)
    completed_date = models.DateField(blank=True, null=True)

    performed_by = models.CharField(max_length=200, blank=True, null=True, help_text="Technician or service provider")
    cost = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True, validators=[MinValueValidator(Decimal('0.00'))])
    notes = models.TextField(blank=True, null=True)
    is_completed = models.BooleanField(default=False)

    class Meta:
        db_table = 'asset_maintenance'
        ordering = ['-created_at']
        verbose_name = 'Asset Maintenance'
        verbose_name_plural = 'Asset Maintenance'
        indexes = [
            models.Index(fields=['is_completed', 'scheduled_date'], name='maintenance_open_sched_idx'),
        ]

    def __str__(self):
        return f"{self.asset.asset_tag} - {self.get_maintenance_type_display()}"

    @property
    def status(self):
        if self.is_completed:
            return self.COMPLETED
        if self.start_date:
            return self.IN_PROGRESS
        return self.PENDING

    def get_status_display(self):
        return dict(self.STATUS_CHOICES)[self.status]
