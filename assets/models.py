from django.db import models
from django.db.models.functions import Length
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.utils import timezone
from dateutil.relativedelta import relativedelta
from decimal import Decimal
from core.models import BaseModel, Company, TimeStampedModel
from users.models import Department, Employee, Location
import uuid


def next_document_number(model, field, prefix, period_format='%Y'):
    """
    Next sequential document number such as ``TN-2025-0007``.
    The counter restarts with every period (year by default).
    """
    period = timezone.now().strftime(period_format)
    stem = f'{prefix}-{period}-'
    last = (
        model.objects.filter(**{f'{field}__startswith': stem})
        .annotate(number_length=Length(field))
        .order_by('-number_length', f'-{field}')
        .values_list(field, flat=True)
        .first()
    )
    number = int(last.rsplit('-', 1)[-1]) + 1 if last else 1
    return f'{stem}{number:04d}'


class AssetCategory(BaseModel):
    """Asset categories per business unit"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='asset_categories')
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50)
    description = models.TextField(blank=True, null=True)
    parent_category = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='sub_categories')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'asset_categories'
        ordering = ['company', 'name']
        verbose_name = 'Asset Category'
        verbose_name_plural = 'Asset Categories'

    def __str__(self):
        return f"{self.code} - {self.name}"


class Asset(BaseModel):
    """Tracked asset with its depreciation state"""
    AVAILABLE = 'AVAILABLE'
    DEPLOYED = 'DEPLOYED'
    IN_MAINTENANCE = 'IN_MAINTENANCE'
    RETIRED = 'RETIRED'
    DISPOSED = 'DISPOSED'
    LOST = 'LOST'
    DAMAGED = 'DAMAGED'
    FULLY_DEPRECIATED = 'FULLY_DEPRECIATED'

    STATUS_CHOICES = [
        (AVAILABLE, 'Available'),
        (DEPLOYED, 'Deployed'),
        (IN_MAINTENANCE, 'In Maintenance'),
        (RETIRED, 'Retired'),
        (DISPOSED, 'Disposed'),
        (LOST, 'Lost'),
        (DAMAGED, 'Damaged'),
        (FULLY_DEPRECIATED, 'Fully Depreciated'),
    ]

    CONDITION_CHOICES = [
        ('EXCELLENT', 'Excellent'),
        ('GOOD', 'Good'),
        ('FAIR', 'Fair'),
        ('POOR', 'Poor'),
        ('NOT_WORKING', 'Not Working'),
    ]

    STRAIGHT_LINE = 'STRAIGHT_LINE'
    DECLINING_BALANCE = 'DECLINING_BALANCE'
    UNITS_OF_PRODUCTION = 'UNITS_OF_PRODUCTION'
    SUM_OF_YEARS_DIGITS = 'SUM_OF_YEARS_DIGITS'

    DEPRECIATION_METHOD_CHOICES = [
        (STRAIGHT_LINE, 'Straight Line'),
        (DECLINING_BALANCE, 'Declining Balance'),
        (UNITS_OF_PRODUCTION, 'Units of Production'),
        (SUM_OF_YEARS_DIGITS, "Sum of Years' Digits"),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='assets')

    asset_tag = models.CharField(max_length=100, db_index=True, help_text="Item code, unique per business unit")
    qr_code = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    qr_code_image = models.ImageField(upload_to='qr_codes/', blank=True, null=True)

    category = models.ForeignKey(AssetCategory, on_delete=models.PROTECT, related_name='assets')

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    brand = models.CharField(max_length=100, blank=True, null=True)
    model = models.CharField(max_length=100, blank=True, null=True)
    serial_number = models.CharField(max_length=100, blank=True, null=True, db_index=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)
    condition = models.CharField(max_length=20, choices=CONDITION_CHOICES, default='GOOD', blank=True, null=True)

    location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='assets')
    department = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name='assets')
    assigned_to = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_assets')

    purchase_date = models.DateField(blank=True, null=True)
    purchase_price = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True, validators=[MinValueValidator(Decimal('0.00'))])
    warranty_end_date = models.DateField(blank=True, null=True)

    # Depreciation settings
    depreciation_method = models.CharField(max_length=30, choices=DEPRECIATION_METHOD_CHOICES, default=STRAIGHT_LINE)
    useful_life_years = models.PositiveIntegerField(blank=True, null=True)
    useful_life_months = models.PositiveIntegerField(blank=True, null=True)
    salvage_value = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    depreciation_rate = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True, help_text="Annual depreciation rate (%)")
    total_expected_units = models.PositiveIntegerField(blank=True, null=True, help_text="Lifetime units for units-of-production")
    current_units = models.PositiveIntegerField(default=0)
    depreciation_start_date = models.DateField(blank=True, null=True)

    # Depreciation state
    current_book_value = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    accumulated_depreciation = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    last_depreciation_date = models.DateField(blank=True, null=True)
    next_depreciation_date = models.DateField(blank=True, null=True, db_index=True)
    is_fully_depreciated = models.BooleanField(default=False)

    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_assets')

    class Meta:
        db_table = 'assets'
        ordering = ['company', '-created_at']
        verbose_name = 'Asset'
        verbose_name_plural = 'Assets'
        indexes = [
            models.Index(fields=['company', 'asset_tag'], name='assets_company_tag_idx'),
            models.Index(fields=['company', 'status'], name='assets_company_status_idx'),
            models.Index(fields=['company', 'next_depreciation_date'], name='assets_company_nextdep_idx'),
        ]

    def __str__(self):
        return f"{self.asset_tag} - {self.name}"

    def save(self, *args, **kwargs):
        if self.useful_life_years and not self.useful_life_months:
            self.useful_life_months = self.useful_life_years * 12
        if not self.is_fully_depreciated and self.status not in (self.RETIRED, self.DISPOSED):
            self.initialise_depreciation()
        super().save(*args, **kwargs)

    def initialise_depreciation(self):
        """
        Seed book value and the first due date once the asset has a price
        and a useful life, whether it was created with them or given them later.
        """
        if self.current_book_value is None and self.purchase_price is not None:
            self.current_book_value = self.purchase_price
        start = self.depreciation_start
        if self.next_depreciation_date is None and start and self.has_depreciation_data:
            self.next_depreciation_date = start + relativedelta(months=1)

    @property
    def depreciation_start(self):
        return self.depreciation_start_date or self.purchase_date

    @property
    def has_depreciation_data(self):
        return bool(self.purchase_price and self.useful_life_months)

    @property
    def book_value(self):
        if self.current_book_value is not None:
            return self.current_book_value
        return self.purchase_price or Decimal('0.00')

    @property
    def depreciation_percentage(self):
        """Share of the purchase price already written off, 0-100"""
        if not self.purchase_price:
            return Decimal('0.0')
        lost = self.purchase_price - self.book_value
        return (lost / self.purchase_price * 100).quantize(Decimal('0.1'))

    @property
    def is_under_warranty(self):
        if self.warranty_end_date:
            return timezone.now().date() <= self.warranty_end_date
        return False

    def active_deployments(self):
        return self.deployments.filter(status=AssetDeployment.DEPLOYED, returned_date__isnull=True)

    def has_active_deployment(self):
        return self.active_deployments().exists()


class AssetHistory(models.Model):
    """Timeline of everything that happened to an asset"""
    ACTION_TYPES = [
        ('CREATED', 'Created'),
        ('UPDATED', 'Updated'),
        ('STATUS_CHANGED', 'Status Changed'),
        ('DEPLOYED', 'Deployed'),
        ('RETURNED', 'Returned'),
        ('TRANSFERRED', 'Transferred'),
        ('RETIRED', 'Retired'),
        ('DISPOSED', 'Disposed'),
        ('MAINTENANCE_START', 'Maintenance Started'),
        ('MAINTENANCE_END', 'Maintenance Completed'),
        ('DEPRECIATION_CALCULATED', 'Depreciation Calculated'),
        ('UNITS_UPDATED', 'Units Updated'),
    ]

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='history')
    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_history')
    action_type = models.CharField(max_length=30, choices=ACTION_TYPES)
    action_date = models.DateTimeField(auto_now_add=True)
    performed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_actions')

    previous_status = models.CharField(max_length=20, blank=True, null=True)
    new_status = models.CharField(max_length=20, blank=True, null=True)

    previous_book_value = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    new_book_value = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    depreciation_amount = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)

    employee = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_history')
    from_location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='assets_from')
    to_location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='assets_to')

    remarks = models.TextField(blank=True, null=True)
    metadata = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'asset_history'
        ordering = ['-action_date', '-id']
        verbose_name = 'Asset History'
        verbose_name_plural = 'Asset History'

    def __str__(self):
        return f"{self.asset.asset_tag} - {self.action_type} on {self.action_date}"


class AssetDepreciation(models.Model):
    """One posted depreciation period for an asset"""
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='depreciation_records')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='depreciation_records')
    depreciation_date = models.DateField()
    period_start_date = models.DateField()
    period_end_date = models.DateField()
    book_value_start = models.DecimalField(max_digits=15, decimal_places=2)
    depreciation_amount = models.DecimalField(max_digits=15, decimal_places=2)
    book_value_end = models.DecimalField(max_digits=15, decimal_places=2)
    accumulated_depreciation = models.DecimalField(max_digits=15, decimal_places=2)
    method = models.CharField(max_length=30, choices=Asset.DEPRECIATION_METHOD_CHOICES)
    calculation_basis = models.JSONField(default=dict)
    units_start = models.PositiveIntegerField(blank=True, null=True)
    units_end = models.PositiveIntegerField(blank=True, null=True)
    units_in_period = models.PositiveIntegerField(blank=True, null=True)
    calculated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='depreciation_calculations')
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'asset_depreciation'
        ordering = ['-depreciation_date', '-id']
        verbose_name = 'Asset Depreciation'
        verbose_name_plural = 'Asset Depreciation'

    def __str__(self):
        return f"{self.asset.asset_tag} - {self.depreciation_date} - {self.depreciation_amount}"


class AssetDeployment(BaseModel):
    """
    Assignment of an asset to an employee.
    Accounting approves the request before the asset leaves stock.
    """
    PENDING_ACCOUNTING_APPROVAL = 'PENDING_ACCOUNTING_APPROVAL'
    DEPLOYED = 'DEPLOYED'
    RETURNED = 'RETURNED'
    CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (PENDING_ACCOUNTING_APPROVAL, 'Pending Accounting Approval'),
        (DEPLOYED, 'Deployed'),
        (RETURNED, 'Returned'),
        (CANCELLED, 'Cancelled'),
    ]

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='deployments')
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name='deployments')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='deployments')
    transmittal_number = models.CharField(max_length=50, unique=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=PENDING_ACCOUNTING_APPROVAL)

    expected_return_date = models.DateField(blank=True, null=True)
    deployment_condition = models.CharField(max_length=20, choices=Asset.CONDITION_CHOICES, blank=True, null=True)
    deployment_notes = models.TextField(blank=True, default='')

    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='deployment_requests')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='deployment_approvals')
    approved_at = models.DateTimeField(blank=True, null=True)
    accounting_notes = models.TextField(blank=True, default='')
    deployed_date = models.DateTimeField(blank=True, null=True)

    returned_date = models.DateTimeField(blank=True, null=True)
    return_condition = models.CharField(max_length=20, choices=Asset.CONDITION_CHOICES, blank=True, null=True)
    return_notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'asset_deployments'
        ordering = ['-created_at']
        verbose_name = 'Asset Deployment'
        verbose_name_plural = 'Asset Deployments'
        indexes = [
            models.Index(fields=['company', 'status'], name='deployments_company_status_idx'),
            models.Index(fields=['asset', 'status'], name='deployments_asset_status_idx'),
        ]

    def __str__(self):
        return f"{self.transmittal_number} - {self.asset.asset_tag}"

    def save(self, *args, **kwargs):
        if not self.transmittal_number:
            self.transmittal_number = next_document_number(AssetDeployment, 'transmittal_number', 'TN')
        super().save(*args, **kwargs)

    @property
    def is_pending(self):
        return self.status == self.PENDING_ACCOUNTING_APPROVAL


class AssetTransfer(BaseModel):
    """
    Movement of an asset from one business unit to another.
    PENDING_APPROVAL -> APPROVED -> IN_TRANSIT -> COMPLETED, or REJECTED.
    """
    PENDING_APPROVAL = 'PENDING_APPROVAL'
    APPROVED = 'APPROVED'
    IN_TRANSIT = 'IN_TRANSIT'
    COMPLETED = 'COMPLETED'
    REJECTED = 'REJECTED'

    STATUS_CHOICES = [
        (PENDING_APPROVAL, 'Pending Approval'),
        (APPROVED, 'Approved'),
        (IN_TRANSIT, 'In Transit'),
        (COMPLETED, 'Completed'),
        (REJECTED, 'Rejected'),
    ]

    OPEN_STATUSES = [PENDING_APPROVAL, APPROVED, IN_TRANSIT]

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='transfers')
    transfer_number = models.CharField(max_length=50, unique=True)

    from_company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='transfers_out')
    to_company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='transfers_in')
    from_location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfers_from')
    to_location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfers_to')

    transfer_date = models.DateField(default=timezone.localdate)
    reason = models.TextField()
    transfer_method = models.CharField(max_length=100, blank=True, default='')
    tracking_number = models.CharField(max_length=100, blank=True, default='')
    estimated_arrival = models.DateField(blank=True, null=True)
    transfer_cost = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    insurance_value = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True)
    condition_before = models.CharField(max_length=20, choices=Asset.CONDITION_CHOICES, blank=True, null=True)
    condition_after = models.CharField(max_length=20, choices=Asset.CONDITION_CHOICES, blank=True, null=True)
    transfer_notes = models.TextField(blank=True, default='')

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING_APPROVAL)
    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='transfer_requests')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfer_approvals')
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfer_rejections')
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default='')
    shipped_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfer_completions')
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'asset_transfers'
        ordering = ['-created_at']
        verbose_name = 'Asset Transfer'
        verbose_name_plural = 'Asset Transfers'
        indexes = [
            models.Index(fields=['status', '-created_at'], name='transfers_status_created_idx'),
            models.Index(fields=['asset', 'status'], name='transfers_asset_status_idx'),
        ]

    def __str__(self):
        return f"{self.transfer_number} - {self.asset.asset_tag}"

    def save(self, *args, **kwargs):
        if not self.transfer_number:
            self.transfer_number = next_document_number(AssetTransfer, 'transfer_number', 'TR')
        super().save(*args, **kwargs)


class AssetRetirement(BaseModel):
    """Withdrawal of an asset from service"""
    REASON_CHOICES = [
        ('END_OF_USEFUL_LIFE', 'End of Useful Life'),
        ('FULLY_DEPRECIATED', 'Fully Depreciated'),
        ('OBSOLETE', 'Obsolete'),
        ('DAMAGED_BEYOND_REPAIR', 'Damaged Beyond Repair'),
        ('POLICY_CHANGE', 'Policy Change'),
        ('UPGRADE_REPLACEMENT', 'Upgrade / Replacement'),
    ]

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='retirements')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='retirements')
    retirement_number = models.CharField(max_length=50, unique=True)
    retirement_date = models.DateField(default=timezone.localdate)
    reason = models.CharField(max_length=30, choices=REASON_CHOICES)
    retirement_method = models.CharField(max_length=100, blank=True, default='')
    condition = models.CharField(max_length=20, choices=Asset.CONDITION_CHOICES, blank=True, null=True)
    replacement_asset = models.ForeignKey(Asset, on_delete=models.SET_NULL, null=True, blank=True, related_name='replaces')
    disposal_planned = models.BooleanField(default=False)
    planned_disposal_date = models.DateField(blank=True, null=True)
    notes = models.TextField(blank=True, default='')

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='retirements_created')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='retirement_approvals')
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'asset_retirements'
        ordering = ['-retirement_date', '-created_at']
        verbose_name = 'Asset Retirement'
        verbose_name_plural = 'Asset Retirements'

    def __str__(self):
        return f"{self.retirement_number} - {self.asset.asset_tag}"

    def save(self, *args, **kwargs):
        if not self.retirement_number:
            self.retirement_number = next_document_number(AssetRetirement, 'retirement_number', 'RET', '%Y%m%d')
        super().save(*args, **kwargs)

    @property
    def is_approved(self):
        return self.approved_at is not None


class AssetDisposal(BaseModel):
    """
    Final removal of an asset from the books, with the gain or loss
    against its book value.
    """
    REASON_CHOICES = [
        ('SOLD', 'Sold'),
        ('DONATED', 'Donated'),
        ('SCRAPPED', 'Scrapped'),
        ('LOST', 'Lost'),
        ('STOLEN', 'Stolen'),
        ('END_OF_LIFE', 'End of Life'),
        ('DAMAGED_BEYOND_REPAIR', 'Damaged Beyond Repair'),
        ('OBSOLETE', 'Obsolete'),
    ]

    METHOD_CHOICES = [
        ('SELL', 'Sell'),
        ('SCRAP', 'Scrap'),
        ('DONATE', 'Donate'),
        ('DESTROY', 'Destroy'),
        ('RETURN_TO_VENDOR', 'Return to Vendor'),
    ]

    asset = models.OneToOneField(Asset, on_delete=models.CASCADE, related_name='disposal')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='disposals')
    disposal_number = models.CharField(max_length=50, unique=True)
    disposal_date = models.DateField(default=timezone.localdate)
    reason = models.CharField(max_length=30, choices=REASON_CHOICES)
    disposal_method = models.CharField(max_length=20, choices=METHOD_CHOICES, blank=True, null=True)
    disposal_location = models.CharField(max_length=255, blank=True, default='')

    disposal_value = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    disposal_cost = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    net_disposal_value = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    book_value_at_disposal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    gain_loss = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))

    recipient_name = models.CharField(max_length=200, blank=True, default='')
    recipient_contact = models.CharField(max_length=200, blank=True, default='')
    recipient_address = models.TextField(blank=True, default='')
    environmental_compliance = models.BooleanField(default=False)
    data_wiped = models.BooleanField(default=False)
    certificate_number = models.CharField(max_length=100, blank=True, default='')
    condition = models.CharField(max_length=20, choices=Asset.CONDITION_CHOICES, blank=True, null=True)
    notes = models.TextField(blank=True, default='')

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='disposals_created')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='disposal_approvals')
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'asset_disposals'
        ordering = ['-disposal_date', '-created_at']
        verbose_name = 'Asset Disposal'
        verbose_name_plural = 'Asset Disposals'
        indexes = [
            models.Index(fields=['company', 'reason'], name='disposals_company_reason_idx'),
        ]

    def __str__(self):
        return f"{self.disposal_number} - {self.asset.asset_tag}"

    def save(self, *args, **kwargs):
        if not self.disposal_number:
            self.disposal_number = next_document_number(AssetDisposal, 'disposal_number', 'DSP', '%Y%m%d')
        super().save(*args, **kwargs)

    @property
    def is_approved(self):
        return self.approved_at is not None


class InventoryVerification(BaseModel):
    """
    Physical count of a business unit's assets.

    The assets in scope are snapshotted as items when the verification is
    created and checked off as their labels are scanned.
    """
    PLANNED = 'PLANNED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (PLANNED, 'Planned'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    CLOSED_STATUSES = [COMPLETED, CANCELLED]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='inventory_verifications')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    start_date = models.DateField(default=timezone.localdate)
    end_date = models.DateField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PLANNED)

    locations = models.ManyToManyField(Location, blank=True, related_name='inventory_verifications')
    categories = models.ManyToManyField(AssetCategory, blank=True, related_name='inventory_verifications')
    assigned_to = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_verifications')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='verifications_created')
    completed_at = models.DateTimeField(blank=True, null=True)

    total_assets = models.PositiveIntegerField(default=0)
    scanned_assets = models.PositiveIntegerField(default=0)
    verified_assets = models.PositiveIntegerField(default=0)
    discrepancies = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'inventory_verifications'
        ordering = ['-created_at']
        verbose_name = 'Inventory Verification'
        verbose_name_plural = 'Inventory Verifications'

    def __str__(self):
        return self.name

    @property
    def is_closed(self):
        return self.status in self.CLOSED_STATUSES

    @property
    def progress(self):
        if not self.total_assets:
            return 0
        return round(self.scanned_assets / self.total_assets * 100)


class VerificationItem(TimeStampedModel):
    """One asset expected by an inventory verification"""
    PENDING = 'PENDING'
    VERIFIED = 'VERIFIED'
    DISCREPANCY = 'DISCREPANCY'
    MISSING = 'MISSING'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (VERIFIED, 'Verified'),
        (DISCREPANCY, 'Discrepancy'),
        (MISSING, 'Missing'),
    ]

    verification = models.ForeignKey(InventoryVerification, on_delete=models.CASCADE, related_name='items')
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='verification_items')
    expected_location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    actual_location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    expected_assignee = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    actual_assignee = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    scanned_at = models.DateTimeField(blank=True, null=True)
    scanned_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='verification_scans')
    notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'verification_items'
        ordering = ['asset__asset_tag']
        verbose_name = 'Verification Item'
        verbose_name_plural = 'Verification Items'
        unique_together = [['verification', 'asset']]

    def __str__(self):
        return f"{self.verification} - {self.asset.asset_tag}"


class AssetScanLog(models.Model):
    """Every label scan, including codes that matched nothing"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='scan_logs')
    asset = models.ForeignKey(Asset, on_delete=models.SET_NULL, null=True, blank=True, related_name='scan_logs')
    verification = models.ForeignKey(InventoryVerification, on_delete=models.SET_NULL, null=True, blank=True, related_name='scan_logs')
    scanned_value = models.CharField(max_length=500)
    found = models.BooleanField(default=False)
    scanned_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_scans')
    scanned_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'asset_scan_logs'
        ordering = ['-scanned_at', '-id']
        verbose_name = 'Asset Scan Log'
        verbose_name_plural = 'Asset Scan Logs'

    def __str__(self):
        return f"{self.scanned_value} at {self.scanned_at}"
