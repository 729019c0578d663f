from django.db import models
from django.utils import timezone
from django.contrib.auth.models import User
from django.contrib.contenttypes.models import ContentType
from django.contrib.contenttypes.fields import GenericForeignKey


class TimeStampedModel(models.Model):
    """
    An abstract base class model that provides self-updating
    'created_at' and 'updated_at' fields.
    """
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class SoftDeleteModel(models.Model):
    """
    An abstract base class model that flags rows as deleted instead of
    removing them.
    """
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    def soft_delete(self):
        """Soft delete the object"""
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save()

    def restore(self):
        """Restore a soft deleted object"""
        self.is_deleted = False
        self.deleted_at = None
        self.save()


class BaseModel(TimeStampedModel, SoftDeleteModel):
    """
    Timestamps plus soft delete. Most business records extend this.
    """
    class Meta:
        abstract = True


class Company(BaseModel):
    """
    Business unit (tenant). Every employee, asset and workflow record
    belongs to exactly one business unit.
    """
    name = models.CharField(max_length=200, unique=True)
    code = models.CharField(max_length=50, unique=True, help_text="Unique business unit code")

    # Contact Information
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    website = models.URLField(blank=True, null=True)

    # Address
    address_line1 = models.CharField(max_length=255, blank=True, null=True)
    address_line2 = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=100, blank=True, null=True)
    country = models.CharField(max_length=100, default='Philippines')
    postal_code = models.CharField(max_length=20, blank=True, null=True)

    tax_id = models.CharField(max_length=50, blank=True, null=True, help_text="Tax ID / Business Registration Number")

    is_active = models.BooleanField(default=True)
    subscription_start_date = models.DateField(blank=True, null=True)
    subscription_end_date = models.DateField(blank=True, null=True)

    max_users = models.IntegerField(default=50, help_text="Maximum number of employees allowed")
    max_assets = models.IntegerField(default=1000, help_text="Maximum number of assets allowed")

    notes = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'companies'
        ordering = ['name']
        verbose_name = 'Business Unit'
        verbose_name_plural = 'Business Units'

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def is_subscription_active(self):
        if not self.subscription_end_date:
            return True
        return timezone.now().date() <= self.subscription_end_date


class AuditLog(models.Model):
    """
    Audit trail for user actions.
    Uses a generic foreign key so any model can be the target.
    """

    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('VIEW', 'View'),
        ('LOGIN', 'Login'),
        ('LOGOUT', 'Logout'),
        ('EXPORT', 'Export'),
        ('IMPORT', 'Import'),
        ('APPROVE', 'Approve'),
        ('REJECT', 'Reject'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the action"
    )
    username = models.CharField(
        max_length=150,
        help_text="Username at time of action (kept when the user is deleted)"
    )

    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text="Type of object that was modified"
    )
    object_id = models.CharField(max_length=255, null=True, blank=True)
    content_object = GenericForeignKey('content_type', 'object_id')
    object_repr = models.CharField(max_length=500)

    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    description = models.TextField()

    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    changed_fields = models.JSONField(null=True, blank=True)

    # Request metadata, empty when the action did not come from a request
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)
    request_path = models.CharField(max_length=500, null=True, blank=True)
    request_method = models.CharField(max_length=10, null=True, blank=True)

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    company = models.ForeignKey(
        'Company',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="Business unit context at time of action"
    )

    metadata = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-timestamp']
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        indexes = [
            models.Index(fields=['-timestamp'], name='audit_logs_timesta_idx'),
            models.Index(fields=['user', '-timestamp'], name='audit_logs_user_ts_idx'),
            models.Index(fields=['content_type', '-timestamp'], name='audit_logs_ctype_ts_idx'),
            models.Index(fields=['action', '-timestamp'], name='audit_logs_action_ts_idx'),
            models.Index(fields=['company', '-timestamp'], name='audit_logs_company_ts_idx'),
        ]

    def __str__(self):
        return f"{self.username} - {self.action} - {self.object_repr} - {self.timestamp}"

    @property
    def table_name(self):
        if not self.content_type_id:
            return self.object_repr
        model_class = self.content_type.model_class()
        return model_class.__name__ if model_class else self.content_type.model

    @property
    def changes_summary(self):
        if self.action == 'CREATE':
            return f"Created {self.object_repr}"
        elif self.action == 'DELETE':
            return f"Deleted {self.object_repr}"
        elif self.action == 'UPDATE' and self.changed_fields:
            fields = ', '.join(self.changed_fields)
            return f"Updated {fields} on {self.object_repr}"
        return self.description


class SystemSetting(BaseModel):
    """Key/value configuration editable from the settings screen"""
    key = models.CharField(max_length=100, db_index=True)
    value = models.TextField()
    description = models.TextField(blank=True, null=True)
    category = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'system_settings'
        ordering = ['category', 'key']
        verbose_name = 'System Setting'
        verbose_name_plural = 'System Settings'

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key, is_active=True, is_deleted=False).first()
        return setting.value if setting else default
