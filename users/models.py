from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone
from core.models import BaseModel, TimeStampedModel, Company


class Department(BaseModel):
    """Department within a business unit"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='departments')
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50)
    description = models.TextField(blank=True, null=True)
    head = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='headed_departments')
    parent_department = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='sub_departments')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'departments'
        ordering = ['company', 'name']
        verbose_name = 'Department'
        verbose_name_plural = 'Departments'

    def __str__(self):
        return f"{self.code} - {self.name}"


class Location(BaseModel):
    """Physical site where assets are kept"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='locations')
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50)
    address_line1 = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    country = models.CharField(max_length=100, default='Philippines')
    location_type = models.CharField(max_length=50, choices=[
        ('OFFICE', 'Office'),
        ('WAREHOUSE', 'Warehouse'),
        ('BRANCH', 'Branch'),
        ('DATA_CENTER', 'Data Center'),
        ('OTHER', 'Other'),
    ], default='OFFICE')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'locations'
        ordering = ['company', 'name']
        verbose_name = 'Location'
        verbose_name_plural = 'Locations'
        unique_together = [['company', 'code']]

    def __str__(self):
        if self.company_id:
            return f"{self.company.code} - {self.code} - {self.name}"
        return f"{self.code} - {self.name}"


class Role(BaseModel):
    """
    Named set of permissions shared by employees.
    Permission strings look like ``deployments:approve``.
    """
    FULL_ACCESS = 'admin:full_access'

    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, db_index=True)
    description = models.TextField(blank=True, null=True)
    permissions = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'roles'
        ordering = ['name']
        verbose_name = 'Role'
        verbose_name_plural = 'Roles'

    def __str__(self):
        return f"{self.code} - {self.name}"

    def has_permission(self, permission):
        permissions = self.permissions or []
        return self.FULL_ACCESS in permissions or permission in permissions


class Employee(BaseModel):
    """
    Person working in a business unit. Employees receive deployed assets;
    those with a linked login user can also use the application.
    """
    ADMIN_ROLE_CODES = ('SUPER_ADMIN', 'ADMIN')

    user = models.OneToOneField(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='employee')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='employees')
    employee_id = models.CharField(max_length=50, db_index=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True, null=True)
    position = models.CharField(max_length=200, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    department = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name='employees')
    location = models.ForeignKey(Location, on_delete=models.SET_NULL, null=True, blank=True, related_name='employees')
    role = models.ForeignKey(Role, on_delete=models.PROTECT, null=True, blank=True, related_name='employees')
    reporting_manager = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='team_members')
    hire_date = models.DateField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    is_company_admin = models.BooleanField(default=False, help_text="Can manage this business unit's records")

    class Meta:
        db_table = 'employees'
        ordering = ['last_name', 'first_name']
        verbose_name = 'Employee'
        verbose_name_plural = 'Employees'
        indexes = [
            models.Index(fields=['company', 'is_active'], name='employees_company_active_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.employee_id})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role_code(self):
        return self.role.code if self.role_id else None

    @property
    def is_admin(self):
        return self.is_company_admin or self.role_code in self.ADMIN_ROLE_CODES

    def has_permission(self, permission):
        if self.user_id and self.user.is_superuser:
            return True
        return bool(self.role_id and self.role.is_active and self.role.has_permission(permission))


class Notification(TimeStampedModel):
    """In-app message for an employee"""
    TYPE_CHOICES = [
        ('FULLY_DEPRECIATED', 'Fully Depreciated'),
        ('APPROACHING_END_OF_LIFE', 'Approaching End of Life'),
        ('WARRANTY_EXPIRED', 'Warranty Expired'),
        ('DEPLOYMENT_APPROVAL', 'Deployment Approval'),
        ('MAINTENANCE_DUE', 'Maintenance Due'),
        ('GENERAL', 'General'),
    ]

    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
    ]

    recipient = models.ForeignKey(Employee, on_delete=models.CASCADE, related_name='notifications')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=200)
    message = models.TextField()
    notification_type = models.CharField(max_length=30, choices=TYPE_CHOICES, default='GENERAL')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='MEDIUM')
    link = models.CharField(max_length=500, blank=True, default='')
    metadata = models.JSONField(null=True, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='notifications_unread_idx'),
        ]

    def __str__(self):
        return f"{self.recipient} - {self.title}"

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at', 'updated_at'])
