"""
The signed-in employee's own profile.
"""
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from core.audit_utils import get_model_fields, log_update
from core.utils import result
from .models import Employee

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('email', 'position', 'phone')


def get_assigned_assets(employee):
    """Deployments the employee holds or is waiting on, newest first"""
    from assets.models import AssetDeployment
    return AssetDeployment.objects.filter(
        employee=employee,
        is_deleted=False,
        status__in=[AssetDeployment.DEPLOYED, AssetDeployment.PENDING_ACCOUNTING_APPROVAL],
        returned_date__isnull=True,
    ).select_related('asset', 'asset__category', 'asset__location').order_by('-created_at')


def get_profile_stats(employee):
    from assets.models import AssetDeployment

    deployments = list(get_assigned_assets(employee))
    active = [d for d in deployments if d.status == AssetDeployment.DEPLOYED]
    today = timezone.localdate()
    ages = [
        (today - (d.asset.purchase_date or timezone.localtime(d.asset.created_at).date())).days
        for d in active
    ]
    return {
        'assigned_assets': len(deployments),
        'active_deployments': len(active),
        'total_asset_value': sum((d.asset.purchase_price or 0 for d in deployments), 0),
        'average_asset_age_days': round(sum(ages) / len(ages)) if ages else 0,
    }


def update_profile(employee, data, user=None, request=None):
    """Change the employee's own contact details"""
    email = (data.get('email') or '').strip()
    if email and Employee.objects.filter(
        email__iexact=email, is_active=True, is_deleted=False
    ).exclude(pk=employee.pk).exists():
        return result(False, 'Email already exists')

    old_values = get_model_fields(employee)
    try:
        with transaction.atomic():
            for field in PROFILE_FIELDS:
                if field in data:
                    setattr(employee, field, (data[field] or '').strip() or None)
            employee.save(update_fields=list(PROFILE_FIELDS) + ['updated_at'])
            if employee.user_id and employee.email and employee.user.email != employee.email:
                employee.user.email = employee.email
                employee.user.save(update_fields=['email'])
            log_update(request, employee, old_values=old_values, user=user,
                       metadata={'profile_update': True})
    except DatabaseError:
        logger.exception("Failed to update profile of employee %s", employee.pk)
        return result(False, 'Failed to update profile')

    return result(True, 'Profile updated successfully', employee=employee)
