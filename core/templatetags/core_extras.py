import json
from decimal import Decimal, InvalidOperation

from django import template

from core.models import Company

register = template.Library()

STATUS_BADGES = {
    'AVAILABLE': 'success',
    'DEPLOYED': 'primary',
    'IN_MAINTENANCE': 'warning',
    'DAMAGED': 'danger',
    'LOST': 'danger',
    'RETIRED': 'secondary',
    'DISPOSED': 'dark',
    'FULLY_DEPRECIATED': 'secondary',
    'PENDING_APPROVAL': 'warning',
    'APPROVED': 'info',
    'IN_TRANSIT': 'info',
    'COMPLETED': 'success',
    'RETURNED': 'secondary',
    'CANCELLED': 'dark',
    'REJECTED': 'danger',
    'PLANNED': 'light',
    'PENDING': 'light',
    'VERIFIED': 'success',
    'DISCREPANCY': 'warning',
    'MISSING': 'danger',
}


@register.simple_tag
def active_companies():
    """Business units for the super admin selector"""
    return Company.objects.filter(is_deleted=False, is_active=True).order_by('name')


@register.filter
def pretty_json(value):
    """Indent a JSON value (audit old/new values) for display"""
    if value in (None, ''):
        return ''
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return value
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)


@register.filter
def currency(value, symbol='₱'):
    if value in (None, ''):
        return '-'
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return value
    return f'{symbol}{amount:,.2f}'


@register.filter
def status_badge(status):
    """Bootstrap colour for a status code"""
    return STATUS_BADGES.get(status, 'light')
