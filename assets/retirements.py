"""
Asset retirement and end-of-life review.
"""
import logging

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from core.audit_utils import get_model_fields, log_action, log_create
from core.utils import result
from users.models import Employee
from users.services import create_notification
from .models import Asset, AssetRetirement
from .services import active_deployments, record_history

logger = logging.getLogger(__name__)

RETIREMENT_FIELDS = [
    'retirement_date', 'reason', 'retirement_method', 'condition',
    'replacement_asset', 'disposal_planned', 'planned_disposal_date', 'notes',
]

EOL_TITLE = 'Asset End-of-Life Alert'


def _thresholds():
    return settings.ASSETDESK['RETIREMENT_THRESHOLDS']


def _age_in_years(asset, today):
    start = asset.purchase_date or timezone.localtime(asset.created_at).date()
    return (today - start).days / 365.25


def _depreciation_percent(asset):
    if not asset.purchase_price:
        return 0.0
    return float((asset.purchase_price - asset.book_value) / asset.purchase_price * 100)


def recommended_action(asset, age, percent):
    limits = _thresholds()
    if asset.status in (Asset.DAMAGED, Asset.LOST):
        return 'RETIRE'
    if percent >= limits['RETIRE_DEPRECIATION_PERCENT'] or age >= limits['RETIRE_AGE_YEARS']:
        return 'RETIRE'
    if percent >= limits['MAINTAIN_DEPRECIATION_PERCENT'] or age >= limits['MAINTAIN_AGE_YEARS']:
        return 'MAINTAIN'
    return 'MONITOR'


def _candidates(company):
    return Asset.objects.filter(company=company, is_deleted=False).exclude(
        status__in=[Asset.DISPOSED, Asset.RETIRED]
    )


def get_assets_eligible_for_retirement(company):
    """
    Assets still in service, each with ``age_in_years``,
    ``depreciation_percentage`` and ``recommended_action``.
    """
    today = timezone.localdate()
    rows = []
    for asset in _candidates(company).select_related('category').order_by('asset_tag'):
        age = _age_in_years(asset, today)
        percent = _depreciation_percent(asset)
        rows.append({
            'asset': asset,
            'age_in_years': round(age, 1),
            'depreciation_percentage': round(percent, 1),
            'recommended_action': recommended_action(asset, age, percent),
        })
    return rows


def create_asset_retirement(asset, company, data, user=None, request=None):
    if asset is None or asset.is_deleted or asset.company_id != company.pk:
        return result(False, 'Asset not found or not accessible')
    if asset.status == Asset.RETIRED:
        return result(False, 'Asset is already retired')
    if asset.status == Asset.DISPOSED:
        return result(False, 'Asset has already been disposed')
    if active_deployments(asset).exists():
        logger.warning("Refusing to retire %s with active deployments", asset.asset_tag)
        return result(False, 'Cannot retire asset with active deployments')

    previous_status = asset.status
    try:
        with transaction.atomic():
            retirement = AssetRetirement(
                asset=asset,
                company=company,
                created_by=user if user is not None and user.is_authenticated else None,
            )
            for field in RETIREMENT_FIELDS:
                if data.get(field) is not None:
                    setattr(retirement, field, data[field])
            if not retirement.condition:
                retirement.condition = asset.condition
            retirement.save()

            asset.status = Asset.RETIRED
            asset.next_depreciation_date = None
            asset.save()

            record_history(
                asset, 'RETIRED', user=user,
                previous_status=previous_status,
                new_status=Asset.RETIRED,
                remarks=f'Asset retired: {retirement.get_reason_display()}',
                metadata={
                    'retirement_id': retirement.pk,
                    'retirement_number': retirement.retirement_number,
                    'reason': retirement.reason,
                    'disposal_planned': retirement.disposal_planned,
                },
            )
            log_create(request, retirement, user=user, company=company)
    except DatabaseError:
        logger.exception("Failed to retire asset %s", asset.asset_tag)
        return result(False, 'Failed to create asset retirement')

    logger.info("Retirement %s created for %s", retirement.retirement_number, asset.asset_tag)
    return result(True, 'Asset retirement created successfully', retirement=retirement)


def approve_asset_retirement(retirement, user, notes='', request=None):
    if retirement.is_approved:
        return result(False, 'Retirement already approved')

    old_values = get_model_fields(retirement)
    try:
        with transaction.atomic():
            retirement.approved_by = user
            retirement.approved_at = timezone.now()
            if notes:
                retirement.notes = f"{retirement.notes or ''}\n\nApproval Notes: {notes}".strip()
            retirement.save()
            log_action(
                request, retirement, 'APPROVE',
                description=f'Approved retirement {retirement.retirement_number}',
                old_values=old_values, new_values=get_model_fields(retirement),
                user=user, company=retirement.company,
            )
    except DatabaseError:
        logger.exception("Failed to approve retirement %s", retirement.pk)
        return result(False, 'Failed to approve asset retirement')

    logger.info("Retirement %s approved by %s", retirement.retirement_number, user.username)
    return result(True, 'Asset retirement approved successfully', retirement=retirement)


def get_asset_retirements(company, search=None, reason=None, approved=None):
    retirements = AssetRetirement.objects.filter(company=company, is_deleted=False).select_related(
        'asset', 'created_by', 'approved_by', 'replacement_asset'
    )
    if reason:
        retirements = retirements.filter(reason=reason)
    if approved is True:
        retirements = retirements.filter(approved_at__isnull=False)
    elif approved is False:
        retirements = retirements.filter(approved_at__isnull=True)
    if search:
        retirements = retirements.filter(
            Q(retirement_number__icontains=search) |
            Q(asset__asset_tag__icontains=search) |
            Q(asset__name__icontains=search)
        )
    return retirements.order_by('-retirement_date', '-created_at')


def _end_of_life_findings(asset, today):
    """(notification_type, priority, message) tuples for one asset"""
    limits = _thresholds()
    age = _age_in_years(asset, today)
    findings = []

    if _depreciation_percent(asset) >= limits['RETIRE_DEPRECIATION_PERCENT']:
        findings.append((
            'FULLY_DEPRECIATED', 'MEDIUM',
            f'Asset {asset.asset_tag} is fully depreciated and may need retirement consideration.',
        ))

    if limits['EOL_WARNING_AGE_YEARS'] <= age < limits['RETIRE_AGE_YEARS']:
        findings.append((
            'APPROACHING_END_OF_LIFE', 'LOW',
            f'Asset {asset.asset_tag} is {round(age)} years old and approaching end of useful life.',
        ))
    elif age >= limits['RETIRE_AGE_YEARS']:
        findings.append((
            'APPROACHING_END_OF_LIFE', 'HIGH',
            f'Asset {asset.asset_tag} is {round(age)} years old and past typical useful life.',
        ))

    if asset.warranty_end_date and asset.warranty_end_date <= today:
        days = (today - asset.warranty_end_date).days
        if days <= limits['WARRANTY_LOOKBACK_DAYS']:
            findings.append((
                'WARRANTY_EXPIRED', 'MEDIUM',
                f'Asset {asset.asset_tag} warranty expired {days} days ago.',
            ))

    return findings


def generate_end_of_life_notifications(company):
    """
    Notify the business unit's administrators and asset managers about
    assets reaching end of life. Returns the number of notifications created.
    """
    today = timezone.localdate()
    recipients = list(Employee.objects.filter(
        company=company,
        is_active=True,
        is_deleted=False,
        role__code__in=settings.ASSETDESK['EOL_NOTIFICATION_ROLES'],
    ))

    created = 0
    try:
        with transaction.atomic():
            for asset in _candidates(company):
                for notification_type, priority, message in _end_of_life_findings(asset, today):
                    for recipient in recipients:
                        create_notification(
                            recipient, EOL_TITLE, message,
                            notification_type=notification_type,
                            priority=priority,
                            metadata={'asset_id': asset.pk, 'asset_tag': asset.asset_tag},
                        )
                        created += 1
    except DatabaseError:
        logger.exception("Failed to generate end-of-life notifications for %s", company.code)
        return result(False, 'Failed to generate end-of-life notifications', notifications_created=0)

    logger.info("Generated %s end-of-life notifications for %s", created, company.code)
    return result(True, f'Generated {created} end-of-life notifications', notifications_created=created)
