"""
Asset disposal: removing an asset from the books and recording the gain or
loss against its book value.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.audit_utils import get_model_fields, log_action, log_create
from core.utils import result, unique_ids
from .models import Asset, AssetDeployment, AssetDisposal
from .services import active_deployments, record_history
from .utils import ZERO, money, to_decimal

logger = logging.getLogger(__name__)

DISPOSAL_FIELDS = [
    'disposal_date', 'reason', 'disposal_method', 'disposal_location',
    'recipient_name', 'recipient_contact', 'recipient_address',
    'environmental_compliance', 'data_wiped', 'certificate_number', 'condition', 'notes',
]


def calculate_gain_loss(disposal_value, disposal_cost, book_value):
    """Gain (positive) or loss (negative) = net proceeds - book value"""
    return money((to_decimal(disposal_value) - to_decimal(disposal_cost)) - to_decimal(book_value))


def _dispose(asset, company, data, user, request, remarks, bulk=False):
    disposal_value = to_decimal(data.get('disposal_value'))
    disposal_cost = to_decimal(data.get('disposal_cost'))
    book_value = data.get('book_value_at_disposal')
    book_value = asset.book_value if book_value is None else to_decimal(book_value)
    gain_loss = calculate_gain_loss(disposal_value, disposal_cost, book_value)

    disposal = AssetDisposal(
        asset=asset,
        company=company,
        disposal_value=money(disposal_value),
        disposal_cost=money(disposal_cost),
        net_disposal_value=money(disposal_value - disposal_cost),
        book_value_at_disposal=money(book_value),
        gain_loss=gain_loss,
        created_by=user if user is not None and user.is_authenticated else None,
    )
    for field in DISPOSAL_FIELDS:
        if data.get(field) is not None:
            setattr(disposal, field, data[field])
    disposal.save()

    previous_status = asset.status
    asset.status = Asset.DISPOSED
    asset.assigned_to = None
    asset.next_depreciation_date = None
    asset.save()

    metadata = {
        'disposal_id': disposal.pk,
        'reason': disposal.reason,
        'disposal_value': str(disposal.disposal_value),
        'gain_loss': str(gain_loss),
    }
    if bulk:
        metadata['bulk_operation'] = True

    record_history(
        asset, 'DISPOSED', user=user,
        previous_status=previous_status,
        new_status=Asset.DISPOSED,
        previous_book_value=book_value,
        remarks=remarks,
        metadata=metadata,
    )
    log_create(request, disposal, user=user, company=company, metadata={'bulk_operation': bulk} if bulk else None)
    return disposal


def create_asset_disposal(asset, company, data, user=None, request=None):
    if asset is None or asset.is_deleted or asset.company_id != company.pk:
        return result(False, 'Asset not found or not accessible')
    if asset.status == Asset.DISPOSED or AssetDisposal.objects.filter(asset=asset).exists():
        return result(False, 'Asset has already been disposed')
    if active_deployments(asset).exists():
        logger.warning("Refusing to dispose %s with active deployments", asset.asset_tag)
        return result(False, 'Cannot dispose asset with active deployments')

    try:
        with transaction.atomic():
            disposal = _dispose(
                asset, company, data, user, request,
                remarks=f"Asset disposed - {data.get('reason')}",
            )
    except DatabaseError:
        logger.exception("Failed to dispose asset %s", asset.asset_tag)
        return result(False, 'Failed to create asset disposal')

    logger.info("Disposal %s created for %s, gain/loss %s", disposal.disposal_number, asset.asset_tag, disposal.gain_loss)
    return result(True, 'Asset disposal created successfully', disposal=disposal)


def approve_asset_disposal(disposal, user, notes='', request=None):
    if disposal.is_approved:
        return result(False, 'Disposal already approved')

    old_values = get_model_fields(disposal)
    try:
        with transaction.atomic():
            disposal.approved_by = user
            disposal.approved_at = timezone.now()
            if notes:
                disposal.notes = f"{disposal.notes or ''}\n\nApproval Notes: {notes}".strip()
            disposal.save()
            log_action(
                request, disposal, 'APPROVE',
                description=f'Approved disposal {disposal.disposal_number}',
                old_values=old_values, new_values=get_model_fields(disposal),
                user=user, company=disposal.company,
            )
    except DatabaseError:
        logger.exception("Failed to approve disposal %s", disposal.pk)
        return result(False, 'Failed to approve asset disposal')

    logger.info("Disposal %s approved by %s", disposal.disposal_number, user.username)
    return result(True, 'Asset disposal approved successfully', disposal=disposal)


def get_asset_disposals(company, search=None, reason=None, approved=None):
    disposals = AssetDisposal.objects.filter(company=company, is_deleted=False).select_related(
        'asset', 'created_by', 'approved_by'
    )
    if reason:
        disposals = disposals.filter(reason=reason)
    if approved is True:
        disposals = disposals.filter(approved_at__isnull=False)
    elif approved is False:
        disposals = disposals.filter(approved_at__isnull=True)
    if search:
        disposals = disposals.filter(
            Q(disposal_number__icontains=search) |
            Q(asset__asset_tag__icontains=search) |
            Q(asset__name__icontains=search) |
            Q(recipient_name__icontains=search)
        )
    return disposals.order_by('-disposal_date', '-created_at')


def get_disposal_summary(company):
    disposals = AssetDisposal.objects.filter(company=company, is_deleted=False)
    totals = disposals.aggregate(
        total_disposals=Count('id'),
        total_disposal_value=Sum('disposal_value'),
        total_disposal_cost=Sum('disposal_cost'),
        total_gain_loss=Sum('gain_loss'),
    )
    total_value = totals['total_disposal_value'] or ZERO
    total_cost = totals['total_disposal_cost'] or ZERO

    by_reason = [
        {'reason': row['reason'], 'count': row['count'], 'total_value': row['total_value'] or ZERO}
        for row in disposals.values('reason').annotate(
            count=Count('id'), total_value=Sum('disposal_value')
        ).order_by('reason')
    ]

    return {
        'total_disposals': totals['total_disposals'],
        'total_disposal_value': total_value,
        'total_disposal_cost': total_cost,
        'net_disposal_value': total_value - total_cost,
        'total_gain_loss': totals['total_gain_loss'] or ZERO,
        'pending_approvals': disposals.filter(approved_at__isnull=True).count(),
        'disposals_by_reason': by_reason,
    }


def get_assets_eligible_for_disposal(company):
    deployed = AssetDeployment.objects.filter(status=AssetDeployment.DEPLOYED, returned_date__isnull=True)
    return Asset.objects.filter(
        company=company, is_deleted=False, disposal__isnull=True
    ).exclude(
        status=Asset.DISPOSED
    ).exclude(
        pk__in=deployed.values('asset_id')
    ).select_related('category').order_by('asset_tag')


def create_bulk_disposals(company, asset_ids, data, user=None, request=None):
    """
    Dispose several assets with the same reason and method.

    The whole request is refused when any asset is deployed or not eligible;
    otherwise each asset is disposed in its own savepoint.
    """
    asset_ids = unique_ids(asset_ids)
    assets = list(
        Asset.objects.filter(
            pk__in=asset_ids, company=company, is_deleted=False, disposal__isnull=True
        ).exclude(status=Asset.DISPOSED)
    )

    deployed = [asset for asset in assets if active_deployments(asset).exists()]
    if deployed:
        return result(
            False,
            'Some assets have active deployments and cannot be disposed',
            processed_count=0,
            failed_count=len(asset_ids),
            processed_asset_ids=[],
            errors=[
                {'asset_id': asset.pk, 'asset_tag': asset.asset_tag, 'message': 'Asset has active deployments'}
                for asset in deployed
            ],
        )

    found = {asset.pk for asset in assets}
    missing = [pk for pk in asset_ids if pk not in found]
    if missing:
        return result(
            False,
            'Some assets are not eligible for disposal',
            processed_count=0,
            failed_count=len(asset_ids),
            processed_asset_ids=[],
            errors=[{'asset_id': pk, 'asset_tag': None, 'message': 'Asset not eligible for disposal'} for pk in missing],
        )

    processed = []
    errors = []
    with transaction.atomic():
        for asset in assets:
            try:
                with transaction.atomic():
                    _dispose(
                        asset, company, data, user, request,
                        remarks=f"Bulk disposal - {data.get('reason')}",
                        bulk=True,
                    )
            except DatabaseError:
                logger.exception("Failed to dispose asset %s", asset.asset_tag)
                errors.append({'asset_id': asset.pk, 'asset_tag': asset.asset_tag, 'message': 'Failed to dispose asset'})
                continue
            processed.append(asset.pk)

    failed = len(asset_ids) - len(processed)
    success = bool(processed) and failed == 0
    logger.info("Bulk disposal in %s: %s disposed, %s failed", company.code, len(processed), failed)
    return result(
        success,
        f'Successfully disposed {len(processed)} assets' if success
        else f'Disposed {len(processed)} assets, {failed} failed',
        processed_count=len(processed),
        failed_count=failed,
        processed_asset_ids=processed,
        errors=errors,
    )
