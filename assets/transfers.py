"""
Transfers of assets between business units.

PENDING_APPROVAL -> APPROVED -> IN_TRANSIT -> COMPLETED, or REJECTED while
pending. The asset changes company only when the transfer completes.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from core.audit_utils import get_model_fields, log_action, log_create, log_update
from core.models import Company
from core.utils import result
from .models import Asset, AssetCategory, AssetTransfer
from .services import record_history

logger = logging.getLogger(__name__)

TRANSFER_FIELDS = [
    'to_location', 'transfer_date', 'reason', 'transfer_method', 'tracking_number',
    'estimated_arrival', 'transfer_cost', 'insurance_value', 'transfer_notes',
]


def _append_notes(existing, label, notes):
    if not notes:
        return existing
    return f"{existing or ''}\n\n{label}: {notes}".strip()


def _validate_transfer(asset, from_company, to_company):
    """First failing guard message, or None"""
    if asset is None or asset.is_deleted or asset.company_id != from_company.pk:
        return 'Asset not found or not accessible'
    if asset.status == Asset.DISPOSED:
        return 'Cannot transfer disposed asset'
    if asset.status == Asset.DEPLOYED or asset.has_active_deployment():
        return 'Return the asset before transferring it'
    if AssetTransfer.objects.filter(asset=asset, status__in=AssetTransfer.OPEN_STATUSES, is_deleted=False).exists():
        return 'Asset already has a pending or active transfer'
    if to_company is None or not from_company.is_active or not to_company.is_active:
        return 'Invalid business unit(s)'
    if from_company.pk == to_company.pk:
        return 'Cannot transfer asset to the same business unit'
    return None


def _category_in(company, category):
    """The category with the same code in ``company``, copied over when it has none"""
    match = AssetCategory.objects.filter(company=company, code=category.code, is_deleted=False).first()
    if match is None:
        match = AssetCategory.objects.create(
            company=company, code=category.code, name=category.name, description=category.description,
        )
        logger.info("Category %s copied to %s", category.code, company.code)
    return match


def _create(asset, from_company, to_company, data, user, request):
    transfer = AssetTransfer(
        asset=asset,
        from_company=from_company,
        to_company=to_company,
        from_location=asset.location,
        condition_before=asset.condition,
        requested_by=user if user is not None and user.is_authenticated else None,
    )
    for field in TRANSFER_FIELDS:
        if data.get(field) is not None:
            setattr(transfer, field, data[field])
    transfer.save()

    record_history(
        asset, 'TRANSFERRED', user=user,
        from_location=transfer.from_location,
        to_location=transfer.to_location,
        remarks=f'Transfer requested to {to_company.name}: {transfer.reason}',
        metadata={
            'transfer_id': transfer.pk,
            'transfer_number': transfer.transfer_number,
            'to_company': to_company.code,
            'stage': 'REQUESTED',
        },
    )
    log_create(request, transfer, user=user, company=from_company)
    return transfer


def create_asset_transfer(asset, from_company, to_company, data=None, user=None, request=None):
    data = data or {}
    error = _validate_transfer(asset, from_company, to_company)
    if error:
        logger.warning("Transfer rejected for %s: %s", getattr(asset, 'asset_tag', None), error)
        return result(False, error)

    try:
        with transaction.atomic():
            transfer = _create(asset, from_company, to_company, data, user, request)
    except DatabaseError:
        logger.exception("Failed to create transfer for %s", asset.asset_tag)
        return result(False, 'Failed to create asset transfer')

    logger.info("Transfer %s requested for %s to %s", transfer.transfer_number, asset.asset_tag, to_company.code)
    return result(True, 'Asset transfer request created successfully', transfer=transfer)


def create_bulk_transfers(assets, from_company, to_company, data=None, user=None, request=None):
    """
    Request a transfer for each asset. Assets that fail a guard are reported
    and the rest go ahead.
    """
    data = data or {}
    processed = []
    errors = []

    for asset in assets:
        error = _validate_transfer(asset, from_company, to_company)
        if error is None:
            try:
                with transaction.atomic():
                    _create(asset, from_company, to_company, data, user, request)
            except DatabaseError:
                logger.exception("Failed to create transfer for %s", asset.asset_tag)
                error = 'Failed to create asset transfer'

        if error:
            logger.warning("Bulk transfer skipped %s: %s", asset.asset_tag, error)
            errors.append({'asset_id': asset.pk, 'asset_tag': asset.asset_tag, 'message': error})
        else:
            processed.append(asset.pk)

    return result(
        bool(processed) and not errors,
        f'Created {len(processed)} transfer requests' + (f', {len(errors)} failed' if errors else ''),
        processed_count=len(processed),
        failed_count=len(errors),
        processed_asset_ids=processed,
        errors=errors,
    )


def approve_asset_transfer(transfer, user, notes='', request=None):
    if transfer.status != AssetTransfer.PENDING_APPROVAL:
        return result(False, 'Transfer is not pending approval')

    old_values = get_model_fields(transfer)
    try:
        with transaction.atomic():
            transfer.status = AssetTransfer.APPROVED
            transfer.approved_by = user
            transfer.approved_at = timezone.now()
            transfer.transfer_notes = _append_notes(transfer.transfer_notes, 'Approval Notes', notes)
            transfer.save()

            record_history(
                transfer.asset, 'STATUS_CHANGED', user=user,
                remarks=f'Transfer approved by {user.get_full_name() or user.username}',
                metadata={'transfer_id': transfer.pk, 'transfer_number': transfer.transfer_number},
            )
            log_action(
                request, transfer, 'APPROVE',
                description=f'Approved transfer {transfer.transfer_number}',
                old_values=old_values, new_values=get_model_fields(transfer),
                user=user, company=transfer.from_company,
            )
    except DatabaseError:
        logger.exception("Failed to approve transfer %s", transfer.pk)
        return result(False, 'Failed to approve asset transfer')

    logger.info("Transfer %s approved by %s", transfer.transfer_number, user.username)
    return result(True, 'Asset transfer approved successfully', transfer=transfer)


def reject_asset_transfer(transfer, user, reason, request=None):
    if transfer.status != AssetTransfer.PENDING_APPROVAL:
        return result(False, 'Transfer is not pending approval')

    old_values = get_model_fields(transfer)
    try:
        with transaction.atomic():
            transfer.status = AssetTransfer.REJECTED
            transfer.rejected_by = user
            transfer.rejected_at = timezone.now()
            transfer.rejection_reason = reason
            transfer.save()

            record_history(
                transfer.asset, 'STATUS_CHANGED', user=user,
                remarks=f'Transfer rejected: {reason}',
                metadata={'transfer_id': transfer.pk, 'transfer_number': transfer.transfer_number},
            )
            log_action(
                request, transfer, 'REJECT',
                description=f'Rejected transfer {transfer.transfer_number}: {reason}',
                old_values=old_values, new_values=get_model_fields(transfer),
                user=user, company=transfer.from_company,
            )
    except DatabaseError:
        logger.exception("Failed to reject transfer %s", transfer.pk)
        return result(False, 'Failed to reject asset transfer')

    logger.info("Transfer %s rejected by %s", transfer.transfer_number, user.username)
    return result(True, 'Asset transfer rejected successfully', transfer=transfer)


def ship_asset_transfer(transfer, user, tracking_number='', request=None):
    if transfer.status != AssetTransfer.APPROVED:
        return result(False, 'Transfer is not approved')

    old_values = get_model_fields(transfer)
    try:
        with transaction.atomic():
            transfer.status = AssetTransfer.IN_TRANSIT
            transfer.shipped_at = timezone.now()
            if tracking_number:
                transfer.tracking_number = tracking_number
            transfer.save()
            log_update(request, transfer, old_values=old_values, user=user, company=transfer.from_company)
    except DatabaseError:
        logger.exception("Failed to ship transfer %s", transfer.pk)
        return result(False, 'Failed to ship asset transfer')

    logger.info("Transfer %s shipped", transfer.transfer_number)
    return result(True, 'Asset transfer marked as in transit', transfer=transfer)


def complete_asset_transfer(transfer, user, condition_after=None, received_notes='', request=None):
    if transfer.status != AssetTransfer.IN_TRANSIT:
        return result(False, 'Transfer is not in transit')

    asset = transfer.asset
    if asset.has_active_deployment():
        return result(False, 'Return the asset before completing the transfer')
    old_values = get_model_fields(transfer)

    try:
        with transaction.atomic():
            transfer.status = AssetTransfer.COMPLETED
            transfer.completed_by = user
            transfer.completed_at = timezone.now()
            transfer.condition_after = condition_after or asset.condition
            transfer.transfer_notes = _append_notes(transfer.transfer_notes, 'Received Notes', received_notes)
            transfer.save()

            asset.company = transfer.to_company
            asset.category = _category_in(transfer.to_company, asset.category)
            asset.location = transfer.to_location
            asset.department = None
            asset.assigned_to = None
            asset.condition = transfer.condition_after
            asset.save()

            record_history(
                asset, 'TRANSFERRED', user=user,
                from_location=transfer.from_location,
                to_location=transfer.to_location,
                remarks='Transfer completed - Asset received',
                metadata={
                    'transfer_id': transfer.pk,
                    'transfer_number': transfer.transfer_number,
                    'condition_after': transfer.condition_after,
                    'stage': 'COMPLETED',
                },
            )
            log_update(request, transfer, old_values=old_values, user=user, company=transfer.to_company)
    except DatabaseError:
        logger.exception("Failed to complete transfer %s", transfer.pk)
        return result(False, 'Failed to complete asset transfer')

    logger.info("Transfer %s completed, %s now in %s", transfer.transfer_number, asset.asset_tag, transfer.to_company.code)
    return result(True, 'Asset transfer completed successfully', transfer=transfer)


def get_asset_transfers(company, search=None, status=None):
    """Transfers leaving or arriving at ``company``"""
    transfers = AssetTransfer.objects.filter(
        Q(from_company=company) | Q(to_company=company), is_deleted=False
    ).select_related('asset', 'from_company', 'to_company', 'from_location', 'to_location', 'requested_by')

    if status:
        transfers = transfers.filter(status=status)
    if search:
        transfers = transfers.filter(
            Q(transfer_number__icontains=search) |
            Q(asset__asset_tag__icontains=search) |
            Q(asset__name__icontains=search) |
            Q(reason__icontains=search)
        )
    return transfers.order_by('-created_at')


def get_assets_eligible_for_transfer(company):
    open_transfers = AssetTransfer.objects.filter(status__in=AssetTransfer.OPEN_STATUSES, is_deleted=False)
    return Asset.objects.filter(company=company, is_deleted=False).exclude(
        status__in=[Asset.DISPOSED, Asset.DEPLOYED]
    ).exclude(
        pk__in=open_transfers.values('asset_id')
    ).select_related('category', 'location').order_by('asset_tag')


def get_companies_for_transfer(company):
    return Company.objects.filter(is_active=True, is_deleted=False).exclude(pk=company.pk).order_by('name')
