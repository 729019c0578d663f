"""
Maintenance records and the upcoming maintenance schedule.

Starting work puts the asset IN_MAINTENANCE; completing the last open job
gives it back the status it had before. Both transitions are written to the
asset timeline.
"""
import logging
from datetime import timedelta

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from assets.models import Asset, AssetHistory
from assets.services import record_history
from core.audit_utils import get_model_fields, log_create, log_delete, log_update
from core.utils import result
from .models import AssetMaintenance

logger = logging.getLogger(__name__)

MAINTENANCE_FIELDS = [
    'maintenance_type', 'description', 'scheduled_date', 'start_date', 'completed_date',
    'performed_by', 'cost', 'notes', 'is_completed',
]

SCHEDULE_DAYS_AHEAD = 90


def get_maintenance_records(company, asset=None, search=None, maintenance_type=None, status=None,
                            date_from=None, date_to=None):
    """
    Maintenance records of a business unit, newest first. The date range
    applies to the scheduled date.
    """
    records = AssetMaintenance.objects.filter(
        asset__company=company, asset__is_deleted=False
    ).select_related('asset', 'asset__category')

    if asset is not None:
        records = records.filter(asset=asset)
    if maintenance_type:
        records = records.filter(maintenance_type=maintenance_type)

    if status == AssetMaintenance.COMPLETED:
        records = records.filter(is_completed=True)
    elif status == AssetMaintenance.IN_PROGRESS:
        records = records.filter(is_completed=False, start_date__isnull=False)
    elif status == AssetMaintenance.PENDING:
        records = records.filter(is_completed=False, start_date__isnull=True)

    if date_from:
        records = records.filter(scheduled_date__gte=date_from)
    if date_to:
        records = records.filter(scheduled_date__lte=date_to)

    if search:
        records = records.filter(
            Q(description__icontains=search) |
            Q(performed_by__icontains=search) |
            Q(notes__icontains=search) |
            Q(asset__asset_tag__icontains=search) |
            Q(asset__name__icontains=search)
        )
    return records.order_by('-created_at')


# Work cannot begin while the asset is with an employee or out of service
NO_WORK_STATUSES = {
    Asset.DEPLOYED: 'Return the asset before starting maintenance',
    Asset.RETIRED: 'Cannot start maintenance on a retired asset',
    Asset.DISPOSED: 'Cannot start maintenance on a disposed asset',
}


def _work_in_progress(maintenance):
    return bool(maintenance.start_date) and not maintenance.completed_date and not maintenance.is_completed


def _begin_work(asset, maintenance, user):
    """Move the asset into maintenance unless another job already did"""
    if asset.status == Asset.IN_MAINTENANCE:
        return
    previous_status = asset.status
    asset.status = Asset.IN_MAINTENANCE
    asset.save()
    record_history(
        asset, 'MAINTENANCE_START', user=user,
        previous_status=previous_status,
        new_status=Asset.IN_MAINTENANCE,
        remarks=f'Maintenance started: {maintenance.description}',
        metadata={
            'maintenance_id': maintenance.pk,
            'maintenance_type': maintenance.maintenance_type,
            'performed_by': maintenance.performed_by,
            'start_date': str(maintenance.start_date),
        },
    )


def _status_before_maintenance(asset):
    entry = (
        AssetHistory.objects.filter(asset=asset, action_type='MAINTENANCE_START')
        .exclude(previous_status__isnull=True)
        .order_by('-action_date', '-id')
        .first()
    )
    if entry is None or entry.previous_status in NO_WORK_STATUSES or entry.previous_status == Asset.IN_MAINTENANCE:
        return Asset.AVAILABLE
    return entry.previous_status


def _finish_work(asset, maintenance, user):
    """
    Give the asset back the status it had before maintenance started, once
    its last open job is done. Assets that left maintenance some other way
    are not touched.
    """
    if asset.status != Asset.IN_MAINTENANCE:
        return
    still_open = AssetMaintenance.objects.filter(
        asset=asset, is_completed=False, completed_date__isnull=True, start_date__isnull=False
    ).exclude(pk=maintenance.pk)
    if still_open.exists():
        return

    restored = _status_before_maintenance(asset)
    asset.status = restored
    asset.save()
    record_history(
        asset, 'MAINTENANCE_END', user=user,
        previous_status=Asset.IN_MAINTENANCE,
        new_status=restored,
        remarks=f'Maintenance completed: {maintenance.description}',
        metadata={
            'maintenance_id': maintenance.pk,
            'completed_date': str(maintenance.completed_date),
            'cost': str(maintenance.cost) if maintenance.cost is not None else None,
        },
    )


def create_maintenance_record(asset, data, user=None, request=None):
    if asset is None or asset.is_deleted:
        return result(False, 'Asset not found')
    if asset.status == Asset.DISPOSED:
        return result(False, 'Cannot schedule maintenance for a disposed asset')

    maintenance = AssetMaintenance(asset=asset)
    for field in MAINTENANCE_FIELDS:
        if data.get(field) is not None:
            setattr(maintenance, field, data[field])

    starts_work = _work_in_progress(maintenance)
    if starts_work and asset.status in NO_WORK_STATUSES:
        return result(False, NO_WORK_STATUSES[asset.status])

    try:
        with transaction.atomic():
            maintenance.save()
            if starts_work:
                _begin_work(asset, maintenance, user)
            log_create(request, maintenance, user=user, company=asset.company)
    except DatabaseError:
        logger.exception("Failed to create maintenance record for %s", asset.asset_tag)
        return result(False, 'Failed to create maintenance record')

    logger.info("Maintenance %s recorded for %s", maintenance.pk, asset.asset_tag)
    return result(True, 'Maintenance record created successfully', maintenance=maintenance)


def update_maintenance_record(maintenance, data, user=None, request=None):
    was_in_progress = _work_in_progress(maintenance)
    was_completed = maintenance.is_completed
    old_values = get_model_fields(maintenance)
    asset = maintenance.asset

    for field in MAINTENANCE_FIELDS:
        if field in data:
            setattr(maintenance, field, data[field])
    if maintenance.is_completed and not maintenance.completed_date:
        maintenance.completed_date = timezone.localdate()

    starts_work = _work_in_progress(maintenance) and not was_in_progress
    if starts_work and asset.status in NO_WORK_STATUSES:
        maintenance.refresh_from_db()
        return result(False, NO_WORK_STATUSES[asset.status])
    completes = (maintenance.is_completed and not was_completed) or (
        was_in_progress and not _work_in_progress(maintenance)
    )

    try:
        with transaction.atomic():
            maintenance.save()
            if starts_work:
                _begin_work(asset, maintenance, user)
            elif completes:
                _finish_work(asset, maintenance, user)
            log_update(request, maintenance, old_values=old_values, user=user, company=asset.company)
    except DatabaseError:
        logger.exception("Failed to update maintenance record %s", maintenance.pk)
        return result(False, 'Failed to update maintenance record')

    if completes:
        logger.info("Maintenance %s completed on %s, asset now %s", maintenance.pk, asset.asset_tag, asset.status)
    return result(True, 'Maintenance record updated successfully', maintenance=maintenance)


def delete_maintenance_record(maintenance, user=None, request=None):
    """Remove the record for good; the audit entry keeps its old values"""
    company = maintenance.asset.company
    try:
        with transaction.atomic():
            log_delete(request, maintenance, user=user, company=company)
            maintenance.delete()
    except DatabaseError:
        logger.exception("Failed to delete maintenance record %s", maintenance.pk)
        return result(False, 'Failed to delete maintenance record')

    return result(True, 'Maintenance record deleted successfully')


def get_maintenance_schedule(company, date_from=None, date_to=None):
    """
    Open maintenance scheduled between ``date_from`` (default today) and
    ``date_to`` (default 90 days ahead), soonest first.
    """
    today = timezone.localdate()
    date_from = date_from or today
    date_to = date_to or today + timedelta(days=SCHEDULE_DAYS_AHEAD)

    records = AssetMaintenance.objects.filter(
        asset__company=company,
        asset__is_deleted=False,
        is_completed=False,
        scheduled_date__gte=date_from,
        scheduled_date__lte=date_to,
    ).select_related('asset').order_by('scheduled_date')

    schedule = []
    for record in records:
        days_until_due = (record.scheduled_date - today).days
        schedule.append({
            'id': record.pk,
            'maintenance': record,
            'asset_id': record.asset_id,
            'asset_tag': record.asset.asset_tag,
            'asset_name': record.asset.name,
            'maintenance_type': record.maintenance_type,
            'description': record.description,
            'scheduled_date': record.scheduled_date,
            'is_overdue': days_until_due < 0,
            'days_until_due': days_until_due,
        })
    return schedule
