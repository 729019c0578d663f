"""
Label scanning and physical inventory verification.

The QR label printed for every asset is the scan code. A scanned value can be
the item code, the label UUID or the full label URL.
"""
import logging
import re
import uuid

from django.db import DatabaseError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from core.audit_utils import get_model_fields, log_create, log_update
from core.utils import result
from .models import Asset, AssetDeployment, AssetScanLog, InventoryVerification, VerificationItem

logger = logging.getLogger(__name__)

QUICK_LOOKUP_LIMIT = 50

UUID_PATTERN = re.compile(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', re.IGNORECASE)


def _qr_uuid(value):
    match = UUID_PATTERN.search(value)
    if match is None:
        return None
    try:
        return uuid.UUID(match.group(0))
    except ValueError:
        return None


def find_asset_by_code(company, value):
    """Asset of ``company`` matching an item code, label UUID or label URL"""
    value = (value or '').strip()
    if not value:
        return None

    assets = Asset.objects.filter(company=company, is_deleted=False).select_related(
        'category', 'location', 'assigned_to'
    )
    asset = assets.filter(asset_tag=value).first()
    if asset is None:
        qr_code = _qr_uuid(value)
        if qr_code is not None:
            asset = assets.filter(qr_code=qr_code).first()
    return asset


def current_assignee(asset):
    deployment = AssetDeployment.objects.filter(
        asset=asset, status=AssetDeployment.DEPLOYED, returned_date__isnull=True, is_deleted=False
    ).select_related('employee').order_by('-deployed_date').first()
    if deployment is not None:
        return deployment.employee
    return asset.assigned_to


def asset_summary(asset):
    assignee = current_assignee(asset)
    return {
        'id': asset.id,
        'asset_tag': asset.asset_tag,
        'name': asset.name,
        'serial_number': asset.serial_number,
        'status': asset.status,
        'status_display': asset.get_status_display(),
        'condition': asset.condition,
        'category': asset.category.name if asset.category else None,
        'location': asset.location.name if asset.location else None,
        'assigned_to': assignee.full_name if assignee else None,
        'book_value': str(asset.book_value),
    }


def scan_asset(company, value, user=None, verification=None):
    """
    Resolve a scanned label and log the scan, found or not.
    """
    value = (value or '').strip()
    if not value:
        return result(False, 'No code provided')

    asset = find_asset_by_code(company, value)
    AssetScanLog.objects.create(
        company=company,
        asset=asset,
        verification=verification,
        scanned_value=value[:500],
        found=asset is not None,
        scanned_by=user if user is not None and user.is_authenticated else None,
    )

    if asset is None:
        logger.info("Scan of %r in %s matched no asset", value, company.code)
        return result(False, 'Asset not found')
    return result(True, 'Asset found', asset=asset_summary(asset), asset_id=asset.pk)


def quick_asset_lookup(company, query, category=None, status=None, location=None, limit=QUICK_LOOKUP_LIMIT):
    """Assets whose code, name or serial number contains ``query``"""
    query = (query or '').strip()
    if not query:
        return Asset.objects.none()
    assets = Asset.objects.filter(company=company, is_deleted=False).filter(
        Q(asset_tag__icontains=query) | Q(name__icontains=query) | Q(serial_number__icontains=query)
    )
    if category is not None:
        assets = assets.filter(category=category)
    if status:
        assets = assets.filter(status=status)
    if location is not None:
        assets = assets.filter(location=location)
    return assets.select_related('category', 'location').order_by('asset_tag')[:limit]


# --------------------------------------------------------------------------
# Inventory verification
# --------------------------------------------------------------------------

def get_inventory_verifications(company, status=None):
    verifications = InventoryVerification.objects.filter(company=company, is_deleted=False).select_related(
        'assigned_to', 'created_by'
    )
    if status:
        verifications = verifications.filter(status=status)
    return verifications


def _assets_in_scope(company, locations=None, categories=None):
    assets = Asset.objects.filter(company=company, is_deleted=False).exclude(status=Asset.DISPOSED)
    if locations:
        assets = assets.filter(location__in=locations)
    if categories:
        assets = assets.filter(category__in=categories)
    return assets.select_related('location', 'assigned_to')


def _deployed_to(assets):
    """Map of asset id to the employee id currently holding it"""
    rows = AssetDeployment.objects.filter(
        asset__in=assets, status=AssetDeployment.DEPLOYED, returned_date__isnull=True, is_deleted=False
    ).order_by('deployed_date').values_list('asset_id', 'employee_id')
    return dict(rows)


def create_inventory_verification(company, data, user=None, request=None):
    """
    Open a verification over the assets of the chosen locations and
    categories, snapshotting where each asset is expected to be.
    """
    name = (data.get('name') or '').strip()
    if not name:
        return result(False, 'Verification name is required')

    locations = list(data.get('locations') or [])
    categories = list(data.get('categories') or [])
    assets = list(_assets_in_scope(company, locations, categories))
    if not assets:
        return result(False, 'No assets match the selected locations and categories')

    start_date = data.get('start_date') or timezone.localdate()
    status = InventoryVerification.IN_PROGRESS if start_date <= timezone.localdate() else InventoryVerification.PLANNED
    holders = _deployed_to(assets)

    try:
        with transaction.atomic():
            verification = InventoryVerification.objects.create(
                company=company,
                name=name,
                description=data.get('description') or '',
                start_date=start_date,
                status=status,
                assigned_to=data.get('assigned_to'),
                created_by=user if user is not None and user.is_authenticated else None,
                total_assets=len(assets),
            )
            verification.locations.set(locations)
            verification.categories.set(categories)
            VerificationItem.objects.bulk_create([
                VerificationItem(
                    verification=verification,
                    asset=asset,
                    expected_location=asset.location,
                    expected_assignee_id=holders.get(asset.pk, asset.assigned_to_id),
                )
                for asset in assets
            ])
            log_create(request, verification, user=user, company=company,
                       metadata={'total_assets': len(assets)})
    except DatabaseError:
        logger.exception("Failed to create inventory verification for %s", company.code)
        return result(False, 'Failed to create inventory verification')

    logger.info("Inventory verification %s opened with %d assets", verification.pk, len(assets))
    return result(True, f'Verification created with {len(assets)} assets', verification=verification)


def recount_verification(verification):
    """Refresh the progress counters from the items"""
    counts = {
        row['status']: row['count']
        for row in verification.items.order_by().values('status').annotate(count=Count('id'))
    }
    verification.total_assets = sum(counts.values())
    verification.verified_assets = counts.get(VerificationItem.VERIFIED, 0)
    verification.discrepancies = counts.get(VerificationItem.DISCREPANCY, 0)
    verification.scanned_assets = verification.verified_assets + verification.discrepancies
    verification.save(update_fields=[
        'total_assets', 'scanned_assets', 'verified_assets', 'discrepancies', 'status', 'updated_at',
    ])
    return verification


def _closed():
    return result(False, 'Verification is already closed')


def update_verification_item(item, data, user=None, request=None):
    """
    Record what was found for one asset of a verification.

    ``data`` carries ``status`` and optionally ``actual_location``,
    ``actual_assignee`` and ``notes``.
    """
    verification = item.verification
    if verification.is_closed:
        return _closed()

    status = data.get('status')
    if status not in dict(VerificationItem.STATUS_CHOICES) or status == VerificationItem.PENDING:
        return result(False, 'Invalid verification status')

    old_values = get_model_fields(item)
    try:
        with transaction.atomic():
            item.status = status
            item.actual_location = data.get('actual_location')
            item.actual_assignee = data.get('actual_assignee')
            if data.get('notes') is not None:
                item.notes = data['notes']
            item.scanned_at = timezone.now()
            item.scanned_by = user if user is not None and user.is_authenticated else None
            item.save()

            if verification.status == InventoryVerification.PLANNED:
                verification.status = InventoryVerification.IN_PROGRESS
            recount_verification(verification)
            log_update(request, item, old_values=old_values, user=user, company=verification.company)
    except DatabaseError:
        logger.exception("Failed to update verification item %s", item.pk)
        return result(False, 'Failed to update verification item')

    return result(True, f'{item.asset.asset_tag} marked {item.get_status_display().lower()}', item=item)


def record_verification_scan(verification, value, user=None, location=None, request=None):
    """
    Scan a label during a verification. The asset is verified when found
    where it was expected, and flagged as a discrepancy otherwise.
    """
    if verification.is_closed:
        return _closed()

    outcome = scan_asset(verification.company, value, user=user, verification=verification)
    if not outcome['success']:
        return outcome

    item = verification.items.select_related('asset', 'expected_location').filter(
        asset_id=outcome['asset_id']
    ).first()
    if item is None:
        return result(False, 'Asset is not part of this verification', asset=outcome['asset'])

    actual_location = location if location is not None else item.asset.location
    moved = actual_location is not None and actual_location != item.expected_location
    status = VerificationItem.DISCREPANCY if moved else VerificationItem.VERIFIED

    notes = item.notes
    if moved:
        expected = item.expected_location.name if item.expected_location else 'no location'
        notes = f'Found at {actual_location.name}, expected {expected}'

    update = update_verification_item(item, {
        'status': status,
        'actual_location': actual_location,
        'actual_assignee': current_assignee(item.asset),
        'notes': notes,
    }, user=user, request=request)
    update['asset'] = outcome['asset']
    return update


def complete_inventory_verification(verification, user=None, request=None):
    """Close a verification; assets never accounted for become MISSING"""
    if verification.is_closed:
        return _closed()

    old_values = get_model_fields(verification)
    try:
        with transaction.atomic():
            missing = verification.items.filter(status=VerificationItem.PENDING).update(
                status=VerificationItem.MISSING, updated_at=timezone.now()
            )
            verification.status = InventoryVerification.COMPLETED
            verification.end_date = timezone.localdate()
            verification.completed_at = timezone.now()
            verification.save(update_fields=['status', 'end_date', 'completed_at', 'updated_at'])
            recount_verification(verification)
            log_update(request, verification, old_values=old_values, user=user,
                       metadata={'missing': missing})
    except DatabaseError:
        logger.exception("Failed to complete inventory verification %s", verification.pk)
        return result(False, 'Failed to complete verification')

    logger.info("Inventory verification %s completed, %d assets missing", verification.pk, missing)
    return result(True, f'Verification completed. {missing} assets marked missing', missing=missing)


def cancel_inventory_verification(verification, user=None, request=None):
    if verification.is_closed:
        return _closed()

    old_values = get_model_fields(verification)
    try:
        with transaction.atomic():
            verification.status = InventoryVerification.CANCELLED
            verification.end_date = timezone.localdate()
            verification.save(update_fields=['status', 'end_date', 'updated_at'])
            log_update(request, verification, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to cancel inventory verification %s", verification.pk)
        return result(False, 'Failed to cancel verification')

    return result(True, 'Verification cancelled')
