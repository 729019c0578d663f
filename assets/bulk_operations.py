"""
Operations over a selection of assets.

Every function returns the bulk result: ``processed_count``,
``failed_count``, ``processed_asset_ids`` and ``errors``, with ``success``
only when everything went through.
"""
import logging

from django.db import DatabaseError, transaction

from core.audit_utils import get_model_fields, log_update
from core.utils import result, unique_ids
from .deployments import return_asset
from .models import Asset, AssetDeployment
from .services import delete_asset, record_history

logger = logging.getLogger(__name__)

BULK_UPDATE_FIELDS = [
    'status', 'location', 'category', 'notes', 'condition', 'depreciation_method',
    'useful_life_years', 'useful_life_months', 'salvage_value', 'depreciation_rate',
]


def bulk_result(verb, total, processed, errors):
    failed = total - len(processed)
    success = bool(processed) and failed == 0
    if success:
        message = f'Successfully {verb} {len(processed)} assets'
    else:
        message = f'{verb.capitalize()} {len(processed)} assets, {failed} failed'
    for error in errors:
        logger.warning("Bulk %s failed for %s: %s", verb, error.get('asset_tag') or error['asset_id'], error['message'])
    return result(
        success, message,
        processed_count=len(processed),
        failed_count=failed,
        processed_asset_ids=processed,
        errors=errors,
    )


def _error(asset_id, message, asset_tag=None):
    return {'asset_id': asset_id, 'asset_tag': asset_tag, 'message': message}


def bulk_update_assets(company, asset_ids, updates, user=None, request=None):
    """
    Apply the same field values to every selected asset. Only keys in
    BULK_UPDATE_FIELDS with a value are applied.
    """
    asset_ids = unique_ids(asset_ids)
    changes = {key: value for key, value in updates.items()
               if key in BULK_UPDATE_FIELDS and value not in (None, '')}
    if 'useful_life_years' in changes and 'useful_life_months' not in changes:
        changes['useful_life_months'] = changes['useful_life_years'] * 12
    if not changes:
        return result(False, 'No changes provided', processed_count=0, failed_count=len(asset_ids),
                      processed_asset_ids=[], errors=[])

    assets = {asset.pk: asset for asset in Asset.objects.filter(pk__in=asset_ids, company=company, is_deleted=False)}
    processed = []
    errors = []

    for asset_id in asset_ids:
        asset = assets.get(asset_id)
        if asset is None:
            errors.append(_error(asset_id, 'Asset not found or not accessible'))
            continue

        old_values = get_model_fields(asset)
        previous_status = asset.status
        try:
            with transaction.atomic():
                for field, value in changes.items():
                    setattr(asset, field, value)
                asset.save()
                record_history(
                    asset, 'UPDATED', user=user,
                    previous_status=previous_status,
                    new_status=asset.status,
                    remarks=f"Bulk update: {', '.join(sorted(changes))}",
                    metadata={'bulk_operation': True, 'fields': sorted(changes)},
                )
                log_update(request, asset, old_values=old_values, user=user,
                           metadata={'bulk_operation': True})
        except DatabaseError:
            logger.exception("Bulk update failed for asset %s", asset.pk)
            errors.append(_error(asset.pk, 'Failed to update asset', asset.asset_tag))
            continue
        processed.append(asset.pk)

    return bulk_result('updated', len(asset_ids), processed, errors)


def bulk_return_assets(company, deployment_ids, data=None, user=None, request=None):
    """Return several deployed assets at once"""
    deployment_ids = unique_ids(deployment_ids)
    data = data or {}
    deployments = list(
        AssetDeployment.objects.filter(
            pk__in=deployment_ids, company=company, status=AssetDeployment.DEPLOYED
        ).select_related('asset', 'employee')
    )
    if len(deployments) != len(deployment_ids):
        return result(
            False,
            'Some deployments are not found or not returnable',
            processed_count=0,
            failed_count=len(deployment_ids),
            processed_asset_ids=[],
            errors=[_error(None, 'Invalid deployment IDs')],
        )

    processed = []
    errors = []
    for deployment in deployments:
        outcome = return_asset(deployment, data, user=user, request=request)
        if outcome['success']:
            processed.append(deployment.asset_id)
        else:
            errors.append(_error(deployment.asset_id, outcome['message'], deployment.asset.asset_tag))

    return bulk_result('returned', len(deployment_ids), processed, errors)


def bulk_delete_assets(company, asset_ids, user=None, request=None):
    """Soft delete the selected assets, skipping any that are deployed"""
    asset_ids = unique_ids(asset_ids)
    assets = {asset.pk: asset for asset in Asset.objects.filter(pk__in=asset_ids, company=company, is_deleted=False)}
    processed = []
    errors = []

    for asset_id in asset_ids:
        asset = assets.get(asset_id)
        if asset is None:
            errors.append(_error(asset_id, 'Asset not found or not accessible'))
            continue
        outcome = delete_asset(asset, user=user, request=request)
        if outcome['success']:
            processed.append(asset.pk)
        else:
            errors.append(_error(asset.pk, outcome['message'], asset.asset_tag))

    return bulk_result('deleted', len(asset_ids), processed, errors)
