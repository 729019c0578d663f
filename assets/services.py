"""
Asset and category records.

Writes return ``core.utils.result`` dictionaries and are audited.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import Q

from core.audit_utils import get_model_fields, log_create, log_delete, log_update
from core.utils import result
from .models import Asset, AssetCategory, AssetDeployment, AssetHistory

logger = logging.getLogger(__name__)

ASSET_FIELDS = [
    'asset_tag', 'category', 'name', 'description', 'brand', 'model', 'serial_number',
    'status', 'condition', 'location', 'department', 'assigned_to',
    'purchase_date', 'purchase_price', 'warranty_end_date', 'notes',
    'depreciation_method', 'useful_life_years', 'useful_life_months', 'salvage_value',
    'depreciation_rate', 'total_expected_units', 'depreciation_start_date',
]


def record_history(asset, action_type, user=None, remarks=None, **fields):
    """Append an entry to the asset timeline"""
    return AssetHistory.objects.create(
        asset=asset,
        company=asset.company,
        action_type=action_type,
        performed_by=user if user is not None and user.is_authenticated else None,
        remarks=remarks,
        **fields,
    )


def active_deployments(asset):
    return AssetDeployment.objects.filter(
        asset=asset, status=AssetDeployment.DEPLOYED, returned_date__isnull=True
    )


# --------------------------------------------------------------------------
# Assets
# --------------------------------------------------------------------------

def get_assets(company, search=None, category=None, status=None, min_price=None, max_price=None):
    assets = Asset.objects.filter(company=company, is_deleted=False).select_related(
        'category', 'location', 'department', 'assigned_to'
    )

    if search:
        assets = assets.filter(
            Q(asset_tag__icontains=search) |
            Q(name__icontains=search) |
            Q(serial_number__icontains=search) |
            Q(brand__icontains=search)
        )
    if category:
        assets = assets.filter(category_id=category)
    if status:
        assets = assets.filter(status=status)
    if min_price not in (None, ''):
        assets = assets.filter(purchase_price__gte=min_price)
    if max_price not in (None, ''):
        assets = assets.filter(purchase_price__lte=max_price)

    return assets.order_by('-created_at')


def _tag_taken(company, asset_tag, exclude_pk=None):
    assets = Asset.objects.filter(company=company, asset_tag=asset_tag, is_deleted=False)
    if exclude_pk:
        assets = assets.exclude(pk=exclude_pk)
    return assets.exists()


def create_asset(company, data, user=None, request=None):
    if _tag_taken(company, data.get('asset_tag')):
        logger.warning("Asset create rejected: tag %s exists in %s", data.get('asset_tag'), company.code)
        return result(False, 'Asset with this item code already exists')

    try:
        with transaction.atomic():
            asset = Asset(company=company)
            for field in ASSET_FIELDS:
                if field in data and data[field] is not None:
                    setattr(asset, field, data[field])
            if user is not None and user.is_authenticated:
                asset.created_by = user
            asset.save()

            record_history(
                asset, 'CREATED', user=user,
                new_status=asset.status,
                new_book_value=asset.current_book_value,
                remarks='Asset created',
            )
            log_create(request, asset, user=user, company=company)
    except DatabaseError:
        logger.exception("Failed to create asset %s", data.get('asset_tag'))
        return result(False, 'Failed to create asset')

    logger.info("Asset %s created in %s", asset.asset_tag, company.code)
    return result(True, 'Asset created successfully', asset=asset)


def update_asset(asset, data, user=None, request=None):
    if asset.is_deleted:
        return result(False, 'Asset not found')

    new_tag = data.get('asset_tag')
    if new_tag and new_tag != asset.asset_tag and _tag_taken(asset.company, new_tag, exclude_pk=asset.pk):
        return result(False, 'Asset with this item code already exists')

    old_values = get_model_fields(asset)
    previous_status = asset.status

    try:
        with transaction.atomic():
            for field in ASSET_FIELDS:
                if field in data:
                    setattr(asset, field, data[field])
            if asset.useful_life_years and 'useful_life_months' not in data:
                asset.useful_life_months = asset.useful_life_years * 12
            asset.save()

            if asset.status != previous_status:
                record_history(
                    asset, 'STATUS_CHANGED', user=user,
                    previous_status=previous_status, new_status=asset.status,
                    remarks=f'Status changed from {previous_status} to {asset.status}',
                )
            log_update(request, asset, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to update asset %s", asset.pk)
        return result(False, 'Failed to update asset')

    return result(True, 'Asset updated successfully', asset=asset)


def delete_asset(asset, user=None, request=None):
    if active_deployments(asset).exists():
        logger.warning("Refusing to delete asset %s with active deployments", asset.asset_tag)
        return result(False, 'Cannot delete asset with active deployments')

    try:
        with transaction.atomic():
            log_delete(request, asset, user=user)
            asset.soft_delete()
    except DatabaseError:
        logger.exception("Failed to delete asset %s", asset.pk)
        return result(False, 'Failed to delete asset')

    logger.info("Asset %s deleted", asset.asset_tag)
    return result(True, 'Asset deleted successfully')


# --------------------------------------------------------------------------
# Categories
# --------------------------------------------------------------------------

def get_categories(company, search=None):
    categories = AssetCategory.objects.filter(company=company, is_deleted=False)
    if search:
        categories = categories.filter(Q(name__icontains=search) | Q(code__icontains=search))
    return categories.order_by('name')


def _category_code_taken(company, code, exclude_pk=None):
    categories = AssetCategory.objects.filter(company=company, code=code, is_deleted=False)
    if exclude_pk:
        categories = categories.exclude(pk=exclude_pk)
    return categories.exists()


def create_category(company, data, user=None, request=None):
    if _category_code_taken(company, data.get('code')):
        return result(False, 'Category with this code already exists')

    try:
        with transaction.atomic():
            category = AssetCategory.objects.create(
                company=company,
                name=data['name'],
                code=data['code'],
                description=data.get('description'),
                parent_category=data.get('parent_category'),
            )
            log_create(request, category, user=user, company=company)
    except DatabaseError:
        logger.exception("Failed to create category %s", data.get('code'))
        return result(False, 'Failed to create category')

    return result(True, 'Category created successfully', category=category)


def update_category(category, data, user=None, request=None):
    code = data.get('code')
    if code and code != category.code and _category_code_taken(category.company, code, exclude_pk=category.pk):
        return result(False, 'Category with this code already exists')

    old_values = get_model_fields(category)
    try:
        with transaction.atomic():
            for field in ('name', 'code', 'description', 'parent_category', 'is_active'):
                if field in data:
                    setattr(category, field, data[field])
            category.save()
            log_update(request, category, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to update category %s", category.pk)
        return result(False, 'Failed to update category')

    return result(True, 'Category updated successfully', category=category)


def delete_category(category, user=None, request=None):
    if category.assets.filter(is_deleted=False).exists():
        return result(False, 'Cannot delete category with existing assets')

    try:
        with transaction.atomic():
            log_delete(request, category, user=user)
            category.soft_delete()
    except DatabaseError:
        logger.exception("Failed to delete category %s", category.pk)
        return result(False, 'Failed to delete category')

    return result(True, 'Category deleted successfully')
