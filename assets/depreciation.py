"""
Depreciation engine: posting monthly depreciation, projecting schedules and
batch processing of assets that are due.
"""
import logging

from dateutil.relativedelta import relativedelta
from django.db import DatabaseError, transaction
from django.utils import timezone

from core.audit_utils import log_custom
from core.utils import result
from .models import Asset, AssetDepreciation
from .services import record_history
from .utils import ZERO, apply_depreciation, money, monthly_depreciation_amount, to_decimal

logger = logging.getLogger(__name__)

NEARLY_DEPRECIATED_PERCENT = 80

# Retired and disposed assets no longer lose value on the books
OUT_OF_SERVICE_STATUSES = (Asset.RETIRED, Asset.DISPOSED)

CALCULATION_FAILED = 'Failed to calculate depreciation'


def _depreciable_assets(company):
    return Asset.objects.filter(
        company=company,
        is_deleted=False,
        purchase_price__isnull=False,
        useful_life_months__isnull=False,
    ).exclude(status__in=OUT_OF_SERVICE_STATUSES)


def calculate_asset_depreciation(asset, user=None, units_in_period=None):
    """
    Post one month of depreciation for ``asset``.

    Returns a result with a ``calculation`` dictionary holding the amounts
    that were applied.
    """
    if asset is None or asset.is_deleted or not asset.has_depreciation_data:
        return result(False, 'Asset not found or missing depreciation data')

    if asset.status in OUT_OF_SERVICE_STATUSES:
        return result(False, f'Cannot depreciate a {asset.get_status_display().lower()} asset')

    if asset.is_fully_depreciated:
        return result(False, 'Asset is already fully depreciated')

    book_value = asset.book_value
    salvage = to_decimal(asset.salvage_value)

    if book_value <= salvage:
        asset.is_fully_depreciated = True
        asset.status = Asset.FULLY_DEPRECIATED
        asset.next_depreciation_date = None
        asset.save(update_fields=['is_fully_depreciated', 'status', 'next_depreciation_date', 'updated_at'])
        logger.info("Asset %s reached salvage value", asset.asset_tag)
        return result(False, 'Asset has reached its salvage value')

    today = timezone.localdate()
    amount = monthly_depreciation_amount(
        asset.depreciation_method,
        asset.purchase_price,
        salvage,
        asset.useful_life_months,
        book_value,
        rate=asset.depreciation_rate,
        total_units=asset.total_expected_units,
        units_in_period=units_in_period,
        elapsed_months=asset.depreciation_records.count(),
    )
    new_book_value, actual = apply_depreciation(book_value, amount, salvage)
    accumulated = money(to_decimal(asset.accumulated_depreciation) + actual)
    fully_depreciated = new_book_value <= salvage
    period_start = asset.last_depreciation_date or asset.depreciation_start or today
    previous_status = asset.status

    try:
        with transaction.atomic():
            record = AssetDepreciation.objects.create(
                asset=asset,
                company=asset.company,
                depreciation_date=today,
                period_start_date=period_start,
                period_end_date=today,
                book_value_start=book_value,
                depreciation_amount=actual,
                book_value_end=new_book_value,
                accumulated_depreciation=accumulated,
                method=asset.depreciation_method,
                calculation_basis={
                    'original_cost': str(asset.purchase_price),
                    'salvage_value': str(salvage),
                    'useful_life_months': asset.useful_life_months,
                    'units_in_period': units_in_period,
                },
                units_start=asset.current_units if units_in_period else None,
                units_end=asset.current_units + units_in_period if units_in_period else None,
                units_in_period=units_in_period,
                calculated_by=user if user is not None and user.is_authenticated else None,
            )

            asset.current_book_value = new_book_value
            asset.accumulated_depreciation = accumulated
            asset.last_depreciation_date = today
            asset.next_depreciation_date = None if fully_depreciated else today + relativedelta(months=1)
            asset.is_fully_depreciated = fully_depreciated
            if units_in_period:
                asset.current_units += units_in_period
            if fully_depreciated:
                asset.status = Asset.FULLY_DEPRECIATED
            asset.save()

            record_history(
                asset, 'DEPRECIATION_CALCULATED', user=user,
                previous_status=previous_status,
                new_status=asset.status,
                previous_book_value=book_value,
                new_book_value=new_book_value,
                depreciation_amount=actual,
                remarks=f'Depreciation calculated: {asset.depreciation_method}',
                metadata={
                    'method': asset.depreciation_method,
                    'period_start': period_start.isoformat(),
                    'period_end': today.isoformat(),
                    'units_in_period': units_in_period,
                },
            )
    except DatabaseError:
        logger.exception("Failed to calculate depreciation for asset %s", asset.pk)
        return result(False, CALCULATION_FAILED)

    logger.info("Depreciation %s posted for %s, book value %s", actual, asset.asset_tag, new_book_value)
    calculation = {
        'asset_id': asset.pk,
        'record_id': record.pk,
        'current_book_value': book_value,
        'depreciation_amount': actual,
        'new_book_value': new_book_value,
        'accumulated_depreciation': accumulated,
        'is_fully_depreciated': fully_depreciated,
        'method': asset.depreciation_method,
        'calculation_date': today,
    }
    return result(True, 'Depreciation calculated successfully', calculation=calculation)


def get_depreciation_schedule(asset):
    """
    Month-by-month projection from purchase price down to salvage value.
    Units-of-production assets are projected with even usage.
    """
    if not asset.has_depreciation_data:
        return result(False, 'Asset not found or missing depreciation data')

    cost = to_decimal(asset.purchase_price)
    salvage = to_decimal(asset.salvage_value)
    life_months = asset.useful_life_months
    start = asset.depreciation_start or timezone.localdate()

    units_per_month = None
    if asset.depreciation_method == Asset.UNITS_OF_PRODUCTION and asset.total_expected_units:
        units_per_month = to_decimal(asset.total_expected_units) / life_months

    schedule = []
    book_value = cost
    accumulated = ZERO

    for period in range(1, life_months + 1):
        if units_per_month is not None:
            amount = money((cost - salvage) / to_decimal(asset.total_expected_units) * units_per_month)
        else:
            amount = monthly_depreciation_amount(
                asset.depreciation_method, cost, salvage, life_months, book_value,
                rate=asset.depreciation_rate,
                elapsed_months=period - 1,
            )
        book_value_end, actual = apply_depreciation(book_value, amount, salvage)
        accumulated += actual

        schedule.append({
            'period': period,
            'date': start + relativedelta(months=period - 1),
            'book_value_start': money(book_value),
            'depreciation_amount': actual,
            'book_value_end': book_value_end,
            'accumulated_depreciation': money(accumulated),
        })

        book_value = book_value_end
        if book_value <= salvage:
            break

    return result(True, 'Depreciation schedule calculated', schedule=schedule)


def get_asset_depreciation_history(asset):
    return asset.depreciation_records.select_related('calculated_by').order_by('-depreciation_date', '-id')


def get_depreciation_summary(company):
    assets = list(_depreciable_assets(company))
    today = timezone.localdate()

    return {
        'total_assets': len(assets),
        'total_original_value': money(sum((to_decimal(a.purchase_price) for a in assets), ZERO)),
        'total_current_value': money(sum((a.book_value for a in assets), ZERO)),
        'total_depreciation': money(sum((to_decimal(a.accumulated_depreciation) for a in assets), ZERO)),
        'fully_depreciated_assets': sum(1 for a in assets if a.is_fully_depreciated),
        'assets_due_for_depreciation': sum(
            1 for a in assets
            if not a.is_fully_depreciated and a.next_depreciation_date and a.next_depreciation_date <= today
        ),
    }


def get_assets_due_for_depreciation(company):
    return _depreciable_assets(company).filter(
        is_fully_depreciated=False,
        next_depreciation_date__lte=timezone.localdate(),
    ).select_related('category').order_by('next_depreciation_date')


def batch_calculate_depreciation(company, user=None, request=None):
    """
    Post depreciation for every due asset of ``company``.

    Units-of-production assets need usage figures and are skipped.
    """
    processed = 0
    skipped = 0
    total = ZERO
    errors = []

    for asset in get_assets_due_for_depreciation(company):
        if asset.depreciation_method == Asset.UNITS_OF_PRODUCTION:
            skipped += 1
            continue

        outcome = calculate_asset_depreciation(asset, user=user)
        if outcome['success']:
            processed += 1
            total += outcome['calculation']['depreciation_amount']
        else:
            logger.warning("Batch depreciation skipped %s: %s", asset.asset_tag, outcome['message'])
            errors.append({'asset_id': asset.pk, 'asset_tag': asset.asset_tag, 'message': outcome['message']})

    log_custom(
        request, 'UPDATE', f'Batch depreciation processed {processed} assets',
        model_name='AssetDepreciation', user=user, company=company,
        metadata={'processed_assets': processed, 'total_depreciation': total, 'skipped': skipped},
    )
    logger.info("Batch depreciation for %s: %s assets, total %s", company.code, processed, total)

    return result(
        True,
        f'Processed {processed} assets for depreciation',
        processed_assets=processed,
        skipped_assets=skipped,
        total_depreciation=money(total),
        errors=errors,
    )


def update_asset_units(asset, units, user=None):
    """
    Record usage for a units-of-production asset, then post depreciation for
    it. Usage is still counted when there is nothing left to depreciate.
    """
    if asset is None or asset.is_deleted:
        return result(False, 'Asset not found')

    if asset.depreciation_method != Asset.UNITS_OF_PRODUCTION:
        return result(False, 'Asset does not use units of production depreciation method')

    if asset.status in OUT_OF_SERVICE_STATUSES:
        return result(False, f'Cannot record usage on a {asset.get_status_display().lower()} asset')

    if units is None or units <= 0:
        return result(False, 'Units must be greater than zero')

    previous_units = asset.current_units
    try:
        with transaction.atomic():
            record_history(
                asset, 'UNITS_UPDATED', user=user,
                remarks=f'Units updated: +{units} (Total: {previous_units + units})',
                metadata={
                    'units_added': units,
                    'previous_units': previous_units,
                    'new_units': previous_units + units,
                },
            )

            calculation = calculate_asset_depreciation(asset, user=user, units_in_period=units)
            if not calculation['success']:
                if calculation['message'] == CALCULATION_FAILED:
                    transaction.set_rollback(True)
                    return result(False, 'Failed to update asset units')
                Asset.objects.filter(pk=asset.pk).update(current_units=previous_units + units)
                asset.current_units = previous_units + units
    except DatabaseError:
        logger.exception("Failed to update units for asset %s", asset.pk)
        return result(False, 'Failed to update asset units')

    if not calculation['success']:
        return result(True, f"Asset units updated. {calculation['message']}")
    return result(True, 'Asset units updated successfully', calculation=calculation['calculation'])


def get_depreciation_alerts(company):
    """
    Alerts for the depreciation dashboard, most severe first.
    """
    today = timezone.localdate()
    alerts = []

    for asset in get_assets_due_for_depreciation(company):
        alerts.append({
            'type': 'DUE_FOR_CALCULATION',
            'severity': 'HIGH',
            'title': 'Depreciation Calculation Due',
            'message': f'Asset {asset.asset_tag} requires depreciation calculation',
            'asset': asset,
            'due_date': asset.next_depreciation_date,
        })

    recently_completed = _depreciable_assets(company).filter(
        is_fully_depreciated=True,
        last_depreciation_date__gte=today - relativedelta(days=30),
    )
    for asset in recently_completed:
        alerts.append({
            'type': 'FULLY_DEPRECIATED',
            'severity': 'MEDIUM',
            'title': 'Asset Fully Depreciated',
            'message': f'Asset {asset.asset_tag} has reached its salvage value',
            'asset': asset,
            'due_date': asset.last_depreciation_date,
        })

    for asset in _depreciable_assets(company).filter(is_fully_depreciated=False):
        depreciable = to_decimal(asset.purchase_price) - to_decimal(asset.salvage_value)
        if depreciable <= 0:
            continue
        percent = to_decimal(asset.accumulated_depreciation) / depreciable * 100
        if percent >= NEARLY_DEPRECIATED_PERCENT:
            alerts.append({
                'type': 'HIGH_DEPRECIATION',
                'severity': 'LOW',
                'title': 'High Depreciation Rate',
                'message': f'Asset {asset.asset_tag} is {percent:.1f}% depreciated',
                'asset': asset,
                'due_date': None,
            })

    order = {'HIGH': 3, 'MEDIUM': 2, 'LOW': 1}
    return sorted(alerts, key=lambda alert: order[alert['severity']], reverse=True)


def depreciation_report_rows(company, date_from=None, date_to=None):
    """Depreciation records of ``company`` within an optional date range"""
    records = AssetDepreciation.objects.filter(company=company).select_related('asset', 'calculated_by')
    if date_from:
        records = records.filter(depreciation_date__gte=date_from)
    if date_to:
        records = records.filter(depreciation_date__lte=date_to)
    return records.filter(asset__is_deleted=False).order_by('-depreciation_date', 'asset__asset_tag')

