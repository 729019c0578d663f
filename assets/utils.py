"""
Depreciation formulas and warranty lookups.

All formulas return the monthly amount as a Decimal rounded to cents.
"""
import math
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def straight_line_amount(cost, salvage, life_months):
    """
    Monthly Depreciation = (Cost - Salvage) / Useful Life (months)
    """
    if not life_months:
        return ZERO
    return money((to_decimal(cost) - to_decimal(salvage)) / Decimal(life_months))


def declining_balance_amount(book_value, rate):
    """
    Monthly Depreciation = Book Value x (Annual Rate % / 100) / 12
    """
    if not rate:
        return ZERO
    return money(to_decimal(book_value) * to_decimal(rate) / Decimal(100) / Decimal(12))


def units_of_production_amount(cost, salvage, total_units, units_in_period):
    """
    Depreciation = (Cost - Salvage) / Total Units x Units In Period
    """
    if not total_units or not units_in_period:
        return ZERO
    per_unit = (to_decimal(cost) - to_decimal(salvage)) / Decimal(total_units)
    return money(per_unit * Decimal(units_in_period))


def sum_of_years_digits_amount(cost, salvage, life_months, elapsed_months=0):
    """
    Yearly Depreciation = (Cost - Salvage) x Remaining Years / Sum Of Years
    The monthly amount is a twelfth of that.
    """
    if not life_months:
        return ZERO
    years = math.ceil(life_months / 12)
    sum_of_years = Decimal(years * (years + 1)) / Decimal(2)
    remaining = max(years - (elapsed_months or 0) // 12, 0)
    yearly = (to_decimal(cost) - to_decimal(salvage)) * Decimal(remaining) / sum_of_years
    return money(yearly / Decimal(12))


def monthly_depreciation_amount(method, cost, salvage, life_months, book_value,
                                rate=None, total_units=None, units_in_period=None,
                                elapsed_months=0):
    """Dispatch to the formula for ``method``; unknown methods give zero"""
    from assets.models import Asset

    if method == Asset.STRAIGHT_LINE:
        return straight_line_amount(cost, salvage, life_months)
    if method == Asset.DECLINING_BALANCE:
        return declining_balance_amount(book_value, rate)
    if method == Asset.UNITS_OF_PRODUCTION:
        return units_of_production_amount(cost, salvage, total_units, units_in_period)
    if method == Asset.SUM_OF_YEARS_DIGITS:
        return sum_of_years_digits_amount(cost, salvage, life_months, elapsed_months)
    return ZERO


def apply_depreciation(book_value, amount, salvage):
    """
    Returns (new_book_value, actual_amount). Book value never drops below salvage.
    """
    book_value = to_decimal(book_value)
    new_book_value = max(book_value - to_decimal(amount), to_decimal(salvage))
    return money(new_book_value), money(book_value - new_book_value)


def get_assets_warranty_expiring(company, days_ahead=30):
    """
    Assets whose warranty ends within the next ``days_ahead`` days
    """
    from assets.models import Asset

    today = timezone.localdate()
    future_date = today + timedelta(days=days_ahead)

    return Asset.objects.filter(
        company=company,
        is_deleted=False,
        warranty_end_date__gte=today,
        warranty_end_date__lte=future_date,
    ).order_by('warranty_end_date')

