"""
Utilization analytics and dashboard aggregates for one business unit.

Everything here is read-only. Rates are percentages rounded to one decimal,
money values are Decimals rounded to cents.
"""
from collections import defaultdict
from datetime import datetime, time, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.db.models import Count, Q
from django.utils import timezone

from maintenance.models import AssetMaintenance
from users.models import Department, Employee
from .models import Asset, AssetCategory, AssetDeployment
from .utils import ZERO, get_assets_warranty_expiring, money, straight_line_amount, to_decimal

DEFAULT_WINDOW_DAYS = 90
TREND_MONTHS = 6
IDLE_THRESHOLD_DAYS = 30
OBSOLETE_AFTER_DAYS = 365
MAINTENANCE_OVERDUE_DAYS = 90

MAINTENANCE_ESTIMATE_RATE = Decimal('0.02')
DEPLOYMENT_COST_PER_ASSET = Decimal('50.00')
ROI_VALUE_MULTIPLIER = Decimal('1.2')

ALERTS_PER_KIND = 5
WARRANTY_ALERT_DAYS = 30


def _rate(part, whole):
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, 1)


def _start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def _in_service(company, category=None):
    assets = Asset.objects.filter(company=company, is_deleted=False).exclude(status=Asset.DISPOSED)
    if category is not None:
        assets = assets.filter(category=category)
    return assets


def _deployments(company):
    return AssetDeployment.objects.filter(company=company, is_deleted=False, deployed_date__isnull=False)


def _month_starts(months, today=None):
    """First day of each of the last ``months`` months, oldest first"""
    first = (today or timezone.localdate()).replace(day=1)
    return [first - relativedelta(months=offset) for offset in range(months - 1, -1, -1)]


# --------------------------------------------------------------------------
# Deployment rate
# --------------------------------------------------------------------------

def get_deployment_rate_analysis(company, category=None, date_from=None, date_to=None):
    today = timezone.localdate()
    date_to = date_to or today
    date_from = date_from or date_to - timedelta(days=DEFAULT_WINDOW_DAYS)

    assets = _in_service(company, category)
    total = assets.count()
    deployed = assets.filter(status=Asset.DEPLOYED).count()

    returned = _deployments(company).filter(
        returned_date__isnull=False,
        returned_date__date__gte=date_from,
        returned_date__date__lte=date_to,
    )
    if category is not None:
        returned = returned.filter(asset__category=category)
    durations = [(d.returned_date - d.deployed_date).days for d in returned.only('deployed_date', 'returned_date')]

    trends = []
    for month_start in _month_starts(TREND_MONTHS, today):
        month_end = month_start + relativedelta(months=1)
        started = _deployments(company).filter(
            deployed_date__gte=_start_of_day(month_start),
            deployed_date__lt=_start_of_day(month_end),
        )
        existing = Asset.objects.filter(company=company, is_deleted=False, created_at__lt=_start_of_day(month_end))
        if category is not None:
            started = started.filter(asset__category=category)
            existing = existing.filter(category=category)
        count = started.count()
        trends.append({
            'month': month_start,
            'deployments': count,
            'deployment_rate': _rate(count, existing.count()),
        })

    by_category = []
    rows = assets.order_by().values('category_id', 'category__name').annotate(
        total=Count('id'), deployed=Count('id', filter=Q(status=Asset.DEPLOYED))
    )
    for row in sorted(rows, key=lambda r: r['category__name']):
        by_category.append({
            'category_id': row['category_id'],
            'category_name': row['category__name'],
            'total_assets': row['total'],
            'deployed_assets': row['deployed'],
            'deployment_rate': _rate(row['deployed'], row['total']),
        })

    return {
        'date_from': date_from,
        'date_to': date_to,
        'total_assets': total,
        'deployed_assets': deployed,
        'available_assets': total - deployed,
        'deployment_rate': _rate(deployed, total),
        'average_deployment_days': round(sum(durations) / len(durations), 1) if durations else 0.0,
        'trends': trends,
        'by_category': by_category,
    }


# --------------------------------------------------------------------------
# Idle assets
# --------------------------------------------------------------------------

def _idle_reason(never_deployed, status, idle_days):
    if never_deployed:
        return 'NEVER_DEPLOYED', 'RETIRE' if idle_days > OBSOLETE_AFTER_DAYS else 'REDEPLOY'
    if status == Asset.DAMAGED:
        return 'DAMAGED', 'MAINTENANCE'
    if idle_days > OBSOLETE_AFTER_DAYS:
        return 'OBSOLETE', 'RETIRE'
    if idle_days > MAINTENANCE_OVERDUE_DAYS:
        return 'MAINTENANCE_OVERDUE', 'MAINTENANCE'
    return 'RETURNED_NOT_REDEPLOYED', 'REDEPLOY'


def get_idle_asset_analysis(company, category=None, threshold_days=IDLE_THRESHOLD_DAYS):
    """
    Available or damaged assets nobody has used for more than
    ``threshold_days``, with why they sit idle and what to do about it.
    """
    today = timezone.localdate()
    assets = list(_in_service(company, category).filter(
        status__in=[Asset.AVAILABLE, Asset.DAMAGED]
    ).select_related('category', 'location').annotate(
        deployment_count=Count('deployments', filter=Q(deployments__is_deleted=False, deployments__deployed_date__isnull=False))
    ))

    last_returns = {}
    for asset_id, returned in _deployments(company).filter(
        asset__in=assets, returned_date__isnull=False
    ).order_by('returned_date').values_list('asset_id', 'returned_date'):
        last_returns[asset_id] = returned

    idle = []
    for asset in assets:
        since = last_returns.get(asset.pk) or asset.created_at
        idle_days = (today - timezone.localtime(since).date()).days
        if idle_days <= threshold_days:
            continue
        reason, action = _idle_reason(asset.deployment_count == 0, asset.status, idle_days)
        idle.append({
            'asset': asset,
            'idle_days': idle_days,
            'idle_since': timezone.localtime(since).date(),
            'idle_reason': reason,
            'recommended_action': action,
            'book_value': money(asset.book_value),
        })
    idle.sort(key=lambda entry: entry['idle_days'], reverse=True)

    grouped = defaultdict(list)
    for entry in idle:
        grouped[entry['asset'].category.name].append(entry)
    by_category = [
        {
            'category_name': name,
            'idle_count': len(entries),
            'idle_value': money(sum((e['book_value'] for e in entries), ZERO)),
            'share': _rate(len(entries), len(idle)),
        }
        for name, entries in sorted(grouped.items())
    ]

    return {
        'threshold_days': threshold_days,
        'total_idle_assets': len(idle),
        'idle_asset_value': money(sum((e['book_value'] for e in idle), ZERO)),
        'average_idle_days': round(sum(e['idle_days'] for e in idle) / len(idle), 1) if idle else 0.0,
        'idle_assets': idle,
        'by_category': by_category,
    }


# --------------------------------------------------------------------------
# Cost centres
# --------------------------------------------------------------------------

def _monthly_depreciation(asset):
    return straight_line_amount(asset.purchase_price, asset.salvage_value, asset.useful_life_months)


def get_cost_centre_allocations(company):
    """Departments as cost centres for the assets deployed to their people"""
    active = _deployments(company).filter(
        status=AssetDeployment.DEPLOYED, returned_date__isnull=True,
        employee__department__isnull=False,
    ).select_related('asset', 'asset__category', 'employee')

    by_department = defaultdict(list)
    for deployment in active:
        by_department[deployment.employee.department_id].append(deployment.asset)

    centres = []
    for department in Department.objects.filter(company=company, is_deleted=False).order_by('name'):
        assets = by_department.get(department.pk, [])
        book_value = money(sum((asset.book_value for asset in assets), ZERO))
        depreciation = money(sum((_monthly_depreciation(asset) for asset in assets), ZERO))
        maintenance = money(book_value * MAINTENANCE_ESTIMATE_RATE)
        deployment_cost = money(DEPLOYMENT_COST_PER_ASSET * len(assets))

        categories = defaultdict(lambda: {'count': 0, 'value': ZERO})
        for asset in assets:
            categories[asset.category.name]['count'] += 1
            categories[asset.category.name]['value'] += to_decimal(asset.book_value)

        centres.append({
            'department': department,
            'asset_count': len(assets),
            'total_book_value': book_value,
            'monthly_depreciation': depreciation,
            'allocated_costs': {
                'depreciation': depreciation,
                'maintenance': maintenance,
                'deployment': deployment_cost,
                'total': depreciation + maintenance + deployment_cost,
            },
            'by_category': [
                {'category_name': name, 'count': values['count'], 'value': money(values['value'])}
                for name, values in sorted(categories.items())
            ],
        })
    return centres


# --------------------------------------------------------------------------
# Return on investment
# --------------------------------------------------------------------------

def _rating(utilization, roi):
    if utilization >= 80 and roi >= 20:
        return 'EXCELLENT'
    if utilization >= 60 and roi >= 10:
        return 'GOOD'
    if utilization >= 40 and roi >= 0:
        return 'FAIR'
    return 'POOR'


def _asset_recommendations(utilization, roi, deployment_count):
    recommendations = []
    if utilization < 50:
        recommendations.append('Increase deployment frequency to improve utilization')
    if roi < 0:
        recommendations.append('Consider retirement or disposal to reduce carrying costs')
    if deployment_count == 0:
        recommendations.append('Asset has never been deployed - evaluate necessity')
    if utilization > 90:
        recommendations.append('High utilization - consider acquiring similar assets')
    return recommendations


def get_asset_roi(company, category=None):
    """
    Utilization and return on investment of every priced asset.

    Utilization is the share of the asset's age spent deployed. The value
    an asset returned is taken as 1.2 times the utilized part of its price.
    """
    now = timezone.now()
    today = timezone.localdate()
    assets = list(_in_service(company, category).filter(purchase_price__gt=0).select_related('category'))

    periods = defaultdict(list)
    for deployment in _deployments(company).filter(asset__in=assets).exclude(
        status=AssetDeployment.CANCELLED
    ).only('asset_id', 'deployed_date', 'returned_date'):
        end = deployment.returned_date or now
        periods[deployment.asset_id].append(max((end - deployment.deployed_date).days, 0))

    rows = []
    for asset in assets:
        price = to_decimal(asset.purchase_price)
        started = asset.purchase_date or timezone.localtime(asset.created_at).date()
        age_days = max((today - started).days, 1)
        durations = periods.get(asset.pk, [])
        deployed_days = sum(durations)

        utilization = min(deployed_days * 100.0 / age_days, 100.0)
        value_utilized = money(price * Decimal(str(utilization)) / 100)
        roi = float((ROI_VALUE_MULTIPLIER * value_utilized - price) / price * 100)

        rows.append({
            'asset': asset,
            'purchase_price': money(price),
            'book_value': money(asset.book_value),
            'deployment_count': len(durations),
            'deployed_days': deployed_days,
            'average_deployment_days': round(deployed_days / len(durations), 1) if durations else 0.0,
            'age_days': age_days,
            'utilization_rate': round(utilization, 1),
            'value_utilized': value_utilized,
            'roi': round(roi, 1),
            'rating': _rating(utilization, roi),
            'recommendations': _asset_recommendations(utilization, roi, len(durations)),
        })

    rows.sort(key=lambda row: row['roi'], reverse=True)
    return rows


def get_utilization_summary(company, category=None, threshold_days=IDLE_THRESHOLD_DAYS):
    deployment = get_deployment_rate_analysis(company, category=category)
    idle = get_idle_asset_analysis(company, category=category, threshold_days=threshold_days)
    roi = get_asset_roi(company, category=category)
    centres = get_cost_centre_allocations(company)

    total_value = money(sum((row['purchase_price'] for row in roi), ZERO))
    average_utilization = round(sum(row['utilization_rate'] for row in roi) / len(roi), 1) if roi else 0.0
    average_roi = round(sum(row['roi'] for row in roi) / len(roi), 1) if roi else 0.0

    recommendations = []
    if average_utilization < 60:
        recommendations.append({
            'category': 'DEPLOYMENT',
            'priority': 'HIGH',
            'description': 'Low asset utilization detected across the organization',
            'action_items': [
                'Review deployment processes and bottlenecks',
                'Implement proactive asset assignment workflows',
                'Consider asset redistribution between departments',
            ],
        })
    if idle['total_idle_assets'] > deployment['total_assets'] * 0.2:
        recommendations.append({
            'category': 'MAINTENANCE',
            'priority': 'MEDIUM',
            'description': 'High number of idle assets identified',
            'action_items': [
                'Audit idle assets for redeployment opportunities',
                'Implement regular asset rotation schedules',
                'Consider asset consolidation or disposal',
            ],
        })
    if average_roi < 10:
        recommendations.append({
            'category': 'RETIREMENT',
            'priority': 'HIGH',
            'description': 'Poor return on investment across asset portfolio',
            'action_items': [
                'Evaluate assets with negative ROI for retirement',
                'Implement asset performance monitoring',
                'Review procurement strategies for future purchases',
            ],
        })

    return {
        'overall': {
            'total_assets': deployment['total_assets'],
            'total_asset_value': total_value,
            'average_utilization_rate': average_utilization,
            'total_idle_assets': idle['total_idle_assets'],
            'total_idle_value': idle['idle_asset_value'],
            'average_roi': average_roi,
        },
        'deployment': deployment,
        'idle': idle,
        'cost_centres': centres,
        'top_performing': [row for row in roi if row['rating'] in ('EXCELLENT', 'GOOD')][:10],
        'underperforming': [row for row in roi if row['rating'] in ('FAIR', 'POOR')][-10:],
        'recommendations': recommendations,
    }


# --------------------------------------------------------------------------
# Dashboard
# --------------------------------------------------------------------------

def _change(current, previous):
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) * 100 / previous)


def get_dashboard_stats(company):
    """
    Headline counts, each with its change since the start of the month.
    """
    month_start = _start_of_day(timezone.localdate().replace(day=1))

    assets = Asset.objects.filter(company=company, is_deleted=False)
    employees = Employee.objects.filter(company=company, is_deleted=False, is_active=True)
    deployments = AssetDeployment.objects.filter(company=company, is_deleted=False)
    maintenance = AssetMaintenance.objects.filter(asset__company=company)

    current = {
        'total_assets': assets.count(),
        'active_employees': employees.count(),
        'active_deployments': deployments.filter(
            status=AssetDeployment.DEPLOYED, returned_date__isnull=True
        ).count(),
        'pending_approvals': deployments.filter(status=AssetDeployment.PENDING_ACCOUNTING_APPROVAL).count(),
        'in_maintenance': assets.filter(status=Asset.IN_MAINTENANCE).count(),
    }
    previous = {
        'total_assets': assets.filter(created_at__lt=month_start).count(),
        'active_employees': employees.filter(created_at__lt=month_start).count(),
        'active_deployments': deployments.filter(deployed_date__lt=month_start).filter(
            Q(returned_date__isnull=True) | Q(returned_date__gte=month_start)
        ).count(),
        'pending_approvals': deployments.filter(created_at__lt=month_start).filter(
            Q(status=AssetDeployment.PENDING_ACCOUNTING_APPROVAL) | Q(approved_at__gte=month_start)
        ).count(),
        'in_maintenance': maintenance.filter(start_date__lt=month_start.date()).filter(
            Q(completed_date__isnull=True) | Q(completed_date__gte=month_start.date())
        ).values('asset').distinct().count(),
    }

    stats = {}
    for key, value in current.items():
        stats[key] = value
        stats[f'{key}_change'] = _change(value, previous[key])
    return stats


def get_system_alerts(company):
    alerts = []

    for asset in Asset.objects.filter(
        company=company, is_deleted=False, status=Asset.IN_MAINTENANCE
    ).order_by('-updated_at')[:ALERTS_PER_KIND]:
        alerts.append({
            'type': 'MAINTENANCE',
            'severity': 'MEDIUM',
            'title': 'Asset in maintenance',
            'message': f'{asset.asset_tag} {asset.name} is under maintenance',
            'asset_id': asset.pk,
            'created_at': asset.updated_at,
        })

    for deployment in AssetDeployment.objects.filter(
        company=company, is_deleted=False, status=AssetDeployment.PENDING_ACCOUNTING_APPROVAL
    ).select_related('asset', 'employee').order_by('-created_at')[:ALERTS_PER_KIND]:
        alerts.append({
            'type': 'APPROVAL',
            'severity': 'HIGH',
            'title': 'Deployment awaiting approval',
            'message': f'{deployment.asset.asset_tag} for {deployment.employee.full_name}',
            'deployment_id': deployment.pk,
            'created_at': deployment.created_at,
        })

    warranty = get_assets_warranty_expiring(company, days_ahead=WARRANTY_ALERT_DAYS)
    for asset in warranty.order_by('-updated_at')[:ALERTS_PER_KIND]:
        alerts.append({
            'type': 'WARRANTY',
            'severity': 'LOW',
            'title': 'Warranty expiring',
            'message': f'{asset.asset_tag} warranty ends {asset.warranty_end_date:%Y-%m-%d}',
            'asset_id': asset.pk,
            'created_at': asset.updated_at,
        })

    alerts.sort(key=lambda alert: alert['created_at'], reverse=True)
    return alerts


def get_deployment_trends(company, months=TREND_MONTHS):
    trends = []
    deployments = _deployments(company)
    for month_start in _month_starts(months):
        start = _start_of_day(month_start)
        end = _start_of_day(month_start + relativedelta(months=1))
        trends.append({
            'month': month_start,
            'deployments': deployments.filter(deployed_date__gte=start, deployed_date__lt=end).count(),
            'returns': deployments.filter(returned_date__gte=start, returned_date__lt=end).count(),
        })
    return trends


def get_top_assets(company, limit=10):
    return Asset.objects.filter(company=company, is_deleted=False).annotate(
        deployment_count=Count('deployments', filter=Q(deployments__is_deleted=False, deployments__deployed_date__isnull=False))
    ).filter(deployment_count__gt=0).select_related('category').order_by('-deployment_count', 'asset_tag')[:limit]


def get_recent_deployments(company, limit=5):
    return AssetDeployment.objects.filter(company=company, is_deleted=False).select_related(
        'asset', 'employee'
    ).order_by('-created_at')[:limit]


def get_assets_by_category(company):
    categories = AssetCategory.objects.filter(company=company, is_deleted=False, is_active=True).annotate(
        asset_count=Count('assets', filter=Q(assets__is_deleted=False))
    ).order_by('-asset_count', 'name')
    total = sum(category.asset_count for category in categories)
    return [
        {'category': category, 'count': category.asset_count, 'percentage': _rate(category.asset_count, total)}
        for category in categories
    ]
