"""
Deployment workflow.

A deployment is requested for an AVAILABLE asset and waits for accounting
approval. Approval hands the asset to the employee; returning it puts it
back in stock.
"""
import logging

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from core.audit_utils import get_model_fields, log_action, log_create, log_update
from core.utils import result, unique_ids
from users.models import Employee
from .models import Asset, AssetDeployment
from .services import record_history

logger = logging.getLogger(__name__)


def can_approve_deployments(user):
    """
    Superusers always can. Other users need a role permission listed in
    DEPLOYMENT_APPROVE_PERMISSIONS or a role code in DEPLOYMENT_APPROVER_ROLES.
    """
    if user is None or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True

    employee = getattr(user, 'employee', None)
    if employee is None or not employee.is_active or not employee.role_id:
        return False

    config = settings.ASSETDESK
    role = employee.role
    if any(role.has_permission(perm) for perm in config['DEPLOYMENT_APPROVE_PERMISSIONS']):
        return True
    return role.code in config['DEPLOYMENT_APPROVER_ROLES']


def _active_employee(company, employee):
    if isinstance(employee, Employee):
        employee = employee.pk
    return Employee.objects.filter(
        pk=employee, company=company, is_active=True, is_deleted=False
    ).first()


def create_deployment(asset, employee, data=None, user=None, request=None):
    data = data or {}

    if asset.is_deleted or asset.status != Asset.AVAILABLE:
        logger.warning("Deployment rejected: asset %s is %s", asset.asset_tag, asset.status)
        return result(False, 'Asset is not available for deployment')

    employee = _active_employee(asset.company, employee)
    if employee is None:
        return result(False, 'Employee not found or inactive')

    try:
        with transaction.atomic():
            deployment = AssetDeployment.objects.create(
                asset=asset,
                employee=employee,
                company=asset.company,
                expected_return_date=data.get('expected_return_date'),
                deployment_condition=data.get('deployment_condition') or asset.condition,
                deployment_notes=data.get('deployment_notes') or '',
                requested_by=user if user is not None and user.is_authenticated else None,
            )
            log_create(request, deployment, user=user, company=asset.company)
    except DatabaseError:
        logger.exception("Failed to create deployment for %s", asset.asset_tag)
        return result(False, 'Failed to create deployment')

    logger.info("Deployment %s requested for %s", deployment.transmittal_number, asset.asset_tag)
    return result(True, 'Deployment created successfully', deployment=deployment)


def create_bulk_deployments(company, employee, assets, data=None, user=None, request=None):
    """
    Request deployments of several assets to one employee.

    Nothing is created unless every asset is available.
    """
    data = data or {}
    assets = list({asset.pk: asset for asset in assets}.values())
    if not assets:
        return result(False, 'No deployments provided')

    unavailable = [
        {'asset_id': asset.pk, 'asset_tag': asset.asset_tag, 'message': 'Asset is not available for deployment'}
        for asset in assets
        if asset.company_id != company.pk or asset.is_deleted or asset.status != Asset.AVAILABLE
    ]
    if unavailable:
        logger.warning("Bulk deployment rejected: %s assets unavailable", len(unavailable))
        return result(
            False,
            f'Some assets are not available: {len(unavailable)} assets',
            processed_count=0,
            failed_count=len(unavailable),
            processed_asset_ids=[],
            errors=unavailable,
        )

    employee = _active_employee(company, employee)
    if employee is None:
        return result(False, 'Employee not found or inactive')

    created = []
    try:
        with transaction.atomic():
            for asset in assets:
                deployment = AssetDeployment.objects.create(
                    asset=asset,
                    employee=employee,
                    company=company,
                    expected_return_date=data.get('expected_return_date'),
                    deployment_condition=asset.condition,
                    deployment_notes=data.get('deployment_notes') or '',
                    requested_by=user if user is not None and user.is_authenticated else None,
                )
                log_create(request, deployment, user=user, company=company)
                created.append(deployment)
    except DatabaseError:
        logger.exception("Failed to create bulk deployments for %s", employee.employee_id)
        return result(False, 'Failed to create deployments')

    logger.info("%s deployments requested for %s", len(created), employee.employee_id)
    return result(
        True,
        f'Successfully created {len(created)} deployments',
        processed_count=len(created),
        failed_count=0,
        processed_asset_ids=[asset.pk for asset in assets],
        errors=[],
        deployments=created,
    )


def _approve(deployment, user, accounting_notes, request, remarks):
    asset = deployment.asset
    now = timezone.now()
    old_values = get_model_fields(deployment)

    deployment.status = AssetDeployment.DEPLOYED
    deployment.approved_by = user
    deployment.approved_at = now
    deployment.deployed_date = now
    if accounting_notes:
        deployment.accounting_notes = accounting_notes
    deployment.save()

    asset.status = Asset.DEPLOYED
    asset.assigned_to = deployment.employee
    asset.save()

    record_history(
        asset, 'DEPLOYED', user=user,
        previous_status=Asset.AVAILABLE,
        new_status=Asset.DEPLOYED,
        employee=deployment.employee,
        remarks=remarks,
        metadata={'deployment_id': deployment.pk, 'transmittal_number': deployment.transmittal_number},
    )
    log_action(
        request, deployment, 'APPROVE',
        description=f'Approved deployment {deployment.transmittal_number}',
        old_values=old_values,
        new_values=get_model_fields(deployment),
        changed_fields=['status', 'approved_by', 'approved_at', 'deployed_date'],
        user=user,
        company=deployment.company,
    )


def approve_deployment(deployment, user, accounting_notes='', request=None):
    if not can_approve_deployments(user):
        logger.warning("User %s may not approve deployments", getattr(user, 'username', None))
        return result(False, 'You do not have permission to approve deployments')

    if deployment.status != AssetDeployment.PENDING_ACCOUNTING_APPROVAL:
        return result(False, 'Deployment is not pending approval')

    if deployment.asset.status != Asset.AVAILABLE:
        return result(False, 'Asset is no longer available for deployment')

    try:
        with transaction.atomic():
            _approve(
                deployment, user, accounting_notes, request,
                f'Asset deployed to {deployment.employee.full_name} - Approved by accounting',
            )
    except DatabaseError:
        logger.exception("Failed to approve deployment %s", deployment.pk)
        return result(False, 'Failed to approve deployment')

    logger.info("Deployment %s approved by %s", deployment.transmittal_number, user.username)
    return result(True, 'Deployment approved successfully', deployment=deployment)


def reject_deployment(deployment, user, reason, request=None):
    if not can_approve_deployments(user):
        return result(False, 'You do not have permission to reject deployments')

    if deployment.status != AssetDeployment.PENDING_ACCOUNTING_APPROVAL:
        return result(False, 'Deployment is not pending approval')

    old_values = get_model_fields(deployment)
    try:
        with transaction.atomic():
            deployment.status = AssetDeployment.CANCELLED
            deployment.approved_by = user
            deployment.approved_at = timezone.now()
            deployment.accounting_notes = f'REJECTED: {reason}'
            deployment.save()
            log_action(
                request, deployment, 'REJECT',
                description=f'Rejected deployment {deployment.transmittal_number}: {reason}',
                old_values=old_values,
                new_values=get_model_fields(deployment),
                changed_fields=['status', 'accounting_notes'],
                user=user,
                company=deployment.company,
            )
    except DatabaseError:
        logger.exception("Failed to reject deployment %s", deployment.pk)
        return result(False, 'Failed to reject deployment')

    logger.info("Deployment %s rejected by %s", deployment.transmittal_number, user.username)
    return result(True, 'Deployment rejected successfully', deployment=deployment)


def bulk_approve_deployments(company, deployment_ids, user, accounting_notes='', request=None):
    """
    Approve several pending deployments. Each is committed on its own so
    one failure does not undo the others.
    """
    if not can_approve_deployments(user):
        return result(False, 'You do not have permission to approve deployments')
    deployment_ids = unique_ids(deployment_ids)

    deployments = list(
        AssetDeployment.objects.filter(
            company=company,
            pk__in=deployment_ids,
            status=AssetDeployment.PENDING_ACCOUNTING_APPROVAL,
        ).select_related('asset', 'employee')
    )
    if not deployments:
        return result(False, 'No valid deployments found for approval')

    processed = []
    errors = []
    for deployment in deployments:
        # An earlier approval in this batch may have taken the same asset
        deployment.asset.refresh_from_db(fields=['status'])
        if deployment.asset.status != Asset.AVAILABLE:
            errors.append({
                'asset_id': deployment.asset_id,
                'asset_tag': deployment.asset.asset_tag,
                'message': 'Asset is no longer available for deployment',
            })
            continue
        try:
            with transaction.atomic():
                _approve(
                    deployment, user, accounting_notes, request,
                    f'Asset deployed to {deployment.employee.full_name} - Bulk approved by accounting',
                )
        except DatabaseError:
            logger.exception("Failed to approve deployment %s", deployment.pk)
            errors.append({
                'asset_id': deployment.asset_id,
                'asset_tag': deployment.asset.asset_tag,
                'message': 'Failed to approve deployment',
            })
            continue
        processed.append(deployment.asset_id)

    for error in errors:
        logger.warning("Bulk approval skipped %s: %s", error['asset_tag'], error['message'])

    return result(
        bool(processed) and not errors,
        f'Successfully approved {len(processed)} out of {len(deployment_ids)} deployments',
        processed_count=len(processed),
        failed_count=len(errors),
        processed_asset_ids=processed,
        errors=errors,
    )


def return_asset(deployment, data=None, user=None, request=None):
    data = data or {}

    if deployment.status != AssetDeployment.DEPLOYED or deployment.returned_date is not None:
        return result(False, 'Asset is not currently deployed')

    asset = deployment.asset
    old_values = get_model_fields(deployment)
    condition = data.get('return_condition') or asset.condition

    try:
        with transaction.atomic():
            deployment.status = AssetDeployment.RETURNED
            deployment.returned_date = timezone.now()
            deployment.return_condition = condition
            deployment.return_notes = data.get('return_notes') or ''
            deployment.save()

            asset.status = Asset.AVAILABLE
            asset.assigned_to = None
            asset.condition = condition
            asset.save()

            record_history(
                asset, 'RETURNED', user=user,
                previous_status=Asset.DEPLOYED,
                new_status=Asset.AVAILABLE,
                employee=deployment.employee,
                remarks=deployment.return_notes or f'Returned by {deployment.employee.full_name}',
                metadata={'deployment_id': deployment.pk, 'return_condition': condition},
            )
            log_update(request, deployment, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to return deployment %s", deployment.pk)
        return result(False, 'Failed to return asset')

    logger.info("Asset %s returned from %s", asset.asset_tag, deployment.transmittal_number)
    return result(True, 'Asset returned successfully', deployment=deployment)


def cancel_deployment(deployment, reason='', user=None, request=None):
    if deployment.status == AssetDeployment.DEPLOYED:
        return result(False, 'Cannot cancel deployed asset. Use return instead.')

    if deployment.status != AssetDeployment.PENDING_ACCOUNTING_APPROVAL:
        return result(False, 'Deployment cannot be cancelled')

    old_values = get_model_fields(deployment)
    try:
        with transaction.atomic():
            deployment.status = AssetDeployment.CANCELLED
            if reason:
                deployment.deployment_notes = f'{deployment.deployment_notes}\nCancelled: {reason}'.strip()
            deployment.save()
            log_update(request, deployment, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to cancel deployment %s", deployment.pk)
        return result(False, 'Failed to cancel deployment')

    return result(True, 'Deployment cancelled successfully')


def get_deployments(company, search=None, status=None):
    deployments = AssetDeployment.objects.filter(company=company, is_deleted=False).select_related(
        'asset', 'employee', 'approved_by'
    )
    if status:
        deployments = deployments.filter(status=status)
    if search:
        deployments = deployments.filter(
            Q(transmittal_number__icontains=search) |
            Q(asset__asset_tag__icontains=search) |
            Q(employee__first_name__icontains=search) |
            Q(employee__last_name__icontains=search)
        )
    return deployments.order_by('-created_at')


def get_pending_approvals(company):
    return AssetDeployment.objects.filter(
        company=company, status=AssetDeployment.PENDING_ACCOUNTING_APPROVAL, is_deleted=False
    ).select_related('asset', 'employee').order_by('created_at')


def get_deployed_assets(company):
    return AssetDeployment.objects.filter(
        company=company, status=AssetDeployment.DEPLOYED, returned_date__isnull=True, is_deleted=False
    ).select_related('asset', 'employee').order_by('-deployed_date')


def get_available_assets(company):
    return Asset.objects.filter(
        company=company, status=Asset.AVAILABLE, is_deleted=False
    ).select_related('category').order_by('asset_tag')
