"""
Audit Logging Utilities
Helpers for writing and querying the audit trail.

Every writer accepts an optional request. Workflow code that runs outside a
view passes ``user`` and ``company`` explicitly instead.
"""
import json
from datetime import datetime, time
from decimal import Decimal
from uuid import UUID

from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import Count, Q
from django.utils import timezone

from .models import AuditLog


REDACTED = '[REDACTED]'
SECRET_FIELDS = {'password', 'password_hash'}


def get_client_ip(request):
    """Get the client's IP address from request"""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def to_json_value(value):
    """Convert a single python value into something JSONField can store"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_value(v) for v in value]
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


def get_model_fields(instance):
    """
    Get all field values of a model instance as a JSON-safe dictionary.
    Secrets are redacted and foreign keys are stored as text plus id.
    """
    data = {}
    exclude_fields = ['created_at', 'updated_at']

    for field in instance._meta.fields:
        if field.name in exclude_fields:
            continue

        if field.name in SECRET_FIELDS:
            data[field.name] = REDACTED
            continue

        if isinstance(field, models.ForeignKey):
            related_id = getattr(instance, field.attname)
            data[field.name] = str(getattr(instance, field.name)) if related_id is not None else None
            data[f'{field.name}_id'] = related_id
            continue

        value = getattr(instance, field.name)
        if isinstance(field, models.FileField):
            data[field.name] = value.name if value else None
        else:
            data[field.name] = to_json_value(value)

    return data


def diff_fields(old_values, new_values):
    """List keys whose values differ between two snapshots"""
    if not old_values or not new_values:
        return []
    keys = list(new_values) + [key for key in old_values if key not in new_values]
    changed = [key for key in keys if new_values.get(key) != old_values.get(key)]
    # a foreign key shows up once, under its field name
    return [key for key in changed if not (key.endswith('_id') and key[:-3] in changed)]


def _actor(request, user):
    if user is None and request is not None and request.user.is_authenticated:
        user = request.user
    username = user.username if user else 'System'
    return user, username


def _request_meta(request):
    if request is None:
        return {}
    return {
        'ip_address': get_client_ip(request),
        'user_agent': request.META.get('HTTP_USER_AGENT', ''),
        'request_path': request.path,
        'request_method': request.method,
    }


def log_action(request, instance, action, description=None, old_values=None, new_values=None,
               changed_fields=None, metadata=None, user=None, company=None):
    """
    Log an action to the audit trail.

    Args:
        request: Django request object, or None outside a view
        instance: Model instance that was affected
        action: Action type ('CREATE', 'UPDATE', 'DELETE', 'APPROVE', ...)
        description: Human-readable description (auto-generated when omitted)
        old_values: Dictionary of old values (for UPDATE/DELETE)
        new_values: Dictionary of new values (for CREATE/UPDATE)
        changed_fields: List of changed field names
        metadata: Additional metadata dictionary
        user: Actor, defaults to request.user
        company: Business unit, defaults to request.current_company

    Returns:
        AuditLog instance
    """
    if instance is None:
        return None

    user, username = _actor(request, user)
    if company is None and request is not None:
        company = getattr(request, 'current_company', None)
    if company is None:
        company = getattr(instance, 'company', None)

    content_type = ContentType.objects.get_for_model(instance)

    if not description:
        model_name = content_type.model
        if action == 'CREATE':
            description = f"Created {model_name}: {instance}"
        elif action == 'UPDATE':
            description = f"Updated {model_name}: {instance}"
        elif action == 'DELETE':
            description = f"Deleted {model_name}: {instance}"
        else:
            description = f"{action} {model_name}: {instance}"

    return AuditLog.objects.create(
        user=user,
        username=username,
        content_type=content_type,
        object_id=str(instance.pk),
        object_repr=str(instance)[:500],
        action=action,
        description=description,
        old_values=to_json_value(old_values),
        new_values=to_json_value(new_values),
        changed_fields=changed_fields or None,
        company=company,
        metadata=to_json_value(metadata),
        **_request_meta(request)
    )


def log_create(request, instance, metadata=None, **kwargs):
    """Log a CREATE action"""
    return log_action(
        request=request,
        instance=instance,
        action='CREATE',
        new_values=get_model_fields(instance),
        metadata=metadata,
        **kwargs
    )


def log_update(request, instance, old_values=None, changed_fields=None, metadata=None, **kwargs):
    """
    Log an UPDATE action.

    ``old_values`` is a snapshot taken with get_model_fields() before the
    instance was modified.
    """
    new_values = get_model_fields(instance)
    if old_values and not changed_fields:
        changed_fields = diff_fields(old_values, new_values)

    return log_action(
        request=request,
        instance=instance,
        action='UPDATE',
        old_values=old_values,
        new_values=new_values,
        changed_fields=changed_fields,
        metadata=metadata,
        **kwargs
    )


def log_delete(request, instance, metadata=None, **kwargs):
    """Log a DELETE action"""
    return log_action(
        request=request,
        instance=instance,
        action='DELETE',
        old_values=get_model_fields(instance),
        metadata=metadata,
        **kwargs
    )


def log_export(request, model, count, format='Excel', metadata=None):
    """
    Log an EXPORT action.

    Args:
        request: Django request object
        model: Model class that was exported
        count: Number of records exported
        format: Export format (Excel, CSV, ...)
    """
    metadata = dict(metadata or {})
    metadata.update({
        'model': model.__name__,
        'record_count': count,
        'format': format,
    })

    user, username = _actor(request, None)

    return AuditLog.objects.create(
        user=user,
        username=username,
        content_type=ContentType.objects.get_for_model(model),
        object_repr=f"{model.__name__} Export",
        action='EXPORT',
        description=f"Exported {count} {model.__name__} records to {format}",
        company=getattr(request, 'current_company', None),
        metadata=metadata,
        **_request_meta(request)
    )


def log_login(request, user):
    """Log a LOGIN action"""
    if not user or not request:
        return None

    return AuditLog.objects.create(
        user=user,
        username=user.username,
        object_repr=f"User: {user.username}",
        action='LOGIN',
        description=f"User {user.username} logged in",
        company=getattr(request, 'current_company', None),
        **_request_meta(request)
    )


def log_logout(request, user):
    """Log a LOGOUT action"""
    if not user or not request:
        return None

    return AuditLog.objects.create(
        user=user,
        username=user.username,
        object_repr=f"User: {user.username}",
        action='LOGOUT',
        description=f"User {user.username} logged out",
        company=getattr(request, 'current_company', None),
        **_request_meta(request)
    )


def log_custom(request, action, description, model_name=None, instance=None, metadata=None,
               user=None, company=None):
    """Log an action that is not tied to a standard CRUD write"""
    user, username = _actor(request, user)
    if company is None and request is not None:
        company = getattr(request, 'current_company', None)

    content_type = None
    object_id = None
    object_repr = model_name or 'System'

    if instance is not None:
        content_type = ContentType.objects.get_for_model(instance)
        object_id = str(instance.pk)
        object_repr = str(instance)[:500]

    return AuditLog.objects.create(
        user=user,
        username=username,
        content_type=content_type,
        object_id=object_id,
        object_repr=object_repr,
        action=action,
        description=description,
        company=company,
        metadata=to_json_value(metadata),
        **_request_meta(request)
    )


def get_audit_logs(company=None, search=None, action=None, table_name=None, user=None,
                   date_from=None, date_to=None):
    """
    Audit log queryset for one business unit, newest first.
    ``table_name`` matches the target model name, case-insensitively.
    """
    logs = AuditLog.objects.select_related('user', 'content_type', 'company')
    if company is not None:
        logs = logs.filter(company=company)

    if action:
        logs = logs.filter(action=action)
    if table_name:
        logs = logs.filter(content_type__model=table_name.lower())
    if user:
        logs = logs.filter(user=user)
    if date_from:
        logs = logs.filter(timestamp__gte=_start_of(date_from))
    if date_to:
        logs = logs.filter(timestamp__lte=_end_of(date_to))
    if search:
        logs = logs.filter(
            Q(description__icontains=search) |
            Q(username__icontains=search) |
            Q(object_repr__icontains=search) |
            Q(object_id__icontains=search) |
            Q(action__icontains=search) |
            Q(content_type__model__icontains=search)
        )

    return logs.order_by('-timestamp')


def get_audit_log_stats(company=None):
    """Totals, today's count, and counts per action and per table"""
    logs = AuditLog.objects.all()
    if company is not None:
        logs = logs.filter(company=company)

    today_start = _start_of(timezone.localdate())

    action_stats = [
        {'action': row['action'], 'count': row['count']}
        for row in logs.values('action').annotate(count=Count('id')).order_by('-count', 'action')
    ]
    table_stats = [
        {'table_name': row['content_type__model'] or 'system', 'count': row['count']}
        for row in logs.values('content_type__model').annotate(count=Count('id')).order_by('-count')
    ]

    return {
        'total_logs': logs.count(),
        'today_logs': logs.filter(timestamp__gte=today_start).count(),
        'action_stats': action_stats,
        'table_stats': table_stats,
    }


def _start_of(day):
    if isinstance(day, datetime):
        return day
    return timezone.make_aware(datetime.combine(day, time.min))


def _end_of(day):
    if isinstance(day, datetime):
        return day
    return timezone.make_aware(datetime.combine(day, time.max))
