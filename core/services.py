"""
System settings maintained from the settings screen.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import Q

from .audit_utils import get_model_fields, log_create, log_delete, log_update
from .models import SystemSetting
from .utils import result

logger = logging.getLogger(__name__)

SETTING_FIELDS = ['key', 'value', 'description', 'category']


def _active_settings():
    return SystemSetting.objects.filter(is_active=True, is_deleted=False)


def get_system_settings(search=None, category=None):
    settings = _active_settings()
    if category:
        settings = settings.filter(category=category)
    if search:
        settings = settings.filter(
            Q(key__icontains=search) |
            Q(value__icontains=search) |
            Q(description__icontains=search)
        )
    return settings.order_by('category', 'key')


def get_system_setting(pk):
    return _active_settings().filter(pk=pk).first()


def get_system_setting_by_key(key):
    return _active_settings().filter(key=key).first()


def get_setting_categories():
    return sorted(
        category for category in _active_settings().values_list('category', flat=True).distinct()
        if category
    )


def _key_taken(key, exclude_pk=None):
    settings = _active_settings().filter(key=key)
    if exclude_pk:
        settings = settings.exclude(pk=exclude_pk)
    return settings.exists()


def create_system_setting(data, user=None, request=None):
    if get_system_setting_by_key(data.get('key')) is not None:
        logger.warning("System setting %s already exists", data.get('key'))
        return result(False, 'System setting with this key already exists')

    try:
        with transaction.atomic():
            setting = SystemSetting.objects.create(
                key=data['key'],
                value=data.get('value') or '',
                description=data.get('description'),
                category=data.get('category'),
            )
            log_create(request, setting, user=user)
    except DatabaseError:
        logger.exception("Failed to create system setting %s", data.get('key'))
        return result(False, 'Failed to create system setting')

    return result(True, 'System setting created successfully', setting=setting)


def update_system_setting(setting, data, user=None, request=None):
    if setting.is_deleted or not setting.is_active:
        return result(False, 'System setting not found')

    key = data.get('key')
    if key and key != setting.key and _key_taken(key, exclude_pk=setting.pk):
        return result(False, 'System setting with this key already exists')

    old_values = get_model_fields(setting)
    try:
        with transaction.atomic():
            for field in SETTING_FIELDS:
                if field in data:
                    setattr(setting, field, data[field])
            setting.save()
            log_update(request, setting, old_values=old_values, user=user)
    except DatabaseError:
        logger.exception("Failed to update system setting %s", setting.pk)
        return result(False, 'Failed to update system setting')

    return result(True, 'System setting updated successfully', setting=setting)


def delete_system_setting(setting, user=None, request=None):
    try:
        with transaction.atomic():
            log_delete(request, setting, user=user)
            setting.is_active = False
            setting.soft_delete()
    except DatabaseError:
        logger.exception("Failed to delete system setting %s", setting.pk)
        return result(False, 'Failed to delete system setting')

    return result(True, 'System setting deleted successfully')
