"""
System checks for offload settings.
"""

from django.core.checks import Error, register
from django.core.exceptions import ImproperlyConfigured

from .conf import MigrationPolicy, get_max_task_runtime
from .services.stores import create_remote_store


@register()
def check_offload_settings(app_configs, **kwargs):
    errors = []
    for loader, check_id in (
        (MigrationPolicy.from_settings, 'offload.E001'),
        (get_max_task_runtime, 'offload.E002'),
    ):
        try:
            loader()
        except ImproperlyConfigured as e:
            errors.append(Error(str(e), id=check_id))

    try:
        create_remote_store()
    except ImproperlyConfigured as e:
        errors.append(Error(str(e), hint="Set OBJECTFS_REMOTE_BACKEND and its options.", id='offload.E003'))
    return errors
