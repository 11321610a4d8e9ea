"""
Offload app configuration.

Registers configuration checks on app startup.
"""

import logging
from django.apps import AppConfig

logger = logging.getLogger(__name__)


class OffloadConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'offload'

    def ready(self):
        """
        Register the offload system checks.

        Misconfigured policy bounds or remote stores are reported by
        `manage.py check` and at worker startup instead of mid-run.
        """
        from . import checks  # noqa: F401
