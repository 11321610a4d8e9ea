"""
Unit Tests for Offload Configuration
====================================
Tests cover:
- Policy construction from settings
- Validation of policy bounds
- System checks
"""

from datetime import datetime, timezone

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from offload.checks import check_offload_settings
from offload.conf import MigrationPolicy, get_max_task_runtime, is_async_push_enabled


@override_settings(OBJECTFS_REMOTE_BACKEND='filesystem', OBJECTFS_REMOTE_ROOT='/tmp/objectfs-remote')
class MigrationPolicyTests(SimpleTestCase):
    """Tests for MigrationPolicy and settings helpers."""

    @override_settings(OBJECTFS_SIZE_THRESHOLD=2048, OBJECTFS_MINIMUM_AGE=60)
    def test_from_settings(self):
        policy = MigrationPolicy.from_settings()

        self.assertEqual(policy.size_threshold, 2048)
        self.assertEqual(policy.minimum_age, 60)

    @override_settings(OBJECTFS_SIZE_THRESHOLD='512')
    def test_from_settings_accepts_numeric_strings(self):
        self.assertEqual(MigrationPolicy.from_settings().size_threshold, 512)

    @override_settings(OBJECTFS_SIZE_THRESHOLD=-1)
    def test_negative_threshold_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            MigrationPolicy.from_settings()

    @override_settings(OBJECTFS_MINIMUM_AGE='a week')
    def test_non_integer_age_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            MigrationPolicy.from_settings()

    def test_negative_bounds_rejected_directly(self):
        with self.assertRaises(ValueError):
            MigrationPolicy(size_threshold=-5)

    def test_zero_means_no_filtering(self):
        policy = MigrationPolicy(size_threshold=0, minimum_age=0)
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        self.assertTrue(policy.admits(0, now, now, max_size=10))
        self.assertFalse(policy.admits(10, now, now, max_size=10))

    @override_settings(OBJECTFS_MAX_TASK_RUNTIME=300, OBJECTFS_ASYNC_PUSH=True)
    def test_runtime_and_async_settings(self):
        self.assertEqual(get_max_task_runtime(), 300)
        self.assertTrue(is_async_push_enabled())

    def test_checks_pass_for_valid_settings(self):
        self.assertEqual(check_offload_settings(None), [])

    @override_settings(OBJECTFS_SIZE_THRESHOLD=-1, OBJECTFS_REMOTE_BACKEND='ftp')
    def test_checks_report_errors(self):
        ids = [error.id for error in check_offload_settings(None)]

        self.assertEqual(ids, ['offload.E001', 'offload.E003'])
