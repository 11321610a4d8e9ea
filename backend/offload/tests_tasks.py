"""
Unit Tests for the Offload Celery Tasks
=======================================
Tests cover:
- In-process push runs driven by settings
- Fan-out to per-object tasks
- Single-object pushes
"""

from unittest.mock import patch

from django.test import override_settings

from contracts.models import ObjectLocation
from offload import tasks
from offload.testutils import OffloadTestCase


class PushTaskTests(OffloadTestCase):
    """Tests for push_candidates and push_content_object."""

    def setUp(self):
        super().setUp()
        self.settings_override = override_settings(
            OBJECTFS_LOCAL_ROOT=self.local_root,
            OBJECTFS_REMOTE_BACKEND='filesystem',
            OBJECTFS_REMOTE_ROOT=self.remote_root,
            OBJECTFS_SIZE_THRESHOLD=0,
            OBJECTFS_MINIMUM_AGE=0,
            OBJECTFS_MAX_TASK_RUNTIME=0,
            OBJECTFS_ASYNC_PUSH=False,
        )
        self.settings_override.enable()

    def tearDown(self):
        self.settings_override.disable()
        super().tearDown()

    def test_push_candidates_migrates_eligible_objects(self):
        objects = [self.create_local_object(f"Task {i}".encode()) for i in range(3)]

        result = tasks.push_candidates()

        self.assertTrue(result['success'])
        self.assertEqual(result['migrated'], 3)
        self.assertEqual(result['uploaded'], 3)
        for content_object in objects:
            self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)

    def test_push_candidates_without_candidates(self):
        result = tasks.push_candidates()

        self.assertEqual(result, {'success': True, 'total': 0, 'migrated': 0, 'skipped': 0, 'failed': 0})

    def test_push_candidates_respects_settings_policy(self):
        small = self.create_local_object(b'tiny')
        large = self.create_local_object(b'l' * 200)

        with override_settings(OBJECTFS_SIZE_THRESHOLD=100):
            result = tasks.push_candidates()

        self.assertEqual(result['migrated'], 1)
        self.assertEqual(self.location_of(small), ObjectLocation.LOCAL_ONLY)
        self.assertEqual(self.location_of(large), ObjectLocation.DUPLICATED)

    def test_push_candidates_second_run_is_noop(self):
        self.create_local_object(b'Only once')

        tasks.push_candidates()
        result = tasks.push_candidates()

        self.assertEqual(result['total'], 0)

    @override_settings(OBJECTFS_ASYNC_PUSH=True)
    def test_push_candidates_fans_out_when_async(self):
        objects = [self.create_local_object(f"Async {i}".encode()) for i in range(2)]

        with patch.object(tasks.push_content_object, 'delay') as delay:
            result = tasks.push_candidates()

        self.assertEqual(result, {'success': True, 'queued': 2})
        queued = sorted(call.args[0] for call in delay.call_args_list)
        self.assertEqual(queued, sorted(o.hash for o in objects))
        for content_object in objects:
            self.assertEqual(self.location_of(content_object), ObjectLocation.LOCAL_ONLY)

    def test_push_content_object(self):
        content_object = self.create_local_object(b'Single task')

        result = tasks.push_content_object(content_object.hash)

        self.assertEqual(result['status'], 'migrated')
        self.assertEqual(result['location'], 'DUPLICATED')
        self.assertEqual(result['checksum'], self.md5_of(b'Single task'))
        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
