"""
Unit Tests for the Migration Engine
===================================
Tests cover:
- Pushing local, duplicated and remote objects
- Checksum derivation and recording
- Idempotent re-runs
- Failure isolation within a batch
- Integrity mismatches and concurrent workers
- Run time budget
"""

import os
from unittest.mock import patch

from contracts.models import ContentObject, ObjectLocation
from offload.conf import MigrationPolicy
from offload.exceptions import ConcurrentModification
from offload.services import PushStatus
from offload.services import pusher as pusher_module
from offload.testutils import FailingStream, OffloadTestCase, RecordingContentStore


class PusherTests(OffloadTestCase):
    """Tests for Pusher.push and Pusher.push_object."""

    # ===================
    # Location Tests
    # ===================

    def test_push_local_object_becomes_duplicated(self):
        """A readable local object should end up DUPLICATED and readable from both stores."""
        content_object = self.create_local_object()

        report = self.pusher.push([content_object])

        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
        self.assertTrue(self.local_store.exists(content_object.hash))
        self.assertTrue(self.remote_store.exists(content_object.hash))
        self.assertEqual(len(report.migrated), 1)

    def test_push_keeps_duplicated_object_duplicated(self):
        """Already duplicated objects should stay duplicated without a new upload."""
        content_object = self.create_duplicated_object()

        report = self.pusher.push([content_object])

        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
        self.assertTrue(self.local_store.exists(content_object.hash))
        self.assertTrue(self.remote_store.exists(content_object.hash))
        self.assertEqual(self.remote_store.writes, [])
        self.assertEqual(report.outcome_for(content_object.hash).status, PushStatus.SKIPPED)

    def test_push_keeps_remote_object_remote(self):
        """Remote-only objects should stay remote-only and unreadable locally."""
        content_object = self.create_remote_object()

        self.pusher.push([content_object])

        self.assertEqual(self.location_of(content_object), ObjectLocation.REMOTE_ONLY)
        self.assertFalse(self.local_store.exists(content_object.hash))
        self.assertTrue(self.remote_store.exists(content_object.hash))

    def test_push_local_object_already_uploaded_skips_upload(self):
        """Bytes left remotely by an interrupted run are verified, not re-uploaded."""
        content = b'Uploaded before the crash'
        content_object = self.create_local_object(content)
        self.remote_store.seed(content_object.hash, content)

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.MIGRATED)
        self.assertFalse(outcome.uploaded)
        self.assertEqual(self.remote_store.writes, [])
        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)

    def test_push_local_record_with_missing_local_copy_becomes_remote_only(self):
        """LOCAL_ONLY metadata with bytes only remote should move to REMOTE_ONLY."""
        content = b'Local copy lost after upload'
        content_object = self.create_local_object(content)
        self.remote_store.seed(content_object.hash, content)
        self.local_store.storage.delete(self.local_store.path(content_object.hash))

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.MIGRATED)
        self.assertEqual(self.location_of(content_object), ObjectLocation.REMOTE_ONLY)
        self.assertFalse(self.local_store.exists(content_object.hash))
        self.assertEqual(self.reload(content_object).checksum, self.md5_of(content))

    def test_push_unreadable_object_is_skipped_and_unchanged(self):
        """Objects readable from neither store should be skipped and stay LOCAL_ONLY."""
        content_object = self.create_local_object()
        self.local_store.storage.delete(self.local_store.path(content_object.hash))

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.SKIPPED)
        self.assertEqual(outcome.reason, pusher_module.REASON_READ_UNAVAILABLE)
        self.assertEqual(self.location_of(content_object), ObjectLocation.LOCAL_ONLY)
        self.assertIsNone(self.reload(content_object).checksum)

    def test_push_unknown_hash_is_skipped(self):
        """Hashes without a metadata record should be skipped."""
        outcome = self.pusher.push_object('0' * 64)

        self.assertEqual(outcome.status, PushStatus.SKIPPED)
        self.assertEqual(outcome.reason, pusher_module.REASON_UNKNOWN_OBJECT)

    def test_push_duplicated_record_with_missing_local_copy_is_left_alone(self):
        """DUPLICATED -> REMOTE_ONLY belongs to the cleaner, not the pusher."""
        content_object = self.create_duplicated_object()
        self.local_store.storage.delete(self.local_store.path(content_object.hash))

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.SKIPPED)
        self.assertEqual(outcome.reason, pusher_module.REASON_LOCATION_MISMATCH)
        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)

    # ===================
    # Checksum Tests
    # ===================

    def test_push_records_checksum_of_local_bytes(self):
        """Recorded checksum should be the MD5 of the local bytes."""
        content = b'Checksum me'
        content_object = self.create_local_object(content)

        self.pusher.push([content_object])

        self.assertEqual(self.reload(content_object).checksum, self.md5_of(content))

    def test_push_uses_remote_checksum_if_not_local(self):
        """Remote-only objects get their checksum from the remote store."""
        content_object = self.create_remote_object()
        self.set_fields(content_object, checksum=None)

        with patch.object(RecordingContentStore, 'checksum', return_value='mockmd5'):
            self.pusher.push([content_object])

        self.assertEqual(self.reload(content_object).checksum, 'mockmd5')

    def test_push_remote_checksum_mismatch_is_failure(self):
        """A remote copy with different bytes must not be marked duplicated."""
        content_object = self.create_local_object(b'Local truth')
        self.remote_store.seed(content_object.hash, b'Corrupted remote bytes')

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.FAILED)
        self.assertEqual(outcome.reason, pusher_module.REASON_INTEGRITY_MISMATCH)
        self.assertEqual(self.location_of(content_object), ObjectLocation.LOCAL_ONLY)
        self.assertIsNone(self.reload(content_object).checksum)

    def test_push_recorded_checksum_mismatch_is_failure(self):
        """A previously recorded checksum is never overwritten."""
        content_object = self.create_local_object(b'Bytes changed on disk')
        self.set_fields(content_object, checksum='0' * 32)

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.FAILED)
        self.assertEqual(outcome.reason, pusher_module.REASON_INTEGRITY_MISMATCH)
        self.assertEqual(self.reload(content_object).checksum, '0' * 32)
        self.assertEqual(self.location_of(content_object), ObjectLocation.LOCAL_ONLY)

    # ===================
    # Batch Tests
    # ===================

    def test_push_multiple_objects(self):
        """Every object in a batch should be duplicated."""
        objects = [self.create_local_object(f"Object {i}".encode()) for i in range(5)]

        report = self.pusher.push(objects)

        self.assertEqual(len(report.migrated), 5)
        for content_object in objects:
            self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
            self.assertTrue(self.local_store.exists(content_object.hash))
            self.assertTrue(self.remote_store.exists(content_object.hash))

    def test_push_twice_is_idempotent(self):
        """A second run should not upload again or change state."""
        objects = [self.create_local_object(f"Idempotent {i}".encode()) for i in range(3)]

        self.pusher.push(objects)
        after_first = {o.hash: (o.location, o.checksum) for o in ContentObject.objects.all()}
        second = self.pusher.push(objects)
        after_second = {o.hash: (o.location, o.checksum) for o in ContentObject.objects.all()}

        self.assertEqual(len(self.remote_store.writes), 3)
        self.assertEqual(second.uploaded_count, 0)
        self.assertEqual(len(second.skipped), 3)
        self.assertEqual(after_first, after_second)

    def test_push_same_hash_twice_in_batch_uploads_once(self):
        """Distinct hashes only: repeated candidates are processed once."""
        content_object = self.create_local_object()

        report = self.pusher.push([content_object, self.reload(content_object)])

        self.assertEqual(len(report.outcomes), 1)
        self.assertEqual(self.remote_store.writes, [content_object.hash])

    def test_push_failed_upload_does_not_affect_others(self):
        """One failed upload leaves the other objects duplicated."""
        objects = [self.create_local_object(f"Batch {i}".encode()) for i in range(4)]
        failing = objects[1]
        remote_store = RecordingContentStore(self.remote_root, fail_writes_for=[failing.hash])
        pusher = self.make_pusher(remote_store=remote_store)

        report = pusher.push(objects)

        self.assertEqual(report.outcome_for(failing.hash).status, PushStatus.FAILED)
        self.assertEqual(report.outcome_for(failing.hash).reason, pusher_module.REASON_TRANSFER_ERROR)
        self.assertEqual(self.location_of(failing), ObjectLocation.LOCAL_ONLY)
        self.assertIsNone(self.reload(failing).checksum)
        self.assertFalse(remote_store.exists(failing.hash))
        for content_object in objects:
            if content_object.hash != failing.hash:
                self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
        self.assertFalse(report.as_dict()['success'])

    def test_push_interrupted_upload_is_retried(self):
        """An upload that fails mid-stream leaves nothing remote and succeeds on the next run."""
        content = b'i' * (200 * 1024)
        content_object = self.create_local_object(content)
        open_local = self.local_store.open
        streams = iter([open_local(content_object.hash), FailingStream(content, fail_after=64 * 1024)])

        with patch.object(self.local_store, 'open', side_effect=lambda content_hash: next(streams)):
            outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.FAILED)
        self.assertEqual(outcome.reason, pusher_module.REASON_TRANSFER_ERROR)
        self.assertFalse(self.remote_store.exists(content_object.hash))
        leftovers = [files for _, _, files in os.walk(self.remote_root) if files]
        self.assertEqual(leftovers, [])
        self.assertEqual(self.location_of(content_object), ObjectLocation.LOCAL_ONLY)

        outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.MIGRATED)
        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
        self.assertEqual(self.reload(content_object).checksum, self.md5_of(content))

    def test_push_unexpected_error_does_not_abort_batch(self):
        """Unexpected exceptions are contained to their object."""
        first = self.create_local_object(b'First')
        second = self.create_local_object(b'Second')
        original_checksum = self.local_store.checksum

        def flaky_checksum(content_hash):
            if content_hash == first.hash:
                raise RuntimeError('disk error')
            return original_checksum(content_hash)

        with patch.object(self.local_store, 'checksum', side_effect=flaky_checksum):
            report = self.pusher.push([first, second])

        self.assertEqual(report.outcome_for(first.hash).reason, pusher_module.REASON_ERROR)
        self.assertEqual(self.location_of(first), ObjectLocation.LOCAL_ONLY)
        self.assertEqual(self.location_of(second), ObjectLocation.DUPLICATED)

    # ===================
    # Policy and Concurrency Tests
    # ===================

    def test_push_rechecks_policy(self):
        """Candidates outside the policy at push time are not migrated."""
        content_object = self.create_local_object(b'Small')
        pusher = self.make_pusher(policy=MigrationPolicy(size_threshold=100, minimum_age=0))

        outcome = pusher.push_object(content_object.hash)

        self.assertEqual(outcome.reason, pusher_module.REASON_OUTSIDE_POLICY)
        self.assertEqual(self.remote_store.writes, [])
        self.assertEqual(self.location_of(content_object), ObjectLocation.LOCAL_ONLY)

    def test_push_losing_conditional_update_is_skipped(self):
        """A worker that loses the transition treats the object as handled."""
        content_object = self.create_local_object()

        with patch.object(
            self.repository,
            'transition_location',
            side_effect=ConcurrentModification(content_object.hash),
        ):
            outcome = self.pusher.push_object(content_object.hash)

        self.assertEqual(outcome.status, PushStatus.SKIPPED)
        self.assertEqual(outcome.reason, pusher_module.REASON_CONCURRENT_MODIFICATION)

    def test_push_object_migrated_by_other_worker_is_not_uploaded(self):
        """A record another worker already moved is not pushed again."""
        content_object = self.create_local_object()
        self.pusher.push([content_object])
        other_remote = RecordingContentStore(self.remote_root)
        other = self.make_pusher(remote_store=other_remote)

        outcome = other.push_object(content_object.hash)

        self.assertEqual(outcome.reason, pusher_module.REASON_ALREADY_MIGRATED)
        self.assertEqual(other_remote.writes, [])

    def test_push_stops_starting_objects_after_max_runtime(self):
        """Objects beyond the run time budget stay LOCAL_ONLY for the next run."""
        objects = [self.create_local_object(f"Timed {i}".encode()) for i in range(3)]
        pusher = self.make_pusher(max_runtime=10)

        ticks = iter([0, 0, 5])

        with patch.object(pusher_module.time, 'monotonic', side_effect=lambda: next(ticks, 15)):
            report = pusher.push(objects)

        self.assertEqual(len(report.migrated), 2)
        self.assertEqual(report.outcomes[2].reason, pusher_module.REASON_RUNTIME_EXCEEDED)
        self.assertEqual(self.location_of(objects[2]), ObjectLocation.LOCAL_ONLY)

    # ===================
    # Scenario Tests
    # ===================

    def test_scenario_h1_selected_and_duplicated(self):
        """1000-byte fresh object with an open policy is selected and duplicated."""
        content = b'h' * 1000
        content_object = self.create_local_object(content)
        policy = MigrationPolicy(size_threshold=0, minimum_age=0)

        candidates = self.repository.list_candidates(policy)
        self.make_pusher(policy=policy).push(candidates)

        self.assertIn(content_object.hash, [c.hash for c in candidates])
        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)
        self.assertEqual(self.reload(content_object).checksum, self.md5_of(content))
