"""
Unit Tests for Candidate Selection and the Content Repository
=============================================================
Tests cover:
- Candidate selection by location, size and age
- Conditional location transitions
- Idempotent checksum recording
- Location summaries
"""

from datetime import timedelta

from django.utils import timezone

from contracts.models import ContentObject, ObjectLocation
from offload.conf import MigrationPolicy
from offload.exceptions import ConcurrentModification, IntegrityMismatch, InvalidTransition
from offload.services import CandidateSelector, ContentRepository
from offload.testutils import OffloadTestCase


class CandidateSelectorTests(OffloadTestCase):
    """Tests for CandidateSelector.select_candidates."""

    def select(self, **policy):
        selector = CandidateSelector(self.repository, MigrationPolicy(**policy))
        return [candidate.hash for candidate in selector.select_candidates()]

    def test_selects_local_objects(self):
        content_object = self.create_local_object()

        self.assertIn(content_object.hash, self.select())

    def test_excludes_duplicated_and_remote_objects(self):
        duplicated = self.create_duplicated_object()
        remote = self.create_remote_object()

        candidates = self.select()

        self.assertNotIn(duplicated.hash, candidates)
        self.assertNotIn(remote.hash, candidates)

    def test_excludes_objects_bigger_than_max_size(self):
        """Scenario h4: 9,999,999,999 bytes exceeds the migratable ceiling."""
        content_object = self.create_local_object()
        self.set_fields(content_object, size=9999999999)

        self.assertNotIn(content_object.hash, self.select(size_threshold=0))

    def test_max_size_is_exclusive(self):
        at_limit = self.create_local_object(b'At the limit')
        below_limit = self.create_local_object(b'Below the limit')
        self.set_fields(at_limit, size=ContentRepository.MAX_MIGRATABLE_SIZE)
        self.set_fields(below_limit, size=ContentRepository.MAX_MIGRATABLE_SIZE - 1)

        candidates = self.select()

        self.assertNotIn(at_limit.hash, candidates)
        self.assertIn(below_limit.hash, candidates)

    def test_excludes_objects_under_size_threshold(self):
        """Scenario h2: 10 bytes under a 100 byte threshold."""
        content_object = self.create_local_object()
        self.set_fields(content_object, size=10)

        self.assertNotIn(content_object.hash, self.select(size_threshold=100))

    def test_includes_objects_at_size_threshold(self):
        content_object = self.create_local_object()
        self.set_fields(content_object, size=100)

        self.assertIn(content_object.hash, self.select(size_threshold=100))

    def test_excludes_objects_younger_than_minimum_age(self):
        """Scenario h3: created 5s ago under a 100s minimum age."""
        content_object = self.create_local_object()
        self.set_age(content_object, 5)

        self.assertNotIn(content_object.hash, self.select(minimum_age=100))

    def test_includes_objects_older_than_minimum_age(self):
        content_object = self.create_local_object()
        self.set_age(content_object, 500)

        self.assertIn(content_object.hash, self.select(minimum_age=100))

    def test_age_is_evaluated_at_selection_time(self):
        """The same object becomes eligible once it is old enough."""
        content_object = self.create_local_object()
        policy = MigrationPolicy(minimum_age=100)
        now = timezone.now()

        early = self.repository.list_candidates(policy, now=now)
        later = self.repository.list_candidates(policy, now=now + timedelta(seconds=200))

        self.assertNotIn(content_object.hash, [c.hash for c in early])
        self.assertIn(content_object.hash, [c.hash for c in later])

    def test_shared_content_is_selected_once(self):
        """Deduplicated content with several references is one candidate."""
        content_object = self.create_local_object(b'Shared bytes')
        content_object.references.create(original_filename='copy.bin', file_type='application/octet-stream')

        self.assertEqual(self.select().count(content_object.hash), 1)

    def test_selects_oldest_first(self):
        newer = self.create_local_object(b'Newer')
        older = self.create_local_object(b'Older')
        self.set_age(newer, 10)
        self.set_age(older, 1000)

        self.assertEqual(self.select(), [older.hash, newer.hash])


class ContentRepositoryTests(OffloadTestCase):
    """Tests for ContentRepository writes."""

    def test_register_local_creates_local_only_record(self):
        content_object, created = self.repository.register_local('a' * 64, 42)

        self.assertTrue(created)
        self.assertEqual(content_object.location, ObjectLocation.LOCAL_ONLY)
        self.assertIsNone(content_object.checksum)

    def test_register_local_keeps_existing_record(self):
        content_object = self.create_duplicated_object()

        existing, created = self.repository.register_local(content_object.hash, content_object.size)

        self.assertFalse(created)
        self.assertEqual(existing.location, ObjectLocation.DUPLICATED)

    def test_record_checksum_sets_value(self):
        content_object = self.create_local_object()

        self.repository.record_checksum(content_object.hash, 'abc123')

        self.assertEqual(self.reload(content_object).checksum, 'abc123')

    def test_record_checksum_same_value_is_idempotent(self):
        content_object = self.create_local_object()

        self.repository.record_checksum(content_object.hash, 'abc123')
        self.repository.record_checksum(content_object.hash, 'abc123')

        self.assertEqual(self.reload(content_object).checksum, 'abc123')

    def test_record_checksum_mismatch_raises(self):
        content_object = self.create_local_object()
        self.repository.record_checksum(content_object.hash, 'abc123')

        with self.assertRaises(IntegrityMismatch) as ctx:
            self.repository.record_checksum(content_object.hash, 'def456')

        self.assertEqual(ctx.exception.expected, 'abc123')
        self.assertEqual(ctx.exception.actual, 'def456')
        self.assertEqual(self.reload(content_object).checksum, 'abc123')

    def test_record_checksum_unknown_hash_raises(self):
        with self.assertRaises(ContentObject.DoesNotExist):
            self.repository.record_checksum('f' * 64, 'abc123')

    def test_transition_location_moves_object(self):
        content_object = self.create_local_object()

        self.repository.transition_location(
            content_object.hash, ObjectLocation.LOCAL_ONLY, ObjectLocation.DUPLICATED
        )

        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)

    def test_transition_location_wrong_from_state_raises(self):
        content_object = self.create_duplicated_object()

        with self.assertRaises(ConcurrentModification):
            self.repository.transition_location(
                content_object.hash, ObjectLocation.LOCAL_ONLY, ObjectLocation.DUPLICATED
            )

        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)

    def test_transition_location_second_worker_loses(self):
        content_object = self.create_local_object()
        self.repository.transition_location(
            content_object.hash, ObjectLocation.LOCAL_ONLY, ObjectLocation.DUPLICATED
        )

        with self.assertRaises(ConcurrentModification):
            ContentRepository().transition_location(
                content_object.hash, ObjectLocation.LOCAL_ONLY, ObjectLocation.DUPLICATED
            )

    def test_transition_location_rejects_invalid_transition(self):
        content_object = self.create_remote_object()

        with self.assertRaises(InvalidTransition):
            self.repository.transition_location(
                content_object.hash, ObjectLocation.REMOTE_ONLY, ObjectLocation.LOCAL_ONLY
            )

        self.assertEqual(self.location_of(content_object), ObjectLocation.REMOTE_ONLY)

    def test_location_summary_counts_every_location(self):
        self.create_local_object(b'12345')
        self.create_local_object(b'1234567890')
        self.create_duplicated_object(b'123')

        summary = {row['location']: row for row in self.repository.location_summary()}

        self.assertEqual(summary['LOCAL_ONLY']['count'], 2)
        self.assertEqual(summary['LOCAL_ONLY']['size_bytes'], 15)
        self.assertEqual(summary['DUPLICATED']['count'], 1)
        self.assertEqual(summary['DUPLICATED']['size_bytes'], 3)
        self.assertEqual(summary['REMOTE_ONLY']['count'], 0)
        self.assertEqual(summary['REMOTE_ONLY']['size_bytes'], 0)
