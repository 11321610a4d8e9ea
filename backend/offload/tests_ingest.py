"""
Unit Tests for Ingest and Location-Aware Reads
==============================================
Tests cover:
- Ingest with deduplication
- Local store layout of ingested content
- Reads served from the recorded location
"""

from unittest.mock import patch

from django.core.files.uploadedfile import SimpleUploadedFile

from contracts.models import ContentObject, FileReference, ObjectLocation
from offload.exceptions import ReadUnavailable, TransferError
from offload.services import ContentReader, IngestService
from offload.testutils import FailingStream, OffloadTestCase


class IngestServiceTests(OffloadTestCase):
    """Tests for IngestService.ingest_file."""

    def setUp(self):
        super().setUp()
        self.ingest = IngestService(self.local_store, self.repository)

    def _create_test_file(self, content: bytes, filename: str = 'test.txt') -> SimpleUploadedFile:
        """Helper to create a test file."""
        return SimpleUploadedFile(filename, content, content_type='text/plain')

    def test_ingest_new_file_creates_local_only_object(self):
        content = b"New unique content"

        reference, is_duplicate = self.ingest.ingest_file(self._create_test_file(content), 'test.txt', 'text/plain')

        self.assertFalse(is_duplicate)
        content_object = reference.content
        self.assertEqual(content_object.hash, self.hash_of(content))
        self.assertEqual(content_object.size, len(content))
        self.assertEqual(content_object.location, ObjectLocation.LOCAL_ONLY)
        self.assertTrue(self.local_store.exists(content_object.hash))

    def test_ingest_stores_correct_metadata(self):
        reference, _ = self.ingest.ingest_file(self._create_test_file(b"Doc"), 'document.txt', 'text/plain')

        self.assertEqual(reference.original_filename, 'document.txt')
        self.assertEqual(reference.file_type, 'text/plain')
        self.assertEqual(reference.size, 3)

    def test_ingest_duplicate_shares_content(self):
        content = b"Duplicate content"

        first, _ = self.ingest.ingest_file(self._create_test_file(content, 'first.txt'), 'first.txt', 'text/plain')
        second, is_duplicate = self.ingest.ingest_file(
            self._create_test_file(content, 'second.txt'), 'second.txt', 'text/plain'
        )

        self.assertTrue(is_duplicate)
        self.assertEqual(first.content.hash, second.content.hash)
        self.assertEqual(ContentObject.objects.count(), 1)
        self.assertEqual(FileReference.objects.count(), 2)

    def test_ingest_duplicate_of_migrated_content_keeps_location(self):
        content_object = self.create_duplicated_object(b"Already offloaded")

        reference, is_duplicate = self.ingest.ingest_file(
            self._create_test_file(b"Already offloaded"), 'again.txt', 'text/plain'
        )

        self.assertTrue(is_duplicate)
        self.assertEqual(reference.content.location, ObjectLocation.DUPLICATED)
        self.assertEqual(self.location_of(content_object), ObjectLocation.DUPLICATED)

    def test_ingest_stores_file_in_cas_path(self):
        reference, _ = self.ingest.ingest_file(self._create_test_file(b"CAS test"), 'test.txt', 'text/plain')

        content_hash = reference.content.hash
        self.assertEqual(
            self.local_store.path(content_hash),
            f"cas/{content_hash[:2]}/{content_hash[2:4]}/{content_hash}",
        )
        with self.local_store.open(content_hash) as stream:
            self.assertEqual(stream.read(), b"CAS test")

    def test_ingest_after_interrupted_write_stores_full_content(self):
        """A write that fails mid-stream is rolled back and the next ingest stores every byte."""
        content = b"r" * (200 * 1024)
        write_local = self.local_store.write

        def interrupted_write(content_hash, stream):
            write_local(content_hash, FailingStream(content, fail_after=64 * 1024))

        with patch.object(self.local_store, 'write', side_effect=interrupted_write):
            with self.assertRaises(TransferError):
                self.ingest.ingest_file(self._create_test_file(content), 'big.bin', 'application/octet-stream')

        self.assertEqual(ContentObject.objects.count(), 0)
        self.assertFalse(self.local_store.exists(self.hash_of(content)))

        reference, is_duplicate = self.ingest.ingest_file(
            self._create_test_file(content), 'big.bin', 'application/octet-stream'
        )

        self.assertFalse(is_duplicate)
        with self.local_store.open(reference.content.hash) as stream:
            self.assertEqual(stream.read(), content)

    def test_ingest_empty_files_deduplicate(self):
        self.ingest.ingest_file(self._create_test_file(b"", 'empty1.txt'), 'empty1.txt', 'text/plain')
        _, is_duplicate = self.ingest.ingest_file(self._create_test_file(b"", 'empty2.txt'), 'empty2.txt', 'text/plain')

        self.assertTrue(is_duplicate)
        self.assertEqual(ContentObject.objects.count(), 1)


class ContentReaderTests(OffloadTestCase):
    """Tests for ContentReader."""

    def setUp(self):
        super().setUp()
        self.reader = ContentReader(self.local_store, self.remote_store, self.repository)

    def test_reads_local_object(self):
        content_object = self.create_local_object(b"Local bytes")

        self.assertEqual(self.reader.read(content_object.hash), b"Local bytes")

    def test_reads_remote_object(self):
        content_object = self.create_remote_object(b"Remote bytes")

        self.assertEqual(self.reader.read(content_object.hash), b"Remote bytes")

    def test_duplicated_object_falls_back_to_remote(self):
        content_object = self.create_duplicated_object(b"Both places")
        self.local_store.storage.delete(self.local_store.path(content_object.hash))

        self.assertEqual(self.reader.read(content_object.hash), b"Both places")

    def test_pushed_object_stays_readable(self):
        content_object = self.create_local_object(b"Readable throughout")

        self.pusher.push([content_object])

        self.assertEqual(self.reader.read(content_object.hash), b"Readable throughout")

    def test_local_object_missing_raises(self):
        content_object = self.create_local_object(b"Gone")
        self.local_store.storage.delete(self.local_store.path(content_object.hash))

        with self.assertRaises(ReadUnavailable):
            self.reader.read(content_object.hash)
