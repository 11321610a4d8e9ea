"""
Shared fixtures for offload tests.

OffloadTestCase gives every test a temporary local and remote store and
helpers to create objects in each location.
"""

import hashlib
import shutil
import tempfile
from datetime import timedelta
from io import BytesIO

from django.core.files.base import ContentFile
from django.test import TestCase
from django.utils import timezone

from contracts.models import ContentObject, FileReference, ObjectLocation

from .conf import MigrationPolicy
from .exceptions import TransferError
from .services import ContentRepository, FileSystemContentStore, Pusher


class FailingStream:
    """Binary stream that raises OSError once `fail_after` bytes have been read."""

    def __init__(self, content: bytes, fail_after: int):
        self.stream = BytesIO(content)
        self.fail_after = fail_after

    def read(self, size=-1):
        remaining = self.fail_after - self.stream.tell()
        if remaining <= 0:
            raise OSError('connection reset')
        if size is None or size < 0 or size > remaining:
            size = remaining
        return self.stream.read(size)

    def close(self):
        self.stream.close()


class RecordingContentStore(FileSystemContentStore):
    """Filesystem store that records writes and can be told to fail them."""

    def __init__(self, location, fail_writes_for=()):
        super().__init__(location)
        self.writes = []
        self.fail_writes_for = set(fail_writes_for)

    def write(self, content_hash, stream):
        if content_hash in self.fail_writes_for:
            raise TransferError(content_hash, 'simulated transfer failure')
        self.writes.append(content_hash)
        super().write(content_hash, stream)

    def seed(self, content_hash, content: bytes):
        """Place bytes without recording a write."""
        self.storage.save(self.path(content_hash), ContentFile(content))


class OffloadTestCase(TestCase):
    """Base test case with temporary stores and object factories."""

    def setUp(self):
        self.local_root = tempfile.mkdtemp()
        self.remote_root = tempfile.mkdtemp()
        self.local_store = FileSystemContentStore(self.local_root)
        self.remote_store = RecordingContentStore(self.remote_root)
        self.repository = ContentRepository()
        self.policy = MigrationPolicy(size_threshold=0, minimum_age=0)
        self.pusher = self.make_pusher()

    def tearDown(self):
        shutil.rmtree(self.local_root, ignore_errors=True)
        shutil.rmtree(self.remote_root, ignore_errors=True)

    def make_pusher(self, policy=None, max_runtime=0, remote_store=None) -> Pusher:
        return Pusher(
            local_store=self.local_store,
            remote_store=remote_store or self.remote_store,
            repository=self.repository,
            policy=policy or self.policy,
            max_runtime=max_runtime,
        )

    @staticmethod
    def hash_of(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    @staticmethod
    def md5_of(content: bytes) -> str:
        return hashlib.md5(content).hexdigest()

    def create_local_object(self, content: bytes = b'Local object content') -> ContentObject:
        content_hash = self.hash_of(content)
        self.local_store.write(content_hash, BytesIO(content))
        content_object, _ = self.repository.register_local(content_hash, len(content))
        FileReference.objects.create(
            original_filename=f"{content_hash[:8]}.bin",
            file_type='application/octet-stream',
            content=content_object,
        )
        return content_object

    def create_duplicated_object(self, content: bytes = b'Duplicated object content') -> ContentObject:
        content_object = self.create_local_object(content)
        self.remote_store.seed(content_object.hash, content)
        self.set_fields(content_object, location=ObjectLocation.DUPLICATED, checksum=self.md5_of(content))
        return self.reload(content_object)

    def create_remote_object(self, content: bytes = b'Remote object content') -> ContentObject:
        content_object = self.create_duplicated_object(content)
        self.local_store.storage.delete(self.local_store.path(content_object.hash))
        self.set_fields(content_object, location=ObjectLocation.REMOTE_ONLY)
        return self.reload(content_object)

    def set_fields(self, content_object: ContentObject, **fields) -> None:
        ContentObject.objects.filter(hash=content_object.hash).update(**fields)

    def set_age(self, content_object: ContentObject, seconds: int) -> None:
        self.set_fields(content_object, created_at=timezone.now() - timedelta(seconds=seconds))

    def reload(self, content_object: ContentObject) -> ContentObject:
        return ContentObject.objects.get(hash=content_object.hash)

    def location_of(self, content_object: ContentObject) -> int:
        return self.reload(content_object).location
