"""
Unit Tests for Content Addressing and Content Stores
====================================================
Tests cover:
- Content hash and checksum computation
- Filesystem store reads and writes
- S3 store behaviour against a mocked boto3 client
- Store factories
"""

import hashlib
import os
import shutil
import tempfile
from io import BytesIO
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError, EndpointConnectionError
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from offload.exceptions import ObjectNotFound, TransferError
from offload.services import (
    FileSystemContentStore,
    S3ContentStore,
    compute_checksum,
    compute_hash,
    content_path,
    create_local_store,
    create_remote_store,
)
from offload.testutils import FailingStream

HASH = hashlib.sha256(b'stored content').hexdigest()


def client_error(code, operation='HeadObject'):
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


class AddressingTests(SimpleTestCase):
    """Tests for hashing helpers."""

    def test_compute_hash_returns_sha256(self):
        content = b"Hello, World!"

        self.assertEqual(compute_hash(BytesIO(content)), hashlib.sha256(content).hexdigest())

    def test_compute_hash_resets_file_pointer(self):
        stream = BytesIO(b"Test content")

        compute_hash(stream)

        self.assertEqual(stream.read(), b"Test content")

    def test_compute_hash_different_content_different_hash(self):
        self.assertNotEqual(compute_hash(BytesIO(b"Content A")), compute_hash(BytesIO(b"Content B")))

    def test_compute_checksum_returns_md5(self):
        content = b"x" * 200000

        self.assertEqual(compute_checksum(BytesIO(content)), hashlib.md5(content).hexdigest())

    def test_checksum_differs_from_content_hash(self):
        content = b"Same bytes"

        self.assertNotEqual(compute_checksum(BytesIO(content)), compute_hash(BytesIO(content)))

    def test_content_path_is_sharded(self):
        self.assertEqual(content_path('abcdef'), 'cas/ab/cd/abcdef')
        self.assertEqual(content_path('abcdef', prefix=''), 'ab/cd/abcdef')


class FileSystemContentStoreTests(SimpleTestCase):
    """Tests for FileSystemContentStore."""

    def setUp(self):
        self.root = tempfile.mkdtemp()
        self.store = FileSystemContentStore(self.root)

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def test_write_then_read(self):
        self.store.write(HASH, BytesIO(b'stored content'))

        self.assertTrue(self.store.exists(HASH))
        with self.store.open(HASH) as stream:
            self.assertEqual(stream.read(), b'stored content')

    def test_missing_object(self):
        self.assertFalse(self.store.exists(HASH))
        with self.assertRaises(ObjectNotFound):
            self.store.open(HASH)

    def test_write_existing_hash_is_noop(self):
        self.store.write(HASH, BytesIO(b'stored content'))
        self.store.write(HASH, BytesIO(b'stored content'))

        with self.store.open(HASH) as stream:
            self.assertEqual(stream.read(), b'stored content')

    def test_checksum_of_stored_bytes(self):
        self.store.write(HASH, BytesIO(b'stored content'))

        self.assertEqual(self.store.checksum(HASH), hashlib.md5(b'stored content').hexdigest())

    def test_write_failure_raises_transfer_error(self):
        with self.assertRaises(TransferError):
            self.store.write(HASH, FailingStream(b'x' * 100000, fail_after=65536))

    def test_failed_write_leaves_no_partial_object(self):
        with self.assertRaises(TransferError):
            self.store.write(HASH, FailingStream(b'x' * 100000, fail_after=65536))

        self.assertFalse(self.store.exists(HASH))
        directory = os.path.dirname(self.store.storage.path(self.store.path(HASH)))
        self.assertEqual(os.listdir(directory), [])

        self.store.write(HASH, BytesIO(b'stored content'))
        self.assertEqual(self.store.checksum(HASH), hashlib.md5(b'stored content').hexdigest())

    def test_concurrent_writes_of_same_hash_leave_one_file(self):
        """A writer that finds no object yet still lands on the final name."""
        self.store.write(HASH, BytesIO(b'stored content'))

        with patch.object(self.store.storage, 'exists', return_value=False):
            self.store.write(HASH, BytesIO(b'stored content'))

        directory = os.path.dirname(self.store.storage.path(self.store.path(HASH)))
        self.assertEqual(os.listdir(directory), [HASH])


class S3ContentStoreTests(SimpleTestCase):
    """Tests for S3ContentStore with a mocked client."""

    def setUp(self):
        self.client = MagicMock()
        self.store = S3ContentStore(bucket='objects', key_prefix='files', client=self.client)

    def test_key_uses_prefix(self):
        self.assertEqual(self.store.key('abcdef'), 'files/ab/cd/abcdef')

    def test_exists_true(self):
        self.client.head_object.return_value = {'ETag': '"abc"'}

        self.assertTrue(self.store.exists(HASH))
        self.client.head_object.assert_called_once_with(Bucket='objects', Key=self.store.key(HASH))

    def test_exists_false_on_404(self):
        self.client.head_object.side_effect = client_error('404')

        self.assertFalse(self.store.exists(HASH))

    def test_exists_raises_other_errors(self):
        self.client.head_object.side_effect = client_error('403')

        with self.assertRaises(ClientError):
            self.store.exists(HASH)

    def test_open_returns_body(self):
        body = BytesIO(b'stored content')
        self.client.get_object.return_value = {'Body': body}

        self.assertIs(self.store.open(HASH), body)

    def test_open_missing_raises_not_found(self):
        self.client.get_object.side_effect = client_error('NoSuchKey', 'GetObject')

        with self.assertRaises(ObjectNotFound):
            self.store.open(HASH)

    def test_write_uses_single_put(self):
        stream = BytesIO(b'stored content')

        self.store.write(HASH, stream)

        self.client.put_object.assert_called_once_with(Bucket='objects', Key=self.store.key(HASH), Body=stream)

    def test_write_client_error_raises_transfer_error(self):
        self.client.put_object.side_effect = client_error('500', 'PutObject')

        with self.assertRaises(TransferError):
            self.store.write(HASH, BytesIO(b'stored content'))

    def test_write_connection_error_raises_transfer_error(self):
        self.client.put_object.side_effect = EndpointConnectionError(endpoint_url='http://s3')

        with self.assertRaises(TransferError):
            self.store.write(HASH, BytesIO(b'stored content'))

    def test_checksum_from_etag(self):
        self.client.head_object.return_value = {'ETag': '"0123456789abcdef0123456789abcdef"'}

        self.assertEqual(self.store.checksum(HASH), '0123456789abcdef0123456789abcdef')
        self.client.get_object.assert_not_called()

    def test_checksum_multipart_etag_reads_body(self):
        self.client.head_object.return_value = {'ETag': '"0123456789abcdef-2"'}
        self.client.get_object.return_value = {'Body': BytesIO(b'stored content')}

        self.assertEqual(self.store.checksum(HASH), hashlib.md5(b'stored content').hexdigest())

    def test_checksum_sse_s3_etag_is_trusted(self):
        self.client.head_object.return_value = {
            'ETag': '"0123456789abcdef0123456789abcdef"',
            'ServerSideEncryption': 'AES256',
        }

        self.assertEqual(self.store.checksum(HASH), '0123456789abcdef0123456789abcdef')
        self.client.get_object.assert_not_called()

    def test_checksum_sse_kms_etag_reads_body(self):
        self.client.head_object.return_value = {
            'ETag': '"fedcba9876543210fedcba9876543210"',
            'ServerSideEncryption': 'aws:kms',
            'SSEKMSKeyId': 'arn:aws:kms:eu-west-1:123456789012:key/objects',
        }
        self.client.get_object.return_value = {'Body': BytesIO(b'stored content')}

        self.assertEqual(self.store.checksum(HASH), hashlib.md5(b'stored content').hexdigest())

    def test_checksum_sse_c_etag_reads_body(self):
        self.client.head_object.return_value = {
            'ETag': '"fedcba9876543210fedcba9876543210"',
            'SSECustomerAlgorithm': 'AES256',
        }
        self.client.get_object.return_value = {'Body': BytesIO(b'stored content')}

        self.assertEqual(self.store.checksum(HASH), hashlib.md5(b'stored content').hexdigest())

    def test_checksum_missing_raises_not_found(self):
        self.client.head_object.side_effect = client_error('404')

        with self.assertRaises(ObjectNotFound):
            self.store.checksum(HASH)

    def test_builds_boto3_client_with_credentials(self):
        with patch('offload.services.stores.boto3.client') as boto_client:
            S3ContentStore(
                bucket='objects',
                region='eu-west-1',
                endpoint_url='http://minio:9000',
                access_key='key',
                secret_key='secret',
            )

        boto_client.assert_called_once_with(
            's3',
            region_name='eu-west-1',
            endpoint_url='http://minio:9000',
            aws_access_key_id='key',
            aws_secret_access_key='secret',
        )


class StoreFactoryTests(SimpleTestCase):
    """Tests for create_local_store and create_remote_store."""

    @override_settings(OBJECTFS_LOCAL_ROOT='/tmp/objectfs-local')
    def test_local_store_root(self):
        store = create_local_store()

        self.assertIsInstance(store, FileSystemContentStore)
        self.assertEqual(store.name, '/tmp/objectfs-local')

    @override_settings(OBJECTFS_REMOTE_BACKEND='filesystem', OBJECTFS_REMOTE_ROOT='/tmp/objectfs-remote')
    def test_filesystem_remote(self):
        self.assertIsInstance(create_remote_store(), FileSystemContentStore)

    @override_settings(OBJECTFS_REMOTE_BACKEND='s3', OBJECTFS_S3_BUCKET='objects', OBJECTFS_S3_KEY_PREFIX='prod')
    def test_s3_remote(self):
        with patch('offload.services.stores.boto3.client'):
            store = create_remote_store()

        self.assertIsInstance(store, S3ContentStore)
        self.assertEqual(store.name, 's3://objects/prod')

    @override_settings(OBJECTFS_REMOTE_BACKEND='s3', OBJECTFS_S3_BUCKET=None)
    def test_s3_remote_requires_bucket(self):
        with self.assertRaises(ImproperlyConfigured):
            create_remote_store()

    @override_settings(OBJECTFS_REMOTE_BACKEND='ftp')
    def test_unsupported_backend(self):
        with self.assertRaises(ImproperlyConfigured):
            create_remote_store()
