"""
Content Stores
==============
Local and remote byte stores behind one capability interface.

Every store is addressed by content hash only. The pusher is written
against ContentStore and never against a concrete backend.
"""

import logging
import os
import tempfile
from contextlib import closing, suppress

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.files import File
from django.core.files.storage import FileSystemStorage

from ..exceptions import ObjectNotFound, TransferError
from .addressing import DEFAULT_PREFIX, compute_checksum, content_path

logger = logging.getLogger(__name__)

S3_MISSING_CODES = ('404', 'NoSuchKey', 'NotFound')


class ContentStore:
    """
    Minimal content store interface.

    - exists(content_hash) -> bool
    - open(content_hash) -> binary stream, raises ObjectNotFound
    - write(content_hash, stream), raises TransferError
    - checksum(content_hash) -> MD5 hex digest of the stored bytes
    """
    name = 'store'

    def exists(self, content_hash: str) -> bool:
        raise NotImplementedError

    def open(self, content_hash: str):
        raise NotImplementedError

    def write(self, content_hash: str, stream) -> None:
        raise NotImplementedError

    def checksum(self, content_hash: str) -> str:
        with closing(self.open(content_hash)) as stream:
            return compute_checksum(stream)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"


class FileSystemContentStore(ContentStore):
    """
    Content store on a directory tree, using Django's FileSystemStorage.

    Objects live under {location}/{prefix}/{hash[0:2]}/{hash[2:4]}/{hash}.
    """

    def __init__(self, location, prefix: str = DEFAULT_PREFIX):
        self.storage = FileSystemStorage(location=location)
        self.prefix = prefix
        self.name = str(location)

    def path(self, content_hash: str) -> str:
        return content_path(content_hash, self.prefix)

    def exists(self, content_hash: str) -> bool:
        name = self.path(content_hash)
        if not self.storage.exists(name):
            return False
        return os.access(self.storage.path(name), os.R_OK)

    def open(self, content_hash: str):
        try:
            return self.storage.open(self.path(content_hash), 'rb')
        except OSError as e:
            raise ObjectNotFound(content_hash, str(e)) from e

    def write(self, content_hash: str, stream) -> None:
        """
        Write the stream under its hash.

        Bytes go to a temporary file in the target directory and are
        renamed onto the final path only once complete, so a failed write
        never leaves a partial object behind.
        """
        name = self.path(content_hash)
        if self.storage.exists(name):
            # Same hash, same bytes
            return
        final_path = self.storage.path(name)
        directory = os.path.dirname(final_path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=directory, prefix=f".{content_hash}.", suffix='.part')
            try:
                with os.fdopen(fd, 'wb') as temp_file:
                    for chunk in File(stream).chunks():
                        temp_file.write(chunk)
                if self.storage.file_permissions_mode is not None:
                    os.chmod(temp_path, self.storage.file_permissions_mode)
                # A concurrent writer of the same hash wrote the same bytes
                os.replace(temp_path, final_path)
            except BaseException:
                with suppress(FileNotFoundError):
                    os.unlink(temp_path)
                raise
        except OSError as e:
            raise TransferError(content_hash, f"Failed to write {name}: {e}") from e


class S3ContentStore(ContentStore):
    """
    Content store on an S3 bucket (or S3-compatible endpoint) using boto3.

    Objects are written with a single put_object call, so on unencrypted
    or SSE-S3 buckets their ETag is the MD5 of the bytes and doubles as
    the remote checksum. Otherwise the checksum is read from the body.
    """

    def __init__(
        self,
        bucket: str,
        region: str = None,
        endpoint_url: str = None,
        access_key: str = None,
        secret_key: str = None,
        key_prefix: str = '',
        client=None,
    ):
        if client is None:
            session_kwargs = {}
            if access_key and secret_key:
                session_kwargs['aws_access_key_id'] = access_key
                session_kwargs['aws_secret_access_key'] = secret_key
            client = boto3.client(
                's3',
                region_name=region,
                endpoint_url=endpoint_url,
                **session_kwargs
            )
        self.client = client
        self.bucket = bucket
        self.key_prefix = key_prefix.strip('/')
        self.name = f"s3://{bucket}/{self.key_prefix}" if self.key_prefix else f"s3://{bucket}"

    def key(self, content_hash: str) -> str:
        return content_path(content_hash, self.key_prefix)

    def _head(self, content_hash: str):
        try:
            return self.client.head_object(Bucket=self.bucket, Key=self.key(content_hash))
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in S3_MISSING_CODES:
                return None
            raise

    def exists(self, content_hash: str) -> bool:
        return self._head(content_hash) is not None

    def open(self, content_hash: str):
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self.key(content_hash))
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in S3_MISSING_CODES:
                raise ObjectNotFound(content_hash) from e
            raise
        return response['Body']

    def write(self, content_hash: str, stream) -> None:
        key = self.key(content_hash)
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=stream)
        except (ClientError, BotoCoreError) as e:
            raise TransferError(content_hash, f"Upload to {self.name}/{key} failed: {e}") from e

    @staticmethod
    def _etag_is_md5(etag: str, head: dict) -> bool:
        # Multipart, SSE-KMS and SSE-C ETags are not an MD5 of the content
        if '-' in etag:
            return False
        if head.get('SSECustomerAlgorithm'):
            return False
        return head.get('ServerSideEncryption') in (None, 'AES256')

    def checksum(self, content_hash: str) -> str:
        response = self._head(content_hash)
        if response is None:
            raise ObjectNotFound(content_hash)
        etag = response.get('ETag', '').strip('"')
        if etag and self._etag_is_md5(etag, response):
            return etag
        logger.debug(f"Reading {content_hash} from {self.name} to derive its checksum")
        return super().checksum(content_hash)


def create_local_store() -> ContentStore:
    """Local store rooted at OBJECTFS_LOCAL_ROOT (defaults to MEDIA_ROOT)."""
    location = getattr(settings, 'OBJECTFS_LOCAL_ROOT', None) or settings.MEDIA_ROOT
    return FileSystemContentStore(location)


def create_remote_store() -> ContentStore:
    """
    Remote store selected by OBJECTFS_REMOTE_BACKEND.
    Supported backends: "s3", "filesystem".
    """
    backend = (getattr(settings, 'OBJECTFS_REMOTE_BACKEND', None) or 's3').lower()
    if backend == 's3':
        bucket = getattr(settings, 'OBJECTFS_S3_BUCKET', None)
        if not bucket:
            raise ImproperlyConfigured("OBJECTFS_S3_BUCKET is required for the s3 remote backend")
        return S3ContentStore(
            bucket=bucket,
            region=getattr(settings, 'OBJECTFS_S3_REGION', None),
            endpoint_url=getattr(settings, 'OBJECTFS_S3_ENDPOINT_URL', None),
            access_key=getattr(settings, 'OBJECTFS_S3_ACCESS_KEY', None),
            secret_key=getattr(settings, 'OBJECTFS_S3_SECRET_KEY', None),
            key_prefix=getattr(settings, 'OBJECTFS_S3_KEY_PREFIX', '') or '',
        )
    if backend == 'filesystem':
        root = getattr(settings, 'OBJECTFS_REMOTE_ROOT', None)
        if not root:
            raise ImproperlyConfigured("OBJECTFS_REMOTE_ROOT is required for the filesystem remote backend")
        return FileSystemContentStore(root)
    raise ImproperlyConfigured(f"Unsupported OBJECTFS_REMOTE_BACKEND: {backend}")
