"""
Ingest Service
==============
Stores new uploads in the local content store with deduplication.
"""

import logging

from django.db import transaction

from contracts.models import FileReference

from .addressing import compute_hash
from .repository import ContentRepository
from .stores import ContentStore

logger = logging.getLogger(__name__)


class IngestService:
    """
    Adds files to the local store using content-addressable storage.

    Ingest Algorithm:
    1. Hash computation: SHA-256 of the upload
    2. Duplicate detection: look up the ContentObject by hash
    3. New content: write bytes to the local store, register it LOCAL_ONLY
    4. Metadata: always create a new FileReference pointing to the content
    """

    def __init__(self, local_store: ContentStore, repository: ContentRepository):
        self.local_store = local_store
        self.repository = repository

    def ingest_file(self, file_obj, original_filename: str, file_type: str) -> tuple[FileReference, bool]:
        """
        Ingest a file with deduplication.

        Args:
            file_obj: Django UploadedFile or seekable file-like object
            original_filename: Original filename from user
            file_type: MIME type of the file

        Returns:
            tuple: (FileReference instance, is_duplicate boolean)
        """
        content_hash = compute_hash(file_obj)
        file_obj.seek(0, 2)
        size = file_obj.tell()
        file_obj.seek(0)

        with transaction.atomic():
            content, created = self.repository.register_local(content_hash, size)
            if created:
                self.local_store.write(content_hash, file_obj)
                logger.info(f"Stored new content {content_hash} ({size} bytes)")
            else:
                logger.info(f"Duplicate content {content_hash} for {original_filename}")

            reference = FileReference.objects.create(
                original_filename=original_filename,
                file_type=file_type,
                content=content,
            )
        return reference, not created
