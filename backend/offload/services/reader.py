"""
Location-aware reads, so content stays available while it migrates.
"""

import logging

from contracts.models import ObjectLocation

from ..exceptions import ObjectNotFound, ReadUnavailable
from .repository import ContentRepository
from .stores import ContentStore

logger = logging.getLogger(__name__)


class ContentReader:
    """Opens content from whichever store its recorded location points at."""

    def __init__(self, local_store: ContentStore, remote_store: ContentStore, repository: ContentRepository):
        self.local_store = local_store
        self.remote_store = remote_store
        self.repository = repository

    def _stores_for(self, location):
        if location == ObjectLocation.LOCAL_ONLY:
            return [self.local_store]
        if location == ObjectLocation.DUPLICATED:
            return [self.local_store, self.remote_store]
        return [self.remote_store]

    def open(self, content_hash: str):
        """
        Open a binary stream for the content.

        DUPLICATED objects are served locally and fall back to the remote
        copy. Raises ReadUnavailable when no candidate store has the bytes.
        """
        record = self.repository.get(content_hash)
        for store in self._stores_for(record.location):
            try:
                return store.open(content_hash)
            except ObjectNotFound:
                logger.warning(f"{content_hash} missing from {store.name}, recorded as {record.get_location_display()}")
        raise ReadUnavailable(content_hash, f"No store could serve {content_hash}")

    def read(self, content_hash: str) -> bytes:
        stream = self.open(content_hash)
        try:
            return stream.read()
        finally:
            stream.close()
