from .addressing import compute_checksum, compute_hash, content_path
from .ingest import IngestService
from .pusher import PushOutcome, PushReport, PushStatus, Pusher
from .reader import ContentReader
from .repository import ContentRepository
from .selector import CandidateSelector
from .stores import (
    ContentStore,
    FileSystemContentStore,
    S3ContentStore,
    create_local_store,
    create_remote_store,
)

__all__ = [
    'compute_checksum',
    'compute_hash',
    'content_path',
    'IngestService',
    'PushOutcome',
    'PushReport',
    'PushStatus',
    'Pusher',
    'ContentReader',
    'ContentRepository',
    'CandidateSelector',
    'ContentStore',
    'FileSystemContentStore',
    'S3ContentStore',
    'create_local_store',
    'create_remote_store',
]
