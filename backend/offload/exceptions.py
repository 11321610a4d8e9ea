"""
Error kinds raised by the offload core.

Every error is scoped to one content hash. The pusher maps them to
per-object outcomes; none of them aborts a batch.
"""


class OffloadError(Exception):
    """Base class for offload errors about a single content object."""

    def __init__(self, content_hash: str, message: str = ''):
        self.content_hash = content_hash
        super().__init__(message or f"{self.__class__.__name__}: {content_hash}")


class ObjectNotFound(OffloadError):
    """A store holds no bytes for the requested hash."""


class ReadUnavailable(OffloadError):
    """Neither the local nor the remote store can produce the bytes."""


class TransferError(OffloadError):
    """Writing to the remote store failed. Nothing was recorded."""


class IntegrityMismatch(OffloadError):
    """Checksums derived from two sources disagree."""

    def __init__(self, content_hash: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            content_hash,
            f"Checksum mismatch for {content_hash}: expected {expected}, got {actual}"
        )


class ConcurrentModification(OffloadError):
    """The recorded location changed underneath a conditional update."""


class InvalidTransition(ValueError):
    """The location state machine does not allow this transition."""
