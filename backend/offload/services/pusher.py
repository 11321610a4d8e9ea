"""
Migration Engine
================
Copies local content to the remote store, verifies it and records the
resulting location.

Push Algorithm (per distinct content hash):
1. Reload the record; LOCAL_ONLY objects must still satisfy the policy
2. Observe local readability and remote presence
3. Derive the checksum from local bytes, or from the remote copy if local is gone
4. Upload in a single write when the remote store does not have the bytes yet
5. Confirm the remote checksum against the one from step 3
6. Record the checksum, then move LOCAL_ONLY -> DUPLICATED (local readable)
   or LOCAL_ONLY -> REMOTE_ONLY (local unreadable)

Nothing is recorded before the remote copy is verified, so an interrupted
or failed push leaves the object LOCAL_ONLY for the next run.
"""

import logging
import time
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from contracts.models import ContentObject, ObjectLocation

from ..conf import MigrationPolicy
from ..exceptions import (
    ConcurrentModification,
    IntegrityMismatch,
    ObjectNotFound,
    ReadUnavailable,
    TransferError,
)
from .locations import push_target, resolve_target
from .repository import ContentRepository
from .stores import ContentStore

logger = logging.getLogger(__name__)


class PushStatus(str, Enum):
    MIGRATED = 'migrated'
    SKIPPED = 'skipped'
    FAILED = 'failed'


REASON_UPLOADED = 'uploaded'
REASON_ALREADY_REMOTE = 'already_remote'
REASON_ALREADY_MIGRATED = 'already_migrated'
REASON_UNKNOWN_OBJECT = 'unknown_object'
REASON_OUTSIDE_POLICY = 'outside_policy'
REASON_READ_UNAVAILABLE = 'read_unavailable'
REASON_LOCATION_MISMATCH = 'location_mismatch'
REASON_CONCURRENT_MODIFICATION = 'concurrent_modification'
REASON_RUNTIME_EXCEEDED = 'runtime_exceeded'
REASON_TRANSFER_ERROR = 'transfer_error'
REASON_INTEGRITY_MISMATCH = 'integrity_mismatch'
REASON_ERROR = 'error'


@dataclass
class PushOutcome:
    """Result of pushing one content hash."""
    content_hash: str
    status: PushStatus
    reason: str
    location: Optional[int] = None
    checksum: Optional[str] = None
    uploaded: bool = False
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            'content_hash': self.content_hash,
            'status': self.status.value,
            'reason': self.reason,
            'location': ObjectLocation(self.location).name if self.location is not None else None,
            'checksum': self.checksum,
            'uploaded': self.uploaded,
            'error': self.error,
        }


@dataclass
class PushReport:
    """Aggregate of per-object outcomes for one push run."""
    outcomes: List[PushOutcome] = field(default_factory=list)

    def add(self, outcome: PushOutcome) -> None:
        self.outcomes.append(outcome)

    def _with_status(self, status: PushStatus) -> List[PushOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    @property
    def migrated(self) -> List[PushOutcome]:
        return self._with_status(PushStatus.MIGRATED)

    @property
    def skipped(self) -> List[PushOutcome]:
        return self._with_status(PushStatus.SKIPPED)

    @property
    def failed(self) -> List[PushOutcome]:
        return self._with_status(PushStatus.FAILED)

    @property
    def uploaded_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.uploaded)

    def outcome_for(self, content_hash: str) -> Optional[PushOutcome]:
        for outcome in self.outcomes:
            if outcome.content_hash == content_hash:
                return outcome
        return None

    def as_dict(self) -> dict:
        return {
            'success': not self.failed,
            'total': len(self.outcomes),
            'migrated': len(self.migrated),
            'skipped': len(self.skipped),
            'failed': len(self.failed),
            'uploaded': self.uploaded_count,
            'failures': [outcome.as_dict() for outcome in self.failed],
        }


class Pusher:
    """
    Pushes content objects from the local store to the remote store.

    Each content hash is its own unit of work: a failure is recorded in
    that object's outcome and the run moves on to the next object.
    """

    def __init__(
        self,
        local_store: ContentStore,
        remote_store: ContentStore,
        repository: ContentRepository,
        policy: MigrationPolicy,
        max_runtime: int = 0,
    ):
        self.local_store = local_store
        self.remote_store = remote_store
        self.repository = repository
        self.policy = policy
        self.max_runtime = max_runtime

    def push(self, candidates: Iterable[ContentObject]) -> PushReport:
        """
        Push every distinct content hash among the candidates.

        Once max_runtime seconds have passed no new object is started;
        the remaining ones are reported as skipped and stay LOCAL_ONLY.
        """
        report = PushReport()
        started = time.monotonic()
        seen = set()

        for candidate in candidates:
            content_hash = candidate.hash
            if content_hash in seen:
                continue
            seen.add(content_hash)

            if self.max_runtime and time.monotonic() - started >= self.max_runtime:
                report.add(PushOutcome(
                    content_hash, PushStatus.SKIPPED, REASON_RUNTIME_EXCEEDED,
                    location=candidate.location,
                ))
                continue

            report.add(self.push_object(content_hash))

        logger.info(
            f"Push run complete: {len(report.migrated)} migrated, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed "
            f"({report.uploaded_count} uploaded to {self.remote_store.name})"
        )
        return report

    def push_object(self, content_hash: str) -> PushOutcome:
        """Push a single content hash, turning errors into an outcome."""
        try:
            return self._push(content_hash)
        except (ReadUnavailable, ObjectNotFound) as e:
            logger.warning(f"Skipping {content_hash}: content is not readable ({e})")
            return PushOutcome(content_hash, PushStatus.SKIPPED, REASON_READ_UNAVAILABLE, error=str(e))
        except ConcurrentModification:
            logger.debug(f"Skipping {content_hash}: migrated by another worker")
            return PushOutcome(content_hash, PushStatus.SKIPPED, REASON_CONCURRENT_MODIFICATION)
        except TransferError as e:
            logger.error(f"Upload of {content_hash} failed: {e}")
            return PushOutcome(content_hash, PushStatus.FAILED, REASON_TRANSFER_ERROR, error=str(e))
        except IntegrityMismatch as e:
            logger.error(f"Integrity check failed, location left unchanged: {e}")
            return PushOutcome(content_hash, PushStatus.FAILED, REASON_INTEGRITY_MISMATCH, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error pushing {content_hash}: {str(e)}", exc_info=True)
            return PushOutcome(content_hash, PushStatus.FAILED, REASON_ERROR, error=str(e))

    def _push(self, content_hash: str) -> PushOutcome:
        try:
            record = self.repository.get(content_hash)
        except ContentObject.DoesNotExist:
            logger.warning(f"Skipping {content_hash}: no metadata record")
            return PushOutcome(content_hash, PushStatus.SKIPPED, REASON_UNKNOWN_OBJECT)

        if record.location == ObjectLocation.LOCAL_ONLY and not self.repository.is_eligible(record, self.policy):
            logger.info(f"Skipping {content_hash}: outside migration policy")
            return PushOutcome(content_hash, PushStatus.SKIPPED, REASON_OUTSIDE_POLICY, location=record.location)

        local_readable = self.local_store.exists(content_hash)
        remote_present = self.remote_store.exists(content_hash)
        if resolve_target(local_readable, remote_present) is None:
            raise ReadUnavailable(content_hash, f"{content_hash} is readable from neither store")

        target = push_target(local_readable)
        if record.location not in (ObjectLocation.LOCAL_ONLY, target):
            logger.warning(
                f"Skipping {content_hash}: recorded as {record.get_location_display()} "
                f"but stores support {target.label}"
            )
            return PushOutcome(content_hash, PushStatus.SKIPPED, REASON_LOCATION_MISMATCH, location=record.location)

        # Local bytes are the source of truth whenever they are readable
        if local_readable:
            checksum = self.local_store.checksum(content_hash)
        else:
            checksum = self.remote_store.checksum(content_hash)

        uploaded = False
        if not remote_present:
            with closing(self.local_store.open(content_hash)) as stream:
                self.remote_store.write(content_hash, stream)
            uploaded = True
            logger.info(f"Uploaded {content_hash} ({record.size} bytes) to {self.remote_store.name}")

        if local_readable:
            remote_checksum = self.remote_store.checksum(content_hash)
            if remote_checksum != checksum:
                raise IntegrityMismatch(content_hash, expected=checksum, actual=remote_checksum)

        self.repository.record_checksum(content_hash, checksum)

        if record.location == target:
            return PushOutcome(
                content_hash, PushStatus.SKIPPED, REASON_ALREADY_MIGRATED,
                location=target, checksum=checksum,
            )

        self.repository.transition_location(content_hash, ObjectLocation.LOCAL_ONLY, target)
        logger.info(f"{content_hash} is now {target.label}")
        return PushOutcome(
            content_hash,
            PushStatus.MIGRATED,
            REASON_UPLOADED if uploaded else REASON_ALREADY_REMOTE,
            location=target,
            checksum=checksum,
            uploaded=uploaded,
        )
