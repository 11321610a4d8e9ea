"""
Content Repository
==================
Typed access to ContentObject metadata.

Writes that can race (checksum recording, location transitions) are single
conditional UPDATE statements, so concurrent workers never lose updates.
"""

import logging
from datetime import datetime
from typing import List, Optional

from django.db.models import Count, Sum
from django.utils import timezone

from contracts.models import ContentObject, ObjectLocation

from ..conf import MigrationPolicy
from ..exceptions import ConcurrentModification, IntegrityMismatch
from .locations import validate_transition

logger = logging.getLogger(__name__)


class ContentRepository:
    """
    Repository over ContentObject records.

    MAX_MIGRATABLE_SIZE is a hard ceiling independent of configuration:
    the remote store accepts at most 5GB in a single PUT.
    """

    MAX_MIGRATABLE_SIZE = 5 * 1024 * 1024 * 1024

    def get(self, content_hash: str) -> ContentObject:
        return ContentObject.objects.get(hash=content_hash)

    def register_local(self, content_hash: str, size: int) -> tuple[ContentObject, bool]:
        """Create the LOCAL_ONLY record the first time a hash is observed."""
        return ContentObject.objects.get_or_create(
            hash=content_hash,
            defaults={'size': size, 'location': ObjectLocation.LOCAL_ONLY},
        )

    def list_candidates(
        self,
        policy: MigrationPolicy,
        now: Optional[datetime] = None,
    ) -> List[ContentObject]:
        """
        LOCAL_ONLY objects within the policy's size and age bounds.

        Bounds are evaluated against `now` on every call.
        """
        now = now or timezone.now()
        queryset = ContentObject.objects.filter(
            location=ObjectLocation.LOCAL_ONLY,
            size__gte=policy.size_threshold,
            size__lt=self.MAX_MIGRATABLE_SIZE,
            created_at__lte=policy.created_before(now),
        ).order_by('created_at', 'hash').distinct()
        return list(queryset)

    def is_eligible(
        self,
        content_object: ContentObject,
        policy: MigrationPolicy,
        now: Optional[datetime] = None,
    ) -> bool:
        return policy.admits(
            content_object.size,
            content_object.created_at,
            now or timezone.now(),
            self.MAX_MIGRATABLE_SIZE,
        )

    def record_checksum(self, content_hash: str, checksum: str) -> None:
        """
        Record the checksum of an object.

        Idempotent for the same value. A different value than the one
        already recorded raises IntegrityMismatch and changes nothing.
        """
        updated = ContentObject.objects.filter(
            hash=content_hash,
            checksum__isnull=True,
        ).update(checksum=checksum)
        if updated:
            return

        recorded = ContentObject.objects.filter(hash=content_hash).values_list('checksum', flat=True).first()
        if recorded is None:
            raise ContentObject.DoesNotExist(f"No content object {content_hash}")
        if recorded != checksum:
            raise IntegrityMismatch(content_hash, expected=recorded, actual=checksum)

    def transition_location(self, content_hash: str, from_state, to_state) -> None:
        """
        Move an object from one location to another.

        Raises InvalidTransition for moves the state machine forbids and
        ConcurrentModification when the record is no longer in from_state.
        """
        validate_transition(from_state, to_state)
        updated = ContentObject.objects.filter(
            hash=content_hash,
            location=from_state,
        ).update(location=to_state)
        if not updated:
            raise ConcurrentModification(
                content_hash,
                f"{content_hash} is no longer {ObjectLocation(from_state).label}"
            )
        logger.debug(
            f"{content_hash}: {ObjectLocation(from_state).label} -> {ObjectLocation(to_state).label}"
        )

    def location_summary(self) -> list[dict]:
        """Object count and total bytes for every location."""
        rows = {
            row['location']: row
            for row in ContentObject.objects.values('location').annotate(
                count=Count('hash'),
                size=Sum('size'),
            )
        }
        summary = []
        for location in ObjectLocation:
            row = rows.get(location.value, {})
            summary.append({
                'location': location.name,
                'label': location.label,
                'count': row.get('count', 0),
                'size_bytes': row.get('size') or 0,
            })
        return summary
