"""
Candidate Selector
==================
Chooses the content objects eligible for outbound migration.
"""

import logging
from datetime import datetime
from typing import List, Optional

from contracts.models import ContentObject

from ..conf import MigrationPolicy
from .repository import ContentRepository

logger = logging.getLogger(__name__)


class CandidateSelector:
    """
    Selects LOCAL_ONLY objects that satisfy the migration policy.

    Policy fields:
    - size_threshold: smaller objects stay local (not worth the round trip)
    - minimum_age: newer objects stay local (likely still hot)
    Objects above ContentRepository.MAX_MIGRATABLE_SIZE are never selected.
    """

    def __init__(self, repository: ContentRepository, policy: MigrationPolicy):
        self.repository = repository
        self.policy = policy

    def select_candidates(self, now: Optional[datetime] = None) -> List[ContentObject]:
        candidates = self.repository.list_candidates(self.policy, now=now)
        logger.info(
            f"Selected {len(candidates)} candidate objects "
            f"(size_threshold={self.policy.size_threshold}, minimum_age={self.policy.minimum_age}s)"
        )
        return candidates
