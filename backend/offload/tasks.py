"""
Celery tasks for the periodic offload run.

push_candidates runs on the beat schedule. It either pushes every
candidate in-process or, with OBJECTFS_ASYNC_PUSH, queues one
push_content_object task per content hash.
"""

import logging

from celery import shared_task

from .conf import MigrationPolicy, get_max_task_runtime, is_async_push_enabled
from .services import CandidateSelector, ContentRepository, Pusher, create_local_store, create_remote_store

logger = logging.getLogger(__name__)


def build_pusher(policy: MigrationPolicy = None) -> Pusher:
    """Pusher wired to the configured stores and policy."""
    return Pusher(
        local_store=create_local_store(),
        remote_store=create_remote_store(),
        repository=ContentRepository(),
        policy=policy or MigrationPolicy.from_settings(),
        max_runtime=get_max_task_runtime(),
    )


@shared_task(
    bind=True,
    name='offload.tasks.push_candidates'
)
def push_candidates(self) -> dict:
    """
    Select eligible objects and push them to the remote store.

    Returns:
        Dictionary with the run results
    """
    policy = MigrationPolicy.from_settings()
    candidates = CandidateSelector(ContentRepository(), policy).select_candidates()

    if not candidates:
        return {'success': True, 'total': 0, 'migrated': 0, 'skipped': 0, 'failed': 0}

    if is_async_push_enabled():
        for candidate in candidates:
            push_content_object.delay(candidate.hash)
        logger.info(f"Queued {len(candidates)} objects for push")
        return {'success': True, 'queued': len(candidates)}

    report = build_pusher(policy).push(candidates)
    for outcome in report.failed:
        logger.error(f"Push failed for {outcome.content_hash}: {outcome.reason} {outcome.error or ''}")
    return report.as_dict()


@shared_task(
    bind=True,
    name='offload.tasks.push_content_object'
)
def push_content_object(self, content_hash: str) -> dict:
    """
    Push a single content object.

    Args:
        content_hash: SHA-256 hash of the content to push

    Returns:
        Dictionary with the object's outcome
    """
    outcome = build_pusher().push_object(content_hash)
    return outcome.as_dict()
