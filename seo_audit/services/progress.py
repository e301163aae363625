"""In-process fan-out of audit progress events."""

import asyncio
import logging
import time
from typing import Dict, Optional, Set
from uuid import UUID

from seo_audit.core.config import settings
from seo_audit.schemas.audit import ProgressEvent

logger = logging.getLogger(__name__)


class ProgressBroker:
    """Delivers progress events to subscribers, keyed by audit id.

    Each subscriber gets its own unbounded queue. The latest event per
    audit is kept so polling clients (and late subscribers) can read the
    current state. Terminal events are kept for ``retention_seconds``
    only; after that, pollers fall back to the stored audit row.

    Args:
        retention_seconds: How long a terminal event stays readable,
            defaults to PROGRESS_RETENTION_SECONDS.
    """

    def __init__(self, retention_seconds: Optional[float] = None):
        self.retention_seconds = (
            settings.PROGRESS_RETENTION_SECONDS if retention_seconds is None else retention_seconds
        )
        self._subscribers: Dict[UUID, Set[asyncio.Queue]] = {}
        self._latest: Dict[UUID, ProgressEvent] = {}
        self._expires_at: Dict[UUID, float] = {}

    def subscribe(self, audit_id: UUID) -> asyncio.Queue:
        """Register a subscriber for an audit.

        The queue is primed with the latest event, if there is one.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(audit_id, set()).add(queue)
        latest = self.latest(audit_id)
        if latest is not None:
            queue.put_nowait(latest)
        return queue

    def unsubscribe(self, audit_id: UUID, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(audit_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[audit_id]

    async def publish(self, event: ProgressEvent) -> None:
        """Record an event and hand it to every subscriber of its audit."""
        self._prune()
        self._latest[event.audit_id] = event
        if event.status.is_terminal:
            self._expires_at[event.audit_id] = time.monotonic() + self.retention_seconds
        else:
            self._expires_at.pop(event.audit_id, None)

        logger.debug(f"[Progress] {event.audit_id} {event.status.value} {event.progress}%")
        for queue in list(self._subscribers.get(event.audit_id, ())):
            queue.put_nowait(event)

    def latest(self, audit_id: UUID) -> Optional[ProgressEvent]:
        expires_at = self._expires_at.get(audit_id)
        if expires_at is not None and time.monotonic() >= expires_at:
            self.forget(audit_id)
            return None
        return self._latest.get(audit_id)

    def forget(self, audit_id: UUID) -> None:
        """Drop the retained event of an audit."""
        self._latest.pop(audit_id, None)
        self._expires_at.pop(audit_id, None)

    def subscriber_count(self, audit_id: UUID) -> int:
        return len(self._subscribers.get(audit_id, ()))

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [audit_id for audit_id, at in self._expires_at.items() if now >= at]
        for audit_id in expired:
            self.forget(audit_id)
        if expired:
            logger.debug(f"[Progress] Evicted {len(expired)} finished audit(s)")


# Singleton instance
progress_broker = ProgressBroker()
