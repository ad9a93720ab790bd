"""Content change broadcast.

In-process publish/subscribe used to tell open editors and portfolio pages
that an owner's content changed. Delivery is best effort: at most once, no
ordering guarantee, and a slow subscriber simply misses events.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

PORTFOLIO_CHANGED = "portfolio-changed"


class ContentBroadcaster:
    """Fan events out to subscriber queues without ever blocking the publisher."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def publish(self, event: Dict[str, Any]) -> int:
        """Offer an event to every subscriber. Returns how many accepted it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.debug("Dropping %s event for a slow subscriber", event.get("type"))
        return delivered

    def notify_portfolio_changed(
        self,
        owner_id: str,
        version: Optional[int] = None,
        section: Optional[str] = None,
        change_type: str = "update",
    ) -> int:
        """Publish a content-changed event. Never raises."""
        event = {
            "event": PORTFOLIO_CHANGED,
            "type": change_type,
            "section": section,
            "ownerId": owner_id,
            "version": version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            return self.publish(event)
        except Exception as e:
            logger.warning(f"Content broadcast failed for owner {owner_id}: {e}")
            return 0


# Global broadcaster instance (one per process)
content_broadcaster = ContentBroadcaster()
