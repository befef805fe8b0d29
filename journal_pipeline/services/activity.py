"""User activity tracking with per-user write throttling.

A capture request marks its user as active, but the user record is
written at most once per TTL window: repeat requests inside the window
hit the in-memory cache only.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from journal_pipeline.repositories.activity_repo import ActivityRepository

logger = structlog.get_logger()


class TTLCache:
    """Bounded key cache whose entries expire after a fixed TTL.

    Expired entries are dropped on read; when full, the oldest entry is
    evicted to make room.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        ttl_seconds: int = 30 * 60,
        clock: Callable[[], datetime] | None = None,
    ):
        self._max_entries = max_entries
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: dict[str, datetime] = {}
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        created_at = self._entries.get(key)
        if created_at is None:
            return False
        if self._clock() - created_at >= self._ttl:
            del self._entries[key]
            return False
        return True

    def add(self, key: str) -> None:
        # Re-inserting moves the key to the end, so insertion order stays
        # creation order.
        refreshed = self._entries.pop(key, None) is not None
        if not refreshed and len(self._entries) >= self._max_entries:
            self._evict_oldest()
        self._entries[key] = self._clock()

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def _evict_oldest(self) -> None:
        if not self._entries:
            return
        del self._entries[next(iter(self._entries))]
        self.evictions += 1


class ActivityTracker:
    """Records a user's last activity at most once per TTL window."""

    def __init__(self, repository: ActivityRepository, cache: TTLCache | None = None):
        """Initialize tracker.

        Args:
            repository: Persists last-active timestamps
            cache: Dedupe cache owned by this tracker
        """
        self._repository = repository
        self._cache = cache or TTLCache()

    async def touch(self, user_id: str) -> bool:
        """Mark a user active.

        Returns:
            True if the user record was written, False if throttled or failed
        """
        if not user_id or user_id in self._cache:
            return False
        try:
            await self._repository.mark_active(user_id, datetime.now(UTC))
        except Exception as e:
            logger.error("Error tracking user activity", user_id=user_id, error=str(e))
            return False
        self._cache.add(user_id)
        logger.debug("Updated last activity", user_id=user_id)
        return True
