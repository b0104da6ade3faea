"""Time-bounded, process-wide cache of incident records.

The cache holds one immutable ``CacheSnapshot`` that is swapped by reference
on every successful refresh, so readers never observe a half-replaced set.
Refreshes are serialized by a single ``asyncio.Lock``; while one is in flight,
callers holding a non-empty stale snapshot get that snapshot instead of
waiting. A failed refresh keeps the previous snapshot.

The refresh lock is held across the fetch. Only callers with nothing to
serve wait on it: cold start, or a cache whose every refresh has failed.
Those callers block until the single in-flight fetch finishes and then read
its result instead of issuing their own request.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from src.config import get_settings
from src.incidents.models import (
    IncidentAnalytics,
    IncidentPriority,
    IncidentRecord,
    IncidentStatus,
)
from src.incidents.provider import fetch_incidents
from src.observability.metrics import CACHE_HITS_TOTAL, CACHE_RECORDS, CACHE_REFRESHES_TOTAL

logger = logging.getLogger(__name__)

type IncidentFetcher = Callable[[], Awaitable[list[IncidentRecord]]]
type Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CacheSnapshot:
    records: tuple[IncidentRecord, ...] = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.min.replace(tzinfo=UTC))

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return bool(self.records) and now - self.fetched_at < ttl


class IncidentCache:
    """Serves incident queries from a TTL-bounded snapshot of the external source."""

    def __init__(
        self,
        fetcher: IncidentFetcher,
        ttl: timedelta = timedelta(minutes=5),
        clock: Clock = _utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._ttl = ttl
        self._clock = clock
        self._snapshot = CacheSnapshot()
        self._refresh_lock = asyncio.Lock()

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    async def get_all(self) -> list[IncidentRecord]:
        """Return every cached incident, refreshing from the source when stale. Never raises."""
        snapshot = self._snapshot
        if snapshot.is_fresh(self._clock(), self._ttl):
            CACHE_HITS_TOTAL.inc()
            logger.debug("Using cached incidents (%d items)", len(snapshot.records))
            return list(snapshot.records)

        if self._refresh_lock.locked() and snapshot.records:
            logger.debug("Refresh in flight; serving stale snapshot (%d items)", len(snapshot.records))
            return list(snapshot.records)

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited for the lock
            snapshot = self._snapshot
            if snapshot.is_fresh(self._clock(), self._ttl):
                return list(snapshot.records)
            return list(await self._refresh(snapshot))

    async def _refresh(self, previous: CacheSnapshot) -> tuple[IncidentRecord, ...]:
        try:
            records = await self._fetcher()
        except Exception:
            CACHE_REFRESHES_TOTAL.labels(status="error").inc()
            logger.exception("Error fetching incidents; keeping %d cached records", len(previous.records))
            return previous.records

        if not records:
            CACHE_REFRESHES_TOTAL.labels(status="empty").inc()
            logger.warning("Incident source returned no data; keeping %d cached records", len(previous.records))
            return previous.records

        self._snapshot = CacheSnapshot(records=tuple(records), fetched_at=self._clock())
        CACHE_REFRESHES_TOTAL.labels(status="success").inc()
        CACHE_RECORDS.set(len(records))
        logger.info("Fetched and cached %d incidents", len(records))
        return self._snapshot.records

    # --- Derived queries ---

    async def get_open(self) -> list[IncidentRecord]:
        """Open incidents, most urgent first, oldest first within a priority."""
        incidents = [i for i in await self.get_all() if i.status == IncidentStatus.OPEN]
        incidents.sort(key=lambda i: (-i.priority.rank, i.created_at))
        logger.info("Retrieved %d open incidents", len(incidents))
        return incidents

    async def get_resolved(self) -> list[IncidentRecord]:
        """Resolved incidents, most recently resolved first."""
        incidents = [i for i in await self.get_all() if i.status == IncidentStatus.RESOLVED]
        incidents.sort(key=lambda i: i.resolved_at or i.created_at, reverse=True)
        logger.info("Retrieved %d resolved incidents", len(incidents))
        return incidents

    async def get_by_priority(self, priority: str) -> list[IncidentRecord]:
        wanted = priority.lower()
        incidents = [i for i in await self.get_all() if i.priority.value == wanted]
        incidents.sort(key=lambda i: i.created_at)
        logger.info("Retrieved %d incidents with priority %s", len(incidents), priority)
        return incidents

    async def get_by_id(self, incident_id: str) -> IncidentRecord | None:
        wanted = incident_id.upper()
        incident = next((i for i in await self.get_all() if i.id.upper() == wanted), None)
        if incident is None:
            logger.warning("Incident %s not found", incident_id)
        return incident

    async def analyze(self) -> IncidentAnalytics:
        return summarize(await self.get_all())


def summarize(incidents: list[IncidentRecord]) -> IncidentAnalytics:
    """Aggregate counts, mean resolution time and the most frequent category."""
    if not incidents:
        return IncidentAnalytics()

    resolution_hours = [
        (i.resolved_at - i.created_at).total_seconds() / 3600
        for i in incidents
        if i.status == IncidentStatus.RESOLVED and i.resolved_at is not None
    ]
    # most_common keeps first-encountered order for equal counts
    top_category, top_count = Counter(i.category for i in incidents).most_common(1)[0]

    analytics = IncidentAnalytics(
        total_incidents=len(incidents),
        open_count=sum(1 for i in incidents if i.status == IncidentStatus.OPEN),
        resolved_count=sum(1 for i in incidents if i.status == IncidentStatus.RESOLVED),
        critical_count=sum(1 for i in incidents if i.priority == IncidentPriority.CRITICAL),
        high_count=sum(1 for i in incidents if i.priority == IncidentPriority.HIGH),
        average_resolution_hours=sum(resolution_hours) / len(resolution_hours) if resolution_hours else 0.0,
        top_category=top_category,
        top_category_count=top_count,
    )
    logger.info(
        "Generated incident analytics: %d total, %d open, %d resolved",
        analytics.total_incidents,
        analytics.open_count,
        analytics.resolved_count,
    )
    return analytics


@lru_cache(maxsize=1)
def get_incident_cache() -> IncidentCache:
    """Process-wide cache shared by every session."""
    settings = get_settings()
    return IncidentCache(fetch_incidents, ttl=timedelta(seconds=settings.incident_cache_ttl_seconds))
