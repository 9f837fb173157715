"""Read-only access to attendance totals and recent check-ins."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional, Protocol

from ..errors import CheckinError
from ..models import AggregateStats, RecentPage, parse_recent_page, parse_stats
from ..utils.logger import get_logger

STATS_PATH = "/stats"
RECENT_PATH = "/recent_students"

LOGGER = get_logger("stats")


class StatsTransport(Protocol):
    async def get(self, path: str, **params: Any) -> Any:
        """Send a signed GET and return the decoded JSON body."""


class AggregateReader:
    """Map the backend's summary and listing endpoints onto :class:`AggregateStats`."""

    def __init__(self, transport: StatsTransport, *, recent_limit: int = 10) -> None:
        self._transport = transport
        self._recent_limit = recent_limit

    async def fetch_stats(self) -> AggregateStats:
        stats = parse_stats(await self._transport.get(STATS_PATH))
        if stats.recent_entries or self._recent_limit <= 0:
            return stats
        # older backends only expose recent check-ins through the paginated listing
        try:
            page = await self.fetch_recent(per_page=self._recent_limit)
        except CheckinError as exc:
            LOGGER.debug("Recent listing unavailable: %s", exc)
            return stats
        return replace(stats, recent_entries=page.entries)

    async def fetch_recent(self, page: int = 1, per_page: int = 20) -> RecentPage:
        return parse_recent_page(
            await self._transport.get(RECENT_PATH, page=page, per_page=per_page)
        )


class StatsBoard:
    """Last good :class:`AggregateStats`, kept when a refresh fails."""

    def __init__(self, reader: AggregateReader) -> None:
        self._reader = reader
        self.current: Optional[AggregateStats] = None
        self.last_error: Optional[CheckinError] = None

    @property
    def stale(self) -> bool:
        return self.last_error is not None

    async def refresh(self) -> Optional[AggregateStats]:
        try:
            stats = await self._reader.fetch_stats()
        except CheckinError as exc:
            self.last_error = exc
            LOGGER.warning("Could not refresh stats: %s", exc.user_message)
            return self.current
        self.current = stats
        self.last_error = None
        return stats
