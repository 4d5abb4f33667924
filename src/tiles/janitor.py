"""Background maintenance of the tile cache: size and age eviction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shared.errors import StorageError

if TYPE_CHECKING:
    from domain.models import CacheConfig, CacheEntry
    from tiles.cache import TileStore

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """What one cleanup pass removed."""

    scanned: int = 0
    size_before: int = 0
    evicted_for_size: list[str] = field(default_factory=list)
    evicted_for_age: list[str] = field(default_factory=list)
    bytes_freed: int = 0
    failures: int = 0

    @property
    def size_after(self) -> int:
        return self.size_before - self.bytes_freed


class CacheJanitor:
    """
    Stateless cleanup over a snapshot of the metadata store.

    Size eviction removes the oldest tiles (by insertion time; reads never
    refresh a tile) until the total fits the budget. Age eviction then
    removes every surviving tile past max_age_ms. Running cleanup twice with
    no writes in between changes nothing the second time.
    """

    def __init__(self, config: CacheConfig, store: TileStore) -> None:
        self.config = config
        self.store = store

    async def _evict(self, entry: CacheEntry, report: CleanupReport) -> bool:
        try:
            await self.store.delete(entry.key)
        except StorageError as e:
            report.failures += 1
            logger.warning('Could not evict tile %s: %s', entry.key, e)
            return False
        report.bytes_freed += entry.size_bytes
        return True

    async def cleanup(self) -> CleanupReport:
        """
        Run one maintenance pass.

        Never raises: a failing metadata listing ends the pass early, a
        failing deletion is logged and skipped.
        """
        report = CleanupReport()
        try:
            entries = await self.store.metadata.list_all()
        except StorageError as e:
            logger.error('Cache cleanup aborted, metadata unavailable: %s', e)
            return report

        report.scanned = len(entries)
        report.size_before = total = sum(e.size_bytes for e in entries)
        survivors = sorted(entries, key=lambda e: e.timestamp_ms)

        if total > self.config.max_size_bytes:
            remaining: list[CacheEntry] = []
            for entry in survivors:
                if total <= self.config.max_size_bytes:
                    remaining.append(entry)
                elif await self._evict(entry, report):
                    total -= entry.size_bytes
                    report.evicted_for_size.append(entry.key)
                # A failed deletion is not retried by the age pass
            survivors = remaining
            logger.info(
                'Size cleanup: removed %d tiles, freed %.2f MB',
                len(report.evicted_for_size),
                report.bytes_freed / 1024 / 1024,
            )

        for entry in survivors:
            if self.store.is_expired(entry) and await self._evict(entry, report):
                report.evicted_for_age.append(entry.key)

        if report.evicted_for_age:
            logger.info('Age cleanup: removed %d expired tiles', len(report.evicted_for_age))
        return report
