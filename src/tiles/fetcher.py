from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shared.errors import NetworkError, StorageError
from tiles.inflight import InFlightRegistry
from tiles.keys import key_for

if TYPE_CHECKING:
    from domain.models import TileCoordinate
    from infrastructure.http.client import TileSource
    from tiles.cache import TileStore

logger = logging.getLogger(__name__)


class TileFetcher:
    """
    Cache-or-download for single tiles.

    At most one download per cache key runs at a time; concurrent callers
    share its result. Failures are logged and reported as None, never
    retried here.
    """

    def __init__(
        self,
        store: TileStore,
        source: TileSource,
        *,
        inflight: InFlightRegistry | None = None,
        persist: bool = True,
    ) -> None:
        self.store = store
        self.source = source
        self.inflight = inflight if inflight is not None else InFlightRegistry()
        # False when the cache directory is unusable: always miss, never write
        self.persist = persist
        self._stats_cache_hits = 0
        self._stats_cache_misses = 0
        self._stats_downloads = 0
        self._stats_errors = 0

    @property
    def stats(self) -> dict[str, int]:
        return {
            'cache_hits': self._stats_cache_hits,
            'cache_misses': self._stats_cache_misses,
            'downloads': self._stats_downloads,
            'errors': self._stats_errors,
        }

    async def fetch(
        self, coord: TileCoordinate, use_alternate_provider: bool = False
    ) -> str | None:
        """
        Local path of the tile, downloading it on a miss; None on failure.

        Without persistence there is never a file to return, so nothing is
        downloaded; fetch_bytes serves live tiles in that mode.
        """
        key = key_for(coord)
        if not self.persist:
            logger.debug('No tile file for %s: caching disabled', key)
            return None
        if await self.store.exists(key):
            self._stats_cache_hits += 1
            logger.debug('Cache hit for tile %s', key)
            return str(self.store.path_for(key))

        self._stats_cache_misses += 1
        result = await self.inflight.run(
            key, lambda: self._download(coord, key, use_alternate_provider)
        )
        return None if result is None else result[0]

    async def fetch_bytes(
        self, coord: TileCoordinate, use_alternate_provider: bool = False
    ) -> bytes | None:
        """Tile bytes from the cache or a live download; None on failure."""
        key = key_for(coord)
        if self.persist:
            data = await self.store.read(key)
            if data is not None:
                self._stats_cache_hits += 1
                return data

        self._stats_cache_misses += 1
        result = await self.inflight.run(
            key, lambda: self._download(coord, key, use_alternate_provider)
        )
        return None if result is None else result[1]

    async def _download(
        self, coord: TileCoordinate, key: str, use_alternate_provider: bool
    ) -> tuple[str | None, bytes] | None:
        """Download and commit one tile; returns (path, bytes) or None."""
        try:
            data = await self.source.download(coord, use_alternate_provider)
        except NetworkError as e:
            self._stats_errors += 1
            logger.warning('Tile %s download failed: %s', key, e)
            return None
        self._stats_downloads += 1

        if not self.persist:
            return None, data
        try:
            await self.store.write(key, data)
        except StorageError as e:
            self._stats_errors += 1
            logger.warning('Tile %s could not be stored: %s', key, e)
            return None, data
        return str(self.store.path_for(key)), data
