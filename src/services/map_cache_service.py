"""Map tile cache service - public entry points used by map rendering.

Wires the tile components together around one CacheConfig. Every public
method is best effort: failures are logged and reported as None (or an
empty result), never raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import TYPE_CHECKING

from domain.models import CacheStats
from infrastructure.device.probe import LocalDeviceEnvironment
from infrastructure.http.client import TileSource
from infrastructure.storage.files import LocalFileStorage
from infrastructure.storage.kv import SQLiteKeyValueStore
from shared.errors import ConfigurationError, StorageError
from tiles.cache import TileStore, now_ms
from tiles.fetcher import TileFetcher
from tiles.janitor import CacheJanitor, CleanupReport
from tiles.keys import parse_key
from tiles.metadata import MetadataStore
from tiles.prefetch import PrefetchResult, RegionPrefetcher

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from domain.models import CacheConfig, Region, TileCoordinate
    from infrastructure.device.probe import DeviceEnvironment
    from infrastructure.storage.files import FileStorage
    from infrastructure.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)


class MapTileCacheService:
    """
    Offline map-tile cache.

    Nothing happens at construction; the application calls initialize() once
    at startup and owns any periodic cleanup schedule (see
    run_periodic_cleanup).

    Usage:
        async with MapTileCacheService(config) as cache:
            path = await cache.get_map_tile(TileCoordinate(x=..., y=..., z=15))
    """

    def __init__(
        self,
        config: CacheConfig,
        *,
        kv: KeyValueStore | None = None,
        files: FileStorage | None = None,
        source: TileSource | None = None,
        environment: DeviceEnvironment | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config
        self.kv = kv if kv is not None else SQLiteKeyValueStore(config.metadata_path)
        self.files = files if files is not None else LocalFileStorage()
        self.source = source if source is not None else TileSource(config)
        self.environment = (
            environment
            if environment is not None
            else LocalDeviceEnvironment(config.cache_directory)
        )
        self.metadata = MetadataStore(self.kv, config.metadata_key_prefix)
        self.store = TileStore(config, self.files, self.metadata, clock=clock)
        self.fetcher = TileFetcher(self.store, self.source)
        self.prefetcher = RegionPrefetcher(config, self.fetcher, self.environment, self.kv)
        self.janitor = CacheJanitor(config, self.store)
        self.degraded = False

    async def __aenter__(self) -> MapTileCacheService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _prepare_directory(self) -> None:
        try:
            await self.store.ensure_directory()
        except StorageError as exc:
            msg = f'Cache directory {self.config.cache_directory} is unusable: {exc}'
            raise ConfigurationError(msg) from exc

    async def initialize(self) -> bool:
        """
        Create the cache directory and run one cleanup pass.

        Returns:
            False when the directory cannot be created; the service then
            degrades to live fetches without persistence.

        """
        try:
            await self._prepare_directory()
        except ConfigurationError as e:
            logger.error('%s; tile caching disabled', e)
            self.degraded = True
            self.fetcher.persist = False
            return False
        self.degraded = False
        self.fetcher.persist = True
        logger.info('Map tile cache ready at %s', self.config.cache_directory)
        await self.cleanup_map_tile_cache()
        return True

    async def get_map_tile(
        self, coord: TileCoordinate, use_alternate_provider: bool = False
    ) -> str | None:
        """Local file path of the tile (cached or freshly downloaded), or None.

        Always None while caching is disabled; get_map_tile_data still works then.
        """
        try:
            return await self.fetcher.fetch(coord, use_alternate_provider)
        except Exception:
            logger.exception('Error getting map tile %s', coord)
            return None

    async def get_map_tile_data(
        self, coord: TileCoordinate, use_alternate_provider: bool = False
    ) -> bytes | None:
        """Tile image bytes; works without persistence in degraded mode."""
        try:
            return await self.fetcher.fetch_bytes(coord, use_alternate_provider)
        except Exception:
            logger.exception('Error getting map tile data %s', coord)
            return None

    def tile_url(self, coord: TileCoordinate, use_alternate_provider: bool = False) -> str:
        return self.source.url_for(coord, use_alternate_provider)

    async def pre_cache_region(
        self,
        region: Region,
        zoom_levels: Sequence[int] | None = None,
        use_alternate_provider: bool = False,
    ) -> PrefetchResult:
        if self.degraded:
            logger.info('Skipping pre-cache: tile caching disabled')
            return PrefetchResult(skipped_reason='caching disabled')
        try:
            return await self.prefetcher.prefetch_region(
                region, zoom_levels, use_alternate_provider
            )
        except Exception:
            logger.exception('Error pre-caching region %s', region.name or region)
            return PrefetchResult(skipped_reason='error')

    async def pre_cache_common_regions(
        self, use_alternate_provider: bool = False
    ) -> list[PrefetchResult]:
        if self.degraded:
            logger.info('Skipping pre-cache of common regions: tile caching disabled')
            return []
        try:
            return await self.prefetcher.prefetch_common_regions(use_alternate_provider)
        except Exception:
            logger.exception('Error pre-caching common regions')
            return []

    async def save_preferred_region(self, region: Region) -> bool:
        try:
            await self.prefetcher.save_preferred_region(region)
        except StorageError as e:
            logger.warning('Could not save preferred region: %s', e)
            return False
        return True

    async def load_preferred_region(self) -> Region | None:
        return await self.prefetcher.load_preferred_region()

    async def cleanup_map_tile_cache(self) -> CleanupReport:
        if self.degraded:
            return CleanupReport()
        try:
            return await self.janitor.cleanup()
        except Exception:
            logger.exception('Error cleaning up map tile cache')
            return CleanupReport()

    async def run_periodic_cleanup(self, interval_s: float) -> None:
        """
        Clean up every interval_s seconds until cancelled.

        The caller owns the schedule:
            task = asyncio.create_task(cache.run_periodic_cleanup(3600))
        """
        while True:
            await asyncio.sleep(interval_s)
            await self.cleanup_map_tile_cache()

    async def stats(self) -> CacheStats:
        try:
            entries = await self.metadata.list_all()
        except StorageError as e:
            logger.warning('Cache statistics unavailable: %s', e)
            entries = []

        tiles_by_zoom: Counter[int] = Counter()
        size_by_zoom: Counter[int] = Counter()
        for entry in entries:
            try:
                zoom = parse_key(entry.key).z
            except ValueError:
                continue
            tiles_by_zoom[zoom] += 1
            size_by_zoom[zoom] += entry.size_bytes

        stamps = [e.timestamp_ms for e in entries]
        return CacheStats(
            total_tiles=len(entries),
            total_size_bytes=sum(e.size_bytes for e in entries),
            tiles_by_zoom=dict(tiles_by_zoom),
            size_by_zoom=dict(size_by_zoom),
            oldest_tile_ms=min(stamps, default=None),
            newest_tile_ms=max(stamps, default=None),
        )

    async def clear(self) -> int:
        """Delete every cached tile. Returns the number of tiles removed."""
        try:
            entries = await self.metadata.list_all()
        except StorageError as e:
            logger.warning('Cannot clear cache: %s', e)
            return 0
        removed = 0
        for entry in entries:
            try:
                await self.store.delete(entry.key)
            except StorageError as e:
                logger.warning('Could not remove tile %s: %s', entry.key, e)
                continue
            removed += 1
        logger.info('Cleared %d tiles', removed)
        return removed

    async def close(self) -> None:
        """Release the HTTP session and the key-value store."""
        await self.source.close()
        close = getattr(self.kv, 'close', None)
        if callable(close):
            close()
