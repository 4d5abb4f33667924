"""Best-effort region pre-fetching in throttled batches."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError

from domain.models import Region
from shared.errors import StorageError
from tiles.coverage import cover_region

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from domain.models import CacheConfig, TileCoordinate
    from infrastructure.device.probe import DeviceEnvironment
    from infrastructure.storage.kv import KeyValueStore
    from tiles.fetcher import TileFetcher

logger = logging.getLogger(__name__)


@dataclass
class PrefetchResult:
    """Outcome of one prefetch_region call."""

    requested: int = 0
    cached: int = 0
    failed: int = 0
    skipped_reason: str | None = None
    cancelled: bool = False

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


def collect_tiles(region: Region, zoom_levels: Iterable[int]) -> list[TileCoordinate]:
    """Flat tile list over all zoom levels, first occurrence kept."""
    seen: set[TileCoordinate] = set()
    tiles: list[TileCoordinate] = []
    for zoom in zoom_levels:
        for coord in cover_region(region, zoom):
            if coord not in seen:
                seen.add(coord)
                tiles.append(coord)
    return tiles


def batched(items: Sequence[TileCoordinate], size: int) -> list[Sequence[TileCoordinate]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class RegionPrefetcher:
    def __init__(
        self,
        config: CacheConfig,
        fetcher: TileFetcher,
        environment: DeviceEnvironment,
        kv: KeyValueStore,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.environment = environment
        self.kv = kv

    def _guard(self) -> str | None:
        """Reason to skip prefetching right now, or None to proceed."""
        if not self.environment.is_foreground():
            return 'app in background'
        free = self.environment.estimate_free_space()
        if free is None:
            if self.config.prefetch_when_free_space_unknown:
                logger.debug('Free space unknown, prefetching anyway')
                return None
            return 'free space unknown'
        if free <= self.config.min_free_space_bytes:
            return f'low disk space ({free / 1024 / 1024:.0f} MB free)'
        return None

    async def prefetch_region(
        self,
        region: Region,
        zoom_levels: Sequence[int] | None = None,
        use_alternate_provider: bool = False,
    ) -> PrefetchResult:
        """
        Fetch every tile of the region at the given zoom levels.

        Guards run first (foreground, free space); foreground is re-checked
        before every batch. Batches run one after another with a fixed pause;
        tiles within a batch are fetched concurrently. Failed tiles are
        counted and skipped.

        Args:
            region: Viewport to cover
            zoom_levels: Defaults to config.prefetch_zoom_levels
            use_alternate_provider: Fetch from the alternate tile provider

        Returns:
            PrefetchResult with per-tile counts

        """
        result = PrefetchResult()
        reason = self._guard()
        if reason is not None:
            logger.info('Skipping pre-cache: %s', reason)
            result.skipped_reason = reason
            return result

        zooms = self.config.prefetch_zoom_levels if zoom_levels is None else zoom_levels
        tiles = collect_tiles(region, zooms)
        result.requested = len(tiles)
        pause_s = self.config.batch_pause_ms / 1000

        for i, batch in enumerate(batched(tiles, self.config.batch_size)):
            if i > 0:
                await asyncio.sleep(pause_s)
                if not self.environment.is_foreground():
                    logger.info(
                        'Pre-cache of %s interrupted: app in background',
                        region.name or 'region',
                    )
                    result.cancelled = True
                    break
            paths = await asyncio.gather(
                *(self.fetcher.fetch(coord, use_alternate_provider) for coord in batch),
                return_exceptions=True,
            )
            for coord, path in zip(batch, paths):
                if isinstance(path, BaseException):
                    logger.warning('Prefetch of tile %s failed: %s', coord, path)
                    result.failed += 1
                elif path is None:
                    result.failed += 1
                else:
                    result.cached += 1

        logger.info(
            'Pre-cached %d/%d tiles for %s (%d failed)',
            result.cached,
            result.requested,
            region.name or 'region',
            result.failed,
        )
        return result

    async def load_preferred_region(self) -> Region | None:
        """The saved preferred region, or None if absent or unreadable."""
        try:
            raw = await self.kv.get_item(self.config.preferred_region_key)
        except StorageError as e:
            logger.warning('Could not read preferred region: %s', e)
            return None
        if raw is None:
            return None
        try:
            return Region.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning('Ignoring malformed preferred region: %s', e)
            return None

    async def save_preferred_region(self, region: Region) -> None:
        """Raises StorageError when the record cannot be written."""
        raw = region.model_dump_json(by_alias=True, exclude_none=True)
        await self.kv.set_item(self.config.preferred_region_key, raw)

    async def prefetch_common_regions(
        self, use_alternate_provider: bool = False
    ) -> list[PrefetchResult]:
        """
        Prefetch the user's own region first in higher detail, then the
        configured city regions at overview zoom levels.
        """
        results: list[PrefetchResult] = []
        preferred = await self.load_preferred_region()
        if preferred is not None:
            results.append(
                await self.prefetch_region(
                    preferred, self.config.prefetch_zoom_levels, use_alternate_provider
                )
            )
        for region in self.config.common_regions:
            results.append(
                await self.prefetch_region(
                    region, self.config.common_region_zoom_levels, use_alternate_provider
                )
            )
        return results
