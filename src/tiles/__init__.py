"""Offline map-tile cache.

This module provides:
- to_tile / cover_region: Web Mercator tile coverage
- key_for / path_for: cache key and file resolution
- MetadataStore: per-tile metadata in a key-value store
- TileStore: tile files with self-healing validity checks
- TileFetcher: cache-or-download with in-flight de-duplication
- RegionPrefetcher: throttled, batched region pre-fetching
- CacheJanitor: size and age eviction
"""

from tiles.cache import TileStore
from tiles.coverage import cover_region, tile_bounds, to_tile
from tiles.fetcher import TileFetcher
from tiles.inflight import InFlightRegistry
from tiles.janitor import CacheJanitor, CleanupReport
from tiles.keys import key_for, parse_key, path_for
from tiles.metadata import MetadataStore
from tiles.prefetch import PrefetchResult, RegionPrefetcher

__all__ = [
    'CacheJanitor',
    'CleanupReport',
    'InFlightRegistry',
    'MetadataStore',
    'PrefetchResult',
    'RegionPrefetcher',
    'TileFetcher',
    'TileStore',
    'cover_region',
    'key_for',
    'parse_key',
    'path_for',
    'tile_bounds',
    'to_tile',
]
