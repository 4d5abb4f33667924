"""Services package - public map tile cache service."""

from services.map_cache_service import MapTileCacheService

__all__ = [
    'MapTileCacheService',
]
