"""Domain layer - tile cache models."""
from domain.models import CacheConfig, CacheEntry, CacheStats, Region, TileCoordinate

__all__ = [
    'CacheConfig',
    'CacheEntry',
    'CacheStats',
    'Region',
    'TileCoordinate',
]
