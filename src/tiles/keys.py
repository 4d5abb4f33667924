from __future__ import annotations

from pathlib import Path

from domain.models import TileCoordinate
from shared.constants import TILE_FILE_EXT


def key_for(coord: TileCoordinate) -> str:
    """Cache key of a tile: ``z_x_y``."""
    return f'{coord.z}_{coord.x}_{coord.y}'


def parse_key(key: str) -> TileCoordinate:
    """Inverse of key_for; raises ValueError on malformed keys."""
    parts = key.split('_')
    if len(parts) != 3:
        msg = f'Malformed tile key: {key!r}'
        raise ValueError(msg)
    z, x, y = (int(p) for p in parts)
    return TileCoordinate(x=x, y=y, z=z)


def path_for(cache_dir: Path, key: str) -> Path:
    """Local file of a cached tile."""
    return cache_dir / f'{key}{TILE_FILE_EXT}'
