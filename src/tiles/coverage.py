"""Web Mercator tile coverage: lat/lon → tile and region → tile rectangle."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from domain.models import TileCoordinate
from shared.constants import MAX_MERCATOR_LAT

if TYPE_CHECKING:
    from domain.models import Region


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def to_tile(lat: float, lon: float, zoom: int) -> TileCoordinate:
    """
    Tile containing the point at the given zoom.

    Latitude is clamped to the Mercator-safe range and the result to the
    tile grid, so lon=180 and the polar caps map onto the edge tiles.
    """
    n = 1 << zoom
    lat = _clamp(lat, -MAX_MERCATOR_LAT, MAX_MERCATOR_LAT)
    lon = _clamp(lon, -180.0, 180.0)
    lat_rad = math.radians(lat)
    x = math.floor((lon + 180.0) / 360.0 * n)
    y = math.floor(
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n
    )
    return TileCoordinate(x=int(_clamp(x, 0, n - 1)), y=int(_clamp(y, 0, n - 1)), z=zoom)


def tile_bounds(coord: TileCoordinate) -> tuple[float, float, float, float]:
    """Return (west, south, east, north) of a tile in degrees."""
    n = 1 << coord.z

    def _lat(ty: int) -> float:
        return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * ty / n))))

    west = coord.x / n * 360.0 - 180.0
    east = (coord.x + 1) / n * 360.0 - 180.0
    return west, _lat(coord.y + 1), east, _lat(coord.y)


def cover_region(region: Region, zoom: int) -> list[TileCoordinate]:
    """All tiles of the inclusive rectangle spanned by the region's NW and SE corners."""
    half_lat = region.latitude_delta / 2.0
    half_lon = region.longitude_delta / 2.0
    nw = to_tile(region.latitude + half_lat, region.longitude - half_lon, zoom)
    se = to_tile(region.latitude - half_lat, region.longitude + half_lon, zoom)

    # Deltas may be negative
    x0, x1 = min(nw.x, se.x), max(nw.x, se.x)
    y0, y1 = min(nw.y, se.y), max(nw.y, se.y)
    return [
        TileCoordinate(x=x, y=y, z=zoom)
        for x in range(x0, x1 + 1)
        for y in range(y0, y1 + 1)
    ]
