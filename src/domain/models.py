from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.constants import (
    ALTERNATE_TILE_URL,
    COMMON_REGION_SPAN_DEG,
    COMMON_REGION_ZOOM_LEVELS,
    COMMON_REGIONS,
    HTTP_USER_AGENT,
    MAX_ZOOM,
    METADATA_DB_NAME,
    METADATA_KEY_PREFIX,
    OSM_TILE_URL,
    PREFERRED_REGION_KEY,
    PREFETCH_BATCH_PAUSE_MS,
    PREFETCH_BATCH_SIZE,
    PREFETCH_MIN_FREE_SPACE_BYTES,
    PREFETCH_ZOOM_LEVELS,
    TILE_CACHE_DIR,
    TILE_CACHE_MAX_AGE_MS,
    TILE_CACHE_MAX_SIZE_BYTES,
    TILE_DOWNLOAD_TIMEOUT_S,
)


class TileCoordinate(BaseModel):
    """Web Mercator tile address."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    z: int = Field(ge=0, le=MAX_ZOOM)

    @model_validator(mode='after')
    def _check_bounds(self) -> TileCoordinate:
        n = 1 << self.z
        if not (0 <= self.x < n and 0 <= self.y < n):
            msg = f'Tile x/y out of range for zoom {self.z}: x={self.x} y={self.y}'
            raise ValueError(msg)
        return self


class Region(BaseModel):
    """
    Rectangular viewport centred at (latitude, longitude).

    Also the JSON shape of the persisted preferred region, which the mobile
    apps write with camelCase span names.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    latitude_delta: float = Field(alias='latitudeDelta')
    longitude_delta: float = Field(alias='longitudeDelta')
    name: str | None = None


class CacheEntry(BaseModel):
    """Metadata record of one cached tile."""

    key: str
    timestamp_ms: int
    size_bytes: int = Field(ge=0)


class CacheStats(BaseModel):
    """Statistics about the tile cache."""

    total_tiles: int
    total_size_bytes: int
    tiles_by_zoom: dict[int, int]
    size_by_zoom: dict[int, int]
    oldest_tile_ms: int | None
    newest_tile_ms: int | None


def default_cache_dir() -> Path:
    from shared.config import resolve_cache_dir

    return resolve_cache_dir()


def default_common_regions() -> list[Region]:
    return [
        Region(
            latitude=lat,
            longitude=lon,
            latitude_delta=COMMON_REGION_SPAN_DEG,
            longitude_delta=COMMON_REGION_SPAN_DEG,
            name=name.title(),
        )
        for name, (lat, lon) in COMMON_REGIONS.items()
    ]


class CacheConfig(BaseModel):
    """
    Process-wide cache settings.

    Built once at startup and passed to every component; frozen afterwards,
    changing it requires a restart.
    """

    model_config = ConfigDict(frozen=True, extra='ignore')

    # Budgets
    max_age_ms: int = Field(default=TILE_CACHE_MAX_AGE_MS, gt=0)
    max_size_bytes: int = Field(default=TILE_CACHE_MAX_SIZE_BYTES, ge=0)
    min_free_space_bytes: int = Field(default=PREFETCH_MIN_FREE_SPACE_BYTES, ge=0)

    # Storage
    cache_directory: Path = Field(default_factory=default_cache_dir)
    metadata_db_path: Path | None = None
    metadata_key_prefix: str = METADATA_KEY_PREFIX
    preferred_region_key: str = PREFERRED_REGION_KEY

    # Prefetch
    prefetch_zoom_levels: tuple[int, ...] = PREFETCH_ZOOM_LEVELS
    common_region_zoom_levels: tuple[int, ...] = COMMON_REGION_ZOOM_LEVELS
    batch_size: int = Field(default=PREFETCH_BATCH_SIZE, gt=0)
    batch_pause_ms: int = Field(default=PREFETCH_BATCH_PAUSE_MS, ge=0)
    # Free space estimate unavailable: proceed (True) or skip (False)
    prefetch_when_free_space_unknown: bool = True
    common_regions: tuple[Region, ...] = Field(
        default_factory=lambda: tuple(default_common_regions())
    )

    # Network
    download_timeout_s: float = Field(default=TILE_DOWNLOAD_TIMEOUT_S, gt=0)
    tile_url_template: str = OSM_TILE_URL
    alternate_tile_url_template: str = ALTERNATE_TILE_URL
    user_agent: str = HTTP_USER_AGENT
    verify_images: bool = True

    @field_validator('prefetch_zoom_levels', 'common_region_zoom_levels')
    @classmethod
    def _check_zooms(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        for z in v:
            if not 0 <= z <= MAX_ZOOM:
                msg = f'Zoom level out of range 0..{MAX_ZOOM}: {z}'
                raise ValueError(msg)
        return v

    @field_validator('tile_url_template', 'alternate_tile_url_template')
    @classmethod
    def _check_template(cls, v: str) -> str:
        for part in ('{x}', '{y}', '{z}'):
            if part not in v:
                msg = f'Tile URL template must contain {part}: {v}'
                raise ValueError(msg)
        return v

    @field_validator('metadata_key_prefix')
    @classmethod
    def _check_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError('Metadata key prefix must not be empty')
        return v

    @property
    def metadata_path(self) -> Path:
        """SQLite file of the key-value store, beside the tile directory by default."""
        if self.metadata_db_path is not None:
            return self.metadata_db_path
        return self.cache_directory.parent / METADATA_DB_NAME
