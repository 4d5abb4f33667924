from __future__ import annotations

# Maximum age of a cached tile (ms), 7 days
TILE_CACHE_MAX_AGE_MS = 7 * 24 * 60 * 60 * 1000

# Maximum total size of cached tiles (bytes), 50 MB
TILE_CACHE_MAX_SIZE_BYTES = 50 * 1024 * 1024

# Minimum free device storage required to pre-fetch (bytes), 500 MB
PREFETCH_MIN_FREE_SPACE_BYTES = 500 * 1024 * 1024

# Zoom levels for an explicitly requested region and for the user's own region
PREFETCH_ZOOM_LEVELS = (13, 14, 15)

# Zoom levels for generic city coverage (overview only, to save space)
COMMON_REGION_ZOOM_LEVELS = (12, 13)

# Number of tiles fetched concurrently in one prefetch batch
PREFETCH_BATCH_SIZE = 5

# Pause between prefetch batches (ms)
PREFETCH_BATCH_PAUSE_MS = 100

# Timeout for one tile download (seconds)
TILE_DOWNLOAD_TIMEOUT_S = 15.0

# Relative cache location, resolved against LOCALAPPDATA or the home directory
TILE_CACHE_DIR = '.offline_tile_cache/map_tiles'

# SQLite file for tile metadata and other persistent key-value records
METADATA_DB_NAME = 'tile_metadata.sqlite'

# Namespace of tile metadata keys in the key-value store
METADATA_KEY_PREFIX = 'tile_meta_'

# Key of the user's preferred region record, shared with the mobile apps
PREFERRED_REGION_KEY = 'userPreferredRegion'

# Extension of cached tile files
TILE_FILE_EXT = '.png'

# Web Mercator is undefined at the poles; latitudes are clamped to this value
MAX_MERCATOR_LAT = 85.05112878

# Maximum supported zoom level
MAX_ZOOM = 22

# Primary tile provider (OpenStreetMap)
OSM_TILE_URL = 'https://a.tile.openstreetmap.org/{z}/{x}/{y}.png'

# Alternate tile provider (Google raster road map)
ALTERNATE_TILE_URL = 'https://mt1.google.com/vt/lyrs=m&x={x}&y={y}&z={z}'

# User-Agent sent to tile providers (OSM tile usage policy requires one)
HTTP_USER_AGENT = 'offline-tile-cache/1.0 (+https://github.com/okada-transport)'

HTTP_OK = 200

# Default span of a named common region (degrees)
COMMON_REGION_SPAN_DEG = 0.1

# Named city regions for generic pre-caching: name -> (lat, lon)
COMMON_REGIONS: dict[str, tuple[float, float]] = {
    'LAGOS': (6.5244, 3.3792),
    'ABUJA': (9.0765, 7.3986),
    'IBADAN': (7.3775, 3.9470),
}

MS_PER_SECOND = 1000
