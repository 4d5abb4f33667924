"""Error taxonomy of the tile cache.

None of these errors leave the public service: they are raised by the
infrastructure adapters and handled at component seams.
"""

from __future__ import annotations


class TileCacheError(Exception):
    """Base class for tile cache errors."""


class NetworkError(TileCacheError):
    """Tile download failed, timed out or returned an unusable payload."""


class StorageError(TileCacheError):
    """File or key-value storage operation failed."""


class CorruptionError(TileCacheError):
    """Tile file and its metadata disagree (one exists without the other)."""


class ConfigurationError(TileCacheError):
    """Configuration is invalid or the cache directory is unusable."""
