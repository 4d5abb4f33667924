"""HTTP client infrastructure."""
from infrastructure.http.client import (
    TileSource,
    make_http_session,
    verify_tile_image,
)

__all__ = [
    'TileSource',
    'make_http_session',
    'verify_tile_image',
]
