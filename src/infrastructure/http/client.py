from __future__ import annotations

import asyncio
import logging
import ssl
from io import BytesIO
from typing import TYPE_CHECKING

import aiohttp
import certifi
from PIL import Image, UnidentifiedImageError

from shared.constants import HTTP_OK
from shared.errors import NetworkError

if TYPE_CHECKING:
    from domain.models import CacheConfig, TileCoordinate

logger = logging.getLogger(__name__)


def make_http_session(user_agent: str | None = None) -> aiohttp.ClientSession:
    # SSL context with the certifi CA bundle
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)
    headers = {'User-Agent': user_agent} if user_agent else None
    return aiohttp.ClientSession(connector=connector, headers=headers)


def verify_tile_image(data: bytes) -> None:
    """Raise NetworkError unless the payload is a decodable raster image."""
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        msg = f'Undecodable tile payload ({len(data)} bytes): {exc}'
        raise NetworkError(msg) from exc


class TileSource:
    """
    HTTP tile provider pair (primary and alternate).

    The aiohttp session is created on first download and must be released
    with close().
    """

    def __init__(
        self,
        config: CacheConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config
        self._session = session
        self._owns_session = session is None

    def url_for(self, coord: TileCoordinate, use_alternate_provider: bool = False) -> str:
        template = (
            self.config.alternate_tile_url_template
            if use_alternate_provider
            else self.config.tile_url_template
        )
        return template.format(x=coord.x, y=coord.y, z=coord.z)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = make_http_session(self.config.user_agent)
            self._owns_session = True
        return self._session

    async def download(
        self, coord: TileCoordinate, use_alternate_provider: bool = False
    ) -> bytes:
        """
        Download one tile.

        Bounded by download_timeout_s; no retries.

        Raises:
            NetworkError: connection failure, timeout, non-200 status or
                an undecodable payload

        """
        url = self.url_for(coord, use_alternate_provider)
        timeout = aiohttp.ClientTimeout(total=self.config.download_timeout_s)
        z, x, y = coord.z, coord.x, coord.y
        try:
            async with self._get_session().get(url, timeout=timeout) as resp:
                sc = resp.status
                if sc != HTTP_OK:
                    msg = f'HTTP {sc} for tile z/x/y={z}/{x}/{y}'
                    raise NetworkError(msg)
                data = await resp.read()
        except (TimeoutError, asyncio.TimeoutError) as exc:
            msg = f'Timeout after {self.config.download_timeout_s}s for tile z/x/y={z}/{x}/{y}'
            raise NetworkError(msg) from exc
        except aiohttp.ClientError as exc:
            msg = f'Connection error for tile z/x/y={z}/{x}/{y}: {exc}'
            raise NetworkError(msg) from exc

        if not data:
            msg = f'Empty payload for tile z/x/y={z}/{x}/{y}'
            raise NetworkError(msg)
        if self.config.verify_images:
            verify_tile_image(data)
        logger.debug('Downloaded tile %d/%d/%d (%d bytes)', z, x, y, len(data))
        return data

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
