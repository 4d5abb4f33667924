"""File-based tile store with metadata-backed validity.

A tile is valid only while its file and its metadata record both exist and
the record is younger than the age budget. Any other combination is
repaired on sight by deleting what is left and reporting a miss.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from domain.models import CacheEntry
from shared.constants import MS_PER_SECOND
from shared.errors import CorruptionError, StorageError
from tiles.keys import path_for

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from domain.models import CacheConfig
    from infrastructure.storage.files import FileStorage
    from tiles.metadata import MetadataStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * MS_PER_SECOND)


class TileStore:
    """Tile files plus their metadata.

    Usage:
        store = TileStore(config, files, metadata)
        await store.ensure_directory()
        await store.write('15_100_200', tile_bytes)
        if await store.exists('15_100_200'):
            path = store.path_for('15_100_200')
    """

    def __init__(
        self,
        config: CacheConfig,
        files: FileStorage,
        metadata: MetadataStore,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config
        self.files = files
        self.metadata = metadata
        self.clock = clock

    def path_for(self, key: str) -> Path:
        return path_for(self.config.cache_directory, key)

    async def ensure_directory(self) -> None:
        await self.files.make_directory(self.config.cache_directory)

    def is_expired(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp_ms > self.config.max_age_ms

    async def _validate(self, key: str) -> bool:
        """
        True for a valid tile, False for a clean miss.

        Raises:
            CorruptionError: file or metadata present alone, or expired

        """
        try:
            entry = await self.metadata.get(key)
        except StorageError as e:
            # Miss without repair: the record may be fine once the store recovers
            logger.warning('Metadata read failed for tile %s: %s', key, e)
            return False
        file_exists = await self.files.exists(self.path_for(key))

        if entry is None and not file_exists:
            return False
        if entry is None:
            raise CorruptionError(f'orphan file without metadata for tile {key}')
        if not file_exists:
            raise CorruptionError(f'metadata without file for tile {key}')
        if self.is_expired(entry):
            raise CorruptionError(f'tile {key} expired')
        return True

    async def exists(self, key: str) -> bool:
        """True only for a valid tile; invalid leftovers are deleted. Never raises."""
        try:
            return await self._validate(key)
        except CorruptionError as e:
            logger.debug('Self-healing cache entry: %s', e)
            try:
                await self.delete(key)
            except StorageError as del_err:
                logger.warning('Could not remove invalid tile %s: %s', key, del_err)
            return False
        except StorageError as e:
            logger.warning('Validity check failed for tile %s: %s', key, e)
            return False

    async def read(self, key: str) -> bytes | None:
        """Bytes of a valid tile, or None."""
        if not await self.exists(key):
            return None
        try:
            return await self.files.read(self.path_for(key))
        except StorageError as e:
            logger.warning('Could not read tile %s: %s', key, e)
            return None

    async def write(self, key: str, data: bytes) -> None:
        """
        Store tile bytes, file first, then metadata.

        A crash between the two steps leaves an orphan file that exists()
        removes later, never metadata pointing at a missing file.

        Raises:
            StorageError: the file could not be written

        """
        await self.files.write(self.path_for(key), data)
        entry = CacheEntry(key=key, timestamp_ms=self.clock(), size_bytes=len(data))
        try:
            await self.metadata.put(key, entry)
        except StorageError as e:
            logger.warning('Metadata write failed for tile %s (orphan left): %s', key, e)

    async def delete(self, key: str) -> None:
        """Remove file and metadata; missing parts are not an error.

        Raises:
            StorageError: file or metadata removal failed

        """
        await self.files.delete(self.path_for(key))
        await self.metadata.remove(key)

    async def total_size(self) -> int:
        return sum(e.size_bytes for e in await self.metadata.list_all())
