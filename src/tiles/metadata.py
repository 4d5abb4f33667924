"""Per-tile metadata records in the persistent key-value store.

Each record lives under ``<prefix><key>`` as JSON ``{"timestamp": ms, "size": bytes}``
so it coexists with unrelated application state in the same store.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from domain.models import CacheEntry

if TYPE_CHECKING:
    from infrastructure.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)


class MetadataStore:
    """Sole owner of CacheEntry records. All methods may raise StorageError."""

    def __init__(self, kv: KeyValueStore, prefix: str) -> None:
        self.kv = kv
        self.prefix = prefix

    def _kv_key(self, key: str) -> str:
        return f'{self.prefix}{key}'

    def _decode(self, key: str, raw: str) -> CacheEntry | None:
        try:
            meta = json.loads(raw)
            return CacheEntry(
                key=key,
                timestamp_ms=int(meta['timestamp']),
                size_bytes=int(meta['size']),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning('Corrupt metadata for tile %s ignored: %s', key, e)
            return None

    async def get(self, key: str) -> CacheEntry | None:
        raw = await self.kv.get_item(self._kv_key(key))
        if raw is None:
            return None
        return self._decode(key, raw)

    async def put(self, key: str, entry: CacheEntry) -> None:
        raw = json.dumps({'timestamp': entry.timestamp_ms, 'size': entry.size_bytes})
        await self.kv.set_item(self._kv_key(key), raw)

    async def remove(self, key: str) -> None:
        await self.kv.remove_item(self._kv_key(key))

    async def list_all(self) -> list[CacheEntry]:
        """Every decodable entry; records that vanish or fail to decode are skipped."""
        entries: list[CacheEntry] = []
        for kv_key in await self.kv.get_all_keys():
            if not kv_key.startswith(self.prefix):
                continue
            entry = await self.get(kv_key[len(self.prefix):])
            if entry is not None:
                entries.append(entry)
        return entries
