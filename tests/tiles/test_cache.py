"""Tests for TileStore."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from domain.models import CacheEntry
from infrastructure.storage.files import LocalFileStorage
from shared.errors import StorageError
from tiles.cache import TileStore

KEY = '15_100_200'


class TestTileStore:
    """Tests for TileStore class."""

    @pytest.mark.asyncio
    async def test_write_then_exists(self, store, png_bytes):
        await store.write(KEY, png_bytes)
        assert await store.exists(KEY)
        assert store.path_for(KEY).read_bytes() == png_bytes

    @pytest.mark.asyncio
    async def test_write_records_metadata(self, store, metadata, clock, png_bytes):
        await store.write(KEY, png_bytes)
        entry = await metadata.get(KEY)
        assert entry == CacheEntry(key=KEY, timestamp_ms=clock.now_ms, size_bytes=len(png_bytes))

    @pytest.mark.asyncio
    async def test_exists_false_when_absent(self, store):
        assert not await store.exists(KEY)

    @pytest.mark.asyncio
    async def test_orphan_file_self_heals(self, store):
        """A file without metadata is a miss and gets removed."""
        path = store.path_for(KEY)
        path.write_bytes(b'orphan')
        assert not await store.exists(KEY)
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_metadata_without_file_self_heals(self, store, metadata):
        await metadata.put(KEY, CacheEntry(key=KEY, timestamp_ms=store.clock(), size_bytes=5))
        assert not await store.exists(KEY)
        assert await metadata.get(KEY) is None

    @pytest.mark.asyncio
    async def test_expired_tile_removed(self, store, metadata, clock, png_bytes):
        await store.write(KEY, png_bytes)
        clock.advance(store.config.max_age_ms + 1)
        assert not await store.exists(KEY)
        assert not store.path_for(KEY).exists()
        assert await metadata.get(KEY) is None

    @pytest.mark.asyncio
    async def test_tile_valid_at_exact_max_age(self, store, clock, png_bytes):
        await store.write(KEY, png_bytes)
        clock.advance(store.config.max_age_ms)
        assert await store.exists(KEY)

    @pytest.mark.asyncio
    async def test_metadata_write_failure_leaves_orphan(self, store, kv, png_bytes):
        """A failed metadata write is logged; the orphan is healed on the next check."""
        kv.fail_writes = True
        await store.write(KEY, png_bytes)
        assert store.path_for(KEY).exists()
        kv.fail_writes = False
        assert not await store.exists(KEY)
        assert not store.path_for(KEY).exists()

    @pytest.mark.asyncio
    async def test_file_write_failure_raises(self, config, metadata, clock):
        files = LocalFileStorage()
        files.write = AsyncMock(side_effect=StorageError('disk full'))
        store = TileStore(config, files, metadata, clock=clock)
        with pytest.raises(StorageError):
            await store.write(KEY, b'data')
        assert await metadata.get(KEY) is None

    @pytest.mark.asyncio
    async def test_metadata_read_failure_is_miss(self, store, kv, png_bytes):
        await store.write(KEY, png_bytes)
        kv.fail_reads = True
        assert not await store.exists(KEY)
        kv.fail_reads = False
        # Nothing was deleted on a transient failure
        assert await store.exists(KEY)

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store, png_bytes):
        await store.write(KEY, png_bytes)
        await store.delete(KEY)
        await store.delete(KEY)
        assert not await store.exists(KEY)

    @pytest.mark.asyncio
    async def test_read(self, store, png_bytes):
        assert await store.read(KEY) is None
        await store.write(KEY, png_bytes)
        assert await store.read(KEY) == png_bytes

    @pytest.mark.asyncio
    async def test_total_size(self, store):
        await store.write('15_1_1', b'1234567890')
        await store.write('15_1_2', b'12345')
        assert await store.total_size() == 15

    @pytest.mark.asyncio
    async def test_ensure_directory(self, config, metadata, clock, tmp_path):
        cfg = config.model_copy(update={'cache_directory': tmp_path / 'a' / 'b'})
        store = TileStore(cfg, LocalFileStorage(), metadata, clock=clock)
        await store.ensure_directory()
        assert (tmp_path / 'a' / 'b').is_dir()
