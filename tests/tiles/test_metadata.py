"""Tests for MetadataStore."""

import json

import pytest

from domain.models import CacheEntry
from shared.errors import StorageError


def _entry(key, ts=1000, size=10):
    return CacheEntry(key=key, timestamp_ms=ts, size_bytes=size)


class TestMetadataStore:
    """Tests for MetadataStore class."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, metadata):
        await metadata.put('13_1_2', _entry('13_1_2', ts=42, size=512))
        entry = await metadata.get('13_1_2')
        assert entry == _entry('13_1_2', ts=42, size=512)

    @pytest.mark.asyncio
    async def test_record_is_namespaced_json(self, metadata, kv):
        await metadata.put('13_1_2', _entry('13_1_2', ts=42, size=512))
        assert json.loads(kv.data['tile_meta_13_1_2']) == {'timestamp': 42, 'size': 512}

    @pytest.mark.asyncio
    async def test_get_missing(self, metadata):
        assert await metadata.get('13_9_9') is None

    @pytest.mark.asyncio
    async def test_remove(self, metadata):
        await metadata.put('13_1_2', _entry('13_1_2'))
        await metadata.remove('13_1_2')
        assert await metadata.get('13_1_2') is None

    @pytest.mark.asyncio
    async def test_list_all_ignores_foreign_keys(self, metadata, kv):
        kv.data['userPreferredRegion'] = '{}'
        kv.data['session_token'] = 'abc'
        await metadata.put('13_1_2', _entry('13_1_2'))
        await metadata.put('14_2_4', _entry('14_2_4'))
        keys = sorted(e.key for e in await metadata.list_all())
        assert keys == ['13_1_2', '14_2_4']

    @pytest.mark.asyncio
    async def test_corrupt_record_treated_as_absent(self, metadata, kv):
        kv.data['tile_meta_13_1_2'] = 'not json'
        kv.data['tile_meta_13_1_3'] = '{"timestamp": 1}'
        assert await metadata.get('13_1_2') is None
        assert await metadata.list_all() == []

    @pytest.mark.asyncio
    async def test_storage_failure_raises(self, metadata, kv):
        kv.fail_reads = True
        with pytest.raises(StorageError):
            await metadata.get('13_1_2')
        kv.fail_reads = False
        kv.fail_writes = True
        with pytest.raises(StorageError):
            await metadata.put('13_1_2', _entry('13_1_2'))
