"""Pytest configuration and fixtures for tile cache tests."""

import asyncio
import sys
from io import BytesIO
from pathlib import Path

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from PIL import Image  # noqa: E402

from domain.models import CacheConfig  # noqa: E402
from infrastructure.storage.files import LocalFileStorage  # noqa: E402
from shared.errors import NetworkError, StorageError  # noqa: E402
from tiles.cache import TileStore  # noqa: E402
from tiles.fetcher import TileFetcher  # noqa: E402
from tiles.metadata import MetadataStore  # noqa: E402

T0 = 1_700_000_000_000


def make_png(size: int = 8, color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new('RGB', (size, size), color).save(buf, format='PNG')
    return buf.getvalue()


class MemoryKeyValueStore:
    """In-memory key-value store with switchable failures."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.fail_removes = False

    async def get_item(self, key):
        if self.fail_reads:
            raise StorageError('read failed')
        return self.data.get(key)

    async def set_item(self, key, value):
        if self.fail_writes:
            raise StorageError('write failed')
        self.data[key] = value

    async def remove_item(self, key):
        if self.fail_removes:
            raise StorageError('remove failed')
        self.data.pop(key, None)

    async def get_all_keys(self):
        if self.fail_reads:
            raise StorageError('read failed')
        return list(self.data)


class FakeTileSource:
    """Tile source returning a PNG, counting requests per tile."""

    def __init__(self, payload: bytes | None = None):
        self.payload = payload if payload is not None else make_png()
        self.calls: list[tuple[int, int, int, bool]] = []
        self.failing: set[tuple[int, int, int]] = set()
        self.gate: asyncio.Event | None = None

    def url_for(self, coord, use_alternate_provider=False):
        host = 'alt' if use_alternate_provider else 'main'
        return f'https://{host}.example/{coord.z}/{coord.x}/{coord.y}.png'

    async def download(self, coord, use_alternate_provider=False):
        self.calls.append((coord.z, coord.x, coord.y, use_alternate_provider))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if (coord.z, coord.x, coord.y) in self.failing:
            raise NetworkError(f'HTTP 503 for tile {coord.z}/{coord.x}/{coord.y}')
        return self.payload

    async def close(self):
        pass


class FakeEnvironment:
    def __init__(self, foreground=True, free_space=10 * 1024**3):
        self.foreground = foreground
        self.free_space = free_space

    def is_foreground(self):
        return self.foreground

    def estimate_free_space(self):
        return self.free_space


class ManualClock:
    def __init__(self, now_ms: int = T0):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def config(tmp_path):
    return CacheConfig(
        cache_directory=tmp_path / 'map_tiles',
        max_age_ms=1000,
        max_size_bytes=10_000_000,
        min_free_space_bytes=1024,
        batch_size=5,
        batch_pause_ms=0,
        common_regions=(),
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def metadata(kv, config):
    return MetadataStore(kv, config.metadata_key_prefix)


@pytest.fixture
def store(config, metadata, clock):
    config.cache_directory.mkdir(parents=True, exist_ok=True)
    return TileStore(config, LocalFileStorage(), metadata, clock=clock)


@pytest.fixture
def source():
    return FakeTileSource()


@pytest.fixture
def environment():
    return FakeEnvironment()


@pytest.fixture
def fetcher(store, source):
    return TileFetcher(store, source)
