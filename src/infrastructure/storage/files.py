"""Async local file storage for tile images."""

from __future__ import annotations

import asyncio
import contextlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

from shared.errors import StorageError


class FileStorage(Protocol):
    async def exists(self, path: Path) -> bool: ...

    async def read(self, path: Path) -> bytes: ...

    async def write(self, path: Path, data: bytes) -> None: ...

    async def delete(self, path: Path) -> None: ...

    async def make_directory(self, path: Path) -> None: ...


def _write_atomic(path: Path, data: bytes) -> None:
    # Temp file in the same directory so os.replace stays on one filesystem
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


def _delete(path: Path) -> None:
    # Absence is not an error
    with contextlib.suppress(FileNotFoundError):
        path.unlink()


class LocalFileStorage:
    """Filesystem storage; OSError surfaces as StorageError."""

    async def _call(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except OSError as exc:
            msg = f'File storage failure: {exc}'
            raise StorageError(msg) from exc

    async def exists(self, path: Path) -> bool:
        return await self._call(path.is_file)

    async def read(self, path: Path) -> bytes:
        return await self._call(path.read_bytes)

    async def write(self, path: Path, data: bytes) -> None:
        await self._call(_write_atomic, path, data)

    async def delete(self, path: Path) -> None:
        await self._call(_delete, path)

    async def make_directory(self, path: Path) -> None:
        await self._call(lambda: path.mkdir(parents=True, exist_ok=True))
