"""Registry of in-flight operations keyed by cache key.

Concurrent callers asking for the same key share one running task and its
outcome instead of starting duplicates.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar('T')


class InFlightRegistry(Generic[T]):
    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[T]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Await the operation for key, starting it via factory only if none is running.

        The marker is removed as soon as the task settles, successfully or
        not. A cancelled waiter does not cancel the shared task.
        """
        future = self._pending.get(key)
        if future is None:
            future = asyncio.ensure_future(factory())
            self._pending[key] = future
            future.add_done_callback(lambda f: self._discard(key, f))
        return await asyncio.shield(future)

    def _discard(self, key: str, future: asyncio.Future[T]) -> None:
        if self._pending.get(key) is future:
            del self._pending[key]
