"""SQLite-backed persistent key-value store.

Async facade over a single SQLite table; blocking calls run in a worker
thread so the event loop never waits on disk.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from shared.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def get_all_keys(self) -> list[str]: ...


class SQLiteKeyValueStore:
    """Persistent string→string store in one SQLite file (WAL mode).

    Usage:
        store = SQLiteKeyValueStore(path)
        await store.set_item('k', 'v')
        value = await store.get_item('k')
        store.close()
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.execute('PRAGMA journal_mode=WAL')
            conn.execute('PRAGMA synchronous=NORMAL')
            conn.execute(
                'CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)'
            )
            conn.commit()
            self._conn = conn
            logger.info('Key-value store opened at %s', self.db_path)
        return self._conn

    def _run(self, sql: str, params: tuple = (), *, fetch: str | None = None):
        with self._lock:
            try:
                conn = self._get_connection()
                cursor = conn.execute(sql, params)
                if fetch == 'one':
                    return cursor.fetchone()
                if fetch == 'all':
                    return cursor.fetchall()
                conn.commit()
                return None
            except (sqlite3.Error, OSError) as exc:
                msg = f'Key-value store failure ({self.db_path}): {exc}'
                raise StorageError(msg) from exc

    async def get_item(self, key: str) -> str | None:
        row = await asyncio.to_thread(
            self._run, 'SELECT value FROM kv WHERE key = ?', (key,), fetch='one'
        )
        return None if row is None else row[0]

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(
            self._run,
            'INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)',
            (key, value),
        )

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._run, 'DELETE FROM kv WHERE key = ?', (key,))

    async def get_all_keys(self) -> list[str]:
        rows = await asyncio.to_thread(self._run, 'SELECT key FROM kv', fetch='all')
        return [r[0] for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info('Key-value store closed')
