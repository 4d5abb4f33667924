"""Persistent storage infrastructure."""
from infrastructure.storage.files import FileStorage, LocalFileStorage
from infrastructure.storage.kv import KeyValueStore, SQLiteKeyValueStore

__all__ = [
    'FileStorage',
    'KeyValueStore',
    'LocalFileStorage',
    'SQLiteKeyValueStore',
]
