"""Shared configuration, constants and errors."""
from shared.config import build_config, load_config, resolve_cache_dir, save_config
from shared.errors import (
    ConfigurationError,
    CorruptionError,
    NetworkError,
    StorageError,
    TileCacheError,
)

__all__ = [
    'ConfigurationError',
    'CorruptionError',
    'NetworkError',
    'StorageError',
    'TileCacheError',
    'build_config',
    'load_config',
    'resolve_cache_dir',
    'save_config',
]
