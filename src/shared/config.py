"""Loading and saving of the cache configuration (TOML)."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomlkit
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from shared.constants import TILE_CACHE_DIR
from shared.errors import ConfigurationError

if TYPE_CHECKING:
    from domain.models import CacheConfig

logger = logging.getLogger(__name__)


def is_portable_mode() -> bool:
    """Portable mode is on when the executable name contains '_portable'."""
    return '_portable' in Path(sys.argv[0]).name.lower()


def resolve_cache_dir() -> Path:
    """
    Default tile directory.

    Portable mode keeps the cache beside the executable; otherwise it goes
    under LOCALAPPDATA when set, falling back to the home directory.
    """
    if is_portable_mode():
        return Path(sys.argv[0]).resolve().parent / 'cache' / 'map_tiles'

    raw_dir = Path(TILE_CACHE_DIR)
    if raw_dir.is_absolute():
        return raw_dir

    local = os.getenv('LOCALAPPDATA')
    if local:
        return (Path(local) / raw_dir).resolve()
    return (Path.home() / raw_dir).resolve()


def build_config(data: dict[str, Any] | None = None, **overrides: Any) -> CacheConfig:
    """Validate a flat dict (plus keyword overrides) into a CacheConfig."""
    from domain.models import CacheConfig

    merged = {**(data or {}), **{k: v for k, v in overrides.items() if v is not None}}
    try:
        return CacheConfig.model_validate(merged)
    except ValidationError as exc:
        msg = f'Invalid cache configuration: {exc}'
        raise ConfigurationError(msg) from exc


def load_config(path: str | Path, **overrides: Any) -> CacheConfig:
    """
    Load a sectioned TOML file into a CacheConfig.

    Args:
        path: TOML file with [cache], [prefetch], [network] and [[regions]]
        **overrides: flat CacheConfig fields taking precedence over the file

    Raises:
        ConfigurationError: file missing, unreadable or invalid

    """
    from domain.toml_sections import sectioned_to_flat

    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
        data = tomlkit.parse(text).unwrap()
    except OSError as exc:
        msg = f'Cannot read configuration {path}: {exc}'
        raise ConfigurationError(msg) from exc
    except TOMLKitError as exc:
        msg = f'Malformed configuration {path}: {exc}'
        raise ConfigurationError(msg) from exc

    config = build_config(sectioned_to_flat(data), **overrides)
    logger.info('Configuration loaded from %s', path)
    return config


def save_config(config: CacheConfig, path: str | Path) -> Path:
    """Write a CacheConfig as sectioned TOML."""
    from domain.toml_sections import flat_to_sectioned

    path = Path(path)
    flat = config.model_dump(mode='json', exclude_none=True)
    doc = tomlkit.document()
    # Bare keys (an empty region list) must precede the first table
    sectioned = sorted(flat_to_sectioned(flat).items(), key=lambda item: item[1] != [])
    for key, value in sectioned:
        if isinstance(value, list) and not value:
            # Explicit empty list, otherwise reload falls back to the defaults
            doc.add(key, tomlkit.array())
        elif isinstance(value, list):
            aot = tomlkit.aot()
            for item in value:
                aot.append(tomlkit.item(item))
            doc.add(key, aot)
        else:
            doc.add(key, value)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomlkit.dumps(doc), encoding='utf-8')
    except OSError as exc:
        msg = f'Cannot write configuration {path}: {exc}'
        raise ConfigurationError(msg) from exc
    return path
