"""Mapping layer between flat CacheConfig fields and sectioned TOML format.

CacheConfig remains a flat Pydantic model. This module provides two functions:
- flat_to_sectioned(): flat dict to sectioned dict (for TOML save)
- sectioned_to_flat(): sectioned dict to flat dict (for TOML load)

Named prefetch regions live in a top-level ``[[regions]]`` array of tables.
"""

from __future__ import annotations

# {section_name: {flat_field_name: short_name_in_toml}}
SECTION_MAP: dict[str, dict[str, str]] = {
    'cache': {
        'cache_directory': 'directory',
        'metadata_db_path': 'metadata_db',
        'max_age_ms': 'max_age_ms',
        'max_size_bytes': 'max_size_bytes',
        'metadata_key_prefix': 'metadata_key_prefix',
        'preferred_region_key': 'preferred_region_key',
    },
    'prefetch': {
        'min_free_space_bytes': 'min_free_space_bytes',
        'prefetch_zoom_levels': 'zoom_levels',
        'common_region_zoom_levels': 'common_zoom_levels',
        'batch_size': 'batch_size',
        'batch_pause_ms': 'batch_pause_ms',
        'prefetch_when_free_space_unknown': 'when_free_space_unknown',
    },
    'network': {
        'download_timeout_s': 'timeout_s',
        'tile_url_template': 'tile_url',
        'alternate_tile_url_template': 'alternate_tile_url',
        'user_agent': 'user_agent',
        'verify_images': 'verify_images',
    },
}

REGIONS_KEY = 'regions'

# Reverse index: flat_field -> (section, short_name)
_FLAT_TO_SECTION: dict[str, tuple[str, str]] = {}
for _section, _fields in SECTION_MAP.items():
    for _flat, _short in _fields.items():
        _FLAT_TO_SECTION[_flat] = (_section, _short)

# Reverse index: (section, short_name) -> flat_field
_SECTION_TO_FLAT: dict[str, dict[str, str]] = {}
for _section, _fields in SECTION_MAP.items():
    _SECTION_TO_FLAT[_section] = {v: k for k, v in _fields.items()}


def flat_to_sectioned(flat: dict) -> dict:
    """Convert flat CacheConfig dict to sectioned dict for TOML output."""
    result: dict = {}
    for key, value in flat.items():
        if value is None:
            # TOML has no null
            continue
        if key == 'common_regions':
            result[REGIONS_KEY] = list(value)
        elif key in _FLAT_TO_SECTION:
            section, short_name = _FLAT_TO_SECTION[key]
            result.setdefault(section, {})[short_name] = value
    return result


def sectioned_to_flat(data: dict) -> dict:
    """Convert sectioned TOML dict to flat dict for CacheConfig validation."""
    flat: dict = {}
    for key, value in data.items():
        if key == REGIONS_KEY:
            flat['common_regions'] = value
        elif isinstance(value, dict) and key in _SECTION_TO_FLAT:
            mapping = _SECTION_TO_FLAT[key]
            for short_name, field_value in value.items():
                flat[mapping.get(short_name, short_name)] = field_value
        elif isinstance(value, dict):
            # Unknown section: pass through keys as-is
            flat.update(value)
        else:
            # Top-level key (flat TOML)
            flat[key] = value
    return flat
