"""Tests for constants module."""

from shared.constants import (
    ALTERNATE_TILE_URL,
    COMMON_REGION_ZOOM_LEVELS,
    COMMON_REGIONS,
    MAX_MERCATOR_LAT,
    METADATA_KEY_PREFIX,
    OSM_TILE_URL,
    PREFERRED_REGION_KEY,
    PREFETCH_BATCH_PAUSE_MS,
    PREFETCH_BATCH_SIZE,
    PREFETCH_MIN_FREE_SPACE_BYTES,
    PREFETCH_ZOOM_LEVELS,
    TILE_CACHE_MAX_AGE_MS,
    TILE_CACHE_MAX_SIZE_BYTES,
)


class TestBudgets:
    """Tests for cache budget defaults."""

    def test_max_age_is_seven_days(self):
        assert TILE_CACHE_MAX_AGE_MS == 604_800_000

    def test_max_size_is_fifty_mib(self):
        assert TILE_CACHE_MAX_SIZE_BYTES == 52_428_800

    def test_min_free_space_is_500_mib(self):
        assert PREFETCH_MIN_FREE_SPACE_BYTES == 524_288_000


class TestPrefetchDefaults:
    """Tests for prefetch defaults."""

    def test_zoom_levels(self):
        assert PREFETCH_ZOOM_LEVELS == (13, 14, 15)
        assert COMMON_REGION_ZOOM_LEVELS == (12, 13)

    def test_batching(self):
        assert PREFETCH_BATCH_SIZE == 5
        assert PREFETCH_BATCH_PAUSE_MS == 100

    def test_common_regions_are_valid_coordinates(self):
        assert set(COMMON_REGIONS) == {'LAGOS', 'ABUJA', 'IBADAN'}
        for lat, lon in COMMON_REGIONS.values():
            assert -MAX_MERCATOR_LAT < lat < MAX_MERCATOR_LAT
            assert -180 <= lon <= 180


class TestProviders:
    def test_templates_have_placeholders(self):
        for template in (OSM_TILE_URL, ALTERNATE_TILE_URL):
            for part in ('{x}', '{y}', '{z}'):
                assert part in template

    def test_metadata_prefix(self):
        assert METADATA_KEY_PREFIX == 'tile_meta_'

    def test_preferred_region_key_matches_mobile_apps(self):
        assert PREFERRED_REGION_KEY == 'userPreferredRegion'
