"""
Unit Tests for Constants

Stage names end up in every log line and tier names in every stats
snapshot, so their values are part of the operational contract.
"""

import pytest

from directory_cache.core.config.constants import (
    MEMORY_BYTES_PER_CHAR,
    MEMORY_ENTRY_OVERHEAD_BYTES,
    CacheEntity,
    CacheSource,
    CacheTier,
    Stage,
)


@pytest.mark.unit
class TestEnums:
    def test_stage_values_are_strings(self):
        for stage in Stage:
            assert isinstance(stage.value, str)

    def test_read_path_stages_are_ordered(self):
        read_path = [
            Stage.MEMORY_LOOKUP,
            Stage.DISTRIBUTED_LOOKUP,
            Stage.MEMORY_BACKFILL,
            Stage.SOURCE_FETCH,
            Stage.TIER_POPULATION,
            Stage.RESULT,
        ]
        assert [s.value for s in read_path] == sorted(s.value for s in read_path)

    def test_sources_cover_tiers_plus_database(self):
        assert {t.value for t in CacheTier} | {"database"} == {s.value for s in CacheSource}

    def test_entities(self):
        assert [e.value for e in CacheEntity] == ["person", "town", "homepage"]


@pytest.mark.unit
def test_memory_size_estimate_constants():
    assert MEMORY_BYTES_PER_CHAR == 2
    assert MEMORY_ENTRY_OVERHEAD_BYTES == 100
