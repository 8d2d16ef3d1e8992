"""
Tests for box-number -> destination resolution.

Run with: pytest tests/test_destinations.py -v
"""
import pytest

from adapters.base import SOURCE_BOXES
from core.destinations import (
    chunked,
    join_destinations,
    normalize_box_numbers,
    resolve_destinations,
    split_box_numbers,
)
from core.errors import UpstreamQueryError
from fakes import FakeInventoryStore, box


class TestNormalizeBoxNumbers:
    def test_trims_and_dedupes(self):
        assert normalize_box_numbers(["CX1", " CX1 ", "CX1"]) == ["CX1"]

    def test_drops_blank_and_none(self):
        assert normalize_box_numbers(["", "  ", None, "7"]) == ["7"]

    def test_keeps_first_occurrence_order(self):
        assert normalize_box_numbers(["3", "1", "3", "2", "1"]) == ["3", "1", "2"]


class TestSplitAndJoin:
    def test_split_keeps_duplicates(self):
        assert split_box_numbers("CX1, CX2,,CX2 ") == ["CX1", "CX2", "CX2"]

    def test_split_empty(self):
        assert split_box_numbers(None) == []
        assert split_box_numbers("") == []

    def test_join_distinct_in_order(self):
        dest = {"CX1": "preservar", "CX2": "eliminar"}
        assert join_destinations(["CX1", "CX2", "CX2"], dest) == "preservar; eliminar"

    def test_join_skips_unresolved_and_empty(self):
        dest = {"CX1": "", "CX3": "eliminar"}
        assert join_destinations(["CX1", "CX2", "CX3"], dest) == "eliminar"
        assert join_destinations(["CX9"], dest) == ""


class TestChunked:
    def test_sizes(self):
        parts = list(chunked(list(range(1801)), 800))
        assert [len(p) for p in parts] == [800, 800, 201]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunked([1, 2], 0))


class TestResolveDestinations:
    async def test_chunking_issues_ceil_n_over_800_queries(self):
        """2001 unique numbers -> 3 lookups, every number asked exactly once."""
        numbers = [str(i) for i in range(1, 2002)]
        store = FakeInventoryStore({
            SOURCE_BOXES: [box(n, destinacao="preservar" if int(n) % 2 else "eliminar") for n in numbers],
        })

        result = await resolve_destinations(store, "u1", numbers, chunk_size=800)

        assert len(store.lookup_calls) == 3
        asked = [n for call in store.lookup_calls for n in call]
        assert sorted(asked) == sorted(numbers)
        assert len(asked) == len(set(asked))
        assert len(result) == 2001
        assert result["1"] == "preservar"
        assert result["2"] == "eliminar"

    async def test_normalization_produces_single_key(self):
        store = FakeInventoryStore({SOURCE_BOXES: [box("CX1", destinacao="preservar")]})

        result = await resolve_destinations(store, "u1", ["CX1", " CX1 ", "CX1"])

        assert store.lookup_calls == [["CX1"]]
        assert result == {"CX1": "preservar"}

    async def test_empty_input_makes_no_query(self):
        store = FakeInventoryStore()
        assert await resolve_destinations(store, "u1", ["", None, " "]) == {}
        assert store.lookup_calls == []

    async def test_missing_destination_maps_to_empty_string(self):
        store = FakeInventoryStore({SOURCE_BOXES: [box("5", destinacao=None)]})
        assert await resolve_destinations(store, "u1", ["5", "6"]) == {"5": ""}

    async def test_scoped_to_owner(self):
        store = FakeInventoryStore({
            SOURCE_BOXES: [box("5", destinacao="eliminar", owner="someone-else")],
        })
        assert await resolve_destinations(store, "u1", ["5"]) == {}

    async def test_failed_chunk_aborts_whole_lookup(self):
        """No partial map: the second chunk failing fails the call."""
        numbers = [str(i) for i in range(1000)]
        store = FakeInventoryStore({SOURCE_BOXES: [box(n, destinacao="preservar") for n in numbers]})
        store.fail_lookup_at = {1}

        with pytest.raises(UpstreamQueryError):
            await resolve_destinations(store, "u1", numbers, chunk_size=800)
        assert len(store.lookup_calls) == 2
