"""Tests for the in-memory tabular backend."""

import pytest

from relflow.backend.base import BackendError
from relflow.backend.memory import (
    DuplicateKeyError,
    InMemoryBackend,
    RowNotFoundError,
    UnknownColumnError,
    UnknownTableError,
)


@pytest.fixture
def airlines(backend: InMemoryBackend):
    return backend.create_table("airlines", [
        {"carrier": "AA", "name": "American"},
        {"carrier": "DL", "name": None},
    ])


def stored(backend: InMemoryBackend, name: str) -> list:
    return backend.rows(backend.table(name))


def carriers(handle) -> list:
    return [row["carrier"] for row in handle.backend.rows(handle)]


class TestTables:
    """Test storing and reading tables."""

    def test_create_and_read(self, backend, airlines):
        assert backend.table_names == ("airlines",)
        assert backend.columns(airlines) == ("carrier", "name")
        assert backend.row_count(airlines) == 2

    def test_missing_columns_filled_with_none(self, backend):
        handle = backend.create_table("t", [{"a": 1}], columns=["a", "b"])
        assert backend.rows(handle) == [{"a": 1, "b": None}]

    def test_unknown_column_in_row(self, backend):
        with pytest.raises(UnknownColumnError):
            backend.create_table("t", [{"a": 1}, {"a": 2, "c": 3}])

    def test_rows_are_copies(self, backend, airlines):
        backend.rows(airlines)[0]["name"] = "changed"
        assert stored(backend, "airlines")[0]["name"] == "American"

    def test_unknown_table(self, backend):
        with pytest.raises(UnknownTableError, match="`planes` not found"):
            backend.table("planes")
        with pytest.raises(KeyError):
            backend.table("planes")

    def test_drop_table(self, backend, airlines):
        backend.drop_table("airlines")
        backend.drop_table("airlines")
        assert backend.table_names == ()

    def test_column_types(self, backend, airlines):
        handle = backend.create_table("t", [{"a": None, "b": 1.5}, {"a": 2, "b": None}])
        assert backend.column_types(handle) == {"a": "int", "b": "float"}
        assert backend.column_types(airlines) == {"carrier": "str", "name": "str"}

    def test_handle_from_other_backend(self, backend, airlines):
        other = InMemoryBackend(name="other")
        with pytest.raises(BackendError, match="another backend"):
            other.row_count(airlines)

    def test_copy_table_across_backends(self, airlines):
        other = InMemoryBackend(name="other")
        copy = other.copy_table(airlines, "airlines_copy")
        assert copy.backend is other
        assert other.rows(copy) == airlines.backend.rows(airlines)


class TestQueries:
    """Test projections, predicates and semi-joins."""

    def test_project(self, backend, airlines):
        projected = backend.project(airlines, ["carrier"])
        assert backend.rows(projected) == [{"carrier": "AA"}, {"carrier": "DL"}]
        with pytest.raises(UnknownColumnError):
            backend.project(airlines, ["tz"])

    def test_apply_predicate(self, backend, airlines):
        filtered = backend.apply_predicate(airlines, lambda row: row["carrier"] == "DL")
        assert carriers(filtered) == ["DL"]
        assert backend.row_count(airlines) == 2

    def test_predicate_rows_are_read_only(self, backend, airlines):
        def mutate(row):
            row["name"] = "x"
            return True

        with pytest.raises(TypeError):
            backend.apply_predicate(airlines, mutate)

    def test_non_callable_predicate(self, backend, airlines):
        with pytest.raises(TypeError, match="must be callable"):
            backend.apply_predicate(airlines, "carrier = 'DL'")

    def test_semi_and_anti_join(self, backend, airlines):
        flights = backend.create_table("flights", [
            {"id": 1, "carrier": "AA"},
            {"id": 2, "carrier": "UA"},
            {"id": 3, "carrier": None},
        ])
        kept = backend.semi_join_filter(flights, ["carrier"], airlines, ["carrier"])
        orphans = backend.anti_join_filter(flights, ["carrier"], airlines, ["carrier"])
        assert [row["id"] for row in backend.rows(kept)] == [1]
        assert [row["id"] for row in backend.rows(orphans)] == [2]

    def test_join_arity_mismatch(self, backend, airlines):
        with pytest.raises(BackendError, match="arity"):
            backend.semi_join_filter(airlines, ["carrier", "name"], airlines, ["carrier"])

    def test_distinct_count_skips_incomplete(self, backend):
        handle = backend.create_table("t", [{"a": 1}, {"a": 1}, {"a": 2}, {"a": None}])
        assert backend.distinct_count(handle, ["a"]) == 2


class TestRowOperations:
    """Test staged and persisted row operations."""

    def test_insert_staged(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "UA", "name": "United"}])
        result = backend.insert(airlines, source, keys=("carrier",), in_place=False)
        assert carriers(result) == ["AA", "DL", "UA"]
        assert len(stored(backend, "airlines")) == 2

    def test_insert_in_place(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "UA"}])
        result = backend.insert(airlines, source, keys=("carrier",), in_place=True)
        assert stored(backend, "airlines")[-1] == {"carrier": "UA", "name": None}
        assert result.name == "airlines"

    def test_stored_handles_see_in_place_writes(self, backend, airlines):
        staged = backend.apply_predicate(airlines, lambda row: True)
        source = backend.create_table("new", [{"carrier": "UA"}])
        backend.insert(airlines, source, keys=("carrier",), in_place=True)

        assert carriers(airlines) == ["AA", "DL", "UA"]
        assert carriers(backend.table("airlines")) == ["AA", "DL", "UA"]
        assert carriers(staged) == ["AA", "DL"]

    def test_insert_duplicate_key(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "AA", "name": "Again"}])
        with pytest.raises(DuplicateKeyError) as exc_info:
            backend.insert(airlines, source, keys=("carrier",), in_place=False)
        assert exc_info.value.key == ("AA",)

    def test_update(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "AA", "name": "AA Inc."}])
        result = backend.update(airlines, source, keys=("carrier",), in_place=False)
        assert backend.rows(result)[0]["name"] == "AA Inc."

    def test_update_missing_key(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "UA", "name": "United"}])
        with pytest.raises(RowNotFoundError):
            backend.update(airlines, source, keys=("carrier",), in_place=False)

    def test_patch_fills_missing_values_only(self, backend, airlines):
        source = backend.create_table("new", [
            {"carrier": "AA", "name": "ignored"},
            {"carrier": "DL", "name": "Delta"},
        ])
        result = backend.patch(airlines, source, keys=("carrier",), in_place=False)
        assert [row["name"] for row in backend.rows(result)] == ["American", "Delta"]

    def test_upsert(self, backend, airlines):
        source = backend.create_table("new", [
            {"carrier": "DL", "name": "Delta"},
            {"carrier": "UA", "name": "United"},
        ])
        result = backend.upsert(airlines, source, keys=("carrier",), in_place=False)
        assert [row["name"] for row in backend.rows(result)] == ["American", "Delta", "United"]

    def test_delete(self, backend, airlines):
        source = backend.create_table("gone", [{"carrier": "AA"}])
        result = backend.delete(airlines, source, keys=("carrier",), in_place=True)
        assert carriers(result) == ["DL"]
        assert len(stored(backend, "airlines")) == 1

    def test_delete_missing_key(self, backend, airlines):
        source = backend.create_table("gone", [{"carrier": "UA"}])
        with pytest.raises(RowNotFoundError, match="not found"):
            backend.delete(airlines, source, keys=("carrier",), in_place=False)

    def test_truncate(self, backend, airlines):
        source = backend.create_table("any", [{"carrier": "AA"}])
        result = backend.truncate(airlines, source, keys=(), in_place=False)
        assert backend.row_count(result) == 0
        assert backend.columns(result) == ("carrier", "name")

    def test_unchanged_returns_target(self, backend, airlines):
        """A write that changes nothing hands back the very same handle."""
        source = backend.create_table("same", [{"carrier": "AA", "name": "American"}])
        assert backend.update(airlines, source, keys=("carrier",), in_place=False) is airlines

    def test_empty_keys_match_first_column(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "AA", "name": "AA Inc."}])
        result = backend.update(airlines, source, keys=(), in_place=False)
        assert backend.rows(result)[0]["name"] == "AA Inc."

    def test_source_column_missing_in_target(self, backend, airlines):
        source = backend.create_table("new", [{"carrier": "UA", "tz": -5}])
        with pytest.raises(UnknownColumnError):
            backend.insert(airlines, source, keys=("carrier",), in_place=False)
