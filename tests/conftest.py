"""Pytest fixtures for relflow tests."""

import pytest

from relflow.backend.memory import InMemoryBackend
from relflow.config.settings import Settings
from relflow.dm.data_model import DataModel

AIRPORTS = [
    {"faa": "JFK", "name": "JFK"},
    {"faa": "LGA", "name": "LGA"},
    {"faa": "EWR", "name": "EWR"},
]

AIRLINES = [
    {"carrier": "AA", "name": "American"},
    {"carrier": "DL", "name": "Delta"},
    {"carrier": "UA", "name": "United"},
]

FLIGHTS = [
    {"id": 1, "origin": "JFK", "carrier": "AA", "month": 1},
    {"id": 2, "origin": "JFK", "carrier": "DL", "month": 5},
    {"id": 3, "origin": "LGA", "carrier": "DL", "month": 5},
    {"id": 4, "origin": "LGA", "carrier": "UA", "month": 5},
    {"id": 5, "origin": "EWR", "carrier": "DL", "month": 1},
    {"id": 6, "origin": "EWR", "carrier": "UA", "month": 5},
    {"id": 7, "origin": "JFK", "carrier": "DL", "month": 1},
    {"id": 8, "origin": "LGA", "carrier": "AA", "month": 1},
]

WEATHER = [
    {"origin": "JFK", "month": 1, "temp": 39.9},
    {"origin": "LGA", "month": 5, "temp": 61.0},
]


def values(handle, column: str) -> list:
    return sorted(row[column] for row in handle.backend.rows(handle))


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        freeze_timestamp="2020_08_28_07_13_03",
    )


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def flights_backend(backend: InMemoryBackend) -> InMemoryBackend:
    """Backend holding airports, airlines, flights and weather."""
    backend.create_table("airports", AIRPORTS)
    backend.create_table("airlines", AIRLINES)
    backend.create_table("flights", FLIGHTS)
    backend.create_table("weather", WEATHER)
    return backend


@pytest.fixture
def flights_dm(flights_backend: InMemoryBackend) -> DataModel:
    """airports <- flights -> airlines, plus unconnected weather."""
    return DataModel.from_backend(
        flights_backend,
        ["airports", "flights", "airlines", "weather"],
        primary_keys={"airports": ["faa"], "airlines": ["carrier"], "flights": ["id"]},
        foreign_keys=[
            ("flights", ["origin"], "airports", ["faa"]),
            ("flights", ["carrier"], "airlines", ["carrier"]),
        ],
    )


@pytest.fixture
def chain_dm(backend: InMemoryBackend) -> DataModel:
    """Three-table chain: a <- b <- c (c references b, b references a)."""
    a = backend.create_table("a", [{"a_id": i, "tag": "x" if i < 3 else "y"} for i in range(1, 6)])
    b = backend.create_table("b", [{"b_id": i, "a_id": (i % 5) + 1} for i in range(1, 11)])
    c = backend.create_table("c", [{"id": i, "b_id": (i % 10) + 1} for i in range(1, 21)])
    return DataModel.from_tables(
        {"a": a, "b": b, "c": c},
        primary_keys={"a": ["a_id"], "b": ["b_id"], "c": ["id"]},
        foreign_keys=[("b", ["a_id"], "a"), ("c", ["b_id"], "b")],
    )


@pytest.fixture
def routes_dm(backend: InMemoryBackend) -> DataModel:
    """routes references ports twice (origin and dest); tickets reference routes.

    Tables are declared children first so ordering can't come from declaration order.
    """
    routes = backend.create_table("routes", [
        {"id": 1, "origin": "JFK", "dest": "LGA"},
        {"id": 2, "origin": "JFK", "dest": "BOS"},
        {"id": 3, "origin": "EWR", "dest": "LGA"},
        {"id": 4, "origin": "LGA", "dest": "JFK"},
        {"id": 5, "origin": "BOS", "dest": "EWR"},
    ])
    tickets = backend.create_table("tickets", [{"id": i, "route_id": i} for i in range(1, 6)])
    ports = backend.create_table("ports", [{"faa": faa} for faa in ("JFK", "LGA", "EWR", "BOS")])
    return DataModel.from_tables(
        {"routes": routes, "tickets": tickets, "ports": ports},
        primary_keys={"ports": ["faa"], "routes": ["id"], "tickets": ["id"]},
        foreign_keys=[
            ("routes", ["origin"], "ports"),
            ("routes", ["dest"], "ports"),
            ("tickets", ["route_id"], "routes"),
        ],
    )


@pytest.fixture
def stations_dm(backend: InMemoryBackend) -> DataModel:
    """readings reference stations through the composite key (station, month)."""
    stations = backend.create_table("stations", [
        {"station": "JFK", "month": 1, "elevation": 4},
        {"station": "JFK", "month": 2, "elevation": 4},
        {"station": "LGA", "month": 1, "elevation": 6},
        {"station": "LGA", "month": 2, "elevation": 6},
    ])
    readings = backend.create_table("readings", [
        {"id": 1, "station": "JFK", "month": 1, "temp": 39.9},
        {"id": 2, "station": "JFK", "month": 2, "temp": 41.0},
        {"id": 3, "station": "LGA", "month": 1, "temp": 38.5},
        {"id": 4, "station": "LGA", "month": 2, "temp": 40.2},
        {"id": 5, "station": "JFK", "month": None, "temp": 45.1},
    ])
    return DataModel.from_tables(
        {"readings": readings, "stations": stations},
        primary_keys={"stations": ["station", "month"], "readings": ["id"]},
        foreign_keys=[("readings", ["station", "month"], "stations")],
    )
