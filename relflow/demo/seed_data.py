"""Seed data: a small slice of the New York City flights schema.

Tables and keys:
- airlines (carrier)
- airports (faa)
- planes (tailnum)
- flights (id), referencing airlines.carrier, airports.faa via origin,
  and planes.tailnum
- weather, not connected to any other table

Every foreign key value exists in its parent table, so all constraints
hold on the seeded data.
"""

import logging
from dataclasses import asdict, dataclass

from relflow.backend.memory import InMemoryBackend
from relflow.dm.data_model import DataModel

logger = logging.getLogger(__name__)

SEED_VERSION = 1


@dataclass(frozen=True)
class _FlightDef:
    """Lightweight flight definition for seed data."""

    id: int
    month: int
    day: int
    carrier: str
    origin: str
    dest: str
    tailnum: str | None


def _flight(id: int, month: int, day: int, carrier: str, origin: str, dest: str,
            tailnum: str | None) -> dict:
    return asdict(_FlightDef(id, month, day, carrier, origin, dest, tailnum))


AIRLINES: list[dict] = [
    {"carrier": "AA", "name": "American Airlines Inc."},
    {"carrier": "B6", "name": "JetBlue Airways"},
    {"carrier": "DL", "name": "Delta Air Lines Inc."},
    {"carrier": "UA", "name": "United Air Lines Inc."},
]

AIRPORTS: list[dict] = [
    {"faa": "ATL", "name": "Hartsfield Jackson Atlanta Intl", "tz": -5},
    {"faa": "EWR", "name": "Newark Liberty Intl", "tz": -5},
    {"faa": "JFK", "name": "John F Kennedy Intl", "tz": -5},
    {"faa": "LAX", "name": "Los Angeles Intl", "tz": -8},
    {"faa": "LGA", "name": "La Guardia", "tz": -5},
    {"faa": "ORD", "name": "Chicago Ohare Intl", "tz": -6},
]

PLANES: list[dict] = [
    {"tailnum": "N14228", "manufacturer": "BOEING", "seats": 149},
    {"tailnum": "N24211", "manufacturer": "BOEING", "seats": 149},
    {"tailnum": "N619AA", "manufacturer": "BOEING", "seats": 178},
    {"tailnum": "N804JB", "manufacturer": "AIRBUS", "seats": 200},
    {"tailnum": "N668DN", "manufacturer": "BOEING", "seats": 178},
    {"tailnum": "N39463", "manufacturer": "BOEING", "seats": 191},
]

FLIGHTS: list[dict] = [
    _flight(1, 1, 1, "UA", "EWR", "ORD", "N14228"),
    _flight(2, 1, 1, "UA", "LGA", "ORD", "N24211"),
    _flight(3, 1, 1, "AA", "JFK", "LAX", "N619AA"),
    _flight(4, 1, 1, "B6", "JFK", "ATL", "N804JB"),
    _flight(5, 1, 2, "DL", "LGA", "ATL", "N668DN"),
    _flight(6, 1, 2, "UA", "EWR", "LAX", "N39463"),
    _flight(7, 5, 10, "B6", "JFK", "LAX", "N804JB"),
    _flight(8, 5, 10, "DL", "JFK", "ATL", "N668DN"),
    _flight(9, 5, 11, "DL", "LGA", "ORD", "N668DN"),
    _flight(10, 5, 11, "AA", "LGA", "ORD", "N619AA"),
    _flight(11, 5, 12, "DL", "EWR", "ATL", None),
    _flight(12, 5, 12, "UA", "EWR", "ORD", "N14228"),
]

WEATHER: list[dict] = [
    {"origin": "EWR", "month": 1, "day": 1, "temp": 39.0},
    {"origin": "JFK", "month": 1, "day": 1, "temp": 39.9},
    {"origin": "LGA", "month": 1, "day": 1, "temp": 39.9},
    {"origin": "EWR", "month": 5, "day": 10, "temp": 64.0},
    {"origin": "JFK", "month": 5, "day": 10, "temp": 61.0},
]

PRIMARY_KEYS = {
    "airlines": ["carrier"],
    "airports": ["faa"],
    "planes": ["tailnum"],
    "flights": ["id"],
}

FOREIGN_KEYS = [
    ("flights", ["carrier"], "airlines", ["carrier"]),
    ("flights", ["origin"], "airports", ["faa"]),
    ("flights", ["tailnum"], "planes", ["tailnum"]),
]


def seed_backend(backend: InMemoryBackend | None = None) -> InMemoryBackend:
    """Store the seed tables on ``backend`` (a new one by default)."""
    backend = backend or InMemoryBackend()
    backend.create_table("airlines", AIRLINES)
    backend.create_table("airports", AIRPORTS)
    backend.create_table("flights", FLIGHTS)
    backend.create_table("planes", PLANES)
    backend.create_table("weather", WEATHER)
    logger.info("Seeded %d tables", len(backend.table_names))
    return backend


def nycflights_model(backend: InMemoryBackend | None = None) -> DataModel:
    """Data model over freshly seeded flights tables."""
    backend = seed_backend(backend)
    return DataModel.from_backend(
        backend,
        ["airlines", "airports", "flights", "planes", "weather"],
        primary_keys=PRIMARY_KEYS,
        foreign_keys=FOREIGN_KEYS,
    )
