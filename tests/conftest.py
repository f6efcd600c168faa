"""Test fixtures for Taskiq, settings and a temporary data directory."""

import json
import os
import sys
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

os.environ["TASKIQ_TESTING"] = "1"

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest

from ipg.config import get_settings
from ipg.db import LocalStore, reset_zone_registry
from ipg.models import Zone
from ipg.taskiq_app.broker import broker
from ipg.taskiq_app.dedup import _MEMORY_LOCKS

ZONES_PAYLOAD: dict[str, object] = {
    "version": 1,
    "updatedAt": "2026-01-10T00:00:00.000Z",
    "zones": [
        {
            "id": "roma-axa",
            "name": "Axa",
            "slug": "axa",
            "region": "lazio",
            "city": "roma",
            "area": "litorale",
            "coordinates": {"lat": 41.7486, "lng": 12.3797},
            "immobiliareZ2": 10259,
            "immobiliareZ3": 10981,
        },
        {
            "id": "roma-infernetto",
            "name": "Infernetto",
            "slug": "infernetto",
            "region": "lazio",
            "city": "roma",
            "area": "litorale",
            "immobiliareZ2": 10259,
        },
        {
            "id": "roma-trastevere",
            "name": "Trastevere",
            "slug": "trastevere",
            "region": "lazio",
            "city": "roma",
            "area": "centro",
        },
    ],
}


@pytest.fixture(scope="function", autouse=True)
def reset_state() -> Iterator[None]:
    """Isolate memory locks, cached settings and the zone catalog per test."""

    _MEMORY_LOCKS.clear()
    get_settings.cache_clear()
    reset_zone_registry()
    yield
    _MEMORY_LOCKS.clear()
    get_settings.cache_clear()
    reset_zone_registry()


@pytest.fixture
async def init_taskiq() -> AsyncIterator[None]:
    """Start the InMemoryBroker for tests that kick tasks."""

    await broker.startup()
    yield
    await broker.shutdown()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "zones.json").write_text(
        json.dumps(ZONES_PAYLOAD, indent=2), encoding="utf-8"
    )
    return directory


@pytest.fixture
def store(data_dir: Path) -> LocalStore:
    return LocalStore(data_dir)


@pytest.fixture
def axa_zone() -> Zone:
    zones = ZONES_PAYLOAD["zones"]
    assert isinstance(zones, list)
    return Zone.from_dict(zones[0])


@pytest.fixture
def trastevere_zone() -> Zone:
    zones = ZONES_PAYLOAD["zones"]
    assert isinstance(zones, list)
    return Zone.from_dict(zones[2])
