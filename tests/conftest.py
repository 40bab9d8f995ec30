from datetime import datetime, timezone

import numpy as np
import pytest

from tablemix.models import Event, Guest, GuestAttributes
from tablemix.preview import PreviewStaging
from tablemix.store import MemoryStore

NOW = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)


def make_guest(
    guest_id: str,
    department: str | None = None,
    interests: list[str] | None = None,
    job_level: str | None = None,
    goals: list[str] | None = None,
    tags: list[str] | None = None,
) -> Guest:
    attributes = None
    if interests or job_level or goals or tags:
        attributes = GuestAttributes(
            interests=interests or [],
            job_level=job_level,
            goals=goals or [],
            custom_tags=tags or [],
        )
    return Guest(id=guest_id, name=guest_id.title(), department=department, attributes=attributes)


def make_guests(count: int, departments: list[str] | None = None) -> list[Guest]:
    guests = []
    for i in range(count):
        dept = departments[i % len(departments)] if departments else None
        guests.append(make_guest(f"g{i + 1:02d}", department=dept))
    return guests


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def clock():
    """A settable clock; call clock.now = ... to move time."""

    class Clock:
        now = NOW

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def staging(store, rng, clock):
    return PreviewStaging(store, rng=rng, clock=clock)


@pytest.fixture
def event(store):
    """An event with 12 guests from three departments, tables of 4, two rounds."""
    evt = Event(id="evt1", name="Team Dinner", table_size=4, number_of_rounds=2)
    store.load(evt, make_guests(12, ["Sales", "Engineering", "Finance"]))
    return evt
