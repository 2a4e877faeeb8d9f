"""
Shared fixtures for the analytics core test suite.

Engines run with every artificial delay disabled, a fixed calendar date
and a hand-driven clock, so results are deterministic.
"""

from datetime import datetime, timedelta

import pytest

from agri_analytics.config import Config
from agri_analytics.models import HistoricalObservation
from agri_analytics.services import InMemoryHistoryStore

# Friday 15 May 2026, mid-morning
FIXED_NOW = datetime(2026, 5, 15, 10, 0)


class FakeClock:
    """Monotonic clock the tests advance by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_history(product_id, quantities, end=FIXED_NOW, unit_price=800.0):
    """Daily observations ending the day before ``end``."""
    days = len(quantities)
    return [
        HistoricalObservation(
            product_id=product_id,
            quantity=float(q),
            timestamp=end - timedelta(days=days - i),
            unit_price=unit_price,
        )
        for i, q in enumerate(quantities)
    ]


@pytest.fixture
def config():
    return Config().without_latency()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    """History store with a flat 10 units/day product and a volatile one."""
    history = make_history("P-FLAT", [10] * 60) + make_history("P-ALT", [8, 12] * 30)
    return InMemoryHistoryStore(history)


@pytest.fixture(name="make_history")
def make_history_fixture():
    return make_history
