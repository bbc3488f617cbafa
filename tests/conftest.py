import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `services.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


# Explicitly enable pytest-asyncio plugin for async tests/fixtures
pytest_plugins = ("pytest_asyncio",)


from config.eta import ETAConfig
from config.settings import Settings
from core.exceptions import BroadcastFailure
from models.eta import TravelTimeResult
from services.eta_metrics import ETAMetrics
from services.eta_service import ETAService
from tools.eta_calculator import format_duration

# 2023-11-14T22:13:20Z
START_MS = 1_700_000_000_000

# Taipei 101 area: origin, ~720 m away, and the meeting point at Taipei Main Station
ORIGIN = (25.0339, 121.5645)
MOVED = (25.0380, 121.5700)
DESTINATION = (25.0478, 121.5170)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: int = START_MS):
        self.current = start_ms

    def now_ms(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


class FakeProvider:
    """Scripted travel-time provider; records every call."""

    def __init__(self, duration_seconds: int = 600, distance_meters: int = 2000):
        self.duration_seconds = duration_seconds
        self.distance_meters = distance_meters
        self.failure = None
        self.delay = 0.0
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def query(self, origin, destination, mode, departure_time):
        self.calls.append({"origin": origin, "destination": destination, "mode": mode, "departure_time": departure_time})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.failure is not None:
                raise self.failure
            return TravelTimeResult(
                duration_seconds=self.duration_seconds,
                duration_text=format_duration(self.duration_seconds),
                distance_text=f"{self.distance_meters / 1000:g} 公里",
                distance_meters=self.distance_meters,
            )
        finally:
            self.in_flight -= 1


class RecordingSink:
    """Broadcast sink that keeps what it was asked to publish."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []
        self.closed = False

    async def publish(self, event_id, event_name, payload):
        if self.fail:
            raise BroadcastFailure(f"event-{event_id}", event_name, "sink down")
        self.published.append((event_id, event_name, payload))

    async def close(self):
        self.closed = True

    def events(self, name):
        return [p for p in self.published if p[1] == name]


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def provider():
    return FakeProvider()


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def eta_config():
    return ETAConfig()


@pytest.fixture()
def eta_service(provider, sink, clock, eta_config):
    return ETAService(provider=provider, broadcaster=sink, config=eta_config, clock=clock, metrics=ETAMetrics())


@pytest_asyncio.fixture()
async def api_client(eta_service):
    """Async test client over the ASGI app with the fake-backed engine injected."""
    from main import create_app

    app = create_app(settings=Settings(RATE_LIMIT_CALLS=10_000, BROADCAST_BACKEND="none"), eta_service=eta_service)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
