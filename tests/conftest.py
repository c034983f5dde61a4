"""Shared fixtures: a simulated clock and a Productive client on a mock transport."""
import json

import httpx
import pytest

from productive_mcp.client import ProductiveClient
from productive_mcp.config import CustomFieldIds, WorkspaceConfig
from productive_mcp.rate_limiter import RateLimiter


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeAPI:
    """Records requests and answers them from a routing function."""

    def __init__(self, route=None):
        self.requests: list[httpx.Request] = []
        self.route = route or (lambda request: httpx.Response(200, json={"data": []}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.route(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock, sleep=clock.sleep)


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
def client(api, limiter):
    return ProductiveClient(
        "test-token",
        "12345",
        base_url="https://api.test/api/v2",
        rate_limiter=limiter,
        transport=httpx.MockTransport(api),
    )


@pytest.fixture
def workspace():
    return WorkspaceConfig(
        custom_field_ids=CustomFieldIds(task_type="cf-type", priority="cf-priority", estimate="cf-estimate"),
        task_type_options={"Bug": "101", "Feature": "102"},
        priority_options={"High": "201", "Low": "202"},
        workflow_status_names=["To Do", "In Progress", "Done"],
        workflow_status_ids={"To Do": "301", "In Progress": "302", "Done": "303"},
    )
