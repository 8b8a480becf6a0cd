import asyncio
import time
from collections.abc import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import settings

# Override settings for tests
settings.mistral_api_key = "test-mistral-key"
settings.app_env = "test"

from app.core.dependencies import get_scheduler  # noqa: E402
from app.gateway.completion_client import BaseCompletionClient  # noqa: E402
from app.gateway.scheduler import SkillScheduler  # noqa: E402
from app.gateway.types import SchedulerConfig  # noqa: E402
from app.main import app  # noqa: E402


class FakeTime:
    """Manual clock whose sleep advances time instantly."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


class StubCompletionClient(BaseCompletionClient):
    """Scripted completion client.

    ``script`` maps a title to a list of outcomes consumed one per call;
    an outcome is either a skill list (returned) or an exception (raised).
    Titles without a script, or with an exhausted one, get ``default``.
    """

    def __init__(
        self,
        script: dict[str, list] | None = None,
        default=None,
        clock: Callable[[], float] | None = None,
        latency: float = 0.0,
    ):
        self.script = {title: list(outcomes) for title, outcomes in (script or {}).items()}
        self.default = default if default is not None else ["Python", "SQL"]
        self.clock = clock or time.monotonic
        self.latency = latency
        self.calls: list[tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def titles(self) -> list[str]:
        return [title for title, _ in self.calls]

    @property
    def call_times(self) -> list[float]:
        return [ts for _, ts in self.calls]

    def attempts_for(self, title: str) -> int:
        return self.titles.count(title)

    async def complete(self, title: str) -> list[str]:
        self.calls.append((title, self.clock()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            outcomes = self.script.get(title)
            outcome = outcomes.pop(0) if outcomes else self.default
            if isinstance(outcome, BaseException):
                raise outcome
            return list(outcome)
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
async def make_scheduler() -> AsyncGenerator[Callable[..., SkillScheduler], None]:
    """Build isolated schedulers; all of them are stopped after the test."""
    created: list[SkillScheduler] = []

    def _make(client: BaseCompletionClient, fake: FakeTime | None = None, **config) -> SkillScheduler:
        cfg = SchedulerConfig(**{"min_interval": 1.0, "max_retries": 3, "base_retry_delay": 1.0, **config})
        if fake is not None:
            scheduler = SkillScheduler(client, cfg, clock=fake.clock, sleep=fake.sleep)
        else:
            scheduler = SkillScheduler(client, cfg)
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        await scheduler.stop()


@pytest.fixture
def stub_client(fake_time: FakeTime) -> StubCompletionClient:
    return StubCompletionClient(clock=fake_time.clock)


@pytest.fixture
async def api_scheduler(make_scheduler, stub_client, fake_time) -> SkillScheduler:
    """Scheduler wired into the app in place of the Mistral-backed one."""
    scheduler = make_scheduler(stub_client, fake_time)

    async def _override() -> SkillScheduler:
        return scheduler

    app.dependency_overrides[get_scheduler] = _override
    yield scheduler
    app.dependency_overrides.pop(get_scheduler, None)


@pytest.fixture
async def client(api_scheduler: SkillScheduler) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
