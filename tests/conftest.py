"""Shared fixtures: a controllable clock and an in-memory engine."""

from datetime import datetime, timedelta, timezone

import pytest

from workpool_tool.pool.config import EngineConfig
from workpool_tool.pool.engine import WorkPoolEngine
from workpool_tool.pool.models import Campaign, WorkItem

# Monday 2026-10-19, 09:00 UTC
START = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(table_name="workpool-test")


@pytest.fixture
def engine(clock: FakeClock, config: EngineConfig):
    with WorkPoolEngine.in_memory(config, clock) as engine:
        yield engine


@pytest.fixture
def ctx(engine: WorkPoolEngine):
    return engine.context


@pytest.fixture
def seed(engine: WorkPoolEngine, clock: FakeClock):
    """Add `count` items, one second apart so pool order is deterministic."""

    def _seed(
        count: int, campaign: Campaign = Campaign.OASIS_OUTFIT, prefix: str = "+3161000"
    ) -> list[WorkItem]:
        items: list[WorkItem] = []
        for index in range(count):
            result = engine.add_items([f"{prefix}{index:04d}"], campaign)
            items.extend(result.created)
            clock.advance(seconds=1)
        return items

    return _seed


@pytest.fixture
def worker(engine: WorkPoolEngine):
    """Register a worker, optionally with a custom quota."""

    def _worker(worker_id: str, quota: int | None = None, name: str | None = None):
        created = engine.ensure_worker(
            worker_id, name or worker_id.upper(), f"{worker_id}@example.com"
        )
        if quota is not None:
            created = engine.set_quota(worker_id, quota)
        return created

    return _worker
