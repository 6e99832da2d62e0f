"""Tests for self-service claims and administrative distribution."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from workpool_tool.pool.config import EngineConfig
from workpool_tool.pool.core.memory_store import InMemoryEntityStore
from workpool_tool.pool.engine import WorkPoolEngine
from workpool_tool.pool.exceptions import QuotaExceededError, WorkerNotFoundError
from workpool_tool.pool.models import Campaign, ChangeKind, ItemStatus, WorkerRole


class TestClaimUpTo:
    """Self-service top-up within the daily quota."""

    def test_claims_requested_count(self, engine, seed, worker, clock):
        """Claimed items are owned by the worker and stamped with the current time."""
        seed(10)
        worker("w1")

        items = engine.claim_up_to("w1", 4)

        assert len(items) == 4
        for item in items:
            assert item.status is ItemStatus.CLAIMED
            assert item.owner_id == "w1"
            assert item.claimed_at == clock.now
            assert engine.get_item(item.id).owner_id == "w1"

    def test_claims_oldest_items_first(self, engine, seed, worker):
        """The pool hands out items in creation order."""
        seeded = seed(5)
        worker("w1")

        items = engine.claim_up_to("w1", 2)

        assert [item.key for item in items] == [seeded[0].key, seeded[1].key]

    def test_capped_by_daily_quota(self, engine, seed, worker):
        """A request larger than the remaining quota is trimmed to it."""
        seed(30)
        worker("w1", quota=20)

        assert len(engine.claim_up_to("w1", 25)) == 20
        assert engine.claim_up_to("w1", 1) == []
        assert engine.items_claimed_today("w1") == 20
        assert engine.remaining_quota("w1") == 0

    def test_strict_raises_when_quota_used_up(self, engine, seed, worker):
        seed(5)
        worker("w1", quota=2)
        engine.claim_up_to("w1", 2)

        with pytest.raises(QuotaExceededError) as exc_info:
            engine.claim_up_to("w1", 1, strict=True)

        assert exc_info.value.worker_id == "w1"
        assert exc_info.value.daily_quota == 2

    def test_quota_renews_next_day(self, engine, seed, worker, clock):
        """Yesterday's claims do not count against today's quota."""
        seed(10)
        worker("w1", quota=3)
        assert len(engine.claim_up_to("w1", 3)) == 3

        clock.advance(days=1)

        assert engine.remaining_quota("w1") == 3
        assert len(engine.claim_up_to("w1", 3)) == 3

    def test_quota_day_follows_configured_time_zone(self, clock):
        """Claims before local midnight belong to the previous local day."""
        with WorkPoolEngine.in_memory(
            EngineConfig(timezone="America/New_York"), clock
        ) as engine:
            engine.ensure_worker("w1", "W1", "w1@example.com")
            engine.set_quota("w1", 2)
            engine.add_items(["+1", "+2", "+3", "+4"], Campaign.OASIS_OUTFIT)

            # 2026-10-20 03:30 UTC is 23:30 on the 19th in New York
            clock.set(clock.now.replace(day=20, hour=3, minute=30))
            assert len(engine.claim_up_to("w1", 2)) == 2

            # 04:30 UTC is 00:30 on the 20th in New York: a new day
            clock.advance(hours=1)
            assert engine.remaining_quota("w1") == 2

    def test_zero_count_returns_nothing(self, engine, seed, worker):
        seed(3)
        worker("w1")

        assert engine.claim_up_to("w1", 0) == []

    def test_negative_count_rejected(self, engine, worker):
        worker("w1")

        with pytest.raises(ValueError):
            engine.claim_up_to("w1", -1)

    def test_unknown_worker(self, engine, seed):
        seed(3)

        with pytest.raises(WorkerNotFoundError):
            engine.claim_up_to("ghost", 1)

    def test_inactive_worker_gets_nothing(self, engine, seed, worker):
        seed(3)
        worker("w1")
        engine.deactivate_worker("w1")

        assert engine.claim_up_to("w1", 2) == []
        assert engine.pool_overview().unclaimed == 3

    @pytest.mark.parametrize("role", [WorkerRole.ELEVATED, WorkerRole.SUPERUSER])
    def test_non_standard_roles_get_nothing(self, engine, seed, worker, role):
        seed(3)
        worker("w1")
        engine.set_role("w1", role)

        assert engine.claim_up_to("w1", 2) == []

    def test_short_pool_returns_what_is_left(self, engine, seed, worker):
        seed(2)
        worker("w1")

        assert len(engine.claim_up_to("w1", 5)) == 2
        assert engine.claim_up_to("w1", 5) == []

    def test_campaign_filter(self, engine, seed, worker):
        seed(3, Campaign.OASIS_OUTFIT, prefix="+31")
        seed(3, Campaign.ZIZII_ISLAND, prefix="+44")
        worker("w1")

        items = engine.claim_up_to("w1", 5, campaign=Campaign.ZIZII_ISLAND)

        assert len(items) == 3
        assert {item.campaign for item in items} == {Campaign.ZIZII_ISLAND}

    def test_reset_items_free_quota(self, engine, seed, worker):
        """Resetting a claim gives it back to the worker's quota for the day."""
        seed(5)
        worker("w1", quota=2)
        first, _ = engine.claim_up_to("w1", 2)

        engine.reset(first.id)

        assert engine.items_claimed_today("w1") == 1
        assert len(engine.claim_up_to("w1", 2)) == 1

    def test_publishes_claim_events(self, engine, seed, worker):
        seed(3)
        worker("w1")
        events = []
        engine.subscribe(events.append, kinds=[ChangeKind.ITEM_CLAIMED])

        items = engine.claim_up_to("w1", 2)

        assert [event.entity_id for event in events] == [item.id for item in items]
        assert all(event.worker_id == "w1" for event in events)

    def test_skips_items_lost_to_another_caller(self, clock):
        """A failed conditional update moves on to the next candidate."""

        class RacingStore(InMemoryEntityStore):
            def __init__(self):
                super().__init__()
                self.raced = False

            def update_item(self, item_id, changes, expected=None, charge=None):
                if not self.raced and expected == {"status": ItemStatus.UNCLAIMED}:
                    self.raced = True
                    super().update_item(
                        item_id,
                        {
                            "status": ItemStatus.CLAIMED,
                            "owner_id": "intruder",
                            "claimed_at": changes["claimed_at"],
                        },
                    )
                return super().update_item(item_id, changes, expected, charge)

        store = RacingStore()
        with WorkPoolEngine(store, clock=clock) as engine:
            engine.ensure_worker("w1", "W1", "w1@example.com")
            engine.add_items(["+1", "+2", "+3", "+4"], Campaign.OASIS_OUTFIT)

            items = engine.claim_up_to("w1", 3)

            assert len(items) == 3
            assert all(item.owner_id == "w1" for item in items)
            owners = [item.owner_id for item in store.iter_items()]
            assert owners.count("intruder") == 1


class TestConcurrentClaims:
    """Concurrent callers never receive the same item."""

    def test_no_double_claim_under_threads(self, engine, seed, worker):
        seed(60)
        worker_ids = [f"w{index}" for index in range(8)]
        for worker_id in worker_ids:
            worker(worker_id, quota=50)
        barrier = threading.Barrier(len(worker_ids))

        def claim(worker_id):
            barrier.wait()
            return engine.claim_up_to(worker_id, 10)

        with ThreadPoolExecutor(max_workers=len(worker_ids)) as pool:
            results = list(pool.map(claim, worker_ids))

        claimed_ids = [item.id for items in results for item in items]
        assert len(claimed_ids) == len(set(claimed_ids))
        assert len(claimed_ids) == min(60, 8 * 10)
        assert engine.pool_overview().unclaimed == 0

    def test_same_worker_concurrent_claims_respect_quota(self, engine, seed, worker):
        """Parallel top-ups for one worker never claim past the daily quota."""
        seed(40)
        worker("w1", quota=5)
        callers = 6
        barrier = threading.Barrier(callers)

        def claim(_):
            barrier.wait()
            return engine.claim_up_to("w1", 5)

        with ThreadPoolExecutor(max_workers=callers) as pool:
            results = list(pool.map(claim, range(callers)))

        claimed_ids = [item.id for items in results for item in items]
        assert len(claimed_ids) == len(set(claimed_ids)) == 5
        assert engine.items_claimed_today("w1") == 5
        assert engine.pool_overview().unclaimed == 35

    def test_quota_enforced_when_reads_interleave(self, clock):
        """Both callers see the full quota, yet only the quota gets claimed."""

        class GatedStore(InMemoryEntityStore):
            def __init__(self):
                super().__init__()
                self.gate = threading.Barrier(2)
                self.reads = 0
                self.reads_lock = threading.Lock()

            def quota_used(self, worker_id, day):
                used = super().quota_used(worker_id, day)
                with self.reads_lock:
                    self.reads += 1
                    gated = self.reads <= 2
                if gated:
                    # Hold the first two reads until both have happened
                    self.gate.wait(timeout=5)
                return used

        store = GatedStore()
        with WorkPoolEngine(store, clock=clock) as engine:
            engine.ensure_worker("w1", "W1", "w1@example.com")
            engine.set_quota("w1", 4)
            engine.add_items([f"+{index}" for index in range(10)], Campaign.OASIS_OUTFIT)

            with ThreadPoolExecutor(max_workers=2) as pool:
                results = list(pool.map(lambda _: engine.claim_up_to("w1", 3), range(2)))

            assert sum(len(items) for items in results) == 4
            assert engine.items_claimed_today("w1") == 4
            assert engine.pool_overview().claimed == 4

    def test_claims_and_distribution_race(self, engine, seed, worker):
        seed(30)
        worker("w1", quota=50)
        worker("w2", quota=50)
        worker("admin-target")
        barrier = threading.Barrier(3)

        def self_service(worker_id):
            barrier.wait()
            return engine.claim_up_to(worker_id, 15)

        def admin():
            barrier.wait()
            return engine.distribute(["admin-target"], 15).allocations["admin-target"]

        with ThreadPoolExecutor(max_workers=3) as pool:
            futures = [
                pool.submit(self_service, "w1"),
                pool.submit(self_service, "w2"),
                pool.submit(admin),
            ]
            results = [future.result() for future in futures]

        claimed_ids = [item.id for items in results for item in items]
        assert len(claimed_ids) == len(set(claimed_ids)) == 30

    def test_example_scenario(self, engine, seed, worker):
        """W1 (quota 3, one claimed today) and W2 (quota 5) race for 10 items."""
        seed(11)
        worker("w1", quota=3)
        worker("w2", quota=5)
        assert len(engine.claim_up_to("w1", 1)) == 1
        assert engine.pool_overview().unclaimed == 10
        barrier = threading.Barrier(2)

        def claim(worker_id):
            barrier.wait()
            return engine.claim_up_to(worker_id, 5)

        with ThreadPoolExecutor(max_workers=2) as pool:
            w1_items, w2_items = pool.map(claim, ["w1", "w2"])

        assert len(w1_items) == 2
        assert len(w2_items) == 5
        assert engine.pool_overview().unclaimed == 3
        assert not {item.id for item in w1_items} & {item.id for item in w2_items}


class TestDistribute:
    """Administrative bulk distribution."""

    def test_serves_each_worker(self, engine, seed, worker):
        seed(10)
        worker("w1")
        worker("w2")

        result = engine.distribute(["w1", "w2"], 4)

        assert result.counts == {"w1": 4, "w2": 4}
        assert result.total == 8
        assert not result.exhausted
        assert engine.pool_overview().unclaimed == 2

    def test_ignores_quota_and_role(self, engine, seed, worker):
        seed(10)
        worker("w1", quota=1)
        engine.set_role("w1", WorkerRole.SUPERUSER)

        result = engine.distribute(["w1"], 6)

        assert result.counts == {"w1": 6}

    def test_short_pool_leaves_later_workers_short(self, engine, seed, worker):
        seed(5)
        worker("w1")
        worker("w2")

        result = engine.distribute(["w1", "w2"], 3)

        assert result.counts == {"w1": 3, "w2": 2}
        assert result.exhausted

    def test_earlier_workers_get_older_items(self, engine, seed, worker):
        seeded = seed(4)
        worker("w1")
        worker("w2")

        result = engine.distribute(["w2", "w1"], 2)

        assert [item.key for item in result.allocations["w2"]] == [
            seeded[0].key,
            seeded[1].key,
        ]

    def test_unknown_worker_fails_before_any_claim(self, engine, seed, worker):
        seed(5)
        worker("w1")

        with pytest.raises(WorkerNotFoundError):
            engine.distribute(["w1", "ghost"], 2)

        assert engine.pool_overview().unclaimed == 5

    def test_inactive_workers_skipped(self, engine, seed, worker):
        seed(5)
        worker("w1")
        worker("w2")
        engine.deactivate_worker("w1")

        result = engine.distribute(["w1", "w2"], 2)

        assert result.counts == {"w1": 0, "w2": 2}
        assert result.skipped == ["w1"]
        assert not result.exhausted

    def test_duplicate_worker_ids_served_once(self, engine, seed, worker):
        seed(10)
        worker("w1")

        result = engine.distribute(["w1", "w1"], 3)

        assert result.counts == {"w1": 3}
        assert result.total == 3

    def test_negative_count_rejected(self, engine, worker):
        worker("w1")

        with pytest.raises(ValueError):
            engine.distribute(["w1"], -1)

    def test_result_serializes_item_ids(self, engine, seed, worker):
        seed(2)
        worker("w1")

        result = engine.distribute(["w1"], 2).to_dict()

        assert result["requested_per_worker"] == 2
        assert result["total"] == 2
        assert len(result["items"]["w1"]) == 2
