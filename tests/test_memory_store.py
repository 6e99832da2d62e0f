"""Tests for the in-process entity store."""

from datetime import datetime, timedelta, timezone

import pytest

from workpool_tool.pool.core.memory_store import InMemoryEntityStore
from workpool_tool.pool.core.store import QuotaCharge
from workpool_tool.pool.exceptions import (
    ConditionFailedError,
    DuplicateKeyError,
    QuotaExceededError,
)
from workpool_tool.pool.models import Campaign, ItemStatus, WorkItem, Worker

T0 = datetime(2026, 10, 19, 9, tzinfo=timezone.utc)


def make_item(item_id: str, key: str, minutes: int = 0, campaign=Campaign.OASIS_OUTFIT):
    return WorkItem(id=item_id, key=key, campaign=campaign, created_at=T0 + timedelta(minutes=minutes))


@pytest.fixture
def store():
    with InMemoryEntityStore() as store:
        yield store


class TestItems:
    """Item records and compare-and-set."""

    def test_create_and_get_returns_copies(self, store):
        created = store.create_item(make_item("a", "+1"))
        created.status = ItemStatus.RESOLVED

        assert store.get_item("a").status is ItemStatus.UNCLAIMED

    def test_duplicate_key_in_campaign(self, store):
        store.create_item(make_item("a", "+1"))

        with pytest.raises(DuplicateKeyError):
            store.create_item(make_item("b", "+1"))

        store.create_item(make_item("c", "+1", campaign=Campaign.ZIZII_ISLAND))

    def test_update_bumps_version(self, store):
        store.create_item(make_item("a", "+1"))

        updated = store.update_item("a", {"status": ItemStatus.CLAIMED, "owner_id": "w1"})

        assert updated.version == 2
        assert updated.owner_id == "w1"

    def test_expected_mismatch_leaves_item_unchanged(self, store):
        store.create_item(make_item("a", "+1"))

        with pytest.raises(ConditionFailedError):
            store.update_item("a", {"owner_id": "w1"}, expected={"status": ItemStatus.CLAIMED})

        assert store.get_item("a").owner_id is None
        assert store.get_item("a").version == 1

    def test_update_missing_item(self, store):
        with pytest.raises(ConditionFailedError):
            store.update_item("missing", {"owner_id": "w1"})

    def test_unknown_fields_rejected(self, store):
        store.create_item(make_item("a", "+1"))

        with pytest.raises(ValueError):
            store.update_item("a", {"key": "+2"})
        with pytest.raises(ValueError):
            store.update_item("a", {"owner_id": "w1"}, expected={"campaign": Campaign.OASIS_OUTFIT})

    def test_find_unclaimed_oldest_first(self, store):
        store.create_item(make_item("late", "+1", minutes=5))
        store.create_item(make_item("early", "+2", minutes=1))
        store.create_item(make_item("taken", "+3", minutes=0))
        store.update_item("taken", {"status": ItemStatus.CLAIMED, "owner_id": "w1"})

        assert [item.id for item in store.find_unclaimed(10)] == ["early", "late"]
        assert [item.id for item in store.find_unclaimed(1)] == ["early"]
        assert [item.id for item in store.find_unclaimed(10, exclude={"early"})] == ["late"]

    def test_find_unclaimed_by_campaign(self, store):
        store.create_item(make_item("a", "+1"))
        store.create_item(make_item("b", "+1", campaign=Campaign.ZIZII_ISLAND))

        found = store.find_unclaimed(10, Campaign.ZIZII_ISLAND)

        assert [item.id for item in found] == ["b"]

    def test_charge_counts_per_worker_and_day(self, store):
        for index in range(3):
            store.create_item(make_item(str(index), f"+{index}"))
        store.update_item("0", {"owner_id": "w1"}, charge=QuotaCharge("w1", "2026-10-19"))
        store.update_item("1", {"owner_id": "w1"}, charge=QuotaCharge("w1", "2026-10-20"))
        store.update_item("2", {"owner_id": "w2"}, charge=QuotaCharge("w2", "2026-10-19"))

        assert store.quota_used("w1", "2026-10-19") == 1
        assert store.quota_used("w1", "2026-10-20") == 1
        assert store.quota_used("w3", "2026-10-19") == 0

    def test_charge_over_limit_rejects_whole_update(self, store):
        store.create_item(make_item("a", "+1"))
        store.create_item(make_item("b", "+2"))
        store.update_item("a", {"owner_id": "w1"}, charge=QuotaCharge("w1", "2026-10-19", limit=1))

        with pytest.raises(QuotaExceededError):
            store.update_item(
                "b", {"owner_id": "w1"}, charge=QuotaCharge("w1", "2026-10-19", limit=1)
            )

        assert store.get_item("b").owner_id is None
        assert store.get_item("b").version == 1
        assert store.quota_used("w1", "2026-10-19") == 1

    def test_failed_condition_leaves_counter_alone(self, store):
        store.create_item(make_item("a", "+1"))

        with pytest.raises(ConditionFailedError):
            store.update_item(
                "a",
                {"owner_id": "w1"},
                expected={"status": ItemStatus.CLAIMED},
                charge=QuotaCharge("w1", "2026-10-19", limit=5),
            )

        assert store.quota_used("w1", "2026-10-19") == 0

    def test_release_never_goes_below_zero(self, store):
        store.create_item(make_item("a", "+1"))

        store.update_item("a", {"owner_id": None}, charge=QuotaCharge("w1", "2026-10-19", delta=-1))

        assert store.quota_used("w1", "2026-10-19") == 0

    def test_iter_items_filters(self, store):
        store.create_item(make_item("a", "+1"))
        store.create_item(make_item("b", "+2", campaign=Campaign.ZIZII_ISLAND))
        store.update_item("b", {"owner_id": "w1"})

        assert {item.id for item in store.iter_items()} == {"a", "b"}
        assert [item.id for item in store.iter_items(campaign=Campaign.OASIS_OUTFIT)] == ["a"]
        assert [item.id for item in store.iter_items(owner_id="w1")] == ["b"]


class TestWorkers:
    """Worker records."""

    def test_create_is_conditional(self, store):
        worker = Worker(id="w1", display_name="Ada", contact="ada@example.com", created_at=T0)

        assert store.create_worker(worker) is True
        assert store.create_worker(worker) is False

    def test_update_worker(self, store):
        store.create_worker(
            Worker(id="w1", display_name="Ada", contact="ada@example.com", created_at=T0)
        )

        updated = store.update_worker("w1", {"daily_quota": 3}, expected={"version": 1})

        assert updated.daily_quota == 3
        assert updated.version == 2
        with pytest.raises(ConditionFailedError):
            store.update_worker("w1", {"daily_quota": 4}, expected={"version": 1})

    def test_update_missing_worker(self, store):
        with pytest.raises(ConditionFailedError):
            store.update_worker("ghost", {"active": False})

    def test_iter_workers(self, store):
        for worker_id in ("w1", "w2"):
            store.create_worker(
                Worker(id=worker_id, display_name=worker_id, contact="", created_at=T0)
            )

        assert sorted(worker.id for worker in store.iter_workers()) == ["w1", "w2"]
