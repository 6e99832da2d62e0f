"""
In-process entity store.

A single lock serializes every read-modify-write, which gives each
update_item call the same all-or-nothing compare-and-set behaviour as a
DynamoDB conditional update. Records are copied on the way in and out so
callers never hold a reference to stored state.
"""

import threading
from collections.abc import Iterator, Mapping
from dataclasses import replace
from typing import Any

from ..exceptions import ConditionFailedError, DuplicateKeyError, QuotaExceededError
from ..models import Campaign, ItemStatus, WorkItem, Worker
from .store import (
    ITEM_CONDITION_FIELDS,
    ITEM_MUTABLE_FIELDS,
    WORKER_CONDITION_FIELDS,
    WORKER_MUTABLE_FIELDS,
    EntityStore,
    QuotaCharge,
    check_fields,
)


class InMemoryEntityStore(EntityStore):
    """Entity store kept in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, WorkItem] = {}
        self._keys: dict[tuple[Campaign, str], str] = {}
        self._workers: dict[str, Worker] = {}
        self._quota_counters: dict[tuple[str, str], int] = {}

    def create_item(self, item: WorkItem) -> WorkItem:
        with self._lock:
            guard = (item.campaign, item.key)
            if guard in self._keys:
                raise DuplicateKeyError(
                    f"Key '{item.key}' already exists in campaign '{item.campaign.value}'"
                )
            if item.id in self._items:
                raise DuplicateKeyError(f"Item id '{item.id}' already exists")
            self._keys[guard] = item.id
            self._items[item.id] = replace(item)
            return replace(item)

    def get_item(self, item_id: str) -> WorkItem | None:
        with self._lock:
            item = self._items.get(item_id)
            return replace(item) if item else None

    def update_item(
        self,
        item_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
        charge: QuotaCharge | None = None,
    ) -> WorkItem:
        check_fields(changes, ITEM_MUTABLE_FIELDS, "item")
        check_fields(expected or {}, ITEM_CONDITION_FIELDS, "item condition")

        with self._lock:
            current = self._items.get(item_id)
            if current is None:
                raise ConditionFailedError(f"Item '{item_id}' does not exist")
            for name, value in (expected or {}).items():
                if getattr(current, name) != value:
                    raise ConditionFailedError(
                        f"Item '{item_id}' expected {name}={value!r}, "
                        f"found {getattr(current, name)!r}"
                    )
            if charge is not None:
                counter = (charge.worker_id, charge.day)
                used = self._quota_counters.get(counter, 0)
                if charge.exceeds(used):
                    raise QuotaExceededError(charge.worker_id, charge.limit or 0)
                self._quota_counters[counter] = max(0, used + charge.delta)
            updated = replace(current, **changes, version=current.version + 1)
            self._items[item_id] = updated
            return replace(updated)

    def find_unclaimed(
        self,
        limit: int,
        campaign: Campaign | None = None,
        exclude: set[str] | None = None,
    ) -> list[WorkItem]:
        exclude = exclude or set()
        with self._lock:
            candidates = [
                item
                for item in self._items.values()
                if item.status is ItemStatus.UNCLAIMED
                and (campaign is None or item.campaign is campaign)
                and item.id not in exclude
            ]
        candidates.sort(key=lambda item: (item.created_at, item.id))
        return [replace(item) for item in candidates[:limit]]

    def quota_used(self, worker_id: str, day: str) -> int:
        with self._lock:
            return self._quota_counters.get((worker_id, day), 0)

    def iter_items(
        self, campaign: Campaign | None = None, owner_id: str | None = None
    ) -> Iterator[WorkItem]:
        with self._lock:
            snapshot = [
                replace(item)
                for item in self._items.values()
                if (campaign is None or item.campaign is campaign)
                and (owner_id is None or item.owner_id == owner_id)
            ]
        return iter(snapshot)

    def create_worker(self, worker: Worker) -> bool:
        with self._lock:
            if worker.id in self._workers:
                return False
            self._workers[worker.id] = replace(worker)
            return True

    def get_worker(self, worker_id: str) -> Worker | None:
        with self._lock:
            worker = self._workers.get(worker_id)
            return replace(worker) if worker else None

    def update_worker(
        self,
        worker_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> Worker:
        check_fields(changes, WORKER_MUTABLE_FIELDS, "worker")
        check_fields(expected or {}, WORKER_CONDITION_FIELDS, "worker condition")

        with self._lock:
            current = self._workers.get(worker_id)
            if current is None:
                raise ConditionFailedError(f"Worker '{worker_id}' does not exist")
            for name, value in (expected or {}).items():
                if getattr(current, name) != value:
                    raise ConditionFailedError(
                        f"Worker '{worker_id}' expected {name}={value!r}, "
                        f"found {getattr(current, name)!r}"
                    )
            updated = replace(current, **changes, version=current.version + 1)
            self._workers[worker_id] = updated
            return replace(updated)

    def iter_workers(self) -> Iterator[Worker]:
        with self._lock:
            snapshot = [replace(worker) for worker in self._workers.values()]
        return iter(snapshot)
