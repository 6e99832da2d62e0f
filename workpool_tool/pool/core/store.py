"""
Entity store interface.

The store is the only owner of work item and worker state. Every mutation of
a work item goes through `update_item`, a single atomic compare-and-set: the
expected field values are checked and the changes applied as one step, so two
callers can never both succeed against the same precondition.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from ..models import Campaign, WorkItem, Worker

# Work item fields that update_item may change or test
ITEM_MUTABLE_FIELDS = frozenset(
    {
        "status",
        "outcome",
        "conversion",
        "conversion_at",
        "conversion_note",
        "owner_id",
        "claimed_at",
        "resolved_at",
    }
)
ITEM_CONDITION_FIELDS = ITEM_MUTABLE_FIELDS | {"version"}

WORKER_MUTABLE_FIELDS = frozenset(
    {"display_name", "contact", "role", "active", "daily_quota", "partition", "updated_at"}
)
WORKER_CONDITION_FIELDS = WORKER_MUTABLE_FIELDS | {"version"}


def check_fields(fields: Mapping[str, Any], allowed: frozenset[str], what: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unsupported {what} field(s): {', '.join(sorted(unknown))}")


@dataclass(frozen=True)
class QuotaCharge:
    """
    Adjustment of a worker's claim counter for one calendar day.

    Applied in the same atomic write as an item update. A positive delta with
    a limit is rejected when the counter would end up above the limit.
    """

    worker_id: str
    day: str  # Local calendar date, YYYY-MM-DD
    delta: int = 1
    limit: int | None = None

    def exceeds(self, used: int) -> bool:
        return self.limit is not None and self.delta > 0 and used + self.delta > self.limit


class EntityStore(ABC):
    """Durable state for work items and workers."""

    def open(self) -> None:
        """Acquire resources. Called once before first use."""

    def close(self) -> None:
        """Release resources. Called once at shutdown."""

    def __enter__(self) -> "EntityStore":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Work items

    @abstractmethod
    def create_item(self, item: WorkItem) -> WorkItem:
        """
        Insert a new work item.

        Raises:
            DuplicateKeyError: If the key already exists in the item's campaign
        """

    @abstractmethod
    def get_item(self, item_id: str) -> WorkItem | None:
        """Read a work item, or None if it does not exist."""

    @abstractmethod
    def update_item(
        self,
        item_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
        charge: QuotaCharge | None = None,
    ) -> WorkItem:
        """
        Atomically apply `changes` if every `expected` field still holds.

        A change value of None clears the field. The item's version is
        incremented on success. With a `charge`, the worker's day counter is
        adjusted in the same write: either both change or neither does.

        Returns:
            The item as stored after the update

        Raises:
            QuotaExceededError: If the charge would exceed its limit
            ConditionFailedError: If the item is missing or an expectation fails
        """

    @abstractmethod
    def find_unclaimed(
        self,
        limit: int,
        campaign: Campaign | None = None,
        exclude: set[str] | None = None,
    ) -> list[WorkItem]:
        """
        Candidate unclaimed items, oldest first.

        The result is a hint: another caller may claim any of these items
        before the caller's conditional update commits.
        """

    @abstractmethod
    def quota_used(self, worker_id: str, day: str) -> int:
        """Current value of the worker's claim counter for a day (strongly consistent)."""

    @abstractmethod
    def iter_items(
        self, campaign: Campaign | None = None, owner_id: str | None = None
    ) -> Iterator[WorkItem]:
        """All work items, optionally restricted to a campaign and/or owner."""

    # Workers

    @abstractmethod
    def create_worker(self, worker: Worker) -> bool:
        """
        Insert a worker if no record with the same id exists.

        Returns:
            True if created, False if the worker already existed
        """

    @abstractmethod
    def get_worker(self, worker_id: str) -> Worker | None:
        """Read a worker, or None if it does not exist."""

    @abstractmethod
    def update_worker(
        self,
        worker_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> Worker:
        """
        Atomically update a worker.

        Raises:
            ConditionFailedError: If the worker is missing or an expectation fails
        """

    @abstractmethod
    def iter_workers(self) -> Iterator[Worker]:
        """All workers in no particular order."""
