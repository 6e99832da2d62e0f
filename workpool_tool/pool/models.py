"""
Type models for work pool operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .constants import DEFAULT_DAILY_QUOTA, DEFAULT_PARTITION
from .utils import isoformat
from .windows import TimeWindow


class Campaign(Enum):
    """Partition tag for work items. Items never move between campaigns."""

    OASIS_OUTFIT = "oasis_outfit"
    ZIZII_ISLAND = "zizii_island"


class ItemStatus(Enum):
    """Lifecycle states of a work item."""

    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"
    RESOLVED = "resolved"


class Outcome(Enum):
    """Terminal outcome of a resolved item."""

    CAPABLE = "capable"
    NOT_CAPABLE = "not_capable"


class WorkerRole(Enum):
    """Capability level of a worker."""

    STANDARD = "standard"
    ELEVATED = "elevated"
    SUPERUSER = "superuser"


class ChangeKind(Enum):
    """Kinds of change events published after a committed transition."""

    ITEM_CREATED = "item.created"
    ITEM_CLAIMED = "item.claimed"
    ITEM_RESOLVED = "item.resolved"
    ITEM_CONVERSION_RECORDED = "item.conversion_recorded"
    ITEM_CONVERSION_CLEARED = "item.conversion_cleared"
    ITEM_RESET = "item.reset"
    WORKER_CREATED = "worker.created"
    WORKER_UPDATED = "worker.updated"


@dataclass
class WorkItem:
    """A unit of assignable work (a phone number)."""

    id: str
    key: str
    campaign: Campaign
    created_at: datetime
    status: ItemStatus = ItemStatus.UNCLAIMED
    outcome: Outcome | None = None
    conversion: bool = False
    conversion_at: datetime | None = None
    conversion_note: str | None = None
    owner_id: str | None = None
    claimed_at: datetime | None = None
    resolved_at: datetime | None = None
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "campaign": self.campaign.value,
            "status": self.status.value,
            "outcome": self.outcome.value if self.outcome else None,
            "conversion": self.conversion,
            "conversion_at": isoformat(self.conversion_at),
            "conversion_note": self.conversion_note,
            "owner_id": self.owner_id,
            "created_at": isoformat(self.created_at),
            "claimed_at": isoformat(self.claimed_at),
            "resolved_at": isoformat(self.resolved_at),
            "version": self.version,
        }


@dataclass
class Worker:
    """An actor work items are assigned to (a moderator)."""

    id: str
    display_name: str
    contact: str
    created_at: datetime
    role: WorkerRole = WorkerRole.STANDARD
    active: bool = True
    daily_quota: int = DEFAULT_DAILY_QUOTA
    partition: str = DEFAULT_PARTITION
    updated_at: datetime | None = None
    version: int = 1

    @property
    def auto_assignable(self) -> bool:
        """Only active standard workers receive self-service claims."""
        return self.active and self.role is WorkerRole.STANDARD

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "contact": self.contact,
            "role": self.role.value,
            "active": self.active,
            "daily_quota": self.daily_quota,
            "partition": self.partition,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
            "version": self.version,
        }


@dataclass
class ChangeEvent:
    """Notification emitted after a state transition commits."""

    kind: ChangeKind
    entity_id: str
    occurred_at: datetime
    version: int
    worker_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "entity_id": self.entity_id,
            "worker_id": self.worker_id,
            "occurred_at": isoformat(self.occurred_at),
            "version": self.version,
            "payload": self.payload,
        }


@dataclass
class DistributionResult:
    """Per-worker outcome of an administrative bulk distribution."""

    requested_per_worker: int
    allocations: dict[str, list[WorkItem]] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {worker_id: len(items) for worker_id, items in self.allocations.items()}

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def exhausted(self) -> bool:
        """True when the pool ran dry before every eligible worker was served."""
        return any(
            count < self.requested_per_worker
            for worker_id, count in self.counts.items()
            if worker_id not in self.skipped
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "requested_per_worker": self.requested_per_worker,
            "counts": self.counts,
            "total": self.total,
            "exhausted": self.exhausted,
            "skipped": self.skipped,
            "items": {
                worker_id: [item.id for item in items]
                for worker_id, items in self.allocations.items()
            },
        }


@dataclass
class IntakeResult:
    """Result of adding keys to the pool."""

    created: list[WorkItem] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": len(self.created),
            "duplicates": self.duplicates,
            "item_ids": [item.id for item in self.created],
        }


@dataclass
class ReportFilter:
    """Optional dimension filter applied before aggregation."""

    campaign: Campaign | None = None
    owner_id: str | None = None
    outcome: Outcome | None = None

    def matches(self, item: WorkItem) -> bool:
        if self.campaign is not None and item.campaign is not self.campaign:
            return False
        if self.owner_id is not None and item.owner_id != self.owner_id:
            return False
        if self.outcome is not None and item.outcome is not self.outcome:
            return False
        return True


@dataclass
class Summary:
    """Additive counters over a time window."""

    total: int = 0
    claimed: int = 0
    resolved: int = 0
    capable: int = 0
    not_capable: int = 0
    conversions: int = 0

    @property
    def completion_rate(self) -> float:
        if self.claimed == 0:
            return 0.0
        return self.resolved / self.claimed

    def __add__(self, other: "Summary") -> "Summary":
        return Summary(
            total=self.total + other.total,
            claimed=self.claimed + other.claimed,
            resolved=self.resolved + other.resolved,
            capable=self.capable + other.capable,
            not_capable=self.not_capable + other.not_capable,
            conversions=self.conversions + other.conversions,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "claimed": self.claimed,
            "resolved": self.resolved,
            "capable": self.capable,
            "not_capable": self.not_capable,
            "conversions": self.conversions,
            "completion_rate": round(self.completion_rate, 4),
        }


@dataclass
class Bucket:
    """Summary for one calendar-aligned sub-window."""

    label: str
    window: TimeWindow
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, **self.window.to_dict(), **self.summary.to_dict()}


@dataclass
class LeaderboardRow:
    """Per-worker performance over a window."""

    worker_id: str
    display_name: str
    active: bool
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "display_name": self.display_name,
            "active": self.active,
            **self.summary.to_dict(),
        }


@dataclass
class PoolOverview:
    """Point-in-time item counts by status."""

    total: int = 0
    unclaimed: int = 0
    claimed: int = 0
    resolved: int = 0
    by_campaign: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "unclaimed": self.unclaimed,
            "claimed": self.claimed,
            "resolved": self.resolved,
            "by_campaign": self.by_campaign,
        }
