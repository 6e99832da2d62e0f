"""
Work pool engine facade.

The engine owns one EngineContext for its lifetime: open() once at process
start, close() at shutdown (or use it as a context manager). Every method is
a thin delegate to the stateless operation of the same name.
"""

from collections.abc import Iterable

from .config import EngineConfig
from .core import (
    claim_operations,
    item_operations,
    lifecycle_operations,
    report_operations,
    worker_operations,
)
from .core.context import Clock, EngineContext
from .core.dynamodb_store import DynamoDBEntityStore
from .core.memory_store import InMemoryEntityStore
from .core.notifications import NotificationHub, Observer, Subscription
from .core.store import EntityStore
from .logging_config import get_logger
from .models import (
    Bucket,
    Campaign,
    ChangeKind,
    DistributionResult,
    IntakeResult,
    ItemStatus,
    LeaderboardRow,
    Outcome,
    PoolOverview,
    ReportFilter,
    Summary,
    WorkItem,
    Worker,
    WorkerRole,
)
from .utils import utc_now
from .windows import Granularity, TimeWindow

logger = get_logger(__name__)


class WorkPoolEngine:
    """Entry point for callers of the work pool."""

    def __init__(
        self,
        store: EntityStore,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        hub: NotificationHub | None = None,
    ):
        self.context = EngineContext(
            store=store,
            config=config or EngineConfig(),
            hub=hub or NotificationHub(),
            clock=clock or utc_now,
        )
        self._open = False

    @classmethod
    def from_config(cls, config: EngineConfig, clock: Clock | None = None) -> "WorkPoolEngine":
        """Engine backed by the DynamoDB table named in the configuration."""
        store = DynamoDBEntityStore(config.table_name, config.region, config.profile)
        return cls(store, config, clock)

    @classmethod
    def in_memory(
        cls, config: EngineConfig | None = None, clock: Clock | None = None
    ) -> "WorkPoolEngine":
        """Engine backed by an in-process store."""
        return cls(InMemoryEntityStore(), config, clock)

    # Lifecycle

    def open(self) -> "WorkPoolEngine":
        if not self._open:
            self.context.store.open()
            self._open = True
            logger.debug(f"Engine opened ({type(self.context.store).__name__})")
        return self

    def close(self) -> None:
        if self._open:
            self.context.store.close()
            self._open = False
            logger.debug("Engine closed")

    def __enter__(self) -> "WorkPoolEngine":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Notifications

    def subscribe(
        self, observer: Observer, kinds: Iterable[ChangeKind] | None = None
    ) -> Subscription:
        return self.context.hub.subscribe(observer, kinds)

    # Claims

    def claim_up_to(
        self,
        worker_id: str,
        count: int,
        campaign: Campaign | None = None,
        strict: bool = False,
    ) -> list[WorkItem]:
        return claim_operations.claim_up_to(self.context, worker_id, count, campaign, strict)

    def distribute(
        self,
        worker_ids: Iterable[str],
        per_worker_count: int,
        campaign: Campaign | None = None,
    ) -> DistributionResult:
        return claim_operations.distribute(self.context, worker_ids, per_worker_count, campaign)

    def items_claimed_today(self, worker_id: str) -> int:
        return claim_operations.items_claimed_today(self.context, worker_id)

    def remaining_quota(self, worker_id: str) -> int:
        return claim_operations.remaining_quota(self.context, worker_id)

    # Lifecycle transitions

    def resolve(
        self, item_id: str, outcome: Outcome | str, worker_id: str | None = None
    ) -> WorkItem:
        return lifecycle_operations.resolve(self.context, item_id, outcome, worker_id)

    def record_conversion(self, item_id: str, note: str | None = None) -> WorkItem:
        return lifecycle_operations.record_conversion(self.context, item_id, note)

    def clear_conversion(self, item_id: str) -> WorkItem:
        return lifecycle_operations.clear_conversion(self.context, item_id)

    def reset(self, item_id: str) -> WorkItem:
        return lifecycle_operations.reset(self.context, item_id)

    # Items

    def add_items(self, keys: Iterable[str], campaign: Campaign) -> IntakeResult:
        return item_operations.add_items(self.context, keys, campaign)

    def get_item(self, item_id: str) -> WorkItem:
        return item_operations.get_item(self.context, item_id)

    def list_worker_items(
        self,
        worker_id: str,
        status: ItemStatus | None = None,
        claimed_today: bool = False,
        limit: int | None = None,
    ) -> list[WorkItem]:
        return item_operations.list_worker_items(
            self.context, worker_id, status, claimed_today, limit
        )

    # Workers

    def ensure_worker(
        self, worker_id: str, display_name: str, contact: str, partition: str | None = None
    ) -> Worker:
        if partition is None:
            return worker_operations.ensure_worker(self.context, worker_id, display_name, contact)
        return worker_operations.ensure_worker(
            self.context, worker_id, display_name, contact, partition
        )

    def get_worker(self, worker_id: str) -> Worker:
        return worker_operations.get_worker(self.context, worker_id)

    def list_workers(
        self, active_only: bool = False, role: WorkerRole | None = None
    ) -> list[Worker]:
        return worker_operations.list_workers(self.context, active_only, role)

    def set_quota(self, worker_id: str, quota: int) -> Worker:
        return worker_operations.set_quota(self.context, worker_id, quota)

    def set_role(self, worker_id: str, role: WorkerRole) -> Worker:
        return worker_operations.set_role(self.context, worker_id, role)

    def deactivate_worker(self, worker_id: str) -> Worker:
        return worker_operations.deactivate_worker(self.context, worker_id)

    def activate_worker(self, worker_id: str) -> Worker:
        return worker_operations.activate_worker(self.context, worker_id)

    # Reporting

    def summarize(self, window: TimeWindow, report_filter: ReportFilter | None = None) -> Summary:
        return report_operations.summarize(self.context, window, report_filter)

    def bucket_by(
        self,
        window: TimeWindow,
        granularity: Granularity,
        report_filter: ReportFilter | None = None,
    ) -> list[Bucket]:
        return report_operations.bucket_by(self.context, window, granularity, report_filter)

    def worker_leaderboard(
        self,
        window: TimeWindow,
        campaign: Campaign | None = None,
        include_inactive: bool = True,
    ) -> list[LeaderboardRow]:
        return report_operations.worker_leaderboard(
            self.context, window, campaign, include_inactive
        )

    def pool_overview(self, campaign: Campaign | None = None) -> PoolOverview:
        return report_operations.pool_overview(self.context, campaign)
