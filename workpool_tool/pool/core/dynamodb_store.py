"""
DynamoDB-backed entity store.

Single-table layout (PK = SK for every record):
    item#<id>                     work item
    key#<campaign>#<key>          uniqueness guard for a key within a campaign
    worker#<id>                   worker
    quota#<worker>#<yyyy-mm-dd>   items charged to a worker on one local day

Two sparse secondary indexes keep the hot queries off table scans:
    pool-index   pool_pk = pool#<campaign>, range created_at.
                 pool_pk exists only while the item is unclaimed.
    owner-index  owner_pk = owner#<worker>, range claimed_at.
                 owner_pk exists only while the item has an owner.

Timestamps are stored as integer epoch milliseconds.
"""

from collections.abc import Iterator, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from boto3.dynamodb.conditions import Attr, Key

from ..constants import (
    ATTR_ENTITY,
    ATTR_OWNER_PK,
    ATTR_PK,
    ATTR_POOL_PK,
    ATTR_QUOTA_USED,
    ATTR_SK,
    ENTITY_ITEM,
    ENTITY_KEY_GUARD,
    ENTITY_QUOTA,
    ENTITY_WORKER,
    OWNER_INDEX,
    POOL_INDEX,
    POOL_QUERY_PAGE_SIZE,
    PREFIX_ITEM,
    PREFIX_KEY_GUARD,
    PREFIX_OWNER,
    PREFIX_POOL,
    PREFIX_QUOTA,
    PREFIX_WORKER,
)
from ..exceptions import ConditionFailedError, DuplicateKeyError, QuotaExceededError
from ..logging_config import get_logger
from ..models import Campaign, ItemStatus, Outcome, WorkItem, Worker, WorkerRole
from ..utils import format_key, from_epoch_ms, to_epoch_ms
from .client import DynamoDBClient
from .store import (
    ITEM_CONDITION_FIELDS,
    ITEM_MUTABLE_FIELDS,
    WORKER_CONDITION_FIELDS,
    WORKER_MUTABLE_FIELDS,
    EntityStore,
    QuotaCharge,
    check_fields,
)

logger = get_logger(__name__)

ATTR_HOME_POOL = "home_pool"


def _to_attribute(value: Any) -> Any:
    """Convert a model value to its stored representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_epoch_ms(value)
    return value


def _optional(record: dict[str, Any], name: str, value: Any) -> None:
    if value is not None:
        record[name] = _to_attribute(value)


def item_to_record(item: WorkItem) -> dict[str, Any]:
    """Serialize a work item into a DynamoDB record, including index attributes."""
    pk = format_key(PREFIX_ITEM, item.id)
    home_pool = format_key(PREFIX_POOL, item.campaign.value)
    record: dict[str, Any] = {
        ATTR_PK: pk,
        ATTR_SK: pk,
        ATTR_ENTITY: ENTITY_ITEM,
        "id": item.id,
        "key": item.key,
        "campaign": item.campaign.value,
        "status": item.status.value,
        "conversion": item.conversion,
        "created_at": to_epoch_ms(item.created_at),
        "version": item.version,
        ATTR_HOME_POOL: home_pool,
    }
    _optional(record, "outcome", item.outcome)
    _optional(record, "conversion_at", item.conversion_at)
    _optional(record, "conversion_note", item.conversion_note)
    _optional(record, "owner_id", item.owner_id)
    _optional(record, "claimed_at", item.claimed_at)
    _optional(record, "resolved_at", item.resolved_at)

    if item.status is ItemStatus.UNCLAIMED:
        record[ATTR_POOL_PK] = home_pool
    if item.owner_id is not None:
        record[ATTR_OWNER_PK] = format_key(PREFIX_OWNER, item.owner_id)
    return record


def record_to_item(record: Mapping[str, Any]) -> WorkItem:
    """Deserialize a DynamoDB record into a work item."""
    outcome = record.get("outcome")
    return WorkItem(
        id=record["id"],
        key=record["key"],
        campaign=Campaign(record["campaign"]),
        created_at=from_epoch_ms(record["created_at"]),  # type: ignore[arg-type]
        status=ItemStatus(record["status"]),
        outcome=Outcome(outcome) if outcome else None,
        conversion=bool(record.get("conversion", False)),
        conversion_at=from_epoch_ms(record.get("conversion_at")),
        conversion_note=record.get("conversion_note"),
        owner_id=record.get("owner_id"),
        claimed_at=from_epoch_ms(record.get("claimed_at")),
        resolved_at=from_epoch_ms(record.get("resolved_at")),
        version=int(record.get("version", 1)),
    )


def worker_to_record(worker: Worker) -> dict[str, Any]:
    """Serialize a worker into a DynamoDB record."""
    pk = format_key(PREFIX_WORKER, worker.id)
    record: dict[str, Any] = {
        ATTR_PK: pk,
        ATTR_SK: pk,
        ATTR_ENTITY: ENTITY_WORKER,
        "id": worker.id,
        "display_name": worker.display_name,
        "contact": worker.contact,
        "role": worker.role.value,
        "active": worker.active,
        "daily_quota": worker.daily_quota,
        "partition": worker.partition,
        "created_at": to_epoch_ms(worker.created_at),
        "version": worker.version,
    }
    _optional(record, "updated_at", worker.updated_at)
    return record


def record_to_worker(record: Mapping[str, Any]) -> Worker:
    """Deserialize a DynamoDB record into a worker."""
    return Worker(
        id=record["id"],
        display_name=record.get("display_name", ""),
        contact=record.get("contact", ""),
        created_at=from_epoch_ms(record["created_at"]),  # type: ignore[arg-type]
        role=WorkerRole(record.get("role", WorkerRole.STANDARD.value)),
        active=bool(record.get("active", True)),
        daily_quota=int(record["daily_quota"]),
        partition=record.get("partition", ""),
        updated_at=from_epoch_ms(record.get("updated_at")),
        version=int(record.get("version", 1)),
    )


class UpdateBuilder:
    """Collects SET / REMOVE clauses and conditions for one UpdateItem call."""

    def __init__(self) -> None:
        self.names: dict[str, str] = {}
        self.values: dict[str, Any] = {}
        self.sets: list[str] = []
        self.removes: list[str] = []
        self.conditions: list[str] = [f"attribute_exists({ATTR_PK})"]

    def _name(self, attribute: str) -> str:
        alias = f"#{attribute}"
        self.names[alias] = attribute
        return alias

    def _value(self, attribute: str, value: Any, prefix: str) -> str:
        placeholder = f":{prefix}_{attribute}"
        self.values[placeholder] = _to_attribute(value)
        return placeholder

    def change(self, attribute: str, value: Any) -> None:
        alias = self._name(attribute)
        if value is None:
            self.removes.append(alias)
        else:
            self.sets.append(f"{alias} = {self._value(attribute, value, 'new')}")

    def copy(self, target: str, source: str) -> None:
        self.sets.append(f"{self._name(target)} = {self._name(source)}")

    def remove(self, attribute: str) -> None:
        self.removes.append(self._name(attribute))

    def expect(self, attribute: str, value: Any) -> None:
        alias = self._name(attribute)
        if value is None:
            self.conditions.append(f"attribute_not_exists({alias})")
        else:
            self.conditions.append(f"{alias} = {self._value(attribute, value, 'old')}")

    def bump_version(self) -> None:
        self.sets.append(f"{self._name('version')} = {self._name('version')} + :one")
        self.values[":one"] = 1

    @property
    def update_expression(self) -> str:
        expression = "SET " + ", ".join(self.sets)
        if self.removes:
            expression += " REMOVE " + ", ".join(self.removes)
        return expression

    @property
    def condition_expression(self) -> str:
        return " AND ".join(self.conditions)


def _charge_update(charge: QuotaCharge) -> dict[str, Any]:
    """
    Counter update for a quota charge.

    The counter record is created on first use. A limited positive charge is
    conditional on the counter staying at or below the limit afterwards.
    """
    pk = format_key(PREFIX_QUOTA, charge.worker_id, charge.day)
    update: dict[str, Any] = {
        "key": {ATTR_PK: pk, ATTR_SK: pk},
        "update_expression": (
            "SET #entity = :entity, #worker_id = :worker_id, #day = :day ADD #used :delta"
        ),
        "expression_attribute_names": {
            "#entity": ATTR_ENTITY,
            "#worker_id": "worker_id",
            "#day": "day",
            "#used": ATTR_QUOTA_USED,
        },
        "expression_attribute_values": {
            ":entity": ENTITY_QUOTA,
            ":worker_id": charge.worker_id,
            ":day": charge.day,
            ":delta": charge.delta,
        },
    }
    if charge.limit is not None and charge.delta > 0:
        update["condition_expression"] = "attribute_not_exists(#used) OR #used <= :ceiling"
        update["expression_attribute_values"][":ceiling"] = charge.limit - charge.delta
    return update


class DynamoDBEntityStore(EntityStore):
    """Entity store persisted in a single DynamoDB table."""

    def __init__(
        self,
        table_name: str,
        region: str | None = None,
        profile: str | None = None,
        client: DynamoDBClient | None = None,
    ):
        """
        Initialize the store.

        Args:
            table_name: DynamoDB table name
            region: AWS region (optional, uses SDK default)
            profile: AWS profile (optional, uses SDK default)
            client: Pre-built client (optional, built on open() otherwise)
        """
        self.table_name = table_name
        self.region = region
        self.profile = profile
        self._client = client

    def open(self) -> None:
        if self._client is None:
            logger.debug(f"Opening DynamoDB store on table '{self.table_name}'")
            self._client = DynamoDBClient(self.table_name, self.region, self.profile)

    def close(self) -> None:
        self._client = None

    @property
    def client(self) -> DynamoDBClient:
        if self._client is None:
            raise RuntimeError("Store is not open; call open() first")
        return self._client

    # Work items

    def create_item(self, item: WorkItem) -> WorkItem:
        guard_pk = format_key(PREFIX_KEY_GUARD, item.campaign.value, item.key)
        guard = {
            ATTR_PK: guard_pk,
            ATTR_SK: guard_pk,
            ATTR_ENTITY: ENTITY_KEY_GUARD,
            "item_id": item.id,
        }
        try:
            self.client.transact_put([item_to_record(item), guard])
        except ConditionFailedError:
            raise DuplicateKeyError(
                f"Key '{item.key}' already exists in campaign '{item.campaign.value}'"
            )
        return item

    def get_item(self, item_id: str) -> WorkItem | None:
        pk = format_key(PREFIX_ITEM, item_id)
        record = self.client.get_item({ATTR_PK: pk, ATTR_SK: pk})
        return record_to_item(record) if record else None

    def update_item(
        self,
        item_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
        charge: QuotaCharge | None = None,
    ) -> WorkItem:
        check_fields(changes, ITEM_MUTABLE_FIELDS, "item")
        check_fields(expected or {}, ITEM_CONDITION_FIELDS, "item condition")
        if charge is not None and charge.exceeds(0):
            raise QuotaExceededError(charge.worker_id, charge.limit or 0)

        builder = UpdateBuilder()
        for attribute, value in changes.items():
            builder.change(attribute, value)

        # Keep sparse index keys in step with status and ownership
        if "status" in changes:
            if changes["status"] is ItemStatus.UNCLAIMED:
                builder.copy(ATTR_POOL_PK, ATTR_HOME_POOL)
            else:
                builder.remove(ATTR_POOL_PK)
        if "owner_id" in changes:
            owner_id = changes["owner_id"]
            if owner_id is None:
                builder.remove(ATTR_OWNER_PK)
            else:
                builder.change(ATTR_OWNER_PK, format_key(PREFIX_OWNER, owner_id))

        for attribute, value in (expected or {}).items():
            builder.expect(attribute, value)
        builder.bump_version()

        pk = format_key(PREFIX_ITEM, item_id)
        update: dict[str, Any] = {
            "key": {ATTR_PK: pk, ATTR_SK: pk},
            "update_expression": builder.update_expression,
            "expression_attribute_names": builder.names,
            "expression_attribute_values": builder.values,
            "condition_expression": builder.condition_expression,
        }
        if charge is None:
            response = self.client.update_item(**update)
            return record_to_item(response["Attributes"])

        try:
            self.client.transact_update([update, _charge_update(charge)])
        except ConditionFailedError as e:
            # Reasons are in request order: item first, counter second
            reasons = e.reasons + ["None"] * (2 - len(e.reasons))
            if reasons[0] != "ConditionalCheckFailed" and reasons[1] == "ConditionalCheckFailed":
                logger.debug(f"Quota counter for '{charge.worker_id}' on {charge.day} is full")
                raise QuotaExceededError(charge.worker_id, charge.limit or 0)
            raise

        # Transactions return no attributes
        record = self.client.get_item({ATTR_PK: pk, ATTR_SK: pk})
        if record is None:
            raise ConditionFailedError(f"Item '{item_id}' disappeared after update")
        return record_to_item(record)

    def find_unclaimed(
        self,
        limit: int,
        campaign: Campaign | None = None,
        exclude: set[str] | None = None,
    ) -> list[WorkItem]:
        exclude = exclude or set()
        campaigns = [campaign] if campaign else list(Campaign)
        candidates: list[WorkItem] = []

        for pool_campaign in campaigns:
            found = 0
            start_key: dict[str, Any] | None = None
            pool_pk = format_key(PREFIX_POOL, pool_campaign.value)
            while found < limit:
                records, start_key = self.client.query(
                    Key(ATTR_POOL_PK).eq(pool_pk),
                    index_name=POOL_INDEX,
                    limit=POOL_QUERY_PAGE_SIZE,
                    exclusive_start_key=start_key,
                )
                for record in records:
                    if record["id"] in exclude:
                        continue
                    candidates.append(record_to_item(record))
                    found += 1
                    if found >= limit:
                        break
                if start_key is None:
                    break

        candidates.sort(key=lambda item: (item.created_at, item.id))
        return candidates[:limit]

    def quota_used(self, worker_id: str, day: str) -> int:
        pk = format_key(PREFIX_QUOTA, worker_id, day)
        record = self.client.get_item({ATTR_PK: pk, ATTR_SK: pk})
        if not record:
            return 0
        return max(0, int(record.get(ATTR_QUOTA_USED, 0)))

    def iter_items(
        self, campaign: Campaign | None = None, owner_id: str | None = None
    ) -> Iterator[WorkItem]:
        if owner_id is not None:
            yield from self._iter_owned(owner_id, campaign)
            return

        filter_expression = Attr(ATTR_ENTITY).eq(ENTITY_ITEM)
        if campaign is not None:
            filter_expression = filter_expression & Attr("campaign").eq(campaign.value)
        for record in self.client.scan(filter_expression):
            yield record_to_item(record)

    def _iter_owned(self, owner_id: str, campaign: Campaign | None) -> Iterator[WorkItem]:
        start_key: dict[str, Any] | None = None
        condition = Key(ATTR_OWNER_PK).eq(format_key(PREFIX_OWNER, owner_id))
        while True:
            records, start_key = self.client.query(
                condition, index_name=OWNER_INDEX, exclusive_start_key=start_key
            )
            for record in records:
                item = record_to_item(record)
                if campaign is None or item.campaign is campaign:
                    yield item
            if start_key is None:
                return

    # Workers

    def create_worker(self, worker: Worker) -> bool:
        try:
            self.client.put_item(
                worker_to_record(worker),
                condition_expression=f"attribute_not_exists({ATTR_PK})",
            )
            return True
        except ConditionFailedError:
            return False

    def get_worker(self, worker_id: str) -> Worker | None:
        pk = format_key(PREFIX_WORKER, worker_id)
        record = self.client.get_item({ATTR_PK: pk, ATTR_SK: pk})
        return record_to_worker(record) if record else None

    def update_worker(
        self,
        worker_id: str,
        changes: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> Worker:
        check_fields(changes, WORKER_MUTABLE_FIELDS, "worker")
        check_fields(expected or {}, WORKER_CONDITION_FIELDS, "worker condition")

        builder = UpdateBuilder()
        for attribute, value in changes.items():
            builder.change(attribute, value)
        for attribute, value in (expected or {}).items():
            builder.expect(attribute, value)
        builder.bump_version()

        pk = format_key(PREFIX_WORKER, worker_id)
        response = self.client.update_item(
            key={ATTR_PK: pk, ATTR_SK: pk},
            update_expression=builder.update_expression,
            expression_attribute_names=builder.names,
            expression_attribute_values=builder.values,
            condition_expression=builder.condition_expression,
        )
        return record_to_worker(response["Attributes"])

    def iter_workers(self) -> Iterator[Worker]:
        for record in self.client.scan(Attr(ATTR_ENTITY).eq(ENTITY_WORKER)):
            yield record_to_worker(record)
