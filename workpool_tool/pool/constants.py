"""
Constants for work pool operations.
"""

# Default table name
DEFAULT_TABLE_NAME = "workpool-tool-pool"

# Engine defaults
DEFAULT_TIMEZONE = "UTC"
DEFAULT_DAILY_QUOTA = 20  # Items a standard worker may self-claim per day
DEFAULT_DISTRIBUTE_COUNT = 2000  # Per-worker count for bulk distribution
DEFAULT_CANDIDATE_OVERFETCH = 2  # Candidates fetched per wanted item
DEFAULT_WORKER_ITEMS_LIMIT = 20  # Pending items shown to a worker
DEFAULT_PARTITION = "general"

# Namespace prefixes for DynamoDB keys
PREFIX_ITEM = "item"
PREFIX_WORKER = "worker"
PREFIX_KEY_GUARD = "key"
PREFIX_POOL = "pool"
PREFIX_OWNER = "owner"
PREFIX_QUOTA = "quota"

# DynamoDB attribute names
ATTR_PK = "PK"
ATTR_SK = "SK"
ATTR_ENTITY = "entity"
ATTR_POOL_PK = "pool_pk"
ATTR_OWNER_PK = "owner_pk"
ATTR_QUOTA_USED = "used"

# Entity tags stored in ATTR_ENTITY
ENTITY_ITEM = "item"
ENTITY_WORKER = "worker"
ENTITY_KEY_GUARD = "key_guard"
ENTITY_QUOTA = "quota"

# Secondary indexes
POOL_INDEX = "pool-index"
OWNER_INDEX = "owner-index"

# Query page size when collecting unclaimed candidates
POOL_QUERY_PAGE_SIZE = 100
