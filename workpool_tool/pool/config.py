"""
Engine configuration.
"""

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import (
    DEFAULT_CANDIDATE_OVERFETCH,
    DEFAULT_DAILY_QUOTA,
    DEFAULT_TABLE_NAME,
    DEFAULT_TIMEZONE,
)
from .utils import validate_table_name


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings shared by every engine operation.

    The time zone decides where calendar days start, both for the daily quota
    and for report buckets.
    """

    table_name: str = DEFAULT_TABLE_NAME
    region: str | None = None
    profile: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    default_daily_quota: int = DEFAULT_DAILY_QUOTA
    candidate_overfetch: int = DEFAULT_CANDIDATE_OVERFETCH

    def __post_init__(self) -> None:
        validate_table_name(self.table_name)
        if self.default_daily_quota < 0:
            raise ValueError("Default daily quota cannot be negative")
        if self.candidate_overfetch < 1:
            raise ValueError("Candidate overfetch must be at least 1")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone '{self.timezone}'")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Build configuration from environment variables.

        Reads WORKPOOL_TABLE, AWS_REGION, AWS_PROFILE, WORKPOOL_TIMEZONE and
        WORKPOOL_DEFAULT_QUOTA.

        Raises:
            ValueError: If a value is malformed
        """
        quota_env = os.getenv("WORKPOOL_DEFAULT_QUOTA")
        try:
            quota = int(quota_env) if quota_env else DEFAULT_DAILY_QUOTA
        except ValueError:
            raise ValueError(f"WORKPOOL_DEFAULT_QUOTA must be an integer, got '{quota_env}'")

        return cls(
            table_name=os.getenv("WORKPOOL_TABLE") or DEFAULT_TABLE_NAME,
            region=os.getenv("AWS_REGION") or None,
            profile=os.getenv("AWS_PROFILE") or None,
            timezone=os.getenv("WORKPOOL_TIMEZONE") or DEFAULT_TIMEZONE,
            default_daily_quota=quota,
        )
