"""
Base connector for commerce data sources

A connector pulls one analysis window of orders and refunds from a store
platform. sync() wraps the fetch in retries and never raises: callers get a
SyncResult and decide what a failed fetch means for their report.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
import time

from maldify.utils.logger import log
from maldify.utils.retry import RetryPolicy, RetryStats, call_with_retry


@dataclass
class SyncResult:
    success: bool
    source: str
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    duration: float = 0.0
    retry_stats: RetryStats = field(default_factory=RetryStats)


class BaseConnector(ABC):
    """Base class for store platform connectors"""

    retry_policy = RetryPolicy()

    def __init__(self, name: str):
        self.name = name
        self.last_sync: Optional[datetime] = None
        self.sync_count = 0
        self.error_count = 0

    @abstractmethod
    async def connect(self) -> bool:
        """Open a session with the platform"""
        pass

    @abstractmethod
    async def validate_connection(self) -> bool:
        pass

    @abstractmethod
    async def fetch_data(self, start_date: datetime, end_date: datetime) -> Dict[str, Any]:
        """Return {"orders": [...], "refunds": [...]} for the window"""
        pass

    async def sync(self, start_date: datetime, end_date: datetime) -> SyncResult:
        """Validate the connection and fetch one window, retrying transient failures"""
        log.info(f"Starting sync for {self.name} from {start_date} to {end_date}")
        started = time.monotonic()
        stats = RetryStats()

        try:
            valid = await call_with_retry(
                self.validate_connection, self.retry_policy, f"{self.name} validate_connection", stats
            )
            if not valid:
                raise ConnectionError(f"Connection validation failed for {self.name}")

            data = await call_with_retry(
                lambda: self.fetch_data(start_date, end_date),
                self.retry_policy,
                f"{self.name} fetch_data",
                stats,
            )
        except Exception as e:
            self.error_count += 1
            log.error(f"Sync failed for {self.name} after {stats.retries} retries: {str(e)}")
            return SyncResult(
                success=False,
                source=self.name,
                error=str(e),
                duration=time.monotonic() - started,
                retry_stats=stats,
            )

        self.last_sync = datetime.utcnow()
        self.sync_count += 1
        duration = time.monotonic() - started
        log.info(f"Sync completed for {self.name} in {duration:.2f}s ({stats.retries} retries)")

        return SyncResult(success=True, source=self.name, data=data, duration=duration, retry_stats=stats)

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
            "sync_count": self.sync_count,
            "error_count": self.error_count,
            "max_attempts": self.retry_policy.max_attempts,
        }
