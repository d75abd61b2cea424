"""Job, result and donor-list records.

These are the rows the orchestrator reads and writes through the store
interfaces in donor_pipeline.db.interfaces.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class JobStatus(str, Enum):
    """Lifecycle: pending -> running -> completed | failed."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"  # Every donor attempted, regardless of per-donor outcome
    FAILED = "failed"  # Setup error or cancellation; per-donor errors never cause this


class JobType(str, Enum):
    FULL = "full"  # Every active donor in the list
    INCREMENTAL = "incremental"  # An explicit subset


class ScrapeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class JobCounters:
    """Aggregate progress of one job. Counters only ever increase."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    def record(self, success: bool) -> None:
        self.processed += 1
        if success:
            self.succeeded += 1
        else:
            self.failed += 1

    def copy(self) -> "JobCounters":
        return JobCounters(self.processed, self.succeeded, self.failed)


@dataclass
class ScrapeJob:
    """One bulk run over an ordered list of donor ids."""

    id: str
    donor_ids: list[str]
    job_type: JobType = JobType.INCREMENTAL
    status: JobStatus = JobStatus.PENDING
    counters: JobCounters = field(default_factory=JobCounters)
    error_message: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_donors(self) -> int:
        return len(self.donor_ids)


@dataclass
class ScrapeResult:
    """Outcome of one (job, donor) attempt. Written once, never updated.

    Attributes:
        scraped_data: Serialized DonorProfile on success
        changes_detected: Field diff against the previous success, or {"initial": True}
        error_message: Failure reason; on success, notes a failed record write
    """

    job_id: str
    donor_id: str
    status: ScrapeStatus
    scraped_data: Optional[dict[str, Any]] = None
    changes_detected: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    banner_message: Optional[str] = None
    document_id: Optional[str] = None
    profile_current_date: Optional[str] = None
    scraped_at: Optional[datetime] = None
    id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ScrapeStatus.SUCCESS


@dataclass
class DonorListEntry:
    """Scraping health of one donor id across jobs."""

    donor_id: str
    is_active: bool = True
    last_scraped_at: Optional[datetime] = None
    last_successful_scrape_at: Optional[datetime] = None
    consecutive_failures: int = 0
    notes: Optional[str] = None


@dataclass
class ScrapingCredentials:
    """Login for the registry site. At most one set is active."""

    email: str
    password: str = field(repr=False)
    id: Optional[str] = None
    is_active: bool = True
    last_used_at: Optional[datetime] = None
