"""Collaborator contracts used by the orchestrator.

The MySQL implementations live in donor_pipeline.db.repository; tests use
in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from donor_pipeline.models.scrape_job import (
    DonorListEntry,
    JobCounters,
    JobStatus,
    JobType,
    ScrapeJob,
    ScrapeResult,
    ScrapingCredentials,
)
from donor_pipeline.validators.donor_profile import DonorProfile


class CredentialProvider(ABC):
    @abstractmethod
    def get_active_credentials(self) -> Optional[ScrapingCredentials]:
        """Return the single active credential set, or None."""
        ...

    @abstractmethod
    def mark_credentials_used(self, credentials: ScrapingCredentials) -> None:
        """Record a successful login against this credential set."""
        ...


class RecordSink(ABC):
    @abstractmethod
    def upsert_subject_record(self, donor_id: str, record: DonorProfile) -> None:
        """Create or update the donor record. Idempotent, keyed by donor id."""
        ...


class ResultSink(ABC):
    @abstractmethod
    def append_result(self, result: ScrapeResult) -> None:
        """Append one result row. Past rows are never modified."""
        ...

    @abstractmethod
    def get_latest_success(self, donor_id: str) -> Optional[dict[str, Any]]:
        """Return scraped_data of the donor's most recent successful result, or None."""
        ...

    @abstractmethod
    def list_results(self, job_id: str) -> list[ScrapeResult]:
        ...


class JobStore(ABC):
    @abstractmethod
    def create_job(
        self,
        donor_ids: list[str],
        job_type: JobType = JobType.INCREMENTAL,
        created_by: Optional[str] = None,
    ) -> str:
        """Create a pending job with zeroed counters and return its id."""
        ...

    @abstractmethod
    def update_job_progress(self, job_id: str, counters: JobCounters) -> None:
        ...

    @abstractmethod
    def set_job_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> None:
        """Move the job to `status`; running stamps started_at, terminal states stamp completed_at."""
        ...

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[ScrapeJob]:
        ...

    @abstractmethod
    def list_jobs(self, limit: int = 20, offset: int = 0) -> list[ScrapeJob]:
        ...


class DonorListStore(ABC):
    @abstractmethod
    def get_subject_health(self, donor_id: str) -> Optional[DonorListEntry]:
        ...

    @abstractmethod
    def update_subject_health(self, entry: DonorListEntry) -> None:
        """Persist last_scraped_at, last_successful_scrape_at, consecutive_failures and is_active."""
        ...

    @abstractmethod
    def list_donor_ids(self, active_only: bool = True) -> list[str]:
        ...

    @abstractmethod
    def add_donor_ids(self, donor_ids: list[str], notes: Optional[str] = None) -> int:
        """Insert ids not already listed. Returns the number added."""
        ...
