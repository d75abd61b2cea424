"""MySQL-backed stores for the scraping tables.

Each repository implements one collaborator contract from
donor_pipeline.db.interfaces, plus the maintenance operations the CLI needs.
"""

import json
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import pymysql

from donor_pipeline.constants import BASE_URL
from donor_pipeline.errors import PersistenceError
from donor_pipeline.models.scrape_job import (
    DonorListEntry,
    JobCounters,
    JobStatus,
    JobType,
    ScrapeJob,
    ScrapeResult,
    ScrapeStatus,
    ScrapingCredentials,
)
from donor_pipeline.validators.donor_profile import DonorProfile

from .client import execute_query
from .interfaces import CredentialProvider, DonorListStore, JobStore, RecordSink, ResultSink


def _json_default(obj: Any) -> Any:
    """Handle non-serializable objects for JSON encoding."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _serialize_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=_json_default)


def _deserialize_json(value: str | bytes | None) -> Any:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value  # Already parsed by driver


def _generate_uuid() -> str:
    return str(uuid.uuid4())


class CredentialRepository(CredentialProvider):
    """scraping_credentials table. At most one row is active."""

    def get_active_credentials(self) -> Optional[ScrapingCredentials]:
        row = execute_query(
            "SELECT * FROM scraping_credentials WHERE is_active = TRUE ORDER BY updated_at DESC LIMIT 1",
            fetch="one",
        )
        if not row:
            return None
        return ScrapingCredentials(
            id=row["id"],
            email=row["email"],
            password=row["password"],
            is_active=bool(row["is_active"]),
            last_used_at=row.get("last_used_at"),
        )

    def mark_credentials_used(self, credentials: ScrapingCredentials) -> None:
        if not credentials.id:
            return
        execute_query(
            "UPDATE scraping_credentials SET last_used_at = %s WHERE id = %s",
            (datetime.now(), credentials.id),
            fetch="none",
        )

    def set_credentials(self, email: str, password: str) -> str:
        """Replace the active credential set. Returns the new row id."""
        execute_query("UPDATE scraping_credentials SET is_active = FALSE WHERE is_active = TRUE", fetch="none")
        credential_id = _generate_uuid()
        execute_query(
            "INSERT INTO scraping_credentials (id, email, password, is_active) VALUES (%s, %s, %s, TRUE)",
            (credential_id, email, password),
            fetch="none",
        )
        return credential_id


class DonorRecordRepository(RecordSink):
    """donor_records table: latest extracted profile per donor."""

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url.rstrip("/")

    def upsert_subject_record(self, donor_id: str, record: DonorProfile) -> None:
        profile = record.model_dump(mode="json")
        data = {
            "donor_id": donor_id,
            "name": record.name,
            "occupation": record.occupation,
            "education": record.education,
            "banner_message": record.banner_message,
            "inventory_summary": record.inventory_summary or record.banner_message,
            "document_id": record.document_id,
            "profile_current_date": record.profile_current_date,
            "compliance_flags": _serialize_json(profile["compliance_flags"]),
            "inventory_data": _serialize_json(profile["inventory_data"]),
            "profile": _serialize_json(profile),
            "source_url": f"{self.base_url}/donor/{donor_id}",
        }
        columns = list(data.keys())
        placeholders = ", ".join(["%s"] * len(columns))
        update_clause = ", ".join(f"`{col}` = VALUES(`{col}`)" for col in columns if col != "donor_id")

        sql = f"""
            INSERT INTO donor_records ({", ".join(f"`{c}`" for c in columns)})
            VALUES ({placeholders})
            ON DUPLICATE KEY UPDATE {update_clause}
        """
        try:
            execute_query(sql, tuple(data.values()), fetch="none")
        except pymysql.Error as e:
            raise PersistenceError(f"Failed to upsert donor record: {e}", donor_id=donor_id) from e


class ScrapeResultRepository(ResultSink):
    """scraping_results table. Append-only."""

    JSON_COLUMNS = {"scraped_data", "changes_detected"}

    def append_result(self, result: ScrapeResult) -> None:
        data = {
            "id": result.id or _generate_uuid(),
            "job_id": result.job_id,
            "donor_id": result.donor_id,
            "status": result.status.value,
            "scraped_data": _serialize_json(result.scraped_data),
            "changes_detected": _serialize_json(result.changes_detected),
            "error_message": result.error_message,
            "banner_message": result.banner_message,
            "document_id": result.document_id,
            "profile_current_date": result.profile_current_date,
            "scraped_at": result.scraped_at or datetime.now(),
        }
        columns = list(data.keys())
        placeholders = ", ".join(["%s"] * len(columns))
        execute_query(
            f"INSERT INTO scraping_results ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(data.values()),
            fetch="none",
        )

    def get_latest_success(self, donor_id: str) -> Optional[dict[str, Any]]:
        row = execute_query(
            """
            SELECT scraped_data FROM scraping_results
            WHERE donor_id = %s AND status = %s
            ORDER BY scraped_at DESC LIMIT 1
            """,
            (donor_id, ScrapeStatus.SUCCESS.value),
            fetch="one",
        )
        if not row:
            return None
        return _deserialize_json(row["scraped_data"])

    def list_results(self, job_id: str) -> list[ScrapeResult]:
        return self.search(job_id=job_id)

    def search(
        self,
        job_id: Optional[str] = None,
        donor_id: Optional[str] = None,
        status: Optional[ScrapeStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        search: Optional[str] = None,
        limit: int = 500,
    ) -> list[ScrapeResult]:
        """Filter results; `search` matches donor id or banner message substrings."""
        clauses = []
        params: list[Any] = []
        if job_id:
            clauses.append("job_id = %s")
            params.append(job_id)
        if donor_id:
            clauses.append("donor_id = %s")
            params.append(donor_id)
        if status:
            clauses.append("status = %s")
            params.append(ScrapeStatus(status).value)
        if date_from:
            clauses.append("scraped_at >= %s")
            params.append(date_from)
        if date_to:
            clauses.append("scraped_at <= %s")
            params.append(date_to)
        if search:
            clauses.append("(donor_id LIKE %s OR banner_message LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)
        rows = execute_query(
            f"SELECT * FROM scraping_results {where} ORDER BY scraped_at DESC LIMIT %s",
            tuple(params),
        )
        return [self._to_result(row) for row in rows or []]

    def _to_result(self, row: dict) -> ScrapeResult:
        return ScrapeResult(
            id=row["id"],
            job_id=row["job_id"],
            donor_id=row["donor_id"],
            status=ScrapeStatus(row["status"]),
            scraped_data=_deserialize_json(row.get("scraped_data")),
            changes_detected=_deserialize_json(row.get("changes_detected")),
            error_message=row.get("error_message"),
            banner_message=row.get("banner_message"),
            document_id=row.get("document_id"),
            profile_current_date=row.get("profile_current_date"),
            scraped_at=row.get("scraped_at"),
        )


class ScrapeJobRepository(JobStore):
    """scraping_jobs table."""

    def create_job(
        self,
        donor_ids: list[str],
        job_type: JobType = JobType.INCREMENTAL,
        created_by: Optional[str] = None,
    ) -> str:
        job_id = _generate_uuid()
        execute_query(
            """
            INSERT INTO scraping_jobs (id, job_type, status, donor_ids, total_donors, created_by)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (
                job_id,
                JobType(job_type).value,
                JobStatus.PENDING.value,
                _serialize_json(list(donor_ids)),
                len(donor_ids),
                created_by,
            ),
            fetch="none",
        )
        return job_id

    def update_job_progress(self, job_id: str, counters: JobCounters) -> None:
        execute_query(
            """
            UPDATE scraping_jobs
            SET processed_donors = %s, successful_scrapes = %s, failed_scrapes = %s
            WHERE id = %s
            """,
            (counters.processed, counters.succeeded, counters.failed, job_id),
            fetch="none",
        )

    def set_job_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> None:
        status = JobStatus(status)
        if status == JobStatus.RUNNING:
            execute_query(
                "UPDATE scraping_jobs SET status = %s, started_at = %s WHERE id = %s",
                (status.value, datetime.now(), job_id),
                fetch="none",
            )
        elif status in (JobStatus.COMPLETED, JobStatus.FAILED):
            execute_query(
                "UPDATE scraping_jobs SET status = %s, completed_at = %s, error_message = %s WHERE id = %s",
                (status.value, datetime.now(), error, job_id),
                fetch="none",
            )
        else:
            execute_query(
                "UPDATE scraping_jobs SET status = %s WHERE id = %s",
                (status.value, job_id),
                fetch="none",
            )

    def get_job(self, job_id: str) -> Optional[ScrapeJob]:
        row = execute_query("SELECT * FROM scraping_jobs WHERE id = %s", (job_id,), fetch="one")
        return self._to_job(row) if row else None

    def list_jobs(self, limit: int = 20, offset: int = 0) -> list[ScrapeJob]:
        rows = execute_query(
            "SELECT * FROM scraping_jobs ORDER BY created_at DESC LIMIT %s OFFSET %s",
            (limit, offset),
        )
        return [self._to_job(row) for row in rows or []]

    def _to_job(self, row: dict) -> ScrapeJob:
        return ScrapeJob(
            id=row["id"],
            donor_ids=_deserialize_json(row.get("donor_ids")) or [],
            job_type=JobType(row["job_type"]),
            status=JobStatus(row["status"]),
            counters=JobCounters(
                processed=row.get("processed_donors") or 0,
                succeeded=row.get("successful_scrapes") or 0,
                failed=row.get("failed_scrapes") or 0,
            ),
            error_message=row.get("error_message"),
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
        )


class DonorListRepository(DonorListStore):
    """donor_id_list table."""

    def get_subject_health(self, donor_id: str) -> Optional[DonorListEntry]:
        row = execute_query("SELECT * FROM donor_id_list WHERE donor_id = %s", (donor_id,), fetch="one")
        if not row:
            return None
        return DonorListEntry(
            donor_id=row["donor_id"],
            is_active=bool(row["is_active"]),
            last_scraped_at=row.get("last_scraped_at"),
            last_successful_scrape_at=row.get("last_successful_scrape_at"),
            consecutive_failures=row.get("consecutive_failures") or 0,
            notes=row.get("notes"),
        )

    def update_subject_health(self, entry: DonorListEntry) -> None:
        execute_query(
            """
            UPDATE donor_id_list
            SET is_active = %s, last_scraped_at = %s, last_successful_scrape_at = %s,
                consecutive_failures = %s
            WHERE donor_id = %s
            """,
            (
                entry.is_active,
                entry.last_scraped_at,
                entry.last_successful_scrape_at,
                entry.consecutive_failures,
                entry.donor_id,
            ),
            fetch="none",
        )

    def list_donor_ids(self, active_only: bool = True) -> list[str]:
        sql = "SELECT donor_id FROM donor_id_list"
        if active_only:
            sql += " WHERE is_active = TRUE"
        rows = execute_query(sql + " ORDER BY donor_id")
        return [row["donor_id"] for row in rows or []]

    def add_donor_ids(self, donor_ids: list[str], notes: Optional[str] = None) -> int:
        existing = set(self.list_donor_ids(active_only=False))
        added = 0
        for donor_id in dict.fromkeys(d.strip() for d in donor_ids if d and d.strip()):
            if donor_id in existing:
                continue
            execute_query(
                "INSERT INTO donor_id_list (donor_id, is_active, notes) VALUES (%s, TRUE, %s)",
                (donor_id, notes),
                fetch="none",
            )
            added += 1
        return added

    def remove(self, donor_id: str) -> None:
        execute_query("DELETE FROM donor_id_list WHERE donor_id = %s", (donor_id,), fetch="none")
