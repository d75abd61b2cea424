"""Tests for the MySQL repositories with the query function replaced by a recorder."""

import json
from datetime import datetime

import pymysql
import pytest

from donor_pipeline.db import repository
from donor_pipeline.errors import PersistenceError
from donor_pipeline.models.scrape_job import JobCounters, JobStatus, JobType, ScrapeResult, ScrapeStatus
from donor_pipeline.validators.donor_profile import DonorProfile


class QueryRecorder:
    """Stands in for execute_query: records calls, returns canned rows."""

    def __init__(self, rows=None, error=None):
        self.calls = []
        self.rows = rows
        self.error = error

    def __call__(self, sql, params=None, fetch="all"):
        self.calls.append((" ".join(sql.split()), params, fetch))
        if self.error is not None:
            raise self.error
        return self.rows


@pytest.fixture
def recorder(monkeypatch):
    recorder = QueryRecorder()
    monkeypatch.setattr(repository, "execute_query", recorder)
    return recorder


# ─── Donor records ────────────────────────────────────────────────────────────


class TestDonorRecordRepository:
    def test_upsert(self, recorder):
        profile = DonorProfile(id="12345", name="Adam", banner_message="More than 5 vials available!")
        repository.DonorRecordRepository().upsert_subject_record("12345", profile)

        sql, params, _ = recorder.calls[0]
        assert sql.startswith("INSERT INTO donor_records")
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert params[0] == "12345"
        assert params[-1] == "https://www.xytex.com/donor/12345"
        assert json.loads(params[-2])["name"] == "Adam"

    def test_driver_error_becomes_persistence_error(self, monkeypatch):
        monkeypatch.setattr(repository, "execute_query", QueryRecorder(error=pymysql.OperationalError(2006, "gone away")))
        with pytest.raises(PersistenceError) as excinfo:
            repository.DonorRecordRepository().upsert_subject_record("12345", DonorProfile(id="12345"))
        assert excinfo.value.donor_id == "12345"


# ─── Results and jobs ─────────────────────────────────────────────────────────


class TestScrapeResultRepository:
    def test_append_serializes_json_columns(self, recorder):
        result = ScrapeResult(
            job_id="job-1",
            donor_id="12345",
            status=ScrapeStatus.SUCCESS,
            scraped_data={"id": "12345"},
            changes_detected={"initial": True},
            scraped_at=datetime(2024, 1, 15),
        )
        repository.ScrapeResultRepository().append_result(result)

        _, params, _ = recorder.calls[0]
        assert params[3] == "success"
        assert json.loads(params[4]) == {"id": "12345"}
        assert json.loads(params[5]) == {"initial": True}

    def test_latest_success_deserialized(self, recorder):
        recorder.rows = {"scraped_data": '{"id": "12345", "name": "Adam"}'}
        assert repository.ScrapeResultRepository().get_latest_success("12345") == {"id": "12345", "name": "Adam"}

    def test_no_previous_success(self, recorder):
        recorder.rows = None
        assert repository.ScrapeResultRepository().get_latest_success("12345") is None

    def test_search_filters(self, recorder):
        recorder.rows = []
        repository.ScrapeResultRepository().search(job_id="job-1", status=ScrapeStatus.FAILED, search="123", limit=10)
        sql, params, _ = recorder.calls[0]
        assert "job_id = %s AND status = %s AND (donor_id LIKE %s OR banner_message LIKE %s)" in sql
        assert params == ("job-1", "failed", "%123%", "%123%", 10)


class TestScrapeJobRepository:
    def test_running_stamps_started_at(self, recorder):
        repository.ScrapeJobRepository().set_job_status("job-1", JobStatus.RUNNING)
        sql, params, _ = recorder.calls[0]
        assert "started_at" in sql
        assert params[0] == "running"

    def test_terminal_status_stores_error(self, recorder):
        repository.ScrapeJobRepository().set_job_status("job-1", JobStatus.FAILED, "No active scraping credentials configured")
        sql, params, _ = recorder.calls[0]
        assert "completed_at" in sql
        assert params[2] == "No active scraping credentials configured"

    def test_progress(self, recorder):
        repository.ScrapeJobRepository().update_job_progress("job-1", JobCounters(3, 2, 1))
        assert recorder.calls[0][1] == (3, 2, 1, "job-1")

    def test_row_to_job(self, recorder):
        recorder.rows = {
            "id": "job-1",
            "donor_ids": '["1001", "1002"]',
            "job_type": "full",
            "status": "completed",
            "processed_donors": 2,
            "successful_scrapes": 1,
            "failed_scrapes": 1,
        }
        job = repository.ScrapeJobRepository().get_job("job-1")
        assert job.donor_ids == ["1001", "1002"]
        assert job.job_type == JobType.FULL
        assert job.total_donors == 2
        assert job.counters == JobCounters(2, 1, 1)


class TestDonorListRepository:
    def test_add_skips_existing(self, recorder):
        recorder.rows = [{"donor_id": "1001"}]
        added = repository.DonorListRepository().add_donor_ids(["1001", "1002", "1002"])
        assert added == 1
        inserts = [call for call in recorder.calls if call[0].startswith("INSERT")]
        assert [params[0] for _, params, _ in inserts] == ["1002"]
