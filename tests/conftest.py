"""Shared fixtures for donor pipeline tests.

Parsers are tested against captured pages under tests/fixtures/; the
orchestrator runs against the in-memory collaborators in tests/fakes.py, so
no browser or database is needed.
"""

from pathlib import Path

import pytest

from donor_pipeline.config import ScrapingOptions
from donor_pipeline.utils.logger import PipelineLogger
from donor_pipeline.utils.rate_limiter import RequestPacer
from tests.fakes import (
    InMemoryCredentials,
    InMemoryDonorList,
    InMemoryJobStore,
    InMemoryRecordSink,
    InMemoryResultSink,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def profile_html() -> str:
    """Captured profile page for donor 12345."""
    return (FIXTURES_DIR / "profile_12345.html").read_text(encoding="utf-8")


@pytest.fixture
def inventory_html() -> str:
    """Captured donor status report for donor 12345."""
    return (FIXTURES_DIR / "inventory_12345.html").read_text(encoding="utf-8")


@pytest.fixture
def options() -> ScrapingOptions:
    """Default options with pacing and settle delays switched off."""
    return ScrapingOptions(
        delay_between_requests=0,
        page_settle_seconds=0,
        modal_settle_seconds=0,
        post_login_settle_seconds=0,
    )


@pytest.fixture
def test_logger() -> PipelineLogger:
    return PipelineLogger(name="tests.donor_pipeline", log_level="DEBUG")


@pytest.fixture
def pacer() -> RequestPacer:
    """Pacer that never sleeps."""
    return RequestPacer(sleep=lambda seconds: None)


@pytest.fixture
def credentials() -> InMemoryCredentials:
    from donor_pipeline.models.scrape_job import ScrapingCredentials

    return InMemoryCredentials(ScrapingCredentials(email="ops@example.com", password="secret", id="cred-1"))


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def result_sink() -> InMemoryResultSink:
    return InMemoryResultSink()


@pytest.fixture
def record_sink() -> InMemoryRecordSink:
    return InMemoryRecordSink()


@pytest.fixture
def donor_list() -> InMemoryDonorList:
    return InMemoryDonorList(["1001", "1002", "1003"])
