"""MySQL client, collaborator contracts and repositories.

Provides:
- Thread-local pymysql connections (MySQL or DoltDB)
- Abstract stores the orchestrator depends on
- Repository classes implementing them over the scraping tables
"""

from .client import check_connection, execute_query, get_connection, get_cursor
from .interfaces import CredentialProvider, DonorListStore, JobStore, RecordSink, ResultSink
from .repository import (
    CredentialRepository,
    DonorListRepository,
    DonorRecordRepository,
    ScrapeJobRepository,
    ScrapeResultRepository,
)
from .schema import ensure_schema

__all__ = [
    # Client
    "get_connection",
    "get_cursor",
    "execute_query",
    "check_connection",
    "ensure_schema",
    # Contracts
    "CredentialProvider",
    "DonorListStore",
    "JobStore",
    "RecordSink",
    "ResultSink",
    # Repositories
    "CredentialRepository",
    "DonorListRepository",
    "DonorRecordRepository",
    "ScrapeJobRepository",
    "ScrapeResultRepository",
]
