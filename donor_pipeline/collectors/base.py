"""
Base collector interface for browser-backed sources.

fetch(): browser navigation only, returns the captured page
parse(): pure HTML -> record transform, never raises

collect() runs both and is what the orchestrator calls per donor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from donor_pipeline.config import ScrapingOptions
from donor_pipeline.errors import ExtractionFailure


@dataclass
class FetchResult:
    """Result from fetch() - the captured page."""

    raw_data: str  # Page HTML
    url: str  # Final URL after redirects
    content_type: str = "html"
    fetched_at: datetime = field(default_factory=datetime.now)


@dataclass
class ParseResult:
    """Result from parse() - a validated record or the reason there is none."""

    success: bool
    record: Optional[BaseModel]
    error: Optional[str] = None


class BaseCollector(ABC):
    """
    Base class for collectors with separated fetch/parse phases.

    Subclasses must implement:
    - fetch(donor_id) -> FetchResult: navigation only; raises SubjectScrapeError subclasses
    - parse(raw_data, donor_id) -> ParseResult: no browser access, never raises
    """

    def __init__(self, session, options: Optional[ScrapingOptions] = None):
        self.session = session
        self.options = options or ScrapingOptions()

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Canonical source name (e.g., 'donor_profile', 'inventory_report')."""
        ...

    @abstractmethod
    def fetch(self, donor_id: str) -> FetchResult:
        """
        Navigate to the donor's page and capture it.

        Args:
            donor_id: Registry donor id

        Returns:
            FetchResult with the page HTML
        """
        ...

    @abstractmethod
    def parse(self, raw_data: str, donor_id: str) -> ParseResult:
        """
        Parse captured HTML into a validated record.

        Args:
            raw_data: HTML from fetch()
            donor_id: Donor id, attached to the record as its key

        Returns:
            ParseResult with the record, or success=False and an error
        """
        ...

    def collect(self, donor_id: str) -> BaseModel:
        """
        Fetch + parse in one call.

        Raises:
            SubjectScrapeError: navigation failed or the page held no usable record
        """
        fetch_result = self.fetch(donor_id)
        self._save_debug_html(donor_id, fetch_result.raw_data)

        parse_result = self.parse(fetch_result.raw_data, donor_id)
        if not parse_result.success or parse_result.record is None:
            raise ExtractionFailure(
                parse_result.error or f"No {self.source_name} data extracted",
                donor_id=donor_id,
                url=fetch_result.url,
            )
        return parse_result.record

    def _save_debug_html(self, donor_id: str, html: str) -> Optional[Path]:
        """Write the captured page to options.debug_html_dir, if set."""
        if self.options.debug_html_dir is None:
            return None
        directory = Path(self.options.debug_html_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{self.source_name}_{donor_id}.html"
        path.write_text(html, encoding="utf-8")
        return path
