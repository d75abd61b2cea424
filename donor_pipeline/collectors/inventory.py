"""
Collector for the admin inventory (donor status) report.

The report is a search form on the admin site: the donor id is typed into
the lookup field and the page re-renders with the report for that donor.
"""

import logging
import time

from playwright.sync_api import Error as PlaywrightError

from donor_pipeline.collectors.base import BaseCollector, FetchResult, ParseResult
from donor_pipeline.constants import INVENTORY_INPUT_SELECTORS, INVENTORY_SUBMIT_PHRASES
from donor_pipeline.errors import ExtractionFailure
from donor_pipeline.parsers.inventory_parser import parse_inventory_report

logger = logging.getLogger(__name__)


class InventoryCollector(BaseCollector):
    """Fetches and parses the donor status report for one donor."""

    @property
    def source_name(self) -> str:
        return "inventory_report"

    def fetch(self, donor_id: str) -> FetchResult:
        url = self.options.inventory_url
        self.session.navigate(url)

        search_input = self.session.find_visible(INVENTORY_INPUT_SELECTORS)
        if search_input is None:
            raise ExtractionFailure("Inventory report search field not found", donor_id=donor_id, url=url)

        try:
            search_input.fill(donor_id)
            if not self.session.click_text(INVENTORY_SUBMIT_PHRASES):
                search_input.press("Enter")
            time.sleep(self.options.page_settle_seconds)
            snapshot = self.session.snapshot()
        except PlaywrightError as e:
            raise ExtractionFailure(f"Inventory report search failed: {e}", donor_id=donor_id, url=url) from e

        if "inventory data" not in snapshot.text.lower():
            logger.warning("Inventory report for donor %s may not have loaded", donor_id)
        return FetchResult(raw_data=snapshot.html, url=snapshot.url)

    def parse(self, raw_data: str, donor_id: str) -> ParseResult:
        report = parse_inventory_report(raw_data, donor_id)
        if report is None:
            return ParseResult(success=False, record=None, error="Inventory report page had no report sections")
        return ParseResult(success=True, record=report)
