"""
Collector for public donor profile pages, with the inventory report attached.

Page access rules after navigating to /donor/<id>:
- redirected to the login page: the session has expired; it is marked
  unauthenticated and the donor fails
- a 404 page, or an error message on a page other than the donor's: the donor fails
- any other unexpected URL: logged and parsed anyway
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from donor_pipeline.collectors.base import BaseCollector, FetchResult, ParseResult
from donor_pipeline.collectors.inventory import InventoryCollector
from donor_pipeline.collectors.session import PageSnapshot
from donor_pipeline.config import ScrapingOptions
from donor_pipeline.constants import LOGIN_PATH, NOT_FOUND_URL_MARKERS, PAGE_ERROR_PHRASES
from donor_pipeline.errors import ExtractionFailure, SubjectScrapeError
from donor_pipeline.parsers.profile_parser import parse_donor_profile
from donor_pipeline.validators.donor_profile import DonorProfile

logger = logging.getLogger(__name__)


def page_access_error(snapshot: PageSnapshot, expected_url: str) -> Optional[str]:
    """
    Reason the captured page is not the donor's profile, or None if it is usable.

    A redirect to the login page is reported separately by is_login_redirect().
    """
    current = snapshot.url.lower()
    if snapshot.status == 404 or any(marker in current for marker in NOT_FOUND_URL_MARKERS):
        return "Donor page not found (404)"

    on_expected_page = current.rstrip("/") == expected_url.lower().rstrip("/")
    if not on_expected_page:
        page_text = f"{snapshot.title}\n{snapshot.text}".lower()
        for phrase in PAGE_ERROR_PHRASES:
            if phrase in page_text:
                return f"Error page instead of donor profile: {phrase!r}"
    return None


def is_login_redirect(snapshot: PageSnapshot) -> bool:
    return LOGIN_PATH in urlparse(snapshot.url.lower()).path


class DonorProfileCollector(BaseCollector):
    """
    Fetches a donor profile, parses it, and attaches the inventory report.

    Args:
        session: XytexSession (or anything with navigate/invalidate/find_visible/...)
        options: Scraping options
        inventory: Inventory collector; None skips the inventory report
    """

    def __init__(self, session, options: Optional[ScrapingOptions] = None, inventory: Optional[InventoryCollector] = None):
        super().__init__(session, options)
        self.inventory = inventory

    @property
    def source_name(self) -> str:
        return "donor_profile"

    def fetch(self, donor_id: str) -> FetchResult:
        expected_url = self.options.profile_url(donor_id)
        snapshot = self.session.navigate(expected_url)

        if is_login_redirect(snapshot):
            self.session.invalidate()
            raise ExtractionFailure(
                "Redirected to login page; session expired",
                donor_id=donor_id,
                url=snapshot.url,
            )

        error = page_access_error(snapshot, expected_url)
        if error:
            raise ExtractionFailure(error, donor_id=donor_id, url=snapshot.url)

        if snapshot.url.rstrip("/") != expected_url.rstrip("/"):
            logger.warning("Donor %s: unexpected URL %s, parsing anyway", donor_id, snapshot.url)

        return FetchResult(raw_data=snapshot.html, url=snapshot.url)

    def parse(self, raw_data: str, donor_id: str) -> ParseResult:
        try:
            profile = parse_donor_profile(raw_data, donor_id)
        except ValidationError as e:
            return ParseResult(
                success=False,
                record=None,
                error=f"Profile failed validation ({e.error_count()} errors): {e.errors()[0]['msg']}",
            )
        return ParseResult(success=True, record=profile)

    def collect(self, donor_id: str) -> DonorProfile:
        profile = super().collect(donor_id)
        if self.inventory is None:
            return profile

        # The report is extra detail; a profile without it is still a success
        try:
            report = self.inventory.collect(donor_id)
        except SubjectScrapeError as e:
            logger.warning("Inventory report unavailable for donor %s: %s", donor_id, e)
            return profile

        return profile.model_copy(update={"inventory_data": report, "inventory_summary": report.summary()})
