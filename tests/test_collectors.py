"""Tests for the profile collector's page-access rules and inventory attachment."""

import pytest

from donor_pipeline.collectors.donor_profile import (
    DonorProfileCollector,
    is_login_redirect,
    page_access_error,
)
from donor_pipeline.collectors.session import PageSnapshot
from donor_pipeline.errors import ExtractionFailure, NavigationTimeoutError
from donor_pipeline.parsers.inventory_parser import parse_inventory_report
from tests.fakes import FakeSession, login_page, not_found_page, profile_page

PROFILE_URL = "https://www.xytex.com/donor/1001"


def _snapshot(url: str, text: str = "", status=200) -> PageSnapshot:
    return PageSnapshot(url=url, title="", html="<html></html>", text=text, status=status)


# ─── Page access rules ────────────────────────────────────────────────────────


class TestPageAccess:
    """Deciding whether the captured page is the donor's profile."""

    def test_profile_page_is_usable(self):
        assert page_access_error(_snapshot(PROFILE_URL), PROFILE_URL) is None

    def test_trailing_slash_ignored(self):
        assert page_access_error(_snapshot(PROFILE_URL + "/", "page not found"), PROFILE_URL) is None

    def test_404_status(self):
        assert page_access_error(_snapshot(PROFILE_URL, status=404), PROFILE_URL) == "Donor page not found (404)"

    def test_404_url(self):
        assert page_access_error(not_found_page(), PROFILE_URL) == "Donor page not found (404)"

    def test_error_phrase_on_other_page(self):
        error = page_access_error(_snapshot("https://www.xytex.com/error", "Access Denied"), PROFILE_URL)
        assert "access denied" in error

    def test_unexpected_page_without_error(self):
        assert page_access_error(_snapshot("https://www.xytex.com/donors"), PROFILE_URL) is None

    def test_login_redirect(self):
        assert is_login_redirect(login_page())
        assert not is_login_redirect(_snapshot(PROFILE_URL))


# ─── DonorProfileCollector ────────────────────────────────────────────────────


class StubInventory:
    """Inventory collector returning a fixed report, or raising."""

    def __init__(self, report=None, error=None):
        self.report = report
        self.error = error

    def collect(self, donor_id):
        if self.error is not None:
            raise self.error
        return self.report


class TestDonorProfileCollector:
    def _collector(self, options, pages, inventory=None):
        session = FakeSession(pages)
        return DonorProfileCollector(session, options, inventory=inventory), session

    def test_collect(self, options):
        collector, _ = self._collector(options, {PROFILE_URL: profile_page(PROFILE_URL, "1001")})
        profile = collector.collect("1001")
        assert profile.id == "1001"
        assert profile.name == "Adam"
        assert profile.inventory_data is None

    def test_login_redirect_invalidates_session(self, options):
        collector, session = self._collector(options, {PROFILE_URL: login_page()})
        session.authenticated = True
        with pytest.raises(ExtractionFailure, match="Redirected to login page"):
            collector.collect("1001")
        assert session.authenticated is False

    def test_not_found(self, options):
        collector, _ = self._collector(options, {PROFILE_URL: not_found_page()})
        with pytest.raises(ExtractionFailure, match="404"):
            collector.collect("1001")

    def test_navigation_timeout_propagates(self, options):
        collector, _ = self._collector(options, {})
        with pytest.raises(NavigationTimeoutError):
            collector.collect("1001")

    def test_inventory_attached(self, options, inventory_html):
        report = parse_inventory_report(inventory_html, "1001")
        collector, _ = self._collector(
            options, {PROFILE_URL: profile_page(PROFILE_URL, "1001")}, inventory=StubInventory(report)
        )
        profile = collector.collect("1001")
        assert profile.inventory_data.total_units == 33
        assert profile.inventory_summary == "Total Units: 33 | Finished: 25 | Quarantine: 8"

    def test_inventory_failure_keeps_profile(self, options):
        inventory = StubInventory(error=ExtractionFailure("Donor number field not found on inventory report"))
        collector, _ = self._collector(options, {PROFILE_URL: profile_page(PROFILE_URL, "1001")}, inventory=inventory)
        profile = collector.collect("1001")
        assert profile.name == "Adam"
        assert profile.inventory_summary is None

    def test_debug_html_saved(self, options, tmp_path):
        options.debug_html_dir = tmp_path
        collector, _ = self._collector(options, {PROFILE_URL: profile_page(PROFILE_URL, "1001")})
        collector.collect("1001")
        assert (tmp_path / "donor_profile_1001.html").exists()
