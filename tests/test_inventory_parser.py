"""Tests for the donor status (inventory) report parser."""

import logging

import pytest

from donor_pipeline.parsers.inventory_parser import parse_inventory_report
from donor_pipeline.validators.inventory import InventorySnapshot


@pytest.fixture
def report(inventory_html) -> InventorySnapshot:
    return parse_inventory_report(inventory_html, "12345")


def _table(rows: str) -> str:
    return f'<div id="div_inventory_data_wrapper"><table class="table_contains_data">{rows}</table></div>'


QUARANTINE_ROWS = """
<tr><td rowspan="5">Quarantine</td><td>Unwashed</td><td>5</td></tr>
<tr><td>Washed</td><td>2</td></tr>
<tr><td>ART</td><td>1</td></tr>
<tr><td>Washed CC</td><td>0</td></tr>
<tr><td>Unwashed CC</td><td>0</td></tr>
"""


# ─── Inventory table ──────────────────────────────────────────────────────


class TestInventoryTable:
    """Hierarchical finished/quarantine rows."""

    def test_finished_buckets(self, report):
        assert report.finished.other == {"ICI": 3}
        assert report.finished.unwashed == {"ICI": 10, "IUI": 4}
        assert report.finished.washed == {"IUI": 6}
        assert report.finished.art == {"ART": 2}
        assert report.finished.total == 25

    def test_unit_types_summed_across_buckets(self, report):
        assert report.unit_types == {"ICI": 13, "IUI": 10, "ART": 2}

    def test_quarantine(self, report):
        assert report.quarantine.unwashed == 5
        assert report.quarantine.washed == 2
        assert report.quarantine.art == 1
        assert report.quarantine.total == 8
        assert report.quarantine.displayed_total == 8

    def test_grand_total(self, report):
        assert report.total_units == 33

    def test_summary(self, report):
        assert report.summary() == "Total Units: 33 | Finished: 25 | Quarantine: 8"


class TestQuarantineTotals:
    """The quarantine total is always computed from its parts."""

    def test_total_is_sum_of_parts(self):
        snapshot = parse_inventory_report(_table(QUARANTINE_ROWS), "1")
        assert snapshot.quarantine.total == 8
        assert snapshot.quarantine.displayed_total is None

    def test_total_units_defaults_to_finished_plus_quarantine(self):
        assert parse_inventory_report(_table(QUARANTINE_ROWS), "1").total_units == 8

    def test_displayed_mismatch_warns(self, caplog):
        rows = QUARANTINE_ROWS + "<tr><td>Total</td><td>9</td></tr>"
        with caplog.at_level(logging.WARNING):
            snapshot = parse_inventory_report(_table(rows), "77")

        assert snapshot.quarantine.total == 8
        assert snapshot.quarantine.displayed_total == 9
        assert "Quarantine total mismatch for donor 77" in caplog.text

    def test_matching_total_does_not_warn(self, caplog):
        rows = QUARANTINE_ROWS + "<tr><td>Total</td><td>8</td></tr>"
        with caplog.at_level(logging.WARNING):
            parse_inventory_report(_table(rows), "77")
        assert "mismatch" not in caplog.text


# ─── Header, visits and adjacent sections ────────────────────────────────


class TestReportSections:
    def test_header(self, report):
        assert report.rating == "A-1"
        assert report.date_of_last_p2 == "01/10/2024"
        assert report.colorado_compliant is True

    def test_visits(self, report):
        assert report.total_visits == 12
        assert report.avg_units_per_visit == pytest.approx(2.5)

    def test_sales(self, report):
        assert report.sales_data.current == {"us": 1, "canada": 0, "intl": 0, "total": 1}
        assert report.sales_data.all_time == {"us": 40, "canada": 6, "intl": 3, "total": 49}
        assert report.total_units_donor_testing == 120
        assert report.total_units_sage == 80

    def test_family_units(self, report):
        units = report.family_units
        assert (units.us, units.canada, units.intl, units.total) == (10, 1, 2, 13)
        assert units.limit == 25
        assert units.limit_type == "Domestic"

    def test_canadian_status(self, report):
        status = report.canadian_sibling_status
        assert status.is_sibling_only is False
        assert (status.pregnancies, status.births, status.total_combined) == (2, 1, 3)

    def test_text_blocks(self, report):
        assert report.advisories == "None on file"
        assert report.birth_limit_category == "Standard"


class TestPartialReports:
    """Every section is optional."""

    def test_header_only(self):
        html = "<table><tr><td>Rating: B</td><td>Date of Last P2: 02/02/2023</td></tr></table>"
        snapshot = parse_inventory_report(html, "5")
        assert snapshot.rating == "B"
        assert snapshot.sales_data is None
        assert snapshot.total_units == 0

    def test_no_sections_returns_none(self):
        assert parse_inventory_report("<html><body><p>No donor found</p></body></html>", "5") is None
