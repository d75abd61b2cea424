"""
Parser for the admin donor status (inventory) report.

The inventory table encodes its hierarchy structurally: a "Finished" cell
spans the rows of its unwashed/washed/ART sub-groups, and a "Quarantine" cell
spans its five state rows. Rows that follow a spanning cell carry only
(unit type, count) or (state, count), so the parser walks the rows with a
running category/sub-category instead of reading each row in isolation.

Sales, family-unit and advisory blocks sit in sibling table rows under an
<h3> heading and are parsed independently; any of them may be missing.
"""

import logging
import re
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

from donor_pipeline.utils.text import clean_text, parse_int
from donor_pipeline.validators.inventory import (
    CanadianSiblingStatus,
    FamilyUnits,
    FinishedInventory,
    InventorySnapshot,
    QuarantineInventory,
    SalesData,
)

logger = logging.getLogger(__name__)

FINISHED_BUCKETS = ("unwashed", "washed", "art")
QUARANTINE_STATES = {
    "unwashed": "unwashed",
    "washed": "washed",
    "art": "art",
    "washed cc": "washed_cc",
    "unwashed cc": "unwashed_cc",
}
RESERVED_LABELS = {"FINISHED", "QUARANTINE", "UNWASHED", "WASHED", "ART", "TOTAL"}
SALES_REGIONS = {"us": "us", "canada": "canada", "int'l": "intl", "intl": "intl", "total": "total"}

RATING_RE = re.compile(r"Rating:\s*([A-Z0-9-]+)", re.I)
LAST_P2_RE = re.compile(r"Date of Last P2:\s*([\d/]+)", re.I)
COLORADO_RE = re.compile(r"Colorado Compliant:\s*(yes|no)", re.I)
VISITS_RES = [
    re.compile(r"(\d+)\s*Number of Total Visits", re.I),
    re.compile(r"Number of Total Visits\s*(\d+)", re.I),
]
AVG_UNITS_RE = re.compile(r"([\d.]+)\s*Average Number of Units", re.I)
DONOR_TESTING_RE = re.compile(r"Total Units Ever Created \(DonorTesting\)\s*(\d+)", re.I)
SAGE_RE = re.compile(r"Total Units Ever Created \(Sage\)\s*(\d+)", re.I)
FAMILY_LIMIT_RES = [
    (re.compile(r"(\d+)\s*\(([^)]+)\)\s*Family Unit Limit", re.I), 1, 2),
    (re.compile(r"Family Unit Limit\s*\(([^)]+)\)\s*(\d+)", re.I), 2, 1),
]
NOT_SIBLING_ONLY = "not classified as a sibling only"


def _cell_texts(row: Tag) -> list[str]:
    return [clean_text(cell.get_text(" ")) for cell in row.find_all("td", recursive=False)]


def _count(text: Optional[str]) -> int:
    value = parse_int(text)
    return value if value is not None and value >= 0 else 0


# ─── Inventory table ──────────────────────────────────────────────────────


class _InventoryTableWalker:
    """Row-by-row state machine over the inventory data table."""

    def __init__(self, donor_id: str):
        self.donor_id = donor_id
        self.category: Optional[str] = None
        self.bucket: Optional[str] = None
        self.finished: dict[str, dict[str, int]] = {"unwashed": {}, "washed": {}, "art": {}, "other": {}}
        self.quarantine: dict[str, int] = {state: 0 for state in QUARANTINE_STATES.values()}
        self.quarantine_displayed_total: Optional[int] = None
        self.unit_types: dict[str, int] = {}
        self.total_units: Optional[int] = None

    def walk(self, table: Tag) -> None:
        for row in table.find_all("tr"):
            cells = row.find_all("td", recursive=False)
            if cells:
                self._row(cells, _cell_texts(row))

    def _add_units(self, bucket: str, unit_type: str, count: int) -> None:
        self.finished[bucket][unit_type] = count
        self.unit_types[unit_type] = self.unit_types.get(unit_type, 0) + count

    def _row(self, cells: list[Tag], texts: list[str]) -> None:
        first = texts[0].lower()
        spans_rows = cells[0].get("rowspan") is not None

        if spans_rows and first == "finished":
            self.category, self.bucket = "finished", None
            if len(texts) >= 3 and texts[1]:
                self._add_units("other", texts[1].upper(), _count(texts[2]))
            return

        if spans_rows and first == "quarantine":
            self.category, self.bucket = "quarantine", None
            if len(texts) >= 3:
                state = QUARANTINE_STATES.get(texts[1].lower())
                if state:
                    self.quarantine[state] = _count(texts[2])
            return

        if self.category == "finished":
            if spans_rows and first in FINISHED_BUCKETS:
                self.bucket = first
                if len(texts) >= 3 and texts[1]:
                    self._add_units(self.bucket, texts[1].upper(), _count(texts[2]))
                return
            if not spans_rows and len(texts) >= 2:
                unit_type = texts[0].upper()
                if unit_type and unit_type not in RESERVED_LABELS:
                    self._add_units(self.bucket or "other", unit_type, _count(texts[1]))
                return

        if self.category == "quarantine" and len(texts) >= 2:
            if first == "total":
                self._close_quarantine(_count(texts[-1]))
                return
            state = QUARANTINE_STATES.get(first)
            if state:
                self.quarantine[state] = _count(texts[1])
            return

        # Grand total row after both categories
        if len(texts) >= 2 and "total" in first:
            total = parse_int(texts[-1])
            if total is not None and total > 0:
                self.total_units = total

    def _close_quarantine(self, displayed: int) -> None:
        self.category = None
        self.quarantine_displayed_total = displayed
        computed = sum(self.quarantine.values())
        if displayed and displayed != computed:
            logger.warning(
                "Quarantine total mismatch for donor %s: computed %d, report shows %d",
                self.donor_id,
                computed,
                displayed,
            )


def _parse_inventory_table(soup: BeautifulSoup, donor_id: str) -> Optional[_InventoryTableWalker]:
    wrapper = soup.select_one("#div_inventory_data_wrapper")
    if wrapper is None:
        logger.info("Inventory data wrapper not found for donor %s", donor_id)
        return None
    table = wrapper.select_one("table.table_contains_data")
    if table is None:
        return None
    walker = _InventoryTableWalker(donor_id)
    walker.walk(table)
    return walker


# ─── Header and visit stats ───────────────────────────────────────────────


def _parse_header(soup: BeautifulSoup) -> dict[str, Any]:
    header: dict[str, Any] = {}
    rating_node = soup.find(string=re.compile("Rating:"))
    table = rating_node.find_parent("table") if rating_node is not None else None
    if table is not None and "Date of Last P2:" in table.get_text(" "):
        text = clean_text(table.get_text(" "))
        rating = RATING_RE.search(text)
        if rating:
            header["rating"] = rating.group(1)
        last_p2 = LAST_P2_RE.search(text)
        if last_p2:
            header["date_of_last_p2"] = last_p2.group(1)

    colorado = COLORADO_RE.search(clean_text(soup.get_text(" ")))
    if colorado:
        header["colorado_compliant"] = colorado.group(1).lower() == "yes"
    return header


def _parse_visits(soup: BeautifulSoup) -> dict[str, Any]:
    stats: dict[str, Any] = {}
    for heading in soup.find_all("h3"):
        text = heading.get_text(strip=True)
        if text.isdigit() and heading.parent is not None and "Number of Total Visits" in heading.parent.get_text(" "):
            stats["total_visits"] = int(text)
            break

    if "total_visits" not in stats:
        node = soup.find(string=re.compile("Number of Total Visits"))
        cell = node.find_parent("td") if node is not None else None
        if cell is not None:
            cell_text = clean_text(cell.get_text(" "))
            for pattern in VISITS_RES:
                match = pattern.search(cell_text)
                if match:
                    stats["total_visits"] = int(match.group(1))
                    break

    node = soup.find(string=re.compile("Average Number of Units"))
    cell = node.find_parent("td") if node is not None else None
    if cell is not None:
        match = AVG_UNITS_RE.search(clean_text(cell.get_text(" ")))
        if match:
            try:
                stats["avg_units_per_visit"] = float(match.group(1))
            except ValueError:
                pass
    return stats


# ─── Heading-located blocks ───────────────────────────────────────────────


def _heading_row(soup: BeautifulSoup, title: str) -> Optional[Tag]:
    """Table row holding the <h3> whose text is exactly `title`."""
    for heading in soup.find_all("h3"):
        if heading.get_text(strip=True) == title:
            return heading.find_parent("tr")
    return None


def _data_table_after(row: Tag) -> Optional[Tag]:
    for sibling in row.find_next_siblings("tr"):
        table = sibling.select_one("table.table_contains_data")
        if table is not None:
            return table
    return None


def _next_row_cells(row: Tag) -> list[Tag]:
    following = row.find_next_sibling("tr")
    return following.find_all("td") if following is not None else []


def _labeled_counts(table: Tag) -> list[tuple[str, int]]:
    pairs = []
    for row in table.find_all("tr"):
        texts = _cell_texts(row)
        if len(texts) >= 2:
            pairs.append((texts[0].lower(), _count(texts[1])))
    return pairs


def _parse_sales(soup: BeautifulSoup) -> tuple[Optional[SalesData], dict[str, int]]:
    row = _heading_row(soup, "Sales Data")
    if row is None:
        return None, {}

    totals: dict[str, int] = {}
    cells = _next_row_cells(row)
    if cells:
        right_column = clean_text(cells[-1].get_text(" "))
        for key, pattern in (("total_units_donor_testing", DONOR_TESTING_RE), ("total_units_sage", SAGE_RE)):
            match = pattern.search(right_column)
            if match:
                totals[key] = int(match.group(1))

    table = _data_table_after(row)
    if table is None:
        return None, totals

    periods: dict[str, dict[str, int]] = {"current": {}, "ytd": {}, "previous_year": {}, "all_time": {}}
    for table_row in table.find_all("tr")[1:]:
        texts = _cell_texts(table_row)
        if len(texts) < 5:
            continue
        region = SALES_REGIONS.get(texts[0].lower())
        if region is None:
            continue
        for period, text in zip(periods, texts[1:5]):
            periods[period][region] = _count(text)

    if not periods["current"]:
        return None, totals
    return SalesData(**periods), totals


def _parse_family_units(soup: BeautifulSoup) -> Optional[FamilyUnits]:
    row = _heading_row(soup, "Family Units")
    if row is None:
        return None

    values: dict[str, Any] = {}
    table = _data_table_after(row)
    if table is not None:
        for label, count in _labeled_counts(table):
            key = SALES_REGIONS.get(label)
            if key:
                values[key] = count

    cells = _next_row_cells(row)
    if cells:
        limit_text = clean_text(cells[-1].get_text(" "))
        for pattern, limit_group, type_group in FAMILY_LIMIT_RES:
            match = pattern.search(limit_text)
            if match:
                values["limit"] = int(match.group(limit_group))
                values["limit_type"] = match.group(type_group).strip()
                break

    return FamilyUnits(**values) if values else None


def _parse_canadian_status(soup: BeautifulSoup) -> Optional[CanadianSiblingStatus]:
    row = _heading_row(soup, "Canadian Sibling Only Status")
    if row is None:
        return None

    section_text = " ".join(cell.get_text(" ") for cell in _next_row_cells(row)).lower()
    values: dict[str, Any] = {"is_sibling_only": NOT_SIBLING_ONLY not in section_text}

    table = _data_table_after(row)
    if table is not None:
        for label, count in _labeled_counts(table):
            if "pregnancies" in label:
                values["pregnancies"] = count
            elif "births" in label:
                values["births"] = count
            elif "total combined" in label:
                values["total_combined"] = count
    return CanadianSiblingStatus(**values)


def _next_row_text(soup: BeautifulSoup, title: str) -> Optional[str]:
    row = _heading_row(soup, title)
    if row is None:
        return None
    text = clean_text(" ".join(cell.get_text(" ") for cell in _next_row_cells(row)))
    return text or None


# ─── Entry point ──────────────────────────────────────────────────────────


def parse_inventory_report(html: str, donor_id: str) -> Optional[InventorySnapshot]:
    """
    Parse a donor status report page.

    Returns:
        InventorySnapshot, or None when the page holds none of the report's
        sections (e.g. the search returned nothing or a login page was served)
    """
    soup = BeautifulSoup(html, "html.parser")
    values: dict[str, Any] = {"donor_id": donor_id}

    values.update(_parse_header(soup))

    walker = _parse_inventory_table(soup, donor_id)
    if walker is not None:
        values["finished"] = FinishedInventory(**walker.finished)
        values["quarantine"] = QuarantineInventory(
            **walker.quarantine, displayed_total=walker.quarantine_displayed_total
        )
        values["unit_types"] = walker.unit_types
        if walker.total_units is not None:
            values["total_units"] = walker.total_units

    values.update(_parse_visits(soup))

    sales, totals = _parse_sales(soup)
    if sales is not None:
        values["sales_data"] = sales
    values.update(totals)

    body_text = clean_text(soup.get_text(" "))
    for key, pattern in (("total_units_donor_testing", DONOR_TESTING_RE), ("total_units_sage", SAGE_RE)):
        if key not in values:
            match = pattern.search(body_text)
            if match:
                values[key] = int(match.group(1))

    family_units = _parse_family_units(soup)
    if family_units is not None:
        values["family_units"] = family_units
    canadian = _parse_canadian_status(soup)
    if canadian is not None:
        values["canadian_sibling_status"] = canadian
    for key, title in (("advisories", "Advisories"), ("birth_limit_category", "Birth Limit Category")):
        text = _next_row_text(soup, title)
        if text:
            values[key] = text

    if len(values) == 1:
        return None
    return InventorySnapshot(**values)
