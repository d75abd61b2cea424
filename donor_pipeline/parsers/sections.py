"""
Parsers for the structured sections of a donor profile page.

The profile renders most sections twice: as a collapsible accordion panel
(#collapseN, with a tab id alias) and, on older templates, as a plain block
under an upper-case heading. Each parser tries the accordion first and falls
back to the heading. All parsers are pure functions of the parsed page and
return an empty structure when the section is missing; none raise.
"""

import logging
import re
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

from donor_pipeline.constants import FAMILY_MEMBER_FIELDS, HEALTH_INFO_LABELS
from donor_pipeline.parsers.field_extractor import split_labeled
from donor_pipeline.utils.text import clean_text, is_yes, snake_case_label

logger = logging.getLogger(__name__)

# Accordion panels: "#collapseN, #<tab id>"
GENETIC_TESTING_PANEL = "#collapse3, #tgt"
HEALTH_INFO_PANEL = "#collapse4, #thi"
BIRTH_EDUCATION_PANEL = "#collapse7, #tbe"
HEALTH_DISEASES_PANEL = "#collapse8, #thd"
FAMILY_HISTORY_PANELS = {
    "immediate": ("#collapse9, #tifmh", "IMMEDIATE FAMILY"),
    "paternal": ("#collapse10, #tpfmh", "PATERNAL FAMILY"),
    "maternal": ("#collapse11, #tmfmh", "MATERNAL FAMILY"),
}

NEGATIVE_RESULT_RE = re.compile(r"No (?:disease-causing|pathogenic) variants detected", re.I)
MAX_CONDITION_LENGTH = 200

FAMILY_DISCLAIMER_RE = re.compile(r"Information displayed in this profile.*?not available\.", re.I | re.S)
FAMILY_MEMBER_SPLIT_RE = re.compile(r"FAMILY MEMBER:", re.I)
LABEL_ONLY_RE = re.compile(r"^[A-Za-z ]+:")

BIRTH_LABELS = [
    "Carried to Term",
    "Pregnancy Complications",
    "Birth Weight",
    "Childhood Health",
    "Birth Length",
    "Twin",
    "Twin Type",
    "In School",
]
BIRTH_BOOLEAN_FIELDS = {"carried_to_term", "pregnancy_complications", "twin", "in_school"}
# Questions that follow "In School" on the panel and would otherwise bleed into its value
BIRTH_STOP_RE = re.compile(r"\s+Is the donor.*$", re.I)

EDUCATION_LABELS = ["Degree Earned/Working towards", "Degree Status", "Major", "Minor"]
EDUCATION_FLAGS = {
    "has_undergraduate": re.compile(r"(?<![A-Za-z])undergraduate degree\?\s*(Yes|No)", re.I),
    "has_graduate": re.compile(r"(?<!under)graduate degree\?\s*(Yes|No)", re.I),
    "has_specialized_training": re.compile(r"specialized training\??\s*(Yes|No)", re.I),
}


def _panel(soup: BeautifulSoup, selector: str, inner: str = "div.cont-in") -> Optional[Tag]:
    """First element matching `selector`, narrowed to `inner` when the panel has one."""
    panel = soup.select_one(selector)
    if panel is None:
        return None
    return panel.select_one(inner) or panel


def _section_by_heading(soup: BeautifulSoup, heading: str) -> Optional[Tag]:
    """Parent of the innermost element whose text contains `heading`."""
    text_node = soup.find(string=lambda t: t is not None and heading in t)
    if text_node is None or text_node.parent is None:
        return None
    return text_node.parent.parent or text_node.parent


def _marked(text: str) -> bool:
    text = text.strip()
    return "X" in text or text.lower() == "yes"


# ─── Genetic testing ──────────────────────────────────────────────────────


def _negative_results_in(scope: Tag) -> dict[str, str]:
    results: dict[str, str] = {}
    for text_node in scope.find_all(string=NEGATIVE_RESULT_RE):
        element = text_node.parent
        previous = element.find_previous_sibling() if element is not None else None
        if previous is None:
            continue
        condition = clean_text(previous.get_text(" "))
        if not condition or len(condition) >= MAX_CONDITION_LENGTH:
            continue
        if "javascript:" in condition.lower():
            continue
        results[condition] = "negative"
    return results


def parse_genetic_test_results(soup: BeautifulSoup) -> dict[str, str]:
    """
    Conditions tested negative, keyed by condition name.

    A condition element is recognised by the negative-result phrase in the
    element that immediately follows it.
    """
    panel = _panel(soup, GENETIC_TESTING_PANEL)
    if panel is not None:
        results = _negative_results_in(panel)
        if results:
            return results

    section = _section_by_heading(soup, "GENETIC TESTING")
    if section is not None:
        return _negative_results_in(section)
    return {}


# ─── Family history ───────────────────────────────────────────────────────


def _parse_family_text(text: str) -> dict[str, dict[str, str]]:
    text = FAMILY_DISCLAIMER_RE.sub("", text)
    members: dict[str, dict[str, str]] = {}
    for block in FAMILY_MEMBER_SPLIT_RE.split(text)[1:]:
        relation_match = re.match(r"\s*([A-Za-z]+)", block)
        if not relation_match:
            continue
        relation = relation_match.group(1).lower()

        attributes: dict[str, str] = {}
        for field_label in FAMILY_MEMBER_FIELDS:
            match = re.search(rf"(?<![A-Za-z]){re.escape(field_label)}:\s*([^\n]+)", block)
            if not match:
                continue
            value = match.group(1).strip()
            if value and not LABEL_ONLY_RE.match(value):
                attributes[snake_case_label(field_label)] = value
        if not attributes:
            continue

        # Two brothers, three aunts, ...: keep every member
        key = relation
        suffix = 2
        while key in members:
            key = f"{relation}_{suffix}"
            suffix += 1
        members[key] = attributes
    return members


def _parse_family_table(section: Tag) -> dict[str, dict[str, str]]:
    members: dict[str, dict[str, str]] = {}
    for row in section.find_all("tr"):
        cells = row.find_all(["td", "th"])
        if not cells:
            continue
        relation = clean_text(cells[0].get_text(" "))
        if not relation or relation.upper().startswith("FAMILY MEMBER"):
            continue
        attributes: dict[str, str] = {}
        for cell in cells[1:]:
            label_tag = cell.find(["strong", "b"])
            if label_tag is None:
                continue
            label = clean_text(label_tag.get_text(" ")).rstrip(":")
            value = clean_text(cell.get_text(" ")).replace(label_tag.get_text(" ").strip(), "", 1).strip()
            if label:
                attributes[snake_case_label(label)] = value
        if attributes:
            members[relation.lower()] = attributes
    return members


def parse_family_history(soup: BeautifulSoup, side: str) -> dict[str, dict[str, str]]:
    """
    Family members for one side ("immediate", "paternal" or "maternal").

    Returns:
        {relation: {hair_color, eyesight, height, ...}}, duplicate relations
        suffixed "_2", "_3", ...
    """
    selector, heading = FAMILY_HISTORY_PANELS[side]
    panel = _panel(soup, selector)
    if panel is not None:
        members = _parse_family_text(panel.get_text("\n"))
        if members:
            return members

    section = _section_by_heading(soup, heading)
    if section is not None:
        return _parse_family_table(section)
    return {}


# ─── Health & diseases ────────────────────────────────────────────────────


def _disease_rows(scope: Tag) -> dict[str, dict[str, Any]]:
    diseases: dict[str, dict[str, Any]] = {}
    for row in scope.find_all("tr"):
        cells = [cell.get_text(" ", strip=True) for cell in row.find_all("td")]
        if len(cells) < 6:
            continue
        condition = clean_text(cells[0])
        if not condition or not _marked(cells[1]):
            continue
        diseases[condition] = {
            "relative": cells[2] or None,
            "father_side": _marked(cells[3]),
            "mother_side": _marked(cells[4]),
            "age_of_onset": cells[5] or None,
        }
    return diseases


def parse_health_diseases(soup: BeautifulSoup) -> dict[str, dict[str, Any]]:
    """
    Family conditions from the health & diseases table.

    A row is recorded only when its "has condition" cell is marked (X or yes).
    """
    panel = _panel(soup, HEALTH_DISEASES_PANEL)
    if panel is not None:
        diseases = _disease_rows(panel)
        if diseases:
            return diseases

    section = _section_by_heading(soup, "HEALTH & DISEASES")
    if section is not None:
        return _disease_rows(section)
    return {}


# ─── Health information ───────────────────────────────────────────────────


def parse_health_info(soup: BeautifulSoup) -> dict[str, str]:
    """Allergy and condition answers, keyed by snake-cased label."""
    panel = _panel(soup, HEALTH_INFO_PANEL, inner="div.row")
    if panel is None:
        panel = _section_by_heading(soup, "HEALTH INFORMATION")
    if panel is None:
        return {}

    values = split_labeled(panel.get_text(" "), HEALTH_INFO_LABELS)
    return {snake_case_label(label): value for label, value in values.items()}


# ─── Birth & education ────────────────────────────────────────────────────


def parse_education_details(soup: BeautifulSoup) -> dict[str, Any]:
    """
    Birth details and education background.

    Yes/no answers become booleans; everything else is kept as text. Keys
    are present only when the page answers them.
    """
    details: dict[str, Any] = {}

    panel = _panel(soup, BIRTH_EDUCATION_PANEL, inner="div.row")
    if panel is not None:
        for label, value in split_labeled(panel.get_text(" "), BIRTH_LABELS).items():
            key = snake_case_label(label)
            value = BIRTH_STOP_RE.sub("", value).strip()
            if key == "twin_type" or not value:
                continue
            details[key] = is_yes(value) if key in BIRTH_BOOLEAN_FIELDS else value

    section = _section_by_heading(soup, "EDUCATION INFORMATION")
    if section is not None:
        text = section.get_text(" ")
        labeled = split_labeled(text, EDUCATION_LABELS)
        if "Degree Earned/Working towards" in labeled:
            details["degree_earned"] = labeled["Degree Earned/Working towards"]
        for label in ("Degree Status", "Major", "Minor"):
            if label in labeled:
                details[snake_case_label(label)] = labeled[label]
        for key, pattern in EDUCATION_FLAGS.items():
            match = pattern.search(text)
            if match:
                details[key] = is_yes(match.group(1))

    return details


# ─── Vial options ─────────────────────────────────────────────────────────


def parse_vial_options(soup: BeautifulSoup) -> list[dict[str, Optional[str]]]:
    """Purchasable vial types (rows whose first cell mentions "Identity Disclosure")."""
    options = []
    for row in soup.find_all("tr"):
        cells = [cell.get_text(" ", strip=True) for cell in row.find_all(["td", "th"], recursive=False)]
        if len(cells) < 3 or "Identity Disclosure" not in cells[0]:
            continue
        options.append(
            {
                "type": clean_text(cells[0]),
                "mot": cells[1] or None,
                "in_stock": cells[2] or None,
                "price": (cells[3] or None) if len(cells) > 3 else None,
            }
        )
    return options
