"""
Multi-strategy label/value extraction from a captured profile page.

The registry's profile markup is inconsistent between donors and changes
without notice, so every field is looked up through an ordered list of
strategies (first match wins), and each candidate is cleaned and sanity
checked before it is accepted. A field that cannot be found is None; nothing
here raises.

Strategies, in order:
    1. table row    <tr><td>Occupation:</td><td>Engineer</td></tr>
    2. dt/dd        <dt>Occupation:</dt><dd>Engineer</dd>
    3. same element <p>Occupation: Engineer</p>
    4. next sibling <span>Occupation:</span><span>Engineer</span>
"""

import logging
import re
from typing import Callable, Iterable, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from donor_pipeline.constants import (
    KNOWN_FIELD_LABELS,
    MAX_FIELD_LENGTH,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
)
from donor_pipeline.utils.text import clean_text, collapse_whitespace, parse_float

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z\s'-]+$")
NAME_PREFIX_RE = re.compile(r"^([A-Za-z\s'-]{2,50})")
PROFILE_HEADING_NAME_RE = re.compile(r"DONOR\s+PROFILE\s*:?\s*DONOR\s+\d+\s+([A-Za-z'-]+(?:[ \t]+[A-Za-z'-]+)*)", re.I)
HEADING_NAME_RE = re.compile(r"(?:Donor['\"]?s?\s+)?Name:?\s*([A-Za-z\s'-]+)", re.I)
NAME_LABELS = ["Donor's \"Name\":", "Donor's Name:", "Donor Name:", "Name:"]
NAME_STOP_RE = re.compile(r"[.,;|]")

LABEL_CELL_SLACK = 40  # Extra characters a label cell may hold besides the label
SAME_ELEMENT_MAX_DEPTH = 2

SCRIPT_MARKERS = ("<script", "javascript:", "onclick=")

Strategy = Callable[[str], Optional[str]]


def _label_pattern(labels: Iterable[str]) -> re.Pattern:
    """Alternation of labels followed by ':' (longest first so 'German Measles' beats 'Measles')."""
    ordered = sorted({label.rstrip(":").strip() for label in labels}, key=len, reverse=True)
    return re.compile(r"(?<![A-Za-z])(" + "|".join(re.escape(label) for label in ordered) + r")\s*:")


_KNOWN_LABEL_RE = _label_pattern(KNOWN_FIELD_LABELS)


def clean_value(text: Optional[str], max_length: int = MAX_FIELD_LENGTH) -> Optional[str]:
    """
    Clean one extracted value.

    Strips markup, collapses whitespace, cuts at the first known label that
    follows the value, and rejects values that still look like several fields
    run together (more than one ':') or like executable markup.
    """
    if not text:
        return None
    lowered = text.lower()
    if any(marker in lowered for marker in SCRIPT_MARKERS):
        return None

    cleaned = clean_text(text)

    match = _KNOWN_LABEL_RE.search(cleaned)
    if match and match.start() > 0:
        cleaned = cleaned[: match.start()].strip()
    elif match:
        # Value starts with a label: nothing of its own
        return None

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length].strip()

    if cleaned.count(":") > 1:
        return None

    return cleaned or None


def split_labeled(text: str, labels: Iterable[str]) -> dict[str, str]:
    """
    Split a run of 'Label: value Label: value ...' text into {label: value}.

    Each value is bounded by the next label from `labels`. Labels that do not
    appear are absent from the result; empty values are dropped.
    """
    pattern = _label_pattern(labels)
    text = collapse_whitespace(text)
    matches = list(pattern.finditer(text))
    values: dict[str, str] = {}
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        value = text[match.end() : end].strip()
        label = match.group(1)
        if value and label not in values:
            values[label] = value
    return values


def is_plausible_name(name: Optional[str]) -> bool:
    if not name:
        return False
    return NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH and bool(NAME_RE.match(name))


class FieldExtractor:
    """
    Label-driven field lookup over one parsed page.

    Args:
        soup: Parsed profile page
    """

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        self.strategies: list[tuple[str, Strategy]] = [
            ("table_row", self._from_table_row),
            ("definition_list", self._from_definition_list),
            ("same_element", self._from_same_element),
            ("next_sibling", self._from_next_sibling),
        ]

    @classmethod
    def from_html(cls, html: str) -> "FieldExtractor":
        return cls(BeautifulSoup(html, "html.parser"))

    # ─── Generic fields ──────────────────────────────────────────────────

    def extract_field(self, label: str) -> Optional[str]:
        """Return the cleaned value for `label` (e.g. 'Occupation:'), or None."""
        for name, strategy in self.strategies:
            try:
                raw = strategy(label)
            except (AttributeError, TypeError, ValueError) as e:
                # Malformed markup inside one strategy must not stop the others
                logger.debug("Strategy %s failed for %r: %s", name, label, e)
                continue
            if raw is None:
                continue
            value = clean_value(raw)
            if value is not None:
                return value
        return None

    def extract_numeric_field(self, label: str, minimum: float, maximum: float) -> Optional[float]:
        """
        Parse the value for `label` as a number and keep it only inside [minimum, maximum].

        Integral values come back as int.
        """
        number = parse_float(self.extract_field(label))
        if number is None or not (minimum <= number <= maximum):
            return None
        return int(number) if number.is_integer() else number

    def _label_strings(self, label: str) -> list[NavigableString]:
        """Text nodes containing the label, in document order."""
        needle = label.strip()
        return [
            s
            for s in self.soup.find_all(string=lambda t: t is not None and needle in t)
            if not isinstance(s, Comment) and s.parent is not None and s.parent.name not in ("script", "style")
        ]

    def _from_table_row(self, label: str) -> Optional[str]:
        needle = label.strip()
        for text_node in self._label_strings(label):
            cell = text_node.find_parent(["td", "th"])
            if cell is None:
                continue
            # A layout cell that merely wraps the label is not a header cell
            if len(cell.get_text(" ", strip=True)) > len(needle) + LABEL_CELL_SLACK:
                continue
            value_cell = cell.find_next_sibling(["td", "th"])
            if value_cell is not None:
                return value_cell.get_text(" ", strip=True)
        return None

    def _from_definition_list(self, label: str) -> Optional[str]:
        for text_node in self._label_strings(label):
            term = text_node.find_parent("dt")
            if term is None:
                continue
            description = term.find_next_sibling("dd")
            if description is not None:
                return description.get_text(" ", strip=True)
        return None

    def _from_same_element(self, label: str) -> Optional[str]:
        needle = label.strip()
        for text_node in self._label_strings(label):
            # <p><b>Occupation:</b> Engineer</p>: the value lives one level up
            element = text_node.parent
            for _ in range(SAME_ELEMENT_MAX_DEPTH):
                if element is None or element.name in ("body", "html", "[document]"):
                    break
                text = element.get_text(" ", strip=True)
                index = text.find(needle)
                remainder = text[index + len(needle) :].lstrip(" :").strip() if index >= 0 else ""
                if remainder:
                    return remainder
                element = element.parent
        return None

    def _from_next_sibling(self, label: str) -> Optional[str]:
        for text_node in self._label_strings(label):
            sibling = text_node.parent.find_next_sibling()
            if sibling is not None:
                text = sibling.get_text(" ", strip=True)
                if text:
                    return text
        return None

    # ─── Identity name ──────────────────────────────────────────────────

    def extract_identity_name(self) -> Optional[str]:
        """
        Donor name with a strict validator (2-50 chars, letters/spaces/hyphens/apostrophes).

        Prefers the bio block path (profile > right column > bio > first p > first span)
        before falling back to label scans.
        """
        for strategy in (
            self._name_from_profile_path,
            self._name_from_bio_block,
            self._name_from_profile_heading,
            self._name_from_labels,
            self._name_from_headings,
        ):
            name = strategy()
            if is_plausible_name(name):
                return name
        return None

    def _name_from_paragraph(self, paragraph: Optional[Tag]) -> Optional[str]:
        if paragraph is None:
            return None
        span = paragraph.find("span")
        if span is not None:
            name = clean_text(span.get_text(" "))
            if is_plausible_name(name):
                return name
        match = NAME_PREFIX_RE.match(clean_text(paragraph.get_text(" ")))
        return match.group(1).strip() if match else None

    def _name_from_profile_path(self) -> Optional[str]:
        return self._name_from_paragraph(self.soup.select_one("div.donor-profile .right-cl .bio-info p"))

    def _name_from_bio_block(self) -> Optional[str]:
        return self._name_from_paragraph(self.soup.select_one(".bio-info p"))

    def _name_from_profile_heading(self) -> Optional[str]:
        match = PROFILE_HEADING_NAME_RE.search(self.soup.get_text("\n"))
        return match.group(1).strip() if match else None

    def _name_from_labels(self) -> Optional[str]:
        for label in NAME_LABELS:
            value = self.extract_field(label)
            if value:
                value = NAME_STOP_RE.split(value)[0].strip()
                if is_plausible_name(value):
                    return value
        return None

    def _name_from_headings(self) -> Optional[str]:
        for heading in self.soup.find_all(["h1", "h2", "h3", "strong", "b"]):
            text = heading.get_text(" ", strip=True)
            if len(text) >= 100 or ("Donor" not in text and "Name" not in text):
                continue
            match = HEADING_NAME_RE.search(text)
            if match:
                return match.group(1).strip()
        return None

    # ─── Dense containers ───────────────────────────────────────────────

    def container_text(self, selector: str, inner: str = "div.row") -> Optional[str]:
        """
        Text of the first element matching `selector`, narrowed to its first `inner` element if present.
        """
        container = self.soup.select_one(selector)
        if container is None:
            return None
        narrowed = container.select_one(inner) if inner else None
        return (narrowed or container).get_text(" ", strip=True)
