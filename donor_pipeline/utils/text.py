"""Small text helpers shared by the parsers."""

import re

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def strip_tags(text: str) -> str:
    return _TAG_RE.sub("", text)


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def clean_text(text: str | None) -> str:
    """Strip markup and collapse whitespace; None becomes an empty string."""
    if not text:
        return ""
    return collapse_whitespace(strip_tags(text))


def snake_case_label(label: str) -> str:
    """'Hay Fever Allergy' -> 'hay_fever_allergy'."""
    return _WS_RE.sub("_", label.strip().lower())


def parse_int(text: str | None) -> int | None:
    """Leading integer of `text` (commas ignored), or None."""
    if not text:
        return None
    match = re.search(r"-?\d[\d,]*", text)
    if not match:
        return None
    try:
        return int(match.group(0).replace(",", ""))
    except ValueError:
        return None


def parse_float(text: str | None) -> float | None:
    if not text:
        return None
    match = re.search(r"-?\d+(?:\.\d+)?", text.replace(",", ""))
    if not match:
        return None
    return float(match.group(0))


def is_yes(text: str | None) -> bool:
    return bool(text) and text.strip().lower() == "yes"
