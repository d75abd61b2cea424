"""
Donor profile page parser.

Turns one captured profile page into a DonorProfile. Field lookups go
through FieldExtractor; structured sections through donor_pipeline.parsers.sections.
The donor id is supplied by the caller and never scraped.
"""

import logging
import re
from datetime import date
from typing import Any, Optional

from bs4 import BeautifulSoup

from donor_pipeline.constants import (
    KNOWN_FIELD_LABELS,
    MAX_CHILDREN,
    MIN_BIRTH_YEAR,
)
from donor_pipeline.parsers import sections
from donor_pipeline.parsers.field_extractor import FieldExtractor, clean_value, split_labeled
from donor_pipeline.utils.text import clean_text, parse_float
from donor_pipeline.validators.donor_profile import DonorProfile

logger = logging.getLogger(__name__)

PHYSICAL_PANEL = "#collapse1, #tpa"
DONOR_MESSAGE_PANEL = "#collapse2, #tmftd, div.donor-message"
INTERESTS_PANEL = "#collapse5, #tpia"

BANNER_SELECTORS = [".inventory-summary", '[class*="banner"]', '[class*="inventory"]']
BANNER_RE = re.compile(r"(More than \d+ vials (?:available|avail)[!.]?)", re.I)
DOCUMENT_ID_RE = re.compile(r"Document ID:\s*([A-F0-9]+)", re.I)
PROFILE_DATE_RE = re.compile(r"profile is current as of:\s*([^<]+)", re.I)
PAGE_DONOR_ID_RE = re.compile(r"Donor ID:\s*(\d+)", re.I)
GENETIC_COUNT_RE = re.compile(r"carrier testing included\s*(\d+)\s*genes", re.I)

HEIGHT_CM_RE = re.compile(r"\(([\d.]+)\s*cm\)", re.I)
WEIGHT_LBS_RE = re.compile(r"(\d+)\s*lbs", re.I)
WEIGHT_KG_RE = re.compile(r"\((\d+)\s*kg\)", re.I)

MEET_THE_DONOR = "Meet The Donor"
PERSONALITY_NOISE = [
    re.compile(r"^Donor ID:\s*\d+\s*", re.I),
    re.compile(r"Save to Favorites", re.I),
    re.compile(r"HAVE A QUESTION ABOUT THIS DONOR\?", re.I),
]
PERSONALITY_STOP_RE = re.compile(r"\b(?:Skills|Hobbies|Interests|Education|Health|Family|Medical)\b")
MIN_DESCRIPTION_LENGTH = 10
INTERESTS_NOISE_RE = re.compile(r"Favorite Hero:|Awards:|Perfect Day:|Personality:", re.I)
INTERESTS_LABEL_RE = re.compile(r"(?:Skills|Hobbies|Interests):\s*(.+?)(?:\n|$)", re.I)
MIN_INTERESTS_LENGTH = 20

# (field, label) pairs read through the generic extractor
TEXT_FIELDS = [
    ("marital_status", "Marital Status:"),
    ("occupation", "Occupation:"),
    ("education", "Education:"),
    ("blood_type", "Blood Type:"),
    ("nationality_maternal", "Maternal:"),
    ("nationality_paternal", "Paternal:"),
    ("race", "Race:"),
    ("cmv_status", "CMV Status:"),
    ("last_medical_history_update", "Last Medical History Update:"),
    ("health_comments", "Comments:"),
]


def parse_banner_message(soup: BeautifulSoup) -> Optional[str]:
    """Inventory banner such as 'More than 25 vials available!'."""
    for selector in BANNER_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text(" ", strip=True)
        if "vials" not in text and "available" not in text:
            continue
        match = BANNER_RE.search(text)
        if match:
            return match.group(1).strip()
        if len(text) < 100:
            return text

    for heading in soup.find_all(["h2", "h3"], string=re.compile("vials")):
        match = BANNER_RE.search(heading.get_text(" ", strip=True))
        if match:
            return match.group(1).strip()

    match = BANNER_RE.search(soup.get_text(" "))
    if match:
        banner = match.group(1).strip()
        return banner if banner[-1] in "!." else banner + "!"
    return None


def _parse_physical(extractor: FieldExtractor, data: dict[str, Any]) -> None:
    """Physical attributes, preferring the accordion panel's labeled run over per-field scans."""
    panel_text = extractor.container_text(PHYSICAL_PANEL)
    panel = split_labeled(panel_text, KNOWN_FIELD_LABELS) if panel_text else {}

    def lookup(label: str) -> Optional[str]:
        value = panel.get(label)
        if value:
            return clean_value(value)
        return extractor.extract_field(f"{label}:")

    height = lookup("Height")
    if height:
        feet_inches = height.split("(")[0].strip()
        if "'" in feet_inches or "ft" in feet_inches.lower():
            data["height_feet_inches"] = feet_inches
        cm = HEIGHT_CM_RE.search(height)
        if cm:
            data["height_cm"] = parse_float(cm.group(1))

    weight = lookup("Weight")
    if weight:
        lbs = WEIGHT_LBS_RE.search(weight)
        if lbs:
            data["weight_lbs"] = int(lbs.group(1))
        kg = WEIGHT_KG_RE.search(weight)
        if kg:
            data["weight_kg"] = int(kg.group(1))

    # "Brown, Light" -> "Brown"
    for field_name, label in (("eye_color", "Eye Color"), ("hair_color", "Hair Color")):
        value = lookup(label)
        if value:
            data[field_name] = value.split(",")[0].strip()

    for field_name, label in (
        ("hair_texture", "Hair Texture"),
        ("hair_loss", "Hair Loss"),
        ("hair_type", "Hair Type"),
        ("body_build", "Body Build"),
        ("freckles", "Freckles"),
        ("skin_tone", "Skin Tone"),
    ):
        value = lookup(label)
        if value:
            data[field_name] = value

    # No dedicated columns for these; they travel with health_info
    for key, label in (("dominant_hand", "Dominant Hand"), ("hairy_chest", "Hairy Chest")):
        value = panel.get(label)
        if value:
            data.setdefault("health_info", {})[key] = clean_value(value) or value


def _parse_personality(soup: BeautifulSoup) -> Optional[str]:
    description = None
    marker = soup.find(string=lambda t: t is not None and MEET_THE_DONOR in t)
    if marker is not None:
        container = marker.find_parent("div", class_="container")
        if container is not None:
            text = clean_text(container.get_text(" "))
            text = text[text.find(MEET_THE_DONOR) + len(MEET_THE_DONOR) :].strip()
            for noise in PERSONALITY_NOISE:
                text = noise.sub("", text, count=1).strip()
            stop = PERSONALITY_STOP_RE.search(text)
            if stop:
                text = text[: stop.start()].strip()
            if len(text) > MIN_DESCRIPTION_LENGTH:
                description = text

        if description is None and marker.parent is not None:
            sibling = marker.parent.find_next_sibling()
            text = clean_text(sibling.get_text(" ")) if sibling is not None else ""
            if len(text) > MIN_DESCRIPTION_LENGTH:
                description = text

    message_panel = soup.select_one(DONOR_MESSAGE_PANEL)
    if message_panel is not None:
        inner = message_panel.select_one("div.donor-message")
        if inner is not None:
            message = clean_text(inner.get_text(" "))
        else:
            message = re.sub(r"Donor Message|Message from the Donor", "", clean_text(message_panel.get_text(" ")), count=1, flags=re.I).strip()
        if len(message) > MIN_DESCRIPTION_LENGTH:
            description = f"{description}\n\n{message}" if description else message

    return description


def _parse_interests(soup: BeautifulSoup, extractor: FieldExtractor) -> Optional[str]:
    panel = soup.select_one(INTERESTS_PANEL)
    if panel is not None:
        content = panel.select_one("div.cont-in") or panel
        text = INTERESTS_NOISE_RE.sub("", content.get_text("\n"), count=1).strip()
        match = INTERESTS_LABEL_RE.search(text)
        if match:
            return clean_text(match.group(1))
        text = clean_text(text)
        if len(text) > MIN_INTERESTS_LENGTH:
            return text
    return extractor.extract_field("Skills, Hobbies and Interests:")


def _parse_genetic_count(soup: BeautifulSoup, html: str) -> Optional[int]:
    panel = soup.select_one(sections.GENETIC_TESTING_PANEL)
    for text in (panel.get_text(" ") if panel is not None else "", html):
        match = GENETIC_COUNT_RE.search(text)
        if match:
            return int(match.group(1))
    return None


def parse_profile_fields(html: str, donor_id: str) -> dict[str, Any]:
    """
    Extract every profile field as a plain dict (keys match DonorProfile).

    Missing fields are simply absent. Implausible numbers are dropped here
    and again by DonorProfile's validators.
    """
    soup = BeautifulSoup(html, "html.parser")
    extractor = FieldExtractor(soup)
    data: dict[str, Any] = {"id": donor_id}

    banner = parse_banner_message(soup)
    if banner:
        data["banner_message"] = banner

    document_id = DOCUMENT_ID_RE.search(html)
    if document_id:
        data["document_id"] = document_id.group(1)
    profile_date = PROFILE_DATE_RE.search(html)
    if profile_date:
        data["profile_current_date"] = profile_date.group(1).strip()

    page_donor_id = PAGE_DONOR_ID_RE.search(html)
    if page_donor_id and page_donor_id.group(1) != donor_id:
        logger.warning("Donor ID mismatch: expected %s, page shows %s", donor_id, page_donor_id.group(1))

    # Identification
    name = extractor.extract_identity_name()
    if name:
        data["name"] = name
    year = extractor.extract_numeric_field("Year of Birth:", MIN_BIRTH_YEAR, date.today().year)
    if year is not None:
        data["year_of_birth"] = int(year)
    children = extractor.extract_numeric_field("Number of Children:", 0, MAX_CHILDREN)
    if children is not None:
        data["number_of_children"] = int(children)

    for field_name, label in TEXT_FIELDS:
        value = extractor.extract_field(label)
        if value:
            data[field_name] = value

    _parse_physical(extractor, data)

    genetic_count = _parse_genetic_count(soup, html)
    if genetic_count is not None:
        data["genetic_tests_count"] = genetic_count
    data["genetic_test_results"] = sections.parse_genetic_test_results(soup)

    personality = _parse_personality(soup)
    if personality:
        data["personality_description"] = personality
    interests = _parse_interests(soup, extractor)
    if interests:
        data["skills_hobbies_interests"] = interests

    data["health_info"] = {**data.get("health_info", {}), **sections.parse_health_info(soup)}
    data["health_diseases"] = sections.parse_health_diseases(soup)
    data["education_details"] = sections.parse_education_details(soup)
    for side in sections.FAMILY_HISTORY_PANELS:
        data[f"{side}_family_history"] = sections.parse_family_history(soup, side)

    data["vial_options"] = sections.parse_vial_options(soup)
    data["compliance_flags"] = {
        "canadian_compliant": "Canadian Compliant" in html,
        "uk_compliant": "UK Compliant" in html,
        "colorado_compliant": "Colorado Compliant" in html,
    }
    data["audio_file_available"] = "Audio File" in html
    data["photos_available"] = "View Donor Photos" in html or "has more photos" in html

    return data


def parse_donor_profile(html: str, donor_id: str) -> DonorProfile:
    """Parse a profile page into a validated DonorProfile."""
    data = parse_profile_fields(html, donor_id)
    found = sum(1 for key in ("name", "year_of_birth", "document_id", "banner_message") if data.get(key))
    if not found:
        logger.warning("No identifying fields found on profile page for donor %s", donor_id)
    return DonorProfile.model_validate(data)
