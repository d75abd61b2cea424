"""Tests for whole-page profile parsing into DonorProfile."""

import pytest

from donor_pipeline.parsers.profile_parser import parse_banner_message, parse_donor_profile
from donor_pipeline.validators.donor_profile import DonorProfile


@pytest.fixture
def profile(profile_html) -> DonorProfile:
    return parse_donor_profile(profile_html, "12345")


# ─── Identification and page metadata ───────────────────────────────────────


class TestIdentification:
    """Fields from the bio block and basic info table."""

    def test_id_is_supplied_not_scraped(self, profile_html):
        assert parse_donor_profile(profile_html, "99999").id == "99999"

    def test_basic_fields(self, profile):
        assert profile.name == "Adam"
        assert profile.year_of_birth == 1990
        assert profile.marital_status == "Single"
        assert profile.number_of_children == 0
        assert profile.occupation == "Software Engineer"
        assert profile.education == "Bachelor's Degree"
        assert profile.blood_type == "O+"
        assert profile.race == "Caucasian"
        assert profile.cmv_status == "Negative"

    def test_page_metadata(self, profile):
        assert profile.banner_message == "More than 25 vials available!"
        assert profile.document_id == "3F2A9C"
        assert profile.profile_current_date == "01/15/2024"

    def test_absent_fields_are_none(self, profile):
        assert profile.nationality_maternal is None
        assert profile.hair_texture is None
        assert profile.health_comments is None


class TestPhysicalAttributes:
    """Values from the physical accordion panel."""

    def test_height_and_weight(self, profile):
        assert profile.height_feet_inches == "6' 0\""
        assert profile.height_cm == pytest.approx(182.88)
        assert profile.weight_lbs == 180
        assert profile.weight_kg == 82

    def test_colors_keep_first_part(self, profile):
        assert profile.eye_color == "Brown"
        assert profile.hair_color == "Brown"

    def test_dominant_hand_in_health_info(self, profile):
        assert profile.health_info["dominant_hand"] == "Right"
        assert profile.health_info["german_measles"] == "Yes"


class TestSections:
    """Section parsers wired into the profile."""

    def test_genetics(self, profile):
        assert profile.genetic_tests_count == 500
        assert profile.genetic_test_results["Cystic Fibrosis"] == "negative"

    def test_family_and_diseases(self, profile):
        assert set(profile.immediate_family_history) == {"father", "brother", "brother_2"}
        assert profile.paternal_family_history == {}
        assert profile.health_diseases["Asthma"].mother_side is True

    def test_personality(self, profile):
        assert profile.personality_description.startswith("Adam is curious and kind")

    def test_flags(self, profile):
        assert profile.compliance_flags.canadian_compliant is True
        assert profile.compliance_flags.uk_compliant is False
        assert profile.compliance_flags.colorado_compliant is True
        assert profile.photos_available is True
        assert profile.audio_file_available is False

    def test_vial_options(self, profile):
        assert [v.mot for v in profile.vial_options] == ["MOT10", "MOT20"]


# ─── Plausibility ranges ──────────────────────────────────────────────────────


def _page(year: str) -> str:
    return f"<table><tr><td>Year of Birth:</td><td>{year}</td></tr></table>"


class TestPlausibility:
    """Implausible numbers are discarded, not rejected."""

    def test_birth_year_1920_discarded(self):
        assert parse_donor_profile(_page("1920"), "1").year_of_birth is None

    def test_birth_year_1990_kept(self):
        assert parse_donor_profile(_page("1990"), "1").year_of_birth == 1990

    def test_model_discards_out_of_range_values(self):
        profile = DonorProfile(id="1", year_of_birth=1920, height_cm=40, weight_kg=500, number_of_children=3)
        assert profile.year_of_birth is None
        assert profile.height_cm is None
        assert profile.weight_kg is None
        assert profile.number_of_children == 3

    def test_empty_page_still_parses(self):
        profile = parse_donor_profile("<html><body></body></html>", "1")
        assert profile.id == "1"
        assert profile.name is None
        assert profile.vial_options == []


# ─── Banner ───────────────────────────────────────────────────────────────────


class TestBannerMessage:
    def test_document_regex_fallback(self):
        from bs4 import BeautifulSoup

        soup = BeautifulSoup("<p>Good news: More than 5 vials avail today</p>", "html.parser")
        assert parse_banner_message(soup) == "More than 5 vials avail!"

    def test_no_banner(self):
        from bs4 import BeautifulSoup

        assert parse_banner_message(BeautifulSoup("<p>hello</p>", "html.parser")) is None
