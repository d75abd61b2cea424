"""Tests for label-driven field extraction and value cleaning."""

from donor_pipeline.parsers.field_extractor import (
    FieldExtractor,
    clean_value,
    is_plausible_name,
    split_labeled,
)

# ─── clean_value ──────────────────────────────────────────────────────────────


class TestCleanValue:
    """Cleaning and rejection of captured values."""

    def test_collapses_whitespace_and_strips_tags(self):
        assert clean_value("  Software\n   <b>Engineer</b> ") == "Software Engineer"

    def test_truncates_at_next_known_label(self):
        """Bleed-over into the next field is cut off."""
        assert clean_value("Engineer Blood Type: O+") == "Engineer"

    def test_value_starting_with_label_is_rejected(self):
        assert clean_value("Height: 6 ft") is None

    def test_multiple_separators_rejected(self):
        """Several unrecognised 'x: y' pairs mean fields were captured together."""
        assert clean_value("Foo: 1 Bar: 2") is None

    def test_script_rejected(self):
        assert clean_value("javascript:void(0)") is None
        assert clean_value("<script>alert(1)</script>") is None

    def test_long_value_truncated(self):
        assert len(clean_value("x" * 600)) == 500

    def test_empty(self):
        assert clean_value("") is None
        assert clean_value(None) is None
        assert clean_value("   ") is None


# ─── split_labeled ────────────────────────────────────────────────────────────


class TestSplitLabeled:
    """Splitting 'Label: value Label: value' runs."""

    def test_values_bounded_by_next_label(self):
        text = "Height: 6 ft Weight: 180 lbs Eye Color: Blue"
        assert split_labeled(text, ["Height", "Weight", "Eye Color"]) == {
            "Height": "6 ft",
            "Weight": "180 lbs",
            "Eye Color": "Blue",
        }

    def test_longest_label_wins(self):
        """'German Measles' is not split into 'German' + 'Measles'."""
        text = "Measles: No German Measles: Yes"
        assert split_labeled(text, ["Measles", "German Measles"]) == {
            "Measles": "No",
            "German Measles": "Yes",
        }

    def test_absent_and_empty_labels_dropped(self):
        assert split_labeled("Height: Weight: 180", ["Height", "Weight", "Eye Color"]) == {"Weight": "180"}


# ─── FieldExtractor strategies ───────────────────────────────────────────────


class TestExtractField:
    """Each lookup strategy, and first-match-wins ordering."""

    def test_table_row(self):
        extractor = FieldExtractor.from_html("<table><tr><td>Occupation:</td><td>Engineer</td></tr></table>")
        assert extractor.extract_field("Occupation:") == "Engineer"

    def test_definition_list(self):
        extractor = FieldExtractor.from_html("<dl><dt>Occupation:</dt><dd>Engineer</dd></dl>")
        assert extractor.extract_field("Occupation:") == "Engineer"

    def test_same_element(self):
        extractor = FieldExtractor.from_html("<p><b>Occupation:</b> Engineer</p>")
        assert extractor.extract_field("Occupation:") == "Engineer"

    def test_next_sibling(self):
        extractor = FieldExtractor.from_html("<div><span>Occupation:</span><span>Engineer</span></div>")
        assert extractor._from_next_sibling("Occupation:") == "Engineer"
        assert extractor.extract_field("Occupation:") == "Engineer"

    def test_table_row_preferred_over_later_text(self):
        html = """
        <table><tr><td>Occupation:</td><td>Engineer</td></tr></table>
        <p>Occupation: Teacher</p>
        """
        assert FieldExtractor.from_html(html).extract_field("Occupation:") == "Engineer"

    def test_layout_cell_is_not_a_label_cell(self):
        """A wide cell that merely contains the label is skipped by the table strategy."""
        html = (
            "<table><tr><td>Occupation: Engineer and a long biography that keeps going for a while here</td>"
            "<td>unrelated</td></tr></table>"
        )
        value = FieldExtractor.from_html(html).extract_field("Occupation:")
        assert value.startswith("Engineer")

    def test_missing_label(self):
        assert FieldExtractor.from_html("<p>Nothing here</p>").extract_field("Occupation:") is None

    def test_bleed_over_cut(self):
        html = "<p>Occupation: Engineer Blood Type: O+</p>"
        assert FieldExtractor.from_html(html).extract_field("Occupation:") == "Engineer"

    def test_script_content_ignored(self):
        html = "<script>var label = 'Occupation: x';</script><p>Occupation: Engineer</p>"
        assert FieldExtractor.from_html(html).extract_field("Occupation:") == "Engineer"


class TestExtractNumericField:
    """Range-checked numeric fields."""

    def _extractor(self, value: str) -> FieldExtractor:
        return FieldExtractor.from_html(f"<table><tr><td>Year of Birth:</td><td>{value}</td></tr></table>")

    def test_in_range_kept_as_int(self):
        value = self._extractor("1990").extract_numeric_field("Year of Birth:", 1950, 2100)
        assert value == 1990
        assert isinstance(value, int)

    def test_out_of_range_discarded(self):
        assert self._extractor("1920").extract_numeric_field("Year of Birth:", 1950, 2100) is None

    def test_non_numeric(self):
        assert self._extractor("unknown").extract_numeric_field("Year of Birth:", 1950, 2100) is None

    def test_float_kept(self):
        extractor = FieldExtractor.from_html("<p>Height: 182.5</p>")
        assert extractor.extract_numeric_field("Height:", 100, 250) == 182.5


# ─── Identity name ───────────────────────────────────────────────────────────


class TestIdentityName:
    """Strict name extraction."""

    def test_bio_block_path(self):
        html = """
        <div class="donor-profile"><div class="right-cl"><div class="bio-info">
          <p><span>Adam</span> loves music</p>
        </div></div></div>
        """
        assert FieldExtractor.from_html(html).extract_identity_name() == "Adam"

    def test_label_fallback(self):
        html = "<p>Donor Name: Michael. Age 30</p>"
        assert FieldExtractor.from_html(html).extract_identity_name() == "Michael"

    def test_profile_heading(self):
        html = "<h1>DONOR PROFILE: DONOR 12345 Jonah</h1>"
        assert FieldExtractor.from_html(html).extract_identity_name() == "Jonah"

    def test_no_name(self):
        assert FieldExtractor.from_html("<p>Welcome</p>").extract_identity_name() is None

    def test_plausibility(self):
        assert is_plausible_name("Mary-Jane O'Neil")
        assert not is_plausible_name("A")
        assert not is_plausible_name("R2D2")
        assert not is_plausible_name("x" * 51)
        assert not is_plausible_name(None)
