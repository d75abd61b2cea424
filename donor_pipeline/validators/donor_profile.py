"""
Pydantic model for a parsed donor profile.

Every field except `id` is optional because extraction may fail per field
without failing the record. Numeric fields outside a physically plausible
range are discarded (set to None) rather than rejected, since they almost
always mean adjacent text was mis-captured.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from donor_pipeline.constants import (
    GENETIC_TESTS_RANGE,
    HEIGHT_CM_RANGE,
    MAX_CHILDREN,
    MIN_BIRTH_YEAR,
    WEIGHT_KG_RANGE,
    WEIGHT_LBS_RANGE,
)
from donor_pipeline.validators.inventory import InventorySnapshot


def _within(value: Any, low: float, high: float) -> Any:
    """Return value if it is a number inside [low, high], else None."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if low <= number <= high:
        return value
    return None


class VialOption(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str
    mot: Optional[str] = None
    in_stock: Optional[str] = None
    price: Optional[str] = None


class ComplianceFlags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    canadian_compliant: bool = False
    uk_compliant: bool = False
    colorado_compliant: bool = False


class DiseaseHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    relative: Optional[str] = None
    father_side: bool = False
    mother_side: bool = False
    age_of_onset: Optional[str] = None


class DonorProfile(BaseModel):
    """
    One donor profile as extracted from the registry site.

    `id` is supplied by the caller (never scraped) and is the correlation key
    across snapshots.
    """

    model_config = ConfigDict(extra="forbid")

    # Identification
    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    year_of_birth: Optional[int] = None
    marital_status: Optional[str] = None
    number_of_children: Optional[int] = None

    # Demographics
    occupation: Optional[str] = None
    education: Optional[str] = None
    blood_type: Optional[str] = None
    nationality_maternal: Optional[str] = None
    nationality_paternal: Optional[str] = None
    race: Optional[str] = None
    cmv_status: Optional[str] = None

    # Physical attributes
    height_feet_inches: Optional[str] = None
    height_cm: Optional[float] = None
    weight_lbs: Optional[int] = None
    weight_kg: Optional[int] = None
    eye_color: Optional[str] = None
    hair_color: Optional[str] = None
    hair_texture: Optional[str] = None
    hair_loss: Optional[str] = None
    hair_type: Optional[str] = None
    body_build: Optional[str] = None
    freckles: Optional[str] = None
    skin_tone: Optional[str] = None

    # Genetic testing
    genetic_tests_count: Optional[int] = None
    genetic_test_results: Dict[str, str] = Field(default_factory=dict)  # condition -> "negative"
    last_medical_history_update: Optional[str] = None

    # Health
    health_info: Dict[str, str] = Field(default_factory=dict)
    health_comments: Optional[str] = None
    health_diseases: Dict[str, DiseaseHistoryEntry] = Field(default_factory=dict)

    # Personality and interests
    personality_description: Optional[str] = None
    skills_hobbies_interests: Optional[str] = None

    # Birth and education details (mixed str/bool values)
    education_details: Dict[str, Any] = Field(default_factory=dict)

    # Family history: relation -> {attribute: value}
    immediate_family_history: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    paternal_family_history: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    maternal_family_history: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    # Purchase options and flags
    vial_options: List[VialOption] = Field(default_factory=list)
    compliance_flags: ComplianceFlags = Field(default_factory=ComplianceFlags)
    audio_file_available: bool = False
    photos_available: bool = False

    # Inventory (admin report)
    inventory_summary: Optional[str] = None
    inventory_data: Optional[InventorySnapshot] = None

    # Page metadata
    banner_message: Optional[str] = None
    document_id: Optional[str] = None
    profile_current_date: Optional[str] = None

    @field_validator("year_of_birth", mode="before")
    @classmethod
    def discard_implausible_birth_year(cls, v: Any) -> Any:
        """Keep only birth years between 1950 and the current year."""
        return _within(v, MIN_BIRTH_YEAR, datetime.now().year)

    @field_validator("number_of_children", mode="before")
    @classmethod
    def discard_implausible_children(cls, v: Any) -> Any:
        return _within(v, 0, MAX_CHILDREN)

    @field_validator("height_cm", mode="before")
    @classmethod
    def discard_implausible_height(cls, v: Any) -> Any:
        return _within(v, *HEIGHT_CM_RANGE)

    @field_validator("weight_lbs", mode="before")
    @classmethod
    def discard_implausible_weight_lbs(cls, v: Any) -> Any:
        return _within(v, *WEIGHT_LBS_RANGE)

    @field_validator("weight_kg", mode="before")
    @classmethod
    def discard_implausible_weight_kg(cls, v: Any) -> Any:
        return _within(v, *WEIGHT_KG_RANGE)

    @field_validator("genetic_tests_count", mode="before")
    @classmethod
    def discard_implausible_test_count(cls, v: Any) -> Any:
        return _within(v, *GENETIC_TESTS_RANGE)

    def change_view(self) -> Dict[str, Any]:
        """JSON-compatible dict used for snapshot comparison and storage."""
        return self.model_dump(mode="json")
