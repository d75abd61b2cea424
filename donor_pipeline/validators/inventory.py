"""
Pydantic models for the admin inventory (donor status) report.

The report is scraped from a different page than the public profile and is
attached to a DonorProfile as `inventory_data`.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FinishedInventory(BaseModel):
    """Finished units bucketed by processing state, each keyed by unit type (e.g. ICI, IUI)."""

    model_config = ConfigDict(extra="forbid")

    unwashed: Dict[str, int] = Field(default_factory=dict)
    washed: Dict[str, int] = Field(default_factory=dict)
    art: Dict[str, int] = Field(default_factory=dict)
    other: Dict[str, int] = Field(default_factory=dict)  # Unit types listed on the "Finished" header row
    total: int = 0

    @model_validator(mode="after")
    def compute_total(self) -> "FinishedInventory":
        self.total = sum(
            sum(bucket.values()) for bucket in (self.unwashed, self.washed, self.art, self.other)
        )
        return self


class QuarantineInventory(BaseModel):
    """Quarantined units; `total` is always the sum of the five parts."""

    model_config = ConfigDict(extra="forbid")

    unwashed: int = 0
    washed: int = 0
    art: int = 0
    washed_cc: int = 0
    unwashed_cc: int = 0
    total: int = 0
    displayed_total: Optional[int] = None  # Total row as printed on the report, if any

    @model_validator(mode="after")
    def compute_total(self) -> "QuarantineInventory":
        self.total = self.unwashed + self.washed + self.art + self.washed_cc + self.unwashed_cc
        return self


class SalesData(BaseModel):
    """Units sold per region (us, canada, intl, total) for each reporting period."""

    model_config = ConfigDict(extra="forbid")

    current: Dict[str, int] = Field(default_factory=dict)
    ytd: Dict[str, int] = Field(default_factory=dict)
    previous_year: Dict[str, int] = Field(default_factory=dict)
    all_time: Dict[str, int] = Field(default_factory=dict)


class FamilyUnits(BaseModel):
    model_config = ConfigDict(extra="forbid")

    us: Optional[int] = None
    canada: Optional[int] = None
    intl: Optional[int] = None
    total: Optional[int] = None
    limit: Optional[int] = None
    limit_type: Optional[str] = None


class CanadianSiblingStatus(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_sibling_only: bool = True
    pregnancies: Optional[int] = None
    births: Optional[int] = None
    total_combined: Optional[int] = None


class InventorySnapshot(BaseModel):
    """
    Structured donor status report.

    Every section is independently optional; a report with only the header
    table still produces a snapshot.
    """

    model_config = ConfigDict(extra="forbid")

    donor_id: str = Field(..., min_length=1)

    # Header
    rating: Optional[str] = None
    date_of_last_p2: Optional[str] = None
    colorado_compliant: Optional[bool] = None

    # Inventory table
    finished: FinishedInventory = Field(default_factory=FinishedInventory)
    quarantine: QuarantineInventory = Field(default_factory=QuarantineInventory)
    unit_types: Dict[str, int] = Field(default_factory=dict)  # Finished units summed across buckets
    total_units: Optional[int] = Field(None, ge=0)
    total_visits: Optional[int] = Field(None, ge=0)
    avg_units_per_visit: Optional[float] = Field(None, ge=0)

    # Adjacent sections
    sales_data: Optional[SalesData] = None
    total_units_donor_testing: Optional[int] = Field(None, ge=0)
    total_units_sage: Optional[int] = Field(None, ge=0)
    family_units: Optional[FamilyUnits] = None
    advisories: Optional[str] = None
    canadian_sibling_status: Optional[CanadianSiblingStatus] = None
    birth_limit_category: Optional[str] = None

    @model_validator(mode="after")
    def default_total_units(self) -> "InventorySnapshot":
        if self.total_units is None:
            self.total_units = self.finished.total + self.quarantine.total
        return self

    def summary(self) -> str:
        """One-line summary stored on the donor record, e.g. 'Total Units: 42 | Finished: 34 | Quarantine: 8'."""
        return f"Total Units: {self.total_units} | Finished: {self.finished.total} | Quarantine: {self.quarantine.total}"
