"""
Record models for scraped data.

- DonorProfile: one parsed public profile page
- InventorySnapshot: the admin donor status report attached to a profile
"""

from .donor_profile import ComplianceFlags, DiseaseHistoryEntry, DonorProfile, VialOption
from .inventory import (
    CanadianSiblingStatus,
    FamilyUnits,
    FinishedInventory,
    InventorySnapshot,
    QuarantineInventory,
    SalesData,
)

__all__ = [
    "CanadianSiblingStatus",
    "ComplianceFlags",
    "DiseaseHistoryEntry",
    "DonorProfile",
    "FamilyUnits",
    "FinishedInventory",
    "InventorySnapshot",
    "QuarantineInventory",
    "SalesData",
    "VialOption",
]
