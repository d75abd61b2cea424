"""
Change detection between two snapshots of the same donor.

Only a fixed whitelist of high-signal fields is compared; everything else on
the profile (physical attributes, family history, ...) is too noisy to alert on.
"""

import json
from typing import Any, Mapping, Optional, Union

from donor_pipeline.constants import CHANGE_TRACKED_FIELDS
from donor_pipeline.validators.donor_profile import DonorProfile

INITIAL_SCRAPE = {"initial": True}

Snapshot = Union[DonorProfile, Mapping[str, Any]]


def _as_dict(snapshot: Snapshot) -> Mapping[str, Any]:
    if isinstance(snapshot, DonorProfile):
        return snapshot.change_view()
    return snapshot


def _serialized(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def diff(previous: Optional[Snapshot], current: Snapshot) -> dict[str, Any]:
    """
    Compare two snapshots over CHANGE_TRACKED_FIELDS.

    Returns:
        {"initial": True} when there is no previous snapshot, otherwise
        {field: {"old": ..., "new": ...}} for every tracked field whose
        serialized value differs. Identical snapshots give {}.
    """
    if previous is None:
        return dict(INITIAL_SCRAPE)

    old = _as_dict(previous)
    new = _as_dict(current)

    changes: dict[str, Any] = {}
    for field_name in CHANGE_TRACKED_FIELDS:
        old_value = old.get(field_name)
        new_value = new.get(field_name)
        if _serialized(old_value) != _serialized(new_value):
            changes[field_name] = {"old": old_value, "new": new_value}
    return changes


def is_initial(changes: Optional[Mapping[str, Any]]) -> bool:
    return bool(changes) and changes.get("initial") is True
