"""
Donor-list health tracking.

Every attempt updates last_scraped_at. A success resets the consecutive
failure count; MAX_CONSECUTIVE_FAILURES failures in a row deactivates the
donor, and only an explicit reactivation turns it back on.
"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from donor_pipeline.constants import MAX_CONSECUTIVE_FAILURES
from donor_pipeline.db.interfaces import DonorListStore
from donor_pipeline.models.scrape_job import DonorListEntry
from donor_pipeline.utils.logger import PipelineLogger


def next_health(
    entry: DonorListEntry,
    success: bool,
    now: datetime,
    max_failures: int = MAX_CONSECUTIVE_FAILURES,
) -> DonorListEntry:
    """Return the entry as it should look after one attempt. The input is not modified."""
    if success:
        return replace(
            entry,
            last_scraped_at=now,
            last_successful_scrape_at=now,
            consecutive_failures=0,
        )

    failures = entry.consecutive_failures + 1
    return replace(
        entry,
        last_scraped_at=now,
        consecutive_failures=failures,
        # A success never reactivates; that needs reactivate()
        is_active=entry.is_active and failures < max_failures,
    )


def record_attempt(
    store: DonorListStore,
    donor_id: str,
    success: bool,
    now: Optional[datetime] = None,
    logger: Optional[PipelineLogger] = None,
) -> Optional[DonorListEntry]:
    """
    Read-then-write the donor's health after one attempt.

    Donors that are not in the list are skipped (ad-hoc ids can be scraped
    without being tracked).

    Returns:
        The updated entry, or None if the donor is not tracked
    """
    entry = store.get_subject_health(donor_id)
    if entry is None:
        if logger:
            logger.debug("Donor not in list, skipping health update", donor_id=donor_id)
        return None

    updated = next_health(entry, success, now or datetime.now())
    store.update_subject_health(updated)

    if logger and entry.is_active and not updated.is_active:
        logger.warning(
            "Donor deactivated after repeated failures",
            donor_id=donor_id,
            consecutive_failures=updated.consecutive_failures,
        )
    return updated


def reactivate(store: DonorListStore, donor_id: str) -> Optional[DonorListEntry]:
    """Explicitly turn a donor back on and clear its failure count."""
    entry = store.get_subject_health(donor_id)
    if entry is None:
        return None
    updated = replace(entry, is_active=True, consecutive_failures=0)
    store.update_subject_health(updated)
    return updated
