"""
Error taxonomy for scrape jobs.

Setup errors (ScrapeSetupError) abort the whole job. Subject errors
(SubjectScrapeError) are caught at the per-donor boundary by the
orchestrator and recorded as a failed result.
"""

from typing import Optional


class DonorScrapeError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, donor_id: Optional[str] = None, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.donor_id = donor_id
        self.url = url

    def __str__(self) -> str:
        return self.message


class ScrapeSetupError(DonorScrapeError):
    """Fatal: no donor can be processed."""


class LaunchError(ScrapeSetupError):
    """Browser process could not be started."""


class NoCredentialsError(ScrapeSetupError):
    """No active credential set is configured."""


class LoginFailedError(ScrapeSetupError):
    """Login resolved to an explicit failure."""


class SubjectScrapeError(DonorScrapeError):
    """Recoverable: only the current donor fails."""


class NavigationTimeoutError(SubjectScrapeError):
    """A page navigation exceeded its timeout."""


class ExtractionFailure(SubjectScrapeError):
    """Page was reached but no usable profile could be extracted."""


class PersistenceError(SubjectScrapeError):
    """Derived donor record could not be written."""
