"""
Central configuration for the donor pipeline.

Local files (logs, captured debug HTML) are stored in ~/.donor-pipeline/.

Database: MySQL-compatible (DoltDB or MySQL). Configure via environment variables:
  - DONOR_DB_HOST (default: 127.0.0.1)
  - DONOR_DB_PORT (default: 3306)
  - DONOR_DB_USER (default: root)
  - DONOR_DB_DATABASE (default: donors)

Scraper behaviour is configured via SCRAPER_* variables, see ScrapingOptions.from_env().
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from donor_pipeline.constants import (
    BASE_URL,
    DEFAULT_DELAY_BETWEEN_REQUESTS_SECONDS,
    DEFAULT_LOGIN_TIMEOUT_MS,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    DEFAULT_NAVIGATION_WAIT_MS,
    DEFAULT_SELECTOR_TIMEOUT_MS,
    INVENTORY_REPORT_URL,
)


def get_data_dir() -> Path:
    """
    Get the local data directory path for logs and debug captures.

    Uses DONOR_PIPELINE_DATA_DIR environment variable if set, otherwise
    defaults to ~/.donor-pipeline/

    Returns:
        Path to data directory
    """
    env_path = os.environ.get("DONOR_PIPELINE_DATA_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / ".donor-pipeline"


def get_log_dir() -> Path:
    """Get the log file directory."""
    return get_data_dir() / "logs"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ScrapingOptions:
    """Options for one browser session and the job that drives it.

    Attributes:
        delay_between_requests: Seconds to wait between donors
        navigation_timeout_ms: Timeout applied to every page navigation
        login_timeout_ms: Timeout for loading the site entry point
        headless: Run Chromium without a window
        page_settle_seconds: Wait after a page load for client-side rendering
        modal_settle_seconds: Wait after opening the login form
        post_login_settle_seconds: Wait after submitting the login form
        navigation_wait_ms: Fallback wait when a submit does not navigate
        selector_timeout_ms: Per-selector wait when probing form inputs
        base_url: Public site root
        inventory_url: Admin inventory (donor status) report page
        debug_html_dir: When set, captured HTML is written here
    """

    delay_between_requests: float = DEFAULT_DELAY_BETWEEN_REQUESTS_SECONDS
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    login_timeout_ms: int = DEFAULT_LOGIN_TIMEOUT_MS
    headless: bool = True

    # Fixed settle delays (seconds)
    page_settle_seconds: float = 2.0
    modal_settle_seconds: float = 3.0
    post_login_settle_seconds: float = 3.0

    navigation_wait_ms: int = DEFAULT_NAVIGATION_WAIT_MS
    selector_timeout_ms: int = DEFAULT_SELECTOR_TIMEOUT_MS

    base_url: str = BASE_URL
    inventory_url: str = INVENTORY_REPORT_URL

    debug_html_dir: Optional[Path] = None

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + "/login"

    def profile_url(self, donor_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/donor/{donor_id}"

    @classmethod
    def from_env(cls) -> "ScrapingOptions":
        """Build options from SCRAPER_* environment variables, falling back to defaults."""
        options = cls()
        options.headless = _env_bool("SCRAPER_HEADLESS", options.headless)
        if os.environ.get("SCRAPER_DELAY_SECONDS"):
            options.delay_between_requests = float(os.environ["SCRAPER_DELAY_SECONDS"])
        if os.environ.get("SCRAPER_TIMEOUT_MS"):
            options.navigation_timeout_ms = int(os.environ["SCRAPER_TIMEOUT_MS"])
        if os.environ.get("SCRAPER_BASE_URL"):
            options.base_url = os.environ["SCRAPER_BASE_URL"]
        if os.environ.get("SCRAPER_INVENTORY_URL"):
            options.inventory_url = os.environ["SCRAPER_INVENTORY_URL"]
        debug_dir = os.environ.get("SCRAPER_DEBUG_HTML_DIR")
        if debug_dir:
            options.debug_html_dir = Path(debug_dir).expanduser()
        return options
