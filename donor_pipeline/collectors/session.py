"""
Authenticated Playwright session against the registry site.

One Chromium instance and one page are shared sequentially by every donor in
a job; the site's login state is a single piece of mutable state, so pages
are never driven concurrently.

Login success is not reported by the site in any reliable way. The outcome is
classified three ways:

    1. authenticated-area URL or phrase       -> SUCCESS
    2. still on /login, or a failure phrase   -> FAILURE
    3. anything else (URL moved, no error)    -> ASSUMED_SUCCESS

Case 3 is logged at WARNING so operators can audit it. Treating it as a
failure would abort whole batches on a page redesign.
"""

import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from donor_pipeline.config import ScrapingOptions
from donor_pipeline.constants import (
    ACCOUNT_MENU_PHRASES,
    AUTHENTICATED_PHRASES,
    AUTHENTICATED_URL_PATTERNS,
    BROWSER_LAUNCH_ARGS,
    EMAIL_INPUT_SELECTORS,
    LOGIN_FAILURE_PHRASES,
    LOGIN_PATH,
    PASSWORD_INPUT_SELECTORS,
    SUBMIT_BUTTON_PHRASES,
    SUBMIT_BUTTON_SELECTORS,
    TYPING_DELAY_MS,
    USER_AGENT,
    VIEWPORT,
)
from donor_pipeline.db.interfaces import CredentialProvider
from donor_pipeline.errors import (
    ExtractionFailure,
    LaunchError,
    LoginFailedError,
    NavigationTimeoutError,
    NoCredentialsError,
)
from donor_pipeline.models.scrape_job import ScrapingCredentials
from donor_pipeline.utils.logger import PipelineLogger


class LoginOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ASSUMED_SUCCESS = "assumed_success"  # URL changed, no failure signal

    @property
    def authenticated(self) -> bool:
        return self is not LoginOutcome.FAILURE


@dataclass
class LoginResult:
    outcome: LoginOutcome
    url: str
    reason: Optional[str] = None


@dataclass
class PageSnapshot:
    """Everything the parsers need from one loaded page."""

    url: str
    title: str
    html: str
    text: str
    status: Optional[int] = None  # HTTP status of the main document, when known


def classify_login_outcome(url: str, title: str, text: str, login_path: str = LOGIN_PATH) -> LoginOutcome:
    """
    Classify the page reached after submitting the login form.

    Args:
        url: Current page URL
        title: Page title
        text: Visible page text

    Returns:
        LoginOutcome; success signals take priority over failure signals
    """
    url_lower = url.lower()
    page_text = f"{title}\n{text}".lower()

    if any(pattern in url_lower for pattern in AUTHENTICATED_URL_PATTERNS):
        return LoginOutcome.SUCCESS
    if any(phrase in page_text for phrase in AUTHENTICATED_PHRASES):
        return LoginOutcome.SUCCESS

    if login_path in urlparse(url_lower).path:
        return LoginOutcome.FAILURE
    if any(phrase in page_text for phrase in LOGIN_FAILURE_PHRASES):
        return LoginOutcome.FAILURE

    return LoginOutcome.ASSUMED_SUCCESS


class XytexSession:
    """
    Owns the browser and the authenticated state for one job.

    Usage:
        with XytexSession(credential_repo, options) as session:
            session.ensure_logged_in()
            snapshot = session.navigate(options.profile_url("12345"))
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        options: Optional[ScrapingOptions] = None,
        logger: Optional[PipelineLogger] = None,
    ):
        self.credentials = credentials
        self.options = options or ScrapingOptions()
        self.logger = logger or PipelineLogger("donor_pipeline.session")
        self.authenticated = False
        self._playwright = None
        self._browser = None
        self._context = None
        self._page: Optional[Page] = None

    # ─── Lifecycle ──────────────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._page is not None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Session not initialized; call initialize() first")
        return self._page

    def initialize(self) -> None:
        """
        Launch Chromium with a stable user agent and viewport. No network calls.

        Raises:
            LaunchError: browser process could not be started
        """
        if self.initialized:
            return
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.options.headless,
                args=BROWSER_LAUNCH_ARGS,
            )
            self._context = self._browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
            self._page = self._context.new_page()
            self._page.set_default_navigation_timeout(self.options.navigation_timeout_ms)
        except PlaywrightError as e:
            self.teardown()
            raise LaunchError(f"Failed to launch browser: {e}. Run: playwright install chromium") from e
        self.logger.info("Browser initialized", headless=self.options.headless)

    def teardown(self) -> None:
        """Close page, context, browser and driver. Safe to call repeatedly."""
        for name in ("_context", "_browser"):
            resource = getattr(self, name)
            if resource is not None:
                try:
                    resource.close()
                except PlaywrightError as e:
                    self.logger.debug(f"Ignoring error while closing {name.strip('_')}: {e}")
                setattr(self, name, None)

        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as e:
                self.logger.debug(f"Ignoring error while stopping playwright: {e}")
            self._playwright = None

        self._page = None
        self.authenticated = False
        self.logger.debug("Browser closed")

    def __enter__(self):
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - cleanup resources."""
        self.teardown()
        return False

    # ─── Authentication ─────────────────────────────────────────────────

    def invalidate(self) -> None:
        """Forget the authenticated state (e.g. after a redirect to the login page)."""
        if self.authenticated:
            self.logger.warning("Session no longer authenticated, will log in again")
        self.authenticated = False

    def ensure_logged_in(self) -> None:
        """
        No-op when authenticated; otherwise log in with the active credentials.

        Raises:
            NoCredentialsError: no active credential set is configured
            LoginFailedError: login resolved to an explicit failure
            LaunchError: the browser had to be started and could not be
        """
        if self.authenticated:
            return

        credentials = self.credentials.get_active_credentials()
        if credentials is None:
            raise NoCredentialsError("No active scraping credentials configured")

        if not self.initialized:
            self.initialize()

        result = self.login(credentials)
        if result.outcome is LoginOutcome.FAILURE:
            raise LoginFailedError(
                f"Login failed: {result.reason or 'still on login page'}. "
                "Check the stored credentials; the login page structure may have changed.",
                url=result.url,
            )
        if result.outcome is LoginOutcome.ASSUMED_SUCCESS:
            self.logger.warning(
                "Login assumed successful: URL changed and no failure message found",
                url=result.url,
            )
        else:
            self.logger.info("Login successful", url=result.url)

        self.authenticated = True
        self.credentials.mark_credentials_used(credentials)

    def login(self, credentials: ScrapingCredentials) -> LoginResult:
        """
        Surface the login form, submit the credentials and classify the result.

        Never raises for site behaviour; a missing form or a failed page load
        comes back as LoginOutcome.FAILURE with a reason.
        """
        page = self.page
        self.logger.info("Starting login", email=credentials.email)

        try:
            page.goto(self.options.base_url, wait_until="domcontentloaded", timeout=self.options.login_timeout_ms)
            time.sleep(self.options.page_settle_seconds)

            if not self._surface_login_form():
                return LoginResult(LoginOutcome.FAILURE, page.url, "login form not found")

            email_input = self.find_visible(EMAIL_INPUT_SELECTORS)
            password_input = self.find_visible(PASSWORD_INPUT_SELECTORS)
            if email_input is None:
                return LoginResult(LoginOutcome.FAILURE, page.url, "email input not found")
            if password_input is None:
                return LoginResult(LoginOutcome.FAILURE, page.url, "password input not found")

            self._type_into(email_input, credentials.email)
            self._type_into(password_input, credentials.password)

            try:
                with page.expect_navigation(timeout=self.options.navigation_wait_ms):
                    self._submit(password_input)
            except PlaywrightTimeoutError:
                self.logger.debug("No navigation after login submit, waiting for settle")
            time.sleep(self.options.post_login_settle_seconds)

            url, title, text = page.url, page.title(), self._body_text()
        except PlaywrightError as e:
            return LoginResult(LoginOutcome.FAILURE, page.url, f"browser error during login: {e}")

        outcome = classify_login_outcome(url, title, text)
        reason = None
        if outcome is LoginOutcome.FAILURE:
            reason = "still on login page or failure message shown"
        return LoginResult(outcome, url, reason)

    def _surface_login_form(self) -> bool:
        """Try each way of reaching the login form until the email input is visible."""
        strategies: list[tuple[str, Callable[[], bool]]] = [
            ("account_menu", self._open_account_menu),
            ("login_path", self._open_login_path),
            ("modal_wait", self._wait_for_login_modal),
        ]
        for name, strategy in strategies:
            try:
                if strategy():
                    self.logger.debug(f"Login form surfaced via {name}")
                    return True
            except PlaywrightError as e:
                self.logger.debug(f"Login form strategy {name} failed: {e}")
        return False

    def _open_account_menu(self) -> bool:
        for phrase in ACCOUNT_MENU_PHRASES:
            candidates = self.page.get_by_text(re.compile(re.escape(phrase), re.I))
            for i in range(candidates.count()):
                candidate = candidates.nth(i)
                if candidate.is_visible():
                    candidate.click()
                    time.sleep(self.options.modal_settle_seconds)
                    return self.find_visible(EMAIL_INPUT_SELECTORS) is not None
        return False

    def _open_login_path(self) -> bool:
        self.page.goto(self.options.login_url, wait_until="domcontentloaded", timeout=self.options.login_timeout_ms)
        time.sleep(self.options.page_settle_seconds)
        return self.find_visible(EMAIL_INPUT_SELECTORS) is not None

    def _wait_for_login_modal(self) -> bool:
        try:
            self.page.wait_for_selector(
                ", ".join(EMAIL_INPUT_SELECTORS),
                state="visible",
                timeout=self.options.selector_timeout_ms,
            )
        except PlaywrightTimeoutError:
            return False
        return True

    def _type_into(self, element: Locator, value: str) -> None:
        element.click()
        element.fill("")
        element.press_sequentially(value, delay=TYPING_DELAY_MS)

    def _submit(self, password_input: Locator) -> None:
        """Button selectors, then a button text scan, then Enter in the password field."""
        button = self.find_visible(SUBMIT_BUTTON_SELECTORS)
        if button is not None:
            button.click()
            return
        if self.click_text(SUBMIT_BUTTON_PHRASES, role="button"):
            return
        self.logger.debug("No submit control found, pressing Enter")
        password_input.press("Enter")

    # ─── Page helpers ───────────────────────────────────────────────────

    def find_visible(self, selectors: list[str]) -> Optional[Locator]:
        """First visible and enabled element matching any selector, in selector order."""
        for selector in selectors:
            try:
                matches = self.page.locator(selector)
                for i in range(matches.count()):
                    element = matches.nth(i)
                    if element.is_visible() and element.is_enabled():
                        return element
            except PlaywrightError as e:
                self.logger.debug(f"Selector {selector!r} failed: {e}")
        return None

    def click_text(self, phrases: list[str], role: str = "button") -> bool:
        """Click the first visible element of `role` whose name contains one of `phrases`."""
        for phrase in phrases:
            matches = self.page.get_by_role(role, name=re.compile(re.escape(phrase), re.I))
            for i in range(matches.count()):
                element = matches.nth(i)
                if element.is_visible() and element.is_enabled():
                    element.click()
                    return True
        return False

    def _body_text(self) -> str:
        try:
            return self.page.inner_text("body", timeout=self.options.selector_timeout_ms)
        except PlaywrightError:
            return ""

    def snapshot(self, status: Optional[int] = None) -> PageSnapshot:
        """Capture the current page."""
        page = self.page
        return PageSnapshot(
            url=page.url,
            title=page.title(),
            html=page.content(),
            text=self._body_text(),
            status=status,
        )

    def navigate(self, url: str) -> PageSnapshot:
        """
        Load `url`, wait for client-side rendering, and capture the page.

        Raises:
            NavigationTimeoutError: the load exceeded navigation_timeout_ms
            ExtractionFailure: the browser could not load the page at all
        """
        try:
            response = self.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.options.navigation_timeout_ms,
            )
            time.sleep(self.options.page_settle_seconds)
            return self.snapshot(status=response.status if response is not None else None)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Timed out after {self.options.navigation_timeout_ms}ms loading page", url=url
            ) from e
        except PlaywrightError as e:
            raise ExtractionFailure(f"Navigation failed: {e}", url=url) from e
