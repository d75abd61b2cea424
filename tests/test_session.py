"""Tests for the login flow, login classification and session state (no browser launched)."""

from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from donor_pipeline.collectors.session import (
    LoginOutcome,
    LoginResult,
    XytexSession,
    classify_login_outcome,
)
from donor_pipeline.constants import EMAIL_INPUT_SELECTORS
from donor_pipeline.errors import (
    ExtractionFailure,
    LoginFailedError,
    NavigationTimeoutError,
    NoCredentialsError,
)
from tests.fakes import InMemoryCredentials


# ─── classify_login_outcome ───────────────────────────────────────────────────


class TestClassifyLoginOutcome:
    """Three-way login classification; success signals win."""

    def test_authenticated_url(self):
        assert classify_login_outcome("https://www.xytex.com/dashboard", "Home", "") is LoginOutcome.SUCCESS

    def test_authenticated_phrase(self):
        assert classify_login_outcome("https://www.xytex.com/", "Home", "Welcome back. Sign Out") is LoginOutcome.SUCCESS

    def test_still_on_login_page(self):
        assert classify_login_outcome("https://www.xytex.com/login", "Login", "") is LoginOutcome.FAILURE

    def test_failure_phrase(self):
        outcome = classify_login_outcome("https://www.xytex.com/", "Home", "Invalid password, try again")
        assert outcome is LoginOutcome.FAILURE

    def test_success_beats_failure(self):
        outcome = classify_login_outcome("https://live.xytex.com/admin", "Admin", "Login failed yesterday")
        assert outcome is LoginOutcome.SUCCESS

    def test_unknown_page_is_assumed_success(self):
        outcome = classify_login_outcome("https://www.xytex.com/donors", "Search Donors", "Find your donor")
        assert outcome is LoginOutcome.ASSUMED_SUCCESS
        assert outcome.authenticated

    def test_failure_not_authenticated(self):
        assert not LoginOutcome.FAILURE.authenticated


# ─── ensure_logged_in ─────────────────────────────────────────────────────────


@pytest.fixture
def session(credentials, options, test_logger):
    """Session whose browser launch and login are stubbed out."""
    session = XytexSession(credentials, options, logger=test_logger)
    session.initialize = MagicMock()
    return session


def _stub_login(session, outcome, url="https://www.xytex.com/"):
    session.login = MagicMock(return_value=LoginResult(outcome, url))


class TestEnsureLoggedIn:
    """Credential lookup, outcome handling and idempotence."""

    def test_no_credentials(self, options, test_logger):
        session = XytexSession(InMemoryCredentials(None), options, logger=test_logger)
        session.initialize = MagicMock()
        with pytest.raises(NoCredentialsError):
            session.ensure_logged_in()
        session.initialize.assert_not_called()

    def test_failure_raises(self, session, credentials):
        _stub_login(session, LoginOutcome.FAILURE, url="https://www.xytex.com/login")
        with pytest.raises(LoginFailedError) as excinfo:
            session.ensure_logged_in()
        assert excinfo.value.url == "https://www.xytex.com/login"
        assert session.authenticated is False
        assert credentials.used == []

    def test_success_marks_credentials_used(self, session, credentials):
        _stub_login(session, LoginOutcome.SUCCESS)
        session.ensure_logged_in()
        assert session.authenticated is True
        assert [c.email for c in credentials.used] == ["ops@example.com"]

    def test_assumed_success_warns(self, session, test_logger):
        _stub_login(session, LoginOutcome.ASSUMED_SUCCESS)
        session.ensure_logged_in()
        assert session.authenticated is True
        assert any("assumed" in w["message"] for w in test_logger.warnings)

    def test_second_call_is_noop(self, session, credentials):
        _stub_login(session, LoginOutcome.SUCCESS)
        session.ensure_logged_in()
        session.ensure_logged_in()
        assert session.login.call_count == 1
        assert len(credentials.used) == 1

    def test_invalidate_forces_new_login(self, session):
        _stub_login(session, LoginOutcome.SUCCESS)
        session.ensure_logged_in()
        session.invalidate()
        session.ensure_logged_in()
        assert session.login.call_count == 2


# ─── Login form ───────────────────────────────────────────────────────────────


class FakeElement:
    """One located element; records typing, clicks and key presses."""

    def __init__(self, name="", visible=True, enabled=True, on_click=None, on_enter=None):
        self.name = name
        self.visible = visible
        self.enabled = enabled
        self.on_click = on_click
        self.on_enter = on_enter
        self.value = ""
        self.clicks = 0
        self.keys = []

    def is_visible(self):
        return self.visible

    def is_enabled(self):
        return self.enabled

    def click(self):
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    def fill(self, value):
        self.value = value

    def press_sequentially(self, value, delay=0):
        self.value += value

    def press(self, key):
        self.keys.append(key)
        if key == "Enter" and self.on_enter is not None:
            self.on_enter()


class FakeMatches:
    def __init__(self, elements):
        self.elements = list(elements)

    def count(self):
        return len(self.elements)

    def nth(self, i):
        return self.elements[i]


class FakeLoginPage:
    """Playwright page stand-in serving elements by selector, text and role."""

    def __init__(self, landing_url="https://www.xytex.com/dashboard"):
        self.url = "about:blank"
        self.landing_url = landing_url
        self.body = ""
        self.visited = []
        self.by_selector = {}
        self.by_text = []
        self.by_role = []

    def add(self, selector, element):
        self.by_selector.setdefault(selector, []).append(element)
        return element

    def land(self):
        self.url = self.landing_url

    def goto(self, url, **kwargs):
        self.visited.append(url)
        self.url = url

    def locator(self, selector):
        return FakeMatches(self.by_selector.get(selector, []))

    def get_by_text(self, pattern):
        return FakeMatches(e for e in self.by_text if pattern.search(e.name))

    def get_by_role(self, role, name):
        return FakeMatches(e for e in self.by_role if name.search(e.name))

    def wait_for_selector(self, selector, **kwargs):
        raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")

    @contextmanager
    def expect_navigation(self, timeout=None):
        yield

    def title(self):
        return ""

    def inner_text(self, selector, timeout=None):
        return self.body


@pytest.fixture
def page():
    return FakeLoginPage()


@pytest.fixture
def browser_session(credentials, options, test_logger, page):
    """Session driving a FakeLoginPage instead of a launched browser."""
    session = XytexSession(credentials, options, logger=test_logger)
    session._page = page
    return session


def _login_form(page, visible=True):
    email = page.add('input[type="email"]', FakeElement(visible=visible))
    password = page.add('input[type="password"]', FakeElement())
    return email, password


class TestFindVisible:
    def test_first_visible_enabled_in_selector_order(self, browser_session, page):
        page.add('input[type="email"]', FakeElement(visible=False))
        page.add('input[type="email"]', FakeElement(enabled=False))
        wanted = page.add('input[name="email"]', FakeElement())
        page.add('input[id*="email" i]', FakeElement())

        assert browser_session.find_visible(EMAIL_INPUT_SELECTORS) is wanted

    def test_nothing_visible(self, browser_session, page):
        page.add('input[type="email"]', FakeElement(visible=False))
        assert browser_session.find_visible(EMAIL_INPUT_SELECTORS) is None


class TestSubmit:
    """Submit button selectors, then button text, then Enter."""

    def test_button_selector_first(self, browser_session, page):
        button = page.add('button[type="submit"]', FakeElement())
        labelled = FakeElement(name="Sign In")
        page.by_role.append(labelled)
        password = FakeElement()

        browser_session._submit(password)

        assert button.clicks == 1
        assert labelled.clicks == 0
        assert password.keys == []

    def test_button_text_when_no_selector_matches(self, browser_session, page):
        labelled = FakeElement(name="Log In")
        page.by_role.append(labelled)
        password = FakeElement()

        browser_session._submit(password)

        assert labelled.clicks == 1
        assert password.keys == []

    def test_enter_as_last_resort(self, browser_session, page):
        page.add('button[type="submit"]', FakeElement(enabled=False))
        password = FakeElement()
        browser_session._submit(password)
        assert password.keys == ["Enter"]


class TestLogin:
    """The real login flow against a fake page."""

    def test_login_path_then_dashboard(self, browser_session, page, credentials, options):
        email, password = _login_form(page)
        page.add('button[type="submit"]', FakeElement(on_click=page.land))

        browser_session.ensure_logged_in()

        assert browser_session.authenticated is True
        assert [c.email for c in credentials.used] == ["ops@example.com"]
        assert page.visited == [options.base_url, options.login_url]
        assert email.value == "ops@example.com"
        assert password.value == "secret"

    def test_account_menu_opens_modal(self, browser_session, page, credentials, options):
        email, password = _login_form(page, visible=False)
        page.by_text.append(FakeElement(name="My Account", on_click=lambda: setattr(email, "visible", True)))
        password.on_enter = page.land

        result = browser_session.login(credentials.credentials)

        assert result.outcome is LoginOutcome.SUCCESS
        assert result.url == "https://www.xytex.com/dashboard"
        assert page.visited == [options.base_url]
        assert password.keys == ["Enter"]

    def test_rejected_credentials(self, browser_session, page, credentials):
        _login_form(page)
        page.add('button[type="submit"]', FakeElement())
        page.body = "Invalid password"

        with pytest.raises(LoginFailedError) as excinfo:
            browser_session.ensure_logged_in()

        assert excinfo.value.url == "https://www.xytex.com/login"
        assert browser_session.authenticated is False
        assert credentials.used == []

    def test_form_not_found(self, browser_session, credentials):
        result = browser_session.login(credentials.credentials)
        assert result.outcome is LoginOutcome.FAILURE
        assert result.reason == "login form not found"

    def test_password_input_missing(self, browser_session, page, credentials):
        page.add('input[type="email"]', FakeElement())
        result = browser_session.login(credentials.credentials)
        assert result.reason == "password input not found"

    def test_browser_error(self, browser_session, page, credentials):
        page.goto = MagicMock(side_effect=PlaywrightError("net::ERR_CONNECTION_RESET"))
        result = browser_session.login(credentials.credentials)
        assert result.outcome is LoginOutcome.FAILURE
        assert result.reason.startswith("browser error during login")


# ─── Lifecycle and navigation ─────────────────────────────────────────────────


class TestLifecycle:
    def test_teardown_is_idempotent(self, credentials, options, test_logger):
        session = XytexSession(credentials, options, logger=test_logger)
        session.teardown()
        session.teardown()
        assert not session.initialized
        assert session.authenticated is False

    def test_page_requires_initialize(self, credentials, options, test_logger):
        with pytest.raises(RuntimeError):
            XytexSession(credentials, options, logger=test_logger).page

    def test_teardown_closes_resources(self, credentials, options, test_logger):
        session = XytexSession(credentials, options, logger=test_logger)
        context, browser, driver = MagicMock(), MagicMock(), MagicMock()
        browser.close.side_effect = PlaywrightError("already closed")
        session._context, session._browser, session._playwright = context, browser, driver
        session._page = MagicMock()

        session.teardown()

        context.close.assert_called_once()
        driver.stop.assert_called_once()
        assert not session.initialized


class TestNavigate:
    """Browser errors mapped onto the error taxonomy."""

    def _session(self, credentials, options, test_logger):
        session = XytexSession(credentials, options, logger=test_logger)
        session._page = MagicMock()
        return session

    def test_snapshot(self, credentials, options, test_logger):
        session = self._session(credentials, options, test_logger)
        page = session._page
        page.goto.return_value = MagicMock(status=200)
        page.url = "https://www.xytex.com/donor/1"
        page.title.return_value = "Donor 1"
        page.content.return_value = "<html></html>"
        page.inner_text.return_value = "Donor 1"

        snapshot = session.navigate("https://www.xytex.com/donor/1")

        assert snapshot.status == 200
        assert snapshot.title == "Donor 1"
        assert snapshot.html == "<html></html>"

    def test_timeout(self, credentials, options, test_logger):
        session = self._session(credentials, options, test_logger)
        session._page.goto.side_effect = PlaywrightTimeoutError("Timeout 60000ms exceeded")
        with pytest.raises(NavigationTimeoutError) as excinfo:
            session.navigate("https://www.xytex.com/donor/1")
        assert excinfo.value.url == "https://www.xytex.com/donor/1"

    def test_browser_error(self, credentials, options, test_logger):
        session = self._session(credentials, options, test_logger)
        session._page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        with pytest.raises(ExtractionFailure):
            session.navigate("https://www.xytex.com/donor/1")
