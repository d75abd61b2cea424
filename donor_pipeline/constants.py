"""
Global constants for the donor extraction pipeline.

Centralizes site URLs, heuristic phrase lists and plausibility ranges used
across the session, parsers and orchestrator.
"""

# Site
BASE_URL = "https://www.xytex.com"
LOGIN_PATH = "/login"
PROFILE_URL_TEMPLATE = BASE_URL + "/donor/{donor_id}"
INVENTORY_REPORT_URL = "https://live.xytex.com/admin/donor_status_report/views/dashboard.cfm"

# Browser
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}
BROWSER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

# Job policy
MAX_CONSECUTIVE_FAILURES = 5  # Subject is deactivated after this many failures in a row
DEFAULT_DELAY_BETWEEN_REQUESTS_SECONDS = 3.0  # Pause between subjects
DEFAULT_NAVIGATION_TIMEOUT_MS = 60000
DEFAULT_LOGIN_TIMEOUT_MS = 30000
DEFAULT_SELECTOR_TIMEOUT_MS = 5000  # Per selector when probing form inputs
DEFAULT_NAVIGATION_WAIT_MS = 5000  # Fallback settle when no navigation event fires
TYPING_DELAY_MS = 50

# Login form discovery
EMAIL_INPUT_SELECTORS = [
    'input[type="email"]',
    'input[name="email"]',
    'input[id*="email" i]',
    'input[name*="email" i]',
    'input[placeholder*="email" i]',
    "#email",
]
PASSWORD_INPUT_SELECTORS = [
    'input[type="password"]',
    'input[name="password"]',
    'input[id*="password" i]',
    'input[name*="password" i]',
    "#password",
]
SUBMIT_BUTTON_SELECTORS = [
    'button[type="submit"]',
    'input[type="submit"]',
]
SUBMIT_BUTTON_PHRASES = ["sign in", "login", "log in", "submit"]
ACCOUNT_MENU_PHRASES = ["my account"]

# Login outcome heuristics (lowercase)
AUTHENTICATED_URL_PATTERNS = ["/admin", "/dashboard", "/account", "/profile", "live.xytex.com"]
AUTHENTICATED_PHRASES = [
    "administration dashboard",
    "admin dashboard",
    "main dashboard",
    "sign out",
    "log out",
    "logout",
]
LOGIN_FAILURE_PHRASES = [
    "invalid email",
    "invalid password",
    "incorrect password",
    "incorrect email",
    "wrong password",
    "wrong email",
    "authentication failed",
    "login failed",
    "please sign in",
    "sign in to continue",
]

# Profile page access heuristics (lowercase)
NOT_FOUND_URL_MARKERS = ["/404", "not-found"]
PAGE_ERROR_PHRASES = [
    "page not found",
    "404 error",
    "access denied",
    "please log in to continue",
    "you must be logged in",
    "authentication required",
]

# Inventory report form
INVENTORY_INPUT_SELECTORS = [
    'input[placeholder*="donor" i]',
    'input[placeholder*="number" i]',
    'input[name*="donor" i]',
    'input[id*="donor" i]',
    'input[type="text"]',
]
INVENTORY_SUBMIT_PHRASES = ["get status", "status report"]

# Plausibility ranges (inclusive)
MIN_BIRTH_YEAR = 1950
MAX_CHILDREN = 20
HEIGHT_CM_RANGE = (100, 250)
WEIGHT_LBS_RANGE = (80, 400)
WEIGHT_KG_RANGE = (35, 180)
GENETIC_TESTS_RANGE = (0, 10000)

# Field cleaning
MAX_FIELD_LENGTH = 500
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

# Labels that mark the start of the next field when a value bleeds over
KNOWN_FIELD_LABELS = [
    "Year of Birth",
    "Marital Status",
    "Number of Children",
    "Occupation",
    "Education",
    "Blood Type",
    "Maternal",
    "Paternal",
    "Race",
    "CMV Status",
    "Height",
    "Weight",
    "Eye Color",
    "Hair Color",
    "Hair Texture",
    "Hair Loss",
    "Hair Type",
    "Body Build",
    "Freckles",
    "Skin Tone",
    "Dominant Hand",
    "Hairy Chest",
    "Nationality",
]

HEALTH_INFO_LABELS = [
    "Medication Allergy",
    "Food Allergy",
    "Pet Allergy",
    "Hay Fever Allergy",
    "Insect Allergy",
    "Vaccine Allergy",
    "Healthy Teeth",
    "Braces",
    "Back Problems",
    "Bronchitis",
    "Chicken Pox",
    "Vertigo",
    "Eyesight Correction",
    "Skin Infection",
    "Gallstones",
    "Removed Gall Bladder",
    "Hernia",
    "Mumps",
    "Measles",
    "German Measles",
    "Sinus Infection",
    "Stomach Ulcers",
]

FAMILY_MEMBER_FIELDS = [
    "Hair Color",
    "Eyesight",
    "Height",
    "Weight",
    "Build",
    "Complexion",
    "Education",
    "Occupation",
]

# Fields compared between snapshots of the same donor
CHANGE_TRACKED_FIELDS = [
    "banner_message",
    "inventory_summary",
    "name",
    "occupation",
    "education",
    "vial_options",
    "compliance_flags",
    "document_id",
    "profile_current_date",
]
