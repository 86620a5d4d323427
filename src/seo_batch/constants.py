# src/seo_batch/constants.py
"""Centralized constants for the SEO batch extractor.

Sentinel values written into report cells, endpoint signatures used by the
network classifier, and run defaults. For user-configurable values, see
config.py and RunConfig.
"""

# =============================================================================
# Report Sentinels
# =============================================================================

# Value of any field that could not be found or extracted
NOT_FOUND = "Not Found"

YES = "Yes"
NO = "No"

# schema_error value when every JSON-LD block parsed
NO_ERROR = "No Error"

# Terminal error column value for rows that completed without error
NO_PROCESSING_ERROR = "N/A"

# status_code value of a row whose every attempt failed
FAILED_AFTER_RETRIES = "Failed after retries"

# status_code value when no navigation response was captured
NO_RESPONSE_STATUS = "N/A (Navigation Error)"

# Delimiters used when a field holds several values
LIST_SEPARATOR = ", "
PAIR_SEPARATOR = "; "


# =============================================================================
# Analytics Endpoint Signatures
# =============================================================================

# GA4 measurement protocol hits
GA4_COLLECT_FRAGMENT = "/g/collect"

# gtag.js loader carrying the measurement id as ?id=G-XXXX
GTAG_LOADER_FRAGMENT = "gtag/js?id=G-"

# Platform user id parameters, checked in priority order
PPID_PARAMETERS = ("ep.PPID_es", "up.PPID")

# Comscore beacon hits
COMSCORE_BEACON_FRAGMENTS = (
    "scorecardresearch.com/p",
    "scorecardresearch.com/b",
)

# Placeholder for a missing c1/c2 value in the Comscore column
COMSCORE_MISSING_VALUE = "N/A"


# =============================================================================
# DOM Extraction Constants
# =============================================================================

# Globals probed with JSON.stringify in the page context
GLOBAL_JSON_VARIABLES = (
    "window.__INITIAL_STATE__",
    "window.__PRELOADED_STATE__",
    "window._INIT_DATA_",
    "window.ytInitialData",
    "window.APP_DATA",
    "window.pageData",
)

# Favicon link relations, in lookup order
FAVICON_RELS = (
    "icon",
    "shortcut icon",
    "apple-touch-icon",
    "apple-touch-icon-precomposed",
)

# Anchor hrefs that are not links to other documents
SKIPPED_HREF_PREFIXES = ("#", "javascript:", "mailto:")

# Tags whose text never reaches the visible body text
INVISIBLE_TEXT_TAGS = ("script", "style", "noscript", "template")


# =============================================================================
# Canonical Validation Labels
# =============================================================================

CANONICAL_VALID_LABEL = "✅ Valid"
CANONICAL_INVALID_LABEL = "❌ Invalid"
CANONICAL_AMP_TO_AMP_LABEL = "❌ Invalid (AMP page points to AMP canonical)"
CANONICAL_NOT_FOUND_LABEL = "N/A (Canonical not found)"


# =============================================================================
# Run Defaults
# =============================================================================

DEFAULT_URL_INPUT_FILE = "URL.txt"
DEFAULT_OUTPUT_FILE = "SeoAnalysisReport.xlsx"
DEFAULT_SHEET_NAME = "SeoData"

DEFAULT_STATIC_PAGE_KEYWORDS = (
    "about,contact-us,privacy-policy,terms-of-use,careers,sitemap,advertise,feedback"
)

DEFAULT_NUMBER_OF_THREADS = 1
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 2.0

# Rows between two report saves
DEFAULT_CHECKPOINT_EVERY = 50

# Seconds the pool may take to drain after the last row is joined
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 3600.0

# Upper bound on a report column width when sizing columns at the final save
MAX_COLUMN_WIDTH = 60


# =============================================================================
# AMP Validator
# =============================================================================

AMP_VALIDATOR_URL = "https://validator.amp.dev/validator.json"
AMP_VALIDATOR_TIMEOUT_SECONDS = 30.0
AMP_VALIDATOR_USER_AGENT = "Mozilla/5.0 (compatible; SEO-Batch-AMP-Checker/1.0)"
