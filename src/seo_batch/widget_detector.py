"""
Taboola widget detection.

Classifies embedded Taboola placements found in rendered markup into
human-readable descriptors such as "Attribute: thumbnails-a (Single Image
(Standard))".
"""
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from .errors import WidgetDetectionError

logger = logging.getLogger(__name__)

TYPE_INFINITE_FEED = "Infinite Position (Feed)"
TYPE_SINGLE_IMAGE_STANDARD = "Single Image (Standard)"
TYPE_UNKNOWN_PREFIX = "Unknown Mode: "
UNCLASSIFIED_PRESENT = "Script Present (Unclassified)"
NO_WIDGET_FOUND = "No Taboola Widget Found"
ERROR_PREFIX = "Error checking Taboola: "

FEED_MODE_HINTS = ("feed", "infinity")
STANDARD_MODE_HINTS = ("thumbnails", "grid", "standard", "text-links", "single")

TABOOLA_SCRIPT_MARKERS = ("_taboola.push", "window._taboola")

# Repeated recommendation blocks beyond this count indicate a feed
FEED_BLOCK_THRESHOLD = 5

MODE_PATTERN = re.compile(r"""mode\s*[:=]\s*['"]?([^,'"\s}]+)['"]?""")
_HEIGHT_AUTO = re.compile(r"height\s*:\s*auto", re.IGNORECASE)


def classify_mode(mode: str) -> str:
    """Map a Taboola mode value onto a widget category."""
    lowered = mode.lower()
    if any(hint in lowered for hint in FEED_MODE_HINTS):
        return TYPE_INFINITE_FEED
    if any(hint in lowered for hint in STANDARD_MODE_HINTS):
        return TYPE_SINGLE_IMAGE_STANDARD
    return f"{TYPE_UNKNOWN_PREFIX}{mode}"


def _parse_markup(html: Optional[str]) -> BeautifulSoup:
    if html is None:
        raise WidgetDetectionError("No markup to inspect")
    try:
        return BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise WidgetDetectionError(f"Markup could not be parsed: {e}") from e


def _taboola_scripts(soup: BeautifulSoup) -> List[str]:
    texts = []
    for script in soup.find_all("script"):
        text = script.string or script.get_text() or ""
        if any(marker in text for marker in TABOOLA_SCRIPT_MARKERS):
            texts.append(text)
    return texts


def _is_feed_container(element) -> bool:
    classes = [c.lower() for c in (element.get("class") or [])]
    element_id = (element.get("id") or "").lower()
    if "taboola-feed" in classes or "feed" in element_id:
        return True
    if _HEIGHT_AUTO.search(element.get("style") or ""):
        return True
    if len(element.select("div.trc_rbox_outer")) > FEED_BLOCK_THRESHOLD:
        return True
    return element.select_one("div[id^='taboola-infinite-feed']") is not None


def _detect(soup: BeautifulSoup) -> List[str]:
    found: List[str] = []

    def add(descriptor: str) -> None:
        if descriptor not in found:
            found.append(descriptor)

    for element in soup.select("div[data-taboola-mode]"):
        mode = (element.get("data-taboola-mode") or "").strip()
        if mode:
            add(f"Attribute: {mode} ({classify_mode(mode)})")

    scripts = _taboola_scripts(soup)
    for text in scripts:
        for mode in MODE_PATTERN.findall(text):
            add(f"Script: {mode} ({classify_mode(mode)})")

    if not found:
        containers = soup.select("[id*='taboola'], [class*='taboola']")
        if containers:
            # One descriptor per page; nested taboola-* children belong to the outer placement
            is_feed = any(_is_feed_container(element) for element in containers)
            category = TYPE_INFINITE_FEED if is_feed else TYPE_SINGLE_IMAGE_STANDARD
            add(f"Container: {category}")

    if not found and (scripts or soup.select_one("script[src*='taboola.com']") is not None):
        add(UNCLASSIFIED_PRESENT)

    return found


def detect_taboola_widgets(html: Optional[str], url: str = "") -> List[str]:
    """Describe every Taboola widget placement in a page.

    Args:
        html: Rendered page markup
        url: Page URL, used for log context only

    Returns:
        Deduplicated descriptors in discovery order, [NO_WIDGET_FOUND] when
        nothing matched, or a single error descriptor when the markup could
        not be inspected
    """
    try:
        soup = _parse_markup(html)
        found = _detect(soup)
    except WidgetDetectionError as e:
        logger.warning(f"Taboola detection failed for {url}: {e}")
        return [f"{ERROR_PREFIX}{e}"]
    except Exception as e:
        logger.warning(f"Taboola detection failed for {url}: {type(e).__name__}: {e}")
        return [f"{ERROR_PREFIX}{type(e).__name__}: {e}"]

    if not found:
        return [NO_WIDGET_FOUND]
    logger.debug(f"Taboola widgets on {url}: {found}")
    return found
