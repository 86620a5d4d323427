"""
Target collection: seed files and same-site link discovery.

Targets are raw URL strings. Sources are merged by exact string equality,
keeping the first occurrence, so "https://a.com/page" and
"https://a.com/page/" stay two separate targets.
"""
import logging
import re
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Pattern
from urllib.parse import urljoin, urlsplit, urlunsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .browser_config import BrowserConfig
from .errors import PermanentInputError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http://", "https://")
NON_PAGE_HREF_PREFIXES = ("#", "mailto:", "tel:", "javascript:")


def parse_seed_line(line: str) -> Optional[str]:
    """Turn one seed file line into a target.

    Returns:
        The trimmed URL, or None for a blank line

    Raises:
        PermanentInputError: If the line is not an http(s) URL
    """
    url = line.strip()
    if not url:
        return None
    if not url.lower().startswith(ALLOWED_SCHEMES):
        raise PermanentInputError(f"Not an http(s) URL: '{url}'", line=url)
    return url


def read_seed_file(path) -> List[str]:
    """Read targets from a newline-delimited file.

    Blank lines are skipped; invalid lines are logged and skipped.

    Args:
        path: Seed file path

    Returns:
        Unique targets in file order, empty if the file is missing
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.error(f"URL file not found: {file_path}")
        return []

    urls = []
    with open(file_path, 'r', encoding='utf-8-sig') as f:
        for line_number, line in enumerate(f, start=1):
            try:
                url = parse_seed_line(line)
            except PermanentInputError as e:
                logger.warning(f"Skipping line {line_number} of {file_path}: {e}")
                continue
            if url:
                urls.append(url)

    unique = merge_targets(urls)
    logger.info(f"Read {len(unique)} URL(s) from {file_path}")
    return unique


def merge_targets(*sources: Iterable[str]) -> List[str]:
    """Merge target lists by exact string equality, first occurrence wins."""
    seen = set()
    merged = []
    for source in sources:
        for url in source:
            if url not in seen:
                seen.add(url)
                merged.append(url)
    return merged


def compile_blocklist(keywords: Optional[str]) -> Optional[Pattern]:
    """Build a case-insensitive pattern from comma-separated keywords.

    Returns:
        Compiled pattern, or None when no keyword is given
    """
    if not keywords:
        return None
    parts = [re.escape(k.strip().lower()) for k in keywords.split(",") if k.strip()]
    if not parts:
        return None
    return re.compile("|".join(parts), re.IGNORECASE)


def normalize_discovered_link(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve an anchor href to a same-host page URL.

    The result is scheme://host/path without query, fragment or trailing
    slash; the root path keeps its slash.

    Args:
        href: Raw anchor href
        base_url: URL of the page the anchor was found on

    Returns:
        Normalized URL, or None if the href is not a same-host page link
    """
    if not href:
        return None
    cleaned = re.sub(r"\s+", "", href)
    if not cleaned or cleaned.lower().startswith(NON_PAGE_HREF_PREFIXES):
        return None

    try:
        base = urlsplit(base_url)
        resolved = urlsplit(urljoin(base_url, cleaned))
    except ValueError:
        logger.debug(f"Skipping malformed href '{href}'")
        return None

    if resolved.scheme not in ("http", "https"):
        return None
    if not resolved.hostname or not base.hostname:
        return None
    if resolved.hostname.lower() != base.hostname.lower():
        return None

    path = resolved.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunsplit((resolved.scheme, resolved.netloc, path, "", ""))


def filter_links(
    hrefs: Iterable[Optional[str]],
    base_url: str,
    blocklist: Optional[Pattern] = None,
) -> List[str]:
    """Normalize hrefs found on base_url and drop blocked or foreign ones."""
    links = []
    for href in hrefs:
        url = normalize_discovered_link(href, base_url)
        if url is None:
            continue
        if blocklist is not None and blocklist.search(url.lower()):
            logger.debug(f"Blocked by keyword filter: {url}")
            continue
        links.append(url)
    return merge_targets(links)


class LinkDiscoverer:
    """Collects same-host page links from a base URL with Playwright."""

    def __init__(
        self,
        browser_config: BrowserConfig,
        blocklist: Optional[Pattern] = None,
        playwright_factory: Callable = sync_playwright,
    ):
        self._config = browser_config
        self._blocklist = blocklist
        self._playwright_factory = playwright_factory

    def discover(self, base_url: str) -> List[str]:
        """Return the filtered same-host links of base_url.

        Navigation failures are logged and yield an empty list.
        """
        logger.info(f"Discovering links on {base_url}")
        playwright = browser = None
        try:
            playwright = self._playwright_factory().start()
            launcher = getattr(playwright, self._config.browser_type)
            launch_options = {"headless": self._config.headless}
            if self._config.launch_args:
                launch_options["args"] = self._config.launch_args
            browser = launcher.launch(**launch_options)
            context = browser.new_context(user_agent=self._config.get_user_agent())
            page = context.new_page()

            response = page.goto(
                base_url,
                wait_until=self._config.wait_until,
                timeout=self._config.navigation_timeout_ms,
            )
            if response is None or response.status >= 400:
                status = response.status if response is not None else "No Response"
                logger.error(f"Could not load {base_url} for link discovery (HTTP Status: {status})")
                return []

            hrefs = page.eval_on_selector_all("a[href]", "anchors => anchors.map(a => a.getAttribute('href'))")
        except PlaywrightError as e:
            logger.error(f"Link discovery failed for {base_url}: {e}")
            return []
        finally:
            if browser is not None:
                try:
                    browser.close()
                except Exception as e:
                    logger.warning(f"Error closing discovery browser: {e}")
            if playwright is not None:
                try:
                    playwright.stop()
                except Exception as e:
                    logger.warning(f"Error stopping Playwright: {e}")

        links = filter_links(hrefs, base_url, self._blocklist)
        logger.info(f"Discovered {len(links)} link(s) on {base_url}")
        return links
