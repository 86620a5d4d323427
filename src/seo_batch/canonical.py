"""
Canonical URL validation with AMP awareness.

A page's declared canonical is valid when both URLs point at the same
document once AMP markers and cosmetic differences are removed, and an
AMP page never names another AMP page as its canonical.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from .constants import (
    CANONICAL_AMP_TO_AMP_LABEL,
    CANONICAL_INVALID_LABEL,
    CANONICAL_NOT_FOUND_LABEL,
    CANONICAL_VALID_LABEL,
    NOT_FOUND,
)
from .models import CanonicalStatus

logger = logging.getLogger(__name__)

AMP_QUERY_FLAGS = ("amp", "amp=1", "amp=true")
AMP_HTML_SUFFIX = ".amp.html"

_AMP_SEGMENT = re.compile(r"/amp(?=/|$)", re.IGNORECASE)
_REPEATED_SLASHES = re.compile(r"/{2,}")
_TRAILING_SLASHES_OR_SPACE = re.compile(r"[/\s]+$")


@dataclass(frozen=True)
class CanonicalCheck:
    """Validation status plus the label written to the report."""

    status: CanonicalStatus
    label: str


def _is_amp_flag(pair: str) -> bool:
    return pair.lower() in AMP_QUERY_FLAGS


def is_amp_url(url: Optional[str]) -> bool:
    """Check whether a URL addresses the AMP version of a page.

    Args:
        url: Absolute or relative URL

    Returns:
        True if the path has an /amp/ segment, ends in /amp or .amp.html,
        or the query carries an amp flag
    """
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        lowered = url.lower()
        return "/amp/" in lowered or lowered.endswith("/amp") or lowered.endswith(AMP_HTML_SUFFIX)

    path = parts.path.lower()
    if "/amp/" in path or path.endswith("/amp") or path.endswith(AMP_HTML_SUFFIX):
        return True
    return any(_is_amp_flag(pair) for pair in parts.query.split("&"))


def strip_amp_markers(url: str) -> str:
    """Remove AMP markers from a URL.

    Drops a trailing .amp.html, the amp query flags and every /amp path
    segment. Unparseable input is returned unchanged.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url

    path = parts.path
    if path.lower().endswith(AMP_HTML_SUFFIX):
        path = path[:-len(AMP_HTML_SUFFIX)]
    path = _AMP_SEGMENT.sub("", path)

    query = "&".join(pair for pair in parts.query.split("&") if pair and not _is_amp_flag(pair))
    return urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment))


def _normalize_host(parts: SplitResult) -> str:
    host = (parts.hostname or "").strip().lower()
    while host.startswith("www."):
        host = host[len("www."):].lstrip()
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port and port not in (80, 443):
        host = f"{host}:{port}"
    return host


def _normalize_query(query: str) -> str:
    pairs = []
    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        key = key.strip()
        if not key:
            continue
        pairs.append((key, value.strip()))
    pairs.sort(key=lambda pair: pair[0])
    return "&".join(f"{key}={value}" if value else key for key, value in pairs)


def normalize_url(url: str) -> str:
    """Normalize a URL for equivalence checks.

    The result uses https, has no leading www. label, a lower-case host, no
    repeated or trailing slashes (the root path stays "/"), no fragment and
    query pairs sorted by key. Normalizing a normalized URL returns it
    unchanged.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL string
    """
    text = (url or "").strip()
    try:
        parts = urlsplit(text)
        host = _normalize_host(parts)
    except ValueError:
        # Malformed authority (bad port, unbalanced IPv6 bracket)
        trimmed = _TRAILING_SLASHES_OR_SPACE.sub("", text).lower()
        return trimmed if trimmed == text else normalize_url(trimmed)

    path = _REPEATED_SLASHES.sub("/", parts.path.strip())
    if not parts.netloc and path and not path.startswith("/"):
        path = "/" + path
    path = _TRAILING_SLASHES_OR_SPACE.sub("", path) or "/"

    normalized = f"https://{host}{path}"
    query = _normalize_query(parts.query)
    if query:
        normalized = f"{normalized}?{query}"
    return normalized


def _resolve_relative(page_url: str, canonical: str) -> str:
    """Resolve a relative canonical href against the page URL."""
    try:
        parts = urlsplit(canonical)
        if parts.scheme or parts.netloc:
            return canonical
        return urljoin(page_url, canonical)
    except ValueError:
        return canonical


def _canonical_missing(canonical: Optional[str]) -> bool:
    return canonical is None or not canonical.strip() or canonical.strip() == NOT_FOUND


def check_canonical(page_url: str, canonical: Optional[str]) -> CanonicalCheck:
    """Compare a page URL with its declared canonical URL.

    Args:
        page_url: URL the page was requested with
        canonical: href of the canonical link, or NOT_FOUND

    Returns:
        CanonicalCheck with the status and its report label
    """
    if _canonical_missing(canonical):
        return CanonicalCheck(CanonicalStatus.NOT_APPLICABLE, CANONICAL_NOT_FOUND_LABEL)

    canonical = _resolve_relative(page_url, canonical.strip())

    if is_amp_url(page_url) and is_amp_url(canonical):
        logger.debug(f"AMP page {page_url} declares AMP canonical {canonical}")
        return CanonicalCheck(CanonicalStatus.INVALID, CANONICAL_AMP_TO_AMP_LABEL)

    page_normalized = normalize_url(strip_amp_markers(page_url))
    canonical_normalized = normalize_url(strip_amp_markers(canonical))
    if page_normalized == canonical_normalized:
        return CanonicalCheck(CanonicalStatus.VALID, CANONICAL_VALID_LABEL)

    logger.debug(f"Canonical mismatch: {page_normalized} != {canonical_normalized}")
    return CanonicalCheck(CanonicalStatus.INVALID, CANONICAL_INVALID_LABEL)


def validate_canonical(page_url: str, canonical: Optional[str]) -> CanonicalStatus:
    """Return only the status of check_canonical."""
    return check_canonical(page_url, canonical).status
