"""
Network event classification for tracking vendors and analytics endpoints.

Request URLs arrive from the browser's request listener while the page
loads; the static DOM is scanned once after navigation. Both feed a
TrackingSignalCollector that belongs to exactly one page session.
"""
import json
import logging
import re
import threading
from typing import Dict, Iterable, List, Optional, Set

from bs4 import BeautifulSoup

from .constants import (
    COMSCORE_BEACON_FRAGMENTS,
    GA4_COLLECT_FRAGMENT,
    GTAG_LOADER_FRAGMENT,
    PPID_PARAMETERS,
)
from .models import TrackingSignals
from .query_string import parse_query_params
from .vendors import DEFAULT_VENDOR_TABLE, VendorTable

logger = logging.getLogger(__name__)

# Measurement ids referenced from script URLs or inline gtag snippets
GTAG_ID_PATTERN = re.compile(r"[?&]id=(G-[A-Za-z0-9]+)")


def extract_ga4_from_request(url: Optional[str]) -> Dict[str, str]:
    """Extract GA4 identifiers from a request URL.

    A collect hit yields its ``tid`` and the platform user id (``ppid``).
    A gtag.js loader yields its ``id`` as ``tid`` when no collect tid is
    present.

    Args:
        url: Outgoing request URL

    Returns:
        Dictionary with any of ``tid`` and ``ppid``; empty if the URL is not
        a GA4 request
    """
    result: Dict[str, str] = {}
    if not url:
        return result

    if GA4_COLLECT_FRAGMENT in url:
        params = parse_query_params(url)
        tid = params.get("tid")
        if tid:
            result["tid"] = tid
        for name in PPID_PARAMETERS:
            value = params.get(name)
            if value:
                result["ppid"] = value
                break

    if "tid" not in result and GTAG_LOADER_FRAGMENT in url:
        measurement_id = parse_query_params(url).get("id")
        if measurement_id:
            result["tid"] = measurement_id

    return result


def extract_comscore_from_request(url: Optional[str]) -> Dict[str, str]:
    """Extract Comscore c1/c2 from a beacon request URL.

    Args:
        url: Outgoing request URL

    Returns:
        Dictionary with non-empty ``c1`` and ``c2`` values; empty if the URL
        is not a Comscore beacon
    """
    result: Dict[str, str] = {}
    if not url or not any(fragment in url for fragment in COMSCORE_BEACON_FRAGMENTS):
        return result

    params = parse_query_params(url)
    for name in ("c1", "c2"):
        value = params.get(name)
        if value:
            result[name] = value
    return result


def extract_from_request(url: Optional[str]) -> Dict[str, str]:
    """Extract every structured analytics parameter a request carries."""
    result = extract_ga4_from_request(url)
    result.update(extract_comscore_from_request(url))
    return result


def _iter_json_strings(value) -> Iterable[str]:
    """Yield every string nested anywhere in a parsed JSON value."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for key, item in value.items():
            yield str(key)
            yield from _iter_json_strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _iter_json_strings(item)


class TrackingSignalCollector:
    """Thread-safe accumulator of tracking evidence for one page session.

    observe_request is installed as the browser's request listener and may
    run on the engine's callback path; every mutation happens under a lock.
    Vendor presence only ever turns on.
    """

    def __init__(self, vendor_table: VendorTable = DEFAULT_VENDOR_TABLE):
        self._vendor_table = vendor_table
        self._lock = threading.Lock()
        self._vendor_hits: Set[str] = set()
        self._collect_tids: List[str] = []
        self._fallback_tids: List[str] = []
        self._ppid: Optional[str] = None
        self._comscore: Dict[str, str] = {}
        self.requests_seen = 0

    def observe_request(self, url: str) -> None:
        """Record one outgoing request URL."""
        if not url:
            return
        ga4 = extract_ga4_from_request(url)
        comscore = extract_comscore_from_request(url)
        vendors = self._vendor_table.match(url)

        with self._lock:
            self.requests_seen += 1
            self._vendor_hits.update(vendors)
            if "tid" in ga4:
                target = self._collect_tids if GA4_COLLECT_FRAGMENT in url else self._fallback_tids
                if ga4["tid"] not in target:
                    target.append(ga4["tid"])
            if "ppid" in ga4:
                self._ppid = ga4["ppid"]
            if comscore:
                self._comscore.update(comscore)

        if ga4 or comscore:
            logger.debug(f"Analytics request {url[:120]} -> {ga4 or comscore}")

    def observe_text(self, text: Optional[str]) -> None:
        """Record a DOM string such as a script source or inline script."""
        if not text:
            return
        vendors = self._vendor_table.match(text)
        measurement_ids = GTAG_ID_PATTERN.findall(text)

        with self._lock:
            self._vendor_hits.update(vendors)
            for measurement_id in measurement_ids:
                if measurement_id not in self._fallback_tids:
                    self._fallback_tids.append(measurement_id)

    def observe_dom(self, soup: BeautifulSoup) -> None:
        """Scan scripts and AMP analytics components of a parsed page."""
        for script in soup.find_all("script"):
            self.observe_text(script.get("src"))
            self.observe_text(script.string or script.get_text())

        for component in soup.find_all("amp-analytics"):
            for attribute in ("type", "src", "config"):
                self.observe_text(component.get(attribute))
            config_script = component.find("script", attrs={"type": "application/json"})
            if config_script is None:
                continue
            raw = config_script.string or config_script.get_text()
            try:
                config = json.loads(raw)
            except (TypeError, ValueError) as e:
                logger.debug(f"Unparseable amp-analytics config: {e}")
                continue
            for value in _iter_json_strings(config):
                self.observe_text(value)

        for tag_name in ("amp-pixel", "amp-iframe"):
            for element in soup.find_all(tag_name):
                self.observe_text(element.get("src"))

    def snapshot(self) -> TrackingSignals:
        """Return the evidence gathered so far as an immutable record."""
        with self._lock:
            tids = tuple(self._collect_tids or self._fallback_tids)
            return TrackingSignals(
                vendors={key: key in self._vendor_hits for key in self._vendor_table.keys()},
                tids=tids,
                ppid=self._ppid,
                comscore_c1=self._comscore.get("c1"),
                comscore_c2=self._comscore.get("c2"),
            )
