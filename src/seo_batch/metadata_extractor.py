"""
DOM metadata extraction.

Builds one ExtractionResult per rendered page. Every report field has its
own extractor function; a failure in one field is logged and replaced by
that field's sentinel without touching any other field.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Comment

from .constants import (
    FAVICON_RELS,
    GLOBAL_JSON_VARIABLES,
    INVISIBLE_TEXT_TAGS,
    LIST_SEPARATOR,
    NO,
    NO_ERROR,
    NO_RESPONSE_STATUS,
    NOT_FOUND,
    PAIR_SEPARATOR,
    SKIPPED_HREF_PREFIXES,
    YES,
)
from .errors import ExtractionFieldError
from .models import (
    PAGE_FIELDS_AFTER_VENDORS,
    PAGE_FIELDS_BEFORE_VENDORS,
    ExtractionResult,
    PageSnapshot,
)
from .network_classifier import TrackingSignalCollector
from .vendors import DEFAULT_VENDOR_TABLE, VendorTable

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"\b\w+\b")

OPEN_GRAPH_FIELDS = {
    "og_title": "og:title",
    "og_description": "og:description",
    "og_image": "og:image",
    "og_url": "og:url",
    "og_type": "og:type",
    "og_site_name": "og:site_name",
}

TWITTER_FIELDS = {
    "twitter_card": "twitter:card",
    "twitter_site": "twitter:site",
    "twitter_creator": "twitter:creator",
    "twitter_title": "twitter:title",
    "twitter_description": "twitter:description",
    "twitter_image": "twitter:image",
}

META_NAME_FIELDS = {
    "description": "description",
    "keywords": "keywords",
    "viewport": "viewport",
    "meta_robots": "robots",
}

# Fields whose failure value is not NOT_FOUND
FAILURE_DEFAULTS = {
    "h1_count": "0",
    "hreflang_count": "0",
    "internal_links_count": "0",
    "external_links_count": "0",
    "body_word_count": "0",
    "schema_present": NO,
    "dynamic_json_detected": NO,
}


@dataclass
class SchemaSummary:
    """JSON-LD types and per-script parse errors of a page."""

    types: Set[str] = field(default_factory=set)
    errors: List[str] = field(default_factory=list)
    script_count: int = 0


@dataclass
class DynamicState:
    """Globals that held JSON, plus title/description found inside them."""

    variables: List[str] = field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None


def collect_schema_types(data, types: Set[str]) -> None:
    """Recursively collect every @type value in a parsed JSON-LD document."""
    if isinstance(data, dict):
        schema_type = data.get("@type")
        if isinstance(schema_type, str):
            types.add(schema_type)
        elif isinstance(schema_type, list):
            types.update(t for t in schema_type if isinstance(t, str))

        for key, value in data.items():
            if key != "@type" and isinstance(value, (dict, list)):
                collect_schema_types(value, types)

    elif isinstance(data, list):
        for item in data:
            collect_schema_types(item, types)


class _PageContext:
    """Parsed page plus lazily computed values shared by several fields."""

    def __init__(self, snapshot: PageSnapshot):
        self.snapshot = snapshot
        self.url = snapshot.url or snapshot.requested_url
        self.soup = BeautifulSoup(snapshot.html or "", "html.parser")

    def meta_content(self, attr: str, value: str) -> Optional[str]:
        tag = self.soup.find("meta", attrs={attr: value})
        if tag is None:
            return None
        return tag.get("content")

    def link_href(self, rel: str) -> Optional[str]:
        tag = self.soup.find("link", rel=rel, href=True)
        return tag["href"] if tag is not None else None

    def require_host(self) -> str:
        host = urlsplit(self.url).hostname
        if not host:
            raise ExtractionFieldError(f"Page URL has no host: '{self.url}'")
        return host.lower()

    @cached_property
    def schema(self) -> SchemaSummary:
        summary = SchemaSummary()
        scripts = self.soup.find_all("script", attrs={"type": "application/ld+json"})
        summary.script_count = len(scripts)
        for index, script in enumerate(scripts, start=1):
            raw = script.string or script.get_text() or ""
            try:
                data = json.loads(raw)
            except ValueError as e:
                summary.errors.append(f"[Script {index} JSON Syntax Error] {e}")
                continue
            collect_schema_types(data, summary.types)
        return summary

    @cached_property
    def dynamic_state(self) -> DynamicState:
        state = DynamicState()
        for variable, raw in self.snapshot.global_state.items():
            if not raw:
                continue
            try:
                data = json.loads(raw)
            except ValueError:
                logger.debug(f"{variable} on {self.url} is not JSON")
                continue
            state.variables.append(variable.replace("window.", "", 1))
            if isinstance(data, dict):
                if state.title is None and isinstance(data.get("title"), str) and data["title"].strip():
                    state.title = data["title"]
                if state.description is None and isinstance(data.get("description"), str) and data["description"].strip():
                    state.description = data["description"]
        return state

    @cached_property
    def link_counts(self) -> Tuple[int, int]:
        page_host = self.require_host()
        internal = external = 0
        for anchor in self.soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
                continue
            try:
                host = urlsplit(urljoin(self.url, href)).hostname
            except ValueError:
                if href.lower().startswith("http"):
                    external += 1
                else:
                    internal += 1
                continue
            if host and host.lower() == page_host:
                internal += 1
            else:
                external += 1
        return internal, external

    @cached_property
    def visible_text(self) -> str:
        if self.snapshot.body_text is not None:
            return self.snapshot.body_text
        body = self.soup.body or self.soup
        strings = (
            text for text in body.find_all(string=True)
            if not isinstance(text, Comment) and text.parent.name not in INVISIBLE_TEXT_TAGS
        )
        return " ".join(strings)


FieldExtractor = Callable[[_PageContext], object]


def _title(ctx: _PageContext) -> Optional[str]:
    title = ctx.snapshot.title
    if not title or not title.strip():
        title_tag = ctx.soup.find("title")
        title = title_tag.get_text() if title_tag is not None else None
    if not title or not title.strip():
        title = ctx.meta_content("property", "og:title")
    return title


def _is_amp(ctx: _PageContext) -> str:
    html = ctx.soup.find("html")
    if html is not None and (html.has_attr("amp") or html.has_attr("⚡")):
        return YES
    return YES if ctx.link_href("amphtml") else NO


def _status_code(ctx: _PageContext) -> str:
    status = ctx.snapshot.status_code
    return str(status) if status is not None else NO_RESPONSE_STATUS


def _schema_present(ctx: _PageContext) -> str:
    return YES if ctx.schema.types else NO


def _schema_types(ctx: _PageContext) -> Optional[str]:
    types = ctx.schema.types
    return LIST_SEPARATOR.join(sorted(types)) if types else None


def _schema_error(ctx: _PageContext) -> str:
    errors = ctx.schema.errors
    return PAIR_SEPARATOR.join(errors) if errors else NO_ERROR


def _html_lang(ctx: _PageContext) -> Optional[str]:
    html = ctx.soup.find("html")
    return html.get("lang") if html is not None else None


def _favicon_url(ctx: _PageContext) -> str:
    href = None
    links = ctx.soup.find_all("link", rel=True, href=True)
    for rel in FAVICON_RELS:
        for link in links:
            if " ".join(link["rel"]).lower() == rel and link["href"].strip():
                href = link["href"].strip()
                break
        if href:
            break

    if not href:
        parts = urlsplit(ctx.url)
        if not parts.scheme or not parts.netloc:
            raise ExtractionFieldError(f"Cannot build favicon URL from '{ctx.url}'")
        return f"{parts.scheme}://{parts.netloc}/favicon.ico"

    if not href.lower().startswith(("http://", "https://")):
        href = urljoin(ctx.url, href)
    return href


def _hreflang_links(ctx: _PageContext) -> List[str]:
    pairs = []
    for link in ctx.soup.find_all("link", rel="alternate", hreflang=True):
        href = link.get("href")
        if href:
            pairs.append(f"{link['hreflang']}:{href}")
    return pairs


def _body_word_count(ctx: _PageContext) -> str:
    return str(len(WORD_PATTERN.findall(ctx.visible_text)))


def _meta_name(name: str) -> FieldExtractor:
    return lambda ctx: ctx.meta_content("name", name)


def _meta_property(prop: str) -> FieldExtractor:
    return lambda ctx: ctx.meta_content("property", prop)


def _twitter(name: str) -> FieldExtractor:
    return lambda ctx: ctx.meta_content("name", name) or ctx.meta_content("property", name)


def _build_field_extractors() -> Dict[str, FieldExtractor]:
    extractors: Dict[str, FieldExtractor] = {
        "title": _title,
        "canonical": lambda ctx: ctx.link_href("canonical"),
        "amp_url": lambda ctx: ctx.link_href("amphtml"),
        "is_amp": _is_amp,
        "h1_count": lambda ctx: str(len(ctx.soup.find_all("h1"))),
        "schema_present": _schema_present,
        "schema_types": _schema_types,
        "schema_error": _schema_error,
        "status_code": _status_code,
        "html_lang": _html_lang,
        "publisher_link": lambda ctx: ctx.link_href("publisher"),
        "favicon_url": _favicon_url,
        "hreflang_links": lambda ctx: PAIR_SEPARATOR.join(_hreflang_links(ctx)) or None,
        "hreflang_count": lambda ctx: str(len(_hreflang_links(ctx))),
        "internal_links_count": lambda ctx: str(ctx.link_counts[0]),
        "external_links_count": lambda ctx: str(ctx.link_counts[1]),
        "body_word_count": _body_word_count,
        "dynamic_json_detected": lambda ctx: YES if ctx.dynamic_state.variables else NO,
        "dynamic_json_variables": lambda ctx: LIST_SEPARATOR.join(ctx.dynamic_state.variables) or None,
        "dynamic_title": lambda ctx: ctx.dynamic_state.title,
        "dynamic_description": lambda ctx: ctx.dynamic_state.description,
    }
    for field_name, meta_name in META_NAME_FIELDS.items():
        extractors[field_name] = _meta_name(meta_name)
    for field_name, prop in OPEN_GRAPH_FIELDS.items():
        extractors[field_name] = _meta_property(prop)
    for field_name, name in TWITTER_FIELDS.items():
        extractors[field_name] = _twitter(name)
    return extractors


FIELD_EXTRACTORS = _build_field_extractors()


class MetadataExtractor:
    """Extracts report fields from a rendered page snapshot."""

    def __init__(
        self,
        vendor_table: VendorTable = DEFAULT_VENDOR_TABLE,
        global_variables: Sequence[str] = GLOBAL_JSON_VARIABLES,
        field_extractors: Optional[Dict[str, FieldExtractor]] = None,
    ):
        """
        Initialize the extractor.

        Args:
            vendor_table: Vendors whose presence flags are reported
            global_variables: Page globals the session probes for JSON state
            field_extractors: Override of the per-field extractor table
        """
        self.vendor_table = vendor_table
        self.global_variables = tuple(global_variables)
        self.field_extractors = dict(FIELD_EXTRACTORS if field_extractors is None else field_extractors)

    @property
    def field_names(self) -> List[str]:
        """Page field names in report order."""
        return (
            list(PAGE_FIELDS_BEFORE_VENDORS)
            + self.vendor_table.keys()
            + list(PAGE_FIELDS_AFTER_VENDORS)
        )

    def _extract_or_sentinel(self, ctx: _PageContext, name: str, extractor: FieldExtractor) -> object:
        try:
            return extractor(ctx)
        except Exception as e:
            logger.warning(f"Could not extract '{name}' from {ctx.url}: {type(e).__name__}: {e}")
            return FAILURE_DEFAULTS.get(name, NOT_FOUND)

    def extract(
        self,
        snapshot: PageSnapshot,
        collector: Optional[TrackingSignalCollector] = None,
    ) -> ExtractionResult:
        """Extract every field from one page.

        Args:
            snapshot: Captured state of the rendered page
            collector: The session's tracking collector. DOM signals are
                added to it before the vendor flags are read.

        Returns:
            ExtractionResult holding every field in field_names
        """
        ctx = _PageContext(snapshot)
        values: Dict[str, object] = {}

        for name, extractor in self.field_extractors.items():
            values[name] = self._extract_or_sentinel(ctx, name, extractor)

        if collector is None:
            collector = TrackingSignalCollector(self.vendor_table)
        try:
            collector.observe_dom(ctx.soup)
        except Exception as e:
            logger.warning(f"Could not scan DOM tracking signals on {ctx.url}: {type(e).__name__}: {e}")
        signals = collector.snapshot()
        for key in self.vendor_table.keys():
            values[key] = signals.vendor_flag(key)

        logger.debug(f"Extracted {len(values)} fields from {ctx.url}")
        return ExtractionResult(values, field_names=self.field_names)
