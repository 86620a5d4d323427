"""Data models for batch extraction results."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .constants import (
    COMSCORE_MISSING_VALUE,
    FAILED_AFTER_RETRIES,
    LIST_SEPARATOR,
    NO,
    NO_PROCESSING_ERROR,
    NOT_FOUND,
    YES,
)

# Page fields in report order. Vendor flag fields are added per vendor table.
PAGE_FIELDS_BEFORE_VENDORS = (
    "title",
    "description",
    "keywords",
    "h1_count",
    "canonical",
    "canonical_validation",
    "is_amp",
    "amp_url",
)

PAGE_FIELDS_AFTER_VENDORS = (
    "schema_present",
    "schema_types",
    "schema_error",
    "status_code",
    "og_title",
    "og_description",
    "og_image",
    "og_url",
    "og_type",
    "og_site_name",
    "twitter_card",
    "twitter_site",
    "twitter_creator",
    "twitter_title",
    "twitter_description",
    "twitter_image",
    "html_lang",
    "viewport",
    "meta_robots",
    "publisher_link",
    "hreflang_links",
    "hreflang_count",
    "internal_links_count",
    "external_links_count",
    "body_word_count",
    "favicon_url",
    "taboola_widget",
    "dynamic_json_detected",
    "dynamic_json_variables",
    "dynamic_title",
    "dynamic_description",
)


def _cell(value: object) -> str:
    """Turn an extracted value into a report cell, never blank."""
    if value is None:
        return NOT_FOUND
    text = str(value).strip()
    return text if text else NOT_FOUND


class ExtractionResult(Mapping[str, str]):
    """Immutable mapping of field name to extracted value.

    Reading a field that was never set returns NOT_FOUND, and blank or None
    values are stored as NOT_FOUND, so a result never holds an empty cell.
    """

    __slots__ = ("_fields",)

    def __init__(self, values: Optional[Mapping[str, object]] = None, field_names: Iterable[str] = ()):
        fields: Dict[str, str] = {name: NOT_FOUND for name in field_names}
        for name, value in (values or {}).items():
            fields[name] = _cell(value)
        self._fields = MappingProxyType(fields)

    def __getitem__(self, name: str) -> str:
        return self._fields.get(name, NOT_FOUND)

    def __iter__(self):
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExtractionResult):
            return dict(self._fields) == dict(other._fields)
        return NotImplemented

    def __hash__(self):
        return hash(tuple(sorted(self._fields.items())))

    def __repr__(self) -> str:
        return f"ExtractionResult({dict(self._fields)!r})"

    def get(self, name: str, default: Optional[str] = None) -> str:
        if name in self._fields:
            return self._fields[name]
        return NOT_FOUND if default is None else default

    def merged(self, **overrides: object) -> "ExtractionResult":
        """Return a copy with some fields replaced."""
        values: Dict[str, object] = dict(self._fields)
        values.update(overrides)
        return ExtractionResult(values)


class AttemptOutcome(str, Enum):
    """Outcome of one page attempt."""

    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"


class CanonicalStatus(str, Enum):
    """Result of comparing a page URL with its declared canonical."""

    NOT_APPLICABLE = "not_applicable"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class ProcessingAttempt:
    """One try at processing a target."""

    attempt: int
    outcome: AttemptOutcome
    error: Optional[str] = None


@dataclass(frozen=True)
class TrackingSignals:
    """Tracking evidence gathered during one page session."""

    vendors: Mapping[str, bool] = field(default_factory=dict)
    tids: Tuple[str, ...] = ()
    ppid: Optional[str] = None
    comscore_c1: Optional[str] = None
    comscore_c2: Optional[str] = None

    def vendor_flag(self, key: str) -> str:
        return YES if self.vendors.get(key) else NO

    @property
    def tid_display(self) -> str:
        return LIST_SEPARATOR.join(self.tids) if self.tids else NOT_FOUND

    @property
    def comscore_display(self) -> str:
        if self.comscore_c1 is None and self.comscore_c2 is None:
            return NOT_FOUND
        c1 = self.comscore_c1 or COMSCORE_MISSING_VALUE
        c2 = self.comscore_c2 or COMSCORE_MISSING_VALUE
        return f"c1={c1}, c2={c2}"

    @property
    def ppid_display(self) -> str:
        return self.ppid or NOT_FOUND


@dataclass(frozen=True)
class PageSnapshot:
    """What a page session captured from the live page.

    global_state maps each probed global variable name to the raw result of
    JSON.stringify in the page, or None when the variable was absent.
    """

    requested_url: str
    url: str
    html: str = ""
    title: Optional[str] = None
    body_text: Optional[str] = None
    status_code: Optional[int] = None
    global_state: Mapping[str, Optional[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ReportRow:
    """Final record for one target, written exactly once."""

    target: str
    extraction: ExtractionResult
    signals: TrackingSignals = field(default_factory=TrackingSignals)
    attempts: int = 1
    error: str = NO_PROCESSING_ERROR
    attempt_log: Tuple[ProcessingAttempt, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.error == NO_PROCESSING_ERROR

    @classmethod
    def failed(
        cls,
        target: str,
        error: str,
        attempts: int,
        attempt_log: Tuple[ProcessingAttempt, ...] = (),
    ) -> "ReportRow":
        """Build the terminal row of a target that never succeeded."""
        extraction = ExtractionResult({"status_code": FAILED_AFTER_RETRIES})
        return cls(
            target=target,
            extraction=extraction,
            signals=TrackingSignals(),
            attempts=attempts,
            error=error,
            attempt_log=attempt_log,
        )
