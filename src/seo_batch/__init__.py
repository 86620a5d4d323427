"""Batch SEO and tracking metadata extraction from rendered web pages."""

__version__ = "0.1.0"

from seo_batch.canonical import check_canonical, normalize_url, validate_canonical
from seo_batch.config import RunConfig, settings
from seo_batch.browser_config import BrowserConfig
from seo_batch.metadata_extractor import MetadataExtractor
from seo_batch.models import (
    CanonicalStatus,
    ExtractionResult,
    PageSnapshot,
    ReportRow,
    TrackingSignals,
)
from seo_batch.network_classifier import TrackingSignalCollector, extract_from_request
from seo_batch.pipeline import BatchSummary, SeoBatchRunner
from seo_batch.query_string import parse_query_params
from seo_batch.vendors import DEFAULT_VENDOR_TABLE, VendorTable

__all__ = [
    "BatchSummary",
    "BrowserConfig",
    "CanonicalStatus",
    "DEFAULT_VENDOR_TABLE",
    "ExtractionResult",
    "MetadataExtractor",
    "PageSnapshot",
    "ReportRow",
    "RunConfig",
    "SeoBatchRunner",
    "TrackingSignalCollector",
    "TrackingSignals",
    "VendorTable",
    "check_canonical",
    "extract_from_request",
    "normalize_url",
    "parse_query_params",
    "settings",
    "validate_canonical",
]
