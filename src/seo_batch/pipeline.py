"""
Batch run orchestration.

Wires the configured pieces together: targets from discovery and the seed
file, one retrying page task per target on the worker pool, and the report
aggregator receiving rows in submission order.
"""
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.sync_api import sync_playwright

from .amp_validator import AmpValidator, not_validated
from .config import RunConfig
from .constants import NOT_FOUND, YES
from .metadata_extractor import MetadataExtractor
from .models import ReportRow
from .page_session import PageSessionController
from .report import ReportAggregator, ReportSchema, open_sink
from .retry import process_target
from .scheduler import BatchScheduler
from .targets import LinkDiscoverer, compile_blocklist, merge_targets, read_seed_file
from .vendors import DEFAULT_VENDOR_TABLE, VendorTable

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """Totals of a finished batch run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    output_path: Optional[str] = None
    rows: List[ReportRow] = field(default_factory=list)


def amp_validation_target(row: ReportRow) -> Optional[str]:
    """The URL to send to the AMP validator for a row, if any."""
    amp_url = row.extraction["amp_url"]
    if amp_url != NOT_FOUND:
        return amp_url
    if row.extraction["is_amp"] == YES:
        return row.target
    return None


class SeoBatchRunner:
    """Runs one batch according to a RunConfig."""

    def __init__(
        self,
        config: RunConfig,
        playwright_factory: Callable = sync_playwright,
        amp_validator: Optional[AmpValidator] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the runner.

        Args:
            config: Run configuration
            playwright_factory: Source of Playwright instances
            amp_validator: Validator used when config.validate_amp is set
            sleep: Retry backoff wait, defaults to time.sleep
        """
        self.config = config
        self.vendor_table = self._load_vendor_table()
        self._playwright_factory = playwright_factory
        self._amp_validator = amp_validator
        self._sleep = sleep

    def _load_vendor_table(self) -> VendorTable:
        if self.config.vendor_table_file:
            return VendorTable.from_file(self.config.vendor_table_file)
        return DEFAULT_VENDOR_TABLE

    def collect_targets(self) -> List[str]:
        """Discovered links first, then seed file URLs, deduplicated."""
        discovered: List[str] = []
        if self.config.base_url:
            discoverer = LinkDiscoverer(
                self.config.browser,
                blocklist=compile_blocklist(self.config.static_page_keywords),
                playwright_factory=self._playwright_factory,
            )
            discovered = discoverer.discover(self.config.base_url)

        seeded: List[str] = []
        if self.config.read_url_file_enabled:
            seeded = read_seed_file(self.config.url_input_file)

        targets = merge_targets(discovered, seeded)
        logger.info(
            f"{len(targets)} unique target(s) "
            f"({len(discovered)} discovered, {len(seeded)} from file)"
        )
        return targets

    def _build_task(self, controller: PageSessionController) -> Callable[[str], ReportRow]:
        retry_kwargs = {
            "max_retries": self.config.max_retries,
            "retry_delay": self.config.retry_delay_seconds,
        }
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep

        validator = None
        if self.config.validate_amp:
            validator = self._amp_validator or AmpValidator()

        def task(url: str) -> ReportRow:
            row = process_target(url, controller, **retry_kwargs)
            if validator is None:
                return row
            amp_target = amp_validation_target(row)
            result = validator.validate(amp_target) if amp_target else not_validated(url)
            extraction = row.extraction.merged(amp_validation=result.summary)
            return dataclasses.replace(row, extraction=extraction)

        return task

    def run(self, targets: Optional[List[str]] = None) -> BatchSummary:
        """Process every target and write the report.

        Args:
            targets: Explicit targets; collected from config when omitted

        Returns:
            BatchSummary of the run

        Raises:
            ReportIOError: If the report could not be written
        """
        if targets is None:
            targets = self.collect_targets()
        else:
            targets = merge_targets(targets)

        summary = BatchSummary(total=len(targets), output_path=self.config.output_file)
        if not targets:
            logger.warning("No URLs to process")
            return summary

        extractor = MetadataExtractor(vendor_table=self.vendor_table)
        controller = PageSessionController(self.config.browser, extractor, self._playwright_factory)
        schema = ReportSchema.for_vendors(self.vendor_table, include_amp_validation=self.config.validate_amp)
        sink = open_sink(self.config.output_file, self.config.sheet_name)
        scheduler = BatchScheduler(
            self._build_task(controller),
            max_workers=self.config.number_of_threads,
            shutdown_timeout=self.config.shutdown_timeout_seconds,
        )

        with ReportAggregator(sink, schema, self.config.checkpoint_every) as aggregator:
            summary.rows = scheduler.run(targets, on_row=aggregator.add)

        summary.succeeded = sum(1 for row in summary.rows if row.succeeded)
        summary.failed = len(summary.rows) - summary.succeeded
        logger.info(
            f"Batch complete: {summary.succeeded} succeeded, {summary.failed} failed, "
            f"report at {summary.output_path}"
        )
        return summary
