"""
Report schema, sinks and the checkpointing aggregator.

The schema is built once per run from the vendor table and shared by header
writing and row writing. Sinks persist rows to an .xlsx workbook (openpyxl)
or a .csv file; the aggregator decides when to persist.
"""
import csv
import logging
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .constants import DEFAULT_CHECKPOINT_EVERY, DEFAULT_SHEET_NAME, MAX_COLUMN_WIDTH
from .errors import ReportIOError
from .models import ReportRow
from .vendors import DEFAULT_VENDOR_TABLE, VendorTable

logger = logging.getLogger(__name__)

_HEADERS_BEFORE_VENDORS: Tuple[Tuple[str, str], ...] = (
    ("url", "URL"),
    ("tid", "TID (GA4)"),
    ("comscore", "COMSCORE"),
    ("ppid", "PPID"),
    ("title", "Title"),
    ("description", "Description"),
    ("keywords", "Keywords"),
    ("h1_count", "H1 Count"),
    ("canonical", "Canonical URL"),
    ("canonical_validation", "Canonical Validation"),
    ("is_amp", "Is AMP Page"),
    ("amp_url", "AMP URL"),
)

_HEADERS_AFTER_VENDORS: Tuple[Tuple[str, str], ...] = (
    ("schema_present", "Schema Present"),
    ("schema_types", "Schema Types"),
    ("schema_error", "Schema Error(s)"),
    ("status_code", "Status Code"),
    ("og_title", "OG:Title"),
    ("og_description", "OG:Description"),
    ("og_image", "OG:Image"),
    ("og_url", "OG:URL"),
    ("og_type", "OG:Type"),
    ("og_site_name", "OG:SiteName"),
    ("twitter_card", "Twitter:Card"),
    ("twitter_site", "Twitter:Site"),
    ("twitter_creator", "Twitter:Creator"),
    ("twitter_title", "Twitter:Title"),
    ("twitter_description", "Twitter:Description"),
    ("twitter_image", "Twitter:Image"),
    ("html_lang", "HTML Lang"),
    ("viewport", "Viewport"),
    ("meta_robots", "Meta Robots"),
    ("publisher_link", "Publisher Link"),
    ("hreflang_links", "Hreflang Links"),
    ("hreflang_count", "Hreflang Count"),
    ("internal_links_count", "Internal Links"),
    ("external_links_count", "External Links"),
    ("body_word_count", "Body Word Count"),
    ("favicon_url", "Favicon URL"),
    ("taboola_widget", "Taboola Widget"),
    ("dynamic_json_detected", "Dynamic JSON Detected"),
    ("dynamic_json_variables", "Dynamic JSON Variables"),
    ("dynamic_title", "Dynamic Title"),
    ("dynamic_description", "Dynamic Description"),
    ("attempts", "Attempts"),
    ("processing_error", "Processing Error"),
)

# Columns filled from the row itself rather than from its extraction
_ROW_VALUES: Dict[str, Callable[[ReportRow], str]] = {
    "url": lambda row: row.target,
    "tid": lambda row: row.signals.tid_display,
    "comscore": lambda row: row.signals.comscore_display,
    "ppid": lambda row: row.signals.ppid_display,
    "attempts": lambda row: str(row.attempts),
    "processing_error": lambda row: row.error,
}


@dataclass(frozen=True)
class ReportColumn:
    """One report column."""

    index: int
    key: str
    header: str


class ReportSchema:
    """Ordered, fixed set of report columns."""

    def __init__(self, columns: Sequence[Tuple[str, str]]):
        self.columns: Tuple[ReportColumn, ...] = tuple(
            ReportColumn(index, key, header) for index, (key, header) in enumerate(columns)
        )
        self._by_key = {column.key: column for column in self.columns}

    @classmethod
    def for_vendors(
        cls,
        vendor_table: VendorTable = DEFAULT_VENDOR_TABLE,
        include_amp_validation: bool = False,
    ) -> "ReportSchema":
        """Build the run schema: one column per vendor, plus AMP validation if enabled."""
        before = _HEADERS_BEFORE_VENDORS
        if include_amp_validation:
            before = before + (("amp_validation", "AMP Validation"),)
        vendor_columns = tuple((vendor.key, vendor.label) for vendor in vendor_table)
        return cls(before + vendor_columns + _HEADERS_AFTER_VENDORS)

    def __len__(self) -> int:
        return len(self.columns)

    @property
    def headers(self) -> List[str]:
        return [column.header for column in self.columns]

    @property
    def keys(self) -> List[str]:
        return [column.key for column in self.columns]

    def index_of(self, key: str) -> int:
        return self._by_key[key].index

    def row_values(self, row: ReportRow) -> List[str]:
        """Cell values of a row, in column order."""
        values = []
        for column in self.columns:
            getter = _ROW_VALUES.get(column.key)
            values.append(getter(row) if getter else row.extraction[column.key])
        return values


class ReportSink(ABC):
    """Destination for report rows."""

    path: Path

    @abstractmethod
    def open(self, schema: ReportSchema) -> int:
        """Prepare the destination, writing the header if it has none.

        Returns:
            Number of data rows already present
        """

    @abstractmethod
    def append(self, values: Sequence[str]) -> None:
        """Buffer one row of cell values."""

    @abstractmethod
    def save(self, final: bool = False) -> None:
        """Persist buffered rows.

        Raises:
            ReportIOError: If the destination cannot be written
        """


class XlsxReportSink(ReportSink):
    """Excel workbook destination, one sheet per report."""

    def __init__(self, path, sheet_name: str = DEFAULT_SHEET_NAME):
        self.path = Path(path)
        self.sheet_name = sheet_name
        self._workbook: Optional[Workbook] = None
        self._sheet = None

    def _load_existing(self) -> Optional[Workbook]:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return None
        try:
            return load_workbook(self.path)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
            logger.warning(f"Could not open existing report {self.path}, starting a new workbook: {e}")
            return None

    @staticmethod
    def _header_of(sheet) -> List[str]:
        if sheet.max_row < 1:
            return []
        return [cell.value for cell in sheet[1] if cell.value not in (None, "")]

    def open(self, schema: ReportSchema) -> int:
        workbook = self._load_existing()

        if workbook is None:
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = self.sheet_name
            sheet.append(schema.headers)
            logger.info(f"Created report {self.path} (sheet '{self.sheet_name}')")
            existing_rows = 0
        elif self.sheet_name not in workbook.sheetnames:
            sheet = workbook.create_sheet(self.sheet_name)
            sheet.append(schema.headers)
            logger.info(f"Added sheet '{self.sheet_name}' to {self.path}")
            existing_rows = 0
        else:
            sheet = workbook[self.sheet_name]
            header = self._header_of(sheet)
            if not header:
                for column, title in enumerate(schema.headers, start=1):
                    sheet.cell(row=1, column=column, value=title)
                existing_rows = max(sheet.max_row - 1, 0)
            else:
                if header != schema.headers:
                    logger.warning(f"Existing header in {self.path} differs from the report schema; appending anyway")
                existing_rows = sheet.max_row - 1
            logger.info(f"Appending to {self.path} after {existing_rows} existing row(s)")

        self._workbook = workbook
        self._sheet = sheet
        return existing_rows

    def append(self, values: Sequence[str]) -> None:
        self._sheet.append(list(values))

    def _size_columns(self) -> None:
        for index, column in enumerate(self._sheet.iter_cols(values_only=True), start=1):
            longest = max((len(str(value)) for value in column if value is not None), default=0)
            width = min(max(longest + 2, 10), MAX_COLUMN_WIDTH)
            self._sheet.column_dimensions[get_column_letter(index)].width = width

    def save(self, final: bool = False) -> None:
        if self._workbook is None:
            return
        if final:
            self._size_columns()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._workbook.save(self.path)
        except OSError as e:
            raise ReportIOError(f"Could not save report {self.path}: {e}", path=str(self.path)) from e


class CsvReportSink(ReportSink):
    """CSV destination; buffered rows are appended on each save."""

    def __init__(self, path):
        self.path = Path(path)
        self._pending: List[List[str]] = []
        self._needs_header = False
        self._headers: List[str] = []

    def open(self, schema: ReportSchema) -> int:
        self._headers = schema.headers
        if not self.path.exists() or self.path.stat().st_size == 0:
            self._needs_header = True
            return 0

        try:
            with open(self.path, 'r', newline='', encoding='utf-8') as f:
                rows = list(csv.reader(f))
        except (OSError, UnicodeDecodeError) as e:
            raise ReportIOError(f"Could not read existing report {self.path}: {e}", path=str(self.path)) from e

        if not rows or not any(rows[0]):
            self._needs_header = True
            return 0
        if rows[0] != self._headers:
            logger.warning(f"Existing header in {self.path} differs from the report schema; appending anyway")
        existing_rows = len(rows) - 1
        logger.info(f"Appending to {self.path} after {existing_rows} existing row(s)")
        return existing_rows

    def append(self, values: Sequence[str]) -> None:
        self._pending.append(list(values))

    def save(self, final: bool = False) -> None:
        if not self._pending and not self._needs_header:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                if self._needs_header:
                    writer.writerow(self._headers)
                writer.writerows(self._pending)
        except OSError as e:
            raise ReportIOError(f"Could not save report {self.path}: {e}", path=str(self.path)) from e
        self._needs_header = False
        self._pending = []


def open_sink(path, sheet_name: str = DEFAULT_SHEET_NAME) -> ReportSink:
    """Pick a sink by file suffix (.csv, otherwise .xlsx)."""
    if Path(path).suffix.lower() == ".csv":
        return CsvReportSink(path)
    return XlsxReportSink(path, sheet_name)


class ReportAggregator:
    """Collects rows in submission order and checkpoints them to a sink.

    Use as a context manager: entering opens the sink, leaving performs the
    final save. If leaving on an error, the final save is best effort and
    its own failure is logged so the original error surfaces.
    """

    def __init__(
        self,
        sink: ReportSink,
        schema: ReportSchema,
        checkpoint_every: int = DEFAULT_CHECKPOINT_EVERY,
    ):
        if checkpoint_every < 1:
            raise ValueError(f"checkpoint_every must be >= 1, got {checkpoint_every}")
        self.sink = sink
        self.schema = schema
        self.checkpoint_every = checkpoint_every
        self.rows: List[ReportRow] = []
        self.existing_rows = 0
        self.checkpoints = 0
        self._opened = False

    def __enter__(self) -> "ReportAggregator":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except ReportIOError as e:
            logger.error(f"Final report save failed: {e}")

    def open(self) -> None:
        self.existing_rows = self.sink.open(self.schema)
        self._opened = True

    def add(self, row: ReportRow) -> None:
        """Append one row, saving when a checkpoint is due."""
        if not self._opened:
            raise RuntimeError("ReportAggregator.open() must be called before add()")
        self.rows.append(row)
        self.sink.append(self.schema.row_values(row))
        if len(self.rows) % self.checkpoint_every == 0:
            self.sink.save()
            self.checkpoints += 1
            logger.info(f"Checkpoint: {len(self.rows)} row(s) saved to {self.sink.path}")

    def close(self) -> None:
        """Final save of everything added."""
        if not self._opened:
            return
        self.sink.save(final=True)
        logger.info(f"Report saved: {self.sink.path} ({len(self.rows)} new row(s))")
