"""Exception types raised across the batch pipeline."""

from typing import Optional


class SeoBatchError(Exception):
    """Base class for all errors raised by seo_batch."""


class TransientNavigationError(SeoBatchError):
    """A single page attempt failed in a way worth retrying.

    Raised for navigation timeouts, browser engine errors, a missing
    navigation response or a non-success HTTP status.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PermanentInputError(SeoBatchError):
    """A seed line that can never become a target."""

    def __init__(self, message: str, line: Optional[str] = None):
        self.line = line
        super().__init__(message)


class ExtractionFieldError(SeoBatchError):
    """One report field could not be extracted from the page."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        self.field_name = field_name
        super().__init__(message)


class WidgetDetectionError(SeoBatchError):
    """The markup handed to the widget detector could not be parsed."""


class ExternalAPIError(SeoBatchError):
    """An external HTTP API was unreachable or answered unusably."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ReportIOError(SeoBatchError):
    """The report destination could not be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)
