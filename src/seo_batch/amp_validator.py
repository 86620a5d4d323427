"""
AMP Validator API Client

Checks AMP pages against the public AMP validator service.
API: https://validator.amp.dev/validator.json?url=<page>

Every lookup yields an AmpValidationResult; service failures are reported as
API_ERROR results and are never retried.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from .config import settings
from .constants import AMP_VALIDATOR_TIMEOUT_SECONDS, NOT_FOUND
from .errors import ExternalAPIError

logger = logging.getLogger(__name__)


class AmpValidationStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    API_ERROR = "API_ERROR"
    URL_ERROR = "URL_ERROR"
    NOT_VALIDATED = "NOT_VALIDATED"


@dataclass(frozen=True)
class AmpValidationResult:
    """Outcome of validating one AMP URL."""

    url: Optional[str]
    status: AmpValidationStatus
    summary: str
    errors: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == AmpValidationStatus.PASS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status.value,
            "summary": self.summary,
            "errors": list(self.errors),
        }


def format_validation_error(error: Dict[str, Any]) -> str:
    """Format one validator error as 'L{line} C{col}: {message} ({code})'."""
    line = error.get("line", 0)
    col = error.get("col", 0)
    message = error.get("message", "Unknown error")
    code = error.get("code", "NO_CODE")
    return f"L{line} C{col}: {message} ({code})"


def not_validated(url: Optional[str]) -> AmpValidationResult:
    """Result for an AMP URL that was deliberately not checked."""
    return AmpValidationResult(
        url, AmpValidationStatus.NOT_VALIDATED, "Not an AMP page or AMP URL not found"
    )


class AmpValidator:
    """Client for the AMP validator JSON API."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: float = AMP_VALIDATOR_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize AMP validator client.

        Args:
            api_url: Validator endpoint (default from settings)
            user_agent: User-Agent header sent with each request
            timeout: Request timeout in seconds
            client: Preconfigured httpx client, e.g. with a mock transport
        """
        self.api_url = api_url or settings.AMP_VALIDATOR_URL
        self.user_agent = user_agent or settings.AMP_VALIDATOR_USER_AGENT
        self.timeout = timeout
        self._client = client
        self.total_requests = 0
        self.failed_requests = 0

    def _fetch(self, url: str) -> Dict[str, Any]:
        """GET the validator response for url.

        Raises:
            ExternalAPIError: On transport failure, non-200 status or bad JSON
        """
        headers = {"User-Agent": self.user_agent}
        client = self._client or httpx.Client(timeout=self.timeout, follow_redirects=True)
        try:
            logger.info(f"[AMP] Validating {url}")
            response = client.get(self.api_url, params={"url": url}, headers=headers)
            self.total_requests += 1
        except httpx.TimeoutException as e:
            raise ExternalAPIError(f"Timeout after {self.timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"Network Error: {e}") from e
        finally:
            if self._client is None:
                client.close()

        if response.status_code != 200:
            raise ExternalAPIError(f"HTTP Status {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalAPIError(f"JSON Parse Error: {e}") from e
        if not isinstance(data, dict):
            raise ExternalAPIError("JSON Parse Error: response is not an object")
        return data

    def validate(self, url: Optional[str]) -> AmpValidationResult:
        """Validate one AMP URL.

        Args:
            url: AMP page URL; None, blank or NOT_FOUND is rejected without
                calling the API

        Returns:
            AmpValidationResult with PASS, FAIL, API_ERROR or URL_ERROR
        """
        if url is None or not url.strip() or url.strip() == NOT_FOUND:
            return AmpValidationResult(
                url, AmpValidationStatus.URL_ERROR, f"Invalid URL for validation: {url}"
            )
        url = url.strip()

        try:
            data = self._fetch(url)
        except ExternalAPIError as e:
            self.failed_requests += 1
            logger.error(f"[AMP] Error validating {url}: {e}")
            return AmpValidationResult(url, AmpValidationStatus.API_ERROR, f"API Error: {e}")

        status = data.get("status")
        if status == "PASS":
            logger.info(f"[AMP] {url} passed")
            return AmpValidationResult(url, AmpValidationStatus.PASS, "PASS")

        if status == "FAIL":
            errors = [
                format_validation_error(error)
                for error in data.get("errors") or []
                if isinstance(error, dict)
            ]
            noun = "error" if len(errors) == 1 else "errors"
            logger.info(f"[AMP] {url} failed with {len(errors)} {noun}")
            return AmpValidationResult(
                url, AmpValidationStatus.FAIL, f"FAIL ({len(errors)} {noun})", errors
            )

        logger.warning(f"[AMP] Unknown validator status for {url}: {status}")
        return AmpValidationResult(
            url, AmpValidationStatus.API_ERROR, f"API Error: Unknown status: {status}"
        )
