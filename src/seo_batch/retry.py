"""Bounded retry loop around single page attempts."""

import logging
import time
from typing import Callable, List

from .constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY_SECONDS
from .errors import TransientNavigationError
from .models import AttemptOutcome, ProcessingAttempt, ReportRow
from .page_session import PageSessionController

logger = logging.getLogger(__name__)


def process_target(
    url: str,
    controller: PageSessionController,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> ReportRow:
    """Process one target with up to max_retries sequential attempts.

    Each attempt runs in a fresh browser session. The loop stops at the
    first success; after the last failure it returns a terminal row.

    Args:
        url: Target URL
        controller: Runs a single attempt
        max_retries: Maximum number of attempts (at least 1)
        retry_delay: Seconds to wait between attempts
        sleep: Blocking wait, injectable for tests

    Returns:
        ReportRow for the target; never raises for page failures
    """
    max_retries = max(1, max_retries)
    attempts: List[ProcessingAttempt] = []
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            outcome = controller.run_attempt(url, attempt)
        except TransientNavigationError as e:
            last_error = str(e)
            logger.warning(f"Attempt {attempt}/{max_retries} failed for {url}: {last_error}")
        except Exception as e:
            last_error = f"Unexpected Error: {type(e).__name__}: {e}"
            logger.error(f"Attempt {attempt}/{max_retries} failed for {url}: {last_error}", exc_info=True)
        else:
            attempts.append(ProcessingAttempt(attempt, AttemptOutcome.SUCCESS))
            if attempt > 1:
                logger.info(f"Succeeded on attempt {attempt} for {url}")
            return ReportRow(
                target=url,
                extraction=outcome.extraction,
                signals=outcome.signals,
                attempts=attempt,
                attempt_log=tuple(attempts),
            )

        attempts.append(ProcessingAttempt(attempt, AttemptOutcome.TRANSIENT_FAILURE, last_error))
        if attempt < max_retries and retry_delay > 0:
            logger.info(f"Retrying {url} in {retry_delay:.1f}s")
            sleep(retry_delay)

    logger.error(f"Failed after {max_retries} attempts: {url} ({last_error})")
    return ReportRow.failed(
        target=url,
        error=last_error or f"Failed after {max_retries} retries.",
        attempts=max_retries,
        attempt_log=tuple(attempts),
    )
