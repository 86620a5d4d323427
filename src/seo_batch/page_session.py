"""
Single-attempt page sessions driven by Playwright.

A PageSession owns every browser resource of one attempt at one URL: it
starts Playwright, launches a browser, opens an isolated context with a
rotated user agent, navigates, inspects the page and releases everything
on every exit path.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .browser_config import BrowserConfig
from .canonical import CanonicalCheck, check_canonical
from .constants import PAIR_SEPARATOR
from .errors import TransientNavigationError
from .metadata_extractor import MetadataExtractor
from .models import ExtractionResult, PageSnapshot, TrackingSignals
from .network_classifier import TrackingSignalCollector
from .widget_detector import detect_taboola_widgets

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of one page attempt."""

    IDLE = "idle"
    SESSION_ACQUIRED = "session_acquired"
    NAVIGATED = "navigated"
    POST_WAIT_ELAPSED = "post_wait_elapsed"
    EXTRACTED = "extracted"
    FAILED = "failed"
    RELEASED = "released"


@dataclass(frozen=True)
class SessionOutcome:
    """Everything a successful attempt produced."""

    extraction: ExtractionResult
    signals: TrackingSignals
    widgets: Tuple[str, ...]
    canonical: CanonicalCheck
    final_url: str
    load_time: float


def _first_line(error: BaseException) -> str:
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__


class PageSession:
    """One attempt at one URL."""

    def __init__(
        self,
        url: str,
        browser_config: BrowserConfig,
        extractor: MetadataExtractor,
        playwright_factory: Callable = sync_playwright,
    ):
        self.url = url
        self._config = browser_config
        self._extractor = extractor
        self._playwright_factory = playwright_factory
        self.collector = TrackingSignalCollector(extractor.vendor_table)
        self.state = SessionState.IDLE
        self.history: List[SessionState] = [SessionState.IDLE]

        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"{self.url}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def run(self) -> SessionOutcome:
        """Run the attempt.

        Returns:
            SessionOutcome of the inspected page

        Raises:
            TransientNavigationError: If navigation failed, timed out or the
                response was missing or not successful
        """
        start_time = time.time()
        try:
            page = self._acquire()
            self._transition(SessionState.SESSION_ACQUIRED)

            # Listener goes in before navigation so early beacons are seen
            page.on("request", lambda request: self.collector.observe_request(request.url))

            logger.info(f"Navigating: {self.url}")
            response = page.goto(
                self.url,
                wait_until=self._config.wait_until,
                timeout=self._config.navigation_timeout_ms,
            )
            if response is None or not response.ok:
                status = response.status if response is not None else None
                raise TransientNavigationError(
                    f"HTTP Status: {status if status is not None else 'No Response'}",
                    status_code=status,
                )
            self._transition(SessionState.NAVIGATED)

            if self._config.post_load_wait_ms > 0:
                page.wait_for_timeout(self._config.post_load_wait_ms)
                self._transition(SessionState.POST_WAIT_ELAPSED)

            snapshot = self._capture(page, response.status)
            outcome = self._inspect(snapshot, time.time() - start_time)
            self._transition(SessionState.EXTRACTED)
            logger.info(
                f"Extracted {self.url} (status={response.status}, "
                f"time={outcome.load_time:.2f}s, requests={self.collector.requests_seen})"
            )
            return outcome

        except TransientNavigationError as e:
            self._transition(SessionState.FAILED)
            logger.warning(f"Attempt failed for {self.url}: {e}")
            raise

        except PlaywrightError as e:
            self._transition(SessionState.FAILED)
            message = f"Playwright Error (Timeout/Navigation): {_first_line(e)}"
            logger.warning(f"Attempt failed for {self.url}: {message}")
            raise TransientNavigationError(message) from e

        except Exception:
            self._transition(SessionState.FAILED)
            raise

        finally:
            self._release()

    def _acquire(self):
        self._playwright = self._playwright_factory().start()
        launcher = getattr(self._playwright, self._config.browser_type)

        launch_options = {"headless": self._config.headless}
        if self._config.launch_args:
            launch_options["args"] = self._config.launch_args
        self._browser = launcher.launch(**launch_options)

        user_agent = self._config.get_user_agent()
        self._context = self._browser.new_context(user_agent=user_agent, accept_downloads=False)
        self._page = self._context.new_page()
        logger.debug(f"Session for {self.url} uses user agent {user_agent}")
        return self._page

    def _read(self, label: str, reader: Callable, default=None):
        """Read one piece of page state; failures leave it unset."""
        try:
            return reader()
        except PlaywrightError as e:
            logger.debug(f"Could not read {label} of {self.url}: {_first_line(e)}")
            return default

    def _capture(self, page, status_code: Optional[int]) -> PageSnapshot:
        global_state: Dict[str, Optional[str]] = {}
        for variable in self._extractor.global_variables:
            global_state[variable] = self._read(
                variable, lambda: page.evaluate(f"() => JSON.stringify({variable})")
            )

        return PageSnapshot(
            requested_url=self.url,
            url=self._read("final url", lambda: page.url, default=self.url) or self.url,
            html=self._read("content", page.content, default="") or "",
            title=self._read("title", page.title),
            body_text=self._read(
                "body text",
                lambda: page.inner_text("body", timeout=self._config.body_text_timeout_ms),
            ),
            status_code=status_code,
            global_state=global_state,
        )

    def _inspect(self, snapshot: PageSnapshot, load_time: float) -> SessionOutcome:
        extraction = self._extractor.extract(snapshot, self.collector)
        widgets = tuple(detect_taboola_widgets(snapshot.html, self.url))
        canonical = check_canonical(self.url, extraction["canonical"])
        extraction = extraction.merged(
            taboola_widget=PAIR_SEPARATOR.join(widgets),
            canonical_validation=canonical.label,
        )
        return SessionOutcome(
            extraction=extraction,
            signals=self.collector.snapshot(),
            widgets=widgets,
            canonical=canonical,
            final_url=snapshot.url,
            load_time=load_time,
        )

    def _release(self) -> None:
        closers = (
            ("page", self._page, "close"),
            ("context", self._context, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        )
        for name, resource, method in closers:
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except Exception as e:
                logger.warning(f"Error closing {name} for {self.url}: {_first_line(e)}")
        self._page = self._context = self._browser = self._playwright = None
        self._transition(SessionState.RELEASED)


class PageSessionController:
    """Runs page attempts with shared, read-only configuration."""

    def __init__(
        self,
        browser_config: BrowserConfig,
        extractor: MetadataExtractor,
        playwright_factory: Callable = sync_playwright,
    ):
        self.browser_config = browser_config
        self.extractor = extractor
        self._playwright_factory = playwright_factory

    def new_session(self, url: str) -> PageSession:
        return PageSession(url, self.browser_config, self.extractor, self._playwright_factory)

    def run_attempt(self, url: str, attempt: int = 1) -> SessionOutcome:
        """Run one fresh session against url."""
        logger.debug(f"Attempt {attempt} for {url}")
        return self.new_session(url).run()
