"""Unit tests for PageSession and PageSessionController."""

import pytest
from playwright.sync_api import Error as PlaywrightError

from seo_batch.browser_config import USER_AGENTS, BrowserConfig
from seo_batch.errors import TransientNavigationError
from seo_batch.metadata_extractor import MetadataExtractor
from seo_batch.models import CanonicalStatus
from seo_batch.page_session import PageSession, PageSessionController, SessionState

PAGE_URL = "https://www.example.com/news/budget-2024"


@pytest.fixture
def browser_config():
    """Headless config with a fixed user agent and a short post-load wait."""
    return BrowserConfig(headless=True, rotate_user_agent=False, post_load_wait_ms=100)


@pytest.fixture
def extractor():
    return MetadataExtractor()


class TestPageSession:
    """Tests for a single page attempt."""

    def test_successful_attempt(self, fake_page, playwright_factory, browser_config, extractor, sample_html):
        """Test a full attempt from navigation to extraction."""
        page = fake_page(
            html=sample_html,
            title="Budget 2024 (live)",
            body_text="one two three four",
            requests=[
                "https://www.google-analytics.com/g/collect?v=2&tid=G-NEWS1&ep.PPID_es=reader-7",
                "https://sb.scorecardresearch.com/b?c1=2&c2=555",
                "https://cdn.izooto.com/scripts/sdk.js",
            ],
            global_state={"window.__INITIAL_STATE__": '{"title": "From State"}'},
        )
        factory = playwright_factory(page)
        session = PageSession(PAGE_URL, browser_config, extractor, factory)

        outcome = session.run()

        extraction = outcome.extraction
        assert extraction["title"] == "Budget 2024 (live)"
        assert extraction["status_code"] == "200"
        assert extraction["body_word_count"] == "4"
        assert extraction["dynamic_title"] == "From State"
        assert extraction["izooto"] == "Yes"
        assert extraction["chartbeat"] == "Yes"
        assert extraction["canonical_validation"] == "✅ Valid"
        assert extraction["taboola_widget"] == "Script: thumbnails-a (Single Image (Standard))"
        assert outcome.canonical.status == CanonicalStatus.VALID
        assert outcome.signals.tids == ("G-NEWS1",)
        assert outcome.signals.ppid == "reader-7"
        assert outcome.signals.comscore_display == "c1=2, c2=555"
        assert outcome.final_url == PAGE_URL

    def test_navigation_settings(self, fake_page, playwright_factory, browser_config, extractor):
        """Test the browser is launched and driven with the configured settings."""
        page = fake_page(html="<html></html>", body_text="")
        factory = playwright_factory(page)

        PageSession(PAGE_URL, browser_config, extractor, factory).run()

        playwright = factory.instances[0]
        assert playwright.chromium.launches == [{"headless": True}]
        context = playwright.chromium.browsers[0].contexts[0]
        assert context.options == {"user_agent": USER_AGENTS[0], "accept_downloads": False}
        assert page.goto_calls == [{"url": PAGE_URL, "wait_until": "domcontentloaded", "timeout": 90000}]
        assert page.waits == [100]

    def test_lifecycle_and_release(self, fake_page, playwright_factory, browser_config, extractor):
        """Test the state history of a successful attempt and resource release."""
        page = fake_page(html="<html></html>", body_text="")
        factory = playwright_factory(page)
        session = PageSession(PAGE_URL, browser_config, extractor, factory)

        session.run()

        assert session.history == [
            SessionState.IDLE,
            SessionState.SESSION_ACQUIRED,
            SessionState.NAVIGATED,
            SessionState.POST_WAIT_ELAPSED,
            SessionState.EXTRACTED,
            SessionState.RELEASED,
        ]
        playwright = factory.instances[0]
        assert page.closed
        assert playwright.chromium.browsers[0].closed
        assert playwright.chromium.browsers[0].contexts[0].closed
        assert playwright.stopped

    def test_no_post_load_wait(self, fake_page, playwright_factory, extractor):
        """Test a zero wait skips the post-load state."""
        page = fake_page(html="<html></html>", body_text="")
        config = BrowserConfig(post_load_wait_ms=0)
        session = PageSession(PAGE_URL, config, extractor, playwright_factory(page))

        session.run()

        assert page.waits == []
        assert SessionState.POST_WAIT_ELAPSED not in session.history

    @pytest.mark.parametrize("status,message", [
        (503, "HTTP Status: 503"),
        (404, "HTTP Status: 404"),
        (None, "HTTP Status: No Response"),
    ])
    def test_bad_response(self, fake_page, playwright_factory, browser_config, extractor, status, message):
        """Test missing or unsuccessful responses fail the attempt."""
        page = fake_page(html="<html></html>", status=status)
        factory = playwright_factory(page)
        session = PageSession(PAGE_URL, browser_config, extractor, factory)

        with pytest.raises(TransientNavigationError) as exc_info:
            session.run()

        assert str(exc_info.value) == message
        assert exc_info.value.status_code == status
        assert session.history[-2:] == [SessionState.FAILED, SessionState.RELEASED]
        assert page.closed
        assert factory.instances[0].stopped

    def test_engine_error(self, fake_page, playwright_factory, browser_config, extractor):
        """Test engine errors are reported by their first line."""
        error = PlaywrightError("Timeout 90000ms exceeded.\n=========================== logs ===")
        page = fake_page(
            goto_error=error,
            requests=["https://www.google-analytics.com/g/collect?tid=G-EARLY"],
        )
        session = PageSession(PAGE_URL, browser_config, extractor, playwright_factory(page))

        with pytest.raises(TransientNavigationError) as exc_info:
            session.run()

        assert str(exc_info.value) == "Playwright Error (Timeout/Navigation): Timeout 90000ms exceeded."
        assert session.collector.requests_seen == 1
        assert session.state == SessionState.RELEASED
        assert page.closed

    def test_unreadable_body_text(self, fake_page, playwright_factory, browser_config, extractor, sample_html):
        """Test a failed body text read falls back to the DOM text."""
        page = fake_page(html=sample_html, body_text=None)
        session = PageSession(PAGE_URL, browser_config, extractor, playwright_factory(page))

        outcome = session.run()

        assert outcome.extraction["body_word_count"] == "15"

    def test_final_url_after_redirect(self, fake_page, playwright_factory, browser_config, extractor):
        """Test the snapshot keeps the post-redirect URL."""
        page = fake_page(html="<html></html>", body_text="", final_url="https://www.example.com/moved")
        session = PageSession(PAGE_URL, browser_config, extractor, playwright_factory(page))

        assert session.run().final_url == "https://www.example.com/moved"


class TestPageSessionController:
    """Tests for PageSessionController."""

    def test_fresh_session_per_attempt(self, fake_page, playwright_factory, browser_config, extractor):
        """Test each attempt starts its own Playwright instance and collector."""
        page = fake_page(
            html="<html></html>",
            body_text="",
            requests=["https://www.google-analytics.com/g/collect?tid=G-1"],
        )
        factory = playwright_factory(page)
        controller = PageSessionController(browser_config, extractor, factory)

        first = controller.run_attempt(PAGE_URL, attempt=1)
        second = controller.run_attempt(PAGE_URL, attempt=2)

        assert len(factory.instances) == 2
        assert all(instance.stopped for instance in factory.instances)
        assert first.signals.tids == ("G-1",)
        assert second.signals.tids == ("G-1",)

    def test_new_session(self, browser_config, extractor):
        """Test sessions start idle for the requested URL."""
        session = PageSessionController(browser_config, extractor).new_session(PAGE_URL)

        assert session.url == PAGE_URL
        assert session.state == SessionState.IDLE
