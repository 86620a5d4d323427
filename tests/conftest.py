"""Shared fixtures: in-memory stand-ins for Playwright's sync API objects."""

import pytest
from playwright.sync_api import Error as PlaywrightError


class FakeRequest:
    def __init__(self, url):
        self.url = url


class FakeResponse:
    def __init__(self, status=200):
        self.status = status

    @property
    def ok(self):
        return 200 <= self.status <= 299


class FakePage:
    """Scripted page: goto replays request URLs to the registered listeners."""

    def __init__(
        self,
        html="",
        status=200,
        title=None,
        final_url=None,
        requests=(),
        body_text=None,
        global_state=None,
        goto_error=None,
        hrefs=(),
    ):
        self.html = html
        self.status = status
        self._title = title
        self._final_url = final_url
        self.requests = list(requests)
        self.body_text = body_text
        self.global_state = dict(global_state or {})
        self.goto_error = goto_error
        self.hrefs = list(hrefs)
        self.listeners = {}
        self.goto_calls = []
        self.waits = []
        self.url = "about:blank"
        self.closed = False

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        for request_url in self.requests:
            for handler in self.listeners.get("request", []):
                handler(FakeRequest(request_url))
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self._final_url or url
        if self.status is None:
            return None
        return FakeResponse(self.status)

    def wait_for_timeout(self, ms):
        self.waits.append(ms)

    def content(self):
        return self.html

    def title(self):
        return self._title

    def inner_text(self, selector, timeout=None):
        if self.body_text is None:
            raise PlaywrightError("Timeout waiting for body")
        return self.body_text

    def evaluate(self, script):
        for name, value in self.global_state.items():
            if name in script:
                return value
        return None

    def eval_on_selector_all(self, selector, script):
        return list(self.hrefs)

    def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.closed = False

    def new_page(self):
        return self.page

    def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.contexts = []
        self.closed = False

    def new_context(self, **kwargs):
        context = FakeContext(self.page)
        context.options = kwargs
        self.contexts.append(context)
        return context

    def close(self):
        self.closed = True


class FakeBrowserType:
    def __init__(self, page):
        self.page = page
        self.launches = []
        self.browsers = []

    def launch(self, **kwargs):
        self.launches.append(kwargs)
        browser = FakeBrowser(self.page)
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, page):
        self.chromium = FakeBrowserType(page)
        self.firefox = FakeBrowserType(page)
        self.webkit = FakeBrowserType(page)
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakePlaywrightFactory:
    """Callable standing in for sync_playwright.

    Each call hands out the next scripted page; the last page is reused once
    the list runs out.
    """

    def __init__(self, pages):
        self.pages = list(pages) if isinstance(pages, (list, tuple)) else [pages]
        self.instances = []

    def __call__(self):
        return self

    def start(self):
        index = min(len(self.instances), len(self.pages) - 1)
        playwright = FakePlaywright(self.pages[index])
        self.instances.append(playwright)
        return playwright


@pytest.fixture
def fake_page():
    """Factory for scripted pages."""
    return FakePage


@pytest.fixture
def playwright_factory():
    """Factory for sync_playwright stand-ins serving scripted pages."""
    return FakePlaywrightFactory


@pytest.fixture
def sample_html():
    """A news article page with most report fields present."""
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <title>Budget 2024: What Changes</title>
        <meta name="description" content="Key changes in the budget.">
        <meta name="keywords" content="budget, tax">
        <meta name="viewport" content="width=device-width, initial-scale=1">
        <meta name="robots" content="index, follow">
        <link rel="canonical" href="https://www.example.com/news/budget-2024/">
        <link rel="amphtml" href="https://www.example.com/amp/news/budget-2024">
        <link rel="publisher" href="https://plus.example.com/publisher">
        <link rel="shortcut icon" href="/static/favicon.ico">
        <link rel="alternate" hreflang="hi" href="https://hindi.example.com/news/budget-2024">
        <link rel="alternate" hreflang="en" href="https://www.example.com/news/budget-2024">
        <meta property="og:title" content="Budget 2024 (OG)">
        <meta property="og:description" content="OG description">
        <meta property="og:image" content="https://cdn.example.com/budget.jpg">
        <meta property="og:url" content="https://www.example.com/news/budget-2024">
        <meta property="og:type" content="article">
        <meta property="og:site_name" content="Example News">
        <meta name="twitter:card" content="summary_large_image">
        <meta name="twitter:site" content="@examplenews">
        <meta name="twitter:creator" content="@reporter">
        <meta name="twitter:title" content="Budget 2024 (Twitter)">
        <meta name="twitter:description" content="Twitter description">
        <meta name="twitter:image" content="https://cdn.example.com/budget-tw.jpg">
        <script type="application/ld+json">
        {"@context": "https://schema.org", "@graph": [
            {"@type": "NewsArticle", "author": {"@type": "Person", "name": "A. Reporter"}},
            {"@type": ["WebPage", "ItemPage"]}
        ]}
        </script>
        <script type="application/ld+json">{"@type": "Organization"}</script>
        <script src="https://static.chartbeat.com/js/chartbeat.js"></script>
        <script>window._taboola = window._taboola || []; _taboola.push({mode: 'thumbnails-a', container: 'taboola-below'});</script>
    </head>
    <body>
        <h1>Budget 2024</h1>
        <p>The finance minister presented the budget today.</p>
        <a href="/news/economy">Economy</a>
        <a href="https://www.example.com/news/markets">Markets</a>
        <a href="https://twitter.com/examplenews">Twitter</a>
        <a href="#top">Top</a>
        <a href="javascript:void(0)">Share</a>
        <a href="mailto:desk@example.com">Mail</a>
        <div id="taboola-below"></div>
    </body>
    </html>
    """
