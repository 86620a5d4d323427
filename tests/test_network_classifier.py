"""Tests for network event classification."""

import threading

from bs4 import BeautifulSoup

from seo_batch.network_classifier import (
    TrackingSignalCollector,
    extract_comscore_from_request,
    extract_from_request,
    extract_ga4_from_request,
)


class TestExtractFromRequest:
    """Tests for the per-request extractors."""

    def test_ga4_collect(self):
        """Test tid and the event-scoped PPID are read from a collect hit."""
        url = "https://www.google-analytics.com/g/collect?tid=G-ABC123&ep.PPID_es=u123"

        assert extract_from_request(url) == {"tid": "G-ABC123", "ppid": "u123"}

    def test_ga4_ppid_fallback(self):
        """Test the user-scoped PPID is used when the event one is absent or empty."""
        url = "https://region1.google-analytics.com/g/collect?v=2&tid=G-XYZ&ep.PPID_es=&up.PPID=u9"

        assert extract_ga4_from_request(url) == {"tid": "G-XYZ", "ppid": "u9"}

    def test_gtag_loader(self):
        """Test a gtag.js loader yields its measurement id."""
        url = "https://www.googletagmanager.com/gtag/js?id=G-LOADER1&l=dataLayer"

        assert extract_ga4_from_request(url) == {"tid": "G-LOADER1"}

    def test_comscore_beacon(self):
        """Test c1 and c2 are read from a beacon."""
        url = "https://sb.scorecardresearch.com/b?c1=2&c2=9254297"

        assert extract_from_request(url) == {"c1": "2", "c2": "9254297"}

    def test_comscore_skips_empty_values(self):
        """Test empty c-values are not reported."""
        url = "https://sb.scorecardresearch.com/p?c1=2&c2="

        assert extract_comscore_from_request(url) == {"c1": "2"}

    def test_unrelated_url(self):
        """Test unrelated URLs yield nothing."""
        assert extract_from_request("https://example.com/something?param=val") == {}

    def test_malformed_input_never_raises(self):
        """Test broken query strings degrade to no pairs."""
        assert extract_from_request("https://www.google-analytics.com/g/collect?tid=%zz") == {}
        assert extract_from_request("https://sb.scorecardresearch.com/b") == {}
        assert extract_from_request(None) == {}
        assert extract_from_request("") == {}


class TestTrackingSignalCollector:
    """Tests for TrackingSignalCollector."""

    def test_vendor_seen_once_stays_on(self):
        """Test a single matching request is enough for a vendor flag."""
        collector = TrackingSignalCollector()
        collector.observe_request("https://example.com/app.js")
        collector.observe_request("https://bcp.crwdcntrl.net/5/c=123")
        collector.observe_request("https://example.com/other.js")

        signals = collector.snapshot()

        assert signals.vendors["lotame"] is True
        assert signals.vendors["chartbeat"] is False
        assert signals.vendor_flag("lotame") == "Yes"
        assert signals.vendor_flag("izooto") == "No"

    def test_ga4_and_comscore_accumulate(self):
        """Test analytics identifiers from several requests."""
        collector = TrackingSignalCollector()
        collector.observe_request("https://www.google-analytics.com/g/collect?tid=G-ONE&up.PPID=u1")
        collector.observe_request("https://www.google-analytics.com/g/collect?tid=G-TWO")
        collector.observe_request("https://www.google-analytics.com/g/collect?tid=G-ONE")
        collector.observe_request("https://sb.scorecardresearch.com/p?c1=2&c2=111")

        signals = collector.snapshot()

        assert signals.tids == ("G-ONE", "G-TWO")
        assert signals.tid_display == "G-ONE, G-TWO"
        assert signals.ppid == "u1"
        assert signals.comscore_display == "c1=2, c2=111"
        assert collector.requests_seen == 4

    def test_collect_tid_beats_script_fallback(self):
        """Test script id=G- values are used only without collect hits."""
        soup = BeautifulSoup(
            '<script src="https://www.googletagmanager.com/gtag/js?id=G-SCRIPT"></script>',
            "html.parser",
        )
        fallback_only = TrackingSignalCollector()
        fallback_only.observe_dom(soup)
        assert fallback_only.snapshot().tids == ("G-SCRIPT",)

        both = TrackingSignalCollector()
        both.observe_dom(soup)
        both.observe_request("https://www.google-analytics.com/g/collect?tid=G-HIT")
        assert both.snapshot().tids == ("G-HIT",)

    def test_dom_sources(self):
        """Test inline scripts, AMP analytics config, amp-pixel and amp-iframe."""
        html = """
        <script>var _sf_async_config = {}; loadScript('//static.chartbeat.com/js/chartbeat.js');</script>
        <amp-analytics type="googleanalytics">
            <script type="application/json">{"vars": {"endpoint": "https://cdn.izooto.com/push"}}</script>
        </amp-analytics>
        <amp-pixel src="https://ad.crwdcntrl.net/5/c=1/pe=y"></amp-pixel>
        <amp-iframe src="https://player.vdo.ai/frame.html"></amp-iframe>
        """
        collector = TrackingSignalCollector()
        collector.observe_dom(BeautifulSoup(html, "html.parser"))

        vendors = collector.snapshot().vendors

        assert vendors == {"lotame": True, "chartbeat": True, "izooto": True, "vdo_io": True}

    def test_bad_amp_config_ignored(self):
        """Test unparseable amp-analytics JSON does not stop the scan."""
        html = """
        <amp-analytics><script type="application/json">{not json</script></amp-analytics>
        <script src="https://static.chartbeat.com/js/chartbeat.js"></script>
        """
        collector = TrackingSignalCollector()
        collector.observe_dom(BeautifulSoup(html, "html.parser"))

        assert collector.snapshot().vendors["chartbeat"] is True

    def test_concurrent_observation(self):
        """Test listener calls from several threads are all recorded."""
        collector = TrackingSignalCollector()

        def send(count):
            for i in range(count):
                collector.observe_request(f"https://www.google-analytics.com/g/collect?tid=G-{i % 3}")

        threads = [threading.Thread(target=send, args=(200,)) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.requests_seen == 800
        assert sorted(collector.snapshot().tids) == ["G-0", "G-1", "G-2"]

    def test_empty_snapshot(self):
        """Test defaults when nothing was observed."""
        signals = TrackingSignalCollector().snapshot()

        assert signals.tids == ()
        assert signals.tid_display == "Not Found"
        assert signals.comscore_display == "Not Found"
        assert signals.ppid_display == "Not Found"
