"""Tests for Taboola widget detection."""

import pytest

from seo_batch.widget_detector import (
    NO_WIDGET_FOUND,
    UNCLASSIFIED_PRESENT,
    classify_mode,
    detect_taboola_widgets,
)


class TestClassifyMode:
    """Tests for classify_mode."""

    @pytest.mark.parametrize("mode,expected", [
        ("alternating-thumbnails-feed", "Infinite Position (Feed)"),
        ("thumbs-feed-01", "Infinite Position (Feed)"),
        ("infinity-a", "Infinite Position (Feed)"),
        ("thumbnails-a", "Single Image (Standard)"),
        ("organic-grid-2x2", "Single Image (Standard)"),
        ("text-links-b", "Single Image (Standard)"),
        ("rbox-tracking", "Unknown Mode: rbox-tracking"),
    ])
    def test_categories(self, mode, expected):
        """Test feed hints win over standard hints."""
        assert classify_mode(mode) == expected


class TestDetectTaboolaWidgets:
    """Tests for detect_taboola_widgets."""

    def test_script_mode(self, sample_html):
        """Test a mode pushed from an inline script."""
        assert detect_taboola_widgets(sample_html) == ["Script: thumbnails-a (Single Image (Standard))"]

    def test_attribute_before_script(self):
        """Test attribute placements are listed before script placements."""
        html = """
        <div data-taboola-mode="alternating-thumbnails-feed"></div>
        <script>window._taboola = window._taboola || [];
        _taboola.push({mode: "thumbnails-b", container: "tbl-mid"});</script>
        """

        assert detect_taboola_widgets(html) == [
            "Attribute: alternating-thumbnails-feed (Infinite Position (Feed))",
            "Script: thumbnails-b (Single Image (Standard))",
        ]

    def test_duplicates_removed(self):
        """Test the same placement appearing twice is reported once."""
        html = """
        <div data-taboola-mode="thumbnails-a"></div>
        <div data-taboola-mode="thumbnails-a"></div>
        """

        assert detect_taboola_widgets(html) == ["Attribute: thumbnails-a (Single Image (Standard))"]

    def test_feed_container(self):
        """Test a container with a feed id is classified as a feed."""
        html = '<div id="taboola-feed-below-article"></div>'

        assert detect_taboola_widgets(html) == ["Container: Infinite Position (Feed)"]

    def test_container_with_many_blocks(self):
        """Test repeated recommendation blocks mark a feed."""
        blocks = '<div class="trc_rbox_outer"></div>' * 6
        html = f'<div id="taboola-mid">{blocks}</div>'

        assert detect_taboola_widgets(html) == ["Container: Infinite Position (Feed)"]

    def test_standard_container(self):
        """Test a plain container is a standard widget."""
        html = '<div class="taboola-widget"><div class="trc_rbox_outer"></div></div>'

        assert detect_taboola_widgets(html) == ["Container: Single Image (Standard)"]

    def test_nested_containers_single_descriptor(self):
        """Test taboola-classed children inside a feed give one feed descriptor."""
        html = '<div id="taboola-below-article-feed"><div class="taboola-item">x</div></div>'

        assert detect_taboola_widgets(html) == ["Container: Infinite Position (Feed)"]

    def test_loader_only(self):
        """Test a loader script without any placement."""
        html = '<script src="https://cdn.taboola.com/libtrc/example/loader.js"></script>'

        assert detect_taboola_widgets(html) == [UNCLASSIFIED_PRESENT]

    def test_no_widget(self):
        """Test a page without Taboola."""
        assert detect_taboola_widgets("<html><body><p>Hi</p></body></html>") == [NO_WIDGET_FOUND]
        assert detect_taboola_widgets("") == [NO_WIDGET_FOUND]

    def test_no_markup(self):
        """Test missing markup yields an error descriptor instead of raising."""
        result = detect_taboola_widgets(None, url="https://example.com")

        assert len(result) == 1
        assert result[0].startswith("Error checking Taboola: ")
