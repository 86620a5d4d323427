"""Tests for the vendor signature table."""

import json

import pytest

from seo_batch.vendors import DEFAULT_VENDOR_TABLE, VendorSignature, VendorTable


class TestVendorSignature:
    """Tests for VendorSignature."""

    def test_signatures_lowercased(self):
        """Test signatures are normalized and matched case-insensitively."""
        vendor = VendorSignature("acme", "Acme", (" ACME.io ",))

        assert vendor.signatures == ("acme.io",)
        assert vendor.matches("https://CDN.Acme.IO/tag.js")
        assert not vendor.matches("https://example.com")
        assert not vendor.matches("")

    def test_requires_signatures(self):
        """Test a vendor without signatures is rejected."""
        with pytest.raises(ValueError):
            VendorSignature("acme", "Acme", ("  ",))


class TestVendorTable:
    """Tests for VendorTable."""

    def test_default_table(self):
        """Test the built-in vendors and their order."""
        assert DEFAULT_VENDOR_TABLE.keys() == ["lotame", "chartbeat", "izooto", "vdo_io"]
        assert DEFAULT_VENDOR_TABLE.get("vdo_io").label == "VDO.AI"
        assert "lotame" in DEFAULT_VENDOR_TABLE

    def test_match_returns_all_hits(self):
        """Test one string can reveal several vendors."""
        text = "https://tags.crwdcntrl.net/c/123?ref=static.chartbeat.com"

        assert DEFAULT_VENDOR_TABLE.match(text) == ["lotame", "chartbeat"]

    def test_duplicate_keys_rejected(self):
        """Test keys must be unique."""
        with pytest.raises(ValueError):
            VendorTable([
                VendorSignature("a", "A", ("a.com",)),
                VendorSignature("a", "A2", ("b.com",)),
            ])

    def test_from_file(self, tmp_path):
        """Test loading a table from JSON, including the list shorthand."""
        path = tmp_path / "vendors.json"
        path.write_text(json.dumps({
            "vendors": {
                "permutive": {"label": "Permutive", "signatures": ["permutive.com"]},
                "comscore": ["scorecardresearch.com"],
            }
        }))

        table = VendorTable.from_file(path)

        assert table.keys() == ["permutive", "comscore"]
        assert table.get("comscore").label == "comscore"
        assert table.to_dict()["permutive"]["signatures"] == ["permutive.com"]
