"""Tests for the AMP validator client."""

import httpx
import pytest

from seo_batch.amp_validator import (
    AmpValidationStatus,
    AmpValidator,
    format_validation_error,
    not_validated,
)

API_URL = "https://validator.test/validator.json"


def make_validator(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return AmpValidator(api_url=API_URL, user_agent="test-agent", client=client)


class TestAmpValidator:
    """Tests for AmpValidator.validate."""

    def test_pass(self):
        """Test a passing page and the request sent for it."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"status": "PASS", "errors": []})

        result = make_validator(handler).validate("https://example.com/amp/x")

        assert result.status == AmpValidationStatus.PASS
        assert result.summary == "PASS"
        assert result.passed
        assert seen[0].url.params["url"] == "https://example.com/amp/x"
        assert seen[0].headers["User-Agent"] == "test-agent"

    def test_fail_with_errors(self):
        """Test validator errors are formatted and counted."""
        def handler(request):
            return httpx.Response(200, json={
                "status": "FAIL",
                "errors": [
                    {"line": 12, "col": 4, "message": "The tag 'img' is disallowed.", "code": "DISALLOWED_TAG"},
                    {"line": 30, "col": 1, "message": "Missing attribute.", "code": "MANDATORY_ATTR_MISSING"},
                ],
            })

        result = make_validator(handler).validate("https://example.com/amp/x")

        assert result.status == AmpValidationStatus.FAIL
        assert result.summary == "FAIL (2 errors)"
        assert result.errors[0] == "L12 C4: The tag 'img' is disallowed. (DISALLOWED_TAG)"
        assert not result.passed

    def test_fail_single_error(self):
        """Test the summary uses the singular for one error."""
        def handler(request):
            return httpx.Response(200, json={"status": "FAIL", "errors": [{"message": "Bad"}]})

        result = make_validator(handler).validate("https://example.com/amp/x")

        assert result.summary == "FAIL (1 error)"
        assert result.errors == ["L0 C0: Bad (NO_CODE)"]

    @pytest.mark.parametrize("response,expected", [
        (httpx.Response(503, text="unavailable"), "API Error: HTTP Status 503"),
        (httpx.Response(200, text="<html>not json</html>"), "API Error: JSON Parse Error"),
        (httpx.Response(200, json=["not", "an", "object"]), "API Error: JSON Parse Error"),
        (httpx.Response(200, json={"status": "UNKNOWN"}), "API Error: Unknown status: UNKNOWN"),
    ])
    def test_api_errors(self, response, expected):
        """Test bad responses become API_ERROR results."""
        validator = make_validator(lambda request: response)

        result = validator.validate("https://example.com/amp/x")

        assert result.status == AmpValidationStatus.API_ERROR
        assert result.summary.startswith(expected)

    def test_transport_error(self):
        """Test network failures become API_ERROR results."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        validator = make_validator(handler)
        result = validator.validate("https://example.com/amp/x")

        assert result.status == AmpValidationStatus.API_ERROR
        assert result.summary.startswith("API Error: Network Error")
        assert validator.failed_requests == 1

    @pytest.mark.parametrize("url", [None, "", "  ", "Not Found"])
    def test_invalid_url(self, url):
        """Test unusable URLs are rejected without a request."""
        def handler(request):
            raise AssertionError("no request expected")

        result = make_validator(handler).validate(url)

        assert result.status == AmpValidationStatus.URL_ERROR
        assert result.summary.startswith("Invalid URL for validation")


class TestHelpers:
    """Tests for the module helpers."""

    def test_format_validation_error(self):
        """Test the error line layout."""
        error = {"line": 3, "col": 7, "message": "Oops", "code": "X"}

        assert format_validation_error(error) == "L3 C7: Oops (X)"

    def test_not_validated(self):
        """Test the result for pages that were skipped."""
        result = not_validated("https://example.com/x")

        assert result.status == AmpValidationStatus.NOT_VALIDATED
        assert result.to_dict()["summary"] == "Not an AMP page or AMP URL not found"
