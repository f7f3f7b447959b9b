"""Tests for scan request validation."""

import pytest

from gpteo_scanner.errors import ValidationError
from gpteo_scanner.models import ScanMode, ScanRequest
from gpteo_scanner.validation import is_absolute_url, normalize_domain, validate_scan_request


def _request(**overrides) -> ScanRequest:
    values = {
        "owner_id": "owner-1",
        "domain": "example.com",
        "seed_urls": ["https://example.com/"],
        "mode": None,
    }
    values.update(overrides)
    return ScanRequest(**values)


class TestNormalizeDomain:
    """Test cases for normalize_domain."""

    def test_strips_scheme_www_and_slash(self):
        """Test the canonical example from the scan form."""
        assert normalize_domain("HTTPS://WWW.Example.com/") == "example.com"

    def test_strips_path_and_port(self):
        """Test that paths and ports are removed."""
        assert normalize_domain("http://shop.example.co.uk:8080/products/1") == "shop.example.co.uk"
        assert normalize_domain("  example.org/about ") == "example.org"

    def test_rejects_hosts_without_dot(self):
        """Test that bare hosts and empty input are rejected."""
        assert normalize_domain("localhost") is None
        assert normalize_domain("https://") is None
        assert normalize_domain("") is None

    def test_rejects_empty_labels(self):
        """Test that dots without labels between them are rejected."""
        assert normalize_domain(".") is None
        assert normalize_domain("..") is None
        assert normalize_domain("https://../") is None
        assert normalize_domain("example..com") is None
        assert normalize_domain(".example.com") is None


class TestIsAbsoluteUrl:
    """Test cases for is_absolute_url."""

    def test_accepts_http_and_https(self):
        assert is_absolute_url("https://example.com/page") is True
        assert is_absolute_url("http://example.com") is True

    def test_rejects_relative_and_other_schemes(self):
        assert is_absolute_url("/products/1") is False
        assert is_absolute_url("ftp://example.com/file") is False
        assert is_absolute_url("not a url") is False


class TestValidateScanRequest:
    """Test cases for validate_scan_request."""

    def test_valid_request(self):
        """Test that a valid request is normalized."""
        domain, urls, mode = validate_scan_request(
            _request(domain="WWW.Example.com", seed_urls=[" https://example.com/ "])
        )

        assert domain == "example.com"
        assert urls == ["https://example.com/"]
        assert mode == ScanMode.QUICK

    def test_empty_seed_urls(self):
        """Test that at least one URL is required."""
        with pytest.raises(ValidationError, match="at least one URL required"):
            validate_scan_request(_request(seed_urls=[]))

    def test_too_many_seed_urls(self):
        """Test the seed URL limit."""
        urls = [f"https://example.com/{i}" for i in range(11)]
        with pytest.raises(ValidationError, match="At most 10"):
            validate_scan_request(_request(seed_urls=urls))

    def test_invalid_seed_url(self):
        """Test that relative URLs are rejected."""
        with pytest.raises(ValidationError, match="Invalid URL"):
            validate_scan_request(_request(seed_urls=["https://example.com/", "/relative"]))

    def test_non_string_seed_url(self):
        """Test that non-string seed URLs raise a validation error."""
        with pytest.raises(ValidationError, match="Invalid URL: 42"):
            validate_scan_request(_request(seed_urls=["https://example.com/", 42]))

    def test_invalid_domain(self):
        """Test that a domain without a dot is rejected."""
        with pytest.raises(ValidationError, match="Invalid domain"):
            validate_scan_request(_request(domain="intranet"))

    def test_mode_parsing(self):
        """Test mode strings and the unknown-mode error."""
        assert validate_scan_request(_request(mode="DEEP"))[2] == ScanMode.DEEP
        assert validate_scan_request(_request(mode=ScanMode.STANDARD))[2] == ScanMode.STANDARD

        with pytest.raises(ValidationError, match="Invalid mode"):
            validate_scan_request(_request(mode="turbo"))
