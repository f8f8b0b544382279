"""
Tests for URL validation utilities (SSRF prevention).
"""

import pytest
from utils.url_validator import validate_image_url


class TestValidateImageURL:
    """Tests for image URL validation (SSRF prevention)"""

    def test_valid_https_image_url(self):
        """Valid HTTPS image URL should pass"""
        is_valid, error = validate_image_url("https://example.com/image.jpg")
        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize('url', [
        "https://cdn.example.com/photo.png",
        "https://example.com/animation.gif",
        "https://example.com/modern.webp",
        "https://example.com/UPPER.JPEG",
    ])
    def test_image_extensions_allowed(self, url):
        """Common image formats should be allowed"""
        is_valid, _ = validate_image_url(url)
        assert is_valid is True

    def test_http_url_rejected(self):
        """HTTP URLs should be rejected (only HTTPS allowed)"""
        is_valid, error = validate_image_url("http://example.com/image.jpg")
        assert is_valid is False
        assert "HTTPS" in error

    def test_localhost_rejected(self):
        """Localhost by name should be rejected"""
        is_valid, error = validate_image_url("https://localhost/image.jpg")
        assert is_valid is False
        assert "Local" in error

    def test_metadata_host_rejected(self):
        """Cloud metadata hostname should be rejected"""
        is_valid, _ = validate_image_url("https://metadata.google.internal/image.jpg")
        assert is_valid is False

    @pytest.mark.parametrize('url', [
        "https://127.0.0.1/image.jpg",
        "https://0.0.0.0/image.jpg",
        "https://[::1]/image.jpg",
        "https://10.0.0.1/image.jpg",
        "https://172.16.5.4/image.jpg",
        "https://192.168.1.1/image.jpg",
        "https://169.254.169.254/image.jpg",
    ])
    def test_internal_addresses_rejected(self, url):
        """Loopback, private and link-local IPs should be rejected"""
        is_valid, error = validate_image_url(url)
        assert is_valid is False
        assert error == 'Private network URLs not allowed'

    def test_public_ip_allowed(self):
        """Public IP literals are fine"""
        is_valid, _ = validate_image_url("https://8.8.8.8/image.jpg")
        assert is_valid is True

    def test_non_image_extension_rejected(self):
        """Non-image paths should be rejected"""
        is_valid, error = validate_image_url("https://example.com/script.js")
        assert is_valid is False
        assert "image files" in error

    def test_empty_url_rejected(self):
        """Missing URL should be rejected"""
        assert validate_image_url("")[0] is False
        assert validate_image_url(None)[0] is False

    def test_overlong_url_rejected(self):
        """URLs over 2048 characters should be rejected"""
        is_valid, error = validate_image_url("https://example.com/" + "a" * 2050 + ".jpg")
        assert is_valid is False
        assert "too long" in error
