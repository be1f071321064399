"""
SiteSync Input Validators
========================

URL validation and canonicalization used for identity matching and
transport requests.
"""

import re
from urllib.parse import urlparse, urlunparse
from typing import Optional

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and canonicalization utilities."""

    ALLOWED_SCHEMES = {"http", "https"}

    TRAILING_SLASH_PATTERN = re.compile(r"/+$")

    @classmethod
    def validate_http_url(cls, url: str) -> str:
        """Validate an http(s) URL and return it normalized.

        Args:
            url: URL to validate

        Returns:
            URL with lower-cased scheme and host and fragment removed

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip()

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValidationError(
                f"Invalid URL format: {str(e)}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return urlunparse(
            parsed._replace(
                scheme=parsed.scheme.lower(),
                netloc=parsed.netloc.lower(),
                path=parsed.path or "/",
                fragment="",
            )
        )

    @classmethod
    def canonical_path(cls, url: Optional[str]) -> str:
        """Reduce a URL to its path for identity comparison.

        Query string, fragment and trailing slashes are dropped and the
        host is ignored, so ``https://x.com/a/?s=rss`` and ``http://x.com/a``
        compare equal. Strings that do not parse as URLs come back stripped.

        Args:
            url: URL to canonicalize (may be empty)

        Returns:
            Canonical path, or an empty string for empty input
        """
        if not url or not isinstance(url, str):
            return ""

        url = url.strip()
        try:
            parsed = urlparse(url)
        except ValueError:
            return url

        if not parsed.scheme and not parsed.netloc:
            # Not an absolute URL; keep it minus query and trailing slash
            path = url.split("?", 1)[0].split("#", 1)[0]
            return cls.TRAILING_SLASH_PATTERN.sub("", path)

        return cls.TRAILING_SLASH_PATTERN.sub("", parsed.path) or "/"


def validate_url(url: str) -> bool:
    """Quick validation function for http(s) URLs."""
    try:
        URLValidator.validate_http_url(url)
        return True
    except ValidationError:
        return False
