"""URL validation and normalization for links found on rendered pages."""

import re
from typing import Optional, Set
from urllib.parse import urljoin, urlparse

from crawl.config import BASE_URL

__all__ = [
    "URLValidationError",
    "ALLOWED_DOMAINS",
    "sanitize_url",
    "validate_url",
    "absolute_url",
]


class URLValidationError(Exception):
    """Raised when a URL is unusable or points outside the catalog site."""
    pass


ALLOWED_DOMAINS: Set[str] = frozenset({
    urlparse(BASE_URL).netloc.lower(),
    "printify.com",
    "www.printify.com",
})

DANGEROUS_SCHEMES = {"javascript", "data", "vbscript", "file"}


def sanitize_url(url: str) -> str:
    """Strip whitespace and control characters."""
    if not url:
        return ""
    url = url.strip()
    url = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", url)
    return url.replace("%00", "")


def validate_url(url: str, allowed_domains: Optional[Set[str]] = None) -> str:
    """Validate a URL and return its sanitized form.

    Raises:
        URLValidationError: If the URL is empty, malformed, uses a non-HTTP
            scheme or points at a domain outside ``allowed_domains``.
    """
    url = sanitize_url(url)
    if not url:
        raise URLValidationError("URL is empty")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in DANGEROUS_SCHEMES:
        raise URLValidationError(f"Dangerous URL scheme: {scheme}")
    if scheme not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme: {scheme!r}")

    domain = parsed.netloc.lower().split(":")[0]
    if not domain:
        raise URLValidationError("URL has no domain")

    domains = allowed_domains if allowed_domains is not None else ALLOWED_DOMAINS
    if domain not in domains:
        raise URLValidationError(f"Domain not allowed: {domain}")

    return url


def absolute_url(href: Optional[str], base_url: str = BASE_URL) -> str:
    """Resolve an href against the site base URL and validate the result.

    The host of ``base_url`` is always accepted alongside ``ALLOWED_DOMAINS``.

    Raises:
        URLValidationError: If the href is missing or resolves to an invalid URL.
    """
    href = sanitize_url(href or "")
    if not href:
        raise URLValidationError("href is empty")
    allowed = ALLOWED_DOMAINS | {urlparse(base_url).netloc.lower().split(":")[0]}
    return validate_url(urljoin(base_url, href), allowed_domains=allowed)
