"""
URL utility functions for validating request targets.
"""

from __future__ import annotations

from urllib import parse

_REQUEST_SCHEMES = frozenset(["http", "https"])


def is_valid_request_url(url: str) -> bool:
    """Check whether *url* is a well-formed HTTP(S) request target.

    Requires an ``http``/``https`` scheme and a host.  A port, when
    given, must be numeric and in range.
    """
    if not url or any(c.isspace() for c in url):
        return False
    try:
        parsed = parse.urlparse(url)
        # Accessing .port raises ValueError for malformed ports.
        _ = parsed.port
    except ValueError:
        return False
    return parsed.scheme.lower() in _REQUEST_SCHEMES and bool(parsed.hostname)


def resolve_redirect(base_url: str, location: str) -> str:
    """Resolve a ``Location`` header value against the URL that sent it."""
    return parse.urljoin(base_url, location)
