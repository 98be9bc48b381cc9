"""
Redirect URL Helpers
====================
Redirect URI derivation and callback parameter scrubbing.
"""

from typing import Dict
from urllib.parse import parse_qs, urlsplit, urlunsplit

CALLBACK_PARAMS = ("code", "error", "error_description", "state")


def redirect_uri_for(url: str) -> str:
    """
    ``origin + pathname`` of a page URL: no query, no fragment.

    The provider compares this byte for byte with the URI registered for
    the app and with the one sent at token exchange.
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def scrub_url(url: str) -> str:
    """The URL left visible after callback processing: only the path."""
    return redirect_uri_for(url)


def callback_params(url: str) -> Dict[str, str]:
    """First value of each OAuth callback parameter present in the URL."""
    query = parse_qs(urlsplit(url).query, keep_blank_values=True)
    return {key: query[key][0] for key in CALLBACK_PARAMS if key in query}
