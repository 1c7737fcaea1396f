"""
URL cleanup: strips marketing/attribution query parameters and
canonicalizes the trailing slash.

The result of ``normalize_url`` is stable under re-application: feeding
``cleaned_url`` back in yields the same ``cleaned_url``.
"""

from typing import List, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from api.errors import MalformedInputError
from api.models import URLProcessResponse

TRACKING_PARAMS = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "fbclid",
    "gclid",
    "ref",
    "source",
    "campaign_id",
})


def _has_forbidden_chars(value: str) -> bool:
    return any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value)


def filter_query(query: str) -> str:
    """
    Drop tracking parameters from a raw query string and re-encode the rest.

    Matching is case-sensitive. Remaining parameters are ordered by name;
    values sharing a name keep their original relative order. Parameters
    without a value are kept as ``name=``.
    """
    pairs: List[Tuple[str, str]] = [
        (name, value)
        for name, value in parse_qsl(query, keep_blank_values=True)
        if name not in TRACKING_PARAMS
    ]
    pairs.sort(key=lambda pair: pair[0])
    return urlencode(pairs)


def strip_trailing_slash(path: str) -> str:
    """
    Remove the trailing slash from any path other than the root.

    A run of trailing slashes is removed as a whole rather than one slash
    at a time, otherwise `/a//` would clean to `/a/` and a second pass
    would change it again to `/a`.
    """
    if path != "/" and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


def normalize_url(raw_url: str) -> URLProcessResponse:
    """
    Clean a URL of tracking parameters.

    Args:
        raw_url: URL as submitted by the client

    Returns:
        URLProcessResponse with the original and cleaned URL plus the
        domain, the path as parsed and the filtered query

    Raises:
        MalformedInputError: If the URL is empty, cannot be parsed or is
            not absolute (scheme and host are required)
    """
    if not raw_url:
        raise MalformedInputError("URL is required")

    if _has_forbidden_chars(raw_url):
        raise MalformedInputError("Invalid URL format", {"url": raw_url})

    try:
        parts = urlsplit(raw_url)
        # port is validated lazily by urllib
        parts.port
    except ValueError as e:
        raise MalformedInputError("Invalid URL format", {"url": raw_url, "reason": str(e)}) from e

    # userinfo is not part of the domain and is dropped from the cleaned URL
    domain = parts.netloc.rpartition("@")[2]
    if not parts.scheme or not parts.hostname:
        raise MalformedInputError("Invalid URL format", {"url": raw_url})

    query = filter_query(parts.query)
    cleaned_url = urlunsplit((parts.scheme, domain, strip_trailing_slash(parts.path), query, ""))

    return URLProcessResponse(
        original_url=raw_url,
        cleaned_url=cleaned_url,
        domain=domain,
        path=parts.path,
        query=query,
    )
