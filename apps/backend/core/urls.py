"""
URL normalization and resolution used for link identity and dedupe.

Normalized URLs are compared by exact string equality. Only the fragment
and a fixed set of tracking parameters are dropped; case and trailing
slashes are left alone.
"""
import logging
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit, parse_qsl, urlencode, unquote_plus

logger = logging.getLogger(__name__)

# Tracking parameters to strip
TRACKING_PARAMS = (
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_term',
    'utm_content', 'fbclid',
)

VALID_SCHEMES = ('http', 'https')

# Hrefs that never resolve to a page
NON_PAGE_PREFIXES = ('javascript:', 'mailto:', 'tel:', 'data:', '#')


def normalize_url(url: str) -> str:
    """
    Normalize URL for deduplication:
    - Drop the fragment
    - Strip tracking parameters, keeping the rest of the query verbatim

    Returns the input unchanged if it cannot be parsed as an absolute URL.
    """
    if not url:
        return url
    try:
        parsed = urlsplit(url.strip())
    except ValueError as e:
        logger.debug(f"Malformed URL left as-is {url!r}: {e}")
        return url

    if not parsed.scheme or not parsed.netloc:
        return url

    kept = []
    for pair in parsed.query.split('&'):
        if not pair:
            continue
        key = unquote_plus(pair.split('=', 1)[0])
        if key in TRACKING_PARAMS:
            continue
        kept.append(pair)

    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, '&'.join(kept), ''))


def is_valid_absolute_url(url: Optional[str]) -> bool:
    """Check that url is a syntactically valid absolute http(s) URL."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlsplit(url)
        # Accessing port validates it
        parsed.port
    except ValueError:
        return False
    if parsed.scheme.lower() not in VALID_SCHEMES:
        return False
    if not parsed.hostname:
        return False
    if any(ch.isspace() for ch in url):
        return False
    return True


def resolve_url(href: Optional[str], base: str) -> Optional[str]:
    """
    Resolve a possibly-relative href against base.

    Returns None for empty, non-page (mailto:, javascript:, ...) or
    malformed input.
    """
    if not href or not isinstance(href, str):
        return None
    href = href.strip()
    if not href or href.lower().startswith(NON_PAGE_PREFIXES):
        return None
    try:
        absolute = urljoin(base, href)
    except ValueError as e:
        logger.debug(f"Could not resolve {href!r} against {base!r}: {e}")
        return None
    if not is_valid_absolute_url(absolute):
        return None
    return absolute


def get_query_param(url: str, name: str) -> Optional[str]:
    """Return the first value of query parameter name, if present."""
    try:
        query = urlsplit(url).query
    except ValueError:
        return None
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key == name:
            return value
    return None


def set_query_param(url: str, name: str, value) -> Optional[str]:
    """Return url with query parameter name set to value (replacing any existing one)."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return None
    params = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != name]
    params.append((name, str(value)))
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, urlencode(params), parsed.fragment))


def build_url(base: str, params: dict) -> str:
    """Merge non-empty params into base's query string."""
    url = base
    for key, value in params.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        url = set_query_param(url, key, value.strip() if isinstance(value, str) else value) or url
    return url
