"""
URL helpers shared by discovery, crawling and extraction.
"""

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

import validators


DEFAULT_PORTS = {'http': 80, 'https': 443}


def is_valid_url(url: str) -> bool:
    """Check that ``url`` is an absolute http(s) URL"""
    if not url or not isinstance(url, str):
        return False
    if urlparse(url).scheme not in ('http', 'https'):
        return False
    return validators.url(url) is True


def normalize_url(url: str) -> str:
    """
    Normalize URL by dropping the fragment and default port and lowercasing
    the host. A trailing slash is removed except for the site root.
    """
    parsed = urlparse(url.strip())

    if not parsed.scheme:
        parsed = urlparse(f"https://{url.strip()}")

    netloc = parsed.netloc.lower()
    if netloc.endswith(':80') and parsed.scheme == 'http':
        netloc = netloc[:-3]
    elif netloc.endswith(':443') and parsed.scheme == 'https':
        netloc = netloc[:-4]

    path = parsed.path or '/'
    if path != '/' and path.endswith('/'):
        path = path[:-1]

    return urlunparse((parsed.scheme.lower(), netloc, path, parsed.params, parsed.query, ''))


def get_origin(url: str) -> str:
    """Return scheme://host[:port] with default ports omitted"""
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or '').lower()
    port: Optional[int] = parsed.port
    if port is None or port == DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def same_origin(url: str, base_url: str) -> bool:
    """True if both URLs share scheme, host and port"""
    try:
        return get_origin(url) == get_origin(base_url)
    except ValueError:
        # urlparse raises on malformed ports
        return False


def join_url(base_url: str, path: str) -> str:
    """Resolve ``path`` against ``base_url``; an empty path yields the site root"""
    if not path:
        return normalize_url(base_url)
    return normalize_url(urljoin(base_url.rstrip('/') + '/', path.lstrip('/')))
