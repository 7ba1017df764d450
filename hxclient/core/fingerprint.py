"""Deterministic cache keys for requests.

A fingerprint is derived from the client namespace, the HTTP method and the
normalized URL (plus optionally selected headers), so equivalent requests map
to the same cache entry.
"""

import hashlib
from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from hxclient.domain.models.common import CacheKey, Namespace
from hxclient.domain.models.http import Request

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """Normalizes a URL for use in a cache key.

    Lower-cases scheme and host, drops default ports, credentials and the
    fragment, defaults an empty path to "/" and sorts query parameters.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal

    netloc = host
    port = parts.port
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"

    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((scheme, netloc, parts.path or "/", query, ""))


def fingerprint(namespace: Namespace, request: Request, vary_headers: Iterable[str] = ()) -> CacheKey:
    """Returns the cache key for a request.

    Args:
        namespace: Client namespace, keeps keys of different clients apart.
        request: The request to fingerprint.
        vary_headers: Header names whose values also distinguish entries.

    Returns:
        A key of the form "<namespace>:<sha256 hex>".
    """
    components = [namespace, request.method.upper(), normalize_url(request.url)]
    for name in vary_headers:
        components.append(f"{name.lower()}={request.get_header(name, '')}")

    digest = hashlib.sha256("\n".join(components).encode("utf-8")).hexdigest()
    return CacheKey(f"{namespace}:{digest}")
