"""
Conditional HTTP responses.

Builds JSON responses carrying an ETag over the stable part of the payload,
answers matching If-None-Match requests with 304 Not Modified, sets
Cache-Control directives and compresses large bodies when the client
accepts gzip or deflate.
"""

import gzip
import hashlib
import logging
import zlib
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request, Response

from backoffice.config.settings import get_compression_settings, get_http_cache_policy
from backoffice.utils.cache.serialization import canonical_dumps

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
SUPPORTED_ENCODINGS = ("gzip", "deflate")


def canonical_json(payload: Any) -> bytes:
    """Serialize with sorted keys so equal content always yields equal bytes."""
    return canonical_dumps(payload).encode("utf-8")


def generate_etag(payload: Any) -> str:
    """MD5 hex digest of the canonical JSON encoding (unquoted)."""
    return hashlib.md5(canonical_json(payload)).hexdigest()


def _strip_etag(value: str) -> str:
    value = value.strip()
    if value.startswith("W/"):
        value = value[2:]
    return value.strip().strip('"')


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """
    Weak comparison of an If-None-Match header against an ETag.

    Accepts quoted or bare tags, ``W/`` prefixes, comma-separated lists and
    ``*``.
    """
    if not if_none_match:
        return False

    if if_none_match.strip() == "*":
        return True

    target = _strip_etag(etag)
    return any(_strip_etag(candidate) == target for candidate in if_none_match.split(","))


@dataclass(frozen=True)
class CachePolicy:
    """Cache-Control directives for shared and browser caches."""
    max_age: int
    s_maxage: int
    stale_while_revalidate: int

    @classmethod
    def for_result(cls, cached: bool) -> "CachePolicy":
        """Policy from configuration for a cache hit or a fresh fetch."""
        return cls(**get_http_cache_policy(hit=cached))

    def header(self) -> str:
        return (
            f"public, max-age={self.max_age}, s-maxage={self.s_maxage}, "
            f"stale-while-revalidate={self.stale_while_revalidate}"
        )


def negotiate_encoding(accept_encoding: Optional[str]) -> Optional[str]:
    """
    Pick a response encoding from an Accept-Encoding header.

    gzip is preferred over deflate; codings with q=0 are refused.
    """
    if not accept_encoding:
        return None

    accepted: Dict[str, float] = {}
    for part in accept_encoding.split(","):
        token, _, params = part.strip().partition(";")
        token = token.strip().lower()
        if not token:
            continue
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        accepted[token] = quality

    for encoding in SUPPORTED_ENCODINGS:
        quality = accepted.get(encoding, accepted.get("*", 0.0))
        if quality > 0:
            return encoding
    return None


def compress_body(body: bytes, encoding: str, level: int = 6) -> bytes:
    """Compress with gzip or zlib-wrapped deflate."""
    if encoding == "gzip":
        return gzip.compress(body, compresslevel=level)
    if encoding == "deflate":
        return zlib.compress(body, level)
    raise ValueError(f"Unsupported encoding: {encoding}")


def build_conditional_response(
    request: Request,
    payload: Any,
    etag_source: Any = None,
    policy: Optional[CachePolicy] = None,
    threshold: Optional[int] = None,
    level: Optional[int] = None,
) -> Response:
    """
    Build a JSON response honoring If-None-Match.

    Args:
        request: Incoming request (If-None-Match, Accept-Encoding)
        payload: Full response body
        etag_source: Stable content the ETag is computed over (defaults to payload)
        policy: Cache-Control policy (defaults to the miss policy)
        threshold: Minimum body size in bytes to compress
        level: Compression level

    Returns:
        304 with an empty body when the client's ETag matches, otherwise a
        200 JSON response with ETag and Cache-Control headers.
    """
    if policy is None:
        policy = CachePolicy.for_result(cached=False)
    if threshold is None or level is None:
        settings = get_compression_settings()
        threshold = settings["threshold"] if threshold is None else threshold
        level = settings["level"] if level is None else level

    etag = f'"{generate_etag(payload if etag_source is None else etag_source)}"'
    headers = {
        "ETag": etag,
        "Cache-Control": policy.header(),
        "Vary": "Accept-Encoding",
    }

    if etag_matches(request.headers.get("if-none-match"), etag):
        logger.debug(f"ETag match for {request.url.path}, returning 304")
        return Response(status_code=304, headers=headers)

    body = canonical_json(payload)
    headers["X-Content-Type-Options"] = "nosniff"

    encoding = negotiate_encoding(request.headers.get("accept-encoding"))
    if encoding and len(body) >= threshold:
        compressed = compress_body(body, encoding, level)
        if len(compressed) < len(body):
            ratio = (len(body) - len(compressed)) / len(body) * 100
            headers["Content-Encoding"] = encoding
            headers["X-Compression-Ratio"] = f"{ratio:.1f}"
            body = compressed

    return Response(content=body, status_code=200, media_type=JSON_MEDIA_TYPE, headers=headers)
