"""Tests for ETag and conditional response handling."""

import gzip
import json
import zlib
from datetime import datetime

import pytest
from starlette.requests import Request

from backoffice.server.utils.http_cache import (
    CachePolicy,
    build_conditional_response,
    canonical_json,
    compress_body,
    etag_matches,
    generate_etag,
    negotiate_encoding,
)

POLICY = CachePolicy(max_age=60, s_maxage=300, stale_while_revalidate=180)


def _request(headers=None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/api/v1/business-cards/fast",
        "query_string": b"",
        "headers": raw_headers,
    })


class TestEtagGeneration:
    def test_key_order_does_not_change_etag(self):
        assert generate_etag({"a": 1, "b": [1, 2]}) == generate_etag({"b": [1, 2], "a": 1})

    def test_content_change_changes_etag(self):
        assert generate_etag({"a": 1}) != generate_etag({"a": 2})

    def test_etag_is_md5_hex(self):
        etag = generate_etag({"a": 1})

        assert len(etag) == 32
        int(etag, 16)

    def test_canonical_json_handles_datetimes(self):
        body = canonical_json({"b": datetime(2024, 1, 1), "a": 1})

        assert body == b'{"a":1,"b":"2024-01-01T00:00:00"}'


class TestEtagMatches:
    @pytest.mark.parametrize("header", [
        '"abc"',
        "abc",
        'W/"abc"',
        '"zzz", "abc"',
        "*",
    ])
    def test_matching_forms(self, header):
        assert etag_matches(header, '"abc"') is True

    @pytest.mark.parametrize("header", [None, "", '"abd"', '"zzz", W/"yyy"'])
    def test_non_matching_forms(self, header):
        assert etag_matches(header, '"abc"') is False


class TestNegotiateEncoding:
    def test_prefers_gzip(self):
        assert negotiate_encoding("deflate, gzip") == "gzip"

    def test_deflate_when_gzip_refused(self):
        assert negotiate_encoding("gzip;q=0, deflate") == "deflate"

    def test_wildcard(self):
        assert negotiate_encoding("*") == "gzip"

    def test_unsupported_only(self):
        assert negotiate_encoding("br") is None
        assert negotiate_encoding(None) is None

    def test_compress_body_round_trip(self):
        body = b"x" * 2000

        assert gzip.decompress(compress_body(body, "gzip")) == body
        assert zlib.decompress(compress_body(body, "deflate")) == body
        with pytest.raises(ValueError):
            compress_body(body, "br")


class TestCachePolicy:
    def test_header(self):
        assert POLICY.header() == "public, max-age=60, s-maxage=300, stale-while-revalidate=180"

    def test_hit_policy_is_longer_than_miss(self):
        hit = CachePolicy.for_result(True)
        miss = CachePolicy.for_result(False)

        assert hit.max_age > miss.max_age


class TestBuildConditionalResponse:
    """Tests for build_conditional_response."""

    def test_fresh_response_headers(self):
        payload = {"items": [1, 2, 3]}

        response = build_conditional_response(_request(), payload, policy=POLICY, threshold=1024, level=6)

        assert response.status_code == 200
        assert response.headers["etag"] == f'"{generate_etag(payload)}"'
        assert response.headers["cache-control"] == POLICY.header()
        assert response.headers["vary"] == "Accept-Encoding"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "content-encoding" not in response.headers
        assert json.loads(response.body) == payload

    def test_matching_etag_returns_304(self):
        payload = {"items": [1]}
        etag = f'"{generate_etag(payload)}"'

        response = build_conditional_response(
            _request({"If-None-Match": etag}), payload, policy=POLICY, threshold=1024, level=6,
        )

        assert response.status_code == 304
        assert response.body == b""
        assert response.headers["etag"] == etag
        assert response.headers["cache-control"] == POLICY.header()

    def test_etag_ignores_volatile_fields(self):
        content = {"items": [1]}
        first = build_conditional_response(
            _request(), {**content, "responseTime": 3, "_cached": False}, etag_source=content,
            policy=POLICY, threshold=1024, level=6,
        )
        second = build_conditional_response(
            _request(), {**content, "responseTime": 17, "_cached": True}, etag_source=content,
            policy=POLICY, threshold=1024, level=6,
        )

        assert first.headers["etag"] == second.headers["etag"]

    def test_large_body_is_gzipped(self):
        payload = {"items": [{"name": "Acme Corporation", "index": i} for i in range(100)]}

        response = build_conditional_response(
            _request({"Accept-Encoding": "gzip, deflate"}), payload, policy=POLICY, threshold=512, level=6,
        )

        assert response.headers["content-encoding"] == "gzip"
        assert float(response.headers["x-compression-ratio"]) > 0
        assert json.loads(gzip.decompress(response.body)) == payload

    def test_small_body_not_compressed(self):
        response = build_conditional_response(
            _request({"Accept-Encoding": "gzip"}), {"a": 1}, policy=POLICY, threshold=512, level=6,
        )

        assert "content-encoding" not in response.headers
