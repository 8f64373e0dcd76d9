"""Shared HTTP session and rate-limited request helpers.

Every outbound call in sp2ytm goes through HttpClient.request, which waits on
the bucket for the endpoint class, performs the call with requests, and turns
transport failures and HTTP error statuses into NetworkError.
"""

import requests

from errors import NetworkError
from log_setup import get_logger
from rate_limit import RateLimits

DEFAULT_TIMEOUT = 30
ERROR_BODY_PREVIEW = 500

log = get_logger("http")


def create_session():
    """Return a requests.Session without transparent retries (callers decide)."""
    session = requests.Session()
    session.mount("https://", requests.adapters.HTTPAdapter(max_retries=0))
    return session


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class HttpClient:
    """Blocking HTTP client that owns the per-endpoint rate limit buckets."""

    def __init__(self, session=None, limits=None, timeout=DEFAULT_TIMEOUT):
        self.session = session if session is not None else create_session()
        self.limits = limits if limits is not None else RateLimits.default()
        self.timeout = timeout

    def request(self, bucket, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = bucket.run(self.session.request, method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        log.debug(f"{method} {url} -> HTTP {resp.status_code}")
        if resp.status_code >= 400:
            body = resp.text
            raise NetworkError(
                f"{method} {url} failed (HTTP {resp.status_code}): {body[:ERROR_BODY_PREVIEW]}",
                status_code=resp.status_code,
                body=body,
            )
        return resp

    def get_json(self, bucket, url, headers=None, params=None):
        resp = self.request(bucket, "GET", url, headers=headers, params=params)
        return _decode_json(resp, "GET", url)

    def post_json(self, bucket, url, payload, headers=None):
        resp = self.request(bucket, "POST", url, json=payload, headers=headers)
        return _decode_json(resp, "POST", url)

    def get_text(self, bucket, url, headers=None, params=None):
        return self.request(bucket, "GET", url, headers=headers, params=params).text


def _decode_json(resp, method, url):
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError as e:
        raise NetworkError(
            f"{method} {url} returned a non-JSON body: {resp.text[:ERROR_BODY_PREVIEW]}",
            status_code=resp.status_code,
            body=resp.text,
        ) from e
