"""Shared fixtures: a fake clock for the rate limiter and YouTube Music search pages."""

import json
import os
import sys
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# HTTP responses
# ---------------------------------------------------------------------------

def _make_response(status=200, payload=None, text=None):
    resp = MagicMock()
    resp.status_code = status
    if payload is not None:
        body = json.dumps(payload)
        resp.json.return_value = payload
    else:
        body = text or ""
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    resp.text = body
    resp.content = body.encode("utf-8")
    return resp


@pytest.fixture
def make_response():
    return _make_response


# ---------------------------------------------------------------------------
# YouTube Music search pages
# ---------------------------------------------------------------------------

def _make_item(video_id=None, title="Song A"):
    runs = [{"text": title}]
    if video_id:
        runs.append({
            "text": title,
            "navigationEndpoint": {"watchEndpoint": {"videoId": video_id}},
        })
    return {
        "musicResponsiveListItemRenderer": {
            "flexColumns": [
                {"musicResponsiveListItemFlexColumnRenderer": {"text": {"runs": runs}}},
            ],
        },
    }


def _make_payload(items=None, sections=None, tabs=None):
    if sections is None:
        sections = [
            {"musicCardShelfRenderer": {"header": {"title": "Top result"}}},
            {"musicShelfRenderer": {"contents": items or []}},
        ]
    if tabs is None:
        tabs = [{"tabRenderer": {"content": {"sectionListRenderer": {"contents": sections}}}}]
    return {"contents": {"tabbedSearchResultsRenderer": {"tabs": tabs}}}


def _escape_like_page(payload):
    """Escape JSON the way the search page embeds it (hex escapes for structural characters)."""
    text = json.dumps(payload)
    return (
        text.replace('"', "\\x22")
        .replace("{", "\\x7b")
        .replace("}", "\\x7d")
        .replace("[", "\\x5b")
        .replace("]", "\\x5d")
    )


def _make_body(payload=None, fragment=None):
    if fragment is None:
        fragment = _escape_like_page(payload)
    return (
        "<!DOCTYPE html><html><body><script nonce=\"abc\">"
        "try {const initialData = [];"
        "initialData.push({path: '\\/search', params: JSON.parse('\\x7b\\x22query\\x22:\\x22song\\x22\\x7d'), data: '"
        + fragment
        + "'});ytcfg.set({'YTMUSIC_INITIAL_DATA': initialData});} catch (e) {}"
        "</script></body></html>"
    )


@pytest.fixture
def search_page():
    """Builders for search payloads and the HTML page that embeds them."""

    class SearchPage:
        make_item = staticmethod(_make_item)
        make_payload = staticmethod(_make_payload)
        escape = staticmethod(_escape_like_page)
        make_body = staticmethod(_make_body)

    return SearchPage
