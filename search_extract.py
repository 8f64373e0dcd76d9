"""Pull the first video id out of a YouTube Music search page.

The search page is HTML; the result data sits in a script tag as a quoted,
escaped JavaScript string:

    initialData.push({path: '\\/search', params: JSON.parse('...'), data: '<payload>'});ytcfg.set({'YTMUSIC_INITIAL_DATA' ...

The payload is JSON once the escapes are undone. Its layout is a fixed,
unversioned contract of the page, so every step is checked and reported as
an ExtractionError rather than trusted.
"""

import json

from errors import MarkerNotFound, SchemaMismatch
from log_setup import get_logger

SEARCH_MARKER = "initialData.push({path: '\\/search',"
DATA_MARKER = "data: '"
END_MARKER = "'});ytcfg.set({'YTMUSIC_INITIAL_DATA'"

# Order matters: \x must become \u00 before the \u00xx structural escapes are
# replaced, and the double-backslash collapse runs last.
ESCAPE_REPLACEMENTS = (
    ("\\x", "\\u00"),
    ("\\u0022", '"'),
    ("\\u003d", "="),
    ("\\u005d", "]"),
    ("\\u005b", "["),
    ("\\u007b", "{"),
    ("\\u007d", "}"),
    ("\\\\", "\\"),
)

log = get_logger("search")


def locate_fragment(raw_body):
    """Return the text strictly between the data marker and the end marker."""
    search_at = raw_body.find(SEARCH_MARKER)
    if search_at < 0:
        raise MarkerNotFound(SEARCH_MARKER)

    data_at = raw_body.find(DATA_MARKER, search_at + len(SEARCH_MARKER))
    if data_at < 0:
        raise MarkerNotFound(DATA_MARKER)
    start = data_at + len(DATA_MARKER)

    end = raw_body.find(END_MARKER, start)
    if end < 0:
        raise MarkerNotFound(END_MARKER)

    return raw_body[start:end]


def normalize_escapes(fragment):
    for old, new in ESCAPE_REPLACEMENTS:
        fragment = fragment.replace(old, new)
    return fragment


def _get(node, *path):
    """Follow dict keys / list indexes; None as soon as something is missing."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or not -len(node) <= step < len(node):
                return None
        elif not isinstance(node, dict):
            return None
        node = node[step] if isinstance(step, int) else node.get(step)
        if node is None:
            return None
    return node


class SearchResultTree:
    """Read-only view over a decoded search payload.

    tabs -> sections -> shelf -> items -> flex columns -> text runs -> navigation endpoint
    """

    def __init__(self, payload):
        self.payload = payload

    @classmethod
    def from_payload(cls, payload):
        tabs = _get(payload, "contents", "tabbedSearchResultsRenderer", "tabs")
        if not isinstance(tabs, list):
            raise SchemaMismatch(
                "Search payload has no contents.tabbedSearchResultsRenderer.tabs list", payload=payload,
            )
        return cls(payload)

    @property
    def tabs(self):
        return _get(self.payload, "contents", "tabbedSearchResultsRenderer", "tabs")

    def sections(self):
        tabs = self.tabs
        if not tabs:
            raise SchemaMismatch("Search payload has an empty tab list", payload=self.payload)

        sections = _get(tabs[0], "tabRenderer", "content", "sectionListRenderer", "contents")
        if not isinstance(sections, list) or not sections:
            raise SchemaMismatch("First search tab has no sections", payload=self.payload)
        return sections

    def first_video_id(self):
        """Video id of the first run that links to a watch page, or None."""
        flex_columns = _get(
            self.sections(),
            1, "musicShelfRenderer", "contents",
            0, "musicResponsiveListItemRenderer", "flexColumns",
        )
        for column in flex_columns or []:
            runs = _get(column, "musicResponsiveListItemFlexColumnRenderer", "text", "runs")
            for run in runs or []:
                video_id = _get(run, "navigationEndpoint", "watchEndpoint", "videoId")
                if video_id:
                    return video_id
        return None


def parse_payload(raw_body):
    """Locate, unescape and decode the embedded search JSON."""
    text = normalize_escapes(locate_fragment(raw_body))
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        log.debug(f"Received JSON: {text}")
        raise SchemaMismatch(f"Failed to deserialize search payload: {e}", payload=text) from e


def extract_first_match(raw_body):
    """Return the first video id in a search page, or None when nothing matched."""
    tree = SearchResultTree.from_payload(parse_payload(raw_body))
    video_id = tree.first_video_id()
    log.debug(f"Found video ID: {video_id or '<unknown>'}")
    return video_id
