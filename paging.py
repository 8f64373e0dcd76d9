"""Cursor pagination: follow `next` links until the collection is drained."""

from errors import NetworkError, PaginationLimitExceeded
from log_setup import get_logger

log = get_logger("http")


class PagedFetcher:
    """Fetch every page of a `{items: [...], next: url|null}` endpoint.

    Each page is one rate-limited call on `bucket`. Items keep response order.
    The first error aborts the fetch; nothing partial is returned.
    """

    def __init__(self, http, bucket, items_key="items", next_key="next", max_pages=None):
        self.http = http
        self.bucket = bucket
        self.items_key = items_key
        self.next_key = next_key
        self.max_pages = max_pages

    def iter_pages(self, initial_url, headers=None):
        url = initial_url
        pages = 0
        while url:
            if self.max_pages is not None and pages >= self.max_pages:
                raise PaginationLimitExceeded(f"Stopped after {pages} pages, next page still pending: {url}")
            page = self.http.get_json(self.bucket, url, headers=headers)
            if not isinstance(page, dict):
                raise NetworkError(f"GET {url} returned a {type(page).__name__} instead of a page object", body=str(page))
            pages += 1
            yield page
            url = page.get(self.next_key)

    def fetch_all(self, initial_url, headers=None):
        items = []
        for page in self.iter_pages(initial_url, headers):
            items.extend(page.get(self.items_key) or [])
        log.debug(f"Fetched {len(items)} items from {initial_url}")
        return items
