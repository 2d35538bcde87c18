# -*- coding: utf-8 -*-

"""
Paged listing.

A ``Pager`` wraps a page-fetch function and exposes a forward-only,
non-restartable sequence of pages. Each fetch receives the continuation
cursor returned by the previous page; a missing cursor ends the sequence.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from .errors import DecodeError, PagerExhausted


@dataclass(frozen=True)
class Page:
    items: list = field(default_factory=list)
    next_cursor: str | None = None


class Pager:
    """
    Lazy sequence of result pages.

    Args:
        fetch_page (callable): ``fetch_page(cursor) -> Page``. The first call
            receives ``first_cursor`` (None for the initial listing).
        first_cursor (str): Optional cursor for the first request.
    """

    def __init__(self, fetch_page: Callable[[str | None], Page], first_cursor: str | None = None):
        self._fetch_page = fetch_page
        self._cursor = first_cursor
        self._finished = False
        self.page_count = 0

    def has_more(self) -> bool:
        return not self._finished

    def next_page(self) -> list:
        """
        Fetch the next page of items.

        Raises:
            PagerExhausted: The previous page was the last one. No request is issued.
        """
        if self._finished:
            raise PagerExhausted("No more pages: the server did not return a continuation cursor.")

        page = self._fetch_page(self._cursor)
        self.page_count += 1
        self._cursor = page.next_cursor or None
        if self._cursor is None:
            self._finished = True
        return list(page.items)

    def by_page(self) -> Iterator[list]:
        while self.has_more():
            yield self.next_page()

    def __iter__(self) -> Iterator[Any]:
        for page in self.by_page():
            yield from page


def arm_page_fetcher(client, url: str, item_type=None, params=None) -> Callable[[str | None], Page]:
    """
    Build a page fetcher for list endpoints returning ``{"value": [...], "nextLink": ...}``.

    Args:
        client: ApiClient used for the GET requests.
        url (str): URL (or path relative to the client base URL) of the first page.
        item_type: Optional Model subclass used to decode each item.
        params (dict): Query parameters for the first page. Later pages use
            the nextLink verbatim, which already carries them.
    """
    def fetch(cursor):
        if cursor:
            payload = client.send("GET", cursor)
        else:
            payload = client.send("GET", url, params=params)
        if not isinstance(payload, dict) or not isinstance(payload.get("value", []), list):
            raise DecodeError("List response is not an object with a 'value' array.", body=str(payload))

        items = payload.get("value") or []
        if item_type is not None:
            items = [item_type.from_wire(item) for item in items]
        next_link = payload.get("nextLink") or payload.get("@odata.nextLink")
        logging.debug(f"Fetched page with {len(items)} items (more pages: {bool(next_link)})")
        return Page(items=items, next_cursor=next_link)

    return fetch
