"""
Containers for Autotask query results.

Every query response has the shape::

    {
        "items": [...],
        "pageDetails": {
            "count": 2,
            "requestCount": 500,
            "prevPageUrl": null,
            "nextPageUrl": "https://.../CompanyTeams/query/next?paging=..."
        }
    }

:class:`EntityCollection` holds the parsed ``items`` of one page and
:class:`Paginator` follows the absolute page URLs in ``pageDetails``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Type

from .exceptions import InvalidArgumentError, MalformedResponseError

if TYPE_CHECKING:
    from .client import AutotaskClient

logger = logging.getLogger(__name__)


class EntityCollection(Sequence):
    """An ordered, read-only list of result items from one response."""

    def __init__(self, items: List[Any], entity_class: Optional[Type[Any]] = None) -> None:
        self._items = list(items)
        self.entity_class = entity_class

    @classmethod
    def from_response(
        cls, payload: Any, entity_class: Optional[Type[Any]] = None
    ) -> "EntityCollection":
        """Build a collection from a parsed query response.

        Raises
        ------
        MalformedResponseError
            If ``payload`` has no ``items`` key.
        """
        if not isinstance(payload, dict) or "items" not in payload:
            raise MalformedResponseError("Missing items key in response.")
        raw_items = payload["items"] or []
        if entity_class is not None:
            items = [entity_class.model_validate(item) for item in raw_items]
        else:
            items = list(raw_items)
        return cls(items, entity_class)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return EntityCollection(self._items[index], self.entity_class)
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        name = self.entity_class.__name__ if self.entity_class else "dict"
        return f"<EntityCollection of {len(self._items)} {name} items>"


class Paginator:
    """One page of query results, with navigation to its neighbours.

    Parameters
    ----------
    client : AutotaskClient
        The client used to fetch further pages.
    payload : dict
        The parsed query response for this page.
    entity_class : type, optional
        The entity model result items are parsed into.
    """

    def __init__(
        self,
        client: "AutotaskClient",
        payload: Any,
        entity_class: Optional[Type[Any]] = None,
    ) -> None:
        self.client = client
        self.entity_class = entity_class
        self.collection = EntityCollection.from_response(payload, entity_class)

        page_details: Dict[str, Any] = payload.get("pageDetails") or {}
        self.count: int = page_details.get("count", len(self.collection))
        self.request_count: Optional[int] = page_details.get("requestCount")
        self.next_page_url: Optional[str] = page_details.get("nextPageUrl")
        self.prev_page_url: Optional[str] = page_details.get("prevPageUrl")

    def has_next_page(self) -> bool:
        return bool(self.next_page_url)

    def has_previous_page(self) -> bool:
        return bool(self.prev_page_url)

    def _fetch(self, url: str) -> "Paginator":
        logger.debug(f"Fetching page {url}")
        response = self.client.get(url)
        return Paginator(self.client, response, self.entity_class)

    def next_page(self) -> "Paginator":
        """Fetch the following page.

        Raises
        ------
        InvalidArgumentError
            If this is the last page.
        """
        if not self.has_next_page():
            raise InvalidArgumentError("There is no next page to fetch")
        return self._fetch(self.next_page_url)

    def previous_page(self) -> "Paginator":
        """Fetch the preceding page.

        Raises
        ------
        InvalidArgumentError
            If this is the first page.
        """
        if not self.has_previous_page():
            raise InvalidArgumentError("There is no previous page to fetch")
        return self._fetch(self.prev_page_url)

    def iter_pages(self) -> Iterator["Paginator"]:
        """Yield this page and every following page in order."""
        page = self
        yield page
        while page.has_next_page():
            page = page.next_page()
            yield page

    def iter_items(self) -> Iterator[Any]:
        """Yield every item from this page onwards."""
        for page in self.iter_pages():
            yield from page.collection
