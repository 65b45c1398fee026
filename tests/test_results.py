"""Unit tests for result collections and pagination."""

from unittest.mock import MagicMock

import pytest

from autotask_api_client.entities import ServiceCallTicket
from autotask_api_client.exceptions import InvalidArgumentError, MalformedResponseError
from autotask_api_client.results import EntityCollection, Paginator


def _page(ids, next_url=None, prev_url=None):
    return {
        "items": [{"id": i, "serviceCallID": 10, "ticketID": 100 + i} for i in ids],
        "pageDetails": {
            "count": len(ids),
            "requestCount": 2,
            "prevPageUrl": prev_url,
            "nextPageUrl": next_url,
        },
    }


class TestEntityCollection:
    """Tests for EntityCollection.from_response."""

    def test_items_parsed_into_entities(self):
        collection = EntityCollection.from_response(_page([1, 2]), ServiceCallTicket)

        assert len(collection) == 2
        assert [ticket.ticket_id for ticket in collection] == [101, 102]

    def test_items_kept_as_dicts_without_entity_class(self):
        collection = EntityCollection.from_response({"items": [{"id": 1}]})
        assert collection[0] == {"id": 1}

    def test_slice_returns_collection(self):
        collection = EntityCollection.from_response(_page([1, 2, 3]), ServiceCallTicket)

        tail = collection[1:]

        assert isinstance(tail, EntityCollection)
        assert tail.entity_class is ServiceCallTicket
        assert [ticket.id for ticket in tail] == [2, 3]
        assert collection[-1].id == 3

    def test_null_items_is_empty(self):
        assert len(EntityCollection.from_response({"items": None})) == 0

    @pytest.mark.parametrize("payload", [{}, {"item": {"id": 1}}, "not json", None])
    def test_missing_items_key(self, payload):
        with pytest.raises(MalformedResponseError, match="Missing items key"):
            EntityCollection.from_response(payload)


class TestPaginator:
    """Tests for following pageDetails links."""

    def test_single_page(self):
        paginator = Paginator(MagicMock(), _page([1]), ServiceCallTicket)

        assert not paginator.has_next_page()
        assert not paginator.has_previous_page()
        assert paginator.count == 1
        assert paginator.request_count == 2

    def test_next_page_fetches_absolute_url(self):
        client = MagicMock()
        client.get.return_value = _page([3], prev_url="https://zone/prev")
        paginator = Paginator(client, _page([1, 2], next_url="https://zone/next"), ServiceCallTicket)

        second = paginator.next_page()

        client.get.assert_called_once_with("https://zone/next")
        assert [ticket.id for ticket in second.collection] == [3]
        assert second.has_previous_page()

    def test_previous_page(self):
        client = MagicMock()
        client.get.return_value = _page([1])
        paginator = Paginator(client, _page([2], prev_url="https://zone/prev"))

        first = paginator.previous_page()

        client.get.assert_called_once_with("https://zone/prev")
        assert first.collection[0]["id"] == 1

    def test_next_page_on_last_page(self):
        paginator = Paginator(MagicMock(), _page([1]))
        with pytest.raises(InvalidArgumentError):
            paginator.next_page()

    def test_previous_page_on_first_page(self):
        paginator = Paginator(MagicMock(), _page([1]))
        with pytest.raises(InvalidArgumentError):
            paginator.previous_page()

    def test_iter_items_walks_all_pages(self):
        client = MagicMock()
        client.get.side_effect = [
            _page([3, 4], next_url="https://zone/page3"),
            _page([5]),
        ]
        paginator = Paginator(client, _page([1, 2], next_url="https://zone/page2"), ServiceCallTicket)

        ids = [ticket.id for ticket in paginator.iter_items()]

        assert ids == [1, 2, 3, 4, 5]
        assert client.get.call_count == 2

    def test_missing_page_details(self):
        paginator = Paginator(MagicMock(), {"items": [{"id": 1}]})

        assert paginator.count == 1
        assert not paginator.has_next_page()

    def test_malformed_page(self):
        with pytest.raises(MalformedResponseError):
            Paginator(MagicMock(), {"pageDetails": {}})
