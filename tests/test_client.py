"""Unit tests for the Autotask HTTP client."""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from autotask_api_client.client import AutotaskClient, EntityService
from autotask_api_client.entities import PriceListProduct
from autotask_api_client.exceptions import AutotaskAPIError, MalformedResponseError
from autotask_api_client.query import QueryBuilder

BASE_URL = "https://webservices14.autotask.net/ATServicesRest/V1.0"


def _response(status_code=200, json_data=None, text="", content_type="application/json"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.headers = {"Content-Type": content_type}
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def client():
    return AutotaskClient(
        username="api@example.com",
        secret="secret",
        integration_code="CODE",
        base_url=BASE_URL + "/",
    )


class TestInit:
    """Tests for client construction."""

    @pytest.mark.parametrize("missing", ["username", "secret", "integration_code"])
    def test_credentials_required(self, missing):
        kwargs = {"username": "u", "secret": "s", "integration_code": "c"}
        kwargs[missing] = ""
        with pytest.raises(ValueError, match=missing):
            AutotaskClient(**kwargs)

    def test_entity_services(self, client):
        assert isinstance(client.price_list_products, EntityService)
        assert client.price_list_products.endpoint == "PriceListProducts"
        assert client.ticket_attachments.endpoint == "TicketAttachments"

    @patch.dict(
        os.environ,
        {
            "AUTOTASK_USERNAME": "env-user",
            "AUTOTASK_SECRET": "env-secret",
            "AUTOTASK_INTEGRATION_CODE": "env-code",
            "AUTOTASK_API_URL": BASE_URL,
        },
        clear=True,
    )
    def test_from_env(self):
        client = AutotaskClient.from_env(timeout=5)

        assert client.username == "env-user"
        assert client.integration_code == "env-code"
        assert client.base_url == BASE_URL
        assert client.timeout == 5

    @patch.dict(os.environ, {}, clear=True)
    def test_from_env_missing_credentials(self):
        with pytest.raises(ValueError):
            AutotaskClient.from_env()


class TestZoneDiscovery:
    """Tests for resolving the zone-specific base URL."""

    @patch("autotask_api_client.client.requests.get")
    def test_base_url_resolved_once(self, mock_get):
        mock_get.return_value = _response(
            json_data={"zoneName": "America West 3", "url": "https://webservices14.autotask.net/ATServicesRest/"}
        )
        client = AutotaskClient(username="api@example.com", secret="s", integration_code="c")

        assert client.base_url == BASE_URL
        assert client.base_url == BASE_URL
        mock_get.assert_called_once_with(
            AutotaskClient._DEFAULT_ZONE_URL,
            params={"user": "api@example.com"},
            timeout=None,
        )

    @patch("autotask_api_client.client.requests.get")
    def test_zone_lookup_error_status(self, mock_get):
        mock_get.return_value = _response(status_code=404, text="not found")
        client = AutotaskClient(username="nobody", secret="s", integration_code="c")

        with pytest.raises(AutotaskAPIError) as exc_info:
            client.base_url
        assert exc_info.value.status_code == 404

    @patch("autotask_api_client.client.requests.get")
    def test_zone_lookup_without_url(self, mock_get):
        mock_get.return_value = _response(json_data={"zoneName": "?"})
        client = AutotaskClient(username="u", secret="s", integration_code="c")

        with pytest.raises(MalformedResponseError):
            client.base_url

    @patch("autotask_api_client.client.requests.get")
    def test_zone_lookup_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("boom")
        client = AutotaskClient(username="u", secret="s", integration_code="c")

        with pytest.raises(AutotaskAPIError, match="Failed to connect"):
            client.base_url


class TestRequest:
    """Tests for the request helpers."""

    @patch("autotask_api_client.client.requests.request")
    def test_get_sends_credentials(self, mock_request, client):
        mock_request.return_value = _response(json_data={"item": {"id": 1}})

        result = client.get("Tickets/1", params={"a": 1}, headers={"Secret": "override", "X-Extra": "1"})

        assert result == {"item": {"id": 1}}
        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == BASE_URL + "/Tickets/1"
        assert kwargs["params"] == {"a": 1}
        assert kwargs["headers"]["UserName"] == "api@example.com"
        assert kwargs["headers"]["Secret"] == "secret"
        assert kwargs["headers"]["ApiIntegrationCode"] == "CODE"
        assert kwargs["headers"]["X-Extra"] == "1"
        assert "ImpersonationResourceId" not in kwargs["headers"]

    @patch("autotask_api_client.client.requests.request")
    def test_impersonation_header(self, mock_request):
        mock_request.return_value = _response(json_data={})
        client = AutotaskClient(
            username="u", secret="s", integration_code="c", base_url=BASE_URL,
            impersonation_resource_id=29682885,
        )

        client.get("Tickets/1")

        assert mock_request.call_args.kwargs["headers"]["ImpersonationResourceId"] == "29682885"

    @patch("autotask_api_client.client.requests.request")
    def test_absolute_url_passthrough(self, mock_request, client):
        mock_request.return_value = _response(json_data={"items": []})

        client.get("https://webservices14.autotask.net/next?paging=abc")

        assert mock_request.call_args.kwargs["url"] == "https://webservices14.autotask.net/next?paging=abc"

    @patch("autotask_api_client.client.requests.request")
    def test_timeout_override(self, mock_request):
        mock_request.return_value = _response(json_data={})
        client = AutotaskClient(
            username="u", secret="s", integration_code="c", base_url=BASE_URL, timeout=30
        )

        client.get("Tickets/1")
        assert mock_request.call_args.kwargs["timeout"] == 30
        client.get("Tickets/1", timeout=2)
        assert mock_request.call_args.kwargs["timeout"] == 2

    @patch("autotask_api_client.client.requests.request")
    def test_error_status_raises(self, mock_request, client):
        mock_request.return_value = _response(
            status_code=500, json_data={"errors": ["Query failed"]}, text="ignored"
        )

        with pytest.raises(AutotaskAPIError, match="Query failed") as exc_info:
            client.get("Tickets/query")
        assert exc_info.value.status_code == 500
        assert exc_info.value.url == BASE_URL + "/Tickets/query"

    @patch("autotask_api_client.client.requests.request")
    def test_connection_error_wrapped(self, mock_request, client):
        mock_request.side_effect = requests.Timeout("timed out")

        with pytest.raises(AutotaskAPIError, match="Failed to connect") as exc_info:
            client.get("Tickets/1")
        assert isinstance(exc_info.value.__cause__, requests.Timeout)

    @patch("autotask_api_client.client.requests.request")
    def test_non_json_response_returns_text(self, mock_request, client):
        mock_request.return_value = _response(text="plain", content_type="text/plain")
        assert client.get("Tickets/1") == "plain"

    @patch("autotask_api_client.client.requests.request")
    def test_post_and_patch_send_json(self, mock_request, client):
        mock_request.return_value = _response(json_data={"itemId": 5})

        assert client.post("Tickets", json={"title": "New"}) == {"itemId": 5}
        assert mock_request.call_args.kwargs["method"] == "POST"
        assert mock_request.call_args.kwargs["json"] == {"title": "New"}

        client.patch("Tickets", json={"id": 5, "title": "Renamed"})
        assert mock_request.call_args.kwargs["method"] == "PATCH"

        client.delete("Tickets/5/Notes/1")
        assert mock_request.call_args.kwargs["method"] == "DELETE"


class TestEntityService:
    """Tests for per-entity services."""

    @patch("autotask_api_client.client.requests.request")
    def test_find_by_id(self, mock_request, client):
        mock_request.return_value = _response(
            json_data={"item": {"id": 8, "currencyID": 1, "productID": 77, "unitPrice": 9.5}}
        )

        product = client.price_list_products.find_by_id(8)

        assert isinstance(product, PriceListProduct)
        assert product.unit_price == 9.5
        assert mock_request.call_args.kwargs["url"] == BASE_URL + "/PriceListProducts/8"

    @patch("autotask_api_client.client.requests.request")
    def test_find_by_id_missing_item(self, mock_request, client):
        mock_request.return_value = _response(json_data={"items": []})

        with pytest.raises(MalformedResponseError):
            client.price_list_products.find_by_id(8)

    def test_query_is_bound(self, client):
        query = client.company_teams.query()

        assert isinstance(query, QueryBuilder)
        assert query.client is client
        assert query.entity == "CompanyTeams"

    @patch("autotask_api_client.client.requests.request")
    def test_query_execute_end_to_end(self, mock_request, client):
        mock_request.return_value = _response(
            json_data={
                "items": [{"id": 1, "currencyID": 1, "productID": 2}],
                "pageDetails": {"count": 1, "nextPageUrl": None, "prevPageUrl": None},
            }
        )

        products = (
            client.price_list_products.query()
            .where("productID", "eq", 2)
            .with_limit(10)
            .execute()
        )

        assert products[0].product_id == 2
        kwargs = mock_request.call_args.kwargs
        assert kwargs["url"] == BASE_URL + "/PriceListProducts/query"
        assert kwargs["params"] == {
            "search": '{"filter":[{"field":"productID","op":"eq","value":2}],"MaxRecords":10}'
        }

    def test_untyped_query(self, client):
        query = client.query("Tickets")
        assert query.entity_class is None
        assert query.client is client
