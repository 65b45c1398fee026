"""
Client implementation for the Autotask PSA REST API.

This module defines the :class:`AutotaskClient` class which sends
requests to the Autotask REST API using the API user credentials in
the ``UserName``, ``Secret`` and ``ApiIntegrationCode`` headers.  The
zone-specific API URL for the user is looked up once on first use
unless one is supplied up front.

Usage
-----

.. code-block:: python

    from autotask_api_client import AutotaskClient

    client = AutotaskClient(
        username="api-user@example.com",
        secret="shhsecret",
        integration_code="INTEGRATIONCODE",
    )

    # Query company team members through the typed entity service
    teams = client.company_teams.query().where("companyID", "eq", 123).execute()
    for team in teams:
        print(team.resource_id)

    # Or make a raw request
    ticket = client.get("Tickets/1234")

For details on creating API users and obtaining an integration code,
see the Autotask REST API documentation.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Type

import requests

from .entities import (
    AutotaskEntity,
    CompanyTeam,
    KnowledgeBaseCategory,
    PriceListProduct,
    PurchaseApproval,
    ServiceCallTicket,
    TicketAttachment,
)
from .exceptions import AutotaskAPIError, MalformedResponseError
from .query import QueryBuilder

logger = logging.getLogger(__name__)


class EntityService:
    """Entry point for one entity type, e.g. ``client.company_teams``."""

    def __init__(self, client: "AutotaskClient", entity_class: Type[AutotaskEntity]) -> None:
        self.client = client
        self.entity_class = entity_class
        self.endpoint = entity_class.endpoint

    def query(self) -> QueryBuilder:
        """Start a query bound to this client and entity."""
        return QueryBuilder(self.endpoint, client=self.client, entity_class=self.entity_class)

    def find_by_id(self, entity_id: int) -> AutotaskEntity:
        """Fetch a single record by its ``id``."""
        response = self.client.get(f"{self.endpoint}/{entity_id}")
        return self.entity_class.from_response(response)


class AutotaskClient:
    """A simple client for the Autotask REST API.

    Parameters
    ----------
    username : str
        The API user's user name (usually an email address).
    secret : str
        The API user's password.
    integration_code : str
        The tracking identifier assigned to your integration.  Sent in
        the ``ApiIntegrationCode`` header on every request.
    base_url : str, optional
        The zone-specific REST base URL, including the version segment
        (e.g. ``"https://webservices14.autotask.net/ATServicesRest/V1.0"``).
        When omitted it is discovered from ``zone_url`` on first use.
    zone_url : str, optional
        Override the zone information endpoint used for discovery.
    impersonation_resource_id : int, optional
        When set, requests are made on behalf of this resource via the
        ``ImpersonationResourceId`` header.
    timeout : float, optional
        Default timeout in seconds for every request.

    Notes
    -----
    Requests are not retried and no rate limiting is applied.  Errors
    raised by ``requests`` and HTTP error statuses are reported as
    :class:`AutotaskAPIError`.
    """

    _DEFAULT_ZONE_URL = "https://webservices.autotask.net/ATServicesRest/V1.0/zoneInformation"
    _API_VERSION = "V1.0"
    _PROTECTED_HEADERS = {"username", "secret", "apiintegrationcode", "impersonationresourceid"}

    def __init__(
        self,
        *,
        username: str,
        secret: str,
        integration_code: str,
        base_url: Optional[str] = None,
        zone_url: Optional[str] = None,
        impersonation_resource_id: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if not username:
            raise ValueError("username must be provided")
        if not secret:
            raise ValueError("secret must be provided")
        if not integration_code:
            raise ValueError("integration_code must be provided")

        self.username = username
        self.secret = secret
        self.integration_code = integration_code
        self.zone_url = zone_url or self._DEFAULT_ZONE_URL
        self.impersonation_resource_id = impersonation_resource_id
        self.timeout = timeout

        # Resolved lazily from the zone information endpoint when unset
        self._base_url: Optional[str] = base_url.rstrip("/") if base_url else None

        self.company_teams = EntityService(self, CompanyTeam)
        self.knowledge_base_categories = EntityService(self, KnowledgeBaseCategory)
        self.price_list_products = EntityService(self, PriceListProduct)
        self.purchase_approvals = EntityService(self, PurchaseApproval)
        self.service_call_tickets = EntityService(self, ServiceCallTicket)
        self.ticket_attachments = EntityService(self, TicketAttachment)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "AutotaskClient":
        """Create a client from ``AUTOTASK_*`` environment variables.

        Reads ``AUTOTASK_USERNAME``, ``AUTOTASK_SECRET``,
        ``AUTOTASK_INTEGRATION_CODE`` and, optionally,
        ``AUTOTASK_API_URL``.  Keyword arguments override the
        environment.
        """
        settings: Dict[str, Any] = {
            "username": os.getenv("AUTOTASK_USERNAME", ""),
            "secret": os.getenv("AUTOTASK_SECRET", ""),
            "integration_code": os.getenv("AUTOTASK_INTEGRATION_CODE", ""),
            "base_url": os.getenv("AUTOTASK_API_URL") or None,
        }
        settings.update(kwargs)
        return cls(**settings)

    # ------------------------------------------------------------------
    # Zone discovery
    # ------------------------------------------------------------------
    @property
    def base_url(self) -> str:
        """The REST base URL, discovering the user's zone if needed."""
        if self._base_url is None:
            self._base_url = self._discover_base_url()
        return self._base_url

    def _discover_base_url(self) -> str:
        """Look up the API zone for :attr:`username`.

        The zone information endpoint needs no credentials and answers
        with a JSON document whose ``url`` names the zone's REST root.
        """
        logger.debug(f"Resolving Autotask zone for {self.username}")
        try:
            response = requests.get(
                self.zone_url, params={"user": self.username}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise AutotaskAPIError(
                f"Failed to connect to {self.zone_url}: {exc}", url=self.zone_url
            ) from exc

        if not response.ok:
            raise AutotaskAPIError(
                f"Zone lookup failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                url=self.zone_url,
            )

        try:
            zone_info = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Zone information response was not JSON.") from exc
        zone_root = zone_info.get("url") if isinstance(zone_info, dict) else None
        if not zone_root:
            raise MalformedResponseError("Missing url key in zone information response.")
        return f"{zone_root.rstrip('/')}/{self._API_VERSION}"

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _prepare_url(self, path: str) -> str:
        """Build the full request URL from a relative or absolute path.

        Absolute URLs, such as the page links Autotask returns in
        ``pageDetails``, are returned as-is.
        """
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _default_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "UserName": self.username,
            "Secret": self.secret,
            "ApiIntegrationCode": self.integration_code,
        }
        if self.impersonation_resource_id is not None:
            headers["ImpersonationResourceId"] = str(self.impersonation_resource_id)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform an HTTP request against the Autotask API.

        Parameters
        ----------
        method : str
            The HTTP verb, such as ``"GET"``, ``"POST"``, ``"PATCH"`` or ``"DELETE"``.
        path : str
            The API endpoint path relative to the base URL.  If an absolute
            URL is supplied, it will be used as-is.
        params : dict, optional
            Query parameters to include in the request.
        json : object, optional
            A JSON-serialisable request body.
        headers : dict, optional
            Additional HTTP headers to merge with the defaults.  The
            credential headers cannot be overridden.
        timeout : float, optional
            Timeout in seconds, overriding the client default.

        Returns
        -------
        Any
            The parsed JSON body when the server returns JSON, otherwise
            the decoded text.

        Raises
        ------
        AutotaskAPIError
            If the request cannot be sent or the response status is 400 or above.
        """
        url = self._prepare_url(path)
        req_headers = self._default_headers()
        if headers:
            for key, value in headers.items():
                if key.lower() in self._PROTECTED_HEADERS:
                    continue
                req_headers[key] = value

        logger.debug(f"API Request: {method.upper()} {url} params={params}")
        try:
            response = requests.request(
                method=method.upper(),
                url=url,
                params=params,
                json=json,
                headers=req_headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            raise AutotaskAPIError(f"Failed to connect to {url}: {exc}", url=url) from exc

        if response.status_code >= 400:
            # Autotask reports failures as {"errors": [...]}
            err_text = response.text
            try:
                err_text = str(response.json())
            except ValueError:
                pass
            logger.error(f"API error {response.status_code} for {url}: {err_text[:500]}")
            raise AutotaskAPIError(
                f"{response.status_code} Error for {url}: {err_text}",
                status_code=response.status_code,
                url=url,
            )

        content_type = response.headers.get("Content-Type", "").lower()
        if content_type.startswith("application/json"):
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    # ------------------------------------------------------------------
    # Public convenience methods
    # ------------------------------------------------------------------
    def get(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a GET request.

        See :meth:`_request` for full parameter documentation.
        """
        return self._request("GET", path, params=params, headers=headers, timeout=timeout)

    def post(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a POST request.

        See :meth:`_request` for full parameter documentation.
        """
        return self._request(
            "POST", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def patch(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PATCH request.

        See :meth:`_request` for full parameter documentation.
        """
        return self._request(
            "PATCH", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def delete(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a DELETE request.

        See :meth:`_request` for full parameter documentation.
        """
        return self._request("DELETE", path, params=params, headers=headers, timeout=timeout)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def query(
        self, entity: str, entity_class: Optional[Type[AutotaskEntity]] = None
    ) -> QueryBuilder:
        """Start a query against any entity endpoint.

        Without ``entity_class`` the results are plain dictionaries,
        which suits entities this package has no model for.
        """
        return QueryBuilder(entity, client=self, entity_class=entity_class)
