"""
Python client for interacting with the Autotask PSA REST API.

This package provides an `AutotaskClient` class that sends
authenticated requests to the Autotask REST API, a query builder for
the `<Entity>/query` search endpoint, typed entity records and a
paginator for multi-page results.

Examples
--------

```python
from autotask_api_client import AutotaskClient

client = AutotaskClient(
    username="api-user@example.com",
    secret="YOUR_SECRET",
    integration_code="YOUR_INTEGRATION_CODE",
)

# Attachments on ticket 42 that are either PDFs or larger than 1 MB
paginator = (
    client.ticket_attachments.query()
    .where("parentID", "eq", 42)
    .where_group(
        lambda group: group.where("contentType", "eq", "application/pdf")
        .where("fileSize", "gt", 1048576),
        conjunction="OR",
    )
    .with_limit(100)
    .paginate()
)

for attachment in paginator.iter_items():
    print(attachment.title)
```

See Also
--------
The Autotask REST API documentation describes the query filter
syntax, the available entities and their fields, and how to create
an API user with an integration code.
"""

from .client import AutotaskClient, EntityService
from .entities import (
    AutotaskEntity,
    CompanyTeam,
    KnowledgeBaseCategory,
    PriceListProduct,
    PurchaseApproval,
    ServiceCallTicket,
    TicketAttachment,
    UserDefinedField,
)
from .exceptions import (
    AutotaskAPIError,
    AutotaskError,
    InvalidArgumentError,
    InvalidConjunctionError,
    InvalidOperatorError,
    MalformedResponseError,
)
from .query import (
    Conjunction,
    FilterBuilder,
    FilterCondition,
    FilterGroup,
    Operator,
    Query,
    QueryBuilder,
)
from .results import EntityCollection, Paginator

__all__ = [
    "AutotaskClient",
    "EntityService",
    "AutotaskEntity",
    "CompanyTeam",
    "KnowledgeBaseCategory",
    "PriceListProduct",
    "PurchaseApproval",
    "ServiceCallTicket",
    "TicketAttachment",
    "UserDefinedField",
    "AutotaskError",
    "AutotaskAPIError",
    "InvalidArgumentError",
    "InvalidConjunctionError",
    "InvalidOperatorError",
    "MalformedResponseError",
    "Conjunction",
    "FilterBuilder",
    "FilterCondition",
    "FilterGroup",
    "Operator",
    "Query",
    "QueryBuilder",
    "EntityCollection",
    "Paginator",
]
