"""
Query building for the Autotask ``<Entity>/query`` endpoint.

Autotask searches are expressed as a JSON document sent in the
``search`` query parameter of a GET request::

    {"filter": [{"field": "isActive", "op": "eq", "value": true}], "MaxRecords": 50}

This module defines the filter model (:class:`FilterCondition`,
:class:`FilterGroup` and the :class:`Query` snapshot) and the builders
that accumulate it.  :class:`FilterBuilder` has no transport dependency
and is what nested group callbacks receive; :class:`QueryBuilder` adds
the record limit and the methods that actually run the query.

Usage
-----

.. code-block:: python

    query = (
        client.company_teams.query()
        .where("companyID", "eq", 123)
        .where_group(
            lambda group: group.where("resourceID", "eq", 1).or_where("resourceID", "eq", 2),
            conjunction="OR",
        )
        .with_limit(100)
    )
    teams = query.execute()

Builders are not safe for concurrent mutation from several threads;
build one per request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Type, Union

from .exceptions import (
    InvalidArgumentError,
    InvalidConjunctionError,
    InvalidOperatorError,
    MalformedResponseError,
)
from .results import EntityCollection, Paginator

if TYPE_CHECKING:
    from .client import AutotaskClient

logger = logging.getLogger(__name__)

MIN_RECORDS = 1
MAX_RECORDS = 500


class Operator(str, Enum):
    """Comparison operators accepted by the Autotask query endpoint."""

    EQ = "eq"
    NOT_EQ = "noteq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "notIn"
    EXIST = "exist"
    NOT_EXIST = "notExist"
    BEGINS_WITH = "beginsWith"
    ENDS_WITH = "endsWith"
    CONTAINS = "contains"

    @classmethod
    def parse(cls, value: Union["Operator", str]) -> "Operator":
        """Return the operator named by ``value``.

        Matching ignores case and always yields the canonical wire
        spelling, so ``"NOTEXIST"`` becomes :attr:`NOT_EXIST`
        (``"notExist"``).

        Raises
        ------
        InvalidOperatorError
            If ``value`` does not name a supported operator.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            operator = _OPERATORS_BY_NAME.get(value.lower())
            if operator is not None:
                return operator
        raise InvalidOperatorError(f"Invalid query operator: {value!r}")

    @property
    def is_unary(self) -> bool:
        """Whether the operator tests for existence and takes no value."""
        return self in UNARY_OPERATORS


_OPERATORS_BY_NAME = {operator.value.lower(): operator for operator in Operator}

UNARY_OPERATORS = frozenset({Operator.EXIST, Operator.NOT_EXIST})


class Conjunction(str, Enum):
    """Boolean conjunction joining the items of a filter group."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, value: Union["Conjunction", str]) -> "Conjunction":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.upper() in cls.__members__:
            return cls[value.upper()]
        raise InvalidConjunctionError(f"Invalid query conjunction: {value!r}")


def _encode_value(value: Any) -> Any:
    """Return ``value`` in a form ``json.dumps`` accepts.

    Raises
    ------
    InvalidArgumentError
        If ``value`` has no JSON representation.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    # Decimal as a string keeps its exact digits
    if isinstance(value, Decimal):
        return str(value)
    # Autotask expects ISO 8601 strings for date and datetime fields
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    raise InvalidArgumentError(
        f"Cannot filter on a value of type {type(value).__name__}: {value!r}"
    )


@dataclass(frozen=True)
class FilterCondition:
    """A single comparison applied to one field."""

    field: str
    operator: Operator
    value: Any = None
    udf: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"field": self.field, "op": self.operator.value}
        if not self.operator.is_unary:
            data["value"] = _encode_value(self.value)
        if self.udf:
            data["udf"] = True
        return data


@dataclass(frozen=True)
class FilterGroup:
    """A nested AND/OR combination of conditions and groups."""

    conjunction: Conjunction
    items: Tuple["FilterItem", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.conjunction.value,
            "items": [item.to_dict() for item in self.items],
        }


FilterItem = Union[FilterCondition, FilterGroup]


@dataclass(frozen=True)
class Query:
    """An immutable snapshot of a built query.

    ``filter`` keeps insertion order; Autotask evaluates the items in
    that order.  ``max_records`` of ``None`` leaves the page size to the
    server default.
    """

    filter: Tuple[FilterItem, ...] = ()
    max_records: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"filter": [item.to_dict() for item in self.filter]}
        if self.max_records is not None:
            data["MaxRecords"] = self.max_records
        return data

    def to_json(self) -> str:
        """Serialise to the compact JSON sent as the ``search`` parameter."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


GroupCallback = Callable[["FilterBuilder"], Optional["FilterBuilder"]]


class FilterBuilder:
    """Accumulates filter conditions and nested groups in insertion order.

    Every method validates its arguments before touching the
    accumulated filter, so a failed call leaves the builder exactly as
    it was.  All methods return the builder to allow chaining.
    """

    def __init__(self) -> None:
        self._filter: List[FilterItem] = []

    @property
    def filters(self) -> Tuple[FilterItem, ...]:
        """The accumulated filter items, oldest first."""
        return tuple(self._filter)

    def where(
        self,
        field: str,
        operator: Union[Operator, str],
        value: Any = None,
        *,
        udf: bool = False,
        conjunction: Union[Conjunction, str] = Conjunction.AND,
    ) -> "FilterBuilder":
        """Append a condition on ``field``.

        Parameters
        ----------
        field : str
            The entity field to filter on.
        operator : Operator or str
            One of the supported operators.  ``exist`` and ``notExist``
            take no value and any supplied ``value`` is ignored.
        value : object, optional
            The value to compare against.  Required for every operator
            except ``exist`` and ``notExist``.  Lists are accepted for
            ``in`` and ``notIn``; ``Decimal`` values are sent as strings
            and dates as ISO 8601 strings.
        udf : bool, optional
            Set when ``field`` is a user-defined field.
        conjunction : Conjunction or str, optional
            Validated for consistency with :meth:`where_group`.
            Top-level items are always joined with AND by Autotask; use a
            group to combine conditions with OR.

        Raises
        ------
        InvalidOperatorError
            If ``operator`` is not supported.
        InvalidConjunctionError
            If ``conjunction`` is neither AND nor OR.
        InvalidArgumentError
            If ``field`` is empty, a binary operator has no value, or
            ``value`` cannot be sent as JSON.
        """
        op = Operator.parse(operator)
        Conjunction.parse(conjunction)
        if not isinstance(field, str) or not field:
            raise InvalidArgumentError(f"field must be a non-empty string, got {field!r}")

        if op.is_unary:
            condition = FilterCondition(field=field, operator=op, udf=bool(udf))
        elif value is None:
            raise InvalidArgumentError(
                f"Operator {op.value!r} requires a value for field {field!r}"
            )
        else:
            condition = FilterCondition(
                field=field, operator=op, value=_encode_value(value), udf=bool(udf)
            )

        self._filter.append(condition)
        return self

    def or_where(
        self,
        field: str,
        operator: Union[Operator, str],
        value: Any = None,
        *,
        udf: bool = False,
    ) -> "FilterBuilder":
        """Shorthand for :meth:`where` with an OR conjunction."""
        return self.where(field, operator, value, udf=udf, conjunction=Conjunction.OR)

    def where_group(
        self,
        callback: GroupCallback,
        conjunction: Union[Conjunction, str] = Conjunction.AND,
    ) -> "FilterBuilder":
        """Append a nested group built by ``callback``.

        ``callback`` receives a fresh :class:`FilterBuilder` and may
        return it (allowing a chained lambda) or ``None``.  The filters
        it accumulated become the group's items.  If the callback
        raises, nothing is appended.
        """
        conj = Conjunction.parse(conjunction)
        if not callable(callback):
            raise InvalidArgumentError(f"callback must be callable, got {callback!r}")

        nested = FilterBuilder()
        result = callback(nested)
        if result is None:
            result = nested
        if not isinstance(result, FilterBuilder):
            raise InvalidArgumentError(
                f"group callback must return a FilterBuilder or None, got {result!r}"
            )

        self._filter.append(FilterGroup(conjunction=conj, items=result.filters))
        return self

    def or_where_group(self, callback: GroupCallback) -> "FilterBuilder":
        """Shorthand for :meth:`where_group` with an OR conjunction."""
        return self.where_group(callback, conjunction=Conjunction.OR)


class QueryBuilder(FilterBuilder):
    """Builds and runs a query against one Autotask entity.

    Parameters
    ----------
    entity : str
        The entity endpoint name, e.g. ``"CompanyTeams"``.
    client : AutotaskClient, optional
        A client to run the query with.  May instead be passed to
        :meth:`execute`, :meth:`paginate` or :meth:`count`.
    entity_class : type, optional
        An :class:`~autotask_api_client.entities.AutotaskEntity`
        subclass that result items are parsed into.  When omitted the
        items are returned as plain dictionaries.
    """

    def __init__(
        self,
        entity: str,
        client: Optional["AutotaskClient"] = None,
        entity_class: Optional[Type[Any]] = None,
    ) -> None:
        super().__init__()
        if not entity:
            raise InvalidArgumentError("entity must not be empty")
        self.entity = entity.strip("/")
        self.client = client
        self.entity_class = entity_class
        self._max_records: Optional[int] = None

    @property
    def max_records(self) -> Optional[int]:
        return self._max_records

    def with_limit(self, records: int) -> "QueryBuilder":
        """Set the maximum number of records Autotask returns per page.

        Raises
        ------
        InvalidArgumentError
            If ``records`` is not an integer between 1 and 500.
        """
        if (
            isinstance(records, bool)
            or not isinstance(records, int)
            or records < MIN_RECORDS
            or records > MAX_RECORDS
        ):
            raise InvalidArgumentError(
                f"Cannot set records to {records!r}, must be between "
                f"{MIN_RECORDS} and {MAX_RECORDS}"
            )
        self._max_records = records
        return self

    def build(self) -> Query:
        """Return a snapshot of the query.  The builder is not reset."""
        return Query(filter=self.filters, max_records=self._max_records)

    def to_params(self) -> Dict[str, str]:
        """Return the request parameters for the query endpoint."""
        return {"search": self.build().to_json()}

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _resolve_client(self, client: Optional["AutotaskClient"]) -> "AutotaskClient":
        transport = client if client is not None else self.client
        if transport is None:
            raise InvalidArgumentError(
                f"No client available to run the {self.entity} query"
            )
        return transport

    def _fetch(self, client: Optional["AutotaskClient"], path: str) -> Any:
        transport = self._resolve_client(client)
        params = self.to_params()
        logger.debug(f"Query {self.entity}: {params['search']}")
        return transport.get(path, params=params)

    def execute(self, client: Optional["AutotaskClient"] = None) -> EntityCollection:
        """Run the query and return the first page of results.

        Transport errors and :class:`MalformedResponseError` propagate
        unchanged.
        """
        response = self._fetch(client, f"{self.entity}/query")
        return EntityCollection.from_response(response, self.entity_class)

    def paginate(self, client: Optional["AutotaskClient"] = None) -> Paginator:
        """Run the query and return a :class:`Paginator` over its pages."""
        transport = self._resolve_client(client)
        response = self._fetch(transport, f"{self.entity}/query")
        return Paginator(transport, response, self.entity_class)

    def count(self, client: Optional["AutotaskClient"] = None) -> int:
        """Return the number of records matching the filter."""
        response = self._fetch(client, f"{self.entity}/query/count")
        if not isinstance(response, dict) or "queryCount" not in response:
            raise MalformedResponseError("Missing queryCount key in response.")
        return int(response["queryCount"])
