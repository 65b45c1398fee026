"""
Typed records for Autotask entities.

Attributes use snake_case names; the Autotask field names are kept as
aliases so records can be validated straight from API JSON.  Fields
the models do not declare are preserved as extra attributes.
"""

from datetime import datetime
from typing import Any, ClassVar, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import MalformedResponseError


class UserDefinedField(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    value: Optional[Any] = None


class AutotaskEntity(BaseModel):
    """Base class for Autotask entity records.

    Subclasses set :attr:`endpoint` to the entity's REST path.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    endpoint: ClassVar[str] = ""

    id: Optional[int] = None
    user_defined_fields: List[UserDefinedField] = Field(
        default_factory=list, alias="userDefinedFields"
    )

    @field_validator("user_defined_fields", mode="before")
    @classmethod
    def _default_user_defined_fields(cls, value: Any) -> Any:
        # Autotask sends null for entities without UDFs
        return value or []

    @classmethod
    def from_response(cls, payload: Any):
        """Build a record from a parsed single-entity response.

        Raises
        ------
        MalformedResponseError
            If ``payload`` has no ``item`` key.
        """
        if not isinstance(payload, dict) or "item" not in payload:
            raise MalformedResponseError("Missing item key in response.")
        return cls.model_validate(payload["item"])

    def udf(self, name: str, default: Any = None) -> Any:
        """Return the value of the user-defined field ``name``."""
        for field in self.user_defined_fields:
            if field.name == name:
                return field.value
        return default


class CompanyTeam(AutotaskEntity):
    endpoint: ClassVar[str] = "CompanyTeams"

    id: int
    company_id: int = Field(alias="companyID")
    is_associated_as_comanaged: Optional[bool] = Field(
        default=None, alias="isAssociatedAsComanaged"
    )
    resource_id: int = Field(alias="resourceID")


class KnowledgeBaseCategory(AutotaskEntity):
    endpoint: ClassVar[str] = "KnowledgeBaseCategories"

    description: Optional[str] = None
    name: str
    parent_category_id: Optional[int] = Field(default=None, alias="parentCategoryID")


class PriceListProduct(AutotaskEntity):
    endpoint: ClassVar[str] = "PriceListProducts"

    id: int
    currency_id: int = Field(alias="currencyID")
    product_id: int = Field(alias="productID")
    unit_price: Optional[float] = Field(default=None, alias="unitPrice")
    uses_internal_currency_price: Optional[bool] = Field(
        default=None, alias="usesInternalCurrencyPrice"
    )


class PurchaseApproval(AutotaskEntity):
    endpoint: ClassVar[str] = "PurchaseApprovals"

    cost_type: Optional[str] = Field(default=None, alias="costType")
    is_approved: Optional[bool] = Field(default=None, alias="isApproved")
    reject_note: Optional[str] = Field(default=None, alias="rejectNote")


class ServiceCallTicket(AutotaskEntity):
    endpoint: ClassVar[str] = "ServiceCallTickets"

    id: int
    service_call_id: int = Field(alias="serviceCallID")
    ticket_id: int = Field(alias="ticketID")


class TicketAttachment(AutotaskEntity):
    """An attachment on a ticket.  ``attach_date`` is parsed to a datetime."""

    endpoint: ClassVar[str] = "TicketAttachments"

    attach_date: Optional[datetime] = Field(default=None, alias="attachDate")
    attached_by_contact_id: Optional[int] = Field(default=None, alias="attachedByContactID")
    attached_by_resource_id: Optional[int] = Field(default=None, alias="attachedByResourceID")
    attachment_type: str = Field(alias="attachmentType")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    file_size: Optional[int] = Field(default=None, alias="fileSize")
    full_path: str = Field(alias="fullPath")
    impersonator_creator_resource_id: Optional[int] = Field(
        default=None, alias="impersonatorCreatorResourceID"
    )
    opportunity_id: Optional[int] = Field(default=None, alias="opportunityID")
    parent_id: Optional[int] = Field(default=None, alias="parentID")
    publish: int
    title: str


ENTITIES = (
    CompanyTeam,
    KnowledgeBaseCategory,
    PriceListProduct,
    PurchaseApproval,
    ServiceCallTicket,
    TicketAttachment,
)
