"""Crosspay API models.

Only the fields this SDK relies on are declared. Every model keeps unknown
fields, so payloads from newer API versions survive a decode/dump cycle.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class CrosspayModel(BaseModel):
    """Base model: camelCase wire names, unknown fields preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class TenantProduct(CrosspayModel):
    """A product configured by the tenant."""

    product_id: str = Field(alias="productId")
    entitlement_id: str | None = Field(default=None, alias="entitlementId")
    name: str | None = None
    description: str | None = None


class TenantEntitlement(CrosspayModel):
    """An entitlement granted by one or more products."""

    id: str
    name: str | None = None
    environment: str | None = None


class Subscription(CrosspayModel):
    """A customer subscription as stored by the platform."""

    id: str | None = None
    product_id: str = Field(alias="productId")
    customer_email: str | None = Field(default=None, alias="customerEmail")
    status: str | None = None


class Customer(CrosspayModel):
    """A customer entry in a paginated listing."""

    id: str | None = None
    email: str | None = None
    name: str | None = None


class CustomerInfo(CrosspayModel):
    """Extended customer information.

    Also the payload type of webhook events.
    """

    id: str | None = None
    email: str | None = None
    name: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")


class CustomerPage(CrosspayModel):
    """One page of customers plus the cursor for the next page."""

    data: list[Customer] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, alias="nextCursor")
    error: str | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _missing_data_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class Envelope(BaseModel, Generic[T]):
    """Uniform `{data, error}` response wrapper."""

    model_config = ConfigDict(extra="ignore")

    data: T | None = None
    error: str | None = None
