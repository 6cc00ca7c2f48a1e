"""Pydantic request bodies for the HTTP API.

The storefront UI speaks camelCase (``tenantId``, ``trackingOrId``); field
names here are snake_case with camelCase aliases and either spelling is
accepted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from codship.application.dto import ShipmentOverrides
from codship.domain.model.order import Order
from codship.infrastructure.persistence.serialization import order_from_dict


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItemIn(CamelModel):
    product_id: str
    name: str = ""
    price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: int = Field(..., gt=0)


class OrderIn(CamelModel):
    id: str = Field(..., min_length=1)
    customer_name: str = ""
    customer_phone: str = ""
    customer_phone2: str = ""
    customer_address: str = ""
    customer_city: str = ""
    parcel_weight: str = ""
    parcel_description: str = ""
    items: list[OrderItemIn] = Field(default_factory=list)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None
    tracking_number: Optional[str] = None

    def to_domain(self, tenant_id: str) -> Order:
        raw = self.model_dump(mode="json", exclude_none=True)
        return order_from_dict(raw, tenant_id=tenant_id)


class UpsertOrdersIn(CamelModel):
    tenant_id: str
    order: Optional[OrderIn] = None
    orders: Optional[list[OrderIn]] = None

    def all_orders(self) -> list[OrderIn]:
        if self.orders is not None:
            return self.orders
        return [self.order] if self.order is not None else []


class ShipmentIn(CamelModel):
    id: str = Field(..., min_length=1)
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_phone2: Optional[str] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    parcel_weight: Optional[str] = None
    parcel_description: Optional[str] = None
    tracking_number: Optional[str] = None

    def overrides(self) -> ShipmentOverrides:
        return ShipmentOverrides(**self.model_dump(exclude={"id"}))


class ShipOrderIn(CamelModel):
    tenant_id: str
    order: ShipmentIn


class ChangeStatusIn(CamelModel):
    tenant_id: str
    order_id: str
    status: str
    actor: str = Field(..., min_length=1)


class ProcessReturnIn(CamelModel):
    tenant_id: str
    tracking_or_id: str = Field(..., min_length=1)
