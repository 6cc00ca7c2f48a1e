"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry queries and results between the HTTP/CLI layers and the
application handlers without exposing repository details.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date

from codship.domain.model.order import Order

ALL_STATUSES = "ALL"
TODAY_SHIPPED = "TODAY_SHIPPED"
LOGISTICS_ALL = "LOGISTICS_ALL"


@dataclass(frozen=True)
class OrderQuery:
    """Input: list filters.  ``status`` is a status name or a pseudo-filter."""

    status: str = ALL_STATUSES
    search: str = ""
    product_id: str = ""
    start_date: date | None = None
    end_date: date | None = None  # inclusive
    page: int = 1
    limit: int = 50


@dataclass(frozen=True)
class OrderPage:
    """Output: one page of orders, newest first."""

    data: list[Order]
    total: int
    page: int
    limit: int


@dataclass(frozen=True)
class ShipmentOverrides:
    """Input: operator edits applied to an order just before dispatch.

    ``None`` leaves the stored value untouched.
    """

    customer_name: str | None = None
    customer_phone: str | None = None
    customer_phone2: str | None = None
    customer_address: str | None = None
    customer_city: str | None = None
    parcel_weight: str | None = None
    parcel_description: str | None = None
    tracking_number: str | None = None

    def field_values(self) -> dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class CustomerHistory:
    """Output: repeat-customer signal for one phone number."""

    count: int = 0
    returns: int = 0
