"""Conversion between domain objects and plain JSON-compatible dicts.

Shared by the JSON document store and the HTTP layer so both speak the
same record shape.  Readers are lenient about missing optional fields;
malformed values raise ValidationError.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from codship.domain.exceptions import ValidationError
from codship.domain.model.order import Order, OrderLineItem, OrderLog, OrderStatus, utcnow
from codship.domain.model.product import Product, StockBatch
from codship.domain.model.tenant import CourierMode, CourierSettings, Tenant
from codship.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity


# --- Scalars ------------------------------------------------------------------


def dump_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def load_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_money(value: Any, currency: str = DEFAULT_CURRENCY) -> Money:
    try:
        return Money(Decimal(str(value)), currency)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid money amount: {value!r}") from exc


def load_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown order status: {value!r}") from exc


def _text(raw: dict, key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value)


def _optional_text(raw: dict, key: str) -> str | None:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return None
    return str(value)


# --- Orders -------------------------------------------------------------------


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "tenant_id": order.tenant_id,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_phone2": order.customer_phone2,
        "customer_address": order.customer_address,
        "customer_city": order.customer_city,
        "parcel_weight": order.parcel_weight,
        "parcel_description": order.parcel_description,
        "items": [
            {
                "product_id": item.product_id,
                "name": item.name,
                "price": str(item.unit_price.amount),
                "currency": item.unit_price.currency,
                "quantity": item.quantity.value,
            }
            for item in order.items
        ],
        "total_amount": str(order.total_amount.amount),
        "currency": order.total_amount.currency,
        "status": order.status.value,
        "created_at": dump_datetime(order.created_at),
        "confirmed_at": dump_datetime(order.confirmed_at),
        "shipped_at": dump_datetime(order.shipped_at),
        "delivered_at": dump_datetime(order.delivered_at),
        "return_completed_at": dump_datetime(order.return_completed_at),
        "tracking_number": order.tracking_number,
        "courier_status": order.courier_status,
        "logs": [
            {
                "id": log.id,
                "message": log.message,
                "timestamp": dump_datetime(log.timestamp),
                "user": log.user,
            }
            for log in order.logs
        ],
    }


def order_from_dict(raw: dict, tenant_id: str | None = None) -> Order:
    if not isinstance(raw, dict):
        raise ValidationError("Order payload must be an object")
    order_id = _text(raw, "id").strip()
    if not order_id:
        raise ValidationError("Order id is required")

    currency = raw.get("currency") or DEFAULT_CURRENCY
    items = []
    for i in raw.get("items") or []:
        try:
            quantity = Quantity(int(i["quantity"]))
            product_id = str(i["product_id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid line item in order {order_id}: {i!r}") from exc
        items.append(
            OrderLineItem(
                product_id=product_id,
                name=_text(i, "name"),
                unit_price=load_money(i.get("price", "0"), i.get("currency") or currency),
                quantity=quantity,
            )
        )

    if raw.get("total_amount") not in (None, ""):
        total = load_money(raw["total_amount"], currency)
    else:
        total = Order.sum_items(items)

    return Order(
        id=order_id,
        tenant_id=tenant_id or _text(raw, "tenant_id"),
        customer_name=_text(raw, "customer_name"),
        items=items,
        total_amount=total,
        customer_phone=_text(raw, "customer_phone"),
        customer_phone2=_text(raw, "customer_phone2"),
        customer_address=_text(raw, "customer_address"),
        customer_city=_text(raw, "customer_city"),
        parcel_weight=_text(raw, "parcel_weight"),
        parcel_description=_text(raw, "parcel_description"),
        status=load_status(raw.get("status") or OrderStatus.PENDING.value),
        created_at=load_datetime(raw.get("created_at")) or utcnow(),
        confirmed_at=load_datetime(raw.get("confirmed_at")),
        shipped_at=load_datetime(raw.get("shipped_at")),
        delivered_at=load_datetime(raw.get("delivered_at")),
        return_completed_at=load_datetime(raw.get("return_completed_at")),
        tracking_number=_optional_text(raw, "tracking_number"),
        courier_status=_optional_text(raw, "courier_status"),
        logs=[
            OrderLog(
                id=_text(log, "id"),
                message=_text(log, "message"),
                timestamp=load_datetime(log.get("timestamp")) or utcnow(),
                user=_text(log, "user"),
            )
            for log in raw.get("logs") or []
        ],
    )


# --- Products -----------------------------------------------------------------


def product_to_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "tenant_id": product.tenant_id,
        "sku": product.sku,
        "name": product.name,
        "price": str(product.price.amount),
        "currency": product.price.currency,
        "batches": [
            {
                "id": batch.id,
                "quantity": batch.quantity,
                "original_quantity": batch.original_quantity,
                "buying_price": str(batch.buying_price.amount),
                "created_at": dump_datetime(batch.created_at),
                "is_return": batch.is_return,
            }
            for batch in product.batches
        ],
    }


def product_from_dict(raw: dict, tenant_id: str | None = None) -> Product:
    currency = raw.get("currency") or DEFAULT_CURRENCY
    batches = [
        StockBatch(
            id=_text(b, "id"),
            quantity=int(b.get("quantity", 0)),
            # older records may lack original_quantity
            original_quantity=int(b.get("original_quantity") or b.get("quantity", 0)),
            buying_price=load_money(b.get("buying_price", "0"), currency),
            created_at=load_datetime(b.get("created_at")) or utcnow(),
            is_return=bool(b.get("is_return", False)),
        )
        for b in raw.get("batches") or []
    ]
    return Product(
        id=_text(raw, "id"),
        tenant_id=tenant_id or _text(raw, "tenant_id"),
        sku=_text(raw, "sku"),
        name=_text(raw, "name"),
        price=load_money(raw.get("price", "0"), currency),
        batches=batches,
    )


# --- Tenants ------------------------------------------------------------------


def tenant_to_dict(tenant: Tenant) -> dict:
    settings = tenant.courier_settings
    return {
        "id": tenant.id,
        "name": tenant.name,
        "store_uri": tenant.store_uri,
        "is_active": tenant.is_active,
        "courier_settings": {
            "api_key": settings.api_key,
            "client_id": settings.client_id,
            "mode": settings.mode.value,
            "api_url": settings.api_url,
        },
    }


def tenant_from_dict(raw: dict) -> Tenant:
    settings = raw.get("courier_settings") or {}
    try:
        mode = CourierMode(settings.get("mode") or CourierMode.STANDARD.value)
    except ValueError as exc:
        raise ValidationError(f"Unknown courier mode: {settings.get('mode')!r}") from exc
    return Tenant(
        id=_text(raw, "id"),
        name=_text(raw, "name"),
        store_uri=_optional_text(raw, "store_uri"),
        is_active=bool(raw.get("is_active", True)),
        courier_settings=CourierSettings(
            api_key=_text(settings, "api_key"),
            client_id=_text(settings, "client_id"),
            mode=mode,
            api_url=_text(settings, "api_url"),
        ),
    )
