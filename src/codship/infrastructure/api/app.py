"""FastAPI application exposing the dispatch and reconciliation engine."""

from __future__ import annotations

from datetime import date
from typing import Optional

import structlog
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from codship.application.dto import OrderQuery
from codship.application.reconcile_webhook import ReconciliationOutcome
from codship.domain.exceptions import (
    CourierRejected,
    CourierUnreachable,
    DomainException,
    EntityNotFoundError,
    InsufficientStock,
    InvalidTransition,
    MissingWaybillReference,
    StoreUnavailable,
    ValidationError,
)
from codship.infrastructure.api.schemas import (
    ChangeStatusIn,
    ProcessReturnIn,
    ShipOrderIn,
    UpsertOrdersIn,
)
from codship.infrastructure.bootstrap import Services, build_services
from codship.infrastructure.persistence.serialization import order_to_dict

logger = structlog.get_logger(__name__)

WEBHOOK_ACK = "Success"
WEBHOOK_ACK_UNKNOWN = "Waybill Processed (Not in Registry)"

ERROR_STATUS_CODES: dict[type[DomainException], int] = {
    EntityNotFoundError: 404,
    ValidationError: 400,
    CourierRejected: 400,
    MissingWaybillReference: 400,
    InvalidTransition: 409,
    InsufficientStock: 409,
    CourierUnreachable: 502,
    StoreUnavailable: 503,
}


def status_code_for(exc: DomainException) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def _services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter()


@router.get("/health")
def health(request: Request):
    registry = _services(request).registry
    return {"status": "ok", "central_store": registry.central.location}


# --- Orders -------------------------------------------------------------------


@router.get("/orders")
def get_orders(
    request: Request,
    tenant_id: str = Query(..., alias="tenantId"),
    order_id: Optional[str] = Query(None, alias="id"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    search: str = "",
    status: str = "ALL",
    product_id: str = Query("", alias="productId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    services = _services(request)
    if order_id:
        return order_to_dict(services.show_order.handle(tenant_id, order_id))

    result = services.list_orders.handle(
        tenant_id,
        OrderQuery(
            status=status,
            search=search,
            product_id=product_id,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        ),
    )
    return {
        "data": [order_to_dict(o) for o in result.data],
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
    }


@router.post("/orders")
def upsert_orders(request: Request, body: UpsertOrdersIn):
    incoming = body.all_orders()
    if not incoming:
        raise ValidationError("Body must carry 'order' or 'orders'")
    orders = [o.to_domain(body.tenant_id) for o in incoming]
    count = _services(request).upsert_orders.handle(body.tenant_id, orders)
    return {"success": True, "count": count}


@router.delete("/orders")
def delete_orders(
    request: Request,
    tenant_id: str = Query(..., alias="tenantId"),
    ids: Optional[str] = Query(None, alias="id"),
    purge: bool = False,
):
    order_ids = ids.split(",") if ids else []
    count = _services(request).delete_orders.handle(tenant_id, order_ids, purge=purge)
    return {"success": True, "count": count}


@router.post("/orders/status")
def change_status(request: Request, body: ChangeStatusIn):
    order = _services(request).change_status.handle(
        body.tenant_id, body.order_id, body.status, body.actor
    )
    return order_to_dict(order)


# --- Fulfilment ---------------------------------------------------------------


@router.post("/ship-order")
def ship_order(request: Request, body: ShipOrderIn):
    order = _services(request).ship_order.handle(
        body.tenant_id, body.order.id, body.order.overrides()
    )
    return order_to_dict(order)


@router.post("/process-return")
def process_return(request: Request, body: ProcessReturnIn):
    order = _services(request).process_return.handle(body.tenant_id, body.tracking_or_id)
    return order_to_dict(order)


@router.get("/customer-history")
def customer_history(
    request: Request,
    tenant_id: str = Query(..., alias="tenantId"),
    phone: str = "",
):
    history = _services(request).customer_history.handle(tenant_id, phone)
    return {"count": history.count, "returns": history.returns}


# --- Courier webhook ----------------------------------------------------------


@router.post("/courier-webhook")
async def courier_webhook(request: Request):
    body = await request.body()
    result = await run_in_threadpool(
        _services(request).webhook.reconcile,
        body,
        request.headers.get("content-type"),
        dict(request.query_params),
    )
    if result.outcome is ReconciliationOutcome.NOT_FOUND:
        return PlainTextResponse(WEBHOOK_ACK_UNKNOWN)
    return PlainTextResponse(WEBHOOK_ACK)


# --- Application factory ------------------------------------------------------


async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = status_code_for(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "Request failed",
        path=request.url.path,
        status_code=status_code,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": str(exc), "error_type": type(exc).__name__},
    )


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(title="codship", description="COD order dispatch and reconciliation")
    app.state.services = services or build_services()
    app.add_exception_handler(DomainException, domain_error_handler)
    app.include_router(router)
    return app
