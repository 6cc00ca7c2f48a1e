"""HTTP client for the FDE domestic courier.

Parcels are submitted as a form-encoded POST; the courier answers with
JSON ``{status, waybill_no?, message?}`` where ``status == 200`` is the
only success.  Under load it has been seen to answer with HTML error
pages, which surface as a rejection carrying the start of the body.
"""

from __future__ import annotations

import json
import random
import re

import requests
import structlog

from codship.domain.exceptions import CourierRejected, CourierUnreachable, ValidationError
from codship.domain.model.order import Order
from codship.domain.model.tenant import CourierMode, CourierSettings
from codship.domain.service.courier_gateway import CourierGateway, DispatchResult
from codship.infrastructure.config import (
    DEFAULT_EXISTING_WAYBILL_URL,
    DEFAULT_NEW_PARCEL_URL,
)

logger = structlog.get_logger(__name__)

SUCCESS_STATUS = 200
ORDER_REF_DIGITS = 10
DESCRIPTION_LIMIT = 50
RAW_BODY_PREVIEW = 100

DEFAULT_PARCEL_WEIGHT = "1"
DEFAULT_PARCEL_DESCRIPTION = "Standard Shipment"

COURIER_ERRORS: dict[int, str] = {
    201: "Inactive Client",
    202: "Invalid Order ID (Numeric Required)",
    203: "Invalid Weight",
    204: "Invalid Parcel Description",
    205: "Invalid Name",
    206: "Contact Number 1 Invalid",
    207: "Contact Number 2 Invalid",
    208: "Invalid Address",
    209: "Invalid City Name",
    210: "Insert Failed, Try Again",
    211: "Invalid API Key",
    212: "Invalid or Inactive Client",
    213: "Invalid Exchange Value",
    214: "Courier Maintenance Mode",
}

# Raised before sending when a tenant api_url is malformed.
BAD_ENDPOINT_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
)

_NON_DIGIT = re.compile(r"\D")


def digits_only(value: str | None) -> str:
    return _NON_DIGIT.sub("", value or "")


class CourierDispatchClient(CourierGateway):

    def __init__(
        self,
        session: requests.Session | None = None,
        new_parcel_url: str = DEFAULT_NEW_PARCEL_URL,
        existing_waybill_url: str = DEFAULT_EXISTING_WAYBILL_URL,
        connect_timeout: float = 5.0,
        read_timeout: float = 15.0,
        rng: random.Random | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._new_parcel_url = new_parcel_url
        self._existing_waybill_url = existing_waybill_url
        self._timeout = (connect_timeout, read_timeout)
        self._rng = rng or random.Random()

    def dispatch(self, order: Order, settings: CourierSettings) -> DispatchResult:
        if not settings.has_credentials:
            raise CourierRejected(None, "Courier credentials are not configured")
        if settings.mode is CourierMode.EXISTING_WAYBILL and not order.tracking_number:
            raise ValidationError(
                f"Order {order.id} needs a tracking number for existing-waybill dispatch"
            )

        url = self._endpoint(settings)
        form = self.build_form(order, settings)
        logger.info(
            "Submitting parcel to courier",
            order_id=order.id,
            courier_order_id=form["order_id"],
            mode=settings.mode.value,
        )

        try:
            response = self._session.post(url, data=form, timeout=self._timeout)
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.warning("Courier unreachable", order_id=order.id, error=str(exc))
            raise CourierUnreachable(str(exc)) from exc
        except BAD_ENDPOINT_ERRORS as exc:
            logger.warning("Courier endpoint invalid", order_id=order.id, url=url, error=str(exc))
            raise CourierRejected(None, f"Invalid courier endpoint: {exc}") from exc
        except requests.RequestException as exc:
            logger.warning("Courier request failed", order_id=order.id, error=str(exc))
            raise CourierUnreachable(str(exc)) from exc

        return self._interpret(order, response.text)

    # --- Request --------------------------------------------------------------

    def build_form(self, order: Order, settings: CourierSettings) -> dict[str, str]:
        description = (
            order.parcel_description
            or (order.items[0].name if order.items else "")
            or DEFAULT_PARCEL_DESCRIPTION
        )
        form = {
            "api_key": settings.api_key.strip(),
            "client_id": settings.client_id.strip(),
            "order_id": self.courier_order_id(order.id),
            "parcel_weight": order.parcel_weight or DEFAULT_PARCEL_WEIGHT,
            "parcel_description": description[:DESCRIPTION_LIMIT],
            "recipient_name": order.customer_name,
            "recipient_contact_1": digits_only(order.customer_phone),
        }
        phone2 = digits_only(order.customer_phone2)
        if phone2:
            form["recipient_contact_2"] = phone2
        form.update(
            {
                "recipient_address": order.customer_address,
                "recipient_city": order.customer_city or "",
                "amount": str(order.total_amount.rounded()),
                "exchange": "0",
            }
        )
        if settings.mode is CourierMode.EXISTING_WAYBILL:
            form["waybill_id"] = order.tracking_number or ""
        return form

    def courier_order_id(self, order_id: str) -> str:
        """The courier only accepts numeric order ids of up to ten digits."""
        reference = digits_only(order_id)[-ORDER_REF_DIGITS:]
        return reference or str(self._rng.randrange(1_000_000_000))

    def _endpoint(self, settings: CourierSettings) -> str:
        if settings.mode is CourierMode.EXISTING_WAYBILL:
            return self._existing_waybill_url
        return settings.api_url.strip() or self._new_parcel_url

    # --- Response -------------------------------------------------------------

    def _interpret(self, order: Order, raw_text: str) -> DispatchResult:
        try:
            data = json.loads(raw_text)
        except ValueError as exc:
            preview = raw_text[:RAW_BODY_PREVIEW]
            logger.warning("Courier returned non-JSON body", order_id=order.id, body=preview)
            raise CourierRejected(
                None, f"Courier returned a non-JSON response: {preview}"
            ) from exc
        if not isinstance(data, dict):
            raise CourierRejected(
                None, f"Courier returned an unexpected response: {raw_text[:RAW_BODY_PREVIEW]}"
            )

        try:
            status = int(data.get("status"))
        except (TypeError, ValueError):
            status = None

        if status == SUCCESS_STATUS:
            waybill = str(data.get("waybill_no") or order.tracking_number or "").strip()
            if not waybill:
                raise CourierRejected(
                    SUCCESS_STATUS, "Courier accepted the parcel but returned no waybill number"
                )
            logger.info("Courier accepted parcel", order_id=order.id, waybill=waybill)
            return DispatchResult(
                tracking_number=waybill, message=str(data.get("message") or "")
            )

        if status is None:
            reason = f"Courier returned no status: {raw_text[:RAW_BODY_PREVIEW]}"
        else:
            reason = COURIER_ERRORS.get(
                status, f"Courier rejected the parcel with code {status}"
            )
        logger.warning("Courier rejected parcel", order_id=order.id, code=status, reason=reason)
        raise CourierRejected(status, reason)
