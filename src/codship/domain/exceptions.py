"""Domain-level exceptions.

All failures the engine surfaces are subclasses of DomainException so the
HTTP and CLI layers can catch them uniformly and map them to responses.
"""

from __future__ import annotations

REASON_LIMIT = 200


def truncate(text: str, limit: int = REASON_LIMIT) -> str:
    text = str(text)
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class TenantNotFound(EntityNotFoundError):

    def __init__(self, tenant_id: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Tenant '{tenant_id}' not found")


class OrderNotFound(EntityNotFoundError):

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Order '{reference}' not found")


class ProductNotFound(EntityNotFoundError):

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product '{product_id}' not found in registry")


class StoreUnavailable(DomainException):
    """A backing store could not be opened or read."""

    def __init__(self, location: str, reason: str = "") -> None:
        self.location = location
        msg = f"Store '{location}' is unavailable"
        if reason:
            msg = f"{msg}: {truncate(reason)}"
        super().__init__(msg)


class InsufficientStock(DomainException):

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product '{product_id}' "
            f"(need {requested}, have {available})"
        )


class CourierError(DomainException):
    """Base class for outbound courier failures."""


class CourierRejected(CourierError):
    """The courier answered but refused the parcel."""

    def __init__(self, code: int | None, reason: str) -> None:
        self.code = code
        self.reason = truncate(reason)
        super().__init__(self.reason)


class CourierUnreachable(CourierError):
    """The courier could not be reached within the configured timeouts."""

    def __init__(self, reason: str) -> None:
        self.reason = truncate(reason)
        super().__init__(f"Courier unreachable: {self.reason}")


class MissingWaybillReference(DomainException):
    """A webhook payload carried no waybill under any accepted key."""

    def __init__(self, payload_keys: list[str] | None = None) -> None:
        self.payload_keys = payload_keys or []
        super().__init__("Bad Request: waybill_id missing")


class InvalidTransition(DomainException):

    def __init__(self, current: str, target: str, reason: str = "") -> None:
        self.current = current
        self.target = target
        msg = f"Cannot move order from {current} to {target}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
