"""Courier status classifier.

Maps the courier's free-text delivery status onto an OrderStatus.  The
rules are evaluated top to bottom and the first match wins, so their
order is part of the contract: "return ... transfer" must be seen before
the bare "transfer" rule, and "delivered" before "delivery".
"""

from __future__ import annotations

from typing import Callable

from codship.domain.model.order import OrderStatus

StatusRule = tuple[Callable[[str], bool], OrderStatus]


def _contains(*words: str) -> Callable[[str], bool]:
    def predicate(text: str) -> bool:
        return all(word in text for word in words)

    return predicate


STATUS_RULES: tuple[StatusRule, ...] = (
    (_contains("delivered"), OrderStatus.DELIVERED),
    (_contains("return", "transfer"), OrderStatus.RETURN_TRANSFER),
    (_contains("transfer"), OrderStatus.TRANSFER),
    (_contains("returned"), OrderStatus.RETURNED),
    (_contains("handover"), OrderStatus.RETURN_HANDOVER),
    (_contains("system"), OrderStatus.RETURN_AS_ON_SYSTEM),
    (_contains("delivery"), OrderStatus.DELIVERY),
    (_contains("residual"), OrderStatus.RESIDUAL),
    (_contains("rearrange"), OrderStatus.REARRANGE),
    (_contains("waiting"), OrderStatus.PENDING),
)

DEFAULT_STATUS = OrderStatus.SHIPPED


def classify_courier_status(raw_status: str | None) -> OrderStatus:
    text = (raw_status or "").lower()
    for predicate, status in STATUS_RULES:
        if predicate(text):
            return status
    return DEFAULT_STATUS
