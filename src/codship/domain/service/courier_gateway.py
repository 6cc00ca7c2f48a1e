"""Port for handing an order to the external courier.

The state machine depends on this abstraction only; the HTTP client in
the infrastructure layer implements it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from codship.domain.model.order import Order
from codship.domain.model.tenant import CourierSettings


@dataclass(frozen=True)
class DispatchResult:
    tracking_number: str
    message: str = ""


class CourierGateway(ABC):

    @abstractmethod
    def dispatch(self, order: Order, settings: CourierSettings) -> DispatchResult:
        """Submit *order* to the courier.

        Raises CourierRejected or CourierUnreachable; never retries.
        """
