"""Tenant identity record.

A tenant is one storefront on the shared platform.  The engine only reads
tenants; provisioning happens elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CourierMode(Enum):
    STANDARD = "STANDARD"
    EXISTING_WAYBILL = "EXISTING_WAYBILL"


@dataclass(frozen=True)
class CourierSettings:
    api_key: str = ""
    client_id: str = ""
    mode: CourierMode = CourierMode.STANDARD
    api_url: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key.strip() and self.client_id.strip())


@dataclass(frozen=True)
class Tenant:
    id: str
    name: str = ""
    store_uri: str | None = None
    is_active: bool = True
    courier_settings: CourierSettings = field(default_factory=CourierSettings)

    @property
    def has_own_store(self) -> bool:
        return bool(self.store_uri and self.store_uri.strip())
