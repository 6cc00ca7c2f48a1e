"""Runtime configuration.

Values come from ``CODSHIP_*`` environment variables; a ``.env`` file in
the working directory is loaded first so local runs need no exports.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping

from dotenv import load_dotenv

from codship.domain.exceptions import ValidationError

ENV_PREFIX = "CODSHIP_"

DEFAULT_NEW_PARCEL_URL = "https://www.fdedomestic.com/api/parcel/new_api_v1.php"
DEFAULT_EXISTING_WAYBILL_URL = (
    "https://www.fdedomestic.com/api/parcel/existing_waybill_api_v1.php"
)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    central_store: str = "./data"
    courier_new_parcel_url: str = DEFAULT_NEW_PARCEL_URL
    courier_existing_waybill_url: str = DEFAULT_EXISTING_WAYBILL_URL
    courier_connect_timeout: float = 5.0
    courier_read_timeout: float = 15.0
    allow_oversell: bool = True
    return_value_ratio: Decimal = Decimal("0.80")
    max_store_connections: int | None = None
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from *environ* (``os.environ`` after ``.env``)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        def get(name: str) -> str | None:
            value = environ.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        defaults = cls()
        max_connections = _int(get("MAX_STORE_CONNECTIONS"), "MAX_STORE_CONNECTIONS")
        return cls(
            central_store=get("CENTRAL_STORE") or defaults.central_store,
            courier_new_parcel_url=get("COURIER_NEW_PARCEL_URL")
            or defaults.courier_new_parcel_url,
            courier_existing_waybill_url=get("COURIER_EXISTING_WAYBILL_URL")
            or defaults.courier_existing_waybill_url,
            courier_connect_timeout=_float(
                get("COURIER_CONNECT_TIMEOUT"),
                "COURIER_CONNECT_TIMEOUT",
                defaults.courier_connect_timeout,
            ),
            courier_read_timeout=_float(
                get("COURIER_READ_TIMEOUT"),
                "COURIER_READ_TIMEOUT",
                defaults.courier_read_timeout,
            ),
            allow_oversell=_bool(
                get("ALLOW_OVERSELL"), "ALLOW_OVERSELL", defaults.allow_oversell
            ),
            return_value_ratio=_ratio(
                get("RETURN_VALUE_RATIO"), defaults.return_value_ratio
            ),
            max_store_connections=max_connections if max_connections else None,
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
            log_json=_bool(get("LOG_JSON"), "LOG_JSON", defaults.log_json),
        )


def _bool(value: str | None, name: str, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValidationError(f"{ENV_PREFIX}{name} must be a boolean, got {value!r}")


def _float(value: str | None, name: str, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ValidationError(f"{ENV_PREFIX}{name} must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ValidationError(f"{ENV_PREFIX}{name} must be positive")
    return parsed


def _int(value: str | None, name: str) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValidationError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from exc
    if parsed < 0:
        raise ValidationError(f"{ENV_PREFIX}{name} cannot be negative")
    return parsed


def _ratio(value: str | None, default: Decimal) -> Decimal:
    if value is None:
        return default
    try:
        parsed = Decimal(value)
    except InvalidOperation as exc:
        raise ValidationError(
            f"{ENV_PREFIX}RETURN_VALUE_RATIO must be a decimal, got {value!r}"
        ) from exc
    if not Decimal("0") <= parsed <= Decimal("1"):
        raise ValidationError(f"{ENV_PREFIX}RETURN_VALUE_RATIO must be between 0 and 1")
    return parsed
