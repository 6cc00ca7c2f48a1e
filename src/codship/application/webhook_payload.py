"""Normalization of courier webhook payloads.

The courier's callbacks are inconsistently encoded: JSON, multipart form
data, URL-encoded forms, a JSON document smuggled in as the single form
field *name*, or bare query-string parameters.  Each encoding is handled
by one stage; stages are tried in ``PAYLOAD_STAGES`` order and the first
one that yields a non-empty payload wins.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Union
from urllib.parse import parse_qsl

from codship.domain.exceptions import MissingWaybillReference
from codship.domain.model.order import utcnow

WAYBILL_KEYS = ("waybill_id", "waybillId")
STATUS_KEYS = ("delivery_status", "current_status", "status")
TIMESTAMP_KEYS = ("last_update_time",)

MULTIPART_MARKER = "content-disposition: form-data"

_NAME_RE = re.compile(r'name="([^"]+)"')
_HEADER_END_RE = re.compile(r"\r?\n\r?\n")
_BOUNDARY_RE = re.compile(r'boundary="?([^";]+)"?', re.IGNORECASE)


# --- Payload sources ----------------------------------------------------------


@dataclass(frozen=True)
class JsonPayload:
    fields: dict[str, str]


@dataclass(frozen=True)
class FormFields:
    fields: dict[str, str]


@dataclass(frozen=True)
class QueryParams:
    fields: dict[str, str]


PayloadSource = Union[JsonPayload, FormFields, QueryParams]


@dataclass(frozen=True)
class WebhookRequest:
    body: str
    content_type: str | None = None
    query: Mapping[str, str] = field(default_factory=dict)

    @staticmethod
    def of(
        body: str | bytes | None,
        content_type: str | None = None,
        query: Mapping[str, str] | None = None,
    ) -> WebhookRequest:
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        return WebhookRequest(body or "", content_type, dict(query or {}))


@dataclass(frozen=True)
class CourierUpdate:
    waybill: str
    raw_status: str
    reported_at: str
    source: PayloadSource | None


# --- Stages -------------------------------------------------------------------


def parse_json_body(request: WebhookRequest) -> PayloadSource | None:
    text = request.body.strip()
    if not text:
        return None
    try:
        data = json.loads(text)
        # some senders double-encode the document
        if isinstance(data, str):
            data = json.loads(data)
    except ValueError:
        return None
    if isinstance(data, dict) and data:
        return JsonPayload(_stringify_all(data))
    return None


def parse_multipart_body(request: WebhookRequest) -> PayloadSource | None:
    content_type = (request.content_type or "").lower()
    if not (
        content_type.startswith("multipart/form-data")
        or MULTIPART_MARKER in request.body.lower()
    ):
        return None
    fields = _scan_multipart(request.body, request.content_type)
    return FormFields(fields) if fields else None


def parse_urlencoded_body(request: WebhookRequest) -> PayloadSource | None:
    if "=" not in request.body:
        return None
    fields = _form_fields(request.body)
    if not _has_waybill(fields):
        return None
    return FormFields(fields)


def parse_json_in_key(request: WebhookRequest) -> PayloadSource | None:
    if not request.body.strip():
        return None
    unwrapped = _unwrap_json_key(_form_fields(request.body))
    return JsonPayload(unwrapped) if unwrapped else None


def parse_query_params(request: WebhookRequest) -> PayloadSource | None:
    fields = {k: _stringify(v) for k, v in request.query.items()}
    return QueryParams(fields) if fields else None


Stage = Callable[[WebhookRequest], Union[PayloadSource, None]]

PAYLOAD_STAGES: tuple[Stage, ...] = (
    parse_json_body,
    parse_multipart_body,
    parse_urlencoded_body,
    parse_json_in_key,
    parse_query_params,
)


def normalize_payload(request: WebhookRequest) -> PayloadSource | None:
    for stage in PAYLOAD_STAGES:
        source = stage(request)
        if source is None:
            continue
        if isinstance(source, QueryParams):
            return source
        unwrapped = _unwrap_json_key(source.fields)
        return JsonPayload(unwrapped) if unwrapped else source
    return None


def extract_update(request: WebhookRequest) -> CourierUpdate:
    """Normalize *request* and pull out waybill, status and timestamp.

    Raises MissingWaybillReference when no accepted waybill key is present
    in the payload or the query string.
    """
    source = normalize_payload(request)
    fields = source.fields if source is not None else {}
    query = {k: _stringify(v) for k, v in request.query.items()}

    waybill = _first(fields, WAYBILL_KEYS) or _first(query, WAYBILL_KEYS)
    if not waybill:
        raise MissingWaybillReference(sorted(fields))

    return CourierUpdate(
        waybill=waybill,
        raw_status=_first(fields, STATUS_KEYS) or _first(query, STATUS_KEYS),
        reported_at=_first(fields, TIMESTAMP_KEYS) or utcnow().isoformat(),
        source=source,
    )


# --- Internal helpers ---------------------------------------------------------


def _scan_multipart(body: str, content_type: str | None) -> dict[str, str]:
    boundary = ""
    match = _BOUNDARY_RE.search(content_type or "")
    if match:
        boundary = "--" + match.group(1).strip()
    if not boundary or boundary not in body:
        boundary = next(
            (line.strip() for line in body.splitlines() if line.strip().startswith("--")),
            "",
        )
    if not boundary:
        return {}

    fields: dict[str, str] = {}
    for part in body.split(boundary):
        name_match = _NAME_RE.search(part)
        if name_match is None:
            continue
        header_end = _HEADER_END_RE.search(part)
        if header_end is None:
            continue
        value = part[header_end.end():].strip()
        if value.endswith("--"):
            value = value[:-2].strip()
        fields[name_match.group(1)] = value
    return fields


def _form_fields(body: str) -> dict[str, str]:
    return dict(parse_qsl(body.strip(), keep_blank_values=True))


def _unwrap_json_key(fields: Mapping[str, str]) -> dict[str, str] | None:
    if _has_waybill(fields) or len(fields) != 1:
        return None
    key = next(iter(fields))
    try:
        data = json.loads(key)
    except ValueError:
        return None
    if isinstance(data, dict) and _has_waybill(data):
        return _stringify_all(data)
    return None


def _has_waybill(fields: Mapping[str, object]) -> bool:
    return any(_stringify(fields.get(key)).strip() for key in WAYBILL_KEYS)


def _first(fields: Mapping[str, str], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = _stringify(fields.get(key)).strip()
        if value:
            return value
    return ""


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _stringify_all(data: Mapping[str, object]) -> dict[str, str]:
    return {str(k): _stringify(v) for k, v in data.items()}
