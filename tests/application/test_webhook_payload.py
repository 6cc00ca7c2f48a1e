"""Tests for courier webhook payload normalization."""

import json
from urllib.parse import quote

import pytest

from codship.application.webhook_payload import (
    FormFields,
    JsonPayload,
    QueryParams,
    WebhookRequest,
    extract_update,
    normalize_payload,
)
from codship.domain.exceptions import MissingWaybillReference

MULTIPART = (
    "--XyZ\r\n"
    'Content-Disposition: form-data; name="waybill_id"\r\n'
    "\r\n"
    "WB5001\r\n"
    "--XyZ\r\n"
    'Content-Disposition: form-data; name="current_status"\r\n'
    "\r\n"
    "Out for Delivery\r\n"
    "--XyZ--\r\n"
)


def _request(body, content_type=None, query=None):
    return WebhookRequest.of(body, content_type, query)


class TestNormalize:

    def test_json_body(self):
        source = normalize_payload(_request('{"waybill_id": "WB1", "status": "Delivered"}'))
        assert source == JsonPayload({"waybill_id": "WB1", "status": "Delivered"})

    def test_json_numbers_become_text(self):
        source = normalize_payload(_request('{"waybill_id": 12345}'))
        assert source.fields["waybill_id"] == "12345"

    def test_multipart_by_content_type(self):
        source = normalize_payload(_request(MULTIPART, "multipart/form-data; boundary=XyZ"))
        assert isinstance(source, FormFields)
        assert source.fields == {"waybill_id": "WB5001", "current_status": "Out for Delivery"}

    def test_multipart_boundary_discovered_without_header(self):
        source = normalize_payload(_request(MULTIPART.encode()))
        assert source.fields["waybill_id"] == "WB5001"

    def test_urlencoded_with_waybill(self):
        source = normalize_payload(_request("waybill_id=WB9&delivery_status=Returned"))
        assert source == FormFields({"waybill_id": "WB9", "delivery_status": "Returned"})

    def test_urlencoded_without_waybill_is_not_accepted(self):
        source = normalize_payload(_request("foo=bar", query={"waybillId": "WB2"}))
        assert isinstance(source, QueryParams)

    def test_json_document_as_form_key(self):
        document = json.dumps({"waybill_id": "WB3", "status": "Delivered"})
        source = normalize_payload(_request(quote(document) + "="))
        assert source == JsonPayload({"waybill_id": "WB3", "status": "Delivered"})

    def test_query_params_when_body_empty(self):
        source = normalize_payload(_request("", query={"waybill_id": "WB4"}))
        assert source == QueryParams({"waybill_id": "WB4"})

    def test_nothing(self):
        assert normalize_payload(_request("")) is None

    def test_first_stage_wins(self):
        source = normalize_payload(
            _request('{"waybill_id": "FROM-BODY"}', query={"waybill_id": "FROM-QUERY"})
        )
        assert source.fields["waybill_id"] == "FROM-BODY"


class TestExtractUpdate:

    def test_status_key_precedence(self):
        update = extract_update(
            _request('{"waybill_id": "WB1", "status": "x", "delivery_status": "Delivered"}')
        )
        assert update.raw_status == "Delivered"

    def test_waybill_id_camel_case(self):
        assert extract_update(_request('{"waybillId": "WB7"}')).waybill == "WB7"

    def test_waybill_falls_back_to_query(self):
        update = extract_update(_request('{"status": "Delivered"}', query={"waybill_id": "WB8"}))
        assert update.waybill == "WB8"
        assert update.raw_status == "Delivered"

    def test_courier_timestamp_kept(self):
        update = extract_update(
            _request('{"waybill_id": "WB1", "last_update_time": "2024-03-03 10:15"}')
        )
        assert update.reported_at == "2024-03-03 10:15"

    def test_missing_waybill(self):
        with pytest.raises(MissingWaybillReference, match="waybill_id missing") as exc_info:
            extract_update(_request('{"status": "Delivered"}'))
        assert exc_info.value.payload_keys == ["status"]

    def test_blank_waybill_counts_as_missing(self):
        with pytest.raises(MissingWaybillReference):
            extract_update(_request('{"waybill_id": "  ", "status": "Delivered"}'))
