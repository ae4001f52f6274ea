from __future__ import annotations

import app.response as response_module
from app.response import make_error_response, make_success_response


def test_success_envelope_meta_has_only_request_data():
    envelope = make_success_response(result={"id": 1}, request_id="req-1")

    dumped = envelope.model_dump(mode="json")
    assert dumped["ok"] is True
    assert dumped["error"] is None
    assert set(dumped["meta"]) == {"request_id", "timestamp"}
    assert dumped["meta"]["request_id"] == "req-1"


def test_error_envelope_carries_code_and_details():
    envelope = make_error_response(
        code="ASSET_NOT_FOUND",
        http_code=404,
        message="Asset not found.",
        details={"asset_id": "x"},
    )

    assert envelope.ok is False
    assert envelope.result is None
    assert envelope.error.code == "ASSET_NOT_FOUND"
    assert envelope.error.details == {"asset_id": "x"}


def test_response_package_exports_no_pagination():
    assert not hasattr(response_module, "Pagination")
    assert "Pagination" not in response_module.__all__
