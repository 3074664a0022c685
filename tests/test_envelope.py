import pytest

from messaging.envelope import build_request_envelope, validate_response
from messaging.errors import ApiResponseError, ResponseParseError
from messaging.overrides import CallOverrides


def test_envelope_merges_override_fields():
    ov = CallOverrides().with_extra("c", "y")
    assert build_request_envelope({"a": 1, "b": "x"}, ov) == {"a": 1, "b": "x", "c": "y"}


def test_override_fields_win_on_collision():
    ov = CallOverrides().with_extra("b", "override")
    assert build_request_envelope({"a": 1, "b": "x"}, ov) == {"a": 1, "b": "override"}


def test_envelope_without_params_or_overrides():
    assert build_request_envelope(None) == {}
    assert build_request_envelope(None, CallOverrides()) == {}


def test_envelope_does_not_mutate_params():
    params = {"a": 1}
    build_request_envelope(params, CallOverrides().with_extra("z", 2))
    assert params == {"a": 1}


def test_success_returns_decoded_object():
    assert validate_response(200, '{"success": true, "data": {"id": 1}}') == {"success": True, "data": {"id": 1}}


def test_missing_success_is_accepted_by_default():
    assert validate_response(200, '{"data": []}') == {"data": []}


def test_missing_success_rejected_when_strict():
    with pytest.raises(ResponseParseError):
        validate_response(200, '{"data": []}', strict=True)


def test_failure_prefers_message_over_reason():
    with pytest.raises(ApiResponseError) as ei:
        validate_response(400, '{"success": false, "message": "bad sign", "reason": "r"}')
    assert ei.value.message == "bad sign"
    assert ei.value.status_code == 400
    assert ei.value.payload["reason"] == "r"


def test_failure_falls_back_to_reason_then_unknown():
    with pytest.raises(ApiResponseError, match="^no money$"):
        validate_response(200, '{"success": false, "reason": "no money"}')
    with pytest.raises(ApiResponseError, match="^Unknown error$"):
        validate_response(200, '{"success": false}')


def test_success_false_only_when_explicit_boolean():
    assert validate_response(200, '{"success": 0}')["success"] == 0


def test_malformed_and_non_object_bodies():
    with pytest.raises(ResponseParseError) as ei:
        validate_response(503, "Service Unavailable")
    assert ei.value.status_code == 503
    assert ei.value.body == "Service Unavailable"
    with pytest.raises(ResponseParseError):
        validate_response(200, "")
    with pytest.raises(ResponseParseError):
        validate_response(200, "[1, 2]")
