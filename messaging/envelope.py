from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

from messaging.errors import ApiResponseError, ResponseParseError
from messaging.overrides import CallOverrides


def build_request_envelope(params: Optional[Mapping[str, Any]], overrides: Optional[CallOverrides] = None) -> Dict[str, Any]:
    """Base params merged with override extra fields; overrides win on key collision."""
    body: Dict[str, Any] = dict(params or {})
    if overrides is not None:
        body.update(overrides.extra)
    return body


def _excerpt(text: str, limit: int = 500) -> str:
    return (text or "")[:limit]


def validate_response(status_code: int, text: str, strict: bool = False) -> Dict[str, Any]:
    """
    Decode a gateway response and enforce the envelope contract.

    - body that is not a JSON object -> ResponseParseError
    - success is False -> ApiResponseError(message | reason | "Unknown error")
    - success True -> the decoded object
    - success missing -> the decoded object, or ResponseParseError when strict
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ResponseParseError(
            f"malformed response body (status {status_code}): {e}",
            status_code=status_code,
            body=_excerpt(text),
        ) from e

    if not isinstance(data, dict):
        raise ResponseParseError(
            f"response body is not a JSON object (status {status_code})",
            status_code=status_code,
            body=_excerpt(text),
        )

    if data.get("success") is False:
        msg = data.get("message")
        reason = data.get("reason")
        if msg is not None:
            err_text = str(msg)
        elif reason is not None:
            err_text = str(reason)
        else:
            err_text = "Unknown error"
        raise ApiResponseError(err_text, status_code=status_code, payload=data)

    if strict and "success" not in data:
        raise ResponseParseError(
            f"response envelope has no success field (status {status_code})",
            status_code=status_code,
            body=_excerpt(text),
        )

    return data
