from __future__ import annotations

import uuid
from contextvars import ContextVar

_call_id_var: ContextVar[str] = ContextVar("smsaero_call_id", default="")

def new_call_id() -> str:
    return uuid.uuid4().hex[:12]

def set_call_id(cid: str) -> object:
    return _call_id_var.set(cid or "")

def get_call_id() -> str:
    return _call_id_var.get() or ""

def reset_call_id(token: object) -> None:
    _call_id_var.reset(token)  # type: ignore[arg-type]
