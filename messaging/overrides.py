from __future__ import annotations

import itertools
import threading
from contextvars import ContextVar
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from messaging.errors import InvalidParameterError


class CallOverrides(BaseModel):
    """
    Pagination token and extra body fields for exactly one outgoing call.

    Immutable: every change returns a new instance, so a context copied into another
    thread or task can never see later edits.
    """

    model_config = ConfigDict(frozen=True)

    page: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    def with_page(self, page: Optional[str]) -> "CallOverrides":
        if page is not None and (not isinstance(page, str) or not page.strip()):
            raise InvalidParameterError("page cannot be blank")
        return self.model_copy(update={"page": page})

    def with_extra(self, key: str, value: Any) -> "CallOverrides":
        if not isinstance(key, str) or not key.strip():
            raise InvalidParameterError("key cannot be null or blank")
        if value is None:
            raise InvalidParameterError("value cannot be null")
        extra = dict(self.extra)
        extra[key] = value
        return self.model_copy(update={"extra": extra})

    def is_empty(self) -> bool:
        return self.page is None and not self.extra


EMPTY = CallOverrides()

_slot_ids = itertools.count(1)


class _PendingCell:
    """One-shot holder. Contexts copied from the setter's context share the cell, so a
    take() in any of them spends it for all."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: CallOverrides) -> None:
        self._value: Optional[CallOverrides] = value
        self._lock = threading.Lock()

    def peek(self) -> CallOverrides:
        with self._lock:
            return self._value if self._value is not None else EMPTY

    def take(self) -> CallOverrides:
        with self._lock:
            value, self._value = self._value, None
        return value if value is not None else EMPTY


# slot id -> pending cell, for every client, in one var.
_pending: ContextVar[Mapping[int, _PendingCell]] = ContextVar("smsaero_pending_overrides", default={})


class OverrideSlot:
    """
    Call-chain scoped holder for the overrides of one client instance.

    Edits replace the cell in the current context only; a new thread starts without
    one. Consumption is shared with every context copied after the last edit
    (asyncio tasks, to_thread, copy_context().run).
    """

    def __init__(self) -> None:
        self.slot_id = next(_slot_ids)

    def _cell(self) -> Optional[_PendingCell]:
        return _pending.get().get(self.slot_id)

    def _put(self, value: Optional[CallOverrides]) -> None:
        cells = dict(_pending.get())
        if value is None or value.is_empty():
            cells.pop(self.slot_id, None)
        else:
            cells[self.slot_id] = _PendingCell(value)
        _pending.set(cells)

    def get(self) -> CallOverrides:
        cell = self._cell()
        return cell.peek() if cell is not None else EMPTY

    def set_page(self, page: Optional[str]) -> None:
        self._put(self.get().with_page(page))

    def add_extra(self, key: str, value: Any) -> None:
        self._put(self.get().with_extra(key, value))

    def clear(self) -> None:
        cell = self._cell()
        if cell is not None:
            cell.take()
            self._put(None)

    def consume(self) -> CallOverrides:
        cell = self._cell()
        if cell is None:
            return EMPTY
        value = cell.take()
        self._put(None)
        return value
