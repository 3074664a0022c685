from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
import respx

from config.settings import Settings
from messaging.client import SmsAeroClient
from messaging.transport import RawResponse

GATEWAYS = ["https://gate.smsaero.ru", "https://gate.smsaero.org", "https://gate.smsaero.net"]


def ok(payload: Optional[Dict[str, Any]] = None, status_code: int = 200) -> RawResponse:
    return RawResponse(status_code, json.dumps(payload if payload is not None else {"success": True, "data": {}}))


class FakeTransport:
    """Scripted stand-in for RequestTransport: url -> list of RawResponse or exceptions."""

    def __init__(self, script: Dict[str, List[Any]], clock=None, cost: float = 0.0):
        self.script = {k: list(v) for k, v in script.items()}
        self.calls: List[Dict[str, Any]] = []
        self.clock = clock
        self.cost = cost

    def post(self, url, body, page=None, remaining=None):
        self.calls.append({"url": url, "body": body, "page": page, "remaining": remaining})
        if self.clock is not None:
            self.clock.advance(self.cost)
        outcome = self.script[url].pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def urls(self) -> List[str]:
        return [c["url"] for c in self.calls]

    def close(self):
        pass


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, SMSAERO_GATEWAYS=",".join(GATEWAYS), SMSAERO_TOTAL_TIMEOUT=None)


@pytest.fixture
def gateway_mock():
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def client(test_settings, gateway_mock):
    c = SmsAeroClient("user@example.com", "KEY", settings=test_settings)
    yield c
    c.close()
