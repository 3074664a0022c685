from __future__ import annotations

import base64
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperatingMode(str, Enum):
    LIVE = "live"
    TEST = "test"


# Methods with a non-charging test counterpart.
TEST_METHODS = {
    "sms/send": "sms/testsend",
    "sms/status": "sms/teststatus",
    "sms/list": "sms/testlist",
}


def resolve_method(method: str, mode: OperatingMode) -> str:
    if mode is OperatingMode.TEST:
        return TEST_METHODS.get(method, method)
    return method


class ClientCredential(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    api_key: str = Field(repr=False)

    @field_validator("email", "api_key")
    @classmethod
    def _non_blank(cls, v: str, info) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{info.field_name} cannot be null or blank")
        return v

    def authorization(self) -> str:
        raw = f"{self.email}:{self.api_key}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")
