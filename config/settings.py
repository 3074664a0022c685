from __future__ import annotations

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


DEFAULT_GATEWAYS = "https://gate.smsaero.ru,https://gate.smsaero.org,https://gate.smsaero.net"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Credentials
    SMSAERO_EMAIL: str = Field(default="")
    SMSAERO_API_KEY: str = Field(default="")

    # Gateways (comma-separated, priority order)
    SMSAERO_GATEWAYS: str = Field(default=DEFAULT_GATEWAYS)
    SMSAERO_API_VERSION_PATH: str = Field(default="v2")

    # Timeouts, seconds. TOTAL bounds a whole dispatch across all gateways; unset = per-attempt only.
    SMSAERO_CONNECT_TIMEOUT: float = Field(default=10.0)
    SMSAERO_READ_TIMEOUT: float = Field(default=30.0)
    SMSAERO_TOTAL_TIMEOUT: Optional[float] = Field(default=None)

    # Transport policy
    # NOTE: https -> http retry on TLS failure drops confidentiality of the request body and credentials.
    SMSAERO_ALLOW_INSECURE_FALLBACK: bool = Field(default=True)
    SMSAERO_STRICT_ENVELOPE: bool = Field(default=False)

    SMSAERO_USER_AGENT: str = Field(default="SAPythonClient/3.2.0")
    SMSAERO_DEFAULT_SIGN: str = Field(default="SMS Aero")

    LOG_LEVEL: str = Field(default="INFO")

    def gateway_list(self) -> List[str]:
        return [g.strip().rstrip("/") for g in (self.SMSAERO_GATEWAYS or "").split(",") if g.strip()]


settings = Settings()
