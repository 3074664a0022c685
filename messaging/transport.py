from __future__ import annotations

import logging
import time
from typing import Any, Dict, NamedTuple, Optional

import httpx

from config.settings import settings

log = logging.getLogger("smsaero.transport")


class RawResponse(NamedTuple):
    status_code: int
    text: str


class RequestTransport:
    """
    Performs exactly one JSON POST per call.

    The httpx client is shared by every call of one SmsAeroClient. An injected client is
    not closed by close().
    """

    def __init__(
        self,
        authorization: str,
        user_agent: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.connect_timeout = float(connect_timeout if connect_timeout is not None else settings.SMSAERO_CONNECT_TIMEOUT)
        self.read_timeout = float(read_timeout if read_timeout is not None else settings.SMSAERO_READ_TIMEOUT)
        self._headers = {
            "Authorization": authorization,
            "Content-Type": "application/json",
            "User-Agent": user_agent or settings.SMSAERO_USER_AGENT,
        }
        self._owns_client = client is None
        self._client = client or httpx.Client()

    def timeout(self, remaining: Optional[float] = None) -> httpx.Timeout:
        connect = self.connect_timeout
        read = self.read_timeout
        if remaining is not None:
            connect = min(connect, remaining)
            read = min(read, remaining)
        return httpx.Timeout(connect=connect, read=read, write=read, pool=connect)

    def post(
        self,
        url: str,
        body: Dict[str, Any],
        page: Optional[str] = None,
        remaining: Optional[float] = None,
    ) -> RawResponse:
        """
        POST `body` as JSON and return status and text, whatever the status.

        With `remaining` set, every phase timeout is clamped to it and the body read is
        abandoned with httpx.ReadTimeout once it runs out, even if bytes keep arriving.
        """
        params = {"page": page} if page is not None else None
        deadline = time.monotonic() + remaining if remaining is not None else None
        t0 = time.time()
        # The stream context closes the response and releases the connection on every exit path.
        with self._client.stream(
            "POST",
            url,
            json=body,
            params=params,
            headers=self._headers,
            timeout=self.timeout(remaining),
        ) as r:
            chunks = []
            for chunk in r.iter_bytes():
                chunks.append(chunk)
                if deadline is not None and time.monotonic() >= deadline:
                    raise httpx.ReadTimeout("deadline reached while reading response body", request=r.request)
            content = b"".join(chunks)
        dt_ms = int((time.time() - t0) * 1000)
        log.debug(
            "transport_response",
            extra={"extra": {"event": "transport_response", "status_code": r.status_code, "latency_ms": dt_ms}},
        )
        # Error statuses still carry a JSON envelope; read it the same way.
        return RawResponse(status_code=r.status_code, text=content.decode(r.encoding or "utf-8", errors="replace"))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RequestTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
