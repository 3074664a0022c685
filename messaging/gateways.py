from __future__ import annotations

import ssl
from typing import Iterable, Iterator, Optional, Tuple

import httpx

from config.settings import settings


class GatewaySet:
    """Ordered, non-empty set of interchangeable gateway base urls. First listed is tried first."""

    def __init__(self, urls: Optional[Iterable[str]] = None, version_path: Optional[str] = None):
        raw = list(urls) if urls is not None else settings.gateway_list()
        cleaned = [u.strip().rstrip("/") for u in raw if u and u.strip()]
        if not cleaned:
            raise ValueError("at least one gateway url is required")
        for u in cleaned:
            if not u.startswith(("https://", "http://")):
                raise ValueError(f"gateway url must be http(s): {u}")
        self.urls: Tuple[str, ...] = tuple(cleaned)
        self.version_path = (version_path or settings.SMSAERO_API_VERSION_PATH).strip("/")

    def __iter__(self) -> Iterator[str]:
        return iter(self.urls)

    def __len__(self) -> int:
        return len(self.urls)

    def method_url(self, base: str, method: str) -> str:
        return f"{base}/{self.version_path}/{method.strip('/')}"


def insecure_variant(url: str) -> str:
    if url.startswith("https://"):
        return "http://" + url[len("https://"):]
    return url


def is_secure(url: str) -> bool:
    return url.startswith("https://")


# OpenSSL error strings as httpx surfaces them, e.g. "[SSL: CERTIFICATE_VERIFY_FAILED] ..."
_TLS_MARKERS = ("[ssl", "certificate_verify_failed", "certificate verify failed", "handshake")


def is_tls_failure(exc: BaseException) -> bool:
    """True when a connect failure was caused by TLS negotiation (handshake or certificate)."""
    if not isinstance(exc, httpx.ConnectError):
        return False
    seen = set()
    cur: Optional[BaseException] = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        if isinstance(cur, ssl.SSLError):
            return True
        cur = cur.__cause__ or cur.__context__
    msg = str(exc).lower()
    return any(m in msg for m in _TLS_MARKERS)


def is_transient(exc: BaseException) -> bool:
    """
    Infrastructure failures that justify moving on to the next gateway:
    timeouts, connect/DNS/read/write errors, protocol errors, proxy errors.
    """
    return isinstance(
        exc,
        (
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.ProtocolError,
            httpx.ProxyError,
        ),
    )
