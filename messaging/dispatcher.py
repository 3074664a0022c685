from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from config.settings import settings
from messaging.envelope import validate_response
from messaging.errors import DeadlineExceededError, NetworkFailureError
from messaging.gateways import GatewaySet, insecure_variant, is_secure, is_tls_failure, is_transient
from messaging.transport import RequestTransport

log = logging.getLogger("smsaero.dispatcher")


class GatewayDispatcher:
    """
    Gateway failover loop.

    For each gateway in priority order: POST over https; on a TLS negotiation failure,
    retry the same gateway once over http (if allowed); on a transient network error move
    to the next gateway. Any other error, including success=false, propagates at once.
    Gateways are tried strictly one after another, never in parallel.
    """

    def __init__(
        self,
        transport: RequestTransport,
        gateways: Optional[GatewaySet] = None,
        allow_insecure_fallback: Optional[bool] = None,
        strict_envelope: Optional[bool] = None,
        total_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.clock = clock
        self.gateways = gateways or GatewaySet()
        self.allow_insecure_fallback = (
            settings.SMSAERO_ALLOW_INSECURE_FALLBACK if allow_insecure_fallback is None else allow_insecure_fallback
        )
        self.strict_envelope = settings.SMSAERO_STRICT_ENVELOPE if strict_envelope is None else strict_envelope
        self.total_timeout = settings.SMSAERO_TOTAL_TIMEOUT if total_timeout is None else total_timeout

    def send(
        self,
        method: str,
        body: Dict[str, Any],
        page: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        budget = self.total_timeout if timeout is None else timeout
        deadline = self.clock() + budget if budget is not None else None
        attempts: List[str] = []
        last_error: Optional[BaseException] = None

        for base in self.gateways:
            url = self.gateways.method_url(base, method)
            try:
                return self._attempt(url, body, page, deadline, attempts, last_error)
            except httpx.HTTPError as e:
                if is_secure(url) and is_tls_failure(e) and self.allow_insecure_fallback:
                    plain = insecure_variant(url)
                    log.warning(
                        "gateway_insecure_fallback",
                        extra={
                            "extra": {
                                "event": "gateway_insecure_fallback",
                                "method": method,
                                "gateway": base,
                                "error_type": type(e).__name__,
                                "message": str(e),
                            }
                        },
                    )
                    try:
                        return self._attempt(plain, body, page, deadline, attempts, e)
                    except httpx.HTTPError as e2:
                        if not is_transient(e2):
                            raise
                        e = e2
                elif not is_transient(e):
                    raise
                last_error = e
                log.warning(
                    "gateway_transient_error",
                    extra={
                        "extra": {
                            "event": "gateway_transient_error",
                            "method": method,
                            "gateway": base,
                            "error_type": type(e).__name__,
                            "message": str(e),
                        }
                    },
                )

        if deadline is not None and self.clock() >= deadline:
            log.error(
                "dispatch_deadline_exceeded",
                extra={"extra": {"event": "dispatch_deadline_exceeded", "method": method, "attempts": len(attempts)}},
            )
            raise DeadlineExceededError(
                f"deadline exceeded after {len(attempts)} attempt(s): {last_error}",
                attempts=attempts,
                last_error=last_error,
            ) from last_error

        log.error(
            "gateway_exhausted",
            extra={
                "extra": {
                    "event": "gateway_exhausted",
                    "method": method,
                    "attempts": len(attempts),
                    "error_type": type(last_error).__name__,
                    "message": str(last_error),
                }
            },
        )
        raise NetworkFailureError(
            f"all {len(self.gateways)} gateways failed for {method}: {last_error}",
            attempts=attempts,
            last_error=last_error,
        ) from last_error

    def _attempt(
        self,
        url: str,
        body: Dict[str, Any],
        page: Optional[str],
        deadline: Optional[float],
        attempts: List[str],
        last_error: Optional[BaseException],
    ) -> Dict[str, Any]:
        remaining = None
        if deadline is not None:
            remaining = deadline - self.clock()
            if remaining <= 0:
                log.error(
                    "dispatch_deadline_exceeded",
                    extra={"extra": {"event": "dispatch_deadline_exceeded", "url": url, "attempts": len(attempts)}},
                )
                raise DeadlineExceededError(
                    f"deadline exceeded after {len(attempts)} attempt(s): {last_error}",
                    attempts=attempts,
                    last_error=last_error,
                ) from last_error

        attempts.append(url)
        t0 = time.time()
        log.info("gateway_attempt", extra={"extra": {"event": "gateway_attempt", "url": url, "attempt": len(attempts)}})
        raw = self.transport.post(url, body, page=page, remaining=remaining)
        data = validate_response(raw.status_code, raw.text, strict=self.strict_envelope)
        dt_ms = int((time.time() - t0) * 1000)
        log.info(
            "gateway_result",
            extra={
                "extra": {
                    "event": "gateway_result",
                    "url": url,
                    "status_code": raw.status_code,
                    "latency_ms": dt_ms,
                }
            },
        )
        return data
