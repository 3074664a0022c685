from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import ValidationError

from config.settings import Settings, settings as default_settings
from messaging.credentials import ClientCredential, OperatingMode, resolve_method
from messaging.dispatcher import GatewayDispatcher
from messaging.envelope import build_request_envelope
from messaging.errors import InvalidParameterError
from messaging.gateways import GatewaySet
from messaging.overrides import CallOverrides, OverrideSlot
from messaging.transport import RequestTransport
from utils.redact import dest_hint
from utils.request_context import get_call_id, new_call_id, reset_call_id, set_call_id

log = logging.getLogger("smsaero.client")


def _require(**fields: Any) -> None:
    for name, value in fields.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidParameterError(f"{name} cannot be null or blank")


def _compact(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class SmsAeroClient:
    """
    Client for the SMS Aero v2 API.

    Every operation builds a flat parameter map and goes through dispatch(), which
    tries each gateway in order (see GatewayDispatcher).

    Test mode is client-wide and last-writer-wins: toggling it while other threads
    are mid-call affects any call that has not yet picked its method path.
    set_page() and add_extra_field() apply to the next call made from the same
    thread or asyncio task only, and are cleared by that call whatever its outcome.
    """

    def __init__(
        self,
        email: str,
        api_key: str,
        *,
        settings: Optional[Settings] = None,
        transport: Optional[RequestTransport] = None,
        gateways: Optional[GatewaySet] = None,
        http_client: Optional[httpx.Client] = None,
        allow_insecure_fallback: Optional[bool] = None,
        total_timeout: Optional[float] = None,
    ):
        try:
            self._credential = ClientCredential(email=email, api_key=api_key)
        except ValidationError as e:
            raise InvalidParameterError(f"invalid credentials: {e.errors()[0].get('msg', 'blank value')}") from e

        cfg = settings or default_settings
        self._settings = cfg
        self._mode = OperatingMode.LIVE
        self._overrides = OverrideSlot()
        self._transport = transport or RequestTransport(
            authorization=self._credential.authorization(),
            user_agent=cfg.SMSAERO_USER_AGENT,
            connect_timeout=cfg.SMSAERO_CONNECT_TIMEOUT,
            read_timeout=cfg.SMSAERO_READ_TIMEOUT,
            client=http_client,
        )
        self._dispatcher = GatewayDispatcher(
            transport=self._transport,
            gateways=gateways or GatewaySet(cfg.gateway_list(), cfg.SMSAERO_API_VERSION_PATH),
            allow_insecure_fallback=(
                cfg.SMSAERO_ALLOW_INSECURE_FALLBACK if allow_insecure_fallback is None else allow_insecure_fallback
            ),
            strict_envelope=cfg.SMSAERO_STRICT_ENVELOPE,
            total_timeout=cfg.SMSAERO_TOTAL_TIMEOUT if total_timeout is None else total_timeout,
        )

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None, **kwargs: Any) -> "SmsAeroClient":
        cfg = cfg or default_settings
        return cls(cfg.SMSAERO_EMAIL, cfg.SMSAERO_API_KEY, settings=cfg, **kwargs)

    def __repr__(self) -> str:
        return f"SmsAeroClient(email={self._credential.email!r}, mode={self._mode.value})"

    # ---- lifecycle ----

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "SmsAeroClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ---- mode ----

    @property
    def mode(self) -> OperatingMode:
        return self._mode

    def enable_test_mode(self) -> None:
        """sms/send, sms/status and sms/list switch to their non-charging test endpoints."""
        self._mode = OperatingMode.TEST

    def disable_test_mode(self) -> None:
        self._mode = OperatingMode.LIVE

    def is_test_mode_active(self) -> bool:
        return self._mode is OperatingMode.TEST

    # ---- per-call overrides ----

    def set_page(self, page: Optional[str]) -> None:
        """Page for the next list call. None clears it."""
        if page is not None and not isinstance(page, str):
            page = str(page)
        self._overrides.set_page(page)

    def add_extra_field(self, key: str, value: Any) -> None:
        """Extra body field for the next call, e.g. fname/lname for contact_add."""
        self._overrides.add_extra(key, value)

    def clear_overrides(self) -> None:
        self._overrides.clear()

    def pending_overrides(self) -> CallOverrides:
        return self._overrides.get()

    # ---- dispatch ----

    def dispatch(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        overrides: Optional[CallOverrides] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Send one API call and return the decoded response envelope.

        `method` is the path under /v2/ (e.g. "balance"); test-mode substitution is
        applied here. Explicit `overrides` replace the pending context overrides; the
        pending ones are consumed either way.
        """
        _require(method=method)
        pending = self._overrides.consume()
        ov = overrides if overrides is not None else pending
        body = build_request_envelope(params, ov)
        resolved = resolve_method(method.strip("/"), self._mode)

        token = None
        if not get_call_id():
            token = set_call_id(new_call_id())
        try:
            return self._dispatcher.send(resolved, body, page=ov.page, timeout=timeout)
        finally:
            if token is not None:
                reset_call_id(token)

    # ---- account ----

    def is_authorized(self) -> Dict[str, Any]:
        return self.dispatch("auth")

    def tariffs(self) -> Dict[str, Any]:
        return self.dispatch("tariffs")

    def sign_list(self) -> Dict[str, Any]:
        return self.dispatch("sign/list")

    def balance(self) -> Dict[str, Any]:
        return self.dispatch("balance")

    def cards(self) -> Dict[str, Any]:
        return self.dispatch("cards")

    def add_balance(self, amount: int, card_id: int) -> Dict[str, Any]:
        """Top up from a saved card (see cards()). `amount` is in rubles."""
        return self.dispatch("balance/add", {"sum": str(amount), "card_id": str(card_id)})

    # ---- sms ----

    def send_sms(
        self,
        number: str,
        text: str,
        sign: Optional[str] = None,
        date_to_send: Optional[datetime] = None,
        callback_url: Optional[str] = None,
        callback_format: Optional[str] = None,
    ) -> Dict[str, Any]:
        if sign is None:
            sign = self._settings.SMSAERO_DEFAULT_SIGN
        _require(number=number, text=text, sign=sign)
        params = _compact(
            {
                "number": number,
                "text": text,
                "sign": sign,
                "dateSend": int(date_to_send.timestamp()) if date_to_send is not None else None,
                "callbackUrl": callback_url,
                "callbackFormat": callback_format,
            }
        )
        log.info(
            "sms_send_attempt",
            extra={"extra": {"event": "sms_send_attempt", "dest": dest_hint(number), "test_mode": self.is_test_mode_active()}},
        )
        return self.dispatch("sms/send", params)

    def sms_status(self, sms_id: int) -> Dict[str, Any]:
        return self.dispatch("sms/status", {"id": str(sms_id)})

    def sms_list(self) -> Dict[str, Any]:
        """Sent SMS list. Call set_page() first for later pages."""
        return self.dispatch("sms/list")

    def number_operator(self, number: str) -> Dict[str, Any]:
        _require(number=number)
        return self.dispatch("number/operator", {"number": number})

    # ---- groups ----

    def group_add(self, name: str) -> Dict[str, Any]:
        _require(name=name)
        return self.dispatch("group/add", {"name": name})

    def group_list(self) -> Dict[str, Any]:
        return self.dispatch("group/list")

    def group_delete(self, group_id: int) -> Dict[str, Any]:
        return self.dispatch("group/delete", {"id": str(group_id)})

    def group_delete_all(self) -> Dict[str, Any]:
        return self.dispatch("group/delete-all")

    # ---- blacklist ----

    def blacklist_add(self, number: str) -> Dict[str, Any]:
        _require(number=number)
        return self.dispatch("blacklist/add", {"number": number})

    def blacklist_list(self) -> Dict[str, Any]:
        return self.dispatch("blacklist/list")

    def blacklist_delete(self, blacklist_id: int) -> Dict[str, Any]:
        return self.dispatch("blacklist/delete", {"id": str(blacklist_id)})

    # ---- hlr ----

    def hlr_check(self, number: str) -> Dict[str, Any]:
        _require(number=number)
        return self.dispatch("hlr/check", {"number": number})

    def hlr_status(self, hlr_id: int) -> Dict[str, Any]:
        return self.dispatch("hlr/status", {"id": str(hlr_id)})

    # ---- contacts ----

    def contact_add(self, number: str) -> Dict[str, Any]:
        """Optional contact fields (fname, lname, sex, groupId, ...) go through add_extra_field()."""
        _require(number=number)
        return self.dispatch("contact/add", {"number": number})

    def contact_delete(self, contact_id: int) -> Dict[str, Any]:
        return self.dispatch("contact/delete", {"id": str(contact_id)})

    def contact_delete_all(self) -> Dict[str, Any]:
        return self.dispatch("contact/delete-all")

    def contact_list(self) -> Dict[str, Any]:
        return self.dispatch("contact/list")

    # ---- viber ----

    def viber_send(self, sign: str, channel: str, text: str, number: str) -> Dict[str, Any]:
        _require(sign=sign, channel=channel, text=text, number=number)
        return self.dispatch("viber/send", {"number": number, "sign": sign, "channel": channel, "text": text})

    def viber_sign_list(self) -> Dict[str, Any]:
        return self.dispatch("viber/sign/list")

    def viber_list(self) -> Dict[str, Any]:
        return self.dispatch("viber/list")

    def viber_statistics(self, sending_id: int) -> Dict[str, Any]:
        return self.dispatch("viber/statistic", {"sendingId": str(sending_id)})

    # ---- telegram ----

    def send_telegram(
        self,
        number: str,
        code: int,
        sign: Optional[str] = None,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a Telegram verification code.

        With `sign` and `text`, the code is delivered by SMS when Telegram delivery fails.
        They must be given together.
        """
        _require(number=number)
        if (sign is None) != (text is None):
            raise InvalidParameterError("sign and text must be given together")
        params: Dict[str, Any] = {"number": number, "code": str(code)}
        if sign is not None:
            _require(sign=sign, text=text)
            params["sign"] = sign
            params["text"] = text
        return self.dispatch("telegram/send", params)

    def telegram_status(self, telegram_id: int) -> Dict[str, Any]:
        return self.dispatch("telegram/status", {"id": str(telegram_id)})
