"""Command-line SMS sender."""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional

import typer

from config.settings import settings
from messaging.client import SmsAeroClient
from messaging.errors import SmsAeroError
from ops.structured_logger import setup_logging

log = logging.getLogger("smsaero.cli")

app = typer.Typer(help="Send an SMS through the SMS Aero API", add_completion=False)


@app.command()
def send(
    email: str = typer.Option(..., envvar="SMSAERO_EMAIL", help="Email registered in SmsAero"),
    api_key: str = typer.Option(..., "--api-key", "--api_key", envvar="SMSAERO_API_KEY", help="API key from the SmsAero dashboard"),
    phone: str = typer.Option(..., envvar="SMSAERO_PHONE", help="Recipient number, international format without +"),
    message: str = typer.Option(..., envvar="SMSAERO_MESSAGE", help="Message text, 2-640 chars"),
    sign: Optional[str] = typer.Option(None, envvar="SMSAERO_SIGN", help="Sender signature (default: SMS Aero)"),
    debug: bool = typer.Option(False, "--debug", help="Test mode: uses sms/testsend, nothing is delivered or charged"),
) -> None:
    """Send one SMS and print the API response as JSON."""

    # stdout carries only the JSON result
    setup_logging("DEBUG" if debug else settings.LOG_LEVEL, stream=sys.stderr)
    try:
        with SmsAeroClient(email, api_key) as client:
            if debug:
                client.enable_test_mode()
            result = client.send_sms(phone, message, sign or settings.SMSAERO_DEFAULT_SIGN)
    except SmsAeroError as e:
        log.error(
            "cli_send_failed",
            extra={"extra": {"event": "cli_send_failed", "error_type": type(e).__name__, "message": str(e)}},
            exc_info=debug,
        )
        typer.echo(f"SMS send error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(result, ensure_ascii=False))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
