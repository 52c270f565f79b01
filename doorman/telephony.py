"""Outbound Twilio REST client: send an SMS, redirect a live call.

Only the two calls the gate needs are implemented, straight against the
2010-04-01 REST API with HTTP basic auth and form-encoded bodies:

  POST /Accounts/{sid}/Messages.json          From, To, Body
  POST /Accounts/{sid}/Calls/{call_sid}.json  Url, Method

Callers treat both as fire-and-forget; failures surface as TelephonyError
so the web layer can log them without touching gate state.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

log = logging.getLogger("doorman.telephony")


class TelephonyError(Exception):
    """Twilio could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TwilioClient:
    """Thin async wrapper around the Twilio REST API.

    Usage::

        client = TwilioClient(account_sid, auth_token)
        await client.send_message(from_="+1555...", to="+1555...", body="hi")
        await client.redirect_call("CA123", "https://gate.example.com/open")
        await client.aclose()
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._account_sid = account_sid
        self._api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(
            auth=(account_sid, auth_token),
            timeout=timeout,
            transport=transport,
        )

    def message_url(self) -> str:
        return f"{self._api_base}/Accounts/{self._account_sid}/Messages.json"

    def call_url(self, call_sid: str) -> str:
        return f"{self._api_base}/Accounts/{self._account_sid}/Calls/{call_sid}.json"

    async def _post_form(self, url: str, data: dict[str, str]) -> dict[str, Any]:
        try:
            resp = await self._client.post(url, data=data)
        except httpx.HTTPError as exc:
            raise TelephonyError(f"Twilio request to {url} failed: {exc}") from exc

        log.info("twilio returned %s - %s", resp.status_code, resp.text[:200])
        if resp.is_error:
            raise TelephonyError(
                f"Twilio returned status {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError:
            return {}

    async def send_message(self, from_: str, to: str, body: str) -> dict[str, Any]:
        """Send an SMS.  Twilio answers 201 Created with the message resource."""
        return await self._post_form(
            self.message_url(),
            {"From": from_, "To": to, "Body": body},
        )

    async def redirect_call(
        self, call_sid: str, url: str, method: str = "GET"
    ) -> dict[str, Any]:
        """Point an in-progress call at new TwiML."""
        if not call_sid:
            raise TelephonyError("No call to redirect")
        return await self._post_form(
            self.call_url(call_sid),
            {"Url": url, "Method": method},
        )

    async def aclose(self) -> None:
        await self._client.aclose()
