"""FastAPI application: Twilio webhooks for the gate call box.

Endpoints:

  POST /door       Voice webhook: a visitor dialled the gate
  GET  /open       Redirect target: play the open tone, tell the owner
  GET  /callme     Redirect target: connect the visitor to the owner
  POST /sms        Messaging webhook: the owner's reply
  GET  /dummy      Keep-alive target
  GET  /health     Health check
  GET  /static/*   Audio played during calls

The call flow:
  1. A visitor calls; Twilio hits /door with Called and CallSid
  2. If the window is open we answer with the open tone right away
  3. Otherwise we text the owner and play ringback
  4. The owner replies "1" or "2"; /sms redirects the live call to
     /open or /callme
"""

from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

import asyncio
import contextlib
import logging
import time
from pathlib import Path
from typing import Awaitable, Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from doorman import twiml
from doorman.config import Settings, settings as default_settings
from doorman.controller import CallAction, GateController, redact_pii
from doorman.telephony import TelephonyError, TwilioClient

log = logging.getLogger("doorman.app")

_START_TIME = time.time()

PROMPT_TEXT = "{} - Someone is at the gate. 1 to open, 2 to talk to the person."
OPENED_TEXT = "Gate was opened at {}"


def create_app(
    settings: Optional[Settings] = None,
    controller: Optional[GateController] = None,
    client: Optional[TwilioClient] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The controller and Twilio client are built from settings unless given,
    which is how tests pin the clock and stub out Twilio.
    """
    settings = settings or default_settings
    controller = controller or GateController(
        tz=settings.tzinfo,
        date_format=settings.date_format,
    )
    client = client or TwilioClient(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        api_base=settings.twilio_api_base,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        keepalive = None
        if settings.keepalive_interval > 0 and settings.base_url:
            keepalive = asyncio.create_task(
                _keepalive(f"{settings.base_url}/dummy", settings.keepalive_interval)
            )
            log.info("Starting scheduler")
        try:
            yield
        finally:
            if keepalive is not None:
                keepalive.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await keepalive
            await client.aclose()

    app = FastAPI(
        title="Doorman",
        description="SMS-controlled gate call box",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.controller = controller
    app.state.twilio = client

    async def _open(request: Request) -> Response:
        """Let the caller in and tell the owner."""
        log.info("Opening Door")
        pending_called = controller.mark_opened()

        called = await _param(request, "Called") or pending_called
        await _notify(
            client.send_message(
                from_=called,
                to=settings.phone_number,
                body=OPENED_TEXT.format(controller.format(controller.now())),
            ),
            "open notification",
        )
        return _twiml_response(twiml.open_gate())

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    @app.api_route("/dummy", methods=["GET", "POST"])
    async def dummy() -> PlainTextResponse:
        return PlainTextResponse("nothing")

    # ── Voice webhooks ─────────────────────────────────────────

    @app.api_route("/door", methods=["GET", "POST"])
    async def door(request: Request) -> Response:
        """Twilio webhook for a call to the gate number."""
        call_sid = await _param(request, "CallSid")
        called = await _param(request, "Called")

        if controller.check_call(call_sid, called):
            return await _open(request)

        await _notify(
            client.send_message(
                from_=called,
                to=settings.phone_number,
                body=PROMPT_TEXT.format(controller.format(controller.now())),
            ),
            "gate prompt",
        )
        return _twiml_response(twiml.ringback())

    @app.api_route("/open", methods=["GET", "POST"])
    async def open_door(request: Request) -> Response:
        return await _open(request)

    @app.api_route("/callme", methods=["GET", "POST"])
    async def callme() -> Response:
        """Connect the visitor to the owner's phone."""
        log.info("Connecting caller to %s", redact_pii(settings.phone_number))
        return _twiml_response(twiml.dial(settings.phone_number))

    # ── Messaging webhook ──────────────────────────────────────

    @app.api_route("/sms", methods=["GET", "POST"])
    async def sms(request: Request) -> PlainTextResponse:
        """The owner's reply.  The response body is texted back to them."""
        body = await _param(request, "Body")
        result = controller.dispatch(body)

        if result.action is not CallAction.NONE:
            await _notify(
                client.redirect_call(
                    result.call_sid,
                    f"{settings.base_url}/{result.action.value}",
                ),
                f"redirect to /{result.action.value}",
            )

        return PlainTextResponse(result.reply or "")

    # ── Static audio ───────────────────────────────────────────

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    else:
        log.warning("Static directory %s not found, audio will not be served", static_dir)

    return app


# ── Helper functions ──────────────────────────────────────────────

async def _param(request: Request, name: str) -> str:
    """Look up a webhook field in the form body, then the query string."""
    if request.method == "POST":
        form = await request.form()
        value = form.get(name)
        if isinstance(value, str):
            return value
    return request.query_params.get(name, "")


async def _notify(call: Awaitable, what: str) -> None:
    """Await a Twilio request, logging failures instead of raising them."""
    try:
        await call
    except TelephonyError as e:
        log.error("Twilio %s failed: %s", what, e)


def _twiml_response(document: str) -> Response:
    return Response(content=document, media_type="application/xml")


async def _keepalive(url: str, interval: float) -> None:
    """Request *url* every *interval* seconds so the host keeps us awake."""
    async with httpx.AsyncClient(timeout=10) as client:
        while True:
            await asyncio.sleep(interval)
            try:
                await client.get(url)
            except httpx.HTTPError as e:
                log.warning("Keep-alive ping to %s failed: %s", url, e)


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    for warning in default_settings.validate_startup():
        log.warning(warning)

    log.info("Listening on %s...", default_settings.port)

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "doorman.app:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_config=log_config,
    )
