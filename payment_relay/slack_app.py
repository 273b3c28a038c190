"""
FastAPI application receiving Slack deliveries.

Slack gives an app three seconds to answer a delivery before treating it as
failed and retrying.  Every endpoint here therefore verifies the request
signature, schedules the real work as a background task and answers
straight away; the :class:`~payment_relay.dispatcher.Dispatcher` does the
rest after the response has gone out.

To run locally, set ``SLACK_SIGNING_SECRET``, ``SLACK_BOT_TOKEN``,
``SLACK_APPROVAL_CHANNEL`` and ``DATABASE_URL`` and start the server with
``payment-relay serve``.
"""

from __future__ import annotations

import datetime as _dt
import hmac
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Mapping, Optional, Union

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from slack_sdk.signature import SignatureVerifier

from . import __version__
from .alerts import OpsAlerter
from .channels import ChannelDirectory
from .config import Settings
from .database import init_db, make_engine, make_session_factory
from .dispatcher import Dispatcher
from .slack_client import SlackPlatform
from .store import RequestStore
from .vendors import VendorResolver

logger = logging.getLogger(__name__)

SERVICE_NAME = "payment-relay"


def verify_slack_request(headers: Mapping[str, str], body: Union[bytes, str], signing_secret: str) -> bool:
    """Check Slack's ``v0`` request signature and the five minute replay window."""
    return SignatureVerifier(signing_secret).is_valid_request(body, dict(headers))


def build_dispatcher(settings: Settings) -> Dispatcher:
    settings.require("database_url", "slack_bot_token", "slack_approval_channel")
    engine = make_engine(settings.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)
    directory = ChannelDirectory.from_database(session_factory)
    directory.refresh()
    return Dispatcher(
        directory=directory,
        resolver=VendorResolver(session_factory),
        store=RequestStore(session_factory),
        platform=SlackPlatform(settings.slack_bot_token),
        approval_channel=settings.slack_approval_channel,
        alerter=OpsAlerter(settings.ops_alert_webhook_url),
        min_amount=settings.min_payment_amount,
    )


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.dispatcher is None:
            app.state.dispatcher = build_dispatcher(settings)
        logger.info("%s %s ready", SERVICE_NAME, __version__)
        yield

    app = FastAPI(title="Payment Relay", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    async def _verified_body(request: Request) -> bytes:
        signing_secret = settings.slack_signing_secret
        if not signing_secret:
            raise HTTPException(status_code=500, detail="SLACK_SIGNING_SECRET not set")
        body = await request.body()
        if not verify_slack_request(request.headers, body, signing_secret):
            raise HTTPException(status_code=401, detail="Invalid Slack signature")
        return body

    def _dispatcher(request: Request) -> Dispatcher:
        current = request.app.state.dispatcher
        if current is None:
            raise HTTPException(status_code=503, detail="Dispatcher not initialised")
        return current

    @app.get("/")
    async def root() -> Dict[str, Any]:
        return {"name": SERVICE_NAME, "status": "running", "version": __version__}

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": _dt.datetime.now(_dt.timezone.utc).isoformat(),
            "version": __version__,
        }

    @app.post("/slack/events")
    async def slack_events(request: Request, background_tasks: BackgroundTasks) -> JSONResponse:
        body = await _verified_body(request)
        try:
            data: Dict[str, Any] = json.loads(body)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid payload")
        if data.get("type") == "url_verification":
            return JSONResponse({"challenge": data.get("challenge")})
        event = data.get("event") or {}
        if data.get("type") == "event_callback" and event.get("type") == "message":
            background_tasks.add_task(_dispatcher(request).handle_message, event)
        return JSONResponse({"ok": True})

    @app.post("/slack/commands")
    async def slack_commands(request: Request, background_tasks: BackgroundTasks) -> Response:
        await _verified_body(request)
        form = await request.form()
        command = {key: value for key, value in form.items() if isinstance(value, str)}
        logger.info("Slash command %s from %s", command.get("command"), command.get("channel_id"))
        background_tasks.add_task(_dispatcher(request).handle_command, command)
        return Response(status_code=200)

    @app.post("/slack/actions")
    async def slack_actions(request: Request, background_tasks: BackgroundTasks) -> Response:
        body = await _verified_body(request)
        try:
            form = await request.form()
            payload: Dict[str, Any] = json.loads(form.get("payload") or body.decode())
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid payload")
        if not payload.get("actions"):
            return JSONResponse({"error": "No actions"}, status_code=400)
        background_tasks.add_task(_dispatcher(request).handle_action, payload)
        return Response(status_code=200)

    @app.post("/admin/channels/refresh")
    def refresh_channels(request: Request) -> Dict[str, Any]:
        """Reload the store-channel map without restarting the server."""
        if not settings.admin_token:
            raise HTTPException(status_code=404, detail="Not Found")
        supplied = request.headers.get("Authorization", "")
        if not hmac.compare_digest(supplied, f"Bearer {settings.admin_token}"):
            raise HTTPException(status_code=401, detail="Invalid admin token")
        current = _dispatcher(request)
        refreshed = current.refresh_channels()
        logger.info("Channel refresh requested: refreshed=%s version=%s", refreshed, current.directory.version)
        return {"refreshed": refreshed, "version": current.directory.version}

    return app


app = create_app()
