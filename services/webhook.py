"""Webhook entry point: one inbound Webex event -> at most one reply path."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from services.commands import CommandExecutor, parse_command
from services.dispatch import SENT_FILE, dispatch
from services.messages import fetch_command_text, is_self_message
from services.sheets import GoogleSheetsStore
from services.webex import WebexClient
from sheet_bot.config import Settings, get_settings
from sheet_bot.logging import event_context, log_with_context

logger = logging.getLogger(__name__)

FAILURE_REPLY = "⚠️ Something went wrong while processing the command. Please try again later."


class WebhookData(BaseModel):
    id: str = ""
    roomId: str = ""
    personId: str = ""


class WebhookEvent(BaseModel):
    data: WebhookData


@dataclass
class EventResult:
    status_code: int
    body: str


async def handle_event(
    data: WebhookData,
    *,
    settings: Settings,
    transport,
    store_factory: Callable[[], Any],
) -> EventResult:
    """Process one webhook event. Only remote failures produce a non-200 result."""
    if is_self_message(data.personId, settings.bot_id):
        return EventResult(200, "Ignore self-message")

    with event_context(data.id, data.roomId):
        try:
            text = await asyncio.to_thread(fetch_command_text, transport, data.id, settings.bot_name)
            req = parse_command(text)
            log_with_context(
                logger, logging.INFO, "Dispatching command", command=req.name, args=req.args
            )

            store = store_factory()
            response = await CommandExecutor(store, settings).execute(req)
            sent = await dispatch(transport, data.roomId, response.text, settings=settings, rows=response.rows)
            return EventResult(200, "sent file" if sent == SENT_FILE else "OK")
        except Exception:
            logger.exception("Webhook processing failed for message %s", data.id)
            if data.roomId:
                try:
                    await asyncio.to_thread(transport.post_text, data.roomId, FAILURE_REPLY)
                except Exception:
                    logger.exception("Could not deliver the failure reply to room %s", data.roomId)
            return EventResult(500, "Error")


def create_app(
    settings: Optional[Settings] = None,
    transport=None,
    store_factory: Optional[Callable[[], Any]] = None,
) -> FastAPI:
    settings = settings or get_settings()
    transport = transport or WebexClient.from_settings(settings)
    if store_factory is None:
        # httplib2-backed API clients are not thread-safe; build one per event.
        def store_factory() -> GoogleSheetsStore:
            return GoogleSheetsStore.from_settings(settings)

    app = FastAPI(title="Sheet Bot", version="1.0.0")

    @app.post("/webex", response_class=PlainTextResponse)
    async def webex_webhook(request: Request) -> PlainTextResponse:
        try:
            payload = await request.json()
            event = WebhookEvent.model_validate(payload)
        except Exception as exc:
            logger.warning("Rejected webhook payload: %s", exc)
            raise HTTPException(status_code=400, detail="Malformed webhook payload")
        result = await handle_event(
            event.data, settings=settings, transport=transport, store_factory=store_factory
        )
        return PlainTextResponse(result.body, status_code=result.status_code)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        missing = list(settings.missing())
        return {"ok": not missing, "missing": missing}

    return app
