"""
Session channel over WebSocket: joining/leaving matches and relaying match data.
Match replies and broadcasts are sent by the match runners themselves.
"""

import logging

from fastapi import APIRouter, Query, WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from src.api.models import ClientEnvelope
from src.core.exceptions import InvalidRequestError
from src.host.match_registry import MatchRegistry
from src.host.sessions import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


async def handle_ws_message(
    raw: str, user_id: str, registry: MatchRegistry, sessions: SessionManager
) -> None:
    """Handles one message of an already connected client. Malformed messages are dropped."""
    try:
        envelope = ClientEnvelope.model_validate_json(raw)
    except (ValidationError, InvalidRequestError) as e:
        logger.warning("WS: invalid message from %s: %s", user_id, e)
        return

    runner = registry.get(envelope.match_id)
    if runner is None:
        logger.info("WS: %s referenced unknown match %s", user_id, envelope.match_id)
        if envelope.type == "match_join":
            await sessions.send_to_user(
                user_id,
                {"type": "match_join_rejected", "match_id": envelope.match_id, "reason": "Match not found"},
            )
        return

    if envelope.type == "match_join":
        runner.request_join(user_id)
    elif envelope.type == "match_leave":
        runner.leave(user_id)
    elif envelope.op_code is not None:
        runner.send_data(user_id, envelope.op_code, envelope.encoded_data())


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket, user_id: str = Query(..., min_length=1)) -> None:
    registry: MatchRegistry = ws.app.state.registry
    sessions: SessionManager = ws.app.state.sessions

    await ws.accept()
    await sessions.connect(ws, user_id)
    logger.info("WS: connected user_id=%s", user_id)
    try:
        while True:
            raw = await ws.receive_text()
            await handle_ws_message(raw, user_id, registry, sessions)
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s user_id=%s", e.code, user_id)
    finally:
        # No resume: a dropped session leaves every match it was in
        for runner in registry.matches_of(user_id):
            runner.leave(user_id)
        sessions.disconnect(user_id, ws)
        logger.info("WS: disconnected user_id=%s", user_id)
