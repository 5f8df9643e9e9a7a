"""
Session manager: one websocket per user_id, and sending payloads to a given user.
"""

import logging
from typing import Any

from fastapi import WebSocket

from src.core.models import Identity

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, user_id: Identity):
        self.ws = ws
        self.user_id = user_id


class SessionManager:
    def __init__(self):
        self._by_user: dict[Identity, Connection] = {}

    async def connect(self, ws: WebSocket, user_id: Identity) -> None:
        """A new connection replaces an older one of the same user."""
        old = self._by_user.pop(user_id, None)
        if old is not None:
            try:
                await old.ws.close(code=4000)
            except RuntimeError as e:
                logger.debug("closing replaced session of %s: %s", user_id, e)
        self._by_user[user_id] = Connection(ws, user_id)

    def disconnect(self, user_id: Identity, ws: WebSocket | None = None) -> None:
        conn = self._by_user.get(user_id)
        if conn is None or (ws is not None and conn.ws is not ws):
            return
        del self._by_user[user_id]

    def is_connected(self, user_id: Identity) -> bool:
        return user_id in self._by_user

    async def send_to_user(self, user_id: Identity, payload: dict[str, Any]) -> bool:
        conn = self._by_user.get(user_id)
        if not conn:
            return False
        try:
            await conn.ws.send_json(payload)
            return True
        except Exception as e:
            logger.warning("send_to_user %s: %s", user_id, e)
            return False
