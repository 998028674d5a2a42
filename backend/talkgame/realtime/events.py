from __future__ import annotations

from flask import current_app


LOBBY_SUBSCRIBE = "lobby:subscribe"
LOBBY_UNSUBSCRIBE = "lobby:unsubscribe"
LOBBY_STATE = "lobby:state"
LOBBY_UPDATED = "lobby:updated"
LOBBY_EXPIRED = "lobby:expired"
LOBBY_ERROR = "lobby:error"


def notify_lobby_updated(code: str) -> None:
    # Only the code goes out; clients refetch their own redacted view.
    socketio = current_app.extensions.get("socketio")
    if socketio is None:
        return
    socketio.emit(LOBBY_UPDATED, {"code": code}, to=code)
