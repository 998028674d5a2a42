from __future__ import annotations

import logging

from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.privacy import lobby_view
from ..game.store import LobbyStore
from .events import LOBBY_ERROR, LOBBY_EXPIRED, LOBBY_STATE, LOBBY_SUBSCRIBE, LOBBY_UNSUBSCRIBE


logger = logging.getLogger(__name__)


def register_socketio_handlers(
    socketio: SocketIO,
    store: LobbyStore,
    sweep_interval_sec: int = 60,
    enable_sweeper: bool = True,
) -> None:
    sweeper_state = {"running": False}

    def _ensure_sweeper() -> None:
        if not enable_sweeper or sweeper_state["running"]:
            return
        sweeper_state["running"] = True

        def _runner() -> None:
            while True:
                socketio.sleep(sweep_interval_sec)
                try:
                    expired = store.cleanup_expired()
                except Exception:
                    logger.exception("lobby.sweep.failed")
                    continue
                for code in expired:
                    socketio.emit(LOBBY_EXPIRED, {"code": code}, to=code)

        socketio.start_background_task(_runner)

    @socketio.on(LOBBY_SUBSCRIBE)
    def lobby_subscribe(data):
        payload = data or {}
        code = str(payload.get("code", "")).strip().upper()
        player_id = str(payload.get("playerId", "") or "").strip() or None

        if not code:
            emit(LOBBY_ERROR, {"error": "invalid_payload"})
            return {"ok": False, "error": "invalid_payload"}

        lobby = store.get_lobby(code)
        if lobby is None:
            emit(LOBBY_ERROR, {"error": "lobby_not_found"})
            return {"ok": False, "error": "lobby_not_found"}

        join_room(code)
        emit(LOBBY_STATE, lobby_view(lobby, player_id))
        _ensure_sweeper()
        return {"ok": True}

    @socketio.on(LOBBY_UNSUBSCRIBE)
    def lobby_unsubscribe(data):
        payload = data or {}
        code = str(payload.get("code", "")).strip().upper()
        if not code:
            return {"ok": False, "error": "invalid_payload"}

        leave_room(code)
        return {"ok": True}
