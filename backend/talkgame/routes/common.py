from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..game.errors import GameError
from ..game.models import Lobby
from ..game.privacy import lobby_view
from ..game.store import LobbyStore
from ..idempotency import IdempotencyStore
from ..realtime.events import notify_lobby_updated


logger = logging.getLogger(__name__)

STORE_KEY = "talkgame.store"
IDEMPOTENCY_KEY = "talkgame.idempotency"
FACT_CHECKER_KEY = "talkgame.fact_checker"

T = TypeVar("T")

_MISSING = object()


class PayloadError(Exception):
    def __init__(self, details: dict[str, str]):
        self.details = details
        super().__init__("Invalid request payload.")


def get_store() -> LobbyStore:
    return current_app.extensions[STORE_KEY]


def get_idempotency_store() -> IdempotencyStore:
    return current_app.extensions[IDEMPOTENCY_KEY]


def requester_id() -> str | None:
    return g.get("requester_id")


def lobby_code(raw: str) -> str:
    return raw.strip().upper()


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise PayloadError({"body": "Expected a JSON object."})
    return data


def require_dict(data: dict, key: str) -> dict:
    value = data.get(key)
    if not isinstance(value, dict):
        raise PayloadError({key: "Expected an object."})
    return value


def require_str(data: dict, key: str, max_len: int, min_len: int = 1) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not (min_len <= len(value) <= max_len):
        raise PayloadError({key: f"Expected a string of {min_len}-{max_len} characters."})
    return value


def optional_str(data: dict, key: str, max_len: int) -> str | None:
    if data.get(key) is None:
        return None
    return require_str(data, key, max_len, min_len=0)


def require_int(data: dict, key: str, low: int, high: int) -> int:
    value = data.get(key)
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or not (low <= value <= high):
        raise PayloadError({key: f"Expected an integer between {low} and {high}."})
    return value


def require_bool(data: dict, key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise PayloadError({key: "Expected a boolean."})
    return value


def require_choice(data: dict, key: str, choices: tuple, nullable: bool = False) -> Any:
    value = data.get(key, _MISSING)
    if value is None and nullable:
        return None
    if value not in choices:
        raise PayloadError({key: f"Expected one of: {', '.join(choices)}."})
    return value


def require_str_list(data: dict, key: str, min_items: int, max_items: int, max_len: int) -> list[str]:
    value = data.get(key)
    if (
        not isinstance(value, list)
        or not (min_items <= len(value) <= max_items)
        or not all(isinstance(item, str) and 1 <= len(item) <= max_len for item in value)
    ):
        raise PayloadError({key: f"Expected {min_items}-{max_items} strings of at most {max_len} characters."})
    return value


def lobby_response(lobby: Lobby, status: int = 200):
    cache_key = g.get("idempotency_cache_key")
    if cache_key:
        get_idempotency_store().set(cache_key, status, copy.deepcopy(lobby))
    return jsonify(lobby_view(lobby, requester_id())), status


def apply_update(code: str, mutator: Callable[[Lobby], T]) -> Lobby:
    lobby, _ = get_store().update_lobby(code, mutator)
    notify_lobby_updated(code)
    return lobby


def idempotent(view):
    """Replay the stored response for a repeated ``X-Idempotency-Key``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        key = request.headers.get("X-Idempotency-Key", "").strip()
        if not key:
            return view(*args, **kwargs)

        cache_key = f"{request.method}:{request.path}:{key}"
        cached = get_idempotency_store().get(cache_key)
        if cached is not None:
            return jsonify(lobby_view(cached.body, requester_id())), cached.status

        g.idempotency_cache_key = cache_key
        return view(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PayloadError)
    def on_payload_error(exc: PayloadError):
        return jsonify({"error": "Invalid request payload.", "details": exc.details}), 400

    @app.errorhandler(GameError)
    def on_game_error(exc: GameError):
        logger.warning(
            "lobby.mutation.rejected",
            extra={"context": {"correlationId": g.get("correlation_id"), "kind": exc.kind, "error": exc.message}},
        )
        return jsonify({"error": exc.message, "kind": exc.kind}), exc.status_code

    @app.errorhandler(Exception)
    def on_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        logger.exception(
            "api.route.failed",
            extra={"context": {"correlationId": g.get("correlation_id"), "method": request.method, "path": request.path}},
        )
        return jsonify({"error": "Unexpected server error."}), 500
