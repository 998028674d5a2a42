from __future__ import annotations

from flask import Blueprint, jsonify

from ..game import service
from ..game.errors import LobbyNotFoundError
from ..game.models import ROLES, GameSettings, Viewer
from ..game.players import upgrade_player
from ..game.privacy import lobby_view
from ..utils.ids import generate_lobby_code
from .common import (
    PayloadError,
    apply_update,
    get_store,
    idempotent,
    json_body,
    lobby_code,
    lobby_response,
    require_bool,
    require_choice,
    require_dict,
    require_int,
    require_str,
    requester_id,
)

bp = Blueprint("lobbies", __name__)

NAME_MAX_LEN = 120


def _settings_payload(data: dict) -> GameSettings:
    settings = require_dict(data, "settings")
    return GameSettings(
        topic=require_str(settings, "topic", 200),
        total_rounds=require_int(settings, "totalRounds", 1, 10),
        turn_duration=require_int(settings, "turnDuration", 15, 300),
        is_public=require_bool(settings, "isPublic"),
    )


def _player_payload(data: dict, key: str) -> dict:
    """Keep only the fields a client may set on a player it introduces."""
    player = require_dict(data, key)
    record = {
        "id": require_str(player, "id", NAME_MAX_LEN),
        "name": require_str(player, "name", NAME_MAX_LEN),
        "role": require_choice(player, "role", ROLES, nullable=True),
    }

    violations = player.get("violations")
    if violations is not None:
        if not isinstance(violations, dict):
            raise PayloadError({f"{key}.violations": "Expected an object."})
        counts = {}
        for flag in ("red", "yellow", "green"):
            value = violations.get(flag, 0)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise PayloadError({f"{key}.violations.{flag}": "Expected a non-negative integer."})
            counts[flag] = value
        record["violations"] = counts
    return record


@bp.get("/lobbies/public")
def list_public_lobbies():
    viewer = requester_id()
    return jsonify([lobby_view(lobby, viewer) for lobby in get_store().list_public_lobbies()])


@bp.get("/lobbies/<code>")
def get_lobby(code: str):
    code = lobby_code(code)
    lobby = get_store().get_lobby(code)
    if lobby is None:
        raise LobbyNotFoundError(code)
    return lobby_response(lobby)


@bp.post("/lobbies")
@idempotent
def create_lobby():
    data = json_body()
    settings = _settings_payload(data)
    host = upgrade_player(_player_payload(data, "host"), 1)

    store = get_store()
    lobby = service.create_lobby(generate_lobby_code(store.lobby_codes()), settings, host)
    return lobby_response(store.set_lobby(lobby), 201)


@bp.post("/lobbies/<code>/join-player")
def join_player(code: str):
    record = _player_payload(json_body(), "player")

    def mutate(lobby):
        service.join_player(lobby, upgrade_player(record, lobby.game_state.current_round))

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/join-viewer")
def join_viewer(code: str):
    viewer = require_dict(json_body(), "viewer")
    joined = Viewer(id=require_str(viewer, "id", NAME_MAX_LEN), name=require_str(viewer, "name", NAME_MAX_LEN))
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.join_viewer(lobby, joined)))


@bp.post("/lobbies/<code>/start")
def start_game(code: str):
    return lobby_response(apply_update(lobby_code(code), service.start_game))


@bp.post("/lobbies/<code>/role")
def set_role(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", NAME_MAX_LEN)
    role = require_choice(data, "role", ROLES, nullable=True)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.set_role(lobby, player_id, role)))


@bp.post("/lobbies/<code>/bot")
def add_bot(code: str):
    role = require_choice(json_body(), "role", ROLES)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.add_bot(lobby, role)))


@bp.post("/lobbies/<code>/remove-player")
def remove_player(code: str):
    player_id = require_str(json_body(), "playerId", NAME_MAX_LEN)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.remove_player(lobby, player_id)))
