"""Player construction and per-round resource reconciliation.

Indicators and lifelines are tagged with the round they were issued for. A
player whose tags lag behind the lobby round gets a fresh budget the next time
any operation touches them; round transitions hand out the same fresh budget
explicitly, through the same builder.
"""

from __future__ import annotations

from .errors import ConflictError, InvalidInputError
from .models import EXCLUSIVE_ROLES, ROLES, Indicators, Lifelines, Lobby, Player


def new_player(player_id: str, name: str, role: str | None = None, current_round: int = 1) -> Player:
    player = Player(id=player_id, name=name, role=role)
    reset_round_resources(player, current_round)
    return player


def upgrade_player(data: dict, current_round: int) -> Player:
    """Turn an external or old persisted player record into a complete, round-current Player."""
    player = Player.from_dict(data, current_round)
    ensure_round_resources(player, current_round)
    return player


def reset_round_resources(player: Player, current_round: int) -> None:
    player.indicators = Indicators(round=current_round)
    player.lifelines = Lifelines(round=current_round)


def ensure_round_resources(player: Player, current_round: int) -> Player:
    if player.indicators.round != current_round or player.lifelines.round != current_round:
        reset_round_resources(player, current_round)
    return player


def assert_role_available(lobby: Lobby, role: str | None, player_id: str | None = None) -> None:
    if role is None:
        return
    if role not in ROLES:
        raise InvalidInputError(f"Unsupported role: {role}")
    if role in EXCLUSIVE_ROLES and any(p.role == role and p.id != player_id for p in lobby.players):
        raise ConflictError(f"The {role} role is already taken.")
