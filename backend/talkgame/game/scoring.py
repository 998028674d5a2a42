from __future__ import annotations

from collections.abc import Iterable

from .models import CONVERSATIONALIST, Lobby, Player, Score, WinnerSummary
from .players import ensure_round_resources


MIN_REPLIES_BONUS = 5
NEXT_REPLIES_BONUS = 2

WINNER_REASON = "Winner selected from verified points, penalties, and reply efficiency."


def efficiency_bonuses(players: Iterable[Player]) -> dict[str, int]:
    """Reward the Conversationalists with the fewest replies.

    The minimum reply count earns +5 and exactly one more than the minimum
    earns +2. Players without the Conversationalist role are not ranked.
    """
    conversationalists = [p for p in players if p.role == CONVERSATIONALIST]
    if not conversationalists:
        return {}

    min_replies = min(p.score.replies for p in conversationalists)
    bonuses = {}
    for player in conversationalists:
        if player.score.replies == min_replies:
            bonuses[player.id] = MIN_REPLIES_BONUS
        elif player.score.replies == min_replies + 1:
            bonuses[player.id] = NEXT_REPLIES_BONUS
        else:
            bonuses[player.id] = 0
    return bonuses


def score_total(score: Score) -> int:
    return (
        score.verified_points * 10
        + score.direct_answers * 2
        - score.red_flags_received * 8
        - score.yellow_flags_received * 3
        - score.replies
        - score.lifelines_used
        + score.efficiency_bonus
    )


def recompute_scores(lobby: Lobby) -> None:
    bonuses = efficiency_bonuses(lobby.players)
    for player in lobby.players:
        ensure_round_resources(player, lobby.game_state.current_round)
        player.score.efficiency_bonus = bonuses.get(player.id, 0)
        player.score.total = score_total(player.score)


def rank_players(players: Iterable[Player]) -> list[Player]:
    return sorted(
        players,
        key=lambda p: (-p.score.total, p.score.red_flags_received, p.score.replies, p.name.casefold(), p.name),
    )


def determine_winner(lobby: Lobby) -> WinnerSummary | None:
    candidates = [p for p in lobby.players if p.role == CONVERSATIONALIST] or list(lobby.players)
    if not candidates:
        return None

    winner = rank_players(candidates)[0]
    return WinnerSummary(
        player_id=winner.id,
        player_name=winner.name,
        score=winner.score.total,
        reason=WINNER_REASON,
    )
