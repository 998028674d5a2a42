"""Per-requester views of a lobby.

Redaction runs on the serialized copy only; the canonical Lobby is never
touched, so hidden data stays intact for the players entitled to it.
"""

from __future__ import annotations

from .models import REFEREE, Lobby


HIDDEN_QUESTION_TEXT = "[Hidden until asked]"
PENDING_DRAFT_TEXT = "[Pending referee review]"


def lobby_view(lobby: Lobby, requester_id: str | None = None) -> dict:
    payload = lobby.to_dict()
    requester = lobby.find_player(requester_id) if requester_id else None
    if requester is not None and requester.role == REFEREE:
        return payload

    for player in payload["players"]:
        if requester_id and player["id"] == requester_id:
            continue
        player["questionBank"] = [
            q if q["revealed"] else {**q, "text": HIDDEN_QUESTION_TEXT}
            for q in player["questionBank"]
        ]

    state = payload["gameState"]
    state["audioDrafts"] = [
        draft
        if draft["status"] != "pending" or (requester_id and draft["playerId"] == requester_id)
        else {**draft, "transcript": PENDING_DRAFT_TEXT, "audioPayload": None}
        for draft in state["audioDrafts"]
    ]
    return payload
