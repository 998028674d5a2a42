from __future__ import annotations

from flask import Blueprint

from ..game import service
from ..game.models import DRAFT_REVIEW_STATUSES, EVENT_TYPES, FLAG_TYPES, LIFELINE_TYPES, ViolationRecord
from .common import (
    PayloadError,
    apply_update,
    idempotent,
    json_body,
    lobby_code,
    lobby_response,
    optional_str,
    require_bool,
    require_choice,
    require_dict,
    require_int,
    require_str,
    require_str_list,
)

bp = Blueprint("gameplay", __name__)

ID_MAX_LEN = 120
TEXT_MAX_LEN = 4000
AUDIO_MAX_LEN = 2_000_000

# metadata key -> max length
EVENT_METADATA_FIELDS = {
    "shortcutKey": 100,
    "highlightId": 100,
    "audioDraftId": 100,
    "selectedSource": 400,
}


def _event_metadata(event: dict) -> dict | None:
    metadata = event.get("metadata")
    if metadata is None:
        return None
    if not isinstance(metadata, dict):
        raise PayloadError({"event.metadata": "Expected an object."})

    cleaned = {}
    if metadata.get("lifelineType") is not None:
        cleaned["lifelineType"] = require_choice(metadata, "lifelineType", LIFELINE_TYPES)
    for key, max_len in EVENT_METADATA_FIELDS.items():
        if metadata.get(key) is not None:
            cleaned[key] = require_str(metadata, key, max_len)
    return cleaned


@bp.post("/lobbies/<code>/timeline")
@idempotent
def add_timeline_event(code: str):
    event = require_dict(json_body(), "event")
    event_type = require_choice(event, "type", EVENT_TYPES)
    text = require_str(event, "text", TEXT_MAX_LEN)
    player_id = require_str(event, "playerId", ID_MAX_LEN)

    violation = None
    if event.get("violation") is not None:
        raw = require_dict(event, "violation")
        violation = ViolationRecord(
            type=require_choice(raw, "type", FLAG_TYPES),
            target_player_id=require_str(raw, "targetPlayerId", ID_MAX_LEN),
        )

    votes = None
    if event.get("factCheckVotes") is not None:
        votes = event["factCheckVotes"]
        if not isinstance(votes, list) or not all(isinstance(v, str) for v in votes):
            raise PayloadError({"factCheckVotes": "Expected a list of strings."})

    metadata = _event_metadata(event)

    def mutate(lobby):
        service.add_timeline_event(lobby, event_type, text, player_id, violation, metadata, votes)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/violation")
def assign_violation(code: str):
    violation = require_dict(json_body(), "violation")
    target_id = require_str(violation, "targetPlayerId", ID_MAX_LEN)
    flag_type = require_choice(violation, "type", FLAG_TYPES)
    reason = require_str(violation, "reason", 800)
    assigner_id = require_str(violation, "assignerId", ID_MAX_LEN)

    def mutate(lobby):
        service.assign_violation(lobby, target_id, flag_type, reason, assigner_id)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/message")
@idempotent
def send_message(code: str):
    message = require_dict(json_body(), "message")
    sender_id = require_str(message, "senderId", ID_MAX_LEN)
    text = require_str(message, "text", 2000)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.send_message(lobby, sender_id, text)))


@bp.post("/lobbies/<code>/turn/start")
def start_turn(code: str):
    speaker_id = require_str(json_body(), "speakerId", ID_MAX_LEN)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.start_turn(lobby, speaker_id)))


@bp.post("/lobbies/<code>/turn/end")
def end_turn(code: str):
    return lobby_response(apply_update(lobby_code(code), service.end_turn))


@bp.post("/lobbies/<code>/turn/pause")
def pause_turn(code: str):
    pause = require_bool(json_body(), "pause")
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.pause_turn(lobby, pause)))


@bp.post("/lobbies/<code>/vote")
@idempotent
def cast_vote(code: str):
    data = json_body()
    event_id = require_str(data, "eventId", ID_MAX_LEN)
    viewer_id = require_str(data, "viewerId", ID_MAX_LEN)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.cast_vote(lobby, event_id, viewer_id)))


@bp.post("/lobbies/<code>/trusted-sources")
def set_trusted_sources(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    sources = require_str_list(data, "sources", 3, 12, 400)

    def mutate(lobby):
        service.set_trusted_sources(lobby, player_id, sources)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/question-bank")
def update_question_bank(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    questions = require_str_list(data, "questions", 1, 10, 400)

    def mutate(lobby):
        service.update_question_bank(lobby, player_id, questions)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/question/reveal")
def reveal_question(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    question_id = require_str(data, "questionId", ID_MAX_LEN)

    def mutate(lobby):
        service.reveal_question(lobby, player_id, question_id)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/lifeline")
def use_lifeline(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    lifeline_type = require_choice(data, "type", LIFELINE_TYPES)
    selected_source = optional_str(data, "selectedSource", 400) or None
    details = optional_str(data, "details", 1000)

    def mutate(lobby):
        service.use_lifeline(lobby, player_id, lifeline_type, selected_source, details)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/indicator/green")
def use_green_indicator(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    reason = optional_str(data, "reason", 1000)

    def mutate(lobby):
        service.use_green_indicator(lobby, player_id, reason)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/moderation-note")
def add_moderation_note(code: str):
    data = json_body()
    referee_id = require_str(data, "refereeId", ID_MAX_LEN)
    text = require_str(data, "text", 1000)
    shortcut_key = optional_str(data, "shortcutKey", 120) or None

    def mutate(lobby):
        service.add_moderation_note(lobby, referee_id, text, shortcut_key)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/timeline/highlight")
def highlight_timeline_event(code: str):
    data = json_body()
    time_keeper_id = require_str(data, "timeKeeperId", ID_MAX_LEN)
    event_id = require_str(data, "eventId", ID_MAX_LEN)
    label = require_str(data, "label", 200)

    def mutate(lobby):
        service.highlight_timeline_event(lobby, time_keeper_id, event_id, label)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/timeline/section-summary")
def update_timeline_section_summary(code: str):
    data = json_body()
    time_keeper_id = require_str(data, "timeKeeperId", ID_MAX_LEN)
    section_id = require_str(data, "sectionId", ID_MAX_LEN)
    summary = require_str(data, "summary", 800, min_len=0)

    def mutate(lobby):
        service.update_timeline_section_summary(lobby, time_keeper_id, section_id, summary)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/score/award")
def award_score(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    points = require_int(data, "points", 1, 20)
    reason = require_str(data, "reason", 600)
    assigner_id = require_str(data, "assignerId", ID_MAX_LEN)

    def mutate(lobby):
        service.award_score(lobby, player_id, points, reason, assigner_id)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/round/next")
def advance_round(code: str):
    time_keeper_id = require_str(json_body(), "timeKeeperId", ID_MAX_LEN)
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.advance_round(lobby, time_keeper_id)))


@bp.post("/lobbies/<code>/game/end")
def end_game(code: str):
    reason = optional_str(json_body(), "reason", 600) or None
    return lobby_response(apply_update(lobby_code(code), lambda lobby: service.end_game(lobby, reason)))


@bp.post("/lobbies/<code>/audio-draft")
def submit_audio_draft(code: str):
    data = json_body()
    player_id = require_str(data, "playerId", ID_MAX_LEN)
    transcript = require_str(data, "transcript", TEXT_MAX_LEN)
    audio_payload = optional_str(data, "audioPayload", AUDIO_MAX_LEN) or None

    def mutate(lobby):
        service.submit_audio_draft(lobby, player_id, transcript, audio_payload)

    return lobby_response(apply_update(lobby_code(code), mutate))


@bp.post("/lobbies/<code>/audio-draft/review")
def review_audio_draft(code: str):
    data = json_body()
    reviewer_id = require_str(data, "reviewerId", ID_MAX_LEN)
    draft_id = require_str(data, "draftId", ID_MAX_LEN)
    status = require_choice(data, "status", DRAFT_REVIEW_STATUSES)
    review_note = optional_str(data, "reviewNote", 1000)

    def mutate(lobby):
        service.review_audio_draft(lobby, reviewer_id, draft_id, status, review_note)

    return lobby_response(apply_update(lobby_code(code), mutate))
