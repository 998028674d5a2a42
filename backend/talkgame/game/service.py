"""Lobby mutations.

Every operation takes the lobby it mutates as its first argument, validates
everything it needs before writing a single field, and raises a
``GameError`` subclass when the action is not allowed. The lobby store hands
these functions a detached copy, so a raised error never leaks a partial
update into the stored state.
"""

from __future__ import annotations

import logging

from ..utils.ids import create_entity_id
from . import timer
from .errors import (
    AuthorizationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    ResourceExhaustedError,
)
from .limits import (
    AUDIO_DRAFT_LIMIT,
    CHAT_MESSAGE_LIMIT,
    LEARNING_HINT_WINDOW,
    MAX_APPROVED_PHRASES,
    MAX_PLAYERS,
    MIN_TRUSTED_SOURCES,
    MODERATION_NOTE_LIMIT,
    TIMELINE_EVENT_LIMIT,
    TIMELINE_HIGHLIGHT_LIMIT,
    trim_to_limit,
)
from .models import (
    CONVERSATIONALIST,
    DRAFT_REVIEW_STATUSES,
    EVENT_TYPES,
    FLAG_TYPES,
    LIFELINE_TYPES,
    REFEREE,
    ROLES,
    SYSTEM_PLAYER_ID,
    TIME_KEEPER,
    AudioDraft,
    ChatMessage,
    GameSettings,
    GameState,
    Lobby,
    ModerationNote,
    Player,
    Question,
    TimelineEvent,
    TimelineHighlight,
    Viewer,
    ViolationRecord,
)
from .players import assert_role_available, ensure_round_resources, new_player, reset_round_resources
from .scoring import determine_winner, recompute_scores


logger = logging.getLogger(__name__)

LIFELINE_LABELS = {
    "AudienceOpinion": "Audience Opinion",
    "TrustedSourcing": "Trusted Sourcing",
    "RefsChoice": "Ref's Choice",
}


def _push_event(
    lobby: Lobby,
    event_type: str,
    text: str,
    player_id: str = SYSTEM_PLAYER_ID,
    violation: ViolationRecord | None = None,
    metadata: dict | None = None,
    fact_check_votes: list[str] | None = None,
) -> TimelineEvent:
    cleaned = {k: v for k, v in (metadata or {}).items() if v is not None}
    event = TimelineEvent(
        id=create_entity_id("event"),
        type=event_type,
        text=text,
        player_id=player_id,
        timestamp=timer.now_ms(),
        violation=violation,
        fact_check_votes=fact_check_votes,
        metadata=cleaned or None,
    )
    lobby.game_state.timeline.append(event)
    trim_to_limit(lobby.game_state.timeline, TIMELINE_EVENT_LIMIT)
    return event


def _require_player(lobby: Lobby, player_id: str, message: str = "Player not found.") -> Player:
    player = lobby.find_player(player_id)
    if player is None:
        raise NotFoundError(message)
    return ensure_round_resources(player, lobby.game_state.current_round)


def _require_role(lobby: Lobby, player_id: str, role: str) -> Player:
    player = lobby.find_player(player_id)
    if player is None or player.role != role:
        if role == CONVERSATIONALIST:
            raise AuthorizationError("Only a Conversationalist can perform this action.")
        raise AuthorizationError(f"Only the {role} can perform this action.")
    return ensure_round_resources(player, lobby.game_state.current_round)


def _find_event(lobby: Lobby, event_id: str) -> TimelineEvent:
    for event in lobby.game_state.timeline:
        if event.id == event_id:
            return event
    raise NotFoundError("Timeline event not found.")


def _build_learning_hint(player: Player) -> str | None:
    approved = player.draft_learning.approved_phrases[-LEARNING_HINT_WINDOW:]
    if not approved:
        return None
    average = sum(len(phrase.split()) for phrase in approved) / len(approved)
    return f"Recent approved drafts average {int(average + 0.5)} words. Keep this draft direct and concise."


def create_lobby(code: str, settings: GameSettings, host: Player) -> Lobby:
    if not settings.topic.strip():
        raise InvalidInputError("A topic is required.")
    if settings.total_rounds < 1:
        raise InvalidInputError("At least one round is required.")
    if settings.turn_duration < 1:
        raise InvalidInputError("Turn duration must be positive.")
    if host.role is not None and host.role not in ROLES:
        raise InvalidInputError(f"Unsupported role: {host.role}")

    now = timer.now_ms()
    ensure_round_resources(host, 1)
    lobby = Lobby(
        code=code,
        settings=settings,
        players=[host],
        game_state=GameState(current_round=1, active_topic=settings.topic, game_phase="ROUND_START"),
        created_at=now,
    )
    _push_event(lobby, "Topic", f"The topic is: {settings.topic}")
    logger.info(
        "lobby.created",
        extra={"context": {"lobby": code, "host": host.id, "rounds": settings.total_rounds}},
    )
    return lobby


def join_player(lobby: Lobby, player: Player) -> None:
    if lobby.game_started:
        raise ConflictError("This game has already started.")
    if lobby.find_player(player.id) is not None:
        return
    if len(lobby.players) >= MAX_PLAYERS:
        raise ConflictError("This lobby is already full.")
    assert_role_available(lobby, player.role, player.id)

    ensure_round_resources(player, lobby.game_state.current_round)
    lobby.players.append(player)


def join_viewer(lobby: Lobby, viewer: Viewer) -> None:
    if any(v.id == viewer.id for v in lobby.viewers):
        return
    lobby.viewers.append(viewer)


def start_game(lobby: Lobby) -> None:
    if lobby.game_started:
        raise ConflictError("This game has already started.")

    lobby.game_started = True
    lobby.game_state.game_phase = "CONVERSATION"
    for player in lobby.players:
        reset_round_resources(player, lobby.game_state.current_round)
    _push_event(lobby, "RoundStart", f"Round {lobby.game_state.current_round} has begun!")
    logger.info("game.started", extra={"context": {"lobby": lobby.code, "players": len(lobby.players)}})


def add_bot(lobby: Lobby, role: str) -> Player:
    if len(lobby.players) >= MAX_PLAYERS:
        raise ConflictError("Lobby is full.")
    assert_role_available(lobby, role)

    bot = new_player(
        create_entity_id("player-bot"),
        f"Bot {len(lobby.players) + 1}",
        role=role,
        current_round=lobby.game_state.current_round,
    )
    lobby.players.append(bot)
    return bot


def set_role(lobby: Lobby, player_id: str, role: str | None) -> None:
    assert_role_available(lobby, role, player_id)
    player = _require_player(lobby, player_id)
    player.role = role


def remove_player(lobby: Lobby, player_id: str) -> None:
    player = lobby.find_player(player_id)
    if player is None:
        raise NotFoundError("Player not found to remove.")

    lobby.players.remove(player)
    if lobby.game_state.speaker_id == player_id:
        timer.clear(lobby.game_state)
    recompute_scores(lobby)


def add_timeline_event(
    lobby: Lobby,
    event_type: str,
    text: str,
    player_id: str,
    violation: ViolationRecord | None = None,
    metadata: dict | None = None,
    fact_check_votes: list[str] | None = None,
) -> TimelineEvent:
    if event_type not in EVENT_TYPES:
        raise InvalidInputError(f"Unsupported timeline event type: {event_type}")
    if not text.strip():
        raise InvalidInputError("Timeline events need text.")

    if event_type == "Question":
        lobby.game_state.active_question = text

    player = lobby.find_player(player_id)
    if player is not None and event_type in ("Question", "Answer"):
        ensure_round_resources(player, lobby.game_state.current_round)
        player.score.replies += 1
        if event_type == "Answer":
            player.score.direct_answers += 1
        recompute_scores(lobby)

    votes = list(dict.fromkeys(fact_check_votes)) if fact_check_votes is not None else None
    return _push_event(lobby, event_type, text, player_id, violation, metadata, votes)


def assign_violation(lobby: Lobby, target_player_id: str, flag_type: str, reason: str, assigner_id: str) -> None:
    if flag_type not in FLAG_TYPES:
        raise InvalidInputError(f"Unsupported violation type: {flag_type}")
    target = _require_player(lobby, target_player_id, "Player to violate not found")

    if flag_type == "red":
        target.violations.red += 1
        target.score.red_flags_received += 1
        if target.role == CONVERSATIONALIST:
            target.indicators.red_remaining = max(0, target.indicators.red_remaining - 1)
    else:
        target.violations.yellow += 1
        target.score.yellow_flags_received += 1

    recompute_scores(lobby)
    _push_event(
        lobby,
        "Violation",
        f"Reason: {reason}",
        assigner_id,
        violation=ViolationRecord(type=flag_type, target_player_id=target_player_id),
    )


def send_message(lobby: Lobby, sender_id: str, text: str) -> ChatMessage:
    if not text.strip():
        raise InvalidInputError("Messages cannot be empty.")

    message = ChatMessage(
        id=create_entity_id("msg"),
        sender_id=sender_id,
        text=text,
        timestamp=timer.now_ms(),
    )
    lobby.game_state.chat_messages.append(message)
    trim_to_limit(lobby.game_state.chat_messages, CHAT_MESSAGE_LIMIT)
    return message


def start_turn(lobby: Lobby, speaker_id: str) -> None:
    speaker = lobby.find_player(speaker_id)
    if speaker is None:
        raise NotFoundError("Selected speaker was not found.")

    # A turn that was never ended still gets its section archived.
    timer.close_section(lobby.game_state)
    timer.start(lobby.game_state, speaker_id, lobby.settings.turn_duration)
    _push_event(lobby, "TurnStart", f"{speaker.name} has started their turn.")


def end_turn(lobby: Lobby) -> None:
    timer.end(lobby.game_state)
    _push_event(lobby, "TurnEnd", "The active turn has ended.")


def pause_turn(lobby: Lobby, pause: bool) -> bool:
    if pause:
        return timer.pause(lobby.game_state, lobby.settings.turn_duration)
    return timer.resume(lobby.game_state)


def cast_vote(lobby: Lobby, event_id: str, viewer_id: str) -> None:
    event = _find_event(lobby, event_id)
    if event.fact_check_votes is None:
        event.fact_check_votes = []
    if viewer_id not in event.fact_check_votes:
        event.fact_check_votes.append(viewer_id)


def normalize_sources(sources: list[str]) -> list[str]:
    unique: list[str] = []
    for source in sources:
        normalized = source.strip()
        if normalized and normalized not in unique:
            unique.append(normalized)
    return unique


def set_trusted_sources(lobby: Lobby, player_id: str, sources: list[str]) -> None:
    player = _require_player(lobby, player_id)
    trusted = normalize_sources(sources)
    if len(trusted) < MIN_TRUSTED_SOURCES:
        raise InvalidInputError("At least three trusted sources are required.")

    player.trusted_sources = trusted
    if player.selected_trusted_source and player.selected_trusted_source not in trusted:
        player.selected_trusted_source = None


def update_question_bank(lobby: Lobby, player_id: str, questions: list[str]) -> None:
    player = _require_role(lobby, player_id, CONVERSATIONALIST)
    texts = [q.strip() for q in questions if q.strip()]
    if not texts:
        raise InvalidInputError("At least one question is required.")
    if player.question_bank and len(player.question_bank) != len(texts):
        raise InvalidInputError("You can edit question text, but you cannot change the number of questions.")

    if not player.question_bank:
        player.question_bank = [Question(id=create_entity_id("question"), text=text) for text in texts]
        return
    for question, text in zip(player.question_bank, texts):
        question.text = text


def reveal_question(lobby: Lobby, player_id: str, question_id: str) -> None:
    player = _require_role(lobby, player_id, CONVERSATIONALIST)
    question = next((q for q in player.question_bank if q.id == question_id), None)
    if question is None:
        raise NotFoundError("Question was not found.")
    if question.revealed:
        raise ConflictError("Question is already revealed.")

    question.revealed = True
    question.revealed_at = timer.now_ms()
    lobby.game_state.active_question = question.text
    player.score.replies += 1
    recompute_scores(lobby)
    _push_event(lobby, "Question", question.text, player.id)


def use_lifeline(
    lobby: Lobby,
    player_id: str,
    lifeline_type: str,
    selected_source: str | None = None,
    details: str | None = None,
) -> None:
    if lifeline_type not in LIFELINE_TYPES:
        raise InvalidInputError("Unsupported lifeline type.")
    player = _require_role(lobby, player_id, CONVERSATIONALIST)
    if player.indicators.yellow_remaining <= 0:
        raise ResourceExhaustedError("No yellow indicators remaining this round.")
    if player.lifelines.used[lifeline_type]:
        raise ConflictError("That lifeline has already been used this round.")

    source = None
    if lifeline_type == "TrustedSourcing":
        if selected_source and selected_source not in player.trusted_sources:
            raise InvalidInputError("The selected source is not one of your trusted sources.")
        trusted = player.trusted_sources
        source = selected_source or player.selected_trusted_source or (trusted[0] if trusted else None)
        if not source:
            raise ResourceExhaustedError("No trusted source is configured for this player.")
        player.selected_trusted_source = source

    player.indicators.yellow_remaining -= 1
    player.violations.yellow += 1
    player.score.yellow_used += 1
    player.score.lifelines_used += 1
    player.lifelines.used[lifeline_type] = True
    recompute_scores(lobby)

    text = f"{player.name} used {LIFELINE_LABELS[lifeline_type]} lifeline."
    if source:
        text += f" Source: {source}."
    if details and details.strip():
        text += f" {details.strip()}"
    _push_event(
        lobby,
        "Lifeline",
        text,
        player.id,
        metadata={"lifelineType": lifeline_type, "selectedSource": source},
    )


def use_green_indicator(lobby: Lobby, player_id: str, reason: str | None = None) -> None:
    player = _require_role(lobby, player_id, CONVERSATIONALIST)
    if player.indicators.green_remaining <= 0:
        raise ResourceExhaustedError("No green indicators remaining this round.")

    player.indicators.green_remaining -= 1
    player.violations.green += 1
    player.score.green_used += 1
    # Green means "let me process": it halts the speaker's own clock.
    if lobby.game_state.speaker_id == player.id and lobby.game_state.is_timer_running:
        timer.pause(lobby.game_state, lobby.settings.turn_duration)
    recompute_scores(lobby)

    text = f"{player.name} used a green indicator."
    if reason and reason.strip():
        text += f" {reason.strip()}"
    _push_event(lobby, "Indicator", text, player.id)


def add_moderation_note(lobby: Lobby, referee_id: str, text: str, shortcut_key: str | None = None) -> ModerationNote:
    _require_role(lobby, referee_id, REFEREE)
    if not text.strip():
        raise InvalidInputError("Moderation notes need text.")

    note = ModerationNote(
        id=create_entity_id("note"),
        text=text,
        shortcut_key=shortcut_key,
        referee_id=referee_id,
        timestamp=timer.now_ms(),
    )
    lobby.game_state.moderation_notes.append(note)
    trim_to_limit(lobby.game_state.moderation_notes, MODERATION_NOTE_LIMIT)
    _push_event(lobby, "ModerationNote", text, referee_id, metadata={"shortcutKey": shortcut_key})
    return note


def highlight_timeline_event(lobby: Lobby, time_keeper_id: str, event_id: str, label: str) -> TimelineHighlight:
    time_keeper = _require_role(lobby, time_keeper_id, TIME_KEEPER)
    event = _find_event(lobby, event_id)

    highlight = TimelineHighlight(
        id=create_entity_id("highlight"),
        event_id=event_id,
        label=label,
        by_player_id=time_keeper_id,
        timestamp=timer.now_ms(),
    )
    lobby.game_state.timeline_highlights.append(highlight)
    trim_to_limit(lobby.game_state.timeline_highlights, TIMELINE_HIGHLIGHT_LIMIT)
    _push_event(
        lobby,
        "Highlight",
        f'{time_keeper.name} highlighted "{event.text}"',
        time_keeper_id,
        metadata={"highlightId": highlight.id},
    )
    return highlight


def update_timeline_section_summary(lobby: Lobby, time_keeper_id: str, section_id: str, summary: str) -> None:
    time_keeper = _require_role(lobby, time_keeper_id, TIME_KEEPER)
    section = next((s for s in lobby.game_state.timeline_sections if s.id == section_id), None)
    if section is None:
        raise NotFoundError("Timeline section not found.")

    section.summary = summary.strip() or None
    _push_event(lobby, "Summary", f"Section summary updated by {time_keeper.name}.", time_keeper_id)


def award_score(lobby: Lobby, player_id: str, points: int, reason: str, assigner_id: str) -> None:
    recipient = _require_player(lobby, player_id)
    if isinstance(points, bool) or not isinstance(points, int) or points < 1:
        raise InvalidInputError("Points must be a positive number.")

    recipient.score.verified_points += points
    recompute_scores(lobby)
    _push_event(
        lobby,
        "ScoreAward",
        f"{recipient.name} received {points} verified point(s). Reason: {reason}",
        assigner_id,
    )


def advance_round(lobby: Lobby, time_keeper_id: str) -> None:
    _require_role(lobby, time_keeper_id, TIME_KEEPER)
    state = lobby.game_state
    if state.game_phase == "GAME_OVER":
        raise ConflictError("The game is already over.")

    if state.current_round >= lobby.settings.total_rounds:
        end_game(lobby, "All rounds completed.")
        return

    state.current_round += 1
    state.active_question = None
    for player in lobby.players:
        reset_round_resources(player, state.current_round)
    _push_event(lobby, "RoundStart", f"Round {state.current_round} has begun.")
    logger.info("round.advanced", extra={"context": {"lobby": lobby.code, "round": state.current_round}})


def submit_audio_draft(lobby: Lobby, player_id: str, transcript: str, audio_payload: str | None = None) -> AudioDraft:
    player = _require_role(lobby, player_id, CONVERSATIONALIST)
    transcript = transcript.strip()
    if not transcript:
        raise InvalidInputError("Transcript is required.")

    draft = AudioDraft(
        id=create_entity_id("audio-draft"),
        player_id=player_id,
        transcript=transcript,
        audio_payload=audio_payload,
        status="pending",
        learning_hint=_build_learning_hint(player),
        submitted_at=timer.now_ms(),
    )
    lobby.game_state.audio_drafts.append(draft)
    trim_to_limit(lobby.game_state.audio_drafts, AUDIO_DRAFT_LIMIT)
    _push_event(
        lobby,
        "AudioDraft",
        f"{player.name} submitted an audio draft for review.",
        player_id,
        metadata={"audioDraftId": draft.id},
    )
    return draft


def review_audio_draft(
    lobby: Lobby,
    reviewer_id: str,
    draft_id: str,
    status: str,
    review_note: str | None = None,
) -> None:
    _require_role(lobby, reviewer_id, REFEREE)
    if status not in DRAFT_REVIEW_STATUSES:
        raise InvalidInputError(f"Unsupported review status: {status}")
    draft = next((d for d in lobby.game_state.audio_drafts if d.id == draft_id), None)
    if draft is None:
        raise NotFoundError("Audio draft not found.")
    if draft.status != "pending":
        raise ConflictError("Audio draft has already been reviewed.")

    draft.status = status
    draft.reviewer_id = reviewer_id
    draft.reviewed_at = timer.now_ms()
    draft.review_note = review_note or None

    if status == "approved":
        owner = lobby.find_player(draft.player_id)
        if owner is not None:
            owner.draft_learning.approved_phrases.append(draft.transcript)
            trim_to_limit(owner.draft_learning.approved_phrases, MAX_APPROVED_PHRASES)
            owner.score.replies += 1
            owner.score.direct_answers += 1
        recompute_scores(lobby)
        _push_event(lobby, "AudioApproved", draft.transcript, draft.player_id, metadata={"audioDraftId": draft.id})
        return

    _push_event(
        lobby,
        "AudioRejected",
        draft.review_note or "Draft rejected by referee.",
        reviewer_id,
        metadata={"audioDraftId": draft.id},
    )


def end_game(lobby: Lobby, reason: str | None = None) -> None:
    lobby.game_state.game_phase = "GAME_OVER"
    timer.clear(lobby.game_state)
    recompute_scores(lobby)
    lobby.game_state.winner = determine_winner(lobby)
    _push_event(lobby, "GameEnd", reason or "The game has ended.")
    winner = lobby.game_state.winner
    logger.info(
        "game.ended",
        extra={"context": {"lobby": lobby.code, "winner": winner.player_id if winner else None}},
    )
