from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from typing import Any, Literal


Role = Literal["Conversationalist", "Referee", "Time Keeper"]
GamePhase = Literal["ROUND_START", "CONVERSATION", "GAME_OVER"]
DraftStatus = Literal["pending", "approved", "rejected"]

CONVERSATIONALIST = "Conversationalist"
REFEREE = "Referee"
TIME_KEEPER = "Time Keeper"
ROLES = (CONVERSATIONALIST, REFEREE, TIME_KEEPER)
EXCLUSIVE_ROLES = (REFEREE, TIME_KEEPER)

LIFELINE_TYPES = ("AudienceOpinion", "TrustedSourcing", "RefsChoice")
FLAG_TYPES = ("red", "yellow")
DRAFT_REVIEW_STATUSES = ("approved", "rejected")

EVENT_TYPES = (
    "Topic",
    "Question",
    "Summary",
    "Answer",
    "FactCheck",
    "Violation",
    "RoundStart",
    "TurnStart",
    "TurnEnd",
    "GameEnd",
    "Lifeline",
    "ModerationNote",
    "Highlight",
    "ScoreAward",
    "AudioDraft",
    "AudioApproved",
    "AudioRejected",
    "Indicator",
)

SYSTEM_PLAYER_ID = "system"

INDICATORS_PER_ROUND = 3
DEFAULT_TRUSTED_SOURCES = (
    "https://www.reuters.com",
    "https://apnews.com",
    "https://www.britannica.com",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _snake_get(data: dict, name: str, default: Any = None) -> Any:
    return data.get(_camel(name), default)


def _record(record_cls: type, data: dict) -> Any:
    values = {}
    for f in fields(record_cls):
        default = None if f.default is MISSING else f.default
        values[f.name] = _snake_get(data, f.name, default)
    return record_cls(**values)


def to_wire(value: Any) -> Any:
    """Convert dataclasses (recursively) into camelCase JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        custom = getattr(value, "to_dict", None)
        if custom is not None:
            return custom()
        return _fields_to_wire(value)
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_wire(v) for v in value]
    return value


def _fields_to_wire(obj: Any) -> dict:
    return {_camel(f.name): to_wire(getattr(obj, f.name)) for f in fields(obj)}


@dataclass
class GameSettings:
    topic: str
    total_rounds: int
    turn_duration: int
    is_public: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> GameSettings:
        return cls(
            topic=data["topic"],
            total_rounds=int(data["totalRounds"]),
            turn_duration=int(data["turnDuration"]),
            is_public=bool(data.get("isPublic", False)),
        )


@dataclass
class ViolationCounts:
    red: int = 0
    yellow: int = 0
    green: int = 0


@dataclass
class Score:
    replies: int = 0
    direct_answers: int = 0
    verified_points: int = 0
    red_flags_received: int = 0
    yellow_flags_received: int = 0
    yellow_used: int = 0
    green_used: int = 0
    lifelines_used: int = 0
    efficiency_bonus: int = 0
    total: int = 0


@dataclass
class Indicators:
    round: int
    red_remaining: int = INDICATORS_PER_ROUND
    yellow_remaining: int = INDICATORS_PER_ROUND
    green_remaining: int = INDICATORS_PER_ROUND


@dataclass
class Lifelines:
    round: int
    used: dict[str, bool] = field(default_factory=lambda: {t: False for t in LIFELINE_TYPES})

    def to_dict(self) -> dict:
        return {"round": self.round, **self.used}

    @classmethod
    def from_dict(cls, data: dict) -> Lifelines:
        return cls(round=int(data["round"]), used={t: bool(data.get(t, False)) for t in LIFELINE_TYPES})


@dataclass
class Question:
    id: str
    text: str
    revealed: bool = False
    revealed_at: int | None = None


@dataclass
class DraftLearning:
    approved_phrases: list[str] = field(default_factory=list)


@dataclass
class Player:
    id: str
    name: str
    role: Role | None = None
    violations: ViolationCounts = field(default_factory=ViolationCounts)
    score: Score = field(default_factory=Score)
    indicators: Indicators = field(default_factory=lambda: Indicators(round=1))
    lifelines: Lifelines = field(default_factory=lambda: Lifelines(round=1))
    trusted_sources: list[str] = field(default_factory=lambda: list(DEFAULT_TRUSTED_SOURCES))
    selected_trusted_source: str | None = None
    question_bank: list[Question] = field(default_factory=list)
    draft_learning: DraftLearning = field(default_factory=DraftLearning)

    @classmethod
    def from_dict(cls, data: dict, current_round: int = 1) -> Player:
        """Build a player from an external or previously persisted record.

        This is the one place missing substructures get their defaults; the
        per-round budgets default to a fresh budget for ``current_round``.
        """
        violations = data.get("violations") or {}
        score = data.get("score") or {}
        indicators = data.get("indicators")
        lifelines = data.get("lifelines")
        sources = [s for s in (data.get("trustedSources") or []) if isinstance(s, str) and s.strip()]
        selected = data.get("selectedTrustedSource")
        learning = data.get("draftLearning") or {}
        phrases = learning.get("approvedPhrases")

        return cls(
            id=data["id"],
            name=data["name"],
            role=data.get("role"),
            violations=ViolationCounts(
                red=int(violations.get("red", 0)),
                yellow=int(violations.get("yellow", 0)),
                green=int(violations.get("green", 0)),
            ),
            score=Score(**{f.name: int(_snake_get(score, f.name, 0)) for f in fields(Score)}),
            indicators=_record(Indicators, indicators) if indicators else Indicators(round=current_round),
            lifelines=Lifelines.from_dict(lifelines) if lifelines else Lifelines(round=current_round),
            trusted_sources=sources or list(DEFAULT_TRUSTED_SOURCES),
            selected_trusted_source=selected if isinstance(selected, str) and selected in sources else None,
            question_bank=[
                Question(
                    id=q["id"],
                    text=q["text"],
                    revealed=bool(q.get("revealed", False)),
                    revealed_at=q.get("revealedAt"),
                )
                for q in (data.get("questionBank") or [])
            ],
            draft_learning=DraftLearning(approved_phrases=list(phrases) if isinstance(phrases, list) else []),
        )


@dataclass
class Viewer:
    id: str
    name: str


@dataclass
class ViolationRecord:
    type: str
    target_player_id: str


@dataclass
class TimelineEvent:
    id: str
    type: str
    text: str
    player_id: str
    timestamp: int
    violation: ViolationRecord | None = None
    fact_check_votes: list[str] | None = None
    metadata: dict[str, str] | None = None

    def to_dict(self) -> dict:
        # Optional parts are omitted rather than sent as null.
        return {k: v for k, v in _fields_to_wire(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> TimelineEvent:
        violation = data.get("violation")
        return cls(
            id=data["id"],
            type=data["type"],
            text=data["text"],
            player_id=data["playerId"],
            timestamp=int(data["timestamp"]),
            violation=ViolationRecord(violation["type"], violation["targetPlayerId"]) if violation else None,
            fact_check_votes=list(data["factCheckVotes"]) if data.get("factCheckVotes") is not None else None,
            metadata=dict(data["metadata"]) if data.get("metadata") else None,
        )


@dataclass
class ActiveSection:
    id: str
    speaker_id: str
    start_time: int
    paused_ms: int = 0
    paused_at: int | None = None


@dataclass
class TimelineSection:
    id: str
    speaker_id: str
    start_time: int
    end_time: int
    duration_seconds: float
    summary: str | None = None


@dataclass
class TimelineHighlight:
    id: str
    event_id: str
    label: str
    by_player_id: str
    timestamp: int


@dataclass
class ModerationNote:
    id: str
    text: str
    shortcut_key: str | None
    referee_id: str
    timestamp: int


@dataclass
class AudioDraft:
    id: str
    player_id: str
    transcript: str
    audio_payload: str | None = None
    status: DraftStatus = "pending"
    learning_hint: str | None = None
    submitted_at: int = 0
    reviewed_at: int | None = None
    reviewer_id: str | None = None
    review_note: str | None = None


@dataclass
class ChatMessage:
    id: str
    sender_id: str
    text: str
    timestamp: int


@dataclass
class WinnerSummary:
    player_id: str
    player_name: str
    score: int
    reason: str


@dataclass
class GameState:
    current_round: int = 1
    active_topic: str | None = None
    active_question: str | None = None
    game_phase: GamePhase = "ROUND_START"
    speaker_id: str | None = None
    chat_messages: list[ChatMessage] = field(default_factory=list)
    turn_start_time: int | None = None
    is_timer_running: bool = False
    turn_remaining_seconds: float | None = None
    active_section: ActiveSection | None = None
    timeline: list[TimelineEvent] = field(default_factory=list)
    timeline_sections: list[TimelineSection] = field(default_factory=list)
    timeline_highlights: list[TimelineHighlight] = field(default_factory=list)
    moderation_notes: list[ModerationNote] = field(default_factory=list)
    audio_drafts: list[AudioDraft] = field(default_factory=list)
    winner: WinnerSummary | None = None

    @classmethod
    def from_dict(cls, data: dict) -> GameState:
        def records(key: str, record_cls: type) -> list:
            return [_record(record_cls, item) for item in (data.get(key) or [])]

        active = data.get("activeSection")
        winner = data.get("winner")
        return cls(
            current_round=int(data.get("currentRound", 1)),
            active_topic=data.get("activeTopic"),
            active_question=data.get("activeQuestion"),
            game_phase=data.get("gamePhase", "ROUND_START"),
            speaker_id=data.get("speakerId"),
            chat_messages=records("chatMessages", ChatMessage),
            turn_start_time=data.get("turnStartTime"),
            is_timer_running=bool(data.get("isTimerRunning", False)),
            turn_remaining_seconds=data.get("turnRemainingSeconds"),
            active_section=_record(ActiveSection, active) if active else None,
            timeline=[TimelineEvent.from_dict(e) for e in (data.get("timeline") or [])],
            timeline_sections=records("timelineSections", TimelineSection),
            timeline_highlights=records("timelineHighlights", TimelineHighlight),
            moderation_notes=records("moderationNotes", ModerationNote),
            audio_drafts=records("audioDrafts", AudioDraft),
            winner=_record(WinnerSummary, winner) if winner else None,
        )


@dataclass
class Lobby:
    code: str
    settings: GameSettings
    players: list[Player] = field(default_factory=list)
    viewers: list[Viewer] = field(default_factory=list)
    game_state: GameState = field(default_factory=GameState)
    game_started: bool = False
    created_at: int = 0

    def find_player(self, player_id: str | None) -> Player | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_dict(self) -> dict:
        payload = _fields_to_wire(self)
        # Clients read the roster and settings from gameState as well.
        payload["gameState"]["players"] = payload["players"]
        payload["gameState"]["viewers"] = payload["viewers"]
        payload["gameState"]["gameSettings"] = payload["settings"]
        return payload

    @classmethod
    def from_dict(cls, data: dict) -> Lobby:
        game_state = GameState.from_dict(data.get("gameState") or {})
        return cls(
            code=data["code"],
            settings=GameSettings.from_dict(data["settings"]),
            players=[Player.from_dict(p, game_state.current_round) for p in (data.get("players") or [])],
            viewers=[Viewer(id=v["id"], name=v["name"]) for v in (data.get("viewers") or [])],
            game_state=game_state,
            game_started=bool(data.get("gameStarted", False)),
            created_at=int(data.get("createdAt", 0)),
        )
