from __future__ import annotations


MAX_PLAYERS = 5

TIMELINE_EVENT_LIMIT = 300
TIMELINE_SECTION_LIMIT = 120
TIMELINE_HIGHLIGHT_LIMIT = 120
MODERATION_NOTE_LIMIT = 40
AUDIO_DRAFT_LIMIT = 100
CHAT_MESSAGE_LIMIT = 200
MAX_APPROVED_PHRASES = 30

MIN_TRUSTED_SOURCES = 3
LEARNING_HINT_WINDOW = 5


def trim_to_limit(items: list, limit: int) -> None:
    """Drop the oldest entries in place so at most ``limit`` remain."""
    if len(items) > limit:
        del items[: len(items) - limit]
