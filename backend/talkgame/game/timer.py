"""Turn timer.

Remaining time only drains while the timer runs: pausing freezes the value
computed from the elapsed time since the last (re)start, resuming restamps the
start time and keeps the frozen value as the new baseline. The open section
accumulates paused spans so an archived section measures speaking time only.
"""

from __future__ import annotations

import time

from ..utils.ids import create_entity_id
from .limits import TIMELINE_SECTION_LIMIT, trim_to_limit
from .models import ActiveSection, GameState, TimelineSection


_WALL_ANCHOR_MS = time.time() * 1000
_MONOTONIC_ANCHOR = time.monotonic()


def now_ms() -> int:
    """Epoch milliseconds that never run backwards within the process."""
    return int(_WALL_ANCHOR_MS + (time.monotonic() - _MONOTONIC_ANCHOR) * 1000)


def start(state: GameState, speaker_id: str, duration_sec: int) -> None:
    now = now_ms()
    state.turn_remaining_seconds = float(duration_sec)
    state.is_timer_running = True
    state.turn_start_time = now
    state.speaker_id = speaker_id
    state.active_section = ActiveSection(
        id=create_entity_id("section"),
        speaker_id=speaker_id,
        start_time=now,
    )


def close_section(state: GameState) -> TimelineSection | None:
    section = state.active_section
    if section is None:
        return None

    end = now_ms()
    paused_ms = section.paused_ms
    if section.paused_at is not None:
        paused_ms += end - section.paused_at

    archived = TimelineSection(
        id=section.id,
        speaker_id=section.speaker_id,
        start_time=section.start_time,
        end_time=end,
        duration_seconds=max(0.0, (end - section.start_time - paused_ms) / 1000),
        summary=None,
    )
    state.timeline_sections.append(archived)
    trim_to_limit(state.timeline_sections, TIMELINE_SECTION_LIMIT)
    state.active_section = None
    return archived


def clear(state: GameState) -> None:
    state.is_timer_running = False
    state.turn_start_time = None
    state.turn_remaining_seconds = None
    state.speaker_id = None
    state.active_section = None


def end(state: GameState) -> TimelineSection | None:
    archived = close_section(state)
    clear(state)
    return archived


def pause(state: GameState, default_duration_sec: int) -> bool:
    if not state.is_timer_running or state.turn_start_time is None:
        return False

    now = now_ms()
    baseline = state.turn_remaining_seconds
    if baseline is None:
        baseline = float(default_duration_sec)
    elapsed = (now - state.turn_start_time) / 1000
    state.turn_remaining_seconds = max(0.0, baseline - elapsed)
    state.is_timer_running = False
    state.turn_start_time = None
    if state.active_section is not None:
        state.active_section.paused_at = now
    return True


def resume(state: GameState) -> bool:
    if state.is_timer_running or state.speaker_id is None:
        return False
    remaining = state.turn_remaining_seconds
    if remaining is None or remaining <= 0:
        return False

    now = now_ms()
    section = state.active_section
    if section is not None and section.paused_at is not None:
        section.paused_ms += now - section.paused_at
        section.paused_at = None
    state.is_timer_running = True
    state.turn_start_time = now
    return True
