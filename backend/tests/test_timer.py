from talkgame.game import service, timer
from talkgame.game.models import CONVERSATIONALIST
from talkgame.game.players import new_player


def test_start_turn_opens_section(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')

    state = lobby.game_state
    assert state.is_timer_running
    assert state.speaker_id == 'a'
    assert state.turn_remaining_seconds == 60
    assert state.turn_start_time == clock.now
    assert state.active_section.speaker_id == 'a'
    assert state.timeline[-1].type == 'TurnStart'


def test_pause_freezes_remaining_and_resume_restamps(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')

    clock.advance(1500)
    assert service.pause_turn(lobby, True) is True
    state = lobby.game_state
    assert not state.is_timer_running
    assert state.turn_start_time is None
    assert state.turn_remaining_seconds == 58.5

    clock.advance(10_000)
    assert service.pause_turn(lobby, False) is True
    assert state.is_timer_running
    assert state.turn_start_time == clock.now
    assert state.turn_remaining_seconds == 58.5

    clock.advance(500)
    service.pause_turn(lobby, True)
    assert state.turn_remaining_seconds == 58.0


def test_pause_time_is_excluded_from_section_duration(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')
    clock.advance(2000)
    service.pause_turn(lobby, True)
    clock.advance(30_000)
    service.pause_turn(lobby, False)
    clock.advance(1000)
    service.end_turn(lobby)

    section = lobby.game_state.timeline_sections[-1]
    assert section.duration_seconds == 3.0
    assert section.end_time - section.start_time == 33_000
    assert lobby.game_state.active_section is None
    assert lobby.game_state.speaker_id is None
    assert lobby.game_state.timeline[-1].type == 'TurnEnd'


def test_ending_while_paused_excludes_open_pause(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')
    clock.advance(4000)
    service.pause_turn(lobby, True)
    clock.advance(20_000)
    service.end_turn(lobby)

    assert lobby.game_state.timeline_sections[-1].duration_seconds == 4.0


def test_pause_and_resume_noops(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    assert service.pause_turn(lobby, True) is False
    assert service.pause_turn(lobby, False) is False

    service.start_turn(lobby, 'a')
    assert service.pause_turn(lobby, False) is False

    clock.advance(61_000)
    service.pause_turn(lobby, True)
    assert lobby.game_state.turn_remaining_seconds == 0
    # Nothing left to resume.
    assert service.pause_turn(lobby, False) is False


def test_new_turn_archives_unfinished_section(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST), new_player('b', 'Bo', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')
    clock.advance(5000)
    service.start_turn(lobby, 'b')

    sections = lobby.game_state.timeline_sections
    assert [s.speaker_id for s in sections] == ['a']
    assert lobby.game_state.active_section.speaker_id == 'b'


def test_green_indicator_pauses_own_turn(make_lobby, clock):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')
    clock.advance(1000)
    service.use_green_indicator(lobby, 'a', 'Thinking')

    assert not lobby.game_state.is_timer_running
    assert lobby.game_state.turn_remaining_seconds == 59.0


def test_clear_drops_section_without_archiving(make_lobby):
    lobby = make_lobby(new_player('a', 'Alex', CONVERSATIONALIST))
    service.start_turn(lobby, 'a')
    timer.clear(lobby.game_state)

    assert lobby.game_state.active_section is None
    assert lobby.game_state.timeline_sections == []
