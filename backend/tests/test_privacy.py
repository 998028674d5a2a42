import pytest

from talkgame.game import service
from talkgame.game.models import CONVERSATIONALIST, REFEREE
from talkgame.game.players import new_player
from talkgame.game.privacy import HIDDEN_QUESTION_TEXT, PENDING_DRAFT_TEXT, lobby_view


@pytest.fixture()
def lobby(make_lobby):
    lobby = make_lobby(
        new_player('con-1', 'Con One', CONVERSATIONALIST),
        new_player('con-2', 'Con Two', CONVERSATIONALIST),
        new_player('ref', 'Ref', REFEREE),
    )
    service.update_question_bank(lobby, 'con-1', ['Secret one?', 'Secret two?'])
    service.reveal_question(lobby, 'con-1', lobby.find_player('con-1').question_bank[0].id)
    service.submit_audio_draft(lobby, 'con-1', 'My pending answer.', 'UklGRg==')
    return lobby


def _bank(view, player_id):
    return next(p for p in view['gameState']['players'] if p['id'] == player_id)['questionBank']


def test_owner_sees_everything(lobby):
    view = lobby_view(lobby, 'con-1')
    assert [q['text'] for q in _bank(view, 'con-1')] == ['Secret one?', 'Secret two?']
    draft = view['gameState']['audioDrafts'][0]
    assert draft['transcript'] == 'My pending answer.'
    assert draft['audioPayload'] == 'UklGRg=='


def test_referee_sees_everything(lobby):
    view = lobby_view(lobby, 'ref')
    assert [q['text'] for q in _bank(view, 'con-1')] == ['Secret one?', 'Secret two?']
    assert view['gameState']['audioDrafts'][0]['transcript'] == 'My pending answer.'


@pytest.mark.parametrize('requester', ['con-2', 'viewer-1', None])
def test_others_get_redacted_view(lobby, requester):
    view = lobby_view(lobby, requester)

    assert [q['text'] for q in _bank(view, 'con-1')] == ['Secret one?', HIDDEN_QUESTION_TEXT]
    assert view['players'][0]['questionBank'][1]['text'] == HIDDEN_QUESTION_TEXT
    draft = view['gameState']['audioDrafts'][0]
    assert draft['transcript'] == PENDING_DRAFT_TEXT
    assert draft['audioPayload'] is None


def test_reviewed_drafts_are_public(lobby):
    draft_id = lobby.game_state.audio_drafts[0].id
    service.review_audio_draft(lobby, 'ref', draft_id, 'approved')

    view = lobby_view(lobby, 'con-2')
    assert view['gameState']['audioDrafts'][0]['transcript'] == 'My pending answer.'


def test_redaction_leaves_lobby_untouched(lobby):
    lobby_view(lobby, 'con-2')
    assert lobby.find_player('con-1').question_bank[1].text == 'Secret two?'
    assert lobby.game_state.audio_drafts[0].transcript == 'My pending answer.'


def test_view_uses_wire_names(lobby):
    view = lobby_view(lobby, 'con-1')
    assert view['gameStarted'] is False
    assert view['gameState']['gameSettings']['turnDuration'] == 60
    assert view['gameState']['currentRound'] == 1
    player = view['players'][0]
    assert player['lifelines'] == {'round': 1, 'AudienceOpinion': False, 'TrustedSourcing': False, 'RefsChoice': False}
    assert player['indicators']['yellowRemaining'] == 3
    # Optional event parts are omitted, not null.
    assert 'violation' not in view['gameState']['timeline'][0]
