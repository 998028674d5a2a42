from talkgame.game import service
from talkgame.game.models import CONVERSATIONALIST, REFEREE, TIME_KEEPER, Lobby
from talkgame.game.players import new_player


def test_busy_lobby_survives_wire_round_trip(make_lobby, clock):
    lobby = make_lobby(
        new_player('con-1', 'Con One', CONVERSATIONALIST),
        new_player('ref', 'Ref', REFEREE),
        new_player('tk', 'Keeper', TIME_KEEPER),
    )
    service.start_game(lobby)
    service.update_question_bank(lobby, 'con-1', ['Why?'])
    service.use_lifeline(lobby, 'con-1', 'TrustedSourcing')
    service.assign_violation(lobby, 'con-1', 'red', 'Interrupting', 'ref')
    service.send_message(lobby, 'ref', 'Calm down')
    service.start_turn(lobby, 'con-1')
    clock.advance(1000)
    service.pause_turn(lobby, True)
    draft = service.submit_audio_draft(lobby, 'con-1', 'Answer.')
    service.review_audio_draft(lobby, 'ref', draft.id, 'approved')
    service.add_moderation_note(lobby, 'ref', 'Noted', 'F1')

    restored = Lobby.from_dict(lobby.to_dict())
    assert restored == lobby


def test_from_dict_fills_defaults_for_sparse_records():
    lobby = Lobby.from_dict(
        {
            'code': 'OLD001',
            'settings': {'topic': 'Legacy', 'totalRounds': 2, 'turnDuration': 30},
            'players': [{'id': 'p1', 'name': 'Pat', 'role': CONVERSATIONALIST}],
            'gameState': {'currentRound': 2},
        }
    )
    player = lobby.players[0]
    assert lobby.settings.is_public is False
    assert player.indicators.round == 2
    assert player.lifelines.round == 2
    assert player.score.total == 0
    assert lobby.game_state.timeline == []
