import pytest

from talkgame.game import service
from talkgame.game.errors import ConflictError, InvalidInputError
from talkgame.game.models import CONVERSATIONALIST, DEFAULT_TRUSTED_SOURCES, REFEREE, TIME_KEEPER, Player
from talkgame.game.players import (
    assert_role_available,
    ensure_round_resources,
    new_player,
    reset_round_resources,
    upgrade_player,
)


def test_upgrade_fills_missing_substructures():
    player = upgrade_player({'id': 'p1', 'name': 'Pat', 'role': None}, current_round=2)

    assert player.violations.red == 0
    assert player.score.total == 0
    assert player.indicators.round == 2
    assert player.indicators.yellow_remaining == 3
    assert player.lifelines.round == 2
    assert not any(player.lifelines.used.values())
    assert player.trusted_sources == list(DEFAULT_TRUSTED_SOURCES)
    assert player.selected_trusted_source is None
    assert player.question_bank == []
    assert player.draft_learning.approved_phrases == []


def test_upgrade_resets_stale_round_budget():
    record = {
        'id': 'p1',
        'name': 'Pat',
        'indicators': {'round': 1, 'redRemaining': 0, 'yellowRemaining': 1, 'greenRemaining': 2},
        'lifelines': {'round': 1, 'AudienceOpinion': True},
        'trustedSources': ['a', 'b', 'c'],
        'selectedTrustedSource': 'zzz',
    }
    player = upgrade_player(record, current_round=3)

    assert player.indicators.round == 3
    assert player.indicators.red_remaining == 3
    assert player.lifelines.used['AudienceOpinion'] is False
    assert player.trusted_sources == ['a', 'b', 'c']
    assert player.selected_trusted_source is None


def test_upgrade_keeps_current_round_budget():
    record = {
        'id': 'p1',
        'name': 'Pat',
        'indicators': {'round': 2, 'redRemaining': 0, 'yellowRemaining': 1, 'greenRemaining': 2},
        'lifelines': {'round': 2, 'RefsChoice': True},
    }
    player = upgrade_player(record, current_round=2)

    assert player.indicators.yellow_remaining == 1
    assert player.lifelines.used['RefsChoice'] is True


def test_ensure_round_resources_is_idempotent():
    player = new_player('p1', 'Pat', CONVERSATIONALIST)
    player.indicators.green_remaining = 1

    ensure_round_resources(player, 2)
    first = (player.indicators, player.lifelines)
    ensure_round_resources(player, 2)

    assert (player.indicators, player.lifelines) == first
    assert player.indicators.green_remaining == 3


def test_lazy_and_explicit_resets_match():
    lazy = new_player('p1', 'Pat')
    explicit = new_player('p1', 'Pat')
    lazy.indicators.red_remaining = 0
    explicit.lifelines.used['RefsChoice'] = True

    ensure_round_resources(lazy, 4)
    reset_round_resources(explicit, 4)

    assert lazy.indicators == explicit.indicators
    assert lazy.lifelines == explicit.lifelines


def test_exclusive_roles(make_lobby):
    lobby = make_lobby(new_player('ref', 'Ref', REFEREE), new_player('a', 'A'))

    with pytest.raises(ConflictError):
        assert_role_available(lobby, REFEREE, 'a')
    # Same holder and shared roles are fine.
    assert_role_available(lobby, REFEREE, 'ref')
    assert_role_available(lobby, CONVERSATIONALIST, 'a')
    assert_role_available(lobby, None, 'a')

    with pytest.raises(InvalidInputError):
        assert_role_available(lobby, 'Coach', 'a')


def test_time_keeper_is_exclusive_across_operations(make_lobby):
    lobby = make_lobby(new_player('tk', 'Tina', TIME_KEEPER))

    with pytest.raises(ConflictError):
        service.join_player(lobby, new_player('other', 'Other', TIME_KEEPER))
    with pytest.raises(ConflictError):
        service.add_bot(lobby, TIME_KEEPER)

    service.set_role(lobby, 'tk', None)
    bot = service.add_bot(lobby, TIME_KEEPER)
    assert isinstance(bot, Player)
    assert bot.role == TIME_KEEPER
