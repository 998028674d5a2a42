import threading

import pytest

from talkgame.game import service
from talkgame.game.errors import ConflictError, LobbyNotFoundError
from talkgame.game.models import CONVERSATIONALIST
from talkgame.game.players import new_player
from talkgame.game.store import LobbyStore


class WallClock:
    def __init__(self, seconds):
        self.seconds = seconds

    def __call__(self):
        return self.seconds


def test_reads_are_detached_copies(make_lobby, store):
    store.set_lobby(make_lobby(new_player('a', 'Alex')))

    copy = store.get_lobby('ABC123')
    copy.players[0].name = 'Changed'
    assert store.get_lobby('ABC123').players[0].name == 'Alex'


def test_update_commits_and_returns_result(make_lobby, store):
    store.set_lobby(make_lobby(new_player('a', 'Alex')))

    lobby, bot = store.update_lobby('ABC123', lambda lobby: service.add_bot(lobby, CONVERSATIONALIST))
    assert bot.id in [p.id for p in lobby.players]
    assert len(store.get_lobby('ABC123').players) == 2


def test_failed_update_commits_nothing(make_lobby, store):
    store.set_lobby(make_lobby(new_player('a', 'Alex')))

    def mutate(lobby):
        lobby.players[0].name = 'Half done'
        raise ConflictError('nope')

    with pytest.raises(ConflictError):
        store.update_lobby('ABC123', mutate)
    assert store.get_lobby('ABC123').players[0].name == 'Alex'


def test_unknown_code(store):
    assert store.get_lobby('NOPE00') is None
    with pytest.raises(LobbyNotFoundError) as excinfo:
        store.update_lobby('NOPE00', lambda lobby: None)
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == 'Game not found.'


def test_unknown_codes_leave_no_lock_behind(make_lobby, store):
    store.set_lobby(make_lobby(new_player('a', 'Alex')))
    store.update_lobby('ABC123', lambda lobby: None)

    for i in range(50):
        with pytest.raises(LobbyNotFoundError):
            store.update_lobby(f'NOPE{i:02d}', lambda lobby: None)
    assert set(store._lobby_locks) == {'ABC123'}


def test_lobbies_expire_after_ttl(make_lobby, clock):
    wall = WallClock(clock.now / 1000)
    store = LobbyStore(ttl_seconds=60, clock=wall)
    store.set_lobby(make_lobby(new_player('a', 'Alex')))

    wall.seconds += 59
    assert store.has_lobby('ABC123')
    wall.seconds += 2
    assert store.cleanup_expired() == ['ABC123']
    assert store.get_lobby('ABC123') is None
    assert store.lobby_codes() == set()


def test_public_listing(make_lobby, store):
    public = make_lobby(new_player('a', 'Alex'), code='PUB001')
    public.settings.is_public = True
    store.set_lobby(public)
    store.set_lobby(make_lobby(new_player('b', 'Bea'), code='PRIV01'))
    started = make_lobby(new_player('c', 'Cy'), code='PUB002')
    started.settings.is_public = True
    service.start_game(started)
    store.set_lobby(started)

    assert [lobby.code for lobby in store.list_public_lobbies()] == ['PUB001']


def test_concurrent_updates_are_serialized(make_lobby, store):
    store.set_lobby(make_lobby(new_player('a', 'Alex')))

    def send_many():
        for i in range(25):
            store.update_lobby('ABC123', lambda lobby: service.send_message(lobby, 'a', f'hi {i}'))

    workers = [threading.Thread(target=send_many) for _ in range(4)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert len(store.get_lobby('ABC123').game_state.chat_messages) == 100
