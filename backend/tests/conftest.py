import os
import sys
import time

import pytest

# Ensure the backend root (containing the `talkgame` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from talkgame.config import Config
from talkgame.factcheck import FactChecker
from talkgame.game import service
from talkgame.game.models import GameSettings
from talkgame.game.store import LobbyStore
from talkgame.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    OPENAI_API_KEY = ''
    LOG_LEVEL = 'WARNING'
    LOG_FORMAT = 'text'


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start=None):
        self.now = int(time.time() * 1000) if start is None else start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture()
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr('talkgame.game.timer.now_ms', fake)
    return fake


@pytest.fixture()
def make_lobby(clock):
    def _make(host, *others, total_rounds=3, turn_duration=60, code='ABC123'):
        settings = GameSettings(topic='Hard conversations', total_rounds=total_rounds, turn_duration=turn_duration)
        lobby = service.create_lobby(code, settings, host)
        for player in others:
            service.join_player(lobby, player)
        return lobby

    return _make


@pytest.fixture()
def store():
    return LobbyStore()


@pytest.fixture()
def fact_checker():
    return FactChecker()


@pytest.fixture()
def app_and_socketio(store, fact_checker):
    return create_app(TestConfig, store=store, fact_checker=fact_checker)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(app_and_socketio):
    application, socketio = app_and_socketio
    test_client = socketio.test_client(application, flask_test_client=application.test_client())
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()
