import os
import sys
import pytest

# Ensure the backend root (containing the `doko` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from doko import create_app, db, socketio
from doko.services.games.session import clear_sessions, start_game
from doko.services.games.types import GameConfig, PlayerConfig


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SAVE_DEBOUNCE_MS = 0
    EXPOSE_ERROR_CONTEXT = False


PLAYER_NAMES = ['Anna', 'Ben', 'Clara', 'Dirk']


def make_config(mode='normal', **kwargs):
    players = tuple(PlayerConfig(name=n, color='#000000') for n in PLAYER_NAMES)
    return GameConfig(players=players, spritze_mode=mode, **kwargs)


@pytest.fixture()
def normal_game():
    return start_game(make_config('normal'))


@pytest.fixture()
def custom_game():
    return start_game(make_config('custom'))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        import doko.models  # noqa: F401
        db.create_all()
        clear_sessions()
        yield application
        clear_sessions()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
