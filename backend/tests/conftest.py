import os
import sys
import pytest

# Ensure the backend root (containing the `defuse` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from defuse import create_app, socketio
from defuse.models import clear_sessions
from defuse.services.games import sessions


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    GAME_TIME_LIMIT_MS = 120000
    TICK_INTERVAL_SEC = 0
    CONTROLLER_DEBOUNCE_MS = 0
    OWNER_GRACE_SEC = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    clear_sessions()
    sessions._last_controller_action.clear()


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


@pytest.fixture()
def new_game(client):
    """Create a session and return its code."""
    return client.post('/api/games/create').get_json()['game_code']


@pytest.fixture()
def started_game(client, new_game):
    """Create a session and advance it past the intro and rules screens."""
    client.post(f'/api/games/{new_game}/advance')
    client.post(f'/api/games/{new_game}/advance')
    return new_game
