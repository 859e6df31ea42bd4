import os
import sys
import pytest

# Ensure the backend root (containing the `lexiboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from lexiboard import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    TURN_TIMER_SEC = 120
    MIN_PLAYERS = 2
    MAX_PLAYERS_LIMIT = 4
    INVALID_WORD_RETRY_CAP = 3
    SOLO_INVALID_WORD_CONSUMES_TURN = False
    ABANDON_AFTER_TIMEOUT_ROUNDS = 2
    ASYNC_ABANDON_HOURS = 0
    EFFECT_TIER_THRESHOLDS = '5,7'
    INVITE_CODE_LENGTH = 6
    INVITE_CODE_ATTEMPTS = 8
    LIVE_POLL_INTERVAL_SEC = 3
    ASYNC_POLL_INTERVAL_SEC = 30
    XP_PER_LEVEL = 1000
    WORD_LIST_PATH = Config.WORD_LIST_PATH


# 7x7 fixture board; every row spells short words left to right
ROWS = [
    'CATXDOG',
    'BATXHAT',
    'RATXSUN',
    'STONEEE',
    'EEEEEEE',
    'EEEEEEE',
    'EEEEEEE',
]


class FixedLetters:
    """Stand-in rng whose every draw is the same letter."""

    def __init__(self, letter='Q'):
        self.letter = letter

    def choice(self, seq):
        return self.letter


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import lexiboard.models  # noqa: F401
        db.create_all()
        yield application
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


@pytest.fixture()
def users(flask_app):
    from lexiboard.models import User
    created = []
    for name in ('alice', 'bob', 'cara', 'dan'):
        user = User(username=name)
        user.set_password('password')
        db.session.add(user)
        created.append(user)
    db.session.commit()
    return [u.id for u in created]


@pytest.fixture()
def make_template(flask_app):
    """Insert a catalog entry built from fixed letter rows."""
    from lexiboard.services.games.catalog import add_template, layout_from_rows

    def _make(puzzle_mode='score_target', win_condition=None, specials=None, rows=None,
              supported_modes=('solo', 'multiplayer'), name=None):
        entry = {
            'name': name or f'{puzzle_mode}-{len(_make.created)}',
            'grid_size': 7,
            'layout': layout_from_rows(rows or ROWS, specials),
            'puzzle_mode': puzzle_mode,
            'win_condition': win_condition or {'target': 400, 'turn_limit': 15},
            'supported_modes': list(supported_modes),
        }
        template = add_template(entry)
        db.session.commit()
        _make.created.append(template)
        return template

    _make.created = []
    return _make


def login(client, username, password='password'):
    res = client.post('/login', json={'username': username, 'password': password})
    assert res.status_code == 200, res.get_json()
    return res.get_json()['user']


