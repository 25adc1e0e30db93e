import os
import sys
import pytest

# Ensure the backend root (containing the `draftroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from draftroom import create_app, db, socketio
from draftroom.services.draft.broadcaster import EventBroadcaster
from draftroom.services.draft.session import DraftSession, Join


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RESULT_HOLD_SEC = 0
    COMMAND_LOCK_TIMEOUT_SEC = 0.05


# Price rows 5..1 by columns QB, RB, WR, TE
BOARD = [
    [('Mahomes', 'KC'), ('McCaffrey', 'SF'), ('Hill', 'MIA'), ('Kelce', 'KC')],
    [('Allen', 'BUF'), ('Barkley', 'PHI'), ('Jefferson', 'MIN'), ('Andrews', 'BAL')],
    [('Hurts', 'PHI'), ('Henry', 'BAL'), ('Diggs', 'HOU'), ('Kittle', 'SF')],
    [('Jackson', 'BAL'), ('Pacheco', 'KC'), ('Rice', 'KC'), ('Goedert', 'PHI')],
    [('Purdy', 'SF'), ('Cook', 'BUF'), ('Brown', 'PHI'), ('Kincaid', 'BUF')],
]
COLUMNS = ['QB', 'RB', 'WR', 'TE']


def board_rows():
    return [
        [
            {'name': name, 'position': COLUMNS[c], 'team': team, 'price': 5 - r}
            for c, (name, team) in enumerate(row)
        ]
        for r, row in enumerate(BOARD)
    ]


def participant_list(count=5):
    return [{'user_id': f'u{i}', 'username': f'User {i}'} for i in range(count)]


class RecordingBroadcaster(EventBroadcaster):
    """Collects published events instead of sending them."""

    def __init__(self):
        self.room_events = []
        self.user_events = []

    def send_room(self, room_id, event):
        self.room_events.append((room_id, event))

    def send_user(self, room_id, event):
        self.user_events.append((room_id, event))

    def names(self):
        return [e.name for _, e in self.room_events]


@pytest.fixture()
def rows():
    return board_rows()


@pytest.fixture()
def participants():
    return participant_list()


@pytest.fixture()
def make_session():
    def _make(contest_type='classic', board=None, participants=None, **options):
        return DraftSession.start(
            'ROOM1',
            participants if participants is not None else participant_list(),
            board if board is not None else board_rows(),
            contest_type,
            **options,
        )
    return _make


@pytest.fixture()
def active_session(make_session):
    """A session whose countdown has run out: team 0 is on the clock."""
    def _make(contest_type='classic', **options):
        session = make_session(contest_type, **options)
        for team in session.teams:
            session.handle(Join(team.user_id))
        while session.status == 'countdown':
            session.tick()
        session.drain_events()
        return session
    return _make


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import draftroom.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()
