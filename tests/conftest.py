import os
import sys
import pytest

# Ensure the repository root (containing the `kickoff` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from kickoff import create_app, socketio
from kickoff.services.matches import Broadcaster, MatchService

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = NAMESPACE
    MAX_ROUNDS = 5
    DEFAULT_NICK = 'Guest'
    FINISHED_MATCH_RETENTION_SEC = 0
    INVITE_TTL_SEC = 0


class ScriptedRandom:
    """Stand-in for random.Random with queued draws.

    ``uniform`` returns queued offsets (default 0, so the ball goes exactly
    where it was aimed); ``random`` returns queued draws (default 0.99, so
    no miss and no save happens unless a lower draw is queued).
    """

    def __init__(self, uniforms=None, draws=None):
        self.uniforms = list(uniforms or [])
        self.draws = list(draws or [])
        self.uniform_calls = []

    def uniform(self, a, b):
        self.uniform_calls.append((a, b))
        return self.uniforms.pop(0) if self.uniforms else 0.0

    def random(self):
        return self.draws.pop(0) if self.draws else 0.99


class RecordingEmitter:
    """Collects everything the Broadcaster sends, keyed by recipient."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, to=None, namespace=None):
        self.sent.append({'event': event, 'payload': payload, 'to': to, 'namespace': namespace})

    def for_sid(self, sid, event=None):
        return [s['payload'] for s in self.sent
                if s['to'] == sid and (event is None or s['event'] == event)]

    def names_for(self, sid):
        return [s['event'] for s in self.sent if s['to'] == sid]

    def clear(self):
        self.sent.clear()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def rng():
    return ScriptedRandom()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def service(emitter, rng, clock):
    svc = MatchService(Broadcaster(emitter, namespace=NAMESPACE), rng=rng, clock=clock)
    for sid in ('s1', 's2', 's3', 's4', 's5'):
        svc.connect(sid)
    return svc


@pytest.fixture()
def flask_app(rng):
    application = create_app(TestConfig, rng=rng)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE
        )
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()
