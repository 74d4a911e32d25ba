import uuid
from datetime import datetime, timezone
from functools import wraps

import pytest
from flask import g

# Patch auth decorators BEFORE importing create_app, so blueprints
# are registered with the mocked versions.
import analytics_service.middleware.auth as auth_module

TEST_USER_ID = '9b2f6a3e-1c4d-4e8a-9f00-5d7c2b1a0e11'
OTHER_USER_ID = '4e1d0c9b-8a7f-4b6e-a5d4-c3b2a1908f77'
TEST_TOKEN = 'test-token'

_original_require_auth = auth_module.require_auth
_original_require_admin = auth_module.require_admin


def _mock_require_auth(f):
    """Mock require_auth: skip JWT validation, set g.user_id to test UUID."""
    @wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = TEST_USER_ID
        g.auth_token = TEST_TOKEN
        g.jwt_payload = {'sub': TEST_USER_ID, 'email': 'test@example.com'}
        return f(*args, **kwargs)
    return decorated


def _mock_require_admin(f):
    """Mock require_admin: same as require_auth, with the admin role."""
    @wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = TEST_USER_ID
        g.auth_token = TEST_TOKEN
        g.jwt_payload = {'sub': TEST_USER_ID, 'roles': ['ADMIN']}
        return f(*args, **kwargs)
    return decorated


# Apply patches before any blueprint imports
auth_module.require_auth = _mock_require_auth
auth_module.require_admin = _mock_require_admin

from analytics_service import create_app
from analytics_service.config import TestConfig
from analytics_service.extensions import db as _db
from analytics_service.gateways import build_gateways
from analytics_service.gateways.circuit_breaker import reset_all_breakers
from analytics_service.models import History

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake upstreams
# ---------------------------------------------------------------------------

def envelope(data, message='Success'):
    """A successful upstream response body."""
    return {'success': True, 'code': 200, 'message': message, 'data': data}


def not_found(message='Not found'):
    return {'success': False, 'code': 404, 'message': message, 'data': None}


class FakeTransport:
    """Stands in for HttpTransport: scripted by (method, path).

    A route maps to ``(status, body)``, to an exception instance to raise,
    or to a callable ``(params, json) -> (status, body)``. Unscripted
    routes answer 404 with an error envelope.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, status=200, body=None):
        self.routes[(method, path)] = (status, body)

    def ok(self, method, path, data):
        self.on(method, path, 200, envelope(data))

    def fail(self, method, path, error):
        self.routes[(method, path)] = error

    def respond(self, method, path, responder):
        self.routes[(method, path)] = responder

    def calls_to(self, path):
        return [call for call in self.calls if call[1] == path]

    def request(self, method, path, params=None, json=None):
        self.calls.append((method, path, params, json))
        route = self.routes.get((method, path))
        if route is None:
            return 404, not_found()
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(params, json)
        return route


class Upstreams:
    def __init__(self):
        self.user = FakeTransport()
        self.content = FakeTransport()
        self.engagement = FakeTransport()
        self.gamification = FakeTransport()

    def gateways(self, config):
        by_url = {
            config['USER_SERVICE_URL']: self.user,
            config['CONTENT_SERVICE_URL']: self.content,
            config['ENGAGEMENT_SERVICE_URL']: self.engagement,
            config['GAMIFICATION_SERVICE_URL']: self.gamification,
        }
        return build_gateways(config, transport_factory=by_url.__getitem__)


NOVELS = {
    42: {
        'id': 42, 'title': 'Coiling Dragon', 'authorUsername': 'iet',
        'categoryId': 1, 'categoryName': 'Fantasy', 'synopsis': 'A ring.',
        'coverImgUrl': 'https://cdn.example.com/42.jpg', 'avgRating': 4.5,
        'chapterCnt': 806, 'wordCnt': 2100000, 'viewCnt': 9000, 'voteCnt': 120,
    },
    43: {
        'id': 43, 'title': 'Desolate Era', 'authorUsername': 'iet',
        'categoryId': 1, 'categoryName': 'Fantasy', 'avgRating': 4.2,
        'chapterCnt': 700, 'wordCnt': 1800000, 'viewCnt': 5000, 'voteCnt': 80,
    },
    44: {
        'id': 44, 'title': 'Lord of Mysteries', 'authorUsername': 'cuttlefish',
        'categoryId': 2, 'categoryName': 'Mystery', 'avgRating': 4.9,
        'chapterCnt': 1432, 'wordCnt': 4400000, 'viewCnt': 20000, 'voteCnt': 900,
    },
}

CHAPTERS = {
    3: {'id': 3, 'novelId': 42, 'chapterNumber': 3, 'title': 'Chapter 3'},
    7: {'id': 7, 'novelId': 42, 'chapterNumber': 7, 'title': 'Chapter 7'},
    11: {'id': 11, 'novelId': 43, 'chapterNumber': 1, 'title': 'Chapter 1'},
    21: {'id': 21, 'novelId': 44, 'chapterNumber': 1, 'title': 'Chapter 1'},
}


def _batch_responder(catalog):
    """Answer a batch lookup with the known items, in reverse request order."""
    def respond(params, json):
        found = [catalog[item_id] for item_id in reversed(json or []) if item_id in catalog]
        return 200, envelope(found)
    return respond


def serve_catalog(upstreams, user_ids=(TEST_USER_ID,)):
    """Script the content and user upstreams with NOVELS, CHAPTERS and users."""
    for novel_id, novel in NOVELS.items():
        upstreams.content.ok('GET', f'/api/v1/novels/{novel_id}', novel)
    upstreams.content.respond('POST', '/api/v1/novels/batch/get', _batch_responder(NOVELS))
    upstreams.content.respond('POST', '/api/v1/chapters/batch/get', _batch_responder(CHAPTERS))
    for user_id in user_ids:
        upstreams.user.ok('GET', f'/api/v1/users/{user_id}', {'uuid': user_id, 'username': 'reader'})


class FakeClock:
    def __init__(self, now=FIXED_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


def seed_history(user_id, novel_id, chapter_id, update_time, create_time=None):
    record = History(
        uuid=str(uuid.uuid4()),
        user_id=user_id,
        novel_id=novel_id,
        chapter_id=chapter_id,
        create_time=create_time or update_time,
        update_time=update_time,
    )
    _db.session.add(record)
    _db.session.commit()
    return record


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fresh_breakers():
    """Breakers are process-wide; start every test with closed ones."""
    reset_all_breakers()
    yield
    reset_all_breakers()


@pytest.fixture
def upstreams():
    return Upstreams()


@pytest.fixture
def app(upstreams):
    """Create a test Flask application with SQLite in-memory database."""
    application = create_app(TestConfig)
    application.extensions['gateways'] = upstreams.gateways(application.config)

    with application.app_context():
        _db.create_all()

        yield application

        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def gateways(app):
    return app.extensions['gateways']


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(app):
    """Create a test client with mocked JWT auth."""
    with app.test_client() as test_client:
        yield test_client
