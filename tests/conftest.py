from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from firebase_admin import auth as firebase_auth

from config import TestConfig
from educentral import create_app, firebase_init
from educentral.decorators import CurrentUser
from tests.fakes import FakeBucket, FakeFirestore


@pytest.fixture(scope='session')
def faker_locale():
    return ['id_ID']


@pytest.fixture
def db(monkeypatch):
    fake = FakeFirestore()
    monkeypatch.setattr(firebase_init, '_app', object())
    monkeypatch.setattr(firebase_init, '_db', fake)
    monkeypatch.setattr(firebase_init, '_bucket', None)
    return fake


@pytest.fixture
def bucket(db, monkeypatch):
    fake = FakeBucket()
    monkeypatch.setattr(firebase_init, '_bucket', fake)
    return fake


@pytest.fixture
def app(db):
    return create_app(TestConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client, db, monkeypatch):
    """Put a session cookie for ``uid`` into the test client's session."""

    def verify(cookie, check_revoked=False):
        if not cookie.startswith('session-'):
            raise firebase_auth.InvalidSessionCookieError('invalid session cookie')
        return {'uid': cookie[len('session-'):]}

    monkeypatch.setattr(firebase_auth, 'verify_session_cookie', verify)

    def _login(uid, **profile):
        db.seed('users', uid, uid=uid, **profile)
        with client.session_transaction() as sess:
            sess['firebase_session'] = f'session-{uid}'
        return uid

    return _login


@pytest.fixture
def make_user():
    def _make(uid, role, **data):
        return CurrentUser(dict(data, uid=uid, id=uid, role=role))
    return _make


class FakeAuth:
    """Records the firebase_admin.auth calls made by the user services."""

    def __init__(self):
        self.created = []
        self.deleted = []
        self.updated = []
        self.existing_emails = set()
        self.missing_uids = set()
        self._next = 0

    def create_user(self, email=None, password=None, display_name=None, app=None):
        if email in self.existing_emails:
            raise firebase_auth.EmailAlreadyExistsError('EMAIL_EXISTS', None, None)
        self._next += 1
        uid = f'uid-{self._next}'
        self.created.append({'uid': uid, 'email': email, 'password': password,
                             'display_name': display_name, 'app': app})
        self.existing_emails.add(email)
        return SimpleNamespace(uid=uid, email=email)

    def delete_user(self, uid, app=None):
        if uid in self.missing_uids:
            raise firebase_auth.UserNotFoundError('USER_NOT_FOUND')
        self.deleted.append((uid, app))

    def update_user(self, uid, **kwargs):
        self.updated.append((uid, kwargs))


@pytest.fixture
def fake_auth(monkeypatch):
    fake = FakeAuth()
    for name in ('create_user', 'delete_user', 'update_user'):
        monkeypatch.setattr(firebase_auth, name, getattr(fake, name))
    return fake


@pytest.fixture
def secondary_apps(monkeypatch):
    """Replace the secondary Firebase app with a recorder of its lifecycle."""
    events = []

    @contextmanager
    def fake_secondary_app():
        app = SimpleNamespace(name=f'secondary-{len(events)}')
        events.append(('init', app.name))
        try:
            yield app
        finally:
            events.append(('delete', app.name))

    monkeypatch.setattr(firebase_init, 'secondary_app', fake_secondary_app)
    return events
