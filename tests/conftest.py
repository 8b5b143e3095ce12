"""
Pytest configuration and fixtures.
Every test app gets its own in-memory key-value store.
"""

import os
from urllib.parse import urlsplit

import pytest
import requests

os.environ.setdefault('FLASK_ENV', 'test')


class StubResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError('No JSON body')
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


class FlaskTransport:
    """
    requests.Session-compatible adapter over a Flask test client,
    so GatewayClient talks to the real gateway routes.
    """

    def __init__(self, client):
        self.client = client
        self.online = True

    def _check(self):
        if not self.online:
            raise requests.ConnectionError('gateway unreachable')

    def get(self, url, params=None, headers=None, timeout=None):
        self._check()
        response = self.client.get(urlsplit(url).path, query_string=params, headers=headers)
        return StubResponse(response.status_code, response.get_json(silent=True))

    def post(self, url, json=None, headers=None, timeout=None):
        self._check()
        response = self.client.post(urlsplit(url).path, json=json, headers=headers)
        return StubResponse(response.status_code, response.get_json(silent=True))


class BrokenKV:
    """Store client whose every call fails."""

    configured = True

    def _fail(self, *args, **kwargs):
        from database import KVError
        raise KVError('store unavailable')

    get = set = incr = _fail


@pytest.fixture
def app():
    """Create test application with an isolated in-memory store."""
    from app import create_app

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False

    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def seeded_app(app):
    """Application whose store holds a seed document with 4 tents."""
    from models.shared_state import ensure_seeded

    with app.app_context():
        ensure_seeded(count=4)
    return app


@pytest.fixture
def admin_client(seeded_app):
    """Test client with an admin session (default PIN)."""
    client = seeded_app.test_client()
    response = client.post('/admin/login', json={'pin': '1234'})
    assert response.status_code == 200
    return client


@pytest.fixture
def broken_store(app):
    """Replace the store client with one that always fails."""
    previous = app.extensions['kv']
    app.extensions['kv'] = BrokenKV()
    yield app
    app.extensions['kv'] = previous


@pytest.fixture
def transport(app):
    """Flask-backed transport for GatewayClient."""
    return FlaskTransport(app.test_client())


@pytest.fixture
def gateway(app, transport):
    """GatewayClient wired to the test application."""
    from sync import GatewayClient

    return GatewayClient(
        'http://gateway.test',
        state_key=app.config['STATE_KEY'],
        rev_key=app.config['REV_KEY'],
        session=transport
    )


@pytest.fixture
def local_cache(tmp_path):
    """LocalCache in a temporary directory."""
    from sync import LocalCache

    return LocalCache(str(tmp_path / 'local_state.json'))
