"""
Tests for the key-value gateway endpoints.
"""

from datetime import timedelta

import pytest

from models.reservation import reserve, expire_holds
from models.shared_state import get_state, get_revision
from models.tent import set_tent_state, find_tent
from utils.datetime_helpers import get_now

STATE_KEY = 'coralclub:state'
REV_KEY = 'coralclub:rev'


def _merge(client, patch):
    return client.post('/api/kv-merge', json={
        'stateKey': STATE_KEY, 'patch': patch, 'revKey': REV_KEY
    })


class TestKVGet:
    """Tests for /api/kv-get."""

    def test_missing_key_returns_null(self, client):
        response = client.get('/api/kv-get', query_string={'key': STATE_KEY})
        assert response.status_code == 200
        assert response.get_json() == {'ok': True, 'result': None}

    def test_reads_document_without_secret(self, seeded_app, client):
        response = client.get('/api/kv-get', query_string={'key': STATE_KEY})
        data = response.get_json()

        assert data['ok'] is True
        assert len(data['result']['tents']) == 4
        assert 'security' not in data['result']

    def test_admin_sees_secret(self, admin_client):
        data = admin_client.get('/api/kv-get', query_string={'key': STATE_KEY}).get_json()
        assert data['result']['security'] == {'adminPin': '1234'}

    def test_reads_revision(self, seeded_app, client):
        data = client.get('/api/kv-get', query_string={'key': REV_KEY}).get_json()
        assert data == {'ok': True, 'result': 1}

    def test_key_required(self, client):
        data = client.get('/api/kv-get').get_json()
        assert data['ok'] is False

    def test_foreign_key_rejected(self, client):
        data = client.get('/api/kv-get', query_string={'key': 'other:key'}).get_json()
        assert data['ok'] is False

    def test_post_not_allowed(self, client):
        response = client.post('/api/kv-get')
        assert response.status_code == 405
        assert response.get_json()['ok'] is False

    def test_store_failure(self, broken_store, client):
        """Store errors answer 200 with ok=false."""
        response = client.get('/api/kv-get', query_string={'key': STATE_KEY})
        assert response.status_code == 200
        assert response.get_json() == {'ok': False, 'error': 'store unavailable'}


class TestKVSet:
    """Tests for /api/kv-set."""

    def test_requires_admin(self, client):
        response = client.post('/api/kv-set', json={'key': STATE_KEY, 'value': {}})
        assert response.status_code == 401
        assert response.get_json()['ok'] is False

    def test_admin_overwrites(self, admin_client):
        response = admin_client.post('/api/kv-set', json={'key': STATE_KEY, 'value': {'tents': []}})
        assert response.get_json() == {'ok': True, 'result': {'tents': []}}

        data = admin_client.get('/api/kv-get', query_string={'key': STATE_KEY}).get_json()
        assert data['result'] == {'tents': []}

    def test_get_not_allowed(self, client):
        assert client.get('/api/kv-set').status_code == 405


class TestKVIncr:
    """Tests for /api/kv-incr."""

    def test_increments_from_zero(self, client):
        assert client.post('/api/kv-incr', json={'key': REV_KEY}).get_json() == {'ok': True, 'result': 1}
        assert client.post('/api/kv-incr', json={'key': REV_KEY}).get_json() == {'ok': True, 'result': 2}

    def test_key_required(self, client):
        assert client.post('/api/kv-incr', json={}).get_json()['ok'] is False

    def test_store_failure(self, broken_store, client):
        response = client.post('/api/kv-incr', json={'key': REV_KEY})
        assert response.status_code == 200
        assert response.get_json()['ok'] is False


class TestKVMerge:
    """Tests for /api/kv-merge."""

    def test_first_merge_creates_document(self, client):
        """Merging into an empty store seeds it, admin keys included."""
        response = _merge(client, {'tents': [], 'layout': {'count': 0, 'edit': False}})
        data = response.get_json()

        assert data['ok'] is True
        assert data['rev'] == 1
        assert data['state'] == {'tents': [], 'layout': {'count': 0, 'edit': False}}

    def test_replaces_only_patched_keys(self, seeded_app, client):
        before = client.get('/api/kv-get', query_string={'key': STATE_KEY}).get_json()['result']

        data = _merge(client, {'reservations': [{'id': 'x'}]}).get_json()

        assert data['state']['reservations'] == [{'id': 'x'}]
        assert data['state']['tents'] == before['tents']
        assert data['state']['payments'] == before['payments']

    def test_disjoint_patches_both_survive(self, admin_client):
        """Two writers touching different keys never lose each other's data."""
        _merge(admin_client, {'tents': [{'id': 1, 'x': 0.1, 'y': 0.1, 'state': 'pending', 'price': 0}]})
        data = _merge(admin_client, {'reservations': [{'id': '1-1', 'tentId': 1}]}).get_json()

        assert data['state']['tents'][0]['state'] == 'pending'
        assert data['state']['reservations'] == [{'id': '1-1', 'tentId': 1}]

    def test_nested_objects_replaced_whole(self, admin_client):
        data = _merge(admin_client, {'payments': {'currency': 'EUR'}}).get_json()
        assert data['state']['payments'] == {'currency': 'EUR'}

    def test_revision_strictly_increases(self, seeded_app, client):
        revs = [_merge(client, {'reservations': []}).get_json()['rev'] for _ in range(3)]
        assert revs == [2, 3, 4]

        current = client.get('/api/kv-get', query_string={'key': REV_KEY}).get_json()['result']
        assert current == 4

    def test_empty_patch_still_bumps_revision(self, seeded_app, client):
        assert _merge(client, {}).get_json()['rev'] == 2

    @pytest.mark.parametrize('key', ['background', 'layout', 'payments', 'security', 'categories'])
    def test_admin_keys_need_session(self, seeded_app, client, key):
        response = _merge(client, {key: {}})
        assert response.status_code == 401
        assert response.get_json()['ok'] is False

        # Nothing was written
        rev = client.get('/api/kv-get', query_string={'key': REV_KEY}).get_json()['result']
        assert rev == 1

    def test_admin_can_merge_admin_keys(self, admin_client):
        data = _merge(admin_client, {'layout': {'count': 4, 'edit': True}}).get_json()
        assert data['ok'] is True
        assert data['state']['layout']['edit'] is True
        assert data['state']['security'] == {'adminPin': '1234'}

    def test_response_redacted_for_public(self, seeded_app, client):
        data = _merge(client, {'reservations': []}).get_json()
        assert 'security' not in data['state']

    def test_patch_must_be_object(self, client):
        data = _merge(client, ['tents']).get_json()
        assert data['ok'] is False

    def test_foreign_keys_rejected(self, client):
        data = client.post('/api/kv-merge', json={
            'stateKey': 'other:state', 'patch': {}, 'revKey': REV_KEY
        }).get_json()
        assert data['ok'] is False

    def test_store_failure(self, broken_store, client):
        response = _merge(client, {'tents': []})
        assert response.status_code == 200
        assert response.get_json() == {'ok': False, 'error': 'store unavailable'}

    def test_get_not_allowed(self, client):
        response = client.get('/api/kv-merge')
        assert response.status_code == 405
        assert response.get_json()['ok'] is False


class TestKVMergePublicTents:
    """Tent changes accepted without an admin session."""

    def _state(self, app):
        with app.app_context():
            return get_state()

    def test_reserve_patch_accepted(self, seeded_app, client):
        patch, reservation = reserve(self._state(seeded_app), 2)
        data = _merge(client, patch).get_json()

        assert data['ok'] is True
        assert find_tent(data['state']['tents'], 2)['state'] == 'pending'
        assert data['state']['reservations'] == [reservation]

    def test_expiry_patch_accepted(self, seeded_app, client):
        past = get_now() - timedelta(minutes=30)
        patch, _ = reserve(self._state(seeded_app), 2, now=past)
        _merge(client, patch)

        patch = expire_holds(self._state(seeded_app))
        data = _merge(client, patch).get_json()

        assert data['ok'] is True
        assert find_tent(data['state']['tents'], 2)['state'] == 'available'
        assert data['state']['reservations'][0]['status'] == 'expired'

    @pytest.mark.parametrize('field,value', [('price', 50), ('x', 0.9), ('y', 0.05)])
    def test_price_and_position_need_session(self, seeded_app, client, field, value):
        tents = self._state(seeded_app)['tents']
        tents[0][field] = value

        response = _merge(client, {'tents': tents})

        assert response.status_code == 401
        with seeded_app.app_context():
            assert get_revision() == 1
            assert get_state()['tents'][0][field] != value

    @pytest.mark.parametrize('tent_state', ['occupied', 'blocked', 'pending'])
    def test_state_override_needs_session(self, seeded_app, client, tent_state):
        tents = set_tent_state(self._state(seeded_app)['tents'], 3, tent_state)

        response = _merge(client, {'tents': tents})

        assert response.status_code == 401
        assert response.get_json() == {'ok': False, 'error': 'No autorizado'}
        with seeded_app.app_context():
            assert find_tent(get_state()['tents'], 3)['state'] == 'available'

    def test_release_without_expiry_needs_session(self, seeded_app, client):
        patch, _ = reserve(self._state(seeded_app), 2)
        _merge(client, patch)
        tents = set_tent_state(self._state(seeded_app)['tents'], 2, 'available')

        assert _merge(client, {'tents': tents}).status_code == 401

    def test_grid_replacement_needs_session(self, seeded_app, client):
        tents = self._state(seeded_app)['tents'][:2]
        assert _merge(client, {'tents': tents}).status_code == 401

    def test_admin_may_change_tents(self, admin_client, seeded_app):
        tents = self._state(seeded_app)['tents']
        tents[0]['price'] = 50
        tents = set_tent_state(tents, 3, 'blocked')

        data = _merge(admin_client, {'tents': tents}).get_json()

        assert data['ok'] is True
        assert data['state']['tents'][0]['price'] == 50
        assert find_tent(data['state']['tents'], 3)['state'] == 'blocked'
