"""
Tests for the public JSON API.
"""

from datetime import timedelta

from models.shared_state import get_state, merge_state
from models.tent import find_tent
from utils.datetime_helpers import get_now, to_iso


class TestHealth:

    def test_health_check(self, client):
        """Health check works without a store or a session."""
        response = client.get('/api/health')
        data = response.get_json()

        assert response.status_code == 200
        assert data['status'] == 'ok'
        assert data['version'] == '1.0.0'


class TestState:

    def test_state(self, seeded_app, client):
        data = client.get('/api/state').get_json()

        assert data['success'] is True
        assert data['rev'] == 1
        assert len(data['data']['tents']) == 4
        assert 'security' not in data['data']
        assert data['counts'] == {'available': 4, 'pending': 0, 'occupied': 0, 'blocked': 0}

    def test_state_empty_store(self, client):
        data = client.get('/api/state').get_json()
        assert data['data'] == {'tents': []}
        assert data['rev'] == 0

    def test_state_normalizes_legacy_codes(self, app, client):
        with app.app_context():
            merge_state({'tents': [{'id': 1, 'x': 0.5, 'y': 0.5, 'state': 'oc', 'price': 0}]})

        data = client.get('/api/state').get_json()
        assert data['data']['tents'][0]['state'] == 'occupied'

    def test_store_unavailable(self, broken_store, client):
        response = client.get('/api/state')
        assert response.status_code == 503
        assert response.get_json()['success'] is False


class TestReserve:

    def test_reserve(self, seeded_app, client):
        response = client.post('/api/tents/2/reserve')
        data = response.get_json()

        assert response.status_code == 200
        assert data['data']['tentId'] == 2
        assert data['data']['status'] == 'pending'
        assert data['rev'] == 2

        with seeded_app.app_context():
            state = get_state()
        assert find_tent(state['tents'], 2)['state'] == 'pending'
        assert state['reservations'] == [data['data']]
        assert state['logs'][0]['message'] == 'Reservar toldo #2'

    def test_reserve_twice_conflicts(self, seeded_app, client):
        client.post('/api/tents/2/reserve')
        response = client.post('/api/tents/2/reserve')

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Ese toldo no está disponible.'

        with seeded_app.app_context():
            assert len(get_state()['reservations']) == 1

    def test_reserve_missing_tent(self, seeded_app, client):
        assert client.post('/api/tents/99/reserve').status_code == 404

    def test_store_unavailable(self, broken_store, client):
        assert client.post('/api/tents/1/reserve').status_code == 503


class TestExpire:

    def test_nothing_expired(self, seeded_app, client):
        client.post('/api/tents/1/reserve')
        data = client.post('/api/reservations/expire').get_json()
        assert data['data'] == {'expired': 0}
        assert data['rev'] is None

    def test_expires_elapsed_holds(self, seeded_app, client):
        past = get_now() - timedelta(minutes=30)
        with seeded_app.app_context():
            tents = get_state()['tents']
            tents[0]['state'] = 'pending'
            merge_state({
                'tents': tents,
                'reservations': [{
                    'id': '1-1', 'tentId': 1, 'status': 'pending',
                    'createdAt': to_iso(past),
                    'expiresAt': to_iso(past + timedelta(minutes=15)),
                }],
            })

        data = client.post('/api/reservations/expire').get_json()
        assert data['data'] == {'expired': 1}

        with seeded_app.app_context():
            state = get_state()
        assert state['tents'][0]['state'] == 'available'
        assert state['reservations'][0]['status'] == 'expired'


class TestCheckout:

    def test_checkout(self, admin_client):
        admin_client.post('/admin/tents/1/price', json={'price': 30})
        admin_client.post('/admin/payments', json={'whatsappNumber': '4121234567'})

        response = admin_client.post('/api/checkout', json={'tentId': 1})
        data = response.get_json()['data']

        assert data['total'] == 30.0
        assert data['whatsappUrl'].startswith('https://wa.me/584121234567?text=')

    def test_checkout_unknown_tent(self, seeded_app, client):
        assert client.post('/api/checkout', json={'tentId': 42}).status_code == 404

    def test_checkout_requires_json(self, seeded_app, client):
        assert client.post('/api/checkout', data='x').status_code == 400
