"""
Test application factory, configuration and CLI commands.
"""

import json

import pytest
from app import create_app
from config import ProductionConfig


class TestAppFactory:
    """Test Flask application factory."""

    def test_create_app_development(self):
        """Test app creation with development config."""
        app = create_app('development')
        assert app is not None
        assert app.config['DEBUG'] is True
        assert app.config['TESTING'] is False

    def test_create_app_test(self):
        """Test app creation with test config."""
        app = create_app('test')
        assert app is not None
        assert app.config['TESTING'] is True
        assert app.config['WTF_CSRF_ENABLED'] is False
        assert app.config['KV_BACKEND'] == 'memory'

    def test_create_app_default(self):
        """Test app creation with default config."""
        app = create_app()
        assert app is not None

    def test_app_has_blueprints(self):
        """Test that all blueprints are registered."""
        app = create_app('test')
        blueprint_names = list(app.blueprints.keys())

        assert 'auth' in blueprint_names
        assert 'admin' in blueprint_names
        assert 'api' in blueprint_names
        assert 'kv' in blueprint_names

    def test_app_has_extensions(self):
        """Test that extensions are initialized."""
        app = create_app('test')

        assert hasattr(app, 'login_manager')
        assert 'kv' in app.extensions

    def test_apps_do_not_share_store(self):
        """Each test app gets its own in-memory store."""
        first, second = create_app('test'), create_app('test')
        first.extensions['kv'].set('k', 1)
        assert second.extensions['kv'].get('k') is None


class TestAppConfiguration:
    """Test application configuration."""

    def test_secret_key_set(self):
        """Test that secret key is configured."""
        app = create_app('test')
        assert app.config['SECRET_KEY'] is not None
        assert len(app.config['SECRET_KEY']) > 0

    def test_store_keys_set(self):
        """Test that store keys are configured."""
        app = create_app('test')
        assert app.config['STATE_KEY'] == 'coralclub:state'
        assert app.config['REV_KEY'] == 'coralclub:rev'
        assert app.config['HOLD_MINUTES'] == 15

    def test_app_name_set(self):
        """Test that app name is configured."""
        app = create_app('test')
        assert app.config.get('APP_NAME') == 'Coral Club'

    def test_production_requires_store(self, monkeypatch):
        """Production refuses to start without store credentials."""
        monkeypatch.setenv('SECRET_KEY', 'x' * 40)
        monkeypatch.delenv('KV_REST_API_URL', raising=False)
        with pytest.raises(ValueError):
            ProductionConfig.validate()

        monkeypatch.setenv('KV_REST_API_URL', 'https://kv.example.com')
        monkeypatch.setenv('KV_REST_API_TOKEN', 'token')
        ProductionConfig.validate()


class TestErrorHandlers:

    def test_unknown_route(self, client):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json()['success'] is False


class TestCLICommands:
    """Test CLI commands."""

    def test_cli_commands_registered(self):
        """Test that CLI commands are registered."""
        app = create_app('test')

        commands = list(app.cli.commands.keys())

        assert 'seed-state' in commands
        assert 'sweep-holds' in commands
        assert 'show-state' in commands
        assert 'sync-client' in commands

    def test_seed_state(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['seed-state', '--count', '6'])
        assert 'created with 6 tents' in result.output

        result = runner.invoke(args=['seed-state'])
        assert 'already exists' in result.output

        result = runner.invoke(args=['seed-state', '--count', '3', '--force'])
        assert 'created with 3 tents' in result.output

    def test_show_state(self, seeded_app):
        result = seeded_app.test_cli_runner().invoke(args=['show-state'])

        assert result.output.startswith('rev: 1')
        document = json.loads(result.output.split('\n', 1)[1])
        assert len(document['tents']) == 4

    def test_sweep_holds_nothing(self, seeded_app):
        result = seeded_app.test_cli_runner().invoke(args=['sweep-holds'])
        assert 'No expired holds' in result.output

    def test_seed_state_store_failure(self, broken_store):
        result = broken_store.test_cli_runner().invoke(args=['seed-state'])
        assert result.exit_code == 1
