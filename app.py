"""
Coral Club - Tent Reservation Gateway
Flask application factory and initialization
"""

import os
import json
import click
import logging
from flask import Flask, request
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager, csrf

# Import store functions
from database import init_kv, KVError


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Fail fast on missing production settings
    if config_name == 'production':
        config[config_name].validate()

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions and the store client."""
    # Initialize Flask-Login
    login_manager.init_app(app)
    # Initialize CSRF Protection
    csrf.init_app(app)
    # Key-value store client
    init_kv(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.auth.routes import auth_bp
    from blueprints.admin.routes import admin_bp
    from blueprints.api.routes import api_bp
    from blueprints.kv.routes import kv_bp

    # Public JSON endpoints carry no session-changing forms
    csrf.exempt(api_bp)
    csrf.exempt(kv_bp)

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/admin')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(kv_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register JSON error handlers."""
    from utils.api_response import api_error, kv_error
    from utils.messages import MESSAGES

    def _is_gateway_request():
        return request.path.startswith('/api/kv-')

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error(MESSAGES['not_found'], 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        if _is_gateway_request():
            return kv_error(MESSAGES['method_not_allowed'], 405)
        return api_error(MESSAGES['method_not_allowed'], 405)

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        if _is_gateway_request():
            return kv_error(MESSAGES['server_error'], 200)
        return api_error(MESSAGES['server_error'], 500)


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('seed-state')
    @click.option('--count', type=int, default=None, help='Tents in the default grid')
    @click.option('--force', is_flag=True, help='Overwrite an existing document')
    def seed_state_command(count, force):
        """Create the shared document with default data."""
        from models.shared_state import ensure_seeded

        with app.app_context():
            try:
                state, rev, created = ensure_seeded(count=count, force=force)
            except KVError as e:
                click.echo(f'Error seeding state: {e}', err=True)
                raise SystemExit(1)

        if created:
            click.echo(f"Shared document created with {len(state['tents'])} tents (rev {rev})")
        else:
            click.echo('Shared document already exists (use --force to overwrite)')

    @app.cli.command('sweep-holds')
    def sweep_holds_command():
        """Expire reservation holds past their window."""
        from models.reservation import expire_holds
        from models.shared_state import mutate_state
        from utils.messages import MESSAGES

        with app.app_context():
            try:
                _, rev = mutate_state(expire_holds, MESSAGES['log_expire'])
            except KVError as e:
                click.echo(f'Error sweeping holds: {e}', err=True)
                raise SystemExit(1)

        if rev is None:
            click.echo('No expired holds')
        else:
            click.echo(f'Expired holds released (rev {rev})')

    @app.cli.command('show-state')
    def show_state_command():
        """Print the shared document and revision."""
        from models.shared_state import get_state, get_revision

        with app.app_context():
            try:
                state = get_state()
                rev = get_revision()
            except KVError as e:
                click.echo(f'Error reading state: {e}', err=True)
                raise SystemExit(1)

        click.echo(f'rev: {rev}')
        click.echo(json.dumps(state, indent=2, ensure_ascii=False))

    @app.cli.command('sync-client')
    @click.option('--base-url', required=True, help='Gateway base URL, e.g. http://localhost:8000')
    @click.option('--interval', type=float, default=None, help='Polling interval in seconds')
    @click.option('--cache', 'cache_path', default=None, help='Local cache file')
    @click.option('--pin', default=None, help='Admin PIN (enables admin-only patches)')
    def sync_client_command(base_url, interval, cache_path, pin):
        """Run a headless sync client until interrupted."""
        from sync import GatewayClient, LocalCache, SyncEngine

        gateway = GatewayClient(
            base_url,
            state_key=app.config['STATE_KEY'],
            rev_key=app.config['REV_KEY'],
            timeout=app.config['GATEWAY_TIMEOUT_SECONDS']
        )
        if pin and not gateway.login(pin):
            click.echo('Admin login failed, continuing without admin session', err=True)

        engine = SyncEngine(
            gateway,
            LocalCache(cache_path or app.config['LOCAL_CACHE_PATH'], app.config['LOCAL_STATE_KEY']),
            poll_interval=interval or app.config['POLL_INTERVAL_SECONDS'],
            hold_minutes=app.config['HOLD_MINUTES'],
            default_count=app.config['DEFAULT_TENT_COUNT'],
            max_log_entries=app.config['MAX_LOG_ENTRIES']
        )
        engine.boot()
        click.echo(f'Sync client running against {base_url} (Ctrl+C to stop)')
        try:
            engine.run_forever()
        except KeyboardInterrupt:
            engine.stop()
        click.echo(f'Stopped at rev {engine.document.revision}')


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/coralclub.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Coral Club startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
