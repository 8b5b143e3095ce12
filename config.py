"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os
from datetime import timedelta


class Config:
    """Base configuration class with common settings."""

    # Secret key for session management and CSRF protection
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Key-value store (Upstash / Vercel KV REST dialect)
    KV_BACKEND = os.environ.get('KV_BACKEND', 'rest')
    KV_REST_API_URL = os.environ.get('KV_REST_API_URL')
    KV_REST_API_TOKEN = os.environ.get('KV_REST_API_TOKEN')
    KV_TIMEOUT_SECONDS = float(os.environ.get('KV_TIMEOUT_SECONDS', 10))

    # Well-known store keys (deployment constants, never user input)
    STATE_KEY = os.environ.get('STATE_KEY', 'coralclub:state')
    REV_KEY = os.environ.get('REV_KEY', 'coralclub:rev')
    LOCAL_STATE_KEY = 'coralclub:localState'

    # Reservation holds and map defaults
    HOLD_MINUTES = int(os.environ.get('HOLD_MINUTES', 15))
    DEFAULT_TENT_COUNT = 20
    MAX_TENT_COUNT = 500
    MAX_LOG_ENTRIES = 100

    # Sync client
    POLL_INTERVAL_SECONDS = float(os.environ.get('POLL_INTERVAL_SECONDS', 1.5))
    GATEWAY_TIMEOUT_SECONDS = float(os.environ.get('GATEWAY_TIMEOUT_SECONDS', 10))
    LOCAL_CACHE_PATH = os.environ.get('LOCAL_CACHE_PATH') or 'instance/local_state.json'

    # Admin credential. When set, replaces the PIN stored in the shared document.
    ADMIN_PIN_HASH = os.environ.get('ADMIN_PIN_HASH')

    # Security settings
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600  # CSRF token expires after 1 hour
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    PERMANENT_SESSION_LIFETIME = timedelta(
        hours=int(os.environ.get('SESSION_TIMEOUT_HOURS', 8))
    )

    # Application settings
    APP_NAME = 'Coral Club'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False
    KV_BACKEND = os.environ.get('KV_BACKEND', 'memory')
    SESSION_COOKIE_SECURE = False
    WTF_CSRF_SSL_STRICT = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'true').lower() == 'true'
    WTF_CSRF_SSL_STRICT = SESSION_COOKIE_SECURE

    SECRET_KEY = os.environ.get('SECRET_KEY') or Config.SECRET_KEY

    # URL scheme preference (follows SESSION_COOKIE_SECURE setting)
    PREFERRED_URL_SCHEME = 'https' if SESSION_COOKIE_SECURE else 'http'

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('KV_REST_API_URL') or not os.environ.get('KV_REST_API_TOKEN'):
            raise ValueError("KV_REST_API_URL and KV_REST_API_TOKEN must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    WTF_CSRF_ENABLED = False  # Disable CSRF for tests
    KV_BACKEND = 'memory'
    ADMIN_PIN_HASH = None
    SECRET_KEY = 'test-secret-key'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
