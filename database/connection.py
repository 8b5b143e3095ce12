"""
Key-value store connection management.
One client per application, shared by all requests.
"""

from flask import current_app

from database.kv_client import create_kv_client


def init_kv(app):
    """
    Attach a store client to the application.

    Args:
        app: Flask application
    """
    app.extensions['kv'] = create_kv_client(app.config)


def get_kv():
    """
    Get the application's key-value store client.

    Returns:
        KVClient or MemoryKVClient
    """
    return current_app.extensions['kv']
