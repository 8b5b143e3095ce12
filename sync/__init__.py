"""
Client synchronization package.

- gateway_client: HTTP access to the key-value gateway
- local_cache: File mirror of the minimal document projection
- document: The engine-owned in-memory document
- engine: Boot, polling, write path with local fallback, hold expiry
"""

from sync.document import SharedDocument
from sync.engine import SyncEngine
from sync.gateway_client import GatewayClient, MergeUnauthorized
from sync.local_cache import LocalCache

__all__ = [
    'GatewayClient',
    'LocalCache',
    'MergeUnauthorized',
    'SharedDocument',
    'SyncEngine',
]
