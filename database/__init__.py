"""
Database package for Coral Club.

This package provides the key-value store layer:
- connection: Store client lifecycle (init_kv, get_kv)
- kv_client: REST and in-memory store clients
- seed: Default shared document

For convenience, the main functions are re-exported from this module.
"""

from database.connection import init_kv, get_kv
from database.kv_client import KVClient, MemoryKVClient, KVError, create_kv_client
from database.seed import build_seed_document

__all__ = [
    # Connection
    'init_kv',
    'get_kv',
    # Clients
    'KVClient',
    'MemoryKVClient',
    'KVError',
    'create_kv_client',
    # Seed
    'build_seed_document',
]
