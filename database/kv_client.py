"""
Key-value store clients.
REST client for the hosted store (Upstash / Vercel KV dialect) and an
in-memory store with the same surface for development and tests.
"""

import json
import logging
import threading
from typing import Any, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class KVError(Exception):
    """Raised on any transport or store failure."""


class KVClient:
    """
    Client for the hosted key-value store REST interface.

    Values are stored JSON-encoded. Every failure (network error, non-2xx
    status, malformed body, missing configuration) is raised as KVError;
    callers cannot tell "unreachable" from a store-side error.
    """

    def __init__(self, base_url: Optional[str], token: Optional[str],
                 timeout: float = 10.0, session: requests.Session = None):
        self.base_url = (base_url or '').rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.token)

    def _headers(self) -> dict:
        return {'Authorization': f'Bearer {self.token}'}

    def _command(self, command: str, key: str, body: str = None) -> Any:
        if not self.configured:
            raise KVError('KV store is not configured (KV_REST_API_URL / KV_REST_API_TOKEN)')

        url = f'{self.base_url}/{command}/{quote(str(key), safe="")}'
        try:
            if body is None and command == 'get':
                response = self.session.get(url, headers=self._headers(), timeout=self.timeout)
            else:
                headers = self._headers()
                if body is not None:
                    headers['content-type'] = 'application/json'
                response = self.session.post(url, headers=headers, data=body, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise KVError(f'{command} {key}: {e}') from e

        if not isinstance(payload, dict):
            raise KVError(f'{command} {key}: unexpected response body')
        if payload.get('error'):
            raise KVError(f'{command} {key}: {payload["error"]}')
        return payload.get('result')

    def get(self, key: str) -> Any:
        """Return the decoded value at key, or None if the key is absent."""
        raw = self._command('get', key)
        if raw is None:
            return None
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except ValueError:
                return raw
        return raw

    def set(self, key: str, value: Any) -> Any:
        """Unconditionally overwrite key. Returns the stored value."""
        self._command('set', key, body=json.dumps(value))
        return value

    def incr(self, key: str) -> int:
        """Atomically increment the counter at key (missing key counts as 0)."""
        result = self._command('incr', key)
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise KVError(f'incr {key}: non-integer result {result!r}') from e


class MemoryKVClient:
    """
    Process-local store with the KVClient surface.

    Values are copied through JSON on the way in and out so callers never
    share references with the stored document.
    """

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    configured = True

    def get(self, key: str) -> Any:
        with self._lock:
            raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> Any:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise KVError(f'set {key}: value is not JSON serializable') from e
        with self._lock:
            self._data[key] = encoded
        return value

    def incr(self, key: str) -> int:
        with self._lock:
            raw = self._data.get(key)
            current = 0 if raw is None else json.loads(raw)
            if not isinstance(current, int) or isinstance(current, bool):
                raise KVError(f'incr {key}: value is not an integer')
            current += 1
            self._data[key] = json.dumps(current)
        return current


def create_kv_client(app_config) -> Any:
    """
    Build the store client selected by KV_BACKEND.

    Args:
        app_config: Flask config mapping

    Returns:
        KVClient or MemoryKVClient
    """
    backend = app_config.get('KV_BACKEND', 'rest')
    if backend == 'memory':
        logger.info('Using in-memory key-value store')
        return MemoryKVClient()

    client = KVClient(
        app_config.get('KV_REST_API_URL'),
        app_config.get('KV_REST_API_TOKEN'),
        timeout=app_config.get('KV_TIMEOUT_SECONDS', 10.0)
    )
    if not client.configured:
        logger.warning('KV_REST_API_URL / KV_REST_API_TOKEN missing: every store call will fail')
    return client
