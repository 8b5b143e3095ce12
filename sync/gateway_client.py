"""
HTTP client for the key-value gateway.

Every call returns None on any failure (network error, timeout, non-JSON
body, ok=false); the engine treats None as "no result". The one exception
is a merge the gateway refuses for lack of admin rights (HTTP 401), which
raises MergeUnauthorized: that is an answer, not an outage.
"""

import logging
from typing import Any, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

STATE_KEY = 'coralclub:state'
REV_KEY = 'coralclub:rev'


class MergeUnauthorized(Exception):
    """The gateway refused a patch that needs an admin session."""


class GatewayClient:
    """
    Client for /api/kv-get and /api/kv-merge, plus admin login.

    Args:
        base_url: Gateway root, e.g. 'http://localhost:8000'
        state_key: Shared document key
        rev_key: Revision counter key
        timeout: Per-request timeout in seconds (None waits indefinitely)
        session: requests.Session (or compatible object) holding cookies
    """

    def __init__(self, base_url: str, state_key: str = STATE_KEY, rev_key: str = REV_KEY,
                 timeout: float = None, session=None):
        self.base_url = base_url.rstrip('/')
        self.state_key = state_key
        self.rev_key = rev_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f'{self.base_url}{path}'

    def _json(self, response) -> Optional[dict]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    def kv_get(self, key: str) -> Any:
        """Value at key, or None when absent or on failure."""
        try:
            response = self.session.get(
                self._url('/api/kv-get'), params={'key': key}, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.debug(f'kv-get {key} failed: {e}')
            return None

        body = self._json(response)
        if not body or not body.get('ok'):
            logger.debug(f'kv-get {key} returned no result')
            return None
        return body.get('result')

    def get_state(self) -> Optional[dict]:
        """The shared document, or None."""
        state = self.kv_get(self.state_key)
        return state if isinstance(state, dict) else None

    def get_revision(self) -> Optional[int]:
        """The revision counter, or None."""
        value = self.kv_get(self.rev_key)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def merge(self, patch: dict) -> Optional[Tuple[dict, Optional[int]]]:
        """
        Shallow-merge patch into the shared document.

        Returns:
            Tuple of (merged document, new revision), or None on failure

        Raises:
            MergeUnauthorized: the patch needs an admin session
        """
        try:
            response = self.session.post(
                self._url('/api/kv-merge'),
                json={'stateKey': self.state_key, 'patch': patch, 'revKey': self.rev_key},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.debug(f'kv-merge failed: {e}')
            return None

        body = self._json(response)
        if response.status_code == 401:
            raise MergeUnauthorized((body or {}).get('error') or 'unauthorized')
        if not body or not body.get('ok') or not isinstance(body.get('state'), dict):
            logger.debug(f"kv-merge rejected: {(body or {}).get('error')}")
            return None

        rev = body.get('rev')
        return body['state'], int(rev) if rev is not None else None

    def login(self, pin: str) -> bool:
        """
        Open an admin session (cookie kept on the session object).

        Returns:
            True if the PIN was accepted
        """
        try:
            token_response = self.session.get(self._url('/admin/csrf-token'), timeout=self.timeout)
            token = ((self._json(token_response) or {}).get('data') or {}).get('csrfToken')
            headers = {'X-CSRFToken': token} if token else {}
            response = self.session.post(
                self._url('/admin/login'), json={'pin': pin}, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f'Admin login failed: {e}')
            return False

        body = self._json(response) or {}
        return response.status_code == 200 and bool(body.get('success'))
