"""
Local cache of the shared document.

A JSON file mapping string keys to JSON-encoded strings, the way browser
local storage holds them. Only the minimal projection of the document is
kept. Storage errors never reach the caller.
"""

import contextlib
import json
import logging
import os
import tempfile
from typing import Optional

from models.shared_state import minimal_projection

logger = logging.getLogger(__name__)


class LocalCache:
    """
    File-backed mirror of the minimal document projection.

    Args:
        path: Cache file
        key: Entry holding this venue's projection
    """

    def __init__(self, path: str, key: str = 'coralclub:localState'):
        self.path = path
        self.key = key

    def _load_file(self) -> dict:
        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        return data if isinstance(data, dict) else {}

    def read(self) -> Optional[dict]:
        """
        Read the cached projection.

        Returns:
            Projection dict, or None if absent or unreadable
        """
        try:
            raw = self._load_file().get(self.key)
            if raw is None:
                return None
            cached = json.loads(raw) if isinstance(raw, str) else raw
        except (OSError, ValueError) as e:
            logger.debug(f'Ignoring unreadable local cache {self.path}: {e}')
            return None
        return cached if isinstance(cached, dict) else None

    def write(self, state: dict) -> bool:
        """
        Persist the minimal projection of state.

        Returns:
            True if written
        """
        tmp_path = None
        try:
            try:
                data = self._load_file()
            except ValueError:
                data = {}
            data[self.key] = json.dumps(minimal_projection(state))

            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            logger.debug(f'Local cache write failed: {e}')
            return False
        finally:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.remove(tmp_path)
        return True

