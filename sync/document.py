"""
In-memory shared document owned by one sync engine.
"""

import copy
import threading
from typing import Any, Optional

from models.shared_state import shallow_merge


class SharedDocument:
    """
    The client's copy of the shared document and the last revision seen.

    Readers get deep copies; all writes go through replace(), merge_local()
    or update_in_memory().
    """

    def __init__(self, data: dict = None, revision: Optional[int] = None):
        self._data = copy.deepcopy(data or {})
        self.revision = revision
        self._lock = threading.RLock()

    @property
    def data(self) -> dict:
        """Deep copy of the current document."""
        with self._lock:
            return copy.deepcopy(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(key, default))

    def replace(self, state: dict, revision: Optional[int]) -> None:
        """Adopt a server copy wholesale."""
        with self._lock:
            self._data = copy.deepcopy(state)
            self.revision = revision

    def merge_local(self, patch: dict) -> int:
        """
        Shallow-merge patch without the server and advance the local
        revision token.

        Returns:
            New local revision
        """
        with self._lock:
            self._data = shallow_merge(self._data, copy.deepcopy(patch))
            self.revision = (self.revision or 0) + 1
            return self.revision

    def update_in_memory(self, patch: dict) -> None:
        """Shallow-merge patch for display only; the revision is unchanged."""
        with self._lock:
            self._data = shallow_merge(self._data, copy.deepcopy(patch))
