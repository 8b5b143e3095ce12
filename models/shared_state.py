"""
Shared document access and the merge-on-write discipline.

The whole venue state is one JSON document under STATE_KEY. Every write
is a shallow merge: top-level keys of the patch replace the same keys of
the stored document, other keys are kept. A separate counter under
REV_KEY is incremented after every successful write so clients can
detect change by polling it.

There is no locking: concurrent merges to the same top-level key race
and the later write wins.
"""

import logging
from typing import Callable, Optional, Tuple

from flask import current_app

from database import get_kv, build_seed_document
from models.event_log import with_log
from models.reservation import is_bookkeeping_change

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Top-level keys that only an authenticated admin may patch
ADMIN_KEYS = frozenset({'background', 'layout', 'payments', 'security', 'categories'})

# Fields mirrored to a client's local cache
LOCAL_CACHE_FIELDS = ('tents', 'reservations', 'payments', 'background', 'layout', 'security')


class MergeRejected(Exception):
    """Patch touches keys the caller may not write."""

    def __init__(self, keys):
        self.keys = sorted(keys)
        super().__init__(f"Not allowed to write: {', '.join(self.keys)}")


# =============================================================================
# PURE HELPERS
# =============================================================================

def shallow_merge(current: Optional[dict], patch: Optional[dict]) -> dict:
    """
    Replace whole top-level keys of current with those in patch.

    Nested objects are never merged: a patch carrying 'payments' replaces
    the entire payments object.
    """
    merged = dict(current or {})
    for key, value in (patch or {}).items():
        merged[key] = value
    return merged


def minimal_projection(state: Optional[dict]) -> dict:
    """Subset of the document kept in a client's local cache."""
    state = state or {}
    return {field: state.get(field) for field in LOCAL_CACHE_FIELDS if field in state}


def redact(state: Optional[dict]) -> dict:
    """Copy of the document without the admin secret."""
    return {key: value for key, value in (state or {}).items() if key != 'security'}


# =============================================================================
# STORE ACCESS
# =============================================================================

def _keys(state_key: str = None, rev_key: str = None) -> Tuple[str, str]:
    return (
        state_key or current_app.config['STATE_KEY'],
        rev_key or current_app.config['REV_KEY'],
    )


def _read_document(kv, state_key: str) -> dict:
    current = kv.get(state_key)
    if current is None:
        return {}
    if not isinstance(current, dict):
        logger.warning(f'Value at {state_key} is not an object, treating it as empty')
        return {}
    return current


def _commit(kv, state_key: str, rev_key: str, current: dict, patch: dict) -> Tuple[dict, int]:
    merged = shallow_merge(current, patch)
    kv.set(state_key, merged)
    # A failure here leaves the document written with a stale revision
    rev = kv.incr(rev_key)
    logger.debug(f'Merged keys {sorted(patch)} into {state_key}, rev={rev}')
    return merged, rev


def get_state(state_key: str = None) -> Optional[dict]:
    """
    Read the shared document.

    Returns:
        Document dict, or None if absent

    Raises:
        KVError: on store failure
    """
    state_key, _ = _keys(state_key)
    return get_kv().get(state_key)


def get_revision(rev_key: str = None) -> int:
    """
    Read the revision counter (0 if never incremented).

    Raises:
        KVError: on store failure
    """
    _, rev_key = _keys(rev_key=rev_key)
    value = get_kv().get(rev_key)
    return int(value or 0)


def merge_state(patch: dict, state_key: str = None, rev_key: str = None,
                protected_keys=frozenset(), public: bool = False) -> Tuple[dict, int]:
    """
    Read, shallow-merge patch, write back and bump the revision counter.

    Args:
        patch: Top-level fields to replace
        state_key: Document key (defaults to STATE_KEY)
        rev_key: Counter key (defaults to REV_KEY)
        protected_keys: Keys the caller may not write once the document exists
        public: Caller is not an admin; tent changes are limited to what
            reserving and expiring holds produce

    Returns:
        Tuple of (merged document, new revision)

    Raises:
        KVError: on store failure
        MergeRejected: if patch touches protected_keys of an existing document,
            or a public patch changes tents beyond hold bookkeeping
    """
    state_key, rev_key = _keys(state_key, rev_key)
    kv = get_kv()
    current = _read_document(kv, state_key)

    touched = set(protected_keys) & set(patch)
    if current and touched:
        raise MergeRejected(touched)
    if current and public and not is_bookkeeping_change(current, patch):
        raise MergeRejected(['tents'])

    return _commit(kv, state_key, rev_key, current, patch)


def mutate_state(build_patch: Callable[[dict], Optional[dict]],
                 log_message: str = None) -> Tuple[dict, Optional[int]]:
    """
    Build a patch against the freshly read document and merge it.

    Args:
        build_patch: Called with the current document; returns a patch or
            None for no change. Domain errors it raises propagate.
        log_message: Optional event recorded in 'logs' within the same patch

    Returns:
        Tuple of (document, new revision); revision is None when nothing changed
    """
    state_key, rev_key = _keys()
    kv = get_kv()
    current = _read_document(kv, state_key)

    patch = build_patch(current)
    if patch is None:
        return current, None

    patch = with_log(current, patch, log_message,
                     max_entries=current_app.config.get('MAX_LOG_ENTRIES', 100))
    return _commit(kv, state_key, rev_key, current, patch)


def ensure_seeded(count: int = None, force: bool = False) -> Tuple[dict, Optional[int], bool]:
    """
    Write the default document if the store holds none.

    Args:
        count: Tent count for the default grid
        force: Overwrite an existing document

    Returns:
        Tuple of (document, revision or None, created flag)
    """
    state_key, rev_key = _keys()
    kv = get_kv()
    current = _read_document(kv, state_key)
    if current and not force:
        return current, None, False

    count = count or current_app.config.get('DEFAULT_TENT_COUNT', 20)
    seed = build_seed_document(count)
    # Full replacement: write the seed as a patch over an empty document
    merged, rev = _commit(kv, state_key, rev_key, {}, seed)
    logger.info(f'Seeded shared document with {count} tents (rev={rev})')
    return merged, rev, True
