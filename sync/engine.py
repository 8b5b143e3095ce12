"""
Client-side synchronization engine.

Lifecycle of one client session:

    booting -> seeded | loaded -> polling

- Boot adopts the local cache when present, otherwise the server copy,
  otherwise writes a seed document.
- Polling reads the revision counter every interval; when it differs from
  the last revision seen, the full document is fetched and replaces the
  in-memory copy (the read path trusts the server completely).
- Writes go through the merge endpoint; when it fails the patch is merged
  locally only and the local revision token advances. The failed remote
  write is not retried. A patch the gateway refuses for lack of admin
  rights raises MergeUnauthorized and changes nothing.
- After every change the minimal projection goes to the local cache.
- Each tick also sweeps expired reservation holds and writes the result
  through the same merge path.

All document mutation is serialized by one lock, so the polling thread
and UI-triggered calls never interleave inside a read-modify-write. The
polling reads run outside it; a slow poll never holds up a write.
"""

import logging
import threading
from typing import Callable, Optional

from database.seed import build_seed_document
from models.event_log import with_log, MAX_LOG_ENTRIES
from models.reservation import HOLD_MINUTES, reserve, expire_holds
from models.tent import (
    TENT_AVAILABLE, make_grid, move_tent, position_from_pointer,
    set_tent_state, set_tent_price, normalize_tents, find_tent
)
from models import venue
from sync.document import SharedDocument
from sync.gateway_client import MergeUnauthorized
from utils.datetime_helpers import get_now
from utils.messages import MESSAGES, get_message

logger = logging.getLogger(__name__)

PHASE_BOOTING = 'booting'
PHASE_SEEDED = 'seeded'
PHASE_LOADED = 'loaded'
PHASE_POLLING = 'polling'

# Fields adopted from the local cache at boot
CACHED_FIELDS = ('tents', 'reservations', 'payments', 'background', 'layout', 'security')


class SyncEngine:
    """
    Keeps one client's document converged with the shared store.

    Args:
        gateway: GatewayClient (or compatible)
        cache: LocalCache (or compatible)
        poll_interval: Seconds between revision polls
        hold_minutes: Reservation hold window
        default_count: Tent count for generated grids
        max_log_entries: Cap for the document's logs
        clock: Callable returning the current aware datetime
        on_change: Called with a document snapshot after every change
    """

    def __init__(self, gateway, cache, poll_interval: float = 1.5,
                 hold_minutes: int = HOLD_MINUTES, default_count: int = 20,
                 max_log_entries: int = MAX_LOG_ENTRIES,
                 clock: Callable = None, on_change: Callable[[dict], None] = None):
        self.gateway = gateway
        self.cache = cache
        self.poll_interval = poll_interval
        self.hold_minutes = hold_minutes
        self.default_count = default_count
        self.max_log_entries = max_log_entries
        self.clock = clock or get_now
        self.on_change = on_change

        defaults = build_seed_document(default_count)
        defaults['tents'] = []
        self.document = SharedDocument(defaults)
        self.phase = PHASE_BOOTING

        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread = None
        self._drag = None
        self._drag_origin = None

    # =========================================================================
    # BOOT
    # =========================================================================

    def boot(self) -> str:
        """
        Load the initial document.

        Returns:
            Resulting phase (seeded or loaded)
        """
        with self._lock:
            cached = self.cache.read()
            if cached:
                self._adopt_cached(cached)
                self.phase = PHASE_LOADED
                logger.info('Booted from local cache')
                self._changed()
                return self.phase

            remote = self.gateway.get_state()
            if remote:
                self.document.replace(remote, self.gateway.get_revision())
                self.phase = PHASE_LOADED
                logger.info(f'Booted from server copy (rev={self.document.revision})')
                self._changed()
                return self.phase

            count = (self.document.get('layout') or {}).get('count') or self.default_count
            try:
                self.apply_patch(build_seed_document(count))
            except MergeUnauthorized:
                # A document exists but could not be read; the first poll loads it
                logger.warning('Seed refused by the gateway, waiting for the server copy')
                self.document.update_in_memory(build_seed_document(count))
                self.phase = PHASE_LOADED
                self._changed()
                return self.phase
            self.phase = PHASE_SEEDED
            logger.info(f'Seeded shared document with {count} tents')
            return self.phase

    def _adopt_cached(self, cached: dict) -> None:
        current = self.document.data
        adopted = {field: cached[field] for field in CACHED_FIELDS if field in cached}
        if not adopted.get('tents'):
            count = (adopted.get('layout') or current.get('layout') or {}).get('count')
            adopted['tents'] = current.get('tents') or make_grid(count or self.default_count)
        self.document.update_in_memory(adopted)

    # =========================================================================
    # POLLING
    # =========================================================================

    def tick(self) -> bool:
        """
        One polling step: rehydrate on revision change, then sweep holds.

        Returns:
            True if the document was replaced by the server copy
        """
        rehydrated = False
        seen = self.document.revision
        rev = self.gateway.get_revision()
        if rev is not None and rev != seen and self._drag is None:
            state = self.gateway.get_state()
            if state is not None:
                with self._lock:
                    # A local write or a drag since the fetch wins until the next poll
                    if self.document.revision == seen and self._drag is None:
                        self.document.replace(state, rev)
                        rehydrated = True
                        logger.debug(f'Rehydrated document at rev {rev}')
                        self._changed()
        self.sweep()
        return rehydrated

    def run_forever(self) -> None:
        """Poll until stop() is called."""
        self.phase = PHASE_POLLING
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception('Sync tick failed, retrying next interval')
            self._stop.wait(self.poll_interval)

    def start(self) -> threading.Thread:
        """Run the polling loop in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name='coralclub-sync', daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float = None) -> None:
        """Cancel the polling loop and wait for the thread to finish."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    # =========================================================================
    # WRITE PATH
    # =========================================================================

    def apply_patch(self, patch: dict, log_message: str = None) -> bool:
        """
        Write a patch through the merge endpoint, or locally if that fails.

        Args:
            patch: Top-level fields to replace
            log_message: Optional event added to the document's logs

        Returns:
            True if the server accepted the patch, False for a local-only merge

        Raises:
            MergeUnauthorized: the gateway refused the patch (no state change)
        """
        with self._lock:
            patch = with_log(self.document.data, patch, log_message,
                             now=self.clock(), max_entries=self.max_log_entries)
            result = self.gateway.merge(patch)
            if result is not None:
                state, rev = result
                self.document.replace(state, rev)
                remote = True
            else:
                rev = self.document.merge_local(patch)
                logger.warning(f'Merge endpoint unavailable, applied {sorted(patch)} locally (local rev {rev})')
                remote = False
            self._changed()
            return remote

    def update(self, build_patch: Callable[[dict], Optional[dict]], log_message: str = None) -> bool:
        """
        Build a patch against the current document and apply it.

        Returns:
            Result of apply_patch, or False when build_patch returned None
        """
        with self._lock:
            patch = build_patch(self.document.data)
            if patch is None:
                return False
            return self.apply_patch(patch, log_message)

    def _changed(self) -> None:
        snapshot = self.document.data
        self.cache.write(snapshot)
        if self.on_change is not None:
            self.on_change(snapshot)

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    def reserve(self, tent_id: int) -> dict:
        """
        Hold an available tent.

        Returns:
            The new reservation

        Raises:
            ReservationError: tent missing or not available (no state change)
        """
        with self._lock:
            patch, reservation = reserve(self.document.data, tent_id, self.clock(), self.hold_minutes)
            self.apply_patch(patch, get_message('log_reserve', tent_id=tent_id))
            return reservation

    def sweep(self) -> bool:
        """
        Expire elapsed holds.

        Returns:
            True if any reservation expired
        """
        with self._lock:
            patch = expire_holds(self.document.data, self.clock())
            if patch is None:
                return False
            self.apply_patch(patch, MESSAGES['log_expire'])
            return True

    # =========================================================================
    # TENT DRAGGING
    # =========================================================================

    def begin_drag(self, tent_id: int) -> bool:
        """
        Start dragging a tent. Only allowed while layout edit mode is on.

        Returns:
            True if the drag started
        """
        with self._lock:
            if not (self.document.get('layout') or {}).get('edit'):
                return False
            if find_tent(self.document.get('tents'), tent_id) is None:
                return False
            self._drag = tent_id
            self._drag_origin = self.document.get('tents')
            return True

    def drag_to(self, pointer_x: float, pointer_y: float, rect) -> Optional[tuple]:
        """
        Move the dragged tent in memory only (no network write).

        Args:
            pointer_x: Pointer x in screen units
            pointer_y: Pointer y in screen units
            rect: Map bounding box (left, top, width, height)

        Returns:
            The clamped (x, y), or None if no drag is active
        """
        with self._lock:
            if self._drag is None:
                return None
            x, y = position_from_pointer(pointer_x, pointer_y, rect)
            tents = move_tent(self.document.get('tents'), self._drag, x, y)
            self.document.update_in_memory({'tents': tents})
            return x, y

    def end_drag(self) -> bool:
        """
        Finish the drag and write the tents once.

        Returns:
            True if a position was written

        Raises:
            MergeUnauthorized: the move was refused; the tent goes back
        """
        with self._lock:
            tent_id, self._drag = self._drag, None
            origin, self._drag_origin = self._drag_origin, None
            if tent_id is None:
                return False
            try:
                self.apply_patch({'tents': self.document.get('tents')},
                                 get_message('log_move_tent', tent_id=tent_id))
            except MergeUnauthorized:
                self.document.update_in_memory({'tents': origin})
                self._changed()
                raise
            return True

    # =========================================================================
    # ADMIN OPERATIONS
    # =========================================================================

    def set_tent_state(self, tent_id: int, state: str) -> bool:
        """Admin override of a tent's state (no reservation bookkeeping)."""
        return self.update(
            lambda doc: {'tents': set_tent_state(normalize_tents(doc.get('tents')), tent_id, state)},
            get_message('log_tent_state', tent_id=tent_id)
        )

    def set_tent_price(self, tent_id: int, price: float) -> bool:
        return self.update(
            lambda doc: {'tents': set_tent_price(normalize_tents(doc.get('tents')), tent_id, price)},
            get_message('log_tent_price', tent_id=tent_id)
        )

    def toggle_edit(self) -> bool:
        return self.update(venue.toggle_edit_mode, MESSAGES['log_toggle_edit'])

    def recreate_grid(self, count) -> bool:
        return self.update(
            lambda doc: venue.recreate_grid(doc, count, now=self.clock()),
            get_message('log_recreate_grid', count=count)
        )

    def update_payments(self, changes: dict) -> bool:
        return self.update(lambda doc: venue.update_payments(doc, changes), MESSAGES['log_payments'])

    def set_background(self, public_path: str) -> bool:
        return self.update(lambda doc: venue.set_background(doc, public_path), MESSAGES['log_background'])

    def change_pin(self, pin: str) -> bool:
        return self.update(lambda doc: venue.change_admin_pin(doc, pin), MESSAGES['log_pin'])

    def refresh(self) -> bool:
        """Bump the revision so every client reloads."""
        return self.update(lambda doc: venue.touch(self.clock()), MESSAGES['log_refresh'])

    # =========================================================================
    # QUERIES
    # =========================================================================

    def tents(self) -> list:
        """Tents with normalized states."""
        return normalize_tents(self.document.get('tents'))

    def available_tents(self) -> list:
        return [t for t in self.tents() if t['state'] == TENT_AVAILABLE]
