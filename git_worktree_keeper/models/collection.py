"""Live, lock-protected list of worktree entries shown by the picker."""

import threading
from typing import Callable, List, Optional

from git_worktree_keeper.constants import RELOAD_DELAY_SECONDS
from git_worktree_keeper.models.worktree import WorktreeEntry
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

InvalidationListener = Callable[[], None]


class WorktreeCollection:
    """Ordered picker entries plus the render slice the picker reads.

    ``render_slice`` mirrors ``base``. While a reload is pending it carries one
    extra ``None`` sentinel so list-diffing pickers notice a change; the
    pending settle truncates it again and tells every invalidation listener
    to redraw. Both lists are only touched under ``lock``.
    """

    def __init__(self, entries: List[WorktreeEntry], show_path: bool = False,
                 reload_delay: float = RELOAD_DELAY_SECONDS):
        self.base: List[WorktreeEntry] = list(entries)
        self.render_slice: List[Optional[WorktreeEntry]] = list(entries)
        self.lock = threading.Lock()
        self.show_path = show_path
        self.reload_delay = reload_delay
        self._dirty = False
        self._pending: Optional[threading.Timer] = None
        self._listeners: List[InvalidationListener] = []

    def __len__(self) -> int:
        return len(self.base)

    @property
    def dirty(self) -> bool:
        with self.lock:
            return self._dirty

    def add_listener(self, listener: InvalidationListener) -> None:
        """Register a callback run (on a timer thread) whenever rows should be redrawn."""
        with self.lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: InvalidationListener) -> None:
        with self.lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def entry_by_index(self, index: int) -> Optional[WorktreeEntry]:
        """Entry for a picker index; the sentinel row and out-of-range indexes give None."""
        if 0 <= index < len(self.base):
            return self.base[index]
        return None

    def trigger_reload(self) -> None:
        """Schedule a redraw; a no-op while one is already pending."""
        with self.lock:
            if self._dirty:
                return
            self.render_slice.append(None)
            self._dirty = True
            timer = threading.Timer(self.reload_delay, self._settle_pending)
            timer.daemon = True
            self._pending = timer
        timer.start()

    def _settle_pending(self) -> None:
        with self.lock:
            if not self._dirty:
                return
            del self.render_slice[len(self.base):]
            self._dirty = False
            self._pending = None
            listeners = list(self._listeners)
        self._notify(listeners)

    def finalize(self) -> None:
        """Drop any pending reload and leave exactly ``len(base)`` rows."""
        with self.lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            del self.render_slice[len(self.base):]
            self._dirty = False
            listeners = list(self._listeners)
        self._notify(listeners)

    def _notify(self, listeners: List[InvalidationListener]) -> None:
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.debug(f"Invalidation listener failed: {e}")
