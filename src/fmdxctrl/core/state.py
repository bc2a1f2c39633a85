"""Central state store with Qt signals for reactive UI updates.

The StateStore holds the single SessionState snapshot and emits Qt signals
when it changes. Only the session orchestrator writes to it; presentation
code reads ``snapshot`` or connects to the signals.

Writes come from the worker thread's event loop and, for audio play state,
from pipeline callbacks, so every write goes through one lock. Signals are
emitted after the lock is released and delivered to the main thread by Qt.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from PySide6.QtCore import QObject, Signal

from fmdxctrl.models.session_state import ConnectionPhase, SessionState

logger = logging.getLogger(__name__)


class StateStore(QObject):
    """Single owner of the session state snapshot.

    Example:
        store = StateStore()
        store.state_changed.connect(lambda s: print(s.connection_phase))
        store.update(status_message="Connecting...")
    """

    # Full snapshot after every change
    state_changed = Signal(object)  # SessionState
    # Phase transitions only
    connection_changed = Signal(object)  # ConnectionPhase

    def __init__(self, initial: SessionState | None = None) -> None:
        """Initialize the store.

        Args:
            initial: Starting snapshot, defaults to an empty session.
        """
        super().__init__()
        self._lock = threading.Lock()
        self._state = initial if initial is not None else SessionState()

    @property
    def snapshot(self) -> SessionState:
        """Return the current snapshot."""
        with self._lock:
            return self._state

    @property
    def connection_phase(self) -> ConnectionPhase:
        """Return the current connection phase."""
        return self.snapshot.connection_phase

    def update(self, **changes: Any) -> SessionState:
        """Replace fields of the current snapshot.

        Args:
            **changes: SessionState field values.

        Returns:
            The new snapshot.
        """
        return self.update_with(lambda state: replace(state, **changes))

    def update_with(self, transform: Callable[[SessionState], SessionState]) -> SessionState:
        """Apply a read-modify-write transform atomically.

        Use this when the new value depends on the current one, so that no
        other writer can slip in between the read and the write.

        Args:
            transform: Maps the current snapshot to the new one.

        Returns:
            The new snapshot.
        """
        with self._lock:
            old = self._state
            new = transform(old)
            self._state = new
        self._emit(old, new)
        return new

    def reset(self, state: SessionState) -> None:
        """Replace the whole snapshot (used on disconnect)."""
        self.update_with(lambda _old: state)

    def _emit(self, old: SessionState, new: SessionState) -> None:
        """Emit change signals for a transition."""
        if new == old:
            return
        if new.connection_phase is not old.connection_phase:
            logger.debug(
                "Connection phase %s -> %s",
                old.connection_phase.value,
                new.connection_phase.value,
            )
            self.connection_changed.emit(new.connection_phase)
        self.state_changed.emit(new)
