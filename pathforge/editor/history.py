"""
Undo/redo history of complete base-state trees.

Snapshots are debounced: the first mutation in a quiet period captures the
state *before* the mutation as a pending snapshot. Further mutations restart
the window without recapturing. When the window elapses the pending snapshot
is pushed onto the undo stack and the redo stack is cleared.

Destructive operations call ``checkpoint()`` instead, which flushes the
pending snapshot and then records the current state immediately.

Every entry is the complete tree (root state plus all layers); entries are
never context-local.
"""

import logging
from typing import Callable, Optional

from pathforge.config import Settings, settings as default_settings
from pathforge.models import ImageEditorState

from .scheduler import Debouncer, Scheduler

logger = logging.getLogger(__name__)


def _strip_ui_fields(state: ImageEditorState) -> ImageEditorState:
    return state.model_copy(update={'visual_crop_enabled': None})


def _same_state(a: ImageEditorState, b: ImageEditorState) -> bool:
    return a.model_dump(exclude_none=True) == b.model_dump(exclude_none=True)


class HistoryManager:
    """
    Undo/redo stacks with debounced snapshot capture.

    Args:
        scheduler: Timer source for the debounce window
        capture: Returns the current complete base-state tree
        max_size: Maximum entries per stack (oldest evicted first)
        debounce_ms: Quiet period before a pending snapshot is pushed
        on_change: Called whenever the stacks change
    """

    def __init__(
        self,
        scheduler: Scheduler,
        capture: Callable[[], ImageEditorState],
        *,
        max_size: Optional[int] = None,
        debounce_ms: Optional[float] = None,
        on_change: Optional[Callable[[], None]] = None,
        settings: Optional[Settings] = None,
    ):
        cfg = settings or default_settings
        self._capture = capture
        self.max_size = cfg.MAX_HISTORY_SIZE if max_size is None else max_size
        self._on_change = on_change
        self._undo_stack: list[ImageEditorState] = []
        self._redo_stack: list[ImageEditorState] = []
        self._pending: Optional[ImageEditorState] = None
        self._debouncer = Debouncer(
            scheduler,
            cfg.HISTORY_DEBOUNCE_MS if debounce_ms is None else debounce_ms,
            self._commit_pending,
        )

    @property
    def undo_stack(self) -> list[ImageEditorState]:
        return list(self._undo_stack)

    @property
    def redo_stack(self) -> list[ImageEditorState]:
        return list(self._redo_stack)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def can_undo(self) -> bool:
        return bool(self._undo_stack) or self._pending is not None

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def schedule_snapshot(self) -> None:
        """Record that a mutation is about to happen.

        Must be called *before* the state changes.
        """
        if self._pending is None:
            self._pending = self._capture()
        self._debouncer.schedule()

    def flush(self) -> None:
        """Push the pending snapshot now, if any."""
        self._debouncer.cancel()
        self._commit_pending()

    def checkpoint(self) -> None:
        """Flush pending work and record the current state.

        Called before destructive operations so the pre-operation state is
        always undoable.
        """
        self.flush()
        self._push(self._capture())

    def undo(self, current: ImageEditorState) -> Optional[ImageEditorState]:
        """
        Step back one entry.

        Args:
            current: Complete state at the time of the undo

        Returns:
            The state to restore, or None when there is nothing to undo
        """
        self.flush()
        if not self._undo_stack:
            return None
        self._redo_stack.append(_strip_ui_fields(current))
        self._trim(self._redo_stack)
        state = self._undo_stack.pop()
        logger.debug("Undo (%d left, %d redo)", len(self._undo_stack), len(self._redo_stack))
        self._notify()
        return state

    def redo(self, current: ImageEditorState) -> Optional[ImageEditorState]:
        """Step forward one entry (see undo)."""
        self.flush()
        if not self._redo_stack:
            return None
        self._undo_stack.append(_strip_ui_fields(current))
        self._trim(self._undo_stack)
        state = self._redo_stack.pop()
        logger.debug("Redo (%d undo, %d left)", len(self._undo_stack), len(self._redo_stack))
        self._notify()
        return state

    def clear(self) -> None:
        """Drop all entries and any pending snapshot."""
        self._debouncer.cancel()
        self._pending = None
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._notify()

    def cancel(self) -> None:
        """Cancel the debounce timer without pushing."""
        self._debouncer.cancel()

    def _commit_pending(self) -> None:
        if self._pending is None:
            return
        snapshot, self._pending = self._pending, None
        self._push(snapshot)

    def _push(self, snapshot: ImageEditorState) -> None:
        snapshot = _strip_ui_fields(snapshot)
        if self._undo_stack and _same_state(self._undo_stack[-1], snapshot):
            logger.debug("Skipping duplicate history entry")
            return
        self._undo_stack.append(snapshot)
        self._trim(self._undo_stack)
        self._redo_stack.clear()
        logger.debug("History push (%d entries)", len(self._undo_stack))
        self._notify()

    def _trim(self, stack: list[ImageEditorState]) -> None:
        overflow = len(stack) - self.max_size
        if overflow > 0:
            del stack[:overflow]
            logger.debug("Evicted %d oldest history entries", overflow)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
