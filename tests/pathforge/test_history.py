"""Tests for the scheduler, debouncer and history manager."""

import pytest

from pathforge.editor import Debouncer, HistoryManager, ManualScheduler
from pathforge.models import ImageEditorState


class TestManualScheduler:
    """Tests for the virtual-time scheduler."""

    def test_runs_in_time_order(self):
        """Callbacks run in order of their due time."""
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(0.2, lambda: calls.append('b'))
        scheduler.call_later(0.1, lambda: calls.append('a'))
        assert scheduler.advance(0.15) == 1
        assert calls == ['a']
        scheduler.advance(0.1)
        assert calls == ['a', 'b']
        assert scheduler.time() == pytest.approx(0.25)

    def test_cancel(self):
        """Cancelled callbacks never run."""
        scheduler = ManualScheduler()
        calls = []
        handle = scheduler.call_later(0.1, lambda: calls.append(1))
        assert scheduler.pending == 1
        handle.cancel()
        assert handle.cancelled()
        assert scheduler.pending == 0
        scheduler.run_all()
        assert calls == []

    def test_run_all_includes_chained(self):
        """run_all also runs callbacks scheduled by callbacks."""
        scheduler = ManualScheduler()
        calls = []

        def first():
            calls.append('first')
            scheduler.call_later(1.0, lambda: calls.append('second'))

        scheduler.call_later(0.5, first)
        assert scheduler.run_all() == 2
        assert calls == ['first', 'second']
        assert scheduler.time() == pytest.approx(1.5)


class TestDebouncer:
    """Tests for the trailing-edge debouncer."""

    def test_rapid_calls_coalesce(self):
        """Calls inside the window restart it and fire once."""
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 300, lambda: calls.append(1))
        debouncer.schedule()
        scheduler.advance_ms(200)
        debouncer.schedule()
        scheduler.advance_ms(200)
        assert calls == []
        scheduler.advance_ms(150)
        assert calls == [1]
        assert not debouncer.pending

    def test_flush(self):
        """flush() runs a pending callback immediately."""
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 300, lambda: calls.append(1))
        debouncer.flush()
        assert calls == []
        debouncer.schedule()
        debouncer.flush()
        assert calls == [1]
        scheduler.run_all()
        assert calls == [1]

    def test_cancel(self):
        """cancel() drops a pending call."""
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 300, lambda: calls.append(1))
        debouncer.schedule()
        debouncer.cancel()
        scheduler.run_all()
        assert calls == []


class _Document:
    """Mutable holder standing in for the editor's state tree."""

    def __init__(self):
        self.state = ImageEditorState()
        self.changes = 0

    def set(self, history: HistoryManager, **fields):
        history.schedule_snapshot()
        self.state = self.state.merged(fields)

    def count(self):
        self.changes += 1


def _history(scheduler, doc, **kwargs) -> HistoryManager:
    return HistoryManager(scheduler, lambda: doc.state, on_change=doc.count,
                          debounce_ms=300, **kwargs)


class TestHistoryManager:
    """Tests for HistoryManager."""

    def test_snapshot_captures_pre_state(self):
        """The snapshot holds the state before the first mutation."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=10)
        assert history.has_pending
        assert history.can_undo()
        scheduler.advance_ms(300)
        assert [s.to_api_dict() for s in history.undo_stack] == [{}]

    def test_rapid_changes_one_snapshot(self):
        """Changes inside the debounce window produce one entry."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=10)
        scheduler.advance_ms(100)
        doc.set(history, brightness=20)
        scheduler.advance_ms(250)
        assert history.undo_stack == []
        scheduler.advance_ms(100)
        assert len(history.undo_stack) == 1
        assert history.undo_stack[0].brightness is None

    def test_undo_redo(self):
        """undo() and redo() walk the stacks."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=50)
        scheduler.advance_ms(300)
        doc.set(history, brightness=75)
        scheduler.advance_ms(300)

        doc.state = history.undo(doc.state)
        assert doc.state.brightness == 50
        assert history.can_redo()

        doc.state = history.redo(doc.state)
        assert doc.state.brightness == 75

    def test_undo_flushes_pending(self):
        """Undo right after a change restores the pre-change state."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=50)
        restored = history.undo(doc.state)
        assert restored.brightness is None
        assert history.redo_stack[0].brightness == 50

    def test_empty_stacks(self):
        """undo()/redo() return None when there is nothing to do."""
        history = _history(ManualScheduler(), _Document())
        assert not history.can_undo()
        assert history.undo(ImageEditorState()) is None
        assert history.redo(ImageEditorState()) is None

    def test_new_entry_clears_redo(self):
        """A new snapshot invalidates the redo stack."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=50)
        scheduler.advance_ms(300)
        doc.state = history.undo(doc.state)
        assert history.can_redo()
        doc.set(history, contrast=5)
        scheduler.advance_ms(300)
        assert not history.can_redo()

    def test_max_size_evicts_oldest(self):
        """The oldest entries are evicted beyond the cap."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc, max_size=3)
        for value in range(1, 6):
            doc.set(history, brightness=value)
            scheduler.advance_ms(300)
        assert [s.brightness for s in history.undo_stack] == [2, 3, 4]

    def test_duplicate_entries_skipped(self):
        """Identical consecutive snapshots are stored once."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        history.checkpoint()
        history.checkpoint()
        assert len(history.undo_stack) == 1

    def test_checkpoint_flushes_pending_first(self):
        """checkpoint() pushes the pending snapshot before the current state."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=10)
        history.checkpoint()
        assert [s.brightness for s in history.undo_stack] == [None, 10]
        assert not history.has_pending
        scheduler.run_all()
        assert len(history.undo_stack) == 2

    def test_visual_crop_not_recorded(self):
        """UI-only fields are stripped from entries."""
        scheduler = ManualScheduler()
        doc = _Document()
        doc.state = ImageEditorState(visual_crop_enabled=True, brightness=5)
        history = _history(scheduler, doc)
        history.checkpoint()
        assert history.undo_stack[0].visual_crop_enabled is None

    def test_clear(self):
        """clear() drops entries and the pending snapshot."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=10)
        history.checkpoint()
        history.clear()
        assert not history.can_undo()
        scheduler.run_all()
        assert history.undo_stack == []

    def test_on_change_notified(self):
        """Stack changes are reported."""
        scheduler = ManualScheduler()
        doc = _Document()
        history = _history(scheduler, doc)
        doc.set(history, brightness=10)
        scheduler.advance_ms(300)
        assert doc.changes == 1
        history.undo(doc.state)
        assert doc.changes == 2
