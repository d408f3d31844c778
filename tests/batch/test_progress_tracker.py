"""
Unit tests for core.batch.progress_tracker module.

Tests ProgressState, progress value types and callback functions.
"""

import pytest
import logging
from unittest.mock import Mock

from core.batch.progress_tracker import (
    BatchProgress,
    FileProgress,
    ProgressSnapshot,
    ProgressState,
    clamp_percentage,
    create_logging_callback,
)


class TestClampPercentage:
    """Tests for clamp_percentage."""

    @pytest.mark.parametrize("value,expected", [
        (50, 50),
        (0, 0),
        (100, 100),
        (-3, 0),
        (250, 100),
        (42.6, 43),
        ("75", 75),
        (None, 0),
        ("n/a", 0),
        (float("inf"), 100),
        (float("-inf"), 0),
        (float("nan"), 0),
        ("Infinity", 100),
        ("1e999", 100),
    ])
    def test_clamp(self, value, expected):
        assert clamp_percentage(value) == expected


class TestBatchProgress:
    """Tests for BatchProgress dataclass."""

    def test_creation(self):
        progress = BatchProgress(total=3, current=1, current_file="b.svg")
        assert progress.total == 3
        assert progress.current == 1
        assert progress.current_file == "b.svg"
        assert progress.finished is False

    def test_finished(self):
        progress = BatchProgress(total=3, current=3)
        assert progress.finished is True
        assert progress.current_file == ""

    def test_current_above_total_rejected(self):
        with pytest.raises(ValueError):
            BatchProgress(total=2, current=3)

    def test_negative_current_rejected(self):
        with pytest.raises(ValueError):
            BatchProgress(total=2, current=-1)

    def test_immutable(self):
        progress = BatchProgress(total=2, current=0)
        with pytest.raises(Exception):
            progress.current = 1

    def test_to_dict(self):
        progress = BatchProgress(total=2, current=1, current_file="b.svg")
        assert progress.to_dict() == {"total": 2, "current": 1, "current_file": "b.svg"}


class TestFileProgress:
    """Tests for FileProgress dataclass."""

    def test_percentage_clamped(self):
        assert FileProgress("Done", 140).percentage == 100
        assert FileProgress("Odd", -10).percentage == 0

    def test_default_percentage(self):
        assert FileProgress("Preparing").percentage == 0


class TestProgressState:
    """Tests for ProgressState."""

    def test_initial_state(self):
        state = ProgressState()
        assert state.batch_progress is None
        assert state.file_progress is None
        assert state.error is None
        assert state.loading is False
        assert state.is_running is False

    def test_snapshot_reflects_state(self):
        state = ProgressState()
        state.set_batch_progress(BatchProgress(total=2, current=0, current_file="a.svg"))
        state.set_file_progress(FileProgress("Translating", 40))
        state.set_error("advisory")

        snapshot = state.snapshot()
        assert isinstance(snapshot, ProgressSnapshot)
        assert snapshot.is_running
        assert snapshot.batch.current_file == "a.svg"
        assert snapshot.file.percentage == 40
        assert snapshot.error == "advisory"
        assert snapshot.to_dict()["file"] == {"message": "Translating", "percentage": 40}
        assert set(snapshot.to_dict()) == {"batch", "file", "error", "loading"}
        assert state.snapshot() == snapshot

    def test_observers_receive_snapshots(self):
        state = ProgressState()
        callback = Mock()
        state.add_callback(callback)

        state.set_batch_progress(BatchProgress(total=1, current=0, current_file="a.svg"))

        callback.assert_called_once()
        snapshot = callback.call_args[0][0]
        assert snapshot.batch.current_file == "a.svg"

    def test_snapshot_is_a_copy(self):
        state = ProgressState()
        received = []
        state.add_callback(received.append)

        state.set_file_progress(FileProgress("first", 10))
        state.set_file_progress(FileProgress("second", 20))

        assert received[0].file.message == "first"
        assert received[1].file.message == "second"

    def test_remove_callback(self):
        state = ProgressState()
        callback = Mock()
        state.add_callback(callback)
        state.remove_callback(callback)
        state.remove_callback(callback)

        state.set_error("x")
        callback.assert_not_called()

    def test_subscribe_returns_unsubscribe(self):
        state = ProgressState()
        callback = Mock()
        unsubscribe = state.subscribe(callback)

        state.set_loading(True)
        unsubscribe()
        state.set_loading(False)

        assert callback.call_count == 1

    def test_clear_error_only_notifies_when_set(self):
        state = ProgressState()
        callback = Mock()
        state.add_callback(callback)

        state.clear_error()
        callback.assert_not_called()

        state.set_error("boom")
        state.clear_error()
        assert callback.call_count == 2
        assert state.error is None

    def test_clear_progress(self):
        state = ProgressState()
        state.set_batch_progress(BatchProgress(total=1, current=0, current_file="a.svg"))
        state.set_file_progress(FileProgress("x", 50))

        state.clear_progress()

        assert state.batch_progress is None
        assert state.file_progress is None
        assert state.is_running is False

    def test_observer_error_does_not_propagate(self):
        state = ProgressState()
        good = Mock()
        state.add_callback(Mock(side_effect=RuntimeError("render")))
        state.add_callback(good)

        state.set_error("x")

        good.assert_called_once()


class TestCallbacks:
    """Tests for callback factory functions."""

    def test_logging_callback_logs_boundaries(self, caplog):
        callback = create_logging_callback(log_interval=100)
        caplog.set_level(logging.INFO)

        callback(ProgressSnapshot(batch=BatchProgress(total=2, current=0, current_file="a.svg")))
        callback(ProgressSnapshot(
            batch=BatchProgress(total=2, current=0, current_file="a.svg"),
            file=FileProgress("Translating", 50),
        ))
        callback(ProgressSnapshot(batch=BatchProgress(total=2, current=1, current_file="b.svg")))

        messages = [r.getMessage() for r in caplog.records]
        assert any("file 1/2 (a.svg)" in m for m in messages)
        assert any("file 2/2 (b.svg)" in m for m in messages)
        assert not any("50%" in m for m in messages)

    def test_logging_callback_interval(self, caplog):
        callback = create_logging_callback(log_interval=2)
        caplog.set_level(logging.INFO)

        batch = BatchProgress(total=1, current=0, current_file="a.svg")
        callback(ProgressSnapshot(batch=batch))
        callback(ProgressSnapshot(batch=batch, file=FileProgress("Translating", 50)))

        assert any("50% Translating" in r.getMessage() for r in caplog.records)

    def test_logging_callback_logs_errors(self, caplog):
        callback = create_logging_callback()
        caplog.set_level(logging.WARNING)

        callback(ProgressSnapshot(error="OCR failed"))

        assert any("OCR failed" in r.getMessage() for r in caplog.records)
