"""
Observable progress state.
Holds batch progress, current-file progress and the error/advisory slot
for one orchestrator, and pushes immutable snapshots to observers.

The orchestrator is the only writer; any number of observers may read.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Dict, Any, List
import math

from config.constants import PROGRESS_MIN, PROGRESS_MAX
from config.logging_config import get_logger

logger = get_logger(__name__)


def clamp_percentage(value: Any) -> int:
    """Coerce a pushed percentage into [0, 100]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return PROGRESS_MIN
    if math.isnan(number):
        return PROGRESS_MIN
    # Clamp before rounding so infinities never reach int()
    return int(round(max(PROGRESS_MIN, min(PROGRESS_MAX, number))))


@dataclass(frozen=True)
class BatchProgress:
    """Which file of the batch is in flight (0-based `current`)."""
    total: int
    current: int
    current_file: str = ""

    def __post_init__(self):
        if self.total < 0:
            raise ValueError(f"total must be >= 0, got {self.total}")
        if not 0 <= self.current <= self.total:
            raise ValueError(
                f"current must be within [0, {self.total}], got {self.current}"
            )

    @property
    def finished(self) -> bool:
        return self.current == self.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "current": self.current,
            "current_file": self.current_file,
        }


@dataclass(frozen=True)
class FileProgress:
    """Latest push event for the file being translated."""
    message: str
    percentage: int = 0

    def __post_init__(self):
        object.__setattr__(self, "percentage", clamp_percentage(self.percentage))

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "percentage": self.percentage}


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of the whole state."""
    batch: Optional[BatchProgress] = None
    file: Optional[FileProgress] = None
    error: Optional[str] = None
    loading: bool = False

    @property
    def is_running(self) -> bool:
        return self.batch is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "batch": self.batch.to_dict() if self.batch else None,
            "file": self.file.to_dict() if self.file else None,
            "error": self.error,
            "loading": self.loading,
        }


# Type alias for state observers
StateCallback = Callable[[ProgressSnapshot], None]


class ProgressState:
    """
    Shared state read by presentation layers.

    Usage:
        state = ProgressState()
        unsubscribe = state.subscribe(render)

        state.set_batch_progress(BatchProgress(total=2, current=0, current_file="a.svg"))
        state.set_file_progress(FileProgress("Extracting text", 40))
        ...
        state.clear_progress()
        unsubscribe()
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._batch: Optional[BatchProgress] = None
        self._file: Optional[FileProgress] = None
        self._error: Optional[str] = None
        self._loading: bool = False
        self._callbacks: List[StateCallback] = []

    # ---------- readers ----------

    @property
    def batch_progress(self) -> Optional[BatchProgress]:
        return self._batch

    @property
    def file_progress(self) -> Optional[FileProgress]:
        return self._file

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_running(self) -> bool:
        return self._batch is not None

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            batch=self._batch,
            file=self._file,
            error=self._error,
            loading=self._loading,
        )

    # ---------- observers ----------

    def add_callback(self, callback: StateCallback):
        """Add state observer."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: StateCallback):
        """Remove state observer."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Add an observer and return a function that removes it."""
        self.add_callback(callback)
        return lambda: self.remove_callback(callback)

    # ---------- writers ----------

    def set_batch_progress(self, progress: Optional[BatchProgress]):
        self._batch = progress
        self._notify()

    def set_file_progress(self, progress: Optional[FileProgress]):
        self._file = progress
        self._notify()

    def set_error(self, message: Optional[str]):
        self._error = message
        self._notify()

    def clear_error(self):
        if self._error is not None:
            self.set_error(None)

    def set_loading(self, loading: bool):
        self._loading = loading
        self._notify()

    def clear_progress(self):
        """Tear down both progress slots."""
        self._batch = None
        self._file = None
        self._notify()

    def _notify(self):
        """Notify all observers."""
        snapshot = self.snapshot()
        for callback in list(self._callbacks):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Progress observer error: {e}")


def create_logging_callback(log_interval: int = 5) -> StateCallback:
    """
    Create an observer that logs every N snapshots.

    Batch boundaries (start of each file, finish, teardown) and error
    changes are always logged.

    Args:
        log_interval: Log every N updates

    Returns:
        State observer function
    """
    counter = {"count": 0, "file": None, "error": None}

    def callback(snapshot: ProgressSnapshot):
        counter["count"] += 1
        batch = snapshot.batch
        current_file = batch.current_file if batch else None

        boundary = current_file != counter["file"]
        counter["file"] = current_file

        if snapshot.error != counter["error"]:
            counter["error"] = snapshot.error
            if snapshot.error:
                logger.warning(f"Status: {snapshot.error}")

        if boundary or counter["count"] % log_interval == 0:
            if batch is None:
                logger.info("Batch idle")
            elif batch.finished:
                logger.info(f"Batch finished: {batch.total}/{batch.total}")
            else:
                file_part = ""
                if snapshot.file:
                    file_part = (
                        f" - {snapshot.file.percentage}% {snapshot.file.message}"
                    )
                logger.info(
                    f"Progress: file {batch.current + 1}/{batch.total} "
                    f"({batch.current_file}){file_part}"
                )

    return callback
