"""
Per-file attempt lifecycle.
One FileAttempt tracks a single start-translation request and its
progress channel from creation to a terminal outcome.

    IDLE -> AWAITING_START -> STREAMING -> SUCCEEDED | FAILED
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, FrozenSet
from datetime import datetime

from config.logging_config import get_logger
from .errors import BatchTranslationError, describe_error

logger = get_logger(__name__)


class AttemptState(Enum):
    """Attempt execution state."""
    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES: FrozenSet[AttemptState] = frozenset({
    AttemptState.SUCCEEDED,
    AttemptState.FAILED,
})

ALLOWED_TRANSITIONS: Dict[AttemptState, FrozenSet[AttemptState]] = {
    AttemptState.IDLE: frozenset({
        AttemptState.AWAITING_START,
        AttemptState.FAILED,
    }),
    AttemptState.AWAITING_START: frozenset({
        AttemptState.STREAMING,
        AttemptState.SUCCEEDED,
        AttemptState.FAILED,
    }),
    AttemptState.STREAMING: frozenset({
        AttemptState.SUCCEEDED,
        AttemptState.FAILED,
    }),
    AttemptState.SUCCEEDED: frozenset(),
    AttemptState.FAILED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised on a transition the state machine does not allow."""

    def __init__(self, current: AttemptState, target: AttemptState):
        self.current = current
        self.target = target
        super().__init__(f"Invalid attempt transition: {current.value} -> {target.value}")


@dataclass
class AttemptResult:
    """Terminal result of one file attempt."""
    file_name: str
    correlation_id: str
    success: bool
    duration_seconds: float = 0.0
    progress_events: int = 0
    error: Optional[BatchTranslationError] = None

    @property
    def error_message(self) -> Optional[str]:
        return describe_error(self.error) if self.error else None


@dataclass
class AttemptTiming:
    """Timing information for attempt phases."""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    phase_times: Dict[str, float] = field(default_factory=dict)

    def start(self):
        self.started_at = datetime.now()

    def complete(self):
        self.completed_at = datetime.now()

    @property
    def total_duration(self) -> Optional[float]:
        """Get total duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record_phase(self, phase: str, duration: float):
        self.phase_times[phase] = duration


class FileAttempt:
    """
    State machine for translating one file.

    Usage:
        attempt = FileAttempt("a.svg", correlation_id)
        attempt.start()              # request issued, channel open
        attempt.mark_streaming()     # ack or first progress event
        result = attempt.succeed()   # or attempt.fail(error)
    """

    def __init__(self, file_name: str, correlation_id: str):
        self.file_name = file_name
        self.correlation_id = correlation_id

        self.state = AttemptState.IDLE
        self.timing = AttemptTiming()
        self.progress_events = 0
        self.error: Optional[BatchTranslationError] = None
        self.result: Optional[AttemptResult] = None

        self._phase_start: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition_to(self, new_state: AttemptState):
        """
        Transition to a new state.

        Raises:
            InvalidTransitionError: If the move is not allowed
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, new_state)

        now = datetime.now()
        if self._phase_start:
            duration = (now - self._phase_start).total_seconds()
            self.timing.record_phase(self.state.value, duration)

        old_state = self.state
        self.state = new_state
        self._phase_start = now

        logger.debug(
            f"Attempt {self.file_name} [{self.correlation_id}]: "
            f"{old_state.value} → {new_state.value}"
        )

    def start(self):
        """Start request issued and channel listening."""
        self.timing.start()
        self._phase_start = datetime.now()
        self.transition_to(AttemptState.AWAITING_START)

    def mark_streaming(self):
        """Server acknowledged the request or pushed a progress event."""
        if self.state == AttemptState.AWAITING_START:
            self.transition_to(AttemptState.STREAMING)

    def record_progress(self):
        self.progress_events += 1
        self.mark_streaming()

    def succeed(self) -> AttemptResult:
        self.transition_to(AttemptState.SUCCEEDED)
        self.timing.complete()
        self.result = self._build_result(success=True)

        logger.info(
            f"Translated {self.file_name} "
            f"({self.progress_events} progress events, "
            f"{self.result.duration_seconds:.1f}s)"
        )
        return self.result

    def fail(self, error: BatchTranslationError) -> AttemptResult:
        self.transition_to(AttemptState.FAILED)
        self.timing.complete()
        self.error = error
        self.result = self._build_result(success=False)

        logger.error(f"Translation failed: {self.file_name} - {describe_error(error)}")
        return self.result

    def _build_result(self, success: bool) -> AttemptResult:
        return AttemptResult(
            file_name=self.file_name,
            correlation_id=self.correlation_id,
            success=success,
            duration_seconds=self.timing.total_duration or 0.0,
            progress_events=self.progress_events,
            error=self.error,
        )

    def get_state_summary(self) -> Dict[str, Any]:
        """Get current state summary."""
        return {
            "file_name": self.file_name,
            "correlation_id": self.correlation_id,
            "state": self.state.value,
            "progress_events": self.progress_events,
            "timing": {
                "started_at": self.timing.started_at.isoformat() if self.timing.started_at else None,
                "duration_seconds": self.timing.total_duration,
                "phase_times": self.timing.phase_times,
            },
            "error": describe_error(self.error) if self.error else None,
        }
