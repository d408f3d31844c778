"""
Batch translation sub-modules.

Sequential multi-file translation with per-file progress pushed over a
correlated progress channel.
"""

from .errors import (
    BatchTranslationError,
    NoSelectionError,
    AllOutlinedError,
    PartialOutlinedAdvisory,
    TransportError,
    ChannelReportedError,
    ChannelHangError,
)
from .correlation import CorrelationIdGenerator, generate_correlation_id
from .job_handler import FileAttempt, AttemptState, AttemptResult, AttemptTiming
from .progress_channel import (
    ProgressChannel,
    ChannelEvent,
    ChannelEventKind,
    PushChannelProvider,
)
from .progress_tracker import (
    ProgressState,
    ProgressSnapshot,
    BatchProgress,
    FileProgress,
    StateCallback,
    create_logging_callback,
)
from .selection import FileSelectionState
from .result_aggregator import ResultAggregator, BatchPlan, BatchOutcome
from .orchestrator import BatchTranslationOrchestrator, OrchestratorConfig
from .file_manager import FileManager, UploadReport

__all__ = [
    # Errors
    'BatchTranslationError',
    'NoSelectionError',
    'AllOutlinedError',
    'PartialOutlinedAdvisory',
    'TransportError',
    'ChannelReportedError',
    'ChannelHangError',
    # Correlation
    'CorrelationIdGenerator',
    'generate_correlation_id',
    # Attempt lifecycle
    'FileAttempt',
    'AttemptState',
    'AttemptResult',
    'AttemptTiming',
    # Progress channel
    'ProgressChannel',
    'ChannelEvent',
    'ChannelEventKind',
    'PushChannelProvider',
    # Observable state
    'ProgressState',
    'ProgressSnapshot',
    'BatchProgress',
    'FileProgress',
    'StateCallback',
    'create_logging_callback',
    # Selection
    'FileSelectionState',
    # Aggregation
    'ResultAggregator',
    'BatchPlan',
    'BatchOutcome',
    # Orchestration
    'BatchTranslationOrchestrator',
    'OrchestratorConfig',
    'FileManager',
    'UploadReport',
]
