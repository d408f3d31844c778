"""
Batch planning and outcome aggregation.
Splits a selection into eligible / outlined / unknown files and folds
per-file attempt results into one BatchOutcome.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Iterable, Sequence

from api.models import FileMetadata
from config.logging_config import get_logger
from .errors import (
    AllOutlinedError,
    BatchTranslationError,
    NoSelectionError,
    PartialOutlinedAdvisory,
    describe_error,
)
from .job_handler import AttemptResult

logger = get_logger(__name__)


@dataclass
class BatchPlan:
    """Selection partitioned by eligibility, in selection order."""
    eligible: List[str] = field(default_factory=list)
    outlined: List[str] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.eligible)

    @property
    def advisory(self) -> Optional[PartialOutlinedAdvisory]:
        if self.outlined and self.eligible:
            return PartialOutlinedAdvisory(self.outlined)
        return None

    @classmethod
    def build(
        cls,
        selected: Iterable[str],
        metadata: Sequence[FileMetadata],
    ) -> "BatchPlan":
        """
        Partition a selection against a metadata listing.

        Raises:
            NoSelectionError: Nothing selected, or nothing selected is known
            AllOutlinedError: Every known selected file is outlined
        """
        names = list(dict.fromkeys(selected))
        if not names:
            raise NoSelectionError()

        by_name = {entry.file_name: entry for entry in metadata}
        plan = cls()
        for name in names:
            entry = by_name.get(name)
            if entry is None:
                plan.unknown.append(name)
            elif entry.outlined is True:
                plan.outlined.append(name)
            else:
                plan.eligible.append(name)

        if plan.unknown:
            logger.warning(f"Skipping files missing from the listing: {plan.unknown}")

        if not plan.eligible:
            if plan.outlined:
                raise AllOutlinedError(plan.outlined)
            raise NoSelectionError(
                "None of the selected files exist on the server anymore."
            )

        return plan


@dataclass
class BatchOutcome:
    """Final result of one run_batch call."""
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    failure_reason: Optional[str] = None
    skipped_outlined: List[str] = field(default_factory=list)
    skipped_unknown: List[str] = field(default_factory=list)
    not_attempted: List[str] = field(default_factory=list)
    error: Optional[BatchTranslationError] = None
    advisory: Optional[PartialOutlinedAdvisory] = None
    metadata: Optional[List[FileMetadata]] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def aborted(self) -> bool:
        """True when a failure stopped the queue early."""
        return bool(self.failed) or bool(self.not_attempted)

    @property
    def attempted(self) -> List[str]:
        return self.succeeded + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "failed": list(self.failed),
            "failure_reason": self.failure_reason,
            "skipped_outlined": list(self.skipped_outlined),
            "skipped_unknown": list(self.skipped_unknown),
            "not_attempted": list(self.not_attempted),
            "error": describe_error(self.error) if self.error else None,
            "advisory": str(self.advisory) if self.advisory else None,
            "duration_seconds": self.duration_seconds,
        }


class ResultAggregator:
    """
    Folds attempt results into a BatchOutcome.

    Usage:
        aggregator = ResultAggregator(plan)
        for name in plan.eligible:
            aggregator.add(await translate(name))
        outcome = aggregator.build()
    """

    def __init__(self, plan: Optional[BatchPlan] = None):
        self.plan = plan or BatchPlan()
        self.results: List[AttemptResult] = []
        self.error: Optional[BatchTranslationError] = None

    def add(self, result: AttemptResult):
        self.results.append(result)
        if not result.success and self.error is None:
            self.error = result.error

    def fail(self, error: BatchTranslationError):
        """Record a batch-level error not tied to an attempt result."""
        if self.error is None:
            self.error = error

    def build(
        self,
        metadata: Optional[List[FileMetadata]] = None,
        duration_seconds: float = 0.0,
    ) -> BatchOutcome:
        succeeded = [r.file_name for r in self.results if r.success]
        failed = [r.file_name for r in self.results if not r.success]
        first_failure = next((r for r in self.results if not r.success), None)

        attempted = {r.file_name for r in self.results}
        not_attempted = [n for n in self.plan.eligible if n not in attempted]

        failure_reason = None
        if first_failure is not None:
            failure_reason = first_failure.error_message
        elif self.error is not None:
            failure_reason = describe_error(self.error)

        outcome = BatchOutcome(
            succeeded=succeeded,
            failed=failed,
            failure_reason=failure_reason,
            skipped_outlined=list(self.plan.outlined),
            skipped_unknown=list(self.plan.unknown),
            not_attempted=not_attempted if self.error is not None else [],
            error=self.error,
            advisory=self.plan.advisory,
            metadata=metadata,
            duration_seconds=duration_seconds,
        )

        if failed:
            logger.warning(
                f"Batch aborted: {len(succeeded)} succeeded, {len(failed)} failed, "
                f"{len(outcome.not_attempted)} not attempted"
            )
        else:
            logger.info(f"Batch aggregated: {len(succeeded)} files succeeded")

        return outcome

    @staticmethod
    def rejected(error: BatchTranslationError) -> BatchOutcome:
        """Outcome for a batch refused before any file started."""
        skipped = list(getattr(error, "names", []))
        return BatchOutcome(
            failure_reason=describe_error(error),
            skipped_outlined=skipped,
            error=error,
        )
