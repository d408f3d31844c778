"""
Batch translation orchestrator.

Runs selected files through the translation server one at a time. For
each file it opens a progress channel keyed by a fresh correlation id,
fires the start-translation request and waits for the channel's
terminal event, writing batch and file progress into a ProgressState
that presentation layers observe.
"""

from dataclasses import dataclass
from typing import Optional, Iterable, List, Protocol, Sequence, Any
import asyncio
import time

from api.models import FileMetadata
from config.logging_config import get_logger
from config.constants import CHANNEL_TIMEOUT_SECONDS, PREPARING_MESSAGE

from .correlation import CorrelationIdGenerator
from .errors import (
    BatchTranslationError,
    ChannelHangError,
    ChannelReportedError,
    TransportError,
    describe_error,
)
from .job_handler import AttemptResult, FileAttempt
from .progress_channel import ChannelEvent, ChannelEventKind, ProgressChannel, PushChannelProvider
from .progress_tracker import BatchProgress, FileProgress, ProgressState
from .result_aggregator import BatchOutcome, BatchPlan, ResultAggregator
from .selection import FileSelectionState

logger = get_logger(__name__)

LIST_FAILED_MESSAGE = "Failed to load the file list."


class TranslationTransport(Protocol):
    """HTTP calls the orchestrator depends on."""

    async def start_translation(self, file_name: str, correlation_id: str) -> Any:
        ...

    async def list_metadata(self) -> List[FileMetadata]:
        ...


@dataclass
class OrchestratorConfig:
    """Configuration for BatchTranslationOrchestrator."""
    # None waits forever for a terminal push event
    channel_timeout_seconds: Optional[float] = CHANNEL_TIMEOUT_SECONDS
    preparing_message: str = PREPARING_MESSAGE
    refresh_after_batch: bool = True

    @classmethod
    def from_settings(cls, settings) -> "OrchestratorConfig":
        return cls(
            channel_timeout_seconds=settings.channel_deadline,
            preparing_message=settings.preparing_message,
        )


class BatchTranslationOrchestrator:
    """
    Sequences per-file translation requests for one selection.

    Files are translated strictly one at a time, in selection order. The
    first failing file aborts the rest of the queue (see run_batch).

    Usage:
        orchestrator = BatchTranslationOrchestrator(client, channels, state)
        outcome = await orchestrator.run_batch(["a.svg", "b.svg"], metadata)
        if not outcome.success:
            print(state.error)
    """

    def __init__(
        self,
        transport: TranslationTransport,
        channel_provider: PushChannelProvider,
        state: Optional[ProgressState] = None,
        selection: Optional[FileSelectionState] = None,
        id_generator: Optional[CorrelationIdGenerator] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            transport: Server client (start_translation, list_metadata)
            channel_provider: Opens push channels by correlation id
            state: Observable progress state this orchestrator writes
            selection: Optional selection whose listing is refreshed after a batch
            id_generator: Correlation id source
            config: Orchestrator configuration
        """
        self.transport = transport
        self.channel_provider = channel_provider
        self.state = state or ProgressState()
        self.selection = selection
        self.id_generator = id_generator or CorrelationIdGenerator()
        self.config = config or OrchestratorConfig()

        logger.debug(
            f"BatchTranslationOrchestrator initialized: "
            f"channel_timeout={self.config.channel_timeout_seconds}"
        )

    async def translate_selection(self) -> BatchOutcome:
        """Run a batch over the bound selection and its listing."""
        if self.selection is None:
            raise RuntimeError("No FileSelectionState bound to this orchestrator")
        return await self.run_batch(self.selection.selected, self.selection.metadata)

    async def run_batch(
        self,
        selected: Iterable[str],
        metadata: Sequence[FileMetadata],
    ) -> BatchOutcome:
        """
        Translate the selected files one after another.

        Batch-level errors never escape: they are written to the state's
        error slot and returned in BatchOutcome.error.

        Args:
            selected: File names in selection order
            metadata: Current listing used for eligibility

        Returns:
            BatchOutcome with succeeded / failed partition
        """
        start_time = time.time()

        try:
            plan = BatchPlan.build(selected, metadata)
        except BatchTranslationError as e:
            logger.warning(f"Batch rejected: {e}")
            self.state.set_error(str(e))
            return ResultAggregator.rejected(e)

        advisory = plan.advisory
        if advisory is not None:
            logger.warning(str(advisory))
            self.state.set_error(str(advisory))
        else:
            self.state.clear_error()

        total = plan.total
        aggregator = ResultAggregator(plan)
        refreshed: Optional[List[FileMetadata]] = None

        logger.info(f"Batch started: {total} files ({len(plan.outlined)} outlined skipped)")

        try:
            for index, file_name in enumerate(plan.eligible):
                result = await self._translate_file(file_name, index, total)
                aggregator.add(result)

                if not result.success:
                    # ABORT-ON-FIRST-FAILURE: the remaining files are not
                    # attempted. Outcomes still carry a `failed` list and
                    # `not_attempted`; continuing past a failure would
                    # change product behaviour and is left undecided.
                    raise result.error

            self.state.set_batch_progress(BatchProgress(total=total, current=total))

        except BatchTranslationError as e:
            aggregator.fail(e)
            self.state.set_error(f"Batch translation failed: {describe_error(e)}")

        finally:
            if self.config.refresh_after_batch:
                refreshed = await self._refresh_metadata(batch_failed=aggregator.error is not None)
            self.state.clear_progress()

        outcome = aggregator.build(
            metadata=refreshed,
            duration_seconds=time.time() - start_time,
        )

        logger.info(
            f"Batch finished in {outcome.duration_seconds:.1f}s: "
            f"{len(outcome.succeeded)}/{total} succeeded"
        )
        return outcome

    async def _translate_file(self, file_name: str, index: int, total: int) -> AttemptResult:
        """Run one file through channel + start request."""
        self.state.set_batch_progress(
            BatchProgress(total=total, current=index, current_file=file_name)
        )

        attempt = FileAttempt(file_name, self.id_generator.next())
        logger.info(f"[{index + 1}/{total}] Translating {file_name} ({attempt.correlation_id})")

        channel = ProgressChannel(
            self.channel_provider,
            attempt.correlation_id,
            on_event=lambda event: self._on_channel_event(attempt, event),
        )

        try:
            try:
                await channel.open()
            except BatchTranslationError:
                raise
            except Exception as e:
                raise TransportError(f"Could not open progress channel: {e}") from e

            try:
                self.state.set_file_progress(FileProgress(self.config.preparing_message, 0))
                attempt.start()
                event = await self._await_terminal(attempt, channel)
            finally:
                await channel.close()

            if event.kind == ChannelEventKind.ERROR:
                raise ChannelReportedError(
                    event.message or "Translation failed on the server",
                    file_name=file_name,
                )
            return attempt.succeed()

        except BatchTranslationError as e:
            return attempt.fail(e)

        finally:
            self.state.set_file_progress(None)

    async def _await_terminal(self, attempt: FileAttempt, channel: ProgressChannel) -> ChannelEvent:
        """
        Wait for the channel's terminal event.

        The start request completing successfully does not end the step;
        it failing before a terminal event does.
        """
        loop = asyncio.get_running_loop()
        timeout = self.config.channel_timeout_seconds
        deadline = None if timeout is None else loop.time() + timeout

        start_task = asyncio.ensure_future(
            self.transport.start_translation(attempt.file_name, attempt.correlation_id)
        )
        terminal_task = asyncio.ensure_future(channel.wait_terminal())
        pending = {start_task, terminal_task}

        try:
            while not terminal_task.done():
                remaining = None if deadline is None else max(0.0, deadline - loop.time())
                done, pending = await asyncio.wait(
                    pending,
                    timeout=remaining,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if not done:
                    raise ChannelHangError(attempt.file_name, timeout)

                if start_task in done and not terminal_task.done():
                    error = start_task.exception()
                    if error is not None:
                        raise self._as_transport_error(error)
                    logger.debug(f"Start request acknowledged: {attempt.file_name}")
                    attempt.mark_streaming()

            return terminal_task.result()

        finally:
            leftovers = [task for task in (start_task, terminal_task) if not task.done()]
            for task in leftovers:
                task.cancel()
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)
            # Retrieve a start-request failure that lost to the terminal event
            if (
                terminal_task.done()
                and not terminal_task.cancelled()
                and start_task.done()
                and not start_task.cancelled()
                and start_task.exception() is not None
            ):
                logger.debug(
                    f"Start request for {attempt.file_name} failed after terminal event: "
                    f"{start_task.exception()}"
                )

    def _on_channel_event(self, attempt: FileAttempt, event: ChannelEvent):
        if event.kind != ChannelEventKind.PROGRESS:
            return
        attempt.record_progress()
        self.state.set_file_progress(FileProgress(event.message, event.percentage))

    @staticmethod
    def _as_transport_error(error: BaseException) -> BatchTranslationError:
        if isinstance(error, BatchTranslationError):
            return error
        return TransportError(f"Start request failed: {error}")

    async def _refresh_metadata(self, batch_failed: bool) -> Optional[List[FileMetadata]]:
        """Re-read the listing once after a batch."""
        try:
            metadata = list(await self.transport.list_metadata())
        except Exception as e:
            logger.error(f"Metadata refresh failed: {e}")
            if not batch_failed:
                self.state.set_error(LIST_FAILED_MESSAGE)
            return None

        if self.selection is not None:
            self.selection.set_metadata(metadata)
        logger.debug(f"Metadata refreshed: {len(metadata)} files")
        return metadata
