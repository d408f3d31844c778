"""
File management facade.
Listing, upload, batch translate, batch download and batch delete over
one selection, reporting status through the shared ProgressState.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple, Any
import re

from api.models import FileMetadata, UploadResult
from config.constants import ALLOWED_EXTENSIONS, TRANSLATED_SUFFIX
from config.logging_config import get_logger

from .errors import TransportError, describe_error
from .orchestrator import BatchTranslationOrchestrator, LIST_FAILED_MESSAGE
from .progress_tracker import ProgressState
from .result_aggregator import BatchOutcome
from .selection import FileSelectionState

logger = get_logger(__name__)

_TRANSLATED_NAME = re.compile(r"\.(asta|astah|svg)$", re.IGNORECASE)


class FileTransport(Protocol):
    """Server calls used by the file manager."""

    async def list_metadata(self) -> List[FileMetadata]:
        ...

    async def upload_file(self, path: Path) -> UploadResult:
        ...

    async def download_translated(self, file_name: str) -> Tuple[str, bytes]:
        ...

    async def delete_batch(self, file_names: List[str]) -> Any:
        ...


def is_allowed_file(path: Path) -> bool:
    """Extension whitelist check (case-insensitive)."""
    return Path(path).suffix.lower() in ALLOWED_EXTENSIONS


def translated_file_name(file_name: str) -> str:
    """a.svg -> a_translated.svg"""
    renamed, count = _TRANSLATED_NAME.subn(
        lambda m: f"{TRANSLATED_SUFFIX}.{m.group(1)}", file_name
    )
    return renamed if count else f"{file_name}{TRANSLATED_SUFFIX}"


@dataclass
class UploadReport:
    """What happened to a group of local files."""
    uploaded: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    outlined: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class FileManager:
    """
    High-level operations behind a file list UI or the CLI.

    Usage:
        manager = FileManager(client, orchestrator)
        await manager.fetch_files()
        manager.selection.select_all()
        outcome = await manager.translate_selected()
    """

    def __init__(
        self,
        transport: FileTransport,
        orchestrator: BatchTranslationOrchestrator,
        selection: Optional[FileSelectionState] = None,
    ):
        self.transport = transport
        self.orchestrator = orchestrator
        # An empty selection is falsy (__len__), so compare against None
        if selection is None:
            selection = orchestrator.selection
        if selection is None:
            selection = FileSelectionState()
        self.selection = selection
        orchestrator.selection = selection

    @property
    def state(self) -> ProgressState:
        return self.orchestrator.state

    async def fetch_files(self, clear_error: bool = True) -> Optional[List[FileMetadata]]:
        """Reload the listing from the server."""
        self.state.set_loading(True)
        if clear_error:
            self.state.clear_error()
        try:
            metadata = await self.transport.list_metadata()
        except TransportError as e:
            logger.error(f"Listing failed: {describe_error(e)}")
            self.state.set_error(LIST_FAILED_MESSAGE)
            return None
        finally:
            self.state.set_loading(False)

        self.selection.set_metadata(metadata)
        logger.info(f"Listed {len(metadata)} files")
        return metadata

    async def upload_files(self, paths: Iterable[Path]) -> UploadReport:
        """Upload whitelisted files one by one, then refresh the listing."""
        paths = [Path(p) for p in paths]
        report = UploadReport()
        if not paths:
            return report

        valid = [p for p in paths if is_allowed_file(p)]
        report.rejected = [p.name for p in paths if not is_allowed_file(p)]
        allowed = ", ".join(ALLOWED_EXTENSIONS)

        if not valid:
            report.error = f"Only {allowed} files can be uploaded."
            self.state.set_error(report.error)
            return report

        if report.rejected:
            self.state.set_error(
                f"{len(report.rejected)} file(s) have an unsupported format. "
                f"Only {allowed} are allowed."
            )

        try:
            for path in valid:
                result = await self.transport.upload_file(path)
                report.uploaded.append(result.file_name)
                if result.outlined:
                    logger.warning(f"Uploaded file is outlined: {result.file_name}")
                    report.outlined.append(result.file_name)
        except TransportError as e:
            report.error = "File upload failed."
            logger.error(f"Upload failed: {describe_error(e)}")
            self.state.set_error(report.error)
            return report

        await self.fetch_files(clear_error=not report.rejected)
        return report

    async def translate_selected(self) -> BatchOutcome:
        return await self.orchestrator.translate_selection()

    async def download_selected(self, dest_dir: Path) -> List[Path]:
        """Save the latest translation of every selected, translated file."""
        if len(self.selection) == 0:
            self.state.set_error("Select the files to download.")
            return []

        translated = [
            name for name in self.selection.selected
            if name in self.selection.translated_names()
        ]
        if not translated:
            self.state.set_error("None of the selected files have a translation to download.")
            return []

        self.state.clear_error()
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        saved: List[Path] = []
        try:
            for name in translated:
                _, content = await self.transport.download_translated(name)
                target = dest_dir / translated_file_name(name)
                target.write_bytes(content)
                saved.append(target)
                logger.info(f"Downloaded {name} -> {target}")
        except TransportError as e:
            logger.error(f"Download failed: {describe_error(e)}")
            self.state.set_error("File download failed.")
        return saved

    async def delete_selected(self) -> bool:
        """Delete every selected file on the server. Confirmation is the caller's job."""
        names = self.selection.selected
        if not names:
            self.state.set_error("Select the files to delete.")
            return False

        self.state.clear_error()
        try:
            await self.transport.delete_batch(names)
        except TransportError as e:
            self.state.set_error(f"Batch delete failed: {describe_error(e)}")
            return False

        await self.fetch_files()
        self.selection.deselect_all()
        logger.info(f"Deleted {len(names)} files")
        return True
