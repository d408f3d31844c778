"""
Batch translation error taxonomy.

Every batch-level failure derives from BatchTranslationError so the
orchestrator can catch them at its public boundary and turn them into
a human-readable message for the error slot.
"""

from typing import Iterable, List, Optional


class BatchTranslationError(Exception):
    """Base exception for batch translation errors"""
    pass


class NoSelectionError(BatchTranslationError):
    """Raised when a batch is requested with nothing (usable) selected"""

    def __init__(self, message: str = "Select at least one file to translate."):
        super().__init__(message)


class AllOutlinedError(BatchTranslationError):
    """Every selected file has its text converted to paths"""

    def __init__(self, names: Iterable[str]):
        self.names: List[str] = list(names)
        super().__init__(
            "All selected files are outlined (text converted to paths) "
            f"and cannot be translated: {', '.join(self.names)}"
        )


class TransportError(BatchTranslationError):
    """HTTP request failed (connection error or non-2xx response)"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
    ):
        self.status_code = status_code
        self.server_message = server_message
        super().__init__(message)

    @property
    def display_message(self) -> str:
        """Server-supplied text when available, else the local message."""
        return self.server_message or str(self)


class ChannelReportedError(BatchTranslationError):
    """The push channel delivered an `error` event"""

    def __init__(self, message: str, file_name: Optional[str] = None):
        self.file_name = file_name
        super().__init__(message)


class ChannelHangError(BatchTranslationError):
    """No terminal push event arrived before the deadline"""

    def __init__(self, file_name: str, timeout: float):
        self.file_name = file_name
        self.timeout = timeout
        super().__init__(
            f"No completion event received for {file_name} within {timeout:g}s"
        )


class PartialOutlinedAdvisory(UserWarning):
    """
    Some selected files are outlined and will be skipped.

    Non-fatal: recorded on the outcome and written to the error slot,
    never raised.
    """

    def __init__(self, names: Iterable[str]):
        self.names: List[str] = list(names)
        super().__init__(
            "The following files are outlined and will be excluded "
            f"from translation: {', '.join(self.names)}"
        )


def describe_error(error: BaseException) -> str:
    """Human-readable text for an error, preferring server messages."""
    if isinstance(error, TransportError):
        return error.display_message
    return str(error) or error.__class__.__name__
