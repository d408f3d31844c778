"""
File selection state.

Holds the full metadata listing fetched from the server and the set of
file names the user picked. Selection keeps insertion order, which is
the order a batch translates files in.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from api.models import FileMetadata
from config.logging_config import get_logger

logger = get_logger(__name__)


class FileSelectionState:
    """
    Mutable selection over a metadata listing.

    Usage:
        selection = FileSelectionState(metadata)
        selection.toggle("a.svg")
        selection.select_all()
        for name in selection.selected:
            ...
    """

    def __init__(self, metadata: Sequence[FileMetadata] = ()):
        self._metadata: List[FileMetadata] = list(metadata)
        # dict used as an ordered set
        self._selected: Dict[str, None] = {}

    # ---------- listing ----------

    @property
    def metadata(self) -> List[FileMetadata]:
        return list(self._metadata)

    def set_metadata(self, metadata: Sequence[FileMetadata]):
        """Replace the listing wholesale (no incremental merge)."""
        self._metadata = list(metadata)
        stale = [name for name in self._selected if self.get(name) is None]
        if stale:
            logger.debug(f"Selection holds names missing from listing: {stale}")

    def get(self, file_name: str) -> Optional[FileMetadata]:
        for entry in self._metadata:
            if entry.file_name == file_name:
                return entry
        return None

    def file_names(self) -> List[str]:
        return [entry.file_name for entry in self._metadata]

    def outlined_names(self) -> List[str]:
        return [entry.file_name for entry in self._metadata if entry.outlined]

    def translated_names(self) -> List[str]:
        return [entry.file_name for entry in self._metadata if entry.translated]

    # ---------- selection ----------

    @property
    def selected(self) -> List[str]:
        """Selected names in selection order."""
        return list(self._selected)

    def is_selected(self, file_name: str) -> bool:
        return file_name in self._selected

    def select(self, file_name: str):
        self._selected.setdefault(file_name, None)

    def deselect(self, file_name: str):
        self._selected.pop(file_name, None)

    def toggle(self, file_name: str) -> bool:
        """Flip membership of one file. Returns the new membership."""
        if file_name in self._selected:
            del self._selected[file_name]
            return False
        self._selected[file_name] = None
        return True

    def select_all(self):
        """Select exactly the names in the listing as of now."""
        self._selected = dict.fromkeys(self.file_names())

    def deselect_all(self):
        self._selected = {}

    def toggle_all(self):
        """Header checkbox: clear when everything is selected, else select all."""
        if self._metadata and len(self._selected) == len(self._metadata):
            self.deselect_all()
        else:
            self.select_all()

    def select_many(self, file_names: Iterable[str]):
        for name in file_names:
            self.select(name)

    def __contains__(self, file_name: object) -> bool:
        return file_name in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def __iter__(self):
        return iter(list(self._selected))
