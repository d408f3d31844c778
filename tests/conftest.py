"""
Pytest configuration and shared fixtures for batch translation tests.
"""
import sys
import pytest
from pathlib import Path
from typing import List

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from api.models import FileMetadata
from core.batch.orchestrator import BatchTranslationOrchestrator, OrchestratorConfig
from core.batch.progress_tracker import ProgressState
from core.batch.selection import FileSelectionState

from tests.fakes import FakeServer, make_metadata


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def metadata() -> List[FileMetadata]:
    return [make_metadata("a.svg"), make_metadata("b.svg")]


@pytest.fixture
def server(metadata) -> FakeServer:
    return FakeServer(metadata)


@pytest.fixture
def state() -> ProgressState:
    return ProgressState(name="test")


@pytest.fixture
def snapshots(state) -> list:
    """Every snapshot the state publishes."""
    recorded = []
    state.add_callback(recorded.append)
    return recorded


@pytest.fixture
def selection(metadata) -> FileSelectionState:
    return FileSelectionState(metadata)


@pytest.fixture
def orchestrator(server, state, selection) -> BatchTranslationOrchestrator:
    return BatchTranslationOrchestrator(
        transport=server,
        channel_provider=server,
        state=state,
        selection=selection,
        config=OrchestratorConfig(channel_timeout_seconds=2.0),
    )
