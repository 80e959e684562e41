"""
Pytest configuration and shared fixtures for graph engine tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.graph import NodeKind, ConnectionKind, Position
from models.graph_store import GraphStore
from services.settings_manager import SettingsManager, reset_settings_manager
from canvas.editor import GraphEditor


# ============== Temporary Directory Fixtures ==============

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="aninode_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


# ============== Settings Fixtures ==============

@pytest.fixture
def settings(temp_dir: Path) -> Generator[SettingsManager, None, None]:
    """Settings manager writing to a temporary file."""
    manager = SettingsManager(str(temp_dir / "settings.json"))
    yield manager
    reset_settings_manager()


# ============== Model Fixtures ==============

@pytest.fixture
def store() -> GraphStore:
    """Create an empty graph store."""
    return GraphStore()


@pytest.fixture
def editor() -> GraphEditor:
    """Create an editor over an empty document with default settings."""
    return GraphEditor()


@pytest.fixture
def two_node_graph(editor: GraphEditor):
    """
    PICKER A at (0, 0) wired DIRECT to OUTPUT B at (300, 0).

    Returns (editor, a, b, connection).
    """
    a = editor.add_node(NodeKind.PICKER, Position(0, 0), "A")
    b = editor.add_node(NodeKind.OUTPUT, Position(300, 0), "B")
    conn = editor.connect(a.id, b.id, ConnectionKind.DIRECT)
    return editor, a, b, conn


# ============== Helper Functions ==============

class SignalRecorder:
    """Collect emissions of a Qt signal."""

    def __init__(self, signal):
        self.calls = []
        signal.connect(self._record)

    def _record(self, *args):
        self.calls.append(args)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture
def recorder():
    """Factory fixture: recorder(signal) -> SignalRecorder."""
    return SignalRecorder
