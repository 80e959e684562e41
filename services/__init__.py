"""Services package."""

from .settings_manager import (
    SettingsManager,
    EditorSettings,
    CanvasSettings,
    NodeLayout,
    WireSettings,
    HistorySettings,
    SyncSettings,
    NEON_PALETTE,
    get_settings,
    reset_settings_manager,
)
from .history import HistoryManager
from .connection_router import ConnectionRouter, WirePath
from .binding_sync import PropertyBindingSynchronizer, SyncReport, coerce_bound_value
from .chain import ChainHighlight, active_chain, node_colors
from .project_manager import (
    ProjectManager,
    GRAPH_FORMAT,
    serialize_graph,
    deserialize_graph,
    clipboard_payload,
)

__all__ = [
    'SettingsManager',
    'EditorSettings',
    'CanvasSettings',
    'NodeLayout',
    'WireSettings',
    'HistorySettings',
    'SyncSettings',
    'NEON_PALETTE',
    'get_settings',
    'reset_settings_manager',
    'HistoryManager',
    'ConnectionRouter',
    'WirePath',
    'PropertyBindingSynchronizer',
    'SyncReport',
    'coerce_bound_value',
    'ChainHighlight',
    'active_chain',
    'node_colors',
    'ProjectManager',
    'GRAPH_FORMAT',
    'serialize_graph',
    'deserialize_graph',
    'clipboard_payload',
]
