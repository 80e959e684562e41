"""
Settings Manager.

Handles editor settings with JSON file storage.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from typing import Optional
from pathlib import Path

logger = logging.getLogger(__name__)


# Accent colours assigned to chains, in root order
NEON_PALETTE = ["#00FFFF", "#FF00FF", "#00FF00", "#FFFF00", "#FF3333", "#FFA500", "#8A2BE2"]


@dataclass
class CanvasSettings:
    """Viewport and gesture parameters."""
    snap_size: float = 20.0
    zoom_min: float = 0.2
    zoom_max: float = 3.0
    focus_padding: float = 100.0
    zoom_sensitivity: float = 0.001
    pinch_sensitivity: float = 0.005
    click_threshold: float = 5.0   # screen pixels; below this a pan is a click
    screen_width: float = 1280.0
    screen_height: float = 800.0


@dataclass
class NodeLayout:
    """Node geometry in world units."""
    width: float = 256.0
    default_height: float = 128.0
    min_width: float = 160.0
    min_height: float = 80.0
    port_offset_x: float = 16.0    # port anchor distance outside the node edge
    port_offset_y: float = 40.0    # port anchor distance below the node top


@dataclass
class WireSettings:
    """Connection path parameters."""
    control_point_offset: float = 100.0
    dash_gap: float = 5.0
    dotted_dash: float = 10.0
    arrow_margin: float = 5.0
    base_stroke: float = 2.0
    stroke_min: float = 1.5
    stroke_max: float = 6.0
    remote_stroke: float = 1.5
    remote_stroke_min: float = 1.0


@dataclass
class HistorySettings:
    max_entries: int = 0  # 0 = unlimited


@dataclass
class SyncSettings:
    max_passes: int = 8   # reconciliation passes before giving up


@dataclass
class EditorSettings:
    """Complete editor settings."""
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    node: NodeLayout = field(default_factory=NodeLayout)
    wire: WireSettings = field(default_factory=WireSettings)
    history: HistorySettings = field(default_factory=HistorySettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    palette: list = field(default_factory=lambda: list(NEON_PALETTE))
    recent_files: list = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "canvas": asdict(self.canvas),
            "node": asdict(self.node),
            "wire": asdict(self.wire),
            "history": asdict(self.history),
            "sync": asdict(self.sync),
            "palette": self.palette,
            "recent_files": self.recent_files,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EditorSettings":
        """Create from dictionary."""
        settings = cls()

        if "canvas" in data:
            settings.canvas = CanvasSettings(**data["canvas"])
        if "node" in data:
            settings.node = NodeLayout(**data["node"])
        if "wire" in data:
            settings.wire = WireSettings(**data["wire"])
        if "history" in data:
            settings.history = HistorySettings(**data["history"])
        if "sync" in data:
            settings.sync = SyncSettings(**data["sync"])
        if data.get("palette"):
            settings.palette = list(data["palette"])
        if "recent_files" in data:
            settings.recent_files = data["recent_files"]

        return settings


class SettingsManager:
    """
    Manages editor settings with JSON file storage.

    Settings file location:
    - Windows: %APPDATA%/AninodeGraph/settings.json
    - Linux: ~/.config/AninodeGraph/settings.json
    - macOS: ~/Library/Application Support/AninodeGraph/settings.json
    """

    APP_NAME = "AninodeGraph"
    SETTINGS_FILE = "settings.json"
    RECENT_FILES_MAX = 10

    def __init__(self, config_override: Optional[str] = None):
        """
        Initialize settings manager.

        Args:
            config_override: Optional path to override config file location.
                            Useful for testing.
        """
        self._settings = EditorSettings()
        self._config_override = config_override
        self._settings_path = self._get_settings_path()
        self.load()

    @property
    def settings(self) -> EditorSettings:
        """Get current settings."""
        return self._settings

    @property
    def settings_path(self) -> str:
        """Get the settings file path."""
        return str(self._settings_path)

    # Convenience properties for common settings
    @property
    def snap_size(self) -> float:
        return self._settings.canvas.snap_size

    @snap_size.setter
    def snap_size(self, value: float):
        self._settings.canvas.snap_size = value
        self.save()

    @property
    def screen_size(self) -> tuple[float, float]:
        return (self._settings.canvas.screen_width, self._settings.canvas.screen_height)

    def _get_settings_path(self) -> Path:
        """Get platform-specific settings directory."""
        if self._config_override:
            return Path(self._config_override)

        import platform
        system = platform.system()

        if system == "Windows":
            base = os.environ.get("APPDATA", os.path.expanduser("~"))
            config_dir = Path(base) / self.APP_NAME
        elif system == "Darwin":  # macOS
            config_dir = Path.home() / "Library" / "Application Support" / self.APP_NAME
        else:  # Linux and others
            xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            config_dir = Path(xdg_config) / self.APP_NAME

        return config_dir / self.SETTINGS_FILE

    def load(self) -> bool:
        """Load settings from file."""
        if not self._settings_path.exists():
            return False

        try:
            with open(self._settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._settings = EditorSettings.from_dict(data)
            return True
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading settings: {e}")
            return False

    def save(self) -> bool:
        """Save settings to file."""
        try:
            self._settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings.to_dict(), f, indent=2)
            return True
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            return False

    def reset(self):
        """Reset settings to defaults."""
        self._settings = EditorSettings()
        self.save()

    def add_recent_file(self, file_path: str):
        """Add a file to recent files list."""
        if file_path in self._settings.recent_files:
            self._settings.recent_files.remove(file_path)

        self._settings.recent_files.insert(0, file_path)
        self._settings.recent_files = self._settings.recent_files[:self.RECENT_FILES_MAX]

        self.save()

    def get_recent_files(self) -> list:
        """Get recent files list, filtered to existing files."""
        existing = [f for f in self._settings.recent_files if os.path.exists(f)]
        if len(existing) != len(self._settings.recent_files):
            self._settings.recent_files = existing
            self.save()
        return existing


# Global settings instance
_settings_manager: Optional[SettingsManager] = None


def get_settings(config_override: Optional[str] = None) -> SettingsManager:
    """
    Get the global settings manager instance.

    Args:
        config_override: Optional path to override config location.
                        Only used on first call to initialize.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager(config_override)
    return _settings_manager


def reset_settings_manager():
    """Reset the global settings manager (useful for testing)."""
    global _settings_manager
    _settings_manager = None
