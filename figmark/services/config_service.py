"""
Configuration service for the FigMark annotation editor.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/figmark/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from figmark.editor.annotations import DEFAULT_COLOR, DEFAULT_LINE_WIDTH, is_line_width, is_palette_color
from figmark.editor.geometry import HIT_PADDING
from figmark.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "figmark"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "theme": "dark",
    "log_level": "info",
    # Where the bundled host window writes annotated images and legends
    "default_save_folder": str(Path.home() / "Pictures" / "FigMark"),
    # Base image is fitted into this fraction of the available screen
    "fit_width_ratio": 0.8,
    "fit_height_ratio": 0.6,
    # Hover/click tolerance around shape bounding boxes, in pixels
    "hit_padding": HIT_PADDING,
    # Pick the last-drawn shape when padded boxes overlap
    "hover_topmost_first": False,
    "default_color": DEFAULT_COLOR,
    "default_line_width": DEFAULT_LINE_WIDTH,
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/figmark/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Merge the stored settings over the defaults, repairing the file if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(f"No config at {self._config_path}; writing defaults")
            self._save_to_file()
            return

        try:
            stored = self._read_file()
        except OSError as e:
            self._logger.warning(f"Could not read config file: {e}. Using defaults.")
            return
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            self._logger.warning(f"Config file invalid ({e}); recreating with defaults")
            self._save_to_file()
            return

        self._config.update(stored)
        self._logger.info(f"Configuration loaded from {self._config_path}")
        # Persist keys added since the file was written
        self._save_to_file()

    def _read_file(self) -> Dict[str, Any]:
        with open(self._config_path, "r", encoding="utf-8") as f:
            stored = json.load(f)
        if not isinstance(stored, dict):
            raise ValueError(f"expected a JSON object, got {type(stored).__name__}")
        return stored

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except OSError as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Note:
            Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    def _number(self, key: str, minimum: float, maximum: float) -> float:
        """Read a numeric setting, falling back to its default when invalid."""
        value = self.get(key, DEFAULT_CONFIG[key])
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not minimum <= value <= maximum:
            self._logger.warning(f"Invalid value for '{key}': {value!r}. Using default.")
            return DEFAULT_CONFIG[key]
        return value

    # ─── General Settings ─────────────────────────────────────────────────

    @property
    def theme(self) -> str:
        return self.get("theme", "dark")

    @property
    def log_level(self) -> str:
        return str(self.get("log_level", "info"))

    @property
    def default_save_folder(self) -> str:
        """Get the folder the host window saves annotated images to."""
        return self.get("default_save_folder", DEFAULT_CONFIG["default_save_folder"])

    # ─── Editor Settings ──────────────────────────────────────────────────

    @property
    def fit_width_ratio(self) -> float:
        return self._number("fit_width_ratio", 0.1, 1.0)

    @property
    def fit_height_ratio(self) -> float:
        return self._number("fit_height_ratio", 0.1, 1.0)

    @property
    def hit_padding(self) -> float:
        return self._number("hit_padding", 0, 100)

    @property
    def hover_topmost_first(self) -> bool:
        return bool(self.get("hover_topmost_first", False))

    @property
    def default_color(self) -> str:
        color = self.get("default_color", DEFAULT_COLOR)
        if not isinstance(color, str) or not is_palette_color(color):
            self._logger.warning(f"Color {color!r} is not in the palette. Using default.")
            return DEFAULT_COLOR
        return color.lower()

    @property
    def default_line_width(self) -> int:
        width = self.get("default_line_width", DEFAULT_LINE_WIDTH)
        if not is_line_width(width):
            self._logger.warning(f"Line width {width!r} is not supported. Using default.")
            return DEFAULT_LINE_WIDTH
        return width
