"""Settings manager for editor preferences."""

from typing import Any, Optional

from PySide6.QtCore import QSettings

from magnetcut.utils.config import (
    DEFAULT_FPS,
    HISTORY_CAPACITY,
    MIN_CLIP_MS,
    SNAP_PX,
    SUPPORTED_FPS,
    UNLINK_PX,
)


class SettingsManager:
    """Wrapper around QSettings for type-safe preference management."""

    def __init__(self, settings: Optional[QSettings] = None):
        self._settings = settings if settings is not None else QSettings()

    # ---------------------------------------------------- Magnetic Editing

    def get_snap_tolerance(self) -> int:
        """Get the snap distance in pixels (default: 8)."""
        return self._settings.value("editing/snap_tolerance", SNAP_PX, int)

    def set_snap_tolerance(self, pixels: int) -> None:
        """Set the snap distance in pixels."""
        self._settings.setValue("editing/snap_tolerance", pixels)

    def get_unlink_tolerance(self) -> int:
        """Get the distance in pixels needed to break a link (default: 14).

        Never smaller than the snap distance, otherwise a freshly snapped
        pair would come apart on the next drag event.
        """
        value = self._settings.value("editing/unlink_tolerance", UNLINK_PX, int)
        return max(value, self.get_snap_tolerance())

    def set_unlink_tolerance(self, pixels: int) -> None:
        self._settings.setValue("editing/unlink_tolerance", pixels)

    def get_min_clip_ms(self) -> int:
        """Get the shortest length a trim may leave, in ms (default: 100)."""
        return self._settings.value("editing/min_clip_ms", MIN_CLIP_MS, int)

    def set_min_clip_ms(self, ms: int) -> None:
        self._settings.setValue("editing/min_clip_ms", ms)

    # ---------------------------------------------------- Project Defaults

    def get_history_capacity(self) -> int:
        """Get the number of undo steps kept (default: 100)."""
        return max(1, self._settings.value("history/capacity", HISTORY_CAPACITY, int))

    def set_history_capacity(self, steps: int) -> None:
        self._settings.setValue("history/capacity", steps)

    def get_default_fps(self) -> int:
        """Get the frame rate for new timelines (default: 30).

        Unsupported stored values fall back to the default.
        """
        fps = self._settings.value("project/default_fps", DEFAULT_FPS, int)
        return fps if fps in SUPPORTED_FPS else DEFAULT_FPS

    def set_default_fps(self, fps: int) -> None:
        if fps not in SUPPORTED_FPS:
            raise ValueError(f"Unsupported fps {fps!r} (expected one of {SUPPORTED_FPS})")
        self._settings.setValue("project/default_fps", fps)

    # ---------------------------------------------------- General Methods

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        self._settings.clear()

    def sync(self) -> None:
        """Force synchronization of settings to disk."""
        self._settings.sync()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value by key."""
        return self._settings.value(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a setting value by key."""
        self._settings.setValue(key, value)
