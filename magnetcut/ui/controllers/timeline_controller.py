"""TimelineController — 타임라인 위젯과 편집 엔진 사이의 Qt 바인딩.

press → drag → release 제스처를 하나의 undo 단계로 묶고, 상태 변화를
Qt 시그널로 다시 내보낸다. 엔진(magnetcut.services)은 Qt를 모른다.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from PySide6.QtCore import QObject, QTimer, Signal

from magnetcut.models.timeline import TimelineState
from magnetcut.services.history import HistoryManager
from magnetcut.services.timeline_editor import TimelineEditor
from magnetcut.utils.config import SNAP_MARKER_MS

if TYPE_CHECKING:
    from magnetcut.services.asset_registry import AssetLookup
    from magnetcut.services.settings_manager import SettingsManager
    from magnetcut.services.trim_service import Edge

logger = logging.getLogger(__name__)


class TimelineController(QObject):
    """Routes UI gestures to a ``TimelineEditor`` and reports the results."""

    state_changed = Signal()
    history_changed = Signal(bool, bool)  # can_undo, can_redo
    snapped = Signal(list)                # ids of the clips that just snapped
    snap_cleared = Signal()

    def __init__(
        self,
        editor: TimelineEditor | None = None,
        settings: SettingsManager | None = None,
        assets: AssetLookup | None = None,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        if editor is None:
            editor = self._editor_from_settings(settings, assets)
        self.editor = editor

        # 스냅 표시는 잠깐만 보여준다
        self._snap_timer = QTimer(self)
        self._snap_timer.setSingleShot(True)
        self._snap_timer.setInterval(SNAP_MARKER_MS)
        self._snap_timer.timeout.connect(self._clear_snap_marker)

    @staticmethod
    def _editor_from_settings(settings: SettingsManager | None,
                              assets: AssetLookup | None) -> TimelineEditor:
        if settings is None:
            return TimelineEditor(assets=assets)
        state = TimelineState(fps=settings.get_default_fps())
        return TimelineEditor(
            state,
            assets,
            HistoryManager(state, settings.get_history_capacity()),
            snap_px=settings.get_snap_tolerance(),
            unlink_px=settings.get_unlink_tolerance(),
            min_clip_ms=settings.get_min_clip_ms(),
        )

    @property
    def state(self) -> TimelineState:
        return self.editor.state

    # ------------------------------------------------------------------ Gestures

    def begin_gesture(self, label: str) -> None:
        """Open the undo step for a press → drag → release gesture."""
        self.editor.history.begin_tx(label)

    def end_gesture(self) -> bool:
        committed = self.editor.history.commit_tx()
        self._emit_history()
        return committed

    def cancel_gesture(self) -> None:
        """Escape during a drag: roll back to the state at press time."""
        self.editor.history.cancel_tx()
        self.state_changed.emit()
        self._emit_history()

    def drag_scene(self, scene_id: str, start_ms: int) -> bool:
        return self._run(self.editor.move_scene, scene_id, start_ms)

    def drag_audio(self, clip_id: str, start_ms: int) -> bool:
        return self._run(self.editor.move_audio, clip_id, start_ms)

    def trim_scene(self, scene_id: str, edge: Edge | str, target_ms: int) -> bool:
        return self._run(self.editor.resize_scene, scene_id, edge, target_ms)

    def trim_audio(self, clip_id: str, edge: Edge | str, target_ms: int) -> bool:
        return self._run(self.editor.resize_audio, clip_id, edge, target_ms)

    # ------------------------------------------------------------------ Commands

    def add_scene(self, asset_id: str, **kwargs) -> Any:
        return self._run(self.editor.add_scene_from_asset, asset_id, **kwargs)

    def add_audio(self, asset_id: str, **kwargs) -> Any:
        return self._run(self.editor.add_audio_from_asset, asset_id, **kwargs)

    def split_at_playhead(self) -> tuple[str, str] | None:
        return self._run(self.editor.split_at, self.state.playhead_ms)

    def delete_selection(self, ripple: bool = False) -> bool:
        return self._run(self.editor.delete_selection, ripple)

    def duplicate_selection(self) -> str | None:
        return self._run(self.editor.duplicate_selection)

    def resolve_asset_duration(self, asset_id: str, duration_ms: int | None) -> int:
        return self._run(self.editor.resolve_asset_duration, asset_id, duration_ms)

    def undo(self) -> bool:
        done = self.editor.undo()
        if done:
            self.state_changed.emit()
        self._emit_history()
        return done

    def redo(self) -> bool:
        done = self.editor.redo()
        if done:
            self.state_changed.emit()
        self._emit_history()
        return done

    def set_playhead(self, ms: int) -> None:
        self.editor.set_playhead(ms)
        self.state_changed.emit()

    def zoom_in(self) -> None:
        self.editor.zoom_in()
        self.state_changed.emit()

    def zoom_out(self) -> None:
        self.editor.zoom_out()
        self.state_changed.emit()

    # ------------------------------------------------------------------ Internals

    def _run(self, action: Callable[..., Any], *args, **kwargs) -> Any:
        marker_before = self.state.snap_marker_ids
        result = action(*args, **kwargs)
        marker = self.state.snap_marker_ids
        if marker and marker is not marker_before:
            self.snapped.emit(list(marker))
            self._snap_timer.start()
        self.state_changed.emit()
        self._emit_history()
        return result

    def _emit_history(self) -> None:
        history = self.editor.history
        self.history_changed.emit(history.can_undo(), history.can_redo())

    def _clear_snap_marker(self) -> None:
        if not self.state.snap_marker_ids:
            return
        self.state.snap_marker_ids = []
        logger.debug("Snap marker cleared")
        self.snap_cleared.emit()
