"""Snapshot-based undo/redo history.

Each undo step stores a full copy of the editable model (tracks, scenes,
audio clips, duration and playhead). Callers bracket every logical user
gesture with ``begin_tx`` / ``commit_tx`` so it becomes exactly one step;
mutations made outside a transaction are not recorded.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from magnetcut.models.audio import AudioClip
from magnetcut.models.scene import Scene
from magnetcut.models.track import Track
from magnetcut.utils.config import HISTORY_CAPACITY

if TYPE_CHECKING:
    from magnetcut.models.timeline import TimelineState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HistorySnapshot:
    """Deep copy of the editable part of a ``TimelineState``."""

    tracks: list[Track] = field(default_factory=list)
    scenes: list[Scene] = field(default_factory=list)
    audio_clips: list[AudioClip] = field(default_factory=list)
    duration_ms: int = 0
    playhead_ms: int = 0
    label: str = ""

    @classmethod
    def capture(cls, state: TimelineState, label: str = "") -> HistorySnapshot:
        return cls(
            tracks=[t.clone() for t in state.tracks],
            scenes=[s.clone() for s in state.sorted_scenes()],
            audio_clips=[a.clone() for a in state.sorted_audio_clips()],
            duration_ms=state.duration_ms,
            playhead_ms=state.playhead_ms,
            label=label,
        )

    def restore_into(self, state: TimelineState) -> None:
        """Replace the model wholesale with copies of this snapshot."""
        state.tracks = [t.clone() for t in self.tracks]
        state.scenes = {s.id: s.clone() for s in self.scenes}
        state.audio_clips = {a.id: a.clone() for a in self.audio_clips}
        state.duration_ms = self.duration_ms
        state.playhead_ms = self.playhead_ms
        if state.selected_scene_id not in state.scenes:
            state.selected_scene_id = None
        if state.selected_audio_id not in state.audio_clips:
            state.selected_audio_id = None
        state.snap_marker_ids = []

    def structure(self) -> str:
        """Structural serialization used to detect a no-op transaction."""
        return json.dumps(
            {
                "tracks": [t.to_dict() for t in self.tracks],
                "scenes": [s.to_dict() for s in self.scenes],
                "audioClips": [a.to_dict() for a in self.audio_clips],
                "durationMs": self.duration_ms,
                "playheadMs": self.playhead_ms,
            },
            sort_keys=True,
        )


class HistoryManager:
    """Bounded past/future stacks of ``HistorySnapshot`` over one state.

    Purely synchronous; there is no nesting. ``begin_tx`` while a
    transaction is open does nothing.
    """

    def __init__(self, state: TimelineState, capacity: int = HISTORY_CAPACITY):
        self._state = state
        self.capacity = max(1, capacity)
        self.past: list[HistorySnapshot] = []
        self.future: list[HistorySnapshot] = []
        self._tx_base: HistorySnapshot | None = None
        self._restore_hooks: list[Callable[[], None]] = []

    @property
    def in_tx(self) -> bool:
        return self._tx_base is not None

    def add_restore_hook(self, hook: Callable[[], None]) -> None:
        """Call *hook* after every undo, redo and cancelled transaction."""
        self._restore_hooks.append(hook)

    def _run_restore_hooks(self) -> None:
        for hook in self._restore_hooks:
            hook()

    def snapshot(self, label: str = "") -> HistorySnapshot:
        return HistorySnapshot.capture(self._state, label)

    # ------------------------------------------------------------------ Transactions

    def begin_tx(self, label: str = "") -> None:
        if self._tx_base is not None:
            return
        self._tx_base = self.snapshot(label)

    def commit_tx(self) -> bool:
        """Close the open transaction.

        Returns True when a history entry was recorded. A transaction
        with no net change records nothing but still clears the redo
        stack.
        """
        base = self._tx_base
        if base is None:
            return False
        self._tx_base = None
        self.future.clear()
        if base.structure() == self.snapshot().structure():
            logger.debug(f"Discarded empty transaction '{base.label}'")
            return False
        self.past.append(base)
        while len(self.past) > self.capacity:
            self.past.pop(0)
        logger.debug(f"Committed '{base.label}' (undo depth {len(self.past)})")
        return True

    def cancel_tx(self) -> None:
        """Roll the model back to the transaction base without recording."""
        base = self._tx_base
        self._tx_base = None
        if base is not None:
            base.restore_into(self._state)
            self._run_restore_hooks()
            logger.debug(f"Cancelled '{base.label}'")

    # ------------------------------------------------------------------ Undo / redo

    def undo(self) -> bool:
        if self.in_tx:
            self.commit_tx()
        if not self.past:
            return False
        target = self.past.pop()
        self.future.append(self.snapshot(target.label))
        target.restore_into(self._state)
        self._run_restore_hooks()
        logger.debug(f"Undo '{target.label}'")
        return True

    def redo(self) -> bool:
        if self.in_tx:
            self.commit_tx()
        if not self.future:
            return False
        target = self.future.pop()
        self.past.append(self.snapshot(target.label))
        while len(self.past) > self.capacity:
            self.past.pop(0)
        target.restore_into(self._state)
        self._run_restore_hooks()
        logger.debug(f"Redo '{target.label}'")
        return True

    def can_undo(self) -> bool:
        return bool(self.past)

    def can_redo(self) -> bool:
        return bool(self.future)

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()
        self._tx_base = None
