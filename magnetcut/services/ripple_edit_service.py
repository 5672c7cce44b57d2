"""
Service for handling ripple edits across multiple tracks.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from magnetcut.models.timing import end_frame, set_frames

if TYPE_CHECKING:
    from magnetcut.models.timeline import TimelineState

logger = logging.getLogger(__name__)


class RippleEditService:
    """
    Shifts every clip that starts at or after a timeline position, used to
    close the gap left by a ripple delete or to open room for an insert.
    """

    @staticmethod
    def apply_ripple(state: TimelineState, ripple_start_frame: int, delta_frames: int,
                     track_ids: list[str] | None = None) -> int:
        """
        Shift clips starting at or after *ripple_start_frame* by *delta_frames*.

        Args:
            state: The timeline to modify.
            ripple_start_frame: Clips whose start frame is >= this value move.
            delta_frames: Positive pushes later, negative pulls earlier.
            track_ids: Limit the ripple to these tracks (default: all tracks).

        A pull never makes a track overlap: on each track the shift is
        capped by the free space in front of the first clip that moves,
        so a track with content straddling the ripple point keeps its
        spacing. Clips that move together keep their links.

        Returns:
            The number of clips moved.
        """
        if delta_frames == 0:
            return 0

        fps = state.fps
        moved_count = 0
        track_filter = set(track_ids) if track_ids is not None else None
        track_keys = {s.track_id for s in state.scenes.values()}
        track_keys.update(a.track_id for a in state.audio_clips.values())

        for track_id in track_keys:
            if track_filter is not None and track_id not in track_filter:
                continue
            clips = state.clips_on_track(track_id)
            moving = [c for c in clips if c.start_frame >= ripple_start_frame]
            if not moving:
                continue
            shift = delta_frames
            if shift < 0:
                staying = [c for c in clips if c.start_frame < ripple_start_frame]
                floor = max((end_frame(c) for c in staying), default=0)
                first = min(c.start_frame for c in moving)
                shift = max(shift, floor - first)
                if shift != delta_frames:
                    logger.debug(
                        f"Ripple on track {track_id} capped at {shift} frames "
                        f"(requested {delta_frames})"
                    )
                if shift == 0:
                    continue
            for clip in moving:
                set_frames(clip, clip.start_frame + shift, clip.duration_frame, fps)
                moved_count += 1

        return moved_count
