"""Edge trimming for scenes and audio clips.

Bounds on a dragged edge come from the opposite edge plus the minimum
clip length, from the neighbouring clip on that side, and from the
source length of the bound media (videos and audio only; images are
unbounded).

A scene edge that is linked to its neighbour behaves magnetically:

* pushing it into the neighbour rolls the shared junction, resizing both
  clips while their far edges stay put;
* pulling it away keeps it stuck to the junction until the pointer is
  further than the unlink distance, then the link breaks and the scene
  is trimmed on its own.

Unlinked edges trim only the dragged clip and may snap to (and link
with) a neighbour that comes within the snap distance.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from magnetcut.models.timing import end_frame, set_frames
from magnetcut.services.magnetic_links import SnapThresholds, link_pair, mark_snapped, unlink_pair
from magnetcut.utils.config import MIN_CLIP_MS
from magnetcut.utils.timebase import frames_to_ms, ms_to_frames

if TYPE_CHECKING:
    from magnetcut.models.scene import Scene
    from magnetcut.models.timeline import TimelineState

logger = logging.getLogger(__name__)


class Edge(str, Enum):
    LEFT = "left"
    RIGHT = "right"


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(v, hi))


def _min_frames(min_ms: int, fps: int) -> int:
    return max(1, ms_to_frames(min_ms, fps))


def _max_frames(max_ms: int | None, fps: int) -> int | None:
    if max_ms is None:
        return None
    return max(1, ms_to_frames(max_ms, fps))


# ------------------------------------------------------------------ Scenes


def resize_scene_to(state: TimelineState, scene_id: str, edge: Edge | str, target_ms: int,
                    min_ms: int = MIN_CLIP_MS, thresholds: SnapThresholds | None = None) -> bool:
    """Move one edge of a scene towards *target_ms*.

    Returns True when anything changed.
    """
    scene = state.scenes.get(scene_id)
    if scene is None:
        return False
    edge = Edge(edge)
    thresholds = thresholds or SnapThresholds.for_zoom(state.px_per_sec)
    before = (scene.start_frame, scene.duration_frame)
    prev, nxt = state.scene_neighbors(scene)

    if edge is Edge.LEFT:
        changed = _resize_scene_left(state, scene, prev, target_ms, min_ms, thresholds)
    else:
        changed = _resize_scene_right(state, scene, nxt, target_ms, min_ms, thresholds)

    if changed:
        state.normalize_duration()
        logger.debug(
            f"Trimmed scene {scene_id} {edge.value}: frames {before} -> "
            f"({scene.start_frame}, {scene.duration_frame})"
        )
    return changed


def _earliest_start(scene: Scene, fps: int) -> int | None:
    """First frame a scene's left edge may reach without revealing missing source."""
    if scene.video_offset_ms is not None:
        return scene.start_frame - ms_to_frames(scene.video_offset_ms, fps)
    max_f = _max_frames(scene.max_duration_ms, fps)
    if max_f is not None:
        return end_frame(scene) - max_f
    return None


def _shift_video_offset(scene: Scene, delta_ms: int) -> None:
    if scene.video_offset_ms is not None:
        scene.video_offset_ms = max(0, scene.video_offset_ms + delta_ms)


def _resize_scene_left(state: TimelineState, cur: Scene, prev: Scene | None, target_ms: int,
                       min_ms: int, thresholds: SnapThresholds) -> bool:
    fps = state.fps
    min_f = _min_frames(min_ms, fps)
    end_f = end_frame(cur)
    old_start_ms = cur.start_ms
    target_f = ms_to_frames(target_ms, fps)

    if prev is not None and cur.link_left_id == prev.id:
        pull_ms = target_ms - cur.start_ms
        if pull_ms > thresholds.unlink_ms:
            unlink_pair(prev, cur)
            logger.debug(f"Unlinked {prev.id} | {cur.id}: pulled {pull_ms}ms apart")
        elif pull_ms >= 0:
            return False
        else:
            return _roll_junction(state, prev, cur, target_f, min_f)

    earliest = _earliest_start(cur, fps)
    low = end_frame(prev) if prev is not None else 0
    if earliest is not None:
        low = max(low, earliest)
    high = end_f - min_f
    new_start = max(low, min(target_f, high))
    new_start = min(new_start, end_f - 1)
    changed = new_start != cur.start_frame
    set_frames(cur, new_start, end_f - new_start, fps)

    if prev is not None:
        gap = cur.start_ms - prev.end_ms
        prev_end = end_frame(prev)
        fits = earliest is None or prev_end >= earliest
        if 0 <= gap <= thresholds.snap_ms and fits:
            set_frames(cur, prev_end, end_f - prev_end, fps)
            if cur.link_left_id != prev.id:
                link_pair(prev, cur)
                mark_snapped(state, cur.id, prev.id)
            changed = True
    _shift_video_offset(cur, cur.start_ms - old_start_ms)
    return changed


def _resize_scene_right(state: TimelineState, cur: Scene, nxt: Scene | None, target_ms: int,
                        min_ms: int, thresholds: SnapThresholds) -> bool:
    fps = state.fps
    min_f = _min_frames(min_ms, fps)
    max_f = _max_frames(cur.max_duration_ms, fps)
    start_f = cur.start_frame
    target_f = ms_to_frames(target_ms, fps)

    if nxt is not None and cur.link_right_id == nxt.id:
        pull_ms = cur.end_ms - target_ms
        if pull_ms > thresholds.unlink_ms:
            unlink_pair(cur, nxt)
            logger.debug(f"Unlinked {cur.id} | {nxt.id}: pulled {pull_ms}ms apart")
        elif pull_ms >= 0:
            return False
        else:
            return _roll_junction(state, cur, nxt, target_f, min_f)

    low = start_f + min_f
    high = nxt.start_frame if nxt is not None else None
    if max_f is not None:
        high = start_f + max_f if high is None else min(high, start_f + max_f)
    new_end = max(low, target_f) if high is None else max(low, min(target_f, high))
    if nxt is not None:
        new_end = min(new_end, nxt.start_frame)
    new_end = max(new_end, start_f + 1)
    changed = new_end != end_frame(cur)
    set_frames(cur, start_f, new_end - start_f, fps)

    if nxt is not None:
        gap = nxt.start_ms - cur.end_ms
        fits = max_f is None or nxt.start_frame - start_f <= max_f
        if 0 <= gap <= thresholds.snap_ms and fits:
            set_frames(cur, start_f, nxt.start_frame - start_f, fps)
            if cur.link_right_id != nxt.id:
                link_pair(cur, nxt)
                mark_snapped(state, cur.id, nxt.id)
            changed = True
    return changed


def _roll_junction(state: TimelineState, left: Scene, right: Scene, target_f: int, min_f: int) -> bool:
    """Move the shared edge of a linked pair, keeping both far edges fixed.

    The junction is clamped by the intersection of both clips' limits:
    each keeps at least *min_f* frames and neither may exceed its source
    length. The right clip's in-point follows the junction.
    """
    fps = state.fps
    left_start = left.start_frame
    right_end = end_frame(right)
    low = left_start + min_f
    high = right_end - min_f
    left_max = _max_frames(left.max_duration_ms, fps)
    if left_max is not None:
        high = min(high, left_start + left_max)
    right_earliest = _earliest_start(right, fps)
    if right_earliest is not None:
        low = max(low, right_earliest)
    current = right.start_frame
    if low > high:
        return False
    # Never push the junction past a limit it already respects
    junction = _clamp(target_f, min(low, current), max(high, current))
    if junction == current:
        return False
    old_right_ms = right.start_ms
    set_frames(left, left_start, junction - left_start, fps)
    set_frames(right, junction, right_end - junction, fps)
    _shift_video_offset(right, right.start_ms - old_right_ms)
    logger.debug(f"Rolled junction {left.id} | {right.id} to frame {junction}")
    return True


# ------------------------------------------------------------------ Audio


def resize_audio_to(state: TimelineState, clip_id: str, edge: Edge | str, target_ms: int,
                    min_ms: int = MIN_CLIP_MS, thresholds: SnapThresholds | None = None) -> bool:
    """Trim an audio clip edge towards *target_ms*.

    Trimming the left edge shifts ``audio_offset_ms`` by exactly the
    timeline delta so the visible region keeps pointing at the same
    source material; the right edge only changes duration.
    """
    clip = state.audio_clips.get(clip_id)
    if clip is None:
        return False
    edge = Edge(edge)
    fps = state.fps
    thresholds = thresholds or SnapThresholds.for_zoom(state.px_per_sec)
    prev, nxt = state.audio_neighbors(clip)
    min_f = _min_frames(min_ms, fps)
    target_f = ms_to_frames(target_ms, fps)
    before = (clip.start_frame, clip.duration_frame, clip.audio_offset_ms)

    if edge is Edge.LEFT:
        end_f = end_frame(clip)
        prev_end = end_frame(prev) if prev is not None else 0
        # Cannot reveal material before the start of the source file
        earliest = clip.start_frame - ms_to_frames(clip.audio_offset_ms, fps)
        low = max(prev_end, earliest)
        high = end_f - min_f
        new_start = min(max(low, min(target_f, high)), end_f - 1)

        if prev is not None:
            gap = frames_to_ms(new_start, fps) - prev.end_ms
            if 0 < gap <= thresholds.snap_ms and prev_end >= earliest:
                new_start = prev_end
                mark_snapped(state, clip.id, prev.id)

        delta_ms = frames_to_ms(new_start, fps) - clip.start_ms
        clip.audio_offset_ms = max(0, clip.audio_offset_ms + delta_ms)
        set_frames(clip, new_start, end_f - new_start, fps)
    else:
        start_f = clip.start_frame
        max_f = _max_frames(clip.max_duration_ms, fps)
        low = start_f + min_f
        high = nxt.start_frame if nxt is not None else None
        if max_f is not None:
            high = start_f + max_f if high is None else min(high, start_f + max_f)
        new_end = max(low, target_f) if high is None else max(low, min(target_f, high))
        if nxt is not None:
            new_end = min(new_end, nxt.start_frame)
        new_end = max(new_end, start_f + 1)

        if nxt is not None:
            gap = nxt.start_ms - frames_to_ms(new_end, fps)
            fits = max_f is None or nxt.start_frame - start_f <= max_f
            if 0 < gap <= thresholds.snap_ms and fits:
                new_end = nxt.start_frame
                mark_snapped(state, clip.id, nxt.id)
        set_frames(clip, start_f, new_end - start_f, fps)

    changed = before != (clip.start_frame, clip.duration_frame, clip.audio_offset_ms)
    if changed:
        state.normalize_duration()
        logger.debug(
            f"Trimmed audio {clip_id} {edge.value}: start={clip.start_ms}ms "
            f"end={clip.end_ms}ms offset={clip.audio_offset_ms}ms"
        )
    return changed
