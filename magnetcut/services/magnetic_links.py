"""Magnetic link engine: edge snapping, link bookkeeping and clip moves.

Two scenes on the same track are *linked* when they touch exactly and
each names the other in ``link_right_id`` / ``link_left_id``. Links form
when a move or trim brings an edge within the snap distance of a
neighbour and break once the edges are pulled further apart than the
(larger) unlink distance.

Audio clips carry no link ids; they only snap to contact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from magnetcut.models.timing import end_frame, set_frames
from magnetcut.utils.config import SNAP_PX, UNLINK_PX
from magnetcut.utils.timebase import ms_to_frames, px_to_ms

if TYPE_CHECKING:
    from magnetcut.models.audio import AudioClip
    from magnetcut.models.scene import Scene
    from magnetcut.models.timeline import TimelineState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SnapThresholds:
    """Snap/unlink distances in milliseconds for the current zoom."""

    snap_ms: float
    unlink_ms: float

    @classmethod
    def for_zoom(cls, px_per_sec: float, snap_px: float = SNAP_PX,
                 unlink_px: float = UNLINK_PX) -> SnapThresholds:
        return cls(px_to_ms(snap_px, px_per_sec), px_to_ms(unlink_px, px_per_sec))


# ------------------------------------------------------------------ Link state


def link_pair(left: Scene, right: Scene) -> None:
    """Glue *left*'s right edge to *right*'s left edge (caller ensures contact)."""
    left.link_right_id = right.id
    right.link_left_id = left.id


def unlink_pair(left: Scene, right: Scene) -> None:
    if left.link_right_id == right.id:
        left.link_right_id = None
    if right.link_left_id == left.id:
        right.link_left_id = None


def clear_links(state: TimelineState, scene: Scene) -> None:
    """Drop both of *scene*'s links along with the back-references."""
    if scene.link_left_id is not None:
        other = state.scenes.get(scene.link_left_id)
        if other is not None and other.link_right_id == scene.id:
            other.link_right_id = None
        scene.link_left_id = None
    if scene.link_right_id is not None:
        other = state.scenes.get(scene.link_right_id)
        if other is not None and other.link_left_id == scene.id:
            other.link_left_id = None
        scene.link_right_id = None


def drop_references_to(state: TimelineState, scene_id: str) -> None:
    """Clear every link that points at *scene_id* (used before removal)."""
    for other in state.scenes.values():
        if other.link_left_id == scene_id:
            other.link_left_id = None
        if other.link_right_id == scene_id:
            other.link_right_id = None


def prune_stale_links(state: TimelineState, scene: Scene) -> None:
    """Unlink any side of *scene* whose partner is no longer its touching neighbour."""
    prev, nxt = state.scene_neighbors(scene)
    if scene.link_left_id is not None:
        if prev is None or prev.id != scene.link_left_id or prev.end_ms != scene.start_ms:
            partner = state.scenes.get(scene.link_left_id)
            if partner is not None:
                unlink_pair(partner, scene)
            scene.link_left_id = None
    if scene.link_right_id is not None:
        if nxt is None or nxt.id != scene.link_right_id or nxt.start_ms != scene.end_ms:
            partner = state.scenes.get(scene.link_right_id)
            if partner is not None:
                unlink_pair(scene, partner)
            scene.link_right_id = None


def validate_links(state: TimelineState) -> list[str]:
    """Return a description of every link that breaks mutuality or contact.

    An empty list means the scene graph is consistent.
    """
    problems: list[str] = []
    for scene in state.scenes.values():
        if scene.link_right_id is not None:
            other = state.scenes.get(scene.link_right_id)
            if other is None:
                problems.append(f"{scene.id}: right link to missing {scene.link_right_id}")
            elif other.link_left_id != scene.id:
                problems.append(f"{scene.id}: right link to {other.id} is not mutual")
            elif other.start_ms != scene.end_ms or other.track_id != scene.track_id:
                problems.append(f"{scene.id}: linked to {other.id} without contact")
        if scene.link_left_id is not None:
            other = state.scenes.get(scene.link_left_id)
            if other is None:
                problems.append(f"{scene.id}: left link to missing {scene.link_left_id}")
            elif other.link_right_id != scene.id:
                problems.append(f"{scene.id}: left link to {other.id} is not mutual")
    return problems


def mark_snapped(state: TimelineState, *clip_ids: str) -> None:
    """Record the transient "just snapped" marker for UI feedback."""
    state.snap_marker_ids = list(clip_ids)


# ------------------------------------------------------------------ Placement


def find_free_start(start_f: int, dur_f: int, occupied: Sequence[tuple[int, int]]) -> int:
    """Return the start frame nearest *start_f* where ``dur_f`` frames fit.

    *occupied* holds ``(start, end)`` frame spans of the other clips on the
    track. A position that overlaps nothing is returned unchanged.
    """
    start_f = max(0, start_f)

    def fits(s: int) -> bool:
        e = s + dur_f
        return all(not (s < o_end and o_start < e) for o_start, o_end in occupied)

    if fits(start_f):
        return start_f
    candidates = [0]
    for o_start, o_end in occupied:
        candidates.append(o_end)
        if o_start - dur_f >= 0:
            candidates.append(o_start - dur_f)
    valid = [c for c in candidates if fits(c)]
    # The end of the last clip always fits, so valid is never empty
    return min(valid, key=lambda c: (abs(c - start_f), c))


# ------------------------------------------------------------------ Moves


def move_scene(state: TimelineState, scene_id: str, new_start_ms: int,
               thresholds: SnapThresholds | None = None) -> bool:
    """Reposition a scene on its track and update its magnetic links.

    The start is frame-quantized and clamped to frame 0; a position that
    would overlap another clip on the track is moved to the nearest free
    slot. Returns True when an edge snapped.
    """
    scene = state.scenes.get(scene_id)
    if scene is None:
        return False
    fps = state.fps
    thresholds = thresholds or SnapThresholds.for_zoom(state.px_per_sec)
    dur_f = scene.duration_frame
    old_start = scene.start_ms

    others = [s for s in state.scenes_on_track(scene.track_id) if s.id != scene.id]
    target_f = max(0, ms_to_frames(new_start_ms, fps))
    start_f = find_free_start(target_f, dur_f, [(o.start_frame, end_frame(o)) for o in others])
    set_frames(scene, start_f, dur_f, fps)

    snapped = _settle_scene_links(state, scene, thresholds)
    state.normalize_duration()
    logger.debug(
        f"Moved scene {scene_id}: {old_start}ms -> {scene.start_ms}ms "
        f"(left={scene.link_left_id}, right={scene.link_right_id})"
    )
    return snapped


def move_audio(state: TimelineState, clip_id: str, new_start_ms: int,
               thresholds: SnapThresholds | None = None) -> bool:
    """Reposition an audio clip on its track, snapping to neighbour edges."""
    clip = state.audio_clips.get(clip_id)
    if clip is None:
        return False
    fps = state.fps
    thresholds = thresholds or SnapThresholds.for_zoom(state.px_per_sec)
    dur_f = clip.duration_frame
    old_start = clip.start_ms

    others = [a for a in state.audio_on_track(clip.track_id) if a.id != clip.id]
    target_f = max(0, ms_to_frames(new_start_ms, fps))
    start_f = find_free_start(target_f, dur_f, [(o.start_frame, end_frame(o)) for o in others])
    set_frames(clip, start_f, dur_f, fps)

    prev, nxt = state.audio_neighbors(clip)
    gap_l = clip.start_ms - prev.end_ms if prev else None
    gap_r = nxt.start_ms - clip.end_ms if nxt else None
    snapped_to: AudioClip | None = None
    if gap_l is not None and 0 < gap_l <= thresholds.snap_ms and (gap_r is None or gap_l <= gap_r):
        set_frames(clip, end_frame(prev), dur_f, fps)
        snapped_to = prev
    elif gap_r is not None and 0 < gap_r <= thresholds.snap_ms:
        set_frames(clip, nxt.start_frame - dur_f, dur_f, fps)
        snapped_to = nxt
    if snapped_to is not None:
        mark_snapped(state, clip.id, snapped_to.id)

    state.normalize_duration()
    logger.debug(f"Moved audio {clip_id}: {old_start}ms -> {clip.start_ms}ms")
    return snapped_to is not None


def _settle_scene_links(state: TimelineState, scene: Scene, thresholds: SnapThresholds) -> bool:
    """Snap, hold or break *scene*'s links after it was repositioned.

    A side within the snap distance snaps to exact contact and links.
    A side that was already linked holds contact until the gap exceeds
    the unlink distance. When both sides want to snap the closer one
    wins; the other side links only if it ends up touching.
    """
    fps = state.fps
    dur_f = scene.duration_frame
    prev, nxt = state.scene_neighbors(scene)

    # Links to clips that are no longer the immediate neighbours go first
    if scene.link_left_id is not None and (prev is None or prev.id != scene.link_left_id):
        partner = state.scenes.get(scene.link_left_id)
        if partner is not None:
            unlink_pair(partner, scene)
        scene.link_left_id = None
    if scene.link_right_id is not None and (nxt is None or nxt.id != scene.link_right_id):
        partner = state.scenes.get(scene.link_right_id)
        if partner is not None:
            unlink_pair(scene, partner)
        scene.link_right_id = None

    def wants(gap: int | None, linked: bool) -> bool:
        if gap is None or gap < 0:
            return False
        return gap <= thresholds.snap_ms or (linked and gap <= thresholds.unlink_ms)

    gap_l = scene.start_ms - prev.end_ms if prev else None
    gap_r = nxt.start_ms - scene.end_ms if nxt else None
    want_l = wants(gap_l, prev is not None and scene.link_left_id == prev.id)
    want_r = wants(gap_r, nxt is not None and scene.link_right_id == nxt.id)

    snapped = False
    if want_l and (not want_r or gap_l <= gap_r):
        if gap_l > 0:
            set_frames(scene, end_frame(prev), dur_f, fps)
        if gap_l > 0 or scene.link_left_id != prev.id:
            snapped = True
        link_pair(prev, scene)
    elif want_r:
        if gap_r > 0:
            set_frames(scene, nxt.start_frame - dur_f, dur_f, fps)
        if gap_r > 0 or scene.link_right_id != nxt.id:
            snapped = True
        link_pair(scene, nxt)

    # Whatever side did not snap links only on exact contact
    if prev is not None and scene.link_left_id != prev.id:
        if prev.end_ms == scene.start_ms:
            link_pair(prev, scene)
    elif prev is not None and prev.end_ms != scene.start_ms:
        unlink_pair(prev, scene)
    if nxt is not None and scene.link_right_id != nxt.id:
        if nxt.start_ms == scene.end_ms:
            link_pair(scene, nxt)
    elif nxt is not None and nxt.start_ms != scene.end_ms:
        unlink_pair(scene, nxt)

    if snapped:
        ids = [scene.id]
        if prev is not None and scene.link_left_id == prev.id:
            ids.append(prev.id)
        if nxt is not None and scene.link_right_id == nxt.id:
            ids.append(nxt.id)
        mark_snapped(state, *ids)
    return snapped
