"""High-level editing operations on a ``TimelineState``.

``TimelineEditor`` is the single entry point the UI layer calls for a
gesture. Each structural edit (insert, split, delete, duplicate, track
changes) is recorded as exactly one undo step; when the caller already
holds a transaction open (a drag in progress) the edit joins it instead.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

from magnetcut.models.asset import AssetInfo, AssetKind
from magnetcut.models.audio import AudioClip, AudioKind
from magnetcut.models.scene import Scene, Transform
from magnetcut.models.timeline import TimelineState
from magnetcut.models.timing import end_frame, ensure_frame_data, set_frames
from magnetcut.models.track import Track, TrackKind
from magnetcut.services import magnetic_links, trim_service
from magnetcut.services.asset_registry import AssetLookup, AssetRegistry
from magnetcut.services.history import HistoryManager
from magnetcut.services.magnetic_links import (
    SnapThresholds,
    clear_links,
    drop_references_to,
    find_free_start,
    link_pair,
    prune_stale_links,
)
from magnetcut.services.playback_query import audio_clips_at, scenes_at
from magnetcut.services.ripple_edit_service import RippleEditService
from magnetcut.services.serialization import restore_state, serializable_state
from magnetcut.services.trim_service import Edge
from magnetcut.utils.config import (
    ASPECT_RATIOS,
    DEFAULT_AUDIO_DURATION_MS,
    DEFAULT_IMAGE_DURATION_MS,
    DEFAULT_VIDEO_DURATION_MS,
    MAX_PX_PER_SEC,
    MIN_CLIP_MS,
    MIN_PX_PER_SEC,
    RESOLUTIONS,
    SNAP_PX,
    SUPPORTED_FPS,
    UNLINK_PX,
    ZOOM_STEP,
)
from magnetcut.utils.timebase import frames_to_ms, ms_to_frames

logger = logging.getLogger(__name__)

_TRACK_PREFIX = {TrackKind.VIDEO: "Media", TrackKind.AUDIO: "Audio"}


def _new_id() -> str:
    return uuid.uuid4().hex


def _clamp(value, lo, hi):
    return max(lo, min(value, hi))


class TimelineEditor:
    """Editing operations over one timeline, with undo history."""

    def __init__(
        self,
        state: TimelineState | None = None,
        assets: AssetLookup | None = None,
        history: HistoryManager | None = None,
        snap_px: float = SNAP_PX,
        unlink_px: float = UNLINK_PX,
        min_clip_ms: int = MIN_CLIP_MS,
    ):
        self.state = state if state is not None else TimelineState()
        self.assets: AssetLookup = assets if assets is not None else AssetRegistry()
        self.history = history if history is not None else HistoryManager(self.state)
        self.snap_px = snap_px
        self.unlink_px = unlink_px
        self.min_clip_ms = min_clip_ms
        # Source lengths learned after insertion; None marks a resolved image
        self._source_durations: dict[str, int | None] = {}
        self.history.add_restore_hook(self._reapply_source_durations)

    # ------------------------------------------------------------------ Helpers

    def thresholds(self) -> SnapThresholds:
        """Snap/unlink distances at the current zoom."""
        return SnapThresholds.for_zoom(self.state.px_per_sec, self.snap_px, self.unlink_px)

    @contextmanager
    def transaction(self, label: str) -> Iterator[None]:
        """Record the enclosed edits as one undo step.

        Joins an already-open transaction instead of nesting. If the body
        raises, an owned transaction is rolled back and the error re-raised.
        """
        owner = not self.history.in_tx
        if owner:
            self.history.begin_tx(label)
        try:
            yield
        except Exception:
            if owner:
                self.history.cancel_tx()
            raise
        if owner:
            self.history.commit_tx()

    def _repair_links(self) -> None:
        for scene in list(self.state.scenes.values()):
            prune_stale_links(self.state, scene)

    def _link_on_contact(self, scene: Scene) -> None:
        prev, nxt = self.state.scene_neighbors(scene)
        if prev is not None and prev.end_ms == scene.start_ms:
            link_pair(prev, scene)
        if nxt is not None and nxt.start_ms == scene.end_ms:
            link_pair(scene, nxt)

    def _min_frames(self) -> int:
        return max(1, ms_to_frames(self.min_clip_ms, self.state.fps))

    def _require_asset(self, asset_id: str) -> AssetInfo | None:
        info = self.assets.get(asset_id)
        if info is None:
            logger.debug(f"Unknown asset {asset_id}, nothing to do")
        return info

    def _known_duration(self, info: AssetInfo) -> int | None:
        if info.asset_id in self._source_durations:
            return self._source_durations[info.asset_id]
        return info.duration_ms if info.duration_known else None

    # ------------------------------------------------------------------ Tracks

    def _create_track(self, kind: TrackKind, name: str | None = None) -> Track:
        kind = TrackKind(kind)
        existing = {t.id for t in self.state.tracks}
        n = len(self.state.tracks_of_kind(kind)) + 1
        while f"{kind.value}-track-{n}" in existing:
            n += 1
        track = Track(
            id=f"{kind.value}-track-{n}",
            name=name or f"{_TRACK_PREFIX[kind]} {len(self.state.tracks_of_kind(kind)) + 1}",
            kind=kind,
        )
        self.state.tracks.append(track)
        self.state.order_tracks()
        logger.info(f"Created track {track.id} ({track.name})")
        return track

    def _resolve_track(self, kind: TrackKind, track_id: str | None) -> Track:
        if track_id is not None:
            track = self.state.track(track_id)
            if track is not None:
                if track.kind is not kind:
                    raise ValueError(
                        f"Track {track_id} holds {track.kind.value} clips, not {kind.value}"
                    )
                return track
            logger.debug(f"Track {track_id} not found, using first {kind.value} track")
        candidates = self.state.tracks_of_kind(kind)
        if candidates:
            return candidates[0]
        return self._create_track(kind)

    def add_track(self, kind: TrackKind | str, name: str | None = None) -> Track:
        with self.transaction("Add track"):
            return self._create_track(TrackKind(kind), name)

    def remove_track(self, track_id: str) -> bool:
        """Remove a track together with the clips placed on it."""
        track = self.state.track(track_id)
        if track is None:
            logger.debug(f"remove_track: no track {track_id}")
            return False
        with self.transaction("Remove track"):
            doomed_scenes = [s.id for s in self.state.scenes.values() if s.track_id == track_id]
            doomed_audio = [a.id for a in self.state.audio_clips.values() if a.track_id == track_id]
            for scene_id in doomed_scenes:
                drop_references_to(self.state, scene_id)
                del self.state.scenes[scene_id]
            for clip_id in doomed_audio:
                del self.state.audio_clips[clip_id]
            self.state.tracks = [t for t in self.state.tracks if t.id != track_id]
            if self.state.selected_scene_id in doomed_scenes:
                self.state.selected_scene_id = None
            if self.state.selected_audio_id in doomed_audio:
                self.state.selected_audio_id = None
            self.state.normalize_duration()
        logger.info(
            f"Removed track {track_id} with {len(doomed_scenes)} scenes, "
            f"{len(doomed_audio)} audio clips"
        )
        return True

    def rename_track(self, track_id: str, name: str) -> bool:
        track = self.state.track(track_id)
        if track is None:
            return False
        with self.transaction("Rename track"):
            track.name = name
        return True

    def toggle_track_mute(self, track_id: str) -> bool:
        track = self.state.track(track_id)
        if track is None:
            return False
        with self.transaction("Toggle track mute"):
            track.muted = not track.muted
            track.soloed = False
        logger.debug(f"Track {track_id} muted={track.muted}")
        return True

    def toggle_track_solo(self, track_id: str) -> bool:
        """Solo is exclusive: soloing one track un-solos every other."""
        track = self.state.track(track_id)
        if track is None:
            return False
        with self.transaction("Toggle track solo"):
            for other in self.state.tracks:
                if other is not track:
                    other.soloed = False
            track.soloed = not track.soloed
            track.muted = False
        logger.debug(f"Track {track_id} soloed={track.soloed}")
        return True

    def move_scene_to_track(self, scene_id: str, track_id: str) -> bool:
        scene = self.state.scenes.get(scene_id)
        track = self.state.track(track_id)
        if scene is None or track is None:
            return False
        if not track.is_video:
            raise ValueError(f"Cannot place scene {scene_id} on {track.kind.value} track {track_id}")
        if scene.track_id == track_id:
            return False
        with self.transaction("Move scene to track"):
            clear_links(self.state, scene)
            others = self.state.scenes_on_track(track_id)
            start_f = find_free_start(
                scene.start_frame, scene.duration_frame,
                [(o.start_frame, end_frame(o)) for o in others],
            )
            scene.track_id = track_id
            set_frames(scene, start_f, scene.duration_frame, self.state.fps)
            self.state.normalize_duration()
        logger.debug(f"Scene {scene_id} -> track {track_id} at {scene.start_ms}ms")
        return True

    def move_audio_to_track(self, clip_id: str, track_id: str) -> bool:
        clip = self.state.audio_clips.get(clip_id)
        track = self.state.track(track_id)
        if clip is None or track is None:
            return False
        if not track.is_audio:
            raise ValueError(f"Cannot place audio {clip_id} on {track.kind.value} track {track_id}")
        if clip.track_id == track_id:
            return False
        with self.transaction("Move audio to track"):
            others = self.state.audio_on_track(track_id)
            start_f = find_free_start(
                clip.start_frame, clip.duration_frame,
                [(o.start_frame, end_frame(o)) for o in others],
            )
            clip.track_id = track_id
            set_frames(clip, start_f, clip.duration_frame, self.state.fps)
            self.state.normalize_duration()
        logger.debug(f"Audio {clip_id} -> track {track_id} at {clip.start_ms}ms")
        return True

    # ------------------------------------------------------------------ Insertion

    def _placement(self, track_id: str, at_ms: int | None, dur_f: int) -> tuple[int, bool]:
        """Return (start frame, appended) for a new clip on *track_id*."""
        clips = self.state.clips_on_track(track_id)
        if at_ms is None:
            start_f = max((end_frame(c) for c in clips), default=0)
            return start_f, bool(clips)
        target = max(0, ms_to_frames(at_ms, self.state.fps))
        occupied = [(c.start_frame, end_frame(c)) for c in clips]
        return find_free_start(target, dur_f, occupied), False

    def add_scene_from_asset(
        self,
        asset_id: str,
        at_ms: int | None = None,
        duration_ms: int | None = None,
        label: str | None = None,
        track_id: str | None = None,
    ) -> Scene | None:
        """Place an image or video asset on a video track.

        Without *at_ms* the scene is appended after the last clip of the
        track and linked to it.
        """
        info = self._require_asset(asset_id)
        if info is None:
            return None
        if info.kind is AssetKind.AUDIO:
            raise ValueError(f"Asset {asset_id} is audio; use add_audio_from_asset")

        fps = self.state.fps
        known_ms = self._known_duration(info) if info.kind is AssetKind.VIDEO else None
        if info.kind is AssetKind.VIDEO:
            default_ms = known_ms or DEFAULT_VIDEO_DURATION_MS
        else:
            default_ms = DEFAULT_IMAGE_DURATION_MS
        dur_f = max(self._min_frames(), ms_to_frames(duration_ms or default_ms, fps))
        if known_ms is not None:
            dur_f = min(dur_f, max(1, ms_to_frames(known_ms, fps)))

        with self.transaction("Add scene"):
            track = self._resolve_track(TrackKind.VIDEO, track_id)
            start_f, appended = self._placement(track.id, at_ms, dur_f)
            scene = Scene(
                id=_new_id(),
                label=label if label is not None else (info.name or None),
                start_frame=start_f,
                duration_frame=dur_f,
                asset_id=asset_id,
                track_id=track.id,
                transform=Transform(),
            )
            if info.kind is AssetKind.VIDEO:
                scene.video_offset_ms = 0
                if known_ms is not None:
                    scene.original_duration_ms = known_ms
                    scene.constraints_resolved = True
            else:
                scene.constraints_resolved = True
            ensure_frame_data(scene, fps)
            self.state.scenes[scene.id] = scene
            if appended:
                prev, _ = self.state.scene_neighbors(scene)
                if prev is not None and prev.end_ms == scene.start_ms:
                    link_pair(prev, scene)
            else:
                self._link_on_contact(scene)
            self.state.selected_scene_id = scene.id
            self.state.selected_audio_id = None
            self.state.normalize_duration()

        logger.info(
            f"Added scene {scene.id} ({info.kind.value}) on {scene.track_id} "
            f"at {scene.start_ms}-{scene.end_ms}ms"
        )
        return scene

    def add_audio_from_asset(
        self,
        asset_id: str,
        kind: AudioKind | str = AudioKind.MUSIC,
        at_ms: int | None = None,
        duration_ms: int | None = None,
        track_id: str | None = None,
    ) -> AudioClip | None:
        info = self._require_asset(asset_id)
        if info is None:
            return None
        if info.kind is not AssetKind.AUDIO:
            raise ValueError(f"Asset {asset_id} is {info.kind.value}; use add_scene_from_asset")
        kind = AudioKind(kind)

        fps = self.state.fps
        known_ms = self._known_duration(info)
        default_ms = known_ms or DEFAULT_AUDIO_DURATION_MS
        dur_f = max(self._min_frames(), ms_to_frames(duration_ms or default_ms, fps))
        if known_ms is not None:
            dur_f = min(dur_f, max(1, ms_to_frames(known_ms, fps)))

        with self.transaction("Add audio"):
            track = self._resolve_track(TrackKind.AUDIO, track_id)
            start_f, _ = self._placement(track.id, at_ms, dur_f)
            clip = AudioClip(
                id=_new_id(),
                asset_id=asset_id,
                kind=kind,
                start_frame=start_f,
                duration_frame=dur_f,
                track_id=track.id,
            )
            if known_ms is not None:
                clip.original_duration_ms = known_ms
                clip.constraints_resolved = True
            ensure_frame_data(clip, fps)
            self.state.audio_clips[clip.id] = clip
            self.state.selected_audio_id = clip.id
            self.state.selected_scene_id = None
            self.state.normalize_duration()

        logger.info(
            f"Added audio {clip.id} ({kind.value}) on {clip.track_id} "
            f"at {clip.start_ms}-{clip.end_ms}ms"
        )
        return clip

    # ------------------------------------------------------------------ Move / trim

    def move_scene(self, scene_id: str, new_start_ms: int) -> bool:
        with self.transaction("Move scene"):
            return magnetic_links.move_scene(self.state, scene_id, new_start_ms, self.thresholds())

    def move_audio(self, clip_id: str, new_start_ms: int) -> bool:
        with self.transaction("Move audio"):
            return magnetic_links.move_audio(self.state, clip_id, new_start_ms, self.thresholds())

    def resize_scene(self, scene_id: str, edge: Edge | str, target_ms: int) -> bool:
        with self.transaction("Trim scene"):
            return trim_service.resize_scene_to(
                self.state, scene_id, edge, target_ms, self.min_clip_ms, self.thresholds()
            )

    def resize_audio(self, clip_id: str, edge: Edge | str, target_ms: int) -> bool:
        with self.transaction("Trim audio"):
            return trim_service.resize_audio_to(
                self.state, clip_id, edge, target_ms, self.min_clip_ms, self.thresholds()
            )

    # ------------------------------------------------------------------ Split

    def split_at(self, ms: int) -> tuple[str, str] | None:
        """Cut the selected clip (or the first clip under *ms*) in two.

        The original is replaced by two new clips; their ids are returned
        as ``(left_id, right_id)``, or None when there was nothing to split.
        The left part becomes the selection.
        """
        fps = self.state.fps
        cut_f = ms_to_frames(ms, fps)

        def inside(clip) -> bool:
            return clip.start_frame < cut_f < end_frame(clip)

        state = self.state
        scene = state.scenes.get(state.selected_scene_id) if state.selected_scene_id else None
        audio = state.audio_clips.get(state.selected_audio_id) if state.selected_audio_id else None
        if scene is not None and not inside(scene):
            scene = None
        if audio is not None and not inside(audio):
            audio = None
        if scene is None and audio is None:
            cut_ms = frames_to_ms(cut_f, fps)
            scene = next((s for s in scenes_at(state, cut_ms) if inside(s)), None)
            if scene is None:
                audio = next((a for a in audio_clips_at(state, cut_ms) if inside(a)), None)

        if scene is not None:
            with self.transaction("Split scene"):
                ids = self._split_scene(scene, cut_f)
            return ids
        if audio is not None:
            with self.transaction("Split audio"):
                ids = self._split_audio(audio, cut_f)
            return ids
        logger.debug(f"split_at({ms}): no clip under the cut")
        return None

    def _split_scene(self, scene: Scene, cut_f: int) -> tuple[str, str]:
        fps = self.state.fps
        state = self.state
        left = scene.clone()
        right = scene.clone()
        left.id = _new_id()
        right.id = _new_id()
        set_frames(left, scene.start_frame, cut_f - scene.start_frame, fps)
        set_frames(right, cut_f, end_frame(scene) - cut_f, fps)
        if scene.video_offset_ms is not None:
            right.video_offset_ms = scene.video_offset_ms + (right.start_ms - scene.start_ms)

        # Outer links move over to the part on the same side
        before = state.scenes.get(scene.link_left_id) if scene.link_left_id else None
        after = state.scenes.get(scene.link_right_id) if scene.link_right_id else None
        del state.scenes[scene.id]
        drop_references_to(state, scene.id)
        left.link_right_id = None
        right.link_left_id = None
        state.scenes[left.id] = left
        state.scenes[right.id] = right
        if before is not None:
            link_pair(before, left)
        if after is not None:
            link_pair(right, after)
        link_pair(left, right)

        state.selected_scene_id = left.id
        state.normalize_duration()
        logger.info(f"Split scene {scene.id} at {right.start_ms}ms -> {left.id} | {right.id}")
        return left.id, right.id

    def _split_audio(self, clip: AudioClip, cut_f: int) -> tuple[str, str]:
        fps = self.state.fps
        cut_ms = frames_to_ms(cut_f, fps)
        left = clip.clone()
        right = clip.clone()
        left.id = _new_id()
        right.id = _new_id()
        right.audio_offset_ms = clip.audio_offset_ms + (cut_ms - clip.start_ms)
        set_frames(left, clip.start_frame, cut_f - clip.start_frame, fps)
        set_frames(right, cut_f, end_frame(clip) - cut_f, fps)
        del self.state.audio_clips[clip.id]
        self.state.audio_clips[left.id] = left
        self.state.audio_clips[right.id] = right

        self.state.selected_audio_id = left.id
        self.state.normalize_duration()
        logger.info(
            f"Split audio {clip.id} at {cut_ms}ms -> {left.id} | {right.id} "
            f"(offset {right.audio_offset_ms}ms)"
        )
        return left.id, right.id

    # ------------------------------------------------------------------ Delete

    def delete_selection(self, ripple: bool = False) -> bool:
        """Remove the selected clip, optionally closing the gap it leaves."""
        state = self.state
        if state.selected_scene_id and state.selected_scene_id in state.scenes:
            scene = state.scenes[state.selected_scene_id]
            with self.transaction("Ripple delete scene" if ripple else "Delete scene"):
                drop_references_to(state, scene.id)
                del state.scenes[scene.id]
                if ripple:
                    self._ripple_close(end_frame(scene), scene.duration_frame)
                remaining = state.scenes_on_track(scene.track_id)
                state.selected_scene_id = self._neighbour_for_selection(remaining, scene)
                state.normalize_duration()
            logger.info(f"Deleted scene {scene.id} (ripple={ripple})")
            return True
        if state.selected_audio_id and state.selected_audio_id in state.audio_clips:
            clip = state.audio_clips[state.selected_audio_id]
            with self.transaction("Ripple delete audio" if ripple else "Delete audio"):
                del state.audio_clips[clip.id]
                if ripple:
                    self._ripple_close(end_frame(clip), clip.duration_frame)
                remaining = state.audio_on_track(clip.track_id)
                state.selected_audio_id = self._neighbour_for_selection(remaining, clip)
                state.normalize_duration()
            logger.info(f"Deleted audio {clip.id} (ripple={ripple})")
            return True
        logger.debug("delete_selection: nothing selected")
        return False

    def _ripple_close(self, from_frame: int, gap_frames: int) -> None:
        moved = RippleEditService.apply_ripple(self.state, from_frame, -gap_frames)
        self._repair_links()
        logger.debug(f"Ripple closed {gap_frames} frames from frame {from_frame}, moved {moved} clips")

    @staticmethod
    def _neighbour_for_selection(remaining: list, removed) -> str | None:
        nxt = next((c for c in remaining if c.start_ms >= removed.start_ms), None)
        if nxt is not None:
            return nxt.id
        before = [c for c in remaining if c.end_ms <= removed.start_ms]
        return before[-1].id if before else None

    # ------------------------------------------------------------------ Duplicate

    def duplicate_selection(self) -> str | None:
        """Place an unlinked copy of the selected clip right after it."""
        state = self.state
        if state.selected_scene_id and state.selected_scene_id in state.scenes:
            original = state.scenes[state.selected_scene_id]
            with self.transaction("Duplicate scene"):
                copy = original.clone()
                copy.id = _new_id()
                copy.link_left_id = None
                copy.link_right_id = None
                self._make_room(original.track_id, end_frame(original), copy.duration_frame)
                set_frames(copy, end_frame(original), copy.duration_frame, state.fps)
                state.scenes[copy.id] = copy
                self._repair_links()
                state.selected_scene_id = copy.id
                state.normalize_duration()
            logger.info(f"Duplicated scene {original.id} -> {copy.id}")
            return copy.id
        if state.selected_audio_id and state.selected_audio_id in state.audio_clips:
            original = state.audio_clips[state.selected_audio_id]
            with self.transaction("Duplicate audio"):
                copy = original.clone()
                copy.id = _new_id()
                self._make_room(original.track_id, end_frame(original), copy.duration_frame)
                set_frames(copy, end_frame(original), copy.duration_frame, state.fps)
                state.audio_clips[copy.id] = copy
                state.selected_audio_id = copy.id
                state.normalize_duration()
            logger.info(f"Duplicated audio {original.id} -> {copy.id}")
            return copy.id
        logger.debug("duplicate_selection: nothing selected")
        return None

    def _make_room(self, track_id: str | None, at_frame: int, dur_f: int) -> None:
        """Push clips on one track right so ``dur_f`` frames fit at *at_frame*."""
        later = [c for c in self.state.clips_on_track(track_id) if c.start_frame >= at_frame]
        if not later:
            return
        overlap = at_frame + dur_f - later[0].start_frame
        if overlap > 0:
            RippleEditService.apply_ripple(self.state, at_frame, overlap, [track_id])

    # ------------------------------------------------------------------ Clip properties

    def set_scene_gain(self, scene_id: str, gain: float) -> bool:
        scene = self.state.scenes.get(scene_id)
        if scene is None:
            return False
        with self.transaction("Scene gain"):
            scene.gain = _clamp(gain, 0.0, 1.0)
        return True

    def toggle_scene_mute(self, scene_id: str) -> bool:
        scene = self.state.scenes.get(scene_id)
        if scene is None:
            return False
        with self.transaction("Toggle scene mute"):
            scene.muted = not scene.muted
        return True

    def set_audio_gain(self, clip_id: str, gain: float) -> bool:
        clip = self.state.audio_clips.get(clip_id)
        if clip is None:
            return False
        with self.transaction("Audio gain"):
            clip.gain = _clamp(gain, 0.0, 1.0)
        return True

    def toggle_audio_mute(self, clip_id: str) -> bool:
        """Audio mute is expressed through gain: muting sets 0, unmuting restores 1."""
        clip = self.state.audio_clips.get(clip_id)
        if clip is None:
            return False
        with self.transaction("Toggle audio mute"):
            clip.gain = 0.0 if clip.gain > 0 else 1.0
        return True

    def set_audio_fade_in(self, clip_id: str, fade_ms: int) -> bool:
        clip = self.state.audio_clips.get(clip_id)
        if clip is None:
            return False
        with self.transaction("Audio fade in"):
            clip.fade_in_ms = max(0, int(fade_ms))
        return True

    def set_audio_fade_out(self, clip_id: str, fade_ms: int) -> bool:
        clip = self.state.audio_clips.get(clip_id)
        if clip is None:
            return False
        with self.transaction("Audio fade out"):
            clip.fade_out_ms = max(0, int(fade_ms))
        return True

    def update_scene_transform(self, scene_id: str, x: float | None = None,
                               y: float | None = None, scale: float | None = None) -> bool:
        scene = self.state.scenes.get(scene_id)
        if scene is None:
            return False
        with self.transaction("Transform scene"):
            current = scene.transform or Transform()
            scene.transform = Transform(
                x=current.x if x is None else x,
                y=current.y if y is None else y,
                scale=current.scale if scale is None else scale,
            )
        return True

    # ------------------------------------------------------------------ Asset binding

    def _clamp_scene_to_source(self, scene: Scene) -> bool:
        max_ms = scene.max_duration_ms
        if max_ms is None:
            return False
        max_f = max(1, ms_to_frames(max_ms, self.state.fps))
        if scene.duration_frame <= max_f:
            return False
        set_frames(scene, scene.start_frame, max_f, self.state.fps)
        prune_stale_links(self.state, scene)
        return True

    def _clamp_audio_to_source(self, clip: AudioClip) -> bool:
        max_ms = clip.max_duration_ms
        if max_ms is None:
            return False
        max_f = max(1, ms_to_frames(max_ms, self.state.fps))
        if clip.duration_frame <= max_f:
            return False
        set_frames(clip, clip.start_frame, max_f, self.state.fps)
        return True

    def replace_scene_asset(self, scene_id: str, asset_id: str) -> bool:
        """Bind a scene to another image/video asset, keeping its timing and links.

        A video with a known length shortens the scene if it is longer
        than the new source.
        """
        scene = self.state.scenes.get(scene_id)
        info = self._require_asset(asset_id)
        if scene is None or info is None:
            return False
        if info.kind is AssetKind.AUDIO:
            raise ValueError(f"Cannot bind audio asset {asset_id} to scene {scene_id}")
        with self.transaction("Replace scene media"):
            scene.asset_id = asset_id
            if not scene.label:
                scene.label = info.name or scene.label
            if info.kind is AssetKind.VIDEO:
                known_ms = self._known_duration(info)
                scene.video_offset_ms = 0
                scene.original_duration_ms = known_ms
                scene.constraints_resolved = known_ms is not None
            else:
                scene.video_offset_ms = None
                scene.original_duration_ms = None
                scene.constraints_resolved = True
            self._clamp_scene_to_source(scene)
            self.state.normalize_duration()
        logger.info(f"Scene {scene_id} now shows asset {asset_id}")
        return True

    def replace_audio_asset(self, clip_id: str, asset_id: str) -> bool:
        clip = self.state.audio_clips.get(clip_id)
        info = self._require_asset(asset_id)
        if clip is None or info is None:
            return False
        if info.kind is not AssetKind.AUDIO:
            raise ValueError(f"Cannot bind {info.kind.value} asset {asset_id} to audio {clip_id}")
        with self.transaction("Replace audio media"):
            clip.asset_id = asset_id
            known_ms = self._known_duration(info)
            clip.audio_offset_ms = 0
            clip.original_duration_ms = known_ms
            clip.constraints_resolved = known_ms is not None
            self._clamp_audio_to_source(clip)
            self.state.normalize_duration()
        logger.info(f"Audio {clip_id} now plays asset {asset_id}")
        return True

    def resolve_asset_duration(self, asset_id: str, duration_ms: int | None) -> int:
        """Apply a late-arriving source duration to every clip bound to *asset_id*.

        Clips are shortened to fit, never lengthened or removed. The
        duration is remembered: clips inserted later start constrained,
        and it is applied again whenever undo, redo or a cancelled gesture
        brings back older clips. Not recorded as an undo step. Returns the
        number of clips shortened.
        """
        info = self.assets.get(asset_id)
        if info is not None and info.kind is AssetKind.IMAGE:
            self._source_durations[asset_id] = None
            return self._apply_source_duration(asset_id, None)
        if duration_ms is None or duration_ms <= 0:
            logger.debug(f"Ignoring invalid duration {duration_ms} for asset {asset_id}")
            return 0

        duration_ms = int(duration_ms)
        self._source_durations[asset_id] = duration_ms
        self.assets.set_duration(asset_id, duration_ms)
        shrunk = self._apply_source_duration(asset_id, duration_ms)
        logger.info(f"Resolved duration of {asset_id}: {duration_ms}ms ({shrunk} clips shortened)")
        return shrunk

    def _apply_source_duration(self, asset_id: str, duration_ms: int | None) -> int:
        if duration_ms is None:
            for scene in self.state.scenes.values():
                if scene.asset_id == asset_id:
                    scene.original_duration_ms = None
                    scene.constraints_resolved = True
            return 0

        shrunk = 0
        for scene in list(self.state.scenes.values()):
            if scene.asset_id != asset_id:
                continue
            scene.original_duration_ms = duration_ms
            scene.constraints_resolved = True
            shrunk += self._clamp_scene_to_source(scene)
        for clip in self.state.audio_clips.values():
            if clip.asset_id != asset_id:
                continue
            clip.original_duration_ms = duration_ms
            clip.constraints_resolved = True
            shrunk += self._clamp_audio_to_source(clip)
        if shrunk:
            self.state.normalize_duration()
        return shrunk

    def _reapply_source_durations(self) -> None:
        shrunk = sum(
            self._apply_source_duration(asset_id, duration_ms)
            for asset_id, duration_ms in self._source_durations.items()
        )
        if shrunk:
            logger.debug(f"Re-applied known source durations ({shrunk} clips shortened)")

    # ------------------------------------------------------------------ Transport / view

    def set_playhead(self, ms: int) -> None:
        self.state.playhead_ms = _clamp(int(ms), 0, self.state.duration_ms)

    def nudge_playhead(self, delta_ms: int) -> None:
        self.set_playhead(self.state.playhead_ms + delta_ms)

    def set_zoom(self, px_per_sec: float) -> None:
        self.state.px_per_sec = _clamp(float(px_per_sec), MIN_PX_PER_SEC, MAX_PX_PER_SEC)

    def zoom_in(self) -> None:
        self.set_zoom(self.state.px_per_sec * ZOOM_STEP)

    def zoom_out(self) -> None:
        self.set_zoom(self.state.px_per_sec / ZOOM_STEP)

    def select_scene(self, scene_id: str | None) -> None:
        self.state.selected_scene_id = scene_id if scene_id in self.state.scenes else None
        self.state.selected_audio_id = None

    def select_audio(self, clip_id: str | None) -> None:
        self.state.selected_audio_id = clip_id if clip_id in self.state.audio_clips else None
        self.state.selected_scene_id = None

    def find_scene_at(self, ms: int) -> str | None:
        """Selected scene if it covers *ms*, else the first scene there in track order."""
        selected = self.state.scenes.get(self.state.selected_scene_id or "")
        if selected is not None and selected.contains(ms):
            return selected.id
        hits = scenes_at(self.state, ms)
        return hits[0].id if hits else None

    def find_audio_at(self, ms: int) -> str | None:
        selected = self.state.audio_clips.get(self.state.selected_audio_id or "")
        if selected is not None and selected.contains(ms):
            return selected.id
        hits = audio_clips_at(self.state, ms)
        return hits[0].id if hits else None

    # ------------------------------------------------------------------ Project settings

    def set_fps(self, fps: int) -> None:
        """Switch the frame rate, re-deriving every clip's frames from its current ms.

        Undo history is cleared since older snapshots hold frames at the
        previous rate.
        """
        if fps not in SUPPORTED_FPS:
            raise ValueError(f"Unsupported fps {fps!r} (expected one of {SUPPORTED_FPS})")
        if fps == self.state.fps:
            return
        clips = list(self.state.scenes.values()) + list(self.state.audio_clips.values())
        for clip in clips:
            start_f = ms_to_frames(clip.start_ms, fps)
            end_f = ms_to_frames(clip.end_ms, fps)
            set_frames(clip, start_f, max(1, end_f - start_f), fps)
        old = self.state.fps
        self.state.fps = fps
        self._repair_links()
        self.state.normalize_duration()
        self.history.clear()
        logger.info(f"Frame rate {old} -> {fps}fps ({len(clips)} clips re-projected)")

    def set_aspect(self, aspect: str) -> None:
        if aspect not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio {aspect!r}")
        self.state.aspect = aspect

    def set_resolution(self, resolution: str) -> None:
        if resolution not in RESOLUTIONS:
            raise ValueError(f"Unsupported resolution {resolution!r}")
        self.state.resolution = resolution

    # ------------------------------------------------------------------ Persistence hooks

    def to_dict(self) -> dict:
        return serializable_state(self.state)

    def load(self, data: dict) -> None:
        """Replace the timeline with serialized *data* and start a fresh history."""
        restore_state(self.state, data)
        self._reapply_source_durations()
        self.history.clear()

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()
