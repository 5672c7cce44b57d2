"""Plain-dict snapshots of the timeline for an external persistence layer.

The engine does no file I/O. ``serializable_state`` produces a JSON-ready
dict and ``restore_state`` rebuilds a ``TimelineState`` from one,
re-deriving frame data for clips written by older ms-only versions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from magnetcut.models.audio import AudioClip
from magnetcut.models.scene import Scene
from magnetcut.models.timing import ensure_all_frame_data
from magnetcut.models.track import Track
from magnetcut.services.magnetic_links import prune_stale_links
from magnetcut.utils.config import ASPECT_RATIOS, SUPPORTED_FPS

if TYPE_CHECKING:
    from magnetcut.models.timeline import TimelineState

logger = logging.getLogger(__name__)


def serializable_state(state: TimelineState) -> dict:
    """Serialize *state* to {tracks, scenes, audioClips, durationMs, fps, aspect, resolution}."""
    return {
        "tracks": [t.to_dict() for t in state.tracks],
        "scenes": [s.to_dict() for s in state.sorted_scenes()],
        "audioClips": [a.to_dict() for a in state.sorted_audio_clips()],
        "durationMs": state.duration_ms,
        "fps": state.fps,
        "aspect": state.aspect,
        "resolution": state.resolution,
    }


def restore_state(state: TimelineState, data: dict) -> None:
    """Replace the contents of *state* with the serialized *data*.

    Raises:
        ValueError: If *data* is not a valid serialized timeline.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Invalid timeline data: expected dict, got {type(data).__name__}")

    fps = data.get("fps", state.fps)
    if fps not in SUPPORTED_FPS:
        raise ValueError(f"Unsupported fps {fps!r} (expected one of {SUPPORTED_FPS})")
    aspect = data.get("aspect", state.aspect)
    if aspect not in ASPECT_RATIOS:
        raise ValueError(f"Unsupported aspect ratio {aspect!r}")

    try:
        tracks = [Track.from_dict(d) for d in data.get("tracks", [])]
        scenes = [Scene.from_dict(d) for d in data.get("scenes", [])]
        audio_clips = [AudioClip.from_dict(d) for d in data.get("audioClips", [])]
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid timeline data: {e}") from e

    ensure_all_frame_data(scenes, audio_clips, fps)

    state.fps = fps
    state.aspect = aspect
    state.resolution = data.get("resolution", state.resolution)
    state.tracks = tracks
    state.order_tracks()
    state.scenes = {s.id: s for s in scenes}
    state.audio_clips = {a.id: a for a in audio_clips}
    state.playhead_ms = 0
    state.selected_scene_id = None
    state.selected_audio_id = None
    state.snap_marker_ids = []

    # Older files could hold links that rounding no longer supports
    for scene in state.scenes.values():
        prune_stale_links(state, scene)
    state.normalize_duration()
    logger.info(
        f"Restored timeline: {len(tracks)} tracks, {len(scenes)} scenes, "
        f"{len(audio_clips)} audio clips @ {fps}fps"
    )
