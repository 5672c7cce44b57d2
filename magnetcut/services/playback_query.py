"""Read-only queries for the playback and render layers.

Nothing here mutates the timeline. The engine only stores track
mute/solo flags; the helpers below spell out how a transport is expected
to combine them. Solo is global: once any track is soloed, every
non-soloed track is silent. A muted track is always silent. Mute and solo
only affect sound, so a video track never hides its scenes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from magnetcut.models.audio import AudioClip
    from magnetcut.models.scene import Scene
    from magnetcut.models.timeline import TimelineState
    from magnetcut.models.track import Track


def scenes_at(state: TimelineState, timeline_ms: int) -> list[Scene]:
    """Scenes covering *timeline_ms*, in track order."""
    order = {t.id: i for i, t in enumerate(state.tracks)}
    hits = [s for s in state.scenes.values() if s.contains(timeline_ms)]
    return sorted(hits, key=lambda s: (order.get(s.track_id, len(order)), s.start_ms))


def audio_clips_at(state: TimelineState, timeline_ms: int) -> list[AudioClip]:
    order = {t.id: i for i, t in enumerate(state.tracks)}
    hits = [a for a in state.audio_clips.values() if a.contains(timeline_ms)]
    return sorted(hits, key=lambda a: (order.get(a.track_id, len(order)), a.start_ms))


def is_track_audible(state: TimelineState, track: Track | None) -> bool:
    if track is None:
        return True
    if track.muted:
        return False
    solo_active = any(t.soloed for t in state.tracks)
    return not solo_active or track.soloed


def audible_audio_clips_at(state: TimelineState, timeline_ms: int) -> list[AudioClip]:
    """Audio clips at *timeline_ms* on audible tracks, skipping silent clips."""
    return [
        clip for clip in audio_clips_at(state, timeline_ms)
        if clip.gain > 0 and is_track_audible(state, state.track(clip.track_id))
    ]


def audible_scenes_at(state: TimelineState, timeline_ms: int) -> list[Scene]:
    """Video scenes whose own sound plays at *timeline_ms*."""
    return [
        scene for scene in scenes_at(state, timeline_ms)
        if scene.video_offset_ms is not None
        and not scene.muted
        and (scene.gain is None or scene.gain > 0)
        and is_track_audible(state, state.track(scene.track_id))
    ]


def visible_scenes_at(state: TimelineState, timeline_ms: int) -> list[Scene]:
    """Scenes drawn at *timeline_ms*, in track order."""
    return scenes_at(state, timeline_ms)


def source_time_for(clip: Scene | AudioClip, timeline_ms: int) -> int | None:
    """Map a timeline position to the bound media's own clock, or None outside the clip."""
    if not clip.contains(timeline_ms):
        return None
    return clip.source_ms_at(timeline_ms)
