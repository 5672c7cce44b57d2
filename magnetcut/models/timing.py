"""Frame/millisecond synchronization for timeline clips (pure Python, no Qt dependency).

Scenes and audio clips share the same timing fields:
``start_frame`` / ``duration_frame`` are the source of truth and
``start_ms`` / ``end_ms`` are derived projections.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Union

from magnetcut.utils.timebase import frames_to_ms, ms_to_frames

if TYPE_CHECKING:
    from magnetcut.models.audio import AudioClip
    from magnetcut.models.scene import Scene

    TimedClip = Union[Scene, AudioClip]


def sync_ms(clip: TimedClip, fps: int) -> None:
    """Recompute ``start_ms``/``end_ms`` from the frame fields."""
    clip.start_ms = frames_to_ms(clip.start_frame, fps)
    clip.end_ms = frames_to_ms(clip.start_frame + clip.duration_frame, fps)


def ensure_frame_data(clip: TimedClip, fps: int) -> None:
    """Give *clip* frame fields and resynchronize its millisecond fields.

    Clips rehydrated from an older ms-only format have ``None`` frame
    fields; they are derived by quantizing the existing ms values.
    """
    if clip.start_frame is None:
        clip.start_frame = ms_to_frames(clip.start_ms, fps)
    if clip.duration_frame is None:
        clip.duration_frame = ms_to_frames(clip.end_ms - clip.start_ms, fps)
    clip.start_frame = max(0, int(clip.start_frame))
    clip.duration_frame = max(1, int(clip.duration_frame))
    sync_ms(clip, fps)


def ensure_all_frame_data(scenes: Iterable[Scene], audio_clips: Iterable[AudioClip], fps: int) -> None:
    for scene in scenes:
        ensure_frame_data(scene, fps)
    for clip in audio_clips:
        ensure_frame_data(clip, fps)


def set_frames(clip: TimedClip, start_frame: int, duration_frame: int, fps: int) -> None:
    """Assign new frame timing and keep the ms projection in step."""
    clip.start_frame = start_frame
    clip.duration_frame = duration_frame
    sync_ms(clip, fps)


def end_frame(clip: TimedClip) -> int:
    return clip.start_frame + clip.duration_frame
