"""Timeline state model."""

from __future__ import annotations

from dataclasses import dataclass, field

from magnetcut.models.audio import AudioClip
from magnetcut.models.scene import Scene
from magnetcut.models.track import Track, TrackKind
from magnetcut.utils.config import (
    DEFAULT_ASPECT,
    DEFAULT_FPS,
    DEFAULT_PX_PER_SEC,
    DEFAULT_RESOLUTION,
    DURATION_PADDING_MS,
    MIN_DURATION_MS,
)


def default_tracks() -> list[Track]:
    return [
        Track(id="video-track-1", name="Media 1", kind=TrackKind.VIDEO),
        Track(id="audio-track-1", name="Audio 1", kind=TrackKind.AUDIO),
    ]


def _order_key(clip: Scene | AudioClip) -> tuple[int, int, str]:
    return (clip.start_ms, clip.end_ms, clip.id)


@dataclass(slots=True)
class TimelineState:
    """Holds the in-memory model of one editing session.

    Clips live in id-indexed dicts; neighbour links are resolved through
    lookups rather than object references. Ordered views are built on
    demand (``scenes_on_track`` and friends).
    """

    fps: int = DEFAULT_FPS
    aspect: str = DEFAULT_ASPECT
    resolution: str = DEFAULT_RESOLUTION
    tracks: list[Track] = field(default_factory=default_tracks)
    scenes: dict[str, Scene] = field(default_factory=dict)
    audio_clips: dict[str, AudioClip] = field(default_factory=dict)
    duration_ms: int = DURATION_PADDING_MS
    playhead_ms: int = 0
    px_per_sec: float = DEFAULT_PX_PER_SEC
    selected_scene_id: str | None = None
    selected_audio_id: str | None = None
    snap_marker_ids: list[str] = field(default_factory=list)

    # -------------------------------------------------------- Tracks

    def track(self, track_id: str | None) -> Track | None:
        if track_id is None:
            return None
        for t in self.tracks:
            if t.id == track_id:
                return t
        return None

    def tracks_of_kind(self, kind: TrackKind) -> list[Track]:
        return [t for t in self.tracks if t.kind is kind]

    def order_tracks(self) -> None:
        """Keep every video track ahead of every audio track (stable)."""
        self.tracks = self.tracks_of_kind(TrackKind.VIDEO) + self.tracks_of_kind(TrackKind.AUDIO)

    # -------------------------------------------------------- Ordered views

    def sorted_scenes(self) -> list[Scene]:
        return sorted(self.scenes.values(), key=_order_key)

    def sorted_audio_clips(self) -> list[AudioClip]:
        return sorted(self.audio_clips.values(), key=_order_key)

    def scenes_on_track(self, track_id: str | None) -> list[Scene]:
        return sorted((s for s in self.scenes.values() if s.track_id == track_id), key=_order_key)

    def audio_on_track(self, track_id: str | None) -> list[AudioClip]:
        return sorted((a for a in self.audio_clips.values() if a.track_id == track_id), key=_order_key)

    def clips_on_track(self, track_id: str | None) -> list[Scene | AudioClip]:
        """All clips of either type bound to *track_id*, ordered by start."""
        clips: list[Scene | AudioClip] = [s for s in self.scenes.values() if s.track_id == track_id]
        clips.extend(a for a in self.audio_clips.values() if a.track_id == track_id)
        return sorted(clips, key=_order_key)

    def scene_neighbors(self, scene: Scene) -> tuple[Scene | None, Scene | None]:
        """Return the immediate previous/next scene on the same track."""
        return _neighbors(self.scenes_on_track(scene.track_id), scene)

    def audio_neighbors(self, clip: AudioClip) -> tuple[AudioClip | None, AudioClip | None]:
        return _neighbors(self.audio_on_track(clip.track_id), clip)

    # -------------------------------------------------------- Duration

    @property
    def content_end_ms(self) -> int:
        """End of the last clip on any track (0 when empty)."""
        ends = [s.end_ms for s in self.scenes.values()]
        ends.extend(a.end_ms for a in self.audio_clips.values())
        return max(ends, default=0)

    def normalize_duration(self) -> int:
        self.duration_ms = max(self.content_end_ms + DURATION_PADDING_MS, MIN_DURATION_MS)
        return self.duration_ms

    def reset(self) -> None:
        self.fps = DEFAULT_FPS
        self.aspect = DEFAULT_ASPECT
        self.resolution = DEFAULT_RESOLUTION
        self.tracks = default_tracks()
        self.scenes = {}
        self.audio_clips = {}
        self.duration_ms = DURATION_PADDING_MS
        self.playhead_ms = 0
        self.px_per_sec = DEFAULT_PX_PER_SEC
        self.selected_scene_id = None
        self.selected_audio_id = None
        self.snap_marker_ids = []


def _neighbors(ordered: list, clip) -> tuple:
    idx = next((i for i, c in enumerate(ordered) if c.id == clip.id), -1)
    if idx < 0:
        return None, None
    prev = ordered[idx - 1] if idx > 0 else None
    nxt = ordered[idx + 1] if idx + 1 < len(ordered) else None
    return prev, nxt
