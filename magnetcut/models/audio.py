"""Audio clip model for voice-over and music."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AudioKind(str, Enum):
    VO = "vo"
    MUSIC = "music"


@dataclass
class AudioClip:
    """Represents a slice of an audio asset placed on an audio track.

    ``audio_offset_ms`` is the in-point inside the source file and stays
    in milliseconds; only the timeline placement is frame-quantized.
    """

    id: str
    asset_id: str
    kind: AudioKind = AudioKind.MUSIC
    start_frame: int | None = None
    duration_frame: int | None = None
    start_ms: int = 0  # Position on timeline
    end_ms: int = 0
    gain: float = 1.0  # 0.0 to 1.0
    original_duration_ms: int | None = None  # Source file length once known
    audio_offset_ms: int = 0  # Offset within the audio file
    track_id: str | None = None
    fade_in_ms: int | None = None
    fade_out_ms: int | None = None
    constraints_resolved: bool = False

    def __post_init__(self):
        if isinstance(self.kind, str):
            self.kind = AudioKind(self.kind)

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def max_duration_ms(self) -> int | None:
        """Longest span the clip may cover from its current in-point."""
        if not self.constraints_resolved or self.original_duration_ms is None:
            return None
        return max(0, self.original_duration_ms - self.audio_offset_ms)

    def contains(self, ms: int) -> bool:
        return self.start_ms <= ms < self.end_ms

    def source_ms_at(self, timeline_ms: int) -> int:
        """Map a timeline position inside this clip to a source-file position."""
        return self.audio_offset_ms + (timeline_ms - self.start_ms)

    def clone(self) -> AudioClip:
        return AudioClip(
            id=self.id,
            asset_id=self.asset_id,
            kind=self.kind,
            start_frame=self.start_frame,
            duration_frame=self.duration_frame,
            start_ms=self.start_ms,
            end_ms=self.end_ms,
            gain=self.gain,
            original_duration_ms=self.original_duration_ms,
            audio_offset_ms=self.audio_offset_ms,
            track_id=self.track_id,
            fade_in_ms=self.fade_in_ms,
            fade_out_ms=self.fade_out_ms,
            constraints_resolved=self.constraints_resolved,
        )

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.id,
            "assetId": self.asset_id,
            "kind": self.kind.value,
            "startF": self.start_frame,
            "durF": self.duration_frame,
            "startMs": self.start_ms,
            "endMs": self.end_ms,
            "gain": self.gain,
            "audioOffsetMs": self.audio_offset_ms,
            "trackId": self.track_id,
        }
        if self.original_duration_ms is not None:
            d["originalDurationMs"] = self.original_duration_ms
        if self.fade_in_ms is not None:
            d["fadeInMs"] = self.fade_in_ms
        if self.fade_out_ms is not None:
            d["fadeOutMs"] = self.fade_out_ms
        if self.constraints_resolved:
            d["constraintsResolved"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> AudioClip:
        return cls(
            id=data["id"],
            asset_id=data["assetId"],
            kind=AudioKind(data.get("kind", "music")),
            start_frame=data.get("startF"),
            duration_frame=data.get("durF"),
            start_ms=data.get("startMs", 0),
            end_ms=data.get("endMs", 0),
            gain=data.get("gain", 1.0),
            original_duration_ms=data.get("originalDurationMs"),
            audio_offset_ms=data.get("audioOffsetMs", 0) or 0,
            track_id=data.get("trackId"),
            fade_in_ms=data.get("fadeInMs"),
            fade_out_ms=data.get("fadeOutMs"),
            constraints_resolved=bool(
                data.get("constraintsResolved", data.get("originalDurationMs") is not None)
            ),
        )
