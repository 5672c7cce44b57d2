"""Track data model (pure Python, no Qt dependency)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TrackKind(str, Enum):
    """Media kind carried by a track. Video tracks also hold image scenes."""

    VIDEO = "video"
    AUDIO = "audio"


@dataclass(slots=True)
class Track:
    """An ordered lane of same-kind clips carrying mute/solo state.

    The engine only toggles ``muted``/``soloed``; interpreting them is left
    to the playback and render layers.
    """

    id: str
    name: str
    kind: TrackKind
    muted: bool = False
    soloed: bool = False

    def __post_init__(self):
        if isinstance(self.kind, str):
            self.kind = TrackKind(self.kind)

    @property
    def is_video(self) -> bool:
        return self.kind is TrackKind.VIDEO

    @property
    def is_audio(self) -> bool:
        return self.kind is TrackKind.AUDIO

    def clone(self) -> Track:
        return Track(
            id=self.id,
            name=self.name,
            kind=self.kind,
            muted=self.muted,
            soloed=self.soloed,
        )

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.id,
            "name": self.name,
            "type": self.kind.value,
        }
        if self.muted:
            d["muted"] = True
        if self.soloed:
            d["soloed"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Track:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            kind=TrackKind(data.get("type", data.get("kind", "video"))),
            muted=bool(data.get("muted", False)),
            soloed=bool(data.get("soloed", False)),
        )
