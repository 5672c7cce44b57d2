"""Asset metadata as seen by the editing engine (pure Python, no Qt dependency)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from magnetcut.models.track import TrackKind


class AssetKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"

    @property
    def track_kind(self) -> TrackKind:
        """Kind of track clips of this asset are placed on."""
        return TrackKind.AUDIO if self is AssetKind.AUDIO else TrackKind.VIDEO


@dataclass(slots=True)
class AssetInfo:
    """What the engine may know about a media file.

    ``duration_ms`` stays ``None`` until the host has probed the file;
    images never get one.
    """

    asset_id: str
    kind: AssetKind
    locator: str = ""
    name: str = ""
    duration_ms: int | None = None

    def __post_init__(self):
        if isinstance(self.kind, str):
            self.kind = AssetKind(self.kind)

    @property
    def duration_known(self) -> bool:
        return self.duration_ms is not None and self.duration_ms > 0

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "kind": self.kind.value,
            "locator": self.locator,
            "name": self.name,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AssetInfo:
        return cls(
            asset_id=data["asset_id"],
            kind=AssetKind(data["kind"]),
            locator=data.get("locator", ""),
            name=data.get("name", ""),
            duration_ms=data.get("duration_ms"),
        )
