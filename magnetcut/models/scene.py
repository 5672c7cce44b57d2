"""Scene (visual clip) data model (pure Python, no Qt dependency)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Transform:
    """2D placement of a scene inside the output frame."""

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "scale": self.scale}

    @classmethod
    def from_dict(cls, data: dict) -> Transform:
        return cls(
            x=data.get("x", 0.0),
            y=data.get("y", 0.0),
            scale=data.get("scale", 1.0),
        )


@dataclass(slots=True)
class Scene:
    """A visual clip (image or video) placed on a video track.

    ``start_frame``/``duration_frame`` are authoritative; ``start_ms`` and
    ``end_ms`` are recomputed from them (see ``models.timing``). Frame
    fields may be ``None`` only until ``ensure_frame_data`` has run on a
    clip loaded from ms-only data.

    ``link_left_id``/``link_right_id`` name the immediate same-track
    neighbours this scene is magnetically glued to.

    ``original_duration_ms`` is the source length of a bound video and
    caps the scene's duration once ``constraints_resolved`` is set.
    Images resolve with no cap. ``video_offset_ms`` is the in-point inside
    the video; images leave it ``None``.
    """

    id: str
    label: str | None = None
    start_frame: int | None = None
    duration_frame: int | None = None
    start_ms: int = 0
    end_ms: int = 0
    link_left_id: str | None = None
    link_right_id: str | None = None
    asset_id: str | None = None
    track_id: str | None = None
    transform: Transform | None = None
    gain: float | None = None
    muted: bool = False
    original_duration_ms: int | None = None
    video_offset_ms: int | None = None
    constraints_resolved: bool = False

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def max_duration_ms(self) -> int | None:
        """Upper bound on the scene length from its in-point, or None when unconstrained."""
        if not self.constraints_resolved or self.original_duration_ms is None:
            return None
        return max(0, self.original_duration_ms - (self.video_offset_ms or 0))

    def source_ms_at(self, timeline_ms: int) -> int:
        """Map a timeline position inside this scene to a source-video position."""
        return (self.video_offset_ms or 0) + (timeline_ms - self.start_ms)

    def contains(self, ms: int) -> bool:
        return self.start_ms <= ms < self.end_ms

    def clone(self) -> Scene:
        return Scene(
            id=self.id,
            label=self.label,
            start_frame=self.start_frame,
            duration_frame=self.duration_frame,
            start_ms=self.start_ms,
            end_ms=self.end_ms,
            link_left_id=self.link_left_id,
            link_right_id=self.link_right_id,
            asset_id=self.asset_id,
            track_id=self.track_id,
            transform=Transform(self.transform.x, self.transform.y, self.transform.scale)
            if self.transform else None,
            gain=self.gain,
            muted=self.muted,
            original_duration_ms=self.original_duration_ms,
            video_offset_ms=self.video_offset_ms,
            constraints_resolved=self.constraints_resolved,
        )

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.id,
            "startF": self.start_frame,
            "durF": self.duration_frame,
            "startMs": self.start_ms,
            "endMs": self.end_ms,
            "linkLeftId": self.link_left_id,
            "linkRightId": self.link_right_id,
            "trackId": self.track_id,
        }
        if self.label is not None:
            d["label"] = self.label
        if self.asset_id is not None:
            d["assetId"] = self.asset_id
        if self.transform is not None:
            d["transform"] = self.transform.to_dict()
        if self.gain is not None:
            d["gain"] = self.gain
        if self.muted:
            d["muted"] = True
        if self.original_duration_ms is not None:
            d["originalDurationMs"] = self.original_duration_ms
        if self.video_offset_ms is not None:
            d["videoOffsetMs"] = self.video_offset_ms
        if self.constraints_resolved:
            d["constraintsResolved"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Scene:
        transform = data.get("transform")
        return cls(
            id=data["id"],
            label=data.get("label"),
            start_frame=data.get("startF"),
            duration_frame=data.get("durF"),
            start_ms=data.get("startMs", 0),
            end_ms=data.get("endMs", 0),
            link_left_id=data.get("linkLeftId"),
            link_right_id=data.get("linkRightId"),
            asset_id=data.get("assetId"),
            track_id=data.get("trackId"),
            transform=Transform.from_dict(transform) if transform else None,
            gain=data.get("gain"),
            muted=bool(data.get("muted", False)),
            original_duration_ms=data.get("originalDurationMs"),
            video_offset_ms=data.get("videoOffsetMs"),
            # Older data only stored originalDurationMs for videos
            constraints_resolved=bool(
                data.get("constraintsResolved", data.get("originalDurationMs") is not None)
            ),
        )
