"""Asset lookup used by the editing engine.

The engine never fetches or decodes media. Hosts hand it an object that
satisfies ``AssetLookup``; durations the host probes later are written
back through ``set_duration``. ``AssetRegistry`` is the in-memory version used
by the controller and the tests.
"""

from __future__ import annotations

import logging
import uuid
from typing import Protocol

from magnetcut.models.asset import AssetInfo, AssetKind

logger = logging.getLogger(__name__)


class AssetLookup(Protocol):
    def get(self, asset_id: str) -> AssetInfo | None:
        ...

    def set_duration(self, asset_id: str, duration_ms: int) -> AssetInfo | None:
        ...


class AssetRegistry:
    """Keeps asset metadata in memory, keyed by asset id."""

    def __init__(self, items: list[AssetInfo] | None = None):
        self._items: dict[str, AssetInfo] = {}
        for item in items or []:
            self._items[item.asset_id] = item

    # ------------------------------------------------------------------ CRUD

    def add(
        self,
        kind: AssetKind | str,
        locator: str = "",
        name: str = "",
        duration_ms: int | None = None,
        asset_id: str | None = None,
    ) -> AssetInfo:
        info = AssetInfo(
            asset_id=asset_id or uuid.uuid4().hex,
            kind=AssetKind(kind),
            locator=locator,
            name=name,
            duration_ms=duration_ms,
        )
        self._items[info.asset_id] = info
        logger.debug(f"Registered asset {info.asset_id} ({info.kind.value}, duration={duration_ms})")
        return info

    def remove(self, asset_id: str) -> AssetInfo | None:
        return self._items.pop(asset_id, None)

    def get(self, asset_id: str) -> AssetInfo | None:
        return self._items.get(asset_id)

    def set_duration(self, asset_id: str, duration_ms: int) -> AssetInfo | None:
        """Record a probed source duration. Returns the updated info or None."""
        info = self._items.get(asset_id)
        if info is None:
            return None
        info.duration_ms = duration_ms
        return info

    # ------------------------------------------------------------------ Queries

    def all(self) -> list[AssetInfo]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._items
