from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..stage.constants import ROOM_SIZE_MAX, ROOM_SIZE_MIN

logger = logging.getLogger(__name__)

Point = Tuple[int, int]
Vec2 = Tuple[float, float]


class RoomDataError(Exception):
    """Raised when room content is internally inconsistent."""


class RoomCategory(str, Enum):
    START = "start"
    NORMAL = "normal"
    BOSS = "boss"


@dataclass(frozen=True)
class TileRecord:
    """A single tile placement inside a room.

    Attributes:
        address_index: index into ``RoomData.asset_addresses``.
        layer: tile layer id (see ``StageSettings.layer_names``).
        position: room-local integer cell, relative to the room centre.
    """

    address_index: int
    layer: int
    position: Point


@dataclass(frozen=True)
class ObjectRecord:
    """A content object placed inside a room, resolved by table id at instantiation."""

    table_id: int
    position: Vec2
    rotation: float = 0.0


def clamp_room_size(value: int, axis: str = "x") -> int:
    clamped = max(ROOM_SIZE_MIN, min(ROOM_SIZE_MAX, int(value)))
    if clamped != value:
        logger.warning(
            "Room size_%s=%s outside [%d, %d]; clamped to %d",
            axis, value, ROOM_SIZE_MIN, ROOM_SIZE_MAX, clamped,
        )
    return clamped


@dataclass
class RoomData:
    """Reusable room template: footprint, tiles, objects and an address table.

    Tiles refer to assets by index into ``asset_addresses`` so that each
    address string is stored once per room.
    """

    size_x: int = ROOM_SIZE_MIN
    size_y: int = ROOM_SIZE_MIN
    asset_addresses: List[str] = field(default_factory=list)
    tiles: List[TileRecord] = field(default_factory=list)
    objects: List[ObjectRecord] = field(default_factory=list)
    name: Optional[str] = None

    def __post_init__(self) -> None:
        self.size_x = clamp_room_size(self.size_x, "x")
        self.size_y = clamp_room_size(self.size_y, "y")

    def get_or_add_address(self, address: str) -> int:
        """Return the index of ``address``, appending it when new.

        Empty addresses are not stored and return -1.
        """
        if not address:
            return -1
        try:
            return self.asset_addresses.index(address)
        except ValueError:
            self.asset_addresses.append(address)
            return len(self.asset_addresses) - 1

    def get_address(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.asset_addresses):
            return self.asset_addresses[index]
        return None

    def add_tile(self, address: str, layer: int, position: Point) -> TileRecord:
        index = self.get_or_add_address(address)
        if index < 0:
            raise RoomDataError("Tile address must be a non-empty string")
        tile = TileRecord(address_index=index, layer=layer, position=(int(position[0]), int(position[1])))
        self.tiles.append(tile)
        return tile

    def validate(self) -> None:
        """Ensure every tile references a valid address index."""
        count = len(self.asset_addresses)
        for tile in self.tiles:
            if not 0 <= tile.address_index < count:
                raise RoomDataError(
                    f"Tile at {tile.position} references address index {tile.address_index} "
                    f"but the room has {count} addresses"
                )

    def __repr__(self) -> str:  # pragma: no cover - debug only
        label = self.name or "<unnamed>"
        return (
            f"RoomData({label!r}, {self.size_x}x{self.size_y}, "
            f"tiles={len(self.tiles)}, objects={len(self.objects)})"
        )


class RoomDataDecodeError(RoomDataError):
    """Raised when serialized room content is malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{message}")
