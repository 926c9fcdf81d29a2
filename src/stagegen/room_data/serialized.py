from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..stage.constants import ROOM_SIZE_MAX, ROOM_SIZE_MIN
from .models import ObjectRecord, RoomData, RoomDataDecodeError
from .rle import RunRecord, check_run, compress, decompress

logger = logging.getLogger(__name__)


class SerializedObject(BaseModel):
    """Object placement as stored on disk."""

    model_config = ConfigDict(extra="forbid")

    table_id: int = Field(..., description="Content table id resolved at instantiation")
    position: Tuple[float, float] = Field(..., description="Room-local position")
    rotation: float = Field(0.0, description="Rotation around the view axis, in degrees")


class SerializedRoomData(BaseModel):
    """Persistence twin of RoomData with run-length encoded tiles."""

    model_config = ConfigDict(extra="forbid")

    size_x: int = Field(..., ge=1)
    size_y: int = Field(..., ge=1)
    asset_addresses: List[str] = Field(default_factory=list)
    tiles_rle: List[RunRecord] = Field(default_factory=list)
    objects: List[SerializedObject] = Field(default_factory=list)

    @field_validator("tiles_rle", mode="before")
    @classmethod
    def runs_from_tuples(cls, v: Any) -> Any:
        # On disk a run is [address_index, layer, [x, y], length]
        if not isinstance(v, list):
            return v
        out = []
        for item in v:
            if isinstance(item, (list, tuple)):
                if len(item) != 4:
                    raise ValueError(f"Run record must have 4 fields, got {len(item)}")
                index, layer, start, length = item
                out.append({"address_index": index, "layer": layer, "start": start, "length": length})
            else:
                out.append(item)
        return out

    @property
    def row_width(self) -> int:
        """Width of the room once its size is clamped to the allowed range."""
        return max(ROOM_SIZE_MIN, min(ROOM_SIZE_MAX, self.size_x))

    @model_validator(mode="after")
    def runs_reference_known_addresses(self) -> "SerializedRoomData":
        count = len(self.asset_addresses)
        for run in self.tiles_rle:
            try:
                check_run(run, count, self.row_width)
            except RoomDataDecodeError as e:
                raise ValueError(str(e)) from e
        return self

    @classmethod
    def from_room_data(cls, room: RoomData) -> "SerializedRoomData":
        room.validate()
        return cls(
            size_x=room.size_x,
            size_y=room.size_y,
            asset_addresses=list(room.asset_addresses),
            tiles_rle=compress(room.tiles),
            objects=[
                SerializedObject(table_id=o.table_id, position=o.position, rotation=o.rotation)
                for o in room.objects
            ],
        )

    @classmethod
    def from_wire(cls, data: Any, *, source: Optional[str] = None) -> "SerializedRoomData":
        """Validate a decoded JSON document, surfacing problems as RoomDataDecodeError."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise RoomDataDecodeError(f"Invalid room data: {e}", source=source) from e

    def to_room_data(self, name: Optional[str] = None) -> RoomData:
        tiles = decompress(self.tiles_rle, len(self.asset_addresses), self.row_width)
        return RoomData(
            size_x=self.size_x,
            size_y=self.size_y,
            asset_addresses=list(self.asset_addresses),
            tiles=tiles,
            objects=[
                ObjectRecord(table_id=o.table_id, position=o.position, rotation=o.rotation)
                for o in self.objects
            ],
            name=name,
        )

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready document with runs as 4-element arrays."""
        return {
            "size_x": self.size_x,
            "size_y": self.size_y,
            "asset_addresses": list(self.asset_addresses),
            "tiles_rle": [
                [r.address_index, r.layer, [r.start[0], r.start[1]], r.length] for r in self.tiles_rle
            ],
            "objects": [
                {"table_id": o.table_id, "position": [o.position[0], o.position[1]], "rotation": o.rotation}
                for o in self.objects
            ],
        }
