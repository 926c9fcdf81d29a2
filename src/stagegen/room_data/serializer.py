from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..utils.fs import atomic_write_json
from ..utils.json_loader import JsonFileNotFoundError, JsonLoaderError, load_json_file, parse_json_text, validate_json_data
from .models import RoomData, RoomDataDecodeError
from .serialized import SerializedRoomData

logger = logging.getLogger(__name__)


ROOM_DATA_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["size_x", "size_y"],
    "properties": {
        "size_x": {"type": "integer"},
        "size_y": {"type": "integer"},
        "asset_addresses": {"type": "array", "items": {"type": "string"}, "default": []},
        "tiles_rle": {
            "type": "array",
            "default": [],
            "items": {
                "type": "array",
                "prefixItems": [
                    {"type": "integer"},
                    {"type": "integer"},
                    {
                        "type": "array",
                        "prefixItems": [{"type": "integer"}, {"type": "integer"}],
                        "minItems": 2,
                        "maxItems": 2,
                    },
                    {"type": "integer"},
                ],
                "minItems": 4,
                "maxItems": 4,
            },
        },
        "objects": {
            "type": "array",
            "default": [],
            "items": {
                "type": "object",
                "required": ["table_id", "position"],
                "properties": {
                    "table_id": {"type": "integer"},
                    "position": {
                        "type": "array",
                        "items": {"type": "number"},
                        "minItems": 2,
                        "maxItems": 2,
                    },
                    "rotation": {"type": "number", "default": 0.0},
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


def room_data_to_dict(room: RoomData) -> Dict[str, Any]:
    return SerializedRoomData.from_room_data(room).to_wire()


def room_data_from_dict(data: Any, *, source: str = "<data>", name: Optional[str] = None) -> RoomData:
    """Validate a decoded document and expand it into RoomData.

    Raises RoomDataDecodeError for structural or semantic problems.
    """
    try:
        validate_json_data(data, ROOM_DATA_SCHEMA, source=source)
    except JsonLoaderError as e:
        raise RoomDataDecodeError(str(e), source=source) from e
    serialized = SerializedRoomData.from_wire(data, source=source)
    return serialized.to_room_data(name=name)


def dumps_room_data(room: RoomData) -> str:
    """Serialize to compact JSON."""
    return json.dumps(room_data_to_dict(room), separators=(",", ":"))


def loads_room_data(text: str, *, source: str = "<string>", name: Optional[str] = None) -> RoomData:
    try:
        data = parse_json_text(text, source=source)
    except JsonLoaderError as e:
        raise RoomDataDecodeError(str(e), source=source) from e
    return room_data_from_dict(data, source=source, name=name)


def save_room_data(room: RoomData, path: Union[str, Path]) -> None:
    """Atomically write a room template to ``path``."""
    p = Path(path)
    atomic_write_json(p, room_data_to_dict(room))
    logger.info("Saved room data to %s", p)


def load_room_data(path: Union[str, Path]) -> RoomData:
    """Load a room template; its name defaults to the file stem.

    Missing files raise JsonFileNotFoundError; malformed content raises
    RoomDataDecodeError.
    """
    p = Path(path)
    try:
        data = load_json_file(p)
    except JsonFileNotFoundError:
        raise
    except JsonLoaderError as e:
        raise RoomDataDecodeError(str(e), source=str(p)) from e
    room = room_data_from_dict(data, source=str(p), name=p.stem)
    logger.debug("Loaded room data %r from %s", room.name, p)
    return room


__all__ = [
    "ROOM_DATA_SCHEMA",
    "room_data_to_dict",
    "room_data_from_dict",
    "dumps_room_data",
    "loads_room_data",
    "save_room_data",
    "load_room_data",
]
