from .models import ObjectRecord, RoomCategory, RoomData, RoomDataDecodeError, RoomDataError, TileRecord
from .rle import RunRecord, compress, decompress
from .serialized import SerializedObject, SerializedRoomData
from .serializer import dumps_room_data, load_room_data, loads_room_data, save_room_data

__all__ = [
    "ObjectRecord",
    "RoomCategory",
    "RoomData",
    "RoomDataDecodeError",
    "RoomDataError",
    "TileRecord",
    "RunRecord",
    "compress",
    "decompress",
    "SerializedObject",
    "SerializedRoomData",
    "dumps_room_data",
    "load_room_data",
    "loads_room_data",
    "save_room_data",
]
