"""Room and stage layout constants."""

ROOM_SPACING = 28
ROOM_SIZE_MIN = 7
ROOM_SIZE_MAX = 24
ROOM_CORRIDOR_SIZE = 5
CORRIDOR_EXTENSION = 2
DEFAULT_ROOM_COUNT = 15

TILEMAP_NAME_PREFIX = "Tilemap_"
TILEMAP_GROUND_NAME = TILEMAP_NAME_PREFIX + "Ground"

# Table ids of built-in room event triggers
PLAYER_SPAWN_POINT_ID = 10000001
RANDOM_ENEMY_SPAWN_ID = 10000002
