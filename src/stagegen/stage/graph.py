from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Optional, Tuple

from .direction import Direction, Point
from .room import Room

if TYPE_CHECKING:  # pragma: no cover
    from ..room_data.models import RoomData

logger = logging.getLogger(__name__)


class Stage:
    """Graph of rooms for one level, keyed by stable integer ids.

    Rooms reference each other only by id, so a room's template can be
    swapped without touching its neighbours. Positions are unique grid
    cells and connections always join grid-adjacent rooms symmetrically.
    """

    def __init__(self) -> None:
        self._rooms: Dict[int, Room] = {}
        self._by_position: Dict[Point, int] = {}
        self._next_room_id = 0
        self.start_room_id: Optional[int] = None
        self.boss_room_id: Optional[int] = None

    @property
    def rooms(self) -> Mapping[int, Room]:
        return MappingProxyType(self._rooms)

    @property
    def next_room_id(self) -> int:
        return self._next_room_id

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(self._rooms.values())

    def add_room(self, template: Optional["RoomData"], position: Point) -> int:
        """Append a new room at ``position`` and return its id."""
        room_id = self._next_room_id
        self._next_room_id += 1
        pos = (int(position[0]), int(position[1]))
        self._rooms[room_id] = Room(id=room_id, position=pos, template=template)
        if pos in self._by_position:
            logger.warning(
                "Room %d added at %s which is already occupied by room %d",
                room_id, pos, self._by_position[pos],
            )
        else:
            self._by_position[pos] = room_id
        return room_id

    def get_room(self, room_id: int) -> Optional[Room]:
        return self._rooms.get(room_id)

    def has_room(self, room_id: int) -> bool:
        return room_id in self._rooms

    def room_at(self, position: Point) -> Optional[Room]:
        room_id = self._by_position.get((position[0], position[1]))
        return self._rooms[room_id] if room_id is not None else None

    def is_occupied(self, position: Point) -> bool:
        return (position[0], position[1]) in self._by_position

    def connect_rooms(self, room_id_a: int, room_id_b: int, direction: Direction) -> bool:
        """Connect A to B through A's ``direction`` side and B's opposite side.

        Returns False without changes if either room is unknown, B is not the
        grid neighbour of A in ``direction``, or either slot is already used.
        """
        a = self._rooms.get(room_id_a)
        b = self._rooms.get(room_id_b)
        if a is None or b is None:
            logger.warning("Cannot connect unknown rooms %s and %s", room_id_a, room_id_b)
            return False
        if direction.step(a.position) != b.position:
            logger.debug(
                "Rooms %d at %s and %d at %s are not adjacent towards %s",
                a.id, a.position, b.id, b.position, direction.name,
            )
            return False
        opposite = direction.opposite
        if direction in a.connections or opposite in b.connections:
            return False
        a.connections[direction] = b.id
        b.connections[opposite] = a.id
        return True

    def connect_in_direction(self, room_id: int, direction: Direction) -> bool:
        """Connect a room to whichever room occupies the adjacent cell in ``direction``."""
        room = self._rooms.get(room_id)
        if room is None:
            return False
        neighbour = self.room_at(direction.step(room.position))
        if neighbour is None:
            return False
        return self.connect_rooms(room.id, neighbour.id, direction)

    def replace_template(self, room_id: int, template: Optional["RoomData"]) -> bool:
        """Swap a room's template, keeping id, position, connections and cleared flag."""
        room = self._rooms.get(room_id)
        if room is None:
            logger.warning("Cannot replace template of unknown room %s", room_id)
            return False
        room.template = template
        return True

    def edges(self) -> List[Tuple[int, int, Direction]]:
        """Undirected edges as (lower id, higher id, direction from lower to higher)."""
        out: List[Tuple[int, int, Direction]] = []
        for room in self._rooms.values():
            for direction, other in room.connections.items():
                if room.id < other:
                    out.append((room.id, other, direction))
        return out

    def edge_count(self) -> int:
        return sum(room.degree for room in self._rooms.values()) // 2

    def __repr__(self) -> str:  # pragma: no cover - debug only
        return f"Stage(rooms={len(self._rooms)}, edges={self.edge_count()})"
