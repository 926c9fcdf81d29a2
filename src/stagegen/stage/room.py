from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional

from .direction import Direction, Point

if TYPE_CHECKING:  # pragma: no cover
    from ..room_data.models import RoomData


@dataclass
class Room:
    """A node of the stage graph.

    ``connections`` maps the side of this room where a door sits to the id of
    the room behind it. Connections are only created through ``Stage`` so that
    both ends always agree.
    """

    id: int
    position: Point
    template: Optional["RoomData"] = None
    is_cleared: bool = False
    connections: Dict[Direction, int] = field(default_factory=dict)

    def connected_room(self, direction: Direction) -> Optional[int]:
        return self.connections.get(direction)

    def is_connected(self, direction: Direction) -> bool:
        return direction in self.connections

    @property
    def degree(self) -> int:
        return len(self.connections)
