from __future__ import annotations

from enum import Enum
from typing import Tuple

Point = Tuple[int, int]


class Direction(Enum):
    """Four axis-aligned connection directions.

    Offsets use y-up grid coordinates: NORTH moves to (x, y + 1).
    """

    NORTH = (0, 1)
    SOUTH = (0, -1)
    EAST = (1, 0)
    WEST = (-1, 0)

    # Aliases
    UP = (0, 1)
    DOWN = (0, -1)
    RIGHT = (1, 0)
    LEFT = (-1, 0)

    @property
    def offset(self) -> Point:
        return self.value

    @property
    def opposite(self) -> "Direction":
        dx, dy = self.value
        return Direction((-dx, -dy))

    @property
    def is_vertical(self) -> bool:
        return self.value[0] == 0

    def step(self, position: Point) -> Point:
        """Return the grid cell adjacent to ``position`` in this direction."""
        return (position[0] + self.value[0], position[1] + self.value[1])

    @classmethod
    def between(cls, a: Point, b: Point) -> "Direction | None":
        """Direction from ``a`` to grid-adjacent ``b``, or None if not adjacent."""
        delta = (b[0] - a[0], b[1] - a[1])
        for d in cls:
            if d.value == delta:
                return d
        return None


# Canonical iteration order used by placement and spanning-tree search
DIRECTIONS = (Direction.NORTH, Direction.SOUTH, Direction.WEST, Direction.EAST)
