"""Run-length encoding of room tile records.

Tiles are grouped into horizontal runs: consecutive cells on the same row,
layer and address index collapse into a single ``RunRecord``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..stage.constants import ROOM_SIZE_MAX
from .models import Point, RoomDataDecodeError, TileRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunRecord:
    address_index: int
    layer: int
    start: Point
    length: int

    def as_tuple(self) -> tuple:
        return (self.address_index, self.layer, self.start, self.length)


def _sort_key(tile: TileRecord):
    return (tile.layer, tile.position[1], tile.address_index, tile.position[0])


def compress(tiles: Iterable[TileRecord]) -> List[RunRecord]:
    """Compress tile records into horizontal runs."""
    ordered = sorted(tiles, key=_sort_key)
    runs: List[RunRecord] = []
    i = 0
    while i < len(ordered):
        current = ordered[i]
        start_x, y = current.position
        length = 1
        while i + length < len(ordered):
            nxt = ordered[i + length]
            if (
                nxt.layer != current.layer
                or nxt.address_index != current.address_index
                or nxt.position[1] != y
                or nxt.position[0] != start_x + length
            ):
                break
            length += 1
        runs.append(RunRecord(current.address_index, current.layer, (start_x, y), length))
        i += length
    logger.debug("Compressed %d tiles into %d runs", len(ordered), len(runs))
    return runs


def check_run(run: RunRecord, address_count: Optional[int] = None, max_length: int = ROOM_SIZE_MAX) -> None:
    """Raise RoomDataDecodeError if a run cannot be expanded.

    A run never spans more cells than one row of the widest room footprint.
    """
    if run.length < 1:
        raise RoomDataDecodeError(f"Run at {run.start} has invalid length {run.length}")
    if run.length > max_length:
        raise RoomDataDecodeError(
            f"Run at {run.start} has length {run.length}, longer than a room row ({max_length})"
        )
    if run.address_index < 0 or (address_count is not None and run.address_index >= address_count):
        raise RoomDataDecodeError(
            f"Run at {run.start} references address index {run.address_index} "
            f"outside the address table (size {address_count})"
        )


def decompress(
    runs: Iterable[RunRecord], address_count: Optional[int] = None, max_length: int = ROOM_SIZE_MAX
) -> List[TileRecord]:
    """Expand runs back into individual tile records.

    When ``address_count`` is given, address indexes are checked against it.
    """
    tiles: List[TileRecord] = []
    for run in runs:
        check_run(run, address_count, max_length)
        sx, sy = run.start
        for i in range(run.length):
            tiles.append(TileRecord(run.address_index, run.layer, (sx + i, sy)))
    return tiles


__all__ = ["RunRecord", "compress", "decompress", "check_run"]
