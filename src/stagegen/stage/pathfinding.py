from collections import deque
from typing import Dict, Tuple

from .graph import Stage


def room_distances(stage: Stage, start_room_id: int) -> Dict[int, int]:
    """Breadth-first hop counts from ``start_room_id`` over room connections.

    Rooms that cannot be reached are absent from the result.
    """
    if not stage.has_room(start_room_id):
        return {}
    distances = {start_room_id: 0}
    q = deque([start_room_id])
    while q:
        room_id = q.popleft()
        room = stage.get_room(room_id)
        d = distances[room_id]
        for other in room.connections.values():
            if other not in distances:
                distances[other] = d + 1
                q.append(other)
    return distances


def find_farthest_room(stage: Stage, start_room_id: int) -> Tuple[int, int]:
    """Return (room id, distance) of the room farthest from the start.

    Ties keep the room discovered first by the BFS.
    """
    farthest, best = start_room_id, 0
    # dicts keep insertion order, which is BFS discovery order
    for room_id, d in room_distances(stage, start_room_id).items():
        if d > best:
            farthest, best = room_id, d
    return farthest, best


def is_fully_connected(stage: Stage, start_room_id: int) -> bool:
    return len(room_distances(stage, start_room_id)) == len(stage)
