from __future__ import annotations

from typing import List

from .direction import Direction
from .graph import Stage


def render_stage_map(stage: Stage) -> str:
    """Render the stage layout as text, north at the top.

    Rooms are drawn as ``S`` (start), ``B`` (boss), ``X`` (start and boss) or
    the number of doors of the room. ``-`` and ``|`` mark connections.
    """
    if not len(stage):
        return ""

    xs = [room.position[0] for room in stage]
    ys = [room.position[1] for room in stage]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)

    lines: List[str] = []
    for y in range(max_y, min_y - 1, -1):
        node_line: List[str] = []
        link_line: List[str] = []
        for x in range(min_x, max_x + 1):
            room = stage.room_at((x, y))
            if room is None:
                node_line.append("  ")
                link_line.append("  ")
                continue
            if room.id == stage.start_room_id and room.id == stage.boss_room_id:
                glyph = "X"
            elif room.id == stage.start_room_id:
                glyph = "S"
            elif room.id == stage.boss_room_id:
                glyph = "B"
            else:
                glyph = str(room.degree)
            node_line.append(glyph + ("-" if room.is_connected(Direction.EAST) else " "))
            link_line.append(("|" if room.is_connected(Direction.SOUTH) else " ") + " ")
        lines.append("".join(node_line).rstrip())
        if y > min_y:
            lines.append("".join(link_line).rstrip())
    return "\n".join(lines)
