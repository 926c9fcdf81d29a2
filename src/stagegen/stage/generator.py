from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Set, Tuple

from ..config import StageSettings
from ..repository import TemplateRepository
from ..room_data.models import RoomCategory
from .direction import DIRECTIONS, Direction, Point
from .graph import Stage
from .map_view import render_stage_map
from .pathfinding import find_farthest_room, room_distances

logger = logging.getLogger(__name__)


class StageGenerator:
    """Builds the room graph of a stage.

    Steps:
      1. place rooms on free grid cells next to already placed rooms,
         starting from a root room at (0, 0);
      2. connect them with a randomized BFS spanning tree;
      3. pick the boss room, the room farthest from the root;
      4. add extra edges between other adjacent rooms, less likely the
         farther a room is from the root, never touching the boss room;
      5. assign a random normal template to every room;
      6. give the root a start template and the boss room a boss template.

    All randomness comes from the ``rng`` passed to ``generate_stage`` so a
    seeded RNG and a deterministic repository reproduce the same stage.
    """

    def __init__(self, repository: TemplateRepository, settings: Optional[StageSettings] = None) -> None:
        self.repository = repository
        self.settings = settings or StageSettings()

    async def generate_stage(self, room_count: Optional[int] = None, rng: Optional[random.Random] = None) -> Stage:
        if room_count is None:
            room_count = self.settings.room_count
        if room_count < 1:
            raise ValueError(f"room_count must be >= 1, got {room_count}")
        if rng is None:
            rng = random.Random()

        stage = Stage()
        room_ids = self.place_rooms_on_grid(stage, room_count, rng)
        start_room_id = room_ids[0]
        stage.start_room_id = start_room_id

        self.build_spanning_tree(stage, room_ids, rng)

        # Distances are taken on the tree so the boss room can be kept out of
        # the extra edges.
        distances = room_distances(stage, start_room_id)
        boss_room_id, boss_distance = find_farthest_room(stage, start_room_id)
        stage.boss_room_id = boss_room_id
        logger.debug("Boss room %d at distance %d from start", boss_room_id, boss_distance)

        added = self.add_random_edges(stage, room_ids, {boss_room_id}, distances, rng)
        logger.debug("Added %d extra edges", added)

        await self.assign_room_data(stage, room_ids, rng)
        await self.set_start_and_boss_rooms(stage, rng)

        logger.info(
            "Stage generated: %d rooms, %d connections (requested %d rooms)",
            len(stage), stage.edge_count(), room_count,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Stage layout:\n%s", render_stage_map(stage))
        return stage

    def place_rooms_on_grid(self, stage: Stage, room_count: int, rng: random.Random) -> List[int]:
        """Grow the layout one room at a time from the root at (0, 0)."""
        start_pos: Point = (0, 0)
        room_ids = [stage.add_room(None, start_pos)]
        used: Set[Point] = {start_pos}

        while len(room_ids) < room_count:
            candidates: List[Tuple[int, List[Direction]]] = []
            for room_id in room_ids:
                room = stage.get_room(room_id)
                free = [d for d in DIRECTIONS if d.step(room.position) not in used]
                if free:
                    candidates.append((room_id, free))

            if not candidates:
                logger.warning(
                    "No free cell left for new rooms; placed %d of %d", len(room_ids), room_count
                )
                break

            room_id, free = candidates[rng.randrange(len(candidates))]
            direction = free[rng.randrange(len(free))]
            new_pos = direction.step(stage.get_room(room_id).position)
            room_ids.append(stage.add_room(None, new_pos))
            used.add(new_pos)

        return room_ids

    def build_spanning_tree(self, stage: Stage, room_ids: List[int], rng: random.Random) -> int:
        """Connect all placed rooms with a BFS spanning tree; returns edges made."""
        target = len(room_ids) - 1
        if target <= 0:
            return 0

        start = room_ids[0]
        visited = {start}
        queue = [start]
        head = 0
        connected = 0

        while head < len(queue) and connected < target:
            current = stage.get_room(queue[head])
            head += 1

            directions = list(DIRECTIONS)
            rng.shuffle(directions)
            for direction in directions:
                if connected >= target:
                    break
                neighbour = stage.room_at(direction.step(current.position))
                if neighbour is None or neighbour.id in visited:
                    continue
                if stage.connect_rooms(current.id, neighbour.id, direction):
                    visited.add(neighbour.id)
                    queue.append(neighbour.id)
                    connected += 1

        if connected < target:
            logger.error(
                "Spanning tree incomplete: %d of %d edges connected; stage may be disconnected",
                connected, target,
            )
        return connected

    def add_random_edges(
        self,
        stage: Stage,
        room_ids: List[int],
        special_room_ids: Set[int],
        distances: Dict[int, int],
        rng: random.Random,
    ) -> int:
        """Add loop edges between adjacent ordinary rooms; returns edges added."""
        if len(room_ids) < 2:
            return 0

        candidates: List[Tuple[int, Direction]] = []
        for room_id in room_ids:
            if room_id in special_room_ids:
                continue
            room = stage.get_room(room_id)
            for direction in DIRECTIONS:
                if room.is_connected(direction):
                    continue
                neighbour = stage.room_at(direction.step(room.position))
                if neighbour is not None and neighbour.id not in special_room_ids:
                    candidates.append((room_id, direction))

        added = 0
        for room_id, direction in candidates:
            probability = self.settings.edge_probability(distances.get(room_id, 0))
            # The reverse candidate of an edge made earlier is rejected by the stage
            if rng.random() < probability and stage.connect_in_direction(room_id, direction):
                added += 1
        return added

    async def assign_room_data(self, stage: Stage, room_ids: List[int], rng: random.Random) -> None:
        # Fetched one at a time so rng draws stay in room order
        for room_id in room_ids:
            template = await self.repository.get_random_template(RoomCategory.NORMAL, rng)
            if template is None:
                logger.warning("No normal template for room %d; keeping previous template", room_id)
                continue
            logger.debug("Room %d assigned template %r", room_id, template.name)
            stage.replace_template(room_id, template)

    async def set_start_and_boss_rooms(self, stage: Stage, rng: random.Random) -> None:
        """Give the root a START template and the boss room a BOSS template.

        In a single-room stage the root is also the boss room; it keeps the
        START template so the stage still has a player spawn, and no BOSS
        template is fetched.
        """
        start_template = await self.repository.get_random_template(RoomCategory.START, rng)
        if start_template is not None:
            stage.replace_template(stage.start_room_id, start_template)
        else:
            logger.warning("Failed to load start room template for room %d", stage.start_room_id)

        if stage.boss_room_id == stage.start_room_id:
            return

        boss_template = await self.repository.get_random_template(RoomCategory.BOSS, rng)
        if boss_template is not None:
            stage.replace_template(stage.boss_room_id, boss_template)
        else:
            logger.warning("Failed to load boss room template for room %d", stage.boss_room_id)
