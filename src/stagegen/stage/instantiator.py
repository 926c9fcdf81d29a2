from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from ..config import StageSettings
from ..content import ContentResolver, ObjectKind, TileHandle, Vec2
from .constants import TILEMAP_GROUND_NAME, TILEMAP_NAME_PREFIX
from .direction import DIRECTIONS, Direction, Point
from .graph import Stage
from .room import Room

logger = logging.getLogger(__name__)


class StageInstantiationError(RuntimeError):
    """Raised when a stage cannot be turned into world content."""


class Tilemap:
    """Sparse integer grid of tiles; later writes replace earlier ones."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._cells: Dict[Point, TileHandle] = {}

    def set_tile(self, position: Point, tile: TileHandle) -> None:
        self._cells[(int(position[0]), int(position[1]))] = tile

    def get_tile(self, position: Point) -> Optional[TileHandle]:
        return self._cells.get((position[0], position[1]))

    def positions(self) -> Iterator[Point]:
        return iter(self._cells)

    def __contains__(self, position: object) -> bool:
        return position in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def bounds(self) -> Optional[Tuple[int, int, int, int]]:
        """(min_x, min_y, max_x, max_y) of placed tiles, None when empty."""
        if not self._cells:
            return None
        xs = [p[0] for p in self._cells]
        ys = [p[1] for p in self._cells]
        return min(xs), min(ys), max(xs), max(ys)


@dataclass
class PlacedObject:
    room_id: int
    table_id: int
    kind: ObjectKind
    position: Vec2
    rotation: float
    instance: Any = None


@dataclass
class Corridor:
    """Straight strip of ground tiles joining two connected rooms."""

    room_a: int
    room_b: int
    direction: Direction
    start: Point
    end: Point
    tiles: List[Point] = field(default_factory=list)


@dataclass
class StageWorld:
    tilemaps: Dict[str, Tilemap] = field(default_factory=dict)
    objects: List[PlacedObject] = field(default_factory=list)
    corridors: List[Corridor] = field(default_factory=list)
    room_centers: Dict[int, Point] = field(default_factory=dict)

    def tilemap(self, name: str) -> Tilemap:
        """Return the tilemap called ``name``, creating it on first use."""
        tm = self.tilemaps.get(name)
        if tm is None:
            tm = self.tilemaps[name] = Tilemap(name)
        return tm

    @property
    def ground(self) -> Tilemap:
        return self.tilemap(TILEMAP_GROUND_NAME)


@dataclass
class _RoomBuild:
    room_id: int
    center: Point
    tiles: List[Tuple[str, Point, TileHandle]] = field(default_factory=list)
    objects: List[PlacedObject] = field(default_factory=list)


class StageInstantiator:
    """Lays out a generated stage in world space.

    Rooms are built concurrently, merged in room id order, then corridors are
    carved on the ground tilemap.
    """

    def __init__(self, resolver: ContentResolver, settings: Optional[StageSettings] = None) -> None:
        self.resolver = resolver
        self.settings = settings or StageSettings()

    def room_center(self, room: Room) -> Point:
        spacing = self.settings.room_spacing
        return (room.position[0] * spacing, room.position[1] * spacing)

    def tilemap_name(self, layer: int) -> str:
        return TILEMAP_NAME_PREFIX + self.settings.layer_name(layer)

    async def instantiate(self, stage: Stage) -> StageWorld:
        ground = await self.resolver.resolve_ground_tile()
        if ground is None:
            raise StageInstantiationError("Ground tile could not be resolved")

        world = StageWorld()
        world.tilemap(TILEMAP_GROUND_NAME)

        rooms = sorted(stage, key=lambda r: r.id)
        tasks = []
        for room in rooms:
            if room.template is None:
                logger.warning("Room %d has no template; skipping", room.id)
                continue
            tasks.append(self._build_room(room, ground))
        builds = await asyncio.gather(*tasks)

        for build in sorted(builds, key=lambda b: b.room_id):
            world.room_centers[build.room_id] = build.center
            for name, pos, tile in build.tiles:
                world.tilemap(name).set_tile(pos, tile)
            world.objects.extend(build.objects)

        self._carve_corridors(stage, world, ground)
        logger.info(
            "Stage instantiated: %d rooms, %d corridors, %d objects",
            len(world.room_centers), len(world.corridors), len(world.objects),
        )
        return world

    async def _build_room(self, room: Room, ground: TileHandle) -> _RoomBuild:
        template = room.template
        cx, cy = self.room_center(room)
        build = _RoomBuild(room_id=room.id, center=(cx, cy))

        start_x = -(template.size_x // 2)
        start_y = -(template.size_y // 2)
        for x in range(start_x, start_x + template.size_x):
            for y in range(start_y, start_y + template.size_y):
                build.tiles.append((TILEMAP_GROUND_NAME, (cx + x, cy + y), ground))

        handles: Dict[int, Optional[TileHandle]] = {}
        for index, address in enumerate(template.asset_addresses):
            handles[index] = await self.resolver.resolve_tile(address)
            if handles[index] is None:
                logger.warning("Room %d: tile address %r could not be resolved", room.id, address)

        for tile in template.tiles:
            handle = handles.get(tile.address_index)
            if handle is None:
                continue
            pos = (cx + tile.position[0], cy + tile.position[1])
            build.tiles.append((self.tilemap_name(tile.layer), pos, handle))

        for record in template.objects:
            if record.table_id == 0:
                continue
            entry = self.resolver.resolve_object(record.table_id)
            if entry is None:
                logger.warning("Room %d: unknown object table id %d", room.id, record.table_id)
                continue
            position = (cx + record.position[0], cy + record.position[1])
            instance = await self._spawn(entry, position, record.rotation)
            waiter = getattr(instance, "wait_initialized", None)
            if waiter is not None:
                await waiter()
            build.objects.append(
                PlacedObject(room.id, record.table_id, entry.kind, position, record.rotation, instance)
            )

        logger.debug(
            "Room %d built at %s: %d tiles, %d objects",
            room.id, build.center, len(build.tiles), len(build.objects),
        )
        return build

    async def _spawn(self, entry, position: Vec2, rotation: float) -> Any:
        if entry.kind is ObjectKind.PROP:
            return await self.resolver.spawn_prop(entry, position, rotation)
        if entry.kind is ObjectKind.ENEMY:
            return await self.resolver.spawn_enemy(entry, position, rotation)
        if entry.kind is ObjectKind.PLAYER_SPAWN:
            return await self.resolver.spawn_player(entry, position, rotation)
        if entry.kind is ObjectKind.RANDOM_ENEMY_SPAWN:
            return await self.resolver.spawn_random_enemy(entry, position, rotation)
        return await self.resolver.spawn_trigger(entry, position, rotation)

    def _carve_corridors(self, stage: Stage, world: StageWorld, ground: TileHandle) -> None:
        processed: Set[Tuple[int, int]] = set()
        for room in sorted(stage, key=lambda r: r.id):
            for direction in DIRECTIONS:
                other_id = room.connected_room(direction)
                if other_id is None:
                    continue
                pair = (min(room.id, other_id), max(room.id, other_id))
                if pair in processed:
                    continue
                processed.add(pair)
                other = stage.get_room(other_id)
                if room.template is None or other is None or other.template is None:
                    logger.warning("Skipping corridor %d-%d: missing room template", room.id, other_id)
                    continue
                corridor = self.corridor_between(room, other, direction)
                for pos in corridor.tiles:
                    world.ground.set_tile(pos, ground)
                world.corridors.append(corridor)

    def corridor_between(self, room: Room, other: Room, direction: Direction) -> Corridor:
        """Compute the strip of tiles joining ``room`` to ``other`` through ``direction``."""
        size = self.settings.corridor_size
        ext = self.settings.corridor_extension
        half = size // 2
        cx, cy = self.room_center(room)
        tx, ty = self.room_center(other)
        src, dst = room.template, other.template

        if direction is Direction.NORTH:
            start = (cx - half, cy + src.size_y // 2 - ext)
            end = (tx - half, ty - dst.size_y // 2 + ext)
        elif direction is Direction.SOUTH:
            start = (cx - half, cy - src.size_y // 2 + ext)
            end = (tx - half, ty + dst.size_y // 2 - ext)
        elif direction is Direction.EAST:
            start = (cx + src.size_x // 2 - ext, cy - half)
            end = (tx - dst.size_x // 2 + ext, ty - half)
        else:
            start = (cx - src.size_x // 2 + ext, cy - half)
            end = (tx + dst.size_x // 2 - ext, ty - half)

        corridor = Corridor(room.id, other.id, direction, start, end)
        dx = end[0] - start[0]
        dy = end[1] - start[1]
        steps = max(abs(dx), abs(dy))
        for step in range(steps + 1):
            t = step / steps if steps else 0.0
            x = round(start[0] + dx * t)
            y = round(start[1] + dy * t)
            for w in range(size):
                corridor.tiles.append((x + w, y) if direction.is_vertical else (x, y + w))
        return corridor
