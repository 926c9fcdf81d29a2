import asyncio
import logging
import random

import pytest

from stagegen.content import ContentTable, ObjectEntry, ObjectKind, TableContentResolver
from stagegen.room_data import ObjectRecord, RoomData
from stagegen.stage.direction import Direction
from stagegen.stage.generator import StageGenerator
from stagegen.stage.graph import Stage
from stagegen.stage.instantiator import StageInstantiationError, StageInstantiator


def _resolver(ground="Tiles/Ground"):
    table = ContentTable(
        [
            ObjectEntry(7, ObjectKind.PROP, "Props/Barrel", "Barrel"),
            ObjectEntry(8, ObjectKind.ENEMY, "Enemies/Skeleton", "Skeleton"),
        ],
        ground_tile=ground,
    )
    return TableContentResolver(table)


def _two_rooms(direction: Direction, template_factory, size=9) -> Stage:
    stage = Stage()
    a = stage.add_room(template_factory("a", size=size), (0, 0))
    b = stage.add_room(template_factory("b", size=size), direction.step((0, 0)))
    assert stage.connect_rooms(a, b, direction)
    return stage


def _instantiate(stage, resolver=None):
    return asyncio.run(StageInstantiator(resolver or _resolver()).instantiate(stage))


def test_north_south_corridor_is_continuous(template_factory):
    world = _instantiate(_two_rooms(Direction.NORTH, template_factory))
    assert len(world.corridors) == 1
    corridor = world.corridors[0]
    assert corridor.start == (-2, 2)
    assert corridor.end == (-2, 26)

    expected = {(x, y) for x in range(-2, 3) for y in range(2, 27)}
    assert set(corridor.tiles) == expected
    ground = world.ground
    for y in range(2, 27):
        row = [ground.get_tile((x, y)) for x in range(-2, 3)]
        assert all(tile is not None for tile in row), f"gap at row {y}"


def test_east_west_corridor_runs_horizontally(template_factory):
    world = _instantiate(_two_rooms(Direction.EAST, template_factory))
    corridor = world.corridors[0]
    assert corridor.start == (2, -2)
    assert corridor.end == (26, -2)
    assert set(corridor.tiles) == {(x, y) for x in range(2, 27) for y in range(-2, 3)}


def test_south_and_west_mirror_north_and_east(template_factory):
    south = _instantiate(_two_rooms(Direction.SOUTH, template_factory)).corridors[0]
    assert (south.start, south.end) == ((-2, -2), (-2, -26))
    west = _instantiate(_two_rooms(Direction.WEST, template_factory)).corridors[0]
    assert (west.start, west.end) == ((-2, -2), (-26, -2))


def test_ground_fill_and_layers(template_factory):
    stage = _two_rooms(Direction.NORTH, template_factory)
    world = _instantiate(stage)
    assert world.room_centers == {0: (0, 0), 1: (0, 28)}
    ground = world.ground
    for x in range(-4, 5):
        for y in range(-4, 5):
            assert (x, y) in ground
            assert (x, 28 + y) in ground
    walls = world.tilemaps["Tilemap_Wall"]
    assert walls.get_tile((-4, 0)).address == "Tiles/Wall"
    assert (4, 28) in walls
    assert ground.bounds() == (-4, -4, 4, 32)


def test_even_room_size_fill_starts_at_minus_half():
    stage = Stage()
    stage.add_room(RoomData(size_x=8, size_y=8), (0, 0))
    ground = _instantiate(stage).ground
    assert len(ground) == 64
    assert ground.bounds() == (-4, -4, 3, 3)


def test_objects_are_dispatched_by_kind(template_factory):
    template = template_factory(
        "stuff",
        objects=[
            ObjectRecord(7, (1.0, 2.0), 45.0),
            ObjectRecord(8, (-1.0, 0.0)),
            ObjectRecord(10000001, (0.0, 0.0)),
            ObjectRecord(10000002, (3.0, 3.0)),
            ObjectRecord(0, (0.0, 0.0)),
        ],
    )
    stage = Stage()
    stage.add_room(None, (0, 0))
    stage.add_room(template, (1, 0))
    world = _instantiate(stage)

    kinds = [obj.kind for obj in world.objects]
    assert kinds == [ObjectKind.PROP, ObjectKind.ENEMY, ObjectKind.PLAYER_SPAWN, ObjectKind.RANDOM_ENEMY_SPAWN]
    barrel = world.objects[0]
    assert barrel.position == (29.0, 2.0)
    assert barrel.rotation == 45.0
    assert barrel.instance.key == "Props/Barrel"
    assert all(obj.instance.initialized for obj in world.objects)


def test_unknown_object_is_skipped(template_factory, caplog):
    stage = Stage()
    stage.add_room(template_factory("odd", objects=[ObjectRecord(555, (0.0, 0.0))]), (0, 0))
    with caplog.at_level(logging.WARNING):
        world = _instantiate(stage)
    assert world.objects == []
    assert any("unknown object table id 555" in rec.message for rec in caplog.records)


def test_missing_ground_tile_raises(template_factory):
    stage = _two_rooms(Direction.NORTH, template_factory)
    with pytest.raises(StageInstantiationError):
        _instantiate(stage, _resolver(ground=None))


def test_room_without_template_is_skipped(caplog):
    stage = Stage()
    stage.add_room(None, (0, 0))
    with caplog.at_level(logging.WARNING):
        world = _instantiate(stage)
    assert world.room_centers == {}
    assert len(world.ground) == 0


def test_generated_stage_gets_one_corridor_per_edge(repository):
    stage = asyncio.run(StageGenerator(repository).generate_stage(15, random.Random(21)))
    world = _instantiate(stage)
    assert len(world.corridors) == stage.edge_count()
    pairs = {(c.room_a, c.room_b) for c in world.corridors}
    assert len(pairs) == stage.edge_count()
    assert len(world.room_centers) == 15
    spawns = [obj for obj in world.objects if obj.kind is ObjectKind.PLAYER_SPAWN]
    assert len(spawns) == 1
