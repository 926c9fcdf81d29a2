import asyncio
import logging
import random

import pytest

from stagegen.config import StageSettings
from stagegen.repository import InMemoryTemplateRepository
from stagegen.room_data import RoomCategory
from stagegen.stage.direction import Direction
from stagegen.stage.generator import StageGenerator
from stagegen.stage.graph import Stage
from stagegen.stage.pathfinding import find_farthest_room, is_fully_connected


def _generate(repository, room_count, seed, settings=None):
    gen = StageGenerator(repository, settings)
    return asyncio.run(gen.generate_stage(room_count, random.Random(seed)))


def _signature(stage):
    return (
        [(r.id, r.position, r.template.name if r.template else None) for r in stage],
        sorted(stage.edges(), key=lambda e: (e[0], e[1])),
        stage.start_room_id,
        stage.boss_room_id,
    )


def test_single_room_is_start_and_boss(repository):
    stage = _generate(repository, 1, seed=3)
    assert len(stage) == 1
    assert stage.edge_count() == 0
    assert stage.start_room_id == stage.boss_room_id == 0
    assert stage.get_room(0).position == (0, 0)
    # The only room keeps the start template and its player spawn
    template = stage.get_room(0).template
    assert template.name == "start"
    assert [obj.table_id for obj in template.objects] == [10000001]


def test_five_rooms_scenario(repository):
    stage = _generate(repository, 5, seed=11)
    assert len(stage) == 5
    assert stage.edge_count() >= 4
    assert stage.get_room(stage.start_room_id).position == (0, 0)
    assert is_fully_connected(stage, stage.start_room_id)


@pytest.mark.parametrize("seed", range(12))
def test_generated_stage_invariants(repository, seed):
    stage = _generate(repository, 15, seed=seed)
    assert len(stage) == 15
    assert is_fully_connected(stage, stage.start_room_id)

    positions = [room.position for room in stage]
    assert len(set(positions)) == len(positions)

    for room in stage:
        for direction, other_id in room.connections.items():
            other = stage.get_room(other_id)
            assert other.connected_room(direction.opposite) == room.id
            assert direction.step(room.position) == other.position

    assert stage.boss_room_id != stage.start_room_id
    boss = stage.get_room(stage.boss_room_id)
    assert boss.degree == 1
    assert boss.template.name == "boss"
    assert stage.get_room(stage.start_room_id).template.name == "start"
    for room in stage:
        if room.id not in (stage.start_room_id, stage.boss_room_id):
            assert room.template.name in ("normal_a", "normal_b")


@pytest.mark.parametrize("seed", [5, 17, 23, 40])
def test_boss_is_farthest_room_on_spanning_tree(repository, seed):
    gen = StageGenerator(repository)
    rng = random.Random(seed)
    tree = Stage()
    room_ids = gen.place_rooms_on_grid(tree, 10, rng)
    gen.build_spanning_tree(tree, room_ids, rng)
    expected_boss, distance = find_farthest_room(tree, room_ids[0])
    assert distance >= 1

    stage = _generate(repository, 10, seed=seed)
    assert stage.boss_room_id == expected_boss


def test_same_seed_same_stage(repository):
    assert _signature(_generate(repository, 15, seed=99)) == _signature(_generate(repository, 15, seed=99))


def test_different_seeds_usually_differ(repository):
    signatures = {str(_signature(_generate(repository, 15, seed=s))) for s in range(5)}
    assert len(signatures) > 1


def test_steep_falloff_limits_extra_edges_to_root(repository):
    settings = StageSettings(extra_edge_falloff=1.0, extra_edge_min_probability=0.0)
    stage = _generate(repository, 12, seed=4, settings=settings)
    # Only the root (distance 0) keeps a non-zero chance of extra edges
    start = stage.get_room(stage.start_room_id)
    assert stage.edge_count() - 11 <= start.degree


def test_always_add_extra_edges(repository):
    settings = StageSettings(extra_edge_falloff=0.0, extra_edge_min_probability=1.0)
    stage = _generate(repository, 15, seed=8, settings=settings)
    boss_id = stage.boss_room_id
    for room in stage:
        if room.id == boss_id:
            continue
        for direction in (Direction.NORTH, Direction.SOUTH, Direction.EAST, Direction.WEST):
            neighbour = stage.room_at(direction.step(room.position))
            if neighbour is not None and neighbour.id != boss_id:
                assert room.connected_room(direction) == neighbour.id


def test_missing_templates_are_logged(caplog, template_factory):
    repo = InMemoryTemplateRepository({RoomCategory.NORMAL: [template_factory("only")]})
    with caplog.at_level(logging.WARNING):
        stage = _generate(repo, 4, seed=1)
    assert len(stage) == 4
    assert stage.get_room(stage.start_room_id).template.name == "only"
    assert any("start room template" in rec.message for rec in caplog.records)
    assert any("boss room template" in rec.message for rec in caplog.records)


def test_invalid_room_count_raises(repository):
    with pytest.raises(ValueError):
        _generate(repository, 0, seed=1)


def test_default_room_count_comes_from_settings(repository):
    gen = StageGenerator(repository, StageSettings(room_count=6))
    stage = asyncio.run(gen.generate_stage(rng=random.Random(2)))
    assert len(stage) == 6


def test_layout_is_logged_at_debug(repository, caplog):
    with caplog.at_level(logging.DEBUG, logger="stagegen"):
        _generate(repository, 3, seed=1)
    assert any("Stage layout" in rec.message for rec in caplog.records)
