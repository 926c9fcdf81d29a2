import asyncio
from pathlib import Path

import pytest

from stagegen.content import ContentTable, ObjectEntry, ObjectKind, SpawnedObject, TableContentResolver
from stagegen.stage.constants import PLAYER_SPAWN_POINT_ID, RANDOM_ENEMY_SPAWN_ID


def test_builtin_trigger_ids_are_registered():
    table = ContentTable()
    assert table.get(PLAYER_SPAWN_POINT_ID).kind is ObjectKind.PLAYER_SPAWN
    assert table.get(RANDOM_ENEMY_SPAWN_ID).kind is ObjectKind.RANDOM_ENEMY_SPAWN
    assert PLAYER_SPAWN_POINT_ID not in ContentTable(include_builtins=False)


def test_table_id_zero_is_reserved():
    with pytest.raises(ValueError):
        ContentTable([ObjectEntry(0, ObjectKind.PROP)])


def test_from_yaml(tmp_path: Path):
    path = tmp_path / "content.yaml"
    path.write_text(
        "ground_tile: Tiles/Ground\n"
        "objects:\n"
        "  1: {kind: prop, key: Props/Barrel, name: Barrel}\n"
        "  '2': {kind: ENEMY, key: Enemies/Bat}\n",
        encoding="utf-8",
    )
    table = ContentTable.from_yaml(path)
    assert table.ground_tile == "Tiles/Ground"
    assert table.get(1) == ObjectEntry(1, ObjectKind.PROP, "Props/Barrel", "Barrel")
    assert table.get(2).kind is ObjectKind.ENEMY
    assert len(table) == 4


def test_from_mapping_rejects_unknown_kind():
    with pytest.raises(ValueError):
        ContentTable.from_mapping({"objects": {5: {"kind": "dragon"}}})
    with pytest.raises(ValueError):
        ContentTable.from_mapping({"objects": {5: "prop"}})


def test_from_yaml_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        ContentTable.from_yaml(tmp_path / "missing.yaml")


def test_resolver_spawns_records():
    resolver = TableContentResolver(ContentTable([ObjectEntry(3, ObjectKind.TRIGGER, "Triggers/Door")]))
    entry = resolver.resolve_object(3)

    async def _run():
        ground = await resolver.resolve_ground_tile()
        tile = await resolver.resolve_tile("Tiles/Wall")
        empty = await resolver.resolve_tile("")
        spawned = await resolver.spawn_trigger(entry, (1, 2), 180)
        await spawned.wait_initialized()
        return ground, tile, empty, spawned

    ground, tile, empty, spawned = asyncio.run(_run())
    assert ground is None
    assert tile.address == "Tiles/Wall"
    assert empty is None
    assert isinstance(spawned, SpawnedObject)
    assert spawned.position == (1.0, 2.0)
    assert spawned.rotation == 180.0
    assert spawned.initialized
    assert resolver.resolve_object(404) is None
