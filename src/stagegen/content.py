from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml

from .stage.constants import PLAYER_SPAWN_POINT_ID, RANDOM_ENEMY_SPAWN_ID

logger = logging.getLogger(__name__)

Vec2 = Tuple[float, float]


class ObjectKind(str, Enum):
    PROP = "prop"
    ENEMY = "enemy"
    PLAYER_SPAWN = "player_spawn"
    RANDOM_ENEMY_SPAWN = "random_enemy_spawn"
    TRIGGER = "trigger"


@dataclass(frozen=True)
class ObjectEntry:
    """One row of the content table: what a placed table id turns into."""

    table_id: int
    kind: ObjectKind
    key: str = ""
    name: str = ""


@dataclass(frozen=True)
class TileHandle:
    address: str


@dataclass
class SpawnedObject:
    """Record of an object created in the world by a resolver."""

    table_id: int
    kind: ObjectKind
    key: str
    position: Vec2
    rotation: float = 0.0
    initialized: bool = False

    async def wait_initialized(self) -> None:
        self.initialized = True


def _builtin_entries() -> Dict[int, ObjectEntry]:
    return {
        PLAYER_SPAWN_POINT_ID: ObjectEntry(PLAYER_SPAWN_POINT_ID, ObjectKind.PLAYER_SPAWN, name="PlayerSpawnPoint"),
        RANDOM_ENEMY_SPAWN_ID: ObjectEntry(RANDOM_ENEMY_SPAWN_ID, ObjectKind.RANDOM_ENEMY_SPAWN, name="RandomEnemySpawn"),
    }


class ContentTable:
    """Table id -> ObjectEntry lookup plus the ground tile address.

    The two built-in trigger ids (player spawn point, random enemy spawn) are
    always present unless ``include_builtins`` is False; explicit entries with
    the same id override them.

    YAML layout::

        ground_tile: Tiles/Ground
        objects:
          1: {kind: prop, key: Props/Barrel, name: Barrel}
          2: {kind: enemy, key: Enemies/Skeleton}
    """

    def __init__(
        self,
        entries: Optional[Iterable[ObjectEntry]] = None,
        ground_tile: Optional[str] = None,
        include_builtins: bool = True,
    ) -> None:
        self.ground_tile = ground_tile
        self._entries: Dict[int, ObjectEntry] = _builtin_entries() if include_builtins else {}
        for entry in entries or ():
            self.add(entry)

    def add(self, entry: ObjectEntry) -> None:
        if entry.table_id == 0:
            raise ValueError("Table id 0 is reserved for empty object slots")
        self._entries[entry.table_id] = entry

    def get(self, table_id: int) -> Optional[ObjectEntry]:
        return self._entries.get(table_id)

    def __contains__(self, table_id: object) -> bool:
        return table_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ContentTable":
        objects = raw.get("objects") or {}
        if not isinstance(objects, Mapping):
            raise ValueError("'objects' must be a mapping of table id to entry")
        entries = []
        for raw_id, row in objects.items():
            table_id = int(raw_id)
            if not isinstance(row, Mapping) or "kind" not in row:
                raise ValueError(f"Content entry {table_id} must be a mapping with a 'kind'")
            try:
                kind = ObjectKind(str(row["kind"]).lower())
            except ValueError as e:
                raise ValueError(f"Content entry {table_id} has unknown kind {row['kind']!r}") from e
            entries.append(ObjectEntry(table_id, kind, str(row.get("key", "")), str(row.get("name", ""))))
        return cls(
            entries,
            ground_tile=raw.get("ground_tile"),
            include_builtins=bool(raw.get("include_builtins", True)),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ContentTable":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Content table not found: {p}")
        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"Content table must be a mapping: {p}")
        table = cls.from_mapping(raw)
        logger.info("Loaded content table %s (%d entries)", p, len(table))
        return table


class ContentResolver(ABC):
    """Turns addresses and table ids into world content."""

    @abstractmethod
    async def resolve_ground_tile(self) -> Optional[TileHandle]:
        raise NotImplementedError

    @abstractmethod
    async def resolve_tile(self, address: str) -> Optional[TileHandle]:
        raise NotImplementedError

    @abstractmethod
    def resolve_object(self, table_id: int) -> Optional[ObjectEntry]:
        raise NotImplementedError

    @abstractmethod
    async def spawn_prop(self, entry: ObjectEntry, position: Vec2, rotation: float) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def spawn_enemy(self, entry: ObjectEntry, position: Vec2, rotation: float) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def spawn_player(self, entry: ObjectEntry, position: Vec2, rotation: float) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def spawn_random_enemy(self, entry: ObjectEntry, position: Vec2, rotation: float) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def spawn_trigger(self, entry: ObjectEntry, position: Vec2, rotation: float) -> Any:
        raise NotImplementedError


class TableContentResolver(ContentResolver):
    """Resolver backed by a ContentTable; spawns plain SpawnedObject records."""

    def __init__(self, table: ContentTable) -> None:
        self.table = table

    async def resolve_ground_tile(self) -> Optional[TileHandle]:
        if not self.table.ground_tile:
            return None
        return TileHandle(self.table.ground_tile)

    async def resolve_tile(self, address: str) -> Optional[TileHandle]:
        return TileHandle(address) if address else None

    def resolve_object(self, table_id: int) -> Optional[ObjectEntry]:
        return self.table.get(table_id)

    def _spawn(self, entry: ObjectEntry, position: Vec2, rotation: float) -> SpawnedObject:
        return SpawnedObject(
            table_id=entry.table_id,
            kind=entry.kind,
            key=entry.key,
            position=(float(position[0]), float(position[1])),
            rotation=float(rotation),
        )

    async def spawn_prop(self, entry: ObjectEntry, position: Vec2, rotation: float) -> SpawnedObject:
        return self._spawn(entry, position, rotation)

    async def spawn_enemy(self, entry: ObjectEntry, position: Vec2, rotation: float) -> SpawnedObject:
        return self._spawn(entry, position, rotation)

    async def spawn_player(self, entry: ObjectEntry, position: Vec2, rotation: float) -> SpawnedObject:
        return self._spawn(entry, position, rotation)

    async def spawn_random_enemy(self, entry: ObjectEntry, position: Vec2, rotation: float) -> SpawnedObject:
        return self._spawn(entry, position, rotation)

    async def spawn_trigger(self, entry: ObjectEntry, position: Vec2, rotation: float) -> SpawnedObject:
        return self._spawn(entry, position, rotation)
