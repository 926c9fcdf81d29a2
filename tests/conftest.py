import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from stagegen.repository import InMemoryTemplateRepository  # noqa: E402
from stagegen.room_data import ObjectRecord, RoomCategory, RoomData  # noqa: E402


def make_template(name: str, size: int = 9, objects=None) -> RoomData:
    room = RoomData(size_x=size, size_y=size, name=name)
    room.add_tile("Tiles/Wall", 1, (-(size // 2), 0))
    room.add_tile("Tiles/Wall", 1, (size // 2, 0))
    room.objects.extend(objects or [])
    return room


@pytest.fixture
def repository() -> InMemoryTemplateRepository:
    return InMemoryTemplateRepository(
        {
            RoomCategory.START: [make_template("start", objects=[ObjectRecord(10000001, (0.0, 0.0))])],
            RoomCategory.NORMAL: [make_template("normal_a"), make_template("normal_b", size=11)],
            RoomCategory.BOSS: [make_template("boss", size=15)],
        }
    )


@pytest.fixture
def template_factory():
    return make_template
