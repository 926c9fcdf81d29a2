from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .stage.constants import (
    CORRIDOR_EXTENSION,
    DEFAULT_ROOM_COUNT,
    ROOM_CORRIDOR_SIZE,
    ROOM_SPACING,
)

logger = logging.getLogger(__name__)


def _default_layer_names() -> Dict[int, str]:
    return {0: "Ground", 1: "Wall", 2: "Deco"}


@dataclass
class StageSettings:
    """Tunable parameters for stage generation and instantiation.

    - room_count: number of rooms requested from the generator.
    - room_spacing: world units between neighbouring grid cells (room centres).
    - corridor_size: width in tiles of every carved corridor.
    - corridor_extension: how far a corridor reaches inside each room boundary.
    - extra_edge_falloff / extra_edge_min_probability: loop edges are added with
      probability max(min_probability, 1 - distance * falloff).
    - layer_names: tile layer id -> layer name, used to name per-layer tilemaps.
    """

    room_count: int = DEFAULT_ROOM_COUNT
    room_spacing: int = ROOM_SPACING
    corridor_size: int = ROOM_CORRIDOR_SIZE
    corridor_extension: int = CORRIDOR_EXTENSION
    extra_edge_falloff: float = 0.5
    extra_edge_min_probability: float = 0.1
    layer_names: Dict[int, str] = field(default_factory=_default_layer_names)

    def __post_init__(self) -> None:
        if self.room_count < 1:
            raise ValueError(f"room_count must be >= 1, got {self.room_count}")
        if self.room_spacing <= 0:
            raise ValueError(f"room_spacing must be > 0, got {self.room_spacing}")
        if self.corridor_size <= 0:
            raise ValueError(f"corridor_size must be > 0, got {self.corridor_size}")
        if not 0.0 <= self.extra_edge_min_probability <= 1.0:
            logger.error(
                "extra_edge_min_probability out of bounds: %s. Clamping to [0,1].",
                self.extra_edge_min_probability,
            )
            self.extra_edge_min_probability = max(0.0, min(1.0, self.extra_edge_min_probability))

    def layer_name(self, layer: int) -> str:
        return self.layer_names.get(layer, f"Layer_{layer}")

    def edge_probability(self, distance: int) -> float:
        return max(self.extra_edge_min_probability, 1.0 - distance * self.extra_edge_falloff)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "StageSettings":
        """Build settings from a mapping. Missing fields fallback to defaults."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            logger.warning("Ignoring unknown stage settings keys: %s", ", ".join(unknown))
        kwargs: Dict[str, Any] = {}
        for key in ("room_count", "room_spacing", "corridor_size", "corridor_extension"):
            if key in raw:
                kwargs[key] = int(raw[key])
        for key in ("extra_edge_falloff", "extra_edge_min_probability"):
            if key in raw:
                kwargs[key] = float(raw[key])
        if "layer_names" in raw:
            # YAML/JSON keys may arrive as strings
            kwargs["layer_names"] = {int(k): str(v) for k, v in (raw["layer_names"] or {}).items()}
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path) -> "StageSettings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Stage settings file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"Stage settings in {path} must be a mapping, got {type(raw).__name__}")
        settings = cls.from_mapping(raw)
        logger.debug("Loaded stage settings from %s: %s", path, settings)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_yaml(self, path: Path) -> None:
        """Persist settings to a YAML file."""
        with Path(path).open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=True)
