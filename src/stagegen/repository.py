from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from .room_data.models import RoomCategory, RoomData, RoomDataError
from .room_data.serializer import load_room_data
from .utils.json_loader import JsonLoaderError

logger = logging.getLogger(__name__)


class TemplateRepository(ABC):
    """Source of room templates filtered by category."""

    @abstractmethod
    async def get_random_template(self, category: RoomCategory, rng: random.Random) -> Optional[RoomData]:
        """Return a template of ``category`` chosen with ``rng``, or None if none is available."""
        raise NotImplementedError


class InMemoryTemplateRepository(TemplateRepository):
    """Repository over templates already held in memory."""

    def __init__(self, templates: Optional[Mapping[RoomCategory, Sequence[RoomData]]] = None) -> None:
        self._templates: Dict[RoomCategory, List[RoomData]] = {c: [] for c in RoomCategory}
        for category, items in (templates or {}).items():
            self._templates[RoomCategory(category)].extend(items)

    def add(self, category: RoomCategory, template: RoomData) -> None:
        self._templates[RoomCategory(category)].append(template)

    async def get_random_template(self, category: RoomCategory, rng: random.Random) -> Optional[RoomData]:
        candidates = self._templates[RoomCategory(category)]
        if not candidates:
            logger.warning("No %s room templates available", RoomCategory(category).value)
            return None
        return rng.choice(candidates)


class DirectoryTemplateRepository(TemplateRepository):
    """Repository backed by JSON room files in one sub-directory per category.

    Layout::

        root/start/*.json
        root/normal/*.json
        root/boss/*.json

    The file index is built once on first use. Loaded templates are cached per
    path. A file that fails to load is logged and yields None so that one bad
    template does not abort stage generation.
    """

    def __init__(self, root: Union[str, Path], pattern: str = "*.json") -> None:
        self.root = Path(root)
        self.pattern = pattern
        self._index: Optional[Dict[RoomCategory, List[Path]]] = None
        self._index_lock: Optional[asyncio.Lock] = None
        self._cache: Dict[Path, RoomData] = {}

    def _build_index(self) -> Dict[RoomCategory, List[Path]]:
        index: Dict[RoomCategory, List[Path]] = {}
        for category in RoomCategory:
            folder = self.root / category.value
            index[category] = sorted(folder.glob(self.pattern)) if folder.is_dir() else []
            logger.debug("Indexed %d %s templates under %s", len(index[category]), category.value, folder)
        return index

    async def ensure_indexed(self) -> Dict[RoomCategory, List[Path]]:
        if self._index is not None:
            return self._index
        if self._index_lock is None:
            self._index_lock = asyncio.Lock()
        async with self._index_lock:
            if self._index is None:
                self._index = await asyncio.to_thread(self._build_index)
        return self._index

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_random_template(self, category: RoomCategory, rng: random.Random) -> Optional[RoomData]:
        category = RoomCategory(category)
        index = await self.ensure_indexed()
        paths = index.get(category) or []
        if not paths:
            logger.warning("Template list for category %s is empty (%s)", category.value, self.root / category.value)
            return None

        path = rng.choice(paths)
        cached = self._cache.get(path)
        if cached is not None:
            return cached
        try:
            template = await asyncio.to_thread(load_room_data, path)
        except (RoomDataError, JsonLoaderError):
            logger.error("Failed to load %s room template %s", category.value, path, exc_info=True)
            return None
        self._cache[path] = template
        return template
