from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def atomic_write_text(path: PathLike, text: str, encoding: str = "utf-8") -> Path:
    """Replace ``path`` with ``text`` without ever leaving a half-written file.

    The content goes to a sibling temp file first, which is then renamed over
    the target. Parent directories are created.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding=encoding, dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
    ) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
    tmp_path = Path(tmp.name)
    try:
        tmp_path.replace(target)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.debug("Wrote %d chars to %s", len(text), target)
    return target


def atomic_write_json(path: PathLike, obj: Mapping[str, Any]) -> Path:
    """Write compact JSON (no whitespace) atomically."""
    return atomic_write_text(path, json.dumps(obj, separators=(",", ":")))
