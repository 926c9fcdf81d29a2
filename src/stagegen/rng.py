from __future__ import annotations

import hashlib
import logging
import random
import secrets
from dataclasses import dataclass, field
from typing import Any, Union

logger = logging.getLogger(__name__)

Seed = Union[int, str, bytes]

STAGE_LAYOUT_DOMAIN = "stage_layout"


def seed_to_bytes(seed: Seed) -> bytes:
    """Canonical byte form of a master seed.

    Ints and ``0x``-prefixed hex strings map to minimal big-endian bytes, so
    ``16`` and ``"0x10"`` name the same run. Other strings are UTF-8 encoded.
    """
    if isinstance(seed, bytes):
        return seed
    if isinstance(seed, bool) or not isinstance(seed, (int, str)):
        raise TypeError(f"Unsupported seed type: {type(seed).__name__}")
    if isinstance(seed, str):
        text = seed.strip()
        if not text.startswith("0x"):
            return text.encode("utf-8")
        try:
            seed = int(text, 16)
        except ValueError:
            return text.encode("utf-8")
    if seed < 0:
        raise ValueError("Master seed must be non-negative")
    return seed.to_bytes((seed.bit_length() + 7) // 8 or 1, "big")


@dataclass(frozen=True)
class RNGManager:
    """Hands out reproducible ``random.Random`` instances for stage generation.

    Each RNG depends only on (master seed, domain, identifiers), never on how
    many RNGs were requested before it::

        rngm = RNGManager("run-abc")
        stage = await generator.generate_stage(rng=rngm.stage_rng(floor))

    ``master_seed=None`` picks a random seed and logs it so a run can be replayed.
    """

    master_seed: Union[Seed, None]
    _key: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.master_seed is None:
            raw = secrets.token_bytes(16)
            logger.info("No master seed provided; generated random seed: %s", raw.hex())
        else:
            raw = seed_to_bytes(self.master_seed)
        object.__setattr__(self, "_key", raw)

    def derive_seed(self, domain: str, *identifiers: Any) -> int:
        """64-bit seed for ``domain`` and identifiers such as a floor number."""
        h = hashlib.blake2b(digest_size=8, person=b"stagegen.v1")
        h.update(len(self._key).to_bytes(4, "big"))
        h.update(self._key)
        for part in (domain, *identifiers):
            token = str(part).encode("utf-8")
            h.update(len(token).to_bytes(4, "big"))
            h.update(token)
        value = int.from_bytes(h.digest(), "big")
        logger.debug("Derived seed %d for %s%r", value, domain, identifiers)
        return value

    def context_rng(self, domain: str, *identifiers: Any) -> random.Random:
        return random.Random(self.derive_seed(domain, *identifiers))

    def stage_rng(self, floor: int) -> random.Random:
        return self.context_rng(STAGE_LAYOUT_DOMAIN, floor)

    def get_master_seed_hex(self) -> str:
        return self._key.hex()
