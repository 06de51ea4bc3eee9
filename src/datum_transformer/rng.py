"""Seedable random draws consumed by the transform pipeline.

Every random value the pipeline uses comes from a ``RandomSequencer`` so that
a fixed seed and a fixed configuration replay bit-identical draws, on the host
path and on the device path alike.  Sequencers are not thread-safe: each
worker owns its own.
"""

from __future__ import annotations

import itertools
import threading

import numpy as np
from loguru import logger

from datum_transformer.errors import PreconditionError
from datum_transformer.types import RandomDraws

__all__ = ["RandomSequencer", "SeedSource"]

_UINT32_RANGE = 1 << 32


class SeedSource:
    """Monotonically advancing seed counter shared by pipelines that are not
    explicitly seeded.

    Pass one instance to every pipeline built by a process to reproduce the
    counter-based seeding of a whole run.  Thread-safe.

    Args:
        base: First seed handed out.  ``None`` starts from OS entropy.
    """

    def __init__(self, base: int | None = None) -> None:
        if base is None:
            base = int(np.random.SeedSequence().entropy % _UINT32_RANGE)  # type: ignore[operator]
        self._counter = itertools.count(base)
        self._lock = threading.Lock()

    def next_seed(self) -> int:
        with self._lock:
            return next(self._counter)


class RandomSequencer:
    """Owns a Mersenne Twister generator and hands out draws in call order."""

    def __init__(self) -> None:
        self._rng: np.random.Generator | None = None
        self.seed: int | None = None

    def init(
        self,
        needs_random: bool,
        seed: int = -1,
        seed_source: SeedSource | None = None,
    ) -> None:
        """Create the generator when randomness is needed, clear it otherwise.

        Args:
            needs_random: Whether any enabled transform consumes draws.
            seed: ``>= 0`` seeds deterministically; negative takes the next
                seed from ``seed_source``.
            seed_source: Counter used for negative seeds.
        """
        if not needs_random:
            self._rng = None
            self.seed = None
            return
        if seed < 0:
            if seed_source is None:
                seed_source = SeedSource()
            seed = seed_source.next_seed()
        self.seed = seed
        self._rng = np.random.Generator(np.random.MT19937(seed))
        logger.debug(f"RandomSequencer seeded with {seed}")

    @property
    def initialized(self) -> bool:
        return self._rng is not None

    def _generator(self) -> np.random.Generator:
        if self._rng is None:
            raise PreconditionError(
                "random draw requested but no generator was initialized; "
                "no enabled transform declared a need for randomness"
            )
        return self._rng

    def next(self) -> int:
        """One raw unsigned 32-bit value."""
        return int(self._generator().integers(0, _UINT32_RANGE, dtype=np.uint64))

    def rand(self, n: int) -> int:
        """Integer in ``[0, n)`` taken as ``next() % n``."""
        if n <= 0:
            raise PreconditionError(f"rand() needs a positive bound, got {n}")
        return self.next() % n

    def randint(self, low: int, high: int) -> int:
        """Integer uniformly in ``[low, high]``."""
        return low + self.rand(high - low + 1)

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        return float(self._generator().uniform(low, high))

    def draw_three(self, mirror: bool, crop: bool) -> RandomDraws:
        """Mirror, crop-height and crop-width draws, in that fixed order.

        All three raw values are always consumed so toggling one transform
        never shifts the values seen by another.  A consumed value is stored
        as ``raw + 1`` when its transform is enabled and 0 otherwise.
        """
        raw = (self.next(), self.next(), self.next())
        return RandomDraws(
            mirror=raw[0] + 1 if mirror else 0,
            crop_h=raw[1] + 1 if crop else 0,
            crop_w=raw[2] + 1 if crop else 0,
        )
