"""Randomized cache lifetimes for the published key configuration.

A fixed ``max-age`` would make every client refresh its key configuration on a
shared schedule that an observer could line up with a global clock. Each
response instead carries a lifetime drawn uniformly from [12h, 36h).
"""

from __future__ import annotations

import random
import threading

TWELVE_HOURS: int = 12 * 3600
TWENTY_FOUR_HOURS: int = 24 * 3600


class CacheLifetimeSampler:
    """Thread-safe source of ``max-age`` values, seeded once at startup.

    Args:
        seed: Seed for a private ``random.Random``; OS entropy when None.
        rng: An explicit generator, taking precedence over ``seed``.
    """

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)
        self._lock = threading.Lock()

    def max_age(self) -> int:
        """Return a lifetime in seconds within [43200, 129600)."""
        with self._lock:
            return TWELVE_HOURS + self._rng.randrange(TWENTY_FOUR_HOURS)

    def cache_control(self) -> str:
        return f"max-age={self.max_age()}, private"
