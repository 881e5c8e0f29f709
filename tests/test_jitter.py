"""Tests for randomized key configuration cache lifetimes."""

from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor

from privacy_gateway.core.jitter import TWELVE_HOURS, TWENTY_FOUR_HOURS, CacheLifetimeSampler


def test_lifetimes_within_window() -> None:
    sampler = CacheLifetimeSampler()

    for _ in range(1000):
        assert TWELVE_HOURS <= sampler.max_age() < TWELVE_HOURS + TWENTY_FOUR_HOURS


def test_lifetimes_vary() -> None:
    sampler = CacheLifetimeSampler(seed=1)

    assert len({sampler.max_age() for _ in range(50)}) > 1


def test_seed_is_reproducible() -> None:
    first = CacheLifetimeSampler(seed=42)
    second = CacheLifetimeSampler(seed=42)

    assert [first.max_age() for _ in range(10)] == [second.max_age() for _ in range(10)]


def test_injected_generator_takes_precedence() -> None:
    sampler = CacheLifetimeSampler(seed=1, rng=random.Random(5))

    assert sampler.max_age() == TWELVE_HOURS + random.Random(5).randrange(TWENTY_FOUR_HOURS)


def test_cache_control_format() -> None:
    sampler = CacheLifetimeSampler(rng=random.Random(3))
    expected = TWELVE_HOURS + random.Random(3).randrange(TWENTY_FOUR_HOURS)

    assert sampler.cache_control() == f"max-age={expected}, private"


def test_concurrent_sampling_matches_sequence() -> None:
    sampler = CacheLifetimeSampler(seed=9)
    reference = CacheLifetimeSampler(seed=9)
    expected = sorted(reference.max_age() for _ in range(400))

    with ThreadPoolExecutor(max_workers=8) as pool:
        sampled = sorted(pool.map(lambda _: sampler.max_age(), range(400)))

    assert sampled == expected
