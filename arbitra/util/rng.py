"""Deterministic random number generation with isolated streams.

Each consumer (such as demo spawning) gets its own
independent random stream derived from a master seed, so:

1. A demo run is fully deterministic from the same master seed
2. Changes to one consumer's random draws don't shift any other stream

Usage:
    from arbitra.util import rng
    rng.init(config.RANDOM_SEED)

    # In any module - cache the stream reference
    _rng = rng.get("demo.circle")

    def pick_direction() -> bool:
        return _rng.random() < 0.5

    # After rng.reset(), cached references automatically use the new stream
"""

from __future__ import annotations

import zlib
from collections.abc import Sequence
from random import Random
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from arbitra.types import RandomSeed

T = TypeVar("T")


class RNGStream:
    """Proxy that delegates to the current RNG for a domain.

    Callers can cache a reference that survives rng.reset(). Each call looks
    the underlying Random instance up fresh from the provider.
    """

    def __init__(self, provider: RNGProvider, domain: str) -> None:
        self._provider = provider
        self._domain = domain

    def _rng(self) -> Random:
        return self._provider._get_raw(self._domain)

    def random(self) -> float:
        """Return random float in [0.0, 1.0)."""
        return self._rng().random()

    def randint(self, a: int, b: int) -> int:
        """Return random integer N such that a <= N <= b."""
        return self._rng().randint(a, b)

    def uniform(self, a: float, b: float) -> float:
        """Return random float N such that a <= N <= b."""
        return self._rng().uniform(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        """Return random element from non-empty sequence."""
        return self._rng().choice(seq)

    def coin(self) -> bool:
        """Return True or False with equal probability."""
        return self._rng().random() < 0.5


class RNGProvider:
    """Provides isolated RNG streams keyed by domain name."""

    def __init__(self, master_seed: RandomSeed = None) -> None:
        self._master_seed = master_seed
        self._streams: dict[str, Random] = {}
        self._proxies: dict[str, RNGStream] = {}

    def get(self, domain: str) -> RNGStream:
        """Get a cacheable RNG stream proxy for the named domain."""
        if domain not in self._proxies:
            self._proxies[domain] = RNGStream(self, domain)
        return self._proxies[domain]

    def _get_raw(self, domain: str) -> Random:
        if domain not in self._streams:
            if self._master_seed is None:
                self._streams[domain] = Random()
            else:
                # crc32 rather than hash(): hash() is salted per interpreter
                # session via PYTHONHASHSEED.
                derived_seed = zlib.crc32(f"{self._master_seed}:{domain}".encode())
                self._streams[domain] = Random(derived_seed)
        return self._streams[domain]

    def reset(self, master_seed: RandomSeed = None) -> None:
        """Reset all streams with a new master seed.

        Existing RNGStream proxies remain valid and will use the new streams.
        """
        self._master_seed = master_seed
        self._streams.clear()


# =============================================================================
# Module-level API
# =============================================================================

_provider: RNGProvider | None = None


def init(master_seed: RandomSeed = None) -> None:
    """Initialize (or reset) the global RNG provider with a master seed."""
    global _provider
    if _provider is not None:
        _provider.reset(master_seed)
    else:
        _provider = RNGProvider(master_seed)


def get(domain: str) -> RNGStream:
    """Get an RNG stream for the named domain.

    Auto-initializes a non-deterministic provider if init() was never called.
    """
    global _provider
    if _provider is None:
        _provider = RNGProvider(None)
    return _provider.get(domain)


def reset(master_seed: RandomSeed = None) -> None:
    """Reset all RNG streams with a new master seed."""
    if _provider is None:
        raise RuntimeError("RNG not initialized - call rng.init() first")
    _provider.reset(master_seed)
