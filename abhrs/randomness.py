"""
Randomness providers.

Production code needs unpredictable randomness (ring permutations,
commitment blinding, proof and ring-signature nonces); tests need the
same calls to be reproducible.  Both needs go through one interface,
chosen when the protocol is constructed.
"""

from __future__ import annotations

import random
import secrets
import threading
from abc import ABC, abstractmethod
from typing import List, MutableSequence, TypeVar

T = TypeVar("T")


class RandomnessProvider(ABC):
    """Source of bytes and permutations for the protocol."""

    @abstractmethod
    def token_bytes(self, n: int) -> bytes:
        ...

    @abstractmethod
    def shuffle(self, items: MutableSequence[T]) -> None:
        """Apply a uniformly random permutation in place."""

    def permuted(self, items: List[T]) -> List[T]:
        out = list(items)
        self.shuffle(out)
        return out


class SystemRandomness(RandomnessProvider):
    """OS CSPRNG via ``secrets``."""

    def __init__(self) -> None:
        self._rng = secrets.SystemRandom()

    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)

    def shuffle(self, items: MutableSequence[T]) -> None:
        self._rng.shuffle(items)

    def __repr__(self) -> str:
        return "SystemRandomness()"


class SeededRandomness(RandomnessProvider):
    """
    Deterministic Mersenne Twister stream for tests only.

    Not suitable for production: outputs are predictable from the seed.
    """

    def __init__(self, seed: int = 123) -> None:
        self.seed = seed
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def token_bytes(self, n: int) -> bytes:
        with self._lock:
            return self._rng.getrandbits(8 * n).to_bytes(n, "big")

    def shuffle(self, items: MutableSequence[T]) -> None:
        with self._lock:
            self._rng.shuffle(items)

    def __repr__(self) -> str:
        return f"SeededRandomness(seed={self.seed})"
