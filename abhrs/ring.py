"""
Ring formation with Ring-Indistinguishable Padding (RIP).

Sparse rings make de-anonymisation easy, so every ring is padded with
decoy keys up to the target size and then uniformly permuted:

    k = max(0, N − |H|)
    R = shuffle(H ∪ {decoy_1 … decoy_k})

N is a floor, never a cap: every honest key is always included, so
|R| = max(N, |H|).  Decoys get fresh ids, no owner, and the ``"Decoy"``
issuer tag.  Production permutations must come from ``SystemRandomness``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .config import Parameters
from .curve import Scalar, G
from .ids import IdAllocator
from .randomness import RandomnessProvider, SystemRandomness
from .registry import DECOY_ISSUER, PublicKeyRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ring:
    """An anonymity set: honest and decoy records in randomised order."""

    ring_id: str
    members: Tuple[PublicKeyRecord, ...]

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(m.pk_id for m in self.members)

    @property
    def decoy_count(self) -> int:
        return sum(1 for m in self.members if m.is_decoy)

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self):
        return iter(self.members)

    def __contains__(self, pk_id: object) -> bool:
        return pk_id in self.ids


def sample_decoys(
    count: int,
    ids: IdAllocator,
    randomness: RandomnessProvider,
    with_points: bool = True,
) -> List[PublicKeyRecord]:
    """
    Fresh decoy records.  With ``with_points`` each decoy gets a random
    curve point whose discrete log is discarded immediately.
    """
    decoys = []
    for _ in range(count):
        point = Scalar.random(randomness.token_bytes) * G if with_points else None
        decoys.append(PublicKeyRecord(
            pk_id=ids.next("pk_decoy"),
            owner=None,
            issuer=DECOY_ISSUER,
            point=point,
        ))
    return decoys


def build_ring(
    parameters: Parameters,
    honest_keys: Iterable[PublicKeyRecord],
    ids: IdAllocator,
    randomness: Optional[RandomnessProvider] = None,
    *,
    with_points: bool = True,
) -> Ring:
    """
    Build a padded, shuffled ring around ``honest_keys``.

    Honest records repeating an already-seen ``pk_id`` are dropped so the
    ring never holds duplicate ids.

    ``ids`` is the process-wide allocator; ring and decoy ids are minted
    from it so they never collide across rings.
    """
    randomness = randomness or SystemRandomness()

    honest: List[PublicKeyRecord] = []
    seen = set()
    for key in honest_keys:
        if key.pk_id in seen:
            continue
        seen.add(key.pk_id)
        honest.append(key)

    k = max(0, parameters.target_ring_size - len(honest))
    members = honest + sample_decoys(k, ids, randomness, with_points)
    randomness.shuffle(members)

    ring = Ring(ring_id=ids.next("RING"), members=tuple(members))
    logger.debug(
        "built %s: %d honest + %d decoys (target %d)",
        ring.ring_id, len(honest), k, parameters.target_ring_size,
    )
    return ring
