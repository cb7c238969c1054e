"""
Epoch commitments  C_t = Commit(SK_t).

A fresh commitment is created for every signing call and consumed by
exactly one proof and one ring signature.  Two backends implement the
``CommitmentScheme`` capability:

- ``SymbolicCommitmentScheme`` — test double; the commitment keeps the
  secret it was made from and binding is equality.
- ``PedersenCommitmentScheme`` — C = x·G + r·H with x = H(SK_t) and fresh
  blinding r.  Perfectly hiding, computationally binding under
  discrete log (log_G(H) is unknown, see ``curve.generator_h``).

Either way the prover-side object carries the opening and ``public()``
strips it before the commitment enters a transcript.

References
----------
- Pedersen (1991). "Non-Interactive and Information-Theoretic Secure
  Verifiable Secret Sharing."  CRYPTO 1991.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Optional

from .curve import Scalar, Point, G, H
from .epoch import EpochSecret
from .hash import hash_secret_scalar
from .ids import IdAllocator
from .randomness import RandomnessProvider, SystemRandomness


class EpochCommitment(ABC):
    """Commitment to an epoch secret, identified by ``commit_id``."""

    commit_id: str

    @abstractmethod
    def binds(self, secret: EpochSecret) -> bool:
        """True iff this commitment opens to ``secret`` (needs the opening)."""

    @abstractmethod
    def public(self) -> EpochCommitment:
        """Copy without opening material, safe to publish."""

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Public encoding: id plus binding value."""

    def is_well_formed(self) -> bool:
        return isinstance(self.commit_id, str) and bool(self.commit_id)


@dataclass(frozen=True)
class PedersenCommitment:
    """A single Pedersen commitment  C = m·G + r·H."""

    point: Point

    @staticmethod
    def commit(value: Scalar, randomness: Scalar) -> PedersenCommitment:
        return PedersenCommitment(point=(value * G) + (randomness * H))

    def verify(self, value: Scalar, randomness: Scalar) -> bool:
        return self.point == (value * G) + (randomness * H)

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()


@dataclass(frozen=True)
class SymbolicCommitment(EpochCommitment):
    commit_id: str
    secret: Optional[bytes] = field(default=None, repr=False)

    def binds(self, secret: EpochSecret) -> bool:
        return self.secret is not None and self.secret == secret.key

    def public(self) -> SymbolicCommitment:
        return replace(self, secret=None)

    def to_bytes(self) -> bytes:
        return self.commit_id.encode("utf-8")


@dataclass(frozen=True)
class PedersenEpochCommitment(EpochCommitment):
    """Pedersen commitment to  x = H(SK_t)  with opening  (x, r)."""

    commit_id: str
    commitment: PedersenCommitment
    value: Optional[Scalar] = field(default=None, repr=False)
    blinding: Optional[Scalar] = field(default=None, repr=False)

    @property
    def point(self) -> Point:
        return self.commitment.point

    def binds(self, secret: EpochSecret) -> bool:
        if self.blinding is None:
            return False
        return self.commitment.verify(hash_secret_scalar(secret.key), self.blinding)

    def public(self) -> PedersenEpochCommitment:
        return replace(self, value=None, blinding=None)

    def to_bytes(self) -> bytes:
        return self.commit_id.encode("utf-8") + self.commitment.to_bytes()


class CommitmentScheme(ABC):
    """Commit capability."""

    @abstractmethod
    def commit(self, secret: EpochSecret) -> EpochCommitment:
        ...


class SymbolicCommitmentScheme(CommitmentScheme):
    def __init__(self, ids: IdAllocator) -> None:
        self._ids = ids

    def commit(self, secret: EpochSecret) -> SymbolicCommitment:
        return SymbolicCommitment(commit_id=self._ids.next("C"), secret=secret.key)


class PedersenCommitmentScheme(CommitmentScheme):
    def __init__(
        self,
        ids: IdAllocator,
        randomness: Optional[RandomnessProvider] = None,
    ) -> None:
        self._ids = ids
        self._rng = randomness or SystemRandomness()

    def commit(self, secret: EpochSecret) -> PedersenEpochCommitment:
        x = hash_secret_scalar(secret.key)
        r = Scalar.random(self._rng.token_bytes)
        return PedersenEpochCommitment(
            commit_id=self._ids.next("C"),
            commitment=PedersenCommitment.commit(x, r),
            value=x,
            blinding=r,
        )
