"""
Capability bundles.

Signing and verification talk only to the three capability interfaces
(Commit, Prove/Verify, RingSign/RingVerify).  A ``Backend`` fixes one
implementation of each at construction time; the orchestration code
never checks which one it got.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .commitment import (
    CommitmentScheme,
    PedersenCommitmentScheme,
    SymbolicCommitmentScheme,
)
from .ids import IdAllocator
from .proofs import OpeningProofSystem, ProofSystem, SymbolicProofSystem
from .randomness import RandomnessProvider, SystemRandomness
from .ring_signature import (
    RingSignatureScheme,
    SchnorrRingScheme,
    SymbolicRingScheme,
)


@dataclass(frozen=True)
class Backend:
    name: str
    commitments: CommitmentScheme
    proofs: ProofSystem
    rings: RingSignatureScheme
    needs_ring_keys: bool

    @classmethod
    def symbolic(cls, ids: IdAllocator) -> Backend:
        """Test double: records the bound fields, no cryptography."""
        return cls(
            name="symbolic",
            commitments=SymbolicCommitmentScheme(ids),
            proofs=SymbolicProofSystem(),
            rings=SymbolicRingScheme(ids),
            needs_ring_keys=False,
        )

    @classmethod
    def secp256k1(
        cls,
        ids: IdAllocator,
        randomness: Optional[RandomnessProvider] = None,
    ) -> Backend:
        """Pedersen commitments, opening proofs and AOS ring signatures."""
        randomness = randomness or SystemRandomness()
        return cls(
            name="secp256k1",
            commitments=PedersenCommitmentScheme(ids, randomness),
            proofs=OpeningProofSystem(randomness),
            rings=SchnorrRingScheme(ids, randomness),
            needs_ring_keys=True,
        )

    @classmethod
    def from_name(
        cls,
        name: str,
        ids: IdAllocator,
        randomness: Optional[RandomnessProvider] = None,
    ) -> Backend:
        if name == "symbolic":
            return cls.symbolic(ids)
        if name == "secp256k1":
            return cls.secp256k1(ids, randomness)
        raise ValueError(f"unknown backend {name!r}")
