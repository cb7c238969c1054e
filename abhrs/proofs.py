"""
Proofs binding a public statement to a validity outcome.

Statement  = (CA reference, policy id, commitment id, message)   — public
Witness    = (attributes, credential, epoch secret)               — private

The prover first evaluates the relation over (statement, witness); a
false relation raises ``ProofFailure`` and no proof is produced.  Two
backends implement the ``ProofSystem`` capability:

1. **Symbolic** — records the statement and the outcome.  Verification is
   statement equality.  Test double only.

2. **Opening proof** — non-interactive proof of knowledge of the opening
   (x, r) of the Pedersen epoch commitment  C = x·G + r·H, with the
   canonical statement digest as Fiat-Shamir context:

       k1, k2 ←$ Z_q,   A = k1·G + k2·H
       c  = H(A, C, stmt)
       z1 = k1 + c·x,   z2 = k2 + c·r

   Verify:  z1·G + z2·H  ==  A + c·C

   The relation itself is checked by the prover; a real PCP/zk backend
   would prove it in zero knowledge instead.

References
----------
- Okamoto (1992). "Provably Secure and Practical Identification Schemes
  and Corresponding Signature Schemes."  CRYPTO 1992.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple

from .commitment import EpochCommitment, PedersenEpochCommitment
from .curve import Scalar, Point, G, H
from .epoch import EpochSecret
from .errors import ProofFailure
from .hash import encode_item, hash_opening_proof, hash_statement
from .randomness import RandomnessProvider, SystemRandomness


@dataclass(frozen=True)
class Statement:
    ca_ref: str
    policy_id: str
    commit_id: str
    message: str

    def digest(self) -> bytes:
        return hash_statement(self.ca_ref, self.policy_id, self.commit_id, self.message)

    def to_bytes(self) -> bytes:
        return encode_item([self.ca_ref, self.policy_id, self.commit_id, self.message])


@dataclass(frozen=True)
class Witness:
    attributes: Mapping[str, Any] = field(repr=False)
    credential: Any = field(repr=False)
    secret: EpochSecret = field(repr=False)


Relation = Callable[[Statement, Witness], bool]


@dataclass(frozen=True)
class Proof:
    """Base proof: the statement it speaks for and the outcome it asserts."""

    statement: Statement
    outcome: bool

    def to_bytes(self) -> bytes:
        return encode_item([self.statement.to_bytes(), self.outcome])


@dataclass(frozen=True)
class SymbolicProof(Proof):
    witness_summary: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OpeningProof(Proof):
    A: Optional[Point] = None
    z1: Optional[Scalar] = None
    z2: Optional[Scalar] = None

    def to_bytes(self) -> bytes:
        return encode_item([self.statement.to_bytes(), self.outcome, self.A, self.z1, self.z2])


class ProofSystem(ABC):
    """Prove / Verify capability."""

    @abstractmethod
    def prove(
        self,
        statement: Statement,
        witness: Witness,
        commitment: EpochCommitment,
        relation: Relation,
    ) -> Proof:
        ...

    @abstractmethod
    def verify(
        self,
        statement: Statement,
        proof: Proof,
        commitment: EpochCommitment,
    ) -> bool:
        ...


def _check_relation(statement: Statement, witness: Witness, relation: Relation) -> None:
    try:
        holds = bool(relation(statement, witness))
    except Exception as exc:
        raise ProofFailure(f"relation raised {type(exc).__name__}: {exc}") from exc
    if not holds:
        raise ProofFailure("witness does not satisfy the relation")


class SymbolicProofSystem(ProofSystem):

    def prove(self, statement, witness, commitment, relation) -> SymbolicProof:
        _check_relation(statement, witness, relation)
        return SymbolicProof(
            statement=statement,
            outcome=True,
            witness_summary=("attributes", "credential", "secret"),
        )

    def verify(self, statement, proof, commitment) -> bool:
        return (
            isinstance(proof, SymbolicProof)
            and proof.outcome is True
            and proof.statement == statement
        )


class OpeningProofSystem(ProofSystem):
    """Proof of knowledge of the Pedersen epoch commitment opening."""

    def __init__(self, randomness: Optional[RandomnessProvider] = None) -> None:
        self._rng = randomness or SystemRandomness()

    def prove(self, statement, witness, commitment, relation) -> OpeningProof:
        _check_relation(statement, witness, relation)
        if not isinstance(commitment, PedersenEpochCommitment):
            raise ProofFailure("opening proofs need a Pedersen commitment")
        if commitment.value is None or commitment.blinding is None:
            raise ProofFailure("commitment opening is not available")
        if commitment.commit_id != statement.commit_id:
            raise ProofFailure("statement names a different commitment")

        k1 = Scalar.random(self._rng.token_bytes)
        k2 = Scalar.random(self._rng.token_bytes)
        A = (k1 * G) + (k2 * H)
        c = hash_opening_proof(A, commitment.point, statement.digest())
        return OpeningProof(
            statement=statement,
            outcome=True,
            A=A,
            z1=k1 + c * commitment.value,
            z2=k2 + c * commitment.blinding,
        )

    def verify(self, statement, proof, commitment) -> bool:
        if not isinstance(proof, OpeningProof) or proof.outcome is not True:
            return False
        if proof.statement != statement:
            return False
        if not isinstance(commitment, PedersenEpochCommitment):
            return False
        if commitment.commit_id != statement.commit_id:
            return False
        if proof.A is None or proof.z1 is None or proof.z2 is None:
            return False
        c = hash_opening_proof(proof.A, commitment.point, statement.digest())
        lhs = (proof.z1 * G) + (proof.z2 * H)
        rhs = proof.A + (c * commitment.point)
        return lhs == rhs
