"""
Ring signatures over an ABHRS ring.

A ring signature binds the ring identity list, the message, the epoch
commitment, the proof outcome and the parameter snapshot in force at
signing time.  Verification recomputes each of these and rejects any
divergence.

Two backends implement the ``RingSignatureScheme`` capability:

- ``SymbolicRingScheme`` records the bound fields and a digest over
  them, so swapping any one field later is caught.  Test double only.
- ``SchnorrRingScheme`` is an Abe-Ohkubo-Suzuki ring signature on
  secp256k1.  For ring keys P_0 … P_{n-1} and signer s with P_s = x·G:

      α ←$ Z_q,       c_{s+1} = H(R, m, α·G)
      i = s+1 … s-1:  r_i ←$ Z_q,  c_{i+1} = H(R, m, r_i·G + c_i·P_i)
      r_s = α − c_s·x

  Signature: (c_0, r_0 … r_{n-1}).  Verification walks the ring once
  and checks that the challenge chain closes on c_0.

References
----------
- Abe, Ohkubo, Suzuki (2002). "1-out-of-n Signatures from a Variety of
  Keys."  ASIACRYPT 2002.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .commitment import EpochCommitment
from .config import Parameters
from .curve import Scalar, Point, G
from .errors import RingMismatch
from .hash import encode_item, hash_ring_challenge, hash_ring_message
from .ids import IdAllocator
from .proofs import Proof
from .randomness import RandomnessProvider, SystemRandomness
from .ring import Ring


@dataclass(frozen=True)
class RingSignature:
    """Fields bound at signing time, plus scheme-specific material."""

    sig_id: str
    ring_ids: Tuple[str, ...]
    message: str
    commit_id: str
    proof_ok: bool
    params: Parameters
    c0: Optional[Scalar] = None
    responses: Tuple[Scalar, ...] = ()
    binding: Optional[bytes] = None

    def to_bytes(self) -> bytes:
        return encode_item([
            self.sig_id, list(self.ring_ids), self.message, self.commit_id,
            self.proof_ok, self.params.to_dict(), self.c0, list(self.responses),
            self.binding,
        ])


def _recorded_fields_match(
    ring: Ring,
    message: str,
    commitment: EpochCommitment,
    signature: RingSignature,
    parameters: Parameters,
) -> bool:
    return (
        ring.ids == signature.ring_ids
        and message == signature.message
        and commitment.commit_id == signature.commit_id
        and parameters == signature.params
        and signature.proof_ok is True
    )


def bound_message(
    ring: Ring,
    message: str,
    commitment: EpochCommitment,
    proof: Proof,
    parameters: Parameters,
) -> bytes:
    """Digest of everything the ring signature commits to."""
    return hash_ring_message(
        list(ring.ids), message, commitment.public().to_bytes(),
        proof.to_bytes(), parameters.to_dict(),
    )


class RingSignatureScheme(ABC):
    """RingSign / RingVerify capability."""

    @abstractmethod
    def sign(
        self,
        ring: Ring,
        message: str,
        commitment: EpochCommitment,
        proof: Proof,
        parameters: Parameters,
        signing_key: Optional[Scalar] = None,
    ) -> RingSignature:
        ...

    @abstractmethod
    def verify(
        self,
        ring: Ring,
        message: str,
        commitment: EpochCommitment,
        proof: Proof,
        signature: RingSignature,
        parameters: Parameters,
    ) -> bool:
        ...


class SymbolicRingScheme(RingSignatureScheme):

    def __init__(self, ids: IdAllocator) -> None:
        self._ids = ids

    def sign(self, ring, message, commitment, proof, parameters, signing_key=None):
        return RingSignature(
            sig_id=self._ids.next("SIG"),
            ring_ids=ring.ids,
            message=message,
            commit_id=commitment.commit_id,
            proof_ok=proof.outcome,
            params=parameters,
            binding=bound_message(ring, message, commitment, proof, parameters),
        )

    def verify(self, ring, message, commitment, proof, signature, parameters):
        return (
            _recorded_fields_match(ring, message, commitment, signature, parameters)
            and signature.binding == bound_message(ring, message, commitment, proof, parameters)
        )


class SchnorrRingScheme(RingSignatureScheme):
    """AOS ring signature over the members' ring keys."""

    def __init__(
        self,
        ids: IdAllocator,
        randomness: Optional[RandomnessProvider] = None,
    ) -> None:
        self._ids = ids
        self._rng = randomness or SystemRandomness()

    def sign(self, ring, message, commitment, proof, parameters, signing_key=None):
        if signing_key is None:
            raise RingMismatch("ring signing needs the signer's ring key")
        keys = _ring_points(ring)
        if keys is None:
            raise RingMismatch("ring has members without a ring key")
        own = signing_key * G
        try:
            s = keys.index(own)
        except ValueError:
            raise RingMismatch("signer's key is not a member of the ring")

        n = len(keys)
        m = bound_message(ring, message, commitment, proof, parameters)
        digest = encode_item(keys)

        c: List[Optional[Scalar]] = [None] * n
        r: List[Optional[Scalar]] = [None] * n

        alpha = Scalar.random(self._rng.token_bytes)
        c[(s + 1) % n] = hash_ring_challenge(digest, m, alpha * G)
        i = (s + 1) % n
        while i != s:
            r[i] = Scalar.random(self._rng.token_bytes)
            L = (r[i] * G) + (c[i] * keys[i])
            c[(i + 1) % n] = hash_ring_challenge(digest, m, L)
            i = (i + 1) % n
        r[s] = alpha - c[s] * signing_key

        return RingSignature(
            sig_id=self._ids.next("SIG"),
            ring_ids=ring.ids,
            message=message,
            commit_id=commitment.commit_id,
            proof_ok=proof.outcome,
            params=parameters,
            c0=c[0],
            responses=tuple(r),  # type: ignore[arg-type]
        )

    def verify(self, ring, message, commitment, proof, signature, parameters):
        if not _recorded_fields_match(ring, message, commitment, signature, parameters):
            return False
        keys = _ring_points(ring)
        if keys is None or signature.c0 is None:
            return False
        if len(signature.responses) != len(keys):
            return False

        m = bound_message(ring, message, commitment, proof, parameters)
        digest = encode_item(keys)
        c = signature.c0
        for P, r_i in zip(keys, signature.responses):
            c = hash_ring_challenge(digest, m, (r_i * G) + (c * P))
        return c == signature.c0


def _ring_points(ring: Ring) -> Optional[List[Point]]:
    points = [m.point for m in ring.members]
    if not points or any(p is None for p in points):
        return None
    return points  # type: ignore[return-value]
