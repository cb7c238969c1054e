"""
Signing at epoch t.

    SK_t   = evolve_key(SK_{t-1}, θ)
    C_t    = Commit(SK_t)
    stmt   = (CA, policy id, C_t.id, m)
    wit    = (attributes, credential, SK_t)
    π      = Prove(stmt, wit)
    σ_R    = RingSign(R, m, C_t, π, θ)
    Σ      = (R, C_t, π, σ_R)

Only the public half of C_t enters the transcript.  θ is an immutable
snapshot for the whole call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .backend import Backend
from .commitment import EpochCommitment
from .config import Parameters
from .credentials import Credential
from .curve import Point, Scalar
from .epoch import EpochSecret, evolve_key
from .hash import encode_item, hash_transcript
from .policy import policy_id
from .proofs import Proof, Relation, Statement, Witness
from .ring import Ring
from .ring_signature import RingSignature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureTranscript:
    """Σ — the unit that is persisted and later verified."""

    ring: Ring
    commitment: EpochCommitment
    proof: Proof
    ring_signature: RingSignature

    @property
    def parameters(self) -> Parameters:
        return self.ring_signature.params

    def to_bytes(self) -> bytes:
        """Canonical encoding of the public fields."""
        return encode_item([
            list(self.ring.ids),
            self.commitment.public().to_bytes(),
            self.proof.to_bytes(),
            self.ring_signature.to_bytes(),
            self.parameters.to_dict(),
        ])

    def digest(self) -> bytes:
        return hash_transcript(self.to_bytes())


def ca_reference(ca_key: Point) -> str:
    return ca_key.to_bytes().hex()


def default_relation(
    policy: Callable[[Mapping[str, Any]], bool],
    commitment: EpochCommitment,
) -> Relation:
    """
    Credential binding, policy and key binding over the witness, i.e.
    the chain predicate minus the certificate walk.
    """
    def relation(statement: Statement, witness: Witness) -> bool:
        credential = witness.credential
        if not isinstance(credential, Credential):
            return False
        if dict(credential.attributes) != dict(witness.attributes):
            return False
        if ca_reference(credential.issuer_key) != statement.ca_ref:
            return False
        if not policy(witness.attributes):
            return False
        return commitment.binds(witness.secret)
    return relation


class Signer:
    """Composes commitment, proof and ring signature into a transcript."""

    def __init__(self, backend: Backend) -> None:
        self._backend = backend

    def sign_epoch(
        self,
        parameters: Parameters,
        ca_key: Point,
        prev_secret: EpochSecret,
        attributes: Mapping[str, Any],
        credential: Credential,
        ring: Ring,
        message: str,
        policy: Callable[[Mapping[str, Any]], bool],
        *,
        ring_key: Optional[Scalar] = None,
        relation: Optional[Callable[[EpochCommitment], Relation]] = None,
    ) -> SignatureTranscript:
        """
        Produce Σ over ``message`` for the epoch after ``prev_secret``.

        ``ring_key`` is the signer's ring secret, needed by real ring
        schemes.  ``relation`` builds the proven relation from the fresh
        commitment; by default it is ``default_relation``.

        Raises
        ------
        ProofFailure
            The witness does not satisfy the relation.
        RingMismatch
            The ring scheme cannot place the signer in ``ring``.
        """
        secret = evolve_key(prev_secret, parameters)
        commitment = self._backend.commitments.commit(secret)

        statement = Statement(
            ca_ref=ca_reference(ca_key),
            policy_id=policy_id(policy),
            commit_id=commitment.commit_id,
            message=message,
        )
        witness = Witness(attributes=attributes, credential=credential, secret=secret)

        rel = relation(commitment) if relation else default_relation(policy, commitment)
        proof = self._backend.proofs.prove(statement, witness, commitment, rel)

        ring_sig = self._backend.rings.sign(
            ring, message, commitment, proof, parameters, signing_key=ring_key,
        )
        logger.debug(
            "signed epoch %d: %s over ring %s (%d members)",
            secret.epoch, ring_sig.sig_id, ring.ring_id, len(ring),
        )
        return SignatureTranscript(
            ring=ring,
            commitment=commitment.public(),
            proof=proof,
            ring_signature=ring_sig,
        )
