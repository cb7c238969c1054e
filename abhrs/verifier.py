"""
Attribute-oblivious verification of ABHRS-FS transcripts.

The verifier rebuilds the public statement from transcript fields only
(commitment id, message) plus a candidate CA reference, and accepts if the
proof verifies for *any* CA in the trust-anchor set.  No CA is fixed in
advance.

Checks, in order:

1. commitment is well formed (non-empty id);
2. the proof verifies against a reconstructed statement;
3. the ring signature's parameter snapshot equals the θ supplied;
4. the ring signature verifies over (ring, message, commitment, proof).

Verification never reads secret material and never raises.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from .backend import Backend
from .config import Parameters
from .curve import Point
from .policy import policy_id
from .proofs import Statement
from .signer import SignatureTranscript, ca_reference

logger = logging.getLogger(__name__)

REASON_MALFORMED = "malformed"
REASON_COMMITMENT = "commitment"
REASON_PROOF = "proof"
REASON_PARAMETERS = "parameters"
REASON_RING = "ring"


class Verifier:
    """
    Verifies transcripts against a set of candidate CA public keys.

    Parameters
    ----------
    backend : Backend
        Must match the backend the transcripts were produced with.
    ca_keys : iterable of Point
        Public keys of the CAs under the trust anchors.
    """

    def __init__(self, backend: Backend, ca_keys: Iterable[Point]) -> None:
        self._backend = backend
        self._ca_refs: Tuple[str, ...] = tuple(ca_reference(k) for k in ca_keys)

    def explain_signature(
        self,
        parameters: Parameters,
        message: str,
        transcript: SignatureTranscript,
        policy: Callable[[Mapping[str, Any]], bool],
    ) -> Optional[str]:
        """Reason code of the first failing check, or ``None``."""
        try:
            commitment = transcript.commitment
            if not commitment.is_well_formed():
                return REASON_COMMITMENT

            pid = policy_id(policy)
            proof_ok = any(
                self._backend.proofs.verify(
                    Statement(
                        ca_ref=ref,
                        policy_id=pid,
                        commit_id=commitment.commit_id,
                        message=message,
                    ),
                    transcript.proof,
                    commitment,
                )
                for ref in self._ca_refs
            )
            if not proof_ok:
                return REASON_PROOF

            if transcript.ring_signature.params != parameters:
                return REASON_PARAMETERS

            if not self._backend.rings.verify(
                transcript.ring, message, commitment, transcript.proof,
                transcript.ring_signature, parameters,
            ):
                return REASON_RING
        except Exception as exc:
            logger.debug("verification aborted: %s", exc)
            return REASON_MALFORMED
        return None

    def verify_signature(
        self,
        parameters: Parameters,
        message: str,
        transcript: SignatureTranscript,
        policy: Callable[[Mapping[str, Any]], bool],
    ) -> bool:
        reason = self.explain_signature(parameters, message, transcript, policy)
        if reason is not None:
            logger.debug("signature rejected: %s", reason)
        return reason is None
