"""
Certificate chains and the embedded chain-validation predicate.

A chain runs leaf → root:

    [ user certificate   (signed by the CA),
      CA certificate     (signed by the root authority),
      root certificate   (self-signed trust anchor) ]

``validate_chain`` is the relation a real deployment proves inside the
zero-knowledge proof, so it must stay a pure function of its explicit
arguments.  Steps run in a fixed order and the first failure rejects:

1. credential binding — the leaf's CA key is registered, the credential
   was signed by that CA, and its attribute snapshot equals the supplied
   attributes exactly;
2. chain of signatures — every non-root certificate is valid and its
   signature verifies under the next certificate's subject key;
3. anchor — the root certificate's id (and key) is in the trust-anchor set;
4. policy — the policy predicate holds over the attributes;
5. key binding — the claimed epoch secret opens the commitment.

``explain_chain`` returns the failing step's reason code, or ``None``.
Neither function raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple

from .commitment import EpochCommitment
from .credentials import Credential
from .curve import Point, TokenSource
from .epoch import EpochSecret
from .hash import encode_item
from .registry import TrustAnchor, TrustRegistry, User
from .signature import SchnorrSignature

logger = logging.getLogger(__name__)

REASON_MALFORMED = "malformed_chain"
REASON_CREDENTIAL = "credential_binding"
REASON_SIGNATURE = "chain_signature"
REASON_ANCHOR = "anchor"
REASON_POLICY = "policy"
REASON_KEY = "key_binding"


@dataclass(frozen=True)
class Certificate:
    """
    One link of a chain.

    ``issuer`` names the signing authority; ``subject`` is the signed
    payload; ``subject_key`` is the key the next-lower certificate must
    verify under (``None`` for user certificates).
    """

    cert_id: str
    kind: str                          # "user" | "ca" | "root"
    issuer: str
    subject: Mapping[str, Any]
    subject_key: Optional[Point]
    valid: bool = True
    signature: Optional[SchnorrSignature] = field(default=None, repr=False)

    def payload(self) -> bytes:
        return encode_item([
            self.cert_id, self.kind, self.issuer, dict(self.subject),
            self.subject_key, self.valid,
        ])

    def signed(self, signing_key, token_bytes: Optional[TokenSource] = None) -> Certificate:
        sig = SchnorrSignature.sign(signing_key, self.payload(), token_bytes)
        return Certificate(
            cert_id=self.cert_id, kind=self.kind, issuer=self.issuer,
            subject=self.subject, subject_key=self.subject_key,
            valid=self.valid, signature=sig,
        )

    def verifies_under(self, public_key: Optional[Point]) -> bool:
        if public_key is None or self.signature is None:
            return False
        return self.signature.verify(public_key, self.payload())


@dataclass(frozen=True)
class CertificateChain:
    certificates: Tuple[Certificate, ...]

    @property
    def leaf(self) -> Certificate:
        return self.certificates[0]

    @property
    def root(self) -> Certificate:
        return self.certificates[-1]

    def __len__(self) -> int:
        return len(self.certificates)

    def __iter__(self):
        return iter(self.certificates)


def issue_chain(
    registry: TrustRegistry,
    user: User,
    ca_id: Optional[str] = None,
    token_bytes: Optional[TokenSource] = None,
) -> CertificateChain:
    """Build the user → CA → root chain for ``user`` under ``ca_id``."""
    ca = registry.ca(ca_id or user.public_key.issuer)
    root = registry.root(ca.root_id)

    leaf = Certificate(
        cert_id=f"cert_{user.user_id}_{ca.ca_id}",
        kind="user",
        issuer=ca.ca_id,
        subject={
            "user": user.user_id,
            "pk_id": user.public_key.pk_id,
            "ca_key": ca.public_key_ref,
        },
        subject_key=None,
    ).signed(ca.signing_key, token_bytes)
    ca_cert = Certificate(
        cert_id=f"cert_{ca.ca_id}",
        kind="ca",
        issuer=root.root_id,
        subject={"ca": ca.ca_id, "root_id": root.root_id},
        subject_key=ca.public_key,
    ).signed(root.signing_key, token_bytes)
    root_cert = Certificate(
        cert_id=f"cert_{root.root_id}",
        kind="root",
        issuer=root.root_id,
        subject={"root_id": root.root_id},
        subject_key=root.public_key,
    ).signed(root.signing_key, token_bytes)
    return CertificateChain(certificates=(leaf, ca_cert, root_cert))


# ── validation steps ────────────────────────────────────────────────────

def _credential_binding(
    anchor: TrustAnchor,
    attributes: Mapping[str, Any],
    credential: Credential,
    chain: CertificateChain,
) -> bool:
    if len(chain) < 2:
        return False
    ca_key = chain.certificates[1].subject_key
    if ca_key is None or ca_key not in anchor.ca_keys:
        return False
    if chain.leaf.subject.get("ca_key") != ca_key.to_bytes().hex():
        return False
    if not credential.verify(ca_key):
        return False
    return dict(credential.attributes) == dict(attributes)


def _chain_signatures(chain: CertificateChain) -> bool:
    certs = chain.certificates
    for cert, issuer in zip(certs, certs[1:]):
        if not cert.valid:
            return False
        if not cert.verifies_under(issuer.subject_key):
            return False
    return chain.root.valid


def _anchor(anchor: TrustAnchor, chain: CertificateChain) -> bool:
    root = chain.root
    root_id = root.subject.get("root_id")
    if root_id not in anchor.roots:
        return False
    return root.subject_key == anchor.roots[root_id]


def explain_chain(
    anchor: TrustAnchor,
    policy: Callable[[Mapping[str, Any]], bool],
    commitment: EpochCommitment,
    attributes: Mapping[str, Any],
    credential: Credential,
    chain: CertificateChain,
    claimed_secret: EpochSecret,
) -> Optional[str]:
    """Reason code of the first failing step, or ``None`` if all pass."""
    try:
        if not chain.certificates:
            return REASON_MALFORMED
        if not _credential_binding(anchor, attributes, credential, chain):
            return REASON_CREDENTIAL
        if not _chain_signatures(chain):
            return REASON_SIGNATURE
        if not _anchor(anchor, chain):
            return REASON_ANCHOR
        if not policy(attributes):
            return REASON_POLICY
        if not commitment.binds(claimed_secret):
            return REASON_KEY
    except Exception as exc:
        logger.debug("chain validation aborted: %s", exc)
        return REASON_MALFORMED
    return None


def validate_chain(
    anchor: TrustAnchor,
    policy: Callable[[Mapping[str, Any]], bool],
    commitment: EpochCommitment,
    attributes: Mapping[str, Any],
    credential: Credential,
    chain: CertificateChain,
    claimed_secret: EpochSecret,
) -> bool:
    """True iff every validation step passes.  Total: never raises."""
    reason = explain_chain(
        anchor, policy, commitment, attributes, credential, chain, claimed_secret,
    )
    if reason is not None:
        logger.debug("chain rejected: %s", reason)
    return reason is None


def chain_relation(
    anchor: TrustAnchor,
    policy: Callable[[Mapping[str, Any]], bool],
    commitment: EpochCommitment,
    chain: CertificateChain,
) -> Callable[[Any, Any], bool]:
    """The full chain predicate as a proof relation over (statement, witness)."""
    def relation(statement, witness) -> bool:
        return validate_chain(
            anchor, policy, commitment, witness.attributes,
            witness.credential, chain, witness.secret,
        )
    return relation
