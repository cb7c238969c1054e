"""
Attribute credential issuance.

A credential is a CA's Schnorr signature over an attribute snapshot.  It
is issued once per (user, attribute set), never modified, and later used
only as witness material inside proofs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .curve import Point, Scalar
from .errors import MalformedAttributes, UnauthorizedIssuer
from .hash import encode_item
from .ids import IdAllocator
from .randomness import RandomnessProvider, SystemRandomness
from .registry import TrustRegistry
from .signature import SchnorrSignature

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


@dataclass(frozen=True)
class Credential:
    """Issued attribute credential  σ_u."""

    cred_id: str
    issuer: str
    issuer_key: Point
    attributes: Mapping[str, Any]
    signature: SchnorrSignature = field(repr=False)

    def payload(self) -> bytes:
        return credential_payload(self.cred_id, self.issuer, self.attributes)

    def verify(self, public_key: Point) -> bool:
        """Check the issuing CA's signature under ``public_key``."""
        return self.issuer_key == public_key and self.signature.verify(
            public_key, self.payload(),
        )


def credential_payload(cred_id: str, issuer: str, attributes: Mapping[str, Any]) -> bytes:
    return encode_item([cred_id, issuer, dict(attributes)])


@dataclass(frozen=True)
class AttributeSchema:
    """
    Schema every attribute set must pass before issuance.

    Keys must be non-empty strings and values flat scalars.  ``required``
    keys must be present; when ``allowed`` is given no other key may
    appear.
    """

    required: FrozenSet[str] = frozenset()
    allowed: Optional[FrozenSet[str]] = None

    def check(self, attributes: Mapping[str, Any]) -> None:
        if not isinstance(attributes, Mapping):
            raise MalformedAttributes("attributes must be a mapping")
        if not attributes:
            raise MalformedAttributes("attribute set is empty")
        for key, value in attributes.items():
            if not isinstance(key, str) or not key:
                raise MalformedAttributes(f"invalid attribute name {key!r}")
            if not isinstance(value, _SCALAR_TYPES):
                raise MalformedAttributes(
                    f"attribute {key!r} has non-scalar value {type(value).__name__}"
                )
        missing = self.required - set(attributes)
        if missing:
            raise MalformedAttributes(f"missing attributes {sorted(missing)}")
        if self.allowed is not None:
            extra = set(attributes) - self.allowed
            if extra:
                raise MalformedAttributes(f"unexpected attributes {sorted(extra)}")


class CredentialIssuer:
    """Issues credentials on behalf of registered CAs."""

    def __init__(
        self,
        registry: TrustRegistry,
        ids: IdAllocator,
        schema: Optional[AttributeSchema] = None,
        randomness: Optional[RandomnessProvider] = None,
    ) -> None:
        self._registry = registry
        self._ids = ids
        self._schema = schema or AttributeSchema()
        self._rng = randomness or SystemRandomness()

    def issue_credential(
        self,
        issuer_key: Scalar,
        attributes: Dict[str, Any],
    ) -> Credential:
        """
        Issue a credential over ``attributes`` signed by ``issuer_key``.

        Raises
        ------
        UnauthorizedIssuer
            ``issuer_key`` is not the signing key of a registered CA.
        MalformedAttributes
            ``attributes`` fails the schema check.
        """
        ca = self._registry.ca_for_signing_key(issuer_key)
        if ca is None:
            raise UnauthorizedIssuer("issuer key does not belong to a registered CA")
        self._schema.check(attributes)

        snapshot = MappingProxyType(dict(attributes))
        cred_id = self._ids.next("CRED")
        sig = SchnorrSignature.sign(
            issuer_key,
            credential_payload(cred_id, ca.ca_id, snapshot),
            self._rng.token_bytes,
        )
        logger.debug("CA %s issued %s", ca.ca_id, cred_id)
        return Credential(
            cred_id=cred_id,
            issuer=ca.ca_id,
            issuer_key=ca.public_key,
            attributes=snapshot,
            signature=sig,
        )
