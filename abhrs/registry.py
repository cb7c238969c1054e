"""
Trust registry: root authorities, certification authorities and users.

Model
-----
- A **root authority** owns a trust-anchor id (e.g. ``"ROOT1"``) and the
  key that certifies CAs.
- A **certification authority** is registered under one root.  It holds a
  signing key (used to issue credentials and user certificates) and the
  matching public key.  CAs are immutable after registration.
- A **user** carries an attribute map, a public-key record naming the
  issuing CA, the ring key that places them in anonymity sets, and the
  current epoch secret (replaced on every epoch advance).

The trust-anchor set is the registry's notion of which roots are trusted;
validators and verifiers only ever read it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .curve import Scalar, Point, G, TokenSource
from .epoch import EpochSecret

logger = logging.getLogger(__name__)

DECOY_ISSUER = "Decoy"


@dataclass(frozen=True)
class RootAuthority:
    root_id: str
    signing_key: Scalar = field(repr=False)
    public_key: Point


@dataclass(frozen=True)
class CertificationAuthority:
    """A registered CA.  ``public_key_ref`` names it inside statements."""

    ca_id: str
    signing_key: Scalar = field(repr=False)
    public_key: Point
    root_id: str

    @property
    def public_key_ref(self) -> str:
        return self.public_key.to_bytes().hex()


@dataclass(frozen=True)
class PublicKeyRecord:
    """
    A ring member.

    Honest records name their owner and issuing CA; decoys have no owner
    and carry the ``"Decoy"`` issuer tag.  ``point`` is the ring key used
    by the secp256k1 ring scheme and may be ``None`` under the symbolic
    backend.
    """

    pk_id: str
    owner: Optional[str]
    issuer: str
    point: Optional[Point] = None

    @property
    def is_decoy(self) -> bool:
        return self.issuer == DECOY_ISSUER


@dataclass(frozen=True)
class TrustAnchor:
    """
    Trusted roots (id → public key) and the public keys of registered CAs.

    Everything chain validation may consult; it never reads the registry.
    """

    roots: Mapping[str, Point]
    ca_keys: FrozenSet[Point] = frozenset()

    @property
    def root_ids(self) -> FrozenSet[str]:
        return frozenset(self.roots)


@dataclass
class User:
    user_id: str
    attributes: Dict[str, Any]
    public_key: PublicKeyRecord
    ring_key: Scalar = field(repr=False)
    epoch_secret: EpochSecret = field(repr=False)


class TrustRegistry:
    """
    Holds roots, CAs and users, plus the trusted anchor set.

    Parameters
    ----------
    trust_anchors : iterable of str
        Root ids accepted by chain validation and verification.
    token_bytes : callable, optional
        Randomness for key generation; defaults to the OS CSPRNG.
    """

    def __init__(
        self,
        trust_anchors: Iterable[str] = ("ROOT1",),
        token_bytes: Optional[TokenSource] = None,
    ) -> None:
        self._anchors: FrozenSet[str] = frozenset(trust_anchors)
        self._token_bytes = token_bytes
        self._roots: Dict[str, RootAuthority] = {}
        self._cas: Dict[str, CertificationAuthority] = {}
        self.users: Dict[str, User] = {}

    # ── roots and CAs ──────────────────────────────────────────────────

    def register_root(self, root_id: str) -> RootAuthority:
        if root_id in self._roots:
            raise ValueError(f"root {root_id} already registered")
        sk = Scalar.random(self._token_bytes)
        root = RootAuthority(root_id=root_id, signing_key=sk, public_key=sk * G)
        self._roots[root_id] = root
        logger.debug("registered root %s (anchored=%s)", root_id, root_id in self._anchors)
        return root

    def register_ca(self, ca_id: str, root_id: str = "ROOT1") -> CertificationAuthority:
        """Create a CA under ``root_id``, registering the root if needed."""
        if ca_id in self._cas:
            raise ValueError(f"CA {ca_id} already registered")
        if root_id not in self._roots:
            self.register_root(root_id)
        sk = Scalar.random(self._token_bytes)
        ca = CertificationAuthority(
            ca_id=ca_id, signing_key=sk, public_key=sk * G, root_id=root_id,
        )
        self._cas[ca_id] = ca
        logger.debug("registered CA %s under root %s", ca_id, root_id)
        return ca

    def root(self, root_id: str) -> RootAuthority:
        try:
            return self._roots[root_id]
        except KeyError:
            raise ValueError(f"unknown root {root_id}")

    def ca(self, ca_id: str) -> CertificationAuthority:
        try:
            return self._cas[ca_id]
        except KeyError:
            raise ValueError(f"unknown CA {ca_id}")

    def ca_for_signing_key(self, signing_key: Scalar) -> Optional[CertificationAuthority]:
        for ca in self._cas.values():
            if ca.signing_key == signing_key:
                return ca
        return None

    def ca_for_public_key(self, public_key: Point) -> Optional[CertificationAuthority]:
        for ca in self._cas.values():
            if ca.public_key == public_key:
                return ca
        return None

    def is_registered(self, public_key: Point) -> bool:
        return self.ca_for_public_key(public_key) is not None

    @property
    def trust_anchors(self) -> FrozenSet[str]:
        return self._anchors

    def anchored_cas(self) -> List[CertificationAuthority]:
        """CAs whose root is in the trust-anchor set, in registration order."""
        return [ca for ca in self._cas.values() if ca.root_id in self._anchors]

    def registered_keys(self) -> FrozenSet[Point]:
        return frozenset(ca.public_key for ca in self._cas.values())

    def trust_anchor(self) -> TrustAnchor:
        """Public snapshot handed to the chain validator."""
        return TrustAnchor(
            roots=MappingProxyType({
                rid: self._roots[rid].public_key
                for rid in self._anchors if rid in self._roots
            }),
            ca_keys=self.registered_keys(),
        )

    # ── users ──────────────────────────────────────────────────────────

    def enroll_user(
        self,
        user_id: str,
        attributes: Dict[str, Any],
        ca_id: str,
        initial_secret: Optional[bytes] = None,
    ) -> User:
        """
        Enroll a user under ``ca_id`` with epoch-0 secret ``initial_secret``
        (fresh random bytes when omitted).
        """
        if user_id in self.users:
            raise ValueError(f"user {user_id} already enrolled")
        self.ca(ca_id)
        ring_key = Scalar.random(self._token_bytes)
        if initial_secret is None:
            initial_secret = Scalar.random(self._token_bytes).to_bytes()
        user = User(
            user_id=user_id,
            attributes=dict(attributes),
            public_key=PublicKeyRecord(
                pk_id=f"pk_{user_id}",
                owner=user_id,
                issuer=ca_id,
                point=ring_key * G,
            ),
            ring_key=ring_key,
            epoch_secret=EpochSecret.initial(initial_secret),
        )
        self.users[user_id] = user
        logger.debug("enrolled user %s under CA %s", user_id, ca_id)
        return user

    def user(self, user_id: str) -> User:
        try:
            return self.users[user_id]
        except KeyError:
            raise ValueError(f"unknown user {user_id}")

    def __repr__(self) -> str:
        return (
            f"TrustRegistry(anchors={sorted(self._anchors)}, "
            f"cas={sorted(self._cas)}, users={len(self.users)})"
        )
