"""
High-level ABHRS-FS protocol orchestration.

``ABHRSProtocol`` ties the trust registry, credential issuer, chain
validator, ring builder, epoch key manager, signer, verifier and tuner
into one object.

Usage
-----
::

    from abhrs import ABHRSProtocol, Policy

    proto = ABHRSProtocol.setup()
    proto.register_ca("CA1")
    u1 = proto.enroll_user("u1", {"role": "doctor", "dept": "cardio"}, "CA1")
    cred = proto.issue_credential_for("u1")
    doctors = Policy.require("doctors", role="doctor")

    ring = proto.build_ring([u1.public_key])
    sigma = proto.sign("u1", cred, ring, "read_record_patient_001", doctors)
    assert proto.verify("read_record_patient_001", sigma, doctors)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .backend import Backend
from .chain import CertificateChain, chain_relation, explain_chain, issue_chain
from .commitment import EpochCommitment
from .config import Parameters, ParameterStore, ProtocolConfig
from .credentials import AttributeSchema, Credential, CredentialIssuer
from .curve import Scalar
from .epoch import EpochKeyManager, EpochSecret
from .errors import ParameterMismatch, ProofFailure, RingMismatch, ValidationFailure
from .ids import IdAllocator
from .randomness import RandomnessProvider, SeededRandomness, SystemRandomness
from .registry import CertificationAuthority, PublicKeyRecord, TrustRegistry, User
from .ring import Ring, build_ring
from .signer import SignatureTranscript, Signer
from .tuner import CoDesignTuner, Simulation, TuningResult, WorkloadItem
from .verifier import REASON_PARAMETERS, REASON_RING, Verifier

logger = logging.getLogger(__name__)

PolicyFn = Callable[[Mapping[str, Any]], bool]


class ABHRSProtocol:
    """
    End-to-end ABHRS-FS engine.

    Lifecycle:
    1. Setup — registry, backend, id allocator and randomness.
    2. Enroll — register CAs and users, issue credentials and chains.
    3. Sign — advance the signer's epoch and build Σ over a ring.
    4. Verify — attribute-oblivious check against the anchored CAs.
    5. Tune — co-design rounds publishing new θ snapshots.
    """

    def __init__(
        self,
        config: ProtocolConfig,
        randomness: RandomnessProvider,
        ids: Optional[IdAllocator] = None,
        schema: Optional[AttributeSchema] = None,
    ) -> None:
        errors = config.validate()
        if errors:
            raise ValueError("invalid configuration: " + "; ".join(errors))

        self.config = config
        self._rng = randomness
        self._ids = ids or IdAllocator()
        self.registry = TrustRegistry(config.trust_anchors, randomness.token_bytes)
        self.issuer = CredentialIssuer(self.registry, self._ids, schema, randomness)
        self.keys = EpochKeyManager(self.registry.users)
        self.backend = Backend.from_name(config.backend, self._ids, randomness)
        self.parameters_store = ParameterStore(config.parameters)
        self._signer = Signer(self.backend)
        self._credentials: Dict[Tuple[str, Tuple[Tuple[str, Any], ...]], Credential] = {}
        self._credentials_lock = threading.Lock()

    # ── factories ──────────────────────────────────────────────────────

    @classmethod
    def setup(
        cls,
        config: Optional[ProtocolConfig] = None,
        schema: Optional[AttributeSchema] = None,
    ) -> ABHRSProtocol:
        """
        Build an engine from ``config``.

        A config ``seed`` selects ``SeededRandomness``; otherwise the OS
        CSPRNG is used.
        """
        config = config or ProtocolConfig()
        if config.seed is not None:
            randomness: RandomnessProvider = SeededRandomness(config.seed)
        else:
            randomness = SystemRandomness()
        return cls(config, randomness, schema=schema)

    # ── trust registry & credentials ───────────────────────────────────

    def register_ca(self, ca_id: str, root_id: str = "ROOT1") -> CertificationAuthority:
        return self.registry.register_ca(ca_id, root_id)

    def enroll_user(
        self,
        user_id: str,
        attributes: Dict[str, Any],
        ca_id: str,
        initial_secret: Optional[bytes] = None,
    ) -> User:
        return self.registry.enroll_user(user_id, attributes, ca_id, initial_secret)

    def issue_credential(self, issuer_key: Scalar, attributes: Dict[str, Any]) -> Credential:
        return self.issuer.issue_credential(issuer_key, attributes)

    def issue_credential_for(self, user_id: str) -> Credential:
        """
        Credential over the user's attributes from the user's own CA.

        Issued once per (user, attribute set): later calls return the same
        credential until the user's attributes change.
        """
        user = self.registry.user(user_id)
        key = (user_id, tuple(sorted(user.attributes.items())))
        with self._credentials_lock:
            credential = self._credentials.get(key)
            if credential is None:
                ca = self.registry.ca(user.public_key.issuer)
                credential = self.issuer.issue_credential(ca.signing_key, user.attributes)
                self._credentials[key] = credential
        return credential

    def issue_chain(self, user_id: str) -> CertificateChain:
        return issue_chain(
            self.registry, self.registry.user(user_id), token_bytes=self._rng.token_bytes,
        )

    # ── chain validation ───────────────────────────────────────────────

    def validate(
        self,
        policy: PolicyFn,
        commitment: EpochCommitment,
        attributes: Mapping[str, Any],
        credential: Credential,
        chain: CertificateChain,
        claimed_secret: EpochSecret,
    ) -> bool:
        return self.explain_chain(
            policy, commitment, attributes, credential, chain, claimed_secret,
        ) is None

    def explain_chain(
        self,
        policy: PolicyFn,
        commitment: EpochCommitment,
        attributes: Mapping[str, Any],
        credential: Credential,
        chain: CertificateChain,
        claimed_secret: EpochSecret,
    ) -> Optional[str]:
        return explain_chain(
            self.registry.trust_anchor(), policy, commitment, attributes,
            credential, chain, claimed_secret,
        )

    def require_valid_chain(self, *args: Any) -> None:
        """Like ``validate`` but raises ``ValidationFailure`` with the reason."""
        reason = self.explain_chain(*args)
        if reason is not None:
            raise ValidationFailure(reason)

    # ── rings & signing ────────────────────────────────────────────────

    @property
    def parameters(self) -> Parameters:
        return self.parameters_store.current

    def build_ring(
        self,
        honest_keys: Iterable[PublicKeyRecord],
        parameters: Optional[Parameters] = None,
    ) -> Ring:
        return build_ring(
            parameters or self.parameters, honest_keys, self._ids, self._rng,
            with_points=self.backend.needs_ring_keys,
        )

    def sign(
        self,
        user_id: str,
        credential: Credential,
        ring: Ring,
        message: str,
        policy: PolicyFn,
        chain: Optional[CertificateChain] = None,
        parameters: Optional[Parameters] = None,
    ) -> SignatureTranscript:
        """
        Sign ``message`` in the user's next epoch, then advance the epoch.

        With ``chain`` the full chain predicate is the proven relation.
        """
        theta = parameters or self.parameters
        user = self.registry.user(user_id)
        ca = self.registry.ca(credential.issuer)
        relation = None
        if chain is not None:
            anchor = self.registry.trust_anchor()

            def relation(commitment):
                return chain_relation(anchor, policy, commitment, chain)

        with self.keys.hold(user_id):
            transcript = self._signer.sign_epoch(
                theta, ca.public_key, self.keys.current(user_id), user.attributes,
                credential, ring, message, policy,
                ring_key=user.ring_key, relation=relation,
            )
            nxt = self.keys.advance(user_id, theta)
        logger.debug("user %s signed; now at epoch %d", user_id, nxt.epoch)
        return transcript

    # ── verification ───────────────────────────────────────────────────

    def verifier(self) -> Verifier:
        return Verifier(self.backend, [ca.public_key for ca in self.registry.anchored_cas()])

    def verify(self, message: str, transcript: SignatureTranscript, policy: PolicyFn) -> bool:
        """
        Verify against the θ snapshot the transcript claims, provided this
        engine actually published that exact snapshot.
        """
        pinned = self._pinned_parameters(transcript)
        if pinned is None:
            return False
        return self.verifier().verify_signature(pinned, message, transcript, policy)

    def verify_with(
        self,
        parameters: Parameters,
        message: str,
        transcript: SignatureTranscript,
        policy: PolicyFn,
    ) -> bool:
        return self.verifier().verify_signature(parameters, message, transcript, policy)

    def require_valid_signature(
        self,
        message: str,
        transcript: SignatureTranscript,
        policy: PolicyFn,
    ) -> None:
        """Raise the matching protocol error if ``verify`` would reject."""
        pinned = self._pinned_parameters(transcript)
        if pinned is None:
            raise ParameterMismatch(
                f"unknown parameter snapshot v{transcript.parameters.version}"
            )
        reason = self.verifier().explain_signature(pinned, message, transcript, policy)
        if reason is None:
            return
        if reason == REASON_PARAMETERS:
            raise ParameterMismatch("signature parameter snapshot differs")
        if reason == REASON_RING:
            raise RingMismatch("ring signature does not match ring, message or commitment")
        raise ProofFailure(f"signature rejected: {reason}")

    def _pinned_parameters(self, transcript: SignatureTranscript) -> Optional[Parameters]:
        claimed = transcript.parameters
        known = self.parameters_store.by_version(claimed.version)
        if known is None or known != claimed:
            return None
        return known

    # ── tuning ─────────────────────────────────────────────────────────

    def simulation(self, user_id: str, credential: Credential) -> Simulation:
        """
        Signing simulation for the tuner: a ring around the user's key and
        a transcript from the user's current epoch, without advancing it.
        """
        user = self.registry.user(user_id)
        ca = self.registry.ca(credential.issuer)

        def simulate(theta: Parameters, item: WorkloadItem) -> SignatureTranscript:
            ring = self.build_ring([user.public_key], theta)
            return self._signer.sign_epoch(
                theta, ca.public_key, self.keys.current(user_id), user.attributes,
                credential, ring, item.message, item.policy, ring_key=user.ring_key,
            )
        return simulate

    def tune(
        self,
        user_id: str,
        credential: Credential,
        workload: Sequence[WorkloadItem],
        rounds: Optional[int] = None,
        cost_budget: Optional[float] = None,
    ) -> TuningResult:
        config = self.config.tuner
        if self.config.seed is not None:
            # seeded runs draw randomness in submission order
            config = replace(config, workers=1)
        tuner = CoDesignTuner(
            self.simulation(user_id, credential),
            config,
            store=self.parameters_store,
        )
        return tuner.run(self.parameters, workload, rounds, cost_budget)

    def __repr__(self) -> str:
        return (
            f"ABHRSProtocol(backend={self.backend.name}, "
            f"theta={self.parameters}, {self.registry})"
        )
