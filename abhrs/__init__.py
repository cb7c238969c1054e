"""
ABHRS-FS: Attribute-Based Hiding Ring Signatures with Forward Security.

Protocol orchestration combining:

- **PKI trust chains** — CA-issued attribute credentials and
  user → CA → root certificate chains checked by a pure predicate
- **Ring-Indistinguishable Padding** — decoy-padded, shuffled rings
- **Forward-secure epoch keys** — one-way HMAC ratchet per user
- **Adversarial co-design** — a bounded feedback loop tuning ring size
  against a leakage/cost trade-off

Commitments, proofs and ring signatures are pluggable capabilities with a
symbolic test double and a secp256k1 backend (Pedersen commitments,
opening proofs, AOS ring signatures).

Quick start
-----------
::

    from abhrs import ABHRSProtocol, Policy, ProtocolConfig

    proto = ABHRSProtocol.setup(ProtocolConfig())
    proto.register_ca("CA1")
    u1 = proto.enroll_user("u1", {"role": "doctor", "dept": "cardio"}, "CA1")
    cred = proto.issue_credential_for("u1")
    doctors = Policy.require("doctors", role="doctor")

    ring = proto.build_ring([u1.public_key])
    sigma = proto.sign("u1", cred, ring, "read_record_patient_001", doctors)
    assert proto.verify("read_record_patient_001", sigma, doctors)
"""

__version__ = "0.1.0"

# ── configuration ───────────────────────────────────────────────────────
from .config import (
    Parameters,
    ParameterStore,
    LeakageWeights,
    TunerConfig,
    LogConfig,
    ProtocolConfig,
    configure_logging,
)

# ── errors ──────────────────────────────────────────────────────────────
from .errors import (
    ABHRSError,
    UnauthorizedIssuer,
    MalformedAttributes,
    ValidationFailure,
    ProofFailure,
    RingMismatch,
    ParameterMismatch,
)

# ── infrastructure ──────────────────────────────────────────────────────
from .ids import IdAllocator
from .randomness import RandomnessProvider, SystemRandomness, SeededRandomness

# ── trust registry & credentials ────────────────────────────────────────
from .registry import (
    TrustRegistry,
    TrustAnchor,
    RootAuthority,
    CertificationAuthority,
    PublicKeyRecord,
    User,
)
from .credentials import Credential, CredentialIssuer, AttributeSchema
from .policy import Policy
from .chain import (
    Certificate,
    CertificateChain,
    issue_chain,
    validate_chain,
    explain_chain,
)

# ── rings & epochs ──────────────────────────────────────────────────────
from .ring import Ring, build_ring
from .epoch import EpochSecret, EpochKeyManager, evolve_key

# ── capabilities ────────────────────────────────────────────────────────
from .commitment import (
    EpochCommitment,
    CommitmentScheme,
    SymbolicCommitmentScheme,
    PedersenCommitmentScheme,
)
from .proofs import Statement, Witness, Proof, ProofSystem
from .ring_signature import RingSignature, RingSignatureScheme
from .backend import Backend

# ── signing, verification, tuning ───────────────────────────────────────
from .signer import Signer, SignatureTranscript
from .verifier import Verifier
from .tuner import (
    WorkloadItem,
    workload_from,
    LeakageModel,
    CostModel,
    UpdateRule,
    HillClimbRule,
    RingSizeLeakage,
    RingSizeCost,
    CoDesignTuner,
    TuningResult,
    RoundReport,
    run_codesign_round,
)

# ── protocol ────────────────────────────────────────────────────────────
from .protocol import ABHRSProtocol

__all__ = [
    # version
    "__version__",
    # configuration
    "Parameters", "ParameterStore", "LeakageWeights", "TunerConfig",
    "LogConfig", "ProtocolConfig", "configure_logging",
    # errors
    "ABHRSError", "UnauthorizedIssuer", "MalformedAttributes",
    "ValidationFailure", "ProofFailure", "RingMismatch", "ParameterMismatch",
    # infrastructure
    "IdAllocator", "RandomnessProvider", "SystemRandomness", "SeededRandomness",
    # registry & credentials
    "TrustRegistry", "TrustAnchor", "RootAuthority", "CertificationAuthority",
    "PublicKeyRecord", "User", "Credential", "CredentialIssuer",
    "AttributeSchema", "Policy",
    "Certificate", "CertificateChain", "issue_chain", "validate_chain",
    "explain_chain",
    # rings & epochs
    "Ring", "build_ring", "EpochSecret", "EpochKeyManager", "evolve_key",
    # capabilities
    "EpochCommitment", "CommitmentScheme", "SymbolicCommitmentScheme",
    "PedersenCommitmentScheme", "Statement", "Witness", "Proof",
    "ProofSystem", "RingSignature", "RingSignatureScheme", "Backend",
    # signing, verification, tuning
    "Signer", "SignatureTranscript", "Verifier",
    "WorkloadItem", "workload_from", "LeakageModel", "CostModel",
    "UpdateRule", "HillClimbRule", "RingSizeLeakage", "RingSizeCost",
    "CoDesignTuner", "TuningResult", "RoundReport", "run_codesign_round",
    # protocol
    "ABHRSProtocol",
]
