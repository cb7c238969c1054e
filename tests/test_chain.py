from __future__ import annotations

from dataclasses import replace

import pytest

from abhrs import CertificateChain, Policy, evolve_key, explain_chain, validate_chain
from abhrs.epoch import EpochSecret

from conftest import DOCTOR_ATTRS


@pytest.fixture
def material(proto):
    """Everything validate_chain needs for u1 under CA1."""
    user = proto.registry.user("u1")
    secret = evolve_key(user.epoch_secret)
    return {
        "proto": proto,
        "anchor": proto.registry.trust_anchor(),
        "commitment": proto.backend.commitments.commit(secret),
        "credential": proto.issue_credential_for("u1"),
        "chain": proto.issue_chain("u1"),
        "secret": secret,
    }


def _explain(m, policy, **overrides):
    args = dict(
        anchor=m["anchor"],
        policy=policy,
        commitment=m["commitment"],
        attributes=DOCTOR_ATTRS,
        credential=m["credential"],
        chain=m["chain"],
        claimed_secret=m["secret"],
    )
    args.update(overrides)
    return explain_chain(**args)


def test_valid_chain_passes(material, doctors) -> None:
    m = material
    assert validate_chain(
        m["anchor"], doctors, m["commitment"], DOCTOR_ATTRS,
        m["credential"], m["chain"], m["secret"],
    )
    assert m["proto"].validate(
        doctors, m["commitment"], DOCTOR_ATTRS, m["credential"], m["chain"], m["secret"],
    )


def test_chain_runs_leaf_to_root(material) -> None:
    kinds = [c.kind for c in material["chain"]]
    assert kinds == ["user", "ca", "root"]


def test_attribute_mismatch_fails_credential_binding(material, doctors) -> None:
    attrs = dict(DOCTOR_ATTRS, dept="oncology")
    assert _explain(material, doctors, attributes=attrs) == "credential_binding"


def test_credential_from_other_ca_fails_credential_binding(material, doctors) -> None:
    proto = material["proto"]
    other = proto.issue_credential(proto.registry.ca("CA2").signing_key, DOCTOR_ATTRS)
    assert _explain(material, doctors, credential=other) == "credential_binding"


def test_invalid_leaf_fails_chain_signature(material, doctors) -> None:
    leaf, ca_cert, root = material["chain"].certificates
    chain = CertificateChain((replace(leaf, valid=False), ca_cert, root))
    assert _explain(material, doctors, chain=chain) == "chain_signature"


def test_resigned_subject_fails_chain_signature(material, doctors) -> None:
    leaf, ca_cert, root = material["chain"].certificates
    forged = replace(leaf, subject=dict(leaf.subject, user="mallory"))
    chain = CertificateChain((forged, ca_cert, root))
    assert _explain(material, doctors, chain=chain) == "chain_signature"


def test_unanchored_root_fails_anchor(material, doctors) -> None:
    proto = material["proto"]
    proto.register_ca("CA9", "ROOT2")
    user = proto.enroll_user("u9", DOCTOR_ATTRS, "CA9", initial_secret=b"sk_u9")
    secret = evolve_key(user.epoch_secret)
    reason = _explain(
        material,
        doctors,
        anchor=proto.registry.trust_anchor(),
        commitment=proto.backend.commitments.commit(secret),
        credential=proto.issue_credential_for("u9"),
        chain=proto.issue_chain("u9"),
        claimed_secret=secret,
    )
    assert reason == "anchor"


def test_policy_rejection(material) -> None:
    nurses = Policy.require("nurses", role="nurse")
    assert _explain(material, nurses) == "policy"


def test_wrong_claimed_secret_fails_key_binding(material, doctors) -> None:
    wrong = EpochSecret(epoch=1, key=b"not-the-epoch-secret")
    assert _explain(material, doctors, claimed_secret=wrong) == "key_binding"


def test_public_commitment_cannot_prove_key_binding(material, doctors) -> None:
    public = material["commitment"].public()
    assert _explain(material, doctors, commitment=public) == "key_binding"


def test_steps_short_circuit_in_order(material) -> None:
    nurses = Policy.require("nurses", role="nurse")
    wrong = EpochSecret(epoch=1, key=b"x")
    attrs = {"role": "nurse"}
    assert _explain(material, nurses, attributes=attrs, claimed_secret=wrong) == "credential_binding"


@pytest.mark.parametrize("chain", [CertificateChain(()), None, "garbage"])
def test_malformed_chain_is_rejected_without_raising(material, doctors, chain) -> None:
    assert _explain(material, doctors, chain=chain) == "malformed_chain"
    m = material
    assert not validate_chain(
        m["anchor"], doctors, m["commitment"], DOCTOR_ATTRS,
        m["credential"], chain, m["secret"],
    )


def test_raising_policy_is_a_rejection(material) -> None:
    def explode(attrs):
        raise KeyError("clearance")
    assert _explain(material, explode) == "malformed_chain"
