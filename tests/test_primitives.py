from __future__ import annotations

from dataclasses import replace

import pytest

from abhrs import EpochSecret, IdAllocator
from abhrs.commitment import PedersenCommitmentScheme, SymbolicCommitmentScheme
from abhrs.curve import G, H, Point, Scalar
from abhrs.errors import ProofFailure
from abhrs.proofs import OpeningProofSystem, Statement, SymbolicProofSystem, Witness
from abhrs.randomness import SeededRandomness
from abhrs.signature import SchnorrSignature

SECRET = EpochSecret(epoch=1, key=b"epoch-one-secret")


def _always(statement, witness) -> bool:
    return True


def _never(statement, witness) -> bool:
    return False


def _statement(commit_id: str) -> Statement:
    return Statement(ca_ref="ab" * 33, policy_id="doctors", commit_id=commit_id, message="m")


def _witness() -> Witness:
    return Witness(attributes={"role": "doctor"}, credential=None, secret=SECRET)


# ── curve ───────────────────────────────────────────────────────────────

def test_generators_are_independent() -> None:
    assert G != H
    assert not H.is_inf()


def test_point_encoding_roundtrip() -> None:
    P = Scalar(42) * G
    assert Point.from_bytes(P.to_bytes()) == P


def test_scalar_arithmetic_matches_points() -> None:
    a, b = Scalar(7), Scalar(11)
    assert (a + b) * G == (a * G) + (b * G)
    assert (a - a).is_zero()


# ── Schnorr signatures ──────────────────────────────────────────────────

def test_schnorr_sign_and_verify() -> None:
    rng = SeededRandomness(3)
    sk = Scalar.random(rng.token_bytes)
    sig = SchnorrSignature.sign(sk, b"payload", rng.token_bytes)

    assert sig.verify(sk * G, b"payload")
    assert not sig.verify(sk * G, b"payload!")
    assert not sig.verify(Scalar(5) * G, b"payload")
    assert SchnorrSignature.from_bytes(sig.to_bytes()) == sig


def test_schnorr_from_bytes_rejects_wrong_length() -> None:
    with pytest.raises(ValueError):
        SchnorrSignature.from_bytes(b"\x00" * 64)


# ── commitments ─────────────────────────────────────────────────────────

def test_symbolic_commitment_binds_only_its_secret() -> None:
    c = SymbolicCommitmentScheme(IdAllocator()).commit(SECRET)

    assert c.binds(SECRET)
    assert not c.binds(EpochSecret(epoch=1, key=b"other"))
    assert not c.public().binds(SECRET)
    assert c.public().commit_id == c.commit_id


def test_pedersen_commitment_binds_and_hides() -> None:
    scheme = PedersenCommitmentScheme(IdAllocator(), SeededRandomness(4))
    a = scheme.commit(SECRET)
    b = scheme.commit(SECRET)

    assert a.binds(SECRET)
    assert not a.binds(EpochSecret(epoch=1, key=b"other"))
    assert a.point != b.point
    public = a.public()
    assert public.value is None and public.blinding is None
    assert public.point == a.point


# ── proofs ──────────────────────────────────────────────────────────────

def test_symbolic_proof_verifies_its_statement_only() -> None:
    system = SymbolicProofSystem()
    c = SymbolicCommitmentScheme(IdAllocator()).commit(SECRET)
    stmt = _statement(c.commit_id)
    proof = system.prove(stmt, _witness(), c, _always)

    assert system.verify(stmt, proof, c.public())
    assert not system.verify(replace(stmt, message="other"), proof, c.public())


def test_false_relation_yields_no_proof() -> None:
    c = SymbolicCommitmentScheme(IdAllocator()).commit(SECRET)
    with pytest.raises(ProofFailure):
        SymbolicProofSystem().prove(_statement(c.commit_id), _witness(), c, _never)


def test_raising_relation_yields_no_proof() -> None:
    def broken(statement, witness):
        raise KeyError("role")

    c = SymbolicCommitmentScheme(IdAllocator()).commit(SECRET)
    with pytest.raises(ProofFailure):
        SymbolicProofSystem().prove(_statement(c.commit_id), _witness(), c, broken)


def test_opening_proof_verifies_against_public_commitment() -> None:
    rng = SeededRandomness(5)
    c = PedersenCommitmentScheme(IdAllocator(), rng).commit(SECRET)
    system = OpeningProofSystem(rng)
    stmt = _statement(c.commit_id)
    proof = system.prove(stmt, _witness(), c, _always)

    assert system.verify(stmt, proof, c.public())
    assert not system.verify(replace(stmt, policy_id="nurses"), proof, c.public())
    assert not system.verify(stmt, replace(proof, z1=proof.z1 + Scalar(1)), c.public())


def test_opening_proof_needs_the_opening() -> None:
    c = PedersenCommitmentScheme(IdAllocator(), SeededRandomness(6)).commit(SECRET)
    with pytest.raises(ProofFailure):
        OpeningProofSystem().prove(_statement(c.commit_id), _witness(), c.public(), _always)


def test_opening_proof_rejects_other_commitment() -> None:
    scheme = PedersenCommitmentScheme(IdAllocator(), SeededRandomness(7))
    c1, c2 = scheme.commit(SECRET), scheme.commit(SECRET)
    system = OpeningProofSystem(SeededRandomness(8))
    stmt = _statement(c1.commit_id)
    proof = system.prove(stmt, _witness(), c1, _always)

    assert not system.verify(stmt, proof, c2.public())
