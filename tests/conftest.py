"""Shared fixtures: a seeded engine per backend with the sample CAs and users."""

from __future__ import annotations

import pytest

from abhrs import ABHRSProtocol, Policy, ProtocolConfig

DOCTOR_ATTRS = {"role": "doctor", "dept": "cardio"}
NURSE_ATTRS = {"role": "nurse", "dept": "general"}
ADMIN_ATTRS = {"role": "admin", "dept": "it"}


def _populate(proto: ABHRSProtocol) -> ABHRSProtocol:
    proto.register_ca("CA1", "ROOT1")
    proto.register_ca("CA2", "ROOT1")
    proto.enroll_user("u1", DOCTOR_ATTRS, "CA1", initial_secret=b"sk_u1_epoch0")
    proto.enroll_user("u2", NURSE_ATTRS, "CA1", initial_secret=b"sk_u2_epoch0")
    proto.enroll_user("u3", ADMIN_ATTRS, "CA2", initial_secret=b"sk_u3_epoch0")
    return proto


@pytest.fixture
def symbolic() -> ABHRSProtocol:
    return _populate(ABHRSProtocol.setup(ProtocolConfig.for_tests(seed=123)))


@pytest.fixture
def real() -> ABHRSProtocol:
    return _populate(
        ABHRSProtocol.setup(ProtocolConfig.for_tests(seed=123, backend="secp256k1"))
    )


@pytest.fixture(params=["symbolic", "secp256k1"])
def proto(request) -> ABHRSProtocol:
    return _populate(
        ABHRSProtocol.setup(ProtocolConfig.for_tests(seed=7, backend=request.param))
    )


@pytest.fixture
def doctors() -> Policy:
    return Policy.require("doctors", role="doctor")
