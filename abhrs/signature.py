"""
Single-signer Schnorr signatures for CA-issued material.

CAs sign credentials and certificates with these; the chain validator
verifies them leaf → root.

    sign:    k ←$ Z_q,  R = k·G,  c = H(R, Y, payload),  z = k + c·x
    verify:  z·G  ==  R + c·Y
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .curve import Scalar, Point, G, TokenSource
from .hash import hash_certificate


@dataclass(frozen=True)
class SchnorrSignature:
    """Signature  (R, z)  over a byte payload."""

    R: Point
    z: Scalar

    @staticmethod
    def sign(
        secret: Scalar,
        payload: bytes,
        token_bytes: Optional[TokenSource] = None,
    ) -> SchnorrSignature:
        k = Scalar.random(token_bytes)
        R = k * G
        c = hash_certificate(R, secret * G, payload)
        return SchnorrSignature(R=R, z=k + c * secret)

    def verify(self, public: Point, payload: bytes) -> bool:
        c = hash_certificate(self.R, public, payload)
        return self.z * G == self.R + (c * public)

    def to_bytes(self) -> bytes:
        """Serialise to 65 bytes: compressed R (33) + z (32)."""
        return self.R.to_bytes() + self.z.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> SchnorrSignature:
        if len(data) != 65:
            raise ValueError(f"expected 65 bytes, got {len(data)}")
        return cls(R=Point.from_bytes(data[:33]), z=Scalar.from_bytes(data[33:65]))
