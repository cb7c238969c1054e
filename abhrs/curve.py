"""
secp256k1 group arithmetic for the real ABHRS backend.

Group operations are delegated to ``coincurve`` (libsecp256k1).  The
backend uses them for three things:

- Pedersen epoch commitments  C = x·G + r·H,
- Fiat-Shamir proofs of knowledge of a commitment opening,
- AOS ring signatures and CA certificate signatures.

The symbolic test backend never touches this module.

Install
-------
    pip install coincurve>=18.0.0
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Callable, Optional

from coincurve import PrivateKey as _SK, PublicKey as _PK

# ── secp256k1 constants ─────────────────────────────────────────────────
ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
SCALAR_BYTES = 32
COMPRESSED_BYTES = 33

TokenSource = Callable[[int], bytes]


# ── Scalar ──────────────────────────────────────────────────────────────
class Scalar:
    """Element of  Z_q  where *q* = ``ORDER``."""

    __slots__ = ("_v",)

    def __init__(self, value: int) -> None:
        self._v = value % ORDER

    @classmethod
    def random(cls, token_bytes: Optional[TokenSource] = None) -> Scalar:
        """
        Uniform in [1, q-1] via rejection sampling.

        ``token_bytes`` lets a seeded randomness provider stand in for
        ``secrets.token_bytes`` in reproducible tests.
        """
        source = token_bytes or secrets.token_bytes
        while True:
            c = int.from_bytes(source(SCALAR_BYTES), "big")
            if 0 < c < ORDER:
                return cls(c)

    @classmethod
    def from_bytes(cls, data: bytes) -> Scalar:
        if len(data) != SCALAR_BYTES:
            raise ValueError(f"need {SCALAR_BYTES} bytes, got {len(data)}")
        v = int.from_bytes(data, "big")
        if v >= ORDER:
            raise ValueError("scalar out of range")
        return cls(v)

    @classmethod
    def from_bytes_reduce(cls, data: bytes) -> Scalar:
        """Hash-output safe: reduce arbitrary length modulo *q*."""
        return cls(int.from_bytes(data, "big"))

    def to_bytes(self) -> bytes:
        return self._v.to_bytes(SCALAR_BYTES, "big")

    def is_zero(self) -> bool:
        return self._v == 0

    def __add__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return Scalar(self._v + o._v)

    def __sub__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return Scalar(self._v - o._v)

    def __mul__(self, o):
        if isinstance(o, Scalar):
            return Scalar(self._v * o._v)
        if isinstance(o, Point):
            return o._smul(self)
        return NotImplemented

    def __neg__(self) -> Scalar:
        return Scalar(-self._v)

    def __eq__(self, o: object) -> bool:
        if isinstance(o, Scalar):
            return self._v == o._v
        return False

    def __hash__(self) -> int:
        return hash(self._v)

    def __repr__(self) -> str:
        h = hex(self._v)
        return f"Scalar(0x{h[2:10]}…)" if len(h) > 14 else f"Scalar({h})"


# ── Point ───────────────────────────────────────────────────────────────
class Point:
    """
    Point on secp256k1.

    The identity is a flag rather than a ``coincurve.PublicKey``, which
    cannot represent it.
    """

    __slots__ = ("_pk", "_inf")

    def __init__(self, *, pk: Optional[_PK] = None, infinity: bool = False):
        self._pk: Optional[_PK] = pk
        self._inf: bool = infinity

    @classmethod
    def generator(cls) -> Point:
        return cls(pk=_SK(b"\x00" * 31 + b"\x01").public_key)

    @classmethod
    def generator_h(cls) -> Point:
        """
        Second generator *H* for Pedersen commitments.

        Try-and-increment hash-to-curve over a fixed label, so log_G(H)
        is unknown to everyone.
        """
        prefix = b"ABHRS/NUMS/generator_H/secp256k1/v1"
        for counter in range(256):
            data = prefix + counter.to_bytes(4, "big")
            x_int = int.from_bytes(hashlib.sha256(data).digest(), "big")
            if x_int == 0 or x_int >= FIELD_PRIME:
                continue
            y_sq = (pow(x_int, 3, FIELD_PRIME) + 7) % FIELD_PRIME
            if pow(y_sq, (FIELD_PRIME - 1) // 2, FIELD_PRIME) != 1:
                continue
            try:
                return cls(pk=_PK(b"\x02" + x_int.to_bytes(32, "big")))
            except ValueError:
                continue
        raise RuntimeError("failed to derive NUMS generator H")

    @classmethod
    def identity(cls) -> Point:
        return cls(infinity=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> Point:
        """Deserialise SEC 1 compressed (33 B) or uncompressed (65 B)."""
        if all(b == 0 for b in data):
            return cls.identity()
        return cls(pk=_PK(data))

    def to_bytes(self) -> bytes:
        if self._inf:
            return b"\x00" * COMPRESSED_BYTES
        return self._pk.format(compressed=True)  # type: ignore[union-attr]

    def is_inf(self) -> bool:
        return self._inf

    def _smul(self, s: Scalar) -> Point:
        if self._inf or s.is_zero():
            return Point.identity()
        return Point(pk=self._pk.multiply(s.to_bytes()))  # type: ignore[union-attr]

    def __neg__(self) -> Point:
        if self._inf:
            return self
        raw = bytearray(self._pk.format(compressed=True))  # type: ignore
        raw[0] ^= 0x01
        return Point(pk=_PK(bytes(raw)))

    def __add__(self, o: Point) -> Point:
        if not isinstance(o, Point):
            return NotImplemented
        if self._inf:
            return o
        if o._inf:
            return self
        if self._pk.format() == (-o)._pk.format():  # type: ignore
            return Point.identity()
        return Point(pk=_PK.combine_keys([self._pk, o._pk]))  # type: ignore

    def __rmul__(self, s) -> Point:
        if isinstance(s, Scalar):
            return self._smul(s)
        return NotImplemented

    def __eq__(self, o: object) -> bool:
        if not isinstance(o, Point):
            return False
        if self._inf or o._inf:
            return self._inf and o._inf
        return self._pk.format() == o._pk.format()  # type: ignore

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        if self._inf:
            return "Point(∞)"
        return f"Point(0x{self.to_bytes().hex()[2:18]}…)"


G = Point.generator()
H = Point.generator_h()
