"""
Domain-separated hash functions for ABHRS.

Every hash call carries a unique domain tag so outputs for different
protocol roles (epoch ratchet, commitment scalar, proof challenge, ring
challenge, certificate challenge) are independent even on identical
input.  Convention follows BIP-340 tagged hashes:

    H_tag(x) = SHA-256( SHA-256(tag) ‖ SHA-256(tag) ‖ x )
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

from .curve import Scalar, Point, SCALAR_BYTES


# ── domain tags ─────────────────────────────────────────────────────────
_TAG_EPOCH      = b"ABHRS/v1/epoch_ratchet"
_TAG_SECRET     = b"ABHRS/v1/epoch_secret_scalar"
_TAG_STATEMENT  = b"ABHRS/v1/statement"
_TAG_OPENING    = b"ABHRS/v1/opening_proof"
_TAG_RING       = b"ABHRS/v1/ring_challenge"
_TAG_RING_MSG   = b"ABHRS/v1/ring_message"
_TAG_CERT       = b"ABHRS/v1/certificate"
_TAG_TRANSCRIPT = b"ABHRS/v1/transcript"


def _tagged_hasher(tag: bytes) -> "hashlib._Hash":
    tag_hash = hashlib.sha256(tag).digest()
    h = hashlib.sha256()
    h.update(tag_hash)
    h.update(tag_hash)
    return h


def encode_item(item: Any) -> bytes:
    """
    Canonical encoding of a protocol element.

    Variable-length items are length-prefixed and mappings are encoded
    in sorted key order, so two equal values always encode identically.
    """
    if item is None:
        return b"\x00"
    if isinstance(item, bool):
        return b"\x01" if item else b"\x02"
    if isinstance(item, bytes):
        return len(item).to_bytes(4, "big") + item
    if isinstance(item, str):
        raw = item.encode("utf-8")
        return len(raw).to_bytes(4, "big") + raw
    if isinstance(item, int):
        return item.to_bytes(SCALAR_BYTES, "big", signed=True)
    if isinstance(item, float):
        return encode_item(repr(item))
    if isinstance(item, Scalar):
        return item.to_bytes()
    if isinstance(item, Point):
        return item.to_bytes()
    if isinstance(item, dict):
        pairs = sorted(item.items(), key=lambda kv: str(kv[0]))
        parts = b"".join(encode_item(str(k)) + encode_item(v) for k, v in pairs)
        return len(pairs).to_bytes(4, "big") + parts
    if isinstance(item, (list, tuple)):
        parts = b"".join(encode_item(x) for x in item)
        return len(item).to_bytes(4, "big") + parts
    if hasattr(item, "to_bytes"):
        return encode_item(item.to_bytes())
    return encode_item(str(item))


def _tagged_hash(tag: bytes, *args: Any) -> bytes:
    h = _tagged_hasher(tag)
    for a in args:
        h.update(encode_item(a))
    return h.digest()


def _tagged_scalar(tag: bytes, *args: Any) -> Scalar:
    return Scalar.from_bytes_reduce(_tagged_hash(tag, *args))


# ── public hash functions ───────────────────────────────────────────────

def ratchet(previous: bytes, epoch: int) -> bytes:
    """
    One step of the epoch key chain:  SK_t = HMAC(SK_{t-1}, tag ‖ t).

    HMAC keyed by the previous secret is one-way in the key, so SK_t
    reveals nothing about SK_{t-1}.
    """
    return hmac.new(
        previous, _TAG_EPOCH + encode_item(epoch), hashlib.sha256,
    ).digest()


def hash_secret_scalar(secret: bytes) -> Scalar:
    """Map an epoch secret to the committed scalar  x = H(SK_t)."""
    return _tagged_scalar(_TAG_SECRET, secret)


def hash_statement(*fields: Any) -> bytes:
    """Canonical digest of a public proof statement."""
    return _tagged_hash(_TAG_STATEMENT, *fields)


def hash_opening_proof(A: Point, C: Point, context: bytes) -> Scalar:
    """Fiat-Shamir challenge for a proof of commitment opening."""
    return _tagged_scalar(_TAG_OPENING, A, C, context)


def hash_ring_message(*fields: Any) -> bytes:
    """Everything a ring signature binds, folded into one digest."""
    return _tagged_hash(_TAG_RING_MSG, *fields)


def hash_ring_challenge(ring_digest: bytes, message: bytes, L: Point) -> Scalar:
    """AOS ring challenge  c_{i+1} = H(R, m, L_i)."""
    return _tagged_scalar(_TAG_RING, ring_digest, message, L)


def hash_certificate(R: Point, pk: Point, payload: bytes) -> Scalar:
    """Schnorr challenge  c = H(R, Y, payload)  for certificate signatures."""
    return _tagged_scalar(_TAG_CERT, R, pk, payload)


def hash_transcript(*fields: Any) -> bytes:
    return _tagged_hash(_TAG_TRANSCRIPT, *fields)
