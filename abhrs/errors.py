"""Exception taxonomy for the ABHRS orchestration layer."""

from __future__ import annotations


class ABHRSError(Exception):
    """Base class for every protocol error raised by this package."""


class UnauthorizedIssuer(ABHRSError):
    """The issuing key does not belong to a registered CA."""


class MalformedAttributes(ABHRSError):
    """An attribute set failed the issuer's schema check."""


class ValidationFailure(ABHRSError):
    """A certificate-chain validation step failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"chain validation failed: {reason}")
        self.reason = reason


class ProofFailure(ABHRSError):
    """The witness does not satisfy the proven relation."""


class RingMismatch(ABHRSError):
    """Ring identity set, message or commitment diverges from the signature."""


class ParameterMismatch(ABHRSError):
    """A signature's parameter snapshot differs from the expected theta."""
