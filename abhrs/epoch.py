"""
Forward-secure epoch keys.

Each user's secret evolves along a one-way chain

    SK_0 → SK_1 → … → SK_t,     SK_t = HMAC(SK_{t-1}, tag ‖ t)

Knowing SK_t gives no way back to SK_{t-1}, so compromising the current
epoch does not expose signatures made in earlier ones.  The manager keeps
only the latest link: advancing an epoch replaces the stored secret.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Union

from .config import Parameters
from .hash import ratchet

if TYPE_CHECKING:
    from .registry import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpochSecret:
    """Secret key material for one epoch."""

    epoch: int
    key: bytes

    def __post_init__(self) -> None:
        if self.epoch < 0:
            raise ValueError("epoch must be non-negative")
        if not self.key:
            raise ValueError("epoch key must not be empty")

    @classmethod
    def initial(cls, seed: Union[bytes, str]) -> EpochSecret:
        if isinstance(seed, str):
            seed = seed.encode("utf-8")
        return cls(epoch=0, key=seed)

    def __repr__(self) -> str:
        return f"EpochSecret(epoch={self.epoch}, key=<redacted>)"


def evolve_key(prev: EpochSecret, parameters: Optional[Parameters] = None) -> EpochSecret:
    """
    Ratchet one epoch forward.

    Deterministic in ``prev``.  ``parameters`` is accepted so every
    protocol step shares one calling convention, but it does not enter the
    derivation: retuning theta must not fork a user's key chain.
    """
    nxt = prev.epoch + 1
    return EpochSecret(epoch=nxt, key=ratchet(prev.key, nxt))


class EpochKeyManager:
    """Advances users' epoch secrets, keeping only the current one."""

    def __init__(self, users: Dict[str, "User"]) -> None:
        self._users = users
        self._lock = threading.Lock()
        self._user_locks: Dict[str, threading.Lock] = {}

    def current(self, user_id: str) -> EpochSecret:
        return self._user(user_id).epoch_secret

    def hold(self, user_id: str) -> threading.Lock:
        """
        Per-user signing lock.

        Held across reading the current secret, signing under its successor
        and advancing, so each epoch secret signs exactly one message.
        """
        self._user(user_id)
        with self._lock:
            return self._user_locks.setdefault(user_id, threading.Lock())

    def advance(
        self,
        user_id: str,
        parameters: Optional[Parameters] = None,
    ) -> EpochSecret:
        """
        Move ``user_id`` to the next epoch and return the new secret.

        The previous secret is dropped from the user record.
        """
        with self._lock:
            user = self._user(user_id)
            nxt = evolve_key(user.epoch_secret, parameters)
            user.epoch_secret = nxt
        logger.debug("user %s advanced to epoch %d", user_id, nxt.epoch)
        return nxt

    def _user(self, user_id: str) -> "User":
        try:
            return self._users[user_id]
        except KeyError:
            raise ValueError(f"unknown user {user_id}")
