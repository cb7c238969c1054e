"""Access policies: named boolean predicates over an attribute map."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

Predicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class Policy:
    """
    A predicate with a stable identifier.

    The identifier, not the predicate, is what appears in public proof
    statements.
    """

    policy_id: str
    predicate: Predicate

    def __call__(self, attributes: Mapping[str, Any]) -> bool:
        return bool(self.predicate(attributes))

    @classmethod
    def require(cls, policy_id: str, **expected: Any) -> Policy:
        """Policy satisfied when every ``name=value`` pair matches exactly."""
        def predicate(attrs: Mapping[str, Any]) -> bool:
            return all(attrs.get(k) == v for k, v in expected.items())
        return cls(policy_id=policy_id, predicate=predicate)


def policy_id(policy: Callable[..., Any]) -> str:
    """Identifier of a ``Policy`` or of a plain callable (its qualname)."""
    if isinstance(policy, Policy):
        return policy.policy_id
    return getattr(policy, "__qualname__", None) or repr(policy)
