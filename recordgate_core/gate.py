"""
recordgate_core.gate
--------------------
Access gate: one place that answers "is this principal authorized under this
predicate right now". It holds no state of its own and reads the registry on
every call. A principal with no identity simply fails every predicate.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .identity import IdentityRegistry

Predicate = Callable[[IdentityRegistry, str], bool]


def HAS_VALID_IDENTITY(registry: IdentityRegistry, principal: str) -> bool:
    return registry.is_valid(principal)


@dataclass(frozen=True)
class AttributePredicate:
    """
    Valid identity plus an attribute check.

    The attribute must be present, be one of `allowed` when given, and not be
    one of `blocked` when given.
    """
    key: str
    allowed: Optional[frozenset] = None
    blocked: Optional[frozenset] = None

    def __post_init__(self):
        # accept a single value or any iterable of values
        for name in ("allowed", "blocked"):
            values = getattr(self, name)
            if values is None:
                continue
            if isinstance(values, str):
                values = (values,)
            object.__setattr__(self, name, frozenset(values))

    def __call__(self, registry: IdentityRegistry, principal: str) -> bool:
        if not registry.is_valid(principal):
            return False
        value = registry.get_attribute(principal, self.key)
        if value is None:
            return False
        if self.allowed is not None and value not in self.allowed:
            return False
        if self.blocked is not None and value in self.blocked:
            return False
        return True


def all_of(*predicates: Predicate) -> Predicate:
    # a valid identity is always required, even with no extra predicates
    preds = (HAS_VALID_IDENTITY,) + tuple(predicates)

    def _all(registry: IdentityRegistry, principal: str) -> bool:
        return all(p(registry, principal) for p in preds)

    return _all


class AccessGate:
    def __init__(self, registry: IdentityRegistry):
        self.registry = registry

    def verify(self, principal: str, predicate: Predicate = HAS_VALID_IDENTITY) -> bool:
        return bool(predicate(self.registry, principal))

    def verify_all(self, principal: str, predicates: Iterable[Predicate]) -> bool:
        return self.verify(principal, all_of(*predicates))
