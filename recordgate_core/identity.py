"""
recordgate_core.identity
------------------------
Identity registry: the only component allowed to write identity state.

An identity is valid while it is not revoked and the current time is strictly
before `expires_at`. Expiry is derived on every query and never written.
Expired and revoked identities stay in storage; a principal may be re-issued
an identity once its previous one is no longer valid.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from .clock import SystemClock
from .constants import EVT_IDENTITY_ISSUED, EVT_IDENTITY_REVOKED
from .errors import AlreadyIssued, InvalidExpiry, NotFound, Unauthorized, ValidationError
from .logger import get_logger
from .storage.models import IdentityRow
from .storage.provider import StorageProvider
from .utils import normalize_address

log = get_logger("recordgate.identity")


@dataclass
class Identity:
    principal: str
    issued_at: int
    expires_at: int
    revoked: bool = False
    attributes: Dict[str, str] = field(default_factory=dict)

    def is_valid_at(self, now: int) -> bool:
        return not self.revoked and now < self.expires_at


def _check_attributes(attributes: Optional[Mapping[str, str]]) -> Dict[str, str]:
    attributes = dict(attributes or {})
    for k, v in attributes.items():
        if not isinstance(k, str) or not k or not isinstance(v, str):
            raise ValidationError(f"attributes must map non-empty str keys to str values, got {k!r}: {v!r}")
    return attributes


class IdentityRegistry:
    def __init__(self, storage: StorageProvider, admins: Iterable[str], clock=None):
        self.storage = storage
        self.clock = clock or SystemClock()
        self._admins: FrozenSet[str] = frozenset(normalize_address(a) for a in admins)

    @property
    def admins(self) -> FrozenSet[str]:
        return self._admins

    def is_admin(self, principal: str) -> bool:
        return normalize_address(principal) in self._admins

    def _require_admin(self, admin: str, action: str) -> None:
        if not self.is_admin(admin):
            log.warning(f"{action} rejected: {admin} is not an admin")
            raise Unauthorized(f"{admin} is not permitted to {action}")

    def issue_identity(
        self,
        admin: str,
        principal: str,
        attributes: Optional[Mapping[str, str]],
        expires_at: int,
    ) -> Identity:
        self._require_admin(admin, "issue identities")

        # a stale expiry fails whatever the other arguments are
        now = self.clock.now()
        if isinstance(expires_at, bool) or not isinstance(expires_at, int) or expires_at <= now:
            log.warning(f"issue rejected for {principal!r}: expiry {expires_at!r} not after {now}")
            raise InvalidExpiry(f"expires_at must be an integer later than {now}")

        principal = normalize_address(principal)
        attributes = _check_attributes(attributes)

        if self.is_valid(principal):
            log.warning(f"issue rejected for {principal}: valid identity already held")
            raise AlreadyIssued(f"{principal} already holds a valid identity")

        row = IdentityRow(principal=principal, issued_at=now, expires_at=expires_at, revoked=False)
        self.storage.upsert_identity(row)
        self.storage.replace_attributes(principal, attributes)
        self.storage.log_event(EVT_IDENTITY_ISSUED, {
            "admin": normalize_address(admin),
            "principal": principal,
            "expires_at": expires_at,
            "attribute_keys": sorted(attributes),
        })
        log.info(f"identity issued to {principal} (expires_at={expires_at})")
        return Identity(principal, now, expires_at, False, attributes)

    def revoke_identity(self, admin: str, principal: str) -> None:
        """Revoke `principal`'s identity. Revoking twice is not an error."""
        self._require_admin(admin, "revoke identities")
        principal = normalize_address(principal)
        if self.storage.get_identity(principal) is None:
            raise NotFound(f"no identity issued to {principal}")

        self.storage.revoke_identity(principal)
        self.storage.log_event(EVT_IDENTITY_REVOKED, {
            "admin": normalize_address(admin),
            "principal": principal,
        })
        log.info(f"identity revoked for {principal}")

    def get_identity(self, principal: str) -> Identity:
        principal = normalize_address(principal)
        row = self.storage.get_identity(principal)
        if row is None:
            raise NotFound(f"no identity issued to {principal}")
        return Identity(
            principal=row.principal,
            issued_at=row.issued_at,
            expires_at=row.expires_at,
            revoked=row.revoked,
            attributes=self.storage.get_attributes(principal),
        )

    def is_valid(self, principal: str) -> bool:
        row = self.storage.get_identity(normalize_address(principal))
        if row is None:
            return False
        return not row.revoked and self.clock.now() < row.expires_at

    def get_attribute(self, principal: str, key: str) -> Optional[str]:
        return self.storage.get_attribute(normalize_address(principal), key)
