"""
recordgate_core.records
-----------------------
Record store: owner-held records with a per-record read access list.

- Creation requires the owner to pass the access gate at call time.
- Only the owner may change the access list, and the owner's identity is
  re-verified on every change.
- The owner is never stored in the access list; owner access is implicit.
- Record ids are caller-supplied integers, unique across all owners.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .constants import EVT_ACCESS_GRANTED, EVT_ACCESS_REVOKED, EVT_RECORD_ADDED
from .errors import DuplicateId, InvalidPayload, InvalidRecordId, NotFound, NotOwner, Unauthorized
from .gate import AccessGate, HAS_VALID_IDENTITY, Predicate
from .logger import get_logger
from .storage.models import Payload, RecordRow
from .storage.provider import StorageProvider
from .utils import normalize_address

log = get_logger("recordgate.records")

MAX_RECORD_ID = 2 ** 63 - 1


@dataclass
class Record:
    record_id: int
    owner: str
    payload: Payload
    created_at: int
    acl: Set[str] = field(default_factory=set)


def _check_record_id(record_id) -> int:
    if isinstance(record_id, bool) or not isinstance(record_id, int) or not 0 <= record_id <= MAX_RECORD_ID:
        raise InvalidRecordId(f"record id must be an integer in [0, {MAX_RECORD_ID}], got {record_id!r}")
    return record_id


class ResourceStore:
    def __init__(self, storage: StorageProvider, gate: AccessGate, create_predicate: Predicate = HAS_VALID_IDENTITY):
        self.storage = storage
        self.gate = gate
        self.create_predicate = create_predicate

    @property
    def clock(self):
        return self.gate.registry.clock

    def _load(self, record_id: int) -> RecordRow:
        row = self.storage.get_record(_check_record_id(record_id))
        if row is None:
            raise NotFound(f"record {record_id} does not exist")
        return row

    def _require_owner(self, caller: str, row: RecordRow) -> None:
        if caller != row.owner:
            log.warning(f"record {row.record_id}: {caller} is not the owner")
            raise NotOwner(f"{caller} does not own record {row.record_id}")
        if not self.gate.verify(caller):
            log.warning(f"record {row.record_id}: owner {caller} has no valid identity")
            raise Unauthorized(f"{caller} does not hold a valid identity")

    def add_record(self, owner: str, record_id: int, payload: Payload) -> Record:
        owner = normalize_address(owner)
        record_id = _check_record_id(record_id)
        if not isinstance(payload, (bytes, str)):
            raise InvalidPayload(f"payload must be bytes or str, got {type(payload).__name__}")

        if not self.gate.verify(owner, self.create_predicate):
            log.warning(f"add_record {record_id} rejected: {owner} not authorized")
            raise Unauthorized(f"{owner} is not authorized to add records")
        if self.storage.get_record(record_id) is not None:
            raise DuplicateId(f"record {record_id} already exists")

        row = RecordRow(record_id=record_id, owner=owner, payload=payload, created_at=self.clock.now())
        self.storage.insert_record(row)
        self.storage.log_event(EVT_RECORD_ADDED, {"record_id": record_id, "owner": owner})
        log.info(f"record {record_id} added by {owner}")
        return Record(row.record_id, row.owner, row.payload, row.created_at)

    def grant_access(self, caller: str, record_id: int, grantee: str) -> None:
        caller = normalize_address(caller)
        grantee = normalize_address(grantee)
        row = self._load(record_id)
        self._require_owner(caller, row)

        # owner access is implicit and never stored
        if grantee != row.owner:
            self.storage.add_grant(row.record_id, grantee)
        self.storage.log_event(EVT_ACCESS_GRANTED, {"record_id": row.record_id, "grantee": grantee})
        log.info(f"record {row.record_id}: access granted to {grantee}")

    def revoke_access(self, caller: str, record_id: int, grantee: str) -> None:
        caller = normalize_address(caller)
        grantee = normalize_address(grantee)
        row = self._load(record_id)
        self._require_owner(caller, row)

        self.storage.remove_grant(row.record_id, grantee)
        self.storage.log_event(EVT_ACCESS_REVOKED, {"record_id": row.record_id, "grantee": grantee})
        log.info(f"record {row.record_id}: access revoked from {grantee}")

    def get_health_record(self, caller: str, record_id: int) -> Payload:
        caller = normalize_address(caller)
        row = self._load(record_id)
        if caller != row.owner and not self.storage.has_grant(row.record_id, caller):
            log.warning(f"record {row.record_id}: read denied for {caller}")
            raise Unauthorized(f"{caller} may not read record {row.record_id}")
        return row.payload

    def is_authorized(self, principal: str, record_id: int) -> bool:
        principal = normalize_address(principal)
        try:
            record_id = _check_record_id(record_id)
        except InvalidRecordId:
            # no record can exist under an out-of-range id
            return False
        row = self.storage.get_record(record_id)
        if row is None:
            return False
        return principal == row.owner or self.storage.has_grant(row.record_id, principal)

    def list_grantees(self, caller: str, record_id: int) -> List[str]:
        caller = normalize_address(caller)
        row = self._load(record_id)
        if caller != row.owner:
            raise NotOwner(f"{caller} does not own record {row.record_id}")
        return self.storage.list_grants(row.record_id)

    def get_record(self, record_id: int) -> Optional[Record]:
        row = self.storage.get_record(_check_record_id(record_id))
        if row is None:
            return None
        return Record(row.record_id, row.owner, row.payload, row.created_at, set(self.storage.list_grants(row.record_id)))
