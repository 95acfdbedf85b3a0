from contextlib import contextmanager
from dataclasses import replace
from typing import Optional, Dict, Any, List

from recordgate_core.storage.models import AuditEvent, IdentityRow, RecordRow
from recordgate_core.storage.provider import StorageProvider
from recordgate_core.utils import now_ts


class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.identities = {}
        self.attributes = {}   # (principal, key) -> value
        self.records = {}
        self.grants = {}       # record_id -> set of grantees
        self.audit = []
        self.replay = set()
        self._depth = 0
        self._journal = []     # undo steps for the open transaction

    @contextmanager
    def transaction(self):
        """
        Writes inside a transaction push undo steps; an error replays them
        newest first. Reads leave the journal untouched.
        """
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                while self._journal:
                    self._journal.pop()()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._journal.clear()

    def _on_rollback(self, undo) -> None:
        if self._depth:
            self._journal.append(undo)

    # identities
    def upsert_identity(self, row: IdentityRow):
        prev = self.identities.get(row.principal)
        self.identities[row.principal] = replace(row)
        if prev is None:
            self._on_rollback(lambda: self.identities.pop(row.principal, None))
        else:
            self._on_rollback(lambda: self.identities.__setitem__(row.principal, prev))

    def get_identity(self, principal: str) -> Optional[IdentityRow]:
        row = self.identities.get(principal)
        return replace(row) if row else None

    def revoke_identity(self, principal: str):
        row = self.identities.get(principal)
        if row and not row.revoked:
            row.revoked = True
            self._on_rollback(lambda: setattr(row, "revoked", False))

    # attributes
    def _set_attributes(self, principal: str, attributes: Dict[str, str]):
        for key in [k for k in self.attributes if k[0] == principal]:
            del self.attributes[key]
        for key, value in attributes.items():
            self.attributes[(principal, key)] = value

    def replace_attributes(self, principal: str, attributes: Dict[str, str]):
        prev = self.get_attributes(principal)
        self._set_attributes(principal, attributes)
        self._on_rollback(lambda: self._set_attributes(principal, prev))

    def get_attributes(self, principal: str) -> Dict[str, str]:
        return {k: v for (p, k), v in self.attributes.items() if p == principal}

    def get_attribute(self, principal: str, key: str) -> Optional[str]:
        return self.attributes.get((principal, key))

    # records
    def insert_record(self, row: RecordRow):
        self.records[row.record_id] = replace(row)
        new_acl = row.record_id not in self.grants
        self.grants.setdefault(row.record_id, set())

        def undo():
            self.records.pop(row.record_id, None)
            if new_acl:
                self.grants.pop(row.record_id, None)
        self._on_rollback(undo)

    def get_record(self, record_id: int) -> Optional[RecordRow]:
        row = self.records.get(record_id)
        return replace(row) if row else None

    def add_grant(self, record_id: int, grantee: str):
        acl = self.grants.setdefault(record_id, set())
        if grantee not in acl:
            acl.add(grantee)
            self._on_rollback(lambda: acl.discard(grantee))

    def remove_grant(self, record_id: int, grantee: str):
        acl = self.grants.get(record_id, set())
        if grantee in acl:
            acl.discard(grantee)
            self._on_rollback(lambda: acl.add(grantee))

    def has_grant(self, record_id: int, grantee: str) -> bool:
        return grantee in self.grants.get(record_id, ())

    def list_grants(self, record_id: int) -> List[str]:
        return sorted(self.grants.get(record_id, ()))

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]):
        self.audit.append(AuditEvent(ts=now_ts(), event_type=event_type, payload=dict(payload)))
        self._on_rollback(self.audit.pop)

    def list_events(self) -> List[AuditEvent]:
        return list(self.audit)

    # replay guard
    def seen_msg(self, msg_id: str) -> bool:
        return msg_id in self.replay

    def mark_msg(self, msg_id: str):
        if msg_id not in self.replay:
            self.replay.add(msg_id)
            self._on_rollback(lambda: self.replay.discard(msg_id))
