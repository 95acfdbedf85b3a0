# recordgate_core/storage/provider.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from .models import AuditEvent, IdentityRow, RecordRow


class StorageProvider:
    """
    Interface shared by every storage backend.

    Providers never check permissions. They only persist what the registry and
    record store decide. `transaction()` must make the enclosed writes all or
    nothing.
    """

    @contextmanager
    def transaction(self) -> Iterator["StorageProvider"]:
        yield self

    # identities
    def upsert_identity(self, row: IdentityRow) -> None: ...
    def get_identity(self, principal: str) -> Optional[IdentityRow]: ...
    def revoke_identity(self, principal: str) -> None: ...

    # attributes, keyed by (principal, key)
    def replace_attributes(self, principal: str, attributes: Dict[str, str]) -> None: ...
    def get_attributes(self, principal: str) -> Dict[str, str]: ...
    def get_attribute(self, principal: str, key: str) -> Optional[str]: ...

    # records and access lists
    def insert_record(self, row: RecordRow) -> None: ...
    def get_record(self, record_id: int) -> Optional[RecordRow]: ...
    def add_grant(self, record_id: int, grantee: str) -> None: ...
    def remove_grant(self, record_id: int, grantee: str) -> None: ...
    def has_grant(self, record_id: int, grantee: str) -> bool: ...
    def list_grants(self, record_id: int) -> List[str]: ...

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None: ...
    def list_events(self) -> List[AuditEvent]: ...

    # replay guard
    def seen_msg(self, msg_id: str) -> bool: ...
    def mark_msg(self, msg_id: str) -> None: ...

    def close(self) -> None:
        return
