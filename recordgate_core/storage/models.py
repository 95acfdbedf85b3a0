# recordgate_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Union

Payload = Union[bytes, str]


@dataclass
class IdentityRow:
    """
    Storage-level representation of an issued identity.

    Attributes are not part of the row; providers keep them keyed by
    (principal, attribute key).
    """
    principal: str
    issued_at: int
    expires_at: int
    revoked: bool = False


@dataclass
class RecordRow:
    record_id: int
    owner: str
    payload: Payload
    created_at: int


@dataclass
class AuditEvent:
    ts: str
    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)
