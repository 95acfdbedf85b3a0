"""
RecordGate Core Package
=======================
Identity-gated record storage shared by the RecordGate ledger and its clients.

Provides:
- Identity registry (admin issuance, revocation, time-derived validity)
- Access gate predicates over the registry
- Record store with owner-managed access lists
- Ed25519 signed call envelopes
- Pluggable storage interface (SQLite default)
"""

from .errors import (
    RecordGateError,
    AuthorizationError,
    StateError,
    ValidationError,
    Unauthorized,
    NotOwner,
    BadSignature,
    NotFound,
    DuplicateId,
    AlreadyIssued,
    ReplayDetected,
    InvalidExpiry,
    InvalidAddress,
    InvalidPayload,
    InvalidRecordId,
    UnknownOperation,
)
from .clock import SystemClock, FixedClock
from .identity import Identity, IdentityRegistry
from .gate import AccessGate, AttributePredicate, HAS_VALID_IDENTITY, all_of
from .records import Record, ResourceStore
from .envelope import CallEnvelope
from .ledger import Ledger

__all__ = [
    "RecordGateError",
    "AuthorizationError",
    "StateError",
    "ValidationError",
    "Unauthorized",
    "NotOwner",
    "BadSignature",
    "NotFound",
    "DuplicateId",
    "AlreadyIssued",
    "ReplayDetected",
    "InvalidExpiry",
    "InvalidAddress",
    "InvalidPayload",
    "InvalidRecordId",
    "UnknownOperation",
    "SystemClock",
    "FixedClock",
    "Identity",
    "IdentityRegistry",
    "AccessGate",
    "AttributePredicate",
    "HAS_VALID_IDENTITY",
    "all_of",
    "Record",
    "ResourceStore",
    "CallEnvelope",
    "Ledger",
]
