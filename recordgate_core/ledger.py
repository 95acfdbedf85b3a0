"""
recordgate_core.ledger
----------------------
The hosting environment for the registry and the record store.

Every call runs to completion or not at all: it executes inside one storage
transaction under a process-wide lock, and any error rolls the transaction
back before it is re-raised. The admin set is fixed when the ledger is built.
"""

from __future__ import annotations
import inspect
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import config
from .crypto import envelope_caller, verify_envelope
from .envelope import CallEnvelope
from .errors import BadSignature, InvalidPayload, RecordGateError, ReplayDetected, UnknownOperation, ValidationError
from .gate import AccessGate
from .identity import Identity, IdentityRegistry
from .logger import get_logger
from .records import ResourceStore
from .storage import StorageProvider, load_storage_provider
from .storage.models import AuditEvent, Payload
from .utils import b64d

log = get_logger("recordgate.ledger")


class Ledger:
    def __init__(self, admins: Iterable[str], storage: Optional[StorageProvider] = None, clock=None):
        self.storage = storage if storage is not None else load_storage_provider()
        self.registry = IdentityRegistry(self.storage, admins, clock)
        self.gate = AccessGate(self.registry)
        self.records = ResourceStore(self.storage, self.gate)
        self._lock = threading.RLock()

        reg, rec = self.registry, self.records
        self._ops: Dict[str, Callable[..., Any]] = {
            "issue_identity": reg.issue_identity,
            "revoke_identity": reg.revoke_identity,
            "get_identity": lambda caller, principal: reg.get_identity(principal),
            "is_valid": lambda caller, principal: reg.is_valid(principal),
            "add_record": rec.add_record,
            "grant_access": rec.grant_access,
            "revoke_access": rec.revoke_access,
            "get_health_record": rec.get_health_record,
            "is_authorized": lambda caller, principal, record_id: rec.is_authorized(principal, record_id),
            "list_grantees": rec.list_grantees,
        }

    @classmethod
    def from_env(cls, clock=None) -> "Ledger":
        return cls(config.admin_addresses(), load_storage_provider(), clock)

    def _atomic(self, op: str, fn: Callable[..., Any], *args) -> Any:
        with self._lock:
            try:
                with self.storage.transaction():
                    return fn(*args)
            except RecordGateError as e:
                log.warning(f"{op} aborted: {e.code}: {e.message}")
                raise

    # --- identity operations ---

    def issue_identity(self, admin: str, principal: str, attributes: Optional[Dict[str, str]], expires_at: int) -> Identity:
        return self._atomic("issue_identity", self.registry.issue_identity, admin, principal, attributes, expires_at)

    def revoke_identity(self, admin: str, principal: str) -> None:
        return self._atomic("revoke_identity", self.registry.revoke_identity, admin, principal)

    def get_identity(self, principal: str) -> Identity:
        return self._atomic("get_identity", self.registry.get_identity, principal)

    def is_valid(self, principal: str) -> bool:
        return self._atomic("is_valid", self.registry.is_valid, principal)

    # --- record operations ---

    def add_record(self, caller: str, record_id: int, payload: Payload):
        return self._atomic("add_record", self.records.add_record, caller, record_id, payload)

    # name used by record-keeping clients
    add_health_record = add_record

    def grant_access(self, caller: str, record_id: int, grantee: str) -> None:
        return self._atomic("grant_access", self.records.grant_access, caller, record_id, grantee)

    def revoke_access(self, caller: str, record_id: int, grantee: str) -> None:
        return self._atomic("revoke_access", self.records.revoke_access, caller, record_id, grantee)

    def get_health_record(self, caller: str, record_id: int) -> Payload:
        return self._atomic("get_health_record", self.records.get_health_record, caller, record_id)

    def is_authorized(self, principal: str, record_id: int) -> bool:
        return self._atomic("is_authorized", self.records.is_authorized, principal, record_id)

    def list_grantees(self, caller: str, record_id: int) -> List[str]:
        return self._atomic("list_grantees", self.records.list_grantees, caller, record_id)

    # --- signed calls ---

    def submit(self, env: CallEnvelope) -> Any:
        """
        Run a signed call. The caller is the address of the signing key.

        Once its signature verifies, the envelope is consumed in a committed
        transaction of its own, before the operation runs. A rejected envelope
        can never run later; a corrected call must be signed again under a new
        msg_id.
        """
        with self._lock:
            try:
                if not verify_envelope(env):
                    raise BadSignature(f"envelope {env.msg_id} signature does not verify")
                with self.storage.transaction():
                    if self.storage.seen_msg(env.msg_id):
                        raise ReplayDetected(f"envelope {env.msg_id} was already submitted")
                    self.storage.mark_msg(env.msg_id)
                fn, bound = self._resolve(env)
            except RecordGateError as e:
                log.warning(f"envelope {env.msg_id} rejected: {e.code}: {e.message}")
                raise

            return self._atomic(env.op, fn, *bound.args)

    def _resolve(self, env: CallEnvelope):
        fn = self._ops.get(env.op)
        if fn is None:
            raise UnknownOperation(f"unsupported operation: {env.op!r}")

        args = dict(env.args)
        if "payload_b64" in args:
            try:
                args["payload"] = b64d(args.pop("payload_b64"))
            except (TypeError, AttributeError, ValueError) as e:
                raise InvalidPayload(f"payload_b64 is not valid base64: {e}") from e

        try:
            bound = inspect.signature(fn).bind(envelope_caller(env), **args)
        except TypeError as e:
            raise ValidationError(f"bad arguments for {env.op}: {e}") from e
        return fn, bound

    def audit_events(self) -> List[AuditEvent]:
        return self.storage.list_events()

    def close(self) -> None:
        self.storage.close()
