"""
recordgate_core.envelope
------------------------
CallEnvelope: a signed request to run one ledger operation.

The signer's public key travels with the envelope and determines the calling
principal. `msg_id` is checked against the replay guard. Byte payloads are
carried base64 encoded under `payload_b64` so that args stay JSON.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional
from .constants import SCHEMA_VERSION
from .utils import b64e, canonical_json, new_id, now_ts
import json


@dataclass
class CallEnvelope:
    op: str = ""
    args: Dict[str, Any] = field(default_factory=dict)
    schema_ver: str = SCHEMA_VERSION
    msg_id: str = field(default_factory=new_id)
    ts: str = field(default_factory=now_ts)
    pubkey_b64: str = ""
    sig: Optional[str] = None   # base64 signature over the canonical body

    def to_signing_bytes(self) -> bytes:
        body = {
            "schema_ver": self.schema_ver,
            "msg_id": self.msg_id,
            "ts": self.ts,
            "op": self.op,
            "args": self.args,
            "pubkey_b64": self.pubkey_b64,
        }
        return canonical_json(body)

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)

    @staticmethod
    def make(op: str, **args) -> "CallEnvelope":
        """Factory that moves a bytes `payload` into `payload_b64`."""
        payload = args.get("payload")
        if isinstance(payload, bytes):
            args["payload_b64"] = b64e(args.pop("payload"))
        return CallEnvelope(op=op, args=args)

    @classmethod
    def from_dict(cls, data: dict) -> "CallEnvelope":
        return cls(
            op=data.get("op", ""),
            args=dict(data.get("args") or {}),
            schema_ver=data.get("schema_ver", SCHEMA_VERSION),
            msg_id=data.get("msg_id") or new_id(),
            ts=data.get("ts", now_ts()),
            pubkey_b64=data.get("pubkey_b64", ""),
            sig=data.get("sig"),
        )

    @classmethod
    def from_json(cls, raw: str) -> "CallEnvelope":
        return cls.from_dict(json.loads(raw))
