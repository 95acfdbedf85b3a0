"""
recordgate_core.utils
---------------------
Lightweight helpers for id generation, timestamping, base64, canonical JSON
serialization and principal address handling.
"""

from __future__ import annotations
import base64, json, time, uuid, hashlib
from typing import Any, Dict

from .constants import ADDRESS_PREFIX, ADDRESS_HEX_LEN
from .errors import InvalidAddress

_HEX = set("0123456789abcdef")


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def new_id() -> str:
    return uuid.uuid4().hex

def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON for signing
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()

def normalize_address(addr: Any) -> str:
    """
    Validate a principal address and return its canonical lowercase form.

    Addresses are fixed width: "0x" followed by 40 hex digits.
    """
    if not isinstance(addr, str):
        raise InvalidAddress(f"address must be a string, got {type(addr).__name__}")
    a = addr.strip().lower()
    body = a[len(ADDRESS_PREFIX):]
    if not a.startswith(ADDRESS_PREFIX) or len(body) != ADDRESS_HEX_LEN or not set(body) <= _HEX:
        raise InvalidAddress(f"malformed address: {addr!r}")
    return a
