"""
recordgate_core.crypto
----------------------
Ed25519 primitives for authenticating callers:

- key generation, signing and verification
- principal address derivation from a public key
- envelope helpers: sign_envelope(), verify_envelope()
"""

from __future__ import annotations
from typing import Tuple
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519
from .constants import ADDRESS_PREFIX, ADDRESS_HEX_LEN
from .utils import b64e, b64d, sha256
from .envelope import CallEnvelope

# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_public(priv_raw: bytes) -> bytes:
    return ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw).public_key().public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False

# --------- Addresses ----------
def address_from_pubkey(pub_raw: bytes) -> str:
    """
    Derive the fixed-width principal address for an Ed25519 public key:
    the last 20 bytes of SHA-256(pubkey), hex encoded with a 0x prefix.
    """
    digest = sha256(pub_raw)
    return ADDRESS_PREFIX + digest[-ADDRESS_HEX_LEN:]

# --------- Envelope helpers ----------
def sign_envelope(env: CallEnvelope, priv_raw: bytes) -> CallEnvelope:
    env.pubkey_b64 = b64e(ed25519_public(priv_raw))
    env.sig = b64e(ed25519_sign(priv_raw, env.to_signing_bytes()))
    return env

def verify_envelope(env: CallEnvelope) -> bool:
    if not env.sig or not env.pubkey_b64:
        return False
    try:
        pub_raw, sig = b64d(env.pubkey_b64), b64d(env.sig)
    except ValueError:
        return False
    return ed25519_verify(pub_raw, sig, env.to_signing_bytes())

def envelope_caller(env: CallEnvelope) -> str:
    return address_from_pubkey(b64d(env.pubkey_b64))
