from __future__ import annotations
import base64
import hashlib
from typing import Callable, Dict, Tuple

import nacl.signing
import rfc8785
from Crypto.Hash import keccak

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"


def B64(b: bytes) -> str:
    """Base64-encode bytes to ASCII string."""
    return base64.b64encode(b).decode("ascii")


def B64D(s: str) -> bytes:
    """Decode base64 ASCII string to bytes with strict validation."""
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except Exception as e:
        raise ValueError("invalid base64") from e


def to_hex(b: bytes) -> str:
    return "0x" + bytes(b).hex()


def from_hex(s: str) -> bytes:
    """Decode a hex string (optionally 0x-prefixed) with strict validation."""
    if not isinstance(s, str):
        raise ValueError("hex value must be a string")
    body = s[2:] if s[:2].lower() == "0x" else s
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise ValueError(f"invalid hex: {s!r}") from e


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


DIGESTS: Dict[str, Callable[[bytes], bytes]] = {
    "keccak256": keccak256,
    "sha256": sha256,
}


class Hasher:
    """Leaf and pair hashing for the tree.

    Without domain separation a leaf hashes as H(data) and a pair as
    H(left || right), with no prefixes or length fields. With domain
    separation the RFC 6962 prefixes are applied: H(0x00 || data) and
    H(0x01 || left || right).
    """

    def __init__(self, name: str = "keccak256", domain_separation: bool = False):
        if name not in DIGESTS:
            raise ValueError(f"Unknown algorithm: {name}")
        self.name = name
        self.domain_separation = domain_separation
        self._digest = DIGESTS[name]

    def leaf(self, data: bytes) -> bytes:
        if self.domain_separation:
            return self._digest(LEAF_PREFIX + data)
        return self._digest(data)

    def pair(self, left: bytes, right: bytes) -> bytes:
        if self.domain_separation:
            return self._digest(NODE_PREFIX + left + right)
        return self._digest(left + right)

    def __repr__(self) -> str:
        return f"Hasher({self.name!r}, domain_separation={self.domain_separation})"


def get_hasher(name: str = "keccak256", domain_separation: bool = False) -> Hasher:
    return Hasher(name.lower(), domain_separation)


def jcs_dumps(obj) -> bytes:
    """Deterministic canonical JSON bytes per RFC8785."""
    return rfc8785.dumps(obj)


def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = nacl.signing.SigningKey.generate()
    pk = sk.verify_key
    return (sk.encode(), pk.encode())


def ed25519_sign(sk_bytes: bytes, data: bytes) -> bytes:
    sk = nacl.signing.SigningKey(sk_bytes)
    sig = sk.sign(data).signature
    return sig


def ed25519_verify(pk_bytes: bytes, data: bytes, signature: bytes) -> bool:
    vk = nacl.signing.VerifyKey(pk_bytes)
    try:
        vk.verify(data, signature)
        return True
    except Exception:
        return False
