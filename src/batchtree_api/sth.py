from __future__ import annotations
import datetime

from .crypto import B64, ed25519_sign, jcs_dumps, to_hex
from .merkle import MerkleTree
from .models import SignedTreeHead


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def make_sth(tree: MerkleTree, signer_sk_bytes: bytes, signer_pk_bytes: bytes) -> SignedTreeHead:
    """Sign the tree root and its parameters with Ed25519.

    The signature covers the RFC 8785 canonical JSON of every field except
    ``signature_b64``.
    """
    body = {
        "depth": tree.depth,
        "leaf_count": tree.leaf_count,
        "hash_algorithm": tree.hasher.name,
        "domain_separation": tree.hasher.domain_separation,
        "merkle_root_hex": to_hex(tree.root),
        "ts": _now_iso(),
        "signer_pubkey_b64": B64(signer_pk_bytes),
    }
    sig = ed25519_sign(signer_sk_bytes, jcs_dumps(body))
    return SignedTreeHead(**{**body, "signature_b64": B64(sig)})
