from typing import Dict, Any, Optional
from batchtree_api.crypto import ed25519_verify, jcs_dumps, B64D, from_hex, get_hasher
from batchtree_api.merkle import verify_inclusion


def verify_proof(
    leaf: bytes,
    index: int,
    proof,
    root: bytes,
    hash_algorithm: str = "keccak256",
    domain_separation: bool = False,
    depth: Optional[int] = None,
) -> bool:
    """Return True if ``proof`` places the raw ``leaf`` at ``index`` under ``root``."""
    try:
        hasher = get_hasher(hash_algorithm, domain_separation)
    except ValueError:
        return False
    return verify_inclusion(leaf, index, proof, root, hasher, depth=depth)


def verify_sth(sth_json: Dict[str, Any]) -> bool:
    """Verify a signed tree head's Ed25519 signature over its canonical body."""
    try:
        sig_b64 = sth_json["signature_b64"]
        pub_b64 = sth_json["signer_pubkey_b64"]
    except KeyError:
        return False
    body = {k: v for k, v in sth_json.items() if k != "signature_b64"}
    canon = jcs_dumps(body)
    try:
        return ed25519_verify(B64D(pub_b64), canon, B64D(sig_b64))
    except Exception:
        return False


def verify_proof_bundle(
    bundle: Dict[str, Any],
    leaf: Optional[bytes] = None,
    sth_json: Optional[Dict[str, Any]] = None,
) -> bool:
    """Verify a proof bundle as emitted by the CLI ``prove`` command or GET /proof.

    The raw leaf comes from ``leaf`` or the bundle's ``leaf`` field. When a
    signed tree head is supplied its signature must hold and its root and
    hash parameters must match the bundle.
    """
    try:
        raw = leaf if leaf is not None else from_hex(bundle["leaf"])
        index = bundle["index"]
        proof = [from_hex(p) for p in bundle["proof"]]
        root = from_hex(bundle["root"])
        alg = bundle.get("hash_algorithm", "keccak256")
        ds = bool(bundle.get("domain_separation", False))
    except (KeyError, TypeError, ValueError):
        return False
    if sth_json is not None:
        if not verify_sth(sth_json):
            return False
        try:
            if from_hex(sth_json["merkle_root_hex"]) != root:
                return False
        except (KeyError, ValueError):
            return False
        if sth_json.get("hash_algorithm") != alg:
            return False
        if bool(sth_json.get("domain_separation")) != ds:
            return False
        if sth_json.get("depth") != len(proof):
            return False
    return verify_proof(raw, index, proof, root, alg, ds)
