from __future__ import annotations
from pathlib import Path
import os
import datetime
import logging
from fastapi import FastAPI, HTTPException, status

from .settings import settings
from .crypto import from_hex, to_hex
from .errors import DuplicateLeaf, IndexOutOfRange, InvalidInput, TreeNotBuilt
from .logutil import setup_logging
from .models import (
    BuildRequest,
    BuildResponse,
    LookupResponse,
    NodeResponse,
    ProofBundle,
    SignedTreeHead,
    TreeInfo,
    VerifyRequest,
    VerifyResponse,
)
from .store import TreeStore
from .sth import make_sth
from .middleware.size_limit import SizeLimitMiddleware

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="batchtree")
app.add_middleware(SizeLimitMiddleware)

# One tree per process; handlers never await between reading and writing it.
store = TreeStore.from_settings(settings)


def _load_keys():
    sk_path = Path(os.getenv("BATCHTREE_SIGNING_KEY_PATH", settings.signing_key_path))
    pk_path = Path(os.getenv("BATCHTREE_SIGNING_PUBKEY_PATH", settings.signing_pubkey_path))
    if not sk_path.exists() or not pk_path.exists():
        # generate if allowed for development only (gated by BATCHTREE_ALLOW_DEV_KEYGEN)
        allow_dev = os.getenv("BATCHTREE_ALLOW_DEV_KEYGEN", str(settings.allow_dev_keygen))
        if allow_dev.lower() not in ("1", "true", "yes"):
            raise FileNotFoundError(
                "signing keypair not found; set BATCHTREE_ALLOW_DEV_KEYGEN=true to auto-generate for development"
            )
        from nacl.signing import SigningKey

        sk_path.parent.mkdir(parents=True, exist_ok=True)
        pk_path.parent.mkdir(parents=True, exist_ok=True)
        sk = SigningKey.generate()
        sk_path.write_bytes(sk.encode())
        pk_path.write_bytes(sk.verify_key.encode())
        logger.warning("generated development signing keypair at %s", sk_path.parent)
    return sk_path.read_bytes(), pk_path.read_bytes()


def _current_tree():
    try:
        return store.tree
    except TreeNotBuilt as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


def _bundle(idx: int) -> ProofBundle:
    tree = _current_tree()
    try:
        proof = tree.prove_index(idx)
    except IndexOutOfRange as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ProofBundle(
        index=idx,
        leaf_hash=to_hex(tree.node(0, idx)),
        proof=[to_hex(p) for p in proof],
        root=to_hex(tree.root),
        hash_algorithm=tree.hasher.name,
        domain_separation=tree.hasher.domain_separation,
    )


@app.post("/tree", response_model=BuildResponse)
async def build_tree(req: BuildRequest):
    try:
        ok = store.build(req.leaf_bytes())
    except DuplicateLeaf as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BuildResponse(ok=ok, root=to_hex(store.root))


@app.get("/tree/root", response_model=TreeInfo)
async def tree_root():
    tree = _current_tree()
    return TreeInfo(
        depth=tree.depth,
        leaf_count=tree.leaf_count,
        hash_algorithm=tree.hasher.name,
        domain_separation=tree.hasher.domain_separation,
        root=to_hex(tree.root),
    )


@app.get("/tree/{level}/{position}", response_model=NodeResponse)
async def tree_node(level: int, position: int):
    tree = _current_tree()
    try:
        h = tree.node(level, position)
    except IndexOutOfRange as e:
        raise HTTPException(status_code=404, detail=str(e))
    return NodeResponse(level=level, position=position, hash=to_hex(h))


@app.get("/lookup/{leaf_hash}", response_model=LookupResponse)
async def lookup(leaf_hash: str):
    tree = _current_tree()
    try:
        pos = tree.index_of(from_hex(leaf_hash))
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid leaf hash")
    except KeyError:
        raise HTTPException(status_code=404, detail="unknown leaf hash")
    return LookupResponse(leaf_hash=leaf_hash, position=pos)


@app.get("/proof/{index}", response_model=ProofBundle)
async def proof(index: int):
    return _bundle(index)


@app.post("/verify", response_model=VerifyResponse)
async def verify(req: VerifyRequest):
    if req.root is None:
        root = _current_tree().root
    else:
        root = from_hex(req.root)
    ok = store.verify(
        from_hex(req.leaf), req.index, [from_hex(p) for p in req.proof], root
    )
    return VerifyResponse(valid=ok)


@app.get("/sth", response_model=SignedTreeHead)
async def signed_tree_head():
    tree = _current_tree()
    sk_bytes, pk_bytes = _load_keys()
    return make_sth(tree, sk_bytes, pk_bytes)


@app.get("/healthz")
async def healthz():
    return {
        "ok": True,
        "built": store.built,
        "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }
