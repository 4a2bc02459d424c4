import pytest
from fastapi.testclient import TestClient

from batchtree_api.crypto import keccak256, to_hex
from batchtree_api.store import TreeStore


@pytest.fixture
def client(monkeypatch):
    from batchtree_api import main

    # fresh in-memory tree per test
    monkeypatch.setattr(main, "store", TreeStore.from_settings(main.settings))
    return TestClient(main.app)


def _build(client, leaves):
    return client.post("/tree", json={"leaves": [to_hex(x) for x in leaves]})


def test_queries_before_build(client):
    assert client.get("/healthz").json()["built"] is False
    assert client.get("/tree/root").status_code == 409
    assert client.get("/proof/0").status_code == 409
    assert client.get("/tree/0/0").status_code == 409


def test_build_prove_verify(client, leaves):
    r = _build(client, leaves)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    root = body["root"]

    info = client.get("/tree/root").json()
    assert info == {
        "depth": 8,
        "leaf_count": 256,
        "hash_algorithm": "keccak256",
        "domain_separation": False,
        "root": root,
    }

    node = client.get("/tree/0/0").json()
    assert node["hash"] == to_hex(keccak256(leaves[0]))
    assert client.get("/tree/8/0").json()["hash"] == root

    bundle = client.get("/proof/0").json()
    assert bundle["root"] == root
    assert len(bundle["proof"]) == 8
    assert bundle["proof"][0] == client.get("/tree/0/1").json()["hash"]

    ok = client.post(
        "/verify",
        json={"leaf": to_hex(leaves[0]), "index": 0, "proof": bundle["proof"], "root": root},
    ).json()
    assert ok == {"valid": True}
    bad = client.post(
        "/verify",
        json={"leaf": to_hex(leaves[1]), "index": 0, "proof": bundle["proof"]},
    ).json()
    assert bad == {"valid": False}


def test_lookup(client, leaves):
    _build(client, leaves)
    leaf_hash = to_hex(keccak256(leaves[42]))
    r = client.get(f"/lookup/{leaf_hash}")
    assert r.status_code == 200
    assert r.json()["position"] == 42
    assert client.get("/lookup/0x" + "00" * 32).status_code == 404
    assert client.get("/lookup/nothex").status_code == 400


def test_out_of_range(client, leaves):
    _build(client, leaves)
    assert client.get("/proof/256").status_code == 404
    assert client.get("/proof/-1").status_code == 404
    assert client.get("/tree/9/0").status_code == 404
    assert client.get("/tree/1/128").status_code == 404


def test_invalid_batches(client, leaves):
    assert _build(client, leaves[:255]).status_code == 400
    short = list(leaves)
    short[0] = b"\x01"
    assert _build(client, short).status_code == 400
    r = client.post("/tree", json={"leaves": ["0xnothex"] * 256})
    assert r.status_code == 422


def test_rebuild_invalidates_old_proof(client, leaves):
    old_root = _build(client, leaves).json()["root"]
    old = client.get("/proof/255").json()
    mutated = list(leaves)
    mutated[255] = (999).to_bytes(32, "big")
    new_root = _build(client, mutated).json()["root"]
    assert new_root != old_root
    new = client.get("/proof/255").json()
    check = lambda leaf, proof, root: client.post(  # noqa: E731
        "/verify",
        json={"leaf": to_hex(leaf), "index": 255, "proof": proof, "root": root},
    ).json()["valid"]
    assert check(mutated[255], new["proof"], new_root)
    assert not check(mutated[255], new["proof"], old_root)
    assert not check(leaves[255], old["proof"], new_root)


def test_duplicates_conflict_when_hardened(monkeypatch, leaves):
    from batchtree_api import main

    monkeypatch.setattr(main, "store", TreeStore(reject_duplicates=True))
    client = TestClient(main.app)
    dup = list(leaves)
    dup[1] = dup[0]
    assert _build(client, dup).status_code == 409


def test_signed_tree_head(client, leaves, keys_env):
    from batchtree_sdk.verify import verify_sth

    root = _build(client, leaves).json()["root"]
    r = client.get("/sth")
    assert r.status_code == 200, r.text
    sth = r.json()
    assert sth["merkle_root_hex"] == root
    assert sth["leaf_count"] == 256
    assert verify_sth(sth)
    assert (keys_env / "ed25519_private.key").exists()


def test_oversize_body(client, leaves, monkeypatch):
    monkeypatch.setenv("BATCHTREE_MAX_REQUEST_BYTES", "512")
    assert _build(client, leaves).status_code == 413


def test_depth_12_batch_fits_default_body_limit(monkeypatch):
    from batchtree_api import main
    from batchtree_api.settings import Settings

    monkeypatch.delenv("BATCHTREE_MAX_REQUEST_BYTES", raising=False)
    deep = Settings(BATCHTREE_DEPTH=12)
    monkeypatch.setattr(main.settings, "max_request_bytes", deep.max_request_bytes)
    monkeypatch.setattr(main, "store", TreeStore(depth=12))
    client = TestClient(main.app)
    leaves = [i.to_bytes(32, "big") for i in range(1, 4097)]
    r = _build(client, leaves)
    assert r.status_code == 200, r.text
    assert client.get("/tree/root").json()["leaf_count"] == 4096
