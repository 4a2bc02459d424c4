import pytest

from batchtree_api.crypto import keccak256
from batchtree_api.errors import DuplicateLeaf, IndexOutOfRange, InvalidInput, TreeNotBuilt
from batchtree_api.settings import Settings
from batchtree_api.store import TreeStore


def _leaves(offset=0):
    return [(i + offset).to_bytes(32, "big") for i in range(1, 257)]


def test_reads_before_build_fail():
    store = TreeStore()
    assert not store.built
    with pytest.raises(TreeNotBuilt):
        store.prove_index(0)
    with pytest.raises(TreeNotBuilt):
        store.node(0, 0)
    with pytest.raises(TreeNotBuilt):
        store.index_lookup(b"\x00" * 32)
    with pytest.raises(TreeNotBuilt):
        _ = store.root


def test_build_and_query():
    store = TreeStore()
    leaves = _leaves()
    assert store.build(leaves) is True
    assert store.node(8, 0) == store.root
    assert store.level(0)[5] == keccak256(leaves[5])
    assert store.index_lookup(keccak256(leaves[200])) == 200
    proof = store.prove_index(200)
    assert store.verify(leaves[200], 200, proof)
    assert store.verify(leaves[200], 200, proof, store.root)
    with pytest.raises(IndexOutOfRange):
        store.prove_index(256)


def test_rebuild_replaces_tree_and_lookup():
    store = TreeStore()
    first = _leaves()
    store.build(first)
    old_root = store.root
    old_proof = store.prove_index(0)

    second = _leaves(offset=1000)
    store.build(second)
    assert store.root != old_root
    with pytest.raises(KeyError):
        store.index_lookup(keccak256(first[0]))
    assert store.index_lookup(keccak256(second[0])) == 0
    assert not store.verify(first[0], 0, old_proof)
    assert store.verify(first[0], 0, old_proof, old_root)


def test_failed_build_keeps_previous_tree():
    store = TreeStore()
    store.build(_leaves())
    root = store.root
    with pytest.raises(InvalidInput):
        store.build(_leaves()[:255])
    assert store.root == root


def test_from_settings():
    s = Settings(
        BATCHTREE_DEPTH=4,
        BATCHTREE_HASH_ALGORITHM="sha256",
        BATCHTREE_DOMAIN_SEPARATION=True,
        BATCHTREE_REJECT_DUPLICATES=True,
    )
    store = TreeStore.from_settings(s)
    assert store.depth == 4
    assert store.hasher.name == "sha256"
    assert store.hasher.domain_separation
    leaves = _leaves()[:16]
    store.build(leaves)
    assert len(store.prove_index(15)) == 4
    leaves[1] = leaves[0]
    with pytest.raises(DuplicateLeaf):
        store.build(leaves)


def test_body_limit_follows_depth():
    from batchtree_api.settings import DEFAULT_MAX_REQUEST_BYTES, build_body_bytes

    assert Settings().max_request_bytes == DEFAULT_MAX_REQUEST_BYTES
    deep = Settings(BATCHTREE_DEPTH=12)
    assert deep.max_request_bytes == build_body_bytes(12, 32)
    assert deep.max_request_bytes > 4096 * 70
    pinned = Settings(BATCHTREE_DEPTH=12, BATCHTREE_MAX_REQUEST_BYTES=1000)
    assert pinned.max_request_bytes == 1000
