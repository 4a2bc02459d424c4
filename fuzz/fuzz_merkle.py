"""Fuzz harness for tree construction & round-trip proof verification."""
from __future__ import annotations
import atheris
import sys

with atheris.instrument_imports():
    from batchtree_api.crypto import get_hasher
    from batchtree_api.errors import InvalidInput
    from batchtree_api.merkle import MerkleTree, verify_inclusion


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 2:
        return
    # Small depths keep each run cheap; leaves are fixed 32-byte chunks
    # cycled from the input, with the position mixed in to avoid duplicates.
    depth = 1 + data[0] % 5
    n = 1 << depth
    body = data[1:]
    leaves = []
    for i in range(n):
        chunk = bytes(body[(i * 31 + j) % len(body)] for j in range(28))
        leaves.append(chunk + i.to_bytes(4, "big"))
    hasher = get_hasher("keccak256", bool(data[0] & 0x80))
    try:
        tree = MerkleTree.from_leaves(leaves, depth=depth, hasher=hasher)
    except InvalidInput:
        return
    idx = data[-1] % n
    proof = tree.prove_index(idx)
    if not verify_inclusion(leaves[idx], idx, proof, tree.root, hasher, depth=depth):
        raise RuntimeError("valid inclusion proof failed")
    for lv in range(1, depth + 1):
        for p in range(n >> lv):
            if tree.node(lv, p) != hasher.pair(tree.node(lv - 1, 2 * p), tree.node(lv - 1, 2 * p + 1)):
                raise RuntimeError("node does not hash its children")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
