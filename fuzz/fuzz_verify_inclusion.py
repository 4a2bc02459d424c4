"""Inclusion proof fuzzing with mutated proofs, indices and leaves."""
from __future__ import annotations
import atheris
import sys
import random

with atheris.instrument_imports():
    from batchtree_api.merkle import MerkleTree, verify_inclusion

_LEAVES = [i.to_bytes(32, "big") for i in range(1, 257)]
_TREE = MerkleTree.from_leaves(_LEAVES)


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 6:
        return
    seed = int.from_bytes(data[:4], "little")
    random.seed(seed)
    idx = data[4]
    proof = list(_TREE.prove_index(idx))
    mode = data[5] % 4
    if mode == 0:
        ok = verify_inclusion(_LEAVES[idx], idx, proof, _TREE.root, depth=8)
        if not ok:
            raise RuntimeError("valid proof failed")
        return
    if mode == 1:
        level = random.randrange(len(proof))
        sib = proof[level]
        bit = random.randrange(256)
        proof[level] = sib[: bit // 8] + bytes([sib[bit // 8] ^ (1 << (bit % 8))]) + sib[bit // 8 + 1:]
        ok = verify_inclusion(_LEAVES[idx], idx, proof, _TREE.root, depth=8)
    elif mode == 2:
        other = (idx + 1 + random.randrange(255)) % 256
        ok = verify_inclusion(_LEAVES[idx], other, proof, _TREE.root, depth=8)
    else:
        leaf = bytes(data[6:38]).ljust(32, b"\x00")
        if leaf == _LEAVES[idx]:
            return
        ok = verify_inclusion(leaf, idx, proof, _TREE.root, depth=8)
    if ok:
        raise RuntimeError("tampered proof unexpectedly verified")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
