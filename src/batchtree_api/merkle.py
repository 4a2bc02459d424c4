"""Fixed-depth binary Merkle tree over a batch of 2**depth leaves.

The tree is an arena of per-level lists: level 0 holds the leaf hashes,
level ``depth`` holds the root. Every node satisfies

    levels[L][P] == H(levels[L-1][2P] || levels[L-1][2P+1])

Proofs are the sibling hashes from the leaf up to (not including) the root,
leaf-adjacent first.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .crypto import Hasher, get_hasher
from .errors import DuplicateLeaf, IndexOutOfRange, InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 8
LEAF_SIZE = 32


def _check_leaves(leaves: Sequence[bytes], depth: int, leaf_size: Optional[int]) -> None:
    if not isinstance(depth, int) or depth < 1:
        raise InvalidInput(f"depth must be a positive integer, got {depth!r}")
    if isinstance(leaves, (bytes, bytearray, str)):
        raise InvalidInput("leaves must be a sequence of byte strings")
    try:
        n = len(leaves)
    except TypeError:
        raise InvalidInput("leaves must be a sequence of byte strings") from None
    expected = 1 << depth
    if n != expected:
        raise InvalidInput(f"expected exactly {expected} leaves, got {n}")
    for i, leaf in enumerate(leaves):
        if not isinstance(leaf, (bytes, bytearray, memoryview)):
            raise InvalidInput(f"leaf {i} is not bytes")
        if leaf_size is not None and len(leaf) != leaf_size:
            raise InvalidInput(f"leaf {i} is {len(leaf)} bytes, expected {leaf_size}")


@dataclass
class MerkleTree:
    levels: List[List[bytes]]  # level 0 = leaf hashes, last level = [root]
    index: Dict[bytes, int]  # leaf hash -> level-0 position
    hasher: Hasher = field(default_factory=get_hasher)

    @classmethod
    def from_leaves(
        cls,
        leaves: Sequence[bytes],
        depth: int = DEFAULT_DEPTH,
        hasher: Optional[Hasher] = None,
        leaf_size: Optional[int] = LEAF_SIZE,
        reject_duplicates: bool = False,
    ) -> "MerkleTree":
        """Hash the leaves and fold adjacent pairs up to a single root.

        Raises InvalidInput before any hashing if the batch is not exactly
        ``2**depth`` leaves of ``leaf_size`` bytes. Duplicate leaves
        overwrite each other in the index lookup (last one wins) unless
        ``reject_duplicates`` is set, in which case DuplicateLeaf is raised.
        """
        _check_leaves(leaves, depth, leaf_size)
        hasher = hasher or get_hasher()

        lvl: List[bytes] = []
        index: Dict[bytes, int] = {}
        for i, leaf in enumerate(leaves):
            h = hasher.leaf(bytes(leaf))
            prev = index.get(h)
            if prev is not None:
                if reject_duplicates:
                    raise DuplicateLeaf(prev, i)
                logger.warning(
                    "duplicate leaf at positions %d and %d; lookup now points at %d",
                    prev,
                    i,
                    i,
                )
            index[h] = i
            lvl.append(h)

        levels = [lvl]
        for _ in range(depth):
            nxt = []
            for j in range(0, len(lvl), 2):
                nxt.append(hasher.pair(lvl[j], lvl[j + 1]))
            levels.append(nxt)
            lvl = nxt
        return cls(levels, index, hasher)

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    @property
    def leaf_count(self) -> int:
        return len(self.levels[0])

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    def level(self, level: int) -> Tuple[bytes, ...]:
        if not 0 <= level <= self.depth:
            raise IndexOutOfRange(f"level {level} outside [0, {self.depth}]")
        return tuple(self.levels[level])

    def node(self, level: int, position: int) -> bytes:
        if not 0 <= level <= self.depth:
            raise IndexOutOfRange(f"level {level} outside [0, {self.depth}]")
        row = self.levels[level]
        if not 0 <= position < len(row):
            raise IndexOutOfRange(
                f"position {position} outside [0, {len(row)}) at level {level}"
            )
        return row[position]

    def index_of(self, leaf_hash: bytes) -> int:
        """Return the level-0 position of a leaf hash; KeyError if unknown."""
        return self.index[bytes(leaf_hash)]

    def prove_index(self, idx: int) -> List[bytes]:
        """Return the sibling path for leaf ``idx``, leaf-to-root."""
        if isinstance(idx, bool) or not isinstance(idx, int):
            raise IndexOutOfRange(f"index must be an integer, got {idx!r}")
        if not 0 <= idx < self.leaf_count:
            raise IndexOutOfRange(f"index {idx} outside [0, {self.leaf_count})")
        proof = []
        h = idx
        for level in self.levels[:-1]:
            sibling = h - 1 if h % 2 == 1 else h + 1
            proof.append(level[sibling])
            h //= 2
        logger.debug("proof for index %d: %d siblings", idx, len(proof))
        return proof


def verify_inclusion(
    leaf: bytes,
    index: int,
    proof: Sequence[bytes],
    root: bytes,
    hasher: Optional[Hasher] = None,
    depth: Optional[int] = None,
) -> bool:
    """Recompute the root from a raw leaf value, its index and a proof.

    Returns False for malformed input (wrong proof length, index beyond the
    proof's depth, mis-sized sibling) instead of raising.
    """
    hasher = hasher or get_hasher()
    if depth is not None and len(proof) != depth:
        return False
    if isinstance(index, bool) or not isinstance(index, int):
        return False
    if not 0 <= index < (1 << len(proof)):
        return False
    h = hasher.leaf(bytes(leaf))
    for level, sibling in enumerate(proof):
        sibling = bytes(sibling)
        if len(sibling) != len(h):
            return False
        if (index >> level) & 1:
            h = hasher.pair(sibling, h)
        else:
            h = hasher.pair(h, sibling)
    return h == bytes(root)
