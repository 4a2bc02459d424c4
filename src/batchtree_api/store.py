from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple

from .crypto import Hasher, get_hasher, to_hex
from .errors import TreeNotBuilt
from .merkle import DEFAULT_DEPTH, LEAF_SIZE, MerkleTree, verify_inclusion
from .settings import Settings

logger = logging.getLogger(__name__)


class TreeStore:
    """Holds the most recently built tree and answers queries against it.

    A build replaces the tree and its index lookup wholesale; a failed build
    leaves the previous tree in place. Not thread-safe: callers serialize
    builds against reads.
    """

    def __init__(
        self,
        depth: int = DEFAULT_DEPTH,
        hasher: Optional[Hasher] = None,
        leaf_size: Optional[int] = LEAF_SIZE,
        reject_duplicates: bool = False,
    ):
        self.depth = depth
        self.hasher = hasher or get_hasher()
        self.leaf_size = leaf_size
        self.reject_duplicates = reject_duplicates
        self._tree: Optional[MerkleTree] = None

    @classmethod
    def from_settings(cls, s: Settings) -> "TreeStore":
        return cls(
            depth=s.depth,
            hasher=get_hasher(s.hash_algorithm, s.domain_separation),
            leaf_size=s.leaf_size,
            reject_duplicates=s.reject_duplicates,
        )

    @property
    def tree(self) -> MerkleTree:
        if self._tree is None:
            raise TreeNotBuilt()
        return self._tree

    @property
    def built(self) -> bool:
        return self._tree is not None

    @property
    def root(self) -> bytes:
        return self.tree.root

    def build(self, leaves: Sequence[bytes]) -> bool:
        tree = MerkleTree.from_leaves(
            leaves,
            depth=self.depth,
            hasher=self.hasher,
            leaf_size=self.leaf_size,
            reject_duplicates=self.reject_duplicates,
        )
        self._tree = tree
        logger.info(
            "built tree depth=%d leaves=%d hash=%s root=%s",
            tree.depth,
            tree.leaf_count,
            self.hasher.name,
            to_hex(tree.root),
        )
        return True

    def prove_index(self, idx: int) -> List[bytes]:
        return self.tree.prove_index(idx)

    def node(self, level: int, position: int) -> bytes:
        return self.tree.node(level, position)

    def level(self, level: int) -> Tuple[bytes, ...]:
        return self.tree.level(level)

    def index_lookup(self, leaf_hash: bytes) -> int:
        return self.tree.index_of(leaf_hash)

    def verify(self, leaf: bytes, idx: int, proof: Sequence[bytes], root: Optional[bytes] = None) -> bool:
        """Verify against ``root``, or the current root when omitted."""
        expected = self.root if root is None else root
        return verify_inclusion(leaf, idx, proof, expected, self.hasher, depth=self.depth)
