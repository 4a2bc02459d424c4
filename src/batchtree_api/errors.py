from __future__ import annotations


class InvalidInput(ValueError):
    """Leaf batch has the wrong shape (count, type or size)."""


class DuplicateLeaf(InvalidInput):
    """Two leaves in the batch hash to the same value."""

    def __init__(self, first: int, second: int):
        super().__init__(f"duplicate leaf at positions {first} and {second}")
        self.first = first
        self.second = second


class IndexOutOfRange(IndexError):
    pass


class TreeNotBuilt(RuntimeError):
    def __init__(self, msg: str = "no tree has been built"):
        super().__init__(msg)
