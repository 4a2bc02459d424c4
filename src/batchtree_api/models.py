from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic import ConfigDict

from .crypto import from_hex


def _check_hex(v):
    if not isinstance(v, str):
        raise ValueError("hash values must be hex strings")
    from_hex(v)
    return v


class BuildRequest(BaseModel):
    """Leaf batch for POST /tree, hex encoded.

    Only the encoding is checked here; count and size are validated by the
    tree builder so the API and library reject the same inputs.
    """

    model_config = ConfigDict(strict=True)

    leaves: List[str] = Field(default_factory=list)

    @field_validator("leaves")
    @classmethod
    def _leaves_must_be_hex(cls, v):
        for item in v:
            _check_hex(item)
        return v

    def leaf_bytes(self) -> List[bytes]:
        return [from_hex(x) for x in self.leaves]


class BuildResponse(BaseModel):
    ok: bool
    root: str


class TreeInfo(BaseModel):
    depth: int
    leaf_count: int
    hash_algorithm: str
    domain_separation: bool
    root: str


class NodeResponse(BaseModel):
    level: int
    position: int
    hash: str


class LookupResponse(BaseModel):
    leaf_hash: str
    position: int


class ProofBundle(BaseModel):
    """Everything a verifier needs, besides the raw leaf value."""

    index: int
    leaf_hash: str
    proof: List[str]
    root: str
    hash_algorithm: str = "keccak256"
    domain_separation: bool = False
    leaf: Optional[str] = None

    @field_validator("leaf_hash", "root")
    @classmethod
    def _hex(cls, v):
        return _check_hex(v)

    @field_validator("proof")
    @classmethod
    def _proof_hex(cls, v):
        for item in v:
            _check_hex(item)
        return v


class VerifyRequest(BaseModel):
    leaf: str
    index: int
    proof: List[str]
    root: Optional[str] = None

    @field_validator("leaf")
    @classmethod
    def _leaf_hex(cls, v):
        return _check_hex(v)

    @field_validator("proof")
    @classmethod
    def _proof_hex(cls, v):
        for item in v:
            _check_hex(item)
        return v

    @field_validator("root")
    @classmethod
    def _root_hex(cls, v):
        return v if v is None else _check_hex(v)


class VerifyResponse(BaseModel):
    valid: bool


class SignedTreeHead(BaseModel):
    depth: int
    leaf_count: int
    hash_algorithm: str
    domain_separation: bool
    merkle_root_hex: str
    ts: str
    signer_pubkey_b64: str
    signature_b64: str
