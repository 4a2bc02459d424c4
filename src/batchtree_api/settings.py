from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

DEFAULT_MAX_REQUEST_BYTES = 262144


def build_body_bytes(depth: int, leaf_size: int) -> int:
    """Upper bound on a POST /tree body: 0x-prefixed hex leaves in a JSON list."""
    per_leaf = 2 * leaf_size + 2 + 4  # hex digits, "0x", quotes, ", " separator
    return (1 << depth) * per_leaf + 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Tree shape: 2**depth leaves of leaf_size bytes each
    depth: int = Field(default=8, ge=1, le=24, alias="BATCHTREE_DEPTH")
    leaf_size: int = Field(default=32, ge=1, alias="BATCHTREE_LEAF_SIZE")

    hash_algorithm: str = Field(default="keccak256", alias="BATCHTREE_HASH_ALGORITHM")
    # Off keeps roots bit-compatible with plain H(left || right) trees
    domain_separation: bool = Field(
        default=False, alias="BATCHTREE_DOMAIN_SEPARATION"
    )
    reject_duplicates: bool = Field(
        default=False, alias="BATCHTREE_REJECT_DUPLICATES"
    )

    signing_key_path: str = Field(
        default="./keys/ed25519_private.key", alias="BATCHTREE_SIGNING_KEY_PATH"
    )
    signing_pubkey_path: str = Field(
        default="./keys/ed25519_public.key", alias="BATCHTREE_SIGNING_PUBKEY_PATH"
    )
    allow_dev_keygen: bool = Field(default=False, alias="BATCHTREE_ALLOW_DEV_KEYGEN")

    # Global request size limit enforced by middleware (bytes). When not set
    # explicitly it grows with depth so a full leaf batch always fits.
    max_request_bytes: int = Field(
        default=DEFAULT_MAX_REQUEST_BYTES, alias="BATCHTREE_MAX_REQUEST_BYTES"
    )

    log_level: str = Field(default="INFO", alias="BATCHTREE_LOG_LEVEL")

    @model_validator(mode="after")
    def _fit_body_limit_to_depth(self):
        if "max_request_bytes" not in self.model_fields_set:
            self.max_request_bytes = max(
                DEFAULT_MAX_REQUEST_BYTES, build_body_bytes(self.depth, self.leaf_size)
            )
        return self


settings = Settings()  # load at import
