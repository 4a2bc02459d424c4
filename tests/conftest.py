import os
import sys
from pathlib import Path

import pytest

# Ensure the 'src' directory is on sys.path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Default dev keygen is allowed in tests
os.environ.setdefault("BATCHTREE_ALLOW_DEV_KEYGEN", "true")


def bytes32(i: int) -> bytes:
    return i.to_bytes(32, "big")


@pytest.fixture
def leaves():
    return [bytes32(i) for i in range(1, 257)]


@pytest.fixture
def keys_env(tmp_path, monkeypatch):
    """Point the signing key paths at a temporary directory."""
    monkeypatch.setenv(
        "BATCHTREE_SIGNING_KEY_PATH", str(tmp_path / "keys/ed25519_private.key")
    )
    monkeypatch.setenv(
        "BATCHTREE_SIGNING_PUBKEY_PATH", str(tmp_path / "keys/ed25519_public.key")
    )
    return tmp_path / "keys"
