from __future__ import annotations
import os
import json
import pathlib
import typer
from rich import print
import requests

from batchtree_api.crypto import ed25519_generate, from_hex, get_hasher, to_hex
from batchtree_api.errors import IndexOutOfRange, InvalidInput
from batchtree_api.merkle import MerkleTree
from batchtree_api.settings import settings

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _read_leaves(path: str):
    """Leaves file: a JSON array of hex strings, or one hex string per line."""
    text = pathlib.Path(path).read_text().strip()
    try:
        if text.startswith("["):
            items = json.loads(text)
        else:
            items = [line.strip() for line in text.splitlines() if line.strip()]
        return [from_hex(x) for x in items]
    except ValueError as e:
        raise typer.BadParameter(f"{path}: {e}")


def _leaf_option(value: str) -> bytes:
    try:
        return from_hex(value)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--leaf")


def _build(leaves, depth: int, algo: str, domain_separation: bool) -> MerkleTree:
    try:
        hasher = get_hasher(algo, domain_separation)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    try:
        return MerkleTree.from_leaves(
            leaves,
            depth=depth,
            hasher=hasher,
            leaf_size=settings.leaf_size,
            reject_duplicates=settings.reject_duplicates,
        )
    except InvalidInput as e:
        print(f"[red]Invalid leaves: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def gen_keys(out_dir: str = typer.Option("./keys", help="Directory to write keypair")):
    os.makedirs(out_dir, exist_ok=True)
    sk, pk = ed25519_generate()
    (pathlib.Path(out_dir) / "ed25519_private.key").write_bytes(sk)
    (pathlib.Path(out_dir) / "ed25519_public.key").write_bytes(pk)
    print(f"[green]Wrote keys to {out_dir}[/green]")


@app.command()
def demo_leaves(
    out: str = typer.Option("./leaves.json", help="Output JSON path"),
    depth: int = typer.Option(settings.depth, help="Tree depth (2**depth leaves)"),
):
    """Write leaves bytes32(1..2**depth) as big-endian 32-byte integers."""
    leaves = [to_hex(i.to_bytes(32, "big")) for i in range(1, (1 << depth) + 1)]
    pathlib.Path(out).write_text(json.dumps(leaves, indent=2))
    print(f"[green]Wrote {len(leaves)} leaves to {out}[/green]")


@app.command()
def build(
    leaves: str = typer.Argument(..., help="Leaves file"),
    depth: int = typer.Option(settings.depth),
    algo: str = typer.Option(settings.hash_algorithm, help="keccak256|sha256"),
    domain_separation: bool = typer.Option(settings.domain_separation),
    dump: str = typer.Option(None, help="Optional: write every level as JSON here"),
):
    """Build the tree and print its root."""
    tree = _build(_read_leaves(leaves), depth, algo, domain_separation)
    if dump:
        levels = [[to_hex(h) for h in tree.level(lv)] for lv in range(tree.depth + 1)]
        pathlib.Path(dump).write_text(json.dumps(levels, indent=2))
        print(f"[green]Wrote {len(levels)} levels to {dump}[/green]")
    print({"root": to_hex(tree.root), "depth": tree.depth, "leaf_count": tree.leaf_count})


@app.command()
def prove(
    leaves: str = typer.Argument(..., help="Leaves file"),
    index: int = typer.Argument(...),
    depth: int = typer.Option(settings.depth),
    algo: str = typer.Option(settings.hash_algorithm, help="keccak256|sha256"),
    domain_separation: bool = typer.Option(settings.domain_separation),
    out: str = typer.Option(None, help="Optional: write proof bundle JSON here"),
):
    """Emit an inclusion proof bundle for the leaf at INDEX."""
    raw_leaves = _read_leaves(leaves)
    tree = _build(raw_leaves, depth, algo, domain_separation)
    try:
        proof = tree.prove_index(index)
    except IndexOutOfRange as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    bundle = {
        "index": index,
        "leaf": to_hex(raw_leaves[index]),
        "leaf_hash": to_hex(tree.node(0, index)),
        "proof": [to_hex(p) for p in proof],
        "root": to_hex(tree.root),
        "hash_algorithm": tree.hasher.name,
        "domain_separation": tree.hasher.domain_separation,
    }
    if out:
        pathlib.Path(out).write_text(json.dumps(bundle, indent=2))
        print(f"[green]Wrote proof to {out}[/green]")
    else:
        typer.echo(json.dumps(bundle, indent=2))


@app.command()
def verify(
    bundle: str = typer.Argument(..., help="Proof bundle JSON"),
    leaf: str = typer.Option(None, help="Raw leaf hex; defaults to the bundle's leaf"),
    sth: str = typer.Option(None, help="Optional signed tree head JSON"),
):
    from batchtree_sdk.verify import verify_proof_bundle

    obj = json.load(open(bundle))
    sth_obj = json.load(open(sth)) if sth else None
    raw = _leaf_option(leaf) if leaf else None
    ok = verify_proof_bundle(obj, leaf=raw, sth_json=sth_obj)
    print({"valid": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def sth(
    leaves: str = typer.Argument(..., help="Leaves file"),
    depth: int = typer.Option(settings.depth),
    algo: str = typer.Option(settings.hash_algorithm, help="keccak256|sha256"),
    domain_separation: bool = typer.Option(settings.domain_separation),
    out: str = typer.Option("./sth.json", help="Output JSON path"),
):
    """Build the tree and emit a Signed Tree Head (STH) for its root."""
    from batchtree_api.sth import make_sth

    tree = _build(_read_leaves(leaves), depth, algo, domain_separation)
    sk_path = pathlib.Path(settings.signing_key_path)
    pk_path = pathlib.Path(settings.signing_pubkey_path)
    if not sk_path.exists() or not pk_path.exists():
        print(f"[red]Signing keys not found at {sk_path.parent}; run gen-keys[/red]")
        raise typer.Exit(code=1)
    head = make_sth(tree, sk_path.read_bytes(), pk_path.read_bytes())
    pathlib.Path(out).write_text(json.dumps(head.model_dump(), indent=2))
    print(f"[green]Wrote STH to {out}[/green]")


@app.command()
def fetch_proof(
    url: str = typer.Option(..., help="Service base URL, e.g. http://localhost:8000"),
    index: int = typer.Argument(...),
    leaf: str = typer.Option(..., help="Raw leaf hex to check"),
):
    """Fetch a proof from a running service and verify it locally."""
    from batchtree_sdk.verify import verify_proof_bundle

    raw = _leaf_option(leaf)
    resp = requests.get(f"{url.rstrip('/')}/proof/{index}", timeout=10)
    if resp.status_code != 200:
        print(f"[red]Status[/red]: {resp.status_code} {resp.text}")
        raise typer.Exit(code=1)
    bundle = resp.json()
    ok = verify_proof_bundle(bundle, leaf=raw)
    print({"root": bundle.get("root"), "valid": ok})
    if not ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
