#!/usr/bin/env python3
"""
Build an airdrop merkle commitment from an allocation list.

Input (CSV or JSON):
  - CSV with an `account,amount` header
  - JSON object {account: amount}
  - JSON list of {"account": ..., "amount": ...} or [account, amount]

Output JSON:
  {root, leaf_count, total_allocated, claims: {account: {amount, leaf, proof}}}

The root and total_allocated go into AIRDROP_CAMPAIGN_INIT; each claimant
gets its own {amount, proof} entry.
"""

from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tokenomy.crypto.merkle import MerkleTree  # noqa: E402


def _row(account: Any, amount: Any, ctx: str) -> Tuple[str, int]:
    a = str(account or "").strip()
    if not a:
        raise SystemExit(f"❌ empty account in {ctx}")
    try:
        n = int(str(amount).strip())
    except ValueError:
        raise SystemExit(f"❌ amount is not an integer in {ctx}: {amount!r}")
    if n <= 0:
        raise SystemExit(f"❌ amount must be > 0 in {ctx}: {n}")
    return a, n


def load_allocations(path: Path) -> List[Tuple[str, int]]:
    text = path.read_text(encoding="utf-8")
    rows: List[Tuple[str, int]] = []

    if path.suffix.lower() == ".csv":
        for i, rec in enumerate(csv.DictReader(text.splitlines()), start=2):
            rows.append(_row(rec.get("account"), rec.get("amount"), f"{path.name}:{i}"))
    else:
        obj = json.loads(text)
        if isinstance(obj, dict):
            for k, v in obj.items():
                rows.append(_row(k, v, f"{path.name}[{k!r}]"))
        elif isinstance(obj, list):
            for i, it in enumerate(obj):
                if isinstance(it, dict):
                    rows.append(_row(it.get("account"), it.get("amount"), f"{path.name}[{i}]"))
                elif isinstance(it, list) and len(it) == 2:
                    rows.append(_row(it[0], it[1], f"{path.name}[{i}]"))
                else:
                    raise SystemExit(f"❌ unsupported entry at {path.name}[{i}]")
        else:
            raise SystemExit(f"❌ allocation JSON must be an object or a list: {path}")

    seen = set()
    for a, _ in rows:
        if a in seen:
            raise SystemExit(f"❌ duplicate account {a!r}: each account may claim only once")
        seen.add(a)
    if not rows:
        raise SystemExit(f"❌ no allocations in {path}")
    return rows


def build_document(allocations: List[Tuple[str, int]]) -> Dict[str, Any]:
    tree = MerkleTree.from_allocations(allocations)
    claims: Dict[str, Any] = {}
    for account, amount in allocations:
        p = tree.proof(account, amount)
        if p is None:
            raise SystemExit(f"❌ internal error: no proof for {account!r}")
        claims[account] = {"amount": amount, "leaf": p.leaf, "proof": p.proof}
    return {
        "root": tree.root,
        "leaf_count": tree.leaf_count,
        "total_allocated": sum(a for _, a in allocations),
        "claims": claims,
    }


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("allocations", help="Path to allocations .csv or .json")
    ap.add_argument("--out", default="", help="Output path (default: stdout)")
    args = ap.parse_args()

    doc = build_document(load_allocations(Path(args.allocations)))
    out = json.dumps(doc, indent=2, sort_keys=True) + "\n"

    if args.out:
        out_path = Path(args.out).resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(out, encoding="utf-8")
        print(f"✅ wrote {out_path} (root={doc['root']}, {doc['leaf_count']} leaves)")
    else:
        sys.stdout.write(out)


if __name__ == "__main__":
    main()
