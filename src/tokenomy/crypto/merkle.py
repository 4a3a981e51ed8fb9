"""Merkle commitment over (account, amount) airdrop allocations.

Leaf hashing is two-stage:

    inner = sha256(canonical_json([account, amount]))
    leaf  = sha256(inner)

Hashing the inner digest again keeps a leaf from ever colliding with an
interior node (an interior node is the hash of 64 bytes, a leaf of 32).

Interior nodes hash the sorted pair, sha256(min(a, b) || max(a, b)), so a
proof is just the ordered list of sibling digests with no L/R flags. Leaves
are sorted before the tree is built; an odd node at a level is paired with
itself.

All digests travel as lowercase hex (a "0x" prefix is accepted on input).
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

ZERO_ROOT = "0" * 64


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _canon_pair(account: str, amount: int) -> bytes:
    return json.dumps([str(account), int(amount)], separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def normalize_hex(value: object) -> Optional[str]:
    """Return a 64-char lowercase hex digest, or None if malformed."""
    if not isinstance(value, str):
        return None
    s = value.strip().lower()
    if s.startswith("0x"):
        s = s[2:]
    if len(s) != 64:
        return None
    try:
        bytes.fromhex(s)
    except ValueError:
        return None
    return s


def is_valid_root(root: object) -> bool:
    s = normalize_hex(root)
    return s is not None and s != ZERO_ROOT


def leaf_hash(account: str, amount: int) -> str:
    inner = _sha256(_canon_pair(account, amount))
    return _sha256(inner).hex()


def hash_pair(a: str, b: str) -> str:
    ab = bytes.fromhex(a)
    bb = bytes.fromhex(b)
    lo, hi = (ab, bb) if ab <= bb else (bb, ab)
    return _sha256(lo + hi).hex()


def verify_proof(root: str, leaf: str, proof: Sequence[str]) -> bool:
    """True if `leaf` folds up to `root` through `proof`. Malformed input -> False."""
    r = normalize_hex(root)
    node = normalize_hex(leaf)
    if r is None or node is None:
        return False
    for sibling in proof:
        sib = normalize_hex(sibling)
        if sib is None:
            return False
        node = hash_pair(node, sib)
    return node == r


def verify_allocation(root: str, account: str, amount: int, proof: Sequence[str]) -> bool:
    return verify_proof(root, leaf_hash(account, amount), proof)


@dataclass(frozen=True)
class MerkleProof:
    """An inclusion proof for a single allocation."""
    account: str
    amount: int
    leaf: str
    proof: List[str]
    root: str


class MerkleTree:
    """A deterministic Merkle tree over airdrop allocations.

    Usage:
        tree = MerkleTree.from_allocations([("alice", 500), ("bob", 250)])
        root = tree.root
        proof = tree.proof("alice", 500)
    """

    def __init__(self, leaves: Iterable[str]) -> None:
        sorted_leaves = sorted(set(leaves))
        if not sorted_leaves:
            raise ValueError("MerkleTree requires at least one leaf")
        self._levels: List[List[str]] = [sorted_leaves]

        current = sorted_leaves
        while len(current) > 1:
            nxt: List[str] = []
            for i in range(0, len(current), 2):
                left = current[i]
                right = current[i + 1] if i + 1 < len(current) else left
                nxt.append(hash_pair(left, right))
            self._levels.append(nxt)
            current = nxt

    @classmethod
    def from_allocations(cls, allocations: Iterable[Tuple[str, int]]) -> "MerkleTree":
        return cls(leaf_hash(a, amt) for a, amt in allocations)

    @property
    def root(self) -> str:
        return self._levels[-1][0]

    @property
    def leaf_count(self) -> int:
        return len(self._levels[0])

    def proof_for_leaf(self, leaf: str) -> Optional[List[str]]:
        """Sibling path for `leaf`, or None if the leaf is not in the tree."""
        leaves = self._levels[0]
        try:
            idx = leaves.index(leaf)
        except ValueError:
            return None

        path: List[str] = []
        for level in self._levels[:-1]:
            sib = idx + 1 if idx % 2 == 0 else idx - 1
            path.append(level[sib] if sib < len(level) else level[idx])
            idx //= 2
        return path

    def proof(self, account: str, amount: int) -> Optional[MerkleProof]:
        leaf = leaf_hash(account, amount)
        path = self.proof_for_leaf(leaf)
        if path is None:
            return None
        return MerkleProof(account=str(account), amount=int(amount), leaf=leaf, proof=path, root=self.root)


__all__ = [
    "MerkleProof",
    "MerkleTree",
    "ZERO_ROOT",
    "hash_pair",
    "is_valid_root",
    "leaf_hash",
    "normalize_hex",
    "verify_allocation",
    "verify_proof",
]
