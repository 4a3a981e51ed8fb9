# src/tokenomy/runtime/apply/__init__.py
"""Domain-specific apply modules.

Each module implements deterministic state transitions for one subset of tx
types and exposes a single `apply_<domain>(state, env)` entry point that
returns a receipt dict, or None when the tx type is not its own.

NOTE: Keep this package import-safe (no imports of domain_dispatch).
"""

from __future__ import annotations

__all__ = [
    "airdrop",
    "protocol",
    "rewards",
    "settlement",
    "vesting",
]
