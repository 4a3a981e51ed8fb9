# src/tokenomy/ledger/constants.py
from __future__ import annotations

"""Monetary and policy constants.

- Fixed supply, minted once at genesis and never changed afterwards
- Transaction tax expressed in basis points, hard-capped at 10%
- Vesting defaults: 1 year cliff, 4 year total duration
"""

# Default supply (smallest units). Genesis config may override it once.
DEFAULT_TOTAL_SUPPLY: int = 100_000_000

# Basis points
BPS_DENOMINATOR: int = 10_000
MAX_TAX_RATE_BPS: int = 1_000
DEFAULT_TAX_RATE_BPS: int = 200

# Null / genesis sentinel (mint + burn path, genesis only)
NULL_ACCOUNT: str = "0x0000000000000000000000000000000000000000"

# Canonical system account ids in ledger.accounts
TREASURY_ACCOUNT_ID: str = "TREASURY"
REWARD_POOL_ACCOUNT_ID: str = "REWARD_POOL"
VESTING_VAULT_ACCOUNT_ID: str = "VESTING_VAULT"
AIRDROP_VAULT_ACCOUNT_ID: str = "AIRDROP_VAULT"

SYSTEM_ACCOUNT_IDS = (
    TREASURY_ACCOUNT_ID,
    REWARD_POOL_ACCOUNT_ID,
    VESTING_VAULT_ACCOUNT_ID,
    AIRDROP_VAULT_ACCOUNT_ID,
)

# Time (unix seconds)
DAY_SECONDS: int = 24 * 60 * 60
YEAR_SECONDS: int = 365 * DAY_SECONDS

DEFAULT_CLIFF_SECONDS: int = YEAR_SECONDS
DEFAULT_VESTING_SECONDS: int = 4 * YEAR_SECONDS


def is_null_account(account_id: object) -> bool:
    """True for the genesis sentinel and for empty / missing ids."""
    if account_id is None:
        return True
    s = str(account_id).strip()
    return s == "" or s.lower() == NULL_ACCOUNT
