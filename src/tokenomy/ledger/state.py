from __future__ import annotations

from dataclasses import dataclass, field
import copy
from typing import Any, Dict, List, Optional

from tokenomy.ledger.constants import REWARD_POOL_ACCOUNT_ID, TREASURY_ACCOUNT_ID
from tokenomy.ledger.settlement import calculate_tax
from tokenomy.ledger.types import AirdropCampaign, VestingSchedule


Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return default


@dataclass(frozen=True, slots=True)
class LedgerView:
    """
    Immutable read-only view of the token state used by queries, the API and admission.
    """

    accounts: Dict[str, Any] = field(default_factory=dict)
    roles: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    ledger: Dict[str, Any] = field(default_factory=dict)
    tax_policy: Dict[str, Any] = field(default_factory=dict)
    rewards: Dict[str, Any] = field(default_factory=dict)
    vesting: Dict[str, Any] = field(default_factory=dict)
    airdrop: Dict[str, Any] = field(default_factory=dict)
    height: int = 0
    time: int = 0

    @classmethod
    def from_ledger(cls, state: Dict[str, Any]) -> "LedgerView":
        def _d(key: str) -> Dict[str, Any]:
            v = state.get(key)
            return copy.deepcopy(v) if isinstance(v, dict) else {}

        return cls(
            accounts=_d("accounts"),
            roles=_d("roles"),
            params=_d("params"),
            ledger=_d("ledger"),
            tax_policy=_d("tax_policy"),
            rewards=_d("rewards"),
            vesting=_d("vesting"),
            airdrop=_d("airdrop"),
            height=_as_int(state.get("height"), 0),
            time=_as_int(state.get("time"), 0),
        )

    # -- accounts ----------------------------------------------------------

    def get_account(self, account_id: str) -> Dict[str, Any]:
        acct = self.accounts.get(account_id)
        return acct if isinstance(acct, dict) else {}

    def get_nonce(self, account_id: str) -> int:
        return _as_int(self.get_account(account_id).get("nonce", 0), 0)

    def balance_of(self, account_id: str) -> int:
        return _as_int(self.get_account(account_id).get("balance", 0), 0)

    def get_active_keys(self, account_id: str) -> List[str]:
        """
        Returns active public keys for an account.

        Schema:
            accounts[account_id]["keys"] = [{"pubkey": "<hex>", "active": true|false}, ...]

        Plain string entries are treated as active. Missing/malformed -> [].
        """
        keys = self.get_account(account_id).get("keys")
        if not isinstance(keys, list):
            return []

        out: List[str] = []
        seen = set()
        for rec in keys:
            if isinstance(rec, str):
                pk: Any = rec
            elif isinstance(rec, dict):
                if rec.get("active", True) is False:
                    continue
                pk = rec.get("pubkey")
            else:
                continue
            if not isinstance(pk, str):
                continue
            p = pk.strip()
            if p and p not in seen:
                seen.add(p)
                out.append(p)
        return out

    def get_param(self, key: str, default: Any = None) -> Any:
        return self.params.get(key, default)

    # -- supply and tax ----------------------------------------------------

    def total_supply(self) -> int:
        return _as_int(self.ledger.get("total_supply"), 0)

    def sum_of_balances(self) -> int:
        return sum(_as_int(a.get("balance"), 0) for a in self.accounts.values() if isinstance(a, dict))

    def tax_rate_bps(self) -> int:
        return _as_int(self.tax_policy.get("rate_bps"), 0)

    def reservoir(self) -> str:
        return str(self.tax_policy.get("reservoir") or REWARD_POOL_ACCOUNT_ID)

    def is_exempt(self, account_id: str) -> bool:
        exempt = self.tax_policy.get("exempt")
        return isinstance(exempt, list) and account_id in exempt

    def is_protected(self, account_id: str) -> bool:
        protected = self.tax_policy.get("protected")
        return isinstance(protected, list) and account_id in protected

    def tax_quote(self, amount: int) -> Json:
        tax, net = calculate_tax(amount, self.tax_rate_bps())
        return {"amount": int(amount), "rate_bps": self.tax_rate_bps(), "tax": tax, "net": net}

    def treasury_account(self) -> str:
        return str(self.params.get("treasury_account") or TREASURY_ACCOUNT_ID)

    # -- rewards -----------------------------------------------------------

    def pool_account(self) -> str:
        return str(self.rewards.get("pool_account") or REWARD_POOL_ACCOUNT_ID)

    def pool_balance(self) -> int:
        return self.balance_of(self.pool_account())

    def circulating_supply(self) -> int:
        return self.total_supply() - self.pool_balance()

    def reward_stats(self, recipient: Optional[str] = None) -> Json:
        by_recipient = self.rewards.get("by_recipient")
        by_recipient = by_recipient if isinstance(by_recipient, dict) else {}
        out: Json = {
            "pool_account": self.pool_account(),
            "pool_balance": self.pool_balance(),
            "total_distributed": _as_int(self.rewards.get("total_distributed"), 0),
            "recipients": len(by_recipient),
        }
        if recipient is not None:
            out["recipient"] = recipient
            out["received"] = _as_int(by_recipient.get(recipient), 0)
        return out

    # -- vesting -----------------------------------------------------------

    def vesting_schedule(self, beneficiary: str) -> Optional[VestingSchedule]:
        schedules = self.vesting.get("schedules")
        if not isinstance(schedules, dict) or beneficiary not in schedules:
            return None
        return VestingSchedule.from_json(beneficiary, schedules[beneficiary])

    def vested_amount(self, beneficiary: str, now: int) -> int:
        sched = self.vesting_schedule(beneficiary)
        return 0 if sched is None else sched.vested_at(now)

    def releasable_amount(self, beneficiary: str, now: int) -> int:
        sched = self.vesting_schedule(beneficiary)
        return 0 if sched is None else sched.releasable_at(now)

    def vesting_committed(self) -> int:
        return _as_int(self.vesting.get("committed"), 0)

    # -- airdrop -----------------------------------------------------------

    def campaign(self) -> Optional[AirdropCampaign]:
        return AirdropCampaign.from_json(self.airdrop.get("campaign"))

    def has_claimed(self, account_id: str) -> bool:
        claimed = self.airdrop.get("claimed")
        return isinstance(claimed, dict) and bool(claimed.get(account_id, False))

    def time_until_deadline(self, now: int) -> int:
        """Seconds until the campaign deadline; 0 once passed or with no campaign."""
        c = self.campaign()
        if c is None:
            return 0
        return max(c.deadline - int(now), 0)


__all__ = ["LedgerView"]
