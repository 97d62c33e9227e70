# stakepool/state.py

from dataclasses import dataclass, field, asdict, fields
from typing import Dict, Optional

from stakepool.utils import ZERO_ADDRESS


@dataclass
class UserPosition:
    amount: int = 0
    reward_debt: int = 0
    referrer: Optional[str] = None
    referral_commission_earned: int = 0
    total_earned: int = 0

    def pending(self, acc_reward_per_share: int, precision_factor: int) -> int:
        return self.amount * acc_reward_per_share // precision_factor - self.reward_debt


@dataclass
class Pool:
    """
    Whole ledger state. Passed explicitly to every engine;
    nothing about a pool lives at module level.
    """
    address: str = ZERO_ADDRESS
    staked_token: str = ""
    reward_token: str = ""
    owner: str = ZERO_ADDRESS
    fee_address: str = ZERO_ADDRESS
    dev_address: str = ZERO_ADDRESS
    liquidity_collector: str = ZERO_ADDRESS

    precision_factor: int = 1
    acc_reward_per_share: int = 0
    total_staked: int = 0

    reward_per_block: int = 0
    emission_updated_at: int = 0

    last_accrual_block: int = 0
    start_block: int = 0
    end_block: int = 0

    deposit_fee_bps: int = 0
    has_user_limit: bool = False
    pool_limit_per_user: int = 0

    buyback_bps: int = 0
    liquidity_bps: int = 0
    referral_buyback_bps: int = 0
    referral_upline_bps: int = 0
    referral_liquidity_bps: int = 0

    total_buyback: int = 0
    total_bought_back: int = 0
    total_liquidified: int = 0
    total_referral_commissions: int = 0

    users: Dict[str, UserPosition] = field(default_factory=dict)

    operator_cap_hash: str = ""

    initialized: bool = False
    busy: bool = False

    def position(self, user: str) -> UserPosition:
        """Position of `user`, created empty on first touch"""
        if user not in self.users:
            self.users[user] = UserPosition()
        return self.users[user]

    def is_active(self, block: int) -> bool:
        return self.start_block <= block <= self.end_block

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("busy")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Pool":
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known and key != "busy"}
        kwargs["users"] = {
            user: UserPosition(**position)
            for user, position in data.get("users", {}).items()
        }
        return cls(**kwargs)


def compute_total_staked(pool: Pool) -> int:
    """Sum of all user stakes, recomputed from the positions"""
    return sum(position.amount for position in pool.users.values())


def compute_referrals(pool: Pool) -> dict:
    referrals = {}

    for user, position in pool.users.items():
        if not position.referrer:
            continue
        referrals.setdefault(position.referrer, []).append(user)

    return referrals
