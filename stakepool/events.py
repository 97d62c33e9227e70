# stakepool/events.py

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class Event:
    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class RewardRateUpdated(Event):
    old_rate: int
    new_rate: int
    automatic: bool
    at: int


@dataclass(frozen=True)
class Deposited(Event):
    user: str
    amount: int


@dataclass(frozen=True)
class Harvested(Event):
    user: str
    amount: int
    owed: int


@dataclass(frozen=True)
class ReferralBound(Event):
    user: str
    referrer: str


@dataclass(frozen=True)
class ReferralCommissionPaid(Event):
    referrer: str
    user: str
    amount: int


@dataclass(frozen=True)
class BoughtBack(Event):
    amount_in: int
    amount_out: int


@dataclass(frozen=True)
class Liquified(Event):
    amount: int
    swapped_out: int


@dataclass(frozen=True)
class DepositFeeUpdated(Event):
    fee_bps: int


@dataclass(frozen=True)
class AddressesUpdated(Event):
    fee_address: str
    dev_address: str


@dataclass(frozen=True)
class AllocationUpdated(Event):
    buyback_bps: int
    liquidity_bps: int
    upline_bps: Optional[int] = None
    referral: bool = False


@dataclass(frozen=True)
class PoolLimitUpdated(Event):
    has_user_limit: bool
    limit: int


@dataclass(frozen=True)
class WindowUpdated(Event):
    start_block: int
    end_block: int


@dataclass(frozen=True)
class RewardsStopped(Event):
    block: int


@dataclass(frozen=True)
class EmergencyRewardWithdrawn(Event):
    to: str
    amount: int


@dataclass(frozen=True)
class TokensRecovered(Event):
    token: str
    amount: int
