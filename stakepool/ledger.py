# stakepool/ledger.py

import hashlib
import logging
import secrets
from collections import deque
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass

from stakepool.accumulator import RewardAccumulator
from stakepool.allocator import DepositAllocator
from stakepool.errors import (
    InvalidConfiguration,
    StateViolation,
    ReentrantCall,
    Unauthorized,
    external_call,
)
from stakepool.events import (
    AddressesUpdated,
    AllocationUpdated,
    Deposited,
    DepositFeeUpdated,
    EmergencyRewardWithdrawn,
    Harvested,
    PoolLimitUpdated,
    RewardRateUpdated,
    RewardsStopped,
    TokensRecovered,
    WindowUpdated,
)
from stakepool.state import Pool
from stakepool.tokens import LiquidityCollector, RewardToken, Swap, Token
from stakepool.utils import BPS_DENOMINATOR, bps, is_zero_address, norm

log = logging.getLogger(__name__)

MAX_DEPOSIT_FEE_BPS = 1_000
MAX_REWARD_DECIMALS = 30
SWAP_DEADLINE = 300
EVENT_HISTORY = 10_000


@dataclass(frozen=True)
class OperatorCap:
    """Capability handed out by `initialize`; required by every admin mutator."""
    secret: str

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.secret.encode()).hexdigest()


def check_allocation(*parts):
    if any(p < 0 for p in parts):
        raise InvalidConfiguration("Negative percentage")
    if sum(parts) != BPS_DENOMINATOR:
        raise InvalidConfiguration(f"Percentages must sum to {BPS_DENOMINATOR}, got {sum(parts)}")


def check_address(addr, what):
    if is_zero_address(addr):
        raise InvalidConfiguration(f"{what} cannot be the zero address")
    return norm(addr)


def check_window(start_block, end_block, block):
    if start_block >= end_block:
        raise InvalidConfiguration("Start block must be lower than end block")
    if start_block < block:
        raise InvalidConfiguration("Start block is in the past")


class PoolLedger:
    """
    Staking ledger: settles rewards, routes deposits, credits stakes.

    Every mutating entry point runs as one transaction: the pool state,
    the journaled collaborators and the queued events are rolled back
    together when anything raises. While a transaction is open the
    views read the last committed state.
    """

    def __init__(self, address, staked_token: Token, reward_token: RewardToken, swap: Swap,
                 collector: LiquidityCollector, journals=(), pool: Pool = None,
                 swap_deadline: int = SWAP_DEADLINE, event_history: int = EVENT_HISTORY):
        self.pool = pool or Pool(address=norm(address))
        self.staked_token = staked_token
        self.reward_token = reward_token
        self.journals = list(journals)
        self.swap_deadline = swap_deadline

        self.accumulator = RewardAccumulator(reward_token, emit=self._queue)
        self.allocator = DepositAllocator(staked_token, reward_token, swap, collector, emit=self._queue)

        self.events = deque(maxlen=event_history)
        self._queued = []
        self._listeners = []
        self._committed = None

    # --------------------------------------------------
    # EVENTS
    # --------------------------------------------------

    def subscribe(self, listener):
        self._listeners.append(listener)

    def _queue(self, event):
        self._queued.append(event)

    def _flush(self):
        queued, self._queued = self._queued, []
        for event in queued:
            self.events.append(event)
            for listener in self._listeners:
                listener(event)

    # --------------------------------------------------
    # TRANSACTION / GUARDS
    # --------------------------------------------------

    @contextmanager
    def _transaction(self):
        if self.pool.busy:
            raise ReentrantCall("Reentrant call")

        snapshot = deepcopy(self.pool)
        journaled = [(journal, journal.snapshot()) for journal in self.journals]

        self._committed = snapshot
        self.pool.busy = True
        try:
            yield self.pool
        except Exception:
            self.pool = snapshot
            for journal, saved in journaled:
                journal.restore(saved)
            self._queued = []
            raise
        finally:
            self.pool.busy = False
            self._committed = None

        self._flush()

    def _require_initialized(self, pool: Pool):
        if not pool.initialized:
            raise StateViolation("Pool is not initialized")

    def _require_operator(self, pool: Pool, cap: OperatorCap):
        self._require_initialized(pool)
        if not isinstance(cap, OperatorCap) or cap.fingerprint != pool.operator_cap_hash:
            raise Unauthorized("Caller is not the operator")

    # --------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------

    def initialize(self, *, owner, fee_address, dev_address, collector_address,
                   reward_per_block: int, start_block: int, end_block: int,
                   block: int, now: int,
                   buyback_bps: int, liquidity_bps: int,
                   referral_buyback_bps: int, referral_upline_bps: int, referral_liquidity_bps: int,
                   deposit_fee_bps: int = 0, pool_limit_per_user: int = 0) -> OperatorCap:
        with self._transaction() as pool:
            if pool.initialized:
                raise InvalidConfiguration("Already initialized")

            owner = check_address(owner, "Owner")
            fee_address = check_address(fee_address, "Fee address")
            dev_address = check_address(dev_address, "Dev address")
            collector_address = check_address(collector_address, "Liquidity collector")

            decimals = self.reward_token.decimals
            if decimals >= MAX_REWARD_DECIMALS:
                raise InvalidConfiguration(f"Reward token decimals must be inferior to {MAX_REWARD_DECIMALS}")

            check_window(start_block, end_block, block)

            if deposit_fee_bps < 0 or deposit_fee_bps > MAX_DEPOSIT_FEE_BPS:
                raise InvalidConfiguration(f"Deposit fee above {MAX_DEPOSIT_FEE_BPS} bps")
            if pool_limit_per_user < 0:
                raise InvalidConfiguration("Negative pool limit")

            check_allocation(buyback_bps, liquidity_bps)
            check_allocation(referral_buyback_bps, referral_upline_bps, referral_liquidity_bps)

            cap = OperatorCap(secrets.token_hex(32))

            pool.staked_token = norm(self.staked_token.address)
            pool.reward_token = norm(self.reward_token.address)
            pool.owner = owner
            pool.fee_address = fee_address
            pool.dev_address = dev_address
            pool.liquidity_collector = collector_address

            pool.precision_factor = 10 ** (MAX_REWARD_DECIMALS - decimals)
            pool.reward_per_block = reward_per_block
            pool.emission_updated_at = now
            pool.start_block = start_block
            pool.end_block = end_block
            pool.last_accrual_block = start_block

            pool.deposit_fee_bps = deposit_fee_bps
            pool.has_user_limit = pool_limit_per_user > 0
            pool.pool_limit_per_user = pool_limit_per_user

            pool.buyback_bps = buyback_bps
            pool.liquidity_bps = liquidity_bps
            pool.referral_buyback_bps = referral_buyback_bps
            pool.referral_upline_bps = referral_upline_bps
            pool.referral_liquidity_bps = referral_liquidity_bps

            pool.operator_cap_hash = cap.fingerprint
            pool.initialized = True

        log.info(f"Pool {self.pool.address} initialized: blocks {start_block}-{end_block}, {reward_per_block}/block")
        return cap

    # --------------------------------------------------
    # USER ENTRYPOINTS
    # --------------------------------------------------

    def deposit(self, user, amount: int, referrer=None, *, now: int, block: int) -> int:
        user = norm(user)

        with self._transaction() as pool:
            self._require_initialized(pool)

            if amount < 0:
                raise StateViolation("Negative deposit")

            position = pool.position(user)

            if pool.has_user_limit and amount + position.amount > pool.pool_limit_per_user:
                raise StateViolation("User amount above limit")

            self.accumulator.settle(pool, now, block)

            if position.amount > 0:
                pending = position.pending(pool.acc_reward_per_share, pool.precision_factor)
                if pending > 0:
                    self._pay_reward(pool, user, pending)

            net = 0
            if amount > 0:
                before = self.staked_token.balance_of(pool.address)
                external_call("Deposit transfer", self.staked_token.transfer_from, user, pool.address, amount)
                received = self.staked_token.balance_of(pool.address) - before

                fee = bps(received, pool.deposit_fee_bps)
                if fee > 0:
                    external_call("Fee transfer", self.staked_token.transfer, pool.address, pool.fee_address, fee)

                net = self.allocator.allocate(
                    pool,
                    user,
                    referrer,
                    received - fee,
                    deadline=now + self.swap_deadline,
                )

                position.amount += net
                pool.total_staked += net

            position.reward_debt = position.amount * pool.acc_reward_per_share // pool.precision_factor

            self._queue(Deposited(user=user, amount=net))

        if net:
            log.info(f"Deposit: {user} +{net} (total staked {self.pool.total_staked})")
        return net

    def harvest(self, user, *, now: int, block: int) -> int:
        """Pay out pending reward without adding stake"""
        position = self.position(user)
        if position is None:
            return 0

        earned_before = position.total_earned
        self.deposit(user, 0, now=now, block=block)
        return self.position(user).total_earned - earned_before

    def _pay_reward(self, pool: Pool, user: str, pending: int):
        reserve = self.reward_token.balance_of(pool.address)
        paid = min(pending, reserve)

        if paid < pending:
            log.warning(f"Reward reserve short for {user}: owed {pending}, paying {paid}")

        if paid > 0:
            external_call("Reward transfer", self.reward_token.transfer, pool.address, user, paid)

        pool.users[user].total_earned += paid
        self._queue(Harvested(user=user, amount=paid, owed=pending))

    # --------------------------------------------------
    # VIEWS
    # --------------------------------------------------

    @property
    def committed_pool(self) -> Pool:
        """State as of the last commit, never a half-applied transaction"""
        return self._committed if self._committed is not None else self.pool

    def pending_reward(self, user, *, now: int, block: int) -> int:
        return RewardAccumulator.pending_reward(self.committed_pool, norm(user), now, block)

    def position(self, user):
        return self.committed_pool.users.get(norm(user))

    def stats(self) -> dict:
        pool = self.committed_pool
        data = pool.to_dict()
        data.pop("operator_cap_hash")
        data["users"] = len(pool.users)
        return data

    # --------------------------------------------------
    # OPERATOR ENTRYPOINTS
    # --------------------------------------------------

    def update_reward_per_block(self, cap: OperatorCap, reward_per_block: int, *, now: int, block: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            if reward_per_block < 0:
                raise InvalidConfiguration("Negative reward per block")

            # rewards up to now are owed at the old rate
            self.accumulator.settle(pool, now, block)

            old_rate = pool.reward_per_block
            pool.reward_per_block = reward_per_block
            pool.emission_updated_at = now

            self._queue(RewardRateUpdated(old_rate=old_rate, new_rate=reward_per_block, automatic=False, at=now))

    def update_deposit_fee(self, cap: OperatorCap, deposit_fee_bps: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            if deposit_fee_bps < 0 or deposit_fee_bps > MAX_DEPOSIT_FEE_BPS:
                raise InvalidConfiguration(f"Deposit fee above {MAX_DEPOSIT_FEE_BPS} bps")

            pool.deposit_fee_bps = deposit_fee_bps
            self._queue(DepositFeeUpdated(fee_bps=deposit_fee_bps))

    def update_addresses(self, cap: OperatorCap, fee_address=None, dev_address=None):
        with self._transaction() as pool:
            self._require_operator(pool, cap)

            if fee_address is not None:
                pool.fee_address = check_address(fee_address, "Fee address")
            if dev_address is not None:
                pool.dev_address = check_address(dev_address, "Dev address")

            self._queue(AddressesUpdated(fee_address=pool.fee_address, dev_address=pool.dev_address))

    def update_allocation(self, cap: OperatorCap, buyback_bps: int, liquidity_bps: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            check_allocation(buyback_bps, liquidity_bps)

            pool.buyback_bps = buyback_bps
            pool.liquidity_bps = liquidity_bps
            self._queue(AllocationUpdated(buyback_bps=buyback_bps, liquidity_bps=liquidity_bps))

    def update_referral_allocation(self, cap: OperatorCap, buyback_bps: int, upline_bps: int, liquidity_bps: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            check_allocation(buyback_bps, upline_bps, liquidity_bps)

            pool.referral_buyback_bps = buyback_bps
            pool.referral_upline_bps = upline_bps
            pool.referral_liquidity_bps = liquidity_bps
            self._queue(AllocationUpdated(
                buyback_bps=buyback_bps,
                liquidity_bps=liquidity_bps,
                upline_bps=upline_bps,
                referral=True,
            ))

    def update_pool_limit(self, cap: OperatorCap, has_user_limit: bool, pool_limit_per_user: int = 0):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            if has_user_limit and pool_limit_per_user <= 0:
                raise InvalidConfiguration("Pool limit must be positive")

            pool.has_user_limit = has_user_limit
            pool.pool_limit_per_user = pool_limit_per_user if has_user_limit else 0
            self._queue(PoolLimitUpdated(has_user_limit=has_user_limit, limit=pool.pool_limit_per_user))

    def update_start_and_end_blocks(self, cap: OperatorCap, start_block: int, end_block: int, *, block: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            if block >= pool.start_block:
                raise StateViolation("Pool has started")
            check_window(start_block, end_block, block)

            pool.start_block = start_block
            pool.end_block = end_block
            pool.last_accrual_block = start_block
            self._queue(WindowUpdated(start_block=start_block, end_block=end_block))

    def stop_reward(self, cap: OperatorCap, *, block: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            if not pool.is_active(block):
                raise StateViolation("Pool is not running")

            pool.end_block = block
            self._queue(RewardsStopped(block=block))

    def emergency_reward_withdraw(self, cap: OperatorCap, amount: int, *, block: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)
            if pool.is_active(block):
                raise StateViolation("Pool is running")

            external_call("Reward withdraw", self.reward_token.transfer, pool.address, pool.owner, amount)
            self._queue(EmergencyRewardWithdrawn(to=pool.owner, amount=amount))

    def recover_wrong_tokens(self, cap: OperatorCap, token, amount: int):
        with self._transaction() as pool:
            self._require_operator(pool, cap)

            address = norm(token.address)
            if address == pool.staked_token:
                raise StateViolation("Cannot recover the staked token")
            if address == pool.reward_token:
                raise StateViolation("Cannot recover the reward token")

            external_call("Token recovery", token.transfer, pool.address, pool.owner, amount)
            self._queue(TokensRecovered(token=address, amount=amount))
