# stakepool/accumulator.py

import logging

from stakepool.emission import EmissionSchedule
from stakepool.events import RewardRateUpdated
from stakepool.state import Pool
from stakepool.tokens import RewardToken

log = logging.getLogger(__name__)

DEV_SHARE_DIVISOR = 10


def clamped_block_span(from_block: int, to_block: int, end_block: int) -> int:
    """Blocks between `from_block` and `to_block` that still earn reward"""
    if to_block <= end_block:
        return to_block - from_block
    if from_block >= end_block:
        return 0
    return end_block - from_block


class RewardAccumulator:
    """
    Lazily advances acc_reward_per_share. Nothing ticks in the
    background: every entry point settles before it reads.
    """

    def __init__(self, reward_token: RewardToken, emit=None):
        self.reward_token = reward_token
        self.emit = emit or (lambda event: None)

    def settle(self, pool: Pool, now: int, block: int):
        if block <= pool.last_accrual_block:
            return

        if pool.total_staked == 0:
            pool.last_accrual_block = block
            return

        rate = EmissionSchedule.current_rate(pool.reward_per_block, pool.emission_updated_at, now)
        if rate != pool.reward_per_block:
            self.emit(RewardRateUpdated(
                old_rate=pool.reward_per_block,
                new_rate=rate,
                automatic=True,
                at=now,
            ))
            log.info(f"Emission decayed: {pool.reward_per_block} -> {rate} per block")
            pool.reward_per_block = rate
            pool.emission_updated_at = now

        multiplier = clamped_block_span(pool.last_accrual_block, block, pool.end_block)
        reward = multiplier * pool.reward_per_block

        if reward > 0:
            dev_reward = reward // DEV_SHARE_DIVISOR
            if dev_reward > 0:
                self.reward_token.mint_to(pool.address, pool.dev_address, dev_reward)
            self.reward_token.mint(pool.address, reward)

            pool.acc_reward_per_share += reward * pool.precision_factor // pool.total_staked

        pool.last_accrual_block = block

    @staticmethod
    def projected_acc_reward_per_share(pool: Pool, now: int, block: int) -> int:
        """What acc_reward_per_share would be after settle(now, block), without mutating"""
        if block <= pool.last_accrual_block or pool.total_staked == 0:
            return pool.acc_reward_per_share

        rate = EmissionSchedule.current_rate(pool.reward_per_block, pool.emission_updated_at, now)
        multiplier = clamped_block_span(pool.last_accrual_block, block, pool.end_block)
        reward = multiplier * rate

        return pool.acc_reward_per_share + reward * pool.precision_factor // pool.total_staked

    @staticmethod
    def pending_reward(pool: Pool, user: str, now: int, block: int) -> int:
        position = pool.users.get(user)
        if position is None:
            return 0

        acc = RewardAccumulator.projected_acc_reward_per_share(pool, now, block)
        return position.pending(acc, pool.precision_factor)
