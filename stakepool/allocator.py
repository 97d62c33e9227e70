# stakepool/allocator.py

import logging

from stakepool.errors import external_call
from stakepool.events import BoughtBack, Liquified, ReferralBound, ReferralCommissionPaid
from stakepool.state import Pool
from stakepool.tokens import LiquidityCollector, RewardToken, Swap, Token
from stakepool.utils import BURN_ADDRESS, bps, is_zero_address, norm

log = logging.getLogger(__name__)


class DepositAllocator:
    """
    Routes a fee-adjusted deposit: referral upline first, then the
    remainder split between the liquidity leg and the buy-back leg.
    Each step consumes what the previous one left.
    """

    def __init__(self, staked_token: Token, reward_token: RewardToken, swap: Swap,
                 collector: LiquidityCollector, emit=None):
        self.staked_token = staked_token
        self.reward_token = reward_token
        self.swap = swap
        self.collector = collector
        self.emit = emit or (lambda event: None)

    def allocate(self, pool: Pool, depositor: str, referrer, amount: int, deadline: int) -> int:
        position = pool.position(depositor)
        referrer = norm(referrer)

        # 1. referral binding, first one wins
        if not position.referrer and not is_zero_address(referrer) and referrer != depositor:
            position.referrer = referrer
            self.emit(ReferralBound(user=depositor, referrer=referrer))

        remaining = amount

        # 2. upline payout
        if position.referrer:
            upline = bps(remaining, pool.referral_upline_bps)
            if upline > 0:
                self._pay_upline(pool, depositor, position.referrer, upline)
                remaining -= upline
            buyback_bps, liquidity_bps = pool.referral_buyback_bps, pool.referral_liquidity_bps
        else:
            buyback_bps, liquidity_bps = pool.buyback_bps, pool.liquidity_bps

        # 3. liquidity / buyback split
        if buyback_bps + liquidity_bps == 0:
            log.debug("Buyback and liquidity disabled, nothing to route")
            return amount

        liquidity = remaining * liquidity_bps // (liquidity_bps + buyback_bps)
        buyback = remaining - liquidity

        if liquidity > 0:
            self._liquify(pool, liquidity, deadline)
        if buyback > 0:
            self._buyback(pool, buyback, deadline)

        return amount

    def _pay_upline(self, pool: Pool, depositor: str, referrer: str, upline: int):
        external_call(
            "Upline transfer",
            self.staked_token.transfer,
            pool.address,
            referrer,
            upline,
        )

        pool.total_referral_commissions += upline
        pool.position(referrer).referral_commission_earned += upline

        self.emit(ReferralCommissionPaid(referrer=referrer, user=depositor, amount=upline))
        log.info(f"Referral commission: {upline} to {referrer}")

    def _swap_to_reward(self, pool: Pool, amount: int, recipient: str, deadline: int) -> int:
        """Swap staked token for reward token, measured as the recipient's balance delta"""
        before = self.reward_token.balance_of(recipient)

        external_call(
            "Swap",
            self.swap.exact_input,
            pool.address,
            amount,
            pool.staked_token,
            pool.reward_token,
            recipient,
            deadline,
        )

        return self.reward_token.balance_of(recipient) - before

    def _liquify(self, pool: Pool, liquidity: int, deadline: int):
        half = liquidity // 2
        other_half = liquidity - half
        collector = self.collector.address

        swapped = 0
        if half > 0:
            swapped = self._swap_to_reward(pool, half, collector, deadline)

        if other_half > 0:
            external_call(
                "Collector transfer",
                self.staked_token.transfer,
                pool.address,
                collector,
                other_half,
            )

        if swapped <= 0:
            # funds stay with the collector for the next add
            log.warning(f"Liquidity swap returned nothing for {half}, skipping add")
            return

        external_call("Add liquidity", self.collector.add_liquidity_and_burn)
        pool.total_liquidified += liquidity

        self.emit(Liquified(amount=liquidity, swapped_out=swapped))

    def _buyback(self, pool: Pool, buyback: int, deadline: int):
        bought = self._swap_to_reward(pool, buyback, BURN_ADDRESS, deadline)

        if bought <= 0:
            log.warning(f"Buyback swap returned nothing for {buyback}")
            return

        pool.total_buyback += buyback
        pool.total_bought_back += bought

        self.emit(BoughtBack(amount_in=buyback, amount_out=bought))
        log.info(f"Buyback: {buyback} in, {bought} burned")
