# stakepool/pool_engine.py

import logging
import math

from stakepool.errors import ExternalCallFailure
from stakepool.utils import BPS_DENOMINATOR, BURN_ADDRESS, norm

log = logging.getLogger(__name__)


def pool_account(pool_id: str) -> str:
    return f"pool:{pool_id}"


def lp_asset(pool_id: str) -> str:
    return f"lp:{pool_id}"


class ConstantProductSwap:
    """
    Constant product (x * y = k) router over a BalanceBook.
    Reserves are the balances held by the pool account. When a `clock`
    is given, orders past their deadline are refused.
    """

    def __init__(self, book, tokens: list, fee_bps: int = 30, clock=None):
        self.book = book
        self.tokens = {token.address: token for token in tokens}
        self.fee_bps = fee_bps
        self.clock = clock
        self.pools = {}

    def create_pool(self, token0: str, token1: str) -> dict:
        token0, token1 = norm(token0), norm(token1)
        pool_id = f"{token0}-{token1}"
        pool = {
            "id": pool_id,
            "token0": token0,
            "token1": token1,
            "fee_bps": self.fee_bps,
            "amm": "constant_product",
        }
        self.pools[pool_id] = pool
        return pool

    def find_pool(self, token_a: str, token_b: str) -> dict:
        token_a, token_b = norm(token_a), norm(token_b)
        pool = next(
            (
                p for p in self.pools.values()
                if {p["token0"], p["token1"]} == {token_a, token_b}
            ),
            None,
        )
        if not pool:
            raise ExternalCallFailure("Pool not found")
        return pool

    def reserves(self, pool: dict) -> tuple:
        account = pool_account(pool["id"])
        return (
            self.book.get(account, pool["token0"]),
            self.book.get(account, pool["token1"]),
        )

    def quote(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        dx = amount_in * (BPS_DENOMINATOR - self.fee_bps) // BPS_DENOMINATOR
        return reserve_out * dx // (reserve_in + dx)

    def exact_input(self, payer: str, amount_in: int, token_in: str, token_out: str,
                    recipient: str, deadline: int, min_out: int = 0) -> int:
        if self.clock is not None and deadline is not None and self.clock() > deadline:
            raise ExternalCallFailure("Swap deadline expired")

        token_in, token_out = norm(token_in), norm(token_out)
        pool = self.find_pool(token_in, token_out)
        account = pool_account(pool["id"])

        x = self.book.get(account, token_in)
        y = self.book.get(account, token_out)
        if x == 0 or y == 0:
            raise ExternalCallFailure("Pool has no liquidity")

        received = self.tokens[token_in].transfer_from(payer, account, amount_in)

        dy = self.quote(received, x, y)
        if dy < min_out:
            raise ExternalCallFailure("Slippage exceeded")

        if dy == 0:
            log.debug(f"Swap of {received} {token_in} rounds to zero output")
            return 0

        out = self.tokens[token_out]
        before = out.balance_of(recipient)
        out.transfer(account, recipient, dy)

        return out.balance_of(recipient) - before

    def add_liquidity(self, provider: str, token_a: str, amount_a: int,
                      token_b: str, amount_b: int, to: str = None) -> int:
        pool = self.find_pool(token_a, token_b)
        account = pool_account(pool["id"])
        lp = lp_asset(pool["id"])

        x = self.book.get(account, norm(token_a))
        y = self.book.get(account, norm(token_b))
        supply = self.book.supply.get(lp, 0)

        added_a = self.tokens[norm(token_a)].transfer_from(provider, account, amount_a)
        added_b = self.tokens[norm(token_b)].transfer_from(provider, account, amount_b)

        if supply == 0:
            shares = math.isqrt(added_a * added_b)
        else:
            shares = min(added_a * supply // x, added_b * supply // y)

        if shares <= 0:
            raise ExternalCallFailure("Insufficient liquidity minted")

        self.book.credit(to or provider, lp, shares)
        self.book.supply[lp] = supply + shares

        return shares


class AutoLiquidityCollector:
    """
    Collects both sides of the liquidity leg, then adds everything it
    holds to the pair and sends the LP shares to the burn address.
    """

    def __init__(self, router: ConstantProductSwap, address: str, token_a: str, token_b: str):
        self.router = router
        self.address = norm(address)
        self.token_a = norm(token_a)
        self.token_b = norm(token_b)

    @property
    def lp_burned(self) -> int:
        pool = self.router.find_pool(self.token_a, self.token_b)
        return self.router.book.get(BURN_ADDRESS, lp_asset(pool["id"]))

    def add_liquidity_and_burn(self) -> int:
        amount_a = self.router.tokens[self.token_a].balance_of(self.address)
        amount_b = self.router.tokens[self.token_b].balance_of(self.address)

        if amount_a == 0 or amount_b == 0:
            return 0

        shares = self.router.add_liquidity(
            self.address,
            self.token_a,
            amount_a,
            self.token_b,
            amount_b,
            to=BURN_ADDRESS,
        )

        log.info(f"Liquidity added: {amount_a} + {amount_b}, {shares} LP burned")
        return shares
