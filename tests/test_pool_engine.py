import pytest

from stakepool.errors import ExternalCallFailure
from stakepool.pool_engine import AutoLiquidityCollector, ConstantProductSwap, lp_asset
from stakepool.tokens import BalanceBook, BookToken, LiquidityCollector, RewardToken, Swap, Token
from stakepool.utils import BURN_ADDRESS

LP = "0x00000000000000000000000000000000000000a1"
TRADER = "0x00000000000000000000000000000000000000b1"
COLLECTOR = "0x00000000000000000000000000000000000000c1"


def make_router(fee_bps=30, tax_bps=0):
    book = BalanceBook()
    a = BookToken(book, "0xAAAA")
    b = BookToken(book, "0xBBBB", transfer_tax_bps=tax_bps)
    router = ConstantProductSwap(book, [a, b], fee_bps=fee_bps)
    router.create_pool(a.address, b.address)
    return book, a, b, router


def test_swap_without_liquidity_fails():
    _, a, _, router = make_router()
    a.faucet(TRADER, 100)

    with pytest.raises(ExternalCallFailure):
        router.exact_input(TRADER, 100, "0xaaaa", "0xbbbb", TRADER, 0)


def test_unknown_pair_fails():
    _, _, _, router = make_router()

    with pytest.raises(ExternalCallFailure):
        router.exact_input(TRADER, 1, "0xaaaa", "0xcccc", TRADER, 0)


def test_constant_product_swap():
    _, a, b, router = make_router(fee_bps=0)
    a.faucet(LP, 1000)
    b.faucet(LP, 1000)
    router.add_liquidity(LP, a.address, 1000, b.address, 1000)
    a.faucet(TRADER, 1000)

    out = router.exact_input(TRADER, 1000, a.address, b.address, TRADER, 0)

    # 1000 * 1000 / 2000
    assert out == 500
    assert b.balance_of(TRADER) == 500
    assert router.reserves(router.find_pool(a.address, b.address)) == (2000, 500)


def test_swap_reports_received_amount_for_taxed_output():
    _, a, b, router = make_router(fee_bps=0, tax_bps=1000)
    a.faucet(LP, 1000)
    b.faucet(LP, 1000)
    router.add_liquidity(LP, a.address, 1000, b.address, 1000)
    a.faucet(TRADER, 1000)

    out = router.exact_input(TRADER, 1000, a.address, b.address, TRADER, 0)

    assert out == b.balance_of(TRADER)
    assert out < 500


def test_slippage_guard():
    _, a, b, router = make_router()
    a.faucet(LP, 1000)
    b.faucet(LP, 1000)
    router.add_liquidity(LP, a.address, 1000, b.address, 1000)
    a.faucet(TRADER, 10)

    with pytest.raises(ExternalCallFailure):
        router.exact_input(TRADER, 10, a.address, b.address, TRADER, 0, min_out=10)


def test_collector_adds_everything_and_burns_lp():
    book, a, b, router = make_router()
    a.faucet(LP, 10_000)
    b.faucet(LP, 10_000)
    router.add_liquidity(LP, a.address, 10_000, b.address, 10_000)

    collector = AutoLiquidityCollector(router, COLLECTOR, a.address, b.address)
    assert collector.add_liquidity_and_burn() == 0

    a.faucet(COLLECTOR, 100)
    b.faucet(COLLECTOR, 100)
    shares = collector.add_liquidity_and_burn()

    assert shares == 100
    assert collector.lp_burned == 100
    assert book.get(BURN_ADDRESS, lp_asset(router.find_pool(a.address, b.address)["id"])) == 100
    assert a.balance_of(COLLECTOR) == 0
    assert b.balance_of(COLLECTOR) == 0


def test_expired_deadline_is_refused():
    book = BalanceBook()
    a = BookToken(book, "0xAAAA")
    b = BookToken(book, "0xBBBB")
    router = ConstantProductSwap(book, [a, b], clock=lambda: 1000)
    router.create_pool(a.address, b.address)
    a.faucet(LP, 1000)
    b.faucet(LP, 1000)
    router.add_liquidity(LP, a.address, 1000, b.address, 1000)
    a.faucet(TRADER, 20)

    with pytest.raises(ExternalCallFailure):
        router.exact_input(TRADER, 10, a.address, b.address, TRADER, 999)
    assert a.balance_of(TRADER) == 20

    assert router.exact_input(TRADER, 10, a.address, b.address, TRADER, 1000) > 0


def test_book_collaborators_satisfy_the_protocols(world):
    assert isinstance(world.staked, Token)
    assert isinstance(world.reward, RewardToken)
    assert not isinstance(world.staked, RewardToken)
    assert isinstance(world.router, Swap)
    assert isinstance(world.collector, LiquidityCollector)
