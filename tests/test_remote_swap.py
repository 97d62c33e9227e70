import pytest
import requests

from conftest import ALICE, FEE, GENESIS_BLOCK, OWNER, T0, fund
from stakepool import genesis
from stakepool.errors import ExternalCallFailure
from stakepool.remote_swap import RemoteSwap
from stakepool.utils import BURN_ADDRESS


class DummyResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self.data = data or {}

    def json(self):
        return self.data


def router_replies(monkeypatch, response, calls=None):
    def fake_post(url, json, timeout):
        if calls is not None:
            calls.append((url, json, timeout))
        return response

    monkeypatch.setattr(requests, "post", fake_post)


@pytest.fixture
def remote(world):
    return genesis.build_remote_swap(world, "http://router.local/", timeout=5, inventory=10_000)


def test_order_is_settled_through_the_router_account(monkeypatch, world, remote):
    calls = []
    router_replies(monkeypatch, DummyResponse(data={"ok": True, "amount_out": "1234"}), calls)
    fund(world, ALICE, 100)

    out = remote.exact_input(ALICE, 100, genesis.STAKED_TOKEN, genesis.REWARD_TOKEN, ALICE, 1_700_000_300)

    assert out == 1234
    assert world.reward.balance_of(ALICE) == 1234
    assert world.staked.balance_of(ALICE) == 0
    assert world.staked.balance_of(genesis.ROUTER_ADDRESS) == 100
    assert world.reward.balance_of(genesis.ROUTER_ADDRESS) == 10_000 - 1234

    url, order, timeout = calls[0]
    assert url == "http://router.local/swap"
    assert timeout == 5
    assert order["payer"] == ALICE
    assert order["amount_in"] == "100"
    assert order["deadline"] == 1_700_000_300


@pytest.mark.parametrize("response", [
    DummyResponse(status_code=502),
    DummyResponse(data={"ok": False, "error": "expired"}),
])
def test_rejected_orders_raise(monkeypatch, world, remote, response):
    router_replies(monkeypatch, response)
    fund(world, ALICE, 1)

    with pytest.raises(ExternalCallFailure):
        remote.exact_input(ALICE, 1, genesis.STAKED_TOKEN, genesis.REWARD_TOKEN, ALICE, 0)


def test_unreachable_router_raises(monkeypatch, world, remote):
    def fake_post(url, json, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", fake_post)
    fund(world, ALICE, 1)

    with pytest.raises(ExternalCallFailure):
        remote.exact_input(ALICE, 1, genesis.STAKED_TOKEN, genesis.REWARD_TOKEN, ALICE, 0)


def test_unknown_token_raises(world):
    remote = RemoteSwap("http://router.local", [world.staked], genesis.ROUTER_ADDRESS)

    with pytest.raises(ExternalCallFailure):
        remote.exact_input(ALICE, 1, genesis.STAKED_TOKEN, genesis.REWARD_TOKEN, ALICE, 0)


def test_deposit_routed_through_remote_router(monkeypatch, world, remote):
    router_replies(monkeypatch, DummyResponse(data={"ok": True, "amount_out": "500"}))
    ledger = genesis.build_ledger(world, swap=remote)
    genesis.generate(ledger, OWNER, block=GENESIS_BLOCK, now=T0, fee_address=FEE)
    fund(world, ALICE, 1000)

    ledger.deposit(ALICE, 1000, now=T0, block=GENESIS_BLOCK)

    pool = ledger.pool
    assert pool.total_buyback == 882
    assert pool.total_bought_back == 500
    assert pool.total_liquidified == 98
    assert world.reward.balance_of(BURN_ADDRESS) == 500
    assert world.collector.lp_burned > 0

    # nothing stranded at the ledger or the collector
    assert world.staked.balance_of(genesis.LEDGER_ADDRESS) == 0
    assert world.staked.balance_of(genesis.COLLECTOR_ADDRESS) == 0
    assert world.staked.balance_of(genesis.ROUTER_ADDRESS) == 49 + 882


def test_remote_router_out_of_inventory_rolls_back(monkeypatch, world):
    remote = genesis.build_remote_swap(world, "http://router.local")
    router_replies(monkeypatch, DummyResponse(data={"ok": True, "amount_out": "500"}))
    ledger = genesis.build_ledger(world, swap=remote)
    genesis.generate(ledger, OWNER, block=GENESIS_BLOCK, now=T0, fee_address=FEE)
    fund(world, ALICE, 1000)

    with pytest.raises(ExternalCallFailure):
        ledger.deposit(ALICE, 1000, now=T0, block=GENESIS_BLOCK)

    assert world.staked.balance_of(ALICE) == 1000
    assert ledger.pool.total_staked == 0
