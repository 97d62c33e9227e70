# stakepool/genesis.py
from dataclasses import dataclass

from stakepool.ledger import OperatorCap, PoolLedger
from stakepool.pool_engine import AutoLiquidityCollector, ConstantProductSwap
from stakepool.remote_swap import RemoteSwap
from stakepool.tokens import BalanceBook, BookRewardToken, BookToken

LEDGER_ADDRESS = "0x00000000000000000000000000000000005f0001"
COLLECTOR_ADDRESS = "0x00000000000000000000000000000000005f0002"
TREASURY_ADDRESS = "0x00000000000000000000000000000000005f7ea5"
ROUTER_ADDRESS = "0x00000000000000000000000000000000005f0a7e"
DEV_ADDRESS = "0x00000000000000000000000000000000005fde75"
STAKED_TOKEN = "0x000000000000000000000000000000000057a4e0"
REWARD_TOKEN = "0x00000000000000000000000000000000005e3a4d"

UNIT = 10 ** 18

PROTOCOL_PARAMS = {
    "reward_per_block": 10 * UNIT,
    "blocks": 864_000,
    "deposit_fee_bps": 200,
    "buyback_bps": 9_000,
    "liquidity_bps": 1_000,
    "referral_buyback_bps": 8_500,
    "referral_upline_bps": 500,
    "referral_liquidity_bps": 1_000,
    "seed_staked": 1_000_000 * UNIT,
    "seed_reward": 1_000_000 * UNIT,
}


@dataclass
class World:
    """In-memory collaborators a ledger runs against when no chain is attached"""
    book: BalanceBook
    staked: BookToken
    reward: BookRewardToken
    router: ConstantProductSwap
    collector: AutoLiquidityCollector


def build_world(staked_tax_bps: int = 0, reward_tax_bps: int = 0, reward_decimals: int = 18,
                seed_staked: int = PROTOCOL_PARAMS["seed_staked"],
                seed_reward: int = PROTOCOL_PARAMS["seed_reward"],
                clock=None) -> World:
    book = BalanceBook()
    staked = BookToken(book, STAKED_TOKEN, transfer_tax_bps=staked_tax_bps)
    reward = BookRewardToken(
        book,
        REWARD_TOKEN,
        operator=LEDGER_ADDRESS,
        decimals=reward_decimals,
        transfer_tax_bps=reward_tax_bps,
    )

    router = ConstantProductSwap(book, [staked, reward], clock=clock)
    router.create_pool(STAKED_TOKEN, REWARD_TOKEN)

    if seed_staked and seed_reward:
        staked.faucet(TREASURY_ADDRESS, seed_staked)
        reward.faucet(TREASURY_ADDRESS, seed_reward)
        router.add_liquidity(TREASURY_ADDRESS, STAKED_TOKEN, seed_staked, REWARD_TOKEN, seed_reward)

    collector = AutoLiquidityCollector(router, COLLECTOR_ADDRESS, STAKED_TOKEN, REWARD_TOKEN)

    return World(book=book, staked=staked, reward=reward, router=router, collector=collector)


def build_remote_swap(world: World, base_url: str, timeout: float = 3, inventory: int = 0) -> RemoteSwap:
    """Remote router settling through ROUTER_ADDRESS, optionally stocked with reward token"""
    if inventory:
        world.reward.faucet(ROUTER_ADDRESS, inventory)

    return RemoteSwap(base_url, [world.staked, world.reward], ROUTER_ADDRESS, timeout=timeout)


def build_ledger(world: World, pool=None, swap=None, swap_deadline: int = 300) -> PoolLedger:
    return PoolLedger(
        LEDGER_ADDRESS,
        world.staked,
        world.reward,
        swap or world.router,
        world.collector,
        journals=[world.book],
        pool=pool,
        swap_deadline=swap_deadline,
    )


def generate(ledger: PoolLedger, owner: str, *, block: int, now: int, **overrides) -> OperatorCap:
    """Initialize a fresh ledger with the default protocol parameters"""
    params = {**PROTOCOL_PARAMS, **overrides}

    print("Creating GENESIS pool (this is a fresh ledger)")

    return ledger.initialize(
        owner=owner,
        fee_address=params.get("fee_address", TREASURY_ADDRESS),
        dev_address=params.get("dev_address", DEV_ADDRESS),
        collector_address=COLLECTOR_ADDRESS,
        reward_per_block=params["reward_per_block"],
        start_block=params.get("start_block", block + 1),
        end_block=params.get("end_block", block + 1 + params["blocks"]),
        block=block,
        now=now,
        deposit_fee_bps=params["deposit_fee_bps"],
        buyback_bps=params["buyback_bps"],
        liquidity_bps=params["liquidity_bps"],
        referral_buyback_bps=params["referral_buyback_bps"],
        referral_upline_bps=params["referral_upline_bps"],
        referral_liquidity_bps=params["referral_liquidity_bps"],
        pool_limit_per_user=params.get("pool_limit_per_user", 0),
    )
