import pytest

from stakepool import genesis

T0 = 1_700_000_000
GENESIS_BLOCK = 100

ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x0000000000000000000000000000000000000b0b"
CAROL = "0x00000000000000000000000000000000000ca201"
OWNER = "0x00000000000000000000000000000000000000aa"
FEE = "0x0000000000000000000000000000000000000fee"


@pytest.fixture
def world():
    return genesis.build_world()


@pytest.fixture
def ledger(world):
    return genesis.build_ledger(world)


@pytest.fixture
def cap(ledger):
    return genesis.generate(ledger, OWNER, block=GENESIS_BLOCK, now=T0, fee_address=FEE)


def fund(world, user, amount):
    world.staked.faucet(user, amount)
