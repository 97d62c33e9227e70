from stakepool.accumulator import RewardAccumulator, clamped_block_span
from stakepool.emission import PERIOD
from stakepool.events import RewardRateUpdated
from stakepool.state import Pool, UserPosition

PRECISION = 10 ** 12


class DummyRewardToken:
    def __init__(self):
        self.mints = []

    def mint_to(self, caller, to, amount):
        self.mints.append((to, amount))

    def mint(self, caller, amount):
        self.mints.append((caller, amount))


def make_pool(**overrides):
    params = dict(
        address="0xpool",
        dev_address="0xdev",
        precision_factor=PRECISION,
        reward_per_block=100,
        emission_updated_at=0,
        last_accrual_block=10,
        start_block=10,
        end_block=1000,
    )
    params.update(overrides)
    return Pool(**params)


def test_clamped_block_span():
    assert clamped_block_span(10, 14, 15) == 4
    assert clamped_block_span(10, 15, 15) == 5
    assert clamped_block_span(10, 20, 15) == 5
    assert clamped_block_span(15, 20, 15) == 0
    assert clamped_block_span(16, 20, 15) == 0


def test_empty_pool_advances_without_accruing():
    token = DummyRewardToken()
    pool = make_pool(total_staked=0)

    RewardAccumulator(token).settle(pool, now=0, block=20)

    assert pool.acc_reward_per_share == 0
    assert pool.last_accrual_block == 20
    assert token.mints == []


def test_settle_mints_dev_share_on_top_of_reward():
    token = DummyRewardToken()
    pool = make_pool(total_staked=1000)

    RewardAccumulator(token).settle(pool, now=0, block=20)

    assert token.mints == [("0xdev", 100), ("0xpool", 1000)]
    assert pool.acc_reward_per_share == 1000 * PRECISION // 1000
    assert pool.last_accrual_block == 20


def test_settle_twice_at_same_height_is_noop():
    token = DummyRewardToken()
    pool = make_pool(total_staked=1000)
    accumulator = RewardAccumulator(token)

    accumulator.settle(pool, now=0, block=20)
    acc = pool.acc_reward_per_share
    accumulator.settle(pool, now=0, block=20)
    accumulator.settle(pool, now=0, block=15)

    assert pool.acc_reward_per_share == acc
    assert len(token.mints) == 2


def test_no_reward_past_end_block():
    token = DummyRewardToken()
    pool = make_pool(total_staked=1000, last_accrual_block=995)
    accumulator = RewardAccumulator(token)

    accumulator.settle(pool, now=0, block=1010)
    assert pool.acc_reward_per_share == 5 * 100 * PRECISION // 1000

    accumulator.settle(pool, now=0, block=1100)
    assert pool.acc_reward_per_share == 5 * 100 * PRECISION // 1000
    assert pool.last_accrual_block == 1100


def test_accumulator_is_monotone():
    token = DummyRewardToken()
    pool = make_pool(total_staked=333)
    accumulator = RewardAccumulator(token)

    seen = [pool.acc_reward_per_share]
    for block in (11, 12, 40, 41, 400, 999, 1000, 1200):
        accumulator.settle(pool, now=block * 100, block=block)
        seen.append(pool.acc_reward_per_share)

    assert seen == sorted(seen)
    assert seen[-1] > 0


def test_decay_is_committed_and_announced():
    events = []
    token = DummyRewardToken()
    pool = make_pool(total_staked=1000)

    RewardAccumulator(token, emit=events.append).settle(pool, now=PERIOD, block=20)

    assert pool.reward_per_block == 98
    assert pool.emission_updated_at == PERIOD
    assert events == [RewardRateUpdated(old_rate=100, new_rate=98, automatic=True, at=PERIOD)]
    assert token.mints[-1] == ("0xpool", 980)


def test_pending_projection_matches_settle():
    pool = make_pool(total_staked=300)
    pool.users["0xa"] = UserPosition(amount=100)
    pool.users["0xb"] = UserPosition(amount=200)

    projected = RewardAccumulator.pending_reward(pool, "0xa", now=PERIOD + 5, block=77)
    assert pool.acc_reward_per_share == 0

    RewardAccumulator(DummyRewardToken()).settle(pool, now=PERIOD + 5, block=77)
    settled = pool.users["0xa"].pending(pool.acc_reward_per_share, pool.precision_factor)

    assert projected == settled
    assert RewardAccumulator.pending_reward(pool, "0xnobody", now=0, block=77) == 0
