from stakepool.emission import PERIOD, EmissionSchedule


def test_rate_unchanged_inside_first_period():
    assert EmissionSchedule.current_rate(1000, 0, PERIOD - 1) == 1000


def test_rate_unchanged_when_clock_is_behind():
    assert EmissionSchedule.current_rate(1000, 500, 400) == 1000
    assert EmissionSchedule.current_rate(1000, 500, 500) == 1000


def test_one_period_takes_two_percent():
    assert EmissionSchedule.current_rate(1000, 0, PERIOD) == 980


def test_decay_is_linear_in_elapsed_periods():
    assert EmissionSchedule.current_rate(1000, 0, 3 * PERIOD + 10) == 940
    assert EmissionSchedule.current_rate(1000, 0, 49 * PERIOD) == 20


def test_decay_clamps_to_floor_instead_of_reaching_zero():
    # 50 periods would remove exactly the whole rate
    assert EmissionSchedule.current_rate(1000, 0, 50 * PERIOD) == 20
    assert EmissionSchedule.current_rate(1000, 0, 80 * PERIOD) == 20


def test_zero_rate_stays_zero():
    assert EmissionSchedule.current_rate(0, 0, 5 * PERIOD) == 0
