# stakepool/emission.py
from stakepool.utils import bps

PERIOD = 30 * 24 * 60 * 60
DECAY_BPS = 200


class EmissionSchedule:
    @staticmethod
    def elapsed_periods(last_update_time: int, now: int) -> int:
        if now <= last_update_time:
            return 0
        return (now - last_update_time) // PERIOD

    @staticmethod
    def current_rate(base_rate: int, last_update_time: int, now: int) -> int:
        """
        Reward per block after the 2% per 30 days decay.
        View only: the accumulator commits the result.
        """
        periods = EmissionSchedule.elapsed_periods(last_update_time, now)
        if periods == 0:
            return base_rate

        decay = bps(base_rate * periods, DECAY_BPS)

        if base_rate > decay:
            return base_rate - decay

        # decay ate the whole rate: clamp to the floor
        return bps(base_rate, DECAY_BPS)
