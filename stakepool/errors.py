# stakepool/errors.py


class LedgerError(Exception):
    """Base class for every error raised by the pool ledger."""


class InvalidConfiguration(LedgerError):
    """Rejected configuration: bad bps, fee above cap, zero address, bad window."""


class StateViolation(LedgerError):
    """The call is not allowed in the current pool state."""


class ReentrantCall(StateViolation):
    pass


class Unauthorized(StateViolation):
    pass


class ExternalCallFailure(LedgerError):
    """A collaborator (token, swap, liquidity collector) failed."""


def external_call(what, fn, *args, **kwargs):
    """Run a collaborator call, surfacing foreign exceptions as ExternalCallFailure"""
    try:
        return fn(*args, **kwargs)
    except LedgerError:
        raise
    except Exception as e:
        raise ExternalCallFailure(f"{what} failed: {e}") from e
