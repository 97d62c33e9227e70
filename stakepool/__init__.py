# stakepool/__init__.py

from stakepool.ledger import PoolLedger
from stakepool.errors import (
    LedgerError,
    InvalidConfiguration,
    StateViolation,
    ReentrantCall,
    Unauthorized,
    ExternalCallFailure,
)

__all__ = [
    "PoolLedger",
    "LedgerError",
    "InvalidConfiguration",
    "StateViolation",
    "ReentrantCall",
    "Unauthorized",
    "ExternalCallFailure",
]
