# stakepool/tokens.py
"""
Collaborator contracts consumed by the ledger, plus in-memory
implementations backed by a single balance book.

The ledger only ever talks to the protocols; the book-backed classes
exist so a pool can run without a chain behind it.
"""

from copy import deepcopy
from typing import Protocol, runtime_checkable

from stakepool.errors import ExternalCallFailure
from stakepool.utils import bps, k, norm


@runtime_checkable
class Token(Protocol):
    address: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> int: ...

    def transfer_from(self, holder: str, to: str, amount: int) -> int: ...


@runtime_checkable
class RewardToken(Token, Protocol):
    decimals: int

    def mint_to(self, caller: str, to: str, amount: int) -> None: ...

    def mint(self, caller: str, amount: int) -> None: ...


@runtime_checkable
class Swap(Protocol):
    def exact_input(self, payer: str, amount_in: int, token_in: str, token_out: str,
                    recipient: str, deadline: int) -> int: ...


@runtime_checkable
class LiquidityCollector(Protocol):
    address: str

    def add_liquidity_and_burn(self) -> int: ...


class BalanceBook:
    """
    Flat `holder:asset -> amount` map shared by every book token.
    Supports snapshot/restore so the ledger can journal it.
    """

    def __init__(self):
        self.balances = {}
        self.supply = {}

    def get(self, holder, asset) -> int:
        return self.balances.get(k(holder, asset), 0)

    def credit(self, holder, asset, amount):
        self.balances[k(holder, asset)] = self.get(holder, asset) + amount

    def debit(self, holder, asset, amount):
        balance = self.get(holder, asset)
        if balance < amount:
            raise ExternalCallFailure(
                f"Insufficient {asset} balance for {norm(holder)}: {balance} < {amount}"
            )
        self.balances[k(holder, asset)] = balance - amount

    def snapshot(self):
        return deepcopy((self.balances, self.supply))

    def restore(self, snapshot):
        self.balances, self.supply = deepcopy(snapshot)

    def dump(self) -> dict:
        return {"balances": dict(self.balances), "supply": dict(self.supply)}

    def load(self, data: dict):
        self.balances = dict(data.get("balances", {}))
        self.supply = dict(data.get("supply", {}))


class BookToken:
    """ERC20-like token living in a BalanceBook, optional transfer tax (burned)."""

    def __init__(self, book: BalanceBook, address: str, decimals: int = 18, transfer_tax_bps: int = 0):
        self.book = book
        self.address = norm(address)
        self.decimals = decimals
        self.transfer_tax_bps = transfer_tax_bps

    def balance_of(self, holder: str) -> int:
        return self.book.get(holder, self.address)

    def total_supply(self) -> int:
        return self.book.supply.get(self.address, 0)

    def transfer(self, sender: str, to: str, amount: int) -> int:
        if amount < 0:
            raise ExternalCallFailure("Negative transfer")

        self.book.debit(sender, self.address, amount)

        tax = bps(amount, self.transfer_tax_bps)
        received = amount - tax

        self.book.credit(to, self.address, received)
        if tax:
            self.book.supply[self.address] = self.total_supply() - tax

        return received

    def transfer_from(self, holder: str, to: str, amount: int) -> int:
        return self.transfer(holder, to, amount)

    def faucet(self, to: str, amount: int):
        self.book.credit(to, self.address, amount)
        self.book.supply[self.address] = self.total_supply() + amount


class BookRewardToken(BookToken):
    """Book token whose minting is restricted to one operator."""

    def __init__(self, book: BalanceBook, address: str, operator: str, decimals: int = 18, transfer_tax_bps: int = 0):
        super().__init__(book, address, decimals=decimals, transfer_tax_bps=transfer_tax_bps)
        self.operator = norm(operator)

    def mint_to(self, caller: str, to: str, amount: int) -> None:
        if norm(caller) != self.operator:
            raise ExternalCallFailure("Mint caller is not the operator")
        self.faucet(to, amount)

    def mint(self, caller: str, amount: int) -> None:
        self.mint_to(caller, caller, amount)
