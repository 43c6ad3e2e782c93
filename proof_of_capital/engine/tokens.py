"""
Collaborator interfaces consumed by the engine, plus in-memory stand-ins.

The engine never owns token accounting: it asks a `FungibleToken` to move
balances and keeps its own ledger of what those balances mean.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Optional, Protocol, runtime_checkable

from proof_of_capital.engine.errors import InvalidAmount, TokenTransferError

log = logging.getLogger(__name__)


@runtime_checkable
class FungibleToken(Protocol):
    address: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, holder: str, recipient: str, amount: int) -> None: ...

    def approve(self, holder: str, spender: str, amount: int) -> None: ...

    def allowance(self, holder: str, spender: str) -> int: ...


@runtime_checkable
class PriceOracle(Protocol):
    def latest_value(self) -> int: ...


@runtime_checkable
class RoyaltyContract(Protocol):
    def notify_profit_mode_changed(self, contract: str, profit_in_time: bool) -> None: ...


@runtime_checkable
class DepositRecipient(Protocol):
    """Push-callbacks invoked on the recipient of a confirmed deferred withdrawal."""

    def deposit_launch(self, caller: str, amount: int) -> None: ...

    def deposit_collateral(self, caller: str, amount: int) -> None: ...


class InMemoryToken:
    """Minimal ERC-20 style ledger: balances, allowances, mint."""

    def __init__(self, address: str, symbol: str = ""):
        self.address = address
        self.symbol = symbol or address
        self._balances: Dict[str, int] = defaultdict(int)
        self._allowances: Dict[tuple, int] = defaultdict(int)
        self.total_supply = 0

    def mint(self, holder: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount("mint amount must be >= 0")
        self._balances[holder] += amount
        self.total_supply += amount

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def allowance(self, holder: str, spender: str) -> int:
        return self._allowances.get((holder, spender), 0)

    def approve(self, holder: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount("allowance must be >= 0")
        self._allowances[(holder, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, holder: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(holder, spender)
        if spender != holder and allowed < amount:
            raise TokenTransferError(
                f"{self.symbol}: allowance {allowed} < {amount} for {spender}"
            )
        self._move(holder, recipient, amount)
        if spender != holder:
            self._allowances[(holder, spender)] = allowed - amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount("transfer amount must be >= 0")
        balance = self.balance_of(sender)
        if balance < amount:
            raise TokenTransferError(
                f"{self.symbol}: balance {balance} < {amount} for {sender}"
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] += amount
        log.debug("%s transfer %s -> %s: %d", self.symbol, sender, recipient, amount)


class AddressBook:
    """Resolves addresses to deployed engine instances that accept push deposits."""

    def __init__(self):
        self._contracts: Dict[str, DepositRecipient] = {}

    def register(self, address: str, contract: DepositRecipient) -> None:
        self._contracts[address] = contract

    def resolve(self, address: str) -> Optional[DepositRecipient]:
        return self._contracts.get(address)
