"""
Role registry: who may do what.

`owner` operates the lock; `reserve_owner` is a separate key that controls
succession of the owner. The DAO is the emergency authority after lock
expiry, and the royalty wallet administers itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from proof_of_capital.engine.constants import ZERO_ADDRESS
from proof_of_capital.engine.errors import (
    AccessDenied,
    InvalidAddress,
    InvalidFlag,
    OldContractAddress,
    OnlyDao,
    OnlyOwner,
    OnlyReserveOwner,
    OnlyReturnWallet,
    OnlyRoyaltyWalletCanChange,
)
from proof_of_capital.engine.events import EventLog


def is_valid_address(address) -> bool:
    return isinstance(address, str) and bool(address.strip()) and address.lower() != ZERO_ADDRESS


def require_address(address) -> str:
    if not is_valid_address(address):
        raise InvalidAddress(f"invalid address: {address!r}")
    return address


def require_flag(value, name: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidFlag(f"{name} must be true or false, got {value!r}")
    return value


@dataclass
class RoleState:
    owner: str
    reserve_owner: str
    dao: str
    royalty_wallet: str
    market_makers: Dict[str, bool] = field(default_factory=dict)
    return_wallets: Dict[str, bool] = field(default_factory=dict)
    old_contracts: Dict[str, bool] = field(default_factory=dict)


class RoleRegistry:
    def __init__(self, state: RoleState, events: EventLog):
        self.state = state
        self._events = events

    # ── Queries ──

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def reserve_owner(self) -> str:
        return self.state.reserve_owner

    @property
    def dao(self) -> str:
        return self.state.dao

    @property
    def royalty_wallet(self) -> str:
        return self.state.royalty_wallet

    def is_market_maker(self, address: str) -> bool:
        return self.state.market_makers.get(address, False)

    def is_return_wallet(self, address: str) -> bool:
        return self.state.return_wallets.get(address, False)

    def is_old_contract(self, address: str) -> bool:
        return self.state.old_contracts.get(address, False)

    # ── Guards ──

    def require_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            raise OnlyOwner(f"{caller} is not the owner")

    def require_reserve_owner(self, caller: str) -> None:
        if caller != self.state.reserve_owner:
            raise OnlyReserveOwner(f"{caller} is not the reserve owner")

    def require_dao(self, caller: str) -> None:
        if caller != self.state.dao:
            raise OnlyDao(f"{caller} is not the DAO")

    def require_return_wallet(self, caller: str) -> None:
        if not self.is_return_wallet(caller):
            raise OnlyReturnWallet(f"{caller} is not a return wallet")

    def require_owner_or_royalty(self, caller: str) -> None:
        if caller not in (self.state.owner, self.state.royalty_wallet):
            raise AccessDenied(f"{caller} is neither owner nor royalty wallet")

    def require_owner_or_old_contract(self, caller: str) -> None:
        if caller != self.state.owner and not self.is_old_contract(caller):
            raise AccessDenied(f"{caller} is neither owner nor a registered old contract")

    # ── Mutations ──

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Move the owner; the reserve owner follows when both keys were the same."""
        self.require_reserve_owner(caller)
        require_address(new_owner)
        if self.is_old_contract(new_owner):
            raise OldContractAddress(f"{new_owner} is a retired contract")

        previous = self.state.owner
        moves_reserve = self.state.owner == self.state.reserve_owner
        self.state.owner = new_owner
        if moves_reserve:
            self.state.reserve_owner = new_owner
        self._events.emit(
            "OwnershipTransferred",
            previous_owner=previous,
            new_owner=new_owner,
            reserve_owner_moved=moves_reserve,
        )

    def assign_new_reserve_owner(self, caller: str, new_reserve_owner: str) -> None:
        self.require_reserve_owner(caller)
        require_address(new_reserve_owner)
        if self.is_old_contract(new_reserve_owner):
            raise OldContractAddress(f"{new_reserve_owner} is a retired contract")
        previous = self.state.reserve_owner
        self.state.reserve_owner = new_reserve_owner
        self._events.emit("ReserveOwnerChanged", previous=previous, new_reserve_owner=new_reserve_owner)

    def set_market_maker(self, caller: str, address: str, enabled: bool) -> None:
        self.require_owner(caller)
        require_address(address)
        self.state.market_makers[address] = require_flag(enabled, "enabled")
        self._events.emit("MarketMakerStatusChanged", address=address, enabled=enabled)

    def set_return_wallet(self, caller: str, address: str, enabled: bool) -> None:
        self.require_owner(caller)
        require_address(address)
        self.state.return_wallets[address] = require_flag(enabled, "enabled")
        self._events.emit("ReturnWalletChanged", address=address, enabled=enabled)

    def change_royalty_wallet(self, caller: str, new_wallet: str) -> None:
        if caller != self.state.royalty_wallet:
            raise OnlyRoyaltyWalletCanChange(f"{caller} is not the royalty wallet")
        require_address(new_wallet)
        self.state.royalty_wallet = new_wallet
        self._events.emit("RoyaltyWalletChanged", new_wallet=new_wallet)

    def set_dao(self, caller: str, new_dao: str) -> None:
        self.require_dao(caller)
        require_address(new_dao)
        self.state.dao = new_dao
        self._events.emit("DaoAddressChanged", new_dao=new_dao)

    def register_old_contract(self, address: str) -> None:
        """Record a retired deployment; trading-window gating is the caller's job."""
        require_address(address)
        if address == self.state.owner:
            raise InvalidAddress("owner cannot be registered as an old contract")
        self.state.old_contracts[address] = True
        self._events.emit("OldContractRegistered", address=address)
