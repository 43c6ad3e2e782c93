"""
ProofOfCapital: one deployed lock.

Composes the role registry, lock controller, pricing engine, ledger and the
two deferred-withdrawal managers behind a single transaction boundary.
Entry points are serialized, and a failing entry point restores every
component's state and the event log to what it was before the call.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from proof_of_capital.engine.deferred import (
    CollateralDeferredWithdrawal,
    LaunchDeferredWithdrawal,
    WithdrawalRequest,
)
from proof_of_capital.engine.errors import InvalidAddress
from proof_of_capital.engine.events import EventLog
from proof_of_capital.engine.ledger import Ledger, LedgerState
from proof_of_capital.engine.lock import LockController, LockState
from proof_of_capital.engine.oracle import OracleGuard
from proof_of_capital.engine.pricing import PricingEngine, TradeQuote
from proof_of_capital.engine.roles import RoleRegistry, RoleState, require_address
from proof_of_capital.engine.royalty import RoyaltyNotifier
from proof_of_capital.engine.tokens import (
    AddressBook,
    FungibleToken,
    PriceOracle,
    RoyaltyContract,
)
from proof_of_capital.utils.logging_cfg import log_event

if TYPE_CHECKING:
    from proof_of_capital.schemas import LaunchParams

log = logging.getLogger(__name__)


def system_clock() -> int:
    return int(time.time())


class ProofOfCapital:
    def __init__(
        self,
        params: LaunchParams,
        address: str,
        launch_token: FungibleToken,
        collateral_token: FungibleToken,
        clock: Optional[Callable[[], int]] = None,
        oracle: Optional[PriceOracle] = None,
        royalty: Optional[RoyaltyContract] = None,
        address_book: Optional[AddressBook] = None,
    ):
        require_address(address)
        if launch_token.address != params.launch_token:
            raise InvalidAddress(f"launch token {launch_token.address} != {params.launch_token}")
        if collateral_token.address != params.collateral_token:
            raise InvalidAddress(f"collateral token {collateral_token.address} != {params.collateral_token}")
        if params.initial_owner in params.old_contracts:
            raise InvalidAddress("initial owner cannot be a registered old contract")

        self.address = address
        self.params = params
        self._clock = clock or system_clock
        self._mutex = threading.RLock()
        self.events = EventLog(self._clock)

        self.roles = RoleRegistry(
            RoleState(
                owner=params.initial_owner,
                reserve_owner=params.reserve_owner,
                dao=params.dao_address or params.initial_owner,
                royalty_wallet=params.royalty_wallet,
                market_makers={a: True for a in params.market_makers},
                return_wallets={a: True for a in params.return_wallets},
                old_contracts={a: True for a in params.old_contracts},
            ),
            self.events,
        )
        self.lock = LockController(
            LockState(
                lock_end_time=params.lock_end_time,
                control_day=params.control_day,
                control_period=params.control_period,
            ),
            self.roles,
            self._clock,
            self.events,
        )
        self.pricing = PricingEngine(params)
        self.oracle = OracleGuard(oracle, params.collateral_token_min_oracle_value)
        self.ledger = Ledger(
            LedgerState(
                royalty_profit_percent=params.royalty_profit_percent,
                unaccounted_offset=params.offset_launch,
                profit_in_time=params.profit_in_time,
            ),
            address,
            launch_token,
            collateral_token,
            self.pricing,
            self.roles,
            self.lock,
            self.oracle,
            self.events,
        )
        self.royalty = RoyaltyNotifier(address, royalty, self.roles, self.events)
        self.launch_withdrawal = LaunchDeferredWithdrawal(
            WithdrawalRequest(), self.ledger, self.roles, self.lock, self._clock, self.events, address_book
        )
        self.collateral_withdrawal = CollateralDeferredWithdrawal(
            WithdrawalRequest(), self.ledger, self.roles, self.lock, self._clock, self.events, address_book
        )
        if address_book is not None:
            address_book.register(address, self)

        log_event(log, "contract_deployed", address=address, owner=params.initial_owner,
                  lock_end_time=params.lock_end_time)

    # ── Transaction boundary ──

    def _components(self):
        return (self.roles, self.lock, self.ledger, self.launch_withdrawal, self.collateral_withdrawal)

    @contextmanager
    def _transaction(self, operation: str, caller: str):
        with self._mutex:
            saved = [copy.deepcopy(c.state) for c in self._components()]
            mark = self.events.mark()
            try:
                yield
            except Exception as e:
                for component, state in zip(self._components(), saved):
                    component.state = state
                self.events.truncate(mark)
                log_event(log, "operation_rejected", level=logging.DEBUG,
                          operation=operation, caller=caller, error=type(e).__name__)
                raise

    # ── Lock ──

    def extend_lock(self, caller: str, new_end: int) -> None:
        with self._transaction("extend_lock", caller):
            self.lock.extend_lock(caller, new_end)

    def toggle_deferred_withdrawal(self, caller: str) -> bool:
        with self._transaction("toggle_deferred_withdrawal", caller):
            return self.lock.toggle_deferred_withdrawal(caller)

    def register_old_contract(self, caller: str, address: str) -> None:
        with self._transaction("register_old_contract", caller):
            self.lock.register_old_contract(caller, address)

    def remaining_seconds(self) -> int:
        return self.lock.remaining_seconds()

    def trading_opportunity(self) -> bool:
        return self.lock.trading_opportunity()

    # ── Roles ──

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._transaction("transfer_ownership", caller):
            self.roles.transfer_ownership(caller, new_owner)

    def assign_new_reserve_owner(self, caller: str, new_reserve_owner: str) -> None:
        with self._transaction("assign_new_reserve_owner", caller):
            self.roles.assign_new_reserve_owner(caller, new_reserve_owner)

    def set_market_maker(self, caller: str, address: str, enabled: bool) -> None:
        with self._transaction("set_market_maker", caller):
            self.roles.set_market_maker(caller, address, enabled)

    def set_return_wallet(self, caller: str, address: str, enabled: bool) -> None:
        with self._transaction("set_return_wallet", caller):
            self.roles.set_return_wallet(caller, address, enabled)

    def change_royalty_wallet(self, caller: str, new_wallet: str) -> None:
        with self._transaction("change_royalty_wallet", caller):
            self.roles.change_royalty_wallet(caller, new_wallet)

    def set_dao(self, caller: str, new_dao: str) -> None:
        with self._transaction("set_dao", caller):
            self.roles.set_dao(caller, new_dao)

    # ── Market ──

    def buy_launch_tokens(self, caller: str, amount: int) -> TradeQuote:
        with self._transaction("buy_launch_tokens", caller):
            return self.ledger.buy_launch_tokens(caller, amount)

    def sell_launch_tokens(self, caller: str, amount: int) -> TradeQuote:
        with self._transaction("sell_launch_tokens", caller):
            return self.ledger.sell_launch_tokens(caller, amount)

    def sell_launch_tokens_return_wallet(self, caller: str, amount: int) -> TradeQuote:
        with self._transaction("sell_launch_tokens_return_wallet", caller):
            return self.ledger.sell_launch_tokens_return_wallet(caller, amount)

    # ── Deposits (also the push-callbacks of a predecessor's deferred withdrawal) ──

    def deposit_launch(self, caller: str, amount: int) -> None:
        with self._transaction("deposit_launch", caller):
            self.ledger.deposit_launch(caller, amount)

    def deposit_collateral(self, caller: str, amount: int) -> None:
        with self._transaction("deposit_collateral", caller):
            self.ledger.deposit_collateral(caller, amount)

    def process_unaccounted_offset(self, caller: str, amount: int) -> None:
        with self._transaction("process_unaccounted_offset", caller):
            self.ledger.process_unaccounted_offset(caller, amount)

    # ── Profit ──

    def claim_profit_on_request(self, caller: str) -> int:
        with self._transaction("claim_profit_on_request", caller):
            return self.ledger.claim_profit_on_request(caller)

    def change_profit_percentage(self, caller: str, new_percent: int) -> None:
        with self._transaction("change_profit_percentage", caller):
            self.ledger.change_profit_percentage(caller, new_percent)

    def switch_profit_mode(self, caller: str, profit_in_time: bool) -> bool:
        with self._transaction("switch_profit_mode", caller):
            return self.royalty.switch_profit_mode(caller, self.ledger.state, profit_in_time)

    # ── Deferred withdrawals ──

    def schedule_launch_withdrawal(self, caller: str, recipient: str, amount: int) -> None:
        with self._transaction("schedule_launch_withdrawal", caller):
            self.launch_withdrawal.schedule(caller, recipient, amount)

    def cancel_launch_withdrawal(self, caller: str) -> None:
        with self._transaction("cancel_launch_withdrawal", caller):
            self.launch_withdrawal.cancel(caller)

    def confirm_launch_withdrawal(self, caller: str) -> int:
        with self._transaction("confirm_launch_withdrawal", caller):
            return self.launch_withdrawal.confirm(caller)

    def schedule_collateral_withdrawal(self, caller: str, recipient: str) -> None:
        with self._transaction("schedule_collateral_withdrawal", caller):
            self.collateral_withdrawal.schedule(caller, recipient)

    def cancel_collateral_withdrawal(self, caller: str) -> None:
        with self._transaction("cancel_collateral_withdrawal", caller):
            self.collateral_withdrawal.cancel(caller)

    def confirm_collateral_withdrawal(self, caller: str) -> int:
        with self._transaction("confirm_collateral_withdrawal", caller):
            return self.collateral_withdrawal.confirm(caller)

    # ── DAO ──

    def withdraw_all_launch_tokens(self, caller: str) -> int:
        with self._transaction("withdraw_all_launch_tokens", caller):
            return self.ledger.withdraw_all_launch_tokens(caller)

    def withdraw_all_collateral_tokens(self, caller: str) -> int:
        with self._transaction("withdraw_all_collateral_tokens", caller):
            return self.ledger.withdraw_all_collateral_tokens(caller)

    def withdraw_token(self, caller: str, token: FungibleToken, amount: int) -> None:
        with self._transaction("withdraw_token", caller):
            self.ledger.withdraw_token(caller, token, amount)

    # ── Views ──

    def launch_available(self) -> int:
        return self.ledger.state.launch_available

    def snapshot(self) -> Dict[str, Any]:
        with self._mutex:
            roles = self.roles.state
            lock = self.lock.state
            return {
                "address": self.address,
                "roles": {
                    "owner": roles.owner,
                    "reserve_owner": roles.reserve_owner,
                    "dao": roles.dao,
                    "royalty_wallet": roles.royalty_wallet,
                    "market_makers": sorted(a for a, on in roles.market_makers.items() if on),
                    "return_wallets": sorted(a for a, on in roles.return_wallets.items() if on),
                    "old_contracts": sorted(a for a, on in roles.old_contracts.items() if on),
                },
                "lock": {
                    "lock_end_time": lock.lock_end_time,
                    "remaining_seconds": self.lock.remaining_seconds(),
                    "can_withdrawal": lock.can_withdrawal,
                    "control_day": lock.control_day,
                    "control_period": lock.control_period,
                    "trading_opportunity": self.lock.trading_opportunity(),
                    "trading_access": self.lock.trading_access(),
                },
                "ledger": self.ledger.snapshot(),
                "launch_withdrawal": {
                    "status": self.launch_withdrawal.state.status.value,
                    "recipient": self.launch_withdrawal.recipient,
                    "amount": self.launch_withdrawal.state.amount,
                    "scheduled_date": self.launch_withdrawal.state.scheduled_date,
                },
                "collateral_withdrawal": {
                    "status": self.collateral_withdrawal.state.status.value,
                    "recipient": self.collateral_withdrawal.recipient,
                    "scheduled_date": self.collateral_withdrawal.state.scheduled_date,
                },
            }
